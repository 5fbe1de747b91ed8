"""
Field-level encryption for opaque JSON columns.

Values are JSON-serialized and, when APPCONTROL_DB_ENCRYPTION_KEY is set,
Fernet-encrypted before they reach the database. Callers only ever see the
decoded Python value.
"""

from __future__ import annotations

import json
from typing import Any, Optional

from cryptography.fernet import Fernet, InvalidToken
from sqlalchemy import Text
from sqlalchemy.types import TypeDecorator

import core.config as config

ENCRYPTED_PREFIX = "fernet:"


def _fernet() -> Optional[Fernet]:
    key = config.DB_ENCRYPTION_KEY
    if not key:
        return None
    return Fernet(key.encode("utf-8") if isinstance(key, str) else key)


def encode_value(value: Any) -> Optional[str]:
    if value is None:
        return None
    serialized = json.dumps(value, sort_keys=True)
    fernet = _fernet()
    if fernet is None:
        return serialized
    token = fernet.encrypt(serialized.encode("utf-8")).decode("ascii")
    return f"{ENCRYPTED_PREFIX}{token}"


def decode_value(stored: Optional[str]) -> Any:
    if stored is None:
        return None
    if not stored.startswith(ENCRYPTED_PREFIX):
        return json.loads(stored)
    fernet = _fernet()
    if fernet is None:
        raise RuntimeError("Encrypted column found but APPCONTROL_DB_ENCRYPTION_KEY is not set")
    try:
        raw = fernet.decrypt(stored[len(ENCRYPTED_PREFIX):].encode("ascii"))
    except InvalidToken as exc:
        raise RuntimeError("Unable to decrypt column with configured key") from exc
    return json.loads(raw.decode("utf-8"))


class EncryptedJSON(TypeDecorator):
    """JSON mapping stored as (optionally encrypted) text."""

    impl = Text
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return encode_value(value)

    def process_result_value(self, value, dialect):
        return decode_value(value)
