"""
Shared configuration for AppControl core.
"""

from __future__ import annotations

import logging
import os

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("appcontrol")


def _get_bool(env_name: str, default: bool) -> bool:
    value = os.environ.get(env_name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_int(env_name: str, default: int) -> int:
    value = os.environ.get(env_name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _derive_effective_backend(db_backend: str) -> str:
    return db_backend if db_backend in {"postgres", "sqlite"} else "postgres"


# Database settings
DB_BACKEND = os.environ.get("DB_BACKEND", "postgres").strip().lower()
SQLITE_PATH = os.environ.get("SQLITE_PATH", "/data/appcontrol.db")
DATABASE_URL = os.environ.get("DATABASE_URL")
DB_BACKEND_EFFECTIVE = _derive_effective_backend(DB_BACKEND)

# Database initialization controls
AUTO_MIGRATE_ON_STARTUP = _get_bool("AUTO_MIGRATE_ON_STARTUP", True)

# Field encryption for environment variables (Fernet key, urlsafe base64)
DB_ENCRYPTION_KEY = os.environ.get("APPCONTROL_DB_ENCRYPTION_KEY")

# Platform defaults consumed by the application write path
DEFAULT_APP_SSH_ACCESS = _get_bool("APPCONTROL_DEFAULT_APP_SSH_ACCESS", True)
DEFAULT_STACK = os.environ.get("APPCONTROL_DEFAULT_STACK", "cflinuxfs4").strip()

# Request/input limits
MAX_APP_NAME_LENGTH = _get_int("APPCONTROL_MAX_APP_NAME_LENGTH", 255)
MAX_RESULT_LIMIT = _get_int("APPCONTROL_MAX_RESULT_LIMIT", 100)
MAX_ENV_VAR_KEY_LENGTH = _get_int("APPCONTROL_MAX_ENV_VAR_KEY_LENGTH", 255)

INSTANCE_ID = os.environ.get("APPCONTROL_INSTANCE_ID", "appcontrol-1")


def validate_and_prepare_config() -> None:
    """Validate configuration and apply derived settings at startup."""
    global DATABASE_URL, DB_BACKEND_EFFECTIVE

    errors = []
    if DB_BACKEND not in {"postgres", "sqlite"}:
        errors.append("DB_BACKEND must be 'postgres' or 'sqlite'")

    if not DATABASE_URL:
        if DB_BACKEND == "sqlite":
            if not SQLITE_PATH:
                errors.append("SQLITE_PATH environment variable is required for sqlite")
            else:
                DATABASE_URL = f"sqlite:///{SQLITE_PATH}"
        else:
            errors.append("DATABASE_URL environment variable is required")
    else:
        url_lower = DATABASE_URL.lower()
        is_sqlite_url = url_lower.startswith("sqlite")
        if DB_BACKEND == "sqlite" and not is_sqlite_url:
            errors.append("DATABASE_URL must be a sqlite URL when DB_BACKEND=sqlite")
        if DB_BACKEND == "postgres" and is_sqlite_url:
            errors.append("DATABASE_URL must be a postgres URL when DB_BACKEND=postgres")

    if not DEFAULT_STACK:
        errors.append("APPCONTROL_DEFAULT_STACK must not be empty")
    if MAX_APP_NAME_LENGTH <= 0:
        errors.append("APPCONTROL_MAX_APP_NAME_LENGTH must be positive")

    if not DB_ENCRYPTION_KEY:
        logger.warning(
            "APPCONTROL_DB_ENCRYPTION_KEY is not set; environment variables are stored unencrypted."
        )
    DB_BACKEND_EFFECTIVE = _derive_effective_backend(DB_BACKEND)

    if errors:
        raise RuntimeError("Configuration invalid: " + "; ".join(errors))
