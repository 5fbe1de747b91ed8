"""
Database URI derivation from bound service credentials.
"""

from __future__ import annotations

from typing import Callable, Optional, Sequence
from urllib.parse import urlsplit, urlunsplit

from core.models import AppModel

VALID_DB_SCHEMES = ("mysql", "mysql2", "postgres", "postgresql")
SCHEME_ALIASES = {
    "postgresql": "postgres",
    "mysql": "mysql2",
}

UriGenerator = Callable[[Sequence[str]], Optional[str]]


class DatabaseUriGenerator:
    """Pick the first relational database URI and normalize its scheme."""

    def __init__(self, valid_schemes: Sequence[str] = VALID_DB_SCHEMES):
        self.valid_schemes = tuple(valid_schemes)

    def _valid_database_uris(self, service_uris: Sequence[str]):
        for raw in service_uris:
            if not isinstance(raw, str):
                continue
            try:
                parts = urlsplit(raw)
            except ValueError:
                continue
            if parts.scheme in self.valid_schemes:
                yield parts

    def generate(self, service_uris: Optional[Sequence[str]]) -> Optional[str]:
        first = next(self._valid_database_uris(service_uris or []), None)
        if first is None:
            return None
        scheme = SCHEME_ALIASES.get(first.scheme, first.scheme)
        return urlunsplit(first._replace(scheme=scheme))

    __call__ = generate


default_uri_generator = DatabaseUriGenerator()


def service_binding_uris(app: AppModel) -> list[str]:
    uris = []
    for binding in app.service_bindings:
        credentials = binding.credentials
        if not credentials or not isinstance(credentials, dict):
            continue
        uri = credentials.get("uri")
        if uri is not None:
            uris.append(uri)
    return uris


def database_uri(app: AppModel, generator: Optional[UriGenerator] = None) -> Optional[str]:
    generator = generator or default_uri_generator
    return generator(service_binding_uris(app))


__all__ = [
    "VALID_DB_SCHEMES",
    "DatabaseUriGenerator",
    "default_uri_generator",
    "service_binding_uris",
    "database_uri",
]
