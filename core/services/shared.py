"""
Shared helpers for application services.
"""

from __future__ import annotations

from functools import wraps
from typing import Callable, Optional

from sqlalchemy.exc import IntegrityError

import core.config as config
from core.errors import ValidationFailure, ValidationIssue
from core.validators import duplicate_name_issue

logger = config.logger

MAX_RESULT_LIMIT = config.MAX_RESULT_LIMIT
MAX_GUID_LENGTH = 36
MAX_SHORT_TEXT_LENGTH = 255

APP_NAME_UNIQUE_CONSTRAINT = "uq_apps_space_guid_name"
# sqlite reports the columns rather than the constraint name
APP_NAME_UNIQUE_COLUMNS = "apps.space_guid, apps.name"


def is_duplicate_app_name_error(exc: IntegrityError) -> bool:
    message = str(getattr(exc, "orig", exc))
    return APP_NAME_UNIQUE_CONSTRAINT in message or APP_NAME_UNIQUE_COLUMNS in message


def _persist_app_write(db, persist: Callable[[], None]) -> None:
    try:
        persist()
    except IntegrityError as exc:
        db.rollback()
        if is_duplicate_app_name_error(exc):
            raise ValidationFailure([duplicate_name_issue()]) from exc
        raise


def flush_app_write(db) -> None:
    """Flush pending app changes, translating the storage-level name constraint."""
    _persist_app_write(db, db.flush)


def commit_app_write(db) -> None:
    """Commit, translating the storage-level name constraint into a validation failure."""
    _persist_app_write(db, db.commit)


def default_ssh_access(value: Optional[bool]) -> bool:
    return config.DEFAULT_APP_SSH_ACCESS if value is None else bool(value)


# =============================================================================
# Error handling
# =============================================================================

def _tool_error_payload(tool_name: str, issues: list[ValidationIssue]) -> dict:
    first = issues[0]
    return {
        "status": "error",
        "error_type": "validation_error",
        "tool": tool_name,
        "field": first.field,
        "message": "; ".join(str(issue) for issue in issues),
        "errors": [issue.to_dict() for issue in issues],
    }


def _log_validation_issues(tool_name: str, issues: list[ValidationIssue], warn: bool = False) -> None:
    payload = {
        "tool": tool_name,
        "fields": [issue.field for issue in issues],
        "error_types": [issue.error_type for issue in issues],
        "detail": "; ".join(str(issue) for issue in issues),
    }
    if warn:
        logger.warning("tool_validation_error", extra=payload)
    else:
        logger.info("tool_validation_error", extra=payload)


def _tool_error_handler(fn: Callable[..., dict]) -> Callable[..., dict]:
    @wraps(fn)
    def wrapper(*args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except ValidationFailure as exc:
            _log_validation_issues(fn.__name__, exc.issues, warn=False)
            return _tool_error_payload(fn.__name__, exc.issues)
        except ValidationIssue as exc:
            _log_validation_issues(fn.__name__, [exc], warn=False)
            return _tool_error_payload(fn.__name__, [exc])
        except ValueError as exc:
            issue = ValidationIssue(str(exc), field="unknown", error_type="value_error")
            _log_validation_issues(fn.__name__, [issue], warn=True)
            return _tool_error_payload(fn.__name__, [issue])
    return wrapper


def service_tool(fn: Callable[..., dict]) -> Callable[..., dict]:
    return _tool_error_handler(fn)
