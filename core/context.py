"""
Request-scoped context objects for core services.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional
import contextvars

from core.errors import ValidationIssue


@dataclass(frozen=True)
class AuthContext:
    user_guid: Optional[str] = None
    actor: Optional[str] = None
    admin: bool = False


@dataclass(frozen=True)
class RequestContext:
    auth: AuthContext
    request_id: Optional[str] = None
    source: Optional[str] = None


_CURRENT_REQUEST_CONTEXT: contextvars.ContextVar[Optional["RequestContext"]] = contextvars.ContextVar(
    "appcontrol_request_context",
    default=None,
)


def get_current_request_context() -> Optional["RequestContext"]:
    return _CURRENT_REQUEST_CONTEXT.get()


def set_current_request_context(context: Optional["RequestContext"]) -> contextvars.Token:
    return _CURRENT_REQUEST_CONTEXT.set(context)


def reset_current_request_context(token: contextvars.Token) -> None:
    _CURRENT_REQUEST_CONTEXT.reset(token)


def resolve_user_guid(
    context: Optional["RequestContext"],
    *,
    required: bool = False,
) -> Optional[str]:
    if context is None:
        context = get_current_request_context()
    user_guid = context.auth.user_guid if context and context.auth else None
    if not user_guid and required:
        raise ValidationIssue(
            "user_guid is required for this operation",
            field="user_guid",
            error_type="required",
        )
    return user_guid


def resolve_actor(context: Optional["RequestContext"]) -> tuple[str, Optional[str]]:
    """Actor type and id for audit events."""
    if context is None:
        context = get_current_request_context()
    if context and context.auth and context.auth.user_guid:
        return "user", context.auth.user_guid
    return "system", None


def is_admin(context: Optional["RequestContext"]) -> bool:
    if context is None:
        context = get_current_request_context()
    return bool(context and context.auth and context.auth.admin)


__all__ = [
    "AuthContext",
    "RequestContext",
    "get_current_request_context",
    "set_current_request_context",
    "reset_current_request_context",
    "resolve_user_guid",
    "resolve_actor",
    "is_admin",
]
