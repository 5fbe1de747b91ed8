"""
Shared error types for core services.
"""

from __future__ import annotations

from typing import Iterable


class ValidationIssue(ValueError):
    def __init__(
        self,
        message: str,
        field: str = "unknown",
        error_type: str = "invalid",
        error_code: str | None = None,
        data: dict | None = None,
    ):
        super().__init__(message)
        self.field = field
        self.error_type = error_type
        self.error_code = error_code
        self.data = data

    def to_dict(self) -> dict:
        payload = {
            "field": self.field,
            "error_type": self.error_type,
            "message": str(self),
        }
        if self.error_code:
            payload["error_code"] = self.error_code
        if self.data:
            payload["data"] = self.data
        return payload


class ValidationFailure(ValueError):
    """A candidate application state was rejected; carries every violation found."""

    def __init__(self, issues: Iterable[ValidationIssue]):
        self.issues = list(issues)
        if not self.issues:
            raise ValueError("ValidationFailure requires at least one issue")
        super().__init__("; ".join(f"{issue.field} {issue}" for issue in self.issues))

    @property
    def error_types(self) -> set[str]:
        return {issue.error_type for issue in self.issues}


class CascadeFailure(RuntimeError):
    """Raised when a sibling process could not be persisted with its new version."""

    def __init__(self, app_guid: str, process_guid: str, reason: str):
        super().__init__(f"process {process_guid} of app {app_guid} failed to save: {reason}")
        self.app_guid = app_guid
        self.process_guid = process_guid
        self.reason = reason
