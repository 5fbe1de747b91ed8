"""
Validation pipeline for candidate application state.

Rules run in a fixed order and every violation is collected before anything
is reported, so a single write surfaces all of its defects at once. Nothing
here writes to the database; the uniqueness rule only reads committed rows.
"""

from __future__ import annotations

from typing import Any, Callable, Optional, Sequence

import core.config as config
from core.errors import ValidationFailure, ValidationIssue
from core.models import AppModel, DropletModel

DUPLICATE_NAME_MESSAGE = "name must be unique in space"

ERROR_MISSING_FIELD = "required"
ERROR_INVALID_FORMAT = "invalid_format"
ERROR_INVALID_ENV_VAR = "invalid_environment_variable"
ERROR_DROPLET_NOT_STAGED = "droplet_not_staged"
ERROR_DUPLICATE_NAME = "duplicate_name"

RESERVED_ENV_VAR_PREFIXES = ("CF_", "VCAP_", "VMC_")
RESERVED_ENV_VAR_NAMES = {"PORT"}

EnvironmentValidator = Callable[[Any], list]


def validate_required_text(value: str, field: str, max_len: int) -> None:
    if not isinstance(value, str) or not value.strip():
        raise ValidationIssue(f"{field} must be a non-empty string", field=field, error_type="required")
    if len(value) > max_len:
        raise ValidationIssue(f"{field} exceeds max length {max_len}", field=field, error_type="max_length")


def validate_optional_text(value: Optional[str], field: str, max_len: int) -> None:
    if value is None:
        return
    if not isinstance(value, str):
        raise ValidationIssue(f"{field} must be a string", field=field, error_type="invalid_type")
    if len(value) > max_len:
        raise ValidationIssue(f"{field} exceeds max length {max_len}", field=field, error_type="max_length")


def validate_limit(value: int, field: str, max_value: int) -> None:
    if value <= 0 or value > max_value:
        raise ValidationIssue(f"{field} must be between 1 and {max_value}", field=field, error_type="out_of_range")


def validate_string_list(values: Optional[Sequence[str]], field: str, max_item_length: int) -> None:
    if values is None:
        return
    if isinstance(values, str) or not isinstance(values, (list, tuple)):
        raise ValidationIssue(f"{field} must be a list", field=field, error_type="invalid_type")
    for item in values:
        if not isinstance(item, str):
            raise ValidationIssue(f"{field} must contain only strings", field=field, error_type="invalid_type")
        if len(item) > max_item_length:
            raise ValidationIssue(
                f"{field} item exceeds max length {max_item_length}",
                field=field,
                error_type="max_length",
            )


# =============================================================================
# Environment variables
# =============================================================================

class EnvironmentVariablesValidator:
    """Default environment variable rules for application writes."""

    def __init__(self, max_key_length: Optional[int] = None):
        self.max_key_length = max_key_length or config.MAX_ENV_VAR_KEY_LENGTH

    def _issue(self, key: Any, reason: str) -> ValidationIssue:
        return ValidationIssue(
            f"{key!s} {reason}" if key is not None else reason,
            field="environment_variables",
            error_type=ERROR_INVALID_ENV_VAR,
            data={"key": key, "reason": reason},
        )

    def validate_each(self, environment_variables: Any) -> list[ValidationIssue]:
        if not isinstance(environment_variables, dict):
            return [self._issue(None, "must be an object")]

        issues = []
        for key, value in environment_variables.items():
            if not isinstance(key, str) or not key:
                issues.append(self._issue(key, "key must be a non-empty string"))
                continue
            if len(key) > self.max_key_length:
                issues.append(self._issue(key, f"key exceeds max length {self.max_key_length}"))
            upper = key.upper()
            prefix = next((p for p in RESERVED_ENV_VAR_PREFIXES if upper.startswith(p)), None)
            if prefix:
                issues.append(self._issue(key, f"cannot start with {prefix}"))
            if key in RESERVED_ENV_VAR_NAMES:
                issues.append(self._issue(key, f"cannot set {key}"))
            if value is not None and not isinstance(value, (str, int, float, bool)):
                issues.append(self._issue(key, "value must be a string, number or boolean"))
        return issues

    __call__ = validate_each


default_environment_validator = EnvironmentVariablesValidator()


# =============================================================================
# Application pipeline
# =============================================================================

def _name_has_valid_format(name: Any) -> bool:
    if not isinstance(name, str) or not name:
        return False
    return name.isprintable()


def _check_name_presence(app: AppModel) -> list[ValidationIssue]:
    if app.name is None or (isinstance(app.name, str) and not app.name.strip()):
        return [ValidationIssue("name is required", field="name", error_type=ERROR_MISSING_FIELD)]
    return []


def _check_name_format(app: AppModel) -> list[ValidationIssue]:
    if not _name_has_valid_format(app.name):
        return [ValidationIssue("name is invalid", field="name", error_type=ERROR_INVALID_FORMAT)]
    if len(app.name) > config.MAX_APP_NAME_LENGTH:
        return [
            ValidationIssue(
                f"name exceeds max length {config.MAX_APP_NAME_LENGTH}",
                field="name",
                error_type=ERROR_INVALID_FORMAT,
            )
        ]
    return []


def _check_environment_variables(app: AppModel, env_validator: EnvironmentValidator) -> list[ValidationIssue]:
    if app.environment_variables is None:
        return []
    return list(env_validator(app.environment_variables))


def _check_droplet_staged(db, app: AppModel) -> list[ValidationIssue]:
    if not app.droplet_guid:
        return []
    droplet = db.get(DropletModel, app.droplet_guid)
    if droplet is not None and not droplet.staged:
        return [
            ValidationIssue(
                "must be in staged state",
                field="droplet",
                error_type=ERROR_DROPLET_NOT_STAGED,
                data={"droplet_guid": droplet.guid, "state": droplet.state},
            )
        ]
    return []


def _check_unique_name(db, app: AppModel) -> list[ValidationIssue]:
    # malformed names are already reported by the format rule
    if not isinstance(app.name, str) or not app.name or not app.space_guid:
        return []
    query = (
        db.query(AppModel.guid)
        .filter(AppModel.space_guid == app.space_guid)
        .filter(AppModel.name == app.name)
    )
    if app.guid:
        query = query.filter(AppModel.guid != app.guid)
    if query.first() is None:
        return []
    return [duplicate_name_issue()]


def duplicate_name_issue() -> ValidationIssue:
    return ValidationIssue(DUPLICATE_NAME_MESSAGE, field="name", error_type=ERROR_DUPLICATE_NAME)


def validate_app(
    db,
    app: AppModel,
    env_validator: Optional[EnvironmentValidator] = None,
) -> list[ValidationIssue]:
    """Run every rule against a candidate app and return all violations."""
    env_validator = env_validator or default_environment_validator
    issues: list[ValidationIssue] = []
    with db.no_autoflush:
        issues.extend(_check_name_presence(app))
        issues.extend(_check_name_format(app))
        issues.extend(_check_environment_variables(app, env_validator))
        issues.extend(_check_droplet_staged(db, app))
        issues.extend(_check_unique_name(db, app))
    return issues


def ensure_valid_app(
    db,
    app: AppModel,
    env_validator: Optional[EnvironmentValidator] = None,
) -> None:
    issues = validate_app(db, app, env_validator=env_validator)
    if issues:
        raise ValidationFailure(issues)


__all__ = [
    "DUPLICATE_NAME_MESSAGE",
    "ERROR_MISSING_FIELD",
    "ERROR_INVALID_FORMAT",
    "ERROR_INVALID_ENV_VAR",
    "ERROR_DROPLET_NOT_STAGED",
    "ERROR_DUPLICATE_NAME",
    "EnvironmentVariablesValidator",
    "default_environment_validator",
    "validate_required_text",
    "validate_optional_text",
    "validate_limit",
    "validate_string_list",
    "validate_app",
    "ensure_valid_app",
    "duplicate_name_issue",
]
