"""
Application services.

Provides the application write path and its read views:
- Create, update and delete applications
- Set the current droplet
- Attach or update buildpack lifecycle data
- Describe and list applications within the caller's visibility scope
- Derive the database URI from bound services
- Page through an application's audit events

Every write validates the candidate state, persists it and runs the process
version cascade inside a single session transaction.
"""

from __future__ import annotations

import uuid
from typing import Any, Optional, Sequence

from core.audit import list_audit_events, log_event
from core.audit_constants import (
    EVENT_APP_CREATE,
    EVENT_APP_DELETE_REQUEST,
    EVENT_APP_DROPLET_MAPPED,
    EVENT_APP_UPDATE,
)
from core.cascade import cascade_process_versions
from core.context import (
    RequestContext,
    get_current_request_context,
    is_admin,
    resolve_actor,
    resolve_user_guid,
)
from core.database_uri import UriGenerator, database_uri
from core.db import session_scope
from core.errors import ValidationIssue
from core.lifecycle import (
    BuildpackLifecycle,
    LifecycleType,
    lifecycle_payload,
    resolve_lifecycle,
)
import core.config as config
from core.models import (
    AppModel,
    BuildModel,
    BuildpackLifecycleDataModel,
    DeploymentModel,
    DesiredState,
    DropletModel,
    PackageModel,
    ProcessModel,
    RouteMapping,
    ServiceBinding,
    Space,
    TaskModel,
)
from core.services.shared import (
    MAX_GUID_LENGTH,
    MAX_RESULT_LIMIT,
    MAX_SHORT_TEXT_LENGTH,
    commit_app_write,
    default_ssh_access,
    flush_app_write,
    logger,
    service_tool,
)
from core.validators import (
    EnvironmentValidator,
    ensure_valid_app,
    validate_limit,
    validate_optional_text,
    validate_required_text,
    validate_string_list,
)
from core.visibility import (
    app_is_visible,
    load_role_grants,
    visible_applications,
    visible_space_guids,
)

_UNSET: Any = object()

DESIRED_STATES = {state.value for state in DesiredState}

# Child resources removed by delete_app, in dependency order.
APP_DELETE_STEPS = (
    RouteMapping,
    ServiceBinding,
    TaskModel,
    DeploymentModel,
    ProcessModel,
    BuildModel,
    DropletModel,
    PackageModel,
)


# =============================================================================
# Helpers
# =============================================================================

def _validate_desired_state(value: Any) -> None:
    if value not in DESIRED_STATES:
        raise ValidationIssue(
            "desired_state must be STARTED or STOPPED",
            field="desired_state",
            error_type="invalid_value",
        )


def _validate_enable_ssh(value: Any) -> None:
    if value is not None and not isinstance(value, bool):
        raise ValidationIssue("enable_ssh must be a boolean", field="enable_ssh", error_type="invalid_type")


def _parse_lifecycle(lifecycle: Optional[dict]) -> tuple[LifecycleType, dict]:
    if lifecycle is None:
        return LifecycleType.DOCKER, {}
    if not isinstance(lifecycle, dict):
        raise ValidationIssue("lifecycle must be an object", field="lifecycle", error_type="invalid_type")
    try:
        kind = LifecycleType(lifecycle.get("type"))
    except ValueError:
        raise ValidationIssue(
            "lifecycle type must be buildpack or docker",
            field="lifecycle",
            error_type="invalid_value",
        ) from None
    data = lifecycle.get("data") or {}
    if not isinstance(data, dict):
        raise ValidationIssue("lifecycle data must be an object", field="lifecycle", error_type="invalid_type")
    if kind == LifecycleType.DOCKER and data:
        raise ValidationIssue("docker lifecycle does not accept data", field="lifecycle", error_type="invalid_value")
    validate_optional_text(data.get("stack"), "lifecycle.data.stack", MAX_SHORT_TEXT_LENGTH)
    validate_string_list(data.get("buildpacks"), "lifecycle.data.buildpacks", MAX_SHORT_TEXT_LENGTH)
    return kind, data


def _require_app(db, app_guid: str) -> AppModel:
    app = db.get(AppModel, app_guid)
    if app is None:
        raise ValidationIssue("App not found", field="app_guid", error_type="not_found")
    return app


def _require_visible_app(db, app_guid: str, context: Optional[RequestContext]) -> AppModel:
    """Lookup that treats apps outside the caller's scope as missing."""
    app = _require_app(db, app_guid)
    user_guid = resolve_user_guid(context)
    if user_guid and not is_admin(context):
        space_guids = visible_space_guids(load_role_grants(db, user_guid))
        if not app_is_visible(app, space_guids):
            raise ValidationIssue("App not found", field="app_guid", error_type="not_found")
    return app


def _app_payload(app: AppModel) -> dict:
    lifecycle = resolve_lifecycle(app)
    web_process = app.web_process
    current_package = app.current_package
    return {
        "guid": app.guid,
        "name": app.name,
        "state": app.desired_state,
        "enable_ssh": app.enable_ssh,
        "space_guid": app.space_guid,
        "lifecycle": lifecycle_payload(lifecycle, config.DEFAULT_STACK),
        "droplet_guid": app.droplet_guid,
        "current_package_guid": current_package.guid if current_package else None,
        "web_process_guid": web_process.guid if web_process else None,
        "staging_in_progress": app.staging_in_progress,
        "stopped": app.stopped,
        "created_at": app.created_at.isoformat() if app.created_at else None,
        "updated_at": app.updated_at.isoformat() if app.updated_at else None,
    }


def _audit(db, app: AppModel, event_type: str, context: Optional[RequestContext], metadata: Optional[dict] = None):
    context = context or get_current_request_context()
    actor_type, actor_id = resolve_actor(context)
    organization = app.organization
    return log_event(
        db,
        event_type=event_type,
        actor_type=actor_type,
        actor_id=actor_id,
        target_type="app",
        target_guid=app.guid,
        space_guid=app.space_guid,
        organization_guid=organization.guid if organization else None,
        request_id=context.request_id if context else None,
        metadata=metadata,
    )


def _save_app(
    db,
    app: AppModel,
    previous_enable_ssh: Optional[bool],
    ssh_default: bool,
    env_validator: Optional[EnvironmentValidator],
) -> list[str]:
    """Validate, persist and cascade; returns guids of re-versioned processes."""
    ensure_valid_app(db, app, env_validator=env_validator)
    if app not in db:
        db.add(app)
    flush_app_write(db)
    return cascade_process_versions(db, app, previous_enable_ssh, ssh_default)


def _apply_buildpack_data(record: BuildpackLifecycleDataModel, data: dict) -> None:
    if "stack" in data:
        record.stack = data.get("stack")
    if "buildpacks" in data:
        record.buildpacks = list(data.get("buildpacks") or [])


# =============================================================================
# Writes
# =============================================================================

@service_tool
def create_app(
    name: str,
    space_guid: str,
    environment_variables: Optional[dict] = None,
    enable_ssh: Optional[bool] = None,
    desired_state: str = DesiredState.STOPPED.value,
    lifecycle: Optional[dict] = None,
    default_app_ssh_access: Optional[bool] = None,
    env_validator: Optional[EnvironmentValidator] = None,
    context: Optional[RequestContext] = None,
) -> dict:
    """Create an application; without a buildpack lifecycle it runs as docker."""
    validate_required_text(space_guid, "space_guid", MAX_GUID_LENGTH)
    _validate_desired_state(desired_state)
    _validate_enable_ssh(enable_ssh)
    lifecycle_kind, lifecycle_data = _parse_lifecycle(lifecycle)
    ssh_default = default_ssh_access(default_app_ssh_access)

    with session_scope() as db:
        space = db.get(Space, space_guid)
        if space is None:
            raise ValidationIssue("Space not found", field="space_guid", error_type="not_found")

        app = AppModel(
            guid=str(uuid.uuid4()),
            name=name,
            space_guid=space.guid,
            desired_state=desired_state,
            enable_ssh=enable_ssh,
            environment_variables=environment_variables,
        )
        _save_app(db, app, None, ssh_default, env_validator)

        if lifecycle_kind == LifecycleType.BUILDPACK:
            record = BuildpackLifecycleDataModel(app_guid=app.guid, buildpacks=[])
            _apply_buildpack_data(record, lifecycle_data)
            db.add(record)

        _audit(
            db,
            app,
            EVENT_APP_CREATE,
            context,
            metadata={"name": app.name, "lifecycle_type": lifecycle_kind.value},
        )
        commit_app_write(db)
        db.refresh(app)
        logger.info("app_created", extra={"app_guid": app.guid, "space_guid": app.space_guid})
        return {"status": "created", **_app_payload(app)}


@service_tool
def update_app(
    app_guid: str,
    name: Any = _UNSET,
    environment_variables: Any = _UNSET,
    enable_ssh: Any = _UNSET,
    desired_state: Any = _UNSET,
    lifecycle: Any = _UNSET,
    default_app_ssh_access: Optional[bool] = None,
    env_validator: Optional[EnvironmentValidator] = None,
    context: Optional[RequestContext] = None,
) -> dict:
    """
    Partially update an application.

    Only the arguments that are passed are applied. Passing enable_ssh=None
    clears it so it is resolved again from the platform default. The
    lifecycle type cannot change; buildpack data (stack, buildpacks) can.
    """
    validate_required_text(app_guid, "app_guid", MAX_GUID_LENGTH)
    if desired_state is not _UNSET:
        _validate_desired_state(desired_state)
    if enable_ssh is not _UNSET:
        _validate_enable_ssh(enable_ssh)
    lifecycle_update = None
    if lifecycle is not _UNSET:
        lifecycle_update = _parse_lifecycle(lifecycle)
    ssh_default = default_ssh_access(default_app_ssh_access)

    with session_scope() as db:
        app = _require_app(db, app_guid)
        previous_enable_ssh = app.enable_ssh
        current_lifecycle = resolve_lifecycle(app)
        if lifecycle_update and lifecycle_update[0] != current_lifecycle.type:
            raise ValidationIssue(
                "lifecycle type cannot be changed",
                field="lifecycle",
                error_type="invalid_value",
            )

        updated_fields = []
        changes = {
            "name": name,
            "environment_variables": environment_variables,
            "enable_ssh": enable_ssh,
            "desired_state": desired_state,
        }
        with db.no_autoflush:
            for field, value in changes.items():
                if value is _UNSET:
                    continue
                setattr(app, field, value)
                updated_fields.append(field)

        process_guids = _save_app(db, app, previous_enable_ssh, ssh_default, env_validator)

        if lifecycle_update and isinstance(current_lifecycle, BuildpackLifecycle):
            _apply_buildpack_data(current_lifecycle.data, lifecycle_update[1])
            updated_fields.append("lifecycle")

        _audit(
            db,
            app,
            EVENT_APP_UPDATE,
            context,
            metadata={"updated_fields": sorted(updated_fields)},
        )
        commit_app_write(db)
        db.refresh(app)
        return {
            "status": "updated",
            "updated_fields": sorted(updated_fields),
            "process_versions_updated": len(process_guids),
            **_app_payload(app),
        }


@service_tool
def set_current_droplet(
    app_guid: str,
    droplet_guid: Optional[str],
    default_app_ssh_access: Optional[bool] = None,
    context: Optional[RequestContext] = None,
) -> dict:
    """Point the application at one of its droplets (None clears it)."""
    validate_required_text(app_guid, "app_guid", MAX_GUID_LENGTH)
    validate_optional_text(droplet_guid, "droplet_guid", MAX_GUID_LENGTH)
    ssh_default = default_ssh_access(default_app_ssh_access)

    with session_scope() as db:
        app = _require_app(db, app_guid)
        if droplet_guid is not None:
            droplet = db.get(DropletModel, droplet_guid)
            if droplet is None or droplet.app_guid != app.guid:
                raise ValidationIssue("Droplet not found", field="droplet_guid", error_type="not_found")

        previous_enable_ssh = app.enable_ssh
        app.droplet_guid = droplet_guid
        _save_app(db, app, previous_enable_ssh, ssh_default, None)
        _audit(
            db,
            app,
            EVENT_APP_DROPLET_MAPPED,
            context,
            metadata={"droplet_guid": droplet_guid},
        )
        commit_app_write(db)
        db.refresh(app)
        return {"status": "updated", **_app_payload(app)}


@service_tool
def set_buildpack_lifecycle(
    app_guid: str,
    stack: Any = _UNSET,
    buildpacks: Any = _UNSET,
    context: Optional[RequestContext] = None,
) -> dict:
    """
    Create or update the buildpack lifecycle record, making the app a buildpack app.

    Only the arguments that are passed are written; stack=None clears the
    stack so the platform default applies.
    """
    validate_required_text(app_guid, "app_guid", MAX_GUID_LENGTH)
    data = {}
    if stack is not _UNSET:
        validate_optional_text(stack, "stack", MAX_SHORT_TEXT_LENGTH)
        data["stack"] = stack
    if buildpacks is not _UNSET:
        validate_string_list(buildpacks, "buildpacks", MAX_SHORT_TEXT_LENGTH)
        data["buildpacks"] = buildpacks

    with session_scope() as db:
        app = _require_app(db, app_guid)
        record = app.buildpack_lifecycle_data
        created = record is None
        if created:
            record = BuildpackLifecycleDataModel(app_guid=app.guid, buildpacks=[])
            db.add(record)
        _apply_buildpack_data(record, data)
        _audit(
            db,
            app,
            EVENT_APP_UPDATE,
            context,
            metadata={"updated_fields": ["lifecycle"], "lifecycle_type": LifecycleType.BUILDPACK.value},
        )
        db.commit()
        db.refresh(app)
        return {"status": "created" if created else "updated", **_app_payload(app)}


@service_tool
def delete_app(
    app_guid: str,
    context: Optional[RequestContext] = None,
) -> dict:
    """
    Delete an application and everything it owns.

    Steps run in a fixed order: the buildpack lifecycle record, then child
    resources in dependency order, then the application row.
    """
    validate_required_text(app_guid, "app_guid", MAX_GUID_LENGTH)

    with session_scope() as db:
        app = _require_app(db, app_guid)
        _audit(db, app, EVENT_APP_DELETE_REQUEST, context, metadata={"name": app.name})

        deleted = {
            BuildpackLifecycleDataModel.__tablename__: (
                db.query(BuildpackLifecycleDataModel)
                .filter(BuildpackLifecycleDataModel.app_guid == app.guid)
                .delete(synchronize_session=False)
            )
        }

        if app.droplet_guid is not None:
            app.droplet_guid = None
            db.flush()

        for model in APP_DELETE_STEPS:
            deleted[model.__tablename__] = (
                db.query(model)
                .filter(model.app_guid == app.guid)
                .delete(synchronize_session=False)
            )

        db.expire(app)
        db.delete(app)
        db.commit()
        logger.info("app_deleted", extra={"app_guid": app_guid, "deleted": deleted})
        return {"status": "deleted", "guid": app_guid, "deleted": deleted}


# =============================================================================
# Reads
# =============================================================================

@service_tool
def get_app(
    app_guid: str,
    context: Optional[RequestContext] = None,
) -> dict:
    validate_required_text(app_guid, "app_guid", MAX_GUID_LENGTH)

    with session_scope() as db:
        app = _require_visible_app(db, app_guid, context)
        return {"status": "found", **_app_payload(app)}


@service_tool
def list_apps(
    space_guids: Optional[Sequence[str]] = None,
    names: Optional[Sequence[str]] = None,
    limit: int = 50,
    context: Optional[RequestContext] = None,
) -> dict:
    """List applications visible to the caller, oldest first."""
    validate_limit(limit, "limit", MAX_RESULT_LIMIT)
    validate_string_list(space_guids, "space_guids", MAX_GUID_LENGTH)
    validate_string_list(names, "names", MAX_SHORT_TEXT_LENGTH)

    with session_scope() as db:
        query = db.query(AppModel)
        user_guid = resolve_user_guid(context)
        if user_guid and not is_admin(context):
            query = query.filter(visible_applications(user_guid))
        if space_guids:
            query = query.filter(AppModel.space_guid.in_(list(space_guids)))
        if names:
            query = query.filter(AppModel.name.in_(list(names)))
        apps = query.order_by(AppModel.created_at, AppModel.guid).limit(limit).all()
        return {
            "status": "ok",
            "count": len(apps),
            "apps": [_app_payload(app) for app in apps],
        }


@service_tool
def app_database_uri(
    app_guid: str,
    generator: Optional[UriGenerator] = None,
    context: Optional[RequestContext] = None,
) -> dict:
    validate_required_text(app_guid, "app_guid", MAX_GUID_LENGTH)

    with session_scope() as db:
        app = _require_visible_app(db, app_guid, context)
        return {
            "status": "ok",
            "guid": app.guid,
            "database_uri": database_uri(app, generator=generator),
        }


@service_tool
def list_app_events(
    app_guid: str,
    limit: int = 50,
    cursor: Optional[str] = None,
    context: Optional[RequestContext] = None,
) -> dict:
    """Audit events for one application, newest first, paged by event id cursor."""
    validate_required_text(app_guid, "app_guid", MAX_GUID_LENGTH)
    validate_limit(limit, "limit", MAX_RESULT_LIMIT)
    validate_optional_text(cursor, "cursor", MAX_GUID_LENGTH)

    with session_scope() as db:
        app = _require_visible_app(db, app_guid, context)
        return list_audit_events(db, target_guid=app.guid, limit=limit, cursor=cursor)


__all__ = [
    "create_app",
    "update_app",
    "set_current_droplet",
    "set_buildpack_lifecycle",
    "delete_app",
    "get_app",
    "list_apps",
    "app_database_uri",
    "list_app_events",
]
