"""
Process version cascade for SSH access changes.

When an application's enable_ssh setting changes, every one of its processes
must move to a new version so none keeps running with the old setting.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

import core.config as config
from core.errors import CascadeFailure
from core.models import AppModel

logger = config.logger


def resolve_enable_ssh(app: AppModel, default_ssh_access: bool) -> bool:
    if app.enable_ssh is None:
        app.enable_ssh = bool(default_ssh_access)
    return app.enable_ssh


def cascade_process_versions(
    db,
    app: AppModel,
    previous_enable_ssh: Optional[bool],
    default_ssh_access: bool,
) -> list[str]:
    """
    Resolve enable_ssh and bump process versions if it changed.

    Must run inside the same transaction as the application write. Returns
    the guids of processes that received a new version.
    """
    resolved = resolve_enable_ssh(app, default_ssh_access)
    if resolved == previous_enable_ssh:
        return []

    updated: list[str] = []
    for process in list(app.processes):
        process.set_new_version()
        try:
            db.flush()
        except SQLAlchemyError as exc:
            logger.warning(
                "process_version_cascade_failed",
                extra={"app_guid": app.guid, "process_guid": process.guid, "updated": len(updated)},
            )
            raise CascadeFailure(app.guid, process.guid, str(exc)) from exc
        updated.append(process.guid)

    if updated:
        logger.info(
            "process_version_cascade",
            extra={"app_guid": app.guid, "enable_ssh": resolved, "process_count": len(updated)},
        )
    return updated


__all__ = ["resolve_enable_ssh", "cascade_process_versions"]
