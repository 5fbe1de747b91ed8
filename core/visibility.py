"""
Visibility scope for application reads.

A principal sees every application in a space it can reach through any of
four independent grants: developer, manager or auditor of the space, or
manager of the space's organization. The grants are combined by union with
no precedence between them.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import AbstractSet, Optional

from sqlalchemy import false, select, union

from core.models import (
    AppModel,
    Space,
    organizations_managers,
    spaces_auditors,
    spaces_developers,
    spaces_managers,
)


@dataclass(frozen=True)
class RoleGrants:
    """Space guids reachable through each grant path for one principal."""

    developer: frozenset = frozenset()
    manager: frozenset = frozenset()
    auditor: frozenset = frozenset()
    organization_manager: frozenset = frozenset()


def visible_space_guids(grants: RoleGrants) -> frozenset:
    return grants.developer | grants.manager | grants.auditor | grants.organization_manager


def app_is_visible(app: AppModel, space_guids: AbstractSet[str]) -> bool:
    return app.space_guid in space_guids


# =============================================================================
# Relational grant queries
# =============================================================================

def _space_role_select(table, user_guid: str):
    return select(table.c.space_guid).where(table.c.user_guid == user_guid)


def _organization_manager_select(user_guid: str):
    return (
        select(Space.guid.label("space_guid"))
        .join(
            organizations_managers,
            organizations_managers.c.organization_guid == Space.organization_guid,
        )
        .where(organizations_managers.c.user_guid == user_guid)
    )


def visible_space_guids_select(user_guid: str):
    """UNION of the four grant paths, as a selectable of space guids."""
    return union(
        _space_role_select(spaces_developers, user_guid),
        _space_role_select(spaces_managers, user_guid),
        _space_role_select(spaces_auditors, user_guid),
        _organization_manager_select(user_guid),
    )


def visible_applications(user_guid: Optional[str]):
    """
    Criterion restricting an AppModel query to what user_guid may see.

    The space set stays a subquery so applications are never loaded to
    compute it.
    """
    if not user_guid:
        return false()
    space_guids = visible_space_guids_select(user_guid).subquery()
    return AppModel.space_guid.in_(select(space_guids.c.space_guid))


def load_role_grants(db, user_guid: str) -> RoleGrants:
    def _guids(stmt) -> frozenset:
        return frozenset(row[0] for row in db.execute(stmt))

    return RoleGrants(
        developer=_guids(_space_role_select(spaces_developers, user_guid)),
        manager=_guids(_space_role_select(spaces_managers, user_guid)),
        auditor=_guids(_space_role_select(spaces_auditors, user_guid)),
        organization_manager=_guids(_organization_manager_select(user_guid)),
    )


__all__ = [
    "RoleGrants",
    "visible_space_guids",
    "app_is_visible",
    "visible_space_guids_select",
    "visible_applications",
    "load_role_grants",
]
