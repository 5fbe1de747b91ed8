from core.models import AppModel
from core.visibility import (
    RoleGrants,
    app_is_visible,
    load_role_grants,
    visible_applications,
    visible_space_guids,
)


def _visible_app_guids(db, user_guid):
    rows = db.query(AppModel.guid).filter(visible_applications(user_guid)).all()
    return {row[0] for row in rows}


def test_grants_are_combined_by_union():
    grants = RoleGrants(
        developer=frozenset({"s1"}),
        manager=frozenset({"s2"}),
        auditor=frozenset({"s1", "s3"}),
        organization_manager=frozenset({"s4"}),
    )

    assert visible_space_guids(grants) == {"s1", "s2", "s3", "s4"}


def test_no_grants_sees_nothing():
    assert visible_space_guids(RoleGrants()) == frozenset()
    assert not app_is_visible(AppModel(name="a", space_guid="s1"), frozenset())


def test_each_grant_path_alone_reveals_its_space(db_session, factory):
    user = factory.user()
    org = factory.organization()
    dev_space = factory.space(org)
    manager_space = factory.space(org)
    auditor_space = factory.space(org)
    managed_org = factory.organization()
    managed_space = factory.space(managed_org)
    hidden_space = factory.space(org)

    dev_app = factory.app(dev_space)
    manager_app = factory.app(manager_space)
    auditor_app = factory.app(auditor_space)
    org_app = factory.app(managed_space)
    factory.app(hidden_space)

    factory.grant_space_role("developer", dev_space, user)
    factory.grant_space_role("manager", manager_space, user)
    factory.grant_space_role("auditor", auditor_space, user)
    factory.grant_org_manager(managed_org, user)

    assert _visible_app_guids(db_session, user.guid) == {
        dev_app.guid,
        manager_app.guid,
        auditor_app.guid,
        org_app.guid,
    }


def test_overlapping_grants_do_not_duplicate_apps(db_session, factory):
    user = factory.user()
    org = factory.organization()
    space = factory.space(org)
    app = factory.app(space)
    factory.grant_space_role("developer", space, user)
    factory.grant_space_role("auditor", space, user)
    factory.grant_org_manager(org, user)

    rows = db_session.query(AppModel).filter(visible_applications(user.guid)).all()

    assert [row.guid for row in rows] == [app.guid]


def test_org_manager_sees_every_space_in_the_org(db_session, factory):
    user = factory.user()
    org = factory.organization()
    apps = [factory.app(factory.space(org)) for _ in range(3)]
    factory.app(factory.space())
    factory.grant_org_manager(org, user)

    assert _visible_app_guids(db_session, user.guid) == {app.guid for app in apps}


def test_grants_of_other_users_do_not_leak(db_session, factory):
    user = factory.user()
    other = factory.user()
    space = factory.space()
    factory.app(space)
    factory.grant_space_role("developer", space, other)

    assert _visible_app_guids(db_session, user.guid) == set()


def test_missing_user_sees_nothing(db_session, factory):
    factory.app()

    assert _visible_app_guids(db_session, None) == set()


def test_load_role_grants_matches_relational_filter(db_session, factory):
    user = factory.user()
    org = factory.organization()
    dev_space = factory.space(org)
    other_org = factory.organization()
    org_space = factory.space(other_org)
    factory.grant_space_role("developer", dev_space, user)
    factory.grant_org_manager(other_org, user)

    grants = load_role_grants(db_session, user.guid)

    assert grants.developer == {dev_space.guid}
    assert grants.manager == frozenset()
    assert grants.auditor == frozenset()
    assert grants.organization_manager == {org_space.guid}
    assert visible_space_guids(grants) == {dev_space.guid, org_space.guid}
