import pytest
from fastapi.testclient import TestClient

import core.config as config
from core.db import DB, init_db
from app.main import build_app


@pytest.fixture
def client(server_db):
    return TestClient(build_app(use_lifespan=False))


@pytest.fixture
def migrated_db(tmp_path, monkeypatch):
    monkeypatch.setattr(config, "DB_BACKEND", "sqlite")
    monkeypatch.setattr(config, "DATABASE_URL", f"sqlite:///{tmp_path / 'migrated.sqlite'}")
    previous_engine = DB.engine
    previous_session = DB.SessionLocal
    init_db()
    try:
        yield DB.engine
    finally:
        DB.engine.dispose()
        DB.engine = previous_engine
        DB.SessionLocal = previous_session


def test_root_lists_endpoints(client):
    response = client.get("/")

    assert response.status_code == 200
    assert response.json()["endpoints"]["apps"] == "/v3/apps"


def test_requests_without_identity_are_rejected(client):
    assert client.get("/v3/apps").status_code == 401


def test_request_id_is_echoed(client, factory):
    user = factory.user()

    response = client.get("/v3/apps", headers={"X-User-Guid": user.guid, "X-Request-Id": "req-abc"})

    assert response.headers["X-Request-Id"] == "req-abc"


def test_list_only_returns_visible_apps(client, factory):
    user = factory.user()
    space = factory.space()
    visible = factory.app(space, name="visible")
    factory.app(name="hidden")
    factory.grant_space_role("manager", space, user)

    response = client.get("/v3/apps", headers={"X-User-Guid": user.guid})

    body = response.json()
    assert response.status_code == 200
    assert body["pagination"]["total_results"] == 1
    assert [resource["guid"] for resource in body["resources"]] == [visible.guid]


def test_list_filters_by_comma_separated_names(client, factory):
    user = factory.user()
    org = factory.organization()
    space = factory.space(org)
    for name in ("api", "worker", "web"):
        factory.app(space, name=name)
    factory.grant_org_manager(org, user)

    response = client.get("/v3/apps?names=api,web", headers={"X-User-Guid": user.guid})

    assert sorted(r["name"] for r in response.json()["resources"]) == ["api", "web"]


def test_list_rejects_out_of_range_page_size(client, factory):
    response = client.get("/v3/apps?per_page=0", headers={"X-User-Guid": factory.user().guid})

    assert response.status_code == 422


def test_show_app(client, factory):
    user = factory.user()
    space = factory.space()
    app = factory.app(space, name="shown")
    factory.grant_space_role("developer", space, user)

    response = client.get(f"/v3/apps/{app.guid}", headers={"X-User-Guid": user.guid})

    body = response.json()
    assert response.status_code == 200
    assert body["name"] == "shown"
    assert body["lifecycle"] == {"type": "docker", "data": {}}
    assert "status" not in body


def test_show_invisible_app_is_not_found(client, factory):
    user = factory.user()
    app = factory.app()

    response = client.get(f"/v3/apps/{app.guid}", headers={"X-User-Guid": user.guid})

    assert response.status_code == 404


def test_health_reports_migrated_schema(migrated_db):
    client = TestClient(build_app(use_lifespan=False))

    response = client.get("/health")

    body = response.json()
    assert response.status_code == 200
    assert body["database"]["schema_revision"] == "0001_initial_schema"
    assert body["database"]["schema_up_to_date"] is True


def test_health_fails_on_unmigrated_schema(client):
    response = client.get("/health")

    assert response.status_code == 503


def test_app_events_are_listed_for_visible_apps(client, factory):
    from core.services import apps as app_service

    user = factory.user()
    space = factory.space()
    created = app_service.create_app(name="tracked", space_guid=space.guid)
    factory.grant_space_role("developer", space, user)

    response = client.get(f"/v3/apps/{created['guid']}/events", headers={"X-User-Guid": user.guid})

    body = response.json()
    assert response.status_code == 200
    assert body["pagination"]["total_results"] == 1
    assert body["resources"][0]["event_type"] == "audit.app.create"
