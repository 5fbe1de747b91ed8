import pytest

from core.audit import list_audit_events, log_event
from core.audit_constants import EVENT_APP_CREATE, EVENT_APP_UPDATE
from core.models import AuditEvent


def test_audit_rejects_environment_variable_metadata(db_session):
    before = db_session.query(AuditEvent).count()
    with pytest.raises(ValueError):
        log_event(
            db_session,
            event_type=EVENT_APP_UPDATE,
            actor_type="system",
            target_type="app",
            target_guid="app-1",
            metadata={"environment_variables": {"DB_PASSWORD": "hunter2"}},
        )
    db_session.rollback()
    after = db_session.query(AuditEvent).count()
    assert after == before


def test_audit_rejects_nested_credentials(db_session):
    with pytest.raises(ValueError):
        log_event(
            db_session,
            event_type=EVENT_APP_UPDATE,
            actor_type="system",
            target_type="app",
            target_guid="app-1",
            metadata={"binding": {"Service-Credentials": {"uri": "postgres://u:p@db/app"}}},
        )
    db_session.rollback()
    assert db_session.query(AuditEvent).count() == 0


def test_audit_rejects_long_strings(db_session):
    before = db_session.query(AuditEvent).count()
    with pytest.raises(ValueError):
        log_event(
            db_session,
            event_type=EVENT_APP_CREATE,
            actor_type="system",
            target_type="app",
            target_guid="app-1",
            metadata={"note": "x" * 600},
        )
    db_session.rollback()
    after = db_session.query(AuditEvent).count()
    assert after == before


def test_audit_rejects_unknown_actor(db_session):
    with pytest.raises(ValueError):
        log_event(
            db_session,
            event_type=EVENT_APP_CREATE,
            actor_type="robot",
            target_type="app",
            target_guid="app-1",
        )


def test_list_audit_events_pages_newest_first(db_session):
    for index in range(3):
        log_event(
            db_session,
            event_type=EVENT_APP_UPDATE,
            actor_type="user",
            actor_id="user-1",
            target_type="app",
            target_guid="app-1",
            metadata={"updated_fields": [f"field_{index}"]},
        )
        db_session.commit()
    log_event(
        db_session,
        event_type=EVENT_APP_CREATE,
        actor_type="system",
        target_type="app",
        target_guid="app-2",
    )
    db_session.commit()

    first_page = list_audit_events(db_session, target_guid="app-1", limit=2)
    second_page = list_audit_events(
        db_session,
        target_guid="app-1",
        limit=2,
        cursor=first_page["next_cursor"],
    )

    assert first_page["count"] == 2
    assert second_page["count"] == 1
    seen = {event["event_id"] for event in first_page["events"] + second_page["events"]}
    assert len(seen) == 3
    assert all(event["target_guid"] == "app-1" for event in first_page["events"])
