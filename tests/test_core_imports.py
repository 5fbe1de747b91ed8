def test_core_imports():
    import core.cascade  # noqa: F401
    import core.context  # noqa: F401
    import core.models  # noqa: F401
    import core.services.apps  # noqa: F401
    import core.visibility  # noqa: F401


def test_core_smoke_lifecycle(server_db, factory):
    import core.services.apps as apps

    space = factory.space()

    created = apps.create_app(
        name="core-smoke",
        space_guid=space.guid,
        lifecycle={"type": "buildpack", "data": {"buildpacks": ["python_buildpack"]}},
    )
    assert created["status"] == "created"

    listed = apps.list_apps(space_guids=[space.guid])
    assert listed["count"] == 1

    updated = apps.update_app(created["guid"], desired_state="STARTED")
    assert updated["state"] == "STARTED"

    deleted = apps.delete_app(created["guid"])
    assert deleted["deleted"]["buildpack_lifecycle_data"] == 1

    listed_after = apps.list_apps(space_guids=[space.guid])
    assert listed_after["count"] == 0
