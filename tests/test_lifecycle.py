from core.lifecycle import (
    BuildpackLifecycle,
    DockerLifecycle,
    DockerLifecycleData,
    LifecycleType,
    is_buildpack,
    is_docker,
    lifecycle_data,
    lifecycle_payload,
    lifecycle_stack,
    lifecycle_type,
    resolve_lifecycle,
)
from core.models import AppModel, BuildpackLifecycleDataModel


def test_app_without_buildpack_record_is_docker():
    app = AppModel(name="image-app", space_guid="space-1")

    lifecycle = resolve_lifecycle(app)

    assert isinstance(lifecycle, DockerLifecycle)
    assert lifecycle_type(app) == LifecycleType.DOCKER
    assert isinstance(lifecycle_data(app), DockerLifecycleData)
    assert is_docker(app)
    assert not is_buildpack(app)


def test_docker_lifecycle_data_is_stateless():
    first = lifecycle_data(AppModel(name="a", space_guid="s"))
    second = lifecycle_data(AppModel(name="b", space_guid="s"))

    assert first == second
    assert first.to_dict() == {}


def test_app_with_buildpack_record_is_buildpack():
    record = BuildpackLifecycleDataModel(stack="cflinuxfs3", buildpacks=["ruby_buildpack"])
    app = AppModel(name="ruby-app", space_guid="space-1", buildpack_lifecycle_data=record)

    lifecycle = resolve_lifecycle(app)

    assert isinstance(lifecycle, BuildpackLifecycle)
    assert lifecycle.data is record
    assert lifecycle_data(app) is record
    assert is_buildpack(app)
    assert not is_docker(app)


def test_stack_falls_back_to_platform_default():
    app = AppModel(
        name="ruby-app",
        space_guid="space-1",
        buildpack_lifecycle_data=BuildpackLifecycleDataModel(stack=None, buildpacks=[]),
    )

    assert lifecycle_stack(resolve_lifecycle(app), "cflinuxfs4") == "cflinuxfs4"
    assert lifecycle_stack(DockerLifecycle(), "cflinuxfs4") is None


def test_lifecycle_payload_shapes():
    buildpack_app = AppModel(
        name="ruby-app",
        space_guid="space-1",
        buildpack_lifecycle_data=BuildpackLifecycleDataModel(stack="cflinuxfs3", buildpacks=["ruby"]),
    )

    assert lifecycle_payload(resolve_lifecycle(buildpack_app), "cflinuxfs4") == {
        "type": "buildpack",
        "data": {"stack": "cflinuxfs3", "buildpacks": ["ruby"]},
    }
    assert lifecycle_payload(DockerLifecycle(), "cflinuxfs4") == {"type": "docker", "data": {}}


def test_removing_buildpack_record_switches_back_to_docker():
    app = AppModel(
        name="ruby-app",
        space_guid="space-1",
        buildpack_lifecycle_data=BuildpackLifecycleDataModel(buildpacks=[]),
    )
    assert is_buildpack(app)

    app.buildpack_lifecycle_data = None

    assert is_docker(app)
