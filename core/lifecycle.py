"""
Lifecycle resolution for applications.

An application runs either from a buildpack-staged droplet or from a
prebuilt docker image. Which one applies is decided solely by whether the
application has a buildpack lifecycle record; docker lifecycle data is a
stateless value that is never persisted.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Union

from core.models import AppModel, BuildpackLifecycleDataModel


class LifecycleType(str, Enum):
    BUILDPACK = "buildpack"
    DOCKER = "docker"


@dataclass(frozen=True)
class DockerLifecycleData:
    """Null-object lifecycle data for docker applications."""

    lifecycle_type: LifecycleType = field(default=LifecycleType.DOCKER, init=False)

    def to_dict(self) -> dict:
        return {}


@dataclass(frozen=True)
class BuildpackLifecycle:
    data: BuildpackLifecycleDataModel
    type: LifecycleType = field(default=LifecycleType.BUILDPACK, init=False)


@dataclass(frozen=True)
class DockerLifecycle:
    data: DockerLifecycleData = field(default_factory=DockerLifecycleData)
    type: LifecycleType = field(default=LifecycleType.DOCKER, init=False)


Lifecycle = Union[BuildpackLifecycle, DockerLifecycle]


def resolve_lifecycle(app: AppModel) -> Lifecycle:
    record = app.buildpack_lifecycle_data
    if record is not None:
        return BuildpackLifecycle(data=record)
    return DockerLifecycle()


def lifecycle_type(app: AppModel) -> LifecycleType:
    return resolve_lifecycle(app).type


def lifecycle_data(app: AppModel) -> Union[BuildpackLifecycleDataModel, DockerLifecycleData]:
    return resolve_lifecycle(app).data


def is_docker(app: AppModel) -> bool:
    return lifecycle_type(app) == LifecycleType.DOCKER


def is_buildpack(app: AppModel) -> bool:
    return lifecycle_type(app) == LifecycleType.BUILDPACK


def lifecycle_stack(lifecycle: Lifecycle, default_stack: str) -> Optional[str]:
    """Stack for a buildpack app, falling back to the platform default; docker apps have none."""
    if isinstance(lifecycle, BuildpackLifecycle):
        return lifecycle.data.stack or default_stack
    return None


def lifecycle_payload(lifecycle: Lifecycle, default_stack: str) -> dict:
    if isinstance(lifecycle, BuildpackLifecycle):
        return {
            "type": lifecycle.type.value,
            "data": {
                "stack": lifecycle_stack(lifecycle, default_stack),
                "buildpacks": list(lifecycle.data.buildpacks or []),
            },
        }
    return {"type": lifecycle.type.value, "data": lifecycle.data.to_dict()}


__all__ = [
    "LifecycleType",
    "DockerLifecycleData",
    "BuildpackLifecycle",
    "DockerLifecycle",
    "Lifecycle",
    "resolve_lifecycle",
    "lifecycle_type",
    "lifecycle_data",
    "is_docker",
    "is_buildpack",
    "lifecycle_stack",
    "lifecycle_payload",
]
