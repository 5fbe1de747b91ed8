"""
AppControl Database Models
PostgreSQL / SQLite schema for applications and their tenancy hierarchy
"""

from datetime import datetime
from enum import Enum as PyEnum
import uuid
from sqlalchemy import (
    Column, Integer, String, Text, Boolean,
    DateTime, ForeignKey, Index, UniqueConstraint, Table, JSON, event
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship, declarative_base

import core.config as config
from core.encryption import EncryptedJSON

DB_BACKEND_EFFECTIVE = config.DB_BACKEND_EFFECTIVE

JSON_TYPE = JSONB if DB_BACKEND_EFFECTIVE == "postgres" else JSON
GUID_TYPE = String(36)


def _guid_default() -> str:
    return str(uuid.uuid4())


Base = declarative_base()

# =============================================================================
# Enums
# =============================================================================

class DesiredState(str, PyEnum):
    STARTED = "STARTED"
    STOPPED = "STOPPED"


class DropletState(str, PyEnum):
    AWAITING_UPLOAD = "AWAITING_UPLOAD"
    PROCESSING_UPLOAD = "PROCESSING_UPLOAD"
    STAGED = "STAGED"
    COPYING = "COPYING"
    FAILED = "FAILED"
    EXPIRED = "EXPIRED"


class BuildState(str, PyEnum):
    STAGING = "STAGING"
    STAGED = "STAGED"
    FAILED = "FAILED"


class PackageState(str, PyEnum):
    AWAITING_UPLOAD = "AWAITING_UPLOAD"
    PROCESSING_UPLOAD = "PROCESSING_UPLOAD"
    READY = "READY"
    FAILED = "FAILED"
    COPYING = "COPYING"
    EXPIRED = "EXPIRED"


PROCESS_TYPE_WEB = "web"


# =============================================================================
# Principals and tenancy
# =============================================================================

spaces_developers = Table(
    "spaces_developers",
    Base.metadata,
    Column("space_guid", GUID_TYPE, ForeignKey("spaces.guid", ondelete="CASCADE"), primary_key=True),
    Column("user_guid", GUID_TYPE, ForeignKey("users.guid", ondelete="CASCADE"), primary_key=True),
    Index("ix_spaces_developers_user_guid", "user_guid"),
)

spaces_managers = Table(
    "spaces_managers",
    Base.metadata,
    Column("space_guid", GUID_TYPE, ForeignKey("spaces.guid", ondelete="CASCADE"), primary_key=True),
    Column("user_guid", GUID_TYPE, ForeignKey("users.guid", ondelete="CASCADE"), primary_key=True),
    Index("ix_spaces_managers_user_guid", "user_guid"),
)

spaces_auditors = Table(
    "spaces_auditors",
    Base.metadata,
    Column("space_guid", GUID_TYPE, ForeignKey("spaces.guid", ondelete="CASCADE"), primary_key=True),
    Column("user_guid", GUID_TYPE, ForeignKey("users.guid", ondelete="CASCADE"), primary_key=True),
    Index("ix_spaces_auditors_user_guid", "user_guid"),
)

organizations_managers = Table(
    "organizations_managers",
    Base.metadata,
    Column(
        "organization_guid",
        GUID_TYPE,
        ForeignKey("organizations.guid", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column("user_guid", GUID_TYPE, ForeignKey("users.guid", ondelete="CASCADE"), primary_key=True),
    Index("ix_organizations_managers_user_guid", "user_guid"),
)


class User(Base):
    __tablename__ = "users"

    guid = Column(GUID_TYPE, primary_key=True, default=_guid_default)
    username = Column(String(255))
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow)


class Organization(Base):
    __tablename__ = "organizations"

    guid = Column(GUID_TYPE, primary_key=True, default=_guid_default)
    name = Column(String(255), nullable=False, unique=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow)

    spaces = relationship("Space", back_populates="organization")
    managers = relationship("User", secondary=organizations_managers)


class Space(Base):
    __tablename__ = "spaces"

    guid = Column(GUID_TYPE, primary_key=True, default=_guid_default)
    name = Column(String(255), nullable=False)
    organization_guid = Column(GUID_TYPE, ForeignKey("organizations.guid"), nullable=False)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow)

    organization = relationship("Organization", back_populates="spaces")
    developers = relationship("User", secondary=spaces_developers)
    managers = relationship("User", secondary=spaces_managers)
    auditors = relationship("User", secondary=spaces_auditors)
    apps = relationship("AppModel", back_populates="space")

    __table_args__ = (
        UniqueConstraint("organization_guid", "name", name="uq_spaces_organization_guid_name"),
    )


# =============================================================================
# Applications
# =============================================================================

class AppModel(Base):
    __tablename__ = "apps"

    guid = Column(GUID_TYPE, primary_key=True, default=_guid_default)
    name = Column(String(255), nullable=False)
    space_guid = Column(GUID_TYPE, ForeignKey("spaces.guid"), nullable=False)
    desired_state = Column(String(50), nullable=False, default=DesiredState.STOPPED.value)
    enable_ssh = Column(Boolean, nullable=True)
    environment_variables = Column("encrypted_environment_variables", EncryptedJSON)
    droplet_guid = Column(GUID_TYPE, ForeignKey("droplets.guid", use_alter=True, name="fk_apps_droplet_guid"))
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    space = relationship("Space", back_populates="apps")
    droplet = relationship("DropletModel", foreign_keys=[droplet_guid], post_update=True)
    buildpack_lifecycle_data = relationship(
        "BuildpackLifecycleDataModel",
        back_populates="app",
        uselist=False,
    )
    processes = relationship("ProcessModel", back_populates="app", order_by="ProcessModel.created_at")
    droplets = relationship("DropletModel", back_populates="app", foreign_keys="DropletModel.app_guid")
    packages = relationship("PackageModel", back_populates="app")
    builds = relationship("BuildModel", back_populates="app")
    deployments = relationship("DeploymentModel", back_populates="app")
    tasks = relationship("TaskModel", back_populates="app")
    service_bindings = relationship(
        "ServiceBinding",
        back_populates="app",
        order_by="ServiceBinding.created_at",
    )
    route_mappings = relationship("RouteMapping", back_populates="app")
    routes = relationship("Route", secondary="route_mappings", viewonly=True)

    __table_args__ = (
        UniqueConstraint("space_guid", "name", name="uq_apps_space_guid_name"),
        Index("ix_apps_space_guid", "space_guid"),
    )

    @property
    def organization(self):
        return self.space.organization if self.space else None

    @property
    def web_process(self):
        return next((p for p in self.processes if p.type == PROCESS_TYPE_WEB), None)

    @property
    def current_package(self):
        return self.droplet.package if self.droplet else None

    @property
    def staging_in_progress(self) -> bool:
        return any(build.staging for build in self.builds)

    @property
    def stopped(self) -> bool:
        return self.desired_state == DesiredState.STOPPED.value


class BuildpackLifecycleDataModel(Base):
    __tablename__ = "buildpack_lifecycle_data"

    guid = Column(GUID_TYPE, primary_key=True, default=_guid_default)
    app_guid = Column(GUID_TYPE, ForeignKey("apps.guid"), nullable=False, unique=True)
    stack = Column(String(255))
    buildpacks = Column(JSON_TYPE, default=list)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow)

    app = relationship("AppModel", back_populates="buildpack_lifecycle_data")


# =============================================================================
# Runtime resources owned by an application
# =============================================================================

class ProcessModel(Base):
    __tablename__ = "processes"

    guid = Column(GUID_TYPE, primary_key=True, default=_guid_default)
    app_guid = Column(GUID_TYPE, ForeignKey("apps.guid"), nullable=False)
    type = Column(String(255), nullable=False, default=PROCESS_TYPE_WEB)
    version = Column(GUID_TYPE, nullable=False, default=_guid_default)
    desired_state = Column(String(50), nullable=False, default=DesiredState.STOPPED.value)
    instances = Column(Integer, nullable=False, default=1)
    command = Column(Text)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow)

    app = relationship("AppModel", back_populates="processes")

    __table_args__ = (
        UniqueConstraint("app_guid", "type", name="uq_processes_app_guid_type"),
    )

    def set_new_version(self) -> str:
        previous = self.version
        new_version = _guid_default()
        while new_version == previous:
            new_version = _guid_default()
        self.version = new_version
        return new_version


class PackageModel(Base):
    __tablename__ = "packages"

    guid = Column(GUID_TYPE, primary_key=True, default=_guid_default)
    app_guid = Column(GUID_TYPE, ForeignKey("apps.guid"), nullable=False)
    type = Column(String(50), nullable=False, default="bits")
    state = Column(String(50), nullable=False, default=PackageState.AWAITING_UPLOAD.value)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow)

    app = relationship("AppModel", back_populates="packages")


class DropletModel(Base):
    __tablename__ = "droplets"

    guid = Column(GUID_TYPE, primary_key=True, default=_guid_default)
    app_guid = Column(GUID_TYPE, ForeignKey("apps.guid"), nullable=False)
    package_guid = Column(GUID_TYPE, ForeignKey("packages.guid"))
    state = Column(String(50), nullable=False, default=DropletState.AWAITING_UPLOAD.value)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow)

    app = relationship("AppModel", back_populates="droplets", foreign_keys=[app_guid])
    package = relationship("PackageModel")

    @property
    def staged(self) -> bool:
        return self.state == DropletState.STAGED.value


class BuildModel(Base):
    __tablename__ = "builds"

    guid = Column(GUID_TYPE, primary_key=True, default=_guid_default)
    app_guid = Column(GUID_TYPE, ForeignKey("apps.guid"), nullable=False)
    package_guid = Column(GUID_TYPE, ForeignKey("packages.guid"))
    state = Column(String(50), nullable=False, default=BuildState.STAGING.value)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow)

    app = relationship("AppModel", back_populates="builds")

    @property
    def staging(self) -> bool:
        return self.state == BuildState.STAGING.value


class DeploymentModel(Base):
    __tablename__ = "deployments"

    guid = Column(GUID_TYPE, primary_key=True, default=_guid_default)
    app_guid = Column(GUID_TYPE, ForeignKey("apps.guid"), nullable=False)
    droplet_guid = Column(GUID_TYPE, ForeignKey("droplets.guid"))
    state = Column(String(50), nullable=False, default="DEPLOYING")
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow)

    app = relationship("AppModel", back_populates="deployments")


class TaskModel(Base):
    __tablename__ = "tasks"

    guid = Column(GUID_TYPE, primary_key=True, default=_guid_default)
    app_guid = Column(GUID_TYPE, ForeignKey("apps.guid"), nullable=False)
    name = Column(String(255), nullable=False)
    command = Column(Text)
    state = Column(String(50), nullable=False, default="PENDING")
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow)

    app = relationship("AppModel", back_populates="tasks")


class ServiceBinding(Base):
    __tablename__ = "service_bindings"

    guid = Column(GUID_TYPE, primary_key=True, default=_guid_default)
    app_guid = Column(GUID_TYPE, ForeignKey("apps.guid"), nullable=False)
    name = Column(String(255))
    credentials = Column("encrypted_credentials", EncryptedJSON)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow)

    app = relationship("AppModel", back_populates="service_bindings")


# =============================================================================
# Routing
# =============================================================================

class Route(Base):
    __tablename__ = "routes"

    guid = Column(GUID_TYPE, primary_key=True, default=_guid_default)
    space_guid = Column(GUID_TYPE, ForeignKey("spaces.guid"), nullable=False)
    host = Column(String(255), nullable=False, default="")
    path = Column(String(255), nullable=False, default="")
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow)


class RouteMapping(Base):
    __tablename__ = "route_mappings"

    guid = Column(GUID_TYPE, primary_key=True, default=_guid_default)
    app_guid = Column(GUID_TYPE, ForeignKey("apps.guid"), nullable=False)
    route_guid = Column(GUID_TYPE, ForeignKey("routes.guid"), nullable=False)
    process_type = Column(String(255), nullable=False, default=PROCESS_TYPE_WEB)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow)

    app = relationship("AppModel", back_populates="route_mappings")
    route = relationship("Route")

    __table_args__ = (
        UniqueConstraint("app_guid", "route_guid", "process_type", name="uq_route_mappings_app_route_type"),
    )


# =============================================================================
# Audit Events
# =============================================================================

class AuditEvent(Base):
    __tablename__ = "audit_events"

    event_id = Column(GUID_TYPE, primary_key=True, default=_guid_default)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    event_type = Column(String(100), nullable=False)
    event_version = Column(Integer, default=1, nullable=False)
    actor_type = Column(String(50), nullable=False)
    actor_id = Column(String(255))
    target_type = Column(String(50), nullable=False)
    target_guid = Column(GUID_TYPE, nullable=False)
    space_guid = Column(GUID_TYPE)
    organization_guid = Column(GUID_TYPE)
    request_id = Column(String(255))
    metadata_ = Column("metadata", JSON_TYPE)

    __table_args__ = (
        Index("ix_audit_events_created_at", "created_at"),
        Index("ix_audit_events_event_type", "event_type"),
        Index("ix_audit_events_target_guid", "target_guid"),
        Index("ix_audit_events_space_guid", "space_guid"),
    )


def _strip(value):
    return value.strip() if isinstance(value, str) else value


@event.listens_for(AppModel.name, "set", retval=True)
def _strip_app_name(target, value, oldvalue, initiator):
    return _strip(value)


__all__ = [
    "Base",
    "DesiredState",
    "DropletState",
    "BuildState",
    "PackageState",
    "PROCESS_TYPE_WEB",
    "spaces_developers",
    "spaces_managers",
    "spaces_auditors",
    "organizations_managers",
    "User",
    "Organization",
    "Space",
    "AppModel",
    "BuildpackLifecycleDataModel",
    "ProcessModel",
    "PackageModel",
    "DropletModel",
    "BuildModel",
    "DeploymentModel",
    "TaskModel",
    "ServiceBinding",
    "Route",
    "RouteMapping",
    "AuditEvent",
]
