"""Initial application schema.

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


revision = "0001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


GUID = sa.String(length=36)


def _timestamps() -> list:
    return [sa.Column("created_at", sa.DateTime(timezone=True))]


def _role_table(name: str, owner_table: str, owner_column: str) -> None:
    op.create_table(
        name,
        sa.Column(
            owner_column,
            GUID,
            sa.ForeignKey(f"{owner_table}.guid", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column("user_guid", GUID, sa.ForeignKey("users.guid", ondelete="CASCADE"), primary_key=True),
    )
    op.create_index(f"ix_{name}_user_guid", name, ["user_guid"])


def upgrade() -> None:
    bind = op.get_bind()
    is_postgres = bind.dialect.name == "postgresql"
    is_sqlite = bind.dialect.name == "sqlite"
    json_type = postgresql.JSONB if is_postgres else sa.JSON

    op.create_table(
        "users",
        sa.Column("guid", GUID, primary_key=True),
        sa.Column("username", sa.String(length=255)),
        *_timestamps(),
    )
    op.create_table(
        "organizations",
        sa.Column("guid", GUID, primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False, unique=True),
        *_timestamps(),
    )
    op.create_table(
        "spaces",
        sa.Column("guid", GUID, primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("organization_guid", GUID, sa.ForeignKey("organizations.guid"), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("organization_guid", "name", name="uq_spaces_organization_guid_name"),
    )
    _role_table("spaces_developers", "spaces", "space_guid")
    _role_table("spaces_managers", "spaces", "space_guid")
    _role_table("spaces_auditors", "spaces", "space_guid")
    _role_table("organizations_managers", "organizations", "organization_guid")

    op.create_table(
        "apps",
        sa.Column("guid", GUID, primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("space_guid", GUID, sa.ForeignKey("spaces.guid"), nullable=False),
        sa.Column("desired_state", sa.String(length=50), nullable=False, server_default="STOPPED"),
        sa.Column("enable_ssh", sa.Boolean(), nullable=True),
        sa.Column("encrypted_environment_variables", sa.Text()),
        sa.Column("droplet_guid", GUID),
        *_timestamps(),
        sa.Column("updated_at", sa.DateTime(timezone=True)),
        sa.UniqueConstraint("space_guid", "name", name="uq_apps_space_guid_name"),
    )
    op.create_index("ix_apps_space_guid", "apps", ["space_guid"])

    op.create_table(
        "buildpack_lifecycle_data",
        sa.Column("guid", GUID, primary_key=True),
        sa.Column("app_guid", GUID, sa.ForeignKey("apps.guid"), nullable=False, unique=True),
        sa.Column("stack", sa.String(length=255)),
        sa.Column("buildpacks", json_type),
        *_timestamps(),
    )
    op.create_table(
        "processes",
        sa.Column("guid", GUID, primary_key=True),
        sa.Column("app_guid", GUID, sa.ForeignKey("apps.guid"), nullable=False),
        sa.Column("type", sa.String(length=255), nullable=False, server_default="web"),
        sa.Column("version", GUID, nullable=False),
        sa.Column("desired_state", sa.String(length=50), nullable=False, server_default="STOPPED"),
        sa.Column("instances", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("command", sa.Text()),
        *_timestamps(),
        sa.Column("updated_at", sa.DateTime(timezone=True)),
        sa.UniqueConstraint("app_guid", "type", name="uq_processes_app_guid_type"),
    )
    op.create_table(
        "packages",
        sa.Column("guid", GUID, primary_key=True),
        sa.Column("app_guid", GUID, sa.ForeignKey("apps.guid"), nullable=False),
        sa.Column("type", sa.String(length=50), nullable=False, server_default="bits"),
        sa.Column("state", sa.String(length=50), nullable=False),
        *_timestamps(),
    )
    op.create_table(
        "droplets",
        sa.Column("guid", GUID, primary_key=True),
        sa.Column("app_guid", GUID, sa.ForeignKey("apps.guid"), nullable=False),
        sa.Column("package_guid", GUID, sa.ForeignKey("packages.guid")),
        sa.Column("state", sa.String(length=50), nullable=False),
        *_timestamps(),
    )
    op.create_table(
        "builds",
        sa.Column("guid", GUID, primary_key=True),
        sa.Column("app_guid", GUID, sa.ForeignKey("apps.guid"), nullable=False),
        sa.Column("package_guid", GUID, sa.ForeignKey("packages.guid")),
        sa.Column("state", sa.String(length=50), nullable=False),
        *_timestamps(),
    )
    op.create_table(
        "deployments",
        sa.Column("guid", GUID, primary_key=True),
        sa.Column("app_guid", GUID, sa.ForeignKey("apps.guid"), nullable=False),
        sa.Column("droplet_guid", GUID, sa.ForeignKey("droplets.guid")),
        sa.Column("state", sa.String(length=50), nullable=False),
        *_timestamps(),
    )
    op.create_table(
        "tasks",
        sa.Column("guid", GUID, primary_key=True),
        sa.Column("app_guid", GUID, sa.ForeignKey("apps.guid"), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("command", sa.Text()),
        sa.Column("state", sa.String(length=50), nullable=False),
        *_timestamps(),
    )
    op.create_table(
        "service_bindings",
        sa.Column("guid", GUID, primary_key=True),
        sa.Column("app_guid", GUID, sa.ForeignKey("apps.guid"), nullable=False),
        sa.Column("name", sa.String(length=255)),
        sa.Column("encrypted_credentials", sa.Text()),
        *_timestamps(),
    )
    op.create_table(
        "routes",
        sa.Column("guid", GUID, primary_key=True),
        sa.Column("space_guid", GUID, sa.ForeignKey("spaces.guid"), nullable=False),
        sa.Column("host", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("path", sa.String(length=255), nullable=False, server_default=""),
        *_timestamps(),
    )
    op.create_table(
        "route_mappings",
        sa.Column("guid", GUID, primary_key=True),
        sa.Column("app_guid", GUID, sa.ForeignKey("apps.guid"), nullable=False),
        sa.Column("route_guid", GUID, sa.ForeignKey("routes.guid"), nullable=False),
        sa.Column("process_type", sa.String(length=255), nullable=False, server_default="web"),
        *_timestamps(),
        sa.UniqueConstraint("app_guid", "route_guid", "process_type", name="uq_route_mappings_app_route_type"),
    )
    op.create_table(
        "audit_events",
        sa.Column("event_id", GUID, primary_key=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("event_type", sa.String(length=100), nullable=False),
        sa.Column("event_version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("actor_type", sa.String(length=50), nullable=False),
        sa.Column("actor_id", sa.String(length=255)),
        sa.Column("target_type", sa.String(length=50), nullable=False),
        sa.Column("target_guid", GUID, nullable=False),
        sa.Column("space_guid", GUID),
        sa.Column("organization_guid", GUID),
        sa.Column("request_id", sa.String(length=255)),
        sa.Column("metadata", json_type),
    )
    op.create_index("ix_audit_events_created_at", "audit_events", ["created_at"])
    op.create_index("ix_audit_events_event_type", "audit_events", ["event_type"])
    op.create_index("ix_audit_events_target_guid", "audit_events", ["target_guid"])
    op.create_index("ix_audit_events_space_guid", "audit_events", ["space_guid"])

    # apps.droplet_guid and droplets.app_guid reference each other
    with op.batch_alter_table("apps", recreate="always" if is_sqlite else "auto") as batch:
        batch.create_foreign_key("fk_apps_droplet_guid", "droplets", ["droplet_guid"], ["guid"])


def downgrade() -> None:
    with op.batch_alter_table("apps") as batch:
        batch.drop_constraint("fk_apps_droplet_guid", type_="foreignkey")
    for table in (
        "audit_events",
        "route_mappings",
        "routes",
        "service_bindings",
        "tasks",
        "deployments",
        "builds",
        "droplets",
        "packages",
        "processes",
        "buildpack_lifecycle_data",
        "apps",
        "organizations_managers",
        "spaces_auditors",
        "spaces_managers",
        "spaces_developers",
        "spaces",
        "organizations",
        "users",
    ):
        op.drop_table(table)
