"""create inventory and attribute tables

Revision ID: 0001
Revises:
Create Date: 2026-10-17

Creates:
- component_firmware_versions
- component_firmware_sets
- component_firmware_set_map
- servers
- server_components
- attributes
- versioned_attributes
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    ]


def upgrade() -> None:
    op.create_table(
        "component_firmware_versions",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("vendor", sa.String(255), nullable=False),
        sa.Column("model", sa.JSON, nullable=False),
        sa.Column("filename", sa.String(255), nullable=False),
        sa.Column("version", sa.String(255), nullable=False),
        sa.Column("component", sa.String(255), nullable=True),
        sa.Column("checksum", sa.String(255), nullable=True),
        sa.Column("upstream_url", sa.Text, nullable=True),
        sa.Column("repository_url", sa.Text, nullable=True),
        *_timestamps(),
        sa.UniqueConstraint(
            "vendor", "version", "filename", name="uq_firmware_vendor_version_filename"
        ),
    )
    op.create_index(
        "ix_component_firmware_versions_vendor", "component_firmware_versions", ["vendor"]
    )
    op.create_index(
        "ix_component_firmware_versions_version", "component_firmware_versions", ["version"]
    )
    op.create_index(
        "ix_component_firmware_versions_created_at",
        "component_firmware_versions",
        ["created_at"],
    )

    op.create_table(
        "component_firmware_sets",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("metadata", sa.JSON, nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_component_firmware_sets_name", "component_firmware_sets", ["name"])
    op.create_index(
        "ix_component_firmware_sets_created_at", "component_firmware_sets", ["created_at"]
    )

    op.create_table(
        "component_firmware_set_map",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "firmware_set_id",
            sa.String(36),
            sa.ForeignKey("component_firmware_sets.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "firmware_id",
            sa.String(36),
            sa.ForeignKey("component_firmware_versions.id"),
            nullable=False,
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.UniqueConstraint(
            "firmware_set_id", "firmware_id", name="uq_firmware_set_map_set_firmware"
        ),
    )
    op.create_index(
        "ix_component_firmware_set_map_firmware_set_id",
        "component_firmware_set_map",
        ["firmware_set_id"],
    )
    op.create_index(
        "ix_component_firmware_set_map_firmware_id",
        "component_firmware_set_map",
        ["firmware_id"],
    )

    op.create_table(
        "servers",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(255), nullable=True),
        sa.Column("facility_code", sa.String(64), nullable=True),
        sa.Column(
            "firmware_set_id",
            sa.String(36),
            sa.ForeignKey("component_firmware_sets.id", ondelete="SET NULL"),
            nullable=True,
        ),
        *_timestamps(),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_servers_name", "servers", ["name"])
    op.create_index("ix_servers_facility_code", "servers", ["facility_code"])
    op.create_index("ix_servers_deleted_at", "servers", ["deleted_at"])
    op.create_index("ix_servers_created_at", "servers", ["created_at"])

    op.create_table(
        "server_components",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "server_id",
            sa.String(36),
            sa.ForeignKey("servers.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("component_type", sa.String(64), nullable=False),
        sa.Column("name", sa.String(255), nullable=True),
        sa.Column("vendor", sa.String(255), nullable=True),
        sa.Column("model", sa.String(255), nullable=True),
        sa.Column("serial", sa.String(255), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint(
            "server_id",
            "component_type",
            "serial",
            name="uq_server_components_server_type_serial",
        ),
    )
    op.create_index("ix_server_components_server_id", "server_components", ["server_id"])
    op.create_index(
        "ix_server_components_component_type", "server_components", ["component_type"]
    )
    op.create_index("ix_server_components_vendor", "server_components", ["vendor"])
    op.create_index("ix_server_components_model", "server_components", ["model"])
    op.create_index(
        "ix_server_components_created_at", "server_components", ["created_at"]
    )

    op.create_table(
        "attributes",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "server_id",
            sa.String(36),
            sa.ForeignKey("servers.id", ondelete="CASCADE"),
            nullable=True,
        ),
        sa.Column(
            "server_component_id",
            sa.String(36),
            sa.ForeignKey("server_components.id", ondelete="CASCADE"),
            nullable=True,
        ),
        sa.Column(
            "firmware_set_id",
            sa.String(36),
            sa.ForeignKey("component_firmware_sets.id", ondelete="CASCADE"),
            nullable=True,
        ),
        sa.Column("namespace", sa.String(255), nullable=False),
        sa.Column("data", sa.JSON, nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("server_id", "namespace", name="uq_attributes_server_ns"),
        sa.UniqueConstraint(
            "server_component_id", "namespace", name="uq_attributes_component_ns"
        ),
        sa.UniqueConstraint(
            "firmware_set_id", "namespace", name="uq_attributes_firmware_set_ns"
        ),
        sa.CheckConstraint(
            "(CASE WHEN server_id IS NULL THEN 0 ELSE 1 END)"
            " + (CASE WHEN server_component_id IS NULL THEN 0 ELSE 1 END)"
            " + (CASE WHEN firmware_set_id IS NULL THEN 0 ELSE 1 END) = 1",
            name="ck_attributes_single_owner",
        ),
    )
    op.create_index("ix_attributes_namespace", "attributes", ["namespace"])

    op.create_table(
        "versioned_attributes",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "server_id",
            sa.String(36),
            sa.ForeignKey("servers.id", ondelete="CASCADE"),
            nullable=True,
        ),
        sa.Column(
            "server_component_id",
            sa.String(36),
            sa.ForeignKey("server_components.id", ondelete="CASCADE"),
            nullable=True,
        ),
        sa.Column("namespace", sa.String(255), nullable=False),
        sa.Column("data", sa.JSON, nullable=False),
        sa.Column("tally", sa.Integer, nullable=False, server_default="1"),
        sa.Column(
            "reported_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.CheckConstraint(
            "(CASE WHEN server_id IS NULL THEN 0 ELSE 1 END)"
            " + (CASE WHEN server_component_id IS NULL THEN 0 ELSE 1 END) = 1",
            name="ck_versioned_attributes_single_owner",
        ),
    )
    op.create_index(
        "ix_versioned_attributes_server_ns_reported",
        "versioned_attributes",
        ["server_id", "namespace", "reported_at"],
    )
    op.create_index(
        "ix_versioned_attributes_component_ns_reported",
        "versioned_attributes",
        ["server_component_id", "namespace", "reported_at"],
    )


def downgrade() -> None:
    op.drop_table("versioned_attributes")
    op.drop_table("attributes")
    op.drop_table("server_components")
    op.drop_table("servers")
    op.drop_table("component_firmware_set_map")
    op.drop_table("component_firmware_sets")
    op.drop_table("component_firmware_versions")
