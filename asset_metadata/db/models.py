"""
SQLAlchemy models for the asset metadata service.

Rows live in flat tables keyed by owner id. No ORM relationships are
declared: callers fetch related rows explicitly through the store services.
"""

import uuid
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.sql import func

from .base import Base


def generate_uuid() -> str:
    """Generate a canonical string UUID for primary keys."""
    return str(uuid.uuid4())


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


# Exactly one owner column must be set on an attribute row.
_SINGLE_OWNER_ATTRIBUTE = (
    "(CASE WHEN server_id IS NULL THEN 0 ELSE 1 END)"
    " + (CASE WHEN server_component_id IS NULL THEN 0 ELSE 1 END)"
    " + (CASE WHEN firmware_set_id IS NULL THEN 0 ELSE 1 END) = 1"
)

_SINGLE_OWNER_VERSIONED = (
    "(CASE WHEN server_id IS NULL THEN 0 ELSE 1 END)"
    " + (CASE WHEN server_component_id IS NULL THEN 0 ELSE 1 END) = 1"
)


class ComponentFirmwareVersionModel(Base):
    """A published firmware artifact. Referenced by firmware sets, never owned."""

    __tablename__ = "component_firmware_versions"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    vendor = Column(String(255), nullable=False, index=True)
    model = Column(JSON, nullable=False, default=list)  # list of model names
    filename = Column(String(255), nullable=False)
    version = Column(String(255), nullable=False, index=True)
    component = Column(String(255), nullable=True)
    checksum = Column(String(255), nullable=True)
    upstream_url = Column(Text, nullable=True)
    repository_url = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, default=func.now())

    __table_args__ = (
        UniqueConstraint(
            "vendor", "version", "filename", name="uq_firmware_vendor_version_filename"
        ),
        Index("ix_component_firmware_versions_created_at", "created_at"),
    )

    def to_dict(self) -> Dict[str, Any]:
        """Convert model to dictionary."""
        return {
            "uuid": self.id,
            "vendor": self.vendor,
            "model": self.model,
            "filename": self.filename,
            "version": self.version,
            "component": self.component,
            "checksum": self.checksum,
            "upstream_url": self.upstream_url,
            "repository_url": self.repository_url,
            "created_at": _isoformat(self.created_at),
            "updated_at": _isoformat(self.updated_at),
        }


class ComponentFirmwareSetModel(Base):
    """A named grouping of firmware versions."""

    __tablename__ = "component_firmware_sets"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    # Names are not unique: concurrent creates with one name both succeed.
    name = Column(String(255), nullable=False, index=True)
    metadata_ = Column("metadata", JSON, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, default=func.now())

    __table_args__ = (
        Index("ix_component_firmware_sets_created_at", "created_at"),
    )

    def to_dict(self) -> Dict[str, Any]:
        """Convert model to dictionary."""
        return {
            "uuid": self.id,
            "name": self.name,
            "metadata": self.metadata_,
            "created_at": _isoformat(self.created_at),
            "updated_at": _isoformat(self.updated_at),
        }


class ComponentFirmwareSetMapModel(Base):
    """Membership row joining a firmware set to a firmware version."""

    __tablename__ = "component_firmware_set_map"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    firmware_set_id = Column(
        String(36),
        ForeignKey("component_firmware_sets.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    firmware_id = Column(
        String(36),
        ForeignKey("component_firmware_versions.id"),
        nullable=False,
        index=True,
    )
    created_at = Column(DateTime(timezone=True), nullable=False, default=func.now())

    __table_args__ = (
        UniqueConstraint(
            "firmware_set_id", "firmware_id", name="uq_firmware_set_map_set_firmware"
        ),
    )


class ServerModel(Base):
    """A server in a facility. Soft-deleted through ``deleted_at``."""

    __tablename__ = "servers"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    name = Column(String(255), nullable=True, index=True)
    facility_code = Column(String(64), nullable=True, index=True)
    firmware_set_id = Column(
        String(36),
        ForeignKey("component_firmware_sets.id", ondelete="SET NULL"),
        nullable=True,
    )

    created_at = Column(DateTime(timezone=True), nullable=False, default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, default=func.now())
    deleted_at = Column(DateTime(timezone=True), nullable=True, index=True)

    __table_args__ = (
        Index("ix_servers_created_at", "created_at"),
    )

    def to_dict(self) -> Dict[str, Any]:
        """Convert model to dictionary."""
        return {
            "uuid": self.id,
            "name": self.name,
            "facility": self.facility_code,
            "firmware_set_uuid": self.firmware_set_id,
            "created_at": _isoformat(self.created_at),
            "updated_at": _isoformat(self.updated_at),
            "deleted_at": _isoformat(self.deleted_at),
        }


class ServerComponentModel(Base):
    """A hardware component installed in a server."""

    __tablename__ = "server_components"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    server_id = Column(
        String(36),
        ForeignKey("servers.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    component_type = Column(String(64), nullable=False, index=True)
    name = Column(String(255), nullable=True)
    vendor = Column(String(255), nullable=True, index=True)
    model = Column(String(255), nullable=True, index=True)
    serial = Column(String(255), nullable=False)

    created_at = Column(DateTime(timezone=True), nullable=False, default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, default=func.now())

    __table_args__ = (
        UniqueConstraint(
            "server_id",
            "component_type",
            "serial",
            name="uq_server_components_server_type_serial",
        ),
        Index("ix_server_components_created_at", "created_at"),
    )

    def to_dict(self) -> Dict[str, Any]:
        """Convert model to dictionary."""
        return {
            "uuid": self.id,
            "server_uuid": self.server_id,
            "component_type": self.component_type,
            "name": self.name,
            "vendor": self.vendor,
            "model": self.model,
            "serial": self.serial,
            "created_at": _isoformat(self.created_at),
            "updated_at": _isoformat(self.updated_at),
        }


class AttributeModel(Base):
    """Latest-value attribute: at most one row per (owner, namespace)."""

    __tablename__ = "attributes"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    server_id = Column(
        String(36), ForeignKey("servers.id", ondelete="CASCADE"), nullable=True
    )
    server_component_id = Column(
        String(36),
        ForeignKey("server_components.id", ondelete="CASCADE"),
        nullable=True,
    )
    firmware_set_id = Column(
        String(36),
        ForeignKey("component_firmware_sets.id", ondelete="CASCADE"),
        nullable=True,
    )
    namespace = Column(String(255), nullable=False, index=True)
    data = Column(JSON, nullable=False)

    created_at = Column(DateTime(timezone=True), nullable=False, default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, default=func.now())

    __table_args__ = (
        UniqueConstraint("server_id", "namespace", name="uq_attributes_server_ns"),
        UniqueConstraint(
            "server_component_id", "namespace", name="uq_attributes_component_ns"
        ),
        UniqueConstraint(
            "firmware_set_id", "namespace", name="uq_attributes_firmware_set_ns"
        ),
        CheckConstraint(_SINGLE_OWNER_ATTRIBUTE, name="ck_attributes_single_owner"),
    )

    def to_dict(self) -> Dict[str, Any]:
        """Convert model to dictionary."""
        return {
            "namespace": self.namespace,
            "data": self.data,
            "created_at": _isoformat(self.created_at),
            "updated_at": _isoformat(self.updated_at),
        }


class VersionedAttributeModel(Base):
    """Append-only attribute history. Current value is the max ``reported_at``."""

    __tablename__ = "versioned_attributes"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    server_id = Column(
        String(36), ForeignKey("servers.id", ondelete="CASCADE"), nullable=True
    )
    server_component_id = Column(
        String(36),
        ForeignKey("server_components.id", ondelete="CASCADE"),
        nullable=True,
    )
    namespace = Column(String(255), nullable=False)
    data = Column(JSON, nullable=False)
    # Sequence number of the row within its (owner, namespace)
    tally = Column(Integer, nullable=False, default=1)

    reported_at = Column(DateTime(timezone=True), nullable=False, default=func.now())
    created_at = Column(DateTime(timezone=True), nullable=False, default=func.now())

    __table_args__ = (
        Index(
            "ix_versioned_attributes_server_ns_reported",
            "server_id",
            "namespace",
            "reported_at",
        ),
        Index(
            "ix_versioned_attributes_component_ns_reported",
            "server_component_id",
            "namespace",
            "reported_at",
        ),
        CheckConstraint(
            _SINGLE_OWNER_VERSIONED, name="ck_versioned_attributes_single_owner"
        ),
    )

    def to_dict(self) -> Dict[str, Any]:
        """Convert model to dictionary."""
        return {
            "namespace": self.namespace,
            "data": self.data,
            "tally": self.tally,
            "reported_at": _isoformat(self.reported_at),
            "created_at": _isoformat(self.created_at),
        }
