"""
Server and server component schemas.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, constr

from .attributes import Attributes, VersionedAttributes


class ServerComponentPayload(BaseModel):
    """Schema for creating or updating a server component."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    id: Optional[str] = Field(None, alias="uuid")
    component_type: constr(min_length=1, max_length=64) = Field(
        ..., alias="component_type_slug"
    )
    name: Optional[constr(max_length=255)] = None
    vendor: Optional[constr(max_length=255)] = None
    model: Optional[constr(max_length=255)] = None
    serial: constr(min_length=1, max_length=255)
    attributes: List[Attributes] = Field(default_factory=list)
    versioned_attributes: List[VersionedAttributes] = Field(default_factory=list)


class ServerComponent(BaseModel):
    """A component with its attributes and latest versioned attributes."""

    uuid: str
    server_uuid: str
    component_type: str
    name: Optional[str] = None
    vendor: Optional[str] = None
    model: Optional[str] = None
    serial: str
    attributes: List[Attributes] = Field(default_factory=list)
    versioned_attributes: List[VersionedAttributes] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_model(
        cls,
        row,
        attributes: List[Attributes],
        versioned_attributes: List[VersionedAttributes],
    ) -> "ServerComponent":
        return cls(
            **row.to_dict(),
            attributes=attributes,
            versioned_attributes=versioned_attributes,
        )


class ServerPayload(BaseModel):
    """Schema for creating or updating a server."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    id: Optional[str] = Field(None, alias="uuid")
    name: Optional[constr(max_length=255)] = None
    facility: Optional[constr(max_length=64)] = None
    firmware_set_uuid: Optional[str] = None
    attributes: List[Attributes] = Field(default_factory=list)
    versioned_attributes: List[VersionedAttributes] = Field(default_factory=list)


class Server(BaseModel):
    """A server with attributes, latest versioned attributes and components."""

    uuid: str
    name: Optional[str] = None
    facility: Optional[str] = None
    firmware_set_uuid: Optional[str] = None
    attributes: List[Attributes] = Field(default_factory=list)
    versioned_attributes: List[VersionedAttributes] = Field(default_factory=list)
    components: List[ServerComponent] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None

    @classmethod
    def from_model(
        cls,
        row,
        attributes: List[Attributes],
        versioned_attributes: List[VersionedAttributes],
        components: List[ServerComponent],
    ) -> "Server":
        return cls(
            **row.to_dict(),
            attributes=attributes,
            versioned_attributes=versioned_attributes,
            components=components,
        )
