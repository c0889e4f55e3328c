"""
Component firmware version schemas.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, constr


class ComponentFirmwareVersionPayload(BaseModel):
    """Schema for creating or updating a firmware version."""

    model_config = ConfigDict(extra="forbid")

    vendor: constr(min_length=1, max_length=255)
    model: List[str] = Field(
        default_factory=list, description="Hardware models this firmware applies to"
    )
    filename: constr(min_length=1, max_length=255)
    version: constr(min_length=1, max_length=255)
    component: Optional[constr(max_length=255)] = None
    checksum: Optional[constr(max_length=255)] = None
    upstream_url: Optional[str] = None
    repository_url: Optional[str] = None


class ComponentFirmwareVersion(BaseModel):
    """A published firmware artifact."""

    uuid: str
    vendor: str
    model: List[str] = Field(default_factory=list)
    filename: str
    version: str
    component: Optional[str] = None
    checksum: Optional[str] = None
    upstream_url: Optional[str] = None
    repository_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, row) -> "ComponentFirmwareVersion":
        return cls(**row.to_dict())
