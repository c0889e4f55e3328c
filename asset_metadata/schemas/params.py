"""
List parameters for the filterable collections.

Each params object carries plain column filters, attribute filter clauses
and pagination. The store services turn them into one filtered query.
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field

from .pagination import PaginationParams
from .attributes import AttributeFilter


class _ListParams(BaseModel):
    pagination: PaginationParams = Field(default_factory=PaginationParams)
    attributes: List[AttributeFilter] = Field(default_factory=list)


class ComponentFirmwareSetListParams(_ListParams):
    """Filters for firmware sets: exact name plus set attribute clauses."""

    name: Optional[str] = None


class ComponentFirmwareVersionListParams(BaseModel):
    vendor: Optional[str] = None
    model: Optional[str] = None
    version: Optional[str] = None
    filename: Optional[str] = None
    pagination: PaginationParams = Field(default_factory=PaginationParams)


class ServerListParams(_ListParams):
    """Filters for servers.

    ``versioned_attributes`` clauses match the latest report in each
    namespace only.
    """

    name: Optional[str] = None
    facility: Optional[str] = None
    include_deleted: bool = False
    versioned_attributes: List[AttributeFilter] = Field(default_factory=list)


class ServerComponentListParams(_ListParams):
    name: Optional[str] = None
    vendor: Optional[str] = None
    model: Optional[str] = None
    serial: Optional[str] = None
    component_type: Optional[str] = None
    versioned_attributes: List[AttributeFilter] = Field(default_factory=list)
