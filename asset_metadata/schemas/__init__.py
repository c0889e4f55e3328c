"""
Request and response schemas for the asset metadata service.
"""

from .attributes import AttributeData, AttributeFilter, Attributes, VersionedAttributes
from .firmware import ComponentFirmwareVersion, ComponentFirmwareVersionPayload
from .firmware_set import ComponentFirmwareSet, ComponentFirmwareSetPayload
from .pagination import DEFAULT_PAGE_LIMIT, MAX_PAGE_LIMIT, PaginationParams
from .params import (
    ComponentFirmwareSetListParams,
    ComponentFirmwareVersionListParams,
    ServerComponentListParams,
    ServerListParams,
)
from .primitives import NIL_UUID, Clock, is_nil_uuid, parse_uuid, utc_now
from .server import Server, ServerComponent, ServerComponentPayload, ServerPayload

__all__ = [
    "AttributeData",
    "AttributeFilter",
    "Attributes",
    "VersionedAttributes",
    "ComponentFirmwareVersion",
    "ComponentFirmwareVersionPayload",
    "ComponentFirmwareSet",
    "ComponentFirmwareSetPayload",
    "DEFAULT_PAGE_LIMIT",
    "MAX_PAGE_LIMIT",
    "PaginationParams",
    "ComponentFirmwareSetListParams",
    "ComponentFirmwareVersionListParams",
    "ServerComponentListParams",
    "ServerListParams",
    "NIL_UUID",
    "Clock",
    "is_nil_uuid",
    "parse_uuid",
    "utc_now",
    "Server",
    "ServerComponent",
    "ServerComponentPayload",
    "ServerPayload",
]
