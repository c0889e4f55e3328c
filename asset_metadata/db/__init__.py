"""
Database package for the asset metadata service.
"""

from .base import Base, get_db, get_engine, init_database, transaction
from .models import (
    AttributeModel,
    ComponentFirmwareSetMapModel,
    ComponentFirmwareSetModel,
    ComponentFirmwareVersionModel,
    ServerComponentModel,
    ServerModel,
    VersionedAttributeModel,
)

__all__ = [
    "Base",
    "get_db",
    "get_engine",
    "init_database",
    "transaction",
    "AttributeModel",
    "ComponentFirmwareSetMapModel",
    "ComponentFirmwareSetModel",
    "ComponentFirmwareVersionModel",
    "ServerComponentModel",
    "ServerModel",
    "VersionedAttributeModel",
]
