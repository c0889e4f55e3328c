"""
Store services: attribute storage, pagination and the entity services.
"""

from .attributes import AttributeStore, OwnerKind, OwnerRef
from .components import ServerComponentService
from .firmware import FirmwareVersionService
from .firmware_sets import FirmwareSetManager
from .pagination import default_order_by, paginate
from .servers import ServerService

__all__ = [
    "AttributeStore",
    "OwnerKind",
    "OwnerRef",
    "ServerComponentService",
    "FirmwareVersionService",
    "FirmwareSetManager",
    "default_order_by",
    "paginate",
    "ServerService",
]
