"""
HTTP routers, all mounted under ``/api/v1``.
"""

from .components import router as components_router
from .firmware import router as firmware_router
from .firmware_sets import router as firmware_sets_router
from .servers import router as servers_router

__all__ = [
    "components_router",
    "firmware_router",
    "firmware_sets_router",
    "servers_router",
]
