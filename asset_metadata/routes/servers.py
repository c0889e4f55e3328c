"""
Server and server attribute endpoints.
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..db.base import get_db
from ..schemas.attributes import (
    AttributeData,
    AttributeFilter,
    Attributes,
    VersionedAttributes,
)
from ..schemas.pagination import PaginationParams
from ..schemas.params import ServerListParams
from ..schemas.server import ServerPayload
from ..store.servers import ServerService
from .common import (
    RESOURCE_CREATED,
    RESOURCE_DELETED,
    RESOURCE_UPDATED,
    list_response,
    mutation_response,
)
from .params import attribute_filters, pagination_params, versioned_attribute_filters

router = APIRouter(prefix="/api/v1", tags=["servers"])


# =============================================================================
# Server Endpoints
# =============================================================================


@router.get("/servers")
async def list_servers(
    name: Optional[str] = None,
    facility: Optional[str] = None,
    include_deleted: bool = False,
    pagination: PaginationParams = Depends(pagination_params),
    attributes: List[AttributeFilter] = Depends(attribute_filters),
    versioned_attributes: List[AttributeFilter] = Depends(versioned_attribute_filters),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """List servers.

    ``ver_attr`` filters are matched against the latest report in each
    namespace, never against older history.
    """
    params = ServerListParams(
        name=name,
        facility=facility,
        include_deleted=include_deleted,
        attributes=attributes,
        versioned_attributes=versioned_attributes,
        pagination=pagination,
    )
    records, total = ServerService(db).list(params)
    return list_response(records, pagination, total)


@router.post("/servers", status_code=201)
async def create_server(
    payload: ServerPayload,
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    server_id = ServerService(db).create(payload)
    return mutation_response(RESOURCE_CREATED, server_id)


@router.get("/servers/{server_id}")
async def get_server(
    server_id: str,
    include_deleted: bool = False,
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    return ServerService(db).get(server_id, include_deleted).model_dump(mode="json")


@router.put("/servers/{server_id}")
async def update_server(
    server_id: str,
    payload: ServerPayload,
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    updated = ServerService(db).update(server_id, payload)
    return mutation_response(RESOURCE_UPDATED, updated)


@router.delete("/servers/{server_id}")
async def delete_server(
    server_id: str,
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    ServerService(db).delete(server_id)
    return mutation_response(RESOURCE_DELETED, server_id)


# =============================================================================
# Attribute Endpoints
# =============================================================================


@router.get("/servers/{server_id}/attributes")
async def list_server_attributes(
    server_id: str,
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    records = ServerService(db).list_attributes(server_id)
    return {"records": [r.model_dump(mode="json") for r in records]}


@router.post("/servers/{server_id}/attributes", status_code=201)
async def create_server_attribute(
    server_id: str,
    payload: Attributes,
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    ServerService(db).upsert_attribute(server_id, payload.namespace, payload.data)
    return mutation_response(RESOURCE_CREATED, payload.namespace)


@router.get("/servers/{server_id}/attributes/{namespace}")
async def get_server_attribute(
    server_id: str,
    namespace: str,
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    return ServerService(db).get_attribute(server_id, namespace).model_dump(mode="json")


@router.put("/servers/{server_id}/attributes/{namespace}")
async def update_server_attribute(
    server_id: str,
    namespace: str,
    payload: AttributeData,
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    ServerService(db).upsert_attribute(server_id, namespace, payload.data)
    return mutation_response(RESOURCE_UPDATED, namespace)


@router.delete("/servers/{server_id}/attributes/{namespace}")
async def delete_server_attribute(
    server_id: str,
    namespace: str,
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    ServerService(db).delete_attribute(server_id, namespace)
    return mutation_response(RESOURCE_DELETED, namespace)


@router.get("/servers/{server_id}/versioned-attributes")
async def list_server_versioned_attributes(
    server_id: str,
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """Latest report per namespace."""
    records = ServerService(db).latest_versioned_attributes(server_id)
    return {"records": [r.model_dump(mode="json") for r in records]}


@router.post("/servers/{server_id}/versioned-attributes", status_code=201)
async def create_server_versioned_attribute(
    server_id: str,
    payload: VersionedAttributes,
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    ServerService(db).append_versioned_attribute(
        server_id, payload.namespace, payload.data, payload.reported_at
    )
    return mutation_response(RESOURCE_CREATED, payload.namespace)


@router.get("/servers/{server_id}/versioned-attributes/{namespace}")
async def get_server_versioned_attribute_history(
    server_id: str,
    namespace: str,
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """Every report in the namespace, newest first."""
    records = ServerService(db).versioned_history(server_id, namespace)
    return {"records": [r.model_dump(mode="json") for r in records]}
