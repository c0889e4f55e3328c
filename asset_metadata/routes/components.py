"""
Server component endpoints.
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..db.base import get_db
from ..schemas.attributes import AttributeFilter
from ..schemas.pagination import PaginationParams
from ..schemas.params import ServerComponentListParams
from ..schemas.server import ServerComponentPayload
from ..store.components import ServerComponentService
from .common import (
    RESOURCE_CREATED,
    RESOURCE_DELETED,
    RESOURCE_UPDATED,
    list_response,
    mutation_response,
)
from .params import attribute_filters, pagination_params, versioned_attribute_filters

router = APIRouter(prefix="/api/v1", tags=["server-components"])


def component_list_params(
    name: Optional[str] = None,
    vendor: Optional[str] = None,
    model: Optional[str] = None,
    serial: Optional[str] = None,
    component_type: Optional[str] = None,
    pagination: PaginationParams = Depends(pagination_params),
    attributes: List[AttributeFilter] = Depends(attribute_filters),
    versioned_attributes: List[AttributeFilter] = Depends(versioned_attribute_filters),
) -> ServerComponentListParams:
    return ServerComponentListParams(
        name=name,
        vendor=vendor,
        model=model,
        serial=serial,
        component_type=component_type,
        pagination=pagination,
        attributes=attributes,
        versioned_attributes=versioned_attributes,
    )


@router.get("/servers/{server_id}/components")
async def list_server_components(
    server_id: str,
    params: ServerComponentListParams = Depends(component_list_params),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    records, total = ServerComponentService(db).list(params, server_id=server_id)
    return list_response(records, params.pagination, total)


@router.post("/servers/{server_id}/components", status_code=201)
async def create_server_components(
    server_id: str,
    payload: List[ServerComponentPayload],
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """Add components to a server; all of them or none are stored."""
    ServerComponentService(db).create(server_id, payload)
    return mutation_response(RESOURCE_CREATED, server_id)


@router.get("/server-components")
async def list_components(
    params: ServerComponentListParams = Depends(component_list_params),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """List components across all live servers."""
    records, total = ServerComponentService(db).list(params)
    return list_response(records, params.pagination, total)


@router.get("/server-components/{component_id}")
async def get_component(
    component_id: str,
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    return ServerComponentService(db).get(component_id).model_dump(mode="json")


@router.put("/server-components/{component_id}")
async def update_component(
    component_id: str,
    payload: ServerComponentPayload,
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    updated = ServerComponentService(db).update(component_id, payload)
    return mutation_response(RESOURCE_UPDATED, updated)


@router.delete("/server-components/{component_id}")
async def delete_component(
    component_id: str,
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    ServerComponentService(db).delete(component_id)
    return mutation_response(RESOURCE_DELETED, component_id)
