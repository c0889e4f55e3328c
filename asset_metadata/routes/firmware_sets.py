"""
Component firmware set endpoints.
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..db.base import get_db
from ..schemas.attributes import AttributeFilter
from ..schemas.firmware_set import ComponentFirmwareSetPayload
from ..schemas.pagination import PaginationParams
from ..schemas.params import ComponentFirmwareSetListParams
from ..store.firmware_sets import FirmwareSetManager
from .common import (
    RESOURCE_CREATED,
    RESOURCE_DELETED,
    RESOURCE_UPDATED,
    list_response,
    mutation_response,
)
from .params import attribute_filters, pagination_params

router = APIRouter(prefix="/api/v1", tags=["component-firmware-sets"])


@router.get("/component-firmware-sets")
async def list_firmware_sets(
    name: Optional[str] = None,
    pagination: PaginationParams = Depends(pagination_params),
    attributes: List[AttributeFilter] = Depends(attribute_filters),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """List firmware sets filtered by name and set attributes."""
    params = ComponentFirmwareSetListParams(
        name=name, attributes=attributes, pagination=pagination
    )
    records, total = FirmwareSetManager(db).list(params)
    return list_response(records, pagination, total)


@router.post("/component-firmware-sets", status_code=201)
async def create_firmware_set(
    payload: ComponentFirmwareSetPayload,
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    set_id = FirmwareSetManager(db).create(payload)
    return mutation_response(RESOURCE_CREATED, set_id)


@router.get("/component-firmware-sets/{set_id}")
async def get_firmware_set(
    set_id: str,
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """Get a firmware set with its firmware versions and attributes."""
    return FirmwareSetManager(db).get(set_id).model_dump(mode="json")


@router.put("/component-firmware-sets/{set_id}")
async def update_firmware_set(
    set_id: str,
    payload: ComponentFirmwareSetPayload,
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """Update a firmware set.

    Firmware UUIDs in the payload are added to the set; use remove-firmware
    to take versions out.
    """
    updated = FirmwareSetManager(db).update(set_id, payload)
    return mutation_response(RESOURCE_UPDATED, updated)


@router.post("/component-firmware-sets/{set_id}/remove-firmware")
async def remove_firmware_from_set(
    set_id: str,
    payload: ComponentFirmwareSetPayload,
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    updated = FirmwareSetManager(db).remove_firmware(
        set_id, payload.component_firmware_uuids, payload_id=payload.id
    )
    return mutation_response(RESOURCE_UPDATED, updated)


@router.delete("/component-firmware-sets/{set_id}")
async def delete_firmware_set(
    set_id: str,
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    FirmwareSetManager(db).delete(set_id)
    return mutation_response(RESOURCE_DELETED, set_id)
