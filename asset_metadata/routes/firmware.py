"""
Component firmware version endpoints.
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..db.base import get_db
from ..schemas.firmware import ComponentFirmwareVersionPayload
from ..schemas.pagination import PaginationParams
from ..schemas.params import ComponentFirmwareVersionListParams
from ..store.firmware import FirmwareVersionService
from .common import (
    RESOURCE_CREATED,
    RESOURCE_DELETED,
    RESOURCE_UPDATED,
    list_response,
    mutation_response,
)
from .params import pagination_params

router = APIRouter(prefix="/api/v1", tags=["server-component-firmwares"])


@router.get("/server-component-firmwares")
async def list_firmware_versions(
    vendor: Optional[str] = None,
    model: Optional[str] = None,
    version: Optional[str] = None,
    filename: Optional[str] = None,
    pagination: PaginationParams = Depends(pagination_params),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """List firmware versions with optional filtering."""
    params = ComponentFirmwareVersionListParams(
        vendor=vendor,
        model=model,
        version=version,
        filename=filename,
        pagination=pagination,
    )
    records, total = FirmwareVersionService(db).list(params)
    return list_response(records, pagination, total)


@router.post("/server-component-firmwares", status_code=201)
async def create_firmware_version(
    payload: ComponentFirmwareVersionPayload,
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    row = FirmwareVersionService(db).create(payload)
    return mutation_response(RESOURCE_CREATED, row.id)


@router.get("/server-component-firmwares/{firmware_id}")
async def get_firmware_version(
    firmware_id: str,
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    return FirmwareVersionService(db).get(firmware_id).model_dump(mode="json")


@router.put("/server-component-firmwares/{firmware_id}")
async def update_firmware_version(
    firmware_id: str,
    payload: ComponentFirmwareVersionPayload,
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    row = FirmwareVersionService(db).update(firmware_id, payload)
    return mutation_response(RESOURCE_UPDATED, row.id)


@router.delete("/server-component-firmwares/{firmware_id}")
async def delete_firmware_version(
    firmware_id: str,
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """Delete a firmware version. Fails with 409 while a firmware set uses it."""
    FirmwareVersionService(db).delete(firmware_id)
    return mutation_response(RESOURCE_DELETED, firmware_id)
