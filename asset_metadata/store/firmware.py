"""
Component firmware version service.
"""

from typing import Iterable, List, Optional, Set, Tuple

import structlog
from sqlalchemy import String, cast
from sqlalchemy.orm import Session

from ..db.base import transaction
from ..db.models import (
    ComponentFirmwareSetMapModel,
    ComponentFirmwareVersionModel,
    generate_uuid,
)
from ..errors import ConflictError, NotFoundError
from ..schemas.firmware import ComponentFirmwareVersion, ComponentFirmwareVersionPayload
from ..schemas.params import ComponentFirmwareVersionListParams
from ..schemas.primitives import Clock, parse_uuid, utc_now
from .pagination import default_order_by, paginate

logger = structlog.get_logger()


class FirmwareVersionService:
    """Service for managing published firmware versions."""

    def __init__(self, db: Session, clock: Optional[Clock] = None):
        self.db = db
        self.clock = clock or utc_now

    def create(self, payload: ComponentFirmwareVersionPayload) -> ComponentFirmwareVersionModel:
        """Create a new firmware version. Model names are stored lower-cased."""
        now = self.clock()
        row = ComponentFirmwareVersionModel(
            id=generate_uuid(),
            vendor=payload.vendor,
            model=[m.lower() for m in payload.model],
            filename=payload.filename,
            version=payload.version,
            component=payload.component,
            checksum=payload.checksum,
            upstream_url=payload.upstream_url,
            repository_url=payload.repository_url,
            created_at=now,
            updated_at=now,
        )

        with transaction(self.db):
            self.db.add(row)

        logger.info("firmware_version_created", firmware_id=row.id, vendor=row.vendor)
        return row

    def find(self, firmware_id: str) -> Optional[ComponentFirmwareVersionModel]:
        """Get a firmware version by ID, or None."""
        parsed = parse_uuid(firmware_id)
        if parsed is None:
            return None
        return (
            self.db.query(ComponentFirmwareVersionModel)
            .filter(ComponentFirmwareVersionModel.id == str(parsed))
            .first()
        )

    def get(self, firmware_id: str) -> ComponentFirmwareVersion:
        row = self.find(firmware_id)
        if row is None:
            raise NotFoundError("firmware version not found")
        return ComponentFirmwareVersion.from_model(row)

    def existing_ids(self, firmware_ids: Iterable[str]) -> Set[str]:
        """Subset of ``firmware_ids`` that exist as firmware versions."""
        ids = list(firmware_ids)
        if not ids:
            return set()
        rows = (
            self.db.query(ComponentFirmwareVersionModel.id)
            .filter(ComponentFirmwareVersionModel.id.in_(ids))
            .all()
        )
        return {row.id for row in rows}

    def list(
        self, params: Optional[ComponentFirmwareVersionListParams] = None
    ) -> Tuple[List[ComponentFirmwareVersion], int]:
        """List firmware versions with optional filtering."""
        params = params or ComponentFirmwareVersionListParams()
        query = self.db.query(ComponentFirmwareVersionModel)

        if params.vendor:
            query = query.filter(ComponentFirmwareVersionModel.vendor == params.vendor)
        if params.version:
            query = query.filter(ComponentFirmwareVersionModel.version == params.version)
        if params.filename:
            query = query.filter(ComponentFirmwareVersionModel.filename == params.filename)
        if params.model:
            # model is a JSON list of lower-cased names
            query = query.filter(
                cast(ComponentFirmwareVersionModel.model, String).contains(
                    f"\"{params.model.lower()}\"", autoescape=True
                )
            )

        rows, total = paginate(
            query,
            params.pagination,
            order_by=default_order_by(ComponentFirmwareVersionModel),
        )
        return [ComponentFirmwareVersion.from_model(row) for row in rows], total

    def update(
        self, firmware_id: str, payload: ComponentFirmwareVersionPayload
    ) -> ComponentFirmwareVersionModel:
        row = self.find(firmware_id)
        if row is None:
            raise NotFoundError("firmware version not found")

        with transaction(self.db):
            row.vendor = payload.vendor
            row.model = [m.lower() for m in payload.model]
            row.filename = payload.filename
            row.version = payload.version
            row.component = payload.component
            row.checksum = payload.checksum
            row.upstream_url = payload.upstream_url
            row.repository_url = payload.repository_url
            row.updated_at = self.clock()

        logger.info("firmware_version_updated", firmware_id=row.id)
        return row

    def delete(self, firmware_id: str) -> None:
        """Delete a firmware version that no firmware set references."""
        row = self.find(firmware_id)
        if row is None:
            raise NotFoundError("firmware version not found")

        with transaction(self.db):
            referenced = (
                self.db.query(ComponentFirmwareSetMapModel.id)
                .filter(ComponentFirmwareSetMapModel.firmware_id == row.id)
                .first()
            )
            if referenced is not None:
                raise ConflictError(
                    f"firmware {row.id} is referenced by one or more firmware sets"
                )
            self.db.delete(row)

        logger.info("firmware_version_deleted", firmware_id=firmware_id)
