"""
Firmware set manager.

A firmware set names a group of firmware versions. Membership lives in
``component_firmware_set_map``; every mutation below is one transaction
that either fully commits or leaves no trace.

Validation order is fixed, and the first failing check is the error the
caller sees:

create
    name, at least one UUID, UUIDs parse, UUIDs unique, UUIDs exist.
update
    set id present, payload set id matches, set exists, UUIDs parse, UUIDs not
    already members, UUIDs exist. New UUIDs are added to the membership;
    nothing is removed.
remove_firmware
    set id present, payload set id matches, set exists, UUIDs parse, UUIDs
    are members.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

import structlog
from sqlalchemy.orm import Session

from ..db.base import transaction
from ..db.models import (
    AttributeModel,
    ComponentFirmwareSetMapModel,
    ComponentFirmwareSetModel,
    ComponentFirmwareVersionModel,
    generate_uuid,
)
from ..errors import NotFoundError, ValidationError
from ..filters.compiler import compile_filters
from ..filters.sql import AttributeSource, apply_predicate
from ..schemas.attributes import Attributes
from ..schemas.firmware import ComponentFirmwareVersion
from ..schemas.firmware_set import ComponentFirmwareSet, ComponentFirmwareSetPayload
from ..schemas.params import ComponentFirmwareSetListParams
from ..schemas.primitives import Clock, is_nil_uuid, parse_uuid, utc_now
from .attributes import AttributeStore, OwnerKind, OwnerRef
from .firmware import FirmwareVersionService
from .pagination import default_order_by, paginate

logger = structlog.get_logger()

FIRMWARE_SET_ATTRIBUTES = AttributeSource(
    model=AttributeModel,
    owner_key="firmware_set_id",
    owner_id=ComponentFirmwareSetModel.id,
)


@dataclass(frozen=True)
class FirmwareSetCreate:
    """A create request that passed every check not needing the store."""

    name: str
    firmware_ids: Tuple[str, ...]
    metadata: Any = None
    attributes: Tuple[Attributes, ...] = ()


@dataclass(frozen=True)
class FirmwareSetUpdate:
    set_id: str
    name: Optional[str] = None
    firmware_ids: Tuple[str, ...] = ()
    metadata: Any = None
    update_metadata: bool = False
    attributes: Tuple[Attributes, ...] = field(default_factory=tuple)


def parse_firmware_uuids(values: Sequence[str]) -> List[str]:
    """Canonicalize firmware UUIDs, failing on the first one that does not parse."""
    parsed = []
    for value in values:
        firmware_id = parse_uuid(value)
        if firmware_id is None:
            raise ValidationError(f"invalid firmware UUID: {value}")
        parsed.append(str(firmware_id))
    return parsed


def validate_create_request(payload: ComponentFirmwareSetPayload) -> FirmwareSetCreate:
    """Run the create checks that need no database access."""
    name = (payload.name or "").strip()
    if not name:
        raise ValidationError("required attribute not set: Name")

    if not payload.component_firmware_uuids:
        raise ValidationError("expected one or more firmware UUIDs, got none")

    firmware_ids = parse_firmware_uuids(payload.component_firmware_uuids)
    if len(set(firmware_ids)) != len(firmware_ids):
        raise ValidationError(
            "a firmware set can only reference unique firmware versions"
        )

    return FirmwareSetCreate(
        name=name,
        firmware_ids=tuple(firmware_ids),
        metadata=payload.metadata,
        attributes=tuple(payload.attributes),
    )


def check_payload_set_id(set_id: str, payload_id: Optional[str]) -> None:
    """A set UUID carried in the body must name the same set as the path."""
    if payload_id is None:
        return
    if is_nil_uuid(payload_id):
        raise ValidationError("expected a valid firmware set ID in payload, got none")
    if str(parse_uuid(payload_id)) != str(parse_uuid(set_id)):
        raise ValidationError(
            f"firmware set ID in payload does not match: {payload_id}"
        )


def validate_update_request(
    set_id: Optional[str], payload: ComponentFirmwareSetPayload
) -> FirmwareSetUpdate:
    """Run the update checks that need no database access."""
    if is_nil_uuid(set_id):
        raise ValidationError("expected a valid firmware set ID, got none")
    check_payload_set_id(set_id, payload.id)

    name = None
    if payload.name is not None:
        name = payload.name.strip()
        if not name:
            raise ValidationError("required attribute not set: Name")

    return FirmwareSetUpdate(
        set_id=str(parse_uuid(set_id)),
        name=name,
        firmware_ids=tuple(parse_firmware_uuids(payload.component_firmware_uuids)),
        metadata=payload.metadata,
        update_metadata="metadata" in payload.model_fields_set,
        attributes=tuple(payload.attributes),
    )


class FirmwareSetManager:
    """Transactional create/update/delete and queries for firmware sets."""

    def __init__(self, db: Session, clock: Optional[Clock] = None):
        self.db = db
        self.clock = clock or utc_now
        self.attributes = AttributeStore(db, self.clock)
        self.firmware = FirmwareVersionService(db, self.clock)

    # -- helpers -------------------------------------------------------------

    def _find(self, set_id: str) -> Optional[ComponentFirmwareSetModel]:
        return (
            self.db.query(ComponentFirmwareSetModel)
            .filter(ComponentFirmwareSetModel.id == set_id)
            .first()
        )

    def _require(self, set_id: Optional[str]) -> ComponentFirmwareSetModel:
        parsed = parse_uuid(set_id)
        firmware_set = self._find(str(parsed)) if parsed else None
        if firmware_set is None:
            raise NotFoundError("firmware set not found")
        return firmware_set

    def _member_ids(self, set_id: str) -> List[str]:
        rows = (
            self.db.query(ComponentFirmwareSetMapModel.firmware_id)
            .filter(ComponentFirmwareSetMapModel.firmware_set_id == set_id)
            .all()
        )
        return [row.firmware_id for row in rows]

    def _require_existing_firmware(self, firmware_ids: Sequence[str]) -> None:
        existing = self.firmware.existing_ids(firmware_ids)
        for firmware_id in firmware_ids:
            if firmware_id not in existing:
                raise ValidationError(f"firmware UUID does not exist: {firmware_id}")

    def _insert_membership(self, set_id: str, firmware_id: str) -> None:
        self.db.add(
            ComponentFirmwareSetMapModel(
                id=generate_uuid(),
                firmware_set_id=set_id,
                firmware_id=firmware_id,
                created_at=self.clock(),
            )
        )
        self.db.flush()

    def _firmware_by_set(
        self, set_ids: Sequence[str]
    ) -> Dict[str, List[ComponentFirmwareVersion]]:
        result: Dict[str, List[ComponentFirmwareVersion]] = {sid: [] for sid in set_ids}
        if not set_ids:
            return result

        rows = (
            self.db.query(
                ComponentFirmwareSetMapModel.firmware_set_id,
                ComponentFirmwareVersionModel,
            )
            .join(
                ComponentFirmwareVersionModel,
                ComponentFirmwareVersionModel.id == ComponentFirmwareSetMapModel.firmware_id,
            )
            .filter(ComponentFirmwareSetMapModel.firmware_set_id.in_(set_ids))
            .order_by(
                ComponentFirmwareVersionModel.vendor,
                ComponentFirmwareVersionModel.filename,
                ComponentFirmwareVersionModel.id,
            )
            .all()
        )
        for set_id, firmware in rows:
            result[set_id].append(ComponentFirmwareVersion.from_model(firmware))
        return result

    def _to_schemas(
        self, rows: Sequence[ComponentFirmwareSetModel]
    ) -> List[ComponentFirmwareSet]:
        ids = [row.id for row in rows]
        firmware = self._firmware_by_set(ids)
        attributes = self.attributes.all_for_owners(OwnerKind.FIRMWARE_SET, ids)
        return [
            ComponentFirmwareSet.from_model(
                row,
                firmware=firmware[row.id],
                attributes=[Attributes.from_model(a) for a in attributes[row.id].attributes],
            )
            for row in rows
        ]

    # -- operations ----------------------------------------------------------

    def create(self, payload: ComponentFirmwareSetPayload) -> str:
        """Create a firmware set and its membership; returns the new set id."""
        request = validate_create_request(payload)
        self._require_existing_firmware(request.firmware_ids)

        now = self.clock()
        firmware_set = ComponentFirmwareSetModel(
            id=generate_uuid(),
            name=request.name,
            metadata_=request.metadata,
            created_at=now,
            updated_at=now,
        )
        set_id = firmware_set.id

        with transaction(self.db):
            self.db.add(firmware_set)
            self.db.flush()

            for firmware_id in request.firmware_ids:
                self._insert_membership(set_id, firmware_id)

            self.attributes.upsert_attributes(
                OwnerRef.firmware_set(set_id), request.attributes
            )

        logger.info(
            "firmware_set_created",
            firmware_set_id=set_id,
            name=request.name,
            firmware_count=len(request.firmware_ids),
        )
        return set_id

    def update(self, set_id: Optional[str], payload: ComponentFirmwareSetPayload) -> str:
        """Update name, metadata and attributes; add any new firmware members."""
        request = validate_update_request(set_id, payload)
        firmware_set = self._require(request.set_id)

        members = set(self._member_ids(firmware_set.id))
        for firmware_id in request.firmware_ids:
            if firmware_id in members:
                raise ValidationError(f"{firmware_id} already exists in firmware set")
            members.add(firmware_id)
        self._require_existing_firmware(request.firmware_ids)

        with transaction(self.db):
            if request.name is not None:
                firmware_set.name = request.name
            if request.update_metadata:
                firmware_set.metadata_ = request.metadata
            firmware_set.updated_at = self.clock()

            for firmware_id in request.firmware_ids:
                self._insert_membership(firmware_set.id, firmware_id)

            self.attributes.upsert_attributes(
                OwnerRef.firmware_set(firmware_set.id), request.attributes
            )

        logger.info(
            "firmware_set_updated",
            firmware_set_id=request.set_id,
            firmware_added=len(request.firmware_ids),
        )
        return request.set_id

    def remove_firmware(
        self,
        set_id: Optional[str],
        firmware_uuids: Sequence[str],
        payload_id: Optional[str] = None,
    ) -> str:
        """Drop the given firmware versions from the set, leaving all else intact."""
        if is_nil_uuid(set_id):
            raise ValidationError("expected a valid firmware set UUID")
        check_payload_set_id(set_id, payload_id)
        firmware_set = self._require(set_id)

        if not firmware_uuids:
            raise ValidationError("expected one or more firmware UUIDs, got none")
        firmware_ids = parse_firmware_uuids(firmware_uuids)

        members = set(self._member_ids(firmware_set.id))
        for firmware_id in firmware_ids:
            if firmware_id not in members:
                raise ValidationError(f"set does not contain firmware {firmware_id}")

        with transaction(self.db):
            (
                self.db.query(ComponentFirmwareSetMapModel)
                .filter(
                    ComponentFirmwareSetMapModel.firmware_set_id == firmware_set.id,
                    ComponentFirmwareSetMapModel.firmware_id.in_(firmware_ids),
                )
                .delete(synchronize_session=False)
            )
            firmware_set.updated_at = self.clock()

        logger.info(
            "firmware_set_firmware_removed",
            firmware_set_id=firmware_set.id,
            firmware_removed=len(firmware_ids),
        )
        return firmware_set.id

    def delete(self, set_id: Optional[str]) -> None:
        """Delete the set and all of its membership rows."""
        firmware_set = self._require(set_id)
        deleted_id = firmware_set.id

        with transaction(self.db):
            (
                self.db.query(ComponentFirmwareSetMapModel)
                .filter(ComponentFirmwareSetMapModel.firmware_set_id == deleted_id)
                .delete(synchronize_session=False)
            )
            self.db.delete(firmware_set)

        logger.info("firmware_set_deleted", firmware_set_id=deleted_id)

    def get(self, set_id: Optional[str]) -> ComponentFirmwareSet:
        """Get a firmware set with its firmware versions and attributes."""
        return self._to_schemas([self._require(set_id)])[0]

    def list(
        self, params: Optional[ComponentFirmwareSetListParams] = None
    ) -> Tuple[List[ComponentFirmwareSet], int]:
        """List firmware sets matching a name and the set's attribute filters."""
        params = params or ComponentFirmwareSetListParams()
        query = self.db.query(ComponentFirmwareSetModel)

        if params.name:
            query = query.filter(ComponentFirmwareSetModel.name == params.name)

        query = apply_predicate(
            query,
            compile_filters(params.attributes),
            FIRMWARE_SET_ATTRIBUTES,
            self.db.get_bind().dialect.name,
        )

        rows, total = paginate(
            query,
            params.pagination,
            order_by=default_order_by(ComponentFirmwareSetModel),
        )
        return self._to_schemas(rows), total
