"""
Server service.

Servers are soft deleted: ``delete`` stamps ``deleted_at`` and the row then
disappears from get and list unless deleted rows are asked for explicitly.
Per-server attribute reads and writes also live here so that each write is
checked against a live server first.
"""

from datetime import datetime
from typing import Any, List, Optional, Tuple

import structlog
from sqlalchemy.orm import Session

from ..db.base import transaction
from ..db.models import (
    AttributeModel,
    ComponentFirmwareSetModel,
    ServerModel,
    VersionedAttributeModel,
    generate_uuid,
)
from ..errors import ConflictError, NotFoundError, ValidationError
from ..filters.compiler import compile_filters
from ..filters.sql import AttributeSource, apply_predicate
from ..schemas.attributes import Attributes, VersionedAttributes
from ..schemas.params import ServerListParams
from ..schemas.primitives import Clock, parse_uuid, utc_now
from ..schemas.server import Server, ServerPayload
from .attributes import AttributeStore, OwnerKind, OwnerRef
from .components import ServerComponentService
from .pagination import default_order_by, paginate

logger = structlog.get_logger()

SERVER_ATTRIBUTES = AttributeSource(
    model=AttributeModel,
    owner_key="server_id",
    owner_id=ServerModel.id,
)

SERVER_VERSIONED_ATTRIBUTES = AttributeSource(
    model=VersionedAttributeModel,
    owner_key="server_id",
    owner_id=ServerModel.id,
    latest_only=True,
)


class ServerService:
    """Service for managing servers and their attributes."""

    def __init__(self, db: Session, clock: Optional[Clock] = None):
        self.db = db
        self.clock = clock or utc_now
        self.attributes = AttributeStore(db, self.clock)
        self.components = ServerComponentService(db, self.clock)

    def find(
        self, server_id: str, include_deleted: bool = False
    ) -> Optional[ServerModel]:
        parsed = parse_uuid(server_id)
        if parsed is None:
            return None
        query = self.db.query(ServerModel).filter(ServerModel.id == str(parsed))
        if not include_deleted:
            query = query.filter(ServerModel.deleted_at.is_(None))
        return query.first()

    def _require(self, server_id: str, include_deleted: bool = False) -> ServerModel:
        server = self.find(server_id, include_deleted=include_deleted)
        if server is None:
            raise NotFoundError("server not found")
        return server

    def _firmware_set_id(self, value: Optional[str]) -> Optional[str]:
        if not value:
            return None
        parsed = parse_uuid(value)
        if parsed is None:
            raise ValidationError(f"invalid firmware set UUID: {value}")
        exists = (
            self.db.query(ComponentFirmwareSetModel.id)
            .filter(ComponentFirmwareSetModel.id == str(parsed))
            .first()
        )
        if exists is None:
            raise ValidationError(f"firmware set UUID does not exist: {value}")
        return str(parsed)

    def _write_attributes(self, server_id: str, payload: ServerPayload) -> None:
        owner = OwnerRef.server(server_id)
        self.attributes.upsert_attributes(owner, payload.attributes)
        self.attributes.append_versioned_attributes(owner, payload.versioned_attributes)

    def create(self, payload: ServerPayload) -> str:
        """Create a server with its attributes; returns the new id."""
        server_id = generate_uuid()
        if payload.id:
            parsed = parse_uuid(payload.id)
            if parsed is None:
                raise ValidationError(f"invalid server UUID: {payload.id}")
            server_id = str(parsed)
            if self.find(server_id, include_deleted=True) is not None:
                raise ConflictError(f"server {server_id} already exists")
        firmware_set_id = self._firmware_set_id(payload.firmware_set_uuid)

        now = self.clock()
        with transaction(self.db):
            self.db.add(
                ServerModel(
                    id=server_id,
                    name=payload.name,
                    facility_code=payload.facility,
                    firmware_set_id=firmware_set_id,
                    created_at=now,
                    updated_at=now,
                )
            )
            self.db.flush()
            self._write_attributes(server_id, payload)

        logger.info("server_created", server_id=server_id, facility=payload.facility)
        return server_id

    def get(self, server_id: str, include_deleted: bool = False) -> Server:
        """Get a server with attributes, latest versioned attributes and components."""
        return self._to_schemas([self._require(server_id, include_deleted)])[0]

    def list(
        self, params: Optional[ServerListParams] = None
    ) -> Tuple[List[Server], int]:
        """List servers with optional filtering."""
        params = params or ServerListParams()
        query = self.db.query(ServerModel)

        if not params.include_deleted:
            query = query.filter(ServerModel.deleted_at.is_(None))
        if params.name:
            query = query.filter(ServerModel.name == params.name)
        if params.facility:
            query = query.filter(ServerModel.facility_code == params.facility)

        dialect = self.db.get_bind().dialect.name
        query = apply_predicate(
            query, compile_filters(params.attributes), SERVER_ATTRIBUTES, dialect
        )
        query = apply_predicate(
            query,
            compile_filters(params.versioned_attributes),
            SERVER_VERSIONED_ATTRIBUTES,
            dialect,
        )

        rows, total = paginate(
            query, params.pagination, order_by=default_order_by(ServerModel)
        )
        return self._to_schemas(rows), total

    def update(self, server_id: str, payload: ServerPayload) -> str:
        """Update name, facility and firmware set; given fields only."""
        server = self._require(server_id)
        fields = payload.model_fields_set
        firmware_set_id = self._firmware_set_id(payload.firmware_set_uuid)

        with transaction(self.db):
            if "name" in fields:
                server.name = payload.name
            if "facility" in fields:
                server.facility_code = payload.facility
            if "firmware_set_uuid" in fields:
                server.firmware_set_id = firmware_set_id
            server.updated_at = self.clock()
            self._write_attributes(server.id, payload)

        logger.info("server_updated", server_id=server.id)
        return server.id

    def delete(self, server_id: str) -> None:
        """Soft delete: the row stays but is hidden from reads."""
        server = self._require(server_id)

        with transaction(self.db):
            server.deleted_at = self.clock()

        logger.info("server_deleted", server_id=server.id)

    def _to_schemas(self, rows: List[ServerModel]) -> List[Server]:
        ids = [row.id for row in rows]
        owned = self.attributes.all_for_owners(OwnerKind.SERVER, ids)
        components = self.components.for_servers(ids)
        servers = []
        for row in rows:
            attributes, versioned = owned[row.id].to_schemas()
            servers.append(
                Server.from_model(row, attributes, versioned, components[row.id])
            )
        return servers

    # -- attributes ----------------------------------------------------------

    def list_attributes(self, server_id: str) -> List[Attributes]:
        server = self._require(server_id)
        rows = self.attributes.list_attributes(OwnerRef.server(server.id))
        return [Attributes.from_model(row) for row in rows]

    def get_attribute(self, server_id: str, namespace: str) -> Attributes:
        server = self._require(server_id)
        row = self.attributes.get_attribute(OwnerRef.server(server.id), namespace)
        if row is None:
            raise NotFoundError(f"attribute namespace not found: {namespace}")
        return Attributes.from_model(row)

    def upsert_attribute(self, server_id: str, namespace: str, data: Any) -> Attributes:
        server = self._require(server_id)
        with transaction(self.db):
            row = self.attributes.upsert_attribute(
                OwnerRef.server(server.id), namespace, data
            )
            result = Attributes.from_model(row)

        logger.info("server_attribute_upserted", server_id=server.id, namespace=namespace)
        return result

    def delete_attribute(self, server_id: str, namespace: str) -> None:
        server = self._require(server_id)
        with transaction(self.db):
            self.attributes.delete_attribute(OwnerRef.server(server.id), namespace)

        logger.info("server_attribute_deleted", server_id=server.id, namespace=namespace)

    def latest_versioned_attributes(self, server_id: str) -> List[VersionedAttributes]:
        """Most recent report for every namespace of the server."""
        server = self._require(server_id)
        owned = self.attributes.all_for_owner(OwnerRef.server(server.id))
        return owned.to_schemas()[1]

    def append_versioned_attribute(
        self,
        server_id: str,
        namespace: str,
        data: Any,
        reported_at: Optional[datetime] = None,
    ) -> VersionedAttributes:
        server = self._require(server_id)
        with transaction(self.db):
            row = self.attributes.append_versioned_attribute(
                OwnerRef.server(server.id), namespace, data, reported_at
            )
            result = VersionedAttributes.from_model(row)

        logger.info(
            "server_versioned_attribute_appended",
            server_id=server.id,
            namespace=namespace,
            tally=result.tally,
        )
        return result

    def versioned_history(self, server_id: str, namespace: str) -> List[VersionedAttributes]:
        server = self._require(server_id)
        rows = self.attributes.versioned_history(OwnerRef.server(server.id), namespace)
        return [VersionedAttributes.from_model(row) for row in rows]
