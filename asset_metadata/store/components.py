"""
Server component service.
"""

from typing import Dict, List, Optional, Sequence, Tuple

import structlog
from sqlalchemy.orm import Query, Session

from ..db.base import transaction
from ..db.models import (
    AttributeModel,
    ServerComponentModel,
    ServerModel,
    VersionedAttributeModel,
    generate_uuid,
)
from ..errors import NotFoundError, ValidationError
from ..filters.compiler import compile_filters
from ..filters.sql import AttributeSource, apply_predicate
from ..schemas.params import ServerComponentListParams
from ..schemas.primitives import Clock, parse_uuid, utc_now
from ..schemas.server import ServerComponent, ServerComponentPayload
from .attributes import AttributeStore, OwnerKind, OwnerRef
from .pagination import default_order_by, paginate

logger = structlog.get_logger()

COMPONENT_ATTRIBUTES = AttributeSource(
    model=AttributeModel,
    owner_key="server_component_id",
    owner_id=ServerComponentModel.id,
)

COMPONENT_VERSIONED_ATTRIBUTES = AttributeSource(
    model=VersionedAttributeModel,
    owner_key="server_component_id",
    owner_id=ServerComponentModel.id,
    latest_only=True,
)


class ServerComponentService:
    """Service for managing the components installed in servers."""

    def __init__(self, db: Session, clock: Optional[Clock] = None):
        self.db = db
        self.clock = clock or utc_now
        self.attributes = AttributeStore(db, self.clock)

    def _require_server(self, server_id: str) -> ServerModel:
        parsed = parse_uuid(server_id)
        server = None
        if parsed is not None:
            server = (
                self.db.query(ServerModel)
                .filter(ServerModel.id == str(parsed), ServerModel.deleted_at.is_(None))
                .first()
            )
        if server is None:
            raise NotFoundError("server not found")
        return server

    def find(self, component_id: str) -> Optional[ServerComponentModel]:
        parsed = parse_uuid(component_id)
        if parsed is None:
            return None
        return (
            self.db.query(ServerComponentModel)
            .filter(ServerComponentModel.id == str(parsed))
            .first()
        )

    def _require(self, component_id: str) -> ServerComponentModel:
        row = self.find(component_id)
        if row is None:
            raise NotFoundError("server component not found")
        return row

    def _write_attributes(self, component_id: str, payload: ServerComponentPayload) -> None:
        owner = OwnerRef.server_component(component_id)
        self.attributes.upsert_attributes(owner, payload.attributes)
        self.attributes.append_versioned_attributes(owner, payload.versioned_attributes)

    def create(
        self, server_id: str, payloads: Sequence[ServerComponentPayload]
    ) -> List[str]:
        """Add components to a server in one transaction; returns the new ids.

        A repeated (component type, serial) on the same server is a conflict.
        """
        server = self._require_server(server_id)
        if not payloads:
            raise ValidationError("expected one or more server components, got none")

        now = self.clock()
        created = []
        with transaction(self.db):
            for payload in payloads:
                row = ServerComponentModel(
                    id=generate_uuid(),
                    server_id=server.id,
                    component_type=payload.component_type,
                    name=payload.name,
                    vendor=payload.vendor,
                    model=payload.model,
                    serial=payload.serial,
                    created_at=now,
                    updated_at=now,
                )
                self.db.add(row)
                self.db.flush()
                self._write_attributes(row.id, payload)
                created.append(row.id)

        logger.info(
            "server_components_created", server_id=server.id, count=len(created)
        )
        return created

    def get(self, component_id: str) -> ServerComponent:
        return self._to_schemas([self._require(component_id)])[0]

    def update(self, component_id: str, payload: ServerComponentPayload) -> str:
        row = self._require(component_id)

        with transaction(self.db):
            row.component_type = payload.component_type
            row.name = payload.name
            row.vendor = payload.vendor
            row.model = payload.model
            row.serial = payload.serial
            row.updated_at = self.clock()
            self.db.flush()
            self._write_attributes(row.id, payload)

        logger.info("server_component_updated", component_id=row.id)
        return row.id

    def delete(self, component_id: str) -> None:
        """Hard delete; the component's attributes go with it."""
        row = self._require(component_id)
        deleted_id = row.id

        with transaction(self.db):
            self.db.delete(row)

        logger.info("server_component_deleted", component_id=deleted_id)

    def _filtered(self, query: Query, params: ServerComponentListParams) -> Query:
        if params.name:
            query = query.filter(ServerComponentModel.name == params.name)
        if params.vendor:
            query = query.filter(ServerComponentModel.vendor == params.vendor)
        if params.model:
            query = query.filter(ServerComponentModel.model == params.model)
        if params.serial:
            query = query.filter(ServerComponentModel.serial == params.serial)
        if params.component_type:
            query = query.filter(
                ServerComponentModel.component_type == params.component_type
            )

        dialect = self.db.get_bind().dialect.name
        query = apply_predicate(
            query, compile_filters(params.attributes), COMPONENT_ATTRIBUTES, dialect
        )
        return apply_predicate(
            query,
            compile_filters(params.versioned_attributes),
            COMPONENT_VERSIONED_ATTRIBUTES,
            dialect,
        )

    def list(
        self,
        params: Optional[ServerComponentListParams] = None,
        server_id: Optional[str] = None,
    ) -> Tuple[List[ServerComponent], int]:
        """List components, optionally restricted to one live server."""
        params = params or ServerComponentListParams()
        query = self.db.query(ServerComponentModel)

        if server_id is not None:
            server = self._require_server(server_id)
            query = query.filter(ServerComponentModel.server_id == server.id)
        else:
            # components of soft-deleted servers stay hidden
            query = query.join(
                ServerModel, ServerModel.id == ServerComponentModel.server_id
            ).filter(ServerModel.deleted_at.is_(None))

        rows, total = paginate(
            self._filtered(query, params),
            params.pagination,
            order_by=default_order_by(ServerComponentModel),
        )
        return self._to_schemas(rows), total

    def for_servers(self, server_ids: Sequence[str]) -> Dict[str, List[ServerComponent]]:
        """All components of each server, keyed by server id."""
        result: Dict[str, List[ServerComponent]] = {sid: [] for sid in server_ids}
        if not server_ids:
            return result

        rows = (
            self.db.query(ServerComponentModel)
            .filter(ServerComponentModel.server_id.in_(server_ids))
            .order_by(
                ServerComponentModel.component_type,
                ServerComponentModel.serial,
            )
            .all()
        )
        for component in self._to_schemas(rows):
            result[component.server_uuid].append(component)
        return result

    def _to_schemas(
        self, rows: Sequence[ServerComponentModel]
    ) -> List[ServerComponent]:
        owned = self.attributes.all_for_owners(
            OwnerKind.SERVER_COMPONENT, [row.id for row in rows]
        )
        components = []
        for row in rows:
            attributes, versioned = owned[row.id].to_schemas()
            components.append(ServerComponent.from_model(row, attributes, versioned))
        return components
