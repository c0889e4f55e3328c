"""
Attribute storage.

Two retention policies live side by side:

- latest attributes: one row per (owner, namespace); a write replaces the
  stored document.
- versioned attributes: every write appends a row; the current value of a
  namespace is the row with the greatest ``reported_at`` (ties broken by
  ``created_at``, then ``tally``, newest first).

The store never commits. Callers run it inside ``db.base.transaction`` so
attribute writes land together with the owning entity's writes.
"""

import json
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Sequence

import structlog
from sqlalchemy import func, select
from sqlalchemy.orm import Session, aliased

from ..db.models import AttributeModel, VersionedAttributeModel, generate_uuid
from ..errors import NotFoundError, ValidationError
from ..schemas.attributes import Attributes, VersionedAttributes
from ..schemas.primitives import Clock, as_utc, utc_now

logger = structlog.get_logger()


class OwnerKind(str, Enum):
    """Entity kinds that can own attributes."""

    SERVER = "server"
    SERVER_COMPONENT = "server_component"
    FIRMWARE_SET = "firmware_set"


# owner kind -> owner column on the attribute tables
ATTRIBUTE_OWNER_COLUMNS = {
    OwnerKind.SERVER: "server_id",
    OwnerKind.SERVER_COMPONENT: "server_component_id",
    OwnerKind.FIRMWARE_SET: "firmware_set_id",
}

VERSIONED_OWNER_COLUMNS = {
    OwnerKind.SERVER: "server_id",
    OwnerKind.SERVER_COMPONENT: "server_component_id",
}


@dataclass(frozen=True)
class OwnerRef:
    """Explicit reference to the entity owning a set of attributes."""

    kind: OwnerKind
    id: str

    @classmethod
    def server(cls, server_id: str) -> "OwnerRef":
        return cls(OwnerKind.SERVER, server_id)

    @classmethod
    def server_component(cls, component_id: str) -> "OwnerRef":
        return cls(OwnerKind.SERVER_COMPONENT, component_id)

    @classmethod
    def firmware_set(cls, firmware_set_id: str) -> "OwnerRef":
        return cls(OwnerKind.FIRMWARE_SET, firmware_set_id)


@dataclass
class OwnerAttributes:
    """Attributes of one owner plus the latest versioned row per namespace."""

    attributes: List[AttributeModel] = field(default_factory=list)
    versioned_attributes: List[VersionedAttributeModel] = field(default_factory=list)

    def to_schemas(self):
        return (
            [Attributes.from_model(row) for row in self.attributes],
            [VersionedAttributes.from_model(row) for row in self.versioned_attributes],
        )


def ensure_json(data: Any) -> Any:
    """Return ``data`` as a JSON-compatible value or raise ``ValidationError``.

    Raw ``bytes`` are treated as an encoded JSON document and decoded. Any
    other value must already be serializable as strict JSON.
    """
    if isinstance(data, (bytes, bytearray)):
        try:
            return json.loads(data)
        except ValueError as e:
            raise ValidationError(f"attribute data is not valid JSON: {e}") from e

    try:
        json.dumps(data, allow_nan=False)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"attribute data is not valid JSON: {e}") from e
    return data


def _require_namespace(namespace: Optional[str]) -> str:
    namespace = (namespace or "").strip()
    if not namespace:
        raise ValidationError("attribute namespace is required")
    return namespace


class AttributeStore:
    """Namespace-scoped attribute reads and writes keyed by owner."""

    def __init__(self, db: Session, clock: Optional[Clock] = None):
        self.db = db
        self.clock = clock or utc_now

    # -- latest attributes ---------------------------------------------------

    def _attribute_column(self, owner: OwnerRef):
        return getattr(AttributeModel, ATTRIBUTE_OWNER_COLUMNS[owner.kind])

    def get_attribute(self, owner: OwnerRef, namespace: str) -> Optional[AttributeModel]:
        """Get the attribute stored under ``namespace``, if any."""
        return (
            self.db.query(AttributeModel)
            .filter(
                self._attribute_column(owner) == owner.id,
                AttributeModel.namespace == namespace,
            )
            .first()
        )

    def list_attributes(self, owner: OwnerRef) -> List[AttributeModel]:
        return (
            self.db.query(AttributeModel)
            .filter(self._attribute_column(owner) == owner.id)
            .order_by(AttributeModel.namespace)
            .all()
        )

    def upsert_attribute(self, owner: OwnerRef, namespace: str, data: Any) -> AttributeModel:
        """Replace the document in ``namespace`` or insert it when absent."""
        namespace = _require_namespace(namespace)
        data = ensure_json(data)
        now = self.clock()

        row = self.get_attribute(owner, namespace)
        if row is None:
            row = AttributeModel(
                id=generate_uuid(),
                namespace=namespace,
                data=data,
                created_at=now,
                updated_at=now,
                **{ATTRIBUTE_OWNER_COLUMNS[owner.kind]: owner.id},
            )
            self.db.add(row)
        else:
            row.data = data
            row.updated_at = now

        self.db.flush()
        logger.debug(
            "attribute_upserted",
            owner_kind=owner.kind.value,
            owner_id=owner.id,
            namespace=namespace,
        )
        return row

    def upsert_attributes(
        self, owner: OwnerRef, items: Iterable[Attributes]
    ) -> List[AttributeModel]:
        """Upsert several namespaces for one owner."""
        return [self.upsert_attribute(owner, item.namespace, item.data) for item in items]

    def delete_attribute(self, owner: OwnerRef, namespace: str) -> None:
        row = self.get_attribute(owner, namespace)
        if row is None:
            raise NotFoundError(f"attribute namespace not found: {namespace}")
        self.db.delete(row)
        self.db.flush()

    # -- versioned attributes ------------------------------------------------

    def _versioned_column(self, owner: OwnerRef):
        column = VERSIONED_OWNER_COLUMNS.get(owner.kind)
        if column is None:
            raise ValidationError(
                f"versioned attributes are not supported for {owner.kind.value}"
            )
        return getattr(VersionedAttributeModel, column)

    def append_versioned_attribute(
        self,
        owner: OwnerRef,
        namespace: str,
        data: Any,
        reported_at: Optional[datetime] = None,
    ) -> VersionedAttributeModel:
        """Append an observation; earlier rows in the namespace are kept."""
        column = self._versioned_column(owner)
        namespace = _require_namespace(namespace)
        data = ensure_json(data)
        now = self.clock()

        last_tally = (
            self.db.query(func.max(VersionedAttributeModel.tally))
            .filter(column == owner.id, VersionedAttributeModel.namespace == namespace)
            .scalar()
        )

        row = VersionedAttributeModel(
            id=generate_uuid(),
            namespace=namespace,
            data=data,
            tally=(last_tally or 0) + 1,
            reported_at=as_utc(reported_at or now),
            created_at=now,
            **{VERSIONED_OWNER_COLUMNS[owner.kind]: owner.id},
        )
        self.db.add(row)
        self.db.flush()
        return row

    def append_versioned_attributes(
        self, owner: OwnerRef, items: Iterable[VersionedAttributes]
    ) -> List[VersionedAttributeModel]:
        return [
            self.append_versioned_attribute(
                owner, item.namespace, item.data, item.reported_at
            )
            for item in items
        ]

    def latest_versioned(
        self, owner: OwnerRef, namespace: str
    ) -> Optional[VersionedAttributeModel]:
        """Most recently reported row in ``namespace``; None when there is none."""
        return (
            self.db.query(VersionedAttributeModel)
            .filter(
                self._versioned_column(owner) == owner.id,
                VersionedAttributeModel.namespace == namespace,
            )
            .order_by(
                VersionedAttributeModel.reported_at.desc(),
                VersionedAttributeModel.created_at.desc(),
                VersionedAttributeModel.tally.desc(),
            )
            .first()
        )

    def versioned_history(
        self, owner: OwnerRef, namespace: str
    ) -> List[VersionedAttributeModel]:
        """Full history of ``namespace``, newest report first."""
        return (
            self.db.query(VersionedAttributeModel)
            .filter(
                self._versioned_column(owner) == owner.id,
                VersionedAttributeModel.namespace == namespace,
            )
            .order_by(
                VersionedAttributeModel.reported_at.desc(),
                VersionedAttributeModel.created_at.desc(),
                VersionedAttributeModel.tally.desc(),
            )
            .all()
        )

    def _latest_versioned_for(
        self, kind: OwnerKind, owner_ids: Sequence[str]
    ) -> List[VersionedAttributeModel]:
        column_name = VERSIONED_OWNER_COLUMNS.get(kind)
        if column_name is None or not owner_ids:
            return []

        owner_column = getattr(VersionedAttributeModel, column_name)
        rank = (
            func.row_number()
            .over(
                partition_by=(owner_column, VersionedAttributeModel.namespace),
                order_by=(
                    VersionedAttributeModel.reported_at.desc(),
                    VersionedAttributeModel.created_at.desc(),
                    VersionedAttributeModel.tally.desc(),
                ),
            )
            .label("rank")
        )
        ranked = (
            select(VersionedAttributeModel, rank)
            .where(owner_column.in_(owner_ids))
            .subquery()
        )
        latest = aliased(VersionedAttributeModel, ranked)
        return (
            self.db.query(latest)
            .filter(ranked.c.rank == 1)
            .order_by(latest.namespace)
            .all()
        )

    # -- per-owner views -----------------------------------------------------

    def all_for_owners(
        self, kind: OwnerKind, owner_ids: Sequence[str]
    ) -> Dict[str, OwnerAttributes]:
        """Attributes and latest versioned rows for many owners of one kind."""
        result = {owner_id: OwnerAttributes() for owner_id in owner_ids}
        if not owner_ids:
            return result

        attribute_column_name = ATTRIBUTE_OWNER_COLUMNS[kind]
        attribute_column = getattr(AttributeModel, attribute_column_name)
        attributes = (
            self.db.query(AttributeModel)
            .filter(attribute_column.in_(owner_ids))
            .order_by(AttributeModel.namespace)
            .all()
        )
        for row in attributes:
            result[getattr(row, attribute_column_name)].attributes.append(row)

        versioned_column_name = VERSIONED_OWNER_COLUMNS.get(kind)
        for row in self._latest_versioned_for(kind, owner_ids):
            result[getattr(row, versioned_column_name)].versioned_attributes.append(row)

        return result

    def all_for_owner(self, owner: OwnerRef) -> OwnerAttributes:
        """All latest attributes and only the newest versioned row per namespace."""
        return self.all_for_owners(owner.kind, [owner.id])[owner.id]
