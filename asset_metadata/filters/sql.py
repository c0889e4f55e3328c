"""
SQLAlchemy backend for attribute predicates.

Each leaf predicate becomes a correlated EXISTS over the owner's attribute
rows, so filtering never multiplies owner rows and the same expression
serves both the page query and the count query.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Sequence

from sqlalchemy import String, Text, and_, case, cast, func, or_, select
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Query, aliased

from .compiler import And, Equals, HasPath, NamespaceExists, Or, Predicate


@dataclass(frozen=True)
class AttributeSource:
    """Where an owner entity keeps its attribute rows.

    ``owner_key`` names the owner column on ``model`` and ``owner_id`` is the
    owner's primary key column in the outer query. ``latest_only`` restricts
    matching to the most recent row per namespace of a versioned table.
    """

    model: Any
    owner_key: str
    owner_id: Any
    latest_only: bool = False


def sqlite_json_path(path: Sequence[str]) -> str:
    """Render key segments as an SQLite JSON path, e.g. ``$."a"."b"``."""
    return "$" + "".join('."%s"' % segment for segment in path)


class SQLPredicateBuilder:
    """Translate a predicate tree into a SQLAlchemy boolean expression."""

    def __init__(self, source: AttributeSource, dialect: str = "sqlite"):
        self.source = source
        self.dialect = dialect

    def build(self, node: Predicate):
        if isinstance(node, And):
            return and_(*(self.build(child) for child in node.nodes))
        if isinstance(node, Or):
            return or_(*(self.build(child) for child in node.nodes))
        if isinstance(node, NamespaceExists):
            return self._rows(node.namespace).exists()
        if isinstance(node, HasPath):
            return self._rows(node.namespace).where(self._has_path(node.path)).exists()
        if isinstance(node, Equals):
            return (
                self._rows(node.namespace)
                .where(self._equals(node.path, node.value))
                .exists()
            )
        raise TypeError(f"unknown predicate node: {node!r}")

    def _rows(self, namespace: str):
        model = self.source.model
        owner_column = getattr(model, self.source.owner_key)
        stmt = select(model.id).where(
            owner_column == self.source.owner_id,
            model.namespace == namespace,
        )
        if self.source.latest_only:
            stmt = stmt.where(model.id == self._latest_id())
        return stmt

    def _latest_id(self):
        model = self.source.model
        newer = aliased(model)
        return (
            select(newer.id)
            .where(
                getattr(newer, self.source.owner_key)
                == getattr(model, self.source.owner_key),
                newer.namespace == model.namespace,
            )
            .order_by(
                newer.reported_at.desc(),
                newer.created_at.desc(),
                newer.tally.desc(),
            )
            .limit(1)
            .scalar_subquery()
        )

    def _has_path(self, path):
        data = self.source.model.data
        if self.dialect == "sqlite":
            return func.json_type(data, sqlite_json_path(path)).is_not(None)
        return data[tuple(path)].is_not(None)

    def _equals(self, path, value: str):
        data = self.source.model.data
        if self.dialect == "sqlite":
            # json_each yields the scalar itself, or each element of an array
            elements = func.json_each(data, sqlite_json_path(path)).table_valued(
                "value", "type"
            )
            # booleans come back as 1/0; their type column spells true/false
            rendered = case(
                (elements.c.type.in_(("true", "false")), elements.c.type),
                else_=cast(elements.c.value, String),
            )
            return and_(
                func.json_type(data, sqlite_json_path(path)) != "object",
                select(elements.c.value)
                .select_from(elements)
                .where(rendered == value)
                .exists(),
            )
        if self.dialect == "postgresql":
            return or_(
                data[tuple(path)].as_string() == value,
                cast(data, JSONB)[tuple(path)].contains(
                    func.to_jsonb(cast(value, Text))
                ),
            )
        return data[tuple(path)].as_string() == value


def apply_predicate(
    query: Query,
    predicate: Optional[Predicate],
    source: AttributeSource,
    dialect: str,
) -> Query:
    """Filter ``query`` by ``predicate``; a missing predicate matches all."""
    if predicate is None:
        return query
    return query.filter(SQLPredicateBuilder(source, dialect).build(predicate))
