"""
Attribute filter compiler.

Turns an ordered list of filter clauses into a predicate tree. The tree only
describes what to match; ``filters.sql`` decides how a storage engine
evaluates it.

Grouping rules:
- A clause whose attribute operator is OR joins the group of the clause
  immediately before it.
- A clause with AND (the default, and always the case for the first clause)
  starts a new group.
- Members of a group are OR'ed; groups are AND'ed.

So ``[A, B(OR), C]`` compiles to ``(A OR B) AND C`` and ``[A, B]`` to
``A AND B``.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple, Union

from ..errors import ValidationError
from ..schemas.attributes import AttributeFilter

OPERATOR_EQUALS = "eq"
SUPPORTED_OPERATORS = frozenset({OPERATOR_EQUALS})

LOGICAL_AND = "AND"
LOGICAL_OR = "OR"


@dataclass(frozen=True)
class NamespaceExists:
    """The owner has an attribute row in ``namespace``."""

    namespace: str


@dataclass(frozen=True)
class HasPath:
    """The attribute document in ``namespace`` has a value at ``path``."""

    namespace: str
    path: Tuple[str, ...]


@dataclass(frozen=True)
class Equals:
    """The value at ``path`` equals ``value`` once rendered as a string.

    When the value at ``path`` is an array, any element may match.
    """

    namespace: str
    path: Tuple[str, ...]
    value: str


@dataclass(frozen=True)
class And:
    nodes: Tuple["Predicate", ...]


@dataclass(frozen=True)
class Or:
    nodes: Tuple["Predicate", ...]


Predicate = Union[NamespaceExists, HasPath, Equals, And, Or]


def normalize_value(value: Union[str, int, float, bool]) -> str:
    """Render a filter value the way JSON scalars compare as text."""
    if isinstance(value, bool):
        return json.dumps(value)
    return str(value)


def _split_keys(keys: Sequence[str]) -> Tuple[str, ...]:
    return tuple(key.strip() for key in keys if key and key.strip())


def compile_clause(clause: AttributeFilter) -> Predicate:
    """Compile one clause into a leaf predicate."""
    namespace = (clause.namespace or "").strip()
    path = _split_keys(clause.keys)
    has_value = clause.value is not None and clause.value != ""

    if not namespace:
        if path or has_value:
            raise ValidationError(
                "attribute filter requires a namespace when keys or a value are set"
            )
        raise ValidationError("attribute filter is empty: namespace required")

    for key in path:
        # key segments are quoted labels in the rendered JSON path
        if '"' in key:
            raise ValidationError(f"invalid attribute filter key: {key}")

    operator = (clause.operator or OPERATOR_EQUALS).strip().lower()
    if operator not in SUPPORTED_OPERATORS:
        raise ValidationError(
            f"unsupported attribute filter operator: {clause.operator}"
        )

    if not path:
        return NamespaceExists(namespace)
    if not has_value:
        return HasPath(namespace, path)
    return Equals(namespace, path, normalize_value(clause.value))


def _logical_operator(clause: AttributeFilter) -> str:
    op = (clause.attribute_operator or LOGICAL_AND).strip().upper()
    if op not in (LOGICAL_AND, LOGICAL_OR):
        raise ValidationError(
            f"unsupported attribute logical operator: {clause.attribute_operator}"
        )
    return op


def group_clauses(clauses: Sequence[AttributeFilter]) -> List[List[AttributeFilter]]:
    """Split clauses into OR-groups following the grouping rules above."""
    groups: List[List[AttributeFilter]] = []
    for clause in clauses:
        operator = _logical_operator(clause)
        if groups and operator == LOGICAL_OR:
            groups[-1].append(clause)
        else:
            groups.append([clause])
    return groups


def _combine(kind, nodes: List[Predicate]) -> Predicate:
    if len(nodes) == 1:
        return nodes[0]
    return kind(tuple(nodes))


def compile_filters(clauses: Optional[Sequence[AttributeFilter]]) -> Optional[Predicate]:
    """Compile clauses into a predicate; ``None`` means match everything."""
    if not clauses:
        return None

    groups = [
        _combine(Or, [compile_clause(clause) for clause in group])
        for group in group_clauses(clauses)
    ]
    return _combine(And, groups)
