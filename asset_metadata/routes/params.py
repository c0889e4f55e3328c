"""
Query-string decoding for list endpoints.

Attribute filters arrive as indexed groups::

    attr[0].namespace=sh.hollow.labels&attr[0].keys=model&attr[0].value=r640
    attr[1].namespace=sh.hollow.labels&attr[1].keys=vendor&attr[1].value=dell&attr[1].op=OR

``keys`` is a comma-delimited path into the JSON document and ``op`` joins
the clause to the one before it (AND or OR). Versioned attribute filters use
the ``ver_attr`` prefix. Unindexed ``attr.namespace=...`` fields are also
accepted; repeats are paired up by position and follow the indexed groups.
"""

import re
from typing import Dict, List, Mapping

from fastapi import Query, Request

from ..schemas.attributes import AttributeFilter
from ..schemas.pagination import MAX_PAGE, PaginationParams

ATTRIBUTE_PREFIX = "attr"
VERSIONED_ATTRIBUTE_PREFIX = "ver_attr"

_FILTER_FIELD = re.compile(
    r"^(?P<prefix>attr|ver_attr)(?:\[(?P<index>\d+)\])?"
    r"\.(?P<field>namespace|keys|operator|value|op)$"
)


def _to_filter(fields: Mapping[str, str]) -> AttributeFilter:
    keys = fields.get("keys") or ""
    return AttributeFilter(
        namespace=fields.get("namespace", ""),
        keys=[key for key in keys.split(",") if key],
        operator=fields.get("operator") or "eq",
        value=fields.get("value"),
        attribute_operator=fields.get("op") or "AND",
    )


def parse_attribute_filters(query_params, prefix: str = ATTRIBUTE_PREFIX) -> List[AttributeFilter]:
    """Decode the filter clauses carried under ``prefix``, in order."""
    indexed: Dict[int, Dict[str, str]] = {}
    positional: Dict[str, List[str]] = {}

    for key, value in query_params.multi_items():
        match = _FILTER_FIELD.match(key)
        if match is None or match.group("prefix") != prefix:
            continue
        field = match.group("field")
        if match.group("index") is None:
            positional.setdefault(field, []).append(value)
        else:
            indexed.setdefault(int(match.group("index")), {})[field] = value

    groups = [indexed[index] for index in sorted(indexed)]
    count = max((len(values) for values in positional.values()), default=0)
    for position in range(count):
        groups.append(
            {
                field: values[position]
                for field, values in positional.items()
                if position < len(values)
            }
        )
    return [_to_filter(group) for group in groups]


def attribute_filters(request: Request) -> List[AttributeFilter]:
    return parse_attribute_filters(request.query_params, ATTRIBUTE_PREFIX)


def versioned_attribute_filters(request: Request) -> List[AttributeFilter]:
    return parse_attribute_filters(request.query_params, VERSIONED_ATTRIBUTE_PREFIX)


def pagination_params(
    page: int = Query(1, le=MAX_PAGE, description="1-indexed page number"),
    limit: int = Query(0, description="Page size; 0 selects the default"),
) -> PaginationParams:
    return PaginationParams(page=page, limit=limit)
