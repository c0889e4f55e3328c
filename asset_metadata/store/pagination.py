"""
Pagination over filtered queries.

The total is counted on the filtered query before any ordering, offset or
limit is applied, so every page of one listing reports the same total.
"""

from typing import Any, List, Optional, Sequence, Tuple

from sqlalchemy import desc
from sqlalchemy.orm import Query

from ..schemas.pagination import PaginationParams


def default_order_by(model) -> Tuple[Any, ...]:
    """Newest first; the id breaks ties so page boundaries are stable."""
    return (desc(model.created_at), desc(model.id))


def paginate(
    query: Query,
    params: Optional[PaginationParams],
    order_by: Optional[Sequence[Any]] = None,
) -> Tuple[List[Any], int]:
    """Return ``(items, total_count)`` for one page of ``query``.

    ``params`` is normalized here, so callers may pass raw request values.
    """
    params = (params or PaginationParams()).normalized()

    total = query.order_by(None).count()

    if order_by:
        query = query.order_by(*order_by)

    items = query.offset(params.offset).limit(params.limit).all()
    return items, total
