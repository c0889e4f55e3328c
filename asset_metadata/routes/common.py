"""
Response envelopes shared by the routers.
"""

import math
from typing import Any, Dict, Sequence

from pydantic import BaseModel

from ..schemas.pagination import PaginationParams

RESOURCE_CREATED = "resource created"
RESOURCE_UPDATED = "resource updated"
RESOURCE_DELETED = "resource deleted"


def mutation_response(message: str, slug: str) -> Dict[str, Any]:
    return {"message": message, "slug": slug}


def list_response(
    records: Sequence[BaseModel], params: PaginationParams, total: int
) -> Dict[str, Any]:
    """Wrap one page of records with the paging counters."""
    params = params.normalized()
    return {
        "page": params.page,
        "page_size": params.limit,
        "page_count": len(records),
        "total_pages": math.ceil(total / params.limit),
        "total_record_count": total,
        "records": [record.model_dump(mode="json") for record in records],
    }
