"""
Pagination parameters.
"""

from __future__ import annotations

from pydantic import BaseModel

DEFAULT_PAGE_LIMIT = 100
MAX_PAGE_LIMIT = 1000
# keeps the row offset within a signed 64-bit integer at any page size
MAX_PAGE = 2**31 - 1


class PaginationParams(BaseModel):
    """1-indexed page and page size as requested by the caller.

    Use ``normalized()`` before slicing: zero or negative limits fall back to
    the default, oversized limits are clamped and the page is kept between 1
    and ``MAX_PAGE``.
    """

    page: int = 1
    limit: int = 0

    def normalized(
        self,
        default_limit: int = DEFAULT_PAGE_LIMIT,
        max_limit: int = MAX_PAGE_LIMIT,
    ) -> "PaginationParams":
        limit = self.limit if self.limit > 0 else default_limit
        page = min(max(self.page, 1), MAX_PAGE)
        return PaginationParams(page=page, limit=min(limit, max_limit))

    @property
    def offset(self) -> int:
        return (max(self.page, 1) - 1) * max(self.limit, 0)
