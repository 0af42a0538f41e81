"""
Pagination calculator.

Pure page-window arithmetic: given the number of matching records, the
requested page and the page range, compute where the window starts, how many
records it holds and how many pages exist.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..errors import InvalidPaginationError


@dataclass(frozen=True)
class Pagination:
    """Page window over a result set.

    ``length`` is ``None`` for an unbounded (export) window.
    """

    start: int
    length: Optional[int]
    pages: int
    count: int

    @property
    def is_unbounded(self) -> bool:
        return self.length is None

    def apply(self, stmt):
        """Restrict a select statement to this window."""
        if self.is_unbounded:
            return stmt
        return stmt.offset(self.start).limit(self.length)


def paginate(total_count: int, page: int, page_range: int, export: bool = False) -> Pagination:
    """Calculate the window for ``page``.

    Args:
        total_count: Number of records matching the query
        page: 1-based page number
        page_range: Records per page
        export: Return the whole result set as a single page

    Returns:
        The window; pages past the last one yield an empty window

    Raises:
        InvalidPaginationError: When ``page_range <= 0``, ``page < 1`` or ``total_count < 0``
    """
    if total_count < 0:
        raise InvalidPaginationError(f"Total count must not be negative, got {total_count}")
    if export:
        return Pagination(start=0, length=None, pages=1, count=total_count)
    if page_range <= 0:
        raise InvalidPaginationError(f"Page range must be greater than 0, got {page_range}")
    if page < 1:
        raise InvalidPaginationError(f"Page must be 1 or greater, got {page}")

    pages, remainder = divmod(total_count, page_range)
    if remainder > 0:
        pages += 1

    start = page_range * (page - 1)
    length = max(0, min(page_range, total_count - start))
    return Pagination(start=start, length=length, pages=pages, count=total_count)
