"""
View request/response models.

A view is a filtered, paginated and ordered read. ``ViewInput`` is the
serializable request; ``ViewOutput`` wraps the materialized page.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Generic, List, Optional, TypeVar

from pydantic import Field

from ..base import utc_now
from .base import BaseSchema
from .filters import FilterNode

RecordT = TypeVar("RecordT")


class OrderDirection(str, Enum):
    ASCENDING = "Ascending"
    DESCENDING = "Descending"


class ViewOrdering(BaseSchema):
    """One sort key; the first ordering is primary, later ones break ties."""

    property: str = Field(min_length=1)
    direction: OrderDirection = OrderDirection.ASCENDING


class ViewInput(BaseSchema):
    """Parameters of a depot view."""

    page: int = Field(ge=1, description="1-based page to return")
    range: int = Field(gt=0, description="Records per page")
    retroactive: bool = Field(
        default=False,
        description="With a timestamp cutoff: True keeps records created at or before it, False at or after it",
    )
    timestamp: Optional[datetime] = Field(default=None, description="Creation timestamp cutoff")
    export: bool = Field(default=False, description="Bypass pagination and return every match")
    orderings: List[ViewOrdering] = Field(default_factory=list)
    filters: List[FilterNode] = Field(default_factory=list)


@dataclass
class ViewOutput(Generic[RecordT]):
    """A page of records produced by a view."""

    records: List[RecordT]
    page: int
    pages: int
    count: int
    timestamp: datetime = field(default_factory=utc_now)
    length: int = field(init=False)

    def __post_init__(self) -> None:
        self.length = len(self.records)
