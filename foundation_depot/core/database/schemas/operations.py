"""
Depot operation inputs and outputs.

These wrap live record instances (and optionally raw SQLAlchemy clauses), so
they are plain dataclasses rather than serializable schemas.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Generic, Optional, Sequence, TypeVar, Union

from sqlalchemy import ColumnElement

from .filters import DateFilter, LogicalFilter, PropertyFilter

RecordT = TypeVar("RecordT")

# Statement shaping callable: receives a select statement and returns the reshaped one.
QueryProcessor = Callable[[Any], Any]

FilterSpec = Union[PropertyFilter, DateFilter, LogicalFilter, Sequence[Union[PropertyFilter, DateFilter, LogicalFilter]], ColumnElement]


class FilteringBehavior(str, Enum):
    """Which matches a filtered read materializes."""

    FIRST = "First"
    LAST = "Last"
    ALL = "All"


@dataclass
class QueryHooks:
    """Optional statement processors wrapped around an operation's own query shaping."""

    pre: Optional[QueryProcessor] = None
    post: Optional[QueryProcessor] = None


@dataclass
class FilterInput:
    """Filtered read/delete request.

    ``filter`` may be a single filter node, a sequence of nodes (applied in
    ascending ``order``) or a ready-made SQLAlchemy boolean clause.
    """

    filter: FilterSpec
    behavior: FilteringBehavior = FilteringBehavior.ALL


@dataclass
class UpdateInput(Generic[RecordT]):
    """Update request; ``create`` allows the update to fall back to creating the record."""

    record: RecordT
    create: bool = False


@dataclass
class UpdateOutput(Generic[RecordT]):
    """Update result; ``original`` is ``None`` when the update created the record."""

    original: Optional[RecordT]
    updated: RecordT
    created: bool = field(init=False)

    def __post_init__(self) -> None:
        self.created = self.original is None
