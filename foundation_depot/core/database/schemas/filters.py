"""
Filter node schemas.

A filter node is one of three tagged variants, discriminated by ``kind``:

- ``property``: compare a (possibly dotted) property path against a value
- ``date``: keep records whose date property falls in ``[from, to]``
- ``logical``: fold a list of property/date filters with AND or OR

Every node carries an ``order``; when several nodes are applied to the same
query they run in ascending order, each one narrowing the result set.
These schemas are the serializable surface of the depot view/read requests.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, List, Literal, Optional, Union

from pydantic import Field

from .base import BaseSchema


class FilterOperator(str, Enum):
    """Comparison applied by a property filter."""

    EQUAL = "EQUAL"
    CONTAINS = "CONTAINS"
    LESS_THAN = "LESS_THAN"
    LESS_THAN_OR_EQUAL = "LESS_THAN_OR_EQUAL"
    GREATER_THAN = "GREATER_THAN"
    GREATER_THAN_OR_EQUAL = "GREATER_THAN_OR_EQUAL"


class LogicalOperator(str, Enum):
    """How a logical filter folds its sub-filters."""

    AND = "AND"
    OR = "OR"


class PropertyFilter(BaseSchema):
    kind: Literal["property"] = "property"
    order: int = 0
    property: str = Field(min_length=1, description="Property name, dotted for nested navigation (e.g. 'owner.name')")
    operator: FilterOperator
    value: Any = Field(default=None, description="Reference value the property is compared against")


class DateFilter(BaseSchema):
    kind: Literal["date"] = "date"
    order: int = 0
    property: str = Field(default="timestamp", min_length=1)
    from_: datetime = Field(alias="from", description="Inclusive lower bound")
    to: Optional[datetime] = Field(default=None, description="Inclusive upper bound")


LeafFilter = Annotated[Union[PropertyFilter, DateFilter], Field(discriminator="kind")]


class LogicalFilter(BaseSchema):
    kind: Literal["logical"] = "logical"
    order: int = 0
    operator: LogicalOperator
    filters: List[LeafFilter] = Field(default_factory=list)


FilterNode = Annotated[Union[PropertyFilter, DateFilter, LogicalFilter], Field(discriminator="kind")]
