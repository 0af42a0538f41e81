"""
Depot request/response models.

- filters: tagged filter nodes (property, date, logical)
- view: view request and page output
- operations: filtered read/delete, update and query hook inputs
"""

from .base import BaseSchema
from .filters import DateFilter, FilterNode, FilterOperator, LeafFilter, LogicalFilter, LogicalOperator, PropertyFilter
from .operations import FilteringBehavior, FilterInput, FilterSpec, QueryHooks, QueryProcessor, UpdateInput, UpdateOutput
from .view import OrderDirection, ViewInput, ViewOrdering, ViewOutput

__all__ = [
    "BaseSchema",
    "DateFilter",
    "FilterInput",
    "FilterNode",
    "FilterOperator",
    "FilterSpec",
    "FilteringBehavior",
    "LeafFilter",
    "LogicalFilter",
    "LogicalOperator",
    "OrderDirection",
    "PropertyFilter",
    "QueryHooks",
    "QueryProcessor",
    "UpdateInput",
    "UpdateOutput",
    "ViewInput",
    "ViewOrdering",
    "ViewOutput",
]
