"""
Query composition for depots.

- predicates: filter nodes -> SQLAlchemy boolean clauses
- ordering: ordering clauses -> record comparator chain
- pagination: page window arithmetic
"""

from .ordering import RecordComparator, resolve_ordering
from .pagination import Pagination, paginate
from .predicates import apply_filters, coerce_value, compose, compose_filters, resolve_property

__all__ = [
    "Pagination",
    "RecordComparator",
    "apply_filters",
    "coerce_value",
    "compose",
    "compose_filters",
    "paginate",
    "resolve_ordering",
    "resolve_property",
]
