"""
Ordering resolver.

Builds a comparator chain from an ordered list of ``ViewOrdering`` clauses:
the first clause is the primary key, every later clause only breaks ties left
by the ones before it. ``None`` values sort before any other value.
"""

from __future__ import annotations

from functools import cmp_to_key
from typing import Any, Iterable, List, Sequence, Tuple, Type

from ..registry import describe
from ..schemas.view import OrderDirection, ViewOrdering


class RecordComparator:
    """Comparator chain over record properties."""

    def __init__(self, keys: Sequence[Tuple[str, bool]]) -> None:
        self.keys: Tuple[Tuple[str, bool], ...] = tuple(keys)

    @property
    def is_identity(self) -> bool:
        return not self.keys

    @staticmethod
    def _compare_values(left: Any, right: Any) -> int:
        if left is None or right is None:
            return (left is not None) - (right is not None)
        return (left > right) - (left < right)

    def compare(self, left: Any, right: Any) -> int:
        for name, descending in self.keys:
            result = self._compare_values(getattr(left, name), getattr(right, name))
            if result:
                return -result if descending else result
        return 0

    def sort(self, records: Iterable[Any]) -> List[Any]:
        """Return ``records`` arranged by the chain; identity keeps the input order."""
        if self.is_identity:
            return list(records)
        return sorted(records, key=cmp_to_key(self.compare))


def resolve_ordering(orderings: Sequence[ViewOrdering], model: Type[Any]) -> RecordComparator:
    """Resolve ordering clauses against ``model``.

    Raises:
        UnknownPropertyError: When a clause names a property ``model`` doesn't declare.
    """
    descriptor = describe(model)
    keys = []
    for ordering in orderings:
        descriptor.column(ordering.property)
        keys.append((ordering.property, ordering.direction is OrderDirection.DESCENDING))
    return RecordComparator(keys)
