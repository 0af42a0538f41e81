"""
Predicate composer.

Turns filter nodes into SQLAlchemy boolean clauses over a record type. The
store executes the clauses; this module only builds them.

Dotted property paths walk navigation edges: ``owner.name`` on a record with a
single ``owner`` edge becomes ``Record.owner.has(Owner.name == ...)``, while a
collection edge uses ``any()``.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Any, Iterable, List, Sequence, Tuple, Type, Union

from sqlalchemy import ColumnElement, String, TypeDecorator, and_, or_

from ..errors import ComposeError, UnknownPropertyError
from ..registry import NavigationEdge, RecordDescriptor, describe
from ..schemas.filters import DateFilter, FilterOperator, LogicalFilter, LogicalOperator, PropertyFilter

logger = logging.getLogger(__name__)

FilterNodeType = Union[PropertyFilter, DateFilter, LogicalFilter]

_ORDERABLE_TYPES: Tuple[type, ...] = (int, float, Decimal, datetime, date, time, str)
_TRUE_STRINGS = frozenset({"true", "1", "yes", "y", "on"})
_FALSE_STRINGS = frozenset({"false", "0", "no", "n", "off"})


class ResolvedProperty:
    """A property path resolved against a record type."""

    def __init__(self, model: type, path: str, edges: List[NavigationEdge], owner: RecordDescriptor, name: str) -> None:
        self.model = model
        self.path = path
        self.edges = edges
        self.owner = owner
        self.name = name
        self.column = owner.column(name)
        self.attribute = getattr(owner.model, name)

    @property
    def python_type(self) -> type:
        column_type = self.column.type
        # SQLModel wraps str fields in AutoString, a TypeDecorator without its own python_type
        if isinstance(column_type, TypeDecorator):
            column_type = column_type.impl_instance
        if isinstance(column_type, String):
            return str
        try:
            return column_type.python_type
        except NotImplementedError:
            return object

    def wrap(self, condition: ColumnElement) -> ColumnElement:
        """Lift a condition on the leaf property up through the navigation edges."""
        owners: List[type] = [self.model]
        for edge in self.edges[:-1]:
            owners.append(edge.target)
        for owner, edge in reversed(list(zip(owners, self.edges))):
            navigation = getattr(owner, edge.name)
            condition = navigation.any(condition) if edge.is_collection else navigation.has(condition)
        return condition


def resolve_property(model: Type[Any], path: str) -> ResolvedProperty:
    """Resolve a (possibly dotted) property path by successive member access.

    Raises:
        UnknownPropertyError: When a segment names nothing on its record type.
    """
    segments = path.strip().split(".")
    descriptor = describe(model)
    edges: List[NavigationEdge] = []
    for segment in segments[:-1]:
        edge = descriptor.edge(segment)
        if edge is None:
            raise UnknownPropertyError(segment, descriptor.name)
        edges.append(edge)
        descriptor = describe(edge.target)
    return ResolvedProperty(model, path, edges, descriptor, segments[-1])


def coerce_value(value: Any, target: type, path: str = "") -> Any:
    """Convert ``value`` to the property's python type.

    Raises:
        ComposeError: When the value can't be represented as ``target``.
    """
    if value is None or target is object:
        return value
    try:
        if target is bool:
            if isinstance(value, bool):
                return value
            if isinstance(value, str):
                lowered = value.strip().lower()
                if lowered in _TRUE_STRINGS:
                    return True
                if lowered in _FALSE_STRINGS:
                    return False
                raise ValueError(f"not a boolean literal: {value!r}")
            if isinstance(value, (int, float)):
                return bool(value)
            raise TypeError(type(value).__name__)
        if isinstance(value, target) and not (isinstance(value, bool) and target is not bool):
            return value
        if target is datetime:
            if isinstance(value, str):
                return datetime.fromisoformat(value)
            if isinstance(value, date):
                return datetime(value.year, value.month, value.day)
            raise TypeError(type(value).__name__)
        if target is date:
            if isinstance(value, datetime):
                return value.date()
            if isinstance(value, str):
                return date.fromisoformat(value)
            raise TypeError(type(value).__name__)
        if target is time and isinstance(value, str):
            return time.fromisoformat(value)
        if target is int:
            if isinstance(value, bool):
                raise TypeError("bool")
            if isinstance(value, float) and not value.is_integer():
                raise ValueError(f"{value} has a fractional part")
            return int(value)
        if target is Decimal:
            return Decimal(str(value))
        if isinstance(target, type) and issubclass(target, Enum):
            try:
                return target(value)
            except ValueError:
                return target[str(value)]
        if target is str:
            return value.value if isinstance(value, Enum) else str(value)
        return target(value)
    except (ValueError, TypeError, KeyError, ArithmeticError) as exc:
        raise ComposeError(
            f"Cannot convert value ({value!r}) to ({getattr(target, '__name__', target)}) for property ({path})"
        ) from exc


def _is_orderable(python_type: type) -> bool:
    if python_type is bool:
        return False
    return issubclass(python_type, _ORDERABLE_TYPES)


def compose_property(node: PropertyFilter, model: Type[Any]) -> ColumnElement:
    resolved = resolve_property(model, node.property)
    python_type = resolved.python_type
    attribute = resolved.attribute
    operator = node.operator

    if operator is FilterOperator.CONTAINS:
        if python_type is not str:
            raise ComposeError(
                f"Unsupported filter evaluation ({operator.value}) for non-string property ({node.property})"
            )
        if node.value is None:
            raise ComposeError(f"Filter ({operator.value}) on ({node.property}) requires a reference value")
        value = node.value.value if isinstance(node.value, Enum) else str(node.value)
        return resolved.wrap(attribute.contains(value, autoescape=True))

    if operator is FilterOperator.EQUAL:
        value = coerce_value(node.value, python_type, node.property)
        condition = attribute.is_(None) if value is None else attribute == value
        return resolved.wrap(condition)

    if not _is_orderable(python_type):
        raise ComposeError(
            f"Unsupported filter evaluation ({operator.value}) for unordered property ({node.property})"
        )
    if node.value is None:
        raise ComposeError(f"Filter ({operator.value}) on ({node.property}) requires a reference value")
    value = coerce_value(node.value, python_type, node.property)

    if operator is FilterOperator.LESS_THAN:
        condition = attribute < value
    elif operator is FilterOperator.LESS_THAN_OR_EQUAL:
        condition = attribute <= value
    elif operator is FilterOperator.GREATER_THAN:
        condition = attribute > value
    elif operator is FilterOperator.GREATER_THAN_OR_EQUAL:
        condition = attribute >= value
    else:
        raise ComposeError(f"Unsupported filter evaluation for ({operator})")
    return resolved.wrap(condition)


def compose_date(node: DateFilter, model: Type[Any]) -> ColumnElement:
    resolved = resolve_property(model, node.property)
    python_type = resolved.python_type
    if not issubclass(python_type, date):
        raise ComposeError(f"Date filter requires a date/datetime property, ({node.property}) is not")

    lower, upper = node.from_, node.to
    if python_type is date:
        lower = lower.date()
        upper = upper.date() if upper is not None else None

    condition = resolved.attribute >= lower
    if upper is not None:
        condition = and_(condition, resolved.attribute <= upper)
    return resolved.wrap(condition)


def compose_logical(node: LogicalFilter, model: Type[Any]) -> ColumnElement:
    if not node.filters:
        raise ComposeError("Logical filter requires at least one sub-filter")

    combine = or_ if node.operator is LogicalOperator.OR else and_
    condition = compose(node.filters[0], model)
    for sub_filter in node.filters[1:]:
        condition = combine(condition, compose(sub_filter, model))
    return condition


def compose(node: FilterNodeType, model: Type[Any]) -> ColumnElement:
    """Compose a filter node into a boolean clause over ``model``.

    Raises:
        ComposeError: For unknown properties and unsupported operator/type combinations.
    """
    if isinstance(node, PropertyFilter):
        return compose_property(node, model)
    if isinstance(node, DateFilter):
        return compose_date(node, model)
    if isinstance(node, LogicalFilter):
        return compose_logical(node, model)
    raise ComposeError(f"Unsupported filter node ({type(node).__name__})")


def order_nodes(nodes: Iterable[FilterNodeType]) -> List[FilterNodeType]:
    """Stable sort of filter nodes by ascending ``order``."""
    return sorted(nodes, key=lambda node: node.order)


def compose_filters(nodes: Sequence[FilterNodeType], model: Type[Any]) -> List[ColumnElement]:
    """Compose every node, in ascending ``order``, into a list of clauses."""
    return [compose(node, model) for node in order_nodes(nodes)]


def apply_filters(stmt, nodes: Sequence[FilterNodeType], model: Type[Any]):
    """Narrow ``stmt`` by each node in ascending ``order``."""
    for condition in compose_filters(nodes, model):
        stmt = stmt.where(condition)
    return stmt
