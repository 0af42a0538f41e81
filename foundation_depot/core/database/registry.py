"""
Record type registry.

Each record type a depot serves is described once, at registration time, by a
``RecordDescriptor``: its scalar columns, primary key, foreign keys,
navigation edges and validation rules. Engine components read the descriptor
instead of inspecting the type on every call.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, Iterable, Optional, Tuple, Type

from sqlalchemy import Column
from sqlalchemy import inspect as sa_inspect
from sqlalchemy.orm import configure_mappers

from .base import REFERENCE_LENGTH, HistoryRecord, NamedRecord, ReferencedRecord
from .errors import UnknownPropertyError
from .validation import LengthRule, PredicateRule, ValidationRule, evaluate

logger = logging.getLogger(__name__)


class NavigationKind(str, Enum):
    """Shape of a navigation edge."""

    SINGLE = "single"
    COLLECTION = "collection"


@dataclass(frozen=True)
class NavigationEdge:
    """Reference from one record type to another."""

    name: str
    kind: NavigationKind
    target: type

    @property
    def is_collection(self) -> bool:
        return self.kind is NavigationKind.COLLECTION

    @property
    def is_history(self) -> bool:
        """Collection of history entries of the owning record."""
        return self.is_collection and issubclass(self.target, HistoryRecord)


@dataclass(frozen=True)
class RecordDescriptor:
    """Registration-time description of a record type."""

    model: type
    columns: Dict[str, Column]
    primary_key: str
    foreign_keys: FrozenSet[str]
    edges: Tuple[NavigationEdge, ...]
    rules: Tuple[ValidationRule, ...] = field(default=())
    immutable: FrozenSet[str] = field(default=frozenset({"timestamp"}))

    @property
    def name(self) -> str:
        return self.model.__name__

    def column(self, property_name: str) -> Column:
        """Get the mapped column for ``property_name``.

        Raises:
            UnknownPropertyError: When the record type has no such column.
        """
        try:
            return self.columns[property_name]
        except KeyError:
            raise UnknownPropertyError(property_name, self.name) from None

    def edge(self, property_name: str) -> Optional[NavigationEdge]:
        for edge in self.edges:
            if edge.name == property_name:
                return edge
        return None

    def has_property(self, property_name: str) -> bool:
        return property_name in self.columns or self.edge(property_name) is not None

    def identity(self, record: Any) -> Optional[int]:
        """Primary key of ``record`` when persisted, ``None`` while unsaved (``None``/``0``)."""
        value = getattr(record, self.primary_key, None)
        if value is None or value <= 0:
            return None
        return value

    def snapshot(self, record: Any) -> Any:
        """Detached copy of the scalar state of ``record``."""
        values = {name: getattr(record, name) for name in self.columns if name not in sa_inspect(record).unloaded}
        return self.model(**values)

    def placeholder(self, record_id: Any) -> Any:
        """Unsaved instance carrying only ``record_id``, used to report failed lookups."""
        return self.model(**{self.primary_key: record_id})

    def evaluate_read(self, record: Any) -> None:
        evaluate(record, self.rules, is_read=True)

    def evaluate_write(self, record: Any) -> None:
        evaluate(record, self.rules, is_read=False)


class RecordRegistry:
    """Registry of record descriptors keyed by record type."""

    def __init__(self) -> None:
        self._descriptors: Dict[type, RecordDescriptor] = {}

    def register(self, model: Type[Any], rules: Optional[Iterable[ValidationRule]] = None) -> RecordDescriptor:
        """Describe ``model`` and store the result.

        Registering the same type again replaces its rules.

        Args:
            model: SQLModel table class
            rules: Validation rules evaluated by depots on read/write

        Returns:
            The descriptor for ``model``
        """
        configure_mappers()
        mapper = sa_inspect(model)

        columns: Dict[str, Column] = {}
        for prop in mapper.column_attrs:
            columns[prop.key] = prop.columns[0]

        primary_key = mapper.get_property_by_column(mapper.primary_key[0]).key
        foreign_keys = frozenset(key for key, column in columns.items() if column.foreign_keys)
        edges = tuple(
            NavigationEdge(
                name=relationship.key,
                kind=NavigationKind.COLLECTION if relationship.uselist else NavigationKind.SINGLE,
                target=relationship.mapper.class_,
            )
            for relationship in mapper.relationships
        )

        all_rules = list(rules or ())
        if issubclass(model, NamedRecord):
            all_rules = [
                LengthRule("name", min_length=1, max_length=100),
                LengthRule("description", max_length=200),
                *all_rules,
            ]
        immutable = {"timestamp"}
        if issubclass(model, ReferencedRecord):
            all_rules.insert(0, LengthRule("reference", min_length=REFERENCE_LENGTH, max_length=REFERENCE_LENGTH))
            immutable.add("reference")
        if issubclass(model, HistoryRecord):
            all_rules.insert(
                0, PredicateRule("sequence", lambda value: value is None or value >= 0, "sequence must not be negative")
            )
            immutable.add("sequence")

        descriptor = RecordDescriptor(
            model=model,
            columns=columns,
            primary_key=primary_key,
            foreign_keys=foreign_keys,
            edges=edges,
            rules=tuple(all_rules),
            immutable=frozenset(immutable),
        )
        self.evaluate_definition(descriptor)
        self._descriptors[model] = descriptor
        logger.debug(
            f"Registered record type {model.__name__}: "
            f"{len(columns)} columns, {len(edges)} navigation edges, {len(all_rules)} rules"
        )
        return descriptor

    @staticmethod
    def evaluate_definition(descriptor: RecordDescriptor) -> None:
        """Check every rule references a property the record type declares."""
        for rule in descriptor.rules:
            for property_name in rule.properties:
                if not descriptor.has_property(property_name):
                    raise UnknownPropertyError(property_name, descriptor.name)
        if issubclass(descriptor.model, HistoryRecord):
            # history entries point back to their main record through these two
            for property_name in ("entity", "entity_id"):
                if not descriptor.has_property(property_name):
                    raise UnknownPropertyError(property_name, descriptor.name)

    def describe(self, model: Type[Any]) -> RecordDescriptor:
        """Get the descriptor for ``model``, registering it without rules on first use."""
        descriptor = self._descriptors.get(model)
        if descriptor is None:
            descriptor = self.register(model)
        return descriptor

    def is_registered(self, model: Type[Any]) -> bool:
        return model in self._descriptors

    def clear(self) -> None:
        self._descriptors.clear()


registry = RecordRegistry()


def describe(model: Type[Any]) -> RecordDescriptor:
    """Get the descriptor for ``model`` from the global registry."""
    return registry.describe(model)
