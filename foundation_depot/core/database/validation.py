"""
Record validation rules.

Rules are registered explicitly per record type (see ``RecordRegistry.register``)
and evaluated by depots after reading and before writing records.

Rules:
- RequiredRule: property must hold a non-empty value
- LengthRule: string length bounds
- ExclusiveRule: exactly one property of a group must be set
- PredicateRule: arbitrary check over a property value
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Iterable, List, Optional, Sequence, Tuple

from .errors import RecordValidationError

logger = logging.getLogger(__name__)


class ValidationRule(ABC):
    """Base validation rule bound to one or more record properties.

    Args:
        on_read: Evaluate the rule on records coming out of the store.
        on_write: Evaluate the rule on records going into the store.
    """

    def __init__(self, *, on_read: bool = True, on_write: bool = True) -> None:
        self.on_read = on_read
        self.on_write = on_write

    @property
    @abstractmethod
    def properties(self) -> Tuple[str, ...]:
        """Properties this rule inspects."""

    @abstractmethod
    def check(self, record: Any) -> Optional[str]:
        """Return a fault message when ``record`` breaks the rule, ``None`` otherwise."""

    @property
    def label(self) -> str:
        return ", ".join(self.properties)


class RequiredRule(ValidationRule):
    """Property must be set and, for strings, non-blank."""

    def __init__(self, property_name: str, **kwargs: bool) -> None:
        super().__init__(**kwargs)
        self.property_name = property_name

    @property
    def properties(self) -> Tuple[str, ...]:
        return (self.property_name,)

    def check(self, record: Any) -> Optional[str]:
        value = getattr(record, self.property_name, None)
        if value is None or (isinstance(value, str) and not value.strip()):
            return "value is required"
        return None


class LengthRule(ValidationRule):
    """String length must fall within ``[min_length, max_length]``.

    A ``None`` value only fails when ``min_length`` is greater than zero.
    """

    def __init__(
        self, property_name: str, min_length: int = 0, max_length: Optional[int] = None, **kwargs: bool
    ) -> None:
        super().__init__(**kwargs)
        self.property_name = property_name
        self.min_length = min_length
        self.max_length = max_length

    @property
    def properties(self) -> Tuple[str, ...]:
        return (self.property_name,)

    def check(self, record: Any) -> Optional[str]:
        value = getattr(record, self.property_name, None)
        if value is None:
            return f"length must be at least {self.min_length}" if self.min_length > 0 else None
        length = len(str(value))
        if length < self.min_length:
            return f"length {length} is below the minimum of {self.min_length}"
        if self.max_length is not None and length > self.max_length:
            return f"length {length} exceeds the maximum of {self.max_length}"
        return None


class ExclusiveRule(ValidationRule):
    """Exactly one property of the group must hold a value."""

    def __init__(self, *property_names: str, group: str = "", **kwargs: bool) -> None:
        super().__init__(**kwargs)
        if len(property_names) < 2:
            raise ValueError("ExclusiveRule needs at least two properties")
        self.property_names = tuple(property_names)
        self.group = group

    @property
    def properties(self) -> Tuple[str, ...]:
        return self.property_names

    def check(self, record: Any) -> Optional[str]:
        present = [name for name in self.property_names if getattr(record, name, None) is not None]
        if len(present) == 1:
            return None
        group = f" in group '{self.group}'" if self.group else ""
        if not present:
            return f"one of ({self.label}){group} must be set"
        return f"only one of ({self.label}){group} may be set, got ({', '.join(present)})"


class PredicateRule(ValidationRule):
    """Property value must satisfy ``check``."""

    def __init__(
        self, property_name: str, predicate: Callable[[Any], bool], message: str = "value is invalid", **kwargs: bool
    ) -> None:
        super().__init__(**kwargs)
        self.property_name = property_name
        self.predicate = predicate
        self.message = message

    @property
    def properties(self) -> Tuple[str, ...]:
        return (self.property_name,)

    def check(self, record: Any) -> Optional[str]:
        if self.predicate(getattr(record, self.property_name, None)):
            return None
        return self.message


def collect_faults(record: Any, rules: Iterable[ValidationRule]) -> List[Tuple[str, str]]:
    """Run every rule against ``record`` and collect ``(property, message)`` faults."""
    faults: List[Tuple[str, str]] = []
    for rule in rules:
        message = rule.check(record)
        if message is not None:
            faults.append((rule.label, message))
    return faults


def evaluate(record: Any, rules: Sequence[ValidationRule], *, is_read: bool) -> None:
    """Evaluate the rules applicable to the read or write stage.

    Raises:
        RecordValidationError: When at least one rule fails.
    """
    applicable = [rule for rule in rules if (rule.on_read if is_read else rule.on_write)]
    faults = collect_faults(record, applicable)
    if faults:
        record_type = type(record).__name__
        logger.debug(f"Validation failed for {record_type}: {faults}")
        raise RecordValidationError(record_type, is_read, faults)
