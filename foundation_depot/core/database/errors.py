"""Error types for the depot engine.

Purpose:
- Provide typed exceptions raised by depots, the predicate composer, the
  ordering resolver and the record validation layer.
- Expose structured context (record type, search expression, faults) so
  callers can report failures without parsing messages.

Usage:
- Catch ``DepotError`` for any engine failure.
- Catch ``UnfoundError`` / ``CreateDisabledError`` for depot state-machine
  outcomes, ``ComposeError`` for malformed filters or orderings and
  ``StoreFailure`` for collaborator-level failures (``__cause__`` holds the
  original SQLAlchemy error).
"""

from __future__ import annotations

from enum import Enum
from typing import Any, List, Optional, Sequence, Tuple


class DepotError(Exception):
    """Base error for all depot engine exceptions."""


class DepotEvent(str, Enum):
    """Depot state-machine outcomes that abort an operation."""

    UNFOUND = "UNFOUND"
    CREATE_DISABLED = "CREATE_DISABLED"


class DepotOperationError(DepotError):
    """Raised when a depot operation cannot proceed.

    Args:
        event: Which depot outcome aborted the operation.
        record_type: Name of the record type the depot serves.
        search: Optional description of the lookup that was attempted.
    """

    def __init__(self, event: DepotEvent, record_type: str, search: str = "") -> None:
        message = f"[Depot]: ({event.value}) on ({record_type})"
        if search:
            message += f" searching ({search})"
        super().__init__(message)
        self.event = event
        self.record_type = record_type
        self.search = search

    @property
    def advise(self) -> str:
        """Human readable summary for user-facing layers."""
        if self.event is DepotEvent.UNFOUND:
            return f"({self.record_type}) not found"
        return "The requested operation is not allowed"


class UnfoundError(DepotOperationError):
    """Raised when a lookup by id or filter yielded nothing where one was required."""

    def __init__(self, record_type: str, search: str = "") -> None:
        super().__init__(DepotEvent.UNFOUND, record_type, search)


class CreateDisabledError(DepotOperationError):
    """Raised when an update would implicitly create a record but creation is not permitted."""

    def __init__(self, record_type: str, search: str = "") -> None:
        super().__init__(DepotEvent.CREATE_DISABLED, record_type, search)


class ComposeError(DepotError):
    """Raised when a filter or ordering cannot be composed against a record type."""


class UnknownPropertyError(ComposeError):
    """Raised when a filter, ordering or rule names a property the record type doesn't have."""

    def __init__(self, property_name: str, record_type: str) -> None:
        super().__init__(f"Unexist property ({property_name}) on ({record_type})")
        self.property_name = property_name
        self.record_type = record_type


class RecordValidationError(DepotError):
    """Raised when read-time or write-time record validation fails.

    Args:
        record_type: Name of the validated record type.
        is_read: Whether the read-time (``True``) or write-time rules failed.
        faults: ``(property, message)`` pairs, one per failed rule.
    """

    def __init__(self, record_type: str, is_read: bool, faults: Sequence[Tuple[str, str]]) -> None:
        stage = "Evaluate Reading" if is_read else "Evaluate Writing"
        details = " | ".join(f"{{{prop}}} ({message})" for prop, message in faults)
        super().__init__(f"{stage} failed for ({record_type}) with ({len(faults)}) faults. [{details}]")
        self.record_type = record_type
        self.is_read = is_read
        self.faults: List[Tuple[str, str]] = list(faults)


class StoreFailure(DepotError):
    """Raised for storage collaborator failures (connectivity, constraint violations...).

    The originating exception is chained as ``__cause__`` and also kept in
    ``original`` for callers that inspect batch failures.
    """

    def __init__(self, operation: str, original: Optional[BaseException] = None, details: Optional[Any] = None) -> None:
        message = f"Store operation '{operation}' failed"
        if original is not None:
            message += f": {original}"
        super().__init__(message)
        self.operation = operation
        self.original = original
        self.details = details


class InvalidPaginationError(DepotError, ValueError):
    """Raised when pagination inputs are out of range."""
