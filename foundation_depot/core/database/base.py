"""
Base record models.

This module provides the foundational SQLModel bases every record type served
by a depot derives from. A record carries a numeric identifier (``None`` or
``0`` while unsaved) and a creation timestamp.
"""

from __future__ import annotations

import secrets
from datetime import datetime, timezone
from typing import Optional

from pydantic import ConfigDict
from sqlalchemy import DateTime, TypeDecorator
from sqlmodel import Field, SQLModel


def utc_now() -> datetime:
    """Get current UTC datetime.

    Returns:
        Current timezone-aware UTC datetime
    """
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Express ``value`` in UTC; naive values are taken to already be UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class UTCDateTime(TypeDecorator):
    """Timezone-aware ``DateTime`` that always hands back UTC values.

    Backends without timezone storage (SQLite) return naive values, which are
    tagged as UTC again on the way out.
    """

    impl = DateTime
    cache_ok = True

    def __init__(self) -> None:
        super().__init__(timezone=True)

    def process_bind_param(self, value, dialect):
        if isinstance(value, datetime):
            return as_utc(value)
        return value

    def process_result_value(self, value, dialect):
        if isinstance(value, datetime):
            return as_utc(value)
        return value


class Base(SQLModel):
    """Base class for all SQLModel entities."""

    model_config = ConfigDict(arbitrary_types_allowed=True)


class Record(Base):
    """Base fields shared by every depot-served record.

    ``id`` stays ``None`` (or ``0``) until the store assigns one; a record
    graph may mix persisted and unsaved nodes.
    """

    id: Optional[int] = Field(default=None, primary_key=True)
    timestamp: datetime = Field(
        default_factory=utc_now, sa_type=UTCDateTime, index=True, description="Creation timestamp (UTC)"
    )

    def is_persisted(self) -> bool:
        """Whether the store already assigned this record an identifier."""
        return self.id is not None and self.id > 0


class NamedRecord(Record):
    """Record identified by a unique human-readable name."""

    name: str = Field(default="", max_length=100, sa_column_kwargs={"unique": True}, description="Unique record name")
    description: Optional[str] = Field(default=None, max_length=200, description="Record description")


REFERENCE_LENGTH = 8


def new_reference() -> str:
    """Random upper-case hexadecimal reference of ``REFERENCE_LENGTH`` characters."""
    return secrets.token_hex(REFERENCE_LENGTH // 2).upper()


class ReferencedRecord(Record):
    """Record carrying a fixed-length reference.

    Unlike ``id``, the reference stays the same when data moves between stores,
    so updates never change it.
    """

    reference: str = Field(
        default_factory=new_reference,
        max_length=REFERENCE_LENGTH,
        index=True,
        sa_column_kwargs={"unique": True},
        description="Stable 8 character reference",
    )


class HistoryRecord(Record):
    """Entry in the history sequence of a main record.

    Table subclasses declare the ``entity_id`` foreign key and the ``entity``
    relationship to the main record, which lists its entries in a collection
    (conventionally ``history``). New entries without a ``sequence`` are
    numbered after the highest one stored for the same main record.
    """

    sequence: int = Field(default=0, index=True, description="Position in the history of the main record")
