"""
Base depot interface.

A depot exposes create/read/update/delete/view operations for one record type
on top of an async SQLAlchemy session, without per-type boilerplate.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Generic, Optional, Sequence, Type, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import SQLModel

from ..schemas.operations import FilterInput, QueryHooks, UpdateInput, UpdateOutput
from ..schemas.view import ViewInput, ViewOutput
from .batch import BatchOutput

# Generic type for SQLModel records
RecordType = TypeVar("RecordType", bound=SQLModel)


class BaseDepot(ABC, Generic[RecordType]):
    """Depot interface with CRUD and view operations over one record type."""

    def __init__(self, session: AsyncSession, model: Type[RecordType]) -> None:
        """Initialize depot with async database session and SQLModel record class.

        Args:
            session: Async session owned by this depot for its unit of work
            model: SQLModel table class served by this depot
        """
        self.session = session
        self.model = model

    @abstractmethod
    async def create(self, record: RecordType) -> RecordType:
        """Create a record and its unsaved nested records.

        Args:
            record: Record to persist

        Returns:
            The persisted record, identifiers assigned
        """

    @abstractmethod
    async def create_many(self, records: Sequence[RecordType], sync: bool = False) -> BatchOutput[RecordType]:
        """Create several records.

        Args:
            records: Records to persist, in order
            sync: Propagate the first failure; earlier records stay committed

        Returns:
            Successes and failures
        """

    @abstractmethod
    async def read(self, record_id: int) -> RecordType:
        """Get record by identifier.

        Raises:
            UnfoundError: When no record holds ``record_id``
        """

    @abstractmethod
    async def read_many(self, record_ids: Sequence[int]) -> BatchOutput[RecordType]:
        """Get several records by identifier, reporting misses as failures."""

    @abstractmethod
    async def read_filter(self, input: FilterInput, hooks: Optional[QueryHooks] = None) -> BatchOutput[RecordType]:
        """Get records matching a filter."""

    @abstractmethod
    async def update(
        self, input: UpdateInput[RecordType], hooks: Optional[QueryHooks] = None
    ) -> UpdateOutput[RecordType]:
        """Merge a record graph into its persisted counterpart, optionally creating it."""

    @abstractmethod
    async def delete(self, record_id: int) -> RecordType:
        """Delete record by identifier.

        Raises:
            UnfoundError: When no record holds ``record_id``
        """

    @abstractmethod
    async def delete_record(self, record: RecordType) -> RecordType:
        """Delete the stored counterpart of ``record``."""

    @abstractmethod
    async def delete_many(self, record_ids: Sequence[int]) -> BatchOutput[RecordType]:
        """Delete several records by identifier."""

    @abstractmethod
    async def delete_records(self, records: Sequence[RecordType]) -> BatchOutput[RecordType]:
        """Delete the stored counterparts of several records."""

    @abstractmethod
    async def delete_filter(self, input: FilterInput, hooks: Optional[QueryHooks] = None) -> BatchOutput[RecordType]:
        """Delete records matching a filter."""

    @abstractmethod
    async def view(self, input: ViewInput, hooks: Optional[QueryHooks] = None) -> ViewOutput[RecordType]:
        """Filter, paginate and order records.

        Args:
            input: View parameters

        Returns:
            The requested page
        """
