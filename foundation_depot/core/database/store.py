"""
Storage collaborator over an async SQLAlchemy session.

Depots never talk to the session directly; they go through ``SessionStore``,
which exposes the capabilities the engine needs (insert, remove, lookup by id,
queryable statements, count, materialize, commit) and turns collaborator
failures into ``StoreFailure`` after rolling the session back.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, List, Optional, Sequence, Type, TypeVar

from sqlalchemy import func
from sqlalchemy import inspect as sa_inspect
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from .errors import StoreFailure

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SessionStore:
    """Store collaborator bound to one ``AsyncSession`` (one unit of work)."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize store with async database session.

        Args:
            session: Async session exclusively owned by this store's depot
        """
        self.session = session

    @asynccontextmanager
    async def guard(self, operation: str) -> AsyncIterator[None]:
        """Translate collaborator errors into ``StoreFailure``.

        The session is rolled back first so later work on it can proceed.
        """
        try:
            yield
        except (SQLAlchemyError, TimeoutError) as exc:
            logger.error(f"Store operation '{operation}' failed: {exc}")
            await self.session.rollback()
            raise StoreFailure(operation, exc) from exc

    def insert(self, record: Any) -> None:
        """Stage ``record`` for insertion at the next flush/commit."""
        self.session.add(record)

    async def remove(self, record: Any) -> None:
        async with self.guard("remove"):
            await self.session.delete(record)

    async def find_by_id(self, model: Type[T], record_id: int) -> Optional[T]:
        async with self.guard("find_by_id"):
            return await self.session.get(model, record_id)

    def queryable(self, model: Type[T]):
        """Base select statement over ``model``."""
        return select(model)

    async def count(self, stmt) -> int:
        async with self.guard("count"):
            counted = select(func.count()).select_from(stmt.order_by(None).subquery())
            result = await self.session.execute(counted)
            return int(result.scalar_one())

    async def all(self, stmt) -> List[Any]:
        async with self.guard("materialize"):
            result = await self.session.execute(stmt)
            return list(result.scalars().all())

    async def first(self, stmt) -> Optional[Any]:
        async with self.guard("materialize"):
            result = await self.session.execute(stmt.limit(1))
            return result.scalars().first()

    async def scalar(self, stmt) -> Any:
        async with self.guard("materialize"):
            result = await self.session.execute(stmt)
            return result.scalar()

    async def flush(self) -> None:
        async with self.guard("flush"):
            await self.session.flush()

    async def commit(self) -> None:
        async with self.guard("commit"):
            await self.session.commit()

    async def rollback(self) -> None:
        """Discard pending changes; every instance of the session is expired."""
        await self.session.rollback()

    async def refresh(self, record: Any, attribute_names: Optional[Sequence[str]] = None) -> None:
        async with self.guard("refresh"):
            await self.session.refresh(record, attribute_names=attribute_names)

    @staticmethod
    def is_loaded(record: Any, attribute: str) -> bool:
        """Whether ``attribute`` can be read from ``record`` without I/O.

        Only values held in the instance dict count; a collection that merely
        received back reference appends still loads on first read.
        """
        return attribute in sa_inspect(record).dict

    @staticmethod
    def is_tracked(record: Any) -> bool:
        """Whether ``record`` is pending or persistent in some session."""
        state = sa_inspect(record)
        return state.pending or state.persistent

    @staticmethod
    def is_persistent(record: Any) -> bool:
        """Whether ``record`` is a stored row tracked by some session."""
        return sa_inspect(record).persistent

    async def load(self, record: Any, attribute: str) -> Any:
        """Read ``attribute`` from a tracked record, loading it first when needed."""
        if not self.is_loaded(record, attribute) and sa_inspect(record).persistent:
            await self.refresh(record, [attribute])
        return getattr(record, attribute)
