"""
Record disposers.

A disposer is told about every record a depot creates or updates. The
``RecordDisposer`` implementation keeps them so a test or a one-off job can
delete everything it produced afterwards.
"""

from __future__ import annotations

import logging
from typing import Any, List, Protocol, runtime_checkable

from sqlalchemy.ext.asyncio import AsyncSession

from ..registry import describe

logger = logging.getLogger(__name__)


@runtime_checkable
class Disposer(Protocol):
    """Receives the records a depot writes."""

    def push(self, *records: Any) -> None: ...


class RecordDisposer:
    """Collects pushed records and deletes them on ``dispose``."""

    def __init__(self) -> None:
        self._records: List[Any] = []

    @property
    def records(self) -> List[Any]:
        return list(self._records)

    def push(self, *records: Any) -> None:
        for record in records:
            if not any(record is known for known in self._records):
                self._records.append(record)

    async def dispose(self, session: AsyncSession) -> int:
        """Delete every collected record that still exists, newest first.

        Returns:
            Number of records deleted
        """
        deleted = 0
        for record in reversed(self._records):
            descriptor = describe(type(record))
            identity = descriptor.identity(record)
            if identity is None:
                continue
            stored = await session.get(descriptor.model, identity)
            if stored is None:
                continue
            await session.delete(stored)
            await session.flush()
            deleted += 1
        await session.commit()
        self._records.clear()
        logger.debug(f"Disposed {deleted} records")
        return deleted
