"""
Global database session and engine management.

This module manages the global AsyncEngine and async_sessionmaker instances
used by applications that do not wire their own sessions into depots.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncGenerator, AsyncIterator, Optional, Type

from sqlalchemy.ext.asyncio import AsyncSession

from foundation_depot.core.config import settings

from .depots.base import RecordType
from .depots.depot import Depot
from .depots.disposer import Disposer
from .utils import create_engine, create_sessionmaker

# Create global engine and session factory
engine = create_engine(settings.url, echo=settings.sql_echo)
async_session_maker = create_sessionmaker(engine)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency generator for database sessions.

    Yields:
        AsyncSession: An asynchronous SQLAlchemy session.
    """
    async with async_session_maker() as session:
        yield session


@asynccontextmanager
async def open_depot(model: Type[RecordType], disposer: Optional[Disposer] = None) -> AsyncIterator[Depot[RecordType]]:
    """
    Open a depot for ``model`` on a fresh session from the global factory.

    The session is closed when the block exits; each depot operation commits on its own.
    """
    async with async_session_maker() as session:
        yield Depot(session, model, disposer=disposer, max_range=settings.max_page_range)
