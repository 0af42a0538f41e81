"""Test configuration for database unit tests.

This module provides common fixtures for testing depots against an
in-memory SQLite database.
"""

from __future__ import annotations

from typing import AsyncGenerator

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlmodel import SQLModel

from foundation_depot.core.database.depots.depot import Depot
from foundation_depot.core.database.depots.disposer import RecordDisposer
from foundation_depot.core.database.store import SessionStore
from foundation_depot.core.database.utils import create_sessionmaker

from .sample_records import Author, Book, Publisher, Series, SeriesEvent


@pytest.fixture(scope="function")
async def in_memory_engine(test_database_url) -> AsyncGenerator:
    """Create in-memory SQLite engine for testing."""
    engine = create_async_engine(test_database_url, echo=False)

    # Create all tables
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture(scope="function")
async def in_memory_session(in_memory_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create in-memory SQLite session for testing."""
    async_session = create_sessionmaker(in_memory_engine)

    async with async_session() as session:
        yield session


@pytest.fixture
def store(in_memory_session) -> SessionStore:
    return SessionStore(in_memory_session)


@pytest.fixture
def disposer() -> RecordDisposer:
    return RecordDisposer()


@pytest.fixture
def author_depot(in_memory_session, disposer) -> Depot[Author]:
    return Depot(in_memory_session, Author, disposer=disposer)


@pytest.fixture
def book_depot(in_memory_session, disposer) -> Depot[Book]:
    return Depot(in_memory_session, Book, disposer=disposer)


@pytest.fixture
def publisher_depot(in_memory_session, disposer) -> Depot[Publisher]:
    return Depot(in_memory_session, Publisher, disposer=disposer)


@pytest.fixture
def series_depot(in_memory_session, disposer) -> Depot[Series]:
    return Depot(in_memory_session, Series, disposer=disposer)


@pytest.fixture
def event_depot(in_memory_session, disposer) -> Depot[SeriesEvent]:
    return Depot(in_memory_session, SeriesEvent, disposer=disposer)


@pytest.fixture
async def seeded_authors(author_depot) -> list:
    """Five persisted authors with distinct ratings."""
    authors = [
        Author(name="Ursula", rating=4.8),
        Author(name="Terry", rating=4.5),
        Author(name="Octavia", rating=4.9, active=False),
        Author(name="Iain", rating=4.1),
        Author(name="Becky", rating=None),
    ]
    output = await author_depot.create_many(authors)
    assert not output.failed
    return output.successes
