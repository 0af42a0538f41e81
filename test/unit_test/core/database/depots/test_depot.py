"""Unit tests for the Depot orchestrator.

Every test runs against a fresh in-memory SQLite database; depots share the
session fixture so records created through one depot are visible to the others.
"""

from datetime import timedelta
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import func
from sqlalchemy.exc import OperationalError
from sqlmodel import select

from foundation_depot.core.database.depots.depot import Depot
from foundation_depot.core.database.errors import (
    CreateDisabledError,
    DepotEvent,
    InvalidPaginationError,
    RecordValidationError,
    StoreFailure,
    UnfoundError,
    UnknownPropertyError,
)
from foundation_depot.core.database.schemas.filters import FilterOperator, PropertyFilter
from foundation_depot.core.database.schemas.operations import FilteringBehavior, FilterInput, QueryHooks, UpdateInput
from foundation_depot.core.database.schemas.view import OrderDirection, ViewInput, ViewOrdering

from ..sample_records import Author, Book, Publisher


async def _count(session, model) -> int:
    result = await session.execute(select(func.count()).select_from(model))
    return result.scalar_one()


class TestCreate:
    """Tests for Depot.create and Depot.create_many."""

    async def test_create_assigns_identifier(self, author_depot):
        author = await author_depot.create(Author(name="Ursula"))

        assert author.id > 0
        assert author.timestamp is not None

    async def test_create_stamps_timestamp(self, author_depot):
        stale = Author(name="a")
        stale.timestamp = stale.timestamp - timedelta(days=30)
        backdated = stale.timestamp

        author = await author_depot.create(stale)

        assert author.timestamp - backdated > timedelta(days=29)

    async def test_create_stores_nested_graph(self, in_memory_session, author_depot):
        author = await author_depot.create(
            Author(name="a", publisher=Publisher(name="p"), books=[Book(title="one"), Book(title="two")])
        )

        assert author.publisher.id > 0
        assert [book.author_id for book in author.books] == [author.id, author.id]
        assert await _count(in_memory_session, Book) == 2

    async def test_create_references_existing_nested_record(self, in_memory_session, author_depot, publisher_depot):
        publisher = await publisher_depot.create(Publisher(name="Orbit"))

        author = await author_depot.create(Author(name="a", publisher=Publisher(id=publisher.id, name="Orbit")))

        assert author.publisher is publisher
        assert await _count(in_memory_session, Publisher) == 1

    async def test_create_references_persistent_instance(self, in_memory_session, author_depot, publisher_depot):
        """Test a stored record passed by instance is referenced without walking below it."""
        publisher = await publisher_depot.create(Publisher(name="Orbit"))

        author = await author_depot.create(Author(name="a", publisher=publisher, books=[Book(title="one")]))

        assert author.publisher_id == publisher.id
        assert author.books[0].author_id == author.id
        assert await _count(in_memory_session, Publisher) == 1

    async def test_timestamp_round_trips_as_utc(self, in_memory_session, author_depot):
        author = await author_depot.create(Author(name="a"))

        result = await in_memory_session.execute(select(Author.timestamp).where(Author.id == author.id))
        stored = result.scalar_one()

        assert stored.tzinfo is not None
        assert stored.utcoffset() == timedelta(0)
        assert stored == author.timestamp

    async def test_create_keeps_explicit_identifier(self, author_depot):
        author = await author_depot.create(Author(id=50, name="explicit"))

        assert author.id == 50

    async def test_create_validates_before_storing(self, in_memory_session, author_depot):
        with pytest.raises(RecordValidationError) as exc_info:
            await author_depot.create(Author(name="a", rating=9.0))

        assert exc_info.value.is_read is False
        assert exc_info.value.faults[0][0] == "rating"
        assert await _count(in_memory_session, Author) == 0

    async def test_named_record_length_rules(self, author_depot):
        with pytest.raises(RecordValidationError):
            await author_depot.create(Author(name=""))

        with pytest.raises(RecordValidationError):
            await author_depot.create(Author(name="a", description="x" * 201))

    async def test_create_many_collects_failures(self, in_memory_session, author_depot):
        """Test a failing record does not stop the batch."""
        records = [Author(name="a"), Author(name="b", rating=9.0), Author(name="c")]

        output = await author_depot.create_many(records)

        assert [author.name for author in output.successes] == ["a", "c"]
        assert output.failures_count == 1
        assert output.failures[0].record is records[1]
        assert isinstance(output.failures[0].exception, RecordValidationError)
        assert output.failed and not output.fully_failed
        assert await _count(in_memory_session, Author) == 2

    async def test_create_many_sync_propagates_first_failure(self, in_memory_session, author_depot):
        """Test fail-fast batches raise, leaving earlier records committed."""
        records = [Author(name="a"), Author(name="b", rating=9.0), Author(name="c")]

        with pytest.raises(RecordValidationError):
            await author_depot.create_many(records, sync=True)

        assert await _count(in_memory_session, Author) == 1

    async def test_store_failure_wraps_cause(self, in_memory_session, author_depot):
        cause = OperationalError("INSERT", {}, Exception("database is locked"))

        with patch.object(in_memory_session, "commit", AsyncMock(side_effect=cause)):
            with pytest.raises(StoreFailure) as exc_info:
                await author_depot.create(Author(name="a"))

        assert exc_info.value.operation == "commit"
        assert exc_info.value.__cause__ is cause
        assert exc_info.value.original is cause


class TestRead:
    """Tests for Depot.read, Depot.read_many and Depot.read_filter."""

    async def test_read(self, author_depot, seeded_authors):
        author = await author_depot.read(seeded_authors[1].id)

        assert author.name == "Terry"

    async def test_read_unfound(self, author_depot):
        with pytest.raises(UnfoundError) as exc_info:
            await author_depot.read(404)

        assert exc_info.value.event is DepotEvent.UNFOUND
        assert "Author" in str(exc_info.value)
        assert "404" in str(exc_info.value)

    async def test_read_runs_read_validation(self, book_depot):
        """Test records stored before a read rule existed are rejected on read."""
        book = await book_depot.create(Book(title="broken", pages=-1))

        with pytest.raises(RecordValidationError) as exc_info:
            await book_depot.read(book.id)

        assert exc_info.value.is_read is True

    async def test_read_many_partitions(self, author_depot, seeded_authors):
        output = await author_depot.read_many([seeded_authors[0].id, 999, seeded_authors[2].id])

        assert [author.name for author in output.successes] == ["Ursula", "Octavia"]
        assert output.failures_count == 1
        assert output.failures[0].record.id == 999
        assert isinstance(output.failures[0].exception, UnfoundError)

    async def test_read_filter_all(self, author_depot, seeded_authors):
        node = PropertyFilter(property="rating", operator=FilterOperator.GREATER_THAN, value=4.4)

        output = await author_depot.read_filter(FilterInput(filter=node))

        assert [author.name for author in output.successes] == ["Ursula", "Terry", "Octavia"]

    async def test_read_filter_first_and_last(self, author_depot, seeded_authors):
        node = PropertyFilter(property="rating", operator=FilterOperator.GREATER_THAN, value=4.4)

        first = await author_depot.read_filter(FilterInput(filter=node, behavior=FilteringBehavior.FIRST))
        last = await author_depot.read_filter(FilterInput(filter=node, behavior=FilteringBehavior.LAST))

        assert [author.name for author in first.successes] == ["Ursula"]
        assert [author.name for author in last.successes] == ["Octavia"]

    async def test_read_filter_without_match(self, author_depot, seeded_authors):
        node = PropertyFilter(property="name", operator=FilterOperator.EQUAL, value="nobody")

        output = await author_depot.read_filter(FilterInput(filter=node, behavior=FilteringBehavior.FIRST))

        assert output.operations_count == 0

    async def test_read_filter_with_node_sequence(self, author_depot, seeded_authors):
        nodes = [
            PropertyFilter(order=1, property="rating", operator=FilterOperator.GREATER_THAN, value=4.0),
            PropertyFilter(order=2, property="active", operator=FilterOperator.EQUAL, value=False),
        ]

        output = await author_depot.read_filter(FilterInput(filter=nodes))

        assert [author.name for author in output.successes] == ["Octavia"]

    async def test_read_filter_with_clause(self, author_depot, seeded_authors):
        output = await author_depot.read_filter(FilterInput(filter=Author.name.in_(["Iain", "Becky"])))

        assert [author.name for author in output.successes] == ["Iain", "Becky"]

    async def test_read_filter_hooks_wrap_the_query(self, author_depot, seeded_authors):
        calls = []

        def pre(stmt):
            calls.append("pre")
            return stmt.where(Author.active == True)  # noqa: E712

        def post(stmt):
            calls.append("post")
            return stmt

        node = PropertyFilter(property="rating", operator=FilterOperator.GREATER_THAN, value=4.4)
        output = await author_depot.read_filter(FilterInput(filter=node), hooks=QueryHooks(pre=pre, post=post))

        assert calls == ["pre", "post"]
        assert [author.name for author in output.successes] == ["Ursula", "Terry"]

    async def test_read_filter_first_propagates_validation(self, book_depot):
        """Test a single demanded record failing validation raises instead of reporting."""
        await book_depot.create(Book(title="broken", pages=-1))
        node = PropertyFilter(property="title", operator=FilterOperator.EQUAL, value="broken")

        with pytest.raises(RecordValidationError):
            await book_depot.read_filter(FilterInput(filter=node, behavior=FilteringBehavior.FIRST))

    async def test_read_filter_all_reports_validation(self, book_depot):
        await book_depot.create(Book(title="fine", pages=10))
        await book_depot.create(Book(title="broken", pages=-1))
        node = PropertyFilter(property="title", operator=FilterOperator.CONTAINS, value="")

        output = await book_depot.read_filter(FilterInput(filter=node))

        assert [book.title for book in output.successes] == ["fine"]
        assert isinstance(output.failures[0].exception, RecordValidationError)

    async def test_read_filter_unknown_property(self, author_depot):
        node = PropertyFilter(property="nickname", operator=FilterOperator.EQUAL, value="x")

        with pytest.raises(UnknownPropertyError):
            await author_depot.read_filter(FilterInput(filter=node))


class TestUpdate:
    """Tests for the Depot.update state machine."""

    @pytest.mark.parametrize("identifier", [None, 0])
    async def test_unsaved_without_create_is_disabled(self, author_depot, identifier):
        with pytest.raises(CreateDisabledError) as exc_info:
            await author_depot.update(UpdateInput(record=Author(id=identifier, name="a")))

        assert exc_info.value.event is DepotEvent.CREATE_DISABLED

    async def test_unsaved_with_create_creates(self, author_depot):
        output = await author_depot.update(UpdateInput(record=Author(id=0, name="a"), create=True))

        assert output.original is None
        assert output.created
        assert output.updated.id > 0

    async def test_nonexistent_without_create_is_unfound(self, author_depot):
        with pytest.raises(UnfoundError):
            await author_depot.update(UpdateInput(record=Author(id=999999, name="ghost")))

    async def test_nonexistent_with_create_gets_new_identifier(self, in_memory_session, author_depot):
        output = await author_depot.update(UpdateInput(record=Author(id=999999, name="ghost"), create=True))

        assert output.created
        assert output.updated.id not in (None, 0, 999999)
        assert await _count(in_memory_session, Author) == 1

    async def test_existing_is_reconciled(self, author_depot, seeded_authors):
        target = seeded_authors[1]

        output = await author_depot.update(UpdateInput(record=Author(id=target.id, name="Pratchett", rating=5.0)))

        assert not output.created
        assert output.original.name == "Terry"
        assert output.original.rating == 4.5
        assert output.updated is target
        assert target.name == "Pratchett"
        assert (await author_depot.read(target.id)).rating == 5.0

    async def test_existing_adds_nested_items(self, in_memory_session, author_depot):
        author = await author_depot.create(Author(name="a", books=[Book(title="one")]))
        incoming = Author(
            id=author.id, name="a", books=[Book(id=author.books[0].id, title="one"), Book(title="two")]
        )

        output = await author_depot.update(UpdateInput(record=incoming))

        assert [book.title for book in output.updated.books] == ["one", "two"]
        assert await _count(in_memory_session, Book) == 2

    async def test_present_single_edge_updated_in_place(self, in_memory_session, author_depot):
        author = await author_depot.create(Author(name="a", publisher=Publisher(name="p")))
        publisher = author.publisher
        incoming = Author(id=author.id, name="a", publisher=Publisher(name="p", country="NZ"))

        output = await author_depot.update(UpdateInput(record=incoming))

        assert output.updated.publisher is publisher
        assert publisher.country == "NZ"
        assert await _count(in_memory_session, Publisher) == 1

    async def test_failed_update_is_rolled_back(self, in_memory_session, author_depot):
        """Test changes applied before a nested failure never reach a later commit."""
        author = await author_depot.create(Author(name="kept"))
        author_id = author.id
        incoming = Author(id=author_id, name="leaked", publisher=Publisher(id=424242, name="ghost"))

        with pytest.raises(UnfoundError):
            await author_depot.update(UpdateInput(record=incoming))
        await author_depot.create(Author(name="unrelated"))

        result = await in_memory_session.execute(select(Author.name).where(Author.id == author_id))
        assert result.scalar_one() == "kept"

    async def test_update_validates_incoming(self, author_depot, seeded_authors):
        target = seeded_authors[0]

        with pytest.raises(RecordValidationError):
            await author_depot.update(UpdateInput(record=Author(id=target.id, name="Ursula", rating=9.0)))

        assert target.rating == 4.8

    async def test_hooks_narrow_the_lookup(self, author_depot, seeded_authors):
        inactive = seeded_authors[2]
        hooks = QueryHooks(pre=lambda stmt: stmt.where(Author.active == True))  # noqa: E712

        with pytest.raises(UnfoundError):
            await author_depot.update(UpdateInput(record=Author(id=inactive.id, name="x")), hooks=hooks)

    async def test_updated_record_pushed_to_disposer(self, author_depot, disposer, seeded_authors):
        target = seeded_authors[0]

        await author_depot.update(UpdateInput(record=Author(id=target.id, name="Ursula K.")))

        assert any(record is target for record in disposer.records)


class TestDelete:
    """Tests for the Depot delete variants."""

    async def test_delete(self, in_memory_session, author_depot, seeded_authors):
        deleted = await author_depot.delete(seeded_authors[0].id)

        assert deleted.name == "Ursula"
        assert await _count(in_memory_session, Author) == 4

    async def test_delete_unfound(self, author_depot):
        with pytest.raises(UnfoundError):
            await author_depot.delete(404)

    async def test_delete_record(self, in_memory_session, author_depot, seeded_authors):
        await author_depot.delete_record(Author(id=seeded_authors[3].id, name="Iain"))

        assert await _count(in_memory_session, Author) == 4

    async def test_delete_unsaved_record_is_unfound(self, author_depot):
        with pytest.raises(UnfoundError):
            await author_depot.delete_record(Author(name="never stored"))

    async def test_delete_many_partitions(self, in_memory_session, author_depot, seeded_authors):
        output = await author_depot.delete_many([seeded_authors[0].id, 404, seeded_authors[1].id])

        assert output.successes_count == 2
        assert output.failures[0].record.id == 404
        assert await _count(in_memory_session, Author) == 3

    async def test_delete_records(self, in_memory_session, author_depot, seeded_authors):
        output = await author_depot.delete_records([seeded_authors[0], Author(name="unsaved")])

        assert output.successes_count == 1
        assert isinstance(output.failures[0].exception, UnfoundError)
        assert await _count(in_memory_session, Author) == 4

    async def test_delete_filter(self, in_memory_session, author_depot, seeded_authors):
        node = PropertyFilter(property="rating", operator=FilterOperator.GREATER_THAN, value=4.4)

        output = await author_depot.delete_filter(FilterInput(filter=node))

        assert output.successes_count == 3
        assert await _count(in_memory_session, Author) == 2

    async def test_delete_filter_first(self, in_memory_session, author_depot, seeded_authors):
        node = PropertyFilter(property="rating", operator=FilterOperator.GREATER_THAN, value=4.4)

        output = await author_depot.delete_filter(FilterInput(filter=node, behavior=FilteringBehavior.FIRST))

        assert [author.name for author in output.successes] == ["Ursula"]
        assert await _count(in_memory_session, Author) == 4


class TestView:
    """Tests for Depot.view: filter, then paginate, then order the window."""

    async def test_first_page(self, author_depot, seeded_authors):
        output = await author_depot.view(ViewInput(page=1, range=2))

        assert [author.name for author in output.records] == ["Ursula", "Terry"]
        assert output.page == 1
        assert output.pages == 3
        assert output.count == 5
        assert output.length == 2

    async def test_last_partial_page(self, author_depot, seeded_authors):
        output = await author_depot.view(ViewInput(page=3, range=2))

        assert [author.name for author in output.records] == ["Becky"]

    async def test_page_past_last_is_empty(self, author_depot, seeded_authors):
        output = await author_depot.view(ViewInput(page=9, range=2))

        assert output.records == []
        assert output.pages == 3
        assert output.count == 5

    async def test_ordering_applies_within_the_window(self, author_depot, seeded_authors):
        """Test ordering rearranges the page but does not change which records fall on it."""
        request = ViewInput(page=1, range=2, orderings=[ViewOrdering(property="name")])

        output = await author_depot.view(request)

        assert [author.name for author in output.records] == ["Terry", "Ursula"]

    async def test_multiple_orderings(self, author_depot, seeded_authors):
        request = ViewInput(
            page=1,
            range=5,
            orderings=[
                ViewOrdering(property="active"),
                ViewOrdering(property="rating", direction=OrderDirection.DESCENDING),
            ],
        )

        output = await author_depot.view(request)

        assert [author.name for author in output.records] == ["Octavia", "Ursula", "Terry", "Iain", "Becky"]

    async def test_filters_narrow_before_pagination(self, author_depot, seeded_authors):
        request = ViewInput(
            page=1,
            range=10,
            filters=[PropertyFilter(property="active", operator=FilterOperator.EQUAL, value=True)],
        )

        output = await author_depot.view(request)

        assert output.count == 4
        assert output.pages == 1
        assert "Octavia" not in [author.name for author in output.records]

    async def test_export_returns_everything(self, author_depot, seeded_authors):
        output = await author_depot.view(ViewInput(page=3, range=1, export=True))

        assert output.length == 5
        assert output.pages == 1

    async def test_timestamp_cutoff(self, author_depot, seeded_authors):
        cutoff = seeded_authors[2].timestamp

        retroactive = await author_depot.view(ViewInput(page=1, range=10, timestamp=cutoff, retroactive=True))
        onward = await author_depot.view(ViewInput(page=1, range=10, timestamp=cutoff))

        assert [author.name for author in retroactive.records] == ["Ursula", "Terry", "Octavia"]
        assert [author.name for author in onward.records] == ["Octavia", "Iain", "Becky"]

    async def test_unknown_ordering_property(self, author_depot, seeded_authors):
        with pytest.raises(UnknownPropertyError):
            await author_depot.view(ViewInput(page=1, range=2, orderings=[ViewOrdering(property="nickname")]))

    async def test_hooks_shape_the_view(self, author_depot, seeded_authors):
        hooks = QueryHooks(pre=lambda stmt: stmt.where(Author.rating.is_not(None)))

        output = await author_depot.view(ViewInput(page=1, range=10), hooks=hooks)

        assert output.count == 4

    async def test_max_range(self, in_memory_session, seeded_authors):
        depot = Depot(in_memory_session, Author, max_range=2)

        with pytest.raises(InvalidPaginationError):
            await depot.view(ViewInput(page=1, range=3))

        assert (await depot.view(ViewInput(page=1, range=3, export=True))).length == 5
