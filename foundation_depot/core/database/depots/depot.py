"""
Generic depot implementation.

``Depot`` composes the engine pieces into the per-record-type operations:

- read paths: predicate composer -> pagination -> ordering -> store
- write paths: validation -> sanitizer -> graph store / reconciler -> store

Every write commits before returning; batch operations run item by item in
input order and report failures instead of aborting (unless ``sync``).
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional, Sequence, Type

from sqlalchemy import ColumnElement
from sqlalchemy.ext.asyncio import AsyncSession

from ..base import as_utc, utc_now
from ..errors import CreateDisabledError, InvalidPaginationError, UnfoundError
from ..query.ordering import resolve_ordering
from ..query.pagination import paginate
from ..query.predicates import apply_filters
from ..registry import RecordDescriptor, describe
from ..schemas.base import BaseSchema
from ..schemas.operations import FilteringBehavior, FilterInput, FilterSpec, QueryHooks, UpdateInput, UpdateOutput
from ..schemas.view import ViewInput, ViewOutput
from ..store import SessionStore
from .base import BaseDepot, RecordType
from .batch import BatchOutput, run_batch
from .disposer import Disposer
from .graph import GraphStore
from .reconciler import Reconciler
from .sanitizer import Sanitizer

logger = logging.getLogger(__name__)


class Depot(BaseDepot[RecordType]):
    """Depot serving one SQLModel record type."""

    def __init__(
        self,
        session: AsyncSession,
        model: Type[RecordType],
        disposer: Optional[Disposer] = None,
        max_range: Optional[int] = None,
    ) -> None:
        """Initialize depot.

        Args:
            session: Async session owned by this depot for its unit of work
            model: SQLModel table class served by this depot
            disposer: Optional sink told about every created/updated record
            max_range: Largest page size a view accepts (unbounded when None)
        """
        super().__init__(session, model)
        self.max_range = max_range
        self.descriptor: RecordDescriptor = describe(model)
        self.disposer = disposer
        self.store = SessionStore(session)
        self.sanitizer = Sanitizer(self.store)
        self.graph = GraphStore(self.store, disposer)
        self.reconciler = Reconciler(self.store, self.sanitizer)

    @property
    def name(self) -> str:
        return self.descriptor.name

    @property
    def _primary_key(self):
        return getattr(self.model, self.descriptor.primary_key)

    def _push(self, record: Any) -> None:
        if self.disposer is not None:
            self.disposer.push(record)

    def _process_query(self, hooks: Optional[QueryHooks], process: Callable[[Any], Any]):
        """Build the operation statement, wrapped by the optional pre/post processors."""
        stmt = self.store.queryable(self.model)
        if hooks is not None and hooks.pre is not None:
            stmt = hooks.pre(stmt)
        stmt = process(stmt)
        if hooks is not None and hooks.post is not None:
            stmt = hooks.post(stmt)
        return stmt

    def _apply_filter(self, stmt, spec: FilterSpec):
        if isinstance(spec, ColumnElement):
            return stmt.where(spec)
        if isinstance(spec, BaseSchema):
            return apply_filters(stmt, [spec], self.model)
        return apply_filters(stmt, list(spec), self.model)

    async def _select(self, stmt, behavior: FilteringBehavior) -> list:
        if behavior is FilteringBehavior.FIRST:
            record = await self.store.first(stmt.order_by(self._primary_key.asc()))
            return [] if record is None else [record]
        if behavior is FilteringBehavior.LAST:
            record = await self.store.first(stmt.order_by(self._primary_key.desc()))
            return [] if record is None else [record]
        return await self.store.all(stmt.order_by(self._primary_key.asc()))

    # Create

    async def create(self, record: RecordType) -> RecordType:
        if "timestamp" in self.descriptor.columns:
            record.timestamp = utc_now()
        self.descriptor.evaluate_write(record)

        record = await self.sanitizer.sanitize(record)
        await self.graph.store(record, commit=True, include_root=True)

        logger.debug(f"Created {self.name}({self.descriptor.identity(record)})")
        return record

    async def create_many(self, records: Sequence[RecordType], sync: bool = False) -> BatchOutput[RecordType]:
        output = await run_batch(records, self.create, sync=sync)
        await self.store.commit()
        return output

    # Read

    async def read(self, record_id: int) -> RecordType:
        record = await self.store.find_by_id(self.model, record_id)
        if record is None:
            raise UnfoundError(self.name, f"{self.descriptor.primary_key} = {record_id}")
        self.descriptor.evaluate_read(record)
        return record

    async def read_many(self, record_ids: Sequence[int]) -> BatchOutput[RecordType]:
        return await run_batch(record_ids, self.read, failure_record=self.descriptor.placeholder)

    async def read_filter(self, input: FilterInput, hooks: Optional[QueryHooks] = None) -> BatchOutput[RecordType]:
        stmt = self._process_query(hooks, lambda query: self._apply_filter(query, input.filter))
        matches = await self._select(stmt, input.behavior)

        async def evaluated(record: RecordType) -> RecordType:
            self.descriptor.evaluate_read(record)
            return record

        output = await run_batch(matches, evaluated)
        if input.behavior is FilteringBehavior.FIRST and output.failed:
            raise output.failures[0].exception
        return output

    # Update

    async def update(
        self, input: UpdateInput[RecordType], hooks: Optional[QueryHooks] = None
    ) -> UpdateOutput[RecordType]:
        incoming = input.record
        identity = self.descriptor.identity(incoming)

        if identity is None:
            if not input.create:
                raise CreateDisabledError(self.name)
            return UpdateOutput(original=None, updated=await self.create(incoming))

        stmt = self._process_query(hooks, lambda query: query.where(self._primary_key == identity))
        persisted = await self.store.first(stmt)
        if persisted is None:
            if not input.create:
                raise UnfoundError(self.name, f"{self.descriptor.primary_key} = {identity}")
            setattr(incoming, self.descriptor.primary_key, None)
            return UpdateOutput(original=None, updated=await self.create(incoming))

        original = self.descriptor.snapshot(persisted)
        self.descriptor.evaluate_write(incoming)
        try:
            await self.reconciler.reconcile(persisted, incoming)
            await self.store.commit()
        except Exception:
            # scalars are already applied to the tracked record
            await self.store.rollback()
            raise
        self._push(persisted)

        logger.debug(f"Updated {self.name}({identity})")
        return UpdateOutput(original=original, updated=persisted)

    # Delete

    async def delete(self, record_id: int) -> RecordType:
        record = await self.store.find_by_id(self.model, record_id)
        if record is None:
            raise UnfoundError(self.name, f"{self.descriptor.primary_key} = {record_id}")
        await self.store.remove(record)
        await self.store.commit()
        logger.debug(f"Deleted {self.name}({record_id})")
        return record

    async def delete_record(self, record: RecordType) -> RecordType:
        identity = self.descriptor.identity(record)
        if identity is None:
            value = getattr(record, self.descriptor.primary_key)
            raise UnfoundError(self.name, f"{self.descriptor.primary_key} = {value}")
        return await self.delete(identity)

    async def delete_many(self, record_ids: Sequence[int]) -> BatchOutput[RecordType]:
        return await run_batch(record_ids, self.delete, failure_record=self.descriptor.placeholder)

    async def delete_records(self, records: Sequence[RecordType]) -> BatchOutput[RecordType]:
        return await run_batch(records, self.delete_record)

    async def delete_filter(self, input: FilterInput, hooks: Optional[QueryHooks] = None) -> BatchOutput[RecordType]:
        stmt = self._process_query(hooks, lambda query: self._apply_filter(query, input.filter))
        matches = await self._select(stmt, input.behavior)
        return await run_batch(matches, self.delete_record)

    # View

    def _apply_cutoff(self, stmt, input: ViewInput):
        if input.timestamp is None or "timestamp" not in self.descriptor.columns:
            return stmt
        column = getattr(self.model, "timestamp")
        cutoff = as_utc(input.timestamp)
        return stmt.where(column <= cutoff if input.retroactive else column >= cutoff)

    async def view(self, input: ViewInput, hooks: Optional[QueryHooks] = None) -> ViewOutput[RecordType]:
        if self.max_range is not None and not input.export and input.range > self.max_range:
            raise InvalidPaginationError(f"Page range {input.range} exceeds the maximum of {self.max_range}")
        comparator = resolve_ordering(input.orderings, self.model)
        stmt = self._process_query(
            hooks, lambda query: apply_filters(self._apply_cutoff(query, input), input.filters, self.model)
        )

        count = await self.store.count(stmt)
        pagination = paginate(count, input.page, input.range, input.export)
        window = pagination.apply(stmt.order_by(self._primary_key.asc()))
        records = comparator.sort(await self.store.all(window))

        logger.debug(
            f"View {self.name}: page {input.page}/{pagination.pages}, {len(records)} of {count} records"
        )
        return ViewOutput(records=records, page=input.page, pages=pagination.pages, count=count)
