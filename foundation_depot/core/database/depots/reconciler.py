"""
Update reconciler.

Merges an incoming record graph into its persisted counterpart, in place:

- scalar columns of each matched record are overwritten by the incoming values
  (the primary key and the immutable columns of the type are never touched,
  and a ``None`` foreign key is left to the navigation edge that owns it)
- collection edges: incoming items without an identifier are appended as new
  records, items whose identifier matches a persisted item are reconciled
  recursively, persisted items missing from the incoming list are kept
- single edges: absent -> present attaches the incoming record, present ->
  present reconciles the current record against the incoming one (the current
  reference is kept), present -> absent keeps the current reference

New history entries are numbered after the stored ones once the graph is merged.
The reconciler never deletes; removal goes through an explicit depot delete.
Navigation edges that were never loaded on the incoming record count as absent.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Hashable, List, Set

from ..registry import RecordDescriptor, describe
from ..store import SessionStore
from .graph import identity_key
from .history import HistorySequencer
from .sanitizer import Sanitizer

logger = logging.getLogger(__name__)

class Reconciler:
    """Reconciles record graphs against one store."""

    def __init__(self, store: SessionStore, sanitizer: Sanitizer) -> None:
        self.session_store = store
        self.sanitizer = sanitizer
        self.sequencer = HistorySequencer(store)
        self.attached: List[Any] = []

    async def reconcile(self, persisted: Any, incoming: Any) -> None:
        """Mutate ``persisted`` in place to match ``incoming``.

        ``persisted`` must be tracked by the store's session and carry no
        pending changes of its own.
        """
        if persisted is incoming:
            return
        self.attached = []
        await self._reconcile(persisted, incoming, set())
        await self.sequencer.assign(self.attached)

    async def attach(self, record: Any) -> Any:
        """Resolve ``record`` for a persistent graph and make sure the session tracks it.

        Back references set while resolving bypass the session cascade, so new
        records are inserted explicitly.
        """
        attached = await self.sanitizer.attach(record)
        if not self.session_store.is_tracked(attached):
            self.session_store.insert(attached)
        self.attached.append(attached)
        return attached

    def assign_scalars(self, descriptor: RecordDescriptor, persisted: Any, incoming: Any) -> None:
        for name in descriptor.columns:
            if name == descriptor.primary_key or name in descriptor.immutable:
                continue
            if not self.session_store.is_loaded(incoming, name):
                continue
            value = getattr(incoming, name)
            if value is None and name in descriptor.foreign_keys:
                continue
            setattr(persisted, name, value)

    async def _reconcile(self, persisted: Any, incoming: Any, visited: Set[Hashable]) -> None:
        key = identity_key(persisted)
        if key in visited:
            return
        visited.add(key)

        descriptor = describe(type(persisted))
        self.assign_scalars(descriptor, persisted, incoming)

        for edge in descriptor.edges:
            if not self.session_store.is_loaded(incoming, edge.name):
                continue
            incoming_value = getattr(incoming, edge.name)
            current = await self.session_store.load(persisted, edge.name)

            if edge.is_collection:
                await self._reconcile_collection(current, list(incoming_value or []), visited)
                continue

            if incoming_value is None:
                continue
            if current is None:
                setattr(persisted, edge.name, await self.attach(incoming_value))
                logger.debug(f"Attached {edge.target.__name__} to {descriptor.name}.{edge.name}")
                continue

            await self._reconcile(current, incoming_value, visited)

    async def _reconcile_collection(self, current: Any, incoming_items: list, visited: Set[Hashable]) -> None:
        persisted_items = list(current)
        matches: Dict[Any, Any] = {}

        for item in incoming_items:
            if item is None:
                continue
            identity = describe(type(item)).identity(item)
            if identity is None:
                if any(item is known for known in persisted_items):
                    continue
                attached = await self.attach(item)
                # attaching may already have added it through a back reference
                if not any(attached is known for known in current):
                    current.append(attached)
            else:
                matches[identity] = item

        for item in persisted_items:
            match = matches.get(describe(type(item)).identity(item))
            if match is not None:
                await self._reconcile(item, match, visited)
