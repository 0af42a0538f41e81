"""
Graph store (create path).

Persists a record together with every unsaved record reachable through its
navigation edges. The traversal runs in two passes:

1. discover: depth-first walk collecting each record once, in discovery order,
   keyed by a stable identity so cycles and shared references short-circuit
2. sequence: number new history entries per main record
3. persist: insert unsaved records in reverse discovery order, dependencies
   before the records that reference them
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Hashable, List, Optional

from ..registry import describe
from ..store import SessionStore
from .disposer import Disposer
from .history import HistorySequencer

logger = logging.getLogger(__name__)


def identity_key(record: Any) -> Hashable:
    """Stable identity of a record inside one traversal.

    Persisted records are keyed by type and primary key, so two copies of the
    same stored row count once; unsaved records only have object identity.
    """
    descriptor = describe(type(record))
    identity = descriptor.identity(record)
    if identity is not None:
        return (descriptor.model, identity)
    return (descriptor.model, "unsaved", id(record))


class GraphStore:
    """Stores record graphs through a ``SessionStore``."""

    def __init__(self, store: SessionStore, disposer: Optional[Disposer] = None) -> None:
        self.session_store = store
        self.disposer = disposer
        self.sequencer = HistorySequencer(store)

    def discover(self, root: Any) -> List[Any]:
        """Collect ``root`` and every loaded nested record, once each, in discovery order."""
        visited: Dict[Hashable, Any] = {}
        pending: List[Any] = [root]
        while pending:
            record = pending.pop()
            if record is None:
                continue
            key = identity_key(record)
            if key in visited:
                continue
            visited[key] = record
            if record is not root and self.session_store.is_persistent(record):
                # stored rows are referenced as they are, nothing below them is inserted here
                continue

            children: List[Any] = []
            for edge in describe(type(record)).edges:
                if not self.session_store.is_loaded(record, edge.name):
                    continue
                value = getattr(record, edge.name)
                if value is None:
                    continue
                if edge.is_collection:
                    children.extend(value)
                else:
                    children.append(value)
            # reversed so the first edge/item is walked first
            pending.extend(reversed(children))
        return list(visited.values())

    async def store(self, root: Any, *, commit: bool = False, include_root: bool = False) -> Any:
        """Persist ``root`` and its unsaved nested records.

        Args:
            root: Record graph entry point
            commit: Commit right away; otherwise pending changes wait for the caller's commit
            include_root: Insert the root even when it already carries an identifier

        Returns:
            The same ``root`` instance
        """
        discovered = self.discover(root)
        await self.sequencer.assign(discovered)
        inserted = 0
        for record in reversed(discovered):
            descriptor = describe(type(record))
            is_new = descriptor.identity(record) is None
            if not (is_new or (include_root and record is root)):
                continue
            if is_new:
                setattr(record, descriptor.primary_key, None)
            self.session_store.insert(record)
            if self.disposer is not None:
                self.disposer.push(record)
            inserted += 1

        logger.debug(
            f"Graph store staged {inserted} of {len(discovered)} records from {type(root).__name__}"
        )
        if commit:
            await self.session_store.commit()
        return root
