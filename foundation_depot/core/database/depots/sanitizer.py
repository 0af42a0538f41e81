"""
Record graph sanitizer.

Prepares a record graph before it is handed to the store: nested records that
claim an identifier are swapped for the session's persistent instance of that
identifier, so existing dependencies are referenced instead of re-inserted,
and unsaved records get a cleared identifier so the store assigns one.
"""

from __future__ import annotations

import logging
from typing import Any, Set, Tuple

from ..errors import UnfoundError
from ..registry import describe
from ..store import SessionStore

logger = logging.getLogger(__name__)


class Sanitizer:
    """Normalizes record graphs against one store."""

    def __init__(self, store: SessionStore) -> None:
        self.session_store = store

    async def sanitize(self, root: Any) -> Any:
        """Normalize every record reachable from ``root`` (the root itself is kept).

        Raises:
            UnfoundError: When a nested record references an identifier the store doesn't hold.
        """
        await self._visit(root, set())
        return root

    async def attach(self, record: Any) -> Any:
        """Resolve a record about to be attached to a persistent graph.

        Returns the persistent instance for persisted records, or the
        sanitized record itself when it is new.
        """
        resolved = await self._resolve(record)
        if resolved is record:
            await self._visit(record, set())
        return resolved

    async def _resolve(self, record: Any) -> Any:
        descriptor = describe(type(record))
        identity = descriptor.identity(record)
        if identity is None:
            setattr(record, descriptor.primary_key, None)
            return record
        if self.session_store.is_tracked(record):
            return record
        persistent = await self.session_store.find_by_id(descriptor.model, identity)
        if persistent is None:
            raise UnfoundError(descriptor.name, f"{descriptor.primary_key} = {identity}")
        logger.debug(f"Resolved nested {descriptor.name}({identity}) to its persistent instance")
        return persistent

    async def _visit(self, record: Any, visited: Set[Tuple[type, int]]) -> None:
        key = (type(record), id(record))
        if key in visited:
            return
        visited.add(key)

        descriptor = describe(type(record))
        if descriptor.identity(record) is None:
            setattr(record, descriptor.primary_key, None)

        for edge in descriptor.edges:
            if not self.session_store.is_loaded(record, edge.name):
                continue
            value = getattr(record, edge.name)
            if value is None:
                continue

            if edge.is_collection:
                items = [item for item in value if item is not None]
                resolved_items = [await self._resolve(item) for item in items]
                if any(new is not old for new, old in zip(resolved_items, items)):
                    setattr(record, edge.name, resolved_items)
                for new, old in zip(resolved_items, items):
                    if new is old and not self.session_store.is_persistent(new):
                        await self._visit(new, visited)
            else:
                resolved = await self._resolve(value)
                if resolved is not value:
                    setattr(record, edge.name, resolved)
                elif not self.session_store.is_persistent(value):
                    await self._visit(value, visited)
