"""
History sequencing.

History entries are numbered per main record: the first entry of a record gets
sequence 1 and every new entry continues after the highest stored one. Entries
that already carry a sequence keep it.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Hashable, Iterable, Optional, Tuple

from sqlalchemy import func
from sqlmodel import select

from ..base import HistoryRecord
from ..registry import describe
from ..store import SessionStore

logger = logging.getLogger(__name__)


class HistorySequencer:
    """Assigns sequence numbers to new history entries."""

    def __init__(self, store: SessionStore) -> None:
        self.session_store = store

    def owner(self, entry: HistoryRecord) -> Tuple[Optional[Hashable], Optional[int]]:
        """Counter key and stored identifier of the main record ``entry`` belongs to."""
        descriptor = describe(type(entry))
        if self.session_store.is_loaded(entry, "entity") and entry.entity is not None:
            entity = entry.entity
            identity = describe(type(entity)).identity(entity)
            if identity is None:
                return (type(entity), "unsaved", id(entity)), None
            return (type(entity), identity), identity
        if entry.entity_id is not None:
            target = descriptor.edge("entity").target
            return (target, entry.entity_id), entry.entity_id
        return None, None

    async def highest(self, model: Any, entity_id: int) -> int:
        stmt = select(func.max(model.sequence)).where(model.entity_id == entity_id)
        return await self.session_store.scalar(stmt) or 0

    async def assign(self, records: Iterable[Any]) -> int:
        """Number the unsequenced history entries of ``records`` in iteration order.

        Returns:
            How many entries were numbered
        """
        counters: Dict[Hashable, int] = {}
        assigned = 0
        for record in records:
            if not isinstance(record, HistoryRecord) or record.sequence:
                continue
            key, entity_id = self.owner(record)
            if key is None:
                continue
            if key not in counters:
                counters[key] = 0 if entity_id is None else await self.highest(type(record), entity_id)
            counters[key] += 1
            record.sequence = counters[key]
            assigned += 1
        if assigned:
            logger.debug(f"Sequenced {assigned} history entries over {len(counters)} records")
        return assigned
