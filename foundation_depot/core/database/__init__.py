"""
Depot database layer.

Structure:
- base.py: SQLModel record bases (``Record``, ``NamedRecord``, ``ReferencedRecord``, ``HistoryRecord``)
- registry.py: per-type descriptors (columns, navigation edges, rules)
- validation.py: read/write-time record validation rules
- query/: filter composition, ordering and pagination
- depots/: the ``Depot`` orchestrator and its write-path collaborators
- schemas/: filter, view and operation request/response models
- session.py: Global engine and session factory management
- utils.py: Database utility functions (engine, session factory, tables)
"""

from .base import (
    Base,
    HistoryRecord,
    NamedRecord,
    Record,
    ReferencedRecord,
    UTCDateTime,
    as_utc,
    new_reference,
    utc_now,
)
from .depots import BaseDepot, BatchOutput, Depot, RecordDisposer
from .errors import (
    ComposeError,
    CreateDisabledError,
    DepotError,
    InvalidPaginationError,
    RecordValidationError,
    StoreFailure,
    UnfoundError,
    UnknownPropertyError,
)
from .registry import describe, registry
from .session import (
    async_session_maker,
    engine,
    get_session,
    open_depot,
)
from .utils import (
    create_all,
    create_engine,
    create_sessionmaker,
)

__all__ = [
    "Base",
    "BaseDepot",
    "BatchOutput",
    "ComposeError",
    "CreateDisabledError",
    "Depot",
    "DepotError",
    "HistoryRecord",
    "InvalidPaginationError",
    "NamedRecord",
    "Record",
    "ReferencedRecord",
    "RecordDisposer",
    "RecordValidationError",
    "StoreFailure",
    "UTCDateTime",
    "UnfoundError",
    "UnknownPropertyError",
    "as_utc",
    "async_session_maker",
    "create_all",
    "create_engine",
    "create_sessionmaker",
    "describe",
    "engine",
    "get_session",
    "new_reference",
    "open_depot",
    "registry",
    "utc_now",
]
