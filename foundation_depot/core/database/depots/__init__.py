"""
Depots and their write-path collaborators.

- depot: ``Depot`` orchestrator (CRUD + view)
- graph: graph store, persists a record and its unsaved nested records
- history: numbers new history entries per main record
- reconciler: merges an incoming record graph into the persisted one
- sanitizer: swaps nested persisted references for session instances
- batch: sequential batch executor and its output
- disposer: collects written records for later cleanup
"""

from .base import BaseDepot
from .batch import BatchOutput, OperationFailure, run_batch
from .depot import Depot
from .disposer import Disposer, RecordDisposer
from .graph import GraphStore, identity_key
from .history import HistorySequencer
from .reconciler import Reconciler
from .sanitizer import Sanitizer

__all__ = [
    "BaseDepot",
    "BatchOutput",
    "Depot",
    "Disposer",
    "GraphStore",
    "HistorySequencer",
    "OperationFailure",
    "Reconciler",
    "RecordDisposer",
    "Sanitizer",
    "identity_key",
    "run_batch",
]
