"""Local-cache / remote-sync bridge.

Architecture:
    LocalCache <-> SyncCoordinator -> Debouncer -> RecordStore -> RestClient

Components:
- **RecordStore**: Owner-scoped fetch/upsert/delete against a remote table
- **Debouncer**: Cancellable timer coalescing bursts of mutations
- **SyncCoordinator**: Owns a category's collection, its cache entry and
  the debounced push; exposes a SyncStatus

All public symbols are re-exported here.
"""

from recordsync.client.sync.coordinator import DEFAULT_DEBOUNCE_S, SyncCoordinator
from recordsync.client.sync.debounce import Debouncer, TimerFactory, TimerHandle
from recordsync.client.sync.store import (
    ID_COLUMN,
    OWNER_COLUMN,
    RecordStore,
    UpdateMissedError,
    prepare_row,
)
from recordsync.client.sync.types import (
    NOT_AUTHENTICATED,
    AuthRequired,
    CoordinatorStats,
    DeleteResult,
    FetchResult,
    PartialWriteFailure,
    StatusListener,
    SyncError,
    TransportError,
    WriteResult,
)

__all__ = [
    # Errors
    "AuthRequired",
    "PartialWriteFailure",
    "SyncError",
    "TransportError",
    "UpdateMissedError",
    # Results
    "DeleteResult",
    "FetchResult",
    "WriteResult",
    # Store
    "ID_COLUMN",
    "NOT_AUTHENTICATED",
    "OWNER_COLUMN",
    "RecordStore",
    "prepare_row",
    # Debounce
    "Debouncer",
    "TimerFactory",
    "TimerHandle",
    # Coordinator
    "CoordinatorStats",
    "DEFAULT_DEBOUNCE_S",
    "StatusListener",
    "SyncCoordinator",
]
