"""Shared types and dataclasses for sync operations.

This module provides:
- SyncError, AuthRequired, TransportError, PartialWriteFailure: Error taxonomy
- FetchResult, WriteResult, DeleteResult: Result of remote store operations
- CoordinatorStats: Coordinator statistics
- Type aliases for callbacks
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from recordsync.core.types import SyncStatus

NOT_AUTHENTICATED = "User not authenticated"


class SyncError(Exception):
    """Base exception for sync errors."""


class AuthRequired(SyncError):
    """No owner could be resolved."""

    def __init__(self, message: str = NOT_AUTHENTICATED) -> None:
        super().__init__(message)


class TransportError(SyncError):
    """Network or provider failure."""


class PartialWriteFailure(SyncError):
    """At least one record of a batch could not be written.

    Attributes:
        failed: Batch index -> error message for every failed record.
        total: Number of records in the batch.
    """

    def __init__(self, failed: dict[int, str], total: int) -> None:
        self.failed = failed
        self.total = total
        first = failed[min(failed)]
        super().__init__(f"{len(failed)} of {total} records failed to sync: {first}")


@dataclass
class FetchResult:
    """Result of fetching a collection.

    ``records`` is None exactly when ``error`` is set.
    """

    records: list[dict[str, Any]] | None
    error: str | None = None

    @property
    def ok(self) -> bool:
        """True if the fetch succeeded."""
        return self.error is None


@dataclass
class WriteResult:
    """Result of writing a batch.

    Attributes:
        success: Whether every record was written.
        error: Error message if any record failed.
        inserted: Batch index -> row returned by the server for inserts.
        updated: Number of records updated.
    """

    success: bool
    error: str | None = None
    inserted: dict[int, dict[str, Any]] = field(default_factory=dict)
    updated: int = 0


@dataclass
class DeleteResult:
    """Result of deleting a record.

    Attributes:
        success: Whether the request succeeded.
        found: Whether a row actually matched id and owner.
        error: Error message if failed.
    """

    success: bool
    found: bool = False
    error: str | None = None


@dataclass
class CoordinatorStats:
    """Statistics for the coordinator."""

    fetches: int = 0
    pushes: int = 0
    pushes_coalesced: int = 0
    inserts: int = 0
    updates: int = 0
    deletes: int = 0
    errors: int = 0


# Type alias for status change callback
StatusListener = Callable[[SyncStatus], None]
