"""Shared types for recordsync.

This module defines types and enums used across the client components.
"""

from __future__ import annotations

from enum import Enum


class SyncStatus(str, Enum):
    """Sync health of a category collection.

    Produced by the SyncCoordinator and projected for display by
    recordsync.client.status.
    """

    SYNCED = "synced"
    SYNCING = "syncing"
    ERROR = "error"
    OFFLINE = "offline"
