"""Display projection of the sync status.

This module provides:
- StatusDisplay: What a front end shows for a given status
- describe: Pure mapping from SyncStatus to StatusDisplay
"""

from __future__ import annotations

from dataclasses import dataclass

from recordsync.core.types import SyncStatus


@dataclass(frozen=True)
class StatusDisplay:
    """Status indicator shown next to a collection.

    Attributes:
        icon: Icon kind.
        label: Short label text.
        color: Color class.
    """

    icon: str
    label: str
    color: str


_DISPLAYS = {
    SyncStatus.SYNCED: StatusDisplay("check-circle", "Saved", "green-500"),
    SyncStatus.SYNCING: StatusDisplay("refresh-cw", "Saving...", "blue-500"),
    SyncStatus.ERROR: StatusDisplay("cloud-off", "Save failed", "red-500"),
    SyncStatus.OFFLINE: StatusDisplay("cloud", "Offline", "gray-500"),
}


def describe(status: SyncStatus) -> StatusDisplay:
    """Return the display tuple for a status."""
    return _DISPLAYS[SyncStatus(status)]
