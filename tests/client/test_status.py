"""Tests for the status display mapping."""

from __future__ import annotations

from recordsync.client.status import StatusDisplay, describe
from recordsync.core.types import SyncStatus


class TestDescribe:
    """Tests for describe()."""

    def test_synced(self) -> None:
        """Synced shows a green check."""
        assert describe(SyncStatus.SYNCED) == StatusDisplay("check-circle", "Saved", "green-500")

    def test_syncing(self) -> None:
        """Syncing shows a blue spinner."""
        assert describe(SyncStatus.SYNCING) == StatusDisplay(
            "refresh-cw", "Saving...", "blue-500"
        )

    def test_error(self) -> None:
        """Error shows a red crossed-out cloud."""
        assert describe(SyncStatus.ERROR) == StatusDisplay("cloud-off", "Save failed", "red-500")

    def test_offline(self) -> None:
        """Offline shows a gray cloud."""
        assert describe(SyncStatus.OFFLINE) == StatusDisplay("cloud", "Offline", "gray-500")

    def test_accepts_string_value(self) -> None:
        """Should accept the plain string value of a status."""
        assert describe("synced").label == "Saved"  # type: ignore[arg-type]
