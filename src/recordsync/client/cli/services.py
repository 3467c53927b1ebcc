"""Client objects shared by the CLI commands.

This module provides:
- Services: Cache, identity, table and storage clients wired together
- open_services: Build Services from the CLI configuration or exit
"""

from __future__ import annotations

import sys
from typing import TYPE_CHECKING

import click

from recordsync.client.api import RestClient
from recordsync.client.auth import AuthClient
from recordsync.client.cache import LocalCache
from recordsync.client.cli.config import get_backend_config, get_cache_path
from recordsync.client.status import describe
from recordsync.client.storage import StorageClient
from recordsync.client.sync import AuthRequired, RecordStore, SyncCoordinator
from recordsync.core.types import SyncStatus

if TYPE_CHECKING:
    from pathlib import Path

    from recordsync.core.categories import Category
    from recordsync.core.config import BackendConfig


class Services:
    """Everything a command needs to talk to the backend.

    Usage:
        with open_services() as services:
            owner = services.require_owner()
            coordinator = services.coordinator(category)
    """

    def __init__(self, config: BackendConfig, cache_path: Path) -> None:
        self.config = config
        self.cache = LocalCache(cache_path)
        self.auth = AuthClient(config, self.cache)
        self.rest = RestClient(config, token_provider=self.auth.access_token)
        self.store = RecordStore(self.rest, self.auth)
        self.storage = StorageClient(config, token_provider=self.auth.access_token)
        self._coordinators: list[SyncCoordinator] = []

    def coordinator(self, category: Category) -> SyncCoordinator:
        """Create a coordinator for ``category``, stopped on close()."""
        coordinator = SyncCoordinator(category, self.store, self.cache)
        self._coordinators.append(coordinator)
        return coordinator

    def require_owner(self) -> str:
        """Return the signed-in owner.

        Raises:
            AuthRequired: If nobody is signed in.
        """
        owner = self.auth.current_owner()
        if owner is None:
            raise AuthRequired()
        return owner

    def close(self) -> None:
        for coordinator in self._coordinators:
            coordinator.stop()
        self.storage.close()
        self.rest.close()
        self.auth.close()
        self.cache.close()

    def __enter__(self) -> Services:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()


def open_services() -> Services:
    """Build Services from the CLI configuration.

    Exits with an error if the backend is not configured.
    """
    config = get_backend_config()
    if config is None:
        click.echo("Error: Backend not configured.", err=True)
        click.echo("Run 'recordsync configure' first.")
        sys.exit(1)
    return Services(config, get_cache_path())


def require_owner(services: Services) -> str:
    """Return the signed-in owner or exit with a hint to log in."""
    try:
        return services.require_owner()
    except AuthRequired as e:
        click.echo(f"Error: {e}.", err=True)
        click.echo("Run 'recordsync login' first.")
        sys.exit(1)


def finish(coordinator: SyncCoordinator, timeout: float | None = 60.0) -> SyncStatus:
    """Push pending changes now and report the resulting status.

    Exits with status 1 if the push failed or did not finish in time.
    """
    done = coordinator.flush(timeout)
    status = coordinator.status
    click.echo(describe(status).label)
    if not done:
        click.echo("Error: Timed out waiting for the save to finish.", err=True)
        sys.exit(1)
    if status is SyncStatus.ERROR:
        sys.exit(1)
    return status
