"""Sync coordinator keeping a cached collection in step with its table.

This module provides:
- SyncCoordinator: Owns one category's collection, its cache entry and the
  debounced background push to the remote store

Lifecycle:
1. start(owner) loads the cache, then fetches the owner's rows and
   overwrites the cache with them
2. Every local mutation is written to the cache at once and schedules a
   debounced push of the entire collection
3. stop() cancels the pending push and discards the result of any push
   still in flight

State Matrix:
    | Event                   | Status afterwards                  |
    |-------------------------|------------------------------------|
    | start, no owner         | OFFLINE (cache used standalone)    |
    | start, fetch ok         | SYNCED (cache overwritten)         |
    | start, fetch failed     | ERROR (cache preserved)            |
    | push in flight          | SYNCING                            |
    | push ok                 | SYNCED (new ids reconciled)        |
    | push failed             | ERROR (local changes kept)         |

A push requested while another one is in flight is coalesced: it runs
right after the current one finishes, with the then-current collection.
"""

from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import replace
from typing import TYPE_CHECKING, Any

from recordsync.client.sync.debounce import Debouncer
from recordsync.client.sync.types import (
    NOT_AUTHENTICATED,
    CoordinatorStats,
    DeleteResult,
    FetchResult,
    StatusListener,
    WriteResult,
)
from recordsync.core.types import SyncStatus

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from recordsync.client.auth import AuthEvent, IdentityProvider, Session
    from recordsync.client.cache import LocalCache
    from recordsync.client.sync.debounce import TimerFactory
    from recordsync.client.sync.store import RecordStore
    from recordsync.core.categories import Category
    from recordsync.core.entities import Record

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_S = 2.0


def _new_key() -> str:
    return uuid.uuid4().hex


class SyncCoordinator:
    """Coordinates the local cache and the remote table of one category.

    Usage:
        coordinator = SyncCoordinator(category, store, cache)
        coordinator.start(owner_id)

        coordinator.add(Education(degree="BSc"))   # pushed 2s later
        coordinator.flush()                         # or right now

        coordinator.stop()
    """

    def __init__(
        self,
        category: Category,
        store: RecordStore,
        cache: LocalCache,
        debounce_s: float = DEFAULT_DEBOUNCE_S,
        timer_factory: TimerFactory | None = None,
    ) -> None:
        """Initialize the coordinator.

        Args:
            category: Category whose collection is managed.
            store: Remote record store.
            cache: Local cache.
            debounce_s: Delay after the last mutation before pushing.
            timer_factory: Timer constructor, threading.Timer by default.
        """
        self._category = category
        self._store = store
        self._cache = cache

        if timer_factory is None:
            self._debouncer = Debouncer(debounce_s, self._push)
        else:
            self._debouncer = Debouncer(debounce_s, self._push, timer_factory)

        # State
        self._lock = threading.RLock()
        self._status = SyncStatus.OFFLINE
        self._owner: str | None = None
        self._records: list[Record] = []
        # Stable local keys, parallel to _records, used to reconcile ids
        self._keys: list[str] = []

        # Lifetime token: bumped by start()/stop() to discard stale results
        self._generation = 0
        self._in_flight = False
        self._dirty = False
        self._idle = threading.Event()
        self._idle.set()

        self._unsubscribe: Callable[[], None] | None = None
        self._listeners: list[StatusListener] = []
        self._stats = CoordinatorStats()

    # === Properties ===

    @property
    def category(self) -> Category:
        """The managed category."""
        return self._category

    @property
    def status(self) -> SyncStatus:
        """Current sync status."""
        return self._status

    @property
    def owner(self) -> str | None:
        """Owner the collection is synced for, None when offline."""
        return self._owner

    @property
    def records(self) -> list[Record]:
        """Snapshot of the cached collection."""
        with self._lock:
            return list(self._records)

    @property
    def stats(self) -> CoordinatorStats:
        """Coordinator statistics."""
        return self._stats

    @property
    def push_pending(self) -> bool:
        """True while a debounced push is scheduled."""
        return self._debouncer.pending

    def add_status_listener(self, listener: StatusListener) -> Callable[[], None]:
        """Register a callback for status changes.

        Returns:
            Function removing the listener again.
        """
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def _set_status(self, status: SyncStatus) -> None:
        if status == self._status:
            return
        logger.debug("%s status: %s -> %s", self._category.name, self._status.value, status.value)
        self._status = status
        for listener in list(self._listeners):
            listener(status)

    # === Lifecycle ===

    def start(self, owner: str | None) -> SyncStatus:
        """Load the collection for ``owner``.

        Cancels anything scheduled for a previous owner. Without an owner
        the coordinator goes OFFLINE and works on the cache alone.

        Returns:
            The resulting status.
        """
        with self._lock:
            self._debouncer.cancel()
            self._generation += 1
            generation = self._generation
            self._owner = owner
            self._load_cache(owner)

        if owner is None:
            logger.info("%s: no authenticated owner, working offline", self._category.name)
            self._set_status(SyncStatus.OFFLINE)
            return self._status

        self._stats.fetches += 1
        try:
            result = self._store.fetch_all(self._category.table, owner)
        except Exception as e:
            logger.exception("Unexpected error fetching %s", self._category.table)
            result = FetchResult(records=None, error=str(e) or type(e).__name__)

        with self._lock:
            if generation != self._generation:
                logger.debug("Discarding superseded fetch of %s", self._category.table)
                return self._status
            if result.records is not None:
                self._replace_all(
                    [self._category.entity.from_row(row) for row in result.records]
                )

        if result.error is not None:
            # Keep the possibly useful stale cache
            self._stats.errors += 1
            logger.error("Error fetching %s from database: %s", self._category.table, result.error)
            self._set_status(SyncStatus.ERROR)
        else:
            logger.info("Loaded %d %s records", len(self._records), self._category.table)
            self._set_status(SyncStatus.SYNCED)
        return self._status

    def stop(self) -> None:
        """Cancel the pending push and detach from the identity provider.

        A push already in flight completes on the server, but its result is
        no longer applied to the collection.
        """
        with self._lock:
            cancelled = self._debouncer.cancel()
            self._generation += 1
            if self._unsubscribe is not None:
                self._unsubscribe()
                self._unsubscribe = None
        if cancelled:
            logger.info("%s: pending push cancelled on stop", self._category.name)

    def attach(self, identity: IdentityProvider) -> SyncStatus:
        """Follow the identity provider's session.

        Starts for the current owner and restarts whenever the signed-in
        owner changes.
        """
        with self._lock:
            if self._unsubscribe is not None:
                self._unsubscribe()
            self._unsubscribe = identity.subscribe(self._on_session_change)
        return self.start(identity.current_owner())

    def _on_session_change(self, event: AuthEvent, session: Session | None) -> None:
        owner = session.user.id if session is not None else None
        if owner == self._owner:
            return
        logger.info("%s: owner changed (%s), restarting", self._category.name, event.value)
        self.start(owner)

    # === Local mutations ===

    def set_records(self, records: Iterable[Record]) -> None:
        """Replace the whole collection."""
        records = list(records)
        with self._lock:
            self._keys = self._carry_keys(records)
            self._records = [self._stamp(r) for r in records]
            self._changed()

    def _carry_keys(self, records: list[Record]) -> list[str]:
        """Local keys for a replacement collection (lock held).

        A record keeps its key when the same object is still in the
        collection. Otherwise, if the length is unchanged, it inherits the
        key of the record it replaces at the same position, so an insert in
        flight still reconciles its id into a rebuilt copy of the record.
        """
        by_identity = {id(r): k for r, k in zip(self._records, self._keys)}
        keys: list[str | None] = []
        used: set[str] = set()
        for record in records:
            key = by_identity.get(id(record))
            if key in used:
                key = None
            if key is not None:
                used.add(key)
            keys.append(key)

        positional = len(records) == len(self._keys)
        carried: list[str] = []
        for position, key in enumerate(keys):
            if key is None:
                previous = self._keys[position] if positional else None
                key = previous if previous is not None and previous not in used else _new_key()
                used.add(key)
            carried.append(key)
        return carried

    def mutate(
        self, updater: Callable[[list[Record]], Iterable[Record] | None]
    ) -> list[Record]:
        """Apply ``updater`` to a copy of the collection and store the result.

        The updater may return a new collection or change the list it was
        given in place and return None.

        Returns:
            The new collection.
        """
        with self._lock:
            current = list(self._records)
            result = updater(current)
            self.set_records(current if result is None else result)
            return list(self._records)

    def add(self, record: Record) -> int:
        """Append a record.

        Returns:
            Position of the new record.
        """
        with self._lock:
            self._records.append(self._stamp(record))
            self._keys.append(_new_key())
            self._changed()
            return len(self._records) - 1

    def update(self, position: int, values: dict[str, Any]) -> Record:
        """Change fields of the record at ``position``.

        Args:
            position: Index in the collection.
            values: Attribute (or column) name -> new value.

        Returns:
            The updated record.
        """
        with self._lock:
            record = self._records[position].with_values(values)
            self._records[position] = record
            self._changed()
            return record

    def remove_local(self, position: int) -> Record:
        """Drop a record from the collection without a remote delete.

        Meant for records that were never persisted.
        """
        with self._lock:
            record = self._records.pop(position)
            self._keys.pop(position)
            self._changed()
            return record

    def find(self, record_id: str) -> int | None:
        """Position of the record with ``record_id``, or None."""
        with self._lock:
            for position, record in enumerate(self._records):
                if record.id == record_id:
                    return position
        return None

    def delete(self, record_id: str) -> DeleteResult:
        """Delete a persisted record remotely, then drop it locally.

        The local copy is only dropped if the remote call succeeded.
        """
        owner = self._owner
        if owner is None:
            return DeleteResult(success=False, error=NOT_AUTHENTICATED)

        result = self._store.delete_one(self._category.table, record_id, owner)
        if not result.success:
            self._stats.errors += 1
            self._set_status(SyncStatus.ERROR)
            return result

        self._stats.deletes += 1
        with self._lock:
            kept = [
                (k, r) for k, r in zip(self._keys, self._records) if r.id != record_id
            ]
            self._keys = [k for k, _ in kept]
            self._records = [r for _, r in kept]
            self._write_cache()
        return result

    def _stamp(self, record: Record) -> Record:
        if self._owner is not None and record.owner is None:
            return replace(record, owner=self._owner)
        return record

    def _changed(self) -> None:
        """Persist the collection and schedule a push (lock held)."""
        self._write_cache()
        if self._owner is not None:
            self._debouncer.trigger()

    # === Cache ===

    def _load_cache(self, owner: str | None) -> None:
        rows = self._cache.read(self._category.cache_key, [])
        if not isinstance(rows, list):
            rows = []
        records = []
        for row in rows:
            if not isinstance(row, dict):
                continue
            record = self._category.entity.from_row(row)
            # Never show another owner's cached rows to this owner
            if owner is not None and record.owner not in (None, owner):
                continue
            records.append(record)
        self._records = records
        self._keys = [_new_key() for _ in records]

    def _replace_all(self, records: list[Record]) -> None:
        self._records = records
        self._keys = [_new_key() for _ in records]
        self._write_cache()

    def _write_cache(self) -> None:
        self._cache.write(
            self._category.cache_key, [r.to_row() for r in self._records]
        )

    # === Push ===

    def flush(self, timeout: float | None = None) -> bool:
        """Push now if a push is scheduled, and wait for pushes to finish.

        Returns:
            True if no push is left in flight.
        """
        self._debouncer.flush()
        return self._idle.wait(timeout)

    def _push(self) -> None:
        """Write the entire collection to the remote store."""
        with self._lock:
            if self._in_flight:
                self._dirty = True
                self._stats.pushes_coalesced += 1
                logger.debug("Push of %s already in flight, coalescing", self._category.table)
                return
            owner = self._owner
            if owner is None:
                return
            generation = self._generation
            keys = list(self._keys)
            rows = [r.to_row() for r in self._records]
            self._in_flight = True
            self._idle.clear()

        self._stats.pushes += 1
        self._set_status(SyncStatus.SYNCING)

        result: WriteResult | None = None
        rerun = False
        try:
            result = self._store.upsert_many(self._category.table, rows, owner)
        except Exception as e:
            logger.exception("Unexpected error pushing %s", self._category.table)
            result = WriteResult(success=False, error=str(e) or type(e).__name__)
        finally:
            with self._lock:
                self._in_flight = False
                current = generation == self._generation
                rerun = self._dirty and current and result is not None
                self._dirty = False
                if result is not None and current:
                    self._reconcile(keys, result.inserted)
                if not rerun:
                    self._idle.set()

        if not current:
            logger.debug("Discarding push result of stopped %s coordinator", self._category.table)
            return

        if result.success:
            self._stats.inserts += len(result.inserted)
            self._stats.updates += result.updated
            self._set_status(SyncStatus.SYNCED)
        else:
            # Optimistic local state is kept; retried by the next push
            self._stats.errors += 1
            logger.error("Error syncing %s to database: %s", self._category.table, result.error)
            self._set_status(SyncStatus.ERROR)

        if rerun:
            self._push()

    def _reconcile(self, keys: list[str], inserted: dict[int, dict[str, Any]]) -> None:
        """Copy server-assigned ids of inserted rows into the collection (lock held)."""
        if not inserted:
            return
        positions = {key: position for position, key in enumerate(self._keys)}
        changed = False
        for index, row in inserted.items():
            position = positions.get(keys[index])
            if position is None or not row.get("id"):
                continue
            record = self._records[position]
            if record.id is not None:
                continue
            self._records[position] = replace(
                record,
                id=row["id"],
                owner=row.get("user_id", record.owner),
                created_at=row.get("created_at", record.created_at),
                updated_at=row.get("updated_at", record.updated_at),
            )
            changed = True
        if changed:
            self._write_cache()
