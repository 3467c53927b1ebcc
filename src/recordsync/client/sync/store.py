"""Owner-scoped access to the remote record tables.

This module provides:
- RecordStore: fetch_all / upsert_many / delete_one / get_current_owner

Every read and write is filtered by the owner column. Methods return
result objects and never raise, so callers can show a non-fatal error
state instead of crashing.

Routing rule for upsert_many:
    | Record has id | Operation                                 |
    |---------------|-------------------------------------------|
    | yes           | UPDATE ... WHERE id = :id AND user_id = :o |
    | no            | INSERT (server assigns id)                 |
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING

import httpx

from recordsync.client.api import APIError
from recordsync.client.sync.types import (
    NOT_AUTHENTICATED,
    DeleteResult,
    FetchResult,
    PartialWriteFailure,
    SyncError,
    TransportError,
    WriteResult,
)
from recordsync.core.entities import TIMESTAMP_COLUMNS

if TYPE_CHECKING:
    from recordsync.client.api import RestClient, Row
    from recordsync.client.auth import IdentityProvider

logger = logging.getLogger(__name__)

OWNER_COLUMN = "user_id"
ID_COLUMN = "id"

DEFAULT_MAX_WORKERS = 8


def describe_error(error: Exception) -> str:
    """Turn a transport or API exception into a message for result objects."""
    if isinstance(error, APIError):
        return str(error)
    if isinstance(error, httpx.HTTPError):
        return f"Transport error: {error}"
    return str(error) or "Unknown error occurred during sync"


def prepare_row(record: Row, owner: str) -> Row:
    """Strip server-maintained timestamps and stamp the owner."""
    row = {k: v for k, v in record.items() if k not in TIMESTAMP_COLUMNS}
    row[OWNER_COLUMN] = owner
    return row


class UpdateMissedError(APIError):
    """An update matched no row (wrong id, or owned by someone else)."""


class RecordStore:
    """Remote record store client.

    Usage:
        store = RecordStore(rest, identity)
        result = store.fetch_all("education", owner)
        if result.ok:
            ...
    """

    def __init__(
        self,
        rest: RestClient,
        identity: IdentityProvider | None = None,
        max_workers: int = DEFAULT_MAX_WORKERS,
    ) -> None:
        """Initialize the store.

        Args:
            rest: Table API client.
            identity: Identity provider used to resolve the current owner.
            max_workers: Maximum concurrent requests within one batch.
        """
        self._rest = rest
        self._identity = identity
        self._max_workers = max_workers

    def get_current_owner(self) -> str | None:
        """Resolve the currently authenticated owner.

        Returns:
            Owner id, or None if nobody is signed in or lookup fails.
        """
        if self._identity is None:
            return None
        try:
            return self._identity.current_owner()
        except Exception as e:
            logger.error("Error getting current owner: %s", e)
            return None

    def fetch_all(self, table: str, owner: str | None) -> FetchResult:
        """Fetch every row of ``table`` owned by ``owner``.

        Returns:
            FetchResult with the rows ([] when none), or with ``error`` set
            and ``records`` None on failure.
        """
        if not owner:
            return FetchResult(records=None, error=NOT_AUTHENTICATED)

        try:
            rows = self._rest.select(table, {OWNER_COLUMN: owner})
        except (APIError, httpx.HTTPError) as e:
            logger.error("Error fetching data for table %s: %s", table, e)
            return FetchResult(records=None, error=describe_error(e))

        logger.debug("Fetched %d rows from %s", len(rows), table)
        return FetchResult(records=list(rows or []))

    def upsert_many(
        self,
        table: str,
        records: list[Row],
        owner: str | None,
    ) -> WriteResult:
        """Write a whole collection, one request per record.

        Records with an id are updated (filtered by id and owner), the
        others inserted. All requests of the batch run concurrently and the
        call waits for every one of them; any failure makes the whole call
        report failure.

        Returns:
            WriteResult; ``inserted`` maps batch index -> stored row.
        """
        if not owner:
            logger.error("Aborted sync of %s: %s", table, NOT_AUTHENTICATED)
            return WriteResult(success=False, error=NOT_AUTHENTICATED)
        if not records:
            return WriteResult(success=True)

        logger.debug("Processing %d records for table %s", len(records), table)

        inserted: dict[int, Row] = {}
        failed: dict[int, str] = {}
        updated = 0

        workers = max(1, min(self._max_workers, len(records)))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="upsert") as pool:
            futures = {
                pool.submit(self._write_one, table, record, owner): index
                for index, record in enumerate(records)
            }
            for future, index in futures.items():
                try:
                    stored = future.result()
                except (APIError, SyncError) as e:
                    failed[index] = describe_error(e)
                    continue
                if stored is None:
                    updated += 1
                else:
                    inserted[index] = stored

        if failed:
            error = PartialWriteFailure(failed, len(records))
            logger.error("Error syncing data for table %s: %s", table, error)
            return WriteResult(
                success=False, error=str(error), inserted=inserted, updated=updated
            )

        logger.info(
            "Synced %s: %d inserted, %d updated", table, len(inserted), updated
        )
        return WriteResult(success=True, inserted=inserted, updated=updated)

    def _write_one(self, table: str, record: Row, owner: str) -> Row | None:
        """Insert or update one record.

        Returns:
            The stored row for an insert, None for an update.

        Raises:
            APIError: If the server rejected the request.
            TransportError: If the request could not be sent.
        """
        row = prepare_row(record, owner)
        record_id = row.pop(ID_COLUMN, None)

        try:
            if record_id is not None:
                logger.debug("Preparing UPDATE for id %s in %s", record_id, table)
                rows = self._rest.update(
                    table, row, {ID_COLUMN: record_id, OWNER_COLUMN: owner}
                )
                if not rows:
                    raise UpdateMissedError(f"No {table} row {record_id} owned by {owner}")
                return None

            logger.debug("Preparing INSERT into %s", table)
            return self._rest.insert(table, row)
        except httpx.HTTPError as e:
            raise TransportError(f"Transport error: {e}") from e

    def delete_one(self, table: str, record_id: str, owner: str | None) -> DeleteResult:
        """Delete the row matching both ``record_id`` and ``owner``.

        A row that does not exist or belongs to someone else is left
        untouched; the result reports success with ``found`` False.
        """
        if not owner:
            return DeleteResult(success=False, error=NOT_AUTHENTICATED)

        try:
            rows = self._rest.delete(table, {ID_COLUMN: record_id, OWNER_COLUMN: owner})
        except (APIError, httpx.HTTPError) as e:
            logger.error("Error deleting item from %s: %s", table, e)
            return DeleteResult(success=False, error=describe_error(e))

        if not rows:
            logger.info("Delete of %s/%s matched no row", table, record_id)
        return DeleteResult(success=True, found=bool(rows))
