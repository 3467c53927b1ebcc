"""Object store client for documents and profile images.

Uploaded objects are keyed by an owner-prefixed path
(``<owner>/<timestamp>_<name>``), the same owner scoping the record
tables use.
"""

from __future__ import annotations

import logging
import re
import time
from collections.abc import Callable
from dataclasses import dataclass

import httpx

from recordsync.client.api import raise_for_api_error
from recordsync.core.config import BackendConfig

logger = logging.getLogger(__name__)

DOCUMENTS_BUCKET = "user_documents"
PROFILES_BUCKET = "user_profiles"


@dataclass
class StoredObject:
    """An uploaded object.

    Attributes:
        bucket: Bucket name.
        path: Object path inside the bucket.
        url: Public URL of the object.
        size: Size in bytes.
    """

    bucket: str
    path: str
    url: str
    size: int


def object_path(owner: str, filename: str, timestamp_ms: int) -> str:
    """Build the owner-prefixed path of a new object.

    Whitespace in the file name is replaced with underscores.
    """
    safe_name = re.sub(r"\s+", "_", filename.strip())
    return f"{owner}/{timestamp_ms}_{safe_name}"


def profile_image_path(owner: str, filename: str, timestamp_ms: int) -> str:
    """Build the path of a profile image, keeping only the file extension."""
    _, dot, extension = filename.rpartition(".")
    suffix = f".{extension}" if dot and extension else ""
    return f"{owner}/profile-{timestamp_ms}{suffix}"


def path_from_public_url(url: str, bucket: str) -> str | None:
    """Object path inside ``bucket`` of a public URL, None if it is not one."""
    _, sep, path = url.partition(f"/object/public/{bucket}/")
    return path if sep and path else None


def format_file_size(size: int) -> str:
    """Format a byte count the way document records store it."""
    if size < 1024:
        return f"{size} B"
    if size < 1024 * 1024:
        return f"{size / 1024:.1f} KB"
    return f"{size / (1024 * 1024):.1f} MB"


class StorageClient:
    """HTTP client for the object store API."""

    def __init__(
        self,
        config: BackendConfig,
        token_provider: Callable[[], str | None] | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the storage client.

        Args:
            config: Backend configuration.
            token_provider: Returns the current user access token, if any.
            clock: Time source used for object names.
        """
        self._config = config
        self._token_provider = token_provider
        self._clock = clock
        self._client = httpx.Client(
            base_url=config.storage_url,
            timeout=config.timeout,
            verify=config.verify_ssl,
            headers={"apikey": config.api_key},
        )

    def close(self) -> None:
        """Close the HTTP client."""
        self._client.close()

    def __enter__(self) -> StorageClient:
        """Context manager entry."""
        return self

    def __exit__(self, *args: object) -> None:
        """Context manager exit."""
        self.close()

    def _bearer(self) -> dict[str, str]:
        token = self._token_provider() if self._token_provider else None
        return {"Authorization": f"Bearer {token or self._config.api_key}"}

    def public_url(self, bucket: str, path: str) -> str:
        """Return the public URL of an object."""
        return f"{self._config.storage_url}/object/public/{bucket}/{path}"

    def upload(
        self,
        bucket: str,
        owner: str,
        filename: str,
        data: bytes,
        content_type: str = "application/octet-stream",
    ) -> StoredObject:
        """Upload a file under the owner's prefix.

        Args:
            bucket: Target bucket.
            owner: Owner id, used as path prefix.
            filename: Original file name.
            data: File content.
            content_type: MIME type of the content.

        Returns:
            The stored object with its public URL.
        """
        path = object_path(owner, filename, int(self._clock() * 1000))
        stored = self._put(bucket, path, data, content_type)
        logger.info("Uploaded %s (%d bytes) to %s", filename, len(data), bucket)
        return stored

    def upload_profile_image(
        self,
        owner: str,
        filename: str,
        data: bytes,
        content_type: str = "application/octet-stream",
    ) -> StoredObject:
        """Upload a profile image as ``<owner>/profile-<ms>.<ext>``."""
        path = profile_image_path(owner, filename, int(self._clock() * 1000))
        stored = self._put(PROFILES_BUCKET, path, data, content_type)
        logger.info("Uploaded profile image %s for %s", path, owner)
        return stored

    def _put(self, bucket: str, path: str, data: bytes, content_type: str) -> StoredObject:
        raise_for_api_error(
            self._client.post(
                f"/object/{bucket}/{path}",
                content=data,
                headers={
                    **self._bearer(),
                    "Content-Type": content_type,
                    "Cache-Control": "3600",
                    "x-upsert": "false",
                },
            )
        )
        return StoredObject(
            bucket=bucket,
            path=path,
            url=self.public_url(bucket, path),
            size=len(data),
        )

    def remove(self, bucket: str, paths: list[str]) -> None:
        """Delete objects from a bucket."""
        raise_for_api_error(
            self._client.request(
                "DELETE",
                f"/object/{bucket}",
                json={"prefixes": paths},
                headers=self._bearer(),
            )
        )
