"""Shared configuration classes for recordsync.

This module defines the backend connection settings used by the REST,
identity and object-store clients.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

URL_ENV_VAR = "RECORDSYNC_URL"
API_KEY_ENV_VAR = "RECORDSYNC_API_KEY"


@dataclass
class BackendConfig:
    """Configuration for connecting to the hosted backend.

    Used by RestClient, AuthClient and StorageClient so that every client
    talks to the same project with the same credentials.

    Attributes:
        url: Base URL of the project (e.g., "https://abc.supabase.co").
        api_key: Public (anon) API key of the project.
        timeout: Request timeout in seconds.
        verify_ssl: Whether to verify SSL certificates (default True).
    """

    url: str
    api_key: str
    timeout: float = 30.0
    verify_ssl: bool = True

    def __post_init__(self) -> None:
        """Normalize backend URL."""
        self.url = self.url.rstrip("/")

    @property
    def rest_url(self) -> str:
        """Base URL of the table API."""
        return f"{self.url}/rest/v1"

    @property
    def auth_url(self) -> str:
        """Base URL of the identity API."""
        return f"{self.url}/auth/v1"

    @property
    def storage_url(self) -> str:
        """Base URL of the object store API."""
        return f"{self.url}/storage/v1"

    @property
    def is_secure(self) -> bool:
        """Check if using HTTPS.

        Returns:
            True if the backend uses HTTPS.
        """
        return self.url.startswith("https://")

    @classmethod
    def from_env(
        cls,
        fallback: dict[str, str] | None = None,
    ) -> BackendConfig | None:
        """Build a config from environment variables.

        Values from the environment win over the ones in ``fallback``
        (typically the CLI config file).

        Returns:
            BackendConfig, or None if the URL or key is missing.
        """
        fallback = fallback or {}
        url = os.environ.get(URL_ENV_VAR) or fallback.get("url")
        api_key = os.environ.get(API_KEY_ENV_VAR) or fallback.get("api_key")
        if not url or not api_key:
            return None
        return cls(url=url, api_key=api_key)
