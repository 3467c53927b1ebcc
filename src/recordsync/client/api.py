"""HTTP client for the hosted table API.

This module provides:
- RestClient: HTTP client speaking PostgREST conventions
- Row operations (select, insert, update, delete) with equality filters
- APIError hierarchy raised on failed responses
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

import httpx

from recordsync.core.config import BackendConfig

logger = logging.getLogger(__name__)

Row = dict[str, Any]


class APIError(Exception):
    """Base exception for API errors."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class AuthenticationError(APIError):
    """Authentication failed or the session is not allowed to do this."""


class NotFoundError(APIError):
    """Resource not found."""


def error_detail(response: httpx.Response, default: str) -> str:
    """Extract a human-readable error message from an error response."""
    try:
        data = response.json()
    except ValueError:
        return response.text or default
    if isinstance(data, dict):
        for key in ("message", "msg", "error_description", "error"):
            if data.get(key):
                return str(data[key])
    return default


def raise_for_api_error(response: httpx.Response) -> httpx.Response:
    """Raise the matching APIError subclass for a failed response."""
    if response.status_code in (401, 403):
        raise AuthenticationError(
            error_detail(response, "Invalid or expired token"),
            response.status_code,
        )
    if response.status_code == 404:
        raise NotFoundError(error_detail(response, "Resource not found"), 404)
    if response.status_code >= 400:
        raise APIError(
            error_detail(response, "Unknown error"), response.status_code
        )
    return response


def decode_json(response: httpx.Response) -> Any:
    """Decode a successful response body.

    Raises:
        APIError: If the body is not valid JSON (e.g. a proxy error page).
    """
    try:
        return response.json()
    except ValueError as e:
        raise APIError("Invalid JSON response", response.status_code) from e


def decode_rows(response: httpx.Response) -> list[Row]:
    """Decode a successful response body that must be a list of rows."""
    rows = decode_json(response)
    if not isinstance(rows, list) or not all(isinstance(r, dict) for r in rows):
        raise APIError("Unexpected response body, expected a list of rows", response.status_code)
    return rows


def eq_filters(filters: dict[str, Any]) -> dict[str, str]:
    """Turn {column: value} into PostgREST equality query parameters."""
    return {column: f"eq.{value}" for column, value in filters.items()}


class RestClient:
    """HTTP client for the table API.

    Every request carries the project API key; once a user is signed in
    its access token replaces the key as bearer token so that row-level
    policies apply to the user.
    """

    def __init__(
        self,
        config: BackendConfig,
        token_provider: Callable[[], str | None] | None = None,
    ) -> None:
        """Initialize the REST client.

        Args:
            config: Backend configuration.
            token_provider: Returns the current user access token, if any.
        """
        self._config = config
        self._token_provider = token_provider
        self._client = httpx.Client(
            base_url=config.rest_url,
            timeout=config.timeout,
            verify=config.verify_ssl,
            headers={"apikey": config.api_key},
        )

    def close(self) -> None:
        """Close the HTTP client."""
        self._client.close()

    def __enter__(self) -> RestClient:
        """Context manager entry."""
        return self

    def __exit__(self, *args: object) -> None:
        """Context manager exit."""
        self.close()

    def _headers(self, **extra: str) -> dict[str, str]:
        """Build per-request headers with the current bearer token."""
        token = self._token_provider() if self._token_provider else None
        return {"Authorization": f"Bearer {token or self._config.api_key}", **extra}

    # === Row operations ===

    def select(
        self,
        table: str,
        filters: dict[str, Any] | None = None,
        order: str | None = None,
    ) -> list[Row]:
        """Select rows from a table.

        Args:
            table: Table name.
            filters: Column equality filters.
            order: Optional PostgREST order clause (e.g. "start_date.desc").

        Returns:
            List of rows (possibly empty).
        """
        params = {"select": "*", **eq_filters(filters or {})}
        if order:
            params["order"] = order
        response = raise_for_api_error(
            self._client.get(f"/{table}", params=params, headers=self._headers())
        )
        return decode_rows(response)

    def insert(self, table: str, row: Row) -> Row:
        """Insert a row and return it as stored by the server.

        Args:
            table: Table name.
            row: Column values.

        Returns:
            The inserted row, including server-assigned columns.
        """
        response = raise_for_api_error(
            self._client.post(
                f"/{table}",
                json=row,
                headers=self._headers(Prefer="return=representation"),
            )
        )
        body = decode_json(response)
        if isinstance(body, list):
            return body[0] if body else {}
        if not isinstance(body, dict):
            raise APIError("Unexpected response body, expected a row", response.status_code)
        return body

    def update(self, table: str, values: Row, filters: dict[str, Any]) -> list[Row]:
        """Update the rows matching all filters.

        Returns:
            The updated rows; empty when nothing matched.
        """
        response = raise_for_api_error(
            self._client.patch(
                f"/{table}",
                params=eq_filters(filters),
                json=values,
                headers=self._headers(Prefer="return=representation"),
            )
        )
        return decode_rows(response)

    def delete(self, table: str, filters: dict[str, Any]) -> list[Row]:
        """Delete the rows matching all filters.

        Returns:
            The deleted rows; empty when nothing matched.
        """
        response = raise_for_api_error(
            self._client.delete(
                f"/{table}",
                params=eq_filters(filters),
                headers=self._headers(Prefer="return=representation"),
            )
        )
        return decode_rows(response)
