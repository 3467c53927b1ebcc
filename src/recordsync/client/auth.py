"""Identity provider client.

This module provides:
- AuthClient: Sign-up, sign-in, sign-out and current-user lookup
- Session / User: Authenticated session data
- IdentityProvider: The narrow interface the sync layer depends on

The session is kept in the LocalCache (key ``auth-session``) so that a
signed-in user stays signed in across restarts. Listeners registered with
subscribe() are told about every session change.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import asdict, dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Protocol

import httpx

from recordsync.client.api import (
    APIError,
    AuthenticationError,
    decode_json,
    raise_for_api_error,
)
from recordsync.core.config import BackendConfig

if TYPE_CHECKING:
    from recordsync.client.cache import LocalCache

logger = logging.getLogger(__name__)

SESSION_CACHE_KEY = "auth-session"

# Refresh a little before the token actually expires
EXPIRY_MARGIN_S = 30.0


class AuthEvent(str, Enum):
    """Kind of session change."""

    SIGNED_IN = "signed_in"
    SIGNED_OUT = "signed_out"
    TOKEN_REFRESHED = "token_refreshed"


@dataclass
class User:
    """Authenticated user."""

    id: str
    email: str | None = None
    full_name: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> User:
        """Create from API response dictionary."""
        metadata = data.get("user_metadata") or {}
        return cls(
            id=data["id"],
            email=data.get("email"),
            full_name=data.get("full_name", metadata.get("full_name")),
        )


@dataclass
class Session:
    """Tokens of a signed-in user."""

    access_token: str
    refresh_token: str
    expires_at: float
    user: User

    @classmethod
    def from_dict(cls, data: dict[str, Any], now: float) -> Session:
        """Create from a token endpoint response (or a cached session)."""
        expires_at = data.get("expires_at")
        if expires_at is None:
            expires_at = now + float(data.get("expires_in", 3600))
        return cls(
            access_token=data["access_token"],
            refresh_token=data["refresh_token"],
            expires_at=float(expires_at),
            user=User.from_dict(data["user"]),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        return asdict(self)

    def is_expired(self, now: float) -> bool:
        """True when the access token should no longer be used."""
        return now >= self.expires_at - EXPIRY_MARGIN_S


SessionListener = Callable[[AuthEvent, "Session | None"], None]


class IdentityProvider(Protocol):
    """What the sync layer needs from the identity provider."""

    def current_owner(self) -> str | None:
        """Return the signed-in user's id, or None."""
        ...

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Register a session-change listener; returns an unsubscribe function."""
        ...


class AuthClient:
    """HTTP client for the identity API.

    Usage:
        auth = AuthClient(config, cache)
        auth.sign_in("me@example.com", "secret")
        owner = auth.current_owner()
        auth.sign_out()
    """

    def __init__(
        self,
        config: BackendConfig,
        cache: LocalCache | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the identity client.

        Args:
            config: Backend configuration.
            cache: Optional cache used to persist the session.
            clock: Time source, injectable for tests.
        """
        self._config = config
        self._cache = cache
        self._clock = clock
        self._client = httpx.Client(
            base_url=config.auth_url,
            timeout=config.timeout,
            verify=config.verify_ssl,
            headers={"apikey": config.api_key},
        )
        self._lock = threading.RLock()
        self._listeners: list[SessionListener] = []
        self._session: Session | None = self._load_session()

    def close(self) -> None:
        """Close the HTTP client."""
        self._client.close()

    def __enter__(self) -> AuthClient:
        """Context manager entry."""
        return self

    def __exit__(self, *args: object) -> None:
        """Context manager exit."""
        self.close()

    @property
    def session(self) -> Session | None:
        """The current session, possibly expired."""
        return self._session

    # === Session change notification ===

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Register a listener called on every session change.

        Returns:
            Function removing the listener again.
        """
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def _set_session(self, session: Session | None, event: AuthEvent) -> None:
        with self._lock:
            self._session = session
            listeners = list(self._listeners)
        if self._cache is not None:
            if session is None:
                self._cache.delete(SESSION_CACHE_KEY)
            else:
                self._cache.write(SESSION_CACHE_KEY, session.to_dict())
        logger.info("Session change: %s", event.value)
        for listener in listeners:
            listener(event, session)

    def _load_session(self) -> Session | None:
        if self._cache is None:
            return None
        data = self._cache.read(SESSION_CACHE_KEY, None)
        if not data:
            return None
        try:
            return Session.from_dict(data, self._clock())
        except (KeyError, TypeError, ValueError):
            logger.warning("Ignoring malformed cached session")
            return None

    # === Identity operations ===

    def sign_up(
        self,
        email: str,
        password: str,
        full_name: str | None = None,
    ) -> Session | None:
        """Create an account.

        Returns:
            The new session, or None when the project requires the email
            address to be confirmed before signing in.

        Raises:
            APIError: If the account could not be created.
        """
        payload: dict[str, Any] = {"email": email, "password": password}
        if full_name:
            payload["data"] = {"full_name": full_name}
        response = raise_for_api_error(self._client.post("/signup", json=payload))
        data = decode_json(response)
        if not data.get("access_token"):
            logger.info("Sign-up for %s awaits email confirmation", email)
            return None
        session = Session.from_dict(data, self._clock())
        self._set_session(session, AuthEvent.SIGNED_IN)
        return session

    def sign_in(self, email: str, password: str) -> Session:
        """Sign in with email and password.

        Raises:
            AuthenticationError: If the credentials are rejected.
            APIError: On other failures.
        """
        try:
            response = raise_for_api_error(
                self._client.post(
                    "/token",
                    params={"grant_type": "password"},
                    json={"email": email, "password": password},
                )
            )
        except APIError as e:
            if e.status_code == 400:
                raise AuthenticationError(str(e), 400) from e
            raise
        session = Session.from_dict(decode_json(response), self._clock())
        self._set_session(session, AuthEvent.SIGNED_IN)
        return session

    def refresh(self) -> Session | None:
        """Exchange the refresh token for a new session.

        Returns:
            The refreshed session, or None (and signed out) if refused.
        """
        current = self._session
        if current is None:
            return None
        try:
            response = raise_for_api_error(
                self._client.post(
                    "/token",
                    params={"grant_type": "refresh_token"},
                    json={"refresh_token": current.refresh_token},
                )
            )
        except APIError as e:
            logger.warning("Session refresh refused: %s", e)
            self._set_session(None, AuthEvent.SIGNED_OUT)
            return None
        except httpx.HTTPError as e:
            logger.warning("Session refresh failed: %s", e)
            return None
        session = Session.from_dict(decode_json(response), self._clock())
        self._set_session(session, AuthEvent.TOKEN_REFRESHED)
        return session

    def sign_out(self) -> None:
        """Sign out locally and revoke the session on the server.

        Server-side revocation is best effort; the local session is always
        cleared.
        """
        current = self._session
        if current is None:
            return
        try:
            raise_for_api_error(
                self._client.post(
                    "/logout",
                    headers={"Authorization": f"Bearer {current.access_token}"},
                )
            )
        except (APIError, httpx.HTTPError) as e:
            logger.warning("Server-side sign-out failed: %s", e)
        self._set_session(None, AuthEvent.SIGNED_OUT)

    def access_token(self) -> str | None:
        """Return a usable access token, refreshing it if expired."""
        session = self._session
        if session is None:
            return None
        if session.is_expired(self._clock()):
            session = self.refresh()
        return session.access_token if session else None

    def current_owner(self) -> str | None:
        """Return the signed-in user's id without a network round trip.

        An expired session is refreshed first; None when signed out.
        """
        session = self._session
        if session is None:
            return None
        if session.is_expired(self._clock()):
            session = self.refresh()
        return session.user.id if session else None

    def get_current_user(self) -> User | None:
        """Ask the server who the current session belongs to.

        Returns:
            The user, or None when signed out or on any failure.
        """
        token = self.access_token()
        if token is None:
            return None
        try:
            response = raise_for_api_error(
                self._client.get(
                    "/user",
                    headers={"Authorization": f"Bearer {token}"},
                )
            )
        except (APIError, httpx.HTTPError) as e:
            logger.error("Error getting current user: %s", e)
            return None
        return User.from_dict(decode_json(response))
