"""Tests for core configuration classes."""

from __future__ import annotations

import pytest

from recordsync.core.config import API_KEY_ENV_VAR, URL_ENV_VAR, BackendConfig


class TestBackendConfig:
    """Tests for BackendConfig class."""

    def test_init_basic(self) -> None:
        """Should initialize with required fields."""
        config = BackendConfig(url="https://abc.supabase.co", api_key="anon")
        assert config.url == "https://abc.supabase.co"
        assert config.api_key == "anon"
        assert config.timeout == 30.0
        assert config.verify_ssl is True

    def test_url_trailing_slash_removed(self) -> None:
        """Should strip trailing slash from the backend URL."""
        config = BackendConfig(url="https://abc.supabase.co/", api_key="anon")
        assert config.url == "https://abc.supabase.co"

    def test_service_urls(self) -> None:
        """Should derive the table, identity and storage base URLs."""
        config = BackendConfig(url="https://abc.supabase.co", api_key="anon")
        assert config.rest_url == "https://abc.supabase.co/rest/v1"
        assert config.auth_url == "https://abc.supabase.co/auth/v1"
        assert config.storage_url == "https://abc.supabase.co/storage/v1"

    def test_is_secure(self) -> None:
        """Should report HTTPS URLs as secure."""
        assert BackendConfig(url="https://x", api_key="k").is_secure is True
        assert BackendConfig(url="http://localhost:54321", api_key="k").is_secure is False


class TestFromEnv:
    """Tests for BackendConfig.from_env()."""

    @pytest.fixture(autouse=True)
    def clean_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Start every test without backend variables."""
        monkeypatch.delenv(URL_ENV_VAR, raising=False)
        monkeypatch.delenv(API_KEY_ENV_VAR, raising=False)

    def test_missing_returns_none(self) -> None:
        """Should return None when nothing is configured."""
        assert BackendConfig.from_env() is None

    def test_fallback_used(self) -> None:
        """Should use the fallback mapping when the environment is empty."""
        config = BackendConfig.from_env({"url": "http://file", "api_key": "file-key"})
        assert config is not None
        assert config.url == "http://file"
        assert config.api_key == "file-key"

    def test_environment_overrides_fallback(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Environment variables should win over the fallback."""
        monkeypatch.setenv(URL_ENV_VAR, "http://env/")
        config = BackendConfig.from_env({"url": "http://file", "api_key": "file-key"})
        assert config is not None
        assert config.url == "http://env"
        assert config.api_key == "file-key"

    def test_incomplete_returns_none(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Should return None when only the URL is known."""
        monkeypatch.setenv(URL_ENV_VAR, "http://env")
        assert BackendConfig.from_env() is None
