"""Configuration utilities for the recordsync CLI.

This module provides shared configuration functions used across CLI commands.
"""

from __future__ import annotations

import json
from pathlib import Path

from recordsync.core.config import BackendConfig


def get_config_dir() -> Path:
    """Get the configuration directory for recordsync.

    Returns:
        Path to ~/.recordsync or equivalent.
    """
    return Path.home() / ".recordsync"


def get_config_file() -> Path:
    """Get the path to the config file."""
    return get_config_dir() / "config.json"


def get_cache_path() -> Path:
    """Get the path to the local cache database."""
    return get_config_dir() / "cache.db"


def load_config() -> dict[str, str]:
    """Load configuration from config file."""
    config_file = get_config_file()
    if config_file.exists():
        return dict(json.loads(config_file.read_text()))
    return {}


def save_config(config: dict[str, str]) -> None:
    """Save configuration to config file."""
    config_file = get_config_file()
    config_file.parent.mkdir(parents=True, exist_ok=True)
    config_file.write_text(json.dumps(config, indent=2))


def get_backend_config() -> BackendConfig | None:
    """Resolve the backend settings.

    Environment variables override the config file.

    Returns:
        BackendConfig, or None if the backend is not configured.
    """
    return BackendConfig.from_env(load_config())
