"""Command-line interface for recordsync.

This module provides the main CLI entry point and assembles all commands.

Commands:
- configure: Store the backend URL and API key
- signup / login / logout / whoami: Account management
- categories: List the record categories
- list: Show cached records of a category
- pull: Reload a category from the backend
- add / edit / delete: Change records; changes are pushed before exit
- upload: Upload a document
- profile-image: Upload a profile picture
"""

from __future__ import annotations

import logging

import click

from recordsync.client.cli.account import configure, login, logout, signup, whoami
from recordsync.client.cli.config import (
    get_backend_config,
    get_cache_path,
    get_config_dir,
    get_config_file,
    load_config,
    save_config,
)
from recordsync.client.cli.documents import profile_image, upload
from recordsync.client.cli.records import (
    add,
    categories,
    delete,
    edit,
    list_records,
    pull,
)


@click.group()
@click.version_option(package_name="recordsync")
@click.option("-v", "--verbose", count=True, help="Show sync logs (-vv for debug).")
def cli(verbose: int) -> None:
    """recordsync - personal records kept in sync with your backend."""
    level = logging.WARNING
    if verbose == 1:
        level = logging.INFO
    elif verbose > 1:
        level = logging.DEBUG
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# Account commands
cli.add_command(configure)
cli.add_command(signup)
cli.add_command(login)
cli.add_command(logout)
cli.add_command(whoami)

# Record commands
cli.add_command(categories)
cli.add_command(list_records)
cli.add_command(pull)
cli.add_command(add)
cli.add_command(edit)
cli.add_command(delete)

# Document commands
cli.add_command(upload)
cli.add_command(profile_image)


def main() -> None:
    """Entry point for the CLI."""
    cli()


__all__ = [
    # Main entry points
    "cli",
    "main",
    # Config utilities
    "get_backend_config",
    "get_cache_path",
    "get_config_dir",
    "get_config_file",
    "load_config",
    "save_config",
]
