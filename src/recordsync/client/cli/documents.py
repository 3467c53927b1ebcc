"""Document upload command for the recordsync CLI.

Commands:
- upload: Upload a file and record it in the documents category
- profile-image: Upload a profile picture
"""

from __future__ import annotations

import mimetypes
import sys
from datetime import datetime, timezone
from pathlib import Path

import click
import httpx

from recordsync.client.api import APIError
from recordsync.client.cli.records import format_record
from recordsync.client.cli.services import finish, open_services, require_owner
from recordsync.client.storage import DOCUMENTS_BUCKET, format_file_size
from recordsync.core.categories import get_category
from recordsync.core.entities import Document

DEFAULT_DOCUMENT_CATEGORY = "Personal"

# Cache entry remembering the URL of the latest profile image
PROFILE_IMAGE_CACHE_KEY = "personal-image"


@click.command()
@click.argument(
    "file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "--category",
    "document_category",
    default=DEFAULT_DOCUMENT_CATEGORY,
    show_default=True,
    help="Document category label.",
)
def upload(file: Path, document_category: str) -> None:
    """Upload FILE to the document store and add it to your documents."""
    category = get_category("documents")
    data = file.read_bytes()
    content_type = mimetypes.guess_type(file.name)[0] or "application/octet-stream"

    with open_services() as services:
        owner = require_owner(services)
        try:
            stored = services.storage.upload(
                DOCUMENTS_BUCKET, owner, file.name, data, content_type
            )
        except APIError as e:
            click.echo(f"Error: Failed to upload {file.name}: {e}", err=True)
            sys.exit(1)
        except httpx.RequestError as e:
            click.echo(f"Error: Request failed: {e}", err=True)
            sys.exit(1)

        click.echo(f"Uploaded {file.name} ({format_file_size(stored.size)})")

        coordinator = services.coordinator(category)
        coordinator.start(owner)
        position = coordinator.add(
            Document(
                name=file.name,
                category=document_category,
                date=datetime.now(timezone.utc).isoformat(),
                size=format_file_size(stored.size),
                file_type=content_type,
                url=stored.url,
            )
        )
        finish(coordinator)
        click.echo(f"Added {format_record(coordinator.records[position])}")


@click.command("profile-image")
@click.argument(
    "file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
def profile_image(file: Path) -> None:
    """Upload FILE as your profile picture."""
    content_type = mimetypes.guess_type(file.name)[0] or "application/octet-stream"
    if not content_type.startswith("image/"):
        click.echo(f"Error: {file.name} is not an image.", err=True)
        sys.exit(1)
    data = file.read_bytes()

    with open_services() as services:
        owner = require_owner(services)
        try:
            stored = services.storage.upload_profile_image(
                owner, file.name, data, content_type
            )
        except APIError as e:
            click.echo(f"Error: Failed to upload profile image: {e}", err=True)
            sys.exit(1)
        except httpx.RequestError as e:
            click.echo(f"Error: Request failed: {e}", err=True)
            sys.exit(1)
        services.cache.write(PROFILE_IMAGE_CACHE_KEY, stored.url)

    click.echo(f"Profile image uploaded: {stored.url}")
