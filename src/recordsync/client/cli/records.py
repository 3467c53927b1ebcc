"""Record commands for the recordsync CLI.

Commands:
- categories: List the record categories
- list: Show the cached records of a category
- pull: Reload a category from the backend
- add: Add a record
- edit: Change fields of a record
- delete: Delete a record
"""

from __future__ import annotations

import dataclasses
import sys

import click
import httpx

from recordsync.client.api import APIError
from recordsync.client.cli.services import Services, finish, open_services, require_owner
from recordsync.client.status import describe
from recordsync.client.storage import DOCUMENTS_BUCKET, path_from_public_url
from recordsync.client.sync import SyncCoordinator
from recordsync.core.categories import CATEGORIES, Category, get_category
from recordsync.core.entities import Record
from recordsync.core.types import SyncStatus

# Fields shown by format_record only when asked for
_META_FIELDS = frozenset({"id", "owner", "created_at", "updated_at", "extra"})


def parse_assignments(pairs: tuple[str, ...]) -> dict[str, str]:
    """Parse ``field=value`` arguments.

    Raises:
        click.BadParameter: If an argument has no ``=``.
    """
    values = {}
    for pair in pairs:
        name, sep, value = pair.partition("=")
        if not sep or not name:
            raise click.BadParameter(f"expected field=value, got {pair!r}")
        values[name.strip()] = value
    return values


def format_record(record: Record) -> str:
    """One-line representation of a record: id followed by its set fields."""
    fields = [
        f"{f.name}={getattr(record, f.name)}"
        for f in dataclasses.fields(record)
        if f.name not in _META_FIELDS and getattr(record, f.name) is not None
    ]
    return f"{record.id or '(unsaved)'}  {', '.join(fields)}"


def _category(name: str) -> Category:
    try:
        return get_category(name)
    except KeyError as e:
        raise click.BadParameter(e.args[0], param_hint="CATEGORY") from e


def _build(record: Record, values: dict[str, str]) -> Record:
    try:
        return record.with_values(values)
    except (KeyError, ValueError) as e:
        click.echo(f"Error: {e.args[0]}", err=True)
        sys.exit(1)


@click.command()
def categories() -> None:
    """List the record categories."""
    for category in CATEGORIES.values():
        click.echo(f"{category.name:<12} {category.title} ({category.table})")


@click.command("list")
@click.argument("category_name", metavar="CATEGORY")
def list_records(category_name: str) -> None:
    """Show the cached records of CATEGORY without contacting the backend."""
    category = _category(category_name)
    with open_services() as services:
        coordinator = services.coordinator(category)
        coordinator.start(None)
        records = coordinator.records

    if not records:
        click.echo(f"No {category.title.lower()} cached.")
        return
    for record in records:
        click.echo(format_record(record))


@click.command()
@click.argument("category_name", metavar="CATEGORY")
def pull(category_name: str) -> None:
    """Reload CATEGORY from the backend into the local cache."""
    category = _category(category_name)
    with open_services() as services:
        owner = require_owner(services)
        coordinator = services.coordinator(category)
        status = coordinator.start(owner)
        records = coordinator.records

    click.echo(f"{len(records)} {category.title.lower()} record(s)")
    click.echo(describe(status).label)
    if status is SyncStatus.ERROR:
        sys.exit(1)


@click.command()
@click.argument("category_name", metavar="CATEGORY")
@click.argument("assignments", nargs=-1, required=True)
def add(category_name: str, assignments: tuple[str, ...]) -> None:
    """Add a record to CATEGORY.

    Fields are given as field=value, e.g.

        recordsync add education degree=BSc institution="State University"
    """
    category = _category(category_name)
    record = _build(category.entity(), parse_assignments(assignments))

    with open_services() as services:
        owner = require_owner(services)
        coordinator = services.coordinator(category)
        coordinator.start(owner)
        position = coordinator.add(record)
        finish(coordinator)
        click.echo(f"Added {format_record(coordinator.records[position])}")


@click.command()
@click.argument("category_name", metavar="CATEGORY")
@click.argument("record_id", metavar="ID")
@click.argument("assignments", nargs=-1, required=True)
def edit(category_name: str, record_id: str, assignments: tuple[str, ...]) -> None:
    """Change fields of the record ID in CATEGORY."""
    category = _category(category_name)
    values = parse_assignments(assignments)
    # Validate names before touching the backend
    _build(category.entity(), values)

    with open_services() as services:
        owner = require_owner(services)
        coordinator = services.coordinator(category)
        coordinator.start(owner)
        position = coordinator.find(record_id)
        if position is None:
            click.echo(f"Error: No {category.name} record with id {record_id}", err=True)
            sys.exit(1)
        record = coordinator.update(position, values)
        finish(coordinator)
        click.echo(f"Updated {format_record(record)}")


@click.command()
@click.argument("category_name", metavar="CATEGORY")
@click.argument("record_id", metavar="ID")
def delete(category_name: str, record_id: str) -> None:
    """Delete the record ID from CATEGORY."""
    category = _category(category_name)

    with open_services() as services:
        owner = require_owner(services)
        coordinator = services.coordinator(category)
        coordinator.start(owner)
        if category.name == "documents":
            _remove_stored_file(services, coordinator, record_id)
        result = coordinator.delete(record_id)

    if not result.success:
        click.echo(f"Error: Delete failed: {result.error}", err=True)
        sys.exit(1)
    if not result.found:
        click.echo(f"Error: No {category.name} record with id {record_id}", err=True)
        sys.exit(1)
    click.echo(f"Deleted {record_id}")


def _remove_stored_file(
    services: Services, coordinator: SyncCoordinator, record_id: str
) -> None:
    """Remove the uploaded file behind a document record.

    A failure is only reported; the record is deleted regardless.
    """
    position = coordinator.find(record_id)
    if position is None:
        return
    url = getattr(coordinator.records[position], "url", None)
    path = path_from_public_url(url, DOCUMENTS_BUCKET) if url else None
    if path is None:
        return
    try:
        services.storage.remove(DOCUMENTS_BUCKET, [path])
    except (APIError, httpx.HTTPError) as e:
        click.echo(f"Warning: Could not remove stored file {path}: {e}", err=True)
