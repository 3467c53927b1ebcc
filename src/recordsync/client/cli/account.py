"""Account commands for the recordsync CLI.

Commands:
- configure: Store the backend URL and API key
- signup: Create an account
- login: Sign in with email and password
- logout: Sign out
- whoami: Show the signed-in user
"""

from __future__ import annotations

import sys

import click
import httpx

from recordsync.client.api import APIError, AuthenticationError
from recordsync.client.cli.config import get_config_file, load_config, save_config
from recordsync.client.cli.services import open_services


@click.command()
@click.option("--url", prompt="Backend URL", help="Backend project URL.")
@click.option("--api-key", prompt="API key", help="Public (anon) API key.")
def configure(url: str, api_key: str) -> None:
    """Store the backend URL and API key."""
    config = load_config()
    config["url"] = url.rstrip("/")
    config["api_key"] = api_key
    save_config(config)
    click.echo(f"Configuration saved to {get_config_file()}")


@click.command()
@click.option("--email", prompt=True, help="Email address.")
@click.password_option(help="Password.")
@click.option("--name", "full_name", default=None, help="Full name.")
def signup(email: str, password: str, full_name: str | None) -> None:
    """Create an account."""
    with open_services() as services:
        try:
            session = services.auth.sign_up(email, password, full_name)
        except APIError as e:
            click.echo(f"Error: Sign-up failed: {e}", err=True)
            sys.exit(1)
        except httpx.RequestError as e:
            click.echo(f"Error: Request failed: {e}", err=True)
            sys.exit(1)

    if session is None:
        click.echo("Account created. Check your email to confirm it, then log in.")
    else:
        click.echo(f"Account created. Signed in as {session.user.email}")


@click.command()
@click.option("--email", prompt=True, help="Email address.")
@click.option("--password", prompt=True, hide_input=True, help="Password.")
def login(email: str, password: str) -> None:
    """Sign in with email and password."""
    with open_services() as services:
        try:
            session = services.auth.sign_in(email, password)
        except AuthenticationError:
            click.echo("Error: Invalid email or password.", err=True)
            sys.exit(1)
        except APIError as e:
            click.echo(f"Error: Sign-in failed: {e}", err=True)
            sys.exit(1)
        except httpx.RequestError as e:
            click.echo(f"Error: Request failed: {e}", err=True)
            sys.exit(1)

    click.echo(f"Signed in as {session.user.email}")


@click.command()
def logout() -> None:
    """Sign out."""
    with open_services() as services:
        if services.auth.session is None:
            click.echo("Not signed in.")
            return
        services.auth.sign_out()
    click.echo("Signed out.")


@click.command()
def whoami() -> None:
    """Show the signed-in user."""
    with open_services() as services:
        user = services.auth.get_current_user()
    if user is None:
        click.echo("Not signed in.")
        sys.exit(1)
    click.echo(f"{user.email} ({user.id})")
    if user.full_name:
        click.echo(f"Name: {user.full_name}")
