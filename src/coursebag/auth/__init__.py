import os
from pathlib import Path
from typing import Annotated

import typer
from dotenv import load_dotenv
from loguru import logger

from coursebag import app as main_app
from coursebag.api import BaseUrlOption, ConfigOption, connect, fail
from coursebag.api.errors import ApiError

from .session import SessionKeeper

# Create a local Typer app for session management
app = typer.Typer(help="Log in to and out of the course platform")


def _resolve_password(password: str | None) -> str:
    """Use the given password, else COURSEBAG_PASSWORD, else ask for it."""
    if password:
        return password
    load_dotenv()
    password = os.getenv("COURSEBAG_PASSWORD")
    if password:
        logger.debug("Using password from COURSEBAG_PASSWORD")
        return password
    return typer.prompt("Password", hide_input=True)


@app.command()
def login(
    email: Annotated[str, typer.Option(help="Account email address")],
    password: Annotated[str | None, typer.Option(help="Account password")] = None,
    base_url: BaseUrlOption = None,
    config: ConfigOption = None,
) -> None:
    """Log in and store the session token."""
    with connect(base_url, config) as client:
        try:
            ok = client.authenticate(email, _resolve_password(password))
        except ApiError as e:
            fail(e)
        if not ok:
            typer.echo("Login failed: check your email and password.", err=True)
            raise typer.Exit(code=1)
        typer.echo(f"Logged in as {email}.")


@app.command()
def logout(base_url: BaseUrlOption = None, config: ConfigOption = None) -> None:
    """Forget the stored session token."""
    with connect(base_url, config) as client:
        client.logout()
    typer.echo("Logged out.")


@app.command()
def refresh(base_url: BaseUrlOption = None, config: ConfigOption = None) -> None:
    """Exchange the stored token for a fresh one."""
    with connect(base_url, config) as client:
        if not client.is_authenticated():
            typer.echo("Not logged in.", err=True)
            raise typer.Exit(code=1)
        try:
            refreshed = SessionKeeper(client).refresh()
        except ApiError as e:
            fail(e)
        if not refreshed:
            typer.echo("Session has expired. Log in again.", err=True)
            raise typer.Exit(code=1)
    typer.echo("Session refreshed.")


@app.command()
def status(base_url: BaseUrlOption = None, config: ConfigOption = None) -> None:
    """Show whether a session token is stored."""
    with connect(base_url, config) as client:
        token_path: Path = client.token_path
        if client.is_authenticated():
            typer.echo(f"Logged in (token stored in {token_path}).")
        else:
            typer.echo("Not logged in.")


# Register the auth app as a subcommand with the main app
main_app.add_typer(app, name="auth")
