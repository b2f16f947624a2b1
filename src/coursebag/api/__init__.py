import json
from pathlib import Path
from typing import Annotated, Any, NoReturn

import typer
from loguru import logger

from coursebag import app as main_app
from coursebag.config import load_settings

from .client import ApiClient
from .errors import ApiError, describe_error

# Create a local Typer app for raw API requests
app = typer.Typer(help="Send requests to the LMS API")

BaseUrlOption = Annotated[str | None, typer.Option(help="Override the backend base URL")]
ConfigOption = Annotated[Path | None, typer.Option(help="Path to a YAML settings file")]
AuthOption = Annotated[bool, typer.Option("--auth/--no-auth", help="Send the stored bearer token")]


def connect(base_url: str | None = None, config: Path | None = None) -> ApiClient:
    """Build a client from the settings file, the environment and CLI overrides."""
    try:
        settings = load_settings(config)
    except ValueError as e:
        raise typer.BadParameter(str(e)) from e
    return ApiClient(settings=settings, base_url=base_url)


def fail(exc: Exception) -> NoReturn:
    """Report an error with its user-facing message and exit with status 1."""
    logger.debug(f"{type(exc).__name__}: {exc}")
    typer.echo(describe_error(exc), err=True)
    raise typer.Exit(code=1)


def echo_json(payload: Any) -> None:
    typer.echo(json.dumps(payload, indent=2, default=str))


def _parse_body(data: str | None) -> Any:
    if data is None:
        return {}
    try:
        return json.loads(data)
    except json.JSONDecodeError as e:
        raise typer.BadParameter(f"--data is not valid JSON: {e}") from e


def _send(method: str, endpoint: str, data: str | None, auth: bool, base_url: str | None, config: Path | None):
    body = _parse_body(data) if method in ("POST", "PUT") else None
    with connect(base_url, config) as client:
        try:
            payload = client.request(endpoint, method=method, json=body, requires_auth=auth)
        except ApiError as e:
            if client.login_redirect:
                typer.echo(f"Log in again to continue ({client.login_redirect}).", err=True)
            fail(e)
    echo_json(payload)


@app.command()
def get(
    endpoint: Annotated[str, typer.Argument(help="API path, e.g. /courses/42")],
    auth: AuthOption = False,
    base_url: BaseUrlOption = None,
    config: ConfigOption = None,
) -> None:
    """GET an endpoint and print the JSON response."""
    _send("GET", endpoint, None, auth, base_url, config)


@app.command()
def post(
    endpoint: Annotated[str, typer.Argument(help="API path")],
    data: Annotated[str | None, typer.Option(help="JSON request body")] = None,
    auth: AuthOption = True,
    base_url: BaseUrlOption = None,
    config: ConfigOption = None,
) -> None:
    """POST a JSON body to an endpoint."""
    _send("POST", endpoint, data, auth, base_url, config)


@app.command()
def put(
    endpoint: Annotated[str, typer.Argument(help="API path")],
    data: Annotated[str | None, typer.Option(help="JSON request body")] = None,
    auth: AuthOption = True,
    base_url: BaseUrlOption = None,
    config: ConfigOption = None,
) -> None:
    """PUT a JSON body to an endpoint."""
    _send("PUT", endpoint, data, auth, base_url, config)


@app.command()
def delete(
    endpoint: Annotated[str, typer.Argument(help="API path")],
    auth: AuthOption = True,
    base_url: BaseUrlOption = None,
    config: ConfigOption = None,
) -> None:
    """DELETE an endpoint."""
    _send("DELETE", endpoint, None, auth, base_url, config)


# Register the api app as a subcommand with the main app
main_app.add_typer(app, name="api")
