"""Command-line interface for the form API client."""

import json
import logging
import sys

import click
import requests

from .client import ApiClient, build_api_client
from .config import Settings, get_settings
from .exceptions import ConfigError, StorageError
from .prompt import ConsolePrompt
from .session import login as store_login
from .session import logout_action
from .session_guard import session_state
from .storage import JsonFileStore

logger = logging.getLogger(__name__)


def setup_logging(level: str):
    """Configure logging for the application."""
    logging.basicConfig(
        level=getattr(logging, level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[
            logging.StreamHandler(sys.stderr),
        ],
    )


def _parse_headers(values: tuple[str, ...]) -> dict[str, str]:
    headers = {}
    for value in values:
        name, sep, header_value = value.partition(":")
        if not sep or not name.strip():
            raise click.BadParameter(f"expected NAME:VALUE, got '{value}'", param_hint="--header")
        headers[name.strip()] = header_value.strip()
    return headers


def _build_client(settings: Settings) -> ApiClient:
    store = JsonFileStore(settings.storage_path)
    logout = logout_action(
        store,
        on_logged_out=lambda: click.echo("Logged out. Run `form-api login --token ...` to sign in again."),
    )
    return build_api_client(settings, store=store, prompt=ConsolePrompt(), logout=logout)


@click.group()
@click.version_option(version="0.1.0")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]),
    default=None,
    help="Logging level (defaults to the configured level)",
)
@click.pass_context
def main(ctx: click.Context, log_level):
    """Form entry API client."""
    try:
        settings = get_settings()
    except ConfigError as e:
        raise click.ClickException(str(e))
    setup_logging(log_level or settings.log_level)
    ctx.obj = settings


@main.command()
@click.option("--token", required=True, help="Access token issued by the login endpoint")
@click.pass_obj
def login(settings: Settings, token: str):
    """Store a session credential."""
    store_login(JsonFileStore(settings.storage_path), token)
    click.echo("Credential stored.")


@main.command()
@click.pass_obj
def logout(settings: Settings):
    """Clear the stored session."""
    logout_action(JsonFileStore(settings.storage_path))()
    click.echo("Session cleared.")


@main.command()
@click.pass_obj
def status(settings: Settings):
    """Show session state and client configuration."""
    store = JsonFileStore(settings.storage_path)
    click.echo(f"Base URL: {settings.client.base_url}")
    click.echo(f"Storage: {settings.storage_path}")
    click.echo(f"Session: {session_state(store).value}")


@main.command()
@click.argument("method", type=click.Choice(["GET", "POST", "PUT", "PATCH", "DELETE"], case_sensitive=False))
@click.argument("path")
@click.option("--data", "data", default=None, help="JSON request body")
@click.option("--header", "-H", "header_values", multiple=True, help="Extra header as NAME:VALUE")
@click.pass_obj
def request(settings: Settings, method: str, path: str, data, header_values):
    """Send a request to the API and print the response payload."""
    try:
        body = json.loads(data) if data is not None else None
    except ValueError as e:
        raise click.BadParameter(f"invalid JSON: {e}", param_hint="--data")
    headers = _parse_headers(header_values)

    with _build_client(settings) as client:
        try:
            payload = client.request(method, path, body=body, headers=headers)
        except requests.HTTPError as e:
            status_code = e.response.status_code if e.response is not None else "?"
            raise click.ClickException(f"Request failed with HTTP {status_code}")
        except requests.RequestException as e:
            raise click.ClickException(f"Request failed: {e}")
        except StorageError as e:
            raise click.ClickException(str(e))

    if isinstance(payload, (dict, list)):
        click.echo(json.dumps(payload, indent=2))
    elif payload is not None:
        click.echo(payload)


if __name__ == "__main__":
    main()
