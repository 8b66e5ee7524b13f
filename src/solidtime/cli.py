"""CLI interface for the Solidtime client"""

import json
import logging
from pathlib import Path
from typing import Optional

import click

from solidtime.client import SolidtimeClient
from solidtime.domain.exceptions import SolidtimeApiException
from solidtime.infrastructure.config.config_manager import ConfigManager, ConfigurationError

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False) -> None:
    """Setup logging configuration"""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        force=True,
    )
    logging.getLogger().setLevel(level)
    # urllib3 logs every connection at DEBUG; keep it out of the transport trace
    logging.getLogger("urllib3").setLevel(logging.INFO)


def _die(message: str, verbose: bool = False, exc: Optional[Exception] = None) -> None:
    """Exit with a user-friendly error message"""
    if exc is not None:
        logger.error(message, exc_info=verbose)
    else:
        logger.error(message)
    raise click.ClickException(message)


def _create_client(ctx: click.Context) -> SolidtimeClient:
    """Create client from config file, environment and CLI overrides

    Args:
        ctx: Click context holding global options

    Returns:
        SolidtimeClient instance
    """
    verbose = ctx.obj.get("verbose", False)
    overrides = {
        "base_url": ctx.obj.get("base_url"),
        "verbose": True if verbose else None,
    }
    try:
        config_manager = ConfigManager(config_path=ctx.obj.get("config_path"), overrides=overrides)
    except ConfigurationError as e:
        _die(str(e), verbose=verbose, exc=e)
    return SolidtimeClient(config_manager.get_client_options())


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Log HTTP traffic (DEBUG)")
@click.option(
    "--config",
    type=click.Path(exists=True, path_type=Path),
    help="Path to .solidtime.yml config file",
)
@click.option("--base-url", type=str, help="API base URL. Overrides config.")
@click.pass_context
def cli(ctx, verbose: bool, config: Path, base_url: str):
    """Solidtime - time tracking API client"""
    ctx.ensure_object(dict)
    setup_logging(verbose)
    ctx.obj["config_path"] = config
    ctx.obj["verbose"] = verbose
    ctx.obj["base_url"] = base_url


@cli.command()
@click.pass_context
def me(ctx):
    """Show the user the API token belongs to."""
    verbose = ctx.obj.get("verbose", False)
    try:
        with _create_client(ctx) as client:
            user = client.me.get()
    except click.ClickException:
        raise
    except SolidtimeApiException as e:
        _die(f"API error: {e}", verbose=verbose, exc=e)
    except Exception as e:
        _die(f"Fatal error: {e}", verbose=verbose, exc=e)

    click.echo(f"{user.name} <{user.email}>")
    click.echo(f"ID: {user.id}")
    click.echo(f"Timezone: {user.timezone} (week starts {user.week_start})")


@cli.command()
@click.argument("method", type=click.Choice(["GET", "POST", "PUT", "PATCH", "DELETE"], case_sensitive=False))
@click.argument("path", type=str)
@click.option("--data", type=str, help="JSON request body")
@click.pass_context
def request(ctx, method: str, path: str, data: Optional[str]):
    """Send a raw API request and print the response body.

    PATH: API path relative to the base URL (e.g. /v1/me)
    """
    verbose = ctx.obj.get("verbose", False)
    payload = None
    if data is not None:
        try:
            payload = json.loads(data)
        except ValueError as e:
            _die(f"--data is not valid JSON: {e}", verbose=verbose, exc=e)

    try:
        with _create_client(ctx) as client:
            response = client.request(method, path, json=payload)
    except click.ClickException:
        raise
    except Exception as e:
        _die(f"Fatal error: {e}", verbose=verbose, exc=e)

    click.echo(f"HTTP {response.status_code} {response.reason or ''}".rstrip())
    if response.text:
        click.echo(response.text)
    if not response.ok:
        raise click.exceptions.Exit(1)


def main():
    """Main entry point"""
    cli(obj={})


if __name__ == "__main__":
    main()
