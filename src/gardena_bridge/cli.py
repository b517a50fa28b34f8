"""Click CLI group and global options."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import click
from dotenv import load_dotenv

from gardena_bridge.client import DEFAULT_BASE_URL
from gardena_bridge.config import DEFAULT_DB_PATH
from gardena_bridge.context import Context
from gardena_bridge.errors import GardenaError
from gardena_bridge.output import setup_logging

load_dotenv()


class _ErrorHandlingGroup(click.Group):
    """Click group that catches bridge errors and prints clean messages."""

    def invoke(self, ctx: click.Context) -> Any:
        try:
            return super().invoke(ctx)
        except GardenaError as exc:
            raise click.ClickException(str(exc)) from None


@click.group(cls=_ErrorHandlingGroup)
@click.option(
    "--username",
    envvar="GARDENA_USERNAME",
    default=None,
    help="GARDENA account e-mail (or GARDENA_USERNAME env var)",
)
@click.option(
    "--password",
    envvar="GARDENA_PASSWORD",
    default=None,
    help="GARDENA account password (or GARDENA_PASSWORD env var)",
)
@click.option(
    "--base-url",
    envvar="GARDENA_BASE_URL",
    default=DEFAULT_BASE_URL,
    show_default=True,
    help="Cloud API base URL",
)
@click.option(
    "--commands",
    "catalog_path",
    envvar="GARDENA_COMMANDS",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Command catalog JSON (defaults to the bundled catalog)",
)
@click.option(
    "--db",
    "db_path",
    envvar="GARDENA_STATE_DB",
    type=click.Path(dir_okay=False, path_type=Path),
    default=DEFAULT_DB_PATH,
    show_default=True,
    help="State database file",
)
@click.option("-v", "--verbose", is_flag=True, default=False, help="Debug logging")
@click.pass_context
def cli(
    ctx: click.Context,
    username: str | None,
    password: str | None,
    base_url: str,
    catalog_path: Path | None,
    db_path: Path,
    verbose: bool,
) -> None:
    """Bridge the GARDENA smart system cloud into a flat state store."""
    setup_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj = Context(
        username=username,
        password=password,
        base_url=base_url,
        catalog_path=catalog_path,
        db_path=db_path,
        verbose=verbose,
    )


# Register subcommands (imported after cli is defined to avoid circular deps)
from gardena_bridge.cloud import check, devices, locations  # noqa: E402
from gardena_bridge.run import run  # noqa: E402
from gardena_bridge.state import send, state  # noqa: E402

cli.add_command(check)
cli.add_command(devices)
cli.add_command(locations)
cli.add_command(run)
cli.add_command(send)
cli.add_command(state)
