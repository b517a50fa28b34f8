"""State commands: inspect the store and send a command from the shell."""

from __future__ import annotations

import sys
from typing import Any

import click

from gardena_bridge.context import Context, pass_ctx, run_async
from gardena_bridge.dispatcher import CommandDispatcher
from gardena_bridge.errors import ConfigError
from gardena_bridge.models import StateEntry, ValueType
from gardena_bridge.output import print_error, print_ok, print_warn, render_state_tree
from gardena_bridge.paths import StatePath
from gardena_bridge.session import SessionManager
from gardena_bridge.store import MemoryStateStore


@click.command()
@click.argument("prefix", required=False, default="")
@pass_ctx
def state(ctx: Context, prefix: str) -> None:
    """Show the persisted state, optionally only below PREFIX."""
    store = ctx.open_store()
    try:
        entries = store.children(prefix) if prefix else store.entries()
    finally:
        store.close()
    if not entries:
        print_warn(f"No state entries below {prefix!r}" if prefix else "State database is empty")
        return
    render_state_tree(entries, title=prefix or "state")


def coerce(entry: StateEntry, raw: str) -> Any:
    """Convert a command-line string to the entry's value type."""
    if entry.type is ValueType.BOOLEAN:
        lowered = raw.lower()
        if lowered in ("1", "true", "yes", "on"):
            return True
        if lowered in ("0", "false", "no", "off"):
            return False
        raise click.BadParameter(f"{entry.id} expects a boolean, got {raw!r}")
    if entry.type is ValueType.NUMBER:
        try:
            number = float(raw)
        except ValueError:
            raise click.BadParameter(f"{entry.id} expects a number, got {raw!r}") from None
        return int(number) if number.is_integer() else number
    return raw


def _parse_params(values: tuple[str, ...]) -> list[tuple[str, str]]:
    params = []
    for item in values:
        key, sep, value = item.partition("=")
        if not sep or not key:
            raise click.BadParameter(f"Expected key=value, got {item!r}")
        params.append((key, value))
    return params


def apply_params(
    store: MemoryStateStore,
    namespace: StatePath,
    params: list[tuple[str, str]],
) -> None:
    """Write user-supplied parameter values below the command namespace."""
    for key, raw in params:
        entry = store.get(namespace.join(StatePath.parse(key)))
        if entry is None or not entry.writable:
            raise click.BadParameter(f"Unknown parameter {key!r} for {namespace}")
        store.set_value(entry.path, coerce(entry, raw), ack=False)


@click.command()
@click.argument("device_id")
@click.argument("command")
@click.option(
    "-p",
    "--param",
    "params",
    multiple=True,
    help="Parameter below the command namespace, e.g. -p parameters.duration=60",
)
@pass_ctx
def send(ctx: Context, device_id: str, command: str, params: tuple[str, ...]) -> None:
    """Send COMMAND to DEVICE_ID using the parameters in the state database."""
    if not ctx.username or not ctx.password:
        raise ConfigError("Set --username/--password or GARDENA_USERNAME/GARDENA_PASSWORD")
    ok = run_async(_send(ctx, device_id, command, _parse_params(params)))
    if ok:
        print_ok(f"Command {command} sent to {device_id}")
    else:
        print_error(f"Command {command} was not sent; the trigger stays pending")
        sys.exit(1)


async def _send(
    ctx: Context,
    device_id: str,
    command: str,
    params: list[tuple[str, str]],
) -> bool:
    trigger = StatePath(("devices", device_id, "commands", command, "send"))
    store = ctx.open_store()
    try:
        if trigger not in store:
            raise click.ClickException(
                f"Unknown command {command!r} for device {device_id} (run the bridge first?)"
            )
        apply_params(store, trigger.parent, params)
        store.set_value(trigger, True, ack=False)

        async with ctx.client() as client:
            sessions = SessionManager(client, store, ctx.username, ctx.password)
            await sessions.connect()
            dispatcher = CommandDispatcher(sessions, store, ctx.catalog())
            return await dispatcher.dispatch(trigger)
    finally:
        store.close()
