"""One-shot cloud commands: check credentials, list locations and devices."""

from __future__ import annotations

import click

from gardena_bridge.context import Context, pass_ctx, run_async
from gardena_bridge.errors import ConfigError
from gardena_bridge.output import print_ok, print_warn, render_devices, render_locations
from gardena_bridge.registry import fetch_devices, fetch_locations
from gardena_bridge.session import SessionManager
from gardena_bridge.store import MemoryStateStore


def _require_credentials(ctx: Context) -> None:
    if not ctx.username or not ctx.password:
        raise ConfigError("Set --username/--password or GARDENA_USERNAME/GARDENA_PASSWORD")


@click.command()
@pass_ctx
def check(ctx: Context) -> None:
    """Log in once and report whether the credentials work."""
    _require_credentials(ctx)
    run_async(_check(ctx))


async def _check(ctx: Context) -> None:
    async with ctx.client() as client:
        sessions = SessionManager(client, MemoryStateStore(), ctx.username, ctx.password)
        session = await sessions.connect()
    print_ok(f"Connected as user {session.user_id}")


@click.command()
@pass_ctx
def locations(ctx: Context) -> None:
    """List the account's locations."""
    _require_credentials(ctx)
    run_async(_locations(ctx))


async def _locations(ctx: Context) -> None:
    async with ctx.client() as client:
        sessions = SessionManager(client, MemoryStateStore(), ctx.username, ctx.password)
        session = await sessions.connect()
        found = await fetch_locations(client, session)
    if not found:
        print_warn("No locations found")
        return
    render_locations(found)


@click.command()
@click.argument("location_id")
@pass_ctx
def devices(ctx: Context, location_id: str) -> None:
    """List the devices of LOCATION_ID."""
    _require_credentials(ctx)
    run_async(_devices(ctx, location_id))


async def _devices(ctx: Context, location_id: str) -> None:
    async with ctx.client() as client:
        sessions = SessionManager(client, MemoryStateStore(), ctx.username, ctx.password)
        session = await sessions.connect()
        found = await fetch_devices(client, session, location_id)
    if not found:
        print_warn(f"No devices found in location {location_id}")
        return
    render_devices(found)
