"""Run command: keep the state store in sync with the cloud."""

from __future__ import annotations

import asyncio

import click

from gardena_bridge.bridge import Bridge
from gardena_bridge.config import BridgeConfig
from gardena_bridge.context import Context, pass_ctx, run_async
from gardena_bridge.output import print_info
from gardena_bridge.poller import DEFAULT_LOCATION_REFRESH_TICKS, MIN_POLLING_INTERVAL


@click.command()
@click.option(
    "--polling-interval",
    envvar="GARDENA_POLLING_INTERVAL",
    type=float,
    default=60,
    show_default=True,
    help=f"Seconds between polls (minimum {MIN_POLLING_INTERVAL})",
)
@click.option(
    "--reconnect-interval",
    envvar="GARDENA_RECONNECT_INTERVAL",
    type=float,
    default=60,
    show_default=True,
    help="Seconds between reconnect attempts while offline",
)
@click.option(
    "--location-refresh-ticks",
    envvar="GARDENA_LOCATION_REFRESH_TICKS",
    type=int,
    default=DEFAULT_LOCATION_REFRESH_TICKS,
    show_default=True,
    help="Re-list locations every N polls",
)
@pass_ctx
def run(
    ctx: Context,
    polling_interval: float,
    reconnect_interval: float,
    location_refresh_ticks: int,
) -> None:
    """Run the bridge until interrupted.

    Logs in, polls locations and devices into the state database and sends
    any command whose ``devices.<id>.commands.<cmd>.send`` trigger is set.
    """
    config = ctx.config(
        polling_interval=polling_interval,
        reconnect_interval=reconnect_interval,
        location_refresh_ticks=location_refresh_ticks,
    )
    config.validate()
    try:
        run_async(_run(ctx, config))
    except KeyboardInterrupt:
        print_info("Stopped")


async def _run(ctx: Context, config: BridgeConfig) -> None:
    catalog = ctx.catalog()
    store = ctx.open_store()
    try:
        async with ctx.client() as client:
            bridge = Bridge(config, client, store, catalog)
            await bridge.start()
            try:
                await asyncio.Event().wait()
            finally:
                await bridge.stop()
    finally:
        store.close()
