"""Periodic refresh of locations and devices."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field

from gardena_bridge.catalog import CommandCatalog
from gardena_bridge.errors import ConfigError, GardenaError
from gardena_bridge.registry import (
    fetch_devices,
    fetch_locations,
    known_location_ids,
    write_devices,
    write_locations,
)
from gardena_bridge.session import SessionManager
from gardena_bridge.store import MemoryStateStore
from gardena_bridge.timers import Timer

logger = logging.getLogger(__name__)

MIN_POLLING_INTERVAL = 60  # seconds
DEFAULT_LOCATION_REFRESH_TICKS = 30


def validate_polling_interval(interval: float) -> None:
    if interval < MIN_POLLING_INTERVAL:
        raise ConfigError(
            f"Polling interval should be at least {MIN_POLLING_INTERVAL}s, got {interval}s"
        )


@dataclass
class PollResult:
    """Outcome of one poll tick."""

    locations_refreshed: bool = False
    locations_ok: list[str] = field(default_factory=list)
    failures: dict[str, str] = field(default_factory=dict)

    @property
    def failed(self) -> bool:
        """Every location failed (or there was nothing to poll because the listing failed)."""
        return bool(self.failures) and not self.locations_ok

    @property
    def partial(self) -> bool:
        return bool(self.failures) and bool(self.locations_ok)


class Poller:
    """Refreshes locations every Nth tick and devices every tick."""

    def __init__(
        self,
        sessions: SessionManager,
        store: MemoryStateStore,
        catalog: CommandCatalog,
        interval: float,
        location_refresh_ticks: int = DEFAULT_LOCATION_REFRESH_TICKS,
    ) -> None:
        self._sessions = sessions
        self._store = store
        self._catalog = catalog
        self.location_refresh_ticks = max(1, location_refresh_ticks)
        # Starts at the threshold so the first tick lists locations
        self.counter = self.location_refresh_ticks
        self.config_error: ConfigError | None = None
        try:
            validate_polling_interval(interval)
        except ConfigError as exc:
            self.config_error = exc
            logger.error("%s; polling disabled", exc)
        self._timer = Timer("gardena-poll", interval, self.tick, immediate=True)

    @property
    def active(self) -> bool:
        return self._timer.active

    def start(self) -> bool:
        if self.config_error is not None:
            return False
        return self._timer.start()

    def stop(self) -> bool:
        return self._timer.cancel()

    async def wait_closed(self) -> None:
        await self._timer.wait_closed()

    async def tick(self) -> PollResult:
        """Run one poll cycle."""
        result = PollResult()
        client = self._sessions.client
        session = self._sessions.session

        if self.counter >= self.location_refresh_ticks:
            logger.info("Polling locations.")
            self.counter = 0
            try:
                locations = await fetch_locations(client, session)
                write_locations(self._store, locations)
            except (GardenaError, ValueError) as exc:
                logger.error("Error retrieving the locations: %s", exc)
                result.failures["locations"] = str(exc)
                # retry the listing on the next tick
                self.counter = self.location_refresh_ticks
            else:
                result.locations_refreshed = True
                logger.info("Updated %d location(s) in the database.", len(locations))
        self.counter += 1

        location_ids = known_location_ids(self._store)
        outcomes = await asyncio.gather(*(self._poll_location(lid) for lid in location_ids))
        for location_id, error in zip(location_ids, outcomes):
            if error is None:
                result.locations_ok.append(location_id)
            else:
                result.failures[location_id] = error

        # Only a tick without a single success counts as lost connectivity
        if result.failed:
            self._sessions.invalidate("every request of the poll failed")
        elif result.partial:
            logger.warning(
                "Partial poll failure: %s failed, %d location(s) refreshed",
                ", ".join(result.failures), len(result.locations_ok),
            )
        return result

    async def _poll_location(self, location_id: str) -> str | None:
        """Refresh one location's devices; returns an error message on failure."""
        try:
            devices = await fetch_devices(self._sessions.client, self._sessions.session, location_id)
            count = write_devices(self._store, devices, self._catalog)
        except (GardenaError, ValueError) as exc:
            logger.error("Could not get devices from location %s: %s", location_id, exc)
            return str(exc)
        logger.debug("Location %s: %d device(s), %d entries", location_id, len(devices), count)
        return None
