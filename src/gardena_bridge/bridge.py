"""Wire session, poller and dispatcher together around the state store."""

from __future__ import annotations

import logging
from collections.abc import Callable

from gardena_bridge.catalog import CommandCatalog
from gardena_bridge.client import GardenaClient
from gardena_bridge.config import BridgeConfig
from gardena_bridge.dispatcher import TRIGGER_PATTERN, CommandDispatcher
from gardena_bridge.errors import GardenaError
from gardena_bridge.models import StateEntry
from gardena_bridge.poller import Poller
from gardena_bridge.session import CONNECTION_PATH, SessionManager
from gardena_bridge.store import MemoryStateStore
from gardena_bridge.timers import Timer

logger = logging.getLogger(__name__)


class Bridge:
    """The running adapter.

    ``info.connection`` drives scheduling: when it turns true the reconnect
    watchdog is cancelled and polling starts; when it turns false polling
    stops and the watchdog is armed. Both timers are idempotent, so repeated
    or rapidly alternating flag writes leave at most one of each running.
    """

    def __init__(
        self,
        config: BridgeConfig,
        client: GardenaClient,
        store: MemoryStateStore,
        catalog: CommandCatalog,
    ) -> None:
        self.config = config
        self.store = store
        self.sessions = SessionManager(client, store, config.username, config.password)
        self.poller = Poller(
            self.sessions,
            store,
            catalog,
            interval=config.polling_interval,
            location_refresh_ticks=config.location_refresh_ticks,
        )
        self.dispatcher = CommandDispatcher(self.sessions, store, catalog)
        self.watchdog = Timer("gardena-reconnect", config.reconnect_interval, self._reconnect)
        self._unsubscribe: list[Callable[[], None]] = []

    async def start(self) -> None:
        """Subscribe to the store and make the first connection attempt."""
        logger.info("Starting GARDENA smart system bridge")
        self.sessions.ensure_flag()
        self._unsubscribe = [
            self.store.subscribe(str(CONNECTION_PATH), self._on_connection),
            self.store.subscribe(TRIGGER_PATTERN, self.dispatcher.on_trigger),
        ]
        await self._reconnect()

    async def stop(self) -> None:
        """Cancel timers, drain pending commands and mark the bridge offline."""
        for unsubscribe in self._unsubscribe:
            unsubscribe()
        self._unsubscribe = []
        self.poller.stop()
        self.watchdog.cancel()
        await self.poller.wait_closed()
        await self.watchdog.wait_closed()
        await self.dispatcher.wait_idle()
        self.store.set_value(CONNECTION_PATH, False, ack=True)
        logger.info("Cleaned everything up...")

    def _on_connection(self, entry: StateEntry) -> None:
        if entry.value:
            self.watchdog.cancel()
            self.poller.start()
        else:
            self.poller.stop()
            self.watchdog.start()

    async def _reconnect(self) -> None:
        try:
            await self.sessions.connect()
        except GardenaError as exc:
            logger.error("%s", exc)
