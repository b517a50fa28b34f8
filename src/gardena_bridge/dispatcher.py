"""Route user-written command triggers to the cloud."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

from gardena_bridge.catalog import CommandCatalog
from gardena_bridge.errors import GardenaError, SchemaError
from gardena_bridge.flatten import build_command_payload
from gardena_bridge.models import StateEntry
from gardena_bridge.paths import StatePath
from gardena_bridge.registry import DEVICES
from gardena_bridge.session import SessionManager
from gardena_bridge.store import MemoryStateStore

logger = logging.getLogger(__name__)

TRIGGER_PATTERN = "devices.*.commands.*.send"


@dataclass
class CommandRequest:
    """A fully resolved outbound command."""

    device_id: str
    location_id: str
    cmd: str
    method: str
    uri: str
    payload: dict[str, Any]


def parse_trigger(trigger: StatePath) -> tuple[str, str]:
    """Return ``(device_id, cmd)`` for ``devices.<id>.commands.<...>.<cmd>.send``."""
    if len(trigger) < 5 or trigger[0] != "devices" or trigger[2] != "commands" or trigger.name != "send":
        raise ValueError(f"Not a command trigger: {trigger}")
    return str(trigger[1]), str(trigger[-2])


class CommandDispatcher:
    """Builds and sends a command when its trigger is set by a user.

    On success the trigger is reset to ``false`` (acknowledged). On failure
    the session is invalidated and the trigger is left pending; the command
    is not retried.
    """

    def __init__(
        self,
        sessions: SessionManager,
        store: MemoryStateStore,
        catalog: CommandCatalog,
    ) -> None:
        self._sessions = sessions
        self._store = store
        self._catalog = catalog
        self._tasks: set[asyncio.Task[bool]] = set()

    def on_trigger(self, entry: StateEntry) -> None:
        """Store listener: dispatch genuine, unacknowledged command intents."""
        if entry.ack or not entry.value:
            return
        task = asyncio.get_running_loop().create_task(self.dispatch(entry.path))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def wait_idle(self) -> None:
        """Wait for in-flight dispatches."""
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    def resolve(self, trigger: StatePath) -> CommandRequest:
        """Resolve the request for *trigger* without sending it."""
        device_id, cmd = parse_trigger(trigger)
        device = DEVICES.child(device_id)

        location_id = self._store.value(device.child("locationid"))
        if not location_id:
            raise SchemaError(f"No location ID for device {device_id}")
        category = self._store.value(device.child("category"))
        template = self._catalog.request_for(category)

        payload = build_command_payload(trigger, self._store.children(trigger.parent))
        return CommandRequest(
            device_id=device_id,
            location_id=str(location_id),
            cmd=cmd,
            method=template.method,
            uri=template.render(device_id, str(location_id), cmd),
            payload=payload,
        )

    async def dispatch(self, trigger: StatePath) -> bool:
        """Send the command for *trigger*; returns True on success."""
        try:
            request = self.resolve(trigger)
        except (SchemaError, ValueError) as exc:
            logger.error("Cannot send command %s: %s", trigger, exc)
            return False

        token = self._sessions.session.token
        if not token:
            logger.error(
                "Could not send command %s for device %s: not connected",
                request.cmd, request.device_id,
            )
            return False

        logger.debug("Sending %s %s %s", request.method, request.uri, request.payload)
        try:
            await self._sessions.client.send_command(token, request.method, request.uri, request.payload)
        except GardenaError as exc:
            logger.error(
                "Could not send command %s for device %s: %s",
                request.cmd, request.device_id, exc,
            )
            self._sessions.invalidate(f"command {request.cmd} failed")
            return False

        logger.info("Command %s sent to device %s.", request.cmd, request.device_id)
        self._store.set_value(trigger, False, ack=True)
        return True
