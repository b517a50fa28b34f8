"""Shared test fixtures with mock GARDENA cloud data."""

from __future__ import annotations

import copy
import logging
from typing import Any

import pytest

from gardena_bridge.catalog import CommandCatalog, parse_catalog
from gardena_bridge.errors import TransportError
from gardena_bridge.session import SessionManager
from gardena_bridge.store import MemoryStateStore


@pytest.fixture(autouse=True)
def _restore_root_logging():
    """Undo global handlers installed by ``setup_logging`` during a test."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)

USER_ID = "user-0001"
TOKEN = "tok-abc123"
REFRESH_TOKEN = "refresh-xyz"
LOCATION_1_ID = "loc-0001"
LOCATION_2_ID = "loc-0002"
MOWER_ID = "D1"
WATERING_ID = "wc-0001"
SENSOR_ID = "sensor-0001"


RAW_CATALOG: dict[str, Any] = {
    "mower": {
        "request": {
            "uri": "/sg-1/devices/[deviceID]/abilities/mower/command?locationId=[locationID]",
            "method": "POST",
        },
        "commands": [
            {"cmd_desc": "park_until_next_timer"},
            {
                "cmd_desc": "start_override_timer",
                "parameters": [
                    {"name": "duration", "type": "number", "val": 1440},
                ],
            },
        ],
    },
    "watering_computer": {
        "request": {
            "uri": "/sg-1/devices/[deviceID]/abilities/outlet/command?locationId=[locationID]",
            "method": "post",
        },
        "commands": [
            {
                "cmd_desc": "manual_override",
                "parameters": [
                    {"name": "duration", "type": "number", "val": 30},
                    {"name": "silent", "type": "boolean", "val": False},
                ],
            },
            {"cmd_desc": "cancel_override"},
        ],
    },
    "sensor": {
        "commands": [
            {"cmd_desc": "measure_light"},
        ],
    },
}


@pytest.fixture
def raw_catalog() -> dict[str, Any]:
    return copy.deepcopy(RAW_CATALOG)


@pytest.fixture
def catalog(raw_catalog: dict[str, Any]) -> CommandCatalog:
    return parse_catalog(raw_catalog)


@pytest.fixture
def store() -> MemoryStateStore:
    return MemoryStateStore()


@pytest.fixture
def raw_locations() -> list[dict[str, Any]]:
    return [
        {
            "id": LOCATION_1_ID,
            "name": "Front garden",
            "devices": [MOWER_ID, SENSOR_ID],
            "geo_position": {"latitude": 52.52, "longitude": 13.405, "address": "Berlin"},
        },
        {
            "id": LOCATION_2_ID,
            "name": "Allotment",
            "devices": [WATERING_ID],
            "geo_position": {"latitude": 48.137, "longitude": 11.575},
        },
    ]


@pytest.fixture
def mower_device() -> dict[str, Any]:
    return {
        "id": MOWER_ID,
        "name": "SILENO",
        "category": "mower",
        "configuration_synchronized": True,
        "abilities": [
            {
                "name": "battery",
                "type": "battery_power",
                "properties": [
                    {"name": "level", "value": 87, "writeable": False},
                    {"name": "charging", "value": False, "writeable": False},
                ],
            },
            {
                "name": "mower",
                "type": "robotic_mower",
                "properties": [
                    {"name": "status", "value": "parked_timer", "timestamp": None},
                ],
            },
        ],
    }


@pytest.fixture
def watering_device() -> dict[str, Any]:
    return {
        "id": WATERING_ID,
        "name": "Water Control",
        "category": "watering_computer",
        "abilities": [
            {"name": "outlet", "properties": [{"name": "valve_open", "value": False}]},
        ],
    }


class FakeClient:
    """Fake GardenaClient: canned responses, recorded calls.

    Each response may be an exception instance, which is raised instead.
    """

    def __init__(
        self,
        session: Any = None,
        locations: Any = None,
        devices: dict[str, Any] | None = None,
        command: Any = None,
    ) -> None:
        self.session_response = session if session is not None else {
            "token": TOKEN, "user_id": USER_ID, "refresh_token": REFRESH_TOKEN,
        }
        self.locations_response = locations if locations is not None else []
        self.devices_response = devices or {}
        self.command_response = command
        self.calls: list[tuple[str, tuple[Any, ...]]] = []

    async def __aenter__(self) -> FakeClient:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        pass

    @staticmethod
    def _answer(response: Any) -> Any:
        if isinstance(response, BaseException):
            raise response
        return copy.deepcopy(response)

    async def create_session(self, email: str, password: str) -> dict[str, Any]:
        self.calls.append(("create_session", (email, password)))
        return self._answer(self.session_response)

    async def get_locations(self, token: str, user_id: str) -> list[dict[str, Any]]:
        self.calls.append(("get_locations", (token, user_id)))
        return self._answer(self.locations_response)

    async def get_devices(self, token: str, location_id: str) -> list[dict[str, Any]]:
        self.calls.append(("get_devices", (token, location_id)))
        response = self.devices_response.get(location_id, [])
        return self._answer(response)

    async def send_command(self, token: str, method: str, uri: str, payload: dict[str, Any]) -> Any:
        self.calls.append(("send_command", (token, method, uri, payload)))
        return self._answer(self.command_response)

    def called(self, name: str) -> list[tuple[Any, ...]]:
        return [args for call, args in self.calls if call == name]


@pytest.fixture
def fake_client(
    raw_locations: list[dict[str, Any]],
    mower_device: dict[str, Any],
    watering_device: dict[str, Any],
) -> FakeClient:
    return FakeClient(
        locations=raw_locations,
        devices={
            LOCATION_1_ID: [mower_device],
            LOCATION_2_ID: [watering_device],
        },
    )


@pytest.fixture
def offline_client() -> FakeClient:
    return FakeClient(session=TransportError("Cannot reach cloud"))


@pytest.fixture
def sessions(fake_client: FakeClient, store: MemoryStateStore) -> SessionManager:
    manager = SessionManager(fake_client, store, "me@example.com", "secret")  # type: ignore[arg-type]
    manager.ensure_flag()
    return manager
