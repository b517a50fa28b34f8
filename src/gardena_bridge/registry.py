"""Fetch locations and devices and write them into the state store."""

from __future__ import annotations

import logging
from typing import Any

from gardena_bridge.catalog import CommandCatalog, provision_commands
from gardena_bridge.client import GardenaClient
from gardena_bridge.errors import AuthorizationError
from gardena_bridge.flatten import flatten
from gardena_bridge.models import ROLE_LOCATION_ID, Device, Location, Session, StateEntry, ValueType
from gardena_bridge.paths import StatePath
from gardena_bridge.store import MemoryStateStore

logger = logging.getLogger(__name__)

LOCATIONS = StatePath(("locations",))
DEVICES = StatePath(("devices",))

# Location fields mirrored into the store
LOCATION_FIELDS = ("name", "devices", "geo_position")


def _parse_location(raw: dict[str, Any]) -> Location:
    """Parse a raw location listing entry."""
    return Location(
        id=str(raw["id"]),
        name=raw.get("name"),
        geo_position=raw.get("geo_position") or {},
        device_ids=[str(d) for d in raw.get("devices") or []],
    )


def _parse_device(raw: dict[str, Any], location_id: str) -> Device:
    """Parse a raw device listing entry."""
    return Device(
        id=str(raw["id"]),
        category=raw.get("category"),
        name=raw.get("name"),
        location_id=location_id,
        properties=raw,
    )


def _require_session(session: Session) -> tuple[str, str]:
    token, user_id = session.token, session.user_id
    if not token or not user_id:
        raise AuthorizationError("No valid session")
    return token, user_id


async def fetch_locations(client: GardenaClient, session: Session) -> list[Location]:
    """Fetch the user's locations."""
    token, user_id = _require_session(session)
    raw = await client.get_locations(token, user_id)
    return [_parse_location(r) for r in raw if isinstance(r, dict) and r.get("id")]


async def fetch_devices(client: GardenaClient, session: Session, location_id: str) -> list[Device]:
    """Fetch all devices of one location."""
    token, _ = _require_session(session)
    raw = await client.get_devices(token, location_id)
    return [_parse_device(r, location_id) for r in raw if isinstance(r, dict) and r.get("id")]


def location_entries(location: Location) -> list[StateEntry]:
    doc = {
        "name": location.name,
        "devices": location.device_ids,
        "geo_position": location.geo_position,
    }
    return flatten(doc, LOCATIONS.child(location.id))


def device_entries(device: Device) -> list[StateEntry]:
    base = DEVICES.child(device.id)
    # "commands" is owned by the catalog and never mirrored from the cloud
    properties = {k: v for k, v in device.properties.items() if k != "commands"}
    entries = flatten(properties, base)
    entries.append(StateEntry(
        path=base.child("locationid"),
        value=device.location_id,
        type=ValueType.STRING,
        role=ROLE_LOCATION_ID,
        name="locationid",
        desc="Location the device belongs to.",
    ))
    return entries


def write_locations(store: MemoryStateStore, locations: list[Location]) -> int:
    """Upsert location entries; returns the number of entries written."""
    count = 0
    for location in locations:
        entries = location_entries(location)
        store.upsert_many(entries)
        count += len(entries)
    return count


def write_devices(
    store: MemoryStateStore,
    devices: list[Device],
    catalog: CommandCatalog,
) -> int:
    """Upsert device entries and their command namespaces."""
    count = 0
    for device in devices:
        entries = device_entries(device)
        store.upsert_many(entries)
        count += len(entries)
        count += provision_commands(store, device, catalog)
    return count


def known_location_ids(store: MemoryStateStore) -> list[str]:
    """Distinct location ids present in the store."""
    ids: list[str] = []
    for entry in store.children(LOCATIONS):
        location_id = str(entry.path[1])
        if location_id not in ids:
            ids.append(location_id)
    return ids
