"""Command catalog: load, validate and materialize device commands.

The catalog is a JSON document keyed by device category::

    {
      "mower": {
        "request": {"uri": "/sg-1/devices/[deviceID]/abilities/mower/command?locationId=[locationID]",
                    "method": "POST"},
        "commands": [
          {"cmd_desc": "start_override_timer",
           "parameters": [{"name": "duration", "type": "number", "val": 1440}]}
        ]
      }
    }

Each descriptor is classified once at load time: a *property* (``name`` +
``type`` + ``val``), a *trigger* (``cmd_desc``), or a *group* carrying only
nested command arrays. Any other array-valued key is a nested command list.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from importlib import resources
from pathlib import Path
from typing import TYPE_CHECKING, Any

from gardena_bridge.errors import SchemaError
from gardena_bridge.models import (
    ROLE_COMMAND_PARAMETER,
    ROLE_COMMAND_TRIGGER,
    CategoryCommands,
    CommandDescriptor,
    Device,
    GroupDescriptor,
    PropertyDescriptor,
    RequestTemplate,
    StateEntry,
    TriggerDescriptor,
    ValueType,
)
from gardena_bridge.paths import StatePath

if TYPE_CHECKING:
    from gardena_bridge.store import MemoryStateStore

logger = logging.getLogger(__name__)

DEFAULT_CATALOG = "gardena_commands.json"

# Keys with a fixed meaning on a descriptor; never treated as nested lists
_RESERVED_KEYS = {"name", "type", "val", "desc", "cmd_desc"}


@dataclass
class CommandCatalog:
    """Validated command catalog keyed by device category."""

    categories: dict[str, CategoryCommands] = field(default_factory=dict)

    def get(self, category: str | None) -> CategoryCommands | None:
        if not category:
            return None
        return self.categories.get(category)

    def request_for(self, category: str | None) -> RequestTemplate:
        """Request template for *category*, or :class:`SchemaError`."""
        entry = self.get(category)
        if entry is None:
            raise SchemaError(f"Unknown device category: {category!r}")
        if entry.request is None:
            raise SchemaError(f"Missing request uri/method for category {category!r}")
        return entry.request


def _parse_request(category: str, raw: Any) -> RequestTemplate | None:
    if not isinstance(raw, dict):
        logger.warning("Catalog category %s has no request", category)
        return None
    uri = raw.get("uri")
    method = raw.get("method")
    if not uri or not isinstance(uri, str):
        logger.warning("Catalog category %s: missing request uri", category)
        return None
    if not method or not isinstance(method, str):
        logger.warning("Catalog category %s: missing request method", category)
        return None
    return RequestTemplate(uri=uri, method=method.upper())


def _parse_children(raw: dict[str, Any], where: str) -> dict[str, list[CommandDescriptor]]:
    children: dict[str, list[CommandDescriptor]] = {}
    for key, value in raw.items():
        if key in _RESERVED_KEYS or not isinstance(value, list) or not value:
            continue
        children[key] = _parse_descriptors(value, f"{where}.{key}")
    return children


def _parse_descriptor(raw: Any, where: str) -> CommandDescriptor | None:
    """Classify one raw descriptor, or return None if it is unusable."""
    if not isinstance(raw, dict):
        logger.debug("Skipping non-object descriptor at %s", where)
        return None
    children = _parse_children(raw, where)

    cmd_desc = raw.get("cmd_desc")
    if cmd_desc and isinstance(cmd_desc, str):
        return TriggerDescriptor(cmd_desc=cmd_desc, desc=raw.get("desc"), children=children)

    name, type_name = raw.get("name"), raw.get("type")
    if name and type_name and raw.get("val") is not None:
        try:
            value_type = ValueType(type_name)
        except ValueError:
            logger.warning("Skipping %s.%s: unknown type %r", where, name, type_name)
            return None
        return PropertyDescriptor(
            name=str(name),
            type=value_type,
            default=raw["val"],
            desc=raw.get("desc"),
            children=children,
        )

    if children:
        return GroupDescriptor(children=children)
    logger.debug("Skipping unclassifiable descriptor at %s: %r", where, raw)
    return None


def _parse_descriptors(raw: list[Any], where: str) -> list[CommandDescriptor]:
    parsed = (_parse_descriptor(item, f"{where}[{i}]") for i, item in enumerate(raw))
    return [d for d in parsed if d is not None]


def parse_catalog(raw: dict[str, Any]) -> CommandCatalog:
    """Validate a raw catalog document."""
    if not isinstance(raw, dict):
        raise SchemaError("Command catalog must be a JSON object")
    catalog = CommandCatalog()
    for category, entry in raw.items():
        if not isinstance(entry, dict):
            logger.warning("Skipping catalog category %s: not an object", category)
            continue
        commands = entry.get("commands")
        if not isinstance(commands, list):
            logger.warning("Catalog category %s has no command list", category)
            commands = []
        catalog.categories[category] = CategoryCommands(
            category=category,
            request=_parse_request(category, entry.get("request")),
            commands=_parse_descriptors(commands, category),
        )
    return catalog


def load_catalog(path: str | Path | None = None) -> CommandCatalog:
    """Load the catalog from *path*, or the one shipped with the package."""
    if path is None:
        text = resources.files("gardena_bridge").joinpath(DEFAULT_CATALOG).read_text("utf-8")
    else:
        text = Path(path).read_text("utf-8")
    try:
        raw = json.loads(text)
    except json.JSONDecodeError as exc:
        raise SchemaError(f"Invalid command catalog {path or DEFAULT_CATALOG}: {exc}") from None
    return parse_catalog(raw)


# ---------------------------------------------------------------------------
# Materialization
# ---------------------------------------------------------------------------


def commands_prefix(device_id: str) -> StatePath:
    return StatePath(("devices", device_id, "commands"))


def materialize_commands(device: Device, catalog: CommandCatalog) -> list[StateEntry]:
    """Command parameter and trigger entries for *device*.

    Returns an empty list when the category is unknown or has no commands.
    """
    entry = catalog.get(device.category)
    if entry is None or not entry.commands:
        return []
    out: list[StateEntry] = []
    _expand(entry.commands, commands_prefix(device.id), out)
    return out


def _expand(descriptors: list[CommandDescriptor], prefix: StatePath, out: list[StateEntry]) -> None:
    for descriptor in descriptors:
        if isinstance(descriptor, PropertyDescriptor):
            out.append(StateEntry(
                path=prefix.child(descriptor.name),
                value=descriptor.default,
                type=descriptor.type,
                readable=True,
                writable=True,
                role=ROLE_COMMAND_PARAMETER,
                name=descriptor.name,
                desc=descriptor.desc or "description",
            ))
            nested = prefix
        elif isinstance(descriptor, TriggerDescriptor):
            out.append(StateEntry(
                path=prefix.child(descriptor.cmd_desc, "send"),
                value=False,
                type=ValueType.BOOLEAN,
                readable=True,
                writable=True,
                role=ROLE_COMMAND_TRIGGER,
                name=f"send {descriptor.cmd_desc}",
                desc=f"Send command {descriptor.cmd_desc}.",
            ))
            nested = prefix.child(descriptor.cmd_desc)
        else:
            nested = prefix

        for key, children in descriptor.children.items():
            _expand(children, nested.child(key), out)


def provision_commands(
    store: MemoryStateStore,
    device: Device,
    catalog: CommandCatalog,
) -> int:
    """Upsert the command entries of *device*; returns how many were written.

    Parameters are refreshed from the catalog. Triggers that already exist
    keep their current value so a pending command is not discarded.
    """
    entries = materialize_commands(device, catalog)
    for entry in entries:
        store.upsert(entry, keep_value=entry.role == ROLE_COMMAND_TRIGGER)
    return len(entries)
