"""Data models for sessions, cloud resources, state entries and commands."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union

from gardena_bridge.paths import StatePath

ROLE_VALUE = "gardena.value"
ROLE_LOCATION_ID = "gardena.location_id"
ROLE_COMMAND_PARAMETER = "gardena.command_parameter"
ROLE_COMMAND_TRIGGER = "gardena.command_trigger"
ROLE_CONNECTION = "indicator.connected"


class ValueType(str, Enum):
    """Type tag of a state entry."""

    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"

    @classmethod
    def of(cls, value: Any) -> ValueType:
        """Runtime kind of a primitive value."""
        # bool before int: True is an int in Python
        if isinstance(value, bool):
            return cls.BOOLEAN
        if isinstance(value, (int, float)):
            return cls.NUMBER
        if isinstance(value, str):
            return cls.STRING
        raise TypeError(f"Not a primitive value: {value!r}")


@dataclass
class Session:
    """Authentication state of the single live cloud session."""

    token: str | None = None
    user_id: str | None = None
    refresh_token: str | None = None

    @property
    def valid(self) -> bool:
        return bool(self.token and self.user_id)

    def clear(self) -> None:
        self.token = None
        self.user_id = None
        self.refresh_token = None


@dataclass
class Location:
    """A GARDENA location (garden) as listed by the cloud."""

    id: str
    name: str | None = None
    geo_position: dict[str, Any] = field(default_factory=dict)
    device_ids: list[str] = field(default_factory=list)


@dataclass
class Device:
    """A GARDENA device; ``properties`` is the raw nested cloud document."""

    id: str
    category: str | None
    name: str | None
    location_id: str
    properties: dict[str, Any] = field(default_factory=dict)


@dataclass
class StateEntry:
    """One flat, path-addressed value in the state store."""

    path: StatePath
    value: Any
    type: ValueType
    readable: bool = True
    writable: bool = False
    role: str = ROLE_VALUE
    name: str | None = None
    desc: str | None = None
    ack: bool = True

    @property
    def id(self) -> str:
        return str(self.path)

    @property
    def is_trigger(self) -> bool:
        return self.path.name == "send" and self.type is ValueType.BOOLEAN


@dataclass
class RequestTemplate:
    """Category-specific command endpoint.

    ``uri`` may contain the placeholders ``[deviceID]``, ``[locationID]``
    and ``[cmd]``.
    """

    uri: str
    method: str

    def render(self, device_id: str, location_id: str, cmd: str) -> str:
        return (
            self.uri.replace("[deviceID]", device_id)
            .replace("[locationID]", location_id)
            .replace("[cmd]", cmd)
        )


@dataclass
class PropertyDescriptor:
    """Materializes one typed, writable command parameter."""

    name: str
    type: ValueType
    default: Any
    desc: str | None = None
    children: dict[str, list[CommandDescriptor]] = field(default_factory=dict)


@dataclass
class TriggerDescriptor:
    """Materializes one boolean ``<cmd_desc>.send`` trigger."""

    cmd_desc: str
    desc: str | None = None
    children: dict[str, list[CommandDescriptor]] = field(default_factory=dict)


@dataclass
class GroupDescriptor:
    """Carries only nested command lists."""

    children: dict[str, list[CommandDescriptor]] = field(default_factory=dict)


CommandDescriptor = Union[PropertyDescriptor, TriggerDescriptor, GroupDescriptor]


@dataclass
class CategoryCommands:
    """Catalog entry for one device category."""

    category: str
    request: RequestTemplate | None = None
    commands: list[CommandDescriptor] = field(default_factory=list)
