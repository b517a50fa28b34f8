"""Bridge configuration."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from gardena_bridge.client import DEFAULT_BASE_URL
from gardena_bridge.errors import ConfigError
from gardena_bridge.poller import DEFAULT_LOCATION_REFRESH_TICKS

DEFAULT_DB_PATH = Path.home() / ".local" / "share" / "gardena-bridge" / "state.db"


@dataclass
class BridgeConfig:
    """Everything the bridge needs to run.

    The polling interval is checked by the poller itself so that an invalid
    value disables polling instead of stopping the bridge.
    """

    username: str | None = None
    password: str | None = None
    polling_interval: float = 60
    reconnect_interval: float = 60
    location_refresh_ticks: int = DEFAULT_LOCATION_REFRESH_TICKS
    base_url: str = DEFAULT_BASE_URL
    catalog_path: Path | None = None
    db_path: Path = DEFAULT_DB_PATH

    def validate(self) -> None:
        if not self.username or not self.password:
            raise ConfigError("GARDENA username and password are required")
        if self.reconnect_interval <= 0:
            raise ConfigError(f"Reconnect interval must be positive, got {self.reconnect_interval}")
        if self.location_refresh_ticks < 1:
            raise ConfigError(
                f"Location refresh ticks must be at least 1, got {self.location_refresh_ticks}"
            )
