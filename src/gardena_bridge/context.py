"""Click context object shared by the command modules."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any

import click

from gardena_bridge.catalog import CommandCatalog, load_catalog
from gardena_bridge.client import GardenaClient
from gardena_bridge.config import BridgeConfig
from gardena_bridge.store import SqliteStateStore


class Context:
    """Shared CLI context."""

    def __init__(
        self,
        username: str | None,
        password: str | None,
        base_url: str,
        catalog_path: Path | None,
        db_path: Path,
        verbose: bool = False,
    ) -> None:
        self.username = username
        self.password = password
        self.base_url = base_url
        self.catalog_path = catalog_path
        self.db_path = db_path
        self.verbose = verbose

    def client(self) -> GardenaClient:
        return GardenaClient(self.base_url)

    def catalog(self) -> CommandCatalog:
        return load_catalog(self.catalog_path)

    def open_store(self) -> SqliteStateStore:
        return SqliteStateStore(self.db_path).connect()

    def config(self, **overrides: Any) -> BridgeConfig:
        return BridgeConfig(
            username=self.username,
            password=self.password,
            base_url=self.base_url,
            catalog_path=self.catalog_path,
            db_path=self.db_path,
            **overrides,
        )


pass_ctx = click.make_pass_decorator(Context)


def run_async(coro: Any) -> Any:
    """Run an async function from a Click command."""
    return asyncio.run(coro)
