"""Flat, path-addressed state store.

``MemoryStateStore`` keeps entries in a dict keyed by dotted id and notifies
subscribers synchronously on every write. ``SqliteStateStore`` adds a
write-through SQLite table so state survives restarts.
"""

from __future__ import annotations

import fnmatch
import json
import logging
import sqlite3
from collections.abc import Callable
from dataclasses import replace
from pathlib import Path
from typing import Any

from gardena_bridge.models import StateEntry, ValueType
from gardena_bridge.paths import StatePath

logger = logging.getLogger(__name__)

Listener = Callable[[StateEntry], None]


def _key(path: StatePath | str) -> str:
    return path if isinstance(path, str) else str(path)


class MemoryStateStore:
    """In-process state store."""

    def __init__(self) -> None:
        self._entries: dict[str, StateEntry] = {}
        self._listeners: list[tuple[str, Listener]] = []

    def get(self, path: StatePath | str) -> StateEntry | None:
        return self._entries.get(_key(path))

    def value(self, path: StatePath | str, default: Any = None) -> Any:
        entry = self.get(path)
        return default if entry is None else entry.value

    def __contains__(self, path: StatePath | str) -> bool:
        return _key(path) in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def upsert(self, entry: StateEntry, *, keep_value: bool = False) -> StateEntry:
        """Create or overwrite the entry at ``entry.path``.

        With *keep_value*, an existing entry keeps its value and ack flag
        (metadata is still refreshed) and no notification is sent.
        """
        existing = self._entries.get(entry.id)
        if keep_value and existing is not None:
            entry = replace(entry, value=existing.value, ack=existing.ack)
            self._write(entry)
            return entry
        self._write(entry)
        self._notify(entry)
        return entry

    def upsert_many(self, entries: list[StateEntry]) -> None:
        for entry in entries:
            self.upsert(entry)

    def set_value(self, path: StatePath | str, value: Any, *, ack: bool = True) -> StateEntry:
        """Write a value. Unknown paths get a read-only entry of the value's type."""
        key = _key(path)
        existing = self._entries.get(key)
        if existing is None:
            state_path = path if isinstance(path, StatePath) else StatePath.parse(path)
            entry = StateEntry(
                path=state_path, value=value, type=ValueType.of(value), ack=ack,
            )
        else:
            entry = replace(existing, value=value, ack=ack)
        self._write(entry)
        self._notify(entry)
        return entry

    def children(self, prefix: StatePath | str) -> list[StateEntry]:
        """All entries strictly below *prefix*, ordered by id."""
        base = _key(prefix) + "."
        return [e for k, e in sorted(self._entries.items()) if k.startswith(base)]

    def entries(self) -> list[StateEntry]:
        return [e for _, e in sorted(self._entries.items())]

    def subscribe(self, pattern: str, listener: Listener) -> Callable[[], None]:
        """Call *listener* for every write whose id matches the glob *pattern*.

        Returns a function that removes the subscription.
        """
        item = (pattern, listener)
        self._listeners.append(item)

        def unsubscribe() -> None:
            if item in self._listeners:
                self._listeners.remove(item)

        return unsubscribe

    def close(self) -> None:
        self._listeners.clear()

    def _write(self, entry: StateEntry) -> None:
        self._entries[entry.id] = entry

    def _notify(self, entry: StateEntry) -> None:
        for pattern, listener in list(self._listeners):
            if fnmatch.fnmatchcase(entry.id, pattern):
                listener(entry)


SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS states (
    id TEXT PRIMARY KEY,
    segments JSON NOT NULL,
    value JSON,
    type TEXT NOT NULL,
    readable INTEGER NOT NULL DEFAULT 1,
    writable INTEGER NOT NULL DEFAULT 0,
    role TEXT NOT NULL,
    name TEXT,
    description TEXT,
    ack INTEGER NOT NULL DEFAULT 1
);
"""


class SqliteStateStore(MemoryStateStore):
    """State store persisted to a SQLite database.

    Rows are loaded into memory on :meth:`connect`; every write goes through
    to disk immediately.
    """

    def __init__(self, db_path: str | Path) -> None:
        super().__init__()
        self.db_path = str(db_path)
        self._conn: sqlite3.Connection | None = None

    def connect(self) -> SqliteStateStore:
        if self.db_path != ":memory:":
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(self.db_path)
        self._conn.row_factory = sqlite3.Row
        self._conn.executescript(SCHEMA_SQL)
        self._conn.commit()
        self._load()
        logger.info("State database opened: %s (%d entries)", self.db_path, len(self))
        return self

    @property
    def conn(self) -> sqlite3.Connection:
        if not self._conn:
            raise RuntimeError("State database not connected")
        return self._conn

    def close(self) -> None:
        super().close()
        if self._conn:
            self._conn.close()
            self._conn = None

    def _load(self) -> None:
        for row in self.conn.execute("SELECT * FROM states"):
            entry = StateEntry(
                path=StatePath(json.loads(row["segments"])),
                value=json.loads(row["value"]),
                type=ValueType(row["type"]),
                readable=bool(row["readable"]),
                writable=bool(row["writable"]),
                role=row["role"],
                name=row["name"],
                desc=row["description"],
                ack=bool(row["ack"]),
            )
            self._entries[entry.id] = entry

    def _write(self, entry: StateEntry) -> None:
        super()._write(entry)
        self.conn.execute(
            """INSERT OR REPLACE INTO states
               (id, segments, value, type, readable, writable, role, name, description, ack)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                entry.id,
                json.dumps(list(entry.path.segments)),
                json.dumps(entry.value),
                entry.type.value,
                int(entry.readable),
                int(entry.writable),
                entry.role,
                entry.name,
                entry.desc,
                int(entry.ack),
            ),
        )
        self.conn.commit()
