"""Flatten nested documents into state entries and rebuild them again.

``flatten`` and ``reconstruct`` are inverses restricted to a subtree::

    entries = flatten(doc, path("devices.D1"))
    assert reconstruct(path("devices.D1"), entries) == doc

The law holds for documents made of strings, numbers, booleans, non-empty
objects and non-empty arrays. ``None`` leaves are dropped and empty
containers produce no entries, so neither survives a round trip. A ``None``
array element keeps its index: ``[None, 1]`` rebuilds as ``[None, 1]``, but
trailing ``None`` elements are lost. Object keys that cannot be a path
segment (empty, or containing ``.``) are skipped with a warning.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from gardena_bridge.errors import SchemaError
from gardena_bridge.models import ROLE_VALUE, StateEntry, ValueType
from gardena_bridge.paths import SEPARATOR, StatePath

logger = logging.getLogger(__name__)


def flatten(
    value: Any,
    base: StatePath,
    schema: Mapping[str, Mapping[str, Any]] | None = None,
) -> list[StateEntry]:
    """Decompose *value* into leaf entries under *base*.

    *schema* maps a dotted path relative to *base* to metadata overrides
    (``writable``, ``readable``, ``role``, ``name``, ``desc``) for that leaf.
    Leaves default to read-only.
    """
    entries: list[StateEntry] = []
    _walk(value, base, base, schema or {}, entries)
    return entries


def _walk(
    value: Any,
    current: StatePath,
    base: StatePath,
    schema: Mapping[str, Mapping[str, Any]],
    out: list[StateEntry],
) -> None:
    if value is None:
        return
    if isinstance(value, Mapping):
        for key, child in value.items():
            key = str(key)
            if not key or SEPARATOR in key:
                logger.warning("Skipping key %r under %s: not addressable", key, current)
                continue
            _walk(child, current.child(key), base, schema, out)
        return
    if isinstance(value, (list, tuple)):
        for index, child in enumerate(value):
            # A primitive element is addressed exactly like {index: element}
            _walk(child, current.child(index), base, schema, out)
        return
    if len(current) == len(base):
        raise ValueError(f"Cannot flatten a bare primitive onto {base}")
    out.append(_leaf(value, current, base, schema))


def _leaf(
    value: Any,
    current: StatePath,
    base: StatePath,
    schema: Mapping[str, Mapping[str, Any]],
) -> StateEntry:
    meta = schema.get(str(current.relative_to(base)), {})
    return StateEntry(
        path=current,
        value=value,
        type=ValueType.of(value),
        readable=meta.get("readable", True),
        writable=meta.get("writable", False),
        role=meta.get("role", ROLE_VALUE),
        name=meta.get("name", str(current.name)),
        desc=meta.get("desc"),
    )


def reconstruct(namespace: StatePath, entries: Iterable[StateEntry]) -> Any:
    """Rebuild the nested document stored under *namespace*.

    Entries outside the namespace are ignored. Two entries claiming the same
    key raise :class:`SchemaError`.
    """
    merged: dict[Any, Any] = {}
    for entry in entries:
        if not entry.path.startswith(namespace) or len(entry.path) == len(namespace):
            continue
        relative = entry.path.relative_to(namespace)
        merged = deep_merge(merged, _fold(list(relative), entry.value))
    return _materialize(merged)


def _fold(segments: list[Any], value: Any) -> dict[Any, Any]:
    """Turn ``["a", "b"], 1`` into ``{"a": {"b": 1}}``."""
    head, rest = segments[0], segments[1:]
    if not rest:
        return {head: value}
    return {head: _fold(rest, value)}


def deep_merge(left: dict[Any, Any], right: dict[Any, Any]) -> dict[Any, Any]:
    """Union of two nested documents. Conflicting leaves are an error."""
    result = dict(left)
    for key, value in right.items():
        if key not in result:
            result[key] = value
        elif isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            raise SchemaError(f"Conflicting values for key {key!r}")
    return result


def _materialize(node: Any) -> Any:
    """Convert int-keyed dicts produced by array indices back into lists."""
    if not isinstance(node, dict):
        return node
    if node and all(isinstance(k, int) and not isinstance(k, bool) for k in node):
        # Indices of skipped None elements come back as None
        return [_materialize(node.get(i)) for i in range(max(node) + 1)]
    return {k: _materialize(v) for k, v in node.items()}


def build_command_payload(
    trigger: StatePath,
    entries: Iterable[StateEntry],
) -> dict[str, Any]:
    """Build the JSON body for the command whose trigger is *trigger*.

    The namespace is the trigger's parent. Trigger entries are not part of
    the payload; instead a ``name`` field carrying the command name is
    injected at the namespace root.
    """
    namespace = trigger.parent
    cmd = str(namespace.name)
    name_path = namespace.child("name")
    params = [
        e for e in entries
        if e.path.startswith(namespace) and e.path.name != "send" and e.path != name_path
    ]
    marker = StateEntry(path=name_path, value=cmd, type=ValueType.STRING)
    payload = reconstruct(namespace, [*params, marker])
    if not isinstance(payload, dict):
        raise SchemaError(f"Command payload for {trigger} is not an object")
    return payload
