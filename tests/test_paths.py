"""Tests for the StatePath value type."""

from __future__ import annotations

import pytest

from gardena_bridge.paths import StatePath, path


def test_parse_and_render() -> None:
    p = path("devices.D1.commands.start.send")
    assert p.segments == ("devices", "D1", "commands", "start", "send")
    assert str(p) == "devices.D1.commands.start.send"
    assert len(p) == 5


def test_int_segments_render_as_indices() -> None:
    p = StatePath(("locations", "L1", "devices", 0))
    assert str(p) == "locations.L1.devices.0"
    # A parsed path only knows strings
    assert p != path("locations.L1.devices.0")


def test_parent_child_name() -> None:
    p = path("devices.D1.commands.start.send")
    assert p.name == "send"
    assert p.parent == path("devices.D1.commands.start")
    assert p.parent.child("parameters", "duration") == path(
        "devices.D1.commands.start.parameters.duration"
    )


def test_prefix_and_strip() -> None:
    ns = path("devices.D1.commands.start")
    p = path("devices.D1.commands.start.parameters.duration")
    assert p.startswith(ns)
    assert not ns.startswith(p)
    assert p.relative_to(ns) == path("parameters.duration")
    with pytest.raises(ValueError):
        ns.relative_to(path("locations"))


def test_prefix_is_segment_wise() -> None:
    """'devices.D1' is not a prefix of 'devices.D10'."""
    assert not path("devices.D10.name").startswith(path("devices.D1"))


def test_hashable_and_equal() -> None:
    assert {path("a.b"), path("a.b"), path("a.c")} == {path("a.b"), path("a.c")}


@pytest.mark.parametrize("bad", ["", "a.b", True, 1.5, None])
def test_rejects_invalid_segments(bad: object) -> None:
    with pytest.raises((TypeError, ValueError)):
        StatePath(("root", bad))  # type: ignore[arg-type]


def test_empty_path() -> None:
    assert len(path("")) == 0
    with pytest.raises(ValueError):
        path("").parent
