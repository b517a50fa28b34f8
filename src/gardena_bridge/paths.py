"""Path value type for flat state addressing."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from typing import Union

SEPARATOR = "."

# Object keys are strings, array indices are ints.
Segment = Union[str, int]


class StatePath:
    """An ordered, immutable sequence of path segments.

    Rendered as a dotted id (``devices.D1.commands.start.send``) when it
    crosses into the state store. Array indices stay ``int`` segments so
    reconstruction can tell a list slot from an object key named ``"0"``.
    """

    __slots__ = ("_segments",)

    def __init__(self, segments: Iterable[Segment] = ()) -> None:
        parts = tuple(segments)
        for part in parts:
            if isinstance(part, bool) or not isinstance(part, (str, int)):
                raise TypeError(f"Invalid path segment: {part!r}")
            if isinstance(part, str) and (not part or SEPARATOR in part):
                raise ValueError(f"Invalid path segment: {part!r}")
        self._segments: tuple[Segment, ...] = parts

    @classmethod
    def parse(cls, dotted: str) -> StatePath:
        """Parse a dotted id. Every segment comes back as a string."""
        if not dotted:
            return cls()
        return cls(dotted.split(SEPARATOR))

    @property
    def segments(self) -> tuple[Segment, ...]:
        return self._segments

    @property
    def name(self) -> Segment:
        """Final segment."""
        if not self._segments:
            raise ValueError("Empty path has no name")
        return self._segments[-1]

    @property
    def parent(self) -> StatePath:
        if not self._segments:
            raise ValueError("Empty path has no parent")
        return StatePath(self._segments[:-1])

    def child(self, *segments: Segment) -> StatePath:
        return StatePath(self._segments + segments)

    def join(self, other: StatePath) -> StatePath:
        return StatePath(self._segments + other._segments)

    def startswith(self, prefix: StatePath) -> bool:
        n = len(prefix._segments)
        return self._segments[:n] == prefix._segments

    def relative_to(self, prefix: StatePath) -> StatePath:
        """Strip *prefix* and return the remaining segments."""
        if not self.startswith(prefix):
            raise ValueError(f"{self} is not under {prefix}")
        return StatePath(self._segments[len(prefix._segments):])

    def __str__(self) -> str:
        return SEPARATOR.join(str(s) for s in self._segments)

    def __repr__(self) -> str:
        return f"StatePath({str(self)!r})"

    def __len__(self) -> int:
        return len(self._segments)

    def __iter__(self) -> Iterator[Segment]:
        return iter(self._segments)

    def __getitem__(self, index: int) -> Segment:
        return self._segments[index]

    def __eq__(self, other: object) -> bool:
        if isinstance(other, StatePath):
            return self._segments == other._segments
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._segments)


def path(dotted: str) -> StatePath:
    """Shorthand for :meth:`StatePath.parse`."""
    return StatePath.parse(dotted)
