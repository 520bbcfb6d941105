"""Position and jersey size tables for the softball roster."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Mapping, Tuple


@dataclass(frozen=True)
class Position:
    name: str
    short_name: str
    selectable: bool = True


_POSITIONS: Tuple[Position, ...] = (
    Position("Pitcher", "P"),
    Position("Catcher", "C"),
    Position("First Base", "1B"),
    Position("Second Base", "2B"),
    Position("Third Base", "3B"),
    Position("Shortstop", "SS"),
    Position("Left Field", "LF"),
    Position("Center Field", "CF"),
    Position("Right Field", "RF"),
    Position("Designated Hitter", "DH"),
    Position("Utility", "UTIL"),
    # Supporters keep a code but are not offered in the form.
    Position("Fan", "FAN", selectable=False),
)

SIZE_CHOICES: Tuple[str, ...] = ("XS", "S", "M", "L", "XL", "XXL")
DEFAULT_SIZE = "M"

POSITION_SHORT_NAMES: Mapping[str, str] = {
    position.name: position.short_name for position in _POSITIONS
}


def iter_positions(*, selectable_only: bool = True) -> Iterable[Position]:
    """Return positions in display order."""

    return tuple(p for p in _POSITIONS if p.selectable or not selectable_only)


def position_choices() -> list[str]:
    return [position.name for position in iter_positions()]


def get_position_short_name(position: str) -> str:
    """Map a position to its display code; unknown positions pass through unchanged."""

    return POSITION_SHORT_NAMES.get(position) or position
