"""Tri-state column sorting for roster tables."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Literal, Mapping, Optional

from teamroster.models import PlayerRecord


SortDirection = Literal["asc", "desc"]

SORT_FIELDS: tuple[str, ...] = ("name", "jersey_name", "number", "size", "position", "notes")

_SORT_ALIASES: Mapping[str, str] = {"jerseyName": "jersey_name"}


@dataclass(frozen=True)
class SortState:
    field: str
    direction: SortDirection = "asc"

    def __post_init__(self) -> None:
        if self.field not in SORT_FIELDS:
            raise ValueError(f"Unsupported sort field {self.field!r}")
        if self.direction not in ("asc", "desc"):
            raise ValueError(f"sort direction must be 'asc' or 'desc', got {self.direction!r}")


def resolve_sort_field(field: str) -> str:
    """Accept wire names (``jerseyName``) as well as attribute names."""

    resolved = _SORT_ALIASES.get(field, field)
    if resolved not in SORT_FIELDS:
        raise ValueError(f"Unsupported sort field {field!r}")
    return resolved


def parse_sort_state(field: Optional[str], direction: Optional[str] = None) -> Optional[SortState]:
    if not field:
        return None
    return SortState(field=resolve_sort_field(field), direction=(direction or "asc").lower())  # type: ignore[arg-type]


def toggle_sort(state: Optional[SortState], field: str) -> Optional[SortState]:
    """Advance the sort for a column click: ascending, descending, then unsorted."""

    field = resolve_sort_field(field)
    if state is None or state.field != field:
        return SortState(field=field, direction="asc")
    if state.direction == "asc":
        return SortState(field=field, direction="desc")
    return None


def _sort_value(player: PlayerRecord, field: str) -> str:
    value = getattr(player, field)
    return "" if value is None else value


def sort_players(players: Iterable[PlayerRecord], state: Optional[SortState]) -> list[PlayerRecord]:
    """Return a new list ordered by ``state``.

    Values compare as plain strings, so jersey numbers order lexicographically
    (``"10" < "2"``). Ties keep their input order in both directions.
    """

    ordered = list(players)
    if state is None:
        return ordered
    return sorted(
        ordered,
        key=lambda player: _sort_value(player, state.field),
        reverse=state.direction == "desc",
    )
