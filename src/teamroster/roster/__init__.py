"""Roster views: duplicate jersey checks, sorting and export."""

from .duplicates import NumberConflictError, ensure_number_available, find_number_conflict
from .export import roster_to_csv
from .sorting import SORT_FIELDS, SortState, parse_sort_state, sort_players, toggle_sort

__all__ = [
    "NumberConflictError",
    "SORT_FIELDS",
    "SortState",
    "ensure_number_available",
    "find_number_conflict",
    "parse_sort_state",
    "roster_to_csv",
    "sort_players",
    "toggle_sort",
]
