"""Configuration tables for positions and jersey sizes."""

from .positions import (
    DEFAULT_SIZE,
    SIZE_CHOICES,
    Position,
    get_position_short_name,
    iter_positions,
    position_choices,
)

__all__ = [
    "DEFAULT_SIZE",
    "SIZE_CHOICES",
    "Position",
    "get_position_short_name",
    "iter_positions",
    "position_choices",
]
