"""CSV export of the roster for the jersey order."""

from __future__ import annotations

import csv
from io import StringIO
from typing import Sequence

from teamroster.config.positions import get_position_short_name
from teamroster.models import PlayerRecord


EXPORT_HEADERS: tuple[str, ...] = (
    "name",
    "jersey_name",
    "number",
    "size",
    "position",
    "position_code",
    "notes",
)


def roster_to_csv(players: Sequence[PlayerRecord]) -> str:
    """Render players as CSV rows in the given order."""

    buffer = StringIO()
    writer = csv.writer(buffer)
    writer.writerow(EXPORT_HEADERS)
    for player in players:
        writer.writerow([
            player.name,
            player.jersey_name,
            player.number,
            player.size,
            player.position,
            get_position_short_name(player.position),
            player.notes or "",
        ])
    return buffer.getvalue()


__all__ = ["EXPORT_HEADERS", "roster_to_csv"]
