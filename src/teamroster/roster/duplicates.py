"""Jersey number uniqueness checks against a roster snapshot."""

from __future__ import annotations

from typing import Iterable, Optional

from teamroster.models import PlayerRecord


class NumberConflictError(ValueError):
    """Raised when a jersey number is already held by another player."""

    def __init__(self, number: str, holder: PlayerRecord, *, editing: bool = False):
        if editing:
            message = f"Jersey {number} is already taken. Ask whether they want to swap."
        else:
            message = f"Jersey number {number} is already taken."
        super().__init__(message)
        self.number = number
        self.holder = holder
        self.editing = editing
        self.message = message


def find_number_conflict(
    number: str,
    roster: Iterable[PlayerRecord],
    *,
    editing_id: Optional[str] = None,
) -> Optional[PlayerRecord]:
    """Return the first other player wearing ``number``, if any.

    Numbers compare as exact strings, so ``"07"`` and ``"7"`` never collide.
    When ``editing_id`` is given the record being edited is not a conflict
    with itself.
    """

    for player in roster:
        if player.number != number:
            continue
        if editing_id is not None and player.id == editing_id:
            continue
        return player
    return None


def ensure_number_available(
    number: str,
    roster: Iterable[PlayerRecord],
    *,
    editing_id: Optional[str] = None,
) -> None:
    holder = find_number_conflict(number, roster, editing_id=editing_id)
    if holder is not None:
        raise NumberConflictError(number, holder, editing=editing_id is not None)
