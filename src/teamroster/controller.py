"""Registration form controller.

Owns the page state (dialog, form values, edit target, pending delete, sort
order, messages) and runs submissions through validation, the jersey number
check and the store. The roster it checks against is whatever the store's
feed last delivered.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, List, Literal, Optional

from teamroster.config.positions import DEFAULT_SIZE
from teamroster.models import PlayerRecord
from teamroster.persistence import PlayerNotFoundError, PlayerStore
from teamroster.roster.duplicates import NumberConflictError, ensure_number_available
from teamroster.roster.sorting import SortState, sort_players, toggle_sort
from teamroster.settings import AutofillMode
from teamroster.validation import FORM_FIELDS, derive_jersey_name, normalize_candidate, validate_player


logger = logging.getLogger("uvicorn.error")

SubmitStatus = Literal["created", "updated", "invalid", "conflict"]


@dataclass(frozen=True)
class FormValues:
    name: str = ""
    jersey_name: str = ""
    number: str = ""
    size: str = DEFAULT_SIZE
    position: str = ""
    notes: str = ""

    @classmethod
    def from_record(cls, player: PlayerRecord) -> "FormValues":
        return cls(
            name=player.name,
            jersey_name=player.jersey_name,
            number=player.number,
            size=player.size,
            position=player.position,
            notes=player.notes or "",
        )

    def as_dict(self) -> Dict[str, str]:
        return {name: getattr(self, name) for name in FORM_FIELDS}


@dataclass
class RegistrationState:
    dialog_open: bool = False
    form: FormValues = field(default_factory=FormValues)
    jersey_name_edited: bool = False
    editing_id: Optional[str] = None
    pending_delete_id: Optional[str] = None
    sort: Optional[SortState] = None
    duplicate_error: Optional[str] = None
    field_errors: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class SubmitOutcome:
    status: SubmitStatus
    player_id: Optional[str] = None

    @property
    def saved(self) -> bool:
        return self.status in ("created", "updated")


class RegistrationController:
    """Drive the registration page against a ``PlayerStore``.

    Use as a context manager (or call ``connect``) to receive roster snapshots
    from the store's feed.
    """

    def __init__(
        self,
        store: PlayerStore,
        state: Optional[RegistrationState] = None,
        *,
        autofill_mode: AutofillMode = "preserve",
    ):
        self.store = store
        self.state = state or RegistrationState()
        self.autofill_mode = autofill_mode
        self.roster: List[PlayerRecord] = []
        self._unsubscribe: Optional[Callable[[], None]] = None

    def __enter__(self) -> "RegistrationController":
        self.connect()
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.disconnect()

    def connect(self) -> None:
        if self._unsubscribe is None:
            self._unsubscribe = self.store.feed.subscribe(self.on_snapshot)

    def disconnect(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def on_snapshot(self, players: List[PlayerRecord]) -> None:
        self.roster = list(players)

    @property
    def registered_count(self) -> int:
        return len(self.roster)

    def find_player(self, player_id: str) -> PlayerRecord:
        for player in self.roster:
            if player.id == player_id:
                return player
        raise PlayerNotFoundError(player_id)

    # -- dialog ---------------------------------------------------------

    def open_create(self) -> None:
        self._reset_form()
        self.state.dialog_open = True

    def open_edit(self, player_id: str) -> None:
        player = self.find_player(player_id)
        self._reset_form()
        self.state.form = FormValues.from_record(player)
        self.state.jersey_name_edited = True
        self.state.editing_id = player.id
        self.state.dialog_open = True

    def close_dialog(self) -> None:
        self._reset_form()
        self.state.dialog_open = False

    def _reset_form(self) -> None:
        self.state.form = FormValues()
        self.state.jersey_name_edited = False
        self.state.editing_id = None
        self.state.duplicate_error = None
        self.state.field_errors = {}

    # -- field edits ----------------------------------------------------

    def set_name(self, name: str) -> None:
        form = replace(self.state.form, name=name)
        suggestion = derive_jersey_name(name)
        if suggestion is not None and self._autofill_allowed():
            form = replace(form, jersey_name=suggestion)
        self.state.form = form

    def set_jersey_name(self, jersey_name: str) -> None:
        self.state.form = replace(self.state.form, jersey_name=jersey_name)
        # Clearing the field hands it back to the auto-fill.
        self.state.jersey_name_edited = bool(jersey_name)

    def set_field(self, name: str, value: str) -> None:
        if name == "name":
            self.set_name(value)
        elif name in ("jersey_name", "jerseyName"):
            self.set_jersey_name(value)
        elif name in FORM_FIELDS:
            self.state.form = replace(self.state.form, **{name: value})
        else:
            raise ValueError(f"Unknown form field {name!r}")

    def load_form(self, values: Dict[str, Any]) -> None:
        """Replace the form with submitted values, as a browser post does."""

        normalized = normalize_candidate(values)
        self.state.form = replace(FormValues(), **normalized)
        self.state.jersey_name_edited = bool(self.state.form.jersey_name)

    def fill_missing_jersey_name(self) -> None:
        """Derive the jersey name from the full name when none was given."""

        form = self.state.form
        if form.jersey_name:
            return
        suggestion = derive_jersey_name(form.name)
        if suggestion is not None:
            self.state.form = replace(form, jersey_name=suggestion)

    def _autofill_allowed(self) -> bool:
        return self.autofill_mode == "always" or not self.state.jersey_name_edited

    # -- submit ---------------------------------------------------------

    def submit(self) -> SubmitOutcome:
        """Validate, check the jersey number and persist the form.

        Invalid input and number conflicts leave the dialog open with the
        input preserved. Store failures propagate to the caller.
        """

        state = self.state
        result = validate_player(state.form.as_dict())
        if result.record is None:
            state.field_errors = result.errors
            state.duplicate_error = None
            logger.info("Registration rejected: %s", ", ".join(sorted(result.errors)))
            return SubmitOutcome(status="invalid", player_id=state.editing_id)
        state.field_errors = {}

        record = result.record
        try:
            ensure_number_available(record.number, self.roster, editing_id=state.editing_id)
        except NumberConflictError as exc:
            state.duplicate_error = exc.message
            logger.info("Jersey #%s already held by %s", record.number, exc.holder.id)
            return SubmitOutcome(status="conflict", player_id=state.editing_id)

        if state.editing_id is not None:
            player_id = state.editing_id
            self.store.patch(player_id, **record.model_dump())
            status: SubmitStatus = "updated"
        else:
            player_id = self.store.insert(record)
            status = "created"

        self.close_dialog()
        return SubmitOutcome(status=status, player_id=player_id)

    # -- delete ---------------------------------------------------------

    def request_delete(self, player_id: str) -> None:
        self.state.pending_delete_id = player_id

    def confirm_delete(self) -> Optional[str]:
        player_id = self.state.pending_delete_id
        if player_id is None:
            return None
        try:
            self.store.delete(player_id)
        finally:
            self.state.pending_delete_id = None
        return player_id

    def dismiss_delete(self) -> None:
        self.state.pending_delete_id = None

    # -- table ----------------------------------------------------------

    def toggle_sort(self, field_name: str) -> Optional[SortState]:
        self.state.sort = toggle_sort(self.state.sort, field_name)
        return self.state.sort

    def visible_roster(self) -> List[PlayerRecord]:
        return sort_players(self.roster, self.state.sort)
