"""Field-level validation for player submissions."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel, ValidationError, field_validator
from pydantic.config import ConfigDict
from pydantic_core import PydanticCustomError

from teamroster.config.positions import SIZE_CHOICES
from teamroster.models import PlayerFields


_NUMBER_PATTERN = re.compile(r"[0-9]{1,2}")

FORM_FIELDS: tuple[str, ...] = ("name", "jersey_name", "number", "size", "position", "notes")

_FIELD_ALIASES: Mapping[str, str] = {"jerseyName": "jersey_name"}


class PlayerValidationError(ValueError):
    """Raised when a submission fails one or more field rules."""

    def __init__(self, errors: Mapping[str, str]):
        super().__init__("; ".join(f"{key}: {message}" for key, message in errors.items()))
        self.errors = dict(errors)


class _PlayerSubmission(BaseModel):
    name: str = ""
    jersey_name: str = ""
    number: str = ""
    size: str = ""
    position: str = ""
    notes: str = ""

    model_config = ConfigDict(validate_default=True, extra="ignore")

    @field_validator("name")
    @classmethod
    def _check_name(cls, value: str) -> str:
        if len(value) < 2:
            raise PydanticCustomError("name_length", "Name must be at least 2 characters")
        if " " not in value.strip():
            raise PydanticCustomError("name_format", "Please enter both first and last name")
        return value

    @field_validator("jersey_name")
    @classmethod
    def _check_jersey_name(cls, value: str) -> str:
        if not value:
            raise PydanticCustomError("jersey_name_required", "Jersey name is required")
        if len(value) > 15:
            raise PydanticCustomError(
                "jersey_name_length", "Jersey name must be 15 characters or less"
            )
        return value

    @field_validator("number")
    @classmethod
    def _check_number(cls, value: str) -> str:
        if not _NUMBER_PATTERN.fullmatch(value):
            raise PydanticCustomError("number_format", "Number must be 1-2 digits")
        return value

    @field_validator("size")
    @classmethod
    def _check_size(cls, value: str) -> str:
        if value not in SIZE_CHOICES:
            raise PydanticCustomError("size_choice", "Please select a valid size")
        return value

    @field_validator("position")
    @classmethod
    def _check_position(cls, value: str) -> str:
        if not value:
            raise PydanticCustomError("position_required", "Position is required")
        return value


@dataclass(frozen=True)
class ValidationResult:
    record: Optional[PlayerFields] = None
    errors: Dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.record is not None and not self.errors


def normalize_candidate(candidate: Mapping[str, Any]) -> Dict[str, str]:
    """Flatten a raw submission into the six form fields as strings."""

    values: Dict[str, str] = {}
    for key, raw in candidate.items():
        name = _FIELD_ALIASES.get(key, key)
        if name not in FORM_FIELDS:
            continue
        values[name] = "" if raw is None else str(raw)
    return values


def validate_player(candidate: Mapping[str, Any]) -> ValidationResult:
    """Check a candidate against every field rule.

    Returns the normalized record when all rules pass, otherwise a mapping of
    field name to the message of the first rule that field failed.
    """

    values = normalize_candidate(candidate)
    try:
        submission = _PlayerSubmission.model_validate(values)
    except ValidationError as exc:
        errors: Dict[str, str] = {}
        for error in exc.errors():
            loc = error.get("loc") or ("__all__",)
            errors.setdefault(str(loc[0]), error["msg"])
        return ValidationResult(errors=errors)

    record = PlayerFields(
        name=submission.name,
        jersey_name=submission.jersey_name,
        number=submission.number,
        size=submission.size,  # type: ignore[arg-type]
        position=submission.position,
        notes=submission.notes or None,
    )
    return ValidationResult(record=record)


def ensure_valid(candidate: Mapping[str, Any]) -> PlayerFields:
    result = validate_player(candidate)
    if result.record is None:
        raise PlayerValidationError(result.errors)
    return result.record


def derive_jersey_name(name: str) -> Optional[str]:
    """Suggest a jersey name from a full name: the uppercased last token.

    Only names containing a space produce a suggestion.
    """

    if not name or " " not in name:
        return None
    last = name.strip().split(" ")[-1]
    return last.upper() or None
