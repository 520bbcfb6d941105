"""Environment-driven settings for the roster service."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Literal


logger = logging.getLogger(__name__)

_DB_PATH_ENV = "TEAMROSTER_DB_PATH"
_TEAM_NAME_ENV = "TEAMROSTER_TEAM_NAME"
_AUTOFILL_ENV = "TEAMROSTER_JERSEY_AUTOFILL"
_LIST_LIMIT_ENV = "TEAMROSTER_LIST_LIMIT"

_TEAM_NAME_DEFAULT = "Serie 081"
_LIST_LIMIT_DEFAULT = 500

AutofillMode = Literal["preserve", "always"]
AUTOFILL_MODES: tuple[str, ...] = ("preserve", "always")

DEFAULT_DB_PATH = Path(__file__).resolve().parent / "teamroster.sqlite"


@dataclass(frozen=True)
class Settings:
    db_path: str | None
    team_name: str
    jersey_autofill: AutofillMode
    list_limit: int


def _env_str(name: str, default: str) -> str:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip()


def _env_int(name: str, default: int, *, min_value: int | None = None) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning("Invalid int for %s: %s; using default %d", name, raw, default)
        return default
    if min_value is not None:
        value = max(min_value, value)
    return value


def _env_choice(name: str, default: str, choices: tuple[str, ...]) -> str:
    raw = os.getenv(name)
    if raw is None:
        return default
    value = raw.strip().lower()
    if value not in choices:
        logger.warning("Invalid value for %s: %s; using default %s", name, raw, default)
        return default
    return value


def load_settings() -> Settings:
    """Resolve settings from the process environment."""

    db_path = os.getenv(_DB_PATH_ENV) or None
    return Settings(
        db_path=db_path,
        team_name=_env_str(_TEAM_NAME_ENV, _TEAM_NAME_DEFAULT),
        jersey_autofill=_env_choice(_AUTOFILL_ENV, "preserve", AUTOFILL_MODES),  # type: ignore[arg-type]
        list_limit=_env_int(_LIST_LIMIT_ENV, _LIST_LIMIT_DEFAULT, min_value=1),
    )
