"""Persistence layer for player records."""

from __future__ import annotations

import logging
import os
import sqlite3
import tempfile
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterator, List, Mapping, Optional
from uuid import uuid4

from pydantic import ValidationError

from teamroster.config.positions import SIZE_CHOICES
from teamroster.models import PlayerFields, PlayerRecord
from teamroster.settings import DEFAULT_DB_PATH

from .feed import RosterFeed


logger = logging.getLogger(__name__)

_PATCHABLE_FIELDS = frozenset(PlayerFields.model_fields)


class PersistenceError(RuntimeError):
    """Raised when the store rejects or fails a read or write."""


class PlayerNotFoundError(PersistenceError):
    """Raised when a record id does not exist."""

    def __init__(self, player_id: str):
        super().__init__(f"Player {player_id} not found")
        self.player_id = player_id


class PlayerStore:
    """SQLite-backed store for player records.

    Every successful write publishes a fresh snapshot on ``feed``.
    """

    def __init__(self, db_path: Path | str | None = None):
        self._use_uri = False
        if db_path:
            self.db_path = db_path if str(db_path).startswith("file:") else Path(db_path)
        elif os.getenv("PYTEST_CURRENT_TEST"):
            test_dir = Path(tempfile.gettempdir()) / "teamroster-test"
            test_dir.mkdir(parents=True, exist_ok=True)
            self.db_path = test_dir / "teamroster.sqlite"
        else:
            self.db_path = DEFAULT_DB_PATH
        self._use_uri = isinstance(self.db_path, str)
        self.feed = RosterFeed(self.list_players)
        self._ensure_schema()

    def _connect(self) -> sqlite3.Connection:
        if isinstance(self.db_path, Path):
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            conn = sqlite3.connect(self.db_path, uri=self._use_uri)
        except sqlite3.OperationalError:
            fallback_dir = Path(tempfile.gettempdir()) / "teamroster-runtime"
            fallback_dir.mkdir(parents=True, exist_ok=True)
            fallback = fallback_dir / "teamroster.sqlite"
            logger.warning("Cannot open %s; falling back to %s", self.db_path, fallback)
            conn = sqlite3.connect(fallback)
            self.db_path = fallback
            self._use_uri = False
            self._create_schema(conn)
        conn.row_factory = sqlite3.Row
        return conn

    @contextmanager
    def _session(self) -> Iterator[sqlite3.Connection]:
        conn = self._connect()
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as exc:
            conn.rollback()
            raise PersistenceError(str(exc)) from exc
        finally:
            conn.close()

    def _ensure_schema(self) -> None:
        with self._session() as conn:
            self._create_schema(conn)

    def _create_schema(self, conn: sqlite3.Connection) -> None:
        sizes = ", ".join(f"'{size}'" for size in SIZE_CHOICES)
        # No UNIQUE on number: jersey uniqueness is checked by callers.
        conn.execute(
            f"""
            CREATE TABLE IF NOT EXISTS players (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                jersey_name TEXT NOT NULL,
                number TEXT NOT NULL,
                size TEXT NOT NULL CHECK (size IN ({sizes})),
                position TEXT NOT NULL,
                notes TEXT,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
            """
        )
        conn.commit()

    def insert(self, fields: PlayerFields | Mapping[str, Any]) -> str:
        """Store a new player and return its id."""

        record = self._coerce_fields(fields)
        player_id = uuid4().hex
        now = datetime.now(timezone.utc).isoformat()
        with self._session() as conn:
            conn.execute(
                """
                INSERT INTO players (
                    id, name, jersey_name, number, size, position, notes,
                    created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    player_id,
                    record.name,
                    record.jersey_name,
                    record.number,
                    record.size,
                    record.position,
                    record.notes,
                    now,
                    now,
                ),
            )
        logger.info("Inserted player %s (#%s %s)", player_id, record.number, record.jersey_name)
        self.feed.publish()
        return player_id

    def get_player(self, player_id: Optional[str]) -> Optional[PlayerRecord]:
        if not player_id:
            return None
        with self._session() as conn:
            row = conn.execute("SELECT * FROM players WHERE id = ?", (player_id,)).fetchone()
            if row is None:
                return None
            return self._row_to_record(row)

    def list_players(self, limit: Optional[int] = None) -> List[PlayerRecord]:
        """Return players in creation order, all of them unless ``limit`` is given."""

        query = "SELECT * FROM players ORDER BY created_at, rowid"
        params: tuple[Any, ...] = ()
        if limit is not None:
            query += " LIMIT ?"
            params = (limit,)
        with self._session() as conn:
            rows = conn.execute(query, params).fetchall()
        return [self._row_to_record(row) for row in rows]

    def count(self) -> int:
        with self._session() as conn:
            row = conn.execute("SELECT COUNT(*) AS total FROM players").fetchone()
        return int(row["total"])

    def patch(self, player_id: str, **changes: Any) -> PlayerRecord:
        """Replace the given fields on ``player_id``; other fields stay untouched."""

        changes = {
            ("jersey_name" if key == "jerseyName" else key): value for key, value in changes.items()
        }
        unknown = set(changes) - _PATCHABLE_FIELDS
        if unknown:
            raise PersistenceError(f"Cannot patch fields: {', '.join(sorted(unknown))}")

        existing = self.get_player(player_id)
        if existing is None:
            raise PlayerNotFoundError(player_id)
        merged = existing.fields().model_dump()
        merged.update(changes)
        record = self._coerce_fields(merged)

        now = datetime.now(timezone.utc).isoformat()
        with self._session() as conn:
            cursor = conn.execute(
                """
                UPDATE players
                SET name = ?,
                    jersey_name = ?,
                    number = ?,
                    size = ?,
                    position = ?,
                    notes = ?,
                    updated_at = ?
                WHERE id = ?
                """,
                (
                    record.name,
                    record.jersey_name,
                    record.number,
                    record.size,
                    record.position,
                    record.notes,
                    now,
                    player_id,
                ),
            )
            if cursor.rowcount == 0:
                raise PlayerNotFoundError(player_id)
        logger.info("Updated player %s (%s)", player_id, ", ".join(sorted(changes)) or "no fields")
        self.feed.publish()
        updated = self.get_player(player_id)
        if updated is None:  # pragma: no cover
            raise PlayerNotFoundError(player_id)
        return updated

    def delete(self, player_id: str) -> None:
        with self._session() as conn:
            cursor = conn.execute("DELETE FROM players WHERE id = ?", (player_id,))
            if cursor.rowcount == 0:
                raise PlayerNotFoundError(player_id)
        logger.info("Deleted player %s", player_id)
        self.feed.publish()

    def _coerce_fields(self, fields: PlayerFields | Mapping[str, Any]) -> PlayerFields:
        if isinstance(fields, PlayerFields):
            return fields
        try:
            return PlayerFields.model_validate(dict(fields))
        except ValidationError as exc:
            raise PersistenceError(f"Player payload rejected: {exc.error_count()} invalid field(s)") from exc

    def _row_to_record(self, row: sqlite3.Row) -> PlayerRecord:
        return PlayerRecord(
            id=row["id"],
            name=row["name"],
            jersey_name=row["jersey_name"],
            number=row["number"],
            size=row["size"],
            position=row["position"],
            notes=row["notes"],
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )


__all__ = [
    "PersistenceError",
    "PlayerNotFoundError",
    "PlayerStore",
    "RosterFeed",
]
