"""
SQLite database layer for the Golf Contest Engine.
Stores competitions, entries and picks for the CLI and the registration sweep.
"""

import sqlite3
import uuid
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Sequence
from contextlib import contextmanager

from .models import (
    Competition, CompetitionFormat, CompetitionStatus, Entry, EntryStatus,
    Pick, ScoreDirection,
)
from .config import get_config


class DatabaseError(Exception):
    """Raised when the store cannot complete an operation."""


class ConcurrencyConflict(DatabaseError):
    """The entry changed since it was read; re-fetch and retry."""


class DuplicateDraft(DatabaseError):
    """The user already has a draft for this competition."""


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _from_iso(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


class Database:
    """SQLite database manager."""

    def __init__(self, db_path: Optional[Path] = None):
        """Initialize database connection."""
        if db_path is None:
            config = get_config()
            config.ensure_dirs()
            db_path = config.db_path
        self.db_path = db_path
        try:
            self._init_db()
        except sqlite3.OperationalError as e:
            if "permission" in str(e).lower() or "readonly" in str(e).lower():
                raise DatabaseError(f"Permission denied opening {self.db_path}: {e}") from e
            raise DatabaseError(f"Could not open {self.db_path}: {e}") from e

    @contextmanager
    def _connection(self):
        """Context manager for database connections."""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _init_db(self):
        """Initialize database schema."""
        with self._connection() as conn:
            cursor = conn.cursor()

            # Competitions table
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS competitions (
                    id TEXT PRIMARY KEY,
                    tournament_id TEXT NOT NULL,
                    name TEXT,
                    entry_fee INTEGER DEFAULT 0,
                    entrants_cap INTEGER DEFAULT 0,
                    admin_fee_percent REAL DEFAULT 0,
                    guaranteed_prize_pool INTEGER,
                    first_place_prize INTEGER,
                    registration_opens_at TEXT,
                    registration_closes_at TEXT,
                    start_at TEXT,
                    end_at TEXT,
                    computed_status TEXT NOT NULL,
                    manual_override TEXT,
                    format TEXT NOT NULL,
                    score_direction TEXT NOT NULL,
                    round_start INTEGER DEFAULT 1,
                    round_end INTEGER DEFAULT 4,
                    updated_at TEXT
                )
            """)

            # Entries table
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS entries (
                    id TEXT PRIMARY KEY,
                    competition_id TEXT NOT NULL REFERENCES competitions(id),
                    user_id TEXT NOT NULL,
                    entry_name TEXT,
                    status TEXT NOT NULL,
                    captain_golfer_id TEXT,
                    total_salary INTEGER DEFAULT 0,
                    total_score REAL,
                    results_version INTEGER,
                    submitted_at TEXT,
                    revision INTEGER DEFAULT 0,
                    updated_at TEXT
                )
            """)

            # At most one active draft per user and competition
            cursor.execute("""
                CREATE UNIQUE INDEX IF NOT EXISTS one_draft_per_user
                ON entries(user_id, competition_id) WHERE status = 'draft'
            """)

            # Picks table
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS picks (
                    entry_id TEXT NOT NULL REFERENCES entries(id) ON DELETE CASCADE,
                    golfer_id TEXT NOT NULL,
                    slot_position INTEGER NOT NULL,
                    salary_at_selection INTEGER NOT NULL,
                    is_captain INTEGER DEFAULT 0,
                    golfer_name TEXT,
                    UNIQUE(entry_id, slot_position)
                )
            """)

    # =========================================================================
    # Competition operations
    # =========================================================================

    def save_competition(self, competition: Competition):
        """Save or update a competition."""
        with self._connection() as conn:
            conn.execute("""
                INSERT INTO competitions
                (id, tournament_id, name, entry_fee, entrants_cap, admin_fee_percent,
                 guaranteed_prize_pool, first_place_prize, registration_opens_at,
                 registration_closes_at, start_at, end_at, computed_status,
                 manual_override, format, score_direction, round_start, round_end, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    tournament_id = excluded.tournament_id,
                    name = excluded.name,
                    entry_fee = excluded.entry_fee,
                    entrants_cap = excluded.entrants_cap,
                    admin_fee_percent = excluded.admin_fee_percent,
                    guaranteed_prize_pool = excluded.guaranteed_prize_pool,
                    first_place_prize = excluded.first_place_prize,
                    registration_opens_at = excluded.registration_opens_at,
                    registration_closes_at = excluded.registration_closes_at,
                    start_at = excluded.start_at,
                    end_at = excluded.end_at,
                    computed_status = excluded.computed_status,
                    manual_override = excluded.manual_override,
                    format = excluded.format,
                    score_direction = excluded.score_direction,
                    round_start = excluded.round_start,
                    round_end = excluded.round_end,
                    updated_at = excluded.updated_at
            """, (
                competition.competition_id,
                competition.tournament_id,
                competition.name,
                competition.entry_fee,
                competition.entrants_cap,
                competition.admin_fee_percent,
                competition.guaranteed_prize_pool,
                competition.first_place_prize,
                _iso(competition.registration_opens_at),
                _iso(competition.registration_closes_at),
                _iso(competition.start_at),
                _iso(competition.end_at),
                competition.computed_status.value,
                competition.manual_override.value if competition.manual_override else None,
                competition.format.value,
                competition.score_direction.value,
                competition.round_start,
                competition.round_end,
                datetime.now().isoformat(),
            ))

    def update_computed_status(self, competition_id: str, status: CompetitionStatus) -> bool:
        """Store a recomputed status without touching the rest of the record."""
        with self._connection() as conn:
            cursor = conn.execute("""
                UPDATE competitions SET computed_status = ?, updated_at = ?
                WHERE id = ?
            """, (status.value, datetime.now().isoformat(), competition_id))
            return cursor.rowcount > 0

    def set_manual_override(self, competition_id: str, status: Optional[CompetitionStatus]) -> bool:
        """Set or clear (None) a competition's status override."""
        with self._connection() as conn:
            cursor = conn.execute("""
                UPDATE competitions SET manual_override = ?, updated_at = ?
                WHERE id = ?
            """, (status.value if status else None, datetime.now().isoformat(), competition_id))
            return cursor.rowcount > 0

    def get_competition(self, competition_id: str) -> Optional[Competition]:
        """Get competition by id."""
        with self._connection() as conn:
            row = conn.execute("SELECT * FROM competitions WHERE id = ?", (competition_id,)).fetchone()
            if row:
                return self._row_to_competition(row)
        return None

    def get_active_competitions(self) -> List[Competition]:
        """Competitions that are neither cancelled nor completed."""
        with self._connection() as conn:
            rows = conn.execute("""
                SELECT * FROM competitions
                WHERE COALESCE(manual_override, computed_status) NOT IN ('cancelled', 'completed')
                ORDER BY registration_closes_at
            """).fetchall()
            return [self._row_to_competition(row) for row in rows]

    def _row_to_competition(self, row: sqlite3.Row) -> Competition:
        """Convert database row to Competition object."""
        return Competition(
            competition_id=row["id"],
            tournament_id=row["tournament_id"],
            name=row["name"] or "",
            entry_fee=row["entry_fee"],
            entrants_cap=row["entrants_cap"],
            admin_fee_percent=row["admin_fee_percent"],
            guaranteed_prize_pool=row["guaranteed_prize_pool"],
            first_place_prize=row["first_place_prize"],
            registration_opens_at=_from_iso(row["registration_opens_at"]),
            registration_closes_at=_from_iso(row["registration_closes_at"]),
            start_at=_from_iso(row["start_at"]),
            end_at=_from_iso(row["end_at"]),
            computed_status=CompetitionStatus(row["computed_status"]),
            manual_override=CompetitionStatus(row["manual_override"]) if row["manual_override"] else None,
            format=CompetitionFormat(row["format"]),
            score_direction=ScoreDirection(row["score_direction"]),
            round_start=row["round_start"],
            round_end=row["round_end"],
        )

    # =========================================================================
    # Entry operations
    # =========================================================================

    def create_draft(self, competition_id: str, user_id: str, entry_name: str = "") -> Entry:
        """Create an empty draft entry."""
        entry = Entry(
            entry_id=uuid.uuid4().hex,
            competition_id=competition_id,
            user_id=user_id,
            entry_name=entry_name,
        )
        try:
            with self._connection() as conn:
                conn.execute("""
                    INSERT INTO entries
                    (id, competition_id, user_id, entry_name, status, total_salary, revision, updated_at)
                    VALUES (?, ?, ?, ?, ?, 0, 0, ?)
                """, (
                    entry.entry_id,
                    competition_id,
                    user_id,
                    entry_name,
                    EntryStatus.DRAFT.value,
                    datetime.now().isoformat(),
                ))
        except sqlite3.IntegrityError as e:
            raise DuplicateDraft(
                f"User {user_id} already has a draft in competition {competition_id}"
            ) from e
        return entry

    def get_or_create_draft(self, competition_id: str, user_id: str) -> Entry:
        """Return the user's draft, creating it if needed."""
        existing = self.get_draft(competition_id, user_id)
        if existing:
            return existing
        try:
            return self.create_draft(competition_id, user_id)
        except DuplicateDraft:
            # Lost the race to a concurrent request
            return self.get_draft(competition_id, user_id)

    def get_draft(self, competition_id: str, user_id: str) -> Optional[Entry]:
        with self._connection() as conn:
            row = conn.execute(
                "SELECT * FROM entries WHERE competition_id = ? AND user_id = ? AND status = 'draft'",
                (competition_id, user_id)
            ).fetchone()
            if row:
                return self._row_to_entry(conn, row)
        return None

    def get_entry(self, entry_id: str) -> Optional[Entry]:
        """Get entry with its picks."""
        with self._connection() as conn:
            row = conn.execute("SELECT * FROM entries WHERE id = ?", (entry_id,)).fetchone()
            if row:
                return self._row_to_entry(conn, row)
        return None

    def get_entries(self, competition_id: str,
                    statuses: Optional[Sequence[EntryStatus]] = None) -> List[Entry]:
        """Get a competition's entries, optionally filtered by status."""
        with self._connection() as conn:
            query = "SELECT * FROM entries WHERE competition_id = ?"
            params: list = [competition_id]
            if statuses:
                query += f" AND status IN ({','.join('?' * len(statuses))})"
                params.extend(s.value for s in statuses)
            query += " ORDER BY id"
            rows = conn.execute(query, params).fetchall()
            return [self._row_to_entry(conn, row) for row in rows]

    def save_entry(self, entry: Entry) -> Entry:
        """
        Persist an entry read at `entry.revision`.

        Raises ConcurrencyConflict if someone else saved it in the meantime.
        """
        with self._connection() as conn:
            cursor = conn.execute("""
                UPDATE entries SET
                    entry_name = ?, status = ?, captain_golfer_id = ?, total_salary = ?,
                    total_score = ?, results_version = ?, submitted_at = ?,
                    revision = revision + 1, updated_at = ?
                WHERE id = ? AND revision = ?
            """, (
                entry.entry_name,
                entry.status.value,
                entry.captain_golfer_id,
                entry.total_salary,
                entry.total_score,
                entry.results_version,
                _iso(entry.submitted_at),
                datetime.now().isoformat(),
                entry.entry_id,
                entry.revision,
            ))
            if cursor.rowcount == 0:
                raise ConcurrencyConflict(f"Entry {entry.entry_id} changed since revision {entry.revision}")

            conn.execute("DELETE FROM picks WHERE entry_id = ?", (entry.entry_id,))
            conn.executemany("""
                INSERT INTO picks
                (entry_id, golfer_id, slot_position, salary_at_selection, is_captain, golfer_name)
                VALUES (?, ?, ?, ?, ?, ?)
            """, [
                (
                    entry.entry_id,
                    pick.golfer_id,
                    pick.slot_position,
                    pick.salary_at_selection,
                    1 if pick.is_captain else 0,
                    pick.golfer_name,
                )
                for pick in entry.picks
            ])
        return self.get_entry(entry.entry_id)

    def record_score(self, entry_id: str, total_score: float, results_version: int) -> bool:
        """
        Store a computed total unless a newer results version is already stored.

        Returns True if the score was written.
        """
        with self._connection() as conn:
            cursor = conn.execute("""
                UPDATE entries SET
                    status = 'scored', total_score = ?, results_version = ?,
                    revision = revision + 1, updated_at = ?
                WHERE id = ? AND status IN ('locked', 'scored')
                  AND (results_version IS NULL OR results_version < ?)
            """, (
                total_score,
                results_version,
                datetime.now().isoformat(),
                entry_id,
                results_version,
            ))
            return cursor.rowcount > 0

    def _row_to_entry(self, conn: sqlite3.Connection, row: sqlite3.Row) -> Entry:
        """Convert database row (plus its picks) to Entry object."""
        pick_rows = conn.execute(
            "SELECT * FROM picks WHERE entry_id = ? ORDER BY slot_position", (row["id"],)
        ).fetchall()
        picks = tuple(
            Pick(
                golfer_id=p["golfer_id"],
                slot_position=p["slot_position"],
                salary_at_selection=p["salary_at_selection"],
                is_captain=bool(p["is_captain"]),
                golfer_name=p["golfer_name"] or "",
            )
            for p in pick_rows
        )
        return Entry(
            entry_id=row["id"],
            competition_id=row["competition_id"],
            user_id=row["user_id"],
            status=EntryStatus(row["status"]),
            picks=picks,
            captain_golfer_id=row["captain_golfer_id"],
            total_salary=row["total_salary"],
            total_score=row["total_score"],
            results_version=row["results_version"],
            submitted_at=_from_iso(row["submitted_at"]),
            entry_name=row["entry_name"] or "",
            revision=row["revision"],
        )
