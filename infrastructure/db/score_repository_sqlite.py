from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from typing import Iterator, List, Optional

from domain.models import ScoreEntry, ScoreIdentity
from domain.repositories import ScoreRepository

_COLUMNS = (
    "song_title, difficulty, chart_hash, account_id, "
    "best_score, perfect_clear_count, last_played_date"
)


class SqliteScoreRepository(ScoreRepository):
    """
    SQLite-backed implementation of `ScoreRepository`.

    The `scores` table is keyed by the full score identity. Updates carry
    the previously read values in their WHERE clause, so a row changed by
    someone else in the meantime is left alone and reported as not updated.
    """

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path
        self._ensure_table()

    @contextmanager
    def _get_connection(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self._db_path, timeout=30)
        try:
            with conn:
                yield conn
        finally:
            conn.close()

    def _ensure_table(self) -> None:
        with self._get_connection() as conn:
            cur = conn.cursor()
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS scores (
                    song_title TEXT NOT NULL,
                    difficulty INTEGER NOT NULL,
                    chart_hash TEXT NOT NULL,
                    account_id TEXT NOT NULL,
                    best_score INTEGER NOT NULL,
                    perfect_clear_count INTEGER NOT NULL DEFAULT 0,
                    last_played_date TEXT NOT NULL,
                    PRIMARY KEY (song_title, difficulty, chart_hash, account_id)
                )
                """
            )
            cur.execute(
                """
                CREATE INDEX IF NOT EXISTS scores_by_chart
                ON scores (chart_hash, difficulty)
                """
            )
            conn.commit()

    @staticmethod
    def _to_domain(row: sqlite3.Row) -> ScoreEntry:
        return ScoreEntry(
            identity=ScoreIdentity(
                song_title=row[0],
                difficulty=int(row[1]),
                chart_hash=row[2],
                account_id=str(row[3]),
            ),
            best_score=int(row[4]),
            perfect_clear_count=int(row[5]),
            last_played_date=row[6],
        )

    @staticmethod
    def _identity_params(identity: ScoreIdentity) -> tuple:
        return (
            identity.song_title,
            identity.difficulty,
            identity.chart_hash,
            identity.account_id,
        )

    def get(self, identity: ScoreIdentity) -> Optional[ScoreEntry]:
        with self._get_connection() as conn:
            cur = conn.cursor()
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM scores
                WHERE song_title = ? AND difficulty = ? AND chart_hash = ? AND account_id = ?
                """,
                self._identity_params(identity),
            )
            row = cur.fetchone()
            if not row:
                return None
            return self._to_domain(row)

    def add_if_absent(self, entry: ScoreEntry) -> bool:
        with self._get_connection() as conn:
            cur = conn.cursor()
            cur.execute(
                f"""
                INSERT INTO scores ({_COLUMNS})
                VALUES (?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT (song_title, difficulty, chart_hash, account_id) DO NOTHING
                """,
                (
                    *self._identity_params(entry.identity),
                    entry.best_score,
                    entry.perfect_clear_count,
                    entry.last_played_date,
                ),
            )
            conn.commit()
            return cur.rowcount == 1

    def replace_if_unchanged(self, expected: ScoreEntry, updated: ScoreEntry) -> bool:
        with self._get_connection() as conn:
            cur = conn.cursor()
            cur.execute(
                """
                UPDATE scores
                SET best_score = ?, perfect_clear_count = ?, last_played_date = ?
                WHERE song_title = ? AND difficulty = ? AND chart_hash = ? AND account_id = ?
                  AND best_score = ? AND perfect_clear_count = ?
                """,
                (
                    updated.best_score,
                    updated.perfect_clear_count,
                    updated.last_played_date,
                    *self._identity_params(expected.identity),
                    expected.best_score,
                    expected.perfect_clear_count,
                ),
            )
            conn.commit()
            return cur.rowcount == 1

    def list_for_chart(self, chart_hash: str, difficulty: int) -> List[ScoreEntry]:
        with self._get_connection() as conn:
            cur = conn.cursor()
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM scores
                WHERE chart_hash = ? AND difficulty = ?
                """,
                (chart_hash, difficulty),
            )
            rows = cur.fetchall()
            return [self._to_domain(row) for row in rows]
