from __future__ import annotations

from contextlib import contextmanager
from typing import List, Optional

import psycopg2

from domain.models import ScoreEntry, ScoreIdentity
from domain.repositories import ScoreRepository

_COLUMNS = (
    "song_title, difficulty, chart_hash, account_id, "
    "best_score, perfect_clear_count, last_played_date"
)


class PostgresScoreRepository(ScoreRepository):
    """
    Postgres-backed implementation of `ScoreRepository`.

    Same table layout as the SQLite repository; `last_played_date` is kept
    as a `YYYY-MM-DD` string rather than a DATE so both backends return
    identical values.
    """

    def __init__(self, db_params: dict) -> None:
        self._db_params = db_params
        self._ensure_table()

    @contextmanager
    def _get_connection(self):
        conn = psycopg2.connect(**self._db_params)
        try:
            with conn:
                yield conn
        finally:
            conn.close()

    def _ensure_table(self) -> None:
        with self._get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    CREATE TABLE IF NOT EXISTS scores (
                        song_title TEXT NOT NULL,
                        difficulty INTEGER NOT NULL,
                        chart_hash TEXT NOT NULL,
                        account_id TEXT NOT NULL,
                        best_score BIGINT NOT NULL,
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
    def _to_domain(row: tuple) -> ScoreEntry:
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
            with conn.cursor() as cur:
                cur.execute(
                    f"""
                    SELECT {_COLUMNS}
                    FROM scores
                    WHERE song_title = %s AND difficulty = %s
                      AND chart_hash = %s AND account_id = %s
                    """,
                    self._identity_params(identity),
                )
                row = cur.fetchone()
                if not row:
                    return None
                return self._to_domain(row)

    def add_if_absent(self, entry: ScoreEntry) -> bool:
        with self._get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"""
                    INSERT INTO scores ({_COLUMNS})
                    VALUES (%s, %s, %s, %s, %s, %s, %s)
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
            with conn.cursor() as cur:
                cur.execute(
                    """
                    UPDATE scores
                    SET best_score = %s, perfect_clear_count = %s, last_played_date = %s
                    WHERE song_title = %s AND difficulty = %s
                      AND chart_hash = %s AND account_id = %s
                      AND best_score = %s AND perfect_clear_count = %s
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
            with conn.cursor() as cur:
                cur.execute(
                    f"""
                    SELECT {_COLUMNS}
                    FROM scores
                    WHERE chart_hash = %s AND difficulty = %s
                    """,
                    (chart_hash, difficulty),
                )
                return [self._to_domain(row) for row in cur.fetchall()]
