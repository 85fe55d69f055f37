from __future__ import annotations

from contextlib import contextmanager

import psycopg2

from domain.repositories import SequenceRepository


class PostgresSequenceRepository(SequenceRepository):
    """Postgres-backed implementation of `SequenceRepository`."""

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
                    CREATE TABLE IF NOT EXISTS sequences (
                        name TEXT PRIMARY KEY,
                        seq BIGINT NOT NULL DEFAULT 0
                    )
                    """
                )
                conn.commit()

    def next(self, name: str) -> int:
        with self._get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    INSERT INTO sequences (name, seq)
                    VALUES (%s, 1)
                    ON CONFLICT (name) DO UPDATE SET seq = sequences.seq + 1
                    RETURNING seq
                    """,
                    (name,),
                )
                row = cur.fetchone()
                conn.commit()
                return int(row[0])
