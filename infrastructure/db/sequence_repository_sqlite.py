from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from typing import Iterator

from domain.repositories import SequenceRepository


class SqliteSequenceRepository(SequenceRepository):
    """
    SQLite-backed implementation of `SequenceRepository`.

    The increment and the read of the new value run in one transaction,
    which holds SQLite's write lock from the upsert until the commit.
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
                CREATE TABLE IF NOT EXISTS sequences (
                    name TEXT PRIMARY KEY,
                    seq INTEGER NOT NULL DEFAULT 0
                )
                """
            )
            conn.commit()

    def next(self, name: str) -> int:
        with self._get_connection() as conn:
            cur = conn.cursor()
            cur.execute(
                """
                INSERT INTO sequences (name, seq)
                VALUES (?, 1)
                ON CONFLICT (name) DO UPDATE SET seq = seq + 1
                """,
                (name,),
            )
            cur.execute("SELECT seq FROM sequences WHERE name = ?", (name,))
            row = cur.fetchone()
            conn.commit()
            return int(row[0])
