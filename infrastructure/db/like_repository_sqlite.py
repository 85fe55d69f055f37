from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from typing import Iterator, List

from domain.models import Like
from domain.repositories import LikeRepository


class SqliteLikeRepository(LikeRepository):
    """SQLite-backed implementation of `LikeRepository`."""

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
                CREATE TABLE IF NOT EXISTS likes (
                    user_id TEXT NOT NULL,
                    vote_id INTEGER NOT NULL
                )
                """
            )
            cur.execute("CREATE INDEX IF NOT EXISTS likes_by_user ON likes (user_id)")
            cur.execute("CREATE INDEX IF NOT EXISTS likes_by_vote ON likes (vote_id)")
            conn.commit()

    def list_for_user(self, user_id: str) -> List[Like]:
        with self._get_connection() as conn:
            cur = conn.cursor()
            cur.execute(
                "SELECT user_id, vote_id FROM likes WHERE user_id = ? ORDER BY rowid",
                (user_id,),
            )
            return [Like(user_id=str(row[0]), vote_id=int(row[1])) for row in cur.fetchall()]

    def add(self, like: Like) -> None:
        with self._get_connection() as conn:
            cur = conn.cursor()
            cur.execute(
                "INSERT INTO likes (user_id, vote_id) VALUES (?, ?)",
                (like.user_id, like.vote_id),
            )
            conn.commit()

    def delete_for_vote(self, vote_id: int) -> int:
        with self._get_connection() as conn:
            cur = conn.cursor()
            cur.execute("DELETE FROM likes WHERE vote_id = ?", (vote_id,))
            conn.commit()
            return cur.rowcount
