from __future__ import annotations

from contextlib import contextmanager
from typing import List

import psycopg2

from domain.models import Like
from domain.repositories import LikeRepository


class PostgresLikeRepository(LikeRepository):
    """Postgres-backed implementation of `LikeRepository`."""

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
                    CREATE TABLE IF NOT EXISTS likes (
                        id BIGSERIAL PRIMARY KEY,
                        user_id TEXT NOT NULL,
                        vote_id BIGINT NOT NULL
                    )
                    """
                )
                cur.execute("CREATE INDEX IF NOT EXISTS likes_by_user ON likes (user_id)")
                cur.execute("CREATE INDEX IF NOT EXISTS likes_by_vote ON likes (vote_id)")
                conn.commit()

    def list_for_user(self, user_id: str) -> List[Like]:
        with self._get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "SELECT user_id, vote_id FROM likes WHERE user_id = %s ORDER BY id",
                    (user_id,),
                )
                return [Like(user_id=str(row[0]), vote_id=int(row[1])) for row in cur.fetchall()]

    def add(self, like: Like) -> None:
        with self._get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "INSERT INTO likes (user_id, vote_id) VALUES (%s, %s)",
                    (like.user_id, like.vote_id),
                )
                conn.commit()

    def delete_for_vote(self, vote_id: int) -> int:
        with self._get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute("DELETE FROM likes WHERE vote_id = %s", (vote_id,))
                conn.commit()
                return cur.rowcount
