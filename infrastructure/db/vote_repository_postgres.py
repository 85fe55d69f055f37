from __future__ import annotations

from contextlib import contextmanager
from typing import List

import psycopg2

from domain.models import Vote
from domain.repositories import VoteRepository

_COLUMNS = "id, content_id, user_id, name, score, comment, like_count, date"


class PostgresVoteRepository(VoteRepository):
    """Postgres-backed implementation of `VoteRepository`."""

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
                    CREATE TABLE IF NOT EXISTS votes (
                        id BIGINT PRIMARY KEY,
                        content_id INTEGER NOT NULL,
                        user_id TEXT NOT NULL,
                        name TEXT,
                        score DOUBLE PRECISION NOT NULL,
                        comment TEXT,
                        like_count INTEGER NOT NULL DEFAULT 0,
                        date TEXT NOT NULL,
                        UNIQUE (content_id, user_id)
                    )
                    """
                )
                conn.commit()

    @staticmethod
    def _to_domain(row: tuple) -> Vote:
        return Vote(
            id=int(row[0]),
            content_id=int(row[1]),
            user_id=str(row[2]),
            name=row[3],
            score=row[4],
            comment=row[5],
            like_count=int(row[6]),
            date=row[7],
        )

    def list_all(self) -> List[Vote]:
        with self._get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(f"SELECT {_COLUMNS} FROM votes ORDER BY id")
                return [self._to_domain(row) for row in cur.fetchall()]

    def list_for_content(self, content_id: int) -> List[Vote]:
        with self._get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"SELECT {_COLUMNS} FROM votes WHERE content_id = %s ORDER BY id",
                    (content_id,),
                )
                return [self._to_domain(row) for row in cur.fetchall()]

    def upsert(self, vote: Vote) -> Vote:
        with self._get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"""
                    INSERT INTO votes ({_COLUMNS})
                    VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
                    ON CONFLICT (content_id, user_id) DO UPDATE SET
                        name = EXCLUDED.name,
                        score = EXCLUDED.score,
                        comment = EXCLUDED.comment,
                        like_count = EXCLUDED.like_count,
                        date = EXCLUDED.date
                    RETURNING {_COLUMNS}
                    """,
                    (
                        vote.id,
                        vote.content_id,
                        vote.user_id,
                        vote.name,
                        vote.score,
                        vote.comment,
                        vote.like_count,
                        vote.date,
                    ),
                )
                row = cur.fetchone()
                conn.commit()
                return self._to_domain(row)

    def update_owned(self, vote: Vote) -> bool:
        with self._get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    UPDATE votes
                    SET name = %s, score = %s, comment = %s, like_count = %s, date = %s
                    WHERE id = %s AND user_id = %s AND content_id = %s
                    """,
                    (
                        vote.name,
                        vote.score,
                        vote.comment,
                        vote.like_count,
                        vote.date,
                        vote.id,
                        vote.user_id,
                        vote.content_id,
                    ),
                )
                conn.commit()
                return cur.rowcount == 1

    def increment_like_count(self, vote_id: int) -> bool:
        with self._get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "UPDATE votes SET like_count = like_count + 1 WHERE id = %s",
                    (vote_id,),
                )
                conn.commit()
                return cur.rowcount == 1
