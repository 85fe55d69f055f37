from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from typing import Iterator, List

from domain.models import Vote
from domain.repositories import VoteRepository

_COLUMNS = "id, content_id, user_id, name, score, comment, like_count, date"


class SqliteVoteRepository(VoteRepository):
    """
    SQLite-backed implementation of `VoteRepository`.

    A user has at most one vote per content item, enforced by a unique
    index on (content_id, user_id).
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
                CREATE TABLE IF NOT EXISTS votes (
                    id INTEGER PRIMARY KEY,
                    content_id INTEGER NOT NULL,
                    user_id TEXT NOT NULL,
                    name TEXT,
                    score REAL NOT NULL,
                    comment TEXT,
                    like_count INTEGER NOT NULL DEFAULT 0,
                    date TEXT NOT NULL,
                    UNIQUE (content_id, user_id)
                )
                """
            )
            conn.commit()

    @staticmethod
    def _to_domain(row: sqlite3.Row) -> Vote:
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
            cur = conn.cursor()
            cur.execute(f"SELECT {_COLUMNS} FROM votes ORDER BY id")
            return [self._to_domain(row) for row in cur.fetchall()]

    def list_for_content(self, content_id: int) -> List[Vote]:
        with self._get_connection() as conn:
            cur = conn.cursor()
            cur.execute(
                f"SELECT {_COLUMNS} FROM votes WHERE content_id = ? ORDER BY id",
                (content_id,),
            )
            return [self._to_domain(row) for row in cur.fetchall()]

    def upsert(self, vote: Vote) -> Vote:
        with self._get_connection() as conn:
            cur = conn.cursor()
            cur.execute(
                f"""
                INSERT INTO votes ({_COLUMNS})
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT (content_id, user_id) DO UPDATE SET
                    name = excluded.name,
                    score = excluded.score,
                    comment = excluded.comment,
                    like_count = excluded.like_count,
                    date = excluded.date
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
            cur.execute(
                f"SELECT {_COLUMNS} FROM votes WHERE content_id = ? AND user_id = ?",
                (vote.content_id, vote.user_id),
            )
            row = cur.fetchone()
            conn.commit()
            return self._to_domain(row)

    def update_owned(self, vote: Vote) -> bool:
        with self._get_connection() as conn:
            cur = conn.cursor()
            cur.execute(
                """
                UPDATE votes
                SET name = ?, score = ?, comment = ?, like_count = ?, date = ?
                WHERE id = ? AND user_id = ? AND content_id = ?
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
            cur = conn.cursor()
            cur.execute(
                "UPDATE votes SET like_count = like_count + 1 WHERE id = ?",
                (vote_id,),
            )
            conn.commit()
            return cur.rowcount == 1
