from __future__ import annotations

from contextlib import contextmanager
from typing import List, Optional

import psycopg2

from domain.models import Content, SongInfo
from domain.repositories import ContentRepository

_COLUMNS = (
    "id, content_type, title, publisher, description, download_url, image_url, "
    "date, download_count, vote_average_score, song_info"
)


class PostgresContentRepository(ContentRepository):
    """
    Postgres-backed implementation of `ContentRepository`.

    `song_info` is a JSONB column; psycopg2 decodes it to a dict on read.
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
                    CREATE TABLE IF NOT EXISTS contents (
                        id INTEGER PRIMARY KEY,
                        content_type INTEGER NOT NULL,
                        title TEXT,
                        publisher TEXT,
                        description TEXT,
                        download_url TEXT,
                        image_url TEXT,
                        date TEXT NOT NULL,
                        download_count INTEGER NOT NULL DEFAULT 0,
                        vote_average_score DOUBLE PRECISION,
                        song_info JSONB
                    )
                    """
                )
                conn.commit()

    @staticmethod
    def _to_domain(row: tuple) -> Content:
        song_info = None
        if row[10]:
            song_info = SongInfo(
                difficulties=list(row[10].get("difficulties", [])),
                has_lua=bool(row[10].get("has_lua", False)),
            )
        return Content(
            id=int(row[0]),
            content_type=int(row[1]),
            title=row[2],
            publisher=row[3],
            description=row[4],
            download_url=row[5],
            image_url=row[6],
            date=row[7],
            download_count=int(row[8]),
            vote_average_score=row[9],
            song_info=song_info,
        )

    def list_all(self) -> List[Content]:
        with self._get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(f"SELECT {_COLUMNS} FROM contents ORDER BY id")
                return [self._to_domain(row) for row in cur.fetchall()]

    def get(self, content_id: int) -> Optional[Content]:
        with self._get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(f"SELECT {_COLUMNS} FROM contents WHERE id = %s", (content_id,))
                row = cur.fetchone()
                if not row:
                    return None
                return self._to_domain(row)

    def increment_download_count(self, content_id: int) -> bool:
        with self._get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    UPDATE contents
                    SET download_count = download_count + 1
                    WHERE id = %s
                    """,
                    (content_id,),
                )
                conn.commit()
                return cur.rowcount == 1

    def set_vote_average(self, content_id: int, average: float) -> None:
        with self._get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "UPDATE contents SET vote_average_score = %s WHERE id = %s",
                    (average, content_id),
                )
                conn.commit()
