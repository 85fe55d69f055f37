from __future__ import annotations

from typing import Optional

from domain.repositories import Repositories

SQLITE = "sqlite"
POSTGRES = "postgres"


def build_repositories(
    backend: str,
    db_path: Optional[str] = None,
    db_params: Optional[dict] = None,
) -> Repositories:
    """
    Create every repository for the chosen storage backend.

    Each repository creates its own table on construction, so this is also
    the schema bootstrap for a fresh database.
    """

    if backend == SQLITE:
        from infrastructure.db.account_repository_sqlite import SqliteAccountRepository
        from infrastructure.db.content_repository_sqlite import SqliteContentRepository
        from infrastructure.db.like_repository_sqlite import SqliteLikeRepository
        from infrastructure.db.score_repository_sqlite import SqliteScoreRepository
        from infrastructure.db.sequence_repository_sqlite import SqliteSequenceRepository
        from infrastructure.db.vote_repository_sqlite import SqliteVoteRepository

        if not db_path:
            raise RuntimeError("DB_PATH must be set for the sqlite backend.")

        return Repositories(
            accounts=SqliteAccountRepository(db_path),
            scores=SqliteScoreRepository(db_path),
            sequences=SqliteSequenceRepository(db_path),
            contents=SqliteContentRepository(db_path),
            votes=SqliteVoteRepository(db_path),
            likes=SqliteLikeRepository(db_path),
        )

    if backend == POSTGRES:
        # psycopg2 is only imported when Postgres is actually selected.
        from infrastructure.db.account_repository_postgres import PostgresAccountRepository
        from infrastructure.db.content_repository_postgres import PostgresContentRepository
        from infrastructure.db.like_repository_postgres import PostgresLikeRepository
        from infrastructure.db.score_repository_postgres import PostgresScoreRepository
        from infrastructure.db.sequence_repository_postgres import PostgresSequenceRepository
        from infrastructure.db.vote_repository_postgres import PostgresVoteRepository

        params = db_params or {}
        return Repositories(
            accounts=PostgresAccountRepository(params),
            scores=PostgresScoreRepository(params),
            sequences=PostgresSequenceRepository(params),
            contents=PostgresContentRepository(params),
            votes=PostgresVoteRepository(params),
            likes=PostgresLikeRepository(params),
        )

    raise RuntimeError(f"Unknown DB_BACKEND {backend!r}; expected 'sqlite' or 'postgres'.")
