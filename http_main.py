import logging
import os

import uvicorn
from dotenv import load_dotenv

from application.tokens import TokenIssuer
from infrastructure.db.backends import build_repositories
from interfaces.http.app import create_app


load_dotenv()

DB_BACKEND = os.environ.get("DB_BACKEND", "sqlite")
DB_PATH = os.environ.get("DB_PATH", "ranking.db")
JWT_SECRET = os.environ.get("JWT_SECRET", "dev-secret-key-change")
HOST = os.environ.get("HOST", "0.0.0.0")
PORT = int(os.environ.get("PORT", "3000"))
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

logger = logging.getLogger(__name__)


def postgres_params() -> dict:
    """psycopg2 connection parameters; unset values fall back to libpq defaults."""

    params = {
        "host": os.environ.get("POSTGRES_HOST"),
        "port": os.environ.get("POSTGRES_PORT"),
        "dbname": os.environ.get("POSTGRES_DB"),
        "user": os.environ.get("POSTGRES_USER"),
        "password": os.environ.get("POSTGRES_PASSWORD"),
    }
    return {key: value for key, value in params.items() if value}


def setup_logging(level: str = LOG_LEVEL) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def main() -> None:
    setup_logging()

    if JWT_SECRET == "dev-secret-key-change":
        logger.warning("JWT_SECRET is not set; using the development secret.")

    logger.info("Connecting to %s storage...", DB_BACKEND)
    repos = build_repositories(DB_BACKEND, db_path=DB_PATH, db_params=postgres_params())
    token_issuer = TokenIssuer(JWT_SECRET, repos.accounts)

    app = create_app(repos, token_issuer)
    uvicorn.run(app, host=HOST, port=PORT)


if __name__ == "__main__":
    main()
