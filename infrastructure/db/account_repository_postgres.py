from __future__ import annotations

from contextlib import contextmanager
from typing import Dict, Iterable, Optional

import psycopg2

from domain.models import Account
from domain.repositories import AccountRepository

_COLUMNS = "account_id, password, token, name, icon, banned"


class PostgresAccountRepository(AccountRepository):
    """
    Postgres-backed implementation of `AccountRepository`.

    Uses an `accounts` table keyed by `account_id`.
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
                    CREATE TABLE IF NOT EXISTS accounts (
                        account_id TEXT PRIMARY KEY,
                        password TEXT NOT NULL,
                        token TEXT,
                        name TEXT NOT NULL,
                        icon INTEGER NOT NULL DEFAULT 0,
                        banned BOOLEAN NOT NULL DEFAULT FALSE
                    )
                    """
                )
                conn.commit()

    @staticmethod
    def _to_domain(row: tuple) -> Account:
        return Account(
            account_id=str(row[0]),
            password=row[1],
            token=row[2],
            name=row[3],
            icon=int(row[4]),
            banned=bool(row[5]),
        )

    def get(self, account_id: str) -> Optional[Account]:
        with self._get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"SELECT {_COLUMNS} FROM accounts WHERE account_id = %s",
                    (account_id,),
                )
                row = cur.fetchone()
                if not row:
                    return None
                return self._to_domain(row)

    def get_many(self, account_ids: Iterable[str]) -> Dict[str, Account]:
        ids = list(account_ids)
        if not ids:
            return {}

        with self._get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"SELECT {_COLUMNS} FROM accounts WHERE account_id = ANY(%s)",
                    (ids,),
                )
                accounts = [self._to_domain(row) for row in cur.fetchall()]
                return {account.account_id: account for account in accounts}

    def create(self, account: Account) -> bool:
        with self._get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    INSERT INTO accounts (account_id, password, token, name, icon, banned)
                    VALUES (%s, %s, %s, %s, %s, %s)
                    ON CONFLICT (account_id) DO NOTHING
                    """,
                    (
                        account.account_id,
                        account.password,
                        account.token,
                        account.name,
                        account.icon,
                        account.banned,
                    ),
                )
                conn.commit()
                return cur.rowcount == 1

    def replace_password(
        self,
        account_id: str,
        expected_password: str,
        new_password: str,
    ) -> bool:
        with self._get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    UPDATE accounts
                    SET password = %s
                    WHERE account_id = %s AND password = %s
                    """,
                    (new_password, account_id, expected_password),
                )
                conn.commit()
                return cur.rowcount == 1

    def set_token(self, account_id: str, token: str) -> None:
        with self._get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "UPDATE accounts SET token = %s WHERE account_id = %s",
                    (token, account_id),
                )
                conn.commit()

    def update_profile(
        self,
        account_id: str,
        token: str,
        name: Optional[str] = None,
        icon: Optional[int] = None,
        password: Optional[str] = None,
    ) -> bool:
        changes = {"name": name, "icon": icon, "password": password}
        assignments = [f"{column} = %s" for column, value in changes.items() if value is not None]
        values = [value for value in changes.values() if value is not None]

        with self._get_connection() as conn:
            with conn.cursor() as cur:
                if not assignments:
                    cur.execute(
                        "SELECT 1 FROM accounts WHERE account_id = %s AND token = %s",
                        (account_id, token),
                    )
                    return cur.fetchone() is not None

                cur.execute(
                    f"""
                    UPDATE accounts
                    SET {", ".join(assignments)}
                    WHERE account_id = %s AND token = %s
                    """,
                    (*values, account_id, token),
                )
                conn.commit()
                return cur.rowcount == 1

    def set_banned(self, account_id: str, banned: bool) -> bool:
        with self._get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "UPDATE accounts SET banned = %s WHERE account_id = %s",
                    (banned, account_id),
                )
                conn.commit()
                return cur.rowcount == 1
