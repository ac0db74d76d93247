"""Database repository for account credentials."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone

from psycopg import errors
from psycopg.rows import tuple_row
from psycopg_pool import ConnectionPool

from .domain.account import Account
from .errors import PersistenceConflict
from .security.passwords import CredentialManager

logger = logging.getLogger(__name__)

_COLUMNS = """
    account_id, username, email, first_name, last_name, password_hash,
    reset_token, reset_token_expires_at, created_at, updated_at
"""

_CONSTRAINT_FIELDS = {
    "accounts_username_key": "username",
    "accounts_email_key": "email",
}


class AccountRepository:
    """Postgres-backed account persistence.

    Every write passes the account through
    :meth:`CredentialManager.prepare_for_write` first, so a staged plaintext
    password never reaches the database.
    """

    def __init__(self, pool: ConnectionPool, credentials: CredentialManager) -> None:
        """Store the connection pool and the credential manager used before writes."""
        self._pool = pool
        self._credentials = credentials

    def create_account(self, account: Account) -> Account:
        """Insert a new account row and return the stored aggregate."""
        self._credentials.prepare_for_write(account)
        now = datetime.now(timezone.utc)
        try:
            with self._pool.connection() as conn:
                with conn.cursor(row_factory=tuple_row) as cur:
                    cur.execute(
                        f"""
                        INSERT INTO accounts (
                            account_id, username, email, first_name, last_name, password_hash,
                            reset_token, reset_token_expires_at, created_at, updated_at
                        )
                        VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
                        RETURNING {_COLUMNS}
                        """,
                        (
                            account.account_id,
                            account.username,
                            account.email,
                            account.first_name,
                            account.last_name,
                            account.password_hash,
                            account.reset_token,
                            account.reset_token_expires_at,
                            now,
                            now,
                        ),
                    )
                    record = cur.fetchone()
                    conn.commit()
        except errors.UniqueViolation as exc:
            raise self._conflict(exc) from exc
        return self._map_record(record)

    def save_account(self, account: Account) -> Account:
        """Write back mutated profile, credential, or reset-token fields."""
        self._credentials.prepare_for_write(account)
        try:
            with self._pool.connection() as conn:
                with conn.cursor(row_factory=tuple_row) as cur:
                    cur.execute(
                        f"""
                        UPDATE accounts
                        SET email = %s,
                            first_name = %s,
                            last_name = %s,
                            password_hash = %s,
                            reset_token = %s,
                            reset_token_expires_at = %s,
                            updated_at = NOW()
                        WHERE account_id = %s
                        RETURNING {_COLUMNS}
                        """,
                        (
                            account.email,
                            account.first_name,
                            account.last_name,
                            account.password_hash,
                            account.reset_token,
                            account.reset_token_expires_at,
                            account.account_id,
                        ),
                    )
                    record = cur.fetchone()
                    conn.commit()
        except errors.UniqueViolation as exc:
            raise self._conflict(exc) from exc
        if record is None:
            raise ValueError("account not found")
        return self._map_record(record)

    def get_account(self, account_id: str) -> Account | None:
        """Fetch an account by primary key or return ``None``."""
        try:
            uuid.UUID(account_id)
        except ValueError:
            return None
        return self._fetch_one("account_id = %s", account_id)

    def find_by_username(self, username: str) -> Account | None:
        return self._fetch_one("username = %s", username)

    def find_by_email(self, email: str) -> Account | None:
        return self._fetch_one("lower(email) = lower(%s)", email)

    def find_by_login(self, login: str) -> Account | None:
        """Resolve a login that may be either a username or an email address."""
        return self._fetch_one("username = %s OR lower(email) = lower(%s)", login, login)

    def find_by_reset_token(self, token: str) -> Account | None:
        return self._fetch_one("reset_token = %s", token)

    def _fetch_one(self, where_sql: str, *params: object) -> Account | None:
        with self._pool.connection() as conn:
            with conn.cursor(row_factory=tuple_row) as cur:
                cur.execute(f"SELECT {_COLUMNS} FROM accounts WHERE {where_sql} LIMIT 1", params)
                row = cur.fetchone()
                if not row:
                    return None
        return self._map_record(row)

    def _conflict(self, exc: errors.UniqueViolation) -> PersistenceConflict:
        constraint = exc.diag.constraint_name or ""
        field = _CONSTRAINT_FIELDS.get(constraint, "account")
        logger.info("uniqueness violation on %s (%s)", field, constraint)
        return PersistenceConflict(field)

    def _map_record(self, row: tuple) -> Account:
        """Convert a raw database tuple into the domain ``Account`` dataclass."""
        return Account(
            account_id=str(row[0]),
            username=row[1],
            email=row[2],
            first_name=row[3],
            last_name=row[4],
            password_hash=row[5],
            reset_token=row[6],
            reset_token_expires_at=row[7],
            created_at=row[8],
            updated_at=row[9],
        )
