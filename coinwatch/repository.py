"""Database repository for account data."""

from __future__ import annotations

import logging
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Iterator

import psycopg
from psycopg import sql
from psycopg.errors import UniqueViolation
from psycopg.rows import tuple_row
from psycopg.types.json import Json
from psycopg_pool import ConnectionPool

from .domain.account import Account, ImageReference, image_from_document, image_to_document
from .domain.contracts import NewAccountRecord
from .domain.errors import AccountNotFound, DuplicateAccount, EmailInUse, StoreUnavailable
from .domain.identifiers import MalformedKey, NativeKey, parse_account_key

logger = logging.getLogger(__name__)

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS accounts (
    account_id        TEXT PRIMARY KEY,
    legacy_object_id  TEXT UNIQUE,
    name              TEXT NOT NULL,
    email             TEXT NOT NULL UNIQUE,
    password_hash     TEXT NOT NULL,
    description       TEXT,
    image             JSONB,
    created_at        TIMESTAMPTZ NOT NULL,
    updated_at        TIMESTAMPTZ NOT NULL
);
CREATE INDEX IF NOT EXISTS accounts_name_idx ON accounts (name);
"""

_COLUMNS = (
    "account_id, name, email, password_hash, created_at, updated_at, "
    "description, image, legacy_object_id"
)

_UPDATABLE = frozenset({"name", "email", "password_hash", "description", "image"})


class AccountRepository:
    """Postgres-backed account persistence."""

    def __init__(self, pool: ConnectionPool) -> None:
        """Store the connection pool used for all database interactions."""
        self._pool = pool

    @contextmanager
    def _cursor(self) -> Iterator[psycopg.Cursor]:
        """Yield a tuple-row cursor, wrapping driver failures as ``StoreUnavailable``."""
        try:
            with self._pool.connection() as conn:
                with conn.cursor(row_factory=tuple_row) as cur:
                    yield cur
                conn.commit()
        except UniqueViolation:
            raise
        except psycopg.Error as exc:
            logger.error("account store failure: %s", exc)
            raise StoreUnavailable() from exc

    def ensure_schema(self) -> None:
        """Create the ``accounts`` table and indexes when missing."""
        with self._cursor() as cur:
            cur.execute(SCHEMA_SQL)

    def create(self, record: NewAccountRecord) -> Account:
        """Insert a new account row and return it with its generated identifier."""
        account_id = str(uuid.uuid4())
        now = datetime.now(timezone.utc)
        try:
            with self._cursor() as cur:
                cur.execute(
                    f"""
                    INSERT INTO accounts (account_id, name, email, password_hash, description, image, created_at, updated_at)
                    VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
                    RETURNING {_COLUMNS}
                    """,
                    (
                        account_id,
                        record.name,
                        record.email,
                        record.password_hash,
                        record.description,
                        self._image_param(record.image),
                        now,
                        now,
                    ),
                )
                row = cur.fetchone()
        except UniqueViolation as exc:
            raise DuplicateAccount() from exc
        return self._map_record(row)

    def find_by_id(self, account_id: str) -> Account | None:
        """Look up an account by surrogate UUID or, for migrated rows, legacy object id."""
        key = parse_account_key(account_id)
        if isinstance(key, MalformedKey):
            return None
        column = "legacy_object_id" if isinstance(key, NativeKey) else "account_id"
        return self._find_one(column, key.value)

    def find_by_email(self, email: str) -> Account | None:
        return self._find_one("email", email)

    def find_by_name(self, name: str) -> Account | None:
        return self._find_one("name", name)

    def _find_one(self, column: str, value: str) -> Account | None:
        query = sql.SQL("SELECT {columns} FROM accounts WHERE {column} = %s LIMIT 1").format(
            columns=sql.SQL(_COLUMNS),
            column=sql.Identifier(column),
        )
        with self._cursor() as cur:
            cur.execute(query, (value,))
            row = cur.fetchone()
        if not row:
            return None
        return self._map_record(row)

    def update(self, account_id: str, fields: dict[str, Any]) -> Account:
        """Write the supplied columns only and return the refreshed account."""
        unknown = set(fields) - _UPDATABLE
        if unknown:
            raise ValueError(f"cannot update columns: {', '.join(sorted(unknown))}")

        values = dict(fields)
        if "image" in values:
            values["image"] = self._image_param(values["image"])
        values["updated_at"] = datetime.now(timezone.utc)

        assignments = sql.SQL(", ").join(
            sql.SQL("{} = %s").format(sql.Identifier(column)) for column in values
        )
        query = sql.SQL(
            "UPDATE accounts SET {assignments} WHERE account_id = %s RETURNING {columns}"
        ).format(assignments=assignments, columns=sql.SQL(_COLUMNS))

        try:
            with self._cursor() as cur:
                cur.execute(query, (*values.values(), account_id))
                row = cur.fetchone()
        except UniqueViolation as exc:
            raise EmailInUse() from exc
        if not row:
            raise AccountNotFound()
        return self._map_record(row)

    def delete(self, account_id: str) -> bool:
        """Delete an account by surrogate id, returning whether a row was removed."""
        with self._cursor() as cur:
            cur.execute("DELETE FROM accounts WHERE account_id = %s", (account_id,))
            return cur.rowcount > 0

    def list_all(self) -> list[Account]:
        with self._cursor() as cur:
            cur.execute(f"SELECT {_COLUMNS} FROM accounts ORDER BY created_at, account_id")
            rows = cur.fetchall()
        return [self._map_record(row) for row in rows]

    def _image_param(self, image: ImageReference | None) -> Json | None:
        document = image_to_document(image)
        return Json(document) if document is not None else None

    def _map_record(self, row: tuple) -> Account:
        """Convert a raw database tuple into the domain ``Account`` dataclass."""
        return Account(
            account_id=row[0],
            name=row[1],
            email=row[2],
            password_hash=row[3],
            created_at=row[4],
            updated_at=row[5],
            description=row[6],
            image=image_from_document(row[7]),
            legacy_object_id=row[8],
        )
