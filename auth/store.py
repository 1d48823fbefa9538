"""
auth/store.py -- SQLAlchemy Core persistence layer for Identity records.

Pattern: Repository + Data Mapper. UserStore is the repository; _row_to_identity
is the mapper. Service and route code never touches SQL directly.

Interface (each method returns the record or None as the absence signal):
  find_by_email, find_by_id, create, update_by_id, delete_by_id

Security:
  All queries use bound parameters. No f-strings in SQL.

  UNIQUE(email) is enforced by the database. create() lets IntegrityError
  propagate so the service can report a concurrent duplicate registration
  as DuplicateError instead of a server error.

  Emails are normalized (strip + lower) on every write and lookup, so the
  UNIQUE index is effectively case-insensitive.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import json
import uuid
from datetime import datetime, timezone
from typing import Any, Protocol

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, create_engine, event
from sqlalchemy.engine import Engine

from auth.models import Identity, Role, Status

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", String(32), primary_key=True),  # uuid4 hex
    Column("email", String(255), nullable=False, unique=True),
    Column("first_name", String(100), nullable=False),
    Column("middle_name", String(100)),
    Column("last_name", String(100), nullable=False),
    Column("age", Integer),
    Column("phone", String(30)),
    Column("locations", Text, nullable=False, server_default="[]"),  # JSON list of {name, address}
    Column("role", String(20), nullable=False, server_default=Role.customer.value),
    Column("branch_id", String(64)),
    Column("password_hash", Text),
    Column("temporary_password_hash", Text),
    Column("status", String(10), nullable=False, server_default=Status.active.value),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)

# Columns update_by_id() accepts. id, email and created_at are immutable.
_MUTABLE_COLUMNS: frozenset[str] = frozenset(
    {
        "first_name",
        "middle_name",
        "last_name",
        "age",
        "phone",
        "locations",
        "role",
        "branch_id",
        "password_hash",
        "temporary_password_hash",
        "status",
    }
)


class IdentityStore(Protocol):
    """The operations the auth services need from a credential store."""

    def find_by_email(self, email: str) -> Identity | None: ...

    def find_by_id(self, identity_id: str) -> Identity | None: ...

    def create(self, identity: Identity) -> Identity: ...

    def update_by_id(self, identity_id: str, **fields: Any) -> Identity | None: ...

    def delete_by_id(self, identity_id: str) -> Identity | None: ...


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode so readers are not blocked during writes."""
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def normalize_email(email: str) -> str:
    """Trim and lower-case an email address for storage and lookup."""
    return email.strip().lower()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for Identity records.

    Usage:
        store = UserStore("sqlite:///gatehouse.db")
        saved = store.create(Identity(email="a@b.com", first_name="A", last_name="B", password_hash=...))
        store.find_by_email("A@B.com")  # same record
        store.close()
    """

    def __init__(self, db_url: str = "sqlite:///gatehouse.db") -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        _metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def find_by_email(self, email: str) -> Identity | None:
        """Look up an identity by email (case-insensitive). Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.email == normalize_email(email))).fetchone()
        return _row_to_identity(row) if row is not None else None

    def find_by_id(self, identity_id: str) -> Identity | None:
        """Look up an identity by primary key. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.id == identity_id)).fetchone()
        return _row_to_identity(row) if row is not None else None

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create(self, identity: Identity) -> Identity:
        """Insert a new identity and return the stored record with its assigned id.

        Raises sqlalchemy.exc.IntegrityError if the email already exists.
        """
        identity_id = uuid.uuid4().hex
        now = _now_iso()
        with self.engine.connect() as conn:
            conn.execute(
                _users.insert().values(
                    id=identity_id,
                    email=normalize_email(identity.email),
                    first_name=identity.first_name,
                    middle_name=identity.middle_name,
                    last_name=identity.last_name,
                    age=identity.age,
                    phone=identity.phone,
                    locations=json.dumps(identity.locations or []),
                    role=Role(identity.role).value,
                    branch_id=identity.branch_id,
                    password_hash=identity.password_hash,
                    temporary_password_hash=identity.temporary_password_hash,
                    status=Status(identity.status).value,
                    created_at=now,
                    updated_at=now,
                )
            )
            conn.commit()
        return self.find_by_id(identity_id)

    def update_by_id(self, identity_id: str, **fields: Any) -> Identity | None:
        """Update mutable columns and return the updated record, or None if not found.

        Unknown column names raise ValueError before any SQL runs. Callers are
        expected to have applied their own per-role allow-list already; this
        check only protects the immutable columns.
        """
        unknown = set(fields) - _MUTABLE_COLUMNS
        if unknown:
            raise ValueError(f"Unknown or immutable identity fields: {sorted(unknown)!r}")
        values = dict(fields)
        if "locations" in values:
            values["locations"] = json.dumps(values["locations"] or [])
        for key, enum_cls in (("role", Role), ("status", Status)):
            if values.get(key) is not None:
                values[key] = enum_cls(values[key]).value
        values["updated_at"] = _now_iso()
        with self.engine.connect() as conn:
            result = conn.execute(_users.update().where(_users.c.id == identity_id).values(**values))
            conn.commit()
        if result.rowcount == 0:
            return None
        return self.find_by_id(identity_id)

    def delete_by_id(self, identity_id: str) -> Identity | None:
        """Permanently delete an identity. Returns the deleted record, or None if not found."""
        existing = self.find_by_id(identity_id)
        if existing is None:
            return None
        with self.engine.connect() as conn:
            result = conn.execute(_users.delete().where(_users.c.id == identity_id))
            conn.commit()
        return existing if result.rowcount > 0 else None

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_identity(row) -> Identity:
    return Identity(
        id=row.id,
        email=row.email,
        first_name=row.first_name,
        middle_name=row.middle_name,
        last_name=row.last_name,
        age=row.age,
        phone=row.phone,
        locations=json.loads(row.locations or "[]"),
        role=Role(row.role),
        branch_id=row.branch_id,
        password_hash=row.password_hash,
        temporary_password_hash=row.temporary_password_hash,
        status=Status(row.status),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
