"""
auth/store.py -- Keyed persistence for user records.

Pattern: Repository + Data Mapper. RecordStore is the repository contract
(get / add / set / delete keyed by username); _row_to_record is the mapper.
Nothing above this module touches SQL or the backing dict directly, so the
credential store can be handed any implementation:

  SqlRecordStore    -- SQLAlchemy Core. SQLite file by default; any
                       SQLAlchemy URL works.
  MemoryRecordStore -- process-local dict. Tests and throwaway runs.

open_record_store(url) picks one from a URL ("memory://" -> memory).

Security:
  All queries use bound parameters. No f-strings in SQL.
  This layer stores whatever hash it is given; it never sees a raw password.

Layer rule: no imports from api/ or profiles/.
"""

from __future__ import annotations

import threading
from dataclasses import replace
from datetime import datetime, timezone
from typing import Protocol

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from auth.models import Profile, UserRecord

MEMORY_URL = "memory://"

# ---------------------------------------------------------------------------
# Contract
# ---------------------------------------------------------------------------


class RecordStore(Protocol):
    """Keyed user-record persistence.

    add() is insert-if-absent and reports a conflict by returning False, so
    the duplicate check and the insert are one atomic step in every backend.
    """

    def get(self, username: str) -> UserRecord | None: ...

    def add(self, record: UserRecord) -> bool: ...

    def set(self, record: UserRecord) -> bool: ...

    def delete(self, username: str) -> bool: ...

    def close(self) -> None: ...


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("username", String(64), nullable=False, unique=True),
    Column("hashed_password", Text, nullable=False),
    Column("fullname", String(255), nullable=False, server_default=""),
    Column("street1", String(255), nullable=False, server_default=""),
    Column("street2", String(255)),  # optional
    Column("city", String(255), nullable=False, server_default=""),
    Column("state", String(64), nullable=False, server_default=""),
    Column("zip", String(32), nullable=False, server_default=""),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32)),
)


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode so readers do not block during writes.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


# ---------------------------------------------------------------------------
# SQLAlchemy implementation
# ---------------------------------------------------------------------------


class SqlRecordStore:
    """RecordStore backed by SQLAlchemy Core.

    Usage:
        store = SqlRecordStore("sqlite:///profilevault.db")
        store.add(UserRecord(username="sam", hashed_password=h, profile=Profile()))
        record = store.get("sam")
        store.close()
    """

    def __init__(self, db_url: str) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite") and "mode=memory" not in db_url and ":memory:" not in db_url:
            event.listen(self.engine, "connect", _set_wal_mode)
        _metadata.create_all(self.engine)

    def get(self, username: str) -> UserRecord | None:
        """Look up a record by exact username (case-sensitive)."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.username == username)).fetchone()
        return _row_to_record(row) if row is not None else None

    def add(self, record: UserRecord) -> bool:
        """Insert a new record. Returns False if the username is taken.

        The UNIQUE constraint on username makes the check-and-insert atomic
        even across processes sharing the same database.
        """
        try:
            with self.engine.connect() as conn:
                conn.execute(
                    _users.insert().values(
                        username=record.username,
                        hashed_password=record.hashed_password,
                        created_at=record.created_at or _now_iso(),
                        updated_at=record.updated_at,
                        **_profile_columns(record.profile),
                    )
                )
                conn.commit()
        except IntegrityError:
            return False
        return True

    def set(self, record: UserRecord) -> bool:
        """Replace the stored record in one UPDATE. Returns False if absent."""
        with self.engine.connect() as conn:
            result = conn.execute(
                _users.update()
                .where(_users.c.username == record.username)
                .values(
                    hashed_password=record.hashed_password,
                    updated_at=record.updated_at or _now_iso(),
                    **_profile_columns(record.profile),
                )
            )
            conn.commit()
        return result.rowcount > 0

    def delete(self, username: str) -> bool:
        with self.engine.connect() as conn:
            result = conn.execute(_users.delete().where(_users.c.username == username))
            conn.commit()
        return result.rowcount > 0

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# In-memory implementation
# ---------------------------------------------------------------------------


class MemoryRecordStore:
    """RecordStore backed by a dict. Contents vanish with the process."""

    def __init__(self) -> None:
        self._records: dict[str, UserRecord] = {}
        self._lock = threading.Lock()

    def get(self, username: str) -> UserRecord | None:
        with self._lock:
            return self._records.get(username)

    def add(self, record: UserRecord) -> bool:
        with self._lock:
            if record.username in self._records:
                return False
            self._records[record.username] = replace(record, created_at=record.created_at or _now_iso())
            return True

    def set(self, record: UserRecord) -> bool:
        with self._lock:
            if record.username not in self._records:
                return False
            self._records[record.username] = replace(record, updated_at=record.updated_at or _now_iso())
            return True

    def delete(self, username: str) -> bool:
        with self._lock:
            return self._records.pop(username, None) is not None

    def close(self) -> None:
        with self._lock:
            self._records.clear()


def open_record_store(url: str) -> RecordStore:
    """Return the RecordStore implementation for a store URL."""
    if url == MEMORY_URL:
        return MemoryRecordStore()
    return SqlRecordStore(url)


# ---------------------------------------------------------------------------
# Row mapping (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _profile_columns(profile: Profile) -> dict:
    return {
        "fullname": profile.fullname,
        "street1": profile.street1,
        "street2": profile.street2,
        "city": profile.city,
        "state": profile.state,
        "zip": profile.zip,
    }


def _row_to_record(row) -> UserRecord:
    return UserRecord(
        username=row.username,
        hashed_password=row.hashed_password,
        profile=Profile(
            fullname=row.fullname,
            street1=row.street1,
            street2=row.street2,
            city=row.city,
            state=row.state,
            zip=row.zip,
        ),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
