"""
auth/credentials.py -- The credential store: users, password checks, profiles.

CredentialStore wraps any RecordStore and owns the rules the raw store does
not know about:

  Input policy:  usernames are 3-64 chars of [A-Za-z0-9_.-]; passwords are
                 6-72 bytes (UTF-8) with at least one letter and one digit.
                 72 bytes is bcrypt's input ceiling.

  Hashing:       raw passwords are bcrypt-hashed before they reach the record
                 store and are never logged.

  Enumeration:   verify_credentials() always runs exactly one bcrypt check,
                 against a dummy hash when the username is unknown, and
                 returns a bare bool either way.

  Profiles:      set_profile() replaces the editable fields as one group.
                 A profile missing any required field is rejected before the
                 store is touched, so a bad edit leaves the old data intact.

  Concurrency:   create_user() and set_profile() hold a per-username lock
                 from KeyedLocks. Edits to one username are serialized; edits
                 to different usernames never wait on each other. Hashing
                 happens before the lock is taken.

Layer rule: no imports from api/ or profiles/.
"""

from __future__ import annotations

import logging
import re
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field, replace

from auth.models import Profile, UserRecord
from auth.passwords import burn_password_check, hash_password, verify_password
from auth.store import RecordStore
from core.errors import DuplicateUserError, InvalidInputError, NotFoundError

logger = logging.getLogger("profilevault.auth.credentials")

REQUIRED_PROFILE_FIELDS: tuple[str, ...] = ("fullname", "street1", "city", "state", "zip")

_USERNAME_RE = re.compile(r"^[A-Za-z0-9_.-]{3,64}$")
_PASSWORD_MIN_LEN = 6
_PASSWORD_MAX_BYTES = 72  # bcrypt input ceiling


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def validate_username(username: object) -> str:
    if not isinstance(username, str) or not _USERNAME_RE.match(username):
        raise InvalidInputError(
            "Username must be 3-64 characters of letters, digits, '.', '_' or '-'.",
            code="invalid_username",
        )
    return username


def validate_password(password: object) -> str:
    if not isinstance(password, str) or not password:
        raise InvalidInputError("Password is required.", code="invalid_password")
    if len(password) < _PASSWORD_MIN_LEN or len(password.encode("utf-8")) > _PASSWORD_MAX_BYTES:
        raise InvalidInputError(
            f"Password must be {_PASSWORD_MIN_LEN}-{_PASSWORD_MAX_BYTES} bytes long.",
            code="invalid_password",
        )
    if not any(c.isalpha() for c in password) or not any(c.isdigit() for c in password):
        raise InvalidInputError(
            "Password must contain at least one letter and one digit.",
            code="invalid_password",
        )
    return password


def missing_profile_fields(profile: Profile) -> list[str]:
    """Return the required fields that are absent or blank, in declaration order."""
    missing = []
    for name in REQUIRED_PROFILE_FIELDS:
        value = getattr(profile, name)
        if not isinstance(value, str) or not value.strip():
            missing.append(name)
    return missing


def require_complete_profile(profile: Profile) -> None:
    missing = missing_profile_fields(profile)
    if missing:
        raise InvalidInputError(
            "All fields are required.",
            code="missing_fields",
            detail=", ".join(missing),
        )


# ---------------------------------------------------------------------------
# Per-key locking
# ---------------------------------------------------------------------------


@dataclass
class _KeyLock:
    lock: threading.Lock = field(default_factory=threading.Lock)
    holders: int = 0


class KeyedLocks:
    """A lock per key, created on first use and dropped when nobody holds it.

    The registry itself is guarded by one short-lived lock; the per-key lock
    is acquired outside it, so waiting on key "a" never blocks key "b".
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, _KeyLock] = {}

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        with self._guard:
            entry = self._locks.setdefault(key, _KeyLock())
            entry.holders += 1
        entry.lock.acquire()
        try:
            yield
        finally:
            entry.lock.release()
            with self._guard:
                entry.holders -= 1
                if entry.holders == 0:
                    del self._locks[key]

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)


# ---------------------------------------------------------------------------
# Credential store
# ---------------------------------------------------------------------------


class CredentialStore:
    """username -> {password hash, profile}, with the rules above applied.

    Usage:
        creds = CredentialStore(MemoryRecordStore())
        creds.create_user("sam", "Abc123!")
        creds.verify_credentials("sam", "Abc123!")   # True
        creds.get_profile("sam")                      # Profile() -- empty skeleton
    """

    def __init__(self, records: RecordStore) -> None:
        self._records = records
        self._locks = KeyedLocks()

    def create_user(self, username: str, raw_password: str) -> None:
        """Register a new user with an empty profile.

        Raises InvalidInputError on a malformed username/password and
        DuplicateUserError if the username is already taken. A duplicate
        attempt never touches the existing record.
        """
        validate_username(username)
        validate_password(raw_password)
        record = UserRecord(
            username=username,
            hashed_password=hash_password(raw_password),
            profile=Profile(),
        )
        with self._locks.hold(username):
            if not self._records.add(record):
                raise DuplicateUserError()
        logger.info("Registered user %s", username)

    def verify_credentials(self, username: str, raw_password: str) -> bool:
        """Return True only for a registered username with its exact password.

        Never raises. Unknown usernames and wrong passwords are
        indistinguishable to the caller.
        """
        if not isinstance(raw_password, str):
            raw_password = ""
        record = self._records.get(username) if isinstance(username, str) else None
        if record is None:
            burn_password_check(raw_password)
            return False
        return verify_password(raw_password, record.hashed_password)

    def has_user(self, username: str) -> bool:
        return self._records.get(username) is not None

    def get_profile(self, username: str) -> Profile:
        record = self._records.get(username)
        if record is None:
            raise NotFoundError("User not found.")
        return record.profile

    def set_profile(self, username: str, profile: Profile) -> None:
        """Replace every editable field of the user's profile at once.

        Raises InvalidInputError (before any write) if a required field is
        missing or blank, NotFoundError if the username is unknown.
        """
        require_complete_profile(profile)
        with self._locks.hold(username):
            record = self._records.get(username)
            if record is None:
                raise NotFoundError("User not found.")
            if not self._records.set(replace(record, profile=profile, updated_at=None)):
                raise NotFoundError("User not found.")
        logger.info("Updated profile for %s", username)

    def close(self) -> None:
        self._records.close()
