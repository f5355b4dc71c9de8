"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Stores and services
do the work; these only own the shape.

Layer rule: no imports from api/ or profiles/.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Profile:
    """The editable profile fields of a user.

    A freshly registered user has every field empty -- registration creates a
    skeleton record and the first profile edit fills it in.
    """

    fullname: str = ""
    street1: str = ""
    street2: str | None = None  # the only optional field
    city: str = ""
    state: str = ""
    zip: str = ""


@dataclass
class UserRecord:
    """One row of the credential store.

    hashed_password is a bcrypt hash (salt and cost embedded). It never
    leaves auth/ -- profile reads hand out a Profile, not the record.
    """

    username: str  # unique key, case-sensitive
    hashed_password: str
    profile: Profile
    created_at: str | None = None
    updated_at: str | None = None


@dataclass(frozen=True)
class SessionClaims:
    """Decoded, verified contents of a session token."""

    username: str
    issued_at: int  # epoch seconds
    expires_at: int  # epoch seconds
    token_id: str  # jti claim; the key in the revocation list


@dataclass(frozen=True)
class Identity:
    """An authenticated caller, handed explicitly to route handlers."""

    username: str
    token: str
    claims: SessionClaims


@dataclass(frozen=True)
class AuthRejection:
    """Why a request failed authentication. Returned, not raised."""

    code: str
    message: str
