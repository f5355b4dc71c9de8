"""
auth/passwords.py -- bcrypt password hashing with timing equalization.

bcrypt is used directly rather than through passlib: passlib's wrap-bug
detection feeds bcrypt a password longer than 72 bytes, which bcrypt 4.x
rejects outright. The credential store caps passwords at 72 bytes, so
bcrypt's silent truncation never applies.

The cost factor comes from Settings.bcrypt_rounds (12 in production).

Layer rule: no imports from api/ or profiles/.
"""

from __future__ import annotations

import bcrypt

from core.config import get_settings

_settings = get_settings()


def hash_password(plain: str) -> str:
    """Return a bcrypt hash of the given plaintext password."""
    salt = bcrypt.gensalt(rounds=_settings.bcrypt_rounds)
    return bcrypt.hashpw(plain.encode("utf-8"), salt).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash.

    bcrypt.checkpw compares digests in constant time. A malformed stored hash
    counts as a mismatch rather than an error.
    """
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        return False


# Computed once at module load so the first login attempt is not measurably
# slower than subsequent ones. Checked against whenever the username does not
# exist, so unknown users cost one bcrypt check just like wrong passwords.
DUMMY_HASH: str = hash_password("profilevault_timing_dummy")


def burn_password_check(plain: str) -> None:
    """Run one bcrypt check whose result is discarded."""
    verify_password(plain, DUMMY_HASH)
