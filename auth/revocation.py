"""
auth/revocation.py -- Revoked session tokens, kept until they would have expired.

Session tokens are verified statelessly, so logout needs a server-side record
of the tokens that must stop working early. Entries are keyed by the token's
jti claim and remember the token's own expiry: once that passes, the token
fails the expiry check anyway and the entry is dead weight.
purge_expired() drops those; api/main.py runs it on a timer.

One lock guards the dict, so an add() is visible to every later contains()
from any thread.

Usage:
    revoked = RevocationList()
    revoked.add(claims.token_id, claims.expires_at)
    revoked.contains(claims.token_id)   # True
    revoked.purge_expired()             # returns number of entries removed
"""

import threading
import time
from typing import Callable, Optional


class RevocationList:
    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._entries: dict[str, int] = {}
        self._lock = threading.Lock()

    def add(self, token_id: str, expires_at: int) -> None:
        """Record a revoked token id. Re-adding the same id is a no-op."""
        with self._lock:
            self._entries.setdefault(token_id, expires_at)

    def contains(self, token_id: str) -> bool:
        with self._lock:
            return token_id in self._entries

    def purge_expired(self, now: Optional[float] = None) -> int:
        """Delete entries whose token has expired. Returns number of entries removed."""
        cutoff = self._clock() if now is None else now
        with self._lock:
            dead = [tid for tid, exp in self._entries.items() if exp < cutoff]
            for tid in dead:
                del self._entries[tid]
        return len(dead)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
