"""
auth/tokens.py -- Session tokens and the signed session cookie.

Security design decisions:
  JWT: python-jose with HS256. Tokens carry sub (username), iat, exp and a
       random jti. Issuance is stateless -- nothing is written server-side.

  Verification order is fixed, and every failure is an UnauthorizedError:
       1. signature and claim structure   (code "invalid_token")
       2. expiry, now > exp               (code "token_expired")
       3. revocation list membership      (code "token_revoked")
       Expiry is checked here rather than by jose so the clock can be injected
       and the order above holds regardless of library defaults.

  Revocation: invalidate_token() records the jti with the token's expiry in a
       RevocationList. Revoking twice, or revoking an already-expired token,
       is a no-op. A token whose signature does not verify is ignored -- it
       cannot pass step 1 anyway.

  Cookie: the JWT travels in the "auth_token" cookie, whose value is itself
       signed with itsdangerous (HMAC-SHA256, server secret, dedicated salt).
       A cookie edited by the client fails open_cookie() before the JWT is
       even parsed.

Layer rule: no imports from api/ or profiles/. Import from core/ is allowed.
"""

from __future__ import annotations

import hashlib
import logging
import secrets
import time
from typing import Callable

from itsdangerous import BadSignature, Signer
from jose import JWTError, jwt

from auth.models import SessionClaims
from auth.revocation import RevocationList
from core.config import get_settings
from core.errors import UnauthorizedError

logger = logging.getLogger("profilevault.auth")

_settings = get_settings()

_ALGORITHM = "HS256"
_COOKIE_SALT = "profilevault.session-cookie"

COOKIE_NAME = "auth_token"


class SessionTokens:
    """Issues, verifies, and revokes session tokens.

    Usage:
        tokens = SessionTokens(secret_key, RevocationList(), ttl_seconds=3600)
        token = tokens.issue_token("alice")
        tokens.verify_token(token)       # "alice"
        tokens.invalidate_token(token)
        tokens.verify_token(token)       # raises UnauthorizedError
    """

    def __init__(
        self,
        secret_key: str,
        revocations: RevocationList,
        ttl_seconds: int,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._secret_key = secret_key
        self._revocations = revocations
        self._ttl_seconds = ttl_seconds
        self._clock = clock
        self._signer = Signer(secret_key, salt=_COOKIE_SALT, digest_method=hashlib.sha256)

    @property
    def ttl_seconds(self) -> int:
        return self._ttl_seconds

    # ------------------------------------------------------------------
    # Tokens
    # ------------------------------------------------------------------

    def issue_token(self, username: str) -> str:
        """Mint a signed token valid for ttl_seconds from now."""
        issued_at = int(self._clock())
        payload = {
            "sub": username,
            "iat": issued_at,
            "exp": issued_at + self._ttl_seconds,
            "jti": secrets.token_urlsafe(16),
        }
        return jwt.encode(payload, self._secret_key, algorithm=_ALGORITHM)

    def decode_claims(self, token: str) -> SessionClaims:
        """Run all three verification steps and return the token's claims."""
        claims = self._decode_signed(token)
        if self._clock() > claims.expires_at:
            raise UnauthorizedError("Session expired.", code="token_expired")
        if self._revocations.contains(claims.token_id):
            raise UnauthorizedError("Session has been revoked.", code="token_revoked")
        return claims

    def verify_token(self, token: str) -> str:
        """Return the username a valid token was issued for."""
        return self.decode_claims(token).username

    def invalidate_token(self, token: str) -> None:
        try:
            claims = self._decode_signed(token)
        except UnauthorizedError:
            logger.debug("Ignoring revocation of a token that does not verify")
            return
        if claims.expires_at < self._clock():
            return
        self._revocations.add(claims.token_id, claims.expires_at)
        logger.info("Revoked session %s for %s", claims.token_id[:8], claims.username)

    def _decode_signed(self, token: str) -> SessionClaims:
        """Step 1 only: signature and claim structure. Expiry is not checked."""
        try:
            payload = jwt.decode(
                token,
                self._secret_key,
                algorithms=[_ALGORITHM],
                options={"verify_exp": False},
            )
        except (JWTError, AttributeError, TypeError) as exc:
            raise UnauthorizedError("Invalid session token.", code="invalid_token") from exc

        username = payload.get("sub")
        issued_at = payload.get("iat")
        expires_at = payload.get("exp")
        token_id = payload.get("jti")
        if (
            not isinstance(username, str)
            or not username
            or not isinstance(issued_at, int)
            or not isinstance(expires_at, int)
            or not isinstance(token_id, str)
            or not token_id
        ):
            raise UnauthorizedError("Invalid session token.", code="invalid_token")
        return SessionClaims(username=username, issued_at=issued_at, expires_at=expires_at, token_id=token_id)

    # ------------------------------------------------------------------
    # Signed cookie value
    # ------------------------------------------------------------------

    def seal_cookie(self, token: str) -> str:
        """Return the cookie value for a token: the token plus its signature."""
        return self._signer.sign(token).decode("utf-8")

    def open_cookie(self, value: str) -> str:
        """Return the token inside a cookie value, or raise if it was tampered with."""
        try:
            return self._signer.unsign(value).decode("utf-8")
        except BadSignature as exc:
            raise UnauthorizedError("Invalid session cookie.", code="invalid_cookie") from exc


# ---------------------------------------------------------------------------
# Cookie helpers
# ---------------------------------------------------------------------------


def set_auth_cookie(response, value: str, max_age: int = 0) -> None:
    """Write the sealed session token as an httpOnly cookie on the response.

    httponly=True: JS cannot read the cookie (XSS mitigation).
    samesite="lax": not sent on cross-site POSTs -- CSRF mitigation for most cases.
    secure: only sent over HTTPS when SECURE_COOKIES=true (set in production).
    max_age: matches the token expiry so both expire together.
    """
    duration = max_age if max_age > 0 else _settings.token_expire_seconds
    response.set_cookie(
        COOKIE_NAME,
        value=value,
        httponly=True,
        samesite="lax",
        secure=_settings.secure_cookies,
        max_age=duration,
    )


def clear_auth_cookie(response) -> None:
    """Replace the session cookie with an empty one that has already expired."""
    response.delete_cookie(
        COOKIE_NAME,
        httponly=True,
        samesite="lax",
        secure=_settings.secure_cookies,
    )
