"""
auth/dependencies.py -- The authentication gate for protected routes.

authenticate_request() is the soft variant: it returns an Identity on
success or an AuthRejection describing the failure, and never raises.
require_identity() wraps it as a FastAPI dependency and raises
UnauthorizedError on rejection, so the handler never runs.

The resolved Identity is handed to handlers explicitly through Depends()
rather than stashed on the request object.

Steps, in order:
  1. Read the "auth_token" cookie. Missing -> reject.
  2. Check the cookie signature. Tampered -> reject.
  3. SessionTokens.decode_claims(): token signature, expiry, revocation.

require_identity_match() is the identity-scoped check: the username in the
token must equal the username the request targets. A mismatch is reported
as 401 with code "identity_mismatch" so clients can tell it apart from a
missing or dead session ("unauthorized").

Layer rule: no imports from api/ or profiles/.
  auth/dependencies.py may import from fastapi (for Request) because this
  module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

import logging

from fastapi import Request

from auth.models import AuthRejection, Identity
from auth.tokens import COOKIE_NAME, SessionTokens
from core.errors import UnauthorizedError

logger = logging.getLogger("profilevault.auth")


def authenticate_request(request: Request) -> Identity | AuthRejection:
    """Resolve the caller of a request from its session cookie."""
    tokens: SessionTokens = request.app.state.tokens

    cookie = request.cookies.get(COOKIE_NAME)
    if not cookie:
        return AuthRejection(code="unauthorized", message="Authentication required.")

    try:
        token = tokens.open_cookie(cookie)
        claims = tokens.decode_claims(token)
    except UnauthorizedError as exc:
        logger.debug("Rejected session on %s: %s", request.url.path, exc.code)
        return AuthRejection(code=exc.code, message=exc.message)

    return Identity(username=claims.username, token=token, claims=claims)


def require_identity(request: Request) -> Identity:
    """Require authentication. Raises UnauthorizedError if the request is not authenticated.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(identity: Identity = Depends(require_identity)): ...
    """
    outcome = authenticate_request(request)
    if isinstance(outcome, AuthRejection):
        raise UnauthorizedError(outcome.message, code=outcome.code)
    return outcome


def require_identity_match(identity: Identity, username: str | None) -> None:
    """Raise UnauthorizedError unless the target username is the caller's own."""
    if username != identity.username:
        logger.info("Identity mismatch: session for %s targeted %r", identity.username, username)
        raise UnauthorizedError(
            "Session does not belong to the requested user.",
            code="identity_mismatch",
        )
