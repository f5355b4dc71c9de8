"""
api/routes/account.py -- Public account endpoints: registration and login.

Routes:
  POST /register  -- create a user with an empty profile
  POST /login     -- check credentials; set the signed session cookie

Security:
  POST /login is rate-limited per client IP (LOGIN_RATE_LIMIT, default 10/minute);
  over the limit it returns 429 "rate_limited" with Retry-After.
  Wrong username and wrong password return the same "bad_credentials" error,
  and CredentialStore.verify_credentials() costs one bcrypt check either way.
  Login responses carry Cache-Control: no-store.

Both handlers are plain `def` so FastAPI runs them in its threadpool and the
bcrypt work never blocks the event loop.
"""

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from api.limiter import limiter, login_limit
from api.models import CredentialsRequest, ErrorDetail, ErrorResponse, LoginResponse, MessageResponse
from auth.credentials import CredentialStore
from auth.tokens import SessionTokens, set_auth_cookie

logger = logging.getLogger("profilevault.api.account")

router = APIRouter()


@router.post("/register", response_model=MessageResponse)
def register(request: Request, body: CredentialsRequest) -> MessageResponse:
    """Create a user. 400 on a malformed username/password, 409 if taken."""
    credentials: CredentialStore = request.app.state.credentials
    credentials.create_user(body.username, body.password)
    return MessageResponse(message=f"Successfully created user {body.username}")


@router.post("/login", response_model=LoginResponse)
@limiter.limit(login_limit)  # must sit BELOW @router so FastAPI registers the limited wrapper
def login(request: Request, body: CredentialsRequest) -> JSONResponse:
    """Validate credentials and start a session.

    The session token is only ever delivered inside the signed, httpOnly
    auth_token cookie -- the JSON body just confirms who logged in.
    """
    credentials: CredentialStore = request.app.state.credentials
    tokens: SessionTokens = request.app.state.tokens

    if not credentials.verify_credentials(body.username, body.password):
        logger.info("Failed login for %r", body.username)
        resp = JSONResponse(
            status_code=401,
            content=ErrorResponse(
                error=ErrorDetail(code="bad_credentials", message="Invalid username or password.")
            ).model_dump(),
        )
        resp.headers["Cache-Control"] = "no-store"
        return resp

    token = tokens.issue_token(body.username)
    resp = JSONResponse(
        status_code=200,
        content=LoginResponse(
            message=f"Successfully validated credentials for user: {body.username}",
            username=body.username,
            expires_in=tokens.ttl_seconds,
        ).model_dump(),
    )
    set_auth_cookie(resp, tokens.seal_cookie(token), tokens.ttl_seconds)
    resp.headers["Cache-Control"] = "no-store"
    logger.info("Login for %s", body.username)
    return resp
