"""
api/main.py -- FastAPI application entry point for ProfileVault.

Run with:  uvicorn asgi:app --reload
           python main.py

Middleware stack (outermost to innermost):
  1. TrustedHostMiddleware -- rejects requests with unexpected Host headers
  2. CORSMiddleware        -- lets the configured client origin send cookies
  3. SlowAPIMiddleware     -- enforces per-route rate limits from api.limiter
  4. log_requests          -- one log line per request with latency

Lifespan handles startup (stores, token service, revocation purge task) and
shutdown (cancel purge task, close the record store) symmetrically.

Every error leaves through one of the exception handlers below, all of which
return the same ErrorResponse envelope.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.limiter import limiter
from api.models import ErrorDetail, ErrorResponse, HealthResponse
from api.routes.account import router as account_router
from api.routes.auth import router as auth_router
from auth.credentials import CredentialStore
from auth.revocation import RevocationList
from auth.store import RecordStore, open_record_store
from auth.tokens import SessionTokens
from core.config import get_settings
from core.errors import AppError, ErrorKind
from profiles.service import ProfileService

VERSION = "0.1.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("profilevault.api")

_settings = get_settings()

# ---------------------------------------------------------------------------
# Application state
# ---------------------------------------------------------------------------


def init_app_state(app: FastAPI, records: RecordStore) -> None:
    """Build the services around a record store and attach them to app.state.

    Route handlers and the auth dependency only ever reach services through
    app.state, so tests can wire in their own store here.
    """
    app.state.credentials = CredentialStore(records)
    app.state.revocations = RevocationList()
    app.state.tokens = SessionTokens(
        secret_key=_settings.secret_key,
        revocations=app.state.revocations,
        ttl_seconds=_settings.token_expire_seconds,
    )
    app.state.profiles = ProfileService(app.state.credentials)


async def _purge_loop(app: FastAPI, interval: float) -> None:
    """Drop expired entries from the revocation list every `interval` seconds.

    CancelledError from task.cancel() during shutdown propagates out of
    asyncio.sleep and unwinds the coroutine cleanly.
    """
    while True:
        await asyncio.sleep(interval)
        removed = app.state.revocations.purge_expired()
        if removed:
            logger.info("Purged %d expired revocations", removed)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application-level resources across the full server lifetime."""
    logger.info("ProfileVault API starting up")
    init_app_state(app, open_record_store(_settings.store_url))
    app.state.purge_task = asyncio.create_task(_purge_loop(app, _settings.revocation_purge_seconds))
    logger.info("Auth initialized (token_ttl=%ds)", _settings.token_expire_seconds)

    yield

    app.state.purge_task.cancel()
    app.state.credentials.close()
    logger.info("ProfileVault API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="ProfileVault API",
    description="User registration, cookie sessions, and profile management.",
    version=VERSION,
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware stack
#
# Starlette wraps middleware in reverse registration order: the last one added
# is the outermost. Added innermost-first here so requests meet
# TrustedHost -> CORS -> SlowAPI -> log_requests.
# ---------------------------------------------------------------------------


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s %d %.1fms %s",
        request.method,
        request.url.path,
        response.status_code,
        ms,
        request.client.host if request.client else "unknown",
    )
    return response


app.add_middleware(SlowAPIMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[_settings.client_origin],
    allow_credentials=True,  # the session lives in a cookie
    allow_methods=["GET", "POST"],
    allow_headers=["Content-Type"],
    max_age=3600,
)

app.add_middleware(TrustedHostMiddleware, allowed_hosts=_settings.allowed_hosts)

# SlowAPI looks for app.state.limiter by convention.
app.state.limiter = limiter

# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

app.include_router(account_router, tags=["Account"])
app.include_router(auth_router, tags=["Session"])

# ---------------------------------------------------------------------------
# Exception handlers
# ---------------------------------------------------------------------------


def _error_response(status_code: int, code: str, message: str, detail: str | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=ErrorDetail(code=code, message=message, detail=detail)).model_dump(),
    )


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Turn a typed application error into its status code and envelope."""
    if exc.kind is ErrorKind.INTERNAL:
        logger.error("Internal error on %s %s: %r", request.method, request.url.path, exc)
    return _error_response(exc.status_code, exc.code, exc.message, exc.detail)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 400 when the request body or params fail validation.

    The detail names each offending field without echoing submitted values,
    which may include a password.
    """
    problems = "; ".join(
        f"{'.'.join(str(part) for part in err.get('loc', ()))}: {err.get('msg', 'invalid')}" for err in exc.errors()
    )
    return _error_response(400, ErrorKind.INVALID_INPUT.value, "Request validation failed.", problems or None)


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429 with Retry-After set to the length of the exceeded window."""
    retry_after = exc.limit.limit.get_expiry()
    response = _error_response(429, "rate_limited", "Too many requests.", str(exc.detail))
    response.headers["Retry-After"] = str(retry_after)
    return response


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Wrap framework HTTP errors (unmatched route 404, 405, ...) in the envelope."""
    message = "Resource not found." if exc.status_code == 404 else str(exc.detail)
    response = _error_response(exc.status_code, f"http_{exc.status_code}", message)
    if exc.headers:
        response.headers.update(exc.headers)
    return response


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The raw exception is logged server-side only. The client receives a
    generic message and never a stack trace.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return _error_response(500, ErrorKind.INTERNAL.value, "An unexpected error occurred.")


# ---------------------------------------------------------------------------
# Health endpoint
# ---------------------------------------------------------------------------


@app.get("/health", tags=["Health"])
async def health() -> HealthResponse:
    """Return API liveness and current version."""
    return HealthResponse(version=VERSION)
