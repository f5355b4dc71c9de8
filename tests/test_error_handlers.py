"""
tests/test_error_handlers.py -- The error taxonomy and its HTTP translation.

The catch-all handler is called directly rather than through TestClient:
Starlette re-raises unhandled exceptions after the 500 response is built,
which TestClient(raise_server_exceptions=True) would surface as a test error.
"""

import asyncio
import json
from unittest.mock import MagicMock

import pytest

from api.main import app_error_handler, generic_exception_handler
from core.errors import (
    AppError,
    DuplicateUserError,
    ErrorKind,
    InternalError,
    InvalidInputError,
    NotFoundError,
    UnauthorizedError,
)


def _request() -> MagicMock:
    request = MagicMock()
    request.method = "GET"
    request.url.path = "/boom"
    return request


@pytest.mark.parametrize(
    ("error", "status", "code"),
    [
        (InvalidInputError(), 400, "invalid_input"),
        (UnauthorizedError(), 401, "unauthorized"),
        (DuplicateUserError(), 409, "duplicate_user"),
        (NotFoundError(), 404, "not_found"),
        (InternalError(), 500, "internal_error"),
    ],
)
def test_kind_sets_status_and_code(error: AppError, status: int, code: str) -> None:
    assert error.status_code == status
    assert error.code == code
    assert error.message


def test_code_override_keeps_kind() -> None:
    err = UnauthorizedError("nope", code="identity_mismatch")
    assert err.kind is ErrorKind.UNAUTHORIZED
    assert err.status_code == 401
    assert err.code == "identity_mismatch"
    assert str(err) == "nope"


def test_app_error_handler_envelope() -> None:
    err = InvalidInputError("All fields are required.", code="missing_fields", detail="zip")
    resp = asyncio.run(app_error_handler(_request(), err))
    assert resp.status_code == 400
    assert json.loads(resp.body) == {
        "error": {"code": "missing_fields", "message": "All fields are required.", "detail": "zip"}
    }


def test_unhandled_error_is_generic_500() -> None:
    resp = asyncio.run(generic_exception_handler(_request(), RuntimeError("db password is hunter2")))
    assert resp.status_code == 500
    body = json.loads(resp.body)
    assert body["error"]["code"] == "internal_error"
    assert body["error"]["message"] == "An unexpected error occurred."
    assert "hunter2" not in resp.body.decode()
