"""
core/errors.py -- Typed application errors shared by every layer.

Each failure the domain can report is an AppError carrying an ErrorKind.
The kind fixes the HTTP status; the code is a stable machine-readable string
(defaults to the kind's value, overridable where callers need a finer code,
e.g. "identity_mismatch" vs "unauthorized"). The message is safe to show to
clients -- never put secrets, hashes, or stack traces in it.

Domain code raises; api/main.py is the only place these become responses.

Layer rule: core/ is the kernel. No imports from api/, auth/, or profiles/.
"""

from __future__ import annotations

from enum import Enum
from http import HTTPStatus


class ErrorKind(str, Enum):
    INVALID_INPUT = "invalid_input"
    UNAUTHORIZED = "unauthorized"
    DUPLICATE_USER = "duplicate_user"
    NOT_FOUND = "not_found"
    INTERNAL = "internal_error"

    @property
    def status(self) -> HTTPStatus:
        return _STATUS_BY_KIND[self]


_STATUS_BY_KIND: dict[ErrorKind, HTTPStatus] = {
    ErrorKind.INVALID_INPUT: HTTPStatus.BAD_REQUEST,
    ErrorKind.UNAUTHORIZED: HTTPStatus.UNAUTHORIZED,
    ErrorKind.DUPLICATE_USER: HTTPStatus.CONFLICT,
    ErrorKind.NOT_FOUND: HTTPStatus.NOT_FOUND,
    ErrorKind.INTERNAL: HTTPStatus.INTERNAL_SERVER_ERROR,
}


class AppError(Exception):
    """Base class for every error the application reports deliberately."""

    kind: ErrorKind = ErrorKind.INTERNAL
    default_message: str = "An unexpected error occurred."

    def __init__(self, message: str | None = None, *, code: str | None = None, detail: str | None = None) -> None:
        self.message = message or self.default_message
        self.code = code or self.kind.value
        self.detail = detail
        super().__init__(self.message)

    @property
    def status_code(self) -> int:
        return int(self.kind.status)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r})"


class InvalidInputError(AppError):
    kind = ErrorKind.INVALID_INPUT
    default_message = "Invalid input."


class UnauthorizedError(AppError):
    kind = ErrorKind.UNAUTHORIZED
    default_message = "Authentication required."


class DuplicateUserError(AppError):
    kind = ErrorKind.DUPLICATE_USER
    default_message = "A user with that username already exists."


class NotFoundError(AppError):
    kind = ErrorKind.NOT_FOUND
    default_message = "Resource not found."


class InternalError(AppError):
    kind = ErrorKind.INTERNAL
