"""
API request and response models for ProfileVault REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py, which
own the internal domain representation. Route handlers map between the two.

Request models only bound sizes and types. Content rules (username format,
password strength, required profile fields) belong to the credential store
and profile service, so they hold no matter who calls them.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from auth.models import Profile

# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class CredentialsRequest(BaseModel):
    """Request body for POST /login and POST /register."""

    username: str = Field(max_length=255)
    # Not stripped: whitespace is part of the password.
    password: str = Field(max_length=255)


class IdentityRequest(BaseModel):
    """Request body for POST /auth/ -- the username the caller claims to be."""

    # Compared verbatim with the session user, so not stripped.
    username: str = Field(max_length=255)


class LogoutRequest(BaseModel):
    """Optional request body for POST /auth/logout."""

    username: Optional[str] = Field(default=None, max_length=255)


class ProfileUpdateRequest(BaseModel):
    """Request body for POST /auth/profile/{username}/edit.

    Every field is optional here so a missing field reaches the profile
    service, which rejects the edit as a whole with the list of missing
    fields. Unknown keys are dropped.
    """

    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    fullname: Optional[str] = Field(default=None, max_length=255)
    street1: Optional[str] = Field(default=None, max_length=255)
    street2: Optional[str] = Field(default=None, max_length=255)
    city: Optional[str] = Field(default=None, max_length=255)
    state: Optional[str] = Field(default=None, max_length=64)
    zip: Optional[str] = Field(default=None, max_length=32)


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class MessageResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str


class LoginResponse(BaseModel):
    """Response body for a successful POST /login. The token itself is only in the cookie."""

    model_config = ConfigDict(frozen=True)

    message: str
    username: str
    expires_in: int


class ProfileResponse(BaseModel):
    """Profile fields of one user. Never includes the password hash."""

    model_config = ConfigDict(frozen=True)

    fullname: str
    street1: str
    street2: Optional[str]
    city: str
    state: str
    zip: str

    @classmethod
    def from_profile(cls, profile: Profile) -> "ProfileResponse":
        return cls(
            fullname=profile.fullname,
            street1=profile.street1,
            street2=profile.street2,
            city=profile.city,
            state=profile.state,
            zip=profile.zip,
        )


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /health."""

    model_config = ConfigDict(frozen=True)

    status: str = "ok"
    version: str
