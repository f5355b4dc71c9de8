"""
api/routes/auth.py -- Session-protected endpoints.

Routes:
  POST /auth/                          -- confirm the session belongs to {username}
  GET  /auth/profile/{username}        -- read profile fields
  POST /auth/profile/{username}/edit   -- replace all profile fields at once
  POST /auth/logout                    -- revoke the session token; clear the cookie

Auth policy:
  Every route here sits behind require_identity (router-level dependency);
  an absent, tampered, expired, or revoked session is 401 before the handler
  runs. Every route is also identity-scoped: the username it targets (path,
  or body for POST /auth/ and POST /auth/logout) must match the session's,
  else 401 "identity_mismatch". Logout without a body targets the caller.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.models import IdentityRequest, LogoutRequest, MessageResponse, ProfileResponse, ProfileUpdateRequest
from auth.dependencies import require_identity, require_identity_match
from auth.models import Identity
from auth.tokens import SessionTokens, clear_auth_cookie
from profiles.service import ProfileService

logger = logging.getLogger("profilevault.api.auth")

router = APIRouter(prefix="/auth", dependencies=[Depends(require_identity)])


@router.post("/", response_model=MessageResponse)
def confirm_session(body: IdentityRequest, identity: Identity = Depends(require_identity)) -> MessageResponse:
    require_identity_match(identity, body.username)
    return MessageResponse(message=f"Successfully authenticated {identity.username}")


@router.get("/profile/{username}", response_model=ProfileResponse)
def read_profile(
    request: Request,
    username: str,
    identity: Identity = Depends(require_identity),
) -> ProfileResponse:
    """Return the caller's profile. 404 if the user no longer exists."""
    require_identity_match(identity, username)
    profiles: ProfileService = request.app.state.profiles
    return ProfileResponse.from_profile(profiles.get_profile_data(username))


@router.post("/profile/{username}/edit", response_model=MessageResponse)
def edit_profile(
    request: Request,
    username: str,
    body: ProfileUpdateRequest,
    identity: Identity = Depends(require_identity),
) -> MessageResponse:
    """Replace the caller's profile. 400 listing the missing fields if any is absent."""
    require_identity_match(identity, username)
    profiles: ProfileService = request.app.state.profiles
    profiles.update_profile(username, body.model_dump())
    return MessageResponse(message="Profile updated successfully")


@router.post("/logout", response_model=MessageResponse)
def logout(
    request: Request,
    body: Optional[LogoutRequest] = None,
    identity: Identity = Depends(require_identity),
) -> JSONResponse:
    """Revoke the current session and replace the cookie with an expired one."""
    if body is not None and body.username is not None:
        require_identity_match(identity, body.username)
    tokens: SessionTokens = request.app.state.tokens
    tokens.invalidate_token(identity.token)
    resp = JSONResponse(content=MessageResponse(message=f"User {identity.username} logged out").model_dump())
    clear_auth_cookie(resp)
    return resp
