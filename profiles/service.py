"""
profiles/service.py -- Thin profile service over the credential store.

update_profile() builds a complete Profile from the submitted mapping and
rejects it before delegating if any required field is missing or blank.
Submitted data is never merged with what is stored: an edit either replaces
the whole field group or changes nothing. Keys that are not profile fields
are ignored.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from auth.credentials import CredentialStore, require_complete_profile
from auth.models import Profile


def _text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def profile_from_fields(fields: Mapping[str, Any]) -> Profile:
    street2 = _text(fields.get("street2"))
    return Profile(
        fullname=_text(fields.get("fullname")),
        street1=_text(fields.get("street1")),
        street2=street2 or None,
        city=_text(fields.get("city")),
        state=_text(fields.get("state")),
        zip=_text(fields.get("zip")),
    )


class ProfileService:
    def __init__(self, credentials: CredentialStore) -> None:
        self._credentials = credentials

    def get_profile_data(self, username: str) -> Profile:
        return self._credentials.get_profile(username)

    def update_profile(self, username: str, fields: Mapping[str, Any]) -> Profile:
        """Replace the user's profile with the submitted fields.

        Raises InvalidInputError listing the missing fields, or NotFoundError
        for an unknown username. Returns the profile as stored.
        """
        profile = profile_from_fields(fields)
        require_complete_profile(profile)
        self._credentials.set_profile(username, profile)
        return profile
