"""Unit tests for auth/credentials.py -- the credential store.

Covers:
- create_user(): stores a bcrypt hash (never the raw password), empty profile
- duplicate registration raises DuplicateUserError and leaves the record unchanged
- malformed usernames/passwords raise InvalidInputError
- verify_credentials(): True only for the exact pair, False (not an error) otherwise
- get_profile()/set_profile(): NotFound for unknown users, group replacement,
  rejection of incomplete profiles without touching stored data
- per-username serialization under concurrent edits
- KeyedLocks drops idle locks and does not couple different keys
"""

import threading
from concurrent.futures import ThreadPoolExecutor

import bcrypt
import pytest

from auth.credentials import KeyedLocks, missing_profile_fields
from auth.models import Profile
from core.errors import DuplicateUserError, ErrorKind, InvalidInputError, NotFoundError

FULL = Profile(fullname="Sam Ham", street1="1 Main St", street2=None, city="Houston", state="TX", zip="77001")


class TestCreateUser:
    def test_stores_bcrypt_hash_not_raw_password(self, credentials):
        credentials.create_user("sam", "Abc123!")
        record = credentials._records.get("sam")
        assert record.hashed_password != "Abc123!"
        assert bcrypt.checkpw(b"Abc123!", record.hashed_password.encode())

    def test_new_user_has_empty_profile(self, credentials):
        credentials.create_user("sam", "Abc123!")
        assert credentials.get_profile("sam") == Profile()

    def test_duplicate_rejected_and_original_unchanged(self, credentials):
        credentials.create_user("sam", "Abc123!")
        original = credentials._records.get("sam").hashed_password

        with pytest.raises(DuplicateUserError) as excinfo:
            credentials.create_user("sam", "Other999")

        assert excinfo.value.kind is ErrorKind.DUPLICATE_USER
        assert excinfo.value.status_code == 409
        assert credentials._records.get("sam").hashed_password == original
        assert credentials.verify_credentials("sam", "Abc123!") is True
        assert credentials.verify_credentials("sam", "Other999") is False

    @pytest.mark.parametrize("username", ["", "ab", "has space", "semi;colon", "x" * 65, None])
    def test_malformed_username(self, credentials, username):
        with pytest.raises(InvalidInputError) as excinfo:
            credentials.create_user(username, "Abc123!")
        assert excinfo.value.code == "invalid_username"

    @pytest.mark.parametrize("password", ["", "123", "abcdefgh", "12345678", "Ab1", "A1" + "x" * 71, None])
    def test_malformed_password(self, credentials, password):
        with pytest.raises(InvalidInputError) as excinfo:
            credentials.create_user("sam", password)
        assert excinfo.value.code == "invalid_password"
        assert not credentials.has_user("sam")


class TestVerifyCredentials:
    def test_correct_pair(self, credentials):
        credentials.create_user("alice", "Secret42")
        assert credentials.verify_credentials("alice", "Secret42") is True

    @pytest.mark.parametrize("attempt", ["Secret43", "secret42", "Secret42 ", "", "x"])
    def test_any_other_password(self, credentials, attempt):
        credentials.create_user("alice", "Secret42")
        assert credentials.verify_credentials("alice", attempt) is False

    def test_unknown_user_is_false_not_error(self, credentials):
        assert credentials.verify_credentials("nobody", "Secret42") is False

    def test_non_string_inputs_are_false(self, credentials):
        credentials.create_user("alice", "Secret42")
        assert credentials.verify_credentials(None, "Secret42") is False
        assert credentials.verify_credentials("alice", None) is False

    def test_unknown_user_still_runs_bcrypt(self, credentials, monkeypatch):
        calls = []
        monkeypatch.setattr("auth.credentials.burn_password_check", lambda plain: calls.append(plain))
        assert credentials.verify_credentials("nobody", "Secret42") is False
        assert calls == ["Secret42"]


class TestProfiles:
    def test_get_unknown_raises_not_found(self, credentials):
        with pytest.raises(NotFoundError):
            credentials.get_profile("ghost")

    def test_set_unknown_raises_not_found(self, credentials):
        with pytest.raises(NotFoundError):
            credentials.set_profile("ghost", FULL)

    def test_set_replaces_whole_group(self, credentials):
        credentials.create_user("sam", "Abc123!")
        credentials.set_profile("sam", Profile(**{**FULL.__dict__, "street2": "Apt 4"}))
        credentials.set_profile("sam", FULL)
        # street2 omitted in the second edit is cleared, not kept from the first
        assert credentials.get_profile("sam") == FULL

    @pytest.mark.parametrize("field", ["fullname", "street1", "city", "state", "zip"])
    def test_missing_required_field_leaves_profile_unchanged(self, credentials, field):
        credentials.create_user("sam", "Abc123!")
        credentials.set_profile("sam", FULL)

        broken = Profile(**{**FULL.__dict__, field: "   "})
        with pytest.raises(InvalidInputError) as excinfo:
            credentials.set_profile("sam", broken)

        assert excinfo.value.detail == field
        assert credentials.get_profile("sam") == FULL

    def test_password_hash_not_in_profile(self, credentials):
        credentials.create_user("sam", "Abc123!")
        assert "hashed_password" not in credentials.get_profile("sam").__dict__

    def test_missing_profile_fields_lists_all(self):
        assert missing_profile_fields(Profile()) == ["fullname", "street1", "city", "state", "zip"]
        assert missing_profile_fields(FULL) == []


class TestConcurrency:
    def test_concurrent_registrations_of_same_username(self, credentials):
        def attempt(i):
            try:
                credentials.create_user("racer", f"Passw0rd{i}")
                return i
            except DuplicateUserError:
                return None

        with ThreadPoolExecutor(max_workers=8) as pool:
            winners = [r for r in pool.map(attempt, range(8)) if r is not None]

        assert len(winners) == 1
        assert credentials.verify_credentials("racer", f"Passw0rd{winners[0]}") is True

    def test_concurrent_edits_never_mix_records(self, credentials):
        credentials.create_user("sam", "Abc123!")
        profiles = [
            Profile(fullname=f"Name {i}", street1=f"{i} St", city=f"City {i}", state=f"S{i}", zip=f"{i:05d}")
            for i in range(20)
        ]

        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(lambda p: credentials.set_profile("sam", p), profiles))

        assert credentials.get_profile("sam") in profiles

    def test_registry_empties_after_use(self, credentials):
        credentials.create_user("sam", "Abc123!")
        credentials.set_profile("sam", FULL)
        assert len(credentials._locks) == 0


class TestKeyedLocks:
    def test_different_keys_do_not_block(self):
        locks = KeyedLocks()
        entered_b = threading.Event()

        with locks.hold("a"):
            t = threading.Thread(target=lambda: _hold_and_signal(locks, "b", entered_b))
            t.start()
            assert entered_b.wait(timeout=2)
            t.join()

    def test_same_key_serializes(self):
        locks = KeyedLocks()
        entered = threading.Event()

        with locks.hold("a"):
            t = threading.Thread(target=lambda: _hold_and_signal(locks, "a", entered))
            t.start()
            assert not entered.wait(timeout=0.2)
        assert entered.wait(timeout=2)
        t.join()
        assert len(locks) == 0


def _hold_and_signal(locks: KeyedLocks, key: str, event: threading.Event) -> None:
    with locks.hold(key):
        event.set()
