"""Unit tests for auth/passwords.py -- bcrypt hashing and the dual-password policy.

Covers:
- hash() output verifies with verify(); a different plaintext does not
- hash() is salted (two hashes of the same input differ)
- verify() returns False instead of raising on malformed or missing hashes
- hash() rejects empty and >72-byte input
- check_credentials(): permanent first, temporary as fallback, unknown identity
"""

import pytest

from auth.models import Identity
from auth.passwords import PasswordHasher


def _identity(hasher: PasswordHasher, password: str | None, temporary: str | None) -> Identity:
    return Identity(
        id="0" * 32,
        email="a@b.com",
        first_name="A",
        last_name="B",
        password_hash=hasher.hash(password) if password else None,
        temporary_password_hash=hasher.hash(temporary) if temporary else None,
    )


class TestHashAndVerify:
    def test_round_trip(self, hasher: PasswordHasher) -> None:
        stored = hasher.hash("secret1")
        assert hasher.verify("secret1", stored)

    def test_different_plaintext_fails(self, hasher: PasswordHasher) -> None:
        stored = hasher.hash("secret1")
        assert not hasher.verify("secret2", stored)
        assert not hasher.verify("Secret1", stored)

    def test_hash_is_salted(self, hasher: PasswordHasher) -> None:
        assert hasher.hash("secret1") != hasher.hash("secret1")

    def test_cost_factor_is_applied(self) -> None:
        stored = PasswordHasher(rounds=5).hash("secret1")
        assert stored.startswith("$2b$05$")

    @pytest.mark.parametrize("bad_hash", ["", "not-a-bcrypt-hash", "$2b$04$truncated", None])
    def test_malformed_hash_returns_false(self, hasher: PasswordHasher, bad_hash) -> None:
        assert hasher.verify("secret1", bad_hash) is False

    def test_empty_password_rejected(self, hasher: PasswordHasher) -> None:
        with pytest.raises(ValueError):
            hasher.hash("")

    def test_password_over_72_bytes_rejected(self, hasher: PasswordHasher) -> None:
        with pytest.raises(ValueError):
            hasher.hash("x" * 73)
        # Multi-byte characters count by encoded length, not by character.
        with pytest.raises(ValueError):
            hasher.hash("é" * 37)

    def test_password_of_exactly_72_bytes_accepted(self, hasher: PasswordHasher) -> None:
        stored = hasher.hash("x" * 72)
        assert hasher.verify("x" * 72, stored)


class TestCheckCredentials:
    def test_permanent_password_succeeds(self, hasher: PasswordHasher) -> None:
        identity = _identity(hasher, "permanent", None)
        assert hasher.check_credentials(identity, "permanent")

    def test_permanent_succeeds_when_temporary_also_set(self, hasher: PasswordHasher) -> None:
        identity = _identity(hasher, "permanent", "temporary")
        assert hasher.check_credentials(identity, "permanent")

    def test_temporary_succeeds_when_permanent_absent(self, hasher: PasswordHasher) -> None:
        identity = _identity(hasher, None, "temporary")
        assert hasher.check_credentials(identity, "temporary")

    def test_temporary_succeeds_when_permanent_does_not_match(self, hasher: PasswordHasher) -> None:
        identity = _identity(hasher, "permanent", "temporary")
        assert hasher.check_credentials(identity, "temporary")

    def test_neither_matches(self, hasher: PasswordHasher) -> None:
        identity = _identity(hasher, "permanent", "temporary")
        assert not hasher.check_credentials(identity, "something-else")

    def test_no_hashes_at_all(self, hasher: PasswordHasher) -> None:
        identity = _identity(hasher, None, None)
        assert not hasher.check_credentials(identity, "anything")

    def test_unknown_identity(self, hasher: PasswordHasher) -> None:
        assert not hasher.check_credentials(None, "anything")
