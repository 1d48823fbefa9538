"""
auth/passwords.py -- bcrypt password hashing and the dual-password login check.

Security design decisions:
  bcrypt directly (no passlib wrapper). passlib's wrap-bug detection builds a
  password longer than 72 bytes, which bcrypt 4.x+ rejects. The cost factor is
  taken from Settings.bcrypt_rounds when the hasher is constructed.

  72-byte limit: bcrypt only looks at the first 72 bytes. Rather than let two
  different long passwords collide, hash() refuses them with ValueError and
  the service turns that into a 400.

  Dual-password fallback: check_credentials() tries the permanent hash first
  and only then the temporary one. Either succeeding authenticates. There is
  no lockout or attempt counting here.

  Timing equalization: a dummy hash is computed once per hasher so a login
  for an unknown email still pays for one bcrypt check [T1].

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import bcrypt

from auth.models import Identity

BCRYPT_MAX_BYTES = 72


class PasswordHasher:
    """One-way hashing and constant-time verification of passwords.

    Usage:
        hasher = PasswordHasher(rounds=settings.bcrypt_rounds)
        stored = hasher.hash("s3cret")
        hasher.verify("s3cret", stored)  # True
    """

    def __init__(self, rounds: int = 12) -> None:
        self.rounds = rounds
        self._dummy_hash = self.hash("gatehouse_timing_dummy")

    def hash(self, plain: str) -> str:
        """Return a salted bcrypt hash of plain.

        Raises ValueError if plain is empty or longer than 72 UTF-8 bytes.
        """
        encoded = plain.encode("utf-8")
        if not encoded:
            raise ValueError("Password must not be empty.")
        if len(encoded) > BCRYPT_MAX_BYTES:
            raise ValueError(f"Password must be at most {BCRYPT_MAX_BYTES} bytes.")
        return bcrypt.hashpw(encoded, bcrypt.gensalt(rounds=self.rounds)).decode("utf-8")

    def verify(self, plain: str, hashed: str | None) -> bool:
        """Return True if plain matches hashed. Never raises."""
        if not hashed:
            return False
        try:
            return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
        except (ValueError, TypeError):
            return False

    def check_credentials(self, identity: Identity | None, plain: str) -> bool:
        """Apply the login policy: permanent hash first, temporary hash second.

        identity may be None (unknown email); the dummy hash is still checked
        so the caller's response time does not depend on account existence [T1].
        """
        if identity is None or (identity.password_hash is None and identity.temporary_password_hash is None):
            self.verify(plain, self._dummy_hash)
            return False
        if self.verify(plain, identity.password_hash):
            return True
        return self.verify(plain, identity.temporary_password_hash)
