"""
auth/tokens.py -- Access and refresh token issuance and verification.

Security design decisions:
  JWT: python-jose with HS256. Each token carries sub (identity id), role,
       typ ("access" or "refresh"), iat and exp.

  Two secrets: access tokens are signed with ACCESS_TOKEN_SECRET, refresh
       tokens with REFRESH_TOKEN_SECRET. A refresh token therefore fails the
       signature check when presented as an access token and vice versa. The
       typ claim is checked as well.

  Injected configuration: TokenIssuer and TokenVerifier take a Settings object
       at construction. They are built once in the app lifespan and stored on
       app.state; request code never reads the environment.

  Single failure outcome: verification returns None for a bad signature, a
       malformed token, a wrong typ, missing claims, or expiry. Callers cannot
       tell an expired token from a forged one. The reason is logged at DEBUG.

  Pure verification: expiry is checked against the `now` argument (defaulting
       to the wall clock) instead of inside jose, so verification is a function
       of (token, secret, now) alone.

Layer rule: no imports from api/. core.config is imported for typing only.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING

from jose import JWTError, jwt

from auth.models import AccessClaims, Claims, Identity, RefreshClaims, Role, TokenType

if TYPE_CHECKING:
    from core.config import Settings

logger = logging.getLogger("gatehouse.auth")

_ALGORITHM = "HS256"


class TokenIssuer:
    """Creates signed access and refresh tokens for an Identity."""

    def __init__(self, settings: Settings) -> None:
        self._access_secret = settings.access_token_secret
        self._refresh_secret = settings.refresh_token_secret
        self.access_ttl = settings.access_token_ttl_seconds
        self.refresh_ttl = settings.refresh_token_ttl_seconds

    def issue_access(self, identity: Identity, now: int | None = None) -> str:
        """Return an access token valid for access_ttl seconds (15 minutes by default)."""
        return self._issue(identity, TokenType.access, self._access_secret, self.access_ttl, now)

    def issue_refresh(self, identity: Identity, now: int | None = None) -> str:
        """Return a refresh token valid for refresh_ttl seconds (7 days by default)."""
        return self._issue(identity, TokenType.refresh, self._refresh_secret, self.refresh_ttl, now)

    def _issue(self, identity: Identity, token_type: TokenType, secret: str, ttl: int, now: int | None) -> str:
        if identity.id is None:
            raise ValueError("Cannot issue a token for an identity without an id.")
        issued_at = int(time.time()) if now is None else now
        payload = {
            "sub": identity.id,
            "role": Role(identity.role).value,
            "typ": token_type.value,
            "iat": issued_at,
            "exp": issued_at + ttl,
        }
        return jwt.encode(payload, secret, algorithm=_ALGORITHM)


class TokenVerifier:
    """Checks signature, type and expiry of presented tokens."""

    def __init__(self, settings: Settings) -> None:
        self._access_secret = settings.access_token_secret
        self._refresh_secret = settings.refresh_token_secret

    def verify_access(self, token: str, now: int | None = None) -> AccessClaims | None:
        """Return the claims of a valid, unexpired access token, else None."""
        return _decode(token, self._access_secret, TokenType.access, now)

    def verify_refresh(self, token: str, now: int | None = None) -> RefreshClaims | None:
        """Return the claims of a valid, unexpired refresh token, else None."""
        return _decode(token, self._refresh_secret, TokenType.refresh, now)


def _decode(token: str, secret: str, expected: TokenType, now: int | None) -> Claims | None:
    try:
        # Expiry is checked below against `now`, not by jose against the wall clock.
        payload = jwt.decode(
            token,
            secret,
            algorithms=[_ALGORITHM],
            options={"verify_exp": False, "verify_iat": False},
        )
    except JWTError as exc:
        logger.debug("Rejected %s token: %s", expected.value, exc)
        return None

    try:
        claims = Claims(
            subject_id=str(payload["sub"]),
            role=Role(payload["role"]),
            issued_at=int(payload["iat"]),
            expires_at=int(payload["exp"]),
            token_type=TokenType(payload["typ"]),
        )
    except (KeyError, TypeError, ValueError) as exc:
        logger.debug("Rejected %s token: malformed claims (%s)", expected.value, exc)
        return None

    if claims.token_type != expected:
        logger.debug("Rejected %s token: typ=%s", expected.value, claims.token_type.value)
        return None
    current = int(time.time()) if now is None else now
    if current >= claims.expires_at:
        logger.debug("Rejected %s token: expired", expected.value)
        return None
    return claims
