"""
auth/service.py -- Registration, login, logout and token refresh.

AuthService composes the store, password hasher, token issuer/verifier and
cookie manager. It raises auth.errors exceptions for every failure; the route
layer does not translate anything itself.

Account-existence hiding:
  Login returns InvalidCredentials for an unknown email, a wrong password and
  an inactive account alike, with the same message and status. The password
  hasher still runs a bcrypt check for unknown emails [T1].

Blocking work:
  register() and login() run bcrypt. The routes calling them are sync def
  handlers so FastAPI executes them on its threadpool.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from starlette.requests import Request
from starlette.responses import Response

from auth.cookies import SessionCookieManager
from auth.errors import CreationError, DuplicateError, Forbidden, InvalidCredentials, Unauthenticated, ValidationError
from auth.models import Identity, LoginResult, LogoutOutcome, Role, Status
from auth.passwords import PasswordHasher
from auth.store import IdentityStore, normalize_email
from auth.tokens import TokenIssuer, TokenVerifier

logger = logging.getLogger("gatehouse.auth")


def require_fields(values: dict[str, Any], names: tuple[str, ...]) -> dict[str, str]:
    """Return the named values stripped of whitespace, or raise ValidationError.

    None, non-strings and blank strings all count as missing. Passwords keep
    their surrounding whitespace; only the presence check strips.
    """
    result: dict[str, str] = {}
    for name in names:
        value = values.get(name)
        if not isinstance(value, str) or not value.strip():
            raise ValidationError("All fields are required.")
        result[name] = value if name == "password" else value.strip()
    return result


class AuthService:
    """Registration, login, logout and refresh flows."""

    def __init__(
        self,
        store: IdentityStore,
        hasher: PasswordHasher,
        issuer: TokenIssuer,
        verifier: TokenVerifier,
        cookies: SessionCookieManager,
    ) -> None:
        self.store = store
        self.hasher = hasher
        self.issuer = issuer
        self.verifier = verifier
        self.cookies = cookies

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(
        self,
        first_name: str | None,
        last_name: str | None,
        email: str | None,
        password: str | None,
    ) -> Identity:
        """Create a customer account.

        Raises ValidationError for missing fields or an unusable password,
        DuplicateError if the email is taken, CreationError if the store fails.
        """
        fields = require_fields(
            {"first_name": first_name, "last_name": last_name, "email": email, "password": password},
            ("first_name", "last_name", "email", "password"),
        )
        email_key = normalize_email(fields["email"])

        if self.store.find_by_email(email_key) is not None:
            raise DuplicateError()

        password_hash = self._hash_or_reject(fields["password"])
        try:
            created = self.store.create(
                Identity(
                    email=email_key,
                    first_name=fields["first_name"],
                    last_name=fields["last_name"],
                    password_hash=password_hash,
                    role=Role.customer,
                    status=Status.active,
                )
            )
        except IntegrityError as exc:
            # A concurrent registration won the UNIQUE(email) race.
            raise DuplicateError() from exc
        except SQLAlchemyError as exc:
            logger.error("Store rejected registration: %s", exc)
            raise CreationError() from exc
        if created is None:
            raise CreationError()

        logger.info("Registered identity %s", created.id)
        return created

    # ------------------------------------------------------------------
    # Login / logout
    # ------------------------------------------------------------------

    def login(self, email: str | None, password: str | None, response: Response) -> LoginResult:
        """Verify credentials, bind the refresh cookie to response, return the access token.

        The refresh token is never part of the return value.
        """
        fields = require_fields({"email": email, "password": password}, ("email", "password"))

        identity = self.store.find_by_email(fields["email"])
        if not self.hasher.check_credentials(identity, fields["password"]):
            logger.info("Login failed: bad credentials")
            raise InvalidCredentials()
        if not identity.is_active:
            logger.info("Login failed: identity %s is inactive", identity.id)
            raise InvalidCredentials()

        access_token = self.issuer.issue_access(identity)
        self.cookies.bind(response, self.issuer.issue_refresh(identity))
        logger.info("Login succeeded for identity %s", identity.id)
        return LoginResult(access_token=access_token, expires_in=self.issuer.access_ttl, identity=identity)

    def logout(self, request: Request, response: Response) -> LogoutOutcome:
        """Clear the session cookie. Returns NO_SESSION if there was none."""
        outcome = self.cookies.clear(request, response)
        logger.info("Logout: %s", outcome.value)
        return outcome

    # ------------------------------------------------------------------
    # Refresh
    # ------------------------------------------------------------------

    def refresh(self, request: Request) -> LoginResult:
        """Issue a new access token from the refresh token in the session cookie.

        No cookie raises Unauthenticated. An invalid or expired refresh token,
        or an identity that no longer exists or is inactive, raises Forbidden.
        """
        token = self.cookies.read(request)
        if token is None:
            raise Unauthenticated()
        claims = self.verifier.verify_refresh(token)
        if claims is None:
            raise Forbidden()
        identity = self.store.find_by_id(claims.subject_id)
        if identity is None or not identity.is_active:
            logger.info("Refresh refused for identity %s", claims.subject_id)
            raise Forbidden()
        return LoginResult(
            access_token=self.issuer.issue_access(identity),
            expires_in=self.issuer.access_ttl,
            identity=identity,
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _hash_or_reject(self, password: str) -> str:
        try:
            return self.hasher.hash(password)
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc
