"""
tests/conftest.py -- Shared test fixtures for Gatehouse.

This module provides:
  - settings / hasher / store / issuer / verifier: unit-level building blocks
  - auth_service / profile_service: services over an isolated in-memory store
  - make_identity: factory that stores an Identity with chosen role/passwords
  - api_client: TestClient over the real app with a patched lifespan

Design: the API fixture uses a named shared-memory SQLite URI (not plain
:memory:) because TestClient runs sync route handlers in a thread pool.
Plain :memory: DBs are per-connection and would present a blank schema to
each worker thread.

DEBUG and BCRYPT_ROUNDS must be set before any api/ import: api.main reads
get_settings() at import time, and the default cost factor of 12 would make
the suite needlessly slow.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Callable, Generator
from contextlib import asynccontextmanager

# CRITICAL: set before importing api.main so get_settings() can auto-generate
# the signing secrets in dev mode instead of raising ValueError.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

import pytest
from fastapi.testclient import TestClient

from api.main import app, configure_services
from auth.cookies import SessionCookieManager
from auth.models import Identity, Role, Status
from auth.passwords import PasswordHasher
from auth.profiles import ProfileService
from auth.service import AuthService
from auth.store import UserStore
from auth.tokens import TokenIssuer, TokenVerifier
from core.config import Settings

ACCESS_SECRET = "access-secret-for-tests-0123456789abcdef"
REFRESH_SECRET = "refresh-secret-for-tests-0123456789abcdef"


# ---------------------------------------------------------------------------
# Unit-level building blocks
# ---------------------------------------------------------------------------


@pytest.fixture
def settings() -> Settings:
    return Settings(
        debug=False,
        access_token_secret=ACCESS_SECRET,
        refresh_token_secret=REFRESH_SECRET,
        bcrypt_rounds=4,
    )


@pytest.fixture
def hasher() -> PasswordHasher:
    return PasswordHasher(rounds=4)


@pytest.fixture
def store() -> Generator[UserStore, None, None]:
    s = UserStore("sqlite:///:memory:")
    yield s
    s.close()


@pytest.fixture
def issuer(settings: Settings) -> TokenIssuer:
    return TokenIssuer(settings)


@pytest.fixture
def verifier(settings: Settings) -> TokenVerifier:
    return TokenVerifier(settings)


@pytest.fixture
def auth_service(store, hasher, issuer, verifier) -> AuthService:
    return AuthService(store, hasher, issuer, verifier, SessionCookieManager())


@pytest.fixture
def profile_service(store, hasher) -> ProfileService:
    return ProfileService(store, hasher)


def _identity_factory(store: UserStore, hasher: PasswordHasher) -> Callable[..., Identity]:
    def make(
        email: str | None = None,
        role: Role = Role.customer,
        password: str | None = "permanent-pass",
        temporary_password: str | None = None,
        status: Status = Status.active,
    ) -> Identity:
        return store.create(
            Identity(
                email=email or f"{uuid.uuid4().hex[:8]}@example.com",
                first_name="Test",
                last_name=role.value.title(),
                role=role,
                status=status,
                password_hash=hasher.hash(password) if password else None,
                temporary_password_hash=hasher.hash(temporary_password) if temporary_password else None,
            )
        )

    return make


@pytest.fixture
def make_identity(store, hasher) -> Callable[..., Identity]:
    """Store an Identity directly, bypassing registration (any role, either password)."""
    return _identity_factory(store, hasher)


# ---------------------------------------------------------------------------
# API client
# ---------------------------------------------------------------------------


def _patch_lifespan(settings: Settings, user_store: UserStore):
    """Return an async context manager that replaces the real lifespan.

    Wires the test settings and store into app.state through the same
    configure_services() the real lifespan uses.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        configure_services(app, settings, user_store)
        yield

    return test_lifespan


@pytest.fixture
def api_client(settings: Settings) -> Generator[tuple[TestClient, UserStore], None, None]:
    """Yield (client, store) for API integration tests.

    base_url is https so the client's cookie jar stores and returns the
    Secure "jwt" cookie the way a browser would.
    """
    db_url = f"sqlite:///file:test_auth_{uuid.uuid4().hex}?mode=memory&cache=shared&uri=true"
    user_store = UserStore(db_url=db_url)

    app.router.lifespan_context = _patch_lifespan(settings, user_store)

    with TestClient(app, base_url="https://testserver", raise_server_exceptions=True) as client:
        yield client, user_store

    user_store.close()


@pytest.fixture
def api_identity(api_client, hasher) -> Callable[..., Identity]:
    """make_identity bound to the api_client's store."""
    _client, user_store = api_client
    return _identity_factory(user_store, hasher)


@pytest.fixture
def bearer(settings: Settings) -> Callable[[Identity], dict[str, str]]:
    """Return Authorization headers carrying a fresh access token for an identity."""
    token_issuer = TokenIssuer(settings)

    def headers(identity: Identity) -> dict[str, str]:
        return {"Authorization": f"Bearer {token_issuer.issue_access(identity)}"}

    return headers
