"""
auth/dependencies.py -- The access gate: FastAPI Depends() helpers.

Two stages, always in this order:
  1. authenticate() -- requires "Authorization: Bearer <token>".
       missing / malformed header   -> Unauthenticated (401)
       invalid, forged or expired   -> Forbidden (403)
       valid                        -> claims stored on request.state.identity
  2. authorize(request, policy) -- requires stage 1 to have run.
       no request.state.identity    -> Unauthenticated (401)
       role not in policy.roles     -> Forbidden (403)

A missing credential (401) is deliberately distinct from a bad one (403).
Every failure is terminal for the request; nothing is retried.

Routes do not build closures per role list. They name an entry of
auth.policy.ROUTE_POLICIES and depend on Require(<name>), which looks the
policy up once at import time and evaluates it with the single authorize().

Layer rule: no imports from api/ or core/.
  auth/dependencies.py may import from fastapi (for Depends/Request)
  because this module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from fastapi import Request

from auth.errors import Forbidden, Unauthenticated
from auth.models import AccessClaims
from auth.policy import ROUTE_POLICIES, RolePolicy
from auth.tokens import TokenVerifier

_BEARER_PREFIX = "Bearer "


def bearer_token(request: Request) -> str | None:
    """Return the token from a well-formed Bearer Authorization header, else None."""
    header = request.headers.get("Authorization", "")
    if not header.startswith(_BEARER_PREFIX):
        return None
    token = header[len(_BEARER_PREFIX) :].strip()
    if not token or " " in token:
        return None
    return token


def authenticate(request: Request) -> AccessClaims:
    """Verify the Bearer access token and attach its claims to the request.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(identity: AccessClaims = Depends(authenticate)): ...
    """
    token = bearer_token(request)
    if token is None:
        raise Unauthenticated()
    verifier: TokenVerifier = request.app.state.token_verifier
    claims = verifier.verify_access(token)
    if claims is None:
        raise Forbidden()
    request.state.identity = claims
    return claims


def authorize(request: Request, policy: RolePolicy) -> AccessClaims:
    """Check the authenticated identity's role against policy."""
    identity: AccessClaims | None = getattr(request.state, "identity", None)
    if identity is None:
        raise Unauthenticated("Unauthorized: no authenticated identity.")
    if not policy.permits(identity.role):
        raise Forbidden("Forbidden: you do not have the right permissions.")
    return identity


class Require:
    """Dependency that authenticates, then authorizes against ROUTE_POLICIES[operation].

    Use as a FastAPI dependency:
        @router.get("/profile/view")
        def view(identity: AccessClaims = Depends(Require("profile.view"))): ...

    Instances are plain values (operation name + policy) so a route's access
    rule can be inspected without calling it. An unknown operation name fails
    at import time with KeyError.
    """

    def __init__(self, operation: str) -> None:
        self.operation = operation
        self.policy: RolePolicy = ROUTE_POLICIES[operation]

    def __call__(self, request: Request) -> AccessClaims:
        authenticate(request)
        return authorize(request, self.policy)

    def __repr__(self) -> str:
        return f"Require({self.operation!r})"
