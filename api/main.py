"""
api/main.py -- FastAPI application entry point for Gatehouse.

Run with:  uvicorn asgi:app --reload
           python main.py serve

Middleware stack (outermost to innermost):
  1. TrustedHostMiddleware -- rejects requests with unexpected Host headers
  2. CORSMiddleware        -- adds CORS headers for allowed browser origins;
                              credentials allowed so the "jwt" cookie is sent

Lifespan builds every collaborator once from Settings and stores it on
app.state. Request handlers only ever read app.state; nothing reads the
environment per request.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.models import ErrorResponse, HealthResponse
from api.routes.auth import router as auth_router
from api.routes.profile import router as profile_router
from api.routes.users import router as users_router
from auth.cookies import SessionCookieManager
from auth.errors import AuthError
from auth.passwords import PasswordHasher
from auth.profiles import ProfileService
from auth.service import AuthService
from auth.store import IdentityStore, UserStore
from auth.tokens import TokenIssuer, TokenVerifier
from core.config import Settings, get_settings

__version__ = "0.1.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("gatehouse.api")


# ---------------------------------------------------------------------------
# Service wiring
# ---------------------------------------------------------------------------


def configure_services(app: FastAPI, settings: Settings, store: IdentityStore) -> None:
    """Build the auth collaborators from settings and attach them to app.state.

    Shared by the real lifespan and the test fixtures so both wire the app the
    same way.
    """
    hasher = PasswordHasher(rounds=settings.bcrypt_rounds)
    issuer = TokenIssuer(settings)
    verifier = TokenVerifier(settings)
    cookies = SessionCookieManager()

    app.state.user_store = store
    app.state.token_verifier = verifier
    app.state.auth_service = AuthService(store, hasher, issuer, verifier, cookies)
    app.state.profile_service = ProfileService(store, hasher)


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Open the user store on startup and dispose of it on shutdown."""
    settings = get_settings()
    logger.info("Gatehouse API starting up")
    configure_services(app, settings, UserStore(settings.database_url))
    logger.info("Auth initialized (bcrypt_rounds=%d)", settings.bcrypt_rounds)

    yield

    app.state.user_store.close()
    logger.info("Gatehouse API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

_settings = get_settings()

app = FastAPI(
    title="Gatehouse API",
    description="Account registration, login sessions and role-based access.",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    TrustedHostMiddleware,
    allowed_hosts=_settings.allowed_hosts,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "DELETE"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=3600,
)


# ---------------------------------------------------------------------------
# Request logging middleware
# ---------------------------------------------------------------------------


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s %d %.1fms %s",
        request.method,
        request.url.path,
        response.status_code,
        ms,
        request.client.host if request.client else "unknown",
    )
    return response


# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

app.include_router(auth_router, tags=["Auth"])
app.include_router(profile_router, tags=["Profile"])
app.include_router(users_router, tags=["Users"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope so API clients can parse
# errors uniformly without inspecting status codes to choose a schema.
# ---------------------------------------------------------------------------


@app.exception_handler(AuthError)
async def auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
    """Render an auth-layer failure. The message is client-safe by construction."""
    log = logger.error if exc.status_code >= 500 else logger.info
    log("%s %s -> %d %s", request.method, request.url.path, exc.status_code, exc.code)
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse.build(code=exc.code, message=exc.message).model_dump(),
    )


def _describe_validation_errors(exc: RequestValidationError) -> str:
    """Summarize validation errors as "location: message" pairs.

    pydantic echoes each rejected value under "input", which for /login and
    /registration is the plaintext password. Only the location and message
    are kept.
    """
    parts = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()))
        parts.append(f"{location}: {error.get('msg', 'invalid value')}")
    return "; ".join(parts)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 400 when the request body or query params cannot be parsed."""
    return JSONResponse(
        status_code=400,
        content=ErrorResponse.build(
            code="validation_error",
            message="Request validation failed.",
            detail=_describe_validation_errors(exc),
        ).model_dump(),
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Return a structured error for FastAPI/Starlette HTTP exceptions (404 route, 405 method)."""
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse.build(code=f"http_{exc.status_code}", message=str(exc.detail)).model_dump(),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The raw exception is logged only, never written to the response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content=ErrorResponse.build(code="internal_error", message="An unexpected error occurred.").model_dump(),
    )


# ---------------------------------------------------------------------------
# Health endpoint
# ---------------------------------------------------------------------------


@app.get("/health", tags=["Health"])
async def health() -> HealthResponse:
    """Return API liveness and current version."""
    return HealthResponse(version=__version__)
