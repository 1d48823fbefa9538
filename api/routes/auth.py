"""
api/routes/auth.py -- Registration, login, logout and token refresh endpoints.

Routes:
  POST /registration   -- create a customer account; 201
  POST /login          -- password login; returns access token, sets "jwt" cookie
  POST /logout         -- clears "jwt" cookie; 200, or 204 when there was none
  POST /refresh        -- new access token from the "jwt" cookie

Security:
  Unknown email and wrong password return the same 400 invalid_credentials
  error. Cache-Control: no-store on responses that carry tokens.

  Handlers that touch the store or run bcrypt are sync def handlers; FastAPI
  runs them on its threadpool instead of the event loop. Only logout, which
  reads the cookie alone, is async.

  There is no rate limiting or lockout on /login. See DESIGN.md.
"""

from __future__ import annotations

from fastapi import APIRouter, Request, Response

from api.models import LoginRequest, LoginResponse, MessageResponse, RegistrationRequest, RegistrationResponse
from auth.models import LogoutOutcome
from auth.service import AuthService

# Auth policy:
# - POST /registration: public
# - POST /login:        public
# - POST /logout:       public -- acts on the cookie only
# - POST /refresh:      public -- the cookie is the credential
router = APIRouter()


def _service(request: Request) -> AuthService:
    return request.app.state.auth_service


@router.post("/registration", response_model=RegistrationResponse, status_code=201)
def register(request: Request, body: RegistrationRequest) -> RegistrationResponse:
    """Create a customer account. All of first name, last name, email and password are required."""
    identity = _service(request).register(
        first_name=body.first_name,
        last_name=body.last_name,
        email=body.email,
        password=body.password,
    )
    return RegistrationResponse(message="New customer successfully created", id=identity.id)


@router.post("/login", response_model=LoginResponse)
def login(request: Request, response: Response, body: LoginRequest) -> LoginResponse:
    """Authenticate with email and password.

    The access token is returned in the body. The refresh token is written
    to the HttpOnly "jwt" cookie on the same response.
    """
    result = _service(request).login(body.email, body.password, response)
    response.headers["Cache-Control"] = "no-store"
    return LoginResponse(
        token=result.access_token,
        expires_in=result.expires_in,
        role=result.identity.role.value,
    )


@router.post("/logout", response_model=MessageResponse, responses={204: {"description": "No session cookie"}})
async def logout(request: Request, response: Response):
    """Clear the session cookie. 204 when the request carried none."""
    outcome = _service(request).logout(request, response)
    if outcome is LogoutOutcome.NO_SESSION:
        return Response(status_code=204)
    return MessageResponse(message="Logged out.")


@router.post("/refresh", response_model=LoginResponse)
def refresh(request: Request, response: Response) -> LoginResponse:
    """Exchange the refresh token in the "jwt" cookie for a new access token."""
    result = _service(request).refresh(request)
    response.headers["Cache-Control"] = "no-store"
    return LoginResponse(
        token=result.access_token,
        expires_in=result.expires_in,
        role=result.identity.role.value,
    )
