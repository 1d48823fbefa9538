"""
auth/cookies.py -- Binding the refresh token to the "jwt" session cookie.

Cookie attributes are fixed, not configurable:
  httponly=True: scripts cannot read the refresh token (XSS mitigation).
  secure=True: only sent over HTTPS.
  samesite="none": the cookie is sent on cross-site requests, so a separately
      hosted front end can call /refresh and /logout.
  max_age: 7 days, matching the refresh token lifetime.
  path="/": sent to every route.

clear() deletes with exactly the same attributes. Browsers treat a
Set-Cookie with different Path/SameSite/Secure as a different cookie and would
keep the original one.

Layer rule: no imports from api/ or core/. Works on Starlette request and
response objects.
"""

from __future__ import annotations

from starlette.requests import Request
from starlette.responses import Response

from auth.models import LogoutOutcome

SESSION_COOKIE_NAME = "jwt"
SESSION_COOKIE_MAX_AGE = 7 * 24 * 3600

_COOKIE_ATTRIBUTES: dict = {
    "path": "/",
    "secure": True,
    "httponly": True,
    "samesite": "none",
}


class SessionCookieManager:
    """Sets, reads and clears the refresh-token cookie."""

    name = SESSION_COOKIE_NAME

    def bind(self, response: Response, refresh_token: str) -> None:
        """Write the refresh token into the session cookie on response."""
        response.set_cookie(
            self.name,
            value=refresh_token,
            max_age=SESSION_COOKIE_MAX_AGE,
            **_COOKIE_ATTRIBUTES,
        )

    def read(self, request: Request) -> str | None:
        """Return the session cookie value, or None when absent or empty."""
        return request.cookies.get(self.name) or None

    def clear(self, request: Request, response: Response) -> LogoutOutcome:
        """Delete the session cookie if the request carried one.

        Returns NO_SESSION without touching the response when there is nothing
        to clear.
        """
        if self.read(request) is None:
            return LogoutOutcome.NO_SESSION
        response.delete_cookie(self.name, **_COOKIE_ATTRIBUTES)
        return LogoutOutcome.CLEARED
