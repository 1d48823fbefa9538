"""
auth/errors.py -- Error taxonomy for the authentication layer.

Every failure the auth layer reports to a caller is one of the classes below.
Each carries an HTTP status_code, a stable machine-readable code, and a
human-readable message that is safe to show to clients. Internal causes
(which secret mismatched, why bcrypt refused a hash) are logged where they
happen and never copied into the message.

api/main.py registers a single exception handler for AuthError, so services
and dependencies raise these directly instead of building HTTP responses.

Layer rule: stdlib only.
"""

from __future__ import annotations


class AuthError(Exception):
    """Base class for auth-layer failures mapped to HTTP responses."""

    status_code: int = 400
    code: str = "bad_request"
    default_message: str = "Bad request."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(AuthError):
    """Missing or malformed input (400)."""

    status_code = 400
    code = "validation_error"
    default_message = "All fields are required."


class DuplicateError(AuthError):
    """An account with that email already exists.

    409-class conflict, surfaced as 400 to match the registration contract.
    """

    status_code = 400
    code = "duplicate"
    default_message = "User already exists."


class InvalidCredentials(AuthError):
    """Unknown email, wrong password and inactive account all look like this (400)."""

    status_code = 400
    code = "invalid_credentials"
    default_message = "Invalid email or password."


class Unauthenticated(AuthError):
    """No credential was presented (401)."""

    status_code = 401
    code = "unauthorized"
    default_message = "Unauthorized."


class Forbidden(AuthError):
    """A credential was presented but is invalid, expired, or lacks the role (403)."""

    status_code = 403
    code = "forbidden"
    default_message = "Forbidden."


class NotFound(AuthError):
    """The addressed record does not exist (404)."""

    status_code = 404
    code = "not_found"
    default_message = "User not found."


class CreationError(AuthError):
    """The store rejected a write for a reason other than uniqueness (500)."""

    status_code = 500
    code = "creation_failed"
    default_message = "Could not create user."
