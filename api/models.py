"""
API request and response models for Gatehouse REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py, which
own the internal domain representation. Route handlers map between the two.

Request models only check shape. Presence of required values is checked by
the services so that a missing field is a 400 ValidationError with the same
message no matter how the body was malformed.
"""

from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from auth.models import Identity

# ---------------------------------------------------------------------------
# Field aliases
#
# Clients send camelCase (firstName), all-lowercase (firstname) or snake_case.
# ---------------------------------------------------------------------------

_FIELD_ALIASES: dict[str, str] = {
    "firstName": "first_name",
    "firstname": "first_name",
    "middleName": "middle_name",
    "middlename": "middle_name",
    "lastName": "last_name",
    "lastname": "last_name",
    "branchId": "branch_id",
    "branchid": "branch_id",
}


def _aliases(name: str) -> AliasChoices:
    choices = [alias for alias, target in _FIELD_ALIASES.items() if target == name]
    return AliasChoices(name, *choices)


def normalize_field_names(body: dict[str, Any]) -> dict[str, Any]:
    """Map aliased keys in a free-form body onto snake_case field names."""
    return {_FIELD_ALIASES.get(key, key): value for key, value in body.items()}


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class RegistrationRequest(BaseModel):
    """Request body for POST /registration. All four fields are required."""

    first_name: Optional[str] = Field(default=None, validation_alias=_aliases("first_name"))
    last_name: Optional[str] = Field(default=None, validation_alias=_aliases("last_name"))
    email: Optional[str] = Field(default=None, max_length=255)
    password: Optional[str] = Field(default=None, max_length=255)


class LoginRequest(BaseModel):
    """Request body for POST /login."""

    email: Optional[str] = Field(default=None, max_length=255)
    password: Optional[str] = Field(default=None, max_length=255)


class DeleteRequest(BaseModel):
    """Request body for DELETE /profile/delete. id defaults to the caller."""

    id: Optional[str] = None


class ProvisionRequest(BaseModel):
    """Request body for POST /users/provision."""

    email: Optional[str] = Field(default=None, max_length=255)
    first_name: Optional[str] = Field(default=None, validation_alias=_aliases("first_name"))
    last_name: Optional[str] = Field(default=None, validation_alias=_aliases("last_name"))
    role: Optional[str] = None
    branch_id: Optional[str] = Field(default=None, validation_alias=_aliases("branch_id"))


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class LocationModel(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: Optional[str] = None
    address: Optional[str] = None


class ProfileResponse(BaseModel):
    """A user record as returned to clients. Password hashes are never included."""

    model_config = ConfigDict(frozen=True)

    id: str
    email: str
    first_name: str
    middle_name: Optional[str] = None
    last_name: str
    age: Optional[int] = None
    phone: Optional[str] = None
    locations: list[LocationModel] = Field(default_factory=list)
    role: str
    branch_id: Optional[str] = None
    status: str
    created_at: str
    updated_at: str

    @classmethod
    def from_identity(cls, identity: Identity) -> "ProfileResponse":
        """Build a ProfileResponse from a domain Identity.

        Field-by-field on purpose: copying the dataclass wholesale would carry
        password_hash and temporary_password_hash into the response.
        """
        return cls(
            id=identity.id,
            email=identity.email,
            first_name=identity.first_name,
            middle_name=identity.middle_name,
            last_name=identity.last_name,
            age=identity.age,
            phone=identity.phone,
            locations=[LocationModel(**loc) for loc in identity.locations],
            role=identity.role.value,
            branch_id=identity.branch_id,
            status=identity.status.value,
            created_at=identity.created_at or "",
            updated_at=identity.updated_at or "",
        )


class RegistrationResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str
    id: str


class LoginResponse(BaseModel):
    """Response for POST /login and POST /refresh.

    Only the access token is returned. The refresh token travels in the
    HttpOnly "jwt" cookie and is never part of a response body.
    """

    model_config = ConfigDict(frozen=True)

    token: str
    token_type: str = "bearer"
    expires_in: int
    role: str


class MessageResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str


class ProvisionResponse(BaseModel):
    """Response for POST /users/provision. temporary_password is shown once."""

    model_config = ConfigDict(frozen=True)

    profile: ProfileResponse
    temporary_password: str


# ---------------------------------------------------------------------------
# Errors and health
# ---------------------------------------------------------------------------


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses.

    message repeats error.message so simple clients can read it directly.
    """

    model_config = ConfigDict(frozen=True)

    message: str
    error: ErrorDetail

    @classmethod
    def build(cls, code: str, message: str, detail: Optional[str] = None) -> "ErrorResponse":
        return cls(message=message, error=ErrorDetail(code=code, message=message, detail=detail))


class HealthResponse(BaseModel):
    """Response for GET /health."""

    model_config = ConfigDict(frozen=True)

    status: str = "ok"
    version: str
