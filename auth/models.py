"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Stores and services do
the work; these types only own the shape.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class Role(str, Enum):
    admin = "admin"
    owner = "owner"
    manager = "manager"
    staff = "staff"
    rider = "rider"
    customer = "customer"


class Status(str, Enum):
    active = "active"
    inactive = "inactive"


class TokenType(str, Enum):
    access = "access"
    refresh = "refresh"


class LogoutOutcome(str, Enum):
    """Result of clearing the session cookie.

    NO_SESSION means the request carried no cookie and nothing was done.
    """

    CLEARED = "cleared"
    NO_SESSION = "no_session"


ALL_ROLES: frozenset[Role] = frozenset(Role)


@dataclass
class Identity:
    """A registered account.

    email is stored trimmed and lower-cased; the store enforces uniqueness.

    password_hash and temporary_password_hash are bcrypt hashes. At least one
    must be set for the account to log in. Registration always sets
    password_hash; provisioned staff accounts start with only a temporary one
    until the holder sets a permanent password.

    locations is a list of {"name": ..., "address": ...} dicts (saved addresses).
    """

    email: str
    first_name: str
    last_name: str
    id: str | None = None
    role: Role = Role.customer
    status: Status = Status.active
    password_hash: str | None = None
    temporary_password_hash: str | None = None
    middle_name: str | None = None
    age: int | None = None
    phone: str | None = None
    locations: list[dict] = field(default_factory=list)
    branch_id: str | None = None
    created_at: str | None = None
    updated_at: str | None = None

    @property
    def is_active(self) -> bool:
        return self.status == Status.active


@dataclass(frozen=True)
class Claims:
    """Decoded token claims. Never persisted.

    issued_at / expires_at are POSIX timestamps (seconds, UTC).
    """

    subject_id: str
    role: Role
    issued_at: int
    expires_at: int
    token_type: TokenType = TokenType.access


# The two claim classes share one shape; the names document intent at call sites.
AccessClaims = Claims
RefreshClaims = Claims


@dataclass(frozen=True)
class LoginResult:
    """What a successful login hands back to the route layer.

    The refresh token is deliberately absent: it only ever leaves the service
    inside the session cookie.
    """

    access_token: str
    expires_in: int
    identity: Identity


@dataclass(frozen=True)
class ProvisionResult:
    """A provisioned account plus its one-time temporary password."""

    identity: Identity
    temporary_password: str
