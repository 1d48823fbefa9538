"""
auth/policy.py -- Declarative role policies for protected operations.

Every protected route declares which roles may call it by naming an entry in
ROUTE_POLICIES. The policy is a plain value; auth.dependencies.authorize()
is the one function that evaluates it. Keeping the table here makes the whole
access matrix readable (and testable) without starting the app.

The remaining tables describe finer-grained rules the profile and provisioning
services apply after the route-level check has passed.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from dataclasses import dataclass

from auth.models import ALL_ROLES, Role


@dataclass(frozen=True)
class RolePolicy:
    """The set of roles permitted to invoke one operation."""

    roles: frozenset[Role]

    def permits(self, role: Role | str) -> bool:
        try:
            return Role(role) in self.roles
        except ValueError:
            return False


def allow(*roles: Role) -> RolePolicy:
    return RolePolicy(roles=frozenset(roles))


ROUTE_POLICIES: dict[str, RolePolicy] = {
    "profile.view": RolePolicy(roles=ALL_ROLES),
    "profile.update": RolePolicy(roles=ALL_ROLES),
    "profile.delete": RolePolicy(roles=ALL_ROLES),
    "users.provision": allow(Role.admin, Role.owner, Role.manager),
}

# ---------------------------------------------------------------------------
# Cross-account rules
# ---------------------------------------------------------------------------

# Roles that may read another account's profile.
VIEW_OTHERS_ROLES: frozenset[Role] = frozenset({Role.admin, Role.owner, Role.manager})

# Fields any account may change on itself. "password" is hashed by the
# service and clears the temporary password.
SELF_EDITABLE_FIELDS: frozenset[str] = frozenset(
    {"first_name", "middle_name", "last_name", "age", "phone", "locations", "password"}
)

# Fields an account manager may additionally change on someone else.
MANAGED_FIELDS: frozenset[str] = frozenset({"role", "status", "branch_id"})

# Which roles each role may hand out when provisioning an account.
PROVISIONABLE_ROLES: dict[Role, frozenset[Role]] = {
    Role.admin: frozenset({Role.admin, Role.owner, Role.manager, Role.staff, Role.rider}),
    Role.owner: frozenset({Role.manager, Role.staff, Role.rider}),
    Role.manager: frozenset({Role.staff, Role.rider}),
}


# Which existing accounts each manager role may modify or delete, and which
# roles it may assign through a profile update.
MANAGEABLE_ROLES: dict[Role, frozenset[Role]] = {
    Role.admin: ALL_ROLES,
    Role.owner: frozenset({Role.manager, Role.staff, Role.rider, Role.customer}),
}


def can_manage(actor_role: Role, target_role: Role) -> bool:
    """Return True if actor_role may modify or delete an account holding target_role."""
    return Role(target_role) in MANAGEABLE_ROLES.get(Role(actor_role), frozenset())


def editable_fields(actor_role: Role, acting_on_self: bool) -> frozenset[str]:
    """Return the profile fields actor_role may set on the target account."""
    if acting_on_self:
        return SELF_EDITABLE_FIELDS
    if actor_role in MANAGEABLE_ROLES:
        # Password resets for others go through provisioning, not profile update.
        return (SELF_EDITABLE_FIELDS - {"password"}) | MANAGED_FIELDS
    return frozenset()


def assignable_roles(actor_role: Role) -> frozenset[Role]:
    """Return the roles actor_role may grant to a new or managed account."""
    return PROVISIONABLE_ROLES.get(actor_role, frozenset())
