"""
auth/profiles.py -- Profile view/update/delete and staff account provisioning.

Every method receives the caller's RequestIdentity (decoded access claims)
from the access gate. The route-level RolePolicy has already been checked;
this module applies the per-account rules from auth.policy:

  - Reading another account needs a VIEW_OTHERS_ROLES role.
  - Changing or deleting another account needs can_manage(actor, target).
  - Updates are validated against an explicit field allow-list before the
    store is touched. Fields outside the list (email, id, password hashes,
    role for self-service callers) are rejected with 400, never ignored.

Provisioning creates an account with only a temporary password. The holder
logs in with it (dual-password fallback) and sets a permanent password via
profile update, which clears the temporary one.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import logging
import secrets
import uuid
from typing import Any

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from auth.errors import CreationError, DuplicateError, Forbidden, NotFound, ValidationError
from auth.models import Claims, Identity, ProvisionResult, Role, Status
from auth.passwords import PasswordHasher
from auth.policy import VIEW_OTHERS_ROLES, assignable_roles, can_manage, editable_fields
from auth.service import require_fields
from auth.store import IdentityStore, normalize_email

logger = logging.getLogger("gatehouse.auth")

_TEMP_PASSWORD_BYTES = 12


def parse_identity_id(value: str | None) -> str:
    """Normalize an identity id (uuid4, dashed or hex) or raise ValidationError."""
    if not isinstance(value, str):
        raise ValidationError("Invalid user id.")
    try:
        return uuid.UUID(value.strip()).hex
    except ValueError as exc:
        raise ValidationError("Invalid user id.") from exc


class ProfileService:
    """Self-service and managed profile operations."""

    def __init__(self, store: IdentityStore, hasher: PasswordHasher) -> None:
        self.store = store
        self.hasher = hasher

    # ------------------------------------------------------------------
    # View
    # ------------------------------------------------------------------

    def view(self, actor: Claims, target_id: str | None = None) -> Identity:
        identity_id = self._resolve_target(actor, target_id)
        if identity_id != actor.subject_id and actor.role not in VIEW_OTHERS_ROLES:
            raise Forbidden("You do not have permission to view this profile.")
        return self._get(identity_id)

    # ------------------------------------------------------------------
    # Update
    # ------------------------------------------------------------------

    def update(self, actor: Claims, target_id: str | None, changes: dict[str, Any]) -> Identity:
        """Apply allow-listed changes to the target account and return the updated record."""
        identity_id = self._resolve_target(actor, target_id)
        acting_on_self = identity_id == actor.subject_id

        allowed = editable_fields(actor.role, acting_on_self)
        if not allowed:
            raise Forbidden("You do not have permission to modify this profile.")
        if not changes:
            raise ValidationError("No fields to update.")
        rejected = sorted(set(changes) - allowed)
        if rejected:
            raise ValidationError(f"These fields cannot be updated: {', '.join(rejected)}.")

        target = self._get(identity_id)
        if not acting_on_self and not can_manage(actor.role, target.role):
            raise Forbidden("You do not have permission to modify this profile.")

        values = self._clean_changes(actor, changes)
        updated = self.store.update_by_id(identity_id, **values)
        if updated is None:
            raise NotFound()
        logger.info("Identity %s updated fields %s (by %s)", identity_id, sorted(changes), actor.subject_id)
        return updated

    # ------------------------------------------------------------------
    # Delete
    # ------------------------------------------------------------------

    def delete(self, actor: Claims, target_id: str | None = None) -> Identity:
        identity_id = self._resolve_target(actor, target_id)
        if identity_id != actor.subject_id:
            if not editable_fields(actor.role, acting_on_self=False):
                raise Forbidden("You do not have permission to delete this account.")
            target = self._get(identity_id)
            if not can_manage(actor.role, target.role):
                raise Forbidden("You do not have permission to delete this account.")
        deleted = self.store.delete_by_id(identity_id)
        if deleted is None:
            raise NotFound()
        logger.info("Identity %s deleted (by %s)", identity_id, actor.subject_id)
        return deleted

    # ------------------------------------------------------------------
    # Provisioning
    # ------------------------------------------------------------------

    def provision(
        self,
        actor: Claims,
        email: str | None,
        first_name: str | None,
        last_name: str | None,
        role: str | None,
        branch_id: str | None = None,
    ) -> ProvisionResult:
        """Create an account holding only a temporary password.

        The generated password is returned once and never stored in plaintext.
        """
        fields = require_fields(
            {"email": email, "first_name": first_name, "last_name": last_name},
            ("email", "first_name", "last_name"),
        )
        try:
            new_role = Role(role)
        except ValueError as exc:
            raise ValidationError("Invalid role.") from exc
        if new_role not in assignable_roles(actor.role):
            raise Forbidden(f"You may not provision {new_role.value} accounts.")

        email_key = normalize_email(fields["email"])
        if self.store.find_by_email(email_key) is not None:
            raise DuplicateError()

        temporary_password = secrets.token_urlsafe(_TEMP_PASSWORD_BYTES)
        try:
            created = self.store.create(
                Identity(
                    email=email_key,
                    first_name=fields["first_name"],
                    last_name=fields["last_name"],
                    role=new_role,
                    status=Status.active,
                    branch_id=branch_id,
                    temporary_password_hash=self.hasher.hash(temporary_password),
                )
            )
        except IntegrityError as exc:
            raise DuplicateError() from exc
        except SQLAlchemyError as exc:
            logger.error("Store rejected provisioning: %s", exc)
            raise CreationError() from exc

        logger.info("Provisioned %s identity %s (by %s)", new_role.value, created.id, actor.subject_id)
        return ProvisionResult(identity=created, temporary_password=temporary_password)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _resolve_target(self, actor: Claims, target_id: str | None) -> str:
        if target_id is None or target_id == "":
            return actor.subject_id
        return parse_identity_id(target_id)

    def _get(self, identity_id: str) -> Identity:
        identity = self.store.find_by_id(identity_id)
        if identity is None:
            raise NotFound()
        return identity

    def _clean_changes(self, actor: Claims, changes: dict[str, Any]) -> dict[str, Any]:
        """Validate each allow-listed value and map it to store columns."""
        values: dict[str, Any] = {}
        for name, value in changes.items():
            if name in ("first_name", "last_name"):
                if not isinstance(value, str) or not value.strip():
                    raise ValidationError(f"{name} must not be empty.")
                values[name] = value.strip()
            elif name in ("middle_name", "phone", "branch_id"):
                if value is not None and not isinstance(value, str):
                    raise ValidationError(f"{name} must be a string.")
                values[name] = value.strip() if isinstance(value, str) else None
            elif name == "age":
                if value is not None and (isinstance(value, bool) or not isinstance(value, int) or value < 0):
                    raise ValidationError("age must be a non-negative integer.")
                values[name] = value
            elif name == "locations":
                values[name] = _clean_locations(value)
            elif name == "role":
                try:
                    new_role = Role(value)
                except ValueError as exc:
                    raise ValidationError("Invalid role.") from exc
                if not can_manage(actor.role, new_role):
                    raise Forbidden(f"You may not assign the {new_role.value} role.")
                values[name] = new_role
            elif name == "status":
                try:
                    values[name] = Status(value)
                except ValueError as exc:
                    raise ValidationError("Invalid status.") from exc
            elif name == "password":
                if not isinstance(value, str):
                    raise ValidationError("password must be a string.")
                try:
                    values["password_hash"] = self.hasher.hash(value)
                except ValueError as exc:
                    raise ValidationError(str(exc)) from exc
                # A permanent password ends the provisional first-login period.
                values["temporary_password_hash"] = None
        return values


def _clean_locations(value: Any) -> list[dict]:
    if not isinstance(value, list):
        raise ValidationError("locations must be a list.")
    cleaned: list[dict] = []
    for entry in value:
        if not isinstance(entry, dict):
            raise ValidationError("Each location must be an object with name and address.")
        name = entry.get("name")
        address = entry.get("address")
        if (name is not None and not isinstance(name, str)) or (address is not None and not isinstance(address, str)):
            raise ValidationError("Location name and address must be strings.")
        cleaned.append({"name": name, "address": address})
    return cleaned
