"""Unit tests for auth/profiles.py -- profile rules and provisioning.

Covers:
- view: self by default, others only for admin/owner/manager, bad id -> 400
- update: allow-list enforced before the store is touched (no role/email
  self-escalation), managed fields for admin/owner, password change clears
  the temporary password
- delete: self, managed accounts, forbidden across roles
- provision: role matrix, temporary-password-only accounts, duplicates
"""

from __future__ import annotations

import pytest

from auth.errors import DuplicateError, Forbidden, NotFound, ValidationError
from auth.models import Claims, Identity, Role, Status
from auth.passwords import PasswordHasher
from auth.profiles import ProfileService, parse_identity_id


def _claims(identity: Identity) -> Claims:
    return Claims(subject_id=identity.id, role=identity.role, issued_at=0, expires_at=2**31)


class TestParseId:
    def test_accepts_hex_and_dashed_uuid(self) -> None:
        assert parse_identity_id("12345678123456781234567812345678") == "12345678123456781234567812345678"
        assert parse_identity_id("12345678-1234-5678-1234-567812345678") == "12345678123456781234567812345678"

    @pytest.mark.parametrize("bad", ["", "42", "not-an-id", None, 42])
    def test_rejects_garbage(self, bad) -> None:
        with pytest.raises(ValidationError):
            parse_identity_id(bad)


class TestView:
    def test_view_self_by_default(self, profile_service: ProfileService, make_identity) -> None:
        me = make_identity()
        assert profile_service.view(_claims(me)).id == me.id

    def test_customer_cannot_view_others(self, profile_service: ProfileService, make_identity) -> None:
        me = make_identity()
        other = make_identity()
        with pytest.raises(Forbidden):
            profile_service.view(_claims(me), other.id)

    def test_manager_can_view_others(self, profile_service: ProfileService, make_identity) -> None:
        manager = make_identity(role=Role.manager)
        other = make_identity()
        assert profile_service.view(_claims(manager), other.id).id == other.id

    def test_invalid_id(self, profile_service: ProfileService, make_identity) -> None:
        admin = make_identity(role=Role.admin)
        with pytest.raises(ValidationError):
            profile_service.view(_claims(admin), "not-an-id")

    def test_unknown_id(self, profile_service: ProfileService, make_identity) -> None:
        admin = make_identity(role=Role.admin)
        with pytest.raises(NotFound):
            profile_service.view(_claims(admin), "f" * 32)

    def test_deleted_self(self, profile_service: ProfileService, make_identity, store) -> None:
        me = make_identity()
        store.delete_by_id(me.id)
        with pytest.raises(NotFound):
            profile_service.view(_claims(me))


class TestUpdate:
    def test_self_update_allowed_fields(self, profile_service: ProfileService, make_identity) -> None:
        me = make_identity()
        updated = profile_service.update(
            _claims(me),
            None,
            {"phone": "555-0100", "age": 41, "locations": [{"name": "Home", "address": "1 Main St"}]},
        )
        assert updated.phone == "555-0100"
        assert updated.age == 41
        assert updated.locations == [{"name": "Home", "address": "1 Main St"}]

    @pytest.mark.parametrize("field,value", [("role", "admin"), ("status", "inactive"), ("email", "x@y.z"),
                                             ("password_hash", "x"), ("branch_id", "b1"), ("is_admin", True)])
    def test_self_cannot_set_privileged_fields(
        self, profile_service: ProfileService, make_identity, store, field, value
    ) -> None:
        me = make_identity()
        with pytest.raises(ValidationError):
            profile_service.update(_claims(me), None, {field: value})
        assert store.find_by_id(me.id).role is Role.customer

    def test_rejected_field_blocks_whole_update(self, profile_service: ProfileService, make_identity, store) -> None:
        me = make_identity()
        with pytest.raises(ValidationError):
            profile_service.update(_claims(me), None, {"phone": "555", "role": "admin"})
        assert store.find_by_id(me.id).phone is None

    def test_empty_update_rejected(self, profile_service: ProfileService, make_identity) -> None:
        with pytest.raises(ValidationError):
            profile_service.update(_claims(make_identity()), None, {})

    @pytest.mark.parametrize("changes", [{"first_name": "  "}, {"age": -1}, {"age": "old"}, {"locations": "home"}])
    def test_bad_values_rejected(self, profile_service: ProfileService, make_identity, changes) -> None:
        with pytest.raises(ValidationError):
            profile_service.update(_claims(make_identity()), None, changes)

    def test_password_change_clears_temporary(
        self, profile_service: ProfileService, make_identity, store, hasher: PasswordHasher
    ) -> None:
        staff = make_identity(role=Role.staff, password=None, temporary_password="temp-1")
        profile_service.update(_claims(staff), None, {"password": "new-permanent"})
        stored = store.find_by_id(staff.id)
        assert stored.temporary_password_hash is None
        assert hasher.verify("new-permanent", stored.password_hash)
        assert not hasher.check_credentials(stored, "temp-1")

    def test_customer_cannot_update_others(self, profile_service: ProfileService, make_identity) -> None:
        me = make_identity()
        other = make_identity()
        with pytest.raises(Forbidden):
            profile_service.update(_claims(me), other.id, {"phone": "1"})

    def test_admin_can_change_role_and_status(self, profile_service: ProfileService, make_identity) -> None:
        admin = make_identity(role=Role.admin)
        other = make_identity()
        updated = profile_service.update(_claims(admin), other.id, {"role": "staff", "status": "inactive"})
        assert updated.role is Role.staff
        assert updated.status is Status.inactive

    def test_owner_cannot_promote_to_admin(self, profile_service: ProfileService, make_identity) -> None:
        owner = make_identity(role=Role.owner)
        other = make_identity(role=Role.staff)
        with pytest.raises(Forbidden):
            profile_service.update(_claims(owner), other.id, {"role": "admin"})

    def test_owner_cannot_modify_admin(self, profile_service: ProfileService, make_identity) -> None:
        owner = make_identity(role=Role.owner)
        admin = make_identity(role=Role.admin)
        with pytest.raises(Forbidden):
            profile_service.update(_claims(owner), admin.id, {"phone": "1"})

    def test_admin_cannot_set_others_password(self, profile_service: ProfileService, make_identity) -> None:
        admin = make_identity(role=Role.admin)
        other = make_identity()
        with pytest.raises(ValidationError):
            profile_service.update(_claims(admin), other.id, {"password": "hijack"})


class TestDelete:
    def test_delete_self(self, profile_service: ProfileService, make_identity, store) -> None:
        me = make_identity()
        profile_service.delete(_claims(me))
        assert store.find_by_id(me.id) is None

    def test_customer_cannot_delete_others(self, profile_service: ProfileService, make_identity, store) -> None:
        me = make_identity()
        other = make_identity()
        with pytest.raises(Forbidden):
            profile_service.delete(_claims(me), other.id)
        assert store.find_by_id(other.id) is not None

    def test_admin_deletes_other(self, profile_service: ProfileService, make_identity, store) -> None:
        admin = make_identity(role=Role.admin)
        other = make_identity()
        profile_service.delete(_claims(admin), other.id)
        assert store.find_by_id(other.id) is None

    def test_delete_unknown(self, profile_service: ProfileService, make_identity) -> None:
        admin = make_identity(role=Role.admin)
        with pytest.raises(NotFound):
            profile_service.delete(_claims(admin), "f" * 32)


class TestProvision:
    def test_manager_provisions_staff(
        self, profile_service: ProfileService, make_identity, hasher: PasswordHasher
    ) -> None:
        manager = make_identity(role=Role.manager)
        result = profile_service.provision(_claims(manager), "New@Staff.com", "New", "Staff", "staff", "branch-1")
        assert result.identity.email == "new@staff.com"
        assert result.identity.role is Role.staff
        assert result.identity.branch_id == "branch-1"
        assert result.identity.password_hash is None
        assert hasher.check_credentials(result.identity, result.temporary_password)

    def test_manager_cannot_provision_owner(self, profile_service: ProfileService, make_identity) -> None:
        manager = make_identity(role=Role.manager)
        with pytest.raises(Forbidden):
            profile_service.provision(_claims(manager), "o@x.com", "O", "X", "owner")

    def test_invalid_role(self, profile_service: ProfileService, make_identity) -> None:
        admin = make_identity(role=Role.admin)
        with pytest.raises(ValidationError):
            profile_service.provision(_claims(admin), "o@x.com", "O", "X", "wizard")

    def test_missing_fields(self, profile_service: ProfileService, make_identity) -> None:
        admin = make_identity(role=Role.admin)
        with pytest.raises(ValidationError):
            profile_service.provision(_claims(admin), None, "O", "X", "staff")

    def test_duplicate_email(self, profile_service: ProfileService, make_identity) -> None:
        admin = make_identity(role=Role.admin)
        make_identity(email="taken@x.com")
        with pytest.raises(DuplicateError):
            profile_service.provision(_claims(admin), "TAKEN@x.com", "O", "X", "staff")
