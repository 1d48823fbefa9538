"""
api/routes/profile.py -- Profile endpoints for authenticated users.

Routes:
  GET    /profile/view     -- ?id= optional, defaults to the caller
  PATCH  /profile/update   -- body: optional "id" + allow-listed fields
  DELETE /profile/delete   -- body: optional "id", defaults to the caller

Every route passes the access gate (authenticate, then the route's
RolePolicy). Which account may be read, changed or deleted, and which fields
may be set, is decided by auth.profiles.ProfileService.

Every handler reads the store, so all are sync def and run on the threadpool.
"""

from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Depends, Request

from api.models import DeleteRequest, MessageResponse, ProfileResponse, normalize_field_names
from auth.dependencies import Require
from auth.models import AccessClaims
from auth.profiles import ProfileService

# Auth policy: see auth.policy.ROUTE_POLICIES
# - GET    /profile/view:   profile.view
# - PATCH  /profile/update: profile.update
# - DELETE /profile/delete: profile.delete
router = APIRouter()


def _service(request: Request) -> ProfileService:
    return request.app.state.profile_service


@router.get("/profile/view", response_model=ProfileResponse)
def view_profile(
    request: Request,
    id: Optional[str] = None,
    identity: AccessClaims = Depends(Require("profile.view")),
) -> ProfileResponse:
    """Return a profile without password fields."""
    return ProfileResponse.from_identity(_service(request).view(identity, id))


@router.patch("/profile/update", response_model=ProfileResponse)
def update_profile(
    request: Request,
    body: dict[str, Any],
    identity: AccessClaims = Depends(Require("profile.update")),
) -> ProfileResponse:
    """Update allow-listed profile fields.

    Sync handler: changing the password runs bcrypt.
    """
    changes = normalize_field_names(body)
    target_id = changes.pop("id", None)
    updated = _service(request).update(identity, target_id, changes)
    return ProfileResponse.from_identity(updated)


@router.delete("/profile/delete", response_model=MessageResponse)
def delete_profile(
    request: Request,
    body: Optional[DeleteRequest] = None,
    identity: AccessClaims = Depends(Require("profile.delete")),
) -> MessageResponse:
    """Permanently delete an account."""
    target_id = body.id if body is not None else None
    _service(request).delete(identity, target_id)
    return MessageResponse(message="User deleted.")
