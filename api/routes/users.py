"""
api/routes/users.py -- Account provisioning for staff-side roles.

Routes:
  POST /users/provision -- create an account holding only a temporary password

Admins, owners and managers pre-create accounts for their staff. The new
account logs in with the temporary password (dual-password fallback) and then
sets a permanent one through PATCH /profile/update. Which roles each caller
may hand out is decided by auth.policy.PROVISIONABLE_ROLES.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request, Response

from api.models import ProfileResponse, ProvisionRequest, ProvisionResponse
from auth.dependencies import Require
from auth.models import AccessClaims
from auth.profiles import ProfileService

# Auth policy:
# - POST /users/provision: users.provision (admin, owner, manager)
router = APIRouter()


@router.post("/users/provision", response_model=ProvisionResponse, status_code=201)
def provision_user(
    request: Request,
    response: Response,
    body: ProvisionRequest,
    identity: AccessClaims = Depends(Require("users.provision")),
) -> ProvisionResponse:
    """Create a staff-side account. The temporary password is returned once and never again."""
    service: ProfileService = request.app.state.profile_service
    result = service.provision(
        identity,
        email=body.email,
        first_name=body.first_name,
        last_name=body.last_name,
        role=body.role,
        branch_id=body.branch_id,
    )
    response.headers["Cache-Control"] = "no-store"
    return ProvisionResponse(
        profile=ProfileResponse.from_identity(result.identity),
        temporary_password=result.temporary_password,
    )
