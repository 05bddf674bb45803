"""Registration and organization verification endpoints."""
import logging

from fastapi import APIRouter, Depends, Request

from achievo.api.models import (
    RegisterIndividualRequest,
    RegisterIndividualResponse,
    RegisterOrganizationRequest,
    RegisterOrganizationResponse,
    VerifyOrganizationRequest,
    VerifyOrganizationResponse,
)
from achievo.auth.guard import require_auth, require_role
from achievo.auth.identity import Principal
from achievo.auth.roles import Role
from achievo.services import Services, get_services

log = logging.getLogger(__name__)
router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register-individual", response_model=RegisterIndividualResponse, status_code=201)
async def register_individual(
    body: RegisterIndividualRequest,
    http_request: Request,
    principal: Principal = require_auth,
    services: Services = Depends(get_services),
) -> RegisterIndividualResponse:
    """Register the calling wallet as an individual."""
    result = await services.registration.register_individual(
        principal.account_id, body.name, body.dob, body.email, request=http_request
    )
    return RegisterIndividualResponse(
        message="Individual registered successfully",
        user_id=result["user_id"],
        data=result["user"],
    )


@router.post("/register-organization", response_model=RegisterOrganizationResponse, status_code=201)
async def register_organization(
    body: RegisterOrganizationRequest,
    http_request: Request,
    principal: Principal = require_auth,
    services: Services = Depends(get_services),
) -> RegisterOrganizationResponse:
    """Register the calling wallet as an organization, pending verification."""
    result = await services.registration.register_organization(
        principal.account_id, body.name, body.contact_info, request=http_request
    )
    return RegisterOrganizationResponse(
        message="Organization registered successfully (pending verification)",
        organization_id=result["organization_id"],
        data=result["organization"],
    )


@router.post("/verify-organization", response_model=VerifyOrganizationResponse)
async def verify_organization(
    body: VerifyOrganizationRequest,
    http_request: Request,
    principal: Principal = require_role(Role.ORGANIZATION_VERIFIER, "organization.verify"),
    services: Services = Depends(get_services),
) -> VerifyOrganizationResponse:
    """Verify or reject a pending organization."""
    result = await services.registration.verify_organization(
        principal.account_id, body.organization_id, body.status, request=http_request
    )
    return VerifyOrganizationResponse(
        message=f"Organization {result['status']} successfully",
        **result,
    )
