"""Role management endpoints."""
import logging

from fastapi import APIRouter, Depends, Request

from achievo.api.models import (
    AssignRoleRequest,
    RemoveRoleRequest,
    RoleChangeResponse,
    UserRoleResponse,
)
from achievo.auth.guard import require_auth, require_role
from achievo.auth.identity import Principal
from achievo.auth.roles import Role
from achievo.services import Services, get_services

log = logging.getLogger(__name__)
router = APIRouter(prefix="/roles", tags=["roles"])


@router.post("/assign", response_model=RoleChangeResponse)
async def assign_role(
    body: AssignRoleRequest,
    http_request: Request,
    principal: Principal = require_role(Role.ADMIN, "role.assign"),
    services: Services = Depends(get_services),
) -> RoleChangeResponse:
    result = await services.roles.assign(
        principal.account_id, body.account_id, body.role, request=http_request
    )
    return RoleChangeResponse(message="Role assigned successfully", **result)


@router.post("/remove", response_model=RoleChangeResponse)
async def remove_role(
    body: RemoveRoleRequest,
    http_request: Request,
    principal: Principal = require_role(Role.ADMIN, "role.remove"),
    services: Services = Depends(get_services),
) -> RoleChangeResponse:
    result = await services.roles.remove(principal.account_id, body.account_id, request=http_request)
    return RoleChangeResponse(message="Role removed successfully", **result)


@router.get("/me", response_model=UserRoleResponse)
async def my_role(
    principal: Principal = require_auth,
    services: Services = Depends(get_services),
) -> UserRoleResponse:
    """Caller's role and permissions."""
    result = await services.roles.lookup(principal.account_id)
    return UserRoleResponse(message="Role retrieved successfully", **result)


@router.get("/user/{account_id}", response_model=UserRoleResponse)
async def user_role(
    account_id: str,
    services: Services = Depends(get_services),
) -> UserRoleResponse:
    result = await services.roles.lookup(account_id)
    return UserRoleResponse(message="Role retrieved successfully", **result)
