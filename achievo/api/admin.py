"""Admin endpoints."""
import logging

from fastapi import APIRouter, Depends

from achievo.api.models import RegistrantsResponse
from achievo.auth.guard import require_role
from achievo.auth.identity import Principal
from achievo.auth.roles import Role
from achievo.services import Services, get_services

log = logging.getLogger(__name__)
router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/users", response_model=RegistrantsResponse)
async def list_users(
    principal: Principal = require_role(Role.ADMIN, "admin.list_users"),
    services: Services = Depends(get_services),
) -> RegistrantsResponse:
    """List every registered individual and organization."""
    result = services.registration.list_registrants()
    services.audit.log_access(
        action="admin.list_users",
        principal_id=principal.account_id,
        details=result["counts"],
    )
    return RegistrantsResponse(message="Users and organizations retrieved successfully", **result)
