"""Identity, role resolution and authorization."""

from achievo.auth.guard import (
    AuthorizationGuard,
    Grant,
    allow_set_allows,
    hierarchy_allows,
    require_auth,
    require_authenticated,
    require_role,
)
from achievo.auth.identity import Principal, WalletHeaderBackend
from achievo.auth.resolver import RoleResolver
from achievo.auth.roles import ROLE_LEVELS, ROLE_PERMISSIONS, Role, RoleResolution

__all__ = [
    "AuthorizationGuard",
    "Grant",
    "allow_set_allows",
    "hierarchy_allows",
    "require_auth",
    "require_authenticated",
    "require_role",
    "Principal",
    "WalletHeaderBackend",
    "RoleResolver",
    "ROLE_LEVELS",
    "ROLE_PERMISSIONS",
    "Role",
    "RoleResolution",
]
