# Achievo Core - exceptions and logging

from achievo.core.exceptions import (
    AchievoError,
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    IntegrationError,
    LedgerCallError,
    LedgerUnavailableError,
    MirrorWriteError,
    NotFoundError,
    RoleUnavailableError,
    ValidationError,
)
from achievo.core.logging import configure_logging, JsonFormatter

__all__ = [
    "AchievoError",
    "AuthenticationError",
    "AuthorizationError",
    "ConflictError",
    "IntegrationError",
    "LedgerCallError",
    "LedgerUnavailableError",
    "MirrorWriteError",
    "NotFoundError",
    "RoleUnavailableError",
    "ValidationError",
    "configure_logging",
    "JsonFormatter",
]
