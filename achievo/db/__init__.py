"""Database module for the Achievo index mirror."""

from achievo.db.models import (
    Base,
    Certificate,
    NFTCertificate,
    Organization,
    Reward,
    Transaction,
    User,
    COLLECTIONS,
    verification_fields,
)
from achievo.db.session import build_engine, build_session_factory, init_database

__all__ = [
    "Base",
    "Certificate",
    "NFTCertificate",
    "Organization",
    "Reward",
    "Transaction",
    "User",
    "COLLECTIONS",
    "verification_fields",
    "build_engine",
    "build_session_factory",
    "init_database",
]
