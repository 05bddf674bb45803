"""SQLAlchemy ORM models for the Achievo index mirror.

Each model is one index-store collection:
- users (individual registrants)
- organizations (registrants awaiting or holding verification)
- certificates (mirror of ledger-issued certificates)
- rewards (mirror of ledger-granted rewards)
- nft_certificates (mirror of minted NFT certificates)
- transactions (write-only payment log)

Role assignments live only on the ledger and have no model here.
"""

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import JSON, Boolean, Column, DateTime, String, Text, event
from sqlalchemy.orm import DeclarativeBase


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for all index documents."""

    def to_dict(self) -> dict[str, Any]:
        """Render the row as a plain document."""
        doc: dict[str, Any] = {}
        for column in self.__table__.columns:
            value = getattr(self, column.key)
            if isinstance(value, datetime):
                value = value.isoformat()
            doc[column.key] = value
        return doc


class User(Base):
    """Individual registrant.

    Email is unique only by convention: the registration saga checks for an
    existing row before writing, but there is no constraint, so two
    concurrent registrations can both succeed.
    """

    __tablename__ = "users"

    id = Column(String(36), primary_key=True)
    name = Column(String(255), nullable=False)
    dob = Column(String(32), nullable=False)
    email = Column(String(255), nullable=False, index=True)
    wallet_address = Column(String(64), nullable=False, index=True)
    type = Column(String(32), default="individual", nullable=False)
    status = Column(String(32), default="active", nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    def __repr__(self) -> str:
        return f"<User(id={self.id!r}, email={self.email!r}, wallet={self.wallet_address!r})>"


class Organization(Base):
    """Organization registrant.

    ``verified`` and ``status`` move together: verified is true exactly when
    status is "verified". Use :func:`verification_fields` to build updates.
    """

    __tablename__ = "organizations"

    id = Column(String(36), primary_key=True)
    name = Column(String(255), nullable=False)
    contact_info = Column(Text, nullable=False)
    wallet_address = Column(String(64), nullable=False, index=True)
    type = Column(String(32), default="organization", nullable=False)
    verified = Column(Boolean, default=False, nullable=False)
    status = Column(String(32), default="pending", nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    verified_at = Column(DateTime, nullable=True)

    def __repr__(self) -> str:
        return f"<Organization(id={self.id!r}, wallet={self.wallet_address!r}, status={self.status!r})>"


class Certificate(Base):
    """Mirror of a ledger-issued certificate.

    Written once, after the ledger call succeeded, so ``blockchain_id`` is
    always populated. ``revoked`` is terminal.
    """

    __tablename__ = "certificates"

    id = Column(String(36), primary_key=True)
    learner_wallet = Column(String(64), nullable=False, index=True)
    learner_name = Column(String(255), nullable=False)
    course_id = Column(String(128), nullable=True)
    course_name = Column(String(255), nullable=False)
    organization_id = Column(String(64), nullable=False, index=True)
    skills = Column(JSON, default=list, nullable=False)
    grade = Column(String(32), nullable=True)
    blockchain_id = Column(JSON, nullable=False)  # whatever the contract returned
    metadata_cid = Column(String(128), nullable=False)
    ipfs_url = Column(String(512), nullable=True)
    status = Column(String(32), default="active", nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, nullable=True)
    revoked_at = Column(DateTime, nullable=True)
    revocation_reason = Column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<Certificate(id={self.id!r}, blockchain_id={self.blockchain_id!r}, status={self.status!r})>"


class Reward(Base):
    """Mirror of a ledger-granted reward. Never mutated."""

    __tablename__ = "rewards"

    id = Column(String(36), primary_key=True)
    blockchain_id = Column(JSON, nullable=False)
    learner_wallet = Column(String(64), nullable=False, index=True)
    milestone = Column(String(255), nullable=False)
    amount = Column(String(64), nullable=False)
    granter_wallet = Column(String(64), nullable=False)
    status = Column(String(32), default="active", nullable=False)
    granted_at = Column(DateTime, default=utcnow, nullable=False)

    def __repr__(self) -> str:
        return f"<Reward(id={self.id!r}, learner={self.learner_wallet!r}, milestone={self.milestone!r})>"


class NFTCertificate(Base):
    """Mirror of a minted NFT certificate; owner changes on transfer."""

    __tablename__ = "nft_certificates"

    id = Column(String(36), primary_key=True)
    token_id = Column(String(128), nullable=False, index=True)
    owner_id = Column(String(64), nullable=False, index=True)
    minter_org = Column(String(64), nullable=False)
    # "metadata" is reserved on declarative classes
    token_metadata = Column("metadata", JSON, nullable=False)
    certificate_id = Column(String(36), nullable=True)
    status = Column(String(32), default="active", nullable=False)
    minted_at = Column(DateTime, default=utcnow, nullable=False)
    transferred_at = Column(DateTime, nullable=True)
    transfer_memo = Column(Text, nullable=True)

    def to_dict(self) -> dict[str, Any]:
        doc = super().to_dict()
        doc["metadata"] = doc.pop("token_metadata")
        return doc

    def __repr__(self) -> str:
        return f"<NFTCertificate(token_id={self.token_id!r}, owner={self.owner_id!r})>"


class Transaction(Base):
    """Write-only payment log entry."""

    __tablename__ = "transactions"

    id = Column(String(36), primary_key=True)
    amount = Column(String(64), nullable=False)
    sender = Column(String(64), nullable=False, index=True)
    receiver = Column(String(64), nullable=False)
    purpose = Column(String(255), default="Payment", nullable=False)
    status = Column(String(32), nullable=False)
    processed_at = Column(DateTime, default=utcnow, nullable=False)
    blockchain_processed = Column(Boolean, default=False, nullable=False)
    transaction_hash = Column(String(128), nullable=True)

    def __repr__(self) -> str:
        return f"<Transaction(id={self.id!r}, sender={self.sender!r}, status={self.status!r})>"


# Collection name -> model. Document keys that differ from attribute names
# are translated by the index store.
COLLECTIONS: dict[str, type[Base]] = {
    "users": User,
    "organizations": Organization,
    "certificates": Certificate,
    "rewards": Reward,
    "nft_certificates": NFTCertificate,
    "transactions": Transaction,
}

DOCUMENT_KEY_ALIASES: dict[str, dict[str, str]] = {
    "nft_certificates": {"metadata": "token_metadata"},
}


ORGANIZATION_STATUSES = ("pending", "verified", "rejected")


def verification_fields(status: str, at: datetime | None = None) -> dict[str, Any]:
    """Build the organization fields for a verification decision.

    The only way organization verification state is written, so ``verified``
    and ``status`` cannot drift apart.
    """
    if status not in ORGANIZATION_STATUSES:
        raise ValueError(f"Unknown organization status: {status!r}")
    fields: dict[str, Any] = {"status": status, "verified": status == "verified"}
    if status != "pending":
        fields["verified_at"] = at or utcnow()
    return fields


@event.listens_for(Organization, "before_insert")
@event.listens_for(Organization, "before_update")
def check_verification_invariant(mapper, connection, target: Organization) -> None:
    """Refuse to persist an organization whose flag and status disagree."""
    if bool(target.verified) != (target.status == "verified"):
        raise ValueError(
            f"Organization {target.id}: verified={target.verified!r} "
            f"inconsistent with status={target.status!r}"
        )


@event.listens_for(User.email, "set", propagate=True, retval=True)
def normalize_email(target: User, value: str, oldvalue: str, initiator) -> str:
    """Normalize email to lowercase."""
    if value is not None:
        return value.lower()
    return value
