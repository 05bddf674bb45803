"""API models for Achievo.

Pydantic models for API requests and responses. Ledger-assigned
identifiers are typed ``Any``: the contract decides their shape.
"""
from typing import Any, Literal, Optional

from pydantic import BaseModel, EmailStr, Field


# =============================================================================
# Request Models
# =============================================================================


class RegisterIndividualRequest(BaseModel):
    name: str = Field(..., description="Full name")
    dob: str = Field(..., description="Date of birth")
    email: EmailStr = Field(..., description="Contact email, unique per index")


class RegisterOrganizationRequest(BaseModel):
    name: str = Field(..., description="Organization name")
    contact_info: str = Field(..., description="Contact details")


class VerifyOrganizationRequest(BaseModel):
    organization_id: str = Field(..., description="Index id of the organization")
    status: Literal["verified", "rejected"] = Field("verified", description="Decision")


class IssueCertificateRequest(BaseModel):
    """Request to issue a certificate.

    ``organization_id`` is the issuing organization's ledger account.
    """

    learner_wallet: str = Field(..., description="Learner's ledger account")
    learner_name: str
    course_name: str
    organization_id: str = Field(..., description="Issuing organization's ledger account")
    course_id: Optional[str] = None
    skills: list[str] = Field(default_factory=list)
    grade: Optional[str] = None


class UpdateCertificateStatusRequest(BaseModel):
    status: str = Field(..., description="pending, active or revoked")


class RevokeCertificateRequest(BaseModel):
    reason: Optional[str] = Field(None, description="Revocation reason")


class NFTMetadata(BaseModel):
    """NEP-177 token metadata supplied by the minter."""

    title: Optional[str] = None
    description: Optional[str] = None
    media: Optional[str] = None
    media_hash: Optional[str] = None
    copies: Optional[int] = None
    reference: Optional[str] = None
    reference_hash: Optional[str] = None


class MintNFTRequest(BaseModel):
    receiver_id: str = Field(..., description="Ledger account receiving the token")
    metadata: NFTMetadata
    certificate_id: Optional[str] = Field(None, description="Certificate this token represents")


class TransferNFTRequest(BaseModel):
    receiver_id: str
    token_id: str
    memo: Optional[str] = None


class GrantRewardRequest(BaseModel):
    learner_wallet: str
    milestone: str


class AssignRoleRequest(BaseModel):
    account_id: str
    role: str


class RemoveRoleRequest(BaseModel):
    account_id: str


class ProcessPaymentRequest(BaseModel):
    recipient_id: str
    amount: str = Field(..., description="Amount in NEAR, e.g. '1.5'")
    purpose: Optional[str] = None
    transaction_hash: Optional[str] = Field(
        None, description="Caller-claimed hash, recorded unverified in log_only mode"
    )


# =============================================================================
# Response Models
# =============================================================================


class RegisterIndividualResponse(BaseModel):
    message: str
    user_id: str
    data: dict[str, Any]


class RegisterOrganizationResponse(BaseModel):
    message: str
    organization_id: str
    data: dict[str, Any]


class VerifyOrganizationResponse(BaseModel):
    message: str
    organization_id: str
    status: str
    changed: bool


class IssueCertificateResponse(BaseModel):
    message: str
    certificate_id: str
    blockchain_id: Any
    ipfs_cid: str
    data: dict[str, Any]


class CertificateChangeResponse(BaseModel):
    message: str
    certificate_id: str
    new_status: str
    already_revoked: bool = False
    data: dict[str, Any]


class CertificateResponse(BaseModel):
    message: str
    certificate: dict[str, Any]


class CertificateListResponse(BaseModel):
    message: str
    count: int
    certificates: list[dict[str, Any]]


class MintNFTResponse(BaseModel):
    message: str
    token_id: Any
    nft_id: str
    data: dict[str, Any]


class TransferNFTResponse(BaseModel):
    message: str
    token_id: str
    new_owner: str
    index_updated: bool


class OwnerTokensResponse(BaseModel):
    message: str
    owner_id: str
    nfts: Any
    total_supply: Any
    pagination: dict[str, int]


class TokenResponse(BaseModel):
    message: str
    nft: Any


class ContractMetadataResponse(BaseModel):
    message: str
    metadata: Any
    total_supply: Any


class GrantRewardResponse(BaseModel):
    message: str
    reward_id: str
    blockchain_id: Any
    data: dict[str, Any]


class RewardListResponse(BaseModel):
    message: str
    count: int
    rewards: list[dict[str, Any]]


class RoleChangeResponse(BaseModel):
    message: str
    account_id: str
    role: Optional[str] = None
    assigned_by: Optional[str] = None
    removed_by: Optional[str] = None


class RoleResolutionModel(BaseModel):
    status: Literal["resolved", "unavailable"]
    role: Optional[str] = None
    source: Optional[str] = None
    reason: Optional[str] = None


class UserRoleResponse(BaseModel):
    message: str
    account_id: str
    role: Optional[str] = None
    permissions: list[str]
    resolution: RoleResolutionModel


class ProcessPaymentResponse(BaseModel):
    message: str
    transaction_id: str
    mode: str
    data: dict[str, Any]


class ValidationSources(BaseModel):
    ledger_confirms: bool
    index_status: str
    agree: bool


class ValidateCertificateResponse(BaseModel):
    message: str
    certificate_id: str
    valid: bool
    blockchain_data: Any
    local_data: dict[str, Any]
    sources: ValidationSources


class CertificateHistoryResponse(BaseModel):
    message: str
    certificate_id: str
    blockchain_history: Any
    history_available: bool
    local_data: dict[str, Any]


class RegistrantsResponse(BaseModel):
    message: str
    users: list[dict[str, Any]]
    organizations: list[dict[str, Any]]
    counts: dict[str, int]


class HealthResponse(BaseModel):
    ok: bool
    index_store: bool
    contract: str


class VersionResponse(BaseModel):
    version: str
    network_id: str
    contract: str
    payment_mode: str
