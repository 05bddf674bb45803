"""Certificate endpoints.

Writes require an identity; which identities may change a given
certificate is decided by the orchestrator once it has read the record.
"""
import logging

from fastapi import APIRouter, Depends, Request

from achievo.api.models import (
    CertificateChangeResponse,
    CertificateListResponse,
    CertificateResponse,
    IssueCertificateRequest,
    IssueCertificateResponse,
    RevokeCertificateRequest,
    UpdateCertificateStatusRequest,
)
from achievo.auth.guard import require_auth
from achievo.auth.identity import Principal
from achievo.services import Services, get_services

log = logging.getLogger(__name__)
router = APIRouter(prefix="/certificates", tags=["certificates"])


@router.post("/issue", response_model=IssueCertificateResponse, status_code=201)
async def issue_certificate(
    body: IssueCertificateRequest,
    http_request: Request,
    principal: Principal = require_auth,
    services: Services = Depends(get_services),
) -> IssueCertificateResponse:
    """Issue a certificate: pin metadata, record on ledger, mirror to index."""
    result = await services.certificates.issue(
        principal.account_id,
        learner_wallet=body.learner_wallet,
        learner_name=body.learner_name,
        course_name=body.course_name,
        organization_id=body.organization_id,
        course_id=body.course_id,
        skills=body.skills,
        grade=body.grade,
        request=http_request,
    )
    return IssueCertificateResponse(
        message="Certificate issued successfully",
        certificate_id=result["certificate_id"],
        blockchain_id=result["blockchain_id"],
        ipfs_cid=result["ipfs_cid"],
        data=result["certificate"],
    )


@router.put("/status/{certificate_id}", response_model=CertificateChangeResponse)
async def update_certificate_status(
    certificate_id: str,
    body: UpdateCertificateStatusRequest,
    http_request: Request,
    principal: Principal = require_auth,
    services: Services = Depends(get_services),
) -> CertificateChangeResponse:
    result = await services.certificates.update_status(
        principal.account_id, certificate_id, body.status, request=http_request
    )
    return CertificateChangeResponse(
        message="Certificate status updated successfully",
        certificate_id=certificate_id,
        new_status=result["certificate"]["status"],
        already_revoked=result.get("already_revoked", False),
        data=result["certificate"],
    )


@router.post("/revoke/{certificate_id}", response_model=CertificateChangeResponse)
async def revoke_certificate(
    certificate_id: str,
    http_request: Request,
    body: RevokeCertificateRequest | None = None,
    principal: Principal = require_auth,
    services: Services = Depends(get_services),
) -> CertificateChangeResponse:
    """Revoke a certificate. Repeating the call changes nothing."""
    result = await services.certificates.revoke(
        principal.account_id,
        certificate_id,
        reason=body.reason if body else None,
        request=http_request,
    )
    message = (
        "Certificate already revoked"
        if result["already_revoked"]
        else "Certificate revoked successfully"
    )
    return CertificateChangeResponse(
        message=message,
        certificate_id=certificate_id,
        new_status="revoked",
        already_revoked=result["already_revoked"],
        data=result["certificate"],
    )


@router.get("/learner/{learner_wallet}", response_model=CertificateListResponse)
async def list_learner_certificates(
    learner_wallet: str,
    services: Services = Depends(get_services),
) -> CertificateListResponse:
    certificates = services.certificates.list_for_learner(learner_wallet)
    return CertificateListResponse(
        message="Certificates retrieved successfully",
        count=len(certificates),
        certificates=certificates,
    )


@router.get("/{certificate_id}", response_model=CertificateResponse)
async def get_certificate(
    certificate_id: str,
    services: Services = Depends(get_services),
) -> CertificateResponse:
    return CertificateResponse(
        message="Certificate retrieved successfully",
        certificate=services.certificates.get(certificate_id),
    )
