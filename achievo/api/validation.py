"""Certificate validation endpoints (no authentication)."""
import logging

from fastapi import APIRouter, Depends

from achievo.api.models import CertificateHistoryResponse, ValidateCertificateResponse
from achievo.services import Services, get_services

log = logging.getLogger(__name__)
router = APIRouter(prefix="/validation", tags=["validation"])


@router.get("/certificate/{certificate_id}", response_model=ValidateCertificateResponse)
async def validate_certificate(
    certificate_id: str,
    services: Services = Depends(get_services),
) -> ValidateCertificateResponse:
    result = await services.validation.validate(certificate_id)
    return ValidateCertificateResponse(message="Certificate validation successful", **result)


@router.get("/certificate/{certificate_id}/history", response_model=CertificateHistoryResponse)
async def certificate_history(
    certificate_id: str,
    services: Services = Depends(get_services),
) -> CertificateHistoryResponse:
    result = await services.validation.history(certificate_id)
    return CertificateHistoryResponse(message="Certificate history retrieved", **result)
