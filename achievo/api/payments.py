"""Payment endpoints."""
import logging

from fastapi import APIRouter, Depends, Request

from achievo.api.models import ProcessPaymentRequest, ProcessPaymentResponse
from achievo.auth.guard import require_auth
from achievo.auth.identity import Principal
from achievo.services import Services, get_services

log = logging.getLogger(__name__)
router = APIRouter(prefix="/payments", tags=["payments"])


@router.post("/process", response_model=ProcessPaymentResponse, status_code=201)
async def process_payment(
    body: ProcessPaymentRequest,
    http_request: Request,
    principal: Principal = require_auth,
    services: Services = Depends(get_services),
) -> ProcessPaymentResponse:
    """Pay ``recipient_id`` from the caller's account."""
    result = await services.payments.process(
        principal.account_id,
        recipient_id=body.recipient_id,
        amount=body.amount,
        purpose=body.purpose,
        transaction_hash=body.transaction_hash,
        request=http_request,
    )
    message = (
        "Payment processed successfully on blockchain"
        if result["mode"] == "ledger"
        else "Payment recorded (unverified)"
    )
    return ProcessPaymentResponse(
        message=message,
        transaction_id=result["transaction_id"],
        mode=result["mode"],
        data=result["transaction"],
    )
