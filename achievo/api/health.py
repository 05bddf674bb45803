"""Health check endpoints."""
import logging

from fastapi import APIRouter, Depends
from sqlalchemy.exc import SQLAlchemyError

from achievo import __version__
from achievo.api.models import HealthResponse, VersionResponse
from achievo.clients.index import IndexStoreError
from achievo.config import LEDGER_NETWORK_ID
from achievo.services import Services, get_services

log = logging.getLogger(__name__)
router = APIRouter(tags=["health"])


@router.get("/healthz", response_model=HealthResponse)
async def healthz(services: Services = Depends(get_services)) -> HealthResponse:
    """Health check endpoint.

    Reports whether the index store answers. The ledger and content store
    are not contacted.
    """
    try:
        services.index.query("organizations", "wallet_address", "")
        index_ok = True
    except (IndexStoreError, SQLAlchemyError) as e:
        log.warning(f"Health check warning: {e}")
        index_ok = False
    return HealthResponse(ok=index_ok, index_store=index_ok, contract=services.ledger.contract_id)


@router.get("/version", response_model=VersionResponse)
async def version(services: Services = Depends(get_services)) -> VersionResponse:
    return VersionResponse(
        version=__version__,
        network_id=LEDGER_NETWORK_ID,
        contract=services.ledger.contract_id,
        payment_mode=services.payments.mode,
    )
