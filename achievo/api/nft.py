"""NFT certificate endpoints."""
import logging

from fastapi import APIRouter, Depends, Query, Request

from achievo.api.models import (
    ContractMetadataResponse,
    MintNFTRequest,
    MintNFTResponse,
    OwnerTokensResponse,
    TokenResponse,
    TransferNFTRequest,
    TransferNFTResponse,
)
from achievo.auth.guard import require_auth
from achievo.auth.identity import Principal
from achievo.services import Services, get_services

log = logging.getLogger(__name__)
router = APIRouter(prefix="/nft", tags=["nft"])


@router.post("/mint", response_model=MintNFTResponse, status_code=201)
async def mint_nft(
    body: MintNFTRequest,
    http_request: Request,
    principal: Principal = require_auth,
    services: Services = Depends(get_services),
) -> MintNFTResponse:
    """Mint an NFT certificate. Only verified organizations may mint."""
    result = await services.nft.mint(
        principal.account_id,
        receiver_id=body.receiver_id,
        metadata=body.metadata.model_dump(exclude_none=True),
        certificate_id=body.certificate_id,
        request=http_request,
    )
    return MintNFTResponse(
        message="NFT Certificate minted successfully",
        token_id=result["token_id"],
        nft_id=result["nft_id"],
        data=result["nft"],
    )


@router.post("/transfer", response_model=TransferNFTResponse)
async def transfer_nft(
    body: TransferNFTRequest,
    http_request: Request,
    principal: Principal = require_auth,
    services: Services = Depends(get_services),
) -> TransferNFTResponse:
    """Transfer an NFT certificate.

    ``index_updated`` is false when the index had no record of the token.
    """
    result = await services.nft.transfer(
        principal.account_id,
        receiver_id=body.receiver_id,
        token_id=body.token_id,
        memo=body.memo,
        request=http_request,
    )
    return TransferNFTResponse(message="NFT Certificate transferred successfully", **result)


@router.get("/owner/{owner_id}", response_model=OwnerTokensResponse)
async def tokens_for_owner(
    owner_id: str,
    from_index: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=100),
    services: Services = Depends(get_services),
) -> OwnerTokensResponse:
    result = await services.nft.tokens_for_owner(owner_id, from_index=from_index, limit=limit)
    return OwnerTokensResponse(message="NFT certificates retrieved successfully", **result)


@router.get("/token/{token_id}", response_model=TokenResponse)
async def get_token(
    token_id: str,
    services: Services = Depends(get_services),
) -> TokenResponse:
    nft = await services.nft.token(token_id)
    return TokenResponse(message="NFT token retrieved successfully", nft=nft)


@router.get("/metadata", response_model=ContractMetadataResponse)
async def contract_metadata(
    services: Services = Depends(get_services),
) -> ContractMetadataResponse:
    result = await services.nft.contract_metadata()
    return ContractMetadataResponse(message="NFT metadata retrieved successfully", **result)
