"""Reward endpoints."""
import logging

from fastapi import APIRouter, Depends, Request

from achievo.api.models import GrantRewardRequest, GrantRewardResponse, RewardListResponse
from achievo.auth.guard import require_role
from achievo.auth.identity import Principal
from achievo.auth.roles import Role
from achievo.services import Services, get_services

log = logging.getLogger(__name__)
router = APIRouter(prefix="/rewards", tags=["rewards"])


@router.post("/grant", response_model=GrantRewardResponse, status_code=201)
async def grant_reward(
    body: GrantRewardRequest,
    http_request: Request,
    principal: Principal = require_role(Role.MODERATOR, "reward.grant"),
    services: Services = Depends(get_services),
) -> GrantRewardResponse:
    """Grant a milestone reward. The amount is set by the contract."""
    result = await services.rewards.grant(
        principal.account_id, body.learner_wallet, body.milestone, request=http_request
    )
    return GrantRewardResponse(
        message="Reward granted successfully",
        reward_id=result["reward_id"],
        blockchain_id=result["blockchain_id"],
        data=result["reward"],
    )


@router.get("/list/{wallet_address}", response_model=RewardListResponse)
async def list_rewards(
    wallet_address: str,
    services: Services = Depends(get_services),
) -> RewardListResponse:
    rewards = services.rewards.list_for_learner(wallet_address)
    return RewardListResponse(message="Rewards retrieved successfully", count=len(rewards), rewards=rewards)
