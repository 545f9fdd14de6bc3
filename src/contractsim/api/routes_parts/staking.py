from __future__ import annotations

from fastapi import APIRouter, Request

from contractsim.api.routes_parts.common import _actor, _executor
from contractsim.api.schemas import ClaimRequest, StakeRequest

router = APIRouter()


@router.get("/staking/info")
def staking_info(request: Request):
    return _executor(request).staking_info()


@router.post("/staking/stake")
def staking_stake(body: StakeRequest, request: Request):
    user = _actor(request, body.user, field="user")
    _executor(request).stake(user, body.amount)
    return {"success": True, "message": "Tokens staked successfully"}


@router.post("/staking/unstake")
def staking_unstake(body: StakeRequest, request: Request):
    user = _actor(request, body.user, field="user")
    _executor(request).unstake(user, body.amount)
    return {"success": True, "message": "Tokens unstaked successfully"}


@router.get("/staking/rewards/{address}")
def staking_rewards(address: str, request: Request):
    pending = _executor(request).pending_rewards(address)
    return {"success": True, "address": address, "pendingRewards": pending}


@router.post("/staking/claim")
def staking_claim(body: ClaimRequest, request: Request):
    user = _actor(request, body.user, field="user")
    claimed = _executor(request).claim_rewards(user, body.amount)
    return {"success": True, "message": "Rewards claimed successfully", "amount": claimed}
