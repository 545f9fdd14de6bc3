from __future__ import annotations

from fastapi import APIRouter, Request

from contractsim.api.routes_parts.common import _executor, _int_param

router = APIRouter()


@router.post("/user/initialize")
def user_initialize(request: Request):
    user = _executor(request).initialize_user()
    return {"success": True, "user": user.to_json()}


@router.get("/user/{address}")
def user_get(address: str, request: Request):
    user = _executor(request).get_user(address)
    return {"success": True, "user": user.to_json()}


@router.get("/stats")
def network_stats(request: Request):
    return _executor(request).network_stats()


@router.get("/gas-price")
def gas_price(request: Request):
    return {"success": True, "gasPrice": _executor(request).gas_price()}


@router.get("/transactions")
def transactions(request: Request):
    limit = _int_param(request.query_params.get("limit"), 50)
    limit = max(1, min(500, limit))
    return {"success": True, "transactions": _executor(request).recent_transactions(limit)}


@router.post("/blocks/mine")
def mine_block(request: Request):
    return {"success": True, "block": _executor(request).mine_block()}
