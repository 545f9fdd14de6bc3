from __future__ import annotations

from fastapi import APIRouter, Request

from contractsim.api.routes_parts.common import _actor, _executor
from contractsim.api.schemas import BidRequest

router = APIRouter()


@router.get("/auctions")
def auctions_list(request: Request):
    return {"success": True, "auctions": _executor(request).list_auctions()}


@router.post("/auctions/bid")
def auctions_bid(body: BidRequest, request: Request):
    bidder = _actor(request, body.bidder, field="bidder")
    auction = _executor(request).place_bid(body.auctionId, body.amount, bidder)
    return {"success": True, "auction": auction.to_json()}


@router.post("/auctions/{auction_id}/finalize")
def auctions_finalize(auction_id: int, request: Request):
    auction = _executor(request).finalize_auction(auction_id)
    return {"success": True, "auction": auction.to_json()}
