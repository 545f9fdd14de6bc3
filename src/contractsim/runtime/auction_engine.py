# src/contractsim/runtime/auction_engine.py
from __future__ import annotations

import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml

from contractsim.ledger.state import Ledger
from contractsim.ledger.types import Amount, AuctionFinalizeData, BidData
from contractsim.runtime.errors import BidTooLow, Expired, InsufficientFunds, InvalidState, NotFound, TooEarly

Json = Dict[str, Any]

STATUS_ACTIVE = "active"
STATUS_COMPLETED = "completed"

SYSTEM_SENDER = "system"


@dataclass(frozen=True, slots=True)
class AuctionSeed:
    id: int
    title: str
    description: str
    starting_bid: Amount
    current_bid: Amount
    highest_bidder: Optional[str]
    end_offset_ms: int
    category: str = ""


DEFAULT_CATALOG: Sequence[AuctionSeed] = (
    AuctionSeed(
        id=1,
        title="Rare Digital Artwork #001",
        description="Exclusive NFT artwork by renowned digital artist",
        starting_bid=50,
        current_bid=125,
        highest_bidder="0x1234567890123456789012345678901234567890",
        end_offset_ms=60 * 60 * 1000,
        category="art",
    ),
    AuctionSeed(
        id=2,
        title="Premium Domain Name",
        description="crypto-future.eth - Perfect for DeFi projects",
        starting_bid=100,
        current_bid=200,
        highest_bidder="0x9876543210987654321098765432109876543210",
        end_offset_ms=2 * 60 * 60 * 1000,
        category="domain",
    ),
    AuctionSeed(
        id=3,
        title="Virtual Land Parcel",
        description="Prime location in the metaverse district",
        starting_bid=300,
        current_bid=450,
        highest_bidder="0xabcdefabcdefabcdefabcdefabcdefabcdefabcd",
        end_offset_ms=30 * 60 * 1000,
        category="land",
    ),
)


def _as_amount(v: Any, *, field: str) -> Amount:
    """Numeric bid field from YAML; quoted numbers are accepted."""
    if isinstance(v, bool):
        raise ValueError(f"{field} must be a number; got: {v!r}")
    if isinstance(v, str):
        s = v.strip()
        try:
            v = int(s)
        except ValueError:
            try:
                v = float(s)
            except ValueError as e:
                raise ValueError(f"{field} must be a number; got: {s!r}") from e
    if not isinstance(v, (int, float)) or not math.isfinite(v) or v < 0:
        raise ValueError(f"{field} must be a finite number >= 0; got: {v!r}")
    return v


def _seed_from_dict(raw: Any) -> AuctionSeed:
    if not isinstance(raw, dict):
        raise ValueError("auction catalog entries must be mappings")
    try:
        seed = AuctionSeed(
            id=int(raw["id"]),
            title=str(raw["title"]),
            description=str(raw.get("description") or ""),
            starting_bid=_as_amount(raw["starting_bid"], field="starting_bid"),
            current_bid=_as_amount(raw.get("current_bid", raw["starting_bid"]), field="current_bid"),
            highest_bidder=raw.get("highest_bidder"),
            end_offset_ms=int(raw["end_offset_ms"]),
            category=str(raw.get("category") or ""),
        )
    except KeyError as e:
        raise ValueError(f"auction catalog entry missing field: {e.args[0]}") from e
    if seed.end_offset_ms <= 0:
        raise ValueError(f"auction {seed.id}: end_offset_ms must be > 0")
    if seed.current_bid < seed.starting_bid:
        raise ValueError(f"auction {seed.id}: current_bid must be >= starting_bid")
    return seed


def load_auction_catalog(path: str) -> List[AuctionSeed]:
    """Read a YAML auction catalog.

    Expected shape:
      auctions:
        - {id: 1, title: "...", starting_bid: 50, current_bid: 125,
           highest_bidder: "0x...", end_offset_ms: 3600000, category: art}
    """
    raw = yaml.safe_load(Path(path).read_text(encoding="utf-8"))
    if not isinstance(raw, dict) or not isinstance(raw.get("auctions"), list):
        raise ValueError("auction catalog must be a mapping with an 'auctions' list")
    seeds = [_seed_from_dict(item) for item in raw["auctions"]]
    ids = [s.id for s in seeds]
    if len(set(ids)) != len(ids):
        raise ValueError("auction catalog ids must be unique")
    return seeds


@dataclass(frozen=True, slots=True)
class Bid:
    bidder: str
    amount: Amount
    timestamp_ms: int

    def to_json(self) -> Json:
        return {"bidder": self.bidder, "amount": self.amount, "timestamp": self.timestamp_ms}


@dataclass(slots=True)
class Auction:
    id: int
    title: str
    description: str
    category: str
    starting_bid: Amount
    current_bid: Amount
    highest_bidder: Optional[str]
    end_time_ms: int
    status: str = STATUS_ACTIVE
    bids: List[Bid] = field(default_factory=list)

    def to_json(self) -> Json:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "category": self.category,
            "startingBid": self.starting_bid,
            "currentBid": self.current_bid,
            "highestBidder": self.highest_bidder,
            "endTime": self.end_time_ms,
            "status": self.status,
            "bids": [b.to_json() for b in self.bids],
        }


class AuctionEngine:
    """Timed English auctions over a fixed catalog: active -> completed.

    Accepted bids lock the bidder's tokens (the caller debits them). Outbid
    bidders are never refunded; there is no escrow.
    """

    def __init__(self, ledger: Ledger, catalog: Sequence[AuctionSeed] = DEFAULT_CATALOG) -> None:
        self._ledger = ledger
        self._clock = ledger.clock
        self._auctions: Dict[int, Auction] = {}

        started = self._clock.now_ms()
        for seed in catalog:
            self._auctions[seed.id] = Auction(
                id=seed.id,
                title=seed.title,
                description=seed.description,
                category=seed.category,
                starting_bid=seed.starting_bid,
                current_bid=seed.current_bid,
                highest_bidder=seed.highest_bidder,
                end_time_ms=started + int(seed.end_offset_ms),
            )

    def _auction(self, auction_id: int) -> Auction:
        a = self._auctions.get(auction_id)
        if a is None:
            raise NotFound("Auction not found", {"auction_id": auction_id})
        return a

    def get(self, auction_id: int) -> Auction:
        return self._auction(auction_id)

    def list_auctions(self) -> List[Auction]:
        return list(self._auctions.values())

    def place_bid(self, auction_id: int, amount: Amount, bidder: str) -> Auction:
        a = self._auction(auction_id)
        if a.status != STATUS_ACTIVE:
            raise InvalidState("Auction is not active", {"auction_id": auction_id, "status": a.status})
        now = self._clock.now_ms()
        if now > a.end_time_ms:
            raise Expired("Auction has ended", {"auction_id": auction_id})
        if amount <= a.current_bid:
            raise BidTooLow(
                "Bid must be higher than current bid",
                {"auction_id": auction_id, "current_bid": a.current_bid, "amount": amount},
            )

        user = self._ledger.get_user(bidder)
        if user is None or user.token_balance < amount:
            raise InsufficientFunds("Insufficient token balance", {"bidder": bidder, "amount": amount})

        a.bids.append(Bid(bidder=bidder, amount=amount, timestamp_ms=now))
        a.current_bid = amount
        a.highest_bidder = bidder

        self._ledger.append_transaction(BidData(auction_id=auction_id, amount=amount), sender=bidder)
        return a

    def finalize_auction(self, auction_id: int) -> Auction:
        a = self._auction(auction_id)
        if self._clock.now_ms() <= a.end_time_ms:
            raise TooEarly("Auction has not ended yet", {"auction_id": auction_id})
        if a.status != STATUS_ACTIVE:
            raise InvalidState("Auction is not active", {"auction_id": auction_id, "status": a.status})

        a.status = STATUS_COMPLETED
        self._ledger.append_transaction(
            AuctionFinalizeData(auction_id=auction_id, winner=a.highest_bidder, amount=a.current_bid),
            sender=SYSTEM_SENDER,
        )
        return a
