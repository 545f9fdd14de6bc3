"""contractsim.ledger.types

Ledger record model.

This module defines:
  - User: mutable account record (balances, reputation)
  - TxKind: closed enumeration of transaction kinds
  - one frozen payload dataclass per TxKind (the tagged variant)
  - Transaction: immutable log entry wrapping a payload
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, ClassVar, Dict, Optional, Union

from contractsim.ledger.constants import (
    DEFAULT_GAS,
    INITIAL_ETH_BALANCE,
    INITIAL_REPUTATION,
    INITIAL_TOKEN_BALANCE,
    TX_STATUS_CONFIRMED,
)

Json = Dict[str, Any]

Amount = Union[int, float]

ADDRESS_RE = re.compile(r"^0x[a-fA-F0-9]{40}$")


def is_valid_address(v: Any) -> bool:
    return isinstance(v, str) and bool(ADDRESS_RE.match(v))


def iso_from_ms(ts_ms: int) -> str:
    return datetime.fromtimestamp(int(ts_ms) / 1000, tz=timezone.utc).isoformat()


@dataclass(slots=True)
class User:
    address: str
    created_at_ms: int
    token_balance: Amount = INITIAL_TOKEN_BALANCE
    eth_balance: Amount = INITIAL_ETH_BALANCE
    staking_balance: Amount = 0
    voting_power: Amount = 0
    reputation: Amount = INITIAL_REPUTATION

    def to_json(self) -> Json:
        return {
            "address": self.address,
            "tokenBalance": self.token_balance,
            "ethBalance": self.eth_balance,
            "stakingBalance": self.staking_balance,
            "votingPower": self.voting_power,
            "reputation": self.reputation,
            "createdAt": iso_from_ms(self.created_at_ms),
        }


class TxKind(str, Enum):
    TRANSFER = "transfer"
    STAKE = "stake"
    UNSTAKE = "unstake"
    VOTE = "vote"
    PROPOSAL = "proposal"
    BID = "bid"
    CLAIM = "claim"
    EXECUTION = "execution"
    AUCTION_FINALIZE = "auction_finalize"
    SLASH = "slash"


GAS_TABLE: Dict[TxKind, int] = {
    TxKind.TRANSFER: 21_000,
    TxKind.STAKE: 50_000,
    TxKind.UNSTAKE: 45_000,
    TxKind.VOTE: 60_000,
    TxKind.PROPOSAL: 80_000,
    TxKind.BID: 55_000,
    TxKind.CLAIM: 40_000,
}


def gas_for(kind: TxKind) -> int:
    return int(GAS_TABLE.get(kind, DEFAULT_GAS))


# ---- Payload variants ----


@dataclass(frozen=True, slots=True)
class TransferData:
    amount: Amount

    kind: ClassVar[TxKind] = TxKind.TRANSFER

    def to_json(self) -> Json:
        return {"amount": self.amount}


@dataclass(frozen=True, slots=True)
class StakeData:
    amount: Amount

    kind: ClassVar[TxKind] = TxKind.STAKE

    def to_json(self) -> Json:
        return {"amount": self.amount}


@dataclass(frozen=True, slots=True)
class UnstakeData:
    amount: Amount

    kind: ClassVar[TxKind] = TxKind.UNSTAKE

    def to_json(self) -> Json:
        return {"amount": self.amount}


@dataclass(frozen=True, slots=True)
class VoteData:
    proposal_id: int
    support: bool
    voting_power: Amount

    kind: ClassVar[TxKind] = TxKind.VOTE

    def to_json(self) -> Json:
        return {"proposalId": self.proposal_id, "support": self.support, "votingPower": self.voting_power}


@dataclass(frozen=True, slots=True)
class ProposalData:
    proposal_id: int
    title: str

    kind: ClassVar[TxKind] = TxKind.PROPOSAL

    def to_json(self) -> Json:
        return {"proposalId": self.proposal_id, "title": self.title}


@dataclass(frozen=True, slots=True)
class BidData:
    auction_id: int
    amount: Amount

    kind: ClassVar[TxKind] = TxKind.BID

    def to_json(self) -> Json:
        return {"auctionId": self.auction_id, "amount": self.amount}


@dataclass(frozen=True, slots=True)
class ClaimData:
    amount: Amount

    kind: ClassVar[TxKind] = TxKind.CLAIM

    def to_json(self) -> Json:
        return {"amount": self.amount}


@dataclass(frozen=True, slots=True)
class ExecutionData:
    proposal_id: int
    outcome: str

    kind: ClassVar[TxKind] = TxKind.EXECUTION

    def to_json(self) -> Json:
        return {"proposalId": self.proposal_id, "outcome": self.outcome}


@dataclass(frozen=True, slots=True)
class AuctionFinalizeData:
    auction_id: int
    winner: Optional[str]
    amount: Amount

    kind: ClassVar[TxKind] = TxKind.AUCTION_FINALIZE

    def to_json(self) -> Json:
        return {"auctionId": self.auction_id, "winner": self.winner, "amount": self.amount}


@dataclass(frozen=True, slots=True)
class SlashData:
    reason: str
    amount: Amount

    kind: ClassVar[TxKind] = TxKind.SLASH

    def to_json(self) -> Json:
        return {"reason": self.reason, "amount": self.amount}


TxData = Union[
    TransferData,
    StakeData,
    UnstakeData,
    VoteData,
    ProposalData,
    BidData,
    ClaimData,
    ExecutionData,
    AuctionFinalizeData,
    SlashData,
]


@dataclass(frozen=True, slots=True)
class Transaction:
    hash: str
    data: TxData
    sender: str
    block_number: int
    timestamp_ms: int
    gas_used: int
    recipient: Optional[str] = None
    status: str = TX_STATUS_CONFIRMED

    @property
    def kind(self) -> TxKind:
        return self.data.kind

    def to_json(self) -> Json:
        out: Json = {
            "hash": self.hash,
            "type": self.kind.value,
            "from": self.sender,
            "data": self.data.to_json(),
            "blockNumber": self.block_number,
            "timestamp": self.timestamp_ms,
            "gasUsed": self.gas_used,
            "status": self.status,
        }
        if self.recipient is not None:
            out["to"] = self.recipient
        return out
