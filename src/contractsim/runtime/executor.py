# src/contractsim/runtime/executor.py
from __future__ import annotations

import logging
import math
import threading
from typing import Any, Dict, List, Optional

from contractsim.ledger.state import Ledger
from contractsim.ledger.types import Amount, SlashData, User, is_valid_address
from contractsim.runtime.auction_engine import DEFAULT_CATALOG, Auction, AuctionEngine, load_auction_catalog
from contractsim.runtime.clock import Clock, SystemClock
from contractsim.runtime.errors import InsufficientFunds, InsufficientStake, ValidationError
from contractsim.runtime.event_log import log_event
from contractsim.runtime.gov_engine import SYSTEM_SENDER, GovernanceEngine, Proposal
from contractsim.runtime.metrics import inc_counter, set_gauge
from contractsim.runtime.sim_config import SimConfig, default_sim_config
from contractsim.runtime.staking_engine import StakingEngine

Json = Dict[str, Any]

log = logging.getLogger("contractsim.executor")

SLASH_REPUTATION_PENALTY = 20
SLASH_REPUTATION_THRESHOLD = 50
DEFAULT_SLASH_PERCENTAGE = 0.1


def _require_address(address: Any, *, field: str) -> str:
    if not is_valid_address(address):
        raise ValidationError("Invalid user address format", {"field": field, "address": address})
    return str(address)


def _is_number(v: Any) -> bool:
    return isinstance(v, (int, float)) and not isinstance(v, bool) and math.isfinite(v)


def _require_positive(amount: Any, *, message: str) -> Amount:
    if not _is_number(amount) or amount <= 0:
        raise ValidationError(message, {"amount": amount})
    return amount


class SimExecutor:
    """One ledger plus the three engines, behind a single lock.

    Each public method is one logical operation: multi-step work such as a
    proposal plus its creation fee, or a bid plus its token lock, runs under
    the lock so concurrent requests serialize.
    """

    def __init__(self, *, cfg: SimConfig, clock: Clock, ledger: Ledger, catalog=DEFAULT_CATALOG) -> None:
        self.cfg = cfg
        self.clock = clock
        self.ledger = ledger
        self.governance = GovernanceEngine(
            ledger,
            voting_period_ms=cfg.voting_period_ms,
            min_proposal_balance=cfg.min_proposal_balance,
        )
        self.staking = StakingEngine(ledger, apy=cfg.staking_apy, reward_rate=cfg.reward_rate)
        self.auctions = AuctionEngine(ledger, catalog)
        self._lock = threading.RLock()

    def _done(self, op: str, **fields: Any) -> None:
        inc_counter(f"ops_{op}_total")
        set_gauge("current_block", self.ledger.block_number)
        set_gauge("total_staked", self.staking.total_staked)
        log_event(log, op, **fields)

    # ---- Users / network ----

    def initialize_user(self) -> User:
        with self._lock:
            user = self.ledger.create_user()
            self._done("user_initialized", address=user.address)
            return user

    def get_user(self, address: str) -> User:
        with self._lock:
            return self.ledger.require_user(address)

    def network_stats(self) -> Json:
        with self._lock:
            return self.ledger.network_stats()

    def gas_price(self) -> int:
        with self._lock:
            return self.ledger.gas_price()

    def recent_transactions(self, limit: int = 50) -> List[Json]:
        with self._lock:
            return [tx.to_json() for tx in self.ledger.recent_transactions(limit)]

    def mine_block(self) -> Json:
        with self._lock:
            block = self.ledger.mine_block()
            self._done("block_mined", number=block["number"])
            return block

    # ---- Governance ----

    def list_proposals(self) -> List[Json]:
        with self._lock:
            return [p.to_json() for p in self.governance.list_proposals()]

    def create_proposal(self, title: str, description: str, creator: str) -> Proposal:
        _require_address(creator, field="creator")
        with self._lock:
            user = self.ledger.require_user(creator)
            pr = self.governance.create_proposal(title, description, creator)
            self.ledger.update_balance(creator, "token_balance", user.token_balance - self.cfg.proposal_fee)
            self._done("proposal_created", proposal_id=pr.id, creator=creator)
            return pr

    def vote(self, proposal_id: int, support: bool, voter: str, voting_power: Optional[Amount] = None) -> Proposal:
        _require_address(voter, field="voter")
        if voting_power is not None and (not _is_number(voting_power) or voting_power < 0):
            raise ValidationError("Invalid voting power", {"voting_power": voting_power})
        with self._lock:
            user = self.ledger.require_user(voter)
            power = user.voting_power if voting_power is None else voting_power
            pr = self.governance.vote(proposal_id, support, voter, power)
            self._done("vote_cast", proposal_id=proposal_id, voter=voter, support=bool(support), power=power)
            return pr

    def execute_proposal(self, proposal_id: int) -> Proposal:
        with self._lock:
            pr = self.governance.execute_proposal(proposal_id)
            self._done("proposal_executed", proposal_id=proposal_id, status=pr.status)
            return pr

    # ---- Staking ----

    def staking_info(self) -> Json:
        with self._lock:
            return self.staking.staking_info()

    def stake(self, address: str, amount: Amount) -> User:
        _require_address(address, field="user")
        _require_positive(amount, message="Invalid staking amount")
        with self._lock:
            user = self.ledger.require_user(address)
            if user.token_balance < amount:
                raise InsufficientFunds("Insufficient token balance", {"address": address, "amount": amount})

            new_stake = user.staking_balance + amount
            self.ledger.update_balance(address, "token_balance", user.token_balance - amount)
            self.ledger.update_balance(address, "staking_balance", new_stake)
            self.ledger.update_balance(address, "voting_power", new_stake)
            self.staking.add_stake(address, amount)

            self._done("staked", address=address, amount=amount)
            return user

    def unstake(self, address: str, amount: Amount) -> User:
        _require_address(address, field="user")
        _require_positive(amount, message="Invalid unstaking amount")
        with self._lock:
            user = self.ledger.require_user(address)
            if user.staking_balance < amount:
                raise InsufficientStake("Insufficient staked balance", {"address": address, "amount": amount})

            # Pool first: it raises before any balance moves.
            self.staking.remove_stake(address, amount)
            new_stake = user.staking_balance - amount
            self.ledger.update_balance(address, "token_balance", user.token_balance + amount)
            self.ledger.update_balance(address, "staking_balance", new_stake)
            self.ledger.update_balance(address, "voting_power", new_stake)

            self._done("unstaked", address=address, amount=amount)
            return user

    def pending_rewards(self, address: str) -> float:
        _require_address(address, field="user")
        with self._lock:
            self.ledger.require_user(address)
            return self.staking.pending_rewards(address)

    def claim_rewards(self, address: str, amount: Optional[float] = None) -> float:
        _require_address(address, field="user")
        if amount is not None:
            _require_positive(amount, message="Invalid claim amount")
        with self._lock:
            user = self.ledger.require_user(address)
            claimed = self.staking.claim(address, amount)
            self.ledger.update_balance(address, "token_balance", user.token_balance + claimed)
            self._done("rewards_claimed", address=address, amount=claimed)
            return claimed

    # ---- Slashing ----

    def check_slashing_conditions(self, address: str) -> Json:
        _require_address(address, field="user")
        with self._lock:
            user = self.ledger.require_user(address)
            if user.reputation < SLASH_REPUTATION_THRESHOLD:
                return {
                    "shouldSlash": True,
                    "reason": "Low reputation score",
                    "penalty": user.staking_balance * DEFAULT_SLASH_PERCENTAGE,
                }
            return {"shouldSlash": False}

    def apply_slashing(self, address: str, reason: str, percentage: float = DEFAULT_SLASH_PERCENTAGE) -> Amount:
        """Burn a share of a participant's stake and dock reputation.

        Returns the slashed amount, 0 when nothing is staked. Never triggered
        automatically.
        """
        _require_address(address, field="user")
        if not 0 < percentage <= 1:
            raise ValidationError("Slash percentage must be in (0, 1]", {"percentage": percentage})
        with self._lock:
            user = self.ledger.require_user(address)
            if user.staking_balance == 0:
                return 0

            slash_amount = user.staking_balance * percentage
            new_stake = user.staking_balance - slash_amount
            self.staking.slash(address, slash_amount)
            self.ledger.update_balance(address, "staking_balance", new_stake)
            self.ledger.update_balance(address, "voting_power", new_stake)
            self.ledger.update_balance(address, "reputation", user.reputation - SLASH_REPUTATION_PENALTY)
            self.ledger.append_transaction(
                SlashData(reason=str(reason), amount=slash_amount),
                sender=SYSTEM_SENDER,
                recipient=address,
            )

            self._done("slashed", address=address, amount=slash_amount, reason=str(reason))
            return slash_amount

    # ---- Auctions ----

    def list_auctions(self) -> List[Json]:
        with self._lock:
            return [a.to_json() for a in self.auctions.list_auctions()]

    def place_bid(self, auction_id: int, amount: Amount, bidder: str) -> Auction:
        _require_address(bidder, field="bidder")
        _require_positive(amount, message="Invalid bid amount")
        with self._lock:
            user = self.ledger.require_user(bidder)
            auction = self.auctions.place_bid(auction_id, amount, bidder)
            # Tokens stay locked; an outbid bidder gets nothing back.
            self.ledger.update_balance(bidder, "token_balance", user.token_balance - amount)
            self._done("bid_placed", auction_id=auction_id, bidder=bidder, amount=amount)
            return auction

    def finalize_auction(self, auction_id: int) -> Auction:
        with self._lock:
            auction = self.auctions.finalize_auction(auction_id)
            self._done(
                "auction_finalized",
                auction_id=auction_id,
                winner=auction.highest_bidder,
                amount=auction.current_bid,
            )
            return auction


def build_executor(cfg: Optional[SimConfig] = None, *, clock: Optional[Clock] = None) -> SimExecutor:
    cfg = cfg or default_sim_config()
    clock = clock or SystemClock()
    catalog = load_auction_catalog(cfg.auction_catalog_path) if cfg.auction_catalog_path else DEFAULT_CATALOG
    return SimExecutor(cfg=cfg, clock=clock, ledger=Ledger(clock), catalog=catalog)
