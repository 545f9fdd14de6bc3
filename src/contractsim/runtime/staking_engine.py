# src/contractsim/runtime/staking_engine.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

from contractsim.ledger.state import Ledger
from contractsim.ledger.types import Amount, ClaimData, StakeData, UnstakeData
from contractsim.runtime.errors import InsufficientFunds, InsufficientStake, ValidationError

Json = Dict[str, Any]

DEFAULT_APY = 15.5
DEFAULT_REWARD_RATE = 0.00001
SECONDS_PER_YEAR = 365 * 24 * 60 * 60

# Float slack when comparing a claim against the settled pending balance.
_CLAIM_EPSILON = 1e-9


def reward_accrual(staking_balance: Amount, elapsed_seconds: float, apy: float) -> float:
    """Linear approximation of continuous compounding."""
    if staking_balance <= 0 or elapsed_seconds <= 0:
        return 0.0
    return float(staking_balance) * (float(apy) / 100.0) * (float(elapsed_seconds) / SECONDS_PER_YEAR)


@dataclass(slots=True)
class StakeRecord:
    staked_amount: Amount
    last_reward_time_ms: int
    pending_rewards: float = 0.0


class StakingEngine:
    """Stake pool with server-side reward accrual.

    A participant is present while stakedAmount > 0. Accrual is settled into
    pending_rewards on every stake change and on claim; reads recompute from
    last_reward_time without mutating. Rewards earned before a full unstake
    stay claimable.
    """

    def __init__(self, ledger: Ledger, *, apy: float = DEFAULT_APY, reward_rate: float = DEFAULT_REWARD_RATE) -> None:
        self._ledger = ledger
        self._clock = ledger.clock
        self.apy = float(apy)
        self.reward_rate = float(reward_rate)
        self._participants: Dict[str, StakeRecord] = {}
        self._carried: Dict[str, float] = {}
        self._total_staked: Amount = 0

    @property
    def total_staked(self) -> Amount:
        return self._total_staked

    def participant(self, address: str) -> Optional[StakeRecord]:
        return self._participants.get(address)

    def _settle(self, rec: StakeRecord, now_ms: int) -> None:
        elapsed_s = max(0, now_ms - rec.last_reward_time_ms) / 1000.0
        rec.pending_rewards += reward_accrual(rec.staked_amount, elapsed_s, self.apy)
        rec.last_reward_time_ms = now_ms

    def _drop(self, address: str, rec: StakeRecord) -> None:
        if rec.pending_rewards > 0:
            self._carried[address] = self._carried.get(address, 0.0) + rec.pending_rewards
        del self._participants[address]

    def add_stake(self, address: str, amount: Amount) -> StakeRecord:
        if amount <= 0:
            raise ValidationError("Invalid staking amount", {"amount": amount})

        now = self._clock.now_ms()
        rec = self._participants.get(address)
        if rec is None:
            rec = StakeRecord(staked_amount=0, last_reward_time_ms=now)
            self._participants[address] = rec
        else:
            self._settle(rec, now)

        rec.staked_amount += amount
        self._total_staked += amount
        self._ledger.append_transaction(StakeData(amount=amount), sender=address)
        return rec

    def remove_stake(self, address: str, amount: Amount) -> Optional[StakeRecord]:
        """Returns the remaining record, or None once the stake reaches zero."""
        rec = self._participants.get(address)
        if rec is None or rec.staked_amount < amount:
            raise InsufficientStake("Insufficient staked amount", {"address": address, "amount": amount})

        self._settle(rec, self._clock.now_ms())
        rec.staked_amount -= amount
        self._total_staked -= amount

        remaining: Optional[StakeRecord] = rec
        if rec.staked_amount == 0:
            self._drop(address, rec)
            remaining = None

        self._ledger.append_transaction(UnstakeData(amount=amount), sender=address)
        return remaining

    def slash(self, address: str, amount: Amount) -> Amount:
        """Burn up to `amount` from a participant's stake. Returns the amount burned."""
        rec = self._participants.get(address)
        if rec is None or amount <= 0:
            return 0
        self._settle(rec, self._clock.now_ms())
        burned = min(amount, rec.staked_amount)
        rec.staked_amount -= burned
        self._total_staked -= burned
        if rec.staked_amount <= 0:
            self._drop(address, rec)
        return burned

    def pending_rewards(self, address: str) -> float:
        pending = self._carried.get(address, 0.0)
        rec = self._participants.get(address)
        if rec is not None:
            elapsed_s = max(0, self._clock.now_ms() - rec.last_reward_time_ms) / 1000.0
            pending += rec.pending_rewards + reward_accrual(rec.staked_amount, elapsed_s, self.apy)
        return pending

    def claim(self, address: str, amount: Optional[float] = None) -> float:
        """Settle and release pending rewards. The caller credits the tokens."""
        rec = self._participants.get(address)
        if rec is not None:
            self._settle(rec, self._clock.now_ms())

        available = self._carried.get(address, 0.0) + (rec.pending_rewards if rec is not None else 0.0)
        if amount is None:
            amount = available
            if amount <= 0:
                raise InsufficientFunds("No rewards available to claim", {"address": address})
        elif amount <= 0:
            raise ValidationError("Invalid claim amount", {"amount": amount})
        elif amount > available + _CLAIM_EPSILON:
            raise InsufficientFunds(
                "Claim exceeds pending rewards",
                {"address": address, "amount": amount, "pending": available},
            )
        amount = min(float(amount), available)

        remaining = amount
        carried = self._carried.pop(address, 0.0)
        take = min(carried, remaining)
        remaining -= take
        if carried - take > 0:
            self._carried[address] = carried - take
        if rec is not None and remaining > 0:
            rec.pending_rewards = max(0.0, rec.pending_rewards - remaining)

        self._ledger.append_transaction(ClaimData(amount=amount), sender=address)
        return amount

    def staking_info(self) -> Json:
        return {
            "totalStaked": self._total_staked,
            "apy": self.apy,
            "rewardRate": self.reward_rate,
            "poolSize": len(self._participants),
        }
