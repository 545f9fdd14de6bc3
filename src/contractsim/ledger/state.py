# src/contractsim/ledger/state.py
from __future__ import annotations

import secrets
from typing import Any, Dict, List, Optional

from contractsim.ledger.constants import (
    ADDRESS_HEX_LEN,
    BALANCE_FIELDS,
    BASE_GAS_PRICE,
    GENESIS_BLOCK_NUMBER,
    MINED_BLOCK_TX_WINDOW,
    TX_HASH_HEX_LEN,
)
from contractsim.ledger.types import Amount, Transaction, TxData, User, gas_for
from contractsim.runtime.clock import Clock
from contractsim.runtime.errors import NotFound, ValidationError

Json = Dict[str, Any]


def _hex_id(n_chars: int) -> str:
    return "0x" + secrets.token_hex(n_chars // 2)


class Ledger:
    """In-memory accounts and append-only transaction log.

    The ledger exclusively owns User and Transaction records. Engines read
    users through get_user() and mutate balances only through
    update_balance().
    """

    def __init__(self, clock: Clock) -> None:
        self._clock = clock
        self._users: Dict[str, User] = {}
        self._transactions: List[Transaction] = []
        self._block_number = GENESIS_BLOCK_NUMBER

        self._total_proposals = 0
        self._recent_activity = 0
        self._active_stakers = 0
        self._total_value_locked: Amount = 0

    @property
    def clock(self) -> Clock:
        return self._clock

    @property
    def block_number(self) -> int:
        return self._block_number

    # ---- Users ----

    def create_user(self) -> User:
        user = User(address=_hex_id(ADDRESS_HEX_LEN), created_at_ms=self._clock.now_ms())
        self._users[user.address] = user
        self._recompute_stats()
        return user

    def get_user(self, address: str) -> Optional[User]:
        return self._users.get(address)

    def require_user(self, address: str) -> User:
        user = self._users.get(address)
        if user is None:
            raise NotFound("User not found", {"address": address})
        return user

    def update_balance(self, address: str, field: str, new_value: Amount) -> User:
        """Set a balance field, clamped at zero.

        Raises NotFound for an unknown address rather than ignoring the write.
        """
        if field not in BALANCE_FIELDS:
            raise ValidationError("Unknown balance field", {"field": field})
        user = self.require_user(address)
        setattr(user, field, max(0, new_value))
        self._recompute_stats()
        return user

    # ---- Transactions ----

    def append_transaction(self, data: TxData, sender: str, recipient: Optional[str] = None) -> Transaction:
        tx = Transaction(
            hash=_hex_id(TX_HASH_HEX_LEN),
            data=data,
            sender=sender,
            recipient=recipient,
            block_number=self._block_number,
            timestamp_ms=self._clock.now_ms(),
            gas_used=gas_for(data.kind),
        )
        self._block_number += 1
        self._transactions.append(tx)
        self._recent_activity += 1
        return tx

    def transactions(self) -> List[Transaction]:
        return list(self._transactions)

    def recent_transactions(self, limit: int = 50) -> List[Transaction]:
        """Newest first."""
        n = max(0, int(limit))
        if n == 0:
            return []
        return list(reversed(self._transactions[-n:]))

    def mine_block(self) -> Json:
        """Advance the block counter and summarize the latest transactions."""
        self._block_number += 1
        return {
            "number": self._block_number,
            "timestamp": self._clock.now_ms(),
            "transactions": [tx.to_json() for tx in self._transactions[-MINED_BLOCK_TX_WINDOW:]],
            "hash": _hex_id(TX_HASH_HEX_LEN),
        }

    # ---- Network statistics ----

    def note_proposal_created(self) -> None:
        self._total_proposals += 1

    def _recompute_stats(self) -> None:
        # Full scan per mutation.
        total: Amount = 0
        stakers = 0
        for user in self._users.values():
            if user.staking_balance > 0:
                total += user.staking_balance
                stakers += 1
        self._active_stakers = stakers
        self._total_value_locked = total

    def network_stats(self) -> Json:
        return {
            "activeStakers": self._active_stakers,
            "totalValueLocked": self._total_value_locked,
            "totalProposals": self._total_proposals,
            "recentActivity": self._recent_activity,
            "totalUsers": len(self._users),
            "totalTransactions": len(self._transactions),
            "currentBlock": self._block_number,
        }

    def gas_price(self) -> int:
        return int(BASE_GAS_PRICE * (1 + self._recent_activity / 100))
