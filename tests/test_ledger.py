from __future__ import annotations

import pytest

from contractsim.ledger.constants import BASE_GAS_PRICE, GENESIS_BLOCK_NUMBER
from contractsim.ledger.state import Ledger
from contractsim.ledger.types import (
    AuctionFinalizeData,
    BidData,
    ClaimData,
    ExecutionData,
    ProposalData,
    SlashData,
    StakeData,
    TransferData,
    TxKind,
    UnstakeData,
    VoteData,
    gas_for,
    is_valid_address,
)
from contractsim.runtime.clock import ManualClock
from contractsim.runtime.errors import NotFound, ValidationError


def _ledger() -> Ledger:
    return Ledger(ManualClock())


def test_create_user_seeds_balances() -> None:
    led = _ledger()
    u = led.create_user()

    assert is_valid_address(u.address)
    assert u.token_balance == 1000
    assert u.eth_balance == 10
    assert u.staking_balance == 0
    assert u.voting_power == 0
    assert u.reputation == 100
    assert led.get_user(u.address) is u

    j = u.to_json()
    assert j["tokenBalance"] == 1000
    assert j["createdAt"].startswith("20")


def test_get_user_missing_returns_none() -> None:
    assert _ledger().get_user("0x" + "0" * 40) is None


def test_update_balance_clamps_at_zero() -> None:
    led = _ledger()
    u = led.create_user()

    led.update_balance(u.address, "token_balance", -50)
    assert u.token_balance == 0


def test_update_balance_missing_user_fails_loudly() -> None:
    led = _ledger()
    with pytest.raises(NotFound):
        led.update_balance("0x" + "a" * 40, "token_balance", 10)


def test_update_balance_rejects_unknown_field() -> None:
    led = _ledger()
    u = led.create_user()
    with pytest.raises(ValidationError):
        led.update_balance(u.address, "address", 10)


def test_append_transaction_assigns_blocks_and_gas() -> None:
    led = _ledger()
    t1 = led.append_transaction(StakeData(amount=5), sender="0xabc")
    t2 = led.append_transaction(VoteData(proposal_id=1, support=True, voting_power=5), sender="0xabc")

    assert t1.block_number == GENESIS_BLOCK_NUMBER
    assert t2.block_number == GENESIS_BLOCK_NUMBER + 1
    assert t1.kind is TxKind.STAKE
    assert t1.gas_used == 50_000
    assert t2.gas_used == 60_000
    assert t1.status == "confirmed"
    assert t1.hash.startswith("0x") and len(t1.hash) == 66
    assert t1.hash != t2.hash

    j = t2.to_json()
    assert j["type"] == "vote"
    assert j["from"] == "0xabc"
    assert j["data"] == {"proposalId": 1, "support": True, "votingPower": 5}
    assert "to" not in j


def test_gas_table_defaults_for_unlisted_kinds() -> None:
    assert gas_for(TxKind.TRANSFER) == 21_000
    assert gas_for(TxKind.PROPOSAL) == 80_000
    assert gas_for(TxKind.BID) == 55_000
    assert gas_for(TxKind.CLAIM) == 40_000
    assert gas_for(TxKind.UNSTAKE) == 45_000
    assert gas_for(TxKind.EXECUTION) == 30_000
    assert gas_for(TxKind.AUCTION_FINALIZE) == 30_000
    assert gas_for(TxKind.SLASH) == 30_000


def test_every_kind_has_exactly_one_payload_variant() -> None:
    variants = [
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
    assert sorted(v.kind.value for v in variants) == sorted(k.value for k in TxKind)


def test_network_stats_track_stakers_and_activity() -> None:
    led = _ledger()
    a = led.create_user()
    b = led.create_user()

    led.update_balance(a.address, "staking_balance", 300)
    led.update_balance(b.address, "staking_balance", 200)
    led.note_proposal_created()
    led.append_transaction(TransferData(amount=1), sender=a.address, recipient=b.address)

    stats = led.network_stats()
    assert stats["activeStakers"] == 2
    assert stats["totalValueLocked"] == 500
    assert stats["totalProposals"] == 1
    assert stats["recentActivity"] == 1
    assert stats["totalUsers"] == 2
    assert stats["totalTransactions"] == 1
    assert stats["currentBlock"] == GENESIS_BLOCK_NUMBER + 1

    led.update_balance(a.address, "staking_balance", 0)
    stats = led.network_stats()
    assert stats["activeStakers"] == 1
    assert stats["totalValueLocked"] == 200


def test_gas_price_scales_with_recent_activity() -> None:
    led = _ledger()
    assert led.gas_price() == BASE_GAS_PRICE

    for _ in range(50):
        led.append_transaction(TransferData(amount=1), sender="0xabc")
    assert led.gas_price() == int(BASE_GAS_PRICE * 1.5)


def test_recent_transactions_newest_first_and_mine_block() -> None:
    led = _ledger()
    for i in range(12):
        led.append_transaction(TransferData(amount=i), sender="0xabc")

    recent = led.recent_transactions(3)
    assert [t.data.amount for t in recent] == [11, 10, 9]
    assert led.recent_transactions(0) == []

    before = led.block_number
    block = led.mine_block()
    assert block["number"] == before + 1
    assert len(block["transactions"]) == 10
    assert block["transactions"][-1]["data"] == {"amount": 11}
