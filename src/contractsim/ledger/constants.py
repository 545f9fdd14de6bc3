# src/contractsim/ledger/constants.py
from __future__ import annotations

# Seed balances for a freshly initialized user.
INITIAL_TOKEN_BALANCE = 1000
INITIAL_ETH_BALANCE = 10
INITIAL_REPUTATION = 100

# Block numbers start here and increase by one per appended transaction.
GENESIS_BLOCK_NUMBER = 1_000_000

# 20 Gwei, scaled by recent activity in Ledger.gas_price().
BASE_GAS_PRICE = 20_000_000_000

DEFAULT_GAS = 30_000

# Number of transactions carried in a mined block summary.
MINED_BLOCK_TX_WINDOW = 10

TX_STATUS_CONFIRMED = "confirmed"

BALANCE_FIELDS = (
    "token_balance",
    "eth_balance",
    "staking_balance",
    "voting_power",
    "reputation",
)

ADDRESS_HEX_LEN = 40
TX_HASH_HEX_LEN = 64
