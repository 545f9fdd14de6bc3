"""Smart contract simulator: in-memory ledger, governance, staking and auctions."""

__version__ = "0.1.0"
