# src/contractsim/runtime/errors.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict


@dataclass(eq=False)
class SimError(Exception):
    """Canonical error type for ledger and engine rule violations.

    Errors are local and synchronous. Nothing in the runtime retries them;
    they represent caller mistakes or business-rule violations.
    """

    reason: str
    details: Dict[str, Any] = field(default_factory=dict)

    code = "sim_error"

    def __str__(self) -> str:
        return self.reason


class ValidationError(SimError):
    code = "validation_error"


class NotFound(SimError):
    code = "not_found"


class InvalidState(SimError):
    code = "invalid_state"


class Expired(SimError):
    code = "expired"


class TooEarly(SimError):
    code = "too_early"


class InsufficientFunds(SimError):
    code = "insufficient_funds"


class InsufficientStake(InsufficientFunds):
    code = "insufficient_stake"


class BidTooLow(SimError):
    code = "bid_too_low"


class AlreadyVoted(SimError):
    code = "already_voted"


class Unauthorized(SimError):
    code = "unauthorized"
