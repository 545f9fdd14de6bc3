# src/contractsim/runtime/gov_engine.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List

from contractsim.ledger.state import Ledger
from contractsim.ledger.types import Amount, ExecutionData, ProposalData, VoteData
from contractsim.runtime.errors import (
    AlreadyVoted,
    Expired,
    InsufficientFunds,
    InvalidState,
    NotFound,
    TooEarly,
    Unauthorized,
    ValidationError,
)

Json = Dict[str, Any]

STATUS_ACTIVE = "active"
STATUS_PASSED = "passed"
STATUS_FAILED = "failed"

VOTING_PERIOD_MS = 24 * 60 * 60 * 1000
MIN_TITLE_LEN = 5
MIN_DESCRIPTION_LEN = 20
MIN_PROPOSAL_BALANCE = 100

SYSTEM_SENDER = "system"


@dataclass(slots=True)
class Proposal:
    id: int
    title: str
    description: str
    creator: str
    created_at_ms: int
    end_time_ms: int
    status: str = STATUS_ACTIVE
    for_votes: Amount = 0
    against_votes: Amount = 0
    # dict keys keep insertion order; values unused
    voters: Dict[str, None] = field(default_factory=dict)

    def to_json(self) -> Json:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "creator": self.creator,
            "forVotes": self.for_votes,
            "againstVotes": self.against_votes,
            "voters": list(self.voters),
            "status": self.status,
            "createdAt": self.created_at_ms,
            "endTime": self.end_time_ms,
        }


class GovernanceEngine:
    """Proposal lifecycle: active -> passed | failed.

    The engine never debits the creation fee itself. The caller must treat
    create_proposal() and the fee debit as one operation.
    """

    def __init__(
        self,
        ledger: Ledger,
        *,
        voting_period_ms: int = VOTING_PERIOD_MS,
        min_proposal_balance: Amount = MIN_PROPOSAL_BALANCE,
    ) -> None:
        self._ledger = ledger
        self._clock = ledger.clock
        self._voting_period_ms = int(voting_period_ms)
        self._min_balance = min_proposal_balance
        self._proposals: Dict[int, Proposal] = {}
        self._next_id = 1

    def _proposal(self, proposal_id: int) -> Proposal:
        pr = self._proposals.get(proposal_id)
        if pr is None:
            raise NotFound("Proposal not found", {"proposal_id": proposal_id})
        return pr

    def get(self, proposal_id: int) -> Proposal:
        return self._proposal(proposal_id)

    def create_proposal(self, title: str, description: str, creator: str) -> Proposal:
        title = (title or "").strip()
        description = (description or "").strip()
        if len(title) < MIN_TITLE_LEN:
            raise ValidationError(f"Proposal title must be at least {MIN_TITLE_LEN} characters")
        if len(description) < MIN_DESCRIPTION_LEN:
            raise ValidationError(f"Proposal description must be at least {MIN_DESCRIPTION_LEN} characters")

        user = self._ledger.get_user(creator)
        if user is None or user.token_balance < self._min_balance:
            raise InsufficientFunds(
                f"Insufficient tokens to create proposal ({self._min_balance} SIM required)",
                {"creator": creator},
            )

        now = self._clock.now_ms()
        pr = Proposal(
            id=self._next_id,
            title=title,
            description=description,
            creator=creator,
            created_at_ms=now,
            end_time_ms=now + self._voting_period_ms,
        )
        self._next_id += 1
        self._proposals[pr.id] = pr
        self._ledger.note_proposal_created()
        self._ledger.append_transaction(ProposalData(proposal_id=pr.id, title=title), sender=creator)
        return pr

    def vote(self, proposal_id: int, support: bool, voter: str, voting_power: Amount) -> Proposal:
        pr = self._proposal(proposal_id)
        if pr.status != STATUS_ACTIVE:
            raise InvalidState("Proposal is not active", {"proposal_id": proposal_id, "status": pr.status})
        if self._clock.now_ms() > pr.end_time_ms:
            raise Expired("Voting period has ended", {"proposal_id": proposal_id})
        if voter in pr.voters:
            raise AlreadyVoted("User has already voted", {"proposal_id": proposal_id, "voter": voter})

        user = self._ledger.get_user(voter)
        if user is None or user.staking_balance == 0:
            raise Unauthorized("Must stake tokens to vote", {"voter": voter})

        pr.voters[voter] = None
        if support:
            pr.for_votes += voting_power
        else:
            pr.against_votes += voting_power

        self._ledger.append_transaction(
            VoteData(proposal_id=proposal_id, support=bool(support), voting_power=voting_power),
            sender=voter,
        )
        return pr

    def execute_proposal(self, proposal_id: int) -> Proposal:
        pr = self._proposal(proposal_id)
        if self._clock.now_ms() <= pr.end_time_ms:
            raise TooEarly("Voting period has not ended", {"proposal_id": proposal_id})
        if pr.status != STATUS_ACTIVE:
            raise InvalidState("Proposal is not active", {"proposal_id": proposal_id, "status": pr.status})

        # Ties fail.
        pr.status = STATUS_PASSED if pr.for_votes > pr.against_votes else STATUS_FAILED

        self._ledger.append_transaction(
            ExecutionData(proposal_id=proposal_id, outcome=pr.status),
            sender=SYSTEM_SENDER,
        )
        return pr

    def list_proposals(self) -> List[Proposal]:
        return list(self._proposals.values())
