"""Pydantic request schemas for the public API.

These exist only for HTTP input validation. Business rules (minimum
lengths, positive amounts, address format) are enforced by the runtime so
that every rule violation reports the same error shape.
"""

from __future__ import annotations

from typing import Optional, Union

from pydantic import BaseModel, Field, field_validator

from contractsim.api.security import sanitize_text


class CreateProposalRequest(BaseModel):
    title: str = Field(..., description="Proposal title (>= 5 chars after trim)")
    description: str = Field(..., description="Proposal body (>= 20 chars after trim)")
    creator: Optional[str] = Field(default=None, description="Creator address; falls back to X-User-Address")

    model_config = {"extra": "ignore", "allow_inf_nan": False}

    @field_validator("title", "description", mode="before")
    @classmethod
    def _strip_scripts(cls, v):
        return sanitize_text(v)


class VoteRequest(BaseModel):
    proposalId: int
    support: bool
    voter: Optional[str] = None
    votingPower: Optional[Union[int, float]] = Field(default=None, description="Defaults to the voter's ledger voting power")

    model_config = {"extra": "ignore", "allow_inf_nan": False}


class StakeRequest(BaseModel):
    amount: Union[int, float]
    user: Optional[str] = None

    model_config = {"extra": "ignore", "allow_inf_nan": False}


class ClaimRequest(BaseModel):
    user: Optional[str] = None
    amount: Optional[Union[int, float]] = Field(default=None, description="Omit to claim all pending rewards")

    model_config = {"extra": "ignore", "allow_inf_nan": False}


class BidRequest(BaseModel):
    auctionId: int
    amount: Union[int, float]
    bidder: Optional[str] = None

    model_config = {"extra": "ignore", "allow_inf_nan": False}
