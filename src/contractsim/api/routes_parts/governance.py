from __future__ import annotations

from fastapi import APIRouter, Request

from contractsim.api.routes_parts.common import _actor, _executor
from contractsim.api.schemas import CreateProposalRequest, VoteRequest

router = APIRouter()


@router.get("/proposals")
def proposals_list(request: Request):
    return {"success": True, "proposals": _executor(request).list_proposals()}


@router.post("/proposals")
def proposals_create(body: CreateProposalRequest, request: Request):
    creator = _actor(request, body.creator, field="creator")
    pr = _executor(request).create_proposal(body.title, body.description, creator)
    return {"success": True, "proposal": pr.to_json()}


@router.post("/proposals/vote")
def proposals_vote(body: VoteRequest, request: Request):
    voter = _actor(request, body.voter, field="voter")
    pr = _executor(request).vote(body.proposalId, body.support, voter, body.votingPower)
    return {"success": True, "proposal": pr.to_json()}


@router.post("/proposals/{proposal_id}/execute")
def proposals_execute(proposal_id: int, request: Request):
    pr = _executor(request).execute_proposal(proposal_id)
    return {"success": True, "proposal": pr.to_json()}
