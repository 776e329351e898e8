"""
sanctum.api.routes.governance — Staking & proposal voting
==========================================================
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from sanctum.api.deps import get_services, unwrap
from sanctum.api.serializers import position_dict, proposal_dict
from sanctum.database.models import VoteChoice
from sanctum.services.registry import SanctumServices

router = APIRouter(prefix="/governance", tags=["governance"])


class StakeBody(BaseModel):
    actor_id: int
    amount: float = Field(gt=0, allow_inf_nan=False)


class VoteBody(BaseModel):
    actor_id: int
    choice: VoteChoice


@router.post("/stake", status_code=201)
def stake(body: StakeBody, services: SanctumServices = Depends(get_services)):
    return position_dict(unwrap(services.governance.stake(body.actor_id, body.amount)))


@router.get("/proposals")
def active_proposals(services: SanctumServices = Depends(get_services)):
    return {"proposals": [proposal_dict(p) for p in services.governance.active_proposals()]}


@router.get("/proposals/{proposal_id}")
def get_proposal(proposal_id: int, services: SanctumServices = Depends(get_services)):
    proposal = services.governance.get_proposal(proposal_id)
    if proposal is None:
        raise HTTPException(404, "Proposal not found")
    return proposal_dict(proposal)


@router.get("/proposals/{proposal_id}/results")
def proposal_results(proposal_id: int, services: SanctumServices = Depends(get_services)):
    return unwrap(services.governance.results(proposal_id)).to_dict()


@router.get("/proposals/{proposal_id}/eligibility/{actor_id}")
def vote_eligibility(
    proposal_id: int, actor_id: int, services: SanctumServices = Depends(get_services)
):
    return services.governance.check_eligibility(proposal_id, actor_id).to_dict()


@router.post("/proposals/{proposal_id}/votes", status_code=201)
def vote(proposal_id: int, body: VoteBody, services: SanctumServices = Depends(get_services)):
    return {"success": unwrap(services.governance.vote(proposal_id, body.actor_id, body.choice))}


@router.get("/rewards/{user_id}")
def staking_rewards(user_id: int, services: SanctumServices = Depends(get_services)):
    return services.governance.staking_rewards(user_id).to_dict()
