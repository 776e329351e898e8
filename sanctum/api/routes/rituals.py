"""
sanctum.api.routes.rituals — Ritual scarcity voting
====================================================
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from sanctum.api.deps import get_services, unwrap
from sanctum.api.serializers import ritual_dict
from sanctum.services.registry import SanctumServices

router = APIRouter(prefix="/rituals", tags=["rituals"])


class RitualVoteBody(BaseModel):
    actor_id: int


@router.get("")
def active_rituals(services: SanctumServices = Depends(get_services)):
    return {
        "rituals": [
            ritual_dict(r, voter_count=len(services.rituals.voters(r.id)))
            for r in services.rituals.active_rituals()
        ]
    }


@router.get("/{ritual_id}/eligibility/{actor_id}")
def ritual_eligibility(
    ritual_id: int, actor_id: int, services: SanctumServices = Depends(get_services)
):
    return services.rituals.check_eligibility(ritual_id, actor_id).to_dict()


@router.post("/{ritual_id}/votes", status_code=201)
def ritual_vote(
    ritual_id: int, body: RitualVoteBody, services: SanctumServices = Depends(get_services)
):
    return unwrap(services.rituals.vote(ritual_id, body.actor_id)).to_dict()
