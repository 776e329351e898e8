"""
sanctum.api.routes.tokens — Token drops & claims
=================================================
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from sanctum.api.deps import get_services, unwrap
from sanctum.api.serializers import drop_dict
from sanctum.database.models import Tier
from sanctum.services.registry import SanctumServices

router = APIRouter(prefix="/tokens", tags=["tokens"])


class ClaimBody(BaseModel):
    actor_id: int


@router.get("")
def available_tokens(
    tier: Tier = Query(...),
    services: SanctumServices = Depends(get_services),
):
    return {"tokens": [drop_dict(d) for d in services.tokens.available_tokens(tier)]}


@router.get("/claims")
def recent_claims(
    limit: int = Query(10, ge=1, le=100),
    services: SanctumServices = Depends(get_services),
):
    return {"claims": [c.to_dict() for c in services.tokens.recent_claims(limit)]}


@router.post("/{token_id}/claim")
def claim_token(token_id: int, body: ClaimBody, services: SanctumServices = Depends(get_services)):
    return unwrap(services.tokens.claim(token_id, body.actor_id)).to_dict()
