"""
sanctum.api.routes.prophecies — Prophecy listing & reforging
=============================================================
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from sanctum.api.deps import get_services, unwrap
from sanctum.api.serializers import prophecy_dict
from sanctum.database.models import PaymentMethod
from sanctum.services.registry import SanctumServices

router = APIRouter(prefix="/prophecies", tags=["prophecies"])


class ReforgeBody(BaseModel):
    actor_id: int
    payment_method: PaymentMethod


@router.get("/{user_id}")
def user_prophecies(user_id: int, services: SanctumServices = Depends(get_services)):
    return {
        "active": [prophecy_dict(p) for p in services.reforging.user_prophecies(user_id)],
        "burned": [prophecy_dict(p) for p in services.reforging.burned_prophecies(user_id)],
    }


@router.get("/{record_id}/reforge/eligibility")
def reforge_eligibility(
    record_id: int,
    actor_id: int = Query(...),
    services: SanctumServices = Depends(get_services),
):
    return services.reforging.check_eligibility(record_id, actor_id).to_dict()


@router.post("/{record_id}/reforge", status_code=201)
def burn_and_reforge(
    record_id: int, body: ReforgeBody, services: SanctumServices = Depends(get_services)
):
    result = services.reforging.burn_and_reforge(record_id, body.actor_id, body.payment_method)
    return unwrap(result).to_dict()


@router.get("/{record_id}/lineage")
def prophecy_lineage(record_id: int, services: SanctumServices = Depends(get_services)):
    return {"lineage": [prophecy_dict(p) for p in services.reforging.lineage(record_id)]}
