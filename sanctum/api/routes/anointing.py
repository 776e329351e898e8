"""
sanctum.api.routes.anointing — Anointing endpoints
===================================================
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from sanctum.api.deps import get_services, unwrap
from sanctum.database.models import SigilType
from sanctum.services.registry import SanctumServices

router = APIRouter(prefix="/anointing", tags=["anointing"])


class AnointBody(BaseModel):
    actor_id: int
    target_id: int
    sigil_type: SigilType
    message: str | None = None


@router.get("/eligibility/{actor_id}")
def anointing_eligibility(
    actor_id: int,
    target_id: int | None = Query(None),
    services: SanctumServices = Depends(get_services),
):
    return services.anointing.check_eligibility(actor_id, target_id).to_dict()


@router.post("", status_code=201)
def anoint(body: AnointBody, services: SanctumServices = Depends(get_services)):
    record = unwrap(
        services.anointing.anoint(body.actor_id, body.target_id, body.sigil_type, body.message)
    )
    return record.to_dict()


@router.get("/recent")
def recent_anointings(
    limit: int = Query(10, ge=1, le=100),
    services: SanctumServices = Depends(get_services),
):
    return {"anointings": [r.to_dict() for r in services.anointing.recent_anointings(limit)]}


@router.get("/{user_id}/benefits")
def anointment_benefits(user_id: int, services: SanctumServices = Depends(get_services)):
    return services.anointing.benefits_for(user_id).to_dict()


@router.get("/{user_id}")
def user_anointments(user_id: int, services: SanctumServices = Depends(get_services)):
    records = services.anointing.get_user_anointments(user_id)
    return {key: [r.to_dict() for r in rows] for key, rows in records.items()}
