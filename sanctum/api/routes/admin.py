"""
sanctum.api.routes.admin — Admin endpoints (JWT‑protected)
===========================================================

Member management, the payment-confirmation hook, proposal / ritual /
drop / prophecy creation and the two-step flows that complete outside a
member's request (proposal execution, reforge completion, shipping).
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from sanctum.api.deps import get_current_admin, get_services, unwrap
from sanctum.api.serializers import (
    drop_dict,
    member_dict,
    proposal_dict,
    prophecy_dict,
    ritual_dict,
)
from sanctum.database.models import ProposalType, RitualType, Tier, TokenType
from sanctum.services.directory import PaymentConfirmation
from sanctum.services.registry import SanctumServices

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------
class MemberCreate(BaseModel):
    tier: Tier = Tier.INITIATE
    email: str | None = None
    customer_ref: str | None = None


class TierUpdate(BaseModel):
    tier: Tier


class PaymentBody(BaseModel):
    customer_ref: str
    amount_paid: float
    metadata: dict[str, Any] = Field(default_factory=dict)


class ProposalCreate(BaseModel):
    proposal_type: ProposalType
    title: str
    description: str = ""
    proposer_id: int
    staking_requirement: float = Field(0, ge=0)


class RitualCreate(BaseModel):
    ritual_type: RitualType
    title: str
    description: str = ""
    staking_window_hours: int = Field(gt=0)
    minimum_quorum: int = Field(ge=1)
    whisper_trigger: int | None = None
    time_decay: bool = False


class DropCreate(BaseModel):
    tier: Tier
    token_type: TokenType


class ProphecyCreate(BaseModel):
    owner_id: int
    content: str
    voice_url: str | None = None


# ---------------------------------------------------------------------------
# Members
# ---------------------------------------------------------------------------
@router.post("/members", status_code=201)
def create_member(
    body: MemberCreate,
    admin: dict = Depends(get_current_admin),
    services: SanctumServices = Depends(get_services),
):
    member = unwrap(services.directory.create_member(body.tier, body.email, body.customer_ref))
    return member_dict(member)


@router.patch("/members/{user_id}/tier")
def update_tier(
    user_id: int,
    body: TierUpdate,
    admin: dict = Depends(get_current_admin),
    services: SanctumServices = Depends(get_services),
):
    member = unwrap(services.directory.upgrade_tier(user_id, body.tier))
    logger.info("Admin %s set member %d tier to %s", admin.get("sub"), user_id, body.tier)
    return member_dict(member)


@router.post("/payments")
def payment_confirmation(
    body: PaymentBody,
    admin: dict = Depends(get_current_admin),
    services: SanctumServices = Depends(get_services),
):
    confirmation = PaymentConfirmation(body.customer_ref, body.amount_paid, body.metadata)
    return member_dict(unwrap(services.directory.apply_payment(confirmation)))


# ---------------------------------------------------------------------------
# Governance
# ---------------------------------------------------------------------------
@router.post("/proposals", status_code=201)
def create_proposal(
    body: ProposalCreate,
    admin: dict = Depends(get_current_admin),
    services: SanctumServices = Depends(get_services),
):
    proposal = unwrap(services.governance.create_proposal(
        body.proposal_type,
        body.title,
        body.description,
        body.proposer_id,
        body.staking_requirement,
    ))
    return proposal_dict(proposal)


@router.post("/proposals/{proposal_id}/execute")
def execute_proposal(
    proposal_id: int,
    admin: dict = Depends(get_current_admin),
    services: SanctumServices = Depends(get_services),
):
    return unwrap(services.governance.execute_proposal(proposal_id)).to_dict()


# ---------------------------------------------------------------------------
# Rituals
# ---------------------------------------------------------------------------
@router.post("/rituals", status_code=201)
def create_ritual(
    body: RitualCreate,
    admin: dict = Depends(get_current_admin),
    services: SanctumServices = Depends(get_services),
):
    ritual = unwrap(
        services.rituals.create_ritual(
            body.ritual_type,
            body.title,
            body.description,
            body.staking_window_hours,
            body.minimum_quorum,
            body.whisper_trigger,
            body.time_decay,
        )
    )
    return ritual_dict(ritual)


@router.post("/rituals/sweep")
def sweep_rituals(
    admin: dict = Depends(get_current_admin),
    services: SanctumServices = Depends(get_services),
):
    return {"expired": services.rituals.expire_overdue()}


# ---------------------------------------------------------------------------
# Tokens
# ---------------------------------------------------------------------------
@router.post("/tokens", status_code=201)
def create_drop(
    body: DropCreate,
    admin: dict = Depends(get_current_admin),
    services: SanctumServices = Depends(get_services),
):
    return drop_dict(services.tokens.create_drop(body.tier, body.token_type))


@router.post("/tokens/{token_id}/ship")
def ship_token(
    token_id: int,
    admin: dict = Depends(get_current_admin),
    services: SanctumServices = Depends(get_services),
):
    return drop_dict(unwrap(services.tokens.mark_shipped(token_id)))


# ---------------------------------------------------------------------------
# Prophecies
# ---------------------------------------------------------------------------
@router.post("/prophecies", status_code=201)
def create_prophecy(
    body: ProphecyCreate,
    admin: dict = Depends(get_current_admin),
    services: SanctumServices = Depends(get_services),
):
    record = unwrap(services.reforging.create_prophecy(body.owner_id, body.content, body.voice_url))
    return prophecy_dict(record)


@router.post("/reforges/{reforge_id}/complete")
def complete_reforge(
    reforge_id: int,
    admin: dict = Depends(get_current_admin),
    services: SanctumServices = Depends(get_services),
):
    return unwrap(services.reforging.complete_reforge(reforge_id)).to_dict()


@router.get("/reforges/stats")
def reforge_stats(
    admin: dict = Depends(get_current_admin),
    services: SanctumServices = Depends(get_services),
):
    return services.reforging.reforge_stats()


# ---------------------------------------------------------------------------
# Anointing
# ---------------------------------------------------------------------------
@router.post("/anointing/reset")
def reset_anointing_limits(
    admin: dict = Depends(get_current_admin),
    services: SanctumServices = Depends(get_services),
):
    count = services.anointing.reset_monthly_limits()
    logger.info("Admin %s reset monthly anointing limits", admin.get("sub"))
    return {"reset": count}
