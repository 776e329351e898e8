"""
sanctum.api.serializers — ORM row → JSON dict helpers shared by routers
=======================================================================
"""

from __future__ import annotations

from datetime import datetime

from sanctum.database.models import (
    GovernanceProposal,
    Member,
    Prophecy,
    ScarcityRitual,
    StakingPosition,
    TokenDrop,
)


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def member_dict(m: Member) -> dict:
    return {
        "id": m.id,
        "tier": m.tier,
        "email": m.email,
        "membership_started_at": _iso(m.membership_started_at),
    }


def position_dict(p: StakingPosition) -> dict:
    return {
        "user_id": p.user_id,
        "staked_amount": p.staked_amount,
        "tier": p.tier,
        "voting_power": p.voting_power,
        "staked_at": _iso(p.staked_at),
        "rewards_earned": p.rewards_earned,
    }


def proposal_dict(p: GovernanceProposal) -> dict:
    return {
        "id": p.id,
        "type": p.proposal_type,
        "title": p.title,
        "description": p.description,
        "proposer_id": p.proposer_id,
        "staking_requirement": p.staking_requirement,
        "status": p.status,
        "created_at": _iso(p.created_at),
        "decided_at": _iso(p.decided_at),
        "executed_at": _iso(p.executed_at),
        "result": p.result,
    }


def ritual_dict(r: ScarcityRitual, voter_count: int | None = None) -> dict:
    data = {
        "id": r.id,
        "type": r.ritual_type,
        "title": r.title,
        "description": r.description,
        "staking_window_hours": r.staking_window_hours,
        "minimum_quorum": r.minimum_quorum,
        "whisper_trigger": r.whisper_trigger,
        "time_decay": r.time_decay,
        "status": r.status,
        "created_at": _iso(r.created_at),
        "expires_at": _iso(r.expires_at),
        "passed_at": _iso(r.passed_at),
    }
    if voter_count is not None:
        data["voter_count"] = voter_count
    return data


def drop_dict(d: TokenDrop) -> dict:
    return {
        "id": d.id,
        "token_type": d.token_type,
        "serial_number": d.serial_number,
        "required_tier": d.required_tier,
        "status": d.status,
        "created_at": _iso(d.created_at),
        "claimed_by": d.claimed_by,
        "claimed_at": _iso(d.claimed_at),
        "claim_time": d.claim_time_seconds,
        "shipped_at": _iso(d.shipped_at),
    }


def prophecy_dict(p: Prophecy) -> dict:
    return {
        "id": p.id,
        "owner_id": p.owner_id,
        "content": p.content,
        "voice_url": p.voice_url,
        "created_at": _iso(p.created_at),
        "burned": p.burned,
        "burned_at": _iso(p.burned_at),
        "reforge_count": p.reforge_count,
        "parent_id": p.parent_id,
    }
