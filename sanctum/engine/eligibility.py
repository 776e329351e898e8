"""
sanctum.engine.eligibility — Per-mechanic eligibility evaluators
=================================================================

Pure functions: Membership Directory state + Activity Ledger state +
mechanic parameters in, :class:`Eligibility` out.  No database I/O —
the services gather the snapshot and pass it in, so the same rules back
both the read-only eligibility endpoints and the mutation handlers.

Reason strings are user-facing and surfaced verbatim.
"""

from __future__ import annotations

import math
from datetime import datetime

from sanctum.constants import (
    ANOINTING_MIN_TIER,
    REFORGE_MIN_AGE,
    REFORGE_MIN_TIER,
    RITUAL_MIN_TIER,
    tier_at_least,
)
from sanctum.database.models import (
    GovernanceProposal,
    Prophecy,
    ProposalStatus,
    RitualStatus,
    ScarcityRitual,
    StakingPosition,
    Tier,
    TokenDrop,
    TokenStatus,
)
from sanctum.engine.outcomes import Eligibility, RejectionKind

__all__ = [
    "USER_NOT_FOUND",
    "evaluate_anointing",
    "evaluate_governance_vote",
    "evaluate_reforge",
    "evaluate_ritual_vote",
    "evaluate_token_claim",
]

USER_NOT_FOUND = "User not found"


def _amount(value: float) -> int | float:
    return int(value) if float(value).is_integer() else value


# ---------------------------------------------------------------------------
# Anointing
# ---------------------------------------------------------------------------
def evaluate_anointing(
    anointer_tier: Tier | str | None,
    remaining: int,
    *,
    actor_id: int,
    target_id: int | None = None,
    target_tier: Tier | str | None = None,
    recent_pair: bool = False,
) -> Eligibility:
    """Oracle+ only, allowance left, no self-anointing, one per pair per week.

    Without *target_id* only the anointer-side rules are checked.
    """
    if anointer_tier is None:
        return Eligibility.deny(USER_NOT_FOUND, RejectionKind.NOT_FOUND)
    if not tier_at_least(anointer_tier, ANOINTING_MIN_TIER):
        return Eligibility.deny("Anointing requires Oracle+ tier")
    if remaining <= 0:
        return Eligibility.deny(
            "Monthly anointing limit reached. Resets on the 1st.", remaining=0
        )

    if target_id is not None:
        if target_id == actor_id:
            return Eligibility.deny("Cannot anoint yourself", remaining=remaining)
        if target_tier is None:
            return Eligibility.deny(USER_NOT_FOUND, RejectionKind.NOT_FOUND)
        if recent_pair:
            return Eligibility.deny(
                "Can only anoint the same user once per week", remaining=remaining
            )

    return Eligibility.admit(remaining=remaining)


# ---------------------------------------------------------------------------
# Prophecy reforging
# ---------------------------------------------------------------------------
def evaluate_reforge(
    record: Prophecy | None,
    *,
    actor_id: int,
    actor_tier: Tier | str | None,
    now: datetime,
) -> Eligibility:
    """Own, unburned, Oracle+, and at least 24 hours since the record was created."""
    if record is None:
        return Eligibility.deny("Prophecy not found", RejectionKind.NOT_FOUND)
    if record.owner_id != actor_id:
        return Eligibility.deny("You can only reforge your own prophecies")
    if record.burned:
        return Eligibility.deny(
            "This prophecy has already been burned", RejectionKind.INVALID_STATE
        )
    if actor_tier is None:
        return Eligibility.deny(USER_NOT_FOUND, RejectionKind.NOT_FOUND)
    if not tier_at_least(actor_tier, REFORGE_MIN_TIER):
        return Eligibility.deny("Prophecy reforging requires Oracle+ tier")

    ready_at = record.created_at + REFORGE_MIN_AGE
    if now < ready_at:
        hours_remaining = math.ceil((ready_at - now).total_seconds() / 3600)
        return Eligibility.deny(
            "Prophecy must age 24 hours before reforging. "
            f"{hours_remaining} hours remaining."
        )

    return Eligibility.admit()


# ---------------------------------------------------------------------------
# Ritual scarcity vote
# ---------------------------------------------------------------------------
def evaluate_ritual_vote(
    ritual: ScarcityRitual | None,
    *,
    voter_tier: Tier | str | None,
    has_recent_stake: bool,
    now: datetime,
) -> Eligibility:
    """Active ritual, Oracle+ voter, qualifying stake inside the ritual's window."""
    if ritual is None:
        return Eligibility.deny("Proposal not found", RejectionKind.NOT_FOUND)
    if ritual.status != RitualStatus.ACTIVE or now > ritual.expires_at:
        return Eligibility.deny("Voting window has expired", RejectionKind.INVALID_STATE)
    if voter_tier is None:
        return Eligibility.deny(USER_NOT_FOUND, RejectionKind.NOT_FOUND)
    if not tier_at_least(voter_tier, RITUAL_MIN_TIER):
        return Eligibility.deny("Oracle+ tier required for ritual voting")
    if not has_recent_stake:
        days = math.ceil(ritual.staking_window_hours / 24)
        return Eligibility.deny(
            f"Must stake within last {days} days to participate in ritual voting"
        )
    return Eligibility.admit()


# ---------------------------------------------------------------------------
# Governance vote
# ---------------------------------------------------------------------------
def evaluate_governance_vote(
    proposal: GovernanceProposal | None,
    position: StakingPosition | None,
) -> Eligibility:
    """Active proposal and a staking position at or above its minimum."""
    if proposal is None:
        return Eligibility.deny("Proposal not found", RejectionKind.NOT_FOUND)
    if proposal.status != ProposalStatus.ACTIVE:
        return Eligibility.deny(
            "Voting is closed for this proposal", RejectionKind.INVALID_STATE
        )
    if position is None:
        return Eligibility.deny("Must stake $BONKED tokens to vote")
    if position.staked_amount < proposal.staking_requirement:
        return Eligibility.deny(
            f"Minimum {_amount(proposal.staking_requirement)} $BONKED required "
            "to vote on this proposal"
        )
    return Eligibility.admit()


# ---------------------------------------------------------------------------
# Token claim
# ---------------------------------------------------------------------------
def evaluate_token_claim(
    drop: TokenDrop | None,
    *,
    claimant_tier: Tier | str | None,
) -> Eligibility:
    """Still available, and the claimant's tier ranks at or above the drop's."""
    if drop is None:
        return Eligibility.deny("Token not found", RejectionKind.NOT_FOUND)
    if drop.status != TokenStatus.AVAILABLE:
        return Eligibility.deny("Token no longer available", RejectionKind.INVALID_STATE)
    if claimant_tier is None:
        return Eligibility.deny(USER_NOT_FOUND, RejectionKind.NOT_FOUND)
    if not tier_at_least(claimant_tier, drop.required_tier):
        return Eligibility.deny(
            f"{drop.required_tier} tier or higher required to claim this token"
        )
    return Eligibility.admit()
