"""
sanctum.engine.governance — Stake-weighted voting math
=======================================================

Pure helpers behind the governance mechanic: voting power fixed at stake
time, the yes/no tally over the latest vote per member, the pass rule,
the per-type execution effect and the staking reward projection.
"""

from __future__ import annotations

import math
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime

from sanctum.constants import STAKING_APY, VOTING_MULTIPLIERS
from sanctum.database.models import LedgerEvent, ProposalType, Tier, VoteChoice

EXECUTION_EFFECTS: dict[ProposalType, str] = {
    ProposalType.PROPHECY_PROMPT: (
        "Oracle prophecy themes updated. New content will reflect community preferences."
    ),
    ProposalType.GIRL_ANNOUNCEMENT: (
        "Early access granted to Shadow Key holders. Notifications sent."
    ),
    ProposalType.MERCH_DESIGN: (
        "Merch design approved. Production scheduled for next quarter."
    ),
    ProposalType.FEATURE_REQUEST: "Feature approved for development roadmap.",
}

REJECTED_EFFECT = "Proposal rejected by community vote."


def voting_power(staked_amount: float, tier: Tier | str) -> int:
    """``floor(amount × tier multiplier)``; unknown tiers count as 1.0."""
    multiplier = VOTING_MULTIPLIERS.get(Tier(tier), 1.0)
    return math.floor(staked_amount * multiplier)


@dataclass(frozen=True, slots=True)
class VoteTally:
    yes: int = 0
    no: int = 0

    @property
    def total(self) -> int:
        return self.yes + self.no

    @property
    def passed(self) -> bool:
        return is_passed(self.yes, self.no)

    def to_dict(self) -> dict[str, int]:
        return {"yes": self.yes, "no": self.no, "total": self.total}


def is_passed(yes: int, no: int) -> bool:
    """Strict majority of voting power, with a zero-total guard."""
    return yes > no and yes + no > 0


def tally_votes(events: Iterable[LedgerEvent]) -> VoteTally:
    """Sum the power of each member's most recent vote.

    Re-voting replaces the earlier choice; ties on ``created_at`` fall back
    to the ledger id so the later append wins.
    """
    latest: dict[int, LedgerEvent] = {}
    for event in sorted(events, key=lambda e: (e.created_at, e.id)):
        latest[event.actor_id] = event

    yes = no = 0
    for event in latest.values():
        power = int(event.payload.get("power", 0))
        if event.payload.get("choice") == VoteChoice.YES:
            yes += power
        else:
            no += power
    return VoteTally(yes=yes, no=no)


def execution_effect(proposal_type: ProposalType | str, passed: bool) -> str:
    if not passed:
        return REJECTED_EFFECT
    return EXECUTION_EFFECTS[ProposalType(proposal_type)]


@dataclass(frozen=True, slots=True)
class StakingRewards:
    apy: int
    earned: int
    claimable: int

    def to_dict(self) -> dict[str, int]:
        return {"apy": self.apy, "earned": self.earned, "claimable": self.claimable}


def project_staking_rewards(
    staked_amount: float,
    tier: Tier | str,
    rewards_earned: int,
    staked_at: datetime,
    now: datetime,
) -> StakingRewards:
    """APY by stake-time tier; claimable accrues per whole staking day."""
    apy = STAKING_APY.get(Tier(tier), STAKING_APY[Tier.INITIATE])
    staking_days = max(0, (now - staked_at).days)
    claimable = math.floor(staked_amount * (apy / 365 / 100) * staking_days)
    return StakingRewards(apy=apy, earned=rewards_earned, claimable=claimable)
