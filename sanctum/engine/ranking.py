"""
sanctum.engine.ranking — Leaderboard ordering and summary stats
================================================================

Leaderboards are recomputed from the ledger on every read.  This module
only orders already-scored rows: score descending, member id ascending
on ties, ranks 1..n with no gaps or duplicates.
"""

from __future__ import annotations

import enum
import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any


class LeaderboardCategory(enum.StrEnum):
    MOST_ANOINTED = "most_anointed"
    TOP_ANOINTERS = "top_anointers"
    MOST_REFORGED = "most_reforged"
    MOST_BONKED_STAKED = "most_bonked_staked"
    MOST_CLAIMS = "most_claims"

    @property
    def label(self) -> str:
        return self.value.replace("_", " ").title()


@dataclass(frozen=True, slots=True)
class LeaderboardEntry:
    user_id: int
    tier: str
    score: float
    display_value: str
    last_activity: datetime | None = None
    rank: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "tier": self.tier,
            "score": self.score,
            "rank": self.rank,
            "display_value": self.display_value,
            "last_activity": self.last_activity.isoformat() if self.last_activity else None,
        }


def rank_entries(entries: Iterable[LeaderboardEntry]) -> list[LeaderboardEntry]:
    ordered = sorted(entries, key=lambda e: (-e.score, e.user_id))
    return [replace(entry, rank=position) for position, entry in enumerate(ordered, start=1)]


@dataclass(frozen=True, slots=True)
class LeaderboardStats:
    total_participants: int
    average_score: float
    top_percentile: float
    category: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_participants": self.total_participants,
            "average_score": self.average_score,
            "top_percentile": self.top_percentile,
            "category": self.category,
        }


def summarize(category: LeaderboardCategory, ranked: Sequence[LeaderboardEntry]) -> LeaderboardStats:
    """Participant count, mean score, and the score at the top-10% position."""
    scores = [entry.score for entry in ranked]
    if not scores:
        return LeaderboardStats(0, 0, 0, category.label)
    return LeaderboardStats(
        total_participants=len(scores),
        average_score=sum(scores) / len(scores),
        top_percentile=scores[math.floor(len(scores) * 0.1)],
        category=category.label,
    )
