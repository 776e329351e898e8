"""
sanctum.engine.benefits — Anointment benefit bundles
=====================================================

Each anointment carries a benefit bundle computed once, at anointing
time, from the anointer's tier, the recipient's tier and the sigil.  A
recipient's current benefits are never stored: they are a fold over the
bundles of their active, unexpired anointments.

Fold rules:

- ``free_prophecies``           — summed
- ``voice_whispers_unlocked``   — OR
- ``encounter_priority``        — OR
- ``governance_voting_power``   — multiplied, starting from 1.0
- ``temporary_tier_boost``      — last folded wins (callers fold oldest first)
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import asdict, dataclass, replace
from typing import Any

from sanctum.constants import SHADOW_TIER_BOOST
from sanctum.database.models import SigilType, Tier


@dataclass(frozen=True, slots=True)
class AnointmentBenefits:
    free_prophecies: int = 0
    voice_whispers_unlocked: bool = False
    governance_voting_power: float = 1.0
    encounter_priority: bool = False
    temporary_tier_boost: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AnointmentBenefits:
        return cls(
            free_prophecies=int(data.get("free_prophecies", 0)),
            voice_whispers_unlocked=bool(data.get("voice_whispers_unlocked", False)),
            governance_voting_power=float(data.get("governance_voting_power", 1.0)),
            encounter_priority=bool(data.get("encounter_priority", False)),
            temporary_tier_boost=data.get("temporary_tier_boost"),
        )


def calculate_anointment_benefits(
    anointer_tier: Tier | str,
    recipient_tier: Tier | str,
    sigil: SigilType | str,
) -> AnointmentBenefits:
    """Benefit bundle of a single anointment."""
    benefits = AnointmentBenefits(
        free_prophecies=1,
        voice_whispers_unlocked=False,
        governance_voting_power=1.1,
        encounter_priority=False,
    )

    if Tier(anointer_tier) == Tier.SHADOW:
        benefits = AnointmentBenefits(
            free_prophecies=2,
            voice_whispers_unlocked=True,
            governance_voting_power=1.5,
            encounter_priority=True,
            temporary_tier_boost=_boost_value(recipient_tier),
        )

    match SigilType(sigil):
        case SigilType.FAVOR:
            benefits = replace(benefits, free_prophecies=benefits.free_prophecies + 1)
        case SigilType.WISDOM:
            benefits = replace(benefits, voice_whispers_unlocked=True)
        case SigilType.POWER:
            benefits = replace(
                benefits,
                governance_voting_power=benefits.governance_voting_power * 1.5,
            )

    return benefits


def _boost_value(recipient_tier: Tier | str) -> str | None:
    boost = SHADOW_TIER_BOOST.get(Tier(recipient_tier))
    return boost.value if boost else None


def fold_benefits(bundles: Iterable[AnointmentBenefits]) -> AnointmentBenefits:
    """Combine bundles in iteration order into the recipient's totals."""
    total = AnointmentBenefits()
    for bundle in bundles:
        total = AnointmentBenefits(
            free_prophecies=total.free_prophecies + bundle.free_prophecies,
            voice_whispers_unlocked=(
                total.voice_whispers_unlocked or bundle.voice_whispers_unlocked
            ),
            governance_voting_power=(
                total.governance_voting_power * bundle.governance_voting_power
            ),
            encounter_priority=total.encounter_priority or bundle.encounter_priority,
            temporary_tier_boost=(
                bundle.temporary_tier_boost
                if bundle.temporary_tier_boost is not None
                else total.temporary_tier_boost
            ),
        )
    return total
