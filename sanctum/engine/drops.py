"""
sanctum.engine.drops — Token drop sources
==========================================

The scheduler asks a :class:`DropSource` what to drop next instead of
rolling dice inline.  Production uses the exclusivity-weighted random
source; tests feed a :class:`ScriptedDropSource`.
"""

from __future__ import annotations

import random
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Protocol

from sanctum.database.models import Tier, TokenType

# Rarer tiers drop less often.
DROP_TIER_WEIGHTS: dict[Tier, float] = {
    Tier.HERALD: 0.5,
    Tier.ORACLE: 0.3,
    Tier.SHADOW: 0.2,
}


@dataclass(frozen=True, slots=True)
class DropSpec:
    tier: Tier
    token_type: TokenType


class DropSource(Protocol):
    def next(self) -> DropSpec | None:
        """The next drop to create, or None to skip this round."""
        ...


class WeightedDropSource:
    """Tier by exclusivity weight, token type uniformly."""

    def __init__(self, rng: random.Random | None = None) -> None:
        self._rng = rng or random.Random()

    def next(self) -> DropSpec:
        tiers = list(DROP_TIER_WEIGHTS)
        tier = self._rng.choices(tiers, weights=[DROP_TIER_WEIGHTS[t] for t in tiers])[0]
        token_type = self._rng.choice(list(TokenType))
        return DropSpec(tier=tier, token_type=token_type)


class ScriptedDropSource:
    """Replays a fixed list of specs, then yields None."""

    def __init__(self, specs: Iterable[DropSpec]) -> None:
        self._specs = list(specs)

    def next(self) -> DropSpec | None:
        if not self._specs:
            return None
        return self._specs.pop(0)
