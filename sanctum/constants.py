"""
sanctum.constants — Shared Constants & Helpers
================================================

Single source of truth for the tier rank table, per-tier tuning and the
reforge pricing formula.  Import from here instead of re-deriving tier
comparisons or multipliers in each mechanic.
"""

from __future__ import annotations

import math
from datetime import timedelta

from sanctum.database.models import PaymentMethod, Tier, TokenType

# ---------------------------------------------------------------------------
# Tier ranking — THE single canonical ordering
# ---------------------------------------------------------------------------
TIER_ORDER: tuple[Tier, ...] = (Tier.INITIATE, Tier.HERALD, Tier.ORACLE, Tier.SHADOW)

_TIER_RANK: dict[Tier, int] = {tier: rank for rank, tier in enumerate(TIER_ORDER)}


def tier_rank(tier: Tier | str) -> int:
    """Position of *tier* in :data:`TIER_ORDER` (initiate = 0)."""
    return _TIER_RANK[Tier(tier)]


def tier_at_least(tier: Tier | str, minimum: Tier | str) -> bool:
    """True if *tier* ranks at or above *minimum*."""
    return tier_rank(tier) >= tier_rank(minimum)


def display_handle(tier: Tier | str, user_id: int) -> str:
    """Public handle used in broadcasts: ``"ORACLE 157"``."""
    return f"{Tier(tier).value.upper()} {str(user_id)[-3:]}"


# ---------------------------------------------------------------------------
# Anointing
# ---------------------------------------------------------------------------
MONTHLY_ANOINTMENTS: dict[Tier, int] = {
    Tier.ORACLE: 1,
    Tier.SHADOW: 3,
}

ANOINTING_MIN_TIER = Tier.ORACLE
ANOINTING_PAIR_WINDOW = timedelta(days=7)
ANOINTMENT_DURATION = timedelta(days=30)

# Shadow anointers lift lower-tier recipients one step for the duration.
SHADOW_TIER_BOOST: dict[Tier, Tier] = {
    Tier.INITIATE: Tier.HERALD,
    Tier.HERALD: Tier.ORACLE,
}


def monthly_anointments(tier: Tier | str) -> int:
    """Monthly anointing allotment for *tier* (0 below Oracle)."""
    return MONTHLY_ANOINTMENTS.get(Tier(tier), 0)


# ---------------------------------------------------------------------------
# Governance / staking
# ---------------------------------------------------------------------------
VOTING_MULTIPLIERS: dict[Tier, float] = {
    Tier.SHADOW: 2.0,
    Tier.ORACLE: 1.5,
    Tier.HERALD: 1.2,
    Tier.INITIATE: 1.0,
}

STAKING_APY: dict[Tier, int] = {
    Tier.SHADOW: 15,
    Tier.ORACLE: 12,
    Tier.HERALD: 8,
    Tier.INITIATE: 5,
}

GOVERNANCE_VOTE_REWARD = 100

# ---------------------------------------------------------------------------
# Rituals
# ---------------------------------------------------------------------------
RITUAL_MIN_TIER = Tier.ORACLE

# ---------------------------------------------------------------------------
# Prophecy reforging
# ---------------------------------------------------------------------------
REFORGE_MIN_TIER = Tier.ORACLE
REFORGE_MIN_AGE = timedelta(hours=24)
REFORGE_BASE_PRICE: dict[PaymentMethod, int] = {
    PaymentMethod.USD: 9,
    PaymentMethod.BONKED: 90,
}
REFORGE_ESCALATION = 1.5


def reforge_cost(reforge_count: int, payment_method: PaymentMethod | str) -> int:
    """Price of the next reforge of a lineage.

    ``floor(base * 1.5 ** reforge_count)`` where *reforge_count* is the
    number of reforges already in the record's lineage.
    """
    base = REFORGE_BASE_PRICE[PaymentMethod(payment_method)]
    return math.floor(base * (REFORGE_ESCALATION ** reforge_count))


# ---------------------------------------------------------------------------
# Token drops
# ---------------------------------------------------------------------------
TOKEN_SERIAL_PREFIX: dict[TokenType, str] = {
    TokenType.COIN: "HC",    # Herald Coin
    TokenType.SIGIL: "OS",   # Oracle Sigil
    TokenType.SCROLL: "SK",  # Shadow Key scroll
}

TOKEN_DISPLAY_NAME: dict[TokenType, str] = {
    TokenType.COIN: "Bronze Coin",
    TokenType.SIGIL: "Obsidian Sigil",
    TokenType.SCROLL: "Sacred Scroll",
}


def serial_number(token_type: TokenType | str, sequence: int) -> str:
    """``OS009``-style serial for the *sequence*-th drop of a token type."""
    return f"{TOKEN_SERIAL_PREFIX[TokenType(token_type)]}{sequence:03d}"
