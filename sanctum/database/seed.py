"""
sanctum.database.seed — Demo Content Seeder
=============================================

Sample members, governance proposals, rituals, token drops and prophecies
so a fresh in-memory instance has something to show.  Only runs when
``seed_demo_data: true``.

Idempotent — does nothing if any member already exists.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sanctum.database.models import ProposalType, RitualType, Tier, TokenType

if TYPE_CHECKING:
    from sanctum.services.registry import SanctumServices

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Demo catalogue
# ---------------------------------------------------------------------------
DEMO_MEMBERS: tuple[tuple[str, Tier], ...] = (
    ("demo-oracle", Tier.ORACLE),
    ("demo-shadow", Tier.SHADOW),
    ("demo-herald", Tier.HERALD),
    ("demo-initiate", Tier.INITIATE),
)

DEMO_PROPOSALS = (
    # (type, title, description, proposer index, staking requirement)
    (
        ProposalType.PROPHECY_PROMPT,
        "Oracle Themes: Dominant Energy",
        "Should the Oracle focus more on dominant energy readings next quarter?",
        0,
        10_000,
    ),
    (
        ProposalType.GIRL_ANNOUNCEMENT,
        "New Content Creator: Luna Mystique",
        "Early access to Luna's private content for Shadow Key holders?",
        1,
        25_000,
    ),
)

DEMO_RITUALS = (
    # (type, title, description, window hours, quorum, whisper trigger, time decay)
    (
        RitualType.ORACLE_EXCLUSIVE,
        "Exclusive Dominant Energy Oracle Session",
        "Only Oracle+ members who staked in the last 168 hours may participate.",
        168,
        5,
        5,
        True,
    ),
    (
        RitualType.WHISPER_QUORUM,
        "Sacred Voice Whisper Recording",
        "Voice whispers are only recorded if 9 or more Oracle+ members take part.",
        72,
        9,
        9,
        False,
    ),
)

DEMO_DROPS = (
    (Tier.SHADOW, TokenType.SCROLL),
    (Tier.ORACLE, TokenType.SIGIL),
    (Tier.HERALD, TokenType.COIN),
)

DEMO_PROPHECIES = (
    (0, "Your energy draws attention without effort. She notices the way you command space."),
    (1, "The conversation you avoided last week - it's time. Your instincts were right."),
)


def seed_demo_data(services: SanctumServices) -> bool:
    """Populate demo content.  Returns False if the store was not empty."""
    if services.directory.list_members():
        logger.info("Demo seed skipped — members already exist")
        return False

    members = [
        services.directory.create_member(tier=tier, customer_ref=ref).value
        for ref, tier in DEMO_MEMBERS
    ]

    for proposal_type, title, description, proposer, requirement in DEMO_PROPOSALS:
        services.governance.create_proposal(
            proposal_type, title, description, members[proposer].id, requirement
        )

    for ritual_type, title, description, window, quorum, trigger, decay in DEMO_RITUALS:
        services.rituals.create_ritual(
            ritual_type, title, description, window, quorum, trigger, decay
        )

    for tier, token_type in DEMO_DROPS:
        services.tokens.create_drop(tier, token_type)

    for owner, content in DEMO_PROPHECIES:
        services.reforging.create_prophecy(members[owner].id, content)

    logger.info(
        "Demo data seeded: %d members, %d proposals, %d rituals, %d drops",
        len(members), len(DEMO_PROPOSALS), len(DEMO_RITUALS), len(DEMO_DROPS),
    )
    return True
