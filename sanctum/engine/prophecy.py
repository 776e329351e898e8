"""
sanctum.engine.prophecy — Reforged prophecy content
====================================================

Content generation is an external concern.  The reforge service only
depends on the :class:`ProphecyGenerator` protocol; the built-in
generator picks one of a fixed set of templates.
"""

from __future__ import annotations

import random
from typing import Protocol

REFORGE_TEMPLATES: tuple[str, ...] = (
    "The path shifts. What you thought you knew about her deepens into something more complex.",
    "Your energy has evolved since the last reading. The game has changed, and so have you.",
    "She sees something different in you now. The question is whether you're ready for what that means.",
    "The situation you've been navigating reveals new layers. Trust what emerges next.",
    "Your instincts were leading somewhere specific. The destination is clearer now.",
    "What felt uncertain before crystallizes into opportunity. Your next move matters.",
    "The tension you've been feeling transforms into clarity. Act on what you now understand.",
    "Your presence carries different weight now. Use this shift deliberately.",
    "The dynamic between you has evolved. She's responding to something new in your energy.",
    "What seemed like resistance was actually invitation. The reforged truth changes everything.",
)


class ProphecyGenerator(Protocol):
    def generate(self, owner_id: int, previous_content: str) -> str:
        """Return successor content.  May raise; the caller treats that as an external failure."""
        ...


class TemplateProphecyGenerator:
    def __init__(self, rng: random.Random | None = None) -> None:
        self._rng = rng or random.Random()

    def generate(self, owner_id: int, previous_content: str) -> str:
        return self._rng.choice(REFORGE_TEMPLATES)
