"""
sanctum.services.leaderboard_service — Leaderboards
====================================================

Every board is a fold over the ledger (or, for staking, the current
positions) computed on read.  Nothing is cached, so a board can never
disagree with the events behind it.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Callable, Iterable
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlalchemy.orm import Session

from sanctum.database.models import (
    LedgerEvent,
    Mechanic,
    Member,
    PaymentMethod,
    ReforgeStatus,
    StakingPosition,
)
from sanctum.engine.ranking import (
    LeaderboardCategory,
    LeaderboardEntry,
    LeaderboardStats,
    rank_entries,
    summarize,
)

if TYPE_CHECKING:
    from sanctum.services.ledger import ActivityLedger
    from sanctum.services.store import SanctumStore

logger = logging.getLogger(__name__)


class _Tally:
    __slots__ = ("count", "last", "usd", "bonked")

    def __init__(self) -> None:
        self.count = 0
        self.last: datetime | None = None
        self.usd = 0
        self.bonked = 0

    def add(self, event: LedgerEvent) -> None:
        self.count += 1
        if self.last is None or event.created_at > self.last:
            self.last = event.created_at


def _count_by(events: Iterable[LedgerEvent], key: Callable[[LedgerEvent], int]) -> dict[int, _Tally]:
    tallies: dict[int, _Tally] = defaultdict(_Tally)
    for event in events:
        tallies[key(event)].add(event)
    return tallies


class LeaderboardService:
    def __init__(self, store: SanctumStore, ledger: ActivityLedger) -> None:
        self.store = store
        self.ledger = ledger

    # ------------------------------------------------------------------
    # Scoring per category
    # ------------------------------------------------------------------
    def _most_anointed(self, session: Session) -> dict[int, tuple[float, str, datetime | None]]:
        events = self.ledger.query(
            session,
            Mechanic.ANOINTING,
            LedgerEvent.active.is_(True),
            LedgerEvent.expires_at > self.store.now(),
        )
        return {
            uid: (t.count, f"{t.count} anointments", t.last)
            for uid, t in _count_by(events, lambda e: e.target_id).items()
        }

    def _top_anointers(self, session: Session) -> dict[int, tuple[float, str, datetime | None]]:
        events = self.ledger.query(session, Mechanic.ANOINTING)
        return {
            uid: (t.count, f"{t.count} anointings given", t.last)
            for uid, t in _count_by(events, lambda e: e.actor_id).items()
        }

    def _most_reforged(self, session: Session) -> dict[int, tuple[float, str, datetime | None]]:
        events = self.ledger.query(
            session, Mechanic.REFORGE, LedgerEvent.status == ReforgeStatus.COMPLETED.value
        )
        tallies = _count_by(events, lambda e: e.actor_id)
        for event in events:
            tally = tallies[event.actor_id]
            amount = int(event.payload.get("amount", 0))
            if event.payload.get("payment_method") == PaymentMethod.BONKED:
                tally.bonked += amount
            else:
                tally.usd += amount
        rows = {}
        for uid, t in tallies.items():
            spend = f"${t.usd}"
            if t.bonked:
                spend += f" + {t.bonked:,} $BONKED"
            rows[uid] = (t.count, f"{t.count} reforges ({spend})", t.last)
        return rows

    def _most_bonked_staked(self, session: Session) -> dict[int, tuple[float, str, datetime | None]]:
        positions = session.scalars(select(StakingPosition)).all()
        return {
            p.user_id: (p.staked_amount, f"{p.staked_amount:,.0f} $BONKED", p.staked_at)
            for p in positions
        }

    def _most_claims(self, session: Session) -> dict[int, tuple[float, str, datetime | None]]:
        events = self.ledger.query(session, Mechanic.TOKEN_CLAIM)
        return {
            uid: (t.count, f"{t.count} tokens claimed", t.last)
            for uid, t in _count_by(events, lambda e: e.actor_id).items()
        }

    def _ranked(self, category: LeaderboardCategory | str) -> list[LeaderboardEntry]:
        category = LeaderboardCategory(category)
        scorer = {
            LeaderboardCategory.MOST_ANOINTED: self._most_anointed,
            LeaderboardCategory.TOP_ANOINTERS: self._top_anointers,
            LeaderboardCategory.MOST_REFORGED: self._most_reforged,
            LeaderboardCategory.MOST_BONKED_STAKED: self._most_bonked_staked,
            LeaderboardCategory.MOST_CLAIMS: self._most_claims,
        }[category]

        with self.store.read() as session:
            rows = scorer(session)
            tiers = {
                m.id: m.tier
                for m in session.scalars(select(Member).where(Member.id.in_(list(rows))))
            }
        return rank_entries(
            LeaderboardEntry(
                user_id=uid,
                tier=tiers.get(uid, ""),
                score=score,
                display_value=display,
                last_activity=last,
            )
            for uid, (score, display, last) in rows.items()
        )

    # ------------------------------------------------------------------
    # Public views
    # ------------------------------------------------------------------
    def leaderboard(self, category: LeaderboardCategory | str, limit: int = 10) -> list[LeaderboardEntry]:
        return self._ranked(category)[:limit]

    def user_rank(self, user_id: int, category: LeaderboardCategory | str) -> dict[str, int] | None:
        ranked = self._ranked(category)
        for entry in ranked:
            if entry.user_id == user_id:
                return {"rank": entry.rank, "total": len(ranked)}
        return None

    def stats(self, category: LeaderboardCategory | str) -> LeaderboardStats:
        category = LeaderboardCategory(category)
        return summarize(category, self._ranked(category))
