"""
sanctum.services.ritual_service — Quorum-triggered scarcity rituals
====================================================================

A ritual collects a de-duplicated set of Oracle+ voters who staked
within the ritual's staking window.  Once the set reaches
``minimum_quorum`` the ritual passes; if ``whisper_trigger`` is also met,
every voter is notified.  A ritual that runs past ``expires_at`` without
quorum expires.  There is no rejected state.

Voters are not stored on the ritual: the voter set is the distinct
actors of the ritual's vote events in the ledger.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import TYPE_CHECKING, Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from sanctum.database.models import (
    LedgerEvent,
    Mechanic,
    RitualStatus,
    RitualType,
    ScarcityRitual,
    Tier,
)
from sanctum.engine.eligibility import evaluate_ritual_vote
from sanctum.engine.outcomes import Eligibility, Rejection, RejectionKind, mutation
from sanctum.services.notifications import Notification, Urgency, dispatch

if TYPE_CHECKING:
    from sanctum.services.directory import MembershipDirectory
    from sanctum.services.ledger import ActivityLedger
    from sanctum.services.notifications import NotificationSink
    from sanctum.services.store import SanctumStore

logger = logging.getLogger(__name__)

# Stakes made at these tiers count toward ritual participation.
QUALIFYING_STAKE_TIERS = (Tier.ORACLE.value, Tier.SHADOW.value)


@dataclass(frozen=True, slots=True)
class RitualVoteResult:
    success: bool
    quorum_status: str
    passed: bool
    voter_count: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "quorum_status": self.quorum_status,
            "passed": self.passed,
            "voter_count": self.voter_count,
        }


def quorum_status(voter_count: int, minimum_quorum: int) -> str:
    if voter_count >= minimum_quorum:
        return f"Quorum reached! {voter_count}/{minimum_quorum} ritual votes secured."
    needed = minimum_quorum - voter_count
    return (
        f"{voter_count}/{minimum_quorum} votes. "
        f"{needed} more needed for ritual activation."
    )


class RitualService:
    def __init__(
        self,
        store: SanctumStore,
        directory: MembershipDirectory,
        ledger: ActivityLedger,
        sink: NotificationSink,
    ) -> None:
        self.store = store
        self.directory = directory
        self.ledger = ledger
        self.sink = sink

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    @mutation
    def create_ritual(
        self,
        ritual_type: RitualType | str,
        title: str,
        description: str,
        staking_window_hours: int,
        minimum_quorum: int,
        whisper_trigger: int | None = None,
        time_decay: bool = False,
    ) -> ScarcityRitual:
        if staking_window_hours <= 0:
            raise Rejection(RejectionKind.INELIGIBLE, "Staking window must be positive")
        if minimum_quorum < 1:
            raise Rejection(RejectionKind.INELIGIBLE, "Minimum quorum must be at least 1")
        if whisper_trigger is not None and whisper_trigger > minimum_quorum:
            raise Rejection(
                RejectionKind.INELIGIBLE, "Whisper trigger cannot exceed minimum quorum"
            )

        with self.store.transaction() as session:
            now = self.store.now()
            ritual = ScarcityRitual(
                ritual_type=RitualType(ritual_type).value,
                title=title,
                description=description,
                staking_window_hours=staking_window_hours,
                minimum_quorum=minimum_quorum,
                whisper_trigger=whisper_trigger,
                time_decay=time_decay,
                status=RitualStatus.ACTIVE.value,
                created_at=now,
                expires_at=now + timedelta(hours=staking_window_hours),
            )
            session.add(ritual)
            session.flush()
        logger.info("Ritual %d opened: %s (quorum %d)", ritual.id, title, minimum_quorum)
        return ritual

    def _lapsed(self, ritual: ScarcityRitual) -> bool:
        return ritual.status == RitualStatus.ACTIVE and self.store.now() > ritual.expires_at

    def expire_overdue(self) -> int:
        """Sweep: ``active → expired`` for every ritual past its expiry."""
        with self.store.transaction() as session:
            overdue = session.scalars(
                select(ScarcityRitual).where(
                    ScarcityRitual.status == RitualStatus.ACTIVE.value,
                    ScarcityRitual.expires_at < self.store.now(),
                )
            ).all()
            for ritual in overdue:
                ritual.status = RitualStatus.EXPIRED.value
        if overdue:
            logger.info("Expired %d rituals without quorum", len(overdue))
        return len(overdue)

    def get_ritual(self, ritual_id: int) -> ScarcityRitual | None:
        with self.store.read() as session:
            return session.get(ScarcityRitual, ritual_id)

    def active_rituals(self) -> list[ScarcityRitual]:
        with self.store.read() as session:
            return list(
                session.scalars(
                    select(ScarcityRitual)
                    .where(
                        ScarcityRitual.status == RitualStatus.ACTIVE.value,
                        ScarcityRitual.expires_at > self.store.now(),
                    )
                    .order_by(ScarcityRitual.expires_at, ScarcityRitual.id)
                )
            )

    # ------------------------------------------------------------------
    # Voting
    # ------------------------------------------------------------------
    def _voter_ids(self, session: Session, ritual_id: int) -> list[int]:
        events = sorted(
            self.ledger.query(session, Mechanic.RITUAL_VOTE, LedgerEvent.subject_id == ritual_id),
            key=lambda e: (e.created_at, e.id),
        )
        return list(dict.fromkeys(e.actor_id for e in events))

    def voters(self, ritual_id: int) -> list[int]:
        with self.store.read() as session:
            return self._voter_ids(session, ritual_id)

    def _evaluate(self, session: Session, ritual: ScarcityRitual | None, actor_id: int) -> Eligibility:
        member = self.directory.lookup(session, actor_id)
        has_recent_stake = False
        if ritual is not None and member is not None:
            since = self.store.now() - timedelta(hours=ritual.staking_window_hours)
            has_recent_stake = bool(
                self.ledger.windowed(
                    session, Mechanic.STAKING, actor_id, since,
                    LedgerEvent.actor_tier.in_(QUALIFYING_STAKE_TIERS),
                )
            )
        return evaluate_ritual_vote(
            ritual,
            voter_tier=member.tier if member is not None else None,
            has_recent_stake=has_recent_stake,
            now=self.store.now(),
        )

    def check_eligibility(self, ritual_id: int, actor_id: int) -> Eligibility:
        with self.store.read() as session:
            return self._evaluate(session, session.get(ScarcityRitual, ritual_id), actor_id)

    @mutation
    def vote(self, ritual_id: int, actor_id: int) -> RitualVoteResult:
        lapsed = False
        whisper_recipients: list[int] = []

        with self.store.transaction() as session:
            ritual = session.get(ScarcityRitual, ritual_id)
            if ritual is not None and self._lapsed(ritual):
                ritual.status = RitualStatus.EXPIRED.value
                lapsed = True
            else:
                self._evaluate(session, ritual, actor_id).raise_if_denied()
                member = self.directory.require_in(session, actor_id)

                voter_ids = self._voter_ids(session, ritual.id)
                if actor_id not in voter_ids:
                    self.ledger.append(
                        session,
                        Mechanic.RITUAL_VOTE,
                        member.id,
                        member.tier,
                        subject_id=ritual.id,
                    )
                    voter_ids.append(actor_id)

                count = len(voter_ids)
                if count >= ritual.minimum_quorum:
                    ritual.status = RitualStatus.PASSED.value
                    ritual.passed_at = self.store.now()
                    if ritual.whisper_trigger is not None and count >= ritual.whisper_trigger:
                        whisper_recipients = voter_ids

                result = RitualVoteResult(
                    success=True,
                    quorum_status=quorum_status(count, ritual.minimum_quorum),
                    passed=ritual.status == RitualStatus.PASSED,
                    voter_count=count,
                )

        if lapsed:
            logger.info("Ritual %d expired before vote by %d", ritual_id, actor_id)
            raise Rejection(RejectionKind.INVALID_STATE, "Voting window has expired")

        if result.passed:
            logger.info("Ritual %d passed: %s", ritual_id, result.quorum_status)
        if whisper_recipients:
            dispatch(
                self.sink,
                (
                    Notification(
                        voter_id,
                        f"Ritual whisper unlocked: {ritual.title}",
                        Urgency.HIGH,
                    )
                    for voter_id in whisper_recipients
                ),
            )
        return result
