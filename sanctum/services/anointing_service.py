"""
sanctum.services.anointing_service — Peer-to-peer anointing
============================================================

Oracle+ members spend a monthly allowance (oracle 1, shadow 3) to grant
another member a 30-day benefit bundle.  The allowance lives in a
:class:`ResourceCounter`; a member without a counter row implicitly has
their tier's full allotment.  Recipient benefits are always folded from
the ledger at read time.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from sanctum.constants import (
    ANOINTING_PAIR_WINDOW,
    ANOINTMENT_DURATION,
    display_handle,
    monthly_anointments,
)
from sanctum.database.models import (
    LedgerEvent,
    Mechanic,
    Member,
    ResourceCounter,
    SigilType,
)
from sanctum.engine.benefits import (
    AnointmentBenefits,
    calculate_anointment_benefits,
    fold_benefits,
)
from sanctum.engine.eligibility import evaluate_anointing
from sanctum.engine.outcomes import Eligibility, Rejection, RejectionKind, mutation
from sanctum.services.notifications import Notification, Urgency, dispatch

if TYPE_CHECKING:
    from sanctum.services.directory import MembershipDirectory
    from sanctum.services.ledger import ActivityLedger
    from sanctum.services.notifications import NotificationSink
    from sanctum.services.store import SanctumStore

logger = logging.getLogger(__name__)

DEFAULT_PUBLIC_MESSAGE = "deemed worthy of favor"


@dataclass(frozen=True, slots=True)
class AnointmentRecord:
    id: int
    anointer_id: int
    recipient_id: int
    anointer_tier: str
    recipient_tier: str
    sigil_type: str
    benefits: AnointmentBenefits
    public_message: str | None
    created_at: datetime
    expires_at: datetime
    active: bool

    @classmethod
    def from_event(cls, event: LedgerEvent) -> AnointmentRecord:
        return cls(
            id=event.id,
            anointer_id=event.actor_id,
            recipient_id=event.target_id,
            anointer_tier=event.actor_tier,
            recipient_tier=event.target_tier,
            sigil_type=event.payload["sigil_type"],
            benefits=AnointmentBenefits.from_dict(event.payload.get("benefits", {})),
            public_message=event.payload.get("public_message"),
            created_at=event.created_at,
            expires_at=event.expires_at,
            active=event.active,
        )

    @property
    def announcement(self) -> str:
        message = self.public_message or DEFAULT_PUBLIC_MESSAGE
        return (
            f"{display_handle(self.anointer_tier, self.anointer_id)} blessed "
            f"{display_handle(self.recipient_tier, self.recipient_id)} "
            f'with Sigil of {self.sigil_type}: "{message}"'
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "anointer_id": self.anointer_id,
            "recipient_id": self.recipient_id,
            "anointer_tier": self.anointer_tier,
            "recipient_tier": self.recipient_tier,
            "sigil_type": self.sigil_type,
            "benefits": self.benefits.to_dict(),
            "public_message": self.public_message,
            "created_at": self.created_at.isoformat(),
            "expires_at": self.expires_at.isoformat(),
            "active": self.active,
        }


class AnointingService:
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
    # Eligibility
    # ------------------------------------------------------------------
    def _remaining(self, session: Session, member: Member) -> int:
        counter = session.get(ResourceCounter, (member.id, Mechanic.ANOINTING.value))
        if counter is None:
            return monthly_anointments(member.tier)
        return counter.remaining

    def _evaluate(self, session: Session, actor_id: int, target_id: int | None) -> Eligibility:
        anointer = self.directory.lookup(session, actor_id)
        if anointer is None:
            return evaluate_anointing(None, 0, actor_id=actor_id)

        target = recent_pair = None
        if target_id is not None and target_id != actor_id:
            target = self.directory.lookup(session, target_id)
            since = self.store.now() - ANOINTING_PAIR_WINDOW
            recent_pair = bool(
                self.ledger.windowed(
                    session, Mechanic.ANOINTING, actor_id, since,
                    LedgerEvent.target_id == target_id,
                )
            )

        return evaluate_anointing(
            anointer.tier,
            self._remaining(session, anointer),
            actor_id=actor_id,
            target_id=target_id,
            target_tier=target.tier if target is not None else None,
            recent_pair=bool(recent_pair),
        )

    def check_eligibility(self, actor_id: int, target_id: int | None = None) -> Eligibility:
        with self.store.read() as session:
            return self._evaluate(session, actor_id, target_id)

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------
    @mutation
    def anoint(
        self,
        actor_id: int,
        target_id: int,
        sigil: SigilType | str,
        message: str | None = None,
    ) -> AnointmentRecord:
        try:
            sigil = SigilType(sigil)
        except ValueError:
            raise Rejection(RejectionKind.INELIGIBLE, "Unknown sigil type") from None

        with self.store.transaction() as session:
            self._evaluate(session, actor_id, target_id).raise_if_denied()

            anointer = self.directory.require_in(session, actor_id)
            recipient = self.directory.require_in(session, target_id)
            now = self.store.now()

            benefits = calculate_anointment_benefits(anointer.tier, recipient.tier, sigil)
            event = self.ledger.append(
                session,
                Mechanic.ANOINTING,
                anointer.id,
                anointer.tier,
                target_id=recipient.id,
                target_tier=recipient.tier,
                expires_at=now + ANOINTMENT_DURATION,
                payload={
                    "sigil_type": sigil.value,
                    "benefits": benefits.to_dict(),
                    "public_message": message,
                },
            )

            counter = session.get(ResourceCounter, (anointer.id, Mechanic.ANOINTING.value))
            if counter is None:
                counter = ResourceCounter(
                    user_id=anointer.id,
                    mechanic=Mechanic.ANOINTING.value,
                    remaining=monthly_anointments(anointer.tier),
                    period_started_at=now,
                )
                session.add(counter)
            counter.remaining -= 1
            counter.last_consumed_at = now

            record = AnointmentRecord.from_event(event)

        logger.info("ANOINTING: %s", record.announcement)
        dispatch(self.sink, [Notification(record.recipient_id, record.announcement, Urgency.HIGH)])
        return record

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------
    def _received(self, session: Session, user_id: int) -> list[LedgerEvent]:
        events = self.ledger.query(
            session,
            Mechanic.ANOINTING,
            LedgerEvent.target_id == user_id,
            LedgerEvent.active.is_(True),
            LedgerEvent.expires_at > self.store.now(),
        )
        return sorted(events, key=lambda e: (e.created_at, e.id))

    def get_user_anointments(self, user_id: int) -> dict[str, list[AnointmentRecord]]:
        """Active received anointments (oldest first) and every one given (newest first)."""
        with self.store.read() as session:
            received = self._received(session, user_id)
            given = sorted(
                self.ledger.query(session, Mechanic.ANOINTING, LedgerEvent.actor_id == user_id),
                key=lambda e: (e.created_at, e.id),
                reverse=True,
            )
        return {
            "received": [AnointmentRecord.from_event(e) for e in received],
            "given": [AnointmentRecord.from_event(e) for e in given],
        }

    def benefits_for(self, user_id: int) -> AnointmentBenefits:
        with self.store.read() as session:
            received = self._received(session, user_id)
        return fold_benefits(
            AnointmentBenefits.from_dict(e.payload.get("benefits", {})) for e in received
        )

    def recent_anointings(self, limit: int = 10) -> list[AnointmentRecord]:
        with self.store.read() as session:
            events = self.ledger.recent(session, limit, mechanics=[Mechanic.ANOINTING])
        return [AnointmentRecord.from_event(e) for e in events]

    def reset_monthly_limits(self) -> int:
        """Refill every anointing counter to its holder's current-tier allotment."""
        with self.store.transaction() as session:
            now = self.store.now()
            counters = session.scalars(
                select(ResourceCounter).where(
                    ResourceCounter.mechanic == Mechanic.ANOINTING.value
                )
            ).all()
            for counter in counters:
                member = self.directory.lookup(session, counter.user_id)
                counter.remaining = monthly_anointments(member.tier) if member else 0
                counter.period_started_at = now
        logger.info("Monthly anointing limits reset for %d members", len(counters))
        return len(counters)
