"""
sanctum.services.ledger — Activity Ledger
==========================================

Append-only event log shared by every mechanic.  All helpers take the
caller's ``Session`` so an append always commits (or rolls back)
together with the counter or status change it records.

The windowed query is the primitive every "once per week", "staked in
the last 168 hours" rule is built on.  Reads are unordered unless a
helper says otherwise; consumers that need recency sort explicitly.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from datetime import datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from sanctum.database.models import LedgerEvent, Mechanic, Tier
from sanctum.services.store import SanctumStore

logger = logging.getLogger(__name__)


class ActivityLedger:
    def __init__(self, store: SanctumStore) -> None:
        self.store = store

    def append(
        self,
        session: Session,
        mechanic: Mechanic,
        actor_id: int,
        actor_tier: Tier | str,
        *,
        target_id: int | None = None,
        target_tier: Tier | str | None = None,
        subject_id: int | None = None,
        expires_at: datetime | None = None,
        status: str | None = None,
        payload: dict[str, Any] | None = None,
    ) -> LedgerEvent:
        """Record one event.  ``created_at`` is taken from the store clock."""
        event = LedgerEvent(
            mechanic=Mechanic(mechanic).value,
            actor_id=actor_id,
            actor_tier=str(actor_tier),
            target_id=target_id,
            target_tier=str(target_tier) if target_tier is not None else None,
            subject_id=subject_id,
            created_at=self.store.now(),
            expires_at=expires_at,
            status=status,
            active=True,
            payload=dict(payload or {}),
        )
        session.add(event)
        session.flush()
        logger.debug("Ledger append %s", event)
        return event

    @staticmethod
    def get(session: Session, event_id: int) -> LedgerEvent | None:
        return session.get(LedgerEvent, event_id)

    @staticmethod
    def query(session: Session, mechanic: Mechanic, *criteria: Any) -> Sequence[LedgerEvent]:
        """All events of *mechanic* matching extra SQLAlchemy *criteria*."""
        stmt = select(LedgerEvent).where(LedgerEvent.mechanic == Mechanic(mechanic).value)
        if criteria:
            stmt = stmt.where(*criteria)
        return session.scalars(stmt).all()

    def windowed(
        self,
        session: Session,
        mechanic: Mechanic,
        actor_id: int,
        since: datetime,
        *criteria: Any,
    ) -> Sequence[LedgerEvent]:
        """Events by *actor_id* created strictly after *since*."""
        return self.query(
            session,
            mechanic,
            LedgerEvent.actor_id == actor_id,
            LedgerEvent.created_at > since,
            *criteria,
        )

    @staticmethod
    def recent(
        session: Session,
        limit: int = 20,
        mechanics: Iterable[Mechanic] | None = None,
        criteria: Iterable[Any] = (),
    ) -> Sequence[LedgerEvent]:
        """Newest first across mechanics."""
        stmt = select(LedgerEvent)
        criteria = list(criteria)
        if criteria:
            stmt = stmt.where(*criteria)
        if mechanics is not None:
            stmt = stmt.where(LedgerEvent.mechanic.in_([Mechanic(m).value for m in mechanics]))
        stmt = stmt.order_by(LedgerEvent.created_at.desc(), LedgerEvent.id.desc()).limit(limit)
        return session.scalars(stmt).all()

    @staticmethod
    def transition(
        event: LedgerEvent,
        *,
        status: str | None = None,
        active: bool | None = None,
    ) -> LedgerEvent:
        """The only sanctioned mutation of a recorded event."""
        if status is not None:
            event.status = status
        if active is not None:
            event.active = active
        return event
