"""
sanctum.services.reforge_service — Prophecy burn & reforge
===========================================================

Two steps, mirroring the payment flow:

1. :meth:`ReforgeService.burn_and_reforge` checks eligibility, prices the
   reforge and records a ``pending`` reforge request in the ledger.
2. :meth:`ReforgeService.complete_reforge` (after payment) burns the
   original, stores generated successor content and marks the request
   ``completed``.

Price escalates per lineage: ``floor(base × 1.5 ** reforge_count)``, and a
successor inherits ``reforge_count + 1`` and points at its parent.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from sqlalchemy import select

from sanctum.constants import reforge_cost
from sanctum.database.models import (
    LedgerEvent,
    Mechanic,
    PaymentMethod,
    Prophecy,
    ReforgeStatus,
)
from sanctum.engine.eligibility import evaluate_reforge
from sanctum.engine.outcomes import Eligibility, Rejection, RejectionKind, mutation
from sanctum.engine.prophecy import ProphecyGenerator, TemplateProphecyGenerator

if TYPE_CHECKING:
    from sanctum.services.directory import MembershipDirectory
    from sanctum.services.ledger import ActivityLedger
    from sanctum.services.store import SanctumStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class BurnResult:
    success: bool
    reforge_id: int
    cost: int

    def to_dict(self) -> dict[str, Any]:
        return {"success": self.success, "reforge_id": self.reforge_id, "cost": self.cost}


@dataclass(frozen=True, slots=True)
class ReforgeCompletion:
    success: bool
    new_record_id: int

    def to_dict(self) -> dict[str, Any]:
        return {"success": self.success, "new_record_id": self.new_record_id}


class ReforgeService:
    def __init__(
        self,
        store: SanctumStore,
        directory: MembershipDirectory,
        ledger: ActivityLedger,
        generator: ProphecyGenerator | None = None,
    ) -> None:
        self.store = store
        self.directory = directory
        self.ledger = ledger
        self.generator: ProphecyGenerator = generator or TemplateProphecyGenerator()

    # ------------------------------------------------------------------
    # Records
    # ------------------------------------------------------------------
    @mutation
    def create_prophecy(
        self, owner_id: int, content: str, voice_url: str | None = None
    ) -> Prophecy:
        with self.store.transaction() as session:
            self.directory.require_in(session, owner_id)
            record = Prophecy(
                owner_id=owner_id,
                content=content,
                voice_url=voice_url,
                created_at=self.store.now(),
                burned=False,
                reforge_count=0,
            )
            session.add(record)
            session.flush()
        return record

    def get_prophecy(self, record_id: int) -> Prophecy | None:
        with self.store.read() as session:
            return session.get(Prophecy, record_id)

    def user_prophecies(self, user_id: int) -> list[Prophecy]:
        with self.store.read() as session:
            return list(
                session.scalars(
                    select(Prophecy)
                    .where(Prophecy.owner_id == user_id, Prophecy.burned.is_(False))
                    .order_by(Prophecy.created_at.desc(), Prophecy.id.desc())
                )
            )

    def burned_prophecies(self, user_id: int) -> list[Prophecy]:
        with self.store.read() as session:
            return list(
                session.scalars(
                    select(Prophecy)
                    .where(Prophecy.owner_id == user_id, Prophecy.burned.is_(True))
                    .order_by(Prophecy.burned_at.desc(), Prophecy.id.desc())
                )
            )

    def lineage(self, record_id: int) -> list[Prophecy]:
        """The chain of records ending at *record_id*, original first."""
        chain: list[Prophecy] = []
        with self.store.read() as session:
            record = session.get(Prophecy, record_id)
            while record is not None:
                chain.append(record)
                record = session.get(Prophecy, record.parent_id) if record.parent_id else None
        chain.reverse()
        return chain

    # ------------------------------------------------------------------
    # Burn & reforge
    # ------------------------------------------------------------------
    def check_eligibility(self, record_id: int, actor_id: int) -> Eligibility:
        with self.store.read() as session:
            member = self.directory.lookup(session, actor_id)
            return evaluate_reforge(
                session.get(Prophecy, record_id),
                actor_id=actor_id,
                actor_tier=member.tier if member is not None else None,
                now=self.store.now(),
            )

    @mutation
    def burn_and_reforge(
        self, record_id: int, actor_id: int, payment_method: PaymentMethod | str
    ) -> BurnResult:
        try:
            payment_method = PaymentMethod(payment_method)
        except ValueError:
            raise Rejection(RejectionKind.INELIGIBLE, "Unknown payment method") from None

        with self.store.transaction() as session:
            record = session.get(Prophecy, record_id)
            member = self.directory.lookup(session, actor_id)
            evaluate_reforge(
                record,
                actor_id=actor_id,
                actor_tier=member.tier if member is not None else None,
                now=self.store.now(),
            ).raise_if_denied()

            cost = reforge_cost(record.reforge_count, payment_method)
            request = self.ledger.append(
                session,
                Mechanic.REFORGE,
                member.id,
                member.tier,
                subject_id=record.id,
                status=ReforgeStatus.PENDING.value,
                payload={
                    "payment_method": payment_method.value,
                    "amount": cost,
                    "reforge_number": record.reforge_count + 1,
                },
            )
        logger.info(
            "Reforge %d requested by member %d for prophecy %d: %d %s",
            request.id, actor_id, record_id, cost, payment_method.value.upper(),
        )
        return BurnResult(success=True, reforge_id=request.id, cost=cost)

    @mutation
    def complete_reforge(self, reforge_id: int) -> ReforgeCompletion:
        already_burned = False
        with self.store.transaction() as session:
            request = self.ledger.get(session, reforge_id)
            if request is None or request.mechanic != Mechanic.REFORGE:
                raise Rejection(RejectionKind.NOT_FOUND, "Reforge request not found")
            if request.status != ReforgeStatus.PENDING:
                raise Rejection(RejectionKind.INVALID_STATE, "Reforge request already processed")

            original = session.get(Prophecy, request.subject_id)
            if original is None:
                raise Rejection(RejectionKind.NOT_FOUND, "Original prophecy not found")

            if original.burned:
                self.ledger.transition(request, status=ReforgeStatus.FAILED.value)
                already_burned = True
            else:
                try:
                    content = self.generator.generate(request.actor_id, original.content)
                except Exception:
                    logger.exception("Prophecy generation failed for reforge %d", reforge_id)
                    raise Rejection(
                        RejectionKind.EXTERNAL_FAILURE, "Prophecy generation failed"
                    ) from None

                now = self.store.now()
                original.burned = True
                original.burned_at = now
                successor = Prophecy(
                    owner_id=request.actor_id,
                    content=content,
                    created_at=now,
                    burned=False,
                    reforge_count=original.reforge_count + 1,
                    parent_id=original.id,
                )
                session.add(successor)
                session.flush()
                self.ledger.transition(request, status=ReforgeStatus.COMPLETED.value)

        if already_burned:
            raise Rejection(RejectionKind.INVALID_STATE, "This prophecy has already been burned")

        logger.info(
            "Prophecy reforged: member %d paid %s %s for reforge #%d",
            request.actor_id,
            request.payload.get("amount"),
            str(request.payload.get("payment_method", "")).upper(),
            successor.reforge_count,
        )
        return ReforgeCompletion(success=True, new_record_id=successor.id)

    def reforge_stats(self) -> dict[str, int]:
        with self.store.read() as session:
            completed = self.ledger.query(
                session,
                Mechanic.REFORGE,
                LedgerEvent.status == ReforgeStatus.COMPLETED.value,
            )
        revenue = {method: 0 for method in PaymentMethod}
        for event in completed:
            revenue[PaymentMethod(event.payload["payment_method"])] += int(event.payload["amount"])
        return {
            "total_reforges": len(completed),
            "revenue_usd": revenue[PaymentMethod.USD],
            "revenue_bonked": revenue[PaymentMethod.BONKED],
        }
