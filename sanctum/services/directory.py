"""
sanctum.services.directory — Membership Directory
==================================================

Source of truth for a member's tier and membership start.  Every mechanic
reads members through here; tiers change only through
:meth:`MembershipDirectory.upgrade_tier` or a payment confirmation.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from sanctum.database.models import Member, Tier
from sanctum.engine.eligibility import USER_NOT_FOUND
from sanctum.engine.outcomes import Rejection, RejectionKind, mutation
from sanctum.services.store import SanctumStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class PaymentConfirmation:
    """Tier-activation trigger delivered by the external payment processor."""

    customer_ref: str
    amount_paid: float
    metadata: dict[str, Any] = field(default_factory=dict)


def _parse_tier(value: Tier | str) -> Tier:
    try:
        return Tier(value)
    except ValueError:
        raise Rejection(RejectionKind.INELIGIBLE, "Unknown tier") from None


class MembershipDirectory:
    def __init__(self, store: SanctumStore) -> None:
        self.store = store

    # -- session-level helpers used by the mechanic services ---------------
    @staticmethod
    def lookup(session: Session, user_id: int) -> Member | None:
        return session.get(Member, user_id)

    @staticmethod
    def require_in(session: Session, user_id: int) -> Member:
        member = session.get(Member, user_id)
        if member is None:
            raise Rejection(RejectionKind.NOT_FOUND, USER_NOT_FOUND)
        return member

    # -- public API -------------------------------------------------------
    def get(self, user_id: int) -> Member | None:
        with self.store.read() as session:
            return session.get(Member, user_id)

    def require(self, user_id: int) -> Member:
        with self.store.read() as session:
            return self.require_in(session, user_id)

    @staticmethod
    def _ensure_unique(session: Session, email: str | None, customer_ref: str | None) -> None:
        taken = select(Member.id).where(Member.email == email)
        if email is not None and session.scalar(taken) is not None:
            raise Rejection(RejectionKind.INVALID_STATE, "Email already registered")
        taken = select(Member.id).where(Member.customer_ref == customer_ref)
        if customer_ref is not None and session.scalar(taken) is not None:
            raise Rejection(RejectionKind.INVALID_STATE, "Customer reference already registered")

    @mutation
    def create_member(
        self,
        tier: Tier | str = Tier.INITIATE,
        email: str | None = None,
        customer_ref: str | None = None,
    ) -> Member:
        tier = _parse_tier(tier)
        with self.store.transaction() as session:
            self._ensure_unique(session, email, customer_ref)
            member = Member(
                tier=tier.value,
                email=email,
                customer_ref=customer_ref,
                membership_started_at=self.store.now(),
            )
            session.add(member)
            session.flush()
        logger.info("Member %d created (tier=%s)", member.id, member.tier)
        return member

    def find_by_customer_ref(self, customer_ref: str) -> Member | None:
        with self.store.read() as session:
            return session.scalar(select(Member).where(Member.customer_ref == customer_ref))

    def find_by_email(self, email: str) -> Member | None:
        with self.store.read() as session:
            return session.scalar(select(Member).where(Member.email == email))

    def list_members(self) -> list[Member]:
        with self.store.read() as session:
            return list(session.scalars(select(Member).order_by(Member.id)))

    @mutation
    def upgrade_tier(self, user_id: int, tier: Tier | str) -> Member:
        """Set a member's tier.  Existing staking power is not recomputed."""
        new_tier = _parse_tier(tier)
        with self.store.transaction() as session:
            member = self.require_in(session, user_id)
            previous = member.tier
            member.tier = new_tier.value
            member.updated_at = self.store.now()
        logger.info("Member %d tier %s → %s", user_id, previous, new_tier)
        return member

    @mutation
    def apply_payment(self, confirmation: PaymentConfirmation) -> Member:
        """Create or upgrade the member a payment belongs to."""
        metadata = confirmation.metadata or {}
        requested = metadata.get("tier")
        with self.store.transaction() as session:
            member = session.scalar(
                select(Member).where(Member.customer_ref == confirmation.customer_ref)
            )
            if member is None:
                tier = _parse_tier(requested or Tier.INITIATE)
                self._ensure_unique(session, metadata.get("email"), None)
                member = Member(
                    tier=tier.value,
                    email=metadata.get("email"),
                    customer_ref=confirmation.customer_ref,
                    membership_started_at=self.store.now(),
                )
                session.add(member)
                session.flush()
                logger.info(
                    "Payment %s (%.2f) activated new member %d at %s",
                    confirmation.customer_ref, confirmation.amount_paid, member.id, tier,
                )
            elif requested:
                member.tier = _parse_tier(requested).value
                member.updated_at = self.store.now()
                logger.info(
                    "Payment %s (%.2f) moved member %d to %s",
                    confirmation.customer_ref, confirmation.amount_paid, member.id, member.tier,
                )
        return member
