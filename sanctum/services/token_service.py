"""
sanctum.services.token_service — Physical token drops & claim races
====================================================================

Drops are announced to every member whose tier can claim them; the first
eligible claimant wins.  ``available → claimed`` happens at most once per
drop because the status check and the flip run inside one store
transaction.  ``claimed → shipped`` is an admin step.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import func, select

from sanctum.constants import (
    TOKEN_DISPLAY_NAME,
    display_handle,
    serial_number,
    tier_at_least,
)
from sanctum.database.models import (
    Mechanic,
    Member,
    Tier,
    TokenDrop,
    TokenStatus,
    TokenType,
)
from sanctum.engine.drops import DropSource, WeightedDropSource
from sanctum.engine.eligibility import evaluate_token_claim
from sanctum.engine.outcomes import Rejection, RejectionKind, mutation
from sanctum.services.notifications import Notification, Urgency, dispatch

if TYPE_CHECKING:
    from sanctum.services.directory import MembershipDirectory
    from sanctum.services.ledger import ActivityLedger
    from sanctum.services.notifications import NotificationSink
    from sanctum.services.store import SanctumStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ClaimResult:
    success: bool
    message: str
    claim_time: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"success": self.success, "message": self.message, "claim_time": self.claim_time}


@dataclass(frozen=True, slots=True)
class ClaimRecord:
    user_id: int
    token_id: int
    serial_number: str
    claim_time: int
    tier: str
    timestamp: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "token_id": self.token_id,
            "serial_number": self.serial_number,
            "claim_time": self.claim_time,
            "tier": self.tier,
            "timestamp": self.timestamp.isoformat(),
        }


def format_claim_time(seconds: int) -> str:
    return f"{seconds}sec" if seconds < 60 else f"{seconds // 60}min"


def drop_announcement(drop: TokenDrop) -> str:
    name = TOKEN_DISPLAY_NAME[TokenType(drop.token_type)]
    return f"{name} {drop.serial_number} has manifested. Only {drop.required_tier} tier may claim."


class TokenService:
    def __init__(
        self,
        store: SanctumStore,
        directory: MembershipDirectory,
        ledger: ActivityLedger,
        sink: NotificationSink,
        drop_source: DropSource | None = None,
    ) -> None:
        self.store = store
        self.directory = directory
        self.ledger = ledger
        self.sink = sink
        self.drop_source: DropSource = drop_source or WeightedDropSource()

    # ------------------------------------------------------------------
    # Drops
    # ------------------------------------------------------------------
    def create_drop(self, tier: Tier | str, token_type: TokenType | str) -> TokenDrop:
        tier = Tier(tier)
        token_type = TokenType(token_type)
        with self.store.transaction() as session:
            existing = session.scalar(
                select(func.count())
                .select_from(TokenDrop)
                .where(TokenDrop.token_type == token_type.value)
            )
            drop = TokenDrop(
                token_type=token_type.value,
                serial_number=serial_number(token_type, existing + 1),
                required_tier=tier.value,
                status=TokenStatus.AVAILABLE.value,
                created_at=self.store.now(),
            )
            session.add(drop)
            session.flush()
            eligible = [
                m.id for m in session.scalars(select(Member)) if tier_at_least(m.tier, tier)
            ]

        announcement = drop_announcement(drop)
        logger.info("TOKEN DROP: %s", announcement)
        dispatch(self.sink, (Notification(uid, announcement, Urgency.HIGH) for uid in eligible))
        return drop

    def schedule_drop(self) -> TokenDrop | None:
        """Create whatever the drop source yields next."""
        spec = self.drop_source.next()
        if spec is None:
            return None
        return self.create_drop(spec.tier, spec.token_type)

    def get_drop(self, token_id: int) -> TokenDrop | None:
        with self.store.read() as session:
            return session.get(TokenDrop, token_id)

    def available_tokens(self, tier: Tier | str) -> list[TokenDrop]:
        """Unclaimed drops a member of *tier* could claim."""
        with self.store.read() as session:
            drops = session.scalars(
                select(TokenDrop)
                .where(TokenDrop.status == TokenStatus.AVAILABLE.value)
                .order_by(TokenDrop.created_at, TokenDrop.id)
            ).all()
        return [d for d in drops if tier_at_least(tier, d.required_tier)]

    # ------------------------------------------------------------------
    # Claims
    # ------------------------------------------------------------------
    @mutation
    def claim(self, token_id: int, actor_id: int) -> ClaimResult:
        with self.store.transaction() as session:
            drop = session.get(TokenDrop, token_id)
            member = self.directory.lookup(session, actor_id)
            evaluate_token_claim(
                drop, claimant_tier=member.tier if member is not None else None
            ).raise_if_denied()

            now = self.store.now()
            claim_time = int((now - drop.created_at).total_seconds())
            drop.status = TokenStatus.CLAIMED.value
            drop.claimed_by = member.id
            drop.claimed_at = now
            drop.claim_time_seconds = claim_time

            self.ledger.append(
                session,
                Mechanic.TOKEN_CLAIM,
                member.id,
                member.tier,
                subject_id=drop.id,
                payload={
                    "serial_number": drop.serial_number,
                    "token_type": drop.token_type,
                    "claim_time": claim_time,
                },
            )
            name = TOKEN_DISPLAY_NAME[TokenType(drop.token_type)]
            broadcast = (
                f"{display_handle(member.tier, member.id)} claimed {name} "
                f"{drop.serial_number} in {format_claim_time(claim_time)}"
            )

        message = f"{drop.serial_number} claimed successfully!"
        logger.info("CLAIM SUCCESS: %s", broadcast)
        dispatch(self.sink, [Notification(actor_id, message, Urgency.CRITICAL)])
        return ClaimResult(success=True, message=message, claim_time=claim_time)

    def recent_claims(self, limit: int = 10) -> list[ClaimRecord]:
        with self.store.read() as session:
            events = self.ledger.recent(session, limit, mechanics=[Mechanic.TOKEN_CLAIM])
        return [
            ClaimRecord(
                user_id=e.actor_id,
                token_id=e.subject_id,
                serial_number=e.payload.get("serial_number", ""),
                claim_time=int(e.payload.get("claim_time", 0)),
                tier=e.actor_tier,
                timestamp=e.created_at,
            )
            for e in events
        ]

    @mutation
    def mark_shipped(self, token_id: int) -> TokenDrop:
        with self.store.transaction() as session:
            drop = session.get(TokenDrop, token_id)
            if drop is None:
                raise Rejection(RejectionKind.NOT_FOUND, "Token not found")
            if drop.status != TokenStatus.CLAIMED:
                raise Rejection(RejectionKind.INVALID_STATE, "Token has not been claimed")
            drop.status = TokenStatus.SHIPPED.value
            drop.shipped_at = self.store.now()
        logger.info("Token %s shipped to member %d", drop.serial_number, drop.claimed_by)
        return drop
