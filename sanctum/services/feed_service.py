"""
sanctum.services.feed_service — Live activity feed
===================================================

Projects the newest ledger events into display items.  Pure read; the
feed is whatever the ledger says right now.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import or_

from sanctum.constants import TOKEN_DISPLAY_NAME, display_handle
from sanctum.database.models import LedgerEvent, Mechanic, ReforgeStatus, TokenType
from sanctum.services.notifications import Urgency
from sanctum.services.token_service import format_claim_time

if TYPE_CHECKING:
    from sanctum.services.ledger import ActivityLedger
    from sanctum.services.store import SanctumStore

FEED_URGENCY: dict[Mechanic, Urgency] = {
    Mechanic.ANOINTING: Urgency.HIGH,
    Mechanic.TOKEN_CLAIM: Urgency.CRITICAL,
    Mechanic.REFORGE: Urgency.MEDIUM,
    Mechanic.GOVERNANCE_VOTE: Urgency.LOW,
    Mechanic.RITUAL_VOTE: Urgency.MEDIUM,
}


@dataclass(frozen=True, slots=True)
class FeedItem:
    id: int
    type: str
    timestamp: datetime
    display_text: str
    user_ids: list[int]
    tier: str
    urgency: Urgency

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "timestamp": self.timestamp.isoformat(),
            "display_text": self.display_text,
            "user_ids": self.user_ids,
            "tier": self.tier,
            "urgency": self.urgency.value,
        }


def _display_text(event: LedgerEvent) -> str:
    actor = display_handle(event.actor_tier, event.actor_id)
    payload = event.payload or {}
    match Mechanic(event.mechanic):
        case Mechanic.ANOINTING:
            target = display_handle(event.target_tier, event.target_id)
            message = payload.get("public_message") or "deemed worthy of favor"
            return f'{actor} → {target}: "{message}"'
        case Mechanic.TOKEN_CLAIM:
            name = TOKEN_DISPLAY_NAME[TokenType(payload["token_type"])]
            return (
                f"{actor} claimed {name} {payload['serial_number']} "
                f"in {format_claim_time(int(payload['claim_time']))}"
            )
        case Mechanic.REFORGE:
            amount = payload.get("amount")
            price = f"${amount}" if payload.get("payment_method") == "usd" else f"{amount} $BONKED"
            return f"{actor} burned prophecy #{payload.get('reforge_number')} for deeper truth ({price})"
        case Mechanic.GOVERNANCE_VOTE:
            return f"{actor} cast {payload.get('power')} votes on proposal #{event.subject_id}"
        case Mechanic.RITUAL_VOTE:
            return f"{actor} joined ritual #{event.subject_id}"
    return actor


class FeedService:
    FEED_MECHANICS = tuple(FEED_URGENCY)

    def __init__(self, store: SanctumStore, ledger: ActivityLedger) -> None:
        self.store = store
        self.ledger = ledger

    def recent_feed(self, limit: int = 20) -> list[FeedItem]:
        """Newest first.  Reforges appear once they complete."""
        with self.store.read() as session:
            events = self.ledger.recent(
                session,
                limit,
                mechanics=self.FEED_MECHANICS,
                criteria=[
                    or_(
                        LedgerEvent.mechanic != Mechanic.REFORGE.value,
                        LedgerEvent.status == ReforgeStatus.COMPLETED.value,
                    )
                ],
            )
        items = []
        for event in events:
            user_ids = [event.actor_id]
            if event.target_id is not None:
                user_ids.append(event.target_id)
            items.append(
                FeedItem(
                    id=event.id,
                    type=event.mechanic,
                    timestamp=event.created_at,
                    display_text=_display_text(event),
                    user_ids=user_ids,
                    tier=event.actor_tier,
                    urgency=FEED_URGENCY[Mechanic(event.mechanic)],
                )
            )
        return items
