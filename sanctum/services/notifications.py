"""
sanctum.services.notifications — Outbound notification sink
=============================================================

Delivery (push, email, chat) is external.  Mechanics hand
:class:`Notification` objects to :func:`dispatch` *after* their
transaction commits; a failing sink is logged and swallowed so a
notification problem never touches ledger state.
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Protocol

logger = logging.getLogger(__name__)


class Urgency(enum.StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


@dataclass(frozen=True, slots=True)
class Notification:
    recipient_id: int
    message: str
    urgency: Urgency = Urgency.MEDIUM


class NotificationSink(Protocol):
    def send(self, notification: Notification) -> None: ...


class LoggingNotificationSink:
    """Default sink: writes each notification to the log."""

    def send(self, notification: Notification) -> None:
        logger.info(
            "Notify user=%d [%s]: %s",
            notification.recipient_id,
            notification.urgency,
            notification.message,
        )


def dispatch(sink: NotificationSink, notifications: Iterable[Notification]) -> int:
    """Best-effort delivery.  Returns how many notifications were accepted."""
    delivered = 0
    for notification in notifications:
        try:
            sink.send(notification)
            delivered += 1
        except Exception:
            logger.exception(
                "Notification to user %d failed", notification.recipient_id
            )
    return delivered
