"""
sanctum.engine.outcomes — Eligibility verdicts and handler outcomes
====================================================================

Rejection taxonomy shared by every mechanic:

- ``not_found``        — referenced member / record / proposal / token is unknown
- ``ineligible``       — a business rule said no (tier, window, allowance, …)
- ``invalid_state``    — the target is in the wrong lifecycle state
- ``external_failure`` — a collaborator failed; core state is untouched

Handlers raise :class:`Rejection` internally.  The :func:`mutation`
decorator turns it into a rejected :class:`Outcome` at the service
boundary, so rejections never escape to callers as exceptions.
"""

from __future__ import annotations

import enum
import functools
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Generic, ParamSpec, TypeVar

logger = logging.getLogger(__name__)

P = ParamSpec("P")
T = TypeVar("T")


class RejectionKind(enum.StrEnum):
    NOT_FOUND = "not_found"
    INELIGIBLE = "ineligible"
    INVALID_STATE = "invalid_state"
    EXTERNAL_FAILURE = "external_failure"


class Rejection(Exception):
    """Raised inside a mutation handler to abort with a user-facing reason."""

    def __init__(self, kind: RejectionKind, reason: str) -> None:
        super().__init__(reason)
        self.kind = kind
        self.reason = reason


@dataclass(frozen=True, slots=True)
class Eligibility:
    """Admit/reject verdict of an eligibility evaluator."""

    eligible: bool
    reason: str | None = None
    remaining: int | None = None
    kind: RejectionKind | None = None

    @classmethod
    def admit(cls, remaining: int | None = None) -> Eligibility:
        return cls(eligible=True, remaining=remaining)

    @classmethod
    def deny(
        cls,
        reason: str,
        kind: RejectionKind = RejectionKind.INELIGIBLE,
        remaining: int | None = None,
    ) -> Eligibility:
        return cls(eligible=False, reason=reason, remaining=remaining, kind=kind)

    def raise_if_denied(self) -> None:
        if not self.eligible:
            raise Rejection(self.kind or RejectionKind.INELIGIBLE, self.reason or "Not eligible")

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"eligible": self.eligible}
        if self.reason is not None:
            data["reason"] = self.reason
        if self.remaining is not None:
            data["remaining"] = self.remaining
        return data


@dataclass(frozen=True, slots=True)
class Outcome(Generic[T]):
    """Result of a mutation handler: a value or a reason."""

    success: bool
    value: T | None = None
    reason: str | None = None
    kind: RejectionKind | None = None

    @classmethod
    def ok(cls, value: T) -> Outcome[T]:
        return cls(success=True, value=value)

    @classmethod
    def rejected(cls, kind: RejectionKind, reason: str) -> Outcome[T]:
        return cls(success=False, reason=reason, kind=kind)


def mutation(func: Callable[P, T]) -> Callable[P, Outcome[T]]:
    """Wrap a handler so a raised :class:`Rejection` becomes a rejected Outcome."""

    @functools.wraps(func)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> Outcome[T]:
        try:
            return Outcome.ok(func(*args, **kwargs))
        except Rejection as exc:
            logger.info("%s rejected (%s): %s", func.__qualname__, exc.kind, exc.reason)
            return Outcome.rejected(exc.kind, exc.reason)

    return wrapper
