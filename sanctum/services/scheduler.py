"""
sanctum.services.scheduler — Periodic background jobs
======================================================

Three independent asyncio loops started from the API lifespan:

- monthly reset   — checks hourly, refills anointing allowances once the
                    calendar month changes
- token drops     — every ``token_drop_interval_minutes``
- ritual sweep    — every ``ritual_sweep_minutes``, expires overdue rituals

Each ``run_once_*`` coroutine is a single iteration; the store work runs
on a worker thread via :func:`~sanctum.database.engine.run_db`.  Loop
errors are logged and the loop keeps going.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

from sanctum.database.engine import run_db

if TYPE_CHECKING:
    from sanctum.config import SanctumConfig
    from sanctum.database.models import TokenDrop
    from sanctum.services.registry import SanctumServices

logger = logging.getLogger(__name__)

MONTHLY_CHECK_SECONDS = 3600


class PeriodicJobs:
    def __init__(self, services: SanctumServices, config: SanctumConfig) -> None:
        self.services = services
        self.config = config
        now = services.store.now()
        self._period = (now.year, now.month)
        self._tasks: list[asyncio.Task] = []

    # ------------------------------------------------------------------
    # Single iterations
    # ------------------------------------------------------------------
    async def run_once_monthly_reset(self) -> int | None:
        """Reset allowances if the month rolled over since the last check."""
        now = self.services.store.now()
        period = (now.year, now.month)
        if period == self._period:
            return None
        count = await run_db(self.services.anointing.reset_monthly_limits)
        self._period = period
        logger.info("Monthly reset for %04d-%02d done (%d counters)", *period, count)
        return count

    async def run_once_token_drop(self) -> TokenDrop | None:
        return await run_db(self.services.tokens.schedule_drop)

    async def run_once_ritual_sweep(self) -> int:
        return await run_db(self.services.rituals.expire_overdue)

    # ------------------------------------------------------------------
    # Loops
    # ------------------------------------------------------------------
    def _spawn(
        self,
        loop: asyncio.AbstractEventLoop,
        name: str,
        interval: float,
        job: Callable[[], Awaitable[object]],
    ) -> None:
        async def _loop() -> None:
            while True:
                await asyncio.sleep(interval)
                try:
                    await job()
                except Exception:
                    logger.exception("Periodic job %s failed", name)

        self._tasks.append(loop.create_task(_loop(), name=name))

    def start(self, loop: asyncio.AbstractEventLoop) -> None:
        if self._tasks:
            return
        self._spawn(loop, "monthly-reset", MONTHLY_CHECK_SECONDS, self.run_once_monthly_reset)
        self._spawn(
            loop,
            "token-drops",
            self.config.token_drop_interval_minutes * 60,
            self.run_once_token_drop,
        )
        self._spawn(
            loop,
            "ritual-sweep",
            self.config.ritual_sweep_minutes * 60,
            self.run_once_ritual_sweep,
        )
        logger.info("Periodic jobs started (%d loops)", len(self._tasks))

    def stop(self) -> None:
        for task in self._tasks:
            task.cancel()
        self._tasks = []
