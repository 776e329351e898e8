"""
sanctum.services.store — Shared store handle
=============================================

One :class:`SanctumStore` is built at startup and handed to every
mechanic service.  It owns:

- the SQLAlchemy ``Engine`` all mechanic state lives in
- the :class:`~sanctum.engine.clock.Clock` every "now" read goes through
- a single-writer lock, so an eligibility check and the mutation it
  admits always run as one transaction even under a threaded server

Usage::

    store = SanctumStore(create_db_engine(), clock=FrozenClock())
    with store.transaction() as session:
        ...
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime

from sqlalchemy import Engine
from sqlalchemy.orm import Session

from sanctum.database.engine import init_db
from sanctum.engine.clock import Clock, SystemClock

logger = logging.getLogger(__name__)


class SanctumStore:
    def __init__(self, engine: Engine, clock: Clock | None = None) -> None:
        self.engine = engine
        self.clock: Clock = clock or SystemClock()
        self._lock = threading.RLock()
        init_db(engine)

    def now(self) -> datetime:
        return self.clock.now()

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """Exclusive read-evaluate-write unit.

        Commits on clean exit; any exception (including a
        :class:`~sanctum.engine.outcomes.Rejection`) rolls back every
        write made inside the block before propagating.
        """
        with self._lock, Session(self.engine, expire_on_commit=False) as session:
            try:
                yield session
                session.commit()
            except Exception:
                session.rollback()
                raise

    @contextmanager
    def read(self) -> Iterator[Session]:
        """Read-only session.  Never commits."""
        with self._lock, Session(self.engine, expire_on_commit=False) as session:
            yield session
