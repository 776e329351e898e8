"""
sanctum.services.registry — Service wiring
===========================================

Builds every mechanic service around one :class:`SanctumStore`.  The API,
the periodic jobs and the tests all start from :func:`build_services`.
"""

from __future__ import annotations

from dataclasses import dataclass

from sanctum.engine.drops import DropSource
from sanctum.engine.prophecy import ProphecyGenerator
from sanctum.services.anointing_service import AnointingService
from sanctum.services.directory import MembershipDirectory
from sanctum.services.feed_service import FeedService
from sanctum.services.governance_service import GovernanceService
from sanctum.services.leaderboard_service import LeaderboardService
from sanctum.services.ledger import ActivityLedger
from sanctum.services.notifications import LoggingNotificationSink, NotificationSink
from sanctum.services.reforge_service import ReforgeService
from sanctum.services.ritual_service import RitualService
from sanctum.services.store import SanctumStore
from sanctum.services.token_service import TokenService


@dataclass(slots=True)
class SanctumServices:
    store: SanctumStore
    sink: NotificationSink
    directory: MembershipDirectory
    ledger: ActivityLedger
    anointing: AnointingService
    governance: GovernanceService
    rituals: RitualService
    tokens: TokenService
    reforging: ReforgeService
    leaderboards: LeaderboardService
    feed: FeedService


def build_services(
    store: SanctumStore,
    sink: NotificationSink | None = None,
    drop_source: DropSource | None = None,
    generator: ProphecyGenerator | None = None,
) -> SanctumServices:
    sink = sink or LoggingNotificationSink()
    directory = MembershipDirectory(store)
    ledger = ActivityLedger(store)
    return SanctumServices(
        store=store,
        sink=sink,
        directory=directory,
        ledger=ledger,
        anointing=AnointingService(store, directory, ledger, sink),
        governance=GovernanceService(store, directory, ledger),
        rituals=RitualService(store, directory, ledger, sink),
        tokens=TokenService(store, directory, ledger, sink, drop_source),
        reforging=ReforgeService(store, directory, ledger, generator),
        leaderboards=LeaderboardService(store, ledger),
        feed=FeedService(store, ledger),
    )
