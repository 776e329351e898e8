"""
Sanctum — Entitlement & Ledger Engine for a Tiered Membership Community
========================================================================
Members hold one of four ranked tiers.  Five engagement mechanics
(anointing, staking governance, scarcity rituals, token claim races and
prophecy reforging) gate their actions on tier, timing windows and
per-member allowances, and every accepted action lands in one shared,
append-only activity ledger that the leaderboards and feeds read back.

Package layout::

    sanctum/
    ├── __main__.py        # python -m sanctum → uvicorn
    ├── config.py          # YAML → typed Python config
    ├── constants.py       # Tier rank table, multipliers, reforge pricing
    ├── database/
    │   ├── engine.py      # SQLAlchemy engine + async helper
    │   ├── models.py      # All ORM models and enums
    │   └── seed.py        # Demo proposals, rituals and token drops
    ├── engine/
    │   ├── clock.py       # Injectable clock (system / frozen)
    │   ├── outcomes.py    # Eligibility, Outcome, Rejection taxonomy
    │   ├── eligibility.py # Pure per-mechanic eligibility evaluators
    │   ├── benefits.py    # Anointment benefit calculation + fold
    │   ├── governance.py  # Voting power, tallies, staking rewards
    │   ├── ranking.py     # Leaderboard ranking projection
    │   ├── drops.py       # Token drop sources (weighted / scripted)
    │   └── prophecy.py    # Prophecy content generators
    ├── services/
    │   ├── store.py       # SanctumStore: engine + clock + writer lock
    │   ├── directory.py   # Membership Directory
    │   ├── ledger.py      # Activity Ledger (append / windowed queries)
    │   ├── *_service.py   # One mutation handler module per mechanic
    │   ├── notifications.py  # Outbound notification sink
    │   ├── registry.py    # Wires every service around one store
    │   └── scheduler.py   # Periodic background jobs
    └── api/
        ├── main.py        # FastAPI app
        ├── deps.py        # Dependency injection + JWT admin guard
        ├── serializers.py # ORM row → JSON dicts
        └── routes/        # Public + admin REST endpoints
"""

__version__ = "0.1.0"
