"""
sanctum.database.models — SQLAlchemy 2.0 Data Models
=====================================================

Tables:
- members             — Membership Directory (tier + membership start)
- ledger_events       — Append-only activity ledger shared by every mechanic
- resource_counters   — Per-member, per-mechanic remaining allowances
- staking_positions   — Current $BONKED stake and fixed voting power
- governance_proposals — Stake-weighted yes/no proposals
- scarcity_rituals    — Quorum-triggered ritual proposals
- token_drops         — Claimable physical token drops
- prophecies          — Prophecy records and their reforge lineage

All timestamps are timezone-aware UTC in Python and stored as naive UTC.
"""

from __future__ import annotations

import enum
from datetime import UTC, datetime

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    TypeDecorator,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------
class Base(DeclarativeBase):
    """Shared base for all Sanctum ORM models."""


class UTCDateTime(TypeDecorator):
    """Stores aware datetimes as naive UTC and re-attaches UTC on load.

    SQLite has no timezone support, so comparisons between loaded and
    freshly-computed values would otherwise mix naive and aware objects.
    """

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None and value.tzinfo is not None:
            value = value.astimezone(UTC).replace(tzinfo=None)
        return value

    def process_result_value(self, value, dialect):
        if value is not None and value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class Tier(enum.StrEnum):
    """Membership tiers, lowest first.  Rank lives in sanctum.constants."""
    INITIATE = "initiate"
    HERALD = "herald"
    ORACLE = "oracle"
    SHADOW = "shadow"


class Mechanic(enum.StrEnum):
    """Ledger partitions — one per kind of recorded action."""
    ANOINTING = "anointing"
    STAKING = "staking"
    GOVERNANCE_VOTE = "governance_vote"
    TOKEN_CLAIM = "token_claim"
    REFORGE = "reforge"
    RITUAL_VOTE = "ritual_vote"


class SigilType(enum.StrEnum):
    FAVOR = "favor"
    WISDOM = "wisdom"
    POWER = "power"


class ProposalType(enum.StrEnum):
    PROPHECY_PROMPT = "prophecy_prompt"
    MERCH_DESIGN = "merch_design"
    GIRL_ANNOUNCEMENT = "girl_announcement"
    FEATURE_REQUEST = "feature_request"


class ProposalStatus(enum.StrEnum):
    ACTIVE = "active"
    PASSED = "passed"
    REJECTED = "rejected"
    EXECUTED = "executed"


class VoteChoice(enum.StrEnum):
    YES = "yes"
    NO = "no"


class RitualType(enum.StrEnum):
    ORACLE_EXCLUSIVE = "oracle_exclusive"
    WHISPER_QUORUM = "whisper_quorum"
    SHADOW_ONLY = "shadow_only"


class RitualStatus(enum.StrEnum):
    ACTIVE = "active"
    PASSED = "passed"
    EXPIRED = "expired"


class TokenType(enum.StrEnum):
    COIN = "coin"
    SIGIL = "sigil"
    SCROLL = "scroll"


class TokenStatus(enum.StrEnum):
    AVAILABLE = "available"
    CLAIMED = "claimed"
    SHIPPED = "shipped"


class PaymentMethod(enum.StrEnum):
    USD = "usd"
    BONKED = "bonked"


class ReforgeStatus(enum.StrEnum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


# ---------------------------------------------------------------------------
# Members — the Membership Directory
# ---------------------------------------------------------------------------
class Member(Base):
    __tablename__ = "members"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    email: Mapped[str | None] = mapped_column(String(255), unique=True, default=None)
    customer_ref: Mapped[str | None] = mapped_column(String(100), unique=True, default=None)
    tier: Mapped[str] = mapped_column(String(20), nullable=False, default=Tier.INITIATE.value)
    membership_started_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    updated_at: Mapped[datetime | None] = mapped_column(UTCDateTime, default=None)

    def __repr__(self) -> str:
        return f"<Member id={self.id} tier={self.tier}>"


# ---------------------------------------------------------------------------
# LedgerEvent — append-only activity ledger
# ---------------------------------------------------------------------------
class LedgerEvent(Base):
    """One recorded action of any mechanic.

    Only ``status`` and ``active`` change after insert.  Mechanic-specific
    detail (sigil, benefits, vote choice, claim time, reforge price, …)
    lives in ``payload``.
    """
    __tablename__ = "ledger_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    mechanic: Mapped[str] = mapped_column(String(30), nullable=False)
    actor_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("members.id"), nullable=False
    )
    target_id: Mapped[int | None] = mapped_column(Integer, default=None)
    subject_id: Mapped[int | None] = mapped_column(Integer, default=None)
    actor_tier: Mapped[str] = mapped_column(String(20), nullable=False)
    target_tier: Mapped[str | None] = mapped_column(String(20), default=None)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    expires_at: Mapped[datetime | None] = mapped_column(UTCDateTime, default=None)
    status: Mapped[str | None] = mapped_column(String(20), default=None)
    active: Mapped[bool] = mapped_column(Boolean, default=True)
    payload: Mapped[dict] = mapped_column(JSON, default=dict)

    __table_args__ = (
        Index("ix_ledger_mechanic_actor_time", "mechanic", "actor_id", "created_at"),
        Index("ix_ledger_mechanic_subject", "mechanic", "subject_id"),
        Index("ix_ledger_mechanic_target", "mechanic", "target_id"),
    )

    def __repr__(self) -> str:
        return f"<LedgerEvent id={self.id} {self.mechanic} actor={self.actor_id}>"


# ---------------------------------------------------------------------------
# ResourceCounter — remaining allowance per member per mechanic
# ---------------------------------------------------------------------------
class ResourceCounter(Base):
    __tablename__ = "resource_counters"

    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("members.id"), primary_key=True
    )
    mechanic: Mapped[str] = mapped_column(String(30), primary_key=True)
    remaining: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    period_started_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    last_consumed_at: Mapped[datetime | None] = mapped_column(UTCDateTime, default=None)

    __table_args__ = (
        CheckConstraint("remaining >= 0", name="ck_resource_counters_non_negative"),
    )

    def __repr__(self) -> str:
        return f"<ResourceCounter user={self.user_id} {self.mechanic} left={self.remaining}>"


# ---------------------------------------------------------------------------
# StakingPosition — voting power is fixed at stake time
# ---------------------------------------------------------------------------
class StakingPosition(Base):
    __tablename__ = "staking_positions"

    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("members.id"), primary_key=True
    )
    staked_amount: Mapped[float] = mapped_column(Float, nullable=False)
    tier: Mapped[str] = mapped_column(String(20), nullable=False)
    voting_power: Mapped[int] = mapped_column(Integer, nullable=False)
    staked_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    rewards_earned: Mapped[int] = mapped_column(Integer, default=0)

    def __repr__(self) -> str:
        return f"<StakingPosition user={self.user_id} amount={self.staked_amount}>"


# ---------------------------------------------------------------------------
# GovernanceProposal — active → passed|rejected → executed
# ---------------------------------------------------------------------------
class GovernanceProposal(Base):
    __tablename__ = "governance_proposals"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    proposal_type: Mapped[str] = mapped_column(String(30), nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, default="")
    proposer_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("members.id"), nullable=False
    )
    staking_requirement: Mapped[float] = mapped_column(Float, default=0)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ProposalStatus.ACTIVE.value
    )
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    decided_at: Mapped[datetime | None] = mapped_column(UTCDateTime, default=None)
    executed_at: Mapped[datetime | None] = mapped_column(UTCDateTime, default=None)
    result: Mapped[str | None] = mapped_column(Text, default=None)

    def __repr__(self) -> str:
        return f"<GovernanceProposal id={self.id} {self.title!r} {self.status}>"


# ---------------------------------------------------------------------------
# ScarcityRitual — active → passed|expired
# ---------------------------------------------------------------------------
class ScarcityRitual(Base):
    __tablename__ = "scarcity_rituals"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    ritual_type: Mapped[str] = mapped_column(String(30), nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, default="")
    staking_window_hours: Mapped[int] = mapped_column(Integer, nullable=False)
    minimum_quorum: Mapped[int] = mapped_column(Integer, nullable=False)
    whisper_trigger: Mapped[int | None] = mapped_column(Integer, default=None)
    time_decay: Mapped[bool] = mapped_column(Boolean, default=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=RitualStatus.ACTIVE.value
    )
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    expires_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    passed_at: Mapped[datetime | None] = mapped_column(UTCDateTime, default=None)

    def __repr__(self) -> str:
        return f"<ScarcityRitual id={self.id} {self.title!r} {self.status}>"


# ---------------------------------------------------------------------------
# TokenDrop — available → claimed → shipped
# ---------------------------------------------------------------------------
class TokenDrop(Base):
    __tablename__ = "token_drops"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    token_type: Mapped[str] = mapped_column(String(20), nullable=False)
    serial_number: Mapped[str] = mapped_column(String(20), unique=True, nullable=False)
    required_tier: Mapped[str] = mapped_column(String(20), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=TokenStatus.AVAILABLE.value
    )
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    claimed_by: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("members.id"), default=None
    )
    claimed_at: Mapped[datetime | None] = mapped_column(UTCDateTime, default=None)
    claim_time_seconds: Mapped[int | None] = mapped_column(Integer, default=None)
    shipped_at: Mapped[datetime | None] = mapped_column(UTCDateTime, default=None)

    def __repr__(self) -> str:
        return f"<TokenDrop id={self.id} {self.serial_number} {self.status}>"


# ---------------------------------------------------------------------------
# Prophecy — burned records stay; successors point at their parent
# ---------------------------------------------------------------------------
class Prophecy(Base):
    __tablename__ = "prophecies"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    owner_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("members.id"), nullable=False
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    voice_url: Mapped[str | None] = mapped_column(String(500), default=None)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    burned: Mapped[bool] = mapped_column(Boolean, default=False)
    burned_at: Mapped[datetime | None] = mapped_column(UTCDateTime, default=None)
    reforge_count: Mapped[int] = mapped_column(Integer, default=0)
    parent_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("prophecies.id"), default=None
    )

    def __repr__(self) -> str:
        return f"<Prophecy id={self.id} owner={self.owner_id} burned={self.burned}>"
