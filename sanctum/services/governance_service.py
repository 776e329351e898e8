"""
sanctum.services.governance_service — $BONKED staking & proposals
==================================================================

Members stake to obtain voting power (fixed at stake time), then vote
yes/no on proposals.  Every stake and vote is a ledger event; a
proposal's tally is always recomputed from its vote events, latest vote
per member.

Proposal lifecycle::

    active ──decide──▶ passed ──execute──▶ executed
           └────────▶ rejected
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from sanctum.constants import GOVERNANCE_VOTE_REWARD
from sanctum.database.models import (
    GovernanceProposal,
    LedgerEvent,
    Mechanic,
    ProposalStatus,
    ProposalType,
    StakingPosition,
    VoteChoice,
)
from sanctum.engine.eligibility import evaluate_governance_vote
from sanctum.engine.governance import (
    StakingRewards,
    VoteTally,
    execution_effect,
    is_passed,
    project_staking_rewards,
    tally_votes,
    voting_power,
)
from sanctum.engine.outcomes import Eligibility, Rejection, RejectionKind, mutation

if TYPE_CHECKING:
    from sanctum.services.directory import MembershipDirectory
    from sanctum.services.ledger import ActivityLedger
    from sanctum.services.store import SanctumStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ProposalExecution:
    passed: bool
    executed: bool
    result: str

    def to_dict(self) -> dict[str, Any]:
        return {"passed": self.passed, "executed": self.executed, "result": self.result}


def _proposal_not_found() -> Rejection:
    return Rejection(RejectionKind.NOT_FOUND, "Proposal not found")


class GovernanceService:
    def __init__(
        self,
        store: SanctumStore,
        directory: MembershipDirectory,
        ledger: ActivityLedger,
    ) -> None:
        self.store = store
        self.directory = directory
        self.ledger = ledger

    # ------------------------------------------------------------------
    # Staking
    # ------------------------------------------------------------------
    @mutation
    def stake(self, actor_id: int, amount: float) -> StakingPosition:
        """Replace the member's position; accrued rewards carry over."""
        if not math.isfinite(amount) or amount <= 0:
            raise Rejection(RejectionKind.INELIGIBLE, "Stake amount must be positive")

        with self.store.transaction() as session:
            member = self.directory.require_in(session, actor_id)
            power = voting_power(amount, member.tier)
            now = self.store.now()

            position = session.get(StakingPosition, member.id)
            previous_amount = position.staked_amount if position else 0
            if position is None:
                position = StakingPosition(user_id=member.id, rewards_earned=0)
                session.add(position)
            position.staked_amount = amount
            position.tier = member.tier
            position.voting_power = power
            position.staked_at = now

            self.ledger.append(
                session,
                Mechanic.STAKING,
                member.id,
                member.tier,
                payload={
                    "amount": amount,
                    "delta": amount - previous_amount,
                    "voting_power": power,
                },
            )
        logger.info("Member %d staked %s $BONKED (power %d)", actor_id, amount, power)
        return position

    def position(self, user_id: int) -> StakingPosition | None:
        with self.store.read() as session:
            return session.get(StakingPosition, user_id)

    def staking_rewards(self, user_id: int) -> StakingRewards:
        with self.store.read() as session:
            position = session.get(StakingPosition, user_id)
        if position is None:
            return StakingRewards(apy=0, earned=0, claimable=0)
        return project_staking_rewards(
            position.staked_amount,
            position.tier,
            position.rewards_earned,
            position.staked_at,
            self.store.now(),
        )

    # ------------------------------------------------------------------
    # Proposals
    # ------------------------------------------------------------------
    @mutation
    def create_proposal(
        self,
        proposal_type: ProposalType | str,
        title: str,
        description: str,
        proposer_id: int,
        staking_requirement: float = 0,
    ) -> GovernanceProposal:
        with self.store.transaction() as session:
            self.directory.require_in(session, proposer_id)
            proposal = GovernanceProposal(
                proposal_type=ProposalType(proposal_type).value,
                title=title,
                description=description,
                proposer_id=proposer_id,
                staking_requirement=staking_requirement,
                status=ProposalStatus.ACTIVE.value,
                created_at=self.store.now(),
            )
            session.add(proposal)
            session.flush()
        logger.info("Proposal %d created: %s", proposal.id, title)
        return proposal

    def get_proposal(self, proposal_id: int) -> GovernanceProposal | None:
        with self.store.read() as session:
            return session.get(GovernanceProposal, proposal_id)

    def active_proposals(self) -> list[GovernanceProposal]:
        with self.store.read() as session:
            return list(
                session.scalars(
                    select(GovernanceProposal)
                    .where(GovernanceProposal.status == ProposalStatus.ACTIVE.value)
                    .order_by(GovernanceProposal.created_at, GovernanceProposal.id)
                )
            )

    # ------------------------------------------------------------------
    # Voting
    # ------------------------------------------------------------------
    def check_eligibility(self, proposal_id: int, actor_id: int) -> Eligibility:
        with self.store.read() as session:
            return evaluate_governance_vote(
                session.get(GovernanceProposal, proposal_id),
                session.get(StakingPosition, actor_id),
            )

    @mutation
    def vote(self, proposal_id: int, actor_id: int, choice: VoteChoice | str) -> bool:
        """Record a vote at the member's stake-time power.  Re-votes replace."""
        try:
            choice = VoteChoice(choice)
        except ValueError:
            raise Rejection(RejectionKind.INELIGIBLE, "Vote must be yes or no") from None

        with self.store.transaction() as session:
            member = self.directory.require_in(session, actor_id)
            proposal = session.get(GovernanceProposal, proposal_id)
            position = session.get(StakingPosition, actor_id)
            evaluate_governance_vote(proposal, position).raise_if_denied()

            self.ledger.append(
                session,
                Mechanic.GOVERNANCE_VOTE,
                member.id,
                member.tier,
                subject_id=proposal.id,
                payload={"choice": choice.value, "power": position.voting_power},
            )
            position.rewards_earned += GOVERNANCE_VOTE_REWARD
        logger.info(
            "Member %d voted %s on proposal %d (power %d)",
            actor_id, choice, proposal_id, position.voting_power,
        )
        return True

    def _tally(self, session: Session, proposal_id: int) -> VoteTally:
        return tally_votes(
            self.ledger.query(
                session, Mechanic.GOVERNANCE_VOTE, LedgerEvent.subject_id == proposal_id
            )
        )

    @mutation
    def results(self, proposal_id: int) -> VoteTally:
        with self.store.read() as session:
            if session.get(GovernanceProposal, proposal_id) is None:
                raise _proposal_not_found()
            return self._tally(session, proposal_id)

    def _decide(self, session: Session, proposal: GovernanceProposal) -> bool:
        tally = self._tally(session, proposal.id)
        passed = is_passed(tally.yes, tally.no)
        proposal.status = (ProposalStatus.PASSED if passed else ProposalStatus.REJECTED).value
        proposal.decided_at = self.store.now()
        logger.info(
            "Proposal %d %s (yes=%d no=%d)", proposal.id, proposal.status, tally.yes, tally.no
        )
        return passed

    @mutation
    def decide(self, proposal_id: int) -> GovernanceProposal:
        """Close voting: ``active → passed | rejected``."""
        with self.store.transaction() as session:
            proposal = session.get(GovernanceProposal, proposal_id)
            if proposal is None:
                raise _proposal_not_found()
            if proposal.status != ProposalStatus.ACTIVE:
                raise Rejection(RejectionKind.INVALID_STATE, "Proposal has already been decided")
            self._decide(session, proposal)
        return proposal

    @mutation
    def execute_proposal(self, proposal_id: int) -> ProposalExecution:
        """Decide if still open, then carry out a passed proposal."""
        with self.store.transaction() as session:
            proposal = session.get(GovernanceProposal, proposal_id)
            if proposal is None:
                raise _proposal_not_found()
            if proposal.status == ProposalStatus.EXECUTED:
                raise Rejection(
                    RejectionKind.INVALID_STATE, "Proposal has already been executed"
                )

            if proposal.status == ProposalStatus.ACTIVE:
                passed = self._decide(session, proposal)
            else:
                passed = proposal.status == ProposalStatus.PASSED

            result = execution_effect(proposal.proposal_type, passed)
            proposal.result = result
            if passed:
                proposal.status = ProposalStatus.EXECUTED.value
                proposal.executed_at = self.store.now()
        logger.info("Proposal %d execution: %s", proposal_id, result)
        return ProposalExecution(passed=passed, executed=passed, result=result)
