"""
tests/test_governance_service.py — Staking & proposal voting
=============================================================
"""

from __future__ import annotations

from datetime import timedelta

import pytest

from sanctum.database.models import LedgerEvent, Mechanic, ProposalType, Tier
from sanctum.engine.governance import REJECTED_EFFECT
from sanctum.engine.outcomes import RejectionKind


@pytest.fixture
def proposer(make_member):
    return make_member(Tier.SHADOW)


@pytest.fixture
def proposal(services, proposer):
    return services.governance.create_proposal(
        ProposalType.FEATURE_REQUEST, "Dark mode", "Ship it", proposer.id, staking_requirement=0
    ).value


def _staker(services, make_member, tier: Tier, amount: float):
    member = make_member(tier)
    assert services.governance.stake(member.id, amount).success
    return member


# ===========================================================================
# Staking
# ===========================================================================
class TestStaking:
    def test_stake_fixes_voting_power(self, services, make_member):
        member = make_member(Tier.ORACLE)
        position = services.governance.stake(member.id, 10_000).value
        assert position.staked_amount == 10_000
        assert position.voting_power == 15_000
        assert position.tier == "oracle"

    def test_tier_change_does_not_recompute_power(self, services, make_member):
        member = _staker(services, make_member, Tier.ORACLE, 10_000)
        services.directory.upgrade_tier(member.id, Tier.SHADOW)
        assert services.governance.position(member.id).voting_power == 15_000

    def test_non_positive_amount_rejected(self, services, make_member):
        member = make_member(Tier.ORACLE)
        outcome = services.governance.stake(member.id, 0)
        assert not outcome.success
        assert outcome.reason == "Stake amount must be positive"
        assert services.governance.position(member.id) is None

    @pytest.mark.parametrize("amount", [float("inf"), float("-inf"), float("nan")])
    def test_non_finite_amount_rejected(self, services, make_member, amount):
        member = make_member(Tier.ORACLE)
        outcome = services.governance.stake(member.id, amount)
        assert outcome.kind == RejectionKind.INELIGIBLE
        assert services.governance.position(member.id) is None

    def test_unknown_member(self, services):
        assert services.governance.stake(999, 10).kind == RejectionKind.NOT_FOUND

    def test_restake_replaces_position_and_records_delta(self, services, make_member):
        member = _staker(services, make_member, Tier.HERALD, 1_000)
        services.governance.stake(member.id, 2_500)

        assert services.governance.position(member.id).staked_amount == 2_500
        with services.store.read() as session:
            events = sorted(
                services.ledger.query(session, Mechanic.STAKING, LedgerEvent.actor_id == member.id),
                key=lambda e: e.id,
            )
        assert [e.payload["delta"] for e in events] == [1_000, 1_500]
        assert events[-1].payload["voting_power"] == 3_000

    def test_rewards_projection(self, services, make_member, clock):
        member = _staker(services, make_member, Tier.INITIATE, 10_000)
        clock.advance(days=10)
        rewards = services.governance.staking_rewards(member.id)
        assert rewards.apy == 5
        assert rewards.claimable == 13
        assert rewards.earned == 0

    def test_rewards_without_position(self, services, make_member):
        member = make_member()
        assert services.governance.staking_rewards(member.id).to_dict() == {
            "apy": 0, "earned": 0, "claimable": 0,
        }


class TestProposals:
    def test_unknown_proposer_rejected(self, services):
        outcome = services.governance.create_proposal(
            ProposalType.FEATURE_REQUEST, "Orphan", "", proposer_id=999
        )
        assert outcome.kind == RejectionKind.NOT_FOUND
        assert outcome.reason == "User not found"
        assert services.governance.active_proposals() == []

    def test_created_active(self, services, proposal, proposer):
        assert proposal.status == "active"
        assert proposal.proposer_id == proposer.id


# ===========================================================================
# Voting
# ===========================================================================
class TestVoting:
    def test_requires_position(self, services, proposal, make_member):
        member = make_member(Tier.ORACLE)
        outcome = services.governance.vote(proposal.id, member.id, "yes")
        assert outcome.reason == "Must stake $BONKED tokens to vote"

    def test_requires_minimum(self, services, proposer, make_member):
        gated = services.governance.create_proposal(
            ProposalType.MERCH_DESIGN, "Hoodie", "", proposer.id, staking_requirement=25_000
        ).value
        member = _staker(services, make_member, Tier.SHADOW, 24_999)
        result = services.governance.check_eligibility(gated.id, member.id)
        assert result.reason == "Minimum 25000 $BONKED required to vote on this proposal"
        assert not services.governance.vote(gated.id, member.id, "yes").success

    def test_invalid_choice(self, services, proposal, make_member):
        member = _staker(services, make_member, Tier.ORACLE, 100)
        assert services.governance.vote(proposal.id, member.id, "maybe").reason == (
            "Vote must be yes or no"
        )

    def test_vote_earns_reward_and_uses_stake_power(self, services, proposal, make_member):
        member = _staker(services, make_member, Tier.ORACLE, 1_000)
        services.directory.upgrade_tier(member.id, Tier.SHADOW)
        assert services.governance.vote(proposal.id, member.id, "yes").value is True

        assert services.governance.position(member.id).rewards_earned == 100
        assert services.governance.results(proposal.id).value.yes == 1_500

    def test_revote_replaces_choice(self, services, proposal, make_member, clock):
        member = _staker(services, make_member, Tier.INITIATE, 500)
        services.governance.vote(proposal.id, member.id, "yes")
        clock.advance(minutes=1)
        services.governance.vote(proposal.id, member.id, "no")
        tally = services.governance.results(proposal.id).value
        assert (tally.yes, tally.no) == (0, 500)

    def test_results_unknown_proposal(self, services):
        outcome = services.governance.results(404)
        assert outcome.kind == RejectionKind.NOT_FOUND
        assert outcome.reason == "Proposal not found"


# ===========================================================================
# Decide & execute
# ===========================================================================
class TestExecution:
    def test_majority_passes_and_executes(self, services, proposal, make_member):
        yes = _staker(services, make_member, Tier.INITIATE, 150)
        no = _staker(services, make_member, Tier.INITIATE, 100)
        services.governance.vote(proposal.id, yes.id, "yes")
        services.governance.vote(proposal.id, no.id, "no")

        execution = services.governance.execute_proposal(proposal.id).value
        assert execution.passed and execution.executed
        assert execution.result == "Feature approved for development roadmap."

        stored = services.governance.get_proposal(proposal.id)
        assert stored.status == "executed"
        assert stored.result == execution.result
        assert stored.executed_at is not None

    def test_minority_is_rejected(self, services, proposal, make_member):
        yes = _staker(services, make_member, Tier.INITIATE, 100)
        no = _staker(services, make_member, Tier.INITIATE, 150)
        services.governance.vote(proposal.id, yes.id, "yes")
        services.governance.vote(proposal.id, no.id, "no")

        execution = services.governance.execute_proposal(proposal.id).value
        assert not execution.passed
        assert execution.result == REJECTED_EFFECT
        assert services.governance.get_proposal(proposal.id).status == "rejected"

    def test_no_votes_is_rejected(self, services, proposal):
        decided = services.governance.decide(proposal.id).value
        assert decided.status == "rejected"

    def test_decide_twice_is_invalid_state(self, services, proposal):
        services.governance.decide(proposal.id)
        assert services.governance.decide(proposal.id).kind == RejectionKind.INVALID_STATE

    def test_execute_twice_rejected(self, services, proposal, make_member):
        voter = _staker(services, make_member, Tier.ORACLE, 10)
        services.governance.vote(proposal.id, voter.id, "yes")
        assert services.governance.execute_proposal(proposal.id).success
        outcome = services.governance.execute_proposal(proposal.id)
        assert outcome.reason == "Proposal has already been executed"

    def test_closed_proposal_refuses_votes(self, services, proposal, make_member):
        voter = _staker(services, make_member, Tier.ORACLE, 10)
        services.governance.decide(proposal.id)
        outcome = services.governance.vote(proposal.id, voter.id, "yes")
        assert outcome.kind == RejectionKind.INVALID_STATE
        assert outcome.reason == "Voting is closed for this proposal"

    def test_active_proposals_excludes_decided(self, services, proposal, proposer, clock):
        clock.advance(timedelta(minutes=1))
        later = services.governance.create_proposal(
            ProposalType.PROPHECY_PROMPT, "Themes", "", proposer.id
        ).value
        services.governance.decide(proposal.id)
        assert [p.id for p in services.governance.active_proposals()] == [later.id]
