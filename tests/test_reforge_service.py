"""
tests/test_reforge_service.py — Prophecy burn & reforge
========================================================
"""

from __future__ import annotations

import random

import pytest

from sanctum.database.models import Tier
from sanctum.engine.outcomes import RejectionKind
from sanctum.engine.prophecy import REFORGE_TEMPLATES, TemplateProphecyGenerator


class ExplodingGenerator:
    def generate(self, owner_id: int, previous_content: str) -> str:
        raise RuntimeError("model offline")


@pytest.fixture
def oracle(make_member):
    return make_member(Tier.ORACLE)


@pytest.fixture
def prophecy(services, oracle):
    return services.reforging.create_prophecy(oracle.id, "The first telling.").value


def _request_status(services, reforge_id: int) -> str:
    with services.store.read() as session:
        return services.ledger.get(session, reforge_id).status


def _reforge(services, record_id: int, actor_id: int, method: str = "usd"):
    burn = services.reforging.burn_and_reforge(record_id, actor_id, method).value
    done = services.reforging.complete_reforge(burn.reforge_id).value
    return burn, done


class TestEligibility:
    def test_fresh_record_must_age(self, services, prophecy, oracle):
        result = services.reforging.check_eligibility(prophecy.id, oracle.id)
        assert result.reason == "Prophecy must age 24 hours before reforging. 24 hours remaining."

    def test_eligible_after_24_hours(self, services, prophecy, oracle, clock):
        clock.advance(hours=24)
        assert services.reforging.check_eligibility(prophecy.id, oracle.id).eligible

    def test_only_owner(self, services, prophecy, make_member, clock):
        other = make_member(Tier.SHADOW)
        clock.advance(days=2)
        outcome = services.reforging.burn_and_reforge(prophecy.id, other.id, "usd")
        assert outcome.reason == "You can only reforge your own prophecies"

    def test_requires_oracle(self, services, make_member, clock):
        herald = make_member(Tier.HERALD)
        record = services.reforging.create_prophecy(herald.id, "Herald's lot").value
        clock.advance(days=2)
        outcome = services.reforging.burn_and_reforge(record.id, herald.id, "usd")
        assert outcome.reason == "Prophecy reforging requires Oracle+ tier"

    def test_unknown_payment_method(self, services, prophecy, oracle, clock):
        clock.advance(days=2)
        outcome = services.reforging.burn_and_reforge(prophecy.id, oracle.id, "gold")
        assert outcome.reason == "Unknown payment method"

    def test_unknown_record(self, services, oracle):
        outcome = services.reforging.burn_and_reforge(404, oracle.id, "usd")
        assert outcome.kind == RejectionKind.NOT_FOUND

    def test_create_for_unknown_owner(self, services):
        assert services.reforging.create_prophecy(404, "x").kind == RejectionKind.NOT_FOUND


class TestBurnAndReforge:
    def test_full_cycle(self, services, prophecy, oracle, clock):
        clock.advance(hours=24)
        burn = services.reforging.burn_and_reforge(prophecy.id, oracle.id, "usd").value
        assert burn.success
        assert burn.cost == 9
        assert _request_status(services, burn.reforge_id) == "pending"
        assert not services.reforging.get_prophecy(prophecy.id).burned

        done = services.reforging.complete_reforge(burn.reforge_id).value
        successor = services.reforging.get_prophecy(done.new_record_id)
        assert successor.parent_id == prophecy.id
        assert successor.reforge_count == 1
        assert successor.content in REFORGE_TEMPLATES
        assert _request_status(services, burn.reforge_id) == "completed"

        original = services.reforging.get_prophecy(prophecy.id)
        assert original.burned
        assert original.burned_at == clock.now()

        assert [p.id for p in services.reforging.user_prophecies(oracle.id)] == [successor.id]
        assert [p.id for p in services.reforging.burned_prophecies(oracle.id)] == [prophecy.id]

    def test_price_escalates_along_lineage(self, services, prophecy, oracle, clock):
        costs = []
        record_id = prophecy.id
        for _ in range(4):
            clock.advance(hours=24)
            burn, done = _reforge(services, record_id, oracle.id)
            costs.append(burn.cost)
            record_id = done.new_record_id
        assert costs == [9, 13, 20, 30]

        lineage = services.reforging.lineage(record_id)
        assert lineage[0].id == prophecy.id
        assert [p.reforge_count for p in lineage] == [0, 1, 2, 3, 4]

    def test_bonked_pricing(self, services, prophecy, oracle, clock):
        clock.advance(hours=24)
        burn = services.reforging.burn_and_reforge(prophecy.id, oracle.id, "bonked").value
        assert burn.cost == 90

    def test_successor_must_age_too(self, services, prophecy, oracle, clock):
        clock.advance(hours=24)
        _, done = _reforge(services, prophecy.id, oracle.id)
        outcome = services.reforging.burn_and_reforge(done.new_record_id, oracle.id, "usd")
        assert not outcome.success
        assert outcome.reason.startswith("Prophecy must age 24 hours")


class TestCompletion:
    def test_second_pending_request_fails(self, services, prophecy, oracle, clock):
        clock.advance(hours=24)
        first = services.reforging.burn_and_reforge(prophecy.id, oracle.id, "usd").value
        second = services.reforging.burn_and_reforge(prophecy.id, oracle.id, "usd").value

        assert services.reforging.complete_reforge(first.reforge_id).success
        outcome = services.reforging.complete_reforge(second.reforge_id)
        assert outcome.kind == RejectionKind.INVALID_STATE
        assert outcome.reason == "This prophecy has already been burned"
        assert _request_status(services, second.reforge_id) == "failed"

    def test_complete_twice(self, services, prophecy, oracle, clock):
        clock.advance(hours=24)
        burn, _ = _reforge(services, prophecy.id, oracle.id)
        outcome = services.reforging.complete_reforge(burn.reforge_id)
        assert outcome.reason == "Reforge request already processed"

    def test_unknown_request(self, services):
        assert services.reforging.complete_reforge(404).reason == "Reforge request not found"

    def test_non_reforge_event_is_not_a_request(self, services, oracle):
        position = services.governance.stake(oracle.id, 10)
        assert position.success
        with services.store.read() as session:
            [stake_event] = services.ledger.recent(session, limit=1)
        outcome = services.reforging.complete_reforge(stake_event.id)
        assert outcome.kind == RejectionKind.NOT_FOUND

    def test_generator_failure_leaves_request_pending(self, services, prophecy, oracle, clock):
        clock.advance(hours=24)
        burn = services.reforging.burn_and_reforge(prophecy.id, oracle.id, "usd").value

        services.reforging.generator = ExplodingGenerator()
        outcome = services.reforging.complete_reforge(burn.reforge_id)
        assert outcome.kind == RejectionKind.EXTERNAL_FAILURE
        assert outcome.reason == "Prophecy generation failed"
        assert _request_status(services, burn.reforge_id) == "pending"
        assert not services.reforging.get_prophecy(prophecy.id).burned

        services.reforging.generator = TemplateProphecyGenerator(random.Random(2))
        assert services.reforging.complete_reforge(burn.reforge_id).success


class TestStats:
    def test_only_completed_reforges_count(self, services, prophecy, oracle, clock):
        clock.advance(hours=24)
        _, done = _reforge(services, prophecy.id, oracle.id, "usd")
        clock.advance(hours=24)
        _reforge(services, done.new_record_id, oracle.id, "bonked")
        clock.advance(hours=24)
        services.reforging.burn_and_reforge(prophecy.id, oracle.id, "usd")  # burned: rejected

        assert services.reforging.reforge_stats() == {
            "total_reforges": 2,
            "revenue_usd": 9,
            "revenue_bonked": 135,
        }
