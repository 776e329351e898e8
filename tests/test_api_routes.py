"""
tests/test_api_routes.py — FastAPI Route Integration Tests
============================================================
Drives the public and admin routes through the FastAPI TestClient against
the in-memory service container from conftest.

These tests verify:
- Auth guards on admin endpoints
- Rejection kinds map onto HTTP status codes
- Response structure of the public endpoints
"""

from __future__ import annotations

import jwt
import pytest
from fastapi.testclient import TestClient

from sanctum.api.deps import JWT_ALGORITHM, JWT_SECRET
from sanctum.database.models import Tier, TokenType


@pytest.fixture
def admin_token():
    return jwt.encode(
        {"sub": "12345", "username": "TestAdmin", "is_admin": True},
        JWT_SECRET,
        algorithm=JWT_ALGORITHM,
    )


@pytest.fixture
def non_admin_token():
    return jwt.encode(
        {"sub": "67890", "username": "RegularUser", "is_admin": False},
        JWT_SECRET,
        algorithm=JWT_ALGORITHM,
    )


def _auth(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


# ===========================================================================
# Health endpoint
# ===========================================================================
class TestHealthEndpoint:
    def test_health_returns_ok(self, client):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}

    def test_services_not_ready(self):
        from sanctum.api.main import app

        app.state.services = None
        resp = TestClient(app, raise_server_exceptions=False).get("/api/members/1")
        assert resp.status_code == 503


# ===========================================================================
# Auth guards — admin endpoints should reject unauthenticated/non-admin users
# ===========================================================================
class TestAdminAuthGuards:
    """All admin endpoints must return 401/403 for missing/invalid/non-admin tokens."""

    ADMIN_POST_ENDPOINTS = [
        "/api/admin/members",
        "/api/admin/payments",
        "/api/admin/proposals",
        "/api/admin/proposals/1/execute",
        "/api/admin/rituals",
        "/api/admin/rituals/sweep",
        "/api/admin/tokens",
        "/api/admin/tokens/1/ship",
        "/api/admin/prophecies",
        "/api/admin/reforges/1/complete",
        "/api/admin/anointing/reset",
    ]

    @pytest.mark.parametrize("endpoint", ADMIN_POST_ENDPOINTS)
    def test_post_no_token_returns_401(self, client, endpoint):
        resp = client.post(endpoint, json={})
        assert resp.status_code == 401

    @pytest.mark.parametrize("endpoint", ADMIN_POST_ENDPOINTS)
    def test_post_non_admin_returns_403(self, client, non_admin_token, endpoint):
        resp = client.post(endpoint, json={}, headers=_auth(non_admin_token))
        assert resp.status_code == 403

    @pytest.mark.parametrize("endpoint", ADMIN_POST_ENDPOINTS)
    def test_post_without_admin_claim_returns_403(self, client, endpoint):
        token = jwt.encode({"sub": "555"}, JWT_SECRET, algorithm=JWT_ALGORITHM)
        resp = client.post(endpoint, json={}, headers=_auth(token))
        assert resp.status_code == 403
        assert resp.json()["detail"] == "Not admin"

    @pytest.mark.parametrize("endpoint", ADMIN_POST_ENDPOINTS)
    def test_post_foreign_secret_returns_401(self, client, endpoint):
        forged = jwt.encode({"sub": "1", "is_admin": True}, "y" * 64, algorithm=JWT_ALGORITHM)
        resp = client.post(endpoint, json={}, headers=_auth(forged))
        assert resp.status_code == 401

    def test_non_bearer_scheme_returns_401(self, client, admin_token):
        resp = client.get(
            "/api/admin/reforges/stats", headers={"Authorization": f"Token {admin_token}"}
        )
        assert resp.status_code == 401
        assert resp.json()["detail"] == "Missing token"

    def test_invalid_token_returns_401(self, client):
        resp = client.get("/api/admin/reforges/stats", headers=_auth("not.a.jwt"))
        assert resp.status_code == 401
        assert resp.json()["detail"] == "Invalid token"

    def test_wrong_secret_returns_401(self, client):
        forged = jwt.encode({"sub": "1", "is_admin": True}, "x" * 64, algorithm=JWT_ALGORITHM)
        resp = client.get("/api/admin/reforges/stats", headers=_auth(forged))
        assert resp.status_code == 401

    def test_patch_tier_requires_admin(self, client):
        resp = client.patch("/api/admin/members/1/tier", json={"tier": "shadow"})
        assert resp.status_code == 401


# ===========================================================================
# Admin operations
# ===========================================================================
class TestAdminOperations:
    def test_create_member_and_update_tier(self, client, admin_token):
        resp = client.post(
            "/api/admin/members", json={"tier": "herald"}, headers=_auth(admin_token)
        )
        assert resp.status_code == 201
        member_id = resp.json()["id"]

        resp = client.patch(
            f"/api/admin/members/{member_id}/tier",
            json={"tier": "oracle"},
            headers=_auth(admin_token),
        )
        assert resp.status_code == 200
        assert resp.json()["tier"] == "oracle"
        assert client.get(f"/api/members/{member_id}").json()["tier"] == "oracle"

    def test_update_unknown_member_is_404(self, client, admin_token):
        resp = client.patch(
            "/api/admin/members/999/tier", json={"tier": "oracle"}, headers=_auth(admin_token)
        )
        assert resp.status_code == 404

    def test_payment_confirmation(self, client, admin_token):
        resp = client.post(
            "/api/admin/payments",
            json={"customer_ref": "cus_42", "amount_paid": 49.0, "metadata": {"tier": "shadow"}},
            headers=_auth(admin_token),
        )
        assert resp.status_code == 200
        assert resp.json()["tier"] == "shadow"

    def test_duplicate_member_email_is_409(self, client, admin_token):
        body = {"tier": "herald", "email": "dup@example.com"}
        first = client.post("/api/admin/members", json=body, headers=_auth(admin_token))
        assert first.status_code == 201
        again = client.post("/api/admin/members", json=body, headers=_auth(admin_token))
        assert again.status_code == 409
        assert again.json()["detail"] == "Email already registered"

    def test_payment_for_registered_email_is_409(self, client, admin_token, make_member):
        make_member(email="a@example.com", customer_ref="cus_1")
        resp = client.post(
            "/api/admin/payments",
            json={
                "customer_ref": "cus_2",
                "amount_paid": 49.0,
                "metadata": {"tier": "herald", "email": "a@example.com"},
            },
            headers=_auth(admin_token),
        )
        assert resp.status_code == 409
        assert resp.json()["detail"] == "Email already registered"

    def test_proposal_from_unknown_member_is_404(self, client, admin_token):
        resp = client.post(
            "/api/admin/proposals",
            json={"proposal_type": "feature_request", "title": "Orphan", "proposer_id": 999},
            headers=_auth(admin_token),
        )
        assert resp.status_code == 404
        assert resp.json()["detail"] == "User not found"
        assert client.get("/api/governance/proposals").json()["proposals"] == []

    def test_invalid_ritual_parameters(self, client, admin_token):
        resp = client.post(
            "/api/admin/rituals",
            json={
                "ritual_type": "whisper_quorum",
                "title": "Too eager",
                "staking_window_hours": 24,
                "minimum_quorum": 2,
                "whisper_trigger": 5,
            },
            headers=_auth(admin_token),
        )
        assert resp.status_code == 403
        assert resp.json()["detail"] == "Whisper trigger cannot exceed minimum quorum"

    def test_sweep_and_reset(self, client, admin_token):
        assert client.post("/api/admin/rituals/sweep", headers=_auth(admin_token)).json() == {
            "expired": 0
        }
        assert client.post("/api/admin/anointing/reset", headers=_auth(admin_token)).json() == {
            "reset": 0
        }


# ===========================================================================
# Public mechanics
# ===========================================================================
class TestAnointingRoutes:
    def test_anoint_flow(self, client, make_member):
        oracle = make_member(Tier.ORACLE)
        target = make_member(Tier.INITIATE)

        resp = client.get(f"/api/anointing/eligibility/{oracle.id}", params={"target_id": target.id})
        assert resp.json() == {"eligible": True, "remaining": 1}

        resp = client.post(
            "/api/anointing",
            json={"actor_id": oracle.id, "target_id": target.id, "sigil_type": "favor"},
        )
        assert resp.status_code == 201
        assert resp.json()["benefits"]["free_prophecies"] == 2

        again = client.post(
            "/api/anointing",
            json={"actor_id": oracle.id, "target_id": target.id, "sigil_type": "favor"},
        )
        assert again.status_code == 403
        assert again.json()["detail"] == "Monthly anointing limit reached. Resets on the 1st."

        assert client.get(f"/api/anointing/{target.id}/benefits").json()["free_prophecies"] == 2
        assert len(client.get(f"/api/anointing/{target.id}").json()["received"]) == 1
        assert len(client.get("/api/anointing/recent").json()["anointings"]) == 1

    def test_unknown_sigil_is_422(self, client, make_member):
        oracle, target = make_member(Tier.ORACLE), make_member()
        resp = client.post(
            "/api/anointing",
            json={"actor_id": oracle.id, "target_id": target.id, "sigil_type": "chaos"},
        )
        assert resp.status_code == 422

    def test_unknown_target_is_404(self, client, make_member):
        oracle = make_member(Tier.ORACLE)
        resp = client.post(
            "/api/anointing", json={"actor_id": oracle.id, "target_id": 999, "sigil_type": "favor"}
        )
        assert resp.status_code == 404


class TestGovernanceRoutes:
    def test_stake_vote_and_execute(self, client, make_member, admin_token):
        voter = make_member(Tier.ORACLE)
        resp = client.post(
            "/api/admin/proposals",
            json={"proposal_type": "feature_request", "title": "Dark mode", "proposer_id": voter.id},
            headers=_auth(admin_token),
        )
        proposal_id = resp.json()["id"]

        resp = client.post("/api/governance/stake", json={"actor_id": voter.id, "amount": 1000})
        assert resp.status_code == 201
        assert resp.json()["voting_power"] == 1500

        resp = client.post(
            f"/api/governance/proposals/{proposal_id}/votes",
            json={"actor_id": voter.id, "choice": "yes"},
        )
        assert resp.status_code == 201
        assert resp.json() == {"success": True}

        results = client.get(f"/api/governance/proposals/{proposal_id}/results").json()
        assert results == {"yes": 1500, "no": 0, "total": 1500}
        assert client.get(f"/api/governance/rewards/{voter.id}").json()["earned"] == 100

        resp = client.post(
            f"/api/admin/proposals/{proposal_id}/execute", headers=_auth(admin_token)
        )
        assert resp.json()["executed"] is True
        assert client.get(f"/api/governance/proposals/{proposal_id}").json()["status"] == "executed"

        again = client.post(
            f"/api/admin/proposals/{proposal_id}/execute", headers=_auth(admin_token)
        )
        assert again.status_code == 409

    def test_non_positive_stake_is_422(self, client, make_member):
        member = make_member(Tier.ORACLE)
        resp = client.post("/api/governance/stake", json={"actor_id": member.id, "amount": 0})
        assert resp.status_code == 422

    def test_infinite_stake_is_422(self, client, make_member):
        member = make_member(Tier.ORACLE)
        resp = client.post(
            "/api/governance/stake", json={"actor_id": member.id, "amount": "Infinity"}
        )
        assert resp.status_code == 422
        assert client.get(f"/api/governance/rewards/{member.id}").json()["apy"] == 0

    def test_eligibility_without_stake(self, client, services, make_member):
        member = make_member(Tier.ORACLE)
        proposal = services.governance.create_proposal("feature_request", "t", "", member.id).value
        resp = client.get(f"/api/governance/proposals/{proposal.id}/eligibility/{member.id}")
        assert resp.json() == {"eligible": False, "reason": "Must stake $BONKED tokens to vote"}

    def test_unknown_proposal_results_is_404(self, client):
        assert client.get("/api/governance/proposals/404/results").status_code == 404


class TestRitualRoutes:
    def test_vote_and_listing(self, client, services, make_member):
        ritual = services.rituals.create_ritual("oracle_exclusive", "Session", "", 168, 2).value
        voter = make_member(Tier.SHADOW)
        services.governance.stake(voter.id, 500)

        resp = client.post(f"/api/rituals/{ritual.id}/votes", json={"actor_id": voter.id})
        assert resp.status_code == 201
        assert resp.json()["quorum_status"] == "1/2 votes. 1 more needed for ritual activation."

        [listed] = client.get("/api/rituals").json()["rituals"]
        assert listed["voter_count"] == 1

    def test_unknown_ritual_is_404(self, client, make_member):
        voter = make_member(Tier.ORACLE)
        resp = client.post("/api/rituals/404/votes", json={"actor_id": voter.id})
        assert resp.status_code == 404


class TestTokenRoutes:
    def test_claim_race(self, client, services, make_member):
        first, second = make_member(Tier.ORACLE), make_member(Tier.SHADOW)
        drop = services.tokens.create_drop(Tier.ORACLE, TokenType.SIGIL)

        listed = client.get("/api/tokens", params={"tier": "oracle"}).json()["tokens"]
        assert [t["serial_number"] for t in listed] == ["OS001"]

        resp = client.post(f"/api/tokens/{drop.id}/claim", json={"actor_id": first.id})
        assert resp.status_code == 200
        assert resp.json()["message"] == "OS001 claimed successfully!"

        lost = client.post(f"/api/tokens/{drop.id}/claim", json={"actor_id": second.id})
        assert lost.status_code == 409
        assert client.get("/api/tokens/claims").json()["claims"][0]["user_id"] == first.id

    def test_tier_query_required(self, client):
        assert client.get("/api/tokens").status_code == 422


class TestProphecyRoutes:
    def test_reforge_flow(self, client, services, make_member, clock, admin_token):
        oracle = make_member(Tier.ORACLE)
        record = services.reforging.create_prophecy(oracle.id, "First telling").value

        early = client.post(
            f"/api/prophecies/{record.id}/reforge",
            json={"actor_id": oracle.id, "payment_method": "usd"},
        )
        assert early.status_code == 403

        clock.advance(hours=24)
        eligibility = client.get(
            f"/api/prophecies/{record.id}/reforge/eligibility", params={"actor_id": oracle.id}
        )
        assert eligibility.json() == {"eligible": True}

        resp = client.post(
            f"/api/prophecies/{record.id}/reforge",
            json={"actor_id": oracle.id, "payment_method": "usd"},
        )
        assert resp.status_code == 201
        assert resp.json()["cost"] == 9

        done = client.post(
            f"/api/admin/reforges/{resp.json()['reforge_id']}/complete",
            headers=_auth(admin_token),
        )
        assert done.status_code == 200
        new_id = done.json()["new_record_id"]

        listing = client.get(f"/api/prophecies/{oracle.id}").json()
        assert [p["id"] for p in listing["active"]] == [new_id]
        assert [p["id"] for p in listing["burned"]] == [record.id]

        lineage = client.get(f"/api/prophecies/{new_id}/lineage").json()["lineage"]
        assert [p["id"] for p in lineage] == [record.id, new_id]

        stats = client.get("/api/admin/reforges/stats", headers=_auth(admin_token)).json()
        assert stats == {"total_reforges": 1, "revenue_usd": 9, "revenue_bonked": 0}


class TestLeaderboardRoutes:
    def test_board_rank_and_stats(self, client, services, make_member):
        member = make_member(Tier.HERALD)
        services.governance.stake(member.id, 2_000)

        board = client.get("/api/leaderboards/most_bonked_staked").json()
        assert board["category"] == "most_bonked_staked"
        assert board["entries"][0]["display_value"] == "2,000 $BONKED"

        rank = client.get(f"/api/leaderboards/most_bonked_staked/users/{member.id}").json()
        assert rank == {"rank": 1, "total": 1}

        stats = client.get("/api/leaderboards/most_bonked_staked/stats").json()
        assert stats["total_participants"] == 1

    def test_unranked_user_is_404(self, client, make_member):
        member = make_member()
        assert client.get(f"/api/leaderboards/most_claims/users/{member.id}").status_code == 404

    def test_unknown_category_is_422(self, client):
        assert client.get("/api/leaderboards/most_vibes").status_code == 422

    def test_feed(self, client, make_member):
        shadow, target = make_member(Tier.SHADOW), make_member()
        client.post(
            "/api/anointing",
            json={"actor_id": shadow.id, "target_id": target.id, "sigil_type": "wisdom"},
        )
        [event] = client.get("/api/feed").json()["events"]
        assert event["type"] == "anointing"
        assert event["urgency"] == "high"
