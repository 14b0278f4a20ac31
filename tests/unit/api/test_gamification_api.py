# ==============================================================================
# Gamification API Test Suite
# ==============================================================================
# Covers the /api/v1 badge catalog, user badge and contribution routes and
# the JSON error shape returned for engine errors.
# ==============================================================================

import json

import pytest
import redis.asyncio as redis

from tests.unit.factories import (
    create_badge,
    create_contribution,
    create_project,
    create_user,
)

NEW_BADGE = {
    "id": "bug-hunter",
    "title": "Bug Hunter",
    "description": "Filed five verified issues",
    "icon_url": "/badges/bug-hunter.svg",
    "condition": {"type": "contribution_count", "count": 5},
    "rarity": "uncommon",
    "points_awarded": 40,
}


@pytest.fixture
def catalog(db):
    create_badge(db, "first-contribution", {"type": "contribution_count", "count": 1}, order_index=1)
    create_badge(db, "project-starter", {"type": "project_count", "count": 1}, points_awarded=100, order_index=2, rarity="uncommon")
    create_badge(db, "retired", {"type": "project_count", "count": 1}, order_index=3, is_active=False)


class TestBadgeCatalog:
    def test_list_active_badges(self, client, catalog):
        response = client.get("/api/v1/badges")

        assert response.status_code == 200
        assert [b["id"] for b in response.json()] == ["first-contribution", "project-starter"]
        assert response.json()[0]["condition"] == {"type": "contribution_count", "count": 1}

    def test_list_filters(self, client, catalog):
        by_rarity = client.get("/api/v1/badges", params={"rarity": "uncommon"}).json()
        everything = client.get("/api/v1/badges", params={"include_inactive": True}).json()

        assert [b["id"] for b in by_rarity] == ["project-starter"]
        assert len(everything) == 3

    def test_unknown_rarity_rejected(self, client, catalog):
        response = client.get("/api/v1/badges", params={"rarity": "mythic"})
        assert response.status_code == 422
        assert response.json()["error"]["type"] == "validation_error"

    def test_badge_detail_with_progress(self, client, db, catalog):
        user = create_user(db)

        response = client.get(
            "/api/v1/badges/project-starter", params={"user_id": user.id}
        )

        body = response.json()
        assert response.status_code == 200
        assert body["earned"] is False
        assert body["progress"] == {"current": 0, "target": 1, "percentage": 0}

    def test_badge_detail_when_earned(self, client, db, catalog):
        user = create_user(db)
        create_project(db, user)
        client.post(f"/api/v1/users/{user.id}/badges/check")

        body = client.get(
            "/api/v1/badges/project-starter", params={"user_id": user.id}
        ).json()

        assert body["earned"] is True
        assert body["earned_at"] is not None
        assert body["progress"] is None

    def test_missing_badge(self, client, catalog):
        response = client.get("/api/v1/badges/nope")

        assert response.status_code == 404
        assert response.json() == {
            "error": {
                "code": 404,
                "message": "Badge not found with ID: nope",
                "type": "not_found",
            }
        }

    def test_badge_holders_paginated(self, client, db, catalog):
        holders = [create_user(db, name) for name in ("Ada", "Grace", "Linus")]
        create_user(db, "Margaret")
        for user in holders:
            create_project(db, user)
            client.post(f"/api/v1/users/{user.id}/badges/check")

        first = client.get(
            "/api/v1/badges/project-starter/users", params={"page": 1, "limit": 2}
        ).json()
        second = client.get(
            "/api/v1/badges/project-starter/users", params={"page": 2, "limit": 2}
        ).json()

        assert first["total"] == 3
        assert first["count"] == 2
        assert first["pagination"] == {"page": 1, "limit": 2, "total_pages": 2}
        assert [h["name"] for h in first["data"]] == ["Ada", "Grace"]
        assert [h["name"] for h in second["data"]] == ["Linus"]
        assert second["data"][0]["awarded_at"] is not None

    def test_badge_without_holders(self, client, catalog):
        body = client.get("/api/v1/badges/first-contribution/users").json()

        assert body["total"] == 0
        assert body["data"] == []
        assert body["pagination"] == {"page": 1, "limit": 10, "total_pages": 0}

    def test_holders_of_missing_badge(self, client):
        response = client.get("/api/v1/badges/nope/users")

        assert response.status_code == 404
        assert response.json()["error"]["type"] == "not_found"

    def test_holders_rejects_bad_page(self, client, catalog):
        response = client.get("/api/v1/badges/project-starter/users", params={"page": 0})
        assert response.status_code == 422

    def test_create_badge(self, client):
        response = client.post("/api/v1/badges", json=NEW_BADGE)

        assert response.status_code == 201
        body = response.json()
        assert body["id"] == "bug-hunter"
        assert body["condition"] == {"type": "contribution_count", "count": 5}
        assert body["is_active"] is True

    def test_create_duplicate_badge(self, client):
        client.post("/api/v1/badges", json=NEW_BADGE)

        same_id = client.post("/api/v1/badges", json=NEW_BADGE)
        same_title = client.post("/api/v1/badges", json={**NEW_BADGE, "id": "bug-hunter-2"})

        assert same_id.status_code == 400
        assert same_id.json()["error"]["type"] == "duplicate_badge"
        assert same_title.status_code == 400

    @pytest.mark.parametrize(
        "condition",
        [
            {"type": "karma_points", "count": 1},
            {"type": "special", "condition": "secret_handshake"},
            {"type": "time_active", "days": -3},
        ],
    )
    def test_create_badge_with_invalid_condition(self, client, condition):
        response = client.post("/api/v1/badges", json={**NEW_BADGE, "condition": condition})
        assert response.status_code == 422

    def test_update_badge(self, client, catalog):
        response = client.put(
            "/api/v1/badges/project-starter",
            json={"points_awarded": 120, "condition": {"type": "project_count", "count": 2}},
        )

        body = response.json()
        assert response.status_code == 200
        assert body["points_awarded"] == 120
        assert body["condition"] == {"type": "project_count", "count": 2}
        assert body["title"] == "Project Starter"

    def test_update_missing_badge(self, client):
        response = client.put("/api/v1/badges/nope", json={"points_awarded": 1})
        assert response.status_code == 404


class TestUserBadges:
    def test_check_awards_and_lists(self, client, db, catalog):
        user = create_user(db)
        project = create_project(db, user)
        create_contribution(db, user, project)

        check = client.post(f"/api/v1/users/{user.id}/badges/check")
        again = client.post(f"/api/v1/users/{user.id}/badges/check")
        listing = client.get(f"/api/v1/users/{user.id}/badges")

        assert check.status_code == 200
        assert [a["badge_id"] for a in check.json()["awarded"]] == [
            "first-contribution",
            "project-starter",
        ]
        assert check.json()["points"] == 110
        assert again.json()["awarded"] == []
        assert listing.json()["points"] == 110
        assert len(listing.json()["badges"]) == 2

    def test_check_unknown_user(self, client, catalog):
        response = client.post("/api/v1/users/ghost/badges/check")

        assert response.status_code == 404
        assert response.json()["error"]["message"] == "User not found with ID: ghost"

    def test_report_event(self, client, db, catalog):
        mentor = create_user(db, role="mentor")
        create_project(db, mentor)

        response = client.post(
            f"/api/v1/users/{mentor.id}/events",
            json={"event_type": "project_created", "event_data": {"project": "x"}},
        )

        assert response.status_code == 200
        assert [a["badge_id"] for a in response.json()["awarded"]] == ["project-starter"]


class TestContributionVerification:
    def test_verify(self, client, db, catalog, event_redis):
        author = create_user(db)
        project = create_project(db, create_user(db, "Owner"))
        contribution = create_contribution(db, author, project, status="pending")

        response = client.post(
            f"/api/v1/contributions/{contribution.id}/verify",
            json={"status": "verified", "verifier_id": "reviewer-1"},
        )

        body = response.json()
        assert response.status_code == 200
        assert body["contribution"]["status"] == "verified"
        assert body["contribution"]["points"] == 10
        assert [a["badge_id"] for a in body["awarded"]] == ["first-contribution"]
        stream, fields = event_redis.xadd.await_args.args
        assert stream == "openelevate:events"
        assert fields["event_type"] == "contribution_verified"
        assert fields["user_id"] == author.id
        assert json.loads(fields["contribution_id"]) == contribution.id

    def test_verify_survives_unavailable_stream(self, client, db, catalog, event_redis):
        author = create_user(db)
        project = create_project(db, author)
        contribution = create_contribution(db, author, project, status="open")
        event_redis.xadd.side_effect = redis.ConnectionError("connection refused")

        response = client.post(
            f"/api/v1/contributions/{contribution.id}/verify", json={"status": "merged"}
        )

        assert response.status_code == 200
        assert response.json()["contribution"]["points"] == 20

    def test_verify_invalid_transition(self, client, db, catalog, event_redis):
        author = create_user(db)
        project = create_project(db, author)
        contribution = create_contribution(db, author, project, status="verified")

        response = client.post(
            f"/api/v1/contributions/{contribution.id}/verify", json={"status": "merged"}
        )

        assert response.status_code == 400
        assert response.json()["error"]["type"] == "invalid_transition"
        event_redis.xadd.assert_not_awaited()

    def test_verify_missing_contribution(self, client, catalog):
        response = client.post("/api/v1/contributions/999/verify", json={"status": "verified"})
        assert response.status_code == 404


def test_health(client, monkeypatch):
    monkeypatch.setattr(
        "openelevate.main.get_database_info", lambda: {"type": "sqlite", "connected": True}
    )

    response = client.get("/api/v1/health")

    assert response.json() == {"status": "ok", "database": "sqlite"}
