"""End-to-end API tests: season setup -> schedule -> scores -> standings."""

import pytest
from httpx import ASGITransport, AsyncClient

from cueleague.auth.deps import issue_token
from cueleague.config import Settings
from cueleague.db.engine import create_engine, get_session, init_schema
from cueleague.db.repository import Repository
from cueleague.main import create_app
from cueleague.models.constants import CLEAR_SCHEDULE_CONFIRMATION


@pytest.fixture
async def app_and_engine():
    """Create test app with in-memory database."""
    settings = Settings(
        database_url="sqlite+aiosqlite:///:memory:", session_secret_key="test-secret"
    )
    application = create_app(settings)
    engine = create_engine("sqlite+aiosqlite:///:memory:")
    await init_schema(engine)
    application.state.engine = engine
    yield application, engine
    await engine.dispose()


async def _make_user(engine, email: str, role: str = "PLAYER") -> str:
    async with get_session(engine) as session:
        repo = Repository(session)
        user = await repo.create_user(email, email.split("@")[0], "Test", role=role)
        return user.id


def _auth(application, user_id: str, role: str) -> dict[str, str]:
    token = issue_token(application.state.settings, user_id, role)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
async def client(app_and_engine):
    application, _ = app_and_engine
    transport = ASGITransport(app=application)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest.fixture
async def admin_headers(app_and_engine) -> dict[str, str]:
    application, engine = app_and_engine
    admin_id = await _make_user(engine, "admin@league.test", "ADMIN")
    return _auth(application, admin_id, "ADMIN")


async def _setup_season(client: AsyncClient, headers: dict, team_count: int = 4) -> dict:
    r = await client.post(
        "/api/seasons",
        json={"name": "Spring 2024", "start_date": "2024-01-01", "end_date": "2024-04-01"},
        headers=headers,
    )
    assert r.status_code == 201, r.text
    season_id = r.json()["data"]["id"]
    r = await client.post(f"/api/seasons/{season_id}/activate", headers=headers)
    assert r.status_code == 200

    team_ids = []
    for name in ["Alpha", "Bravo", "Charlie", "Delta"][:team_count]:
        r = await client.post(
            "/api/teams", json={"name": name, "season_id": season_id}, headers=headers
        )
        assert r.status_code == 201, r.text
        team_ids.append(r.json()["data"]["id"])
    return {"season_id": season_id, "team_ids": team_ids}


class TestE2E:
    async def test_full_season_flow(self, app_and_engine, client, admin_headers):
        application, engine = app_and_engine
        setup = await _setup_season(client, admin_headers)
        season_id = setup["season_id"]

        r = await client.post(
            "/api/venues",
            json={"name": "Corner Pocket", "city": "Portland"},
            headers=admin_headers,
        )
        assert r.status_code == 201
        venue_id = r.json()["data"]["id"]

        # Schedule
        r = await client.post(
            "/api/admin/generate-schedule",
            json={"season_id": season_id, "start_date": "2024-01-01", "weeks_count": 3},
            headers=admin_headers,
        )
        assert r.status_code == 201, r.text
        assert r.json()["data"]["matches_created"] == 6

        r = await client.get(f"/api/matches?season_id={season_id}", headers=admin_headers)
        matches = r.json()["data"]
        assert len(matches) == 6
        assert {m["date"] for m in matches} == {"2024-01-01", "2024-01-08", "2024-01-15"}
        assert all(m["venue"]["id"] == venue_id for m in matches)
        assert all(m["status"] == "SCHEDULED" for m in matches)

        # Score one match
        first = matches[0]
        r = await client.patch(
            f"/api/matches/{first['id']}/score",
            json={"home_score": 10, "away_score": 7},
            headers=admin_headers,
        )
        assert r.status_code == 200, r.text
        scored = r.json()["data"]
        assert scored["status"] == "COMPLETED"
        assert scored["winner_team_id"] == first["home_team"]["id"]

        r = await client.get("/api/standings", headers=admin_headers)
        table = r.json()["data"]
        assert len(table) == 4
        assert [row["rank"] for row in table] == [1, 2, 3, 4]
        top = table[0]
        assert top["team_id"] == first["home_team"]["id"]
        assert (top["wins"], top["losses"], top["streak"]) == (1, 0, "W1")
        assert top["win_percentage"] == "1.000"
        loser = next(row for row in table if row["team_id"] == first["away_team"]["id"])
        assert (loser["wins"], loser["losses"], loser["streak"]) == (0, 1, "L1")

        # Individual game, submitted twice
        player_id = await _make_user(engine, "shooter@league.test")
        body = {"player_id": player_id, "game_number": 1, "won": True, "is_runout": True}
        for _ in range(2):
            r = await client.post(
                f"/api/matches/{first['id']}/results", json=body, headers=admin_headers
            )
            assert r.status_code == 200, r.text
        assert r.json()["data"]["totals"] == {"wins": 1, "losses": 0, "runouts": 1}
        assert r.json()["data"]["updated_existing"] is True

        r = await client.get("/api/standings/players", headers=admin_headers)
        assert r.json()["data"][0]["wins"] == 1

        r = await client.get(f"/api/matches/{first['id']}", headers=admin_headers)
        assert len(r.json()["data"]["results"]) == 1

        # Replay gives the same table
        r = await client.post(f"/api/standings/recalculate/{season_id}", headers=admin_headers)
        assert r.status_code == 200
        assert r.json()["data"] == table

        # Season stats
        r = await client.get(f"/api/seasons/{season_id}/stats", headers=admin_headers)
        stats = r.json()["data"]["stats"]
        assert stats["total_matches"] == 6
        assert stats["completed_matches"] == 1

        # Clear the schedule
        r = await client.request(
            "DELETE", f"/api/admin/clear-schedule/{season_id}", json={}, headers=admin_headers
        )
        assert r.status_code == 400
        r = await client.request(
            "DELETE",
            f"/api/admin/clear-schedule/{season_id}",
            json={"confirm": CLEAR_SCHEDULE_CONFIRMATION},
            headers=admin_headers,
        )
        assert r.status_code == 200
        assert r.json()["data"]["matches_deleted"] == 6

        # Every mutation was audited
        r = await client.get("/api/admin/audit-logs?action=SCHEDULE", headers=admin_headers)
        actions = {log["action"] for log in r.json()["data"]}
        assert actions == {"GENERATE_SCHEDULE", "CLEAR_SCHEDULE"}

    async def test_rescore_does_not_double_count(self, client, admin_headers):
        setup = await _setup_season(client, admin_headers, team_count=2)
        await client.post(
            "/api/admin/generate-schedule",
            json={"season_id": setup["season_id"], "start_date": "2024-01-01"},
            headers=admin_headers,
        )
        r = await client.get("/api/matches", headers=admin_headers)
        match = r.json()["data"][0]

        for home, away in [(10, 7), (2, 9)]:
            r = await client.patch(
                f"/api/matches/{match['id']}/score",
                json={"home_score": home, "away_score": away},
                headers=admin_headers,
            )
            assert r.status_code == 200

        r = await client.get(
            f"/api/standings/team/{match['home_team']['id']}", headers=admin_headers
        )
        assert (r.json()["data"]["wins"], r.json()["data"]["losses"]) == (0, 1)


class TestErrors:
    async def test_insufficient_teams(self, client, admin_headers):
        setup = await _setup_season(client, admin_headers, team_count=1)
        r = await client.post(
            "/api/admin/generate-schedule",
            json={
                "season_id": setup["season_id"],
                "start_date": "2024-01-01",
                "team_ids": setup["team_ids"],
            },
            headers=admin_headers,
        )
        assert r.status_code == 400
        assert r.json()["code"] == "insufficient_teams"
        r = await client.get("/api/matches", headers=admin_headers)
        assert r.json()["data"] == []

    async def test_equal_scores(self, client, admin_headers):
        setup = await _setup_season(client, admin_headers, team_count=2)
        await client.post(
            "/api/admin/generate-schedule",
            json={"season_id": setup["season_id"], "start_date": "2024-01-01"},
            headers=admin_headers,
        )
        match = (await client.get("/api/matches", headers=admin_headers)).json()["data"][0]
        r = await client.patch(
            f"/api/matches/{match['id']}/score",
            json={"home_score": 4, "away_score": 4},
            headers=admin_headers,
        )
        assert r.status_code == 400
        assert r.json()["code"] == "validation_error"

    async def test_unknown_match(self, client, admin_headers):
        r = await client.patch(
            "/api/matches/nope/score",
            json={"home_score": 4, "away_score": 1},
            headers=admin_headers,
        )
        assert r.status_code == 404
        assert r.json() == {"error": "Match not found: nope", "code": "not_found"}

    async def test_active_season_cannot_be_deleted(self, client, admin_headers):
        setup = await _setup_season(client, admin_headers, team_count=0)
        r = await client.delete(f"/api/seasons/{setup['season_id']}", headers=admin_headers)
        assert r.status_code == 409

    async def test_same_home_and_away(self, client, admin_headers):
        setup = await _setup_season(client, admin_headers, team_count=1)
        team_id = setup["team_ids"][0]
        r = await client.post(
            "/api/matches",
            json={
                "season_id": setup["season_id"],
                "home_team_id": team_id,
                "away_team_id": team_id,
                "date": "2024-01-01",
                "week": 1,
            },
            headers=admin_headers,
        )
        assert r.status_code == 400


class TestMatchStatusEdits:
    async def _two_team_match(self, client: AsyncClient, headers: dict) -> tuple[dict, dict]:
        setup = await _setup_season(client, headers, team_count=2)
        await client.post(
            "/api/admin/generate-schedule",
            json={"season_id": setup["season_id"], "start_date": "2024-01-01"},
            headers=headers,
        )
        match = (await client.get("/api/matches", headers=headers)).json()["data"][0]
        return setup, match

    async def test_completed_status_rejected(self, client, admin_headers):
        setup, match = await self._two_team_match(client, admin_headers)
        r = await client.put(
            f"/api/matches/{match['id']}", json={"status": "COMPLETED"}, headers=admin_headers
        )
        assert r.status_code == 400
        assert r.json()["field"] == "status"

        r = await client.post(
            f"/api/standings/recalculate/{setup['season_id']}", headers=admin_headers
        )
        assert r.status_code == 200
        home, away = match["home_team"]["id"], match["away_team"]["id"]
        r = await client.get(f"/api/standings/head-to-head/{home}/{away}", headers=admin_headers)
        assert r.status_code == 200
        assert r.json()["data"]["matches"] == []

    async def test_reopen_then_rescore(self, client, admin_headers):
        setup, match = await self._two_team_match(client, admin_headers)
        home = match["home_team"]["id"]
        score = {"home_score": 10, "away_score": 7}
        url = f"/api/matches/{match['id']}"

        r = await client.patch(f"{url}/score", json=score, headers=admin_headers)
        assert r.status_code == 200
        r = await client.put(url, json={"status": "SCHEDULED"}, headers=admin_headers)
        assert r.status_code == 200
        reopened = r.json()["data"]
        assert (reopened["status"], reopened["home_score"]) == ("SCHEDULED", None)

        r = await client.get(f"/api/standings/team/{home}", headers=admin_headers)
        assert (r.json()["data"]["wins"], r.json()["data"]["losses"]) == (0, 0)

        r = await client.patch(f"{url}/score", json=score, headers=admin_headers)
        assert r.status_code == 200
        r = await client.get(f"/api/standings/team/{home}", headers=admin_headers)
        assert (r.json()["data"]["wins"], r.json()["data"]["losses"]) == (1, 0)

        r = await client.post(
            f"/api/standings/recalculate/{setup['season_id']}", headers=admin_headers
        )
        row = next(s for s in r.json()["data"] if s["team_id"] == home)
        assert (row["wins"], row["losses"], row["streak"]) == (1, 0, "W1")

        away = match["away_team"]["id"]
        r = await client.get(f"/api/standings/head-to-head/{home}/{away}", headers=admin_headers)
        assert (r.json()["data"]["team_a_wins"], r.json()["data"]["team_b_wins"]) == (1, 0)

    async def test_in_progress_then_score(self, client, admin_headers):
        _, match = await self._two_team_match(client, admin_headers)
        url = f"/api/matches/{match['id']}"
        r = await client.put(url, json={"status": "IN_PROGRESS"}, headers=admin_headers)
        assert r.json()["data"]["status"] == "IN_PROGRESS"
        r = await client.patch(
            f"{url}/score", json={"home_score": 3, "away_score": 5}, headers=admin_headers
        )
        assert r.json()["data"]["winner_team_id"] == match["away_team"]["id"]

    async def test_rejected_edit_rolls_back(self, client, admin_headers):
        _, match = await self._two_team_match(client, admin_headers)
        url = f"/api/matches/{match['id']}"
        r = await client.put(
            url, json={"week": 9, "status": "COMPLETED"}, headers=admin_headers
        )
        assert r.status_code == 400
        r = await client.get(url, headers=admin_headers)
        assert r.json()["data"]["week"] == match["week"]


class TestAuth:
    async def test_missing_token(self, client):
        r = await client.get("/api/standings")
        assert r.status_code == 401

    async def test_bad_token(self, client):
        r = await client.get("/api/standings", headers={"Authorization": "Bearer garbage"})
        assert r.status_code == 401

    async def test_inactive_user(self, app_and_engine, client):
        application, engine = app_and_engine
        user_id = await _make_user(engine, "gone@league.test")
        async with get_session(engine) as session:
            user = await Repository(session).get_user(user_id)
            user.is_active = False
        r = await client.get("/api/seasons", headers=_auth(application, user_id, "PLAYER"))
        assert r.status_code == 401

    async def test_player_cannot_generate_schedule(self, app_and_engine, client, admin_headers):
        application, engine = app_and_engine
        setup = await _setup_season(client, admin_headers, team_count=2)
        player_id = await _make_user(engine, "p@league.test")
        r = await client.post(
            "/api/admin/generate-schedule",
            json={"season_id": setup["season_id"], "start_date": "2024-01-01"},
            headers=_auth(application, player_id, "PLAYER"),
        )
        assert r.status_code == 403

    async def test_captain_scores_only_own_matches(self, app_and_engine, client, admin_headers):
        application, engine = app_and_engine
        setup = await _setup_season(client, admin_headers, team_count=4)
        captain_id = await _make_user(engine, "cap@league.test")
        alpha = setup["team_ids"][0]
        r = await client.put(
            f"/api/teams/{alpha}", json={"captain_id": captain_id}, headers=admin_headers
        )
        assert r.status_code == 200
        await client.post(
            "/api/admin/generate-schedule",
            json={"season_id": setup["season_id"], "start_date": "2024-01-01", "weeks_count": 1},
            headers=admin_headers,
        )
        matches = (await client.get("/api/matches", headers=admin_headers)).json()["data"]
        own = next(m for m in matches if alpha in (m["home_team"]["id"], m["away_team"]["id"]))
        other = next(m for m in matches if m["id"] != own["id"])

        captain_headers = _auth(application, captain_id, "CAPTAIN")
        r = await client.patch(
            f"/api/matches/{other['id']}/score",
            json={"home_score": 3, "away_score": 1},
            headers=captain_headers,
        )
        assert r.status_code == 403
        r = await client.patch(
            f"/api/matches/{own['id']}/score",
            json={"home_score": 3, "away_score": 1},
            headers=captain_headers,
        )
        assert r.status_code == 200

    async def test_public_endpoints(self, client):
        r = await client.get("/api/config")
        assert r.status_code == 200
        assert r.json()["data"]["league"]["name"] == "Pool League"
        r = await client.get("/health")
        assert r.json()["status"] == "ok"


class TestAnnouncements:
    async def test_urgent_first_and_paginated(self, client, admin_headers):
        for title, urgent in [("Old news", False), ("Table closed", True), ("Fresh news", False)]:
            r = await client.post(
                "/api/announcements",
                json={"title": title, "content": "...", "is_urgent": urgent},
                headers=admin_headers,
            )
            assert r.status_code == 201, r.text
        created_id = r.json()["data"]["id"]

        r = await client.get("/api/announcements?limit=2", headers=admin_headers)
        body = r.json()
        assert [a["title"] for a in body["data"]][0] == "Table closed"
        assert body["pagination"] == {"page": 1, "limit": 2, "total": 3, "pages": 2}

        r = await client.patch(
            f"/api/announcements/{created_id}", json={"is_active": False}, headers=admin_headers
        )
        assert r.json()["data"]["is_active"] is False
        r = await client.get("/api/announcements", headers=admin_headers)
        assert r.json()["pagination"]["total"] == 2
        r = await client.get("/api/announcements?active=false", headers=admin_headers)
        assert r.json()["pagination"]["total"] == 3

        r = await client.delete(f"/api/announcements/{created_id}", headers=admin_headers)
        assert r.status_code == 200
        r = await client.get(f"/api/announcements/{created_id}", headers=admin_headers)
        assert r.status_code == 404

        r = await client.get("/api/admin/audit-logs?entity=Announcement", headers=admin_headers)
        actions = [log["action"] for log in r.json()["data"]]
        assert actions.count("ANNOUNCEMENT_CREATED") == 3
        assert {"ANNOUNCEMENT_UPDATED", "ANNOUNCEMENT_DELETED"} <= set(actions)

    async def test_only_creator_or_admin_edits(self, app_and_engine, client, admin_headers):
        application, engine = app_and_engine
        ref_a = await _make_user(engine, "ref-a@league.test", "LEAGUE_OFFICIAL")
        ref_b = await _make_user(engine, "ref-b@league.test", "LEAGUE_OFFICIAL")
        r = await client.post(
            "/api/announcements",
            json={"title": "Rules", "content": "Call your pockets"},
            headers=_auth(application, ref_a, "LEAGUE_OFFICIAL"),
        )
        announcement_id = r.json()["data"]["id"]
        assert r.json()["data"]["creator"]["id"] == ref_a

        url = f"/api/announcements/{announcement_id}"
        r = await client.patch(
            url, json={"title": "Mine now"}, headers=_auth(application, ref_b, "LEAGUE_OFFICIAL")
        )
        assert r.status_code == 403
        r = await client.patch(url, json={"title": "Edited"}, headers=admin_headers)
        assert r.json()["data"]["title"] == "Edited"

    async def test_players_read_but_cannot_post(self, app_and_engine, client):
        application, engine = app_and_engine
        player = _auth(application, await _make_user(engine, "p@league.test"), "PLAYER")
        r = await client.post(
            "/api/announcements", json={"title": "Hi", "content": "there"}, headers=player
        )
        assert r.status_code == 403
        r = await client.get("/api/announcements", headers=player)
        assert r.status_code == 200


class TestUserAdmin:
    async def test_role_change_deactivate_activate_delete(
        self, app_and_engine, client, admin_headers
    ):
        application, engine = app_and_engine
        user_id = await _make_user(engine, "member@league.test")
        url = f"/api/users/{user_id}"

        r = await client.patch(f"{url}/role", json={"role": "CAPTAIN"}, headers=admin_headers)
        assert r.json()["data"]["role"] == "CAPTAIN"
        r = await client.patch(f"{url}/role", json={"role": "KING"}, headers=admin_headers)
        assert r.status_code == 422

        r = await client.post(f"{url}/deactivate", headers=admin_headers)
        assert r.json()["data"]["is_active"] is False
        r = await client.get("/api/users/me", headers=_auth(application, user_id, "CAPTAIN"))
        assert r.status_code == 401
        r = await client.post(f"{url}/activate", headers=admin_headers)
        assert r.json()["data"]["is_active"] is True

        r = await client.delete(url, headers=admin_headers)
        assert r.status_code == 200
        r = await client.get(url, headers=admin_headers)
        assert r.status_code == 404

    async def test_admin_cannot_delete_self(self, app_and_engine, client, admin_headers):
        r = await client.get("/api/users/me", headers=admin_headers)
        me = r.json()["data"]["id"]
        r = await client.delete(f"/api/users/{me}", headers=admin_headers)
        assert r.status_code == 400

    async def test_official_cannot_change_roles(self, app_and_engine, client):
        application, engine = app_and_engine
        ref = await _make_user(engine, "ref@league.test", "LEAGUE_OFFICIAL")
        player = await _make_user(engine, "p@league.test")
        r = await client.patch(
            f"/api/users/{player}/role",
            json={"role": "ADMIN"},
            headers=_auth(application, ref, "LEAGUE_OFFICIAL"),
        )
        assert r.status_code == 403


class TestImportAndExport:
    async def test_import_users(self, client, admin_headers):
        setup = await _setup_season(client, admin_headers, team_count=2)
        r = await client.post(
            "/api/admin/import-users",
            json={
                "users": [
                    {
                        "email": "a@pool.co",
                        "first_name": "A",
                        "last_name": "One",
                        "team_name": "alpha",
                    },
                    {"email": "admin@league.test", "first_name": "Ad", "last_name": "Min"},
                    {"email": "b@pool.co", "first_name": "B"},
                ]
            },
            headers=admin_headers,
        )
        assert r.status_code == 200, r.text
        report = r.json()["data"]
        assert [c["team_id"] for c in report["created"]] == [setup["team_ids"][0]]
        assert report["skipped"] == [{"email": "admin@league.test", "reason": "Already exists"}]
        assert report["errors"] == [{"email": "b@pool.co", "error": "Missing required fields"}]

        r = await client.post("/api/admin/import-users", json={"users": []}, headers=admin_headers)
        assert r.status_code == 400

    async def test_export(self, client, admin_headers):
        setup = await _setup_season(client, admin_headers, team_count=2)
        r = await client.get("/api/admin/export", headers=admin_headers)
        assert r.status_code == 200
        snapshot = r.json()["data"]
        assert snapshot["version"] == "1.0"
        assert [s["id"] for s in snapshot["data"]["seasons"]] == [setup["season_id"]]
        assert len(snapshot["data"]["teams"]) == 2
        assert len(snapshot["data"]["standings"]) == 2
