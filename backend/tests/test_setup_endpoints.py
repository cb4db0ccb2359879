"""
Tournament, team and pool setup through the API, plus the read-only
statistics and health endpoints.
"""
import pytest
from fastapi.testclient import TestClient


def _tournament(client: TestClient, **overrides) -> dict:
    body = {"name": "Autumn Cup", **overrides}
    resp = client.post("/api/tournaments", json=body)
    assert resp.status_code == 201
    return resp.json()


def _teams(client: TestClient, tid: int, count: int) -> list[int]:
    return [
        client.post(f"/api/tournaments/{tid}/teams", json={"name": f"Team {i:02d}"}).json()["id"]
        for i in range(1, count + 1)
    ]


def test_health(client):
    resp = client.get("/api/health")

    assert resp.status_code == 200
    assert resp.json()["status"] == "healthy"


class TestTournaments:
    def test_defaults(self, client):
        data = _tournament(client)

        assert data["status"] == "setup"
        assert (data["start_time"], data["end_time"]) == ("09:00", "17:00")
        assert data["field_names"] == ["Field 1", "Field 2", "Field 3", "Field 4"]
        assert data["wildcard_count"] == 2

    def test_field_names_normalized(self, client):
        data = _tournament(client, field_names=[" North ", "", "South", "North"])

        assert data["field_names"] == ["North", "South"]

    @pytest.mark.parametrize(
        "overrides",
        [
            {"name": "X"},
            {"start_time": "9am"},
            {"start_time": "12:00", "end_time": "11:00"},
            {"game_duration_minutes": 0},
            {"wildcard_count": 9},
        ],
    )
    def test_invalid_settings_rejected(self, client, overrides):
        resp = client.post("/api/tournaments", json={"name": "Autumn Cup", **overrides})
        assert resp.status_code == 422

    def test_update_and_get(self, client):
        tid = _tournament(client)["id"]

        resp = client.patch(f"/api/tournaments/{tid}", json={"status": "pool_play", "field_names": ["Main"]})
        assert resp.status_code == 200

        data = client.get(f"/api/tournaments/{tid}").json()
        assert data["status"] == "pool_play"
        assert data["field_names"] == ["Main"]

    def test_unknown_status_rejected(self, client):
        tid = _tournament(client)["id"]
        assert client.patch(f"/api/tournaments/{tid}", json={"status": "cancelled"}).status_code == 422

    def test_missing_tournament_is_404(self, client):
        assert client.get("/api/tournaments/999").status_code == 404
        assert client.get("/api/tournaments/999/standings").status_code == 404


class TestTeams:
    def test_create_and_list(self, client):
        tid = _tournament(client)["id"]
        client.post(f"/api/tournaments/{tid}/teams", json={"name": "Zebras"})
        client.post(f"/api/tournaments/{tid}/teams", json={"name": "Antelopes", "captain": "Sam"})

        teams = client.get(f"/api/tournaments/{tid}/teams").json()

        assert [t["name"] for t in teams] == ["Antelopes", "Zebras"]
        assert teams[0]["captain"] == "Sam"

    def test_duplicate_name_is_409(self, client):
        tid = _tournament(client)["id"]
        client.post(f"/api/tournaments/{tid}/teams", json={"name": "Zebras"})

        resp = client.post(f"/api/tournaments/{tid}/teams", json={"name": "Zebras"})
        assert resp.status_code == 409

    def test_pool_from_other_tournament_rejected(self, client):
        tid = _tournament(client)["id"]
        other = _tournament(client, name="Other Cup")["id"]
        foreign_pool = client.post(f"/api/tournaments/{other}/pools", json={"name": "Pool A"}).json()["id"]

        resp = client.post(f"/api/tournaments/{tid}/teams", json={"name": "Zebras", "pool_id": foreign_pool})
        assert resp.status_code == 422

    def test_update_assigns_and_clears_pool(self, client):
        tid = _tournament(client)["id"]
        pool_id = client.post(f"/api/tournaments/{tid}/pools", json={"name": "Pool A"}).json()["id"]
        team_id = client.post(f"/api/tournaments/{tid}/teams", json={"name": "Zebras"}).json()["id"]

        assert client.patch(
            f"/api/tournaments/{tid}/teams/{team_id}", json={"pool_id": pool_id}
        ).json()["pool_id"] == pool_id
        assert client.patch(
            f"/api/tournaments/{tid}/teams/{team_id}", json={"pool_id": None}
        ).json()["pool_id"] is None

    def test_team_in_a_game_cannot_be_deleted(self, client):
        tid = _tournament(client)["id"]
        a, b = _teams(client, tid, 2)
        client.post(f"/api/tournaments/{tid}/games", json={"home_team_id": a, "away_team_id": b})

        assert client.delete(f"/api/tournaments/{tid}/teams/{a}").status_code == 409

    def test_delete_team(self, client):
        tid = _tournament(client)["id"]
        [a] = _teams(client, tid, 1)

        assert client.delete(f"/api/tournaments/{tid}/teams/{a}").status_code == 204
        assert client.get(f"/api/tournaments/{tid}/teams").json() == []


class TestPools:
    def test_generate_deals_teams_in_registration_order(self, client):
        tid = _tournament(client)["id"]
        team_ids = _teams(client, tid, 7)

        resp = client.post(f"/api/tournaments/{tid}/pools/generate", json={"pool_count": 2})

        assert resp.status_code == 201
        pools = resp.json()
        assert [p["name"] for p in pools] == ["Pool A", "Pool B"]
        assert pools[0]["team_ids"] == team_ids[:4]
        assert pools[1]["team_ids"] == team_ids[4:]

    def test_generate_too_few_teams_is_422(self, client):
        tid = _tournament(client)["id"]
        _teams(client, tid, 3)

        resp = client.post(f"/api/tournaments/{tid}/pools/generate", json={"pool_count": 2})
        assert resp.status_code == 422

    def test_schedule_pool_round_robin(self, client):
        tid = _tournament(client)["id"]
        _teams(client, tid, 8)
        pools = client.post(f"/api/tournaments/{tid}/pools/generate", json={"pool_count": 2}).json()

        first = client.post(f"/api/tournaments/{tid}/pools/{pools[0]['id']}/schedule").json()
        assert len(first["created_game_ids"]) == 6
        assert first["unplaced"] == []

        again = client.post(f"/api/tournaments/{tid}/pools/{pools[0]['id']}/schedule").json()
        assert again["created_game_ids"] == []
        assert again["skipped_existing"] == 6

        client.post(f"/api/tournaments/{tid}/pools/{pools[1]['id']}/schedule")
        audit = client.get(f"/api/tournaments/{tid}/schedule/conflicts").json()
        assert audit["conflict_count"] == 0

    def test_pools_locked_once_games_exist(self, client):
        tid = _tournament(client)["id"]
        _teams(client, tid, 4)
        [pool] = client.post(f"/api/tournaments/{tid}/pools/generate", json={"pool_count": 1}).json()
        client.post(f"/api/tournaments/{tid}/pools/{pool['id']}/schedule")

        assert client.post(f"/api/tournaments/{tid}/pools/generate", json={"pool_count": 1}).status_code == 409
        assert client.delete(f"/api/tournaments/{tid}/pools/{pool['id']}").status_code == 409

    def test_delete_empty_pool_unassigns_teams(self, client):
        tid = _tournament(client)["id"]
        pool_id = client.post(f"/api/tournaments/{tid}/pools", json={"name": "Pool A"}).json()["id"]
        client.post(f"/api/tournaments/{tid}/teams", json={"name": "Zebras", "pool_id": pool_id})

        assert client.delete(f"/api/tournaments/{tid}/pools/{pool_id}").status_code == 204
        assert client.get(f"/api/tournaments/{tid}/teams").json()[0]["pool_id"] is None

    def test_duplicate_pool_name_is_409(self, client):
        tid = _tournament(client)["id"]
        client.post(f"/api/tournaments/{tid}/pools", json={"name": "Pool A"})

        assert client.post(f"/api/tournaments/{tid}/pools", json={"name": "Pool A"}).status_code == 409


class TestStatisticsEndpoint:
    def test_summary_and_leaders(self, client):
        tid = _tournament(client)["id"]
        a, b, c = _teams(client, tid, 3)
        g1 = client.post(f"/api/tournaments/{tid}/games", json={"home_team_id": a, "away_team_id": b}).json()
        client.post(f"/api/tournaments/{tid}/games", json={"home_team_id": b, "away_team_id": c})
        client.post(f"/api/tournaments/{tid}/games/{g1['id']}/result", json={"home_score": 3, "away_score": 1})

        data = client.get(f"/api/tournaments/{tid}/statistics").json()

        assert data["summary"]["registered_teams"] == 3
        assert data["summary"]["completed_games"] == 1
        assert data["summary"]["total_goals"] == 4
        assert data["analytics"]["total_completed_games"] == 1
        assert data["top_performers"]["top_scorers"][0]["team_id"] == a
        assert data["top_performers"]["most_wins"][0]["team_id"] == a
