import pytest
from fastapi.testclient import TestClient

from hoops_sim import api


@pytest.fixture()
def client(tmp_path, monkeypatch):
    monkeypatch.setattr(api, "service", api.SimService(data_root=tmp_path))
    return TestClient(api.app)


def _user_team(client: TestClient) -> str:
    return client.get("/api/meta").json()["user_team"]


def test_health_and_meta(client: TestClient) -> None:
    assert client.get("/api/health").json() == {"status": "ok"}
    meta = client.get("/api/meta").json()
    assert meta["phase"] == "regular-season"
    assert meta["games_played"] == 0
    assert meta["games_remaining"] == 1230
    assert len(meta["teams"]) == 30
    assert meta["last_load_error"] is None


def test_standings_and_team_detail(client: TestClient) -> None:
    rows = client.get("/api/standings").json()
    assert len(rows) == 30
    assert [row["rank"] for row in rows] == list(range(1, 31))
    east = client.get("/api/standings", params={"conference": "East"}).json()
    assert len(east) == 15

    team_id = _user_team(client)
    detail = client.get(f"/api/teams/{team_id}").json()
    assert len(detail["roster"]) == 15
    assert detail["rotation"]["rotation_size"] == 8
    assert sum(1 for p in detail["roster"] if p["starter"]) == 5
    assert client.get("/api/teams/XXX").status_code == 404


def test_advance_plays_one_game(client: TestClient) -> None:
    response = client.post("/api/advance")
    assert response.status_code == 200
    body = response.json()
    assert body["game"]["played"] is True
    assert body["game"]["home_score"] != body["game"]["away_score"]
    assert client.get("/api/meta").json()["games_played"] == 1
    played = client.get("/api/schedule", params={"played": True}).json()
    assert [g["game_id"] for g in played] == [body["game"]["game_id"]]


def test_simulate_to_user_game_then_stats(client: TestClient) -> None:
    team_id = _user_team(client)
    client.post("/api/simulate", json={"until_user_game": True})
    upcoming = client.get("/api/schedule", params={"team": team_id, "played": False, "limit": 1}).json()
    assert client.get("/api/schedule", params={"played": False, "limit": 1}).json() == upcoming

    client.post("/api/advance")
    leaders = client.get("/api/stats", params={"category": "points", "limit": 5}).json()
    assert 0 < len(leaders) <= 5
    assert all(row["team_id"] == team_id for row in leaders)
    assert [row["ppg"] for row in leaders] == sorted((row["ppg"] for row in leaders), reverse=True)

    assert client.get("/api/stats", params={"category": "dunks"}).status_code == 400
    assert client.get("/api/stats", params={"kind": "preseason"}).status_code == 400
    assert client.get("/api/stats", params={"kind": "playoff"}).json() == []


def test_simulate_a_fixed_number_of_games(client: TestClient) -> None:
    body = client.post("/api/simulate", json={"games": 7}).json()
    assert body["games_simulated"] == 7
    assert body["phase"] == "regular-season"


def test_rotation_validation_reports_violations(client: TestClient) -> None:
    team_id = _user_team(client)
    rotation = client.get(f"/api/teams/{team_id}").json()["rotation"]

    ok = client.post("/api/rotation/validate", json=rotation).json()
    assert ok == {"ok": True, "violations": []}

    bad = dict(rotation, rotation_size=9)
    result = client.post("/api/rotation/validate", json=bad).json()
    assert result["ok"] is False
    assert "Rotation size 9 does not match 8 players with minutes" in result["violations"]

    rejected = client.post("/api/rotation", json=bad)
    assert rejected.status_code == 400
    assert rejected.json()["detail"]["violations"] == result["violations"]

    saved = client.post("/api/rotation", json=rotation)
    assert saved.status_code == 200


def test_unknown_depth_chart_position_is_a_bad_request(client: TestClient) -> None:
    team_id = _user_team(client)
    rotation = client.get(f"/api/teams/{team_id}").json()["rotation"]
    rotation["depth_chart"][0]["position"] = "QB"
    assert client.post("/api/rotation/validate", json=rotation).status_code == 400


def test_player_edits(client: TestClient) -> None:
    team_id = _user_team(client)
    roster = client.get(f"/api/teams/{team_id}").json()["roster"]
    guard = next(p for p in roster if p["position"] == "PG")

    moved = client.post("/api/players/position", json={"player_id": guard["player_id"], "position": "C"})
    assert moved.status_code == 200
    row = next(p for p in moved.json()["team"]["roster"] if p["player_id"] == guard["player_id"])
    assert row["position"] == "C"
    assert row["role"] is None

    wrong_role = client.post("/api/players/role", json={"player_id": guard["player_id"], "role": "pg_floor_general"})
    assert wrong_role.status_code == 400
    right_role = client.post("/api/players/role", json={"player_id": guard["player_id"], "role": "c_paint_beast"})
    assert right_role.status_code == 200

    missing = client.post("/api/players/role", json={"player_id": "nobody", "role": None})
    assert missing.status_code == 404

    bench = [p["player_id"] for p in roster if not p["starter"]][:5]
    lineup = client.post("/api/lineup", json={"player_ids": bench})
    assert lineup.json()["team"]["starting_lineup"] == bench
    assert client.post("/api/lineup", json={"player_ids": bench[:3]}).status_code == 400


def test_postseason_is_not_available_mid_season(client: TestClient) -> None:
    assert client.post("/api/postseason").status_code == 409
    assert client.get("/api/playoffs").status_code == 404
    assert client.post("/api/playoffs/advance", json={"mode": "next"}).status_code == 409


def test_user_team_changes_only_before_the_first_game(client: TestClient) -> None:
    response = client.post("/api/user-team", json={"team_id": "LAL"})
    assert response.json() == {"ok": True, "user_team": "LAL"}
    assert client.post("/api/user-team", json={"team_id": "XXX"}).status_code == 404

    client.post("/api/advance")
    assert client.post("/api/user-team", json={"team_id": "BOS"}).status_code == 409


def test_save_load_and_reset(client: TestClient, tmp_path) -> None:
    assert client.post("/api/load").status_code == 404
    client.post("/api/simulate", json={"games": 3})
    saved = client.post("/api/save").json()
    assert saved["ok"] is True
    assert (tmp_path / "league_save.json").exists()

    client.post("/api/simulate", json={"games": 2})
    assert client.get("/api/meta").json()["games_played"] == 5
    client.post("/api/load")
    assert client.get("/api/meta").json()["games_played"] == 3

    client.post("/api/reset")
    assert client.get("/api/meta").json()["games_played"] == 0


def test_saved_game_is_picked_up_on_start(tmp_path) -> None:
    first = api.SimService(data_root=tmp_path)
    first.simulate(games=4)
    first.save()
    second = api.SimService(data_root=tmp_path)
    assert second.meta()["games_played"] == 4


def test_broken_save_starts_fresh(tmp_path) -> None:
    (tmp_path / "league_save.json").write_text('{"save_version": 999, "season": {}}', encoding="utf-8")
    service = api.SimService(data_root=tmp_path)
    assert service.meta()["games_played"] == 0
    assert "Unsupported save version 999" in service.meta()["last_load_error"]
