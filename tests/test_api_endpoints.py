"""
API tests — leaderboard, cloud save and catalog endpoints.

These run against the FastAPI TestClient on a fresh database per test.
The goal is to pin the request/response contracts:
  - error bodies are always {"success": false, "error": ...}
  - status codes for missing fields, bad payloads, oversize saves, auth, backend outages
  - ranking and the requesting-player row on /leaderboard
"""

import sqlite3

import pytest


def _submit(client, name, score, category="totalScore", **extra):
    body = {"playerName": name, "score": score, "category": category, "deviceId": f"dev-{name}", "country": "GB"}
    body.update(extra)
    return client.post("/submit", json=body)


# ── Health & catalog ────────────────────────────────────────────────────────

class TestHealthAndCatalog:
    def test_health(self, client):
        r = client.get("/api/health")
        assert r.status_code == 200
        assert r.json()["ok"] is True

    def test_elements(self, client):
        data = client.get("/api/catalog/elements").json()
        assert data["count"] == 118
        assert data["gridSize"] == {"rows": 10, "cols": 18}
        h = data["elements"][0]
        assert h["symbol"] == "H" and h["fusionCost"] == 5 and h["coordinates"] == [0, 0]
        assert data["elements"][-1]["fusionCost"] is None

    def test_single_element(self, client):
        data = client.get("/api/catalog/elements/Fe").json()
        assert data["fusesInto"] == "Co"
        assert data["element"]["facts"][1] == "The Earth's core is mostly iron"

    def test_unknown_element(self, client):
        r = client.get("/api/catalog/elements/Zz")
        assert r.status_code == 404
        assert r.json() == {"success": False, "error": "Unknown element: Zz"}

    def test_categories(self, client):
        data = client.get("/api/catalog/categories").json()
        assert len(data["elementCategories"]) == 10
        assert data["leaderboardCategories"]["topFusions"] == "Fusion Reactions"

    def test_unknown_route_uses_error_shape(self, client):
        r = client.get("/nope")
        assert r.status_code == 404
        assert r.json()["success"] is False


# ── Submit ────────────────────────────────────────────────────────────────

class TestSubmit:
    def test_ok(self, client):
        r = _submit(client, "Ada", 1234)
        assert r.status_code == 200
        assert r.json() == {"success": True, "rank": 1, "score": 1234}

    @pytest.mark.parametrize("body", [
        {"score": 1, "category": "totalScore"},
        {"playerName": "Ada", "category": "totalScore"},
        {"playerName": "Ada", "score": 1},
        {"playerName": "   ", "score": 1, "category": "totalScore"},
    ])
    def test_missing_fields(self, client, body):
        r = client.post("/submit", json=body)
        assert r.status_code == 400
        assert r.json() == {"success": False, "error": "Missing required fields"}

    def test_zero_score_allowed(self, client):
        assert _submit(client, "Ada", 0).json()["rank"] == 1

    @pytest.mark.parametrize("score", [-1, 1.5, "12", True])
    def test_bad_score(self, client, score):
        assert _submit(client, "Ada", score).status_code == 400

    @pytest.mark.parametrize("literal", ["NaN", "Infinity", "-Infinity"])
    def test_non_finite_score_rejected(self, client, literal):
        body = '{"playerName": "Ada", "score": %s, "category": "totalScore"}' % literal
        r = client.post("/submit", content=body.encode(), headers={"Content-Type": "application/json"})
        assert r.status_code == 400
        assert r.json() == {"success": False, "error": "Score must be an integer"}

    def test_bad_category(self, client):
        r = _submit(client, "Ada", 1, category="speed")
        assert r.status_code == 400
        assert "Invalid category" in r.json()["error"]

    def test_non_object_body(self, client):
        r = client.post("/submit", content=b"not json", headers={"Content-Type": "application/json"})
        assert r.status_code == 400
        assert r.json()["success"] is False

    def test_multiple_submissions_kept_rank_uses_best(self, client):
        _submit(client, "Ada", 100)
        _submit(client, "Bob", 200)
        r = _submit(client, "Ada", 50)
        assert r.json()["rank"] == 2


# ── Leaderboard ───────────────────────────────────────────────────────────

class TestLeaderboard:
    def test_default_category_and_order(self, client):
        _submit(client, "Ada", 10)
        _submit(client, "Bob", 30)
        _submit(client, "Cy", 20)
        data = client.get("/leaderboard").json()
        assert data["category"] == "totalScore"
        assert [(r["player_name"], r["rank"]) for r in data["leaderboard"]] == [("Bob", 1), ("Cy", 2), ("Ada", 3)]
        assert set(data["leaderboard"][0]) == {"player_name", "score", "country", "device_id", "submitted_at", "rank"}

    def test_ties_share_rank(self, client):
        _submit(client, "Ada", 10)
        _submit(client, "Bob", 10)
        ranks = [r["rank"] for r in client.get("/leaderboard").json()["leaderboard"]]
        assert ranks == [1, 1]

    def test_limit_and_player_row_appended(self, client):
        for i, name in enumerate(["P1", "P2", "P3", "P4", "P5"]):
            _submit(client, name, 50 - i, category="reactorLevel")
        data = client.get("/leaderboard", params={"category": "reactorLevel", "limit": 2, "playerName": "P5"}).json()
        rows = data["leaderboard"]
        assert [r["player_name"] for r in rows] == ["P1", "P2", "P5"]
        assert rows[-1]["rank"] == 5

    def test_player_in_top_not_duplicated(self, client):
        _submit(client, "Ada", 10)
        rows = client.get("/leaderboard", params={"playerName": "Ada"}).json()["leaderboard"]
        assert len(rows) == 1

    @pytest.mark.parametrize("limit", ["0", "-3", "abc"])
    def test_bad_limit_uses_default(self, client, limit):
        _submit(client, "Ada", 10)
        assert client.get("/leaderboard", params={"limit": limit}).status_code == 200

    def test_bad_category(self, client):
        assert client.get("/leaderboard", params={"category": "x"}).status_code == 400

    def test_backend_unavailable(self, client, monkeypatch):
        import leaderboard_repository

        def broken(*args, **kwargs):
            raise sqlite3.OperationalError("database is locked")

        monkeypatch.setattr(leaderboard_repository, "top_entries", broken)
        r = client.get("/leaderboard")
        assert r.status_code == 503
        assert r.json() == {"success": False, "error": "Backend unavailable"}


class TestPlayerStats:
    def test_requires_name(self, client):
        r = client.get("/player-stats")
        assert r.status_code == 400
        assert r.json()["error"] == "Missing playerName parameter"

    def test_unknown_player(self, client):
        data = client.get("/player-stats", params={"playerName": "Ghost"}).json()
        assert data["stats"] == []
        assert data["overall"]["total_players"] == 0

    def test_stats(self, client):
        _submit(client, "Ada", 5, category="elementsFound")
        _submit(client, "Bob", 9, category="elementsFound")
        _submit(client, "Ada", 7, category="elementsFound")
        stats = client.get("/player-stats", params={"playerName": "Ada"}).json()["stats"]
        assert stats[0]["best_score"] == 7
        assert stats[0]["submissions"] == 2
        assert stats[0]["rank"] == 2


# ── Cloud save ────────────────────────────────────────────────────────────

class TestCloudSave:
    def test_round_trip_with_metadata(self, client):
        r = client.post("/save", json={"deviceId": "d1", "saveData": {"timestamp": 1}, "playerName": "Ada"})
        body = r.json()
        assert body["success"] and body["message"] == "Save successful" and body["deviceId"] == "d1"

        loaded = client.get("/save", params={"deviceId": "d1"}).json()
        meta = loaded["saveData"]["_metadata"]
        assert meta["playerName"] == "Ada" and meta["deviceId"] == "d1" and meta["version"] == "1.0"
        assert loaded["lastSaved"] == body["savedAt"]

    def test_upsert_replaces(self, client):
        client.post("/save", json={"deviceId": "d1", "saveData": {"n": 1}})
        client.post("/save", json={"deviceId": "d1", "saveData": {"n": 2}})
        loaded = client.get("/save", params={"deviceId": "d1"}).json()
        assert loaded["saveData"]["n"] == 2
        assert loaded["saveData"]["_metadata"]["playerName"] == "Anonymous"

    def test_get_none(self, client):
        assert client.get("/save", params={"deviceId": "nobody"}).json() == {
            "success": True, "saveData": None, "lastSaved": None,
        }

    @pytest.mark.parametrize("method", ["get", "delete"])
    def test_device_id_required(self, client, method):
        r = getattr(client, method)("/save")
        assert r.status_code == 400
        assert r.json()["error"] == "Device ID is required"

    @pytest.mark.parametrize("body", [{"saveData": {"a": 1}}, {"deviceId": "d"}])
    def test_post_missing_fields(self, client, body):
        r = client.post("/save", json=body)
        assert r.status_code == 400
        assert r.json()["error"] == "Device ID and save data are required"

    @pytest.mark.parametrize("save_data", [[1, 2], "text", 5])
    def test_post_non_object(self, client, save_data):
        r = client.post("/save", json={"deviceId": "d", "saveData": save_data})
        assert r.status_code == 400
        assert r.json()["error"] == "Save data must be a valid JSON object"

    def test_too_large(self, client, monkeypatch):
        import save_router

        monkeypatch.setattr(save_router, "MAX_SAVE_BYTES", 32)
        r = client.post("/save", json={"deviceId": "d", "saveData": {"blob": "x" * 64}})
        assert r.status_code == 413
        assert r.json() == {"success": False, "error": "Save data too large"}

    def test_api_key_required_when_enabled(self, client, monkeypatch):
        import save_router

        monkeypatch.setattr(save_router, "REQUIRE_API_KEY", True)
        assert client.get("/save", params={"deviceId": "d"}).status_code == 401
        ok = client.get("/save", params={"deviceId": "d"}, headers={"Authorization": "Bearer k"})
        assert ok.status_code == 200
        alt = client.get("/save", params={"deviceId": "d"}, headers={"X-API-Key": "k"})
        assert alt.status_code == 200

    def test_delete(self, client):
        client.post("/save", json={"deviceId": "d1", "saveData": {"n": 1}})
        assert client.delete("/save", params={"deviceId": "d1"}).json()["message"] == "Save deleted"
        assert client.delete("/save", params={"deviceId": "d1"}).json()["message"] == "No save found"
