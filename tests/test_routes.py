"""
Tests for app/routes.py — HTTP surface over GameService.

Builds a bare FastAPI app around the router with in-memory stores, so
nothing here touches app.main or the environment.
"""
import json

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.routes import init_service, router
from infrastructure import GameStore, SnapshotStore
from services import GameService


@pytest.fixture()
def client():
    service = GameService(GameStore(), SnapshotStore(), autosave_delay=60.0)
    init_service(service)
    application = FastAPI()
    application.include_router(router)
    with TestClient(application) as c:
        yield c
    service.shutdown()


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------

def _create(client: TestClient, name: str = "Ages") -> str:
    resp = client.post("/api/games", json={"name": name})
    assert resp.status_code == 200
    return resp.json()["game"]["id"]


def _add_period(client: TestClient, game_id: str, name: str = "P") -> str:
    resp = client.post(f"/api/games/{game_id}/periods", json={"name": name})
    assert resp.status_code == 200
    return resp.json()["game"]["periods"][-1]["id"]


# ===========================================================
# Games
# ===========================================================

class TestGames:

    def test_create_and_list(self, client: TestClient):
        game_id = _create(client)
        listed = client.get("/api/games").json()
        assert [g["id"] for g in listed] == [game_id]
        assert listed[0]["name"] == "Ages"

    def test_create_blank_name(self, client: TestClient):
        assert client.post("/api/games", json={"name": "  "}).status_code == 422

    def test_get(self, client: TestClient):
        game_id = _create(client)
        body = client.get(f"/api/games/{game_id}").json()
        assert body["game"]["id"] == game_id
        assert body["undoCount"] == 0
        assert body["redoCount"] == 0

    def test_get_missing(self, client: TestClient):
        assert client.get("/api/games/nope").status_code == 404

    def test_delete(self, client: TestClient):
        game_id = _create(client)
        client.post(f"/api/games/{game_id}/snapshots", json={})
        body = client.delete(f"/api/games/{game_id}").json()
        assert body == {"deleted": game_id, "snapshotsRemoved": 1}
        assert client.get(f"/api/games/{game_id}").status_code == 404
        assert client.delete(f"/api/games/{game_id}").status_code == 404

    def test_save(self, client: TestClient):
        game_id = _create(client)
        body = client.post(f"/api/games/{game_id}/save").json()
        assert body["saved"] == game_id

    def test_close(self, client: TestClient):
        game_id = _create(client)
        _add_period(client, game_id)
        assert client.post(f"/api/games/{game_id}/close").status_code == 200
        body = client.get(f"/api/games/{game_id}").json()
        assert len(body["game"]["periods"]) == 1
        assert body["undoCount"] == 0

    def test_edit_metadata(self, client: TestClient):
        game_id = _create(client)
        resp = client.patch(f"/api/games/{game_id}/metadata", json={"fields": {
            "name": "Renamed",
            "palette": {"yes": ["dragons"], "no": []},
        }})
        body = resp.json()
        assert body["action"]["type"] == "EDIT_GAME_METADATA"
        assert body["game"]["name"] == "Renamed"
        assert body["game"]["palette"]["yes"] == ["dragons"]

    def test_edit_metadata_blank_name(self, client: TestClient):
        game_id = _create(client)
        resp = client.patch(f"/api/games/{game_id}/metadata", json={"fields": {"name": ""}})
        assert resp.status_code == 422


# ===========================================================
# Timeline
# ===========================================================

class TestTimeline:

    def test_period_event_scene(self, client: TestClient):
        game_id = _create(client)
        pid = _add_period(client, game_id)
        resp = client.post(f"/api/games/{game_id}/periods/{pid}/events",
                           json={"name": "E", "tone": "dark"})
        event = resp.json()["game"]["periods"][0]["events"][0]
        assert event["tone"] == "dark"
        resp = client.post(f"/api/games/{game_id}/periods/{pid}/events/{event['id']}/scenes",
                           json={"name": "S"})
        body = resp.json()
        assert body["action"]["type"] == "CREATE_SCENE"
        assert body["undoCount"] == 3

    def test_invalid_tone(self, client: TestClient):
        game_id = _create(client)
        resp = client.post(f"/api/games/{game_id}/periods", json={"tone": "sepia"})
        assert resp.status_code == 422

    def test_edit_period(self, client: TestClient):
        game_id = _create(client)
        pid = _add_period(client, game_id)
        resp = client.patch(f"/api/games/{game_id}/periods/{pid}",
                            json={"fields": {"name": "Renamed", "description": "d"}})
        period = resp.json()["game"]["periods"][0]
        assert period["name"] == "Renamed"
        assert period["description"] == "d"

    def test_missing_entity(self, client: TestClient):
        game_id = _create(client)
        assert client.delete(f"/api/games/{game_id}/periods/nope").status_code == 404
        assert client.post(f"/api/games/{game_id}/periods/nope/events",
                           json={}).status_code == 404

    def test_reorder(self, client: TestClient):
        game_id = _create(client)
        a = _add_period(client, game_id, "A")
        b = _add_period(client, game_id, "B")
        body = client.post(f"/api/games/{game_id}/periods/reorder",
                           json={"from_index": 0, "to_index": 1}).json()
        assert [p["id"] for p in body["game"]["periods"]] == [b, a]

    def test_reorder_noop(self, client: TestClient):
        game_id = _create(client)
        _add_period(client, game_id)
        body = client.post(f"/api/games/{game_id}/periods/reorder",
                           json={"from_index": 0, "to_index": 0}).json()
        assert body["action"] is None

    def test_undo_redo(self, client: TestClient):
        game_id = _create(client)
        _add_period(client, game_id)
        body = client.post(f"/api/games/{game_id}/undo").json()
        assert body["game"]["periods"] == []
        assert body["redoCount"] == 1
        body = client.post(f"/api/games/{game_id}/redo").json()
        assert len(body["game"]["periods"]) == 1
        assert client.post(f"/api/games/{game_id}/redo").json()["action"] is None

    def test_legacies(self, client: TestClient):
        game_id = _create(client)
        body = client.post(f"/api/games/{game_id}/legacies",
                           json={"name": "Crown", "description": "gold"}).json()
        lid = body["game"]["legacies"][0]["id"]
        client.patch(f"/api/games/{game_id}/legacies/{lid}",
                     json={"fields": {"description": "iron"}})
        body = client.delete(f"/api/games/{game_id}/legacies/{lid}").json()
        assert body["action"]["type"] == "REMOVE_LEGACY"
        assert body["game"]["legacies"] == []


# ===========================================================
# Anchors
# ===========================================================

class TestAnchors:

    def test_place(self, client: TestClient):
        game_id = _create(client)
        pid = _add_period(client, game_id)
        body = client.post(f"/api/games/{game_id}/anchors", json={"name": "Mab"}).json()
        aid = body["game"]["anchors"][0]["id"]

        body = client.post(f"/api/games/{game_id}/anchors/{aid}/place",
                           json={"period_id": pid, "round_number": 2}).json()
        assert body["wasAlreadyPlaced"] is False
        assert body["game"]["currentAnchorId"] == aid
        assert body["game"]["anchorPlacements"][0]["roundNumber"] == 2

        body = client.post(f"/api/games/{game_id}/anchors/{aid}/place",
                           json={"period_id": pid}).json()
        assert body["wasAlreadyPlaced"] is True
        assert body["action"] is None

    def test_place_unknown(self, client: TestClient):
        game_id = _create(client)
        resp = client.post(f"/api/games/{game_id}/anchors/nope/place",
                           json={"period_id": "nope"})
        assert resp.status_code == 404

    def test_clear_and_delete(self, client: TestClient):
        game_id = _create(client)
        pid = _add_period(client, game_id)
        aid = client.post(f"/api/games/{game_id}/anchors",
                          json={"name": "Mab"}).json()["game"]["anchors"][0]["id"]
        client.post(f"/api/games/{game_id}/anchors/{aid}/place", json={"period_id": pid})
        body = client.post(f"/api/games/{game_id}/anchors/clear-current").json()
        assert body["game"]["currentAnchorId"] is None
        body = client.delete(f"/api/games/{game_id}/anchors/{aid}").json()
        assert body["game"]["anchors"] == []
        assert body["game"]["anchorPlacements"] == []


# ===========================================================
# Snapshots / Import / Export
# ===========================================================

class TestSnapshots:

    def test_create_skip_restore(self, client: TestClient):
        game_id = _create(client)
        body = client.post(f"/api/games/{game_id}/snapshots",
                           json={"version_name": "v1"}).json()
        assert body["created"] is True
        assert body["snapshot"]["changeSummary"] == "Initial version"
        snapshot_id = body["snapshot"]["id"]

        again = client.post(f"/api/games/{game_id}/snapshots", json={}).json()
        assert again == {"created": False, "snapshot": None}

        _add_period(client, game_id)
        listed = client.get(f"/api/games/{game_id}/snapshots").json()
        assert [s["versionName"] for s in listed] == ["v1"]

        body = client.post(f"/api/games/{game_id}/snapshots/{snapshot_id}/restore").json()
        assert body["game"]["periods"] == []
        assert body["undoCount"] == 0

    def test_restore_missing(self, client: TestClient):
        game_id = _create(client)
        resp = client.post(f"/api/games/{game_id}/snapshots/nope/restore")
        assert resp.status_code == 404

    def test_restore_other_game(self, client: TestClient):
        a = _create(client, "A")
        b = _create(client, "B")
        sid = client.post(f"/api/games/{a}/snapshots", json={}).json()["snapshot"]["id"]
        assert client.post(f"/api/games/{b}/snapshots/{sid}/restore").status_code == 422


class TestImportExport:

    def test_export_import(self, client: TestClient):
        game_id = _create(client)
        _add_period(client, game_id, "Thaw")
        client.post(f"/api/games/{game_id}/snapshots", json={"version_name": "v1"})
        text = client.get(f"/api/games/{game_id}/export/json",
                          params={"include_history": True}).text
        assert len(json.loads(text)["history"]) == 1

        body = client.post("/api/games/import", json={"content": text}).json()
        new_id = body["game"]["id"]
        assert new_id != game_id
        assert body["game"]["periods"][0]["name"] == "Thaw"
        assert len(client.get(f"/api/games/{new_id}/snapshots").json()) == 1

    def test_import_error_code(self, client: TestClient):
        resp = client.post("/api/games/import", json={"content": "{ nope"})
        assert resp.status_code == 400
        assert resp.json()["detail"]["code"] == "INVALID_JSON"

    def test_export_markdown(self, client: TestClient):
        game_id = _create(client)
        text = client.get(f"/api/games/{game_id}/export/markdown").text
        assert text.startswith("# Ages")
