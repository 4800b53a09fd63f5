"""Tests for the HTTP API."""

import sqlite3

import pytest
from fastapi.testclient import TestClient

from playlist_sync.sync.batch import BatchCoordinator
from playlist_sync.sync.engine import SyncEngine
from playlist_sync.web import create_app

AUTH = {"Authorization": "Bearer test-token"}


@pytest.fixture
def client(settings, catalog, library, ledger) -> TestClient:
    app = create_app(settings, catalogs={"spotify": catalog}, library=library, ledger=ledger)
    return TestClient(app)


@pytest.fixture
def playlist_id(library) -> str:
    return library.import_playlist(
        "owner-1",
        {
            "name": "Web",
            "songs": [
                {"title": "One", "artist": "A", "spotifyId": "one"},
                {"title": "Two", "artist": "B", "spotifyId": "two"},
            ],
        },
    )


class TestAuth:
    """Tests for bearer authentication."""

    @pytest.mark.parametrize(
        "headers",
        [{}, {"Authorization": "Bearer wrong"}, {"Authorization": "test-token"}],
    )
    def test_rejects_unauthenticated(self, client, playlist_id, headers):
        """Missing or unknown tokens should get 401."""
        response = client.post(f"/sync/spotify/playlist/{playlist_id}", headers=headers)
        assert response.status_code == 401

    def test_status_requires_auth(self, client, playlist_id):
        """The status endpoint should also require a token."""
        assert client.get(f"/sync/spotify/status/{playlist_id}").status_code == 401


class TestSyncPlaylist:
    """Tests for POST /sync/{platform}/playlist/{id}."""

    def test_sync_without_body(self, client, playlist_id):
        """A request without body should use default options."""
        response = client.post(f"/sync/spotify/playlist/{playlist_id}", headers=AUTH)

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["status"] == "COMPLETED"
        assert data["message"] == "Successfully synced 2 tracks"
        assert data["stats"] == {"total": 2, "success": 2, "conflicts": 0, "errors": 0}
        assert data["syncId"]

    def test_sync_with_options(self, client, catalog, playlist_id):
        """camelCase options should be honored."""
        response = client.post(
            f"/sync/spotify/playlist/{playlist_id}",
            headers=AUTH,
            json={"createIfNotExists": False},
        )

        assert response.status_code == 200
        assert response.json()["status"] == "FAILED"
        assert "create_playlist" not in catalog.call_names()

    def test_unknown_playlist(self, client):
        """A missing playlist should be 404."""
        response = client.post("/sync/spotify/playlist/missing", headers=AUTH)
        assert response.status_code == 404

    def test_other_owner(self, client, library):
        """Someone else's playlist should be 404."""
        other = library.create_playlist("owner-2", "Theirs")
        assert client.post(f"/sync/spotify/playlist/{other}", headers=AUTH).status_code == 404

    def test_sync_in_progress(self, client, ledger, playlist_id):
        """A live run should give 409."""
        ledger.claim(playlist_id, "spotify", total_count=2)
        response = client.post(f"/sync/spotify/playlist/{playlist_id}", headers=AUTH)
        assert response.status_code == 409

    def test_unexpected_error(self, client, playlist_id, monkeypatch):
        """An unexpected engine error should be a generic 500."""

        def explode(self, *args, **kwargs):
            raise RuntimeError("secret upstream body")

        monkeypatch.setattr(SyncEngine, "synchronize", explode)

        response = client.post(f"/sync/spotify/playlist/{playlist_id}", headers=AUTH)

        assert response.status_code == 500
        assert response.json() == {"detail": "Internal server error"}
        assert "secret upstream body" not in response.text

    @pytest.mark.parametrize("platform", ["tidal", "soundcloud"])
    def test_unavailable_platform(self, client, playlist_id, platform):
        """Unknown or unconfigured platforms should be 404."""
        response = client.post(f"/sync/{platform}/playlist/{playlist_id}", headers=AUTH)
        assert response.status_code == 404


class TestSyncStatus:
    """Tests for GET /sync/{platform}/status/{id}."""

    def test_never_synced(self, client, settings, playlist_id):
        """An unsynced playlist should report not_synced and write nothing."""
        response = client.get(f"/sync/spotify/status/{playlist_id}", headers=AUTH)

        assert response.status_code == 200
        assert response.json()["status"] == "not_synced"
        with sqlite3.connect(settings.db_path) as conn:
            assert conn.execute("SELECT COUNT(*) FROM sync_logs").fetchone()[0] == 0
            assert conn.execute("SELECT COUNT(*) FROM playlist_syncs").fetchone()[0] == 0

    def test_after_sync(self, client, playlist_id):
        """A synced playlist should report its row and recent logs."""
        client.post(f"/sync/spotify/playlist/{playlist_id}", headers=AUTH)

        data = client.get(f"/sync/spotify/status/{playlist_id}", headers=AUTH).json()

        assert data["status"] == "COMPLETED"
        assert data["playlistId"] == playlist_id
        assert data["externalId"] == "remote-1"
        assert data["stats"]["success"] == 2
        assert 0 < len(data["recentLogs"]) <= 10
        assert {"id", "action", "status", "errorMessage", "remoteUri", "createdAt"} <= set(
            data["recentLogs"][0]
        )


class TestSyncBatch:
    """Tests for POST /sync/{platform}/batch."""

    def test_batch(self, client, playlist_id):
        """A batch should return per-playlist results."""
        response = client.post(
            "/sync/spotify/batch",
            headers=AUTH,
            json={"playlistIds": [playlist_id, "missing"]},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["totalPlaylists"] == 2
        assert data["successfulSyncs"] == 1
        assert data["failedSyncs"] == 1
        assert data["results"][0]["playlistName"] == "Web"
        assert data["results"][1]["playlistName"] == "Unknown"
        assert data["results"][1]["result"]["stats"]["errors"] == 1

    def test_unexpected_error(self, client, playlist_id, monkeypatch):
        """An unexpected coordinator error should be a generic 500."""

        def explode(self, *args, **kwargs):
            raise RuntimeError("secret upstream body")

        monkeypatch.setattr(BatchCoordinator, "synchronize_many", explode)

        response = client.post("/sync/spotify/batch", headers=AUTH, json={"playlistIds": [playlist_id]})

        assert response.status_code == 500
        assert "secret upstream body" not in response.text

    @pytest.mark.parametrize("count", [0, 11])
    def test_batch_size_limits(self, client, count):
        """Empty or oversized batches should be 400."""
        response = client.post(
            "/sync/spotify/batch",
            headers=AUTH,
            json={"playlistIds": [f"p{i}" for i in range(count)]},
        )
        assert response.status_code == 400
