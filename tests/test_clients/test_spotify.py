"""Tests for Spotify catalog."""

from unittest.mock import MagicMock

import pytest
import requests
from spotipy.exceptions import SpotifyException

from playlist_sync.clients.spotify import SpotifyCatalog, build_search_query, translate_error
from playlist_sync.errors import NotAuthenticated, RateLimitError, RemoteCatalogError


@pytest.fixture
def client() -> MagicMock:
    """Mocked spotipy client."""
    return MagicMock()


@pytest.fixture
def catalog(settings, client) -> SpotifyCatalog:
    """Spotify catalog backed by the mocked client."""
    return SpotifyCatalog(settings, client=client)


def _track(track_id: str, name: str, *artists: str) -> dict:
    return {
        "id": track_id,
        "name": name,
        "uri": f"spotify:track:{track_id}",
        "artists": [{"name": a} for a in artists],
    }


class TestBuildSearchQuery:
    """Tests for search query construction."""

    @pytest.mark.parametrize(
        "title,artist,expected",
        [
            ("Song", "Artist", 'track:"Song" artist:"Artist"'),
            ('Say "Hi"', "Band", 'track:"Say Hi" artist:"Band"'),
            ("  Padded ", " Name ", 'track:"Padded" artist:"Name"'),
        ],
    )
    def test_query_format(self, title, artist, expected):
        """Query should use exact track and artist fields."""
        assert build_search_query(title, artist) == expected


class TestTranslateError:
    """Tests for mapping spotipy errors."""

    def test_unauthorized(self):
        """401 should become NotAuthenticated."""
        assert isinstance(translate_error(SpotifyException(401, -1, "expired")), NotAuthenticated)

    def test_rate_limited(self):
        """429 should become RateLimitError with Retry-After."""
        error = translate_error(SpotifyException(429, -1, "slow down", headers={"Retry-After": "7"}))
        assert isinstance(error, RateLimitError)
        assert error.retry_after == 7
        assert error.transient is True

    @pytest.mark.parametrize(
        "status,transient",
        [(400, False), (403, False), (500, True), (503, True)],
    )
    def test_other_statuses(self, status, transient):
        """Other statuses should be transient only for server errors."""
        error = translate_error(SpotifyException(status, -1, "raw body"))
        assert type(error) is RemoteCatalogError
        assert error.transient is transient
        assert error.status_code == status
        assert "raw body" not in str(error)

    def test_connection_error(self):
        """Transport errors should be transient."""
        error = translate_error(requests.ConnectionError("reset"))
        assert error.transient is True


class TestSpotifyCatalog:
    """Tests for SpotifyCatalog operations."""

    def test_search_parses_candidates(self, catalog, client):
        """search_track should return candidates in ranked order."""
        client.search.return_value = {
            "tracks": {
                "items": [
                    _track("a", "Song", "Artist"),
                    _track("b", "Song (Live)", "Artist", "Guest"),
                ]
            }
        }

        candidates = catalog.search_track("Song", "Artist", limit=5)

        client.search.assert_called_once_with(q='track:"Song" artist:"Artist"', type="track", limit=5)
        assert [c.id for c in candidates] == ["a", "b"]
        assert candidates[1].artists == ["Artist", "Guest"]
        assert candidates[0].uri == "spotify:track:a"

    def test_search_no_results(self, catalog, client):
        """An empty result should give no candidates."""
        client.search.return_value = {"tracks": {"items": []}}
        assert catalog.search_track("Nothing", "Nobody") == []

    def test_search_error_is_translated(self, catalog, client):
        """spotipy errors should surface as RemoteCatalogError."""
        client.search.side_effect = SpotifyException(500, -1, "oops")
        with pytest.raises(RemoteCatalogError):
            catalog.search_track("Song", "Artist")

    def test_get_playlist_missing(self, catalog, client):
        """A 404 should mean the playlist is gone."""
        client.playlist.side_effect = SpotifyException(404, -1, "not found")
        assert catalog.get_playlist("gone") is None

    def test_get_playlist(self, catalog, client):
        """An existing playlist should be parsed."""
        client.playlist.return_value = {
            "id": "p1",
            "uri": "spotify:playlist:p1",
            "name": "Mix",
            "public": False,
            "owner": {"id": "me"},
            "tracks": {"total": 3},
        }

        playlist = catalog.get_playlist("p1")

        assert playlist.id == "p1"
        assert playlist.owner_id == "me"
        assert playlist.public is False
        assert playlist.track_count == 3

    def test_create_playlist(self, catalog, client):
        """create_playlist should create under the given user."""
        client.user_playlist_create.return_value = {"id": "new", "name": "Mix", "public": True}

        playlist = catalog.create_playlist("me", "Mix", "desc", public=True)

        client.user_playlist_create.assert_called_once_with(
            user="me", name="Mix", public=True, description="desc"
        )
        assert playlist.id == "new"

    def test_get_playlist_tracks_paginates(self, catalog, client):
        """All pages should be read and local/empty items skipped."""
        client.playlist_items.side_effect = [
            {"items": [{"track": {"uri": "spotify:track:1"}}, {"track": None}], "next": "page2"},
            {"items": [{"track": {"uri": "spotify:track:2"}}], "next": None},
        ]

        assert catalog.get_playlist_tracks("p1") == ["spotify:track:1", "spotify:track:2"]
        assert client.playlist_items.call_count == 2
        assert client.playlist_items.call_args.kwargs["offset"] == 100

    def test_add_tracks(self, catalog, client):
        """add_tracks should send one request."""
        catalog.add_tracks("p1", ["spotify:track:1"])
        client.playlist_add_items.assert_called_once_with("p1", ["spotify:track:1"], position=None)

    def test_add_tracks_over_limit(self, catalog, client):
        """More than 100 tracks should be rejected before any request."""
        with pytest.raises(ValueError):
            catalog.add_tracks("p1", [f"spotify:track:{i}" for i in range(101)])
        client.playlist_add_items.assert_not_called()

    def test_remove_tracks_chunks(self, catalog, client):
        """Removals should be sent in chunks of 100."""
        catalog.remove_tracks("p1", [f"spotify:track:{i}" for i in range(150)])
        assert client.playlist_remove_all_occurrences_of_items.call_count == 2

    def test_current_account_cached(self, catalog, client):
        """The current user should be fetched once."""
        client.current_user.return_value = {"id": "me"}
        assert catalog.get_current_account() == "me"
        assert catalog.get_current_account() == "me"
        client.current_user.assert_called_once()

    def test_track_uri(self, catalog):
        """Track URIs should use the spotify:track scheme."""
        assert catalog.track_uri("abc") == "spotify:track:abc"
