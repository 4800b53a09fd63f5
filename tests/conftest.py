"""Pytest fixtures for playlist_sync tests."""

import pytest

from playlist_sync.clients.base import RemotePlaylist, TrackCandidate
from playlist_sync.config import Settings
from playlist_sync.errors import RemoteCatalogError
from playlist_sync.state.ledger import SyncLedger
from playlist_sync.state.library import LibraryStore

OWNER_ID = "owner-1"
API_TOKEN = "test-token"


class FakeCatalog:
    """In-memory remote catalog that records every call."""

    def __init__(self, platform: str = "spotify") -> None:
        self.platform = platform
        self.account_id = "remote-user"
        self.playlists: dict[str, RemotePlaylist] = {}
        self.tracks: dict[str, list[str]] = {}
        self.search_results: dict[tuple[str, str], list[TrackCandidate]] = {}
        self.search_errors: set[str] = set()
        self.failing_uris: set[str] = set()
        self.fail_get_playlist = False
        self.fail_create = False
        self.fail_get_tracks = False
        self.calls: list[tuple] = []
        self._next_id = 1

    def add_candidates(self, title: str, artist: str, count: int) -> list[TrackCandidate]:
        """Make ``count`` search results available for a song."""
        candidates = [
            TrackCandidate(
                id=f"{title}-{i}".lower().replace(" ", "-"),
                name=title,
                uri=self.track_uri(f"{title}-{i}".lower().replace(" ", "-")),
                artists=[artist],
            )
            for i in range(count)
        ]
        self.search_results[(title, artist)] = candidates
        return candidates

    def add_remote_playlist(self, external_id: str, uris: list[str] | None = None) -> RemotePlaylist:
        playlist = RemotePlaylist(id=external_id, name="Existing", owner_id=self.account_id, public=True)
        self.playlists[external_id] = playlist
        self.tracks[external_id] = list(uris or [])
        return playlist

    def get_playlist(self, external_id: str) -> RemotePlaylist | None:
        self.calls.append(("get_playlist", external_id))
        if self.fail_get_playlist:
            raise RemoteCatalogError("Spotify API error", transient=True, status_code=503)
        return self.playlists.get(external_id)

    def create_playlist(
        self,
        owner_account_id: str,
        name: str,
        description: str = "",
        public: bool = True,
    ) -> RemotePlaylist:
        self.calls.append(("create_playlist", owner_account_id, name, description, public))
        if self.fail_create:
            raise RemoteCatalogError("Spotify API error (403)", status_code=403)
        external_id = f"remote-{self._next_id}"
        self._next_id += 1
        playlist = RemotePlaylist(
            id=external_id,
            name=name,
            owner_id=owner_account_id,
            public=public,
            uri=f"spotify:playlist:{external_id}",
        )
        self.playlists[external_id] = playlist
        self.tracks[external_id] = []
        return playlist

    def get_playlist_tracks(self, external_id: str) -> list[str]:
        self.calls.append(("get_playlist_tracks", external_id))
        if self.fail_get_tracks:
            raise RemoteCatalogError("Spotify API error", transient=True, status_code=502)
        return list(self.tracks.get(external_id, []))

    def add_tracks(self, external_id: str, uris: list[str], position: int | None = None) -> None:
        self.calls.append(("add_tracks", external_id, list(uris)))
        if any(uri in self.failing_uris for uri in uris):
            raise RemoteCatalogError("Spotify API error (400)", status_code=400)
        self.tracks.setdefault(external_id, []).extend(uris)

    def remove_tracks(self, external_id: str, uris: list[str]) -> None:
        self.calls.append(("remove_tracks", external_id, list(uris)))
        remaining = [u for u in self.tracks.get(external_id, []) if u not in set(uris)]
        self.tracks[external_id] = remaining

    def search_track(self, title: str, artist: str, limit: int = 5) -> list[TrackCandidate]:
        self.calls.append(("search_track", title, artist, limit))
        if title in self.search_errors:
            raise RemoteCatalogError("Spotify API error", transient=True, status_code=500)
        return list(self.search_results.get((title, artist), []))[:limit]

    def get_current_account(self) -> str:
        self.calls.append(("get_current_account",))
        return self.account_id

    def track_uri(self, remote_id: str) -> str:
        return f"spotify:track:{remote_id}"

    def call_names(self) -> list[str]:
        return [call[0] for call in self.calls]


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Create test settings rooted in a temporary directory."""
    return Settings(
        spotify_client_id="test_spotify_id",
        spotify_client_secret="test_spotify_secret",
        soundcloud_access_token="test_soundcloud_token",
        data_dir=tmp_path / "data",
        batch_delay_seconds=0.0,
        api_tokens={API_TOKEN: OWNER_ID},
    )


@pytest.fixture
def library(settings) -> LibraryStore:
    """Library store on a temporary database."""
    settings.ensure_directories()
    return LibraryStore(settings.db_path)


@pytest.fixture
def ledger(settings, library) -> SyncLedger:
    """Sync ledger sharing the library's database."""
    return SyncLedger(settings.db_path)


@pytest.fixture
def catalog() -> FakeCatalog:
    """Empty in-memory catalog."""
    return FakeCatalog()


@pytest.fixture
def make_playlist(library):
    """Factory creating a playlist with (title, artist) songs."""

    def _make(
        songs: list[tuple[str, str]],
        name: str = "Road Trip",
        owner_id: str = OWNER_ID,
        description: str = "",
    ) -> str:
        playlist_id = library.create_playlist(owner_id, name, description=description)
        for title, artist in songs:
            song_id = library.create_song(title, artist)
            library.add_song_to_playlist(playlist_id, song_id)
        return playlist_id

    return _make
