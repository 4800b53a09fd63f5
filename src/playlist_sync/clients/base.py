"""Platform-neutral remote catalog types."""

from dataclasses import dataclass, field
from typing import Protocol

MAX_TRACKS_PER_REQUEST = 100


@dataclass
class RemotePlaylist:
    """Handle to a playlist on a remote platform.

    Args:
        id: Platform playlist ID.
        name: Playlist name.
        owner_id: Owner's platform account ID.
        public: Whether the playlist is public.
        uri: Platform URI or URL for the playlist.
        track_count: Number of tracks reported by the platform.
    """

    id: str
    name: str
    owner_id: str
    public: bool
    uri: str = ""
    track_count: int = 0


@dataclass
class TrackCandidate:
    """A search result that could correspond to a local song.

    Args:
        id: Platform track ID.
        name: Track display name.
        artists: Artist names as reported by the platform.
        uri: Track URI accepted by the platform's playlist endpoints.
    """

    id: str
    name: str
    uri: str
    artists: list[str] = field(default_factory=list)

    @property
    def full_title(self) -> str:
        """Full title for display."""
        return f"{', '.join(self.artists)} - {self.name}"


class RemoteCatalog(Protocol):
    """Protocol for platform clients consumed by the sync engine.

    Every method may raise RemoteCatalogError (or NotAuthenticated /
    RateLimitError) on failure.
    """

    platform: str

    def get_playlist(self, external_id: str) -> RemotePlaylist | None: ...

    def create_playlist(
        self,
        owner_account_id: str,
        name: str,
        description: str = "",
        public: bool = True,
    ) -> RemotePlaylist: ...

    def get_playlist_tracks(self, external_id: str) -> list[str]: ...

    def add_tracks(self, external_id: str, uris: list[str], position: int | None = None) -> None: ...

    def remove_tracks(self, external_id: str, uris: list[str]) -> None: ...

    def search_track(self, title: str, artist: str, limit: int = 5) -> list[TrackCandidate]: ...

    def get_current_account(self) -> str: ...

    def track_uri(self, remote_id: str) -> str: ...
