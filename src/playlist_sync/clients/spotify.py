"""Spotify remote catalog built on spotipy."""

from collections.abc import Callable
from typing import TypeVar

import requests
import spotipy
from spotipy.exceptions import SpotifyException
from spotipy.oauth2 import SpotifyOAuth

from playlist_sync.clients.base import MAX_TRACKS_PER_REQUEST, RemotePlaylist, TrackCandidate
from playlist_sync.config import Settings
from playlist_sync.errors import NotAuthenticated, RateLimitError, RemoteCatalogError
from playlist_sync.logging import get_logger

T = TypeVar("T")

logger = get_logger("clients.spotify")

PLAYLIST_FIELDS = "id,uri,name,public,owner(id),tracks(total)"


def build_search_query(title: str, artist: str) -> str:
    """Build an exact field search query for a song.

    Args:
        title: Song title.
        artist: Song artist.

    Returns:
        Query of the form ``track:"<title>" artist:"<artist>"``.
    """
    title = title.replace('"', "").strip()
    artist = artist.replace('"', "").strip()
    return f'track:"{title}" artist:"{artist}"'


def translate_error(exc: Exception) -> RemoteCatalogError:
    """Map a spotipy/requests failure onto the sync error taxonomy.

    Args:
        exc: The exception raised by spotipy.

    Returns:
        Equivalent RemoteCatalogError (never carrying the raw response body).
    """
    if isinstance(exc, SpotifyException):
        status = exc.http_status
        if status == 401:
            return NotAuthenticated("Spotify rejected the access token")
        if status == 429:
            headers = exc.headers or {}
            return RateLimitError(int(headers.get("Retry-After", 60)))
        return RemoteCatalogError(
            f"Spotify request failed with status {status}",
            transient=status is not None and status >= 500,
            status_code=status,
        )
    return RemoteCatalogError(f"Spotify request failed: {type(exc).__name__}", transient=True)


class SpotifyCatalog:
    """Remote catalog for Spotify.

    Args:
        settings: Application settings containing Spotify credentials.
        client: Pre-built spotipy client; built from settings when omitted.
    """

    platform = "spotify"

    SCOPES = [
        "playlist-read-private",
        "playlist-read-collaborative",
        "playlist-modify-public",
        "playlist-modify-private",
    ]

    def __init__(self, settings: Settings, client: spotipy.Spotify | None = None) -> None:
        self._settings = settings
        if client is None:
            settings.data_dir.mkdir(parents=True, exist_ok=True)
            auth_manager = SpotifyOAuth(
                client_id=settings.spotify_client_id,
                client_secret=settings.spotify_client_secret,
                redirect_uri=settings.spotify_redirect_uri,
                scope=" ".join(self.SCOPES),
                cache_path=str(settings.data_dir / ".spotify_cache"),
                open_browser=False,
            )
            client = spotipy.Spotify(auth_manager=auth_manager)
        self._client = client
        self._user_id: str | None = None

    def _call(self, func: Callable[..., T], *args, **kwargs) -> T:
        try:
            return func(*args, **kwargs)
        except (SpotifyException, requests.RequestException) as e:
            raise translate_error(e) from e

    def get_current_account(self) -> str:
        """Get the authenticated user's ID."""
        if self._user_id is None:
            self._user_id = self._call(self._client.current_user)["id"]
        return self._user_id

    def track_uri(self, remote_id: str) -> str:
        """Build a track URI from a Spotify track ID."""
        return f"spotify:track:{remote_id}"

    def get_playlist(self, external_id: str) -> RemotePlaylist | None:
        """Fetch a playlist by ID.

        Args:
            external_id: Spotify playlist ID.

        Returns:
            RemotePlaylist, or None if the playlist no longer exists.
        """
        try:
            item = self._client.playlist(external_id, fields=PLAYLIST_FIELDS)
        except SpotifyException as e:
            if e.http_status == 404:
                return None
            raise translate_error(e) from e
        except requests.RequestException as e:
            raise translate_error(e) from e

        if not item:
            return None
        return self._parse_playlist(item)

    def create_playlist(
        self,
        owner_account_id: str,
        name: str,
        description: str = "",
        public: bool = True,
    ) -> RemotePlaylist:
        """Create a new playlist.

        Args:
            owner_account_id: Spotify user that will own the playlist.
            name: Playlist name.
            description: Playlist description.
            public: Whether the playlist is public.

        Returns:
            The created RemotePlaylist.
        """
        result = self._call(
            self._client.user_playlist_create,
            user=owner_account_id,
            name=name,
            public=public,
            description=description,
        )
        logger.info("Created Spotify playlist %s (%s)", result["id"], name)
        return self._parse_playlist(result)

    def get_playlist_tracks(self, external_id: str) -> list[str]:
        """Get all track URIs in a playlist, in playlist order.

        Args:
            external_id: Spotify playlist ID.

        Returns:
            Ordered list of track URIs.
        """
        uris: list[str] = []
        offset = 0
        limit = 100

        while True:
            results = self._call(
                self._client.playlist_items,
                external_id,
                limit=limit,
                offset=offset,
                fields="items(track(uri)),next",
            )

            for item in results["items"]:
                track = item.get("track")
                if track is None or not track.get("uri"):
                    continue
                uris.append(track["uri"])

            if not results.get("next"):
                break
            offset += limit

        return uris

    def add_tracks(self, external_id: str, uris: list[str], position: int | None = None) -> None:
        """Add one chunk of tracks to a playlist.

        Args:
            external_id: Spotify playlist ID.
            uris: Track URIs, at most MAX_TRACKS_PER_REQUEST.
            position: Optional zero-based insert position.

        Raises:
            ValueError: If more URIs are passed than one request accepts.
        """
        if len(uris) > MAX_TRACKS_PER_REQUEST:
            raise ValueError(
                f"At most {MAX_TRACKS_PER_REQUEST} tracks per request, got {len(uris)}"
            )
        self._call(self._client.playlist_add_items, external_id, uris, position=position)

    def remove_tracks(self, external_id: str, uris: list[str]) -> None:
        """Remove all occurrences of the given tracks from a playlist.

        Args:
            external_id: Spotify playlist ID.
            uris: Track URIs to remove.
        """
        for i in range(0, len(uris), MAX_TRACKS_PER_REQUEST):
            batch = uris[i : i + MAX_TRACKS_PER_REQUEST]
            self._call(self._client.playlist_remove_all_occurrences_of_items, external_id, batch)

    def search_track(self, title: str, artist: str, limit: int = 5) -> list[TrackCandidate]:
        """Search for a track by exact title and artist.

        Args:
            title: Song title.
            artist: Song artist.
            limit: Maximum number of candidates.

        Returns:
            Candidates in the order Spotify ranked them.
        """
        query = build_search_query(title, artist)
        results = self._call(self._client.search, q=query, type="track", limit=limit)
        items = (results or {}).get("tracks", {}).get("items") or []
        return [self._parse_candidate(item) for item in items if item]

    def _parse_playlist(self, item: dict) -> RemotePlaylist:
        """Parse a Spotify playlist response.

        Args:
            item: Raw playlist data from the Spotify API.

        Returns:
            Parsed RemotePlaylist.
        """
        return RemotePlaylist(
            id=item["id"],
            uri=item.get("uri", ""),
            name=item.get("name", ""),
            owner_id=(item.get("owner") or {}).get("id", ""),
            public=bool(item.get("public")),
            track_count=(item.get("tracks") or {}).get("total", 0),
        )

    def _parse_candidate(self, item: dict) -> TrackCandidate:
        """Parse a Spotify track response into a TrackCandidate.

        Args:
            item: Raw track data from the Spotify API.

        Returns:
            Parsed TrackCandidate.
        """
        return TrackCandidate(
            id=item["id"],
            name=item.get("name", ""),
            uri=item["uri"],
            artists=[a["name"] for a in item.get("artists", [])],
        )
