"""SoundCloud remote catalog built on httpx."""

import json
from typing import Any

import httpx

from playlist_sync.clients.base import MAX_TRACKS_PER_REQUEST, RemotePlaylist, TrackCandidate
from playlist_sync.clients.http import (
    DEFAULT_TIMEOUT,
    raise_for_platform_status,
    retry_on_transient_error,
)
from playlist_sync.config import Settings
from playlist_sync.errors import NotAuthenticated, RemoteCatalogError
from playlist_sync.logging import get_logger

logger = get_logger("clients.soundcloud")

URI_PREFIX = "soundcloud:tracks:"


def track_id_from_uri(uri: str) -> int:
    """Extract the numeric track ID from a ``soundcloud:tracks:<id>`` URI.

    Args:
        uri: Track URI.

    Returns:
        SoundCloud track ID.

    Raises:
        ValueError: If the URI is not a SoundCloud track URI.
    """
    if not uri.startswith(URI_PREFIX):
        raise ValueError(f"Not a SoundCloud track URI: {uri}")
    return int(uri[len(URI_PREFIX) :])


class SoundCloudCatalog:
    """Remote catalog for SoundCloud.

    SoundCloud edits playlists by replacing the whole track list, so adding
    and removing tracks read the current list and PUT the new one.

    Supports context manager protocol for proper resource cleanup:
        with SoundCloudCatalog(settings) as catalog:
            catalog.search_track("title", "artist")

    Args:
        settings: Application settings.
        http_client: Pre-built httpx client, mainly for tests.
    """

    platform = "soundcloud"

    API_BASE = "https://api.soundcloud.com"

    def __init__(self, settings: Settings, http_client: httpx.Client | None = None) -> None:
        self._settings = settings
        self._token_path = settings.data_dir / ".soundcloud_token.json"
        self._access_token: str | None = settings.soundcloud_access_token or None
        self._user_id: str | None = None
        self._http_client = http_client or httpx.Client(
            base_url=self.API_BASE,
            timeout=DEFAULT_TIMEOUT,
            limits=httpx.Limits(max_connections=10, max_keepalive_connections=5),
        )

        if self._access_token is None:
            self._load_token()

    def __enter__(self) -> "SoundCloudCatalog":
        """Enter context manager."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Exit context manager and close HTTP client."""
        self.close()

    def close(self) -> None:
        """Close the HTTP client and release resources."""
        self._http_client.close()

    def _load_token(self) -> None:
        """Load an access token issued by a previous OAuth flow."""
        if self._token_path.exists():
            try:
                data = json.loads(self._token_path.read_text())
                self._access_token = data.get("access_token")
            except json.JSONDecodeError:
                logger.warning("Ignoring unreadable token cache %s", self._token_path)

    def _get_headers(self) -> dict[str, str]:
        if not self._access_token:
            raise NotAuthenticated("No SoundCloud access token configured")
        return {
            "Authorization": f"OAuth {self._access_token}",
            "Accept": "application/json",
        }

    @retry_on_transient_error
    def _send(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        return self._http_client.request(method, path, headers=self._get_headers(), **kwargs)

    def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            response = self._send(method, path, **kwargs)
        except httpx.TransportError as e:
            raise RemoteCatalogError(
                f"SoundCloud request failed: {type(e).__name__}", transient=True
            ) from e
        raise_for_platform_status(response, "SoundCloud")
        return response

    def get_current_account(self) -> str:
        """Get the authenticated user's ID."""
        if self._user_id is None:
            self._user_id = str(self._request("GET", "/me").json()["id"])
        return self._user_id

    def track_uri(self, remote_id: str) -> str:
        """Build a track URI from a SoundCloud track ID."""
        return f"{URI_PREFIX}{remote_id}"

    def get_playlist(self, external_id: str) -> RemotePlaylist | None:
        """Fetch a playlist by ID.

        Args:
            external_id: SoundCloud playlist ID.

        Returns:
            RemotePlaylist, or None if the playlist no longer exists.
        """
        try:
            response = self._request("GET", f"/playlists/{external_id}")
        except RemoteCatalogError as e:
            if e.status_code == 404:
                return None
            raise
        return self._parse_playlist(response.json())

    def create_playlist(
        self,
        owner_account_id: str,
        name: str,
        description: str = "",
        public: bool = True,
    ) -> RemotePlaylist:
        """Create a new playlist for the authenticated user.

        Args:
            owner_account_id: Account that will own the playlist; SoundCloud
                always creates under the token's user.
            name: Playlist title.
            description: Playlist description.
            public: Whether the playlist is public.

        Returns:
            The created RemotePlaylist.
        """
        data = {
            "playlist": {
                "title": name,
                "description": description,
                "sharing": "public" if public else "private",
                "tracks": [],
            }
        }
        result = self._request("POST", "/playlists", json=data).json()
        logger.info("Created SoundCloud playlist %s for %s", result["id"], owner_account_id)
        return self._parse_playlist(result)

    def _get_track_ids(self, external_id: str) -> list[int]:
        data = self._request("GET", f"/playlists/{external_id}").json()
        return [item["id"] for item in data.get("tracks") or []]

    def _set_track_ids(self, external_id: str, track_ids: list[int]) -> None:
        data = {"playlist": {"tracks": [{"id": tid} for tid in track_ids]}}
        self._request("PUT", f"/playlists/{external_id}", json=data)

    def get_playlist_tracks(self, external_id: str) -> list[str]:
        """Get all track URIs in a playlist, in playlist order.

        Args:
            external_id: SoundCloud playlist ID.

        Returns:
            Ordered list of track URIs.
        """
        return [self.track_uri(str(tid)) for tid in self._get_track_ids(external_id)]

    def add_tracks(self, external_id: str, uris: list[str], position: int | None = None) -> None:
        """Add one chunk of tracks to a playlist.

        Args:
            external_id: SoundCloud playlist ID.
            uris: Track URIs, at most MAX_TRACKS_PER_REQUEST.
            position: Optional zero-based insert position; appends when omitted.

        Raises:
            ValueError: If more URIs are passed than one request accepts.
        """
        if len(uris) > MAX_TRACKS_PER_REQUEST:
            raise ValueError(
                f"At most {MAX_TRACKS_PER_REQUEST} tracks per request, got {len(uris)}"
            )
        new_ids = [track_id_from_uri(uri) for uri in uris]
        current_ids = self._get_track_ids(external_id)
        if position is None:
            position = len(current_ids)
        self._set_track_ids(external_id, current_ids[:position] + new_ids + current_ids[position:])

    def remove_tracks(self, external_id: str, uris: list[str]) -> None:
        """Remove all occurrences of the given tracks from a playlist.

        Args:
            external_id: SoundCloud playlist ID.
            uris: Track URIs to remove.
        """
        to_remove = {track_id_from_uri(uri) for uri in uris}
        remaining = [tid for tid in self._get_track_ids(external_id) if tid not in to_remove]
        self._set_track_ids(external_id, remaining)

    def search_track(self, title: str, artist: str, limit: int = 5) -> list[TrackCandidate]:
        """Search for a track by title and artist.

        SoundCloud has no field search, so this is a free-text query on
        "title artist". It usually returns several loosely related tracks,
        which the resolver counts as ambiguous matches; expect higher
        conflict counts than on Spotify.

        Args:
            title: Song title.
            artist: Song artist.
            limit: Maximum number of candidates.

        Returns:
            Candidates in the order SoundCloud ranked them.
        """
        response = self._request(
            "GET",
            "/tracks",
            params={"q": f"{title} {artist}".strip(), "limit": limit},
        )
        items = response.json()
        if isinstance(items, dict):
            items = items.get("collection", [])
        return [self._parse_candidate(item) for item in items[:limit]]

    def _parse_playlist(self, item: dict) -> RemotePlaylist:
        """Parse a SoundCloud playlist response.

        Args:
            item: Raw playlist data from the SoundCloud API.

        Returns:
            Parsed RemotePlaylist.
        """
        user = item.get("user") or {}
        return RemotePlaylist(
            id=str(item["id"]),
            uri=item.get("permalink_url", ""),
            name=item.get("title", ""),
            owner_id=str(user.get("id", "")),
            public=item.get("sharing", "public") == "public",
            track_count=item.get("track_count", 0) or 0,
        )

    def _parse_candidate(self, item: dict) -> TrackCandidate:
        """Parse a SoundCloud track response.

        Args:
            item: Raw track data from the SoundCloud API.

        Returns:
            Parsed TrackCandidate.
        """
        user = item.get("user") or {}
        publisher_metadata = item.get("publisher_metadata") or {}
        artist = publisher_metadata.get("artist") or user.get("username") or "Unknown Artist"
        return TrackCandidate(
            id=str(item["id"]),
            name=item.get("title", ""),
            uri=self.track_uri(str(item["id"])),
            artists=[artist],
        )
