"""Local playlist library and the shared song-to-remote-track table."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal

from playlist_sync.state.db import SQLiteStore, parse_timestamp

Platform = Literal["spotify", "soundcloud"]
PLATFORMS: tuple[str, ...] = ("spotify", "soundcloud")


@dataclass
class Song:
    """A song in the local library.

    Args:
        id: Local song ID.
        title: Song title.
        artist: Song artist.
        external_ids: Cached remote track ID per platform.
    """

    id: str
    title: str
    artist: str
    external_ids: dict[str, str] = field(default_factory=dict)

    def external_id(self, platform: Platform) -> str | None:
        """Cached remote track ID for a platform, if resolved before."""
        return self.external_ids.get(platform)


@dataclass
class Playlist:
    """A locally owned playlist with its songs in stored order.

    Args:
        id: Local playlist ID.
        owner_id: Owning user ID.
        name: Playlist name.
        description: Playlist description.
        is_public: Whether the remote copy should be public.
        songs: Songs in playlist order.
        spotify_id: Historical default-platform ID set by imports; the sync
            engine uses the ledger's external ID instead.
    """

    id: str
    owner_id: str
    name: str
    description: str = ""
    is_public: bool = True
    songs: list[Song] = field(default_factory=list)
    spotify_id: str | None = None


@dataclass
class ExternalId:
    """One row of the shared (song, platform) to remote ID table.

    Args:
        song_id: Local song ID.
        platform: Remote platform.
        remote_id: Remote track ID.
        version: Incremented whenever remote_id changes.
        updated_at: When remote_id last changed.
    """

    song_id: str
    platform: str
    remote_id: str
    version: int
    updated_at: datetime | None


class LibraryStore(SQLiteStore):
    """SQLite store for playlists, songs and their remote track IDs.

    The remote ID table is shared by every playlist containing a song:
    resolving a song for one playlist changes what every other playlist
    uses on that platform (last writer wins).
    """

    SCHEMA = """
        CREATE TABLE IF NOT EXISTS playlists (
            id TEXT PRIMARY KEY,
            owner_id TEXT NOT NULL,
            name TEXT NOT NULL,
            description TEXT NOT NULL DEFAULT '',
            is_public INTEGER NOT NULL DEFAULT 1,
            spotify_id TEXT,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        );

        CREATE TABLE IF NOT EXISTS songs (
            id TEXT PRIMARY KEY,
            title TEXT NOT NULL,
            artist TEXT NOT NULL,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        );

        CREATE TABLE IF NOT EXISTS playlist_songs (
            playlist_id TEXT NOT NULL REFERENCES playlists(id) ON DELETE CASCADE,
            song_id TEXT NOT NULL REFERENCES songs(id) ON DELETE CASCADE,
            position INTEGER NOT NULL,
            PRIMARY KEY (playlist_id, position)
        );

        CREATE TABLE IF NOT EXISTS song_external_ids (
            song_id TEXT NOT NULL REFERENCES songs(id) ON DELETE CASCADE,
            platform TEXT NOT NULL,
            remote_id TEXT NOT NULL,
            version INTEGER NOT NULL DEFAULT 1,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            PRIMARY KEY (song_id, platform)
        );

        CREATE INDEX IF NOT EXISTS idx_playlists_owner
            ON playlists(owner_id);
        CREATE INDEX IF NOT EXISTS idx_playlist_songs_song
            ON playlist_songs(song_id);
    """

    def create_playlist(
        self,
        owner_id: str,
        name: str,
        description: str = "",
        is_public: bool = True,
        playlist_id: str | None = None,
    ) -> str:
        """Create an empty playlist.

        Args:
            owner_id: Owning user ID.
            name: Playlist name.
            description: Playlist description.
            is_public: Whether the playlist is public.
            playlist_id: Optional explicit ID; generated when omitted.

        Returns:
            The playlist ID.
        """
        playlist_id = playlist_id or uuid.uuid4().hex
        with self._get_connection() as conn:
            conn.execute(
                """
                INSERT INTO playlists (id, owner_id, name, description, is_public)
                VALUES (?, ?, ?, ?, ?)
                """,
                (playlist_id, owner_id, name, description, int(is_public)),
            )
        return playlist_id

    def create_song(self, title: str, artist: str, song_id: str | None = None) -> str:
        """Create a song.

        Args:
            title: Song title.
            artist: Song artist.
            song_id: Optional explicit ID; generated when omitted.

        Returns:
            The song ID.
        """
        song_id = song_id or uuid.uuid4().hex
        with self._get_connection() as conn:
            conn.execute(
                "INSERT INTO songs (id, title, artist) VALUES (?, ?, ?)",
                (song_id, title, artist),
            )
        return song_id

    def add_song_to_playlist(self, playlist_id: str, song_id: str) -> int:
        """Append a song to the end of a playlist.

        Args:
            playlist_id: Playlist ID.
            song_id: Song ID.

        Returns:
            The zero-based position the song was stored at.
        """
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT COALESCE(MAX(position) + 1, 0) AS next FROM playlist_songs WHERE playlist_id = ?",
                (playlist_id,),
            ).fetchone()
            position = row["next"]
            conn.execute(
                "INSERT INTO playlist_songs (playlist_id, song_id, position) VALUES (?, ?, ?)",
                (playlist_id, song_id, position),
            )
        return position

    def import_playlist(self, owner_id: str, payload: dict[str, Any]) -> str:
        """Create a playlist and its songs from a JSON-style payload.

        The payload has ``name``, optional ``description`` and ``isPublic``,
        and ``songs``: a list of ``{title, artist}`` objects that may carry
        already known remote IDs as ``spotifyId`` / ``soundcloudId``.

        Args:
            owner_id: Owning user ID.
            payload: Parsed playlist description.

        Returns:
            The new playlist ID.
        """
        playlist_id = self.create_playlist(
            owner_id=owner_id,
            name=payload["name"],
            description=payload.get("description", ""),
            is_public=payload.get("isPublic", True),
        )
        for entry in payload.get("songs", []):
            song_id = self.create_song(entry["title"], entry["artist"])
            self.add_song_to_playlist(playlist_id, song_id)
            for platform in PLATFORMS:
                remote_id = entry.get(f"{platform}Id")
                if remote_id:
                    self.upsert_external_id(song_id, platform, remote_id)
        return playlist_id

    def get_playlist(self, playlist_id: str, owner_id: str) -> Playlist | None:
        """Load a playlist with its songs, scoped to its owner.

        Args:
            playlist_id: Playlist ID.
            owner_id: Caller's user ID.

        Returns:
            Playlist with ordered songs, or None if it doesn't exist or
            belongs to someone else.
        """
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT * FROM playlists WHERE id = ? AND owner_id = ?",
                (playlist_id, owner_id),
            ).fetchone()

            if row is None:
                return None

            song_rows = conn.execute(
                """
                SELECT s.id, s.title, s.artist
                FROM playlist_songs ps
                JOIN songs s ON s.id = ps.song_id
                WHERE ps.playlist_id = ?
                ORDER BY ps.position ASC
                """,
                (playlist_id,),
            ).fetchall()

            id_rows = conn.execute(
                """
                SELECT e.song_id, e.platform, e.remote_id
                FROM song_external_ids e
                JOIN playlist_songs ps ON ps.song_id = e.song_id
                WHERE ps.playlist_id = ?
                """,
                (playlist_id,),
            ).fetchall()

        external_ids: dict[str, dict[str, str]] = {}
        for id_row in id_rows:
            external_ids.setdefault(id_row["song_id"], {})[id_row["platform"]] = id_row["remote_id"]

        return Playlist(
            id=row["id"],
            owner_id=row["owner_id"],
            name=row["name"],
            description=row["description"],
            is_public=bool(row["is_public"]),
            spotify_id=row["spotify_id"],
            songs=[
                Song(
                    id=s["id"],
                    title=s["title"],
                    artist=s["artist"],
                    external_ids=dict(external_ids.get(s["id"], {})),
                )
                for s in song_rows
            ],
        )

    def get_playlist_name(self, playlist_id: str) -> str | None:
        """Get a playlist's name regardless of owner."""
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT name FROM playlists WHERE id = ?",
                (playlist_id,),
            ).fetchone()
            return row["name"] if row else None

    def get_song(self, song_id: str) -> Song | None:
        """Get a song with its cached remote IDs."""
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT id, title, artist FROM songs WHERE id = ?",
                (song_id,),
            ).fetchone()
            if row is None:
                return None

            id_rows = conn.execute(
                "SELECT platform, remote_id FROM song_external_ids WHERE song_id = ?",
                (song_id,),
            ).fetchall()

        return Song(
            id=row["id"],
            title=row["title"],
            artist=row["artist"],
            external_ids={r["platform"]: r["remote_id"] for r in id_rows},
        )

    def get_external_id(self, song_id: str, platform: Platform) -> ExternalId | None:
        """Get the cached remote ID for a song on a platform.

        Args:
            song_id: Song ID.
            platform: Remote platform.

        Returns:
            ExternalId if the song was resolved before, None otherwise.
        """
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT * FROM song_external_ids WHERE song_id = ? AND platform = ?",
                (song_id, platform),
            ).fetchone()

            if row is None:
                return None

            return ExternalId(
                song_id=row["song_id"],
                platform=row["platform"],
                remote_id=row["remote_id"],
                version=row["version"],
                updated_at=parse_timestamp(row["updated_at"]),
            )

    def upsert_external_id(self, song_id: str, platform: Platform, remote_id: str) -> int:
        """Record a song's remote ID on a platform.

        Idempotent: writing the current value again leaves the version
        unchanged. A different value replaces the old one and bumps the
        version.

        Args:
            song_id: Song ID.
            platform: Remote platform.
            remote_id: Remote track ID.

        Returns:
            The row's version after the write.
        """
        with self._get_connection() as conn:
            conn.execute(
                """
                INSERT INTO song_external_ids (song_id, platform, remote_id)
                VALUES (?, ?, ?)
                ON CONFLICT(song_id, platform) DO UPDATE SET
                    remote_id = excluded.remote_id,
                    version = song_external_ids.version + 1,
                    updated_at = CURRENT_TIMESTAMP
                WHERE song_external_ids.remote_id != excluded.remote_id
                """,
                (song_id, platform, remote_id),
            )
            row = conn.execute(
                "SELECT version FROM song_external_ids WHERE song_id = ? AND platform = ?",
                (song_id, platform),
            ).fetchone()
            return row["version"]
