"""Persistent state: local library and sync ledger."""

from playlist_sync.state.ledger import PlaylistSync, SyncAction, SyncLedger, SyncLog, SyncStatus
from playlist_sync.state.library import LibraryStore, Platform, Playlist, Song

__all__ = [
    "LibraryStore",
    "Platform",
    "Playlist",
    "PlaylistSync",
    "Song",
    "SyncAction",
    "SyncLedger",
    "SyncLog",
    "SyncStatus",
]
