"""Playlist synchronization engine."""

from playlist_sync.sync.batch import BatchCoordinator, BatchEntry, BatchResult
from playlist_sync.sync.engine import SyncEngine, SyncOptions, SyncResult, SyncStats

__all__ = [
    "BatchCoordinator",
    "BatchEntry",
    "BatchResult",
    "SyncEngine",
    "SyncOptions",
    "SyncResult",
    "SyncStats",
]
