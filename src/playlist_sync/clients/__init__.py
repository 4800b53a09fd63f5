"""Remote catalog clients for music platforms."""

from playlist_sync.clients.base import RemoteCatalog, RemotePlaylist, TrackCandidate
from playlist_sync.clients.soundcloud import SoundCloudCatalog
from playlist_sync.clients.spotify import SpotifyCatalog

__all__ = [
    "RemoteCatalog",
    "RemotePlaylist",
    "SoundCloudCatalog",
    "SpotifyCatalog",
    "TrackCandidate",
]
