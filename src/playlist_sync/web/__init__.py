"""HTTP surface for triggering syncs and reading their status."""

from playlist_sync.web.app import create_app

__all__ = ["create_app"]
