"""Mirror locally owned playlists onto remote music platforms."""

__version__ = "0.1.0"
