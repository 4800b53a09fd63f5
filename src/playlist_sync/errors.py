"""Exception hierarchy for playlist synchronization.

Failures that happen before any remote mutation (authentication, unknown
playlist, oversized batch, a sync already running) are raised to the caller.
Failures that happen mid-run are absorbed into the run's counters and the
sync ledger; the exceptions below that describe them (TrackNotFound,
AmbiguousMatch, BatchWriteFailure) are recorded rather than propagated.

Hierarchy:
    PlaylistSyncError
        NotAuthenticated
        PlaylistNotFound
        RemotePlaylistUnavailable
        TrackNotFound
        AmbiguousMatch
        BatchWriteFailure
        BatchSizeExceeded
        SyncAlreadyInProgress
        RemoteCatalogError
            RateLimitError
"""

from typing import Any


class PlaylistSyncError(Exception):
    """Base exception for all playlist-sync errors.

    Args:
        message: Human-readable error description.
        details: Optional extra context for logging.
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        return self.message


class RemoteCatalogError(PlaylistSyncError):
    """Raised when a remote platform call fails.

    Args:
        message: Error description (never the raw response body).
        transient: Whether retrying the same call could succeed.
        status_code: HTTP status reported by the platform, if any.
    """

    def __init__(
        self,
        message: str,
        transient: bool = False,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.transient = transient
        self.status_code = status_code


class NotAuthenticated(RemoteCatalogError):
    """Raised when the caller or the remote account is not authenticated."""

    def __init__(self, message: str = "Not authenticated") -> None:
        super().__init__(message, transient=False, status_code=401)


class RateLimitError(RemoteCatalogError):
    """Raised when a platform answers 429 Too Many Requests."""

    def __init__(self, retry_after: int = 60) -> None:
        self.retry_after = retry_after
        super().__init__(
            f"Rate limited. Retry after {retry_after} seconds.",
            transient=True,
            status_code=429,
        )


class PlaylistNotFound(PlaylistSyncError):
    """Raised when a playlist does not exist or is not owned by the caller."""

    def __init__(self, playlist_id: str) -> None:
        super().__init__("Playlist not found", details={"playlist_id": playlist_id})
        self.playlist_id = playlist_id


class RemotePlaylistUnavailable(PlaylistSyncError):
    """Raised when no usable remote playlist exists and creation is disabled."""


class TrackNotFound(PlaylistSyncError):
    """A song had no candidates in the remote catalog."""

    def __init__(self, title: str, artist: str, platform: str) -> None:
        super().__init__(
            f"Track not found on {platform}",
            details={"title": title, "artist": artist},
        )


class AmbiguousMatch(PlaylistSyncError):
    """A song matched more than one remote candidate."""

    def __init__(self, title: str, artist: str, candidate_count: int, resolved: bool) -> None:
        if resolved:
            message = "Multiple matches found, used best match"
        else:
            message = f"Multiple matches found ({candidate_count}), skipped"
        super().__init__(
            message,
            details={"title": title, "artist": artist, "candidates": candidate_count},
        )
        self.candidate_count = candidate_count
        self.resolved = resolved


class BatchWriteFailure(PlaylistSyncError):
    """A chunk of tracks could not be written to the remote playlist."""

    def __init__(self, chunk_index: int, size: int, cause: Exception) -> None:
        super().__init__(
            f"Failed to add batch {chunk_index + 1} ({size} tracks): {cause}",
            details={"chunk_index": chunk_index, "size": size},
        )
        self.chunk_index = chunk_index
        self.size = size


class BatchSizeExceeded(PlaylistSyncError):
    """Raised when a batch request is empty or larger than allowed."""

    def __init__(self, requested: int, maximum: int) -> None:
        if requested == 0:
            message = "Playlist IDs array is required"
        else:
            message = f"Batch size too large. Maximum {maximum} playlists per batch."
        super().__init__(message, details={"requested": requested, "maximum": maximum})
        self.requested = requested
        self.maximum = maximum


class SyncAlreadyInProgress(PlaylistSyncError):
    """Raised when another run holds the (playlist, platform) pair."""

    def __init__(self, playlist_id: str, platform: str) -> None:
        super().__init__(
            f"A {platform} sync is already in progress for this playlist",
            details={"playlist_id": playlist_id, "platform": platform},
        )
        self.playlist_id = playlist_id
        self.platform = platform
