"""Write resolved tracks to a remote playlist in fixed-size chunks."""

from dataclasses import dataclass, field

from playlist_sync.clients.base import MAX_TRACKS_PER_REQUEST, RemoteCatalog, RemotePlaylist
from playlist_sync.clients.http import RetryPolicy
from playlist_sync.errors import BatchWriteFailure
from playlist_sync.logging import get_logger
from playlist_sync.state.ledger import SyncAction, SyncLedger, SyncStatus

logger = get_logger("sync.writer")


@dataclass
class WriteEntry:
    """A resolved track waiting to be written.

    Args:
        song_id: Local song the URI was resolved from.
        uri: Remote track URI.
    """

    song_id: str
    uri: str


@dataclass
class WriteReport:
    """Outcome of writing all tracks.

    Args:
        written: Tracks the platform accepted.
        failed_count: Tracks counted as failed.
        failures: One BatchWriteFailure per failed chunk.
    """

    written: int = 0
    failed_count: int = 0
    failures: list[BatchWriteFailure] = field(default_factory=list)


def chunked(entries: list[WriteEntry], size: int) -> list[list[WriteEntry]]:
    """Split entries into consecutive chunks of at most ``size``."""
    return [entries[i : i + size] for i in range(0, len(entries), size)]


class BatchTrackWriter:
    """Pushes URIs onto a remote playlist, one request per chunk.

    By default a failed chunk is accounted coarsely: every track in it counts
    as failed. With ``per_track_fallback`` the failed chunk is retried one
    track at a time and only tracks that still fail are counted.

    Args:
        catalog: Remote catalog.
        ledger: Sync ledger for audit entries.
        chunk_size: Tracks per request.
        retry_policy: Retry wrapper for each request.
        per_track_fallback: Whether to retry a failed chunk track by track.
    """

    def __init__(
        self,
        catalog: RemoteCatalog,
        ledger: SyncLedger,
        chunk_size: int = MAX_TRACKS_PER_REQUEST,
        retry_policy: RetryPolicy | None = None,
        per_track_fallback: bool = False,
    ) -> None:
        if not 1 <= chunk_size <= MAX_TRACKS_PER_REQUEST:
            raise ValueError(f"chunk_size must be between 1 and {MAX_TRACKS_PER_REQUEST}")
        self._catalog = catalog
        self._ledger = ledger
        self._chunk_size = chunk_size
        self._retry = retry_policy or RetryPolicy()
        self._per_track_fallback = per_track_fallback

    def write_all(
        self,
        sync_id: str,
        remote_playlist: RemotePlaylist,
        entries: list[WriteEntry],
    ) -> WriteReport:
        """Write all entries in order.

        Chunk failures are absorbed and reported, never raised.

        Args:
            sync_id: Ledger row of the current run.
            remote_playlist: Target playlist.
            entries: Resolved tracks in playlist order.

        Returns:
            WriteReport with written and failed counts.
        """
        report = WriteReport()

        for index, chunk in enumerate(chunked(entries, self._chunk_size)):
            try:
                self._write_chunk(remote_playlist.id, index, chunk)
            except BatchWriteFailure as failure:
                logger.warning("%s", failure)
                report.failures.append(failure)
                if self._per_track_fallback:
                    written, failed = self._write_individually(sync_id, remote_playlist.id, chunk)
                    report.written += written
                    report.failed_count += failed
                else:
                    report.failed_count += len(chunk)
                    for entry in chunk:
                        self._log(sync_id, entry, SyncStatus.FAILED, str(failure))
                continue

            report.written += len(chunk)
            for entry in chunk:
                self._log(sync_id, entry, SyncStatus.COMPLETED)

        return report

    def _write_chunk(self, external_id: str, index: int, chunk: list[WriteEntry]) -> None:
        try:
            self._retry.call(self._catalog.add_tracks, external_id, [e.uri for e in chunk])
        except Exception as e:
            raise BatchWriteFailure(index, len(chunk), e) from e

    def _write_individually(
        self,
        sync_id: str,
        external_id: str,
        chunk: list[WriteEntry],
    ) -> tuple[int, int]:
        written = 0
        failed = 0
        for entry in chunk:
            try:
                self._retry.call(self._catalog.add_tracks, external_id, [entry.uri])
            except Exception as e:
                failed += 1
                self._log(sync_id, entry, SyncStatus.FAILED, str(e))
            else:
                written += 1
                self._log(sync_id, entry, SyncStatus.COMPLETED)
        return written, failed

    def _log(
        self,
        sync_id: str,
        entry: WriteEntry,
        status: SyncStatus,
        error_message: str | None = None,
    ) -> None:
        self._ledger.log_action(
            sync_id=sync_id,
            song_id=entry.song_id,
            action=SyncAction.ADD_TRACK,
            status=status,
            error_message=error_message,
            remote_uri=entry.uri,
        )
