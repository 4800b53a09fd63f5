"""Core sync engine for playlist synchronization."""

from dataclasses import dataclass, field

from playlist_sync.clients.base import RemoteCatalog, RemotePlaylist
from playlist_sync.clients.http import RetryPolicy
from playlist_sync.config import Settings
from playlist_sync.errors import PlaylistNotFound
from playlist_sync.logging import RunLogger, get_run_logger
from playlist_sync.state.ledger import (
    PlaylistSync,
    SyncAction,
    SyncLedger,
    SyncStatus,
    SyncStatusReport,
)
from playlist_sync.state.library import LibraryStore, Platform, Playlist
from playlist_sync.sync.provisioner import RemotePlaylistProvisioner
from playlist_sync.sync.resolver import ConflictPolicy, TrackResolver
from playlist_sync.sync.writer import BatchTrackWriter, WriteEntry


@dataclass
class SyncOptions:
    """Caller options for one sync run.

    Args:
        create_if_not_exists: Create the remote playlist when none is usable.
        update_existing: Remove all current remote tracks before writing.
        handle_conflicts: Auto-resolve ambiguous matches to the first
            candidate. When False they are flagged and left out.
    """

    create_if_not_exists: bool = True
    update_existing: bool = True
    handle_conflicts: bool = True

    @property
    def conflict_policy(self) -> ConflictPolicy:
        if self.handle_conflicts:
            return ConflictPolicy.AUTO_RESOLVE
        return ConflictPolicy.FLAG_AND_SKIP


@dataclass
class SyncStats:
    """Counters of a sync run.

    Args:
        total: Songs in the playlist.
        success: Tracks written to the remote playlist.
        conflicts: Songs not found or ambiguously matched.
        errors: Songs whose search failed plus tracks whose write failed.
    """

    total: int = 0
    success: int = 0
    conflicts: int = 0
    errors: int = 0


@dataclass
class SyncResult:
    """Outcome returned to the caller of a sync run.

    Args:
        success: False only when the run ended FAILED.
        sync_id: Ledger row ID.
        status: Terminal status.
        message: Human-readable summary.
        stats: Run counters.
    """

    success: bool
    sync_id: str
    status: SyncStatus
    message: str
    stats: SyncStats = field(default_factory=SyncStats)


def determine_status(success: int, conflicts: int, errors: int) -> SyncStatus:
    """Map run counters to a terminal status.

    Args:
        success: Tracks written.
        conflicts: Conflicting songs.
        errors: Failed songs or tracks.

    Returns:
        FAILED when nothing succeeded and something errored, PARTIAL when
        something succeeded alongside conflicts or errors, else COMPLETED.
    """
    if errors > 0 and success == 0:
        return SyncStatus.FAILED
    if (conflicts > 0 or errors > 0) and success > 0:
        return SyncStatus.PARTIAL
    return SyncStatus.COMPLETED


def build_message(status: SyncStatus, stats: SyncStats) -> str:
    """Summary line for a terminal status and its counters."""
    if status is SyncStatus.COMPLETED:
        return f"Successfully synced {stats.success} tracks"
    if status is SyncStatus.PARTIAL:
        return (
            f"Synced {stats.success} tracks with {stats.conflicts} conflicts "
            f"and {stats.errors} errors"
        )
    return f"Sync failed: {stats.errors} errors occurred"


class SyncEngine:
    """Engine for syncing a local playlist to one remote platform.

    A run is a full replace: the remote playlist is found or created, its
    current tracks are removed, every local song is resolved to a remote
    track and the resolved tracks are written in playlist order. Progress
    and outcome are recorded in the sync ledger.

    Args:
        settings: Application settings.
        catalog: Remote catalog of the target platform.
        library: Local playlist library.
        ledger: Sync ledger.
        retry_policy: Retry wrapper for remote calls; built from settings
            when omitted.
    """

    def __init__(
        self,
        settings: Settings,
        catalog: RemoteCatalog,
        library: LibraryStore,
        ledger: SyncLedger,
        retry_policy: RetryPolicy | None = None,
    ) -> None:
        self._settings = settings
        self._catalog = catalog
        self._library = library
        self._ledger = ledger
        self._retry = retry_policy or RetryPolicy.from_settings(settings)

        self._provisioner = RemotePlaylistProvisioner(catalog, ledger, self._retry)
        self._resolver = TrackResolver(
            catalog,
            library,
            ledger,
            retry_policy=self._retry,
            search_limit=settings.search_limit,
        )
        self._writer = BatchTrackWriter(
            catalog,
            ledger,
            chunk_size=settings.write_batch_size,
            retry_policy=self._retry,
            per_track_fallback=settings.per_track_fallback,
        )

    @property
    def platform(self) -> Platform:
        return self._catalog.platform

    def synchronize(
        self,
        playlist_id: str,
        owner_id: str,
        options: SyncOptions | None = None,
    ) -> SyncResult:
        """Sync a local playlist to the engine's platform.

        Args:
            playlist_id: Local playlist ID.
            owner_id: Caller's user ID; the playlist must belong to them.
            options: Run options; all enabled when omitted.

        Returns:
            SyncResult with the terminal status and counters.

        Raises:
            PlaylistNotFound: If the playlist doesn't exist or isn't owned
                by ``owner_id``. Nothing is written to the ledger.
            SyncAlreadyInProgress: If another run holds this playlist and
                platform.
        """
        options = options or SyncOptions()
        log = get_run_logger("sync.engine", playlist_id, self.platform)

        playlist = self._library.get_playlist(playlist_id, owner_id)
        if playlist is None:
            raise PlaylistNotFound(playlist_id)

        sync = self._ledger.claim(
            playlist_id,
            self.platform,
            total_count=len(playlist.songs),
            stale_after_minutes=self._settings.stale_sync_minutes,
        )
        stats = SyncStats(total=len(playlist.songs))
        log.info("Sync %s started for %d songs", sync.id, stats.total)

        try:
            return self._run(playlist, sync, options, stats, log)
        except Exception as e:
            log.exception("Sync %s aborted", sync.id)
            self._ledger.fail(sync.id, str(e))
            stats.errors = max(stats.errors, 1)
            return SyncResult(
                success=False,
                sync_id=sync.id,
                status=SyncStatus.FAILED,
                message=build_message(SyncStatus.FAILED, stats),
                stats=stats,
            )

    def get_sync_status(
        self,
        playlist_id: str,
        platform: Platform | None = None,
        log_limit: int = 10,
    ) -> SyncStatusReport | None:
        """Read the ledger row and recent log entries of a playlist.

        Args:
            playlist_id: Local playlist ID.
            platform: Remote platform; defaults to the engine's platform.
            log_limit: Maximum log entries to include.

        Returns:
            SyncStatusReport, or None if the playlist was never synced.
        """
        return self._ledger.get_status(playlist_id, platform or self.platform, log_limit)

    def _run(
        self,
        playlist: Playlist,
        sync: PlaylistSync,
        options: SyncOptions,
        stats: SyncStats,
        log: RunLogger,
    ) -> SyncResult:
        try:
            remote = self._provisioner.provision(
                playlist,
                sync,
                create_if_not_exists=options.create_if_not_exists,
            )
        except Exception as e:
            log.warning("Could not provision remote playlist: %s", e)
            stats.errors = stats.total
            return self._finish(sync, SyncStatus.FAILED, stats, str(e), log)

        if options.update_existing:
            self._clear_remote(sync, remote, log)

        entries: list[WriteEntry] = []
        policy = options.conflict_policy
        for song in playlist.songs:
            resolution = self._resolver.resolve(sync.id, song, policy)
            log.debug("%s - %s: %s", song.artist, song.title, resolution.outcome.value)

            if resolution.counts_success:
                entries.append(WriteEntry(song_id=song.id, uri=resolution.uri))
                stats.success += 1
            if resolution.counts_conflict:
                stats.conflicts += 1
            if resolution.counts_error:
                stats.errors += 1

        if entries:
            report = self._writer.write_all(sync.id, remote, entries)
            stats.success -= report.failed_count
            stats.errors += report.failed_count

        status = determine_status(stats.success, stats.conflicts, stats.errors)
        error_message = f"{stats.errors} tracks failed to sync" if stats.errors else None
        return self._finish(sync, status, stats, error_message, log)

    def _clear_remote(self, sync: PlaylistSync, remote: RemotePlaylist, log: RunLogger) -> None:
        try:
            uris = self._retry.call(self._catalog.get_playlist_tracks, remote.id)
            if uris:
                self._retry.call(self._catalog.remove_tracks, remote.id, uris)
        except Exception as e:
            log.warning("Could not clear remote playlist %s: %s", remote.id, e)
            self._ledger.log_action(
                sync_id=sync.id,
                song_id=None,
                action=SyncAction.REMOVE_TRACK,
                status=SyncStatus.FAILED,
                error_message=str(e),
            )
            return

        for uri in uris:
            self._ledger.log_action(
                sync_id=sync.id,
                song_id=None,
                action=SyncAction.REMOVE_TRACK,
                status=SyncStatus.COMPLETED,
                remote_uri=uri,
            )
        log.debug("Removed %d tracks from %s", len(uris), remote.id)

    def _finish(
        self,
        sync: PlaylistSync,
        status: SyncStatus,
        stats: SyncStats,
        error_message: str | None,
        log: RunLogger,
    ) -> SyncResult:
        self._ledger.finish(
            sync.id,
            status,
            success_count=stats.success,
            conflict_count=stats.conflicts,
            error_count=stats.errors,
            error_message=error_message,
        )
        message = build_message(status, stats)
        log.info("Sync %s finished %s: %s", sync.id, status.value, message)
        return SyncResult(
            success=status is not SyncStatus.FAILED,
            sync_id=sync.id,
            status=status,
            message=message,
            stats=stats,
        )
