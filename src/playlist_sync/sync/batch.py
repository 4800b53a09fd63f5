"""Sequential sync of several playlists to one platform."""

import time
from collections.abc import Callable
from dataclasses import dataclass, field

from playlist_sync.errors import BatchSizeExceeded
from playlist_sync.logging import get_logger
from playlist_sync.state.ledger import SyncStatus
from playlist_sync.state.library import LibraryStore
from playlist_sync.sync.engine import SyncEngine, SyncOptions, SyncResult, SyncStats

logger = get_logger("sync.batch")

UNKNOWN_PLAYLIST_NAME = "Unknown"


@dataclass
class BatchEntry:
    """Result for one playlist of a batch.

    Args:
        playlist_id: Local playlist ID.
        playlist_name: Playlist name, or "Unknown" if it can't be found.
        result: Sync result of this playlist.
    """

    playlist_id: str
    playlist_name: str
    result: SyncResult


@dataclass
class BatchResult:
    """Aggregate result of a batch sync.

    Args:
        success: True if at least one playlist synced.
        results: Per-playlist entries in request order.
        total_playlists: Playlists requested.
        successful_syncs: Playlists whose run did not end FAILED.
        failed_syncs: Playlists whose run ended FAILED or raised.
    """

    success: bool
    results: list[BatchEntry] = field(default_factory=list)
    total_playlists: int = 0
    successful_syncs: int = 0
    failed_syncs: int = 0


class BatchCoordinator:
    """Runs a sync engine over a list of playlists, one after another.

    A failure of one playlist never stops the batch.

    Args:
        engine: Engine for the target platform.
        library: Library used to look up playlist names.
        max_batch_size: Maximum playlists per batch.
        delay_seconds: Pause between consecutive playlists.
        sleep: Sleep function, replaceable in tests.
    """

    def __init__(
        self,
        engine: SyncEngine,
        library: LibraryStore,
        max_batch_size: int = 10,
        delay_seconds: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._engine = engine
        self._library = library
        self._max_batch_size = max_batch_size
        self._delay_seconds = delay_seconds
        self._sleep = sleep

    def synchronize_many(
        self,
        playlist_ids: list[str],
        owner_id: str,
        options: SyncOptions | None = None,
    ) -> BatchResult:
        """Sync each playlist in order.

        Args:
            playlist_ids: Local playlist IDs.
            owner_id: Caller's user ID.
            options: Options applied to every playlist.

        Returns:
            BatchResult with one entry per requested playlist.

        Raises:
            BatchSizeExceeded: If the list is empty or longer than the
                maximum. Nothing is synced in that case.
        """
        if not playlist_ids or len(playlist_ids) > self._max_batch_size:
            raise BatchSizeExceeded(len(playlist_ids), self._max_batch_size)

        results: list[BatchEntry] = []
        for index, playlist_id in enumerate(playlist_ids):
            try:
                result = self._engine.synchronize(playlist_id, owner_id, options)
            except Exception as e:
                logger.warning("Batch sync of %s failed: %s", playlist_id, e)
                name = UNKNOWN_PLAYLIST_NAME
                result = SyncResult(
                    success=False,
                    sync_id="",
                    status=SyncStatus.FAILED,
                    message=str(e),
                    stats=SyncStats(errors=1),
                )
            else:
                name = self._playlist_name(playlist_id)

            results.append(BatchEntry(playlist_id=playlist_id, playlist_name=name, result=result))

            if index < len(playlist_ids) - 1 and self._delay_seconds > 0:
                self._sleep(self._delay_seconds)

        successful = sum(1 for entry in results if entry.result.success)
        logger.info("Batch sync finished: %d/%d playlists", successful, len(results))
        return BatchResult(
            success=successful > 0,
            results=results,
            total_playlists=len(playlist_ids),
            successful_syncs=successful,
            failed_syncs=len(results) - successful,
        )

    def _playlist_name(self, playlist_id: str) -> str:
        try:
            name = self._library.get_playlist_name(playlist_id)
        except Exception as e:
            logger.warning("Could not read name of playlist %s: %s", playlist_id, e)
            return UNKNOWN_PLAYLIST_NAME
        return name or UNKNOWN_PLAYLIST_NAME
