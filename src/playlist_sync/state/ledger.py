"""Sync ledger: one status row per (playlist, platform) plus an append-only audit log."""

import uuid
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from playlist_sync.errors import SyncAlreadyInProgress
from playlist_sync.state.db import SQLiteStore, parse_timestamp
from playlist_sync.state.library import Platform


class SyncStatus(str, Enum):
    """Lifecycle status of a sync run (also used for log entries)."""

    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    PARTIAL = "PARTIAL"
    FAILED = "FAILED"


class SyncAction(str, Enum):
    """Action recorded by a sync log entry."""

    SEARCH_TRACK = "search_track"
    ADD_TRACK = "add_track"
    REMOVE_TRACK = "remove_track"


@dataclass
class PlaylistSync:
    """Ledger row for one (playlist, platform) pair.

    Args:
        id: Ledger row ID (the sync ID).
        playlist_id: Local playlist ID.
        platform: Remote platform.
        status: Status of the latest run.
        external_id: Remote playlist ID once provisioned.
        total_count: Songs in the playlist when the latest run started.
        success_count: Tracks written successfully.
        conflict_count: Songs not found or ambiguously matched.
        error_count: Songs or tracks that failed outright.
        last_sync_at: When the latest run finished.
        error_message: Summary of the latest run's failures.
        created_at: When the pair was first synced.
        updated_at: Last write to this row.
        run_log_id: Highest log ID written before the latest run started.
    """

    id: str
    playlist_id: str
    platform: str
    status: SyncStatus
    external_id: str | None
    total_count: int
    success_count: int
    conflict_count: int
    error_count: int
    last_sync_at: datetime | None
    error_message: str | None
    created_at: datetime | None
    updated_at: datetime | None
    run_log_id: int = 0


@dataclass
class SyncLog:
    """Append-only audit entry for one resolution or write attempt.

    Args:
        id: Database row ID.
        sync_id: Ledger row the entry belongs to.
        song_id: Local song ID (None for removals of remote-only tracks).
        action: What was attempted.
        status: Outcome.
        error_message: Failure or conflict description.
        remote_uri: Remote track URI involved, if any.
        created_at: When the entry was written.
    """

    id: int
    sync_id: str
    song_id: str | None
    action: SyncAction
    status: SyncStatus
    error_message: str | None
    remote_uri: str | None
    created_at: datetime | None


@dataclass
class SyncStatusReport:
    """A ledger row together with its most recent log entries."""

    sync: PlaylistSync
    recent_logs: list[SyncLog]


class SyncLedger(SQLiteStore):
    """SQLite-backed sync ledger.

    There is at most one PlaylistSync row per (playlist, platform); log rows
    are only ever inserted.
    """

    SCHEMA = """
        CREATE TABLE IF NOT EXISTS playlist_syncs (
            id TEXT PRIMARY KEY,
            playlist_id TEXT NOT NULL,
            platform TEXT NOT NULL,
            status TEXT NOT NULL DEFAULT 'PENDING',
            external_id TEXT,
            total_count INTEGER NOT NULL DEFAULT 0,
            success_count INTEGER NOT NULL DEFAULT 0,
            conflict_count INTEGER NOT NULL DEFAULT 0,
            error_count INTEGER NOT NULL DEFAULT 0,
            last_sync_at TIMESTAMP,
            error_message TEXT,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            run_log_id INTEGER NOT NULL DEFAULT 0,
            UNIQUE(playlist_id, platform)
        );

        CREATE TABLE IF NOT EXISTS sync_logs (
            id INTEGER PRIMARY KEY,
            sync_id TEXT NOT NULL REFERENCES playlist_syncs(id),
            song_id TEXT,
            action TEXT NOT NULL,
            status TEXT NOT NULL,
            error_message TEXT,
            remote_uri TEXT,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        );

        CREATE INDEX IF NOT EXISTS idx_sync_logs_sync
            ON sync_logs(sync_id);
        CREATE INDEX IF NOT EXISTS idx_sync_logs_song
            ON sync_logs(song_id);
        CREATE INDEX IF NOT EXISTS idx_playlist_syncs_status
            ON playlist_syncs(status);
    """

    def claim(
        self,
        playlist_id: str,
        platform: Platform,
        total_count: int,
        stale_after_minutes: int = 30,
    ) -> PlaylistSync:
        """Get-or-create the pair's row and mark it IN_PROGRESS.

        Counters are reset and the previous error cleared. The transition is
        a single conditional update, so two concurrent claims cannot both
        succeed. An IN_PROGRESS row untouched for ``stale_after_minutes`` is
        treated as abandoned and may be claimed again.

        Args:
            playlist_id: Local playlist ID.
            platform: Remote platform.
            total_count: Number of songs the run will process.
            stale_after_minutes: Age at which an IN_PROGRESS row is reclaimable.

        Returns:
            The claimed row.

        Raises:
            SyncAlreadyInProgress: If a live run holds the pair.
        """
        with self._get_connection() as conn:
            conn.execute(
                """
                INSERT OR IGNORE INTO playlist_syncs (id, playlist_id, platform, status, total_count)
                VALUES (?, ?, ?, ?, ?)
                """,
                (uuid.uuid4().hex, playlist_id, platform, SyncStatus.PENDING.value, total_count),
            )
            cursor = conn.execute(
                """
                UPDATE playlist_syncs
                SET status = ?,
                    total_count = ?,
                    success_count = 0,
                    conflict_count = 0,
                    error_count = 0,
                    error_message = NULL,
                    run_log_id = (SELECT COALESCE(MAX(id), 0) FROM sync_logs),
                    updated_at = CURRENT_TIMESTAMP
                WHERE playlist_id = ? AND platform = ?
                AND (status != ? OR updated_at <= datetime('now', ?))
                """,
                (
                    SyncStatus.IN_PROGRESS.value,
                    total_count,
                    playlist_id,
                    platform,
                    SyncStatus.IN_PROGRESS.value,
                    f"-{stale_after_minutes} minutes",
                ),
            )
            if cursor.rowcount == 0:
                raise SyncAlreadyInProgress(playlist_id, platform)

            row = conn.execute(
                "SELECT * FROM playlist_syncs WHERE playlist_id = ? AND platform = ?",
                (playlist_id, platform),
            ).fetchone()
            return self._row_to_sync(row)

    def get_sync(self, playlist_id: str, platform: Platform) -> PlaylistSync | None:
        """Get the ledger row for a (playlist, platform) pair.

        Args:
            playlist_id: Local playlist ID.
            platform: Remote platform.

        Returns:
            PlaylistSync if the pair was ever synced, None otherwise.
        """
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT * FROM playlist_syncs WHERE playlist_id = ? AND platform = ?",
                (playlist_id, platform),
            ).fetchone()
            return self._row_to_sync(row) if row else None

    def get_sync_by_id(self, sync_id: str) -> PlaylistSync | None:
        """Get a ledger row by its ID."""
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT * FROM playlist_syncs WHERE id = ?",
                (sync_id,),
            ).fetchone()
            return self._row_to_sync(row) if row else None

    def set_external_id(self, sync_id: str, external_id: str) -> None:
        """Persist the remote playlist ID for a ledger row.

        Args:
            sync_id: Ledger row ID.
            external_id: Remote playlist ID.
        """
        with self._get_connection() as conn:
            conn.execute(
                """
                UPDATE playlist_syncs
                SET external_id = ?, updated_at = CURRENT_TIMESTAMP
                WHERE id = ?
                """,
                (external_id, sync_id),
            )

    def finish(
        self,
        sync_id: str,
        status: SyncStatus,
        success_count: int,
        conflict_count: int,
        error_count: int,
        error_message: str | None = None,
    ) -> None:
        """Record a run's terminal status and counters.

        Args:
            sync_id: Ledger row ID.
            status: Terminal status.
            success_count: Tracks written successfully.
            conflict_count: Songs not found or ambiguously matched.
            error_count: Songs or tracks that failed outright.
            error_message: Failure summary, or None to clear it.
        """
        with self._get_connection() as conn:
            conn.execute(
                """
                UPDATE playlist_syncs
                SET status = ?,
                    success_count = ?,
                    conflict_count = ?,
                    error_count = ?,
                    error_message = ?,
                    last_sync_at = CURRENT_TIMESTAMP,
                    updated_at = CURRENT_TIMESTAMP
                WHERE id = ?
                """,
                (
                    status.value,
                    success_count,
                    conflict_count,
                    error_count,
                    error_message,
                    sync_id,
                ),
            )

    def fail(self, sync_id: str, error_message: str) -> None:
        """Mark a run FAILED without touching its counters.

        Args:
            sync_id: Ledger row ID.
            error_message: What went wrong.
        """
        with self._get_connection() as conn:
            conn.execute(
                """
                UPDATE playlist_syncs
                SET status = ?, error_message = ?,
                    last_sync_at = CURRENT_TIMESTAMP, updated_at = CURRENT_TIMESTAMP
                WHERE id = ?
                """,
                (SyncStatus.FAILED.value, error_message, sync_id),
            )

    def log_action(
        self,
        sync_id: str,
        song_id: str | None,
        action: SyncAction,
        status: SyncStatus,
        error_message: str | None = None,
        remote_uri: str | None = None,
    ) -> None:
        """Append an audit entry.

        Args:
            sync_id: Ledger row ID.
            song_id: Local song ID, if the entry concerns one.
            action: What was attempted.
            status: Outcome.
            error_message: Failure or conflict description.
            remote_uri: Remote track URI involved, if any.
        """
        with self._get_connection() as conn:
            conn.execute(
                """
                INSERT INTO sync_logs
                (sync_id, song_id, action, status, error_message, remote_uri)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (sync_id, song_id, action.value, status.value, error_message, remote_uri),
            )

    def get_logs(
        self,
        sync_id: str,
        limit: int | None = 10,
        action: SyncAction | None = None,
        statuses: list[SyncStatus] | None = None,
        after_id: int | None = None,
    ) -> list[SyncLog]:
        """Get log entries for a ledger row, newest first.

        Args:
            sync_id: Ledger row ID.
            limit: Maximum entries to return; None for all.
            action: Optional filter by action.
            statuses: Optional filter by entry status.
            after_id: Only entries with a higher log ID, e.g. a row's
                ``run_log_id`` to get the latest run's entries.

        Returns:
            List of SyncLog objects.
        """
        query = "SELECT * FROM sync_logs WHERE sync_id = ?"
        params: list = [sync_id]

        if action:
            query += " AND action = ?"
            params.append(action.value)
        if statuses:
            query += f" AND status IN ({', '.join('?' for _ in statuses)})"
            params.extend(s.value for s in statuses)
        if after_id is not None:
            query += " AND id > ?"
            params.append(after_id)

        query += " ORDER BY id DESC"
        if limit is not None:
            query += " LIMIT ?"
            params.append(limit)

        with self._get_connection() as conn:
            rows = conn.execute(query, params).fetchall()

            return [
                SyncLog(
                    id=row["id"],
                    sync_id=row["sync_id"],
                    song_id=row["song_id"],
                    action=SyncAction(row["action"]),
                    status=SyncStatus(row["status"]),
                    error_message=row["error_message"],
                    remote_uri=row["remote_uri"],
                    created_at=parse_timestamp(row["created_at"]),
                )
                for row in rows
            ]

    def get_status(
        self,
        playlist_id: str,
        platform: Platform,
        log_limit: int = 10,
    ) -> SyncStatusReport | None:
        """Read a pair's ledger row with its most recent log entries.

        Read-only: a pair that was never synced yields None and nothing is
        written.

        Args:
            playlist_id: Local playlist ID.
            platform: Remote platform.
            log_limit: Maximum log entries to include.

        Returns:
            SyncStatusReport, or None if the pair was never synced.
        """
        sync = self.get_sync(playlist_id, platform)
        if sync is None:
            return None
        return SyncStatusReport(sync=sync, recent_logs=self.get_logs(sync.id, limit=log_limit))

    def _row_to_sync(self, row) -> PlaylistSync:
        return PlaylistSync(
            id=row["id"],
            playlist_id=row["playlist_id"],
            platform=row["platform"],
            status=SyncStatus(row["status"]),
            external_id=row["external_id"],
            total_count=row["total_count"],
            success_count=row["success_count"],
            conflict_count=row["conflict_count"],
            error_count=row["error_count"],
            last_sync_at=parse_timestamp(row["last_sync_at"]),
            error_message=row["error_message"],
            created_at=parse_timestamp(row["created_at"]),
            updated_at=parse_timestamp(row["updated_at"]),
            run_log_id=row["run_log_id"],
        )
