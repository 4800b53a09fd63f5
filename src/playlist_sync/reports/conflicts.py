"""Conflict report generation."""

import csv
import json
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Literal

from playlist_sync.config import Settings
from playlist_sync.state.ledger import SyncAction, SyncLedger, SyncStatus
from playlist_sync.state.library import LibraryStore, Platform

ReportFormat = Literal["csv", "json"]


@dataclass
class ConflictRow:
    """One song that needs attention after a sync run."""

    song_id: str | None
    title: str
    artist: str
    status: str
    reason: str
    remote_uri: str | None
    logged_at: datetime | None


def collect_conflicts(
    ledger: SyncLedger,
    library: LibraryStore,
    playlist_id: str,
    platform: Platform,
) -> list[ConflictRow]:
    """Gather failed and ambiguous resolutions of a playlist's latest sync run.

    Args:
        ledger: Sync ledger.
        library: Library used to name the songs.
        playlist_id: Local playlist ID.
        platform: Remote platform.

    Returns:
        Conflict rows, newest first. Empty if the playlist was never synced.
    """
    sync = ledger.get_sync(playlist_id, platform)
    if sync is None:
        return []

    logs = ledger.get_logs(
        sync.id,
        limit=None,
        action=SyncAction.SEARCH_TRACK,
        statuses=[SyncStatus.FAILED, SyncStatus.PARTIAL],
        after_id=sync.run_log_id,
    )

    rows = []
    for log in logs:
        song = library.get_song(log.song_id) if log.song_id else None
        rows.append(
            ConflictRow(
                song_id=log.song_id,
                title=song.title if song else "",
                artist=song.artist if song else "",
                status=log.status.value,
                reason=log.error_message or "",
                remote_uri=log.remote_uri,
                logged_at=log.created_at,
            )
        )
    return rows


def generate_conflict_report(
    ledger: SyncLedger,
    library: LibraryStore,
    settings: Settings,
    playlist_id: str,
    platform: Platform,
    format: ReportFormat = "csv",
    output_path: str | None = None,
) -> Path | None:
    """Write a report of the songs that conflicted when syncing a playlist.

    Args:
        ledger: Sync ledger.
        library: Local library.
        settings: Application settings.
        playlist_id: Local playlist ID.
        platform: Remote platform.
        format: Output format ('csv' or 'json').
        output_path: Optional output file path.

    Returns:
        Path to the generated report, or None if there are no conflicts.
    """
    conflicts = collect_conflicts(ledger, library, playlist_id, platform)

    if not conflicts:
        return None

    settings.reports_dir.mkdir(parents=True, exist_ok=True)

    if output_path:
        report_path = Path(output_path)
    else:
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        report_path = settings.reports_dir / f"conflicts_{platform}_{playlist_id}_{timestamp}.{format}"

    if format == "json":
        _write_json_report(conflicts, playlist_id, platform, report_path)
    else:
        _write_csv_report(conflicts, report_path)

    return report_path


def _timestamp(value: datetime | None) -> str:
    return value.isoformat() if value else ""


def _write_csv_report(conflicts: list[ConflictRow], report_path: Path) -> None:
    with open(report_path, "w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(["Artist", "Title", "Status", "Reason", "Remote URI", "Song ID", "Logged At"])

        for row in conflicts:
            writer.writerow(
                [
                    row.artist,
                    row.title,
                    row.status,
                    row.reason,
                    row.remote_uri or "",
                    row.song_id or "",
                    _timestamp(row.logged_at),
                ]
            )


def _write_json_report(
    conflicts: list[ConflictRow],
    playlist_id: str,
    platform: str,
    report_path: Path,
) -> None:
    data = {
        "generated_at": datetime.now().isoformat(),
        "playlist_id": playlist_id,
        "platform": platform,
        "total_count": len(conflicts),
        "conflicts": [
            {
                "artist": row.artist,
                "title": row.title,
                "status": row.status,
                "reason": row.reason,
                "remote_uri": row.remote_uri,
                "song_id": row.song_id,
                "logged_at": _timestamp(row.logged_at),
            }
            for row in conflicts
        ],
    }

    with open(report_path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)
