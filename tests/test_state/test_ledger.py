"""Tests for the sync ledger."""

import sqlite3

import pytest

from playlist_sync.errors import SyncAlreadyInProgress
from playlist_sync.state.ledger import SyncAction, SyncStatus


class TestSyncEnums:
    """Tests for ledger enums."""

    @pytest.mark.parametrize(
        "action,expected_value",
        [
            (SyncAction.SEARCH_TRACK, "search_track"),
            (SyncAction.ADD_TRACK, "add_track"),
            (SyncAction.REMOVE_TRACK, "remove_track"),
        ],
    )
    def test_action_values(self, action, expected_value):
        """SyncAction should have the stored string values."""
        assert action.value == expected_value

    @pytest.mark.parametrize("status", list(SyncStatus))
    def test_status_values_are_names(self, status):
        """SyncStatus values should equal their names."""
        assert status.value == status.name


class TestClaim:
    """Tests for claiming a ledger row."""

    def test_first_claim_creates_row(self, ledger):
        """The first claim should create an IN_PROGRESS row."""
        sync = ledger.claim("pl-1", "spotify", total_count=4)

        assert sync.status == SyncStatus.IN_PROGRESS
        assert sync.total_count == 4
        assert (sync.success_count, sync.conflict_count, sync.error_count) == (0, 0, 0)
        assert sync.external_id is None

    def test_live_claim_is_rejected(self, ledger):
        """A second claim while the first is live should raise."""
        ledger.claim("pl-1", "spotify", total_count=1)

        with pytest.raises(SyncAlreadyInProgress):
            ledger.claim("pl-1", "spotify", total_count=1)

    def test_platforms_claim_independently(self, ledger):
        """The same playlist can be claimed on two platforms."""
        spotify = ledger.claim("pl-1", "spotify", total_count=1)
        soundcloud = ledger.claim("pl-1", "soundcloud", total_count=1)
        assert spotify.id != soundcloud.id

    def test_reclaim_after_finish_resets_counters(self, ledger):
        """A finished row should be reclaimable with fresh counters."""
        sync = ledger.claim("pl-1", "spotify", total_count=3)
        ledger.set_external_id(sync.id, "remote-1")
        ledger.finish(sync.id, SyncStatus.PARTIAL, 2, 1, 0, error_message="old")

        again = ledger.claim("pl-1", "spotify", total_count=5)

        assert again.id == sync.id
        assert again.status == SyncStatus.IN_PROGRESS
        assert again.total_count == 5
        assert (again.success_count, again.conflict_count, again.error_count) == (0, 0, 0)
        assert again.error_message is None
        assert again.external_id == "remote-1"

    def test_stale_claim_can_be_taken_over(self, ledger, settings):
        """An IN_PROGRESS row untouched for too long should be reclaimable."""
        sync = ledger.claim("pl-1", "spotify", total_count=1)
        with sqlite3.connect(settings.db_path) as conn:
            conn.execute(
                "UPDATE playlist_syncs SET updated_at = datetime('now', '-2 hours') WHERE id = ?",
                (sync.id,),
            )

        again = ledger.claim("pl-1", "spotify", total_count=1, stale_after_minutes=30)
        assert again.id == sync.id
        assert again.status == SyncStatus.IN_PROGRESS


class TestFinish:
    """Tests for recording terminal state."""

    def test_finish_records_counts(self, ledger):
        """finish should store status, counts and last_sync_at."""
        sync = ledger.claim("pl-1", "spotify", total_count=3)
        ledger.finish(sync.id, SyncStatus.PARTIAL, 2, 1, 0)

        row = ledger.get_sync("pl-1", "spotify")
        assert row.status == SyncStatus.PARTIAL
        assert (row.success_count, row.conflict_count, row.error_count) == (2, 1, 0)
        assert row.last_sync_at is not None

    def test_fail_keeps_counters(self, ledger):
        """fail should set FAILED and the message only."""
        sync = ledger.claim("pl-1", "spotify", total_count=3)
        ledger.fail(sync.id, "boom")

        row = ledger.get_sync_by_id(sync.id)
        assert row.status == SyncStatus.FAILED
        assert row.error_message == "boom"
        assert row.total_count == 3


class TestLogs:
    """Tests for the audit log."""

    def test_logs_newest_first_with_limit(self, ledger):
        """get_logs should return the newest entries first."""
        sync = ledger.claim("pl-1", "spotify", total_count=12)
        for i in range(12):
            ledger.log_action(
                sync.id,
                f"song-{i}",
                SyncAction.SEARCH_TRACK,
                SyncStatus.COMPLETED,
                remote_uri=f"spotify:track:{i}",
            )

        logs = ledger.get_logs(sync.id)

        assert len(logs) == 10
        assert logs[0].song_id == "song-11"
        assert logs[-1].song_id == "song-2"

    def test_log_filters(self, ledger):
        """Action and status filters should narrow the results."""
        sync = ledger.claim("pl-1", "spotify", total_count=3)
        ledger.log_action(sync.id, "a", SyncAction.SEARCH_TRACK, SyncStatus.FAILED, "Track not found on spotify")
        ledger.log_action(sync.id, "b", SyncAction.SEARCH_TRACK, SyncStatus.COMPLETED)
        ledger.log_action(sync.id, "c", SyncAction.ADD_TRACK, SyncStatus.FAILED, "batch")

        logs = ledger.get_logs(
            sync.id,
            limit=None,
            action=SyncAction.SEARCH_TRACK,
            statuses=[SyncStatus.FAILED],
        )

        assert [log.song_id for log in logs] == ["a"]
        assert logs[0].error_message == "Track not found on spotify"

    def test_log_requires_existing_sync(self, ledger):
        """Log entries must reference an existing ledger row."""
        with pytest.raises(sqlite3.IntegrityError):
            ledger.log_action("missing", "a", SyncAction.ADD_TRACK, SyncStatus.COMPLETED)

    def test_after_id_limits_to_latest_run(self, ledger):
        """Filtering by run_log_id should drop entries of earlier runs."""
        sync = ledger.claim("pl-1", "spotify", total_count=1)
        ledger.log_action(sync.id, "old", SyncAction.SEARCH_TRACK, SyncStatus.FAILED)
        ledger.finish(sync.id, SyncStatus.FAILED, 0, 1, 0)

        sync = ledger.claim("pl-1", "spotify", total_count=1)
        ledger.log_action(sync.id, "new", SyncAction.SEARCH_TRACK, SyncStatus.FAILED)

        assert sync.run_log_id > 0
        logs = ledger.get_logs(sync.id, limit=None, after_id=sync.run_log_id)
        assert [log.song_id for log in logs] == ["new"]
        assert len(ledger.get_logs(sync.id, limit=None)) == 2


class TestGetStatus:
    """Tests for status reads."""

    def test_never_synced_returns_none_without_writes(self, ledger, settings):
        """Reading status of an unknown pair should not create a row."""
        assert ledger.get_status("pl-1", "spotify") is None

        with sqlite3.connect(settings.db_path) as conn:
            count = conn.execute("SELECT COUNT(*) FROM playlist_syncs").fetchone()[0]
        assert count == 0

    def test_status_includes_recent_logs(self, ledger):
        """A synced pair should report its row and logs."""
        sync = ledger.claim("pl-1", "spotify", total_count=1)
        ledger.log_action(sync.id, "a", SyncAction.ADD_TRACK, SyncStatus.COMPLETED)

        report = ledger.get_status("pl-1", "spotify", log_limit=5)

        assert report.sync.id == sync.id
        assert len(report.recent_logs) == 1
