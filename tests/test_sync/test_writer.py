"""Tests for the batch track writer."""

import pytest

from playlist_sync.state.ledger import SyncAction, SyncStatus
from playlist_sync.sync.writer import BatchTrackWriter, WriteEntry, chunked


def _entries(count: int) -> list[WriteEntry]:
    return [WriteEntry(song_id=f"song-{i}", uri=f"spotify:track:{i}") for i in range(count)]


@pytest.fixture
def run(catalog, ledger, library):
    """A claimed run and a remote playlist to write into."""
    playlist_id = library.create_playlist("owner-1", "Mix")
    sync = ledger.claim(playlist_id, "spotify", total_count=0)
    remote = catalog.add_remote_playlist("remote-x")
    return sync, remote


class TestChunked:
    """Tests for chunking."""

    @pytest.mark.parametrize(
        "count,size,expected",
        [(0, 100, []), (100, 100, [100]), (101, 100, [100, 1]), (250, 100, [100, 100, 50]), (5, 2, [2, 2, 1])],
    )
    def test_chunk_sizes(self, count, size, expected):
        """Chunks should be at most ``size`` long and keep everything."""
        assert [len(c) for c in chunked(_entries(count), size)] == expected


class TestBatchTrackWriter:
    """Tests for BatchTrackWriter.write_all."""

    @pytest.mark.parametrize("chunk_size", [0, 101])
    def test_invalid_chunk_size(self, catalog, ledger, chunk_size):
        """Chunk sizes outside 1..100 should be rejected."""
        with pytest.raises(ValueError):
            BatchTrackWriter(catalog, ledger, chunk_size=chunk_size)

    def test_writes_in_order(self, catalog, ledger, run):
        """250 tracks should go out as 100/100/50 in order."""
        sync, remote = run
        entries = _entries(250)

        report = BatchTrackWriter(catalog, ledger).write_all(sync.id, remote, entries)

        assert report.written == 250
        assert report.failed_count == 0
        sizes = [len(call[2]) for call in catalog.calls if call[0] == "add_tracks"]
        assert sizes == [100, 100, 50]
        assert catalog.tracks["remote-x"] == [e.uri for e in entries]

    def test_failed_chunk_counted_coarsely(self, catalog, ledger, run):
        """One bad track should fail its whole chunk by default."""
        sync, remote = run
        catalog.failing_uris.add("spotify:track:150")

        report = BatchTrackWriter(catalog, ledger).write_all(sync.id, remote, _entries(250))

        assert report.written == 150
        assert report.failed_count == 100
        assert len(report.failures) == 1
        assert str(report.failures[0]).startswith("Failed to add batch 2 (100 tracks)")
        failed_logs = ledger.get_logs(
            sync.id, limit=None, action=SyncAction.ADD_TRACK, statuses=[SyncStatus.FAILED]
        )
        assert len(failed_logs) == 100

    def test_per_track_fallback(self, catalog, ledger, run):
        """With fallback enabled only the bad track should fail."""
        sync, remote = run
        catalog.failing_uris.add("spotify:track:3")

        writer = BatchTrackWriter(catalog, ledger, chunk_size=5, per_track_fallback=True)
        report = writer.write_all(sync.id, remote, _entries(10))

        assert report.written == 9
        assert report.failed_count == 1
        assert "spotify:track:3" not in catalog.tracks["remote-x"]
        assert catalog.tracks["remote-x"][:4] == [
            "spotify:track:0",
            "spotify:track:1",
            "spotify:track:2",
            "spotify:track:4",
        ]

    def test_every_entry_logged(self, catalog, ledger, run):
        """Each written track should get an add_track COMPLETED entry."""
        sync, remote = run

        BatchTrackWriter(catalog, ledger).write_all(sync.id, remote, _entries(3))

        logs = ledger.get_logs(sync.id, limit=None, action=SyncAction.ADD_TRACK)
        assert {log.status for log in logs} == {SyncStatus.COMPLETED}
        assert sorted(log.remote_uri for log in logs) == [
            "spotify:track:0",
            "spotify:track:1",
            "spotify:track:2",
        ]
