"""Resolve local songs to remote track URIs."""

from dataclasses import dataclass
from enum import Enum

from playlist_sync.clients.base import RemoteCatalog
from playlist_sync.clients.http import RetryPolicy
from playlist_sync.errors import AmbiguousMatch, PlaylistSyncError, TrackNotFound
from playlist_sync.logging import get_logger
from playlist_sync.state.ledger import SyncAction, SyncLedger, SyncStatus
from playlist_sync.state.library import LibraryStore, Song

logger = get_logger("sync.resolver")


class MatchOutcome(Enum):
    """How a song was resolved."""

    CACHED = "cached"
    MATCHED = "matched"
    AMBIGUOUS = "ambiguous"
    NOT_FOUND = "not_found"
    SKIPPED = "skipped"
    ERROR = "error"


class ConflictPolicy(Enum):
    """What to do when a search returns several candidates.

    AUTO_RESOLVE takes the first candidate and flags the song as a conflict.
    FLAG_AND_SKIP flags the song and leaves it out of the remote playlist.
    """

    AUTO_RESOLVE = "auto_resolve"
    FLAG_AND_SKIP = "flag_and_skip"


@dataclass
class Resolution:
    """Result of resolving one song.

    Args:
        song_id: Local song ID.
        outcome: How the song was resolved.
        uri: Remote track URI to write, if any.
        conflict: TrackNotFound or AmbiguousMatch describing a conflict.
        error: Message of the failure for ERROR outcomes.
    """

    song_id: str
    outcome: MatchOutcome
    uri: str | None = None
    conflict: PlaylistSyncError | None = None
    error: str | None = None

    @property
    def counts_success(self) -> bool:
        return self.uri is not None

    @property
    def counts_conflict(self) -> bool:
        return self.outcome in (MatchOutcome.NOT_FOUND, MatchOutcome.AMBIGUOUS, MatchOutcome.SKIPPED)

    @property
    def counts_error(self) -> bool:
        return self.outcome is MatchOutcome.ERROR


class TrackResolver:
    """Finds the remote track for each local song.

    A song that already has a remote ID for the platform is used as-is.
    Otherwise the catalog is searched by exact title and artist; a single
    candidate is a match, several candidates are an ambiguous match handled
    per ConflictPolicy, and none is a conflict. Resolved IDs are written to
    the shared remote ID table. Every outcome is logged to the ledger.

    Args:
        catalog: Remote catalog to search.
        library: Store holding the shared remote ID table.
        ledger: Sync ledger for audit entries.
        retry_policy: Retry wrapper for the search call.
        search_limit: Candidates requested per search.
    """

    def __init__(
        self,
        catalog: RemoteCatalog,
        library: LibraryStore,
        ledger: SyncLedger,
        retry_policy: RetryPolicy | None = None,
        search_limit: int = 5,
    ) -> None:
        self._catalog = catalog
        self._library = library
        self._ledger = ledger
        self._retry = retry_policy or RetryPolicy()
        self._search_limit = search_limit

    @property
    def platform(self) -> str:
        return self._catalog.platform

    def resolve(
        self,
        sync_id: str,
        song: Song,
        policy: ConflictPolicy = ConflictPolicy.AUTO_RESOLVE,
    ) -> Resolution:
        """Resolve one song to a remote track URI.

        Search failures are absorbed into an ERROR resolution rather than
        raised.

        Args:
            sync_id: Ledger row of the current run.
            song: Song to resolve.
            policy: Handling of ambiguous matches.

        Returns:
            Resolution describing the outcome.
        """
        cached_id = song.external_id(self.platform)
        if cached_id:
            uri = self._catalog.track_uri(cached_id)
            self._log(sync_id, song.id, SyncStatus.COMPLETED, remote_uri=uri)
            return Resolution(song_id=song.id, outcome=MatchOutcome.CACHED, uri=uri)

        try:
            candidates = self._retry.call(
                self._catalog.search_track,
                song.title,
                song.artist,
                limit=self._search_limit,
            )
        except Exception as e:
            logger.warning("Search failed for %s - %s: %s", song.artist, song.title, e)
            self._log(sync_id, song.id, SyncStatus.FAILED, error_message=str(e))
            return Resolution(song_id=song.id, outcome=MatchOutcome.ERROR, error=str(e))

        if not candidates:
            conflict = TrackNotFound(song.title, song.artist, self.platform)
            self._log(sync_id, song.id, SyncStatus.FAILED, error_message=str(conflict))
            return Resolution(song_id=song.id, outcome=MatchOutcome.NOT_FOUND, conflict=conflict)

        if len(candidates) > 1 and policy is ConflictPolicy.FLAG_AND_SKIP:
            conflict = AmbiguousMatch(song.title, song.artist, len(candidates), resolved=False)
            self._log(sync_id, song.id, SyncStatus.FAILED, error_message=str(conflict))
            return Resolution(song_id=song.id, outcome=MatchOutcome.SKIPPED, conflict=conflict)

        chosen = candidates[0]
        self._library.upsert_external_id(song.id, self.platform, chosen.id)

        if len(candidates) == 1:
            self._log(sync_id, song.id, SyncStatus.COMPLETED, remote_uri=chosen.uri)
            return Resolution(song_id=song.id, outcome=MatchOutcome.MATCHED, uri=chosen.uri)

        conflict = AmbiguousMatch(song.title, song.artist, len(candidates), resolved=True)
        logger.debug(
            "%d candidates for %s - %s, using %s",
            len(candidates),
            song.artist,
            song.title,
            chosen.full_title,
        )
        self._log(
            sync_id,
            song.id,
            SyncStatus.PARTIAL,
            error_message=str(conflict),
            remote_uri=chosen.uri,
        )
        return Resolution(
            song_id=song.id,
            outcome=MatchOutcome.AMBIGUOUS,
            uri=chosen.uri,
            conflict=conflict,
        )

    def _log(
        self,
        sync_id: str,
        song_id: str,
        status: SyncStatus,
        error_message: str | None = None,
        remote_uri: str | None = None,
    ) -> None:
        self._ledger.log_action(
            sync_id=sync_id,
            song_id=song_id,
            action=SyncAction.SEARCH_TRACK,
            status=status,
            error_message=error_message,
            remote_uri=remote_uri,
        )
