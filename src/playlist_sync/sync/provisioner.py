"""Ensure a remote playlist exists for a local playlist."""

from playlist_sync.clients.base import RemoteCatalog, RemotePlaylist
from playlist_sync.clients.http import RetryPolicy
from playlist_sync.errors import RemotePlaylistUnavailable
from playlist_sync.logging import get_logger
from playlist_sync.state.ledger import PlaylistSync, SyncLedger
from playlist_sync.state.library import Playlist

logger = get_logger("sync.provisioner")

DEFAULT_DESCRIPTION = "Synced from playlist-sync"


class RemotePlaylistProvisioner:
    """Finds or creates the remote mirror of a local playlist.

    Args:
        catalog: Remote catalog.
        ledger: Sync ledger; newly created playlist IDs are stored on it.
        retry_policy: Retry wrapper for remote calls.
    """

    def __init__(
        self,
        catalog: RemoteCatalog,
        ledger: SyncLedger,
        retry_policy: RetryPolicy | None = None,
    ) -> None:
        self._catalog = catalog
        self._ledger = ledger
        self._retry = retry_policy or RetryPolicy()

    def provision(
        self,
        playlist: Playlist,
        sync: PlaylistSync,
        create_if_not_exists: bool = True,
    ) -> RemotePlaylist:
        """Return the remote playlist for ``playlist``, creating it if allowed.

        An existing external ID is tried first. If the remote playlist is
        gone or can't be fetched, a new one is created when
        ``create_if_not_exists`` is set.

        Args:
            playlist: Local playlist.
            sync: Ledger row holding the known external ID.
            create_if_not_exists: Whether a missing remote playlist may be created.

        Returns:
            Handle to the remote playlist.

        Raises:
            RemotePlaylistUnavailable: If there is no usable remote playlist
                and creation is disabled.
            RemoteCatalogError: If creating the playlist fails.
        """
        if sync.external_id:
            try:
                remote = self._retry.call(self._catalog.get_playlist, sync.external_id)
            except Exception as e:
                logger.warning(
                    "Could not fetch remote playlist %s for %s: %s",
                    sync.external_id,
                    playlist.id,
                    e,
                )
                remote = None

            if remote is not None:
                return remote

            logger.info("Remote playlist %s is gone for %s", sync.external_id, playlist.id)

        if not create_if_not_exists:
            raise RemotePlaylistUnavailable(
                f"No {self._catalog.platform} playlist available and creation is disabled",
                details={"playlist_id": playlist.id, "external_id": sync.external_id},
            )

        owner = self._retry.call(self._catalog.get_current_account)
        remote = self._retry.call(
            self._catalog.create_playlist,
            owner,
            playlist.name,
            playlist.description or DEFAULT_DESCRIPTION,
            playlist.is_public,
        )
        self._ledger.set_external_id(sync.id, remote.id)
        sync.external_id = remote.id
        logger.info("Provisioned %s playlist %s for %s", self._catalog.platform, remote.id, playlist.id)
        return remote
