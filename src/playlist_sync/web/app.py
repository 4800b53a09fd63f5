"""FastAPI application exposing playlist sync over HTTP."""

from datetime import datetime

from fastapi import Depends, FastAPI, Header, HTTPException
from pydantic import BaseModel, ConfigDict, Field

from playlist_sync.clients.base import RemoteCatalog
from playlist_sync.clients.soundcloud import SoundCloudCatalog
from playlist_sync.clients.spotify import SpotifyCatalog
from playlist_sync.config import Settings, get_settings
from playlist_sync.errors import BatchSizeExceeded, PlaylistNotFound, SyncAlreadyInProgress
from playlist_sync.logging import get_logger
from playlist_sync.state.ledger import SyncLedger, SyncLog, SyncStatusReport
from playlist_sync.state.library import PLATFORMS, LibraryStore
from playlist_sync.sync.batch import BatchCoordinator, BatchResult
from playlist_sync.sync.engine import SyncEngine, SyncOptions, SyncResult

logger = get_logger("web")

CATALOG_FACTORIES = {
    "spotify": SpotifyCatalog,
    "soundcloud": SoundCloudCatalog,
}


class SyncRequest(BaseModel):
    """Options accepted by the single-playlist sync endpoint."""

    model_config = ConfigDict(populate_by_name=True)

    create_if_not_exists: bool = Field(default=True, alias="createIfNotExists")
    update_existing: bool = Field(default=True, alias="updateExisting")
    handle_conflicts: bool = Field(default=True, alias="handleConflicts")

    def to_options(self) -> SyncOptions:
        return SyncOptions(
            create_if_not_exists=self.create_if_not_exists,
            update_existing=self.update_existing,
            handle_conflicts=self.handle_conflicts,
        )


class BatchSyncRequest(SyncRequest):
    """Body of the batch sync endpoint."""

    playlist_ids: list[str] = Field(default_factory=list, alias="playlistIds")


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def serialize_sync_result(result: SyncResult) -> dict:
    return {
        "success": result.success,
        "syncId": result.sync_id,
        "status": result.status.value,
        "message": result.message,
        "stats": {
            "total": result.stats.total,
            "success": result.stats.success,
            "conflicts": result.stats.conflicts,
            "errors": result.stats.errors,
        },
    }


def serialize_batch_result(result: BatchResult) -> dict:
    return {
        "success": result.success,
        "results": [
            {
                "playlistId": entry.playlist_id,
                "playlistName": entry.playlist_name,
                "result": serialize_sync_result(entry.result),
            }
            for entry in result.results
        ],
        "totalPlaylists": result.total_playlists,
        "successfulSyncs": result.successful_syncs,
        "failedSyncs": result.failed_syncs,
    }


def serialize_log(log: SyncLog) -> dict:
    return {
        "id": log.id,
        "songId": log.song_id,
        "action": log.action.value,
        "status": log.status.value,
        "errorMessage": log.error_message,
        "remoteUri": log.remote_uri,
        "createdAt": _iso(log.created_at),
    }


def serialize_status(report: SyncStatusReport) -> dict:
    sync = report.sync
    return {
        "id": sync.id,
        "playlistId": sync.playlist_id,
        "platform": sync.platform,
        "externalId": sync.external_id,
        "status": sync.status.value,
        "lastSyncAt": _iso(sync.last_sync_at),
        "errorMessage": sync.error_message,
        "stats": {
            "total": sync.total_count,
            "success": sync.success_count,
            "conflicts": sync.conflict_count,
            "errors": sync.error_count,
        },
        "recentLogs": [serialize_log(log) for log in report.recent_logs],
    }


def create_app(
    settings: Settings | None = None,
    catalogs: dict[str, RemoteCatalog] | None = None,
    library: LibraryStore | None = None,
    ledger: SyncLedger | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Application settings; loaded from the environment if omitted.
        catalogs: Remote catalog per platform. When omitted, catalogs are
            built from settings on first use.
        library: Local library store.
        ledger: Sync ledger.

    Returns:
        Configured FastAPI app instance.
    """
    settings = settings or get_settings()
    if library is None or ledger is None:
        settings.ensure_directories()
    library = library or LibraryStore(settings.db_path)
    ledger = ledger or SyncLedger(settings.db_path)
    catalog_cache: dict[str, RemoteCatalog] = dict(catalogs or {})
    build_catalogs = catalogs is None

    app = FastAPI(
        title="Playlist Sync",
        description="Synchronize local playlists to remote music platforms",
    )

    def get_owner(authorization: str | None = Header(default=None)) -> str:
        """Resolve the caller from a bearer token."""
        if not authorization or not authorization.startswith("Bearer "):
            raise HTTPException(status_code=401, detail="Unauthorized")
        owner_id = settings.api_tokens.get(authorization.removeprefix("Bearer ").strip())
        if owner_id is None:
            raise HTTPException(status_code=401, detail="Unauthorized")
        return owner_id

    def get_engine(platform: str) -> SyncEngine:
        if platform not in PLATFORMS:
            raise HTTPException(status_code=404, detail=f"Unknown platform: {platform}")

        catalog = catalog_cache.get(platform)
        if catalog is None:
            if not build_catalogs:
                raise HTTPException(status_code=404, detail=f"Platform not configured: {platform}")
            catalog = CATALOG_FACTORIES[platform](settings)
            catalog_cache[platform] = catalog

        return SyncEngine(settings, catalog, library, ledger)

    @app.post("/sync/{platform}/playlist/{playlist_id}")
    def sync_playlist(
        platform: str,
        playlist_id: str,
        body: SyncRequest | None = None,
        owner_id: str = Depends(get_owner),
    ):
        """Sync one playlist to a platform."""
        engine = get_engine(platform)
        options = (body or SyncRequest()).to_options()

        try:
            result = engine.synchronize(playlist_id, owner_id, options)
        except PlaylistNotFound as e:
            raise HTTPException(status_code=404, detail=e.message)
        except SyncAlreadyInProgress as e:
            raise HTTPException(status_code=409, detail=e.message)
        except Exception:
            logger.exception("Error syncing playlist %s to %s", playlist_id, platform)
            raise HTTPException(status_code=500, detail="Internal server error")

        return serialize_sync_result(result)

    @app.get("/sync/{platform}/status/{playlist_id}", dependencies=[Depends(get_owner)])
    def sync_status(platform: str, playlist_id: str):
        """Get the sync status of a playlist on a platform."""
        if platform not in PLATFORMS:
            raise HTTPException(status_code=404, detail=f"Unknown platform: {platform}")

        report = ledger.get_status(playlist_id, platform)
        if report is None:
            return {
                "status": "not_synced",
                "message": "Playlist has not been synced yet",
            }
        return serialize_status(report)

    @app.post("/sync/{platform}/batch")
    def sync_batch(
        platform: str,
        body: BatchSyncRequest,
        owner_id: str = Depends(get_owner),
    ):
        """Sync several playlists to a platform, one after another."""
        engine = get_engine(platform)
        coordinator = BatchCoordinator(
            engine,
            library,
            max_batch_size=settings.max_batch_size,
            delay_seconds=settings.batch_delay_seconds,
        )

        try:
            result = coordinator.synchronize_many(body.playlist_ids, owner_id, body.to_options())
        except BatchSizeExceeded as e:
            raise HTTPException(status_code=400, detail=e.message)
        except Exception:
            logger.exception("Error batch syncing playlists to %s", platform)
            raise HTTPException(status_code=500, detail="Internal server error")

        return serialize_batch_result(result)

    return app
