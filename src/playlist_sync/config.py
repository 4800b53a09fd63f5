"""Configuration management using Pydantic settings."""

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Args:
        spotify_client_id: Spotify application client ID.
        spotify_client_secret: Spotify application client secret.
        spotify_redirect_uri: OAuth redirect URI for Spotify authentication.
        soundcloud_access_token: Already-issued SoundCloud OAuth token.
        data_dir: Directory for the SQLite database, token caches and reports.
        log_level: Logging level for file output.
        write_batch_size: Tracks per add-tracks call.
        max_batch_size: Maximum playlists accepted by one batch sync.
        batch_delay_seconds: Pause between playlists in a batch sync.
        search_limit: Candidates requested per track search.
        retry_attempts: Attempts per remote call (1 disables retrying).
        retry_wait_min: Minimum backoff between attempts, in seconds.
        retry_wait_max: Maximum backoff between attempts, in seconds.
        stale_sync_minutes: Age after which an IN_PROGRESS run may be reclaimed.
        per_track_fallback: Retry a failed chunk one track at a time.
        api_tokens: Bearer token to owner id mapping for the HTTP surface.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="PLAYLIST_SYNC_",
        case_sensitive=False,
    )

    spotify_client_id: str = Field(
        default="",
        description="Spotify application client ID",
    )
    spotify_client_secret: str = Field(
        default="",
        description="Spotify application client secret",
    )
    spotify_redirect_uri: str = Field(
        default="http://localhost:8888/callback",
        description="Spotify OAuth redirect URI",
    )

    soundcloud_access_token: str = Field(
        default="",
        description="SoundCloud OAuth access token",
    )

    data_dir: Path = Field(
        default=Path.home() / ".playlist_sync",
        description="Directory for storing application data",
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging level",
    )

    write_batch_size: int = Field(
        default=100,
        ge=1,
        le=100,
        description="Tracks per add-tracks request (platform limit is 100)",
    )
    max_batch_size: int = Field(
        default=10,
        ge=1,
        le=10,
        description="Maximum playlists per batch sync",
    )
    batch_delay_seconds: float = Field(
        default=1.0,
        ge=0.0,
        le=60.0,
        description="Delay between playlists in a batch sync",
    )
    search_limit: int = Field(
        default=5,
        ge=2,
        le=50,
        description="Candidates requested per track search",
    )

    retry_attempts: int = Field(
        default=1,
        ge=1,
        le=10,
        description="Attempts per remote call; 1 means no retry",
    )
    retry_wait_min: float = Field(
        default=2.0,
        ge=0.0,
        description="Minimum backoff between retries in seconds",
    )
    retry_wait_max: float = Field(
        default=30.0,
        ge=0.0,
        description="Maximum backoff between retries in seconds",
    )

    stale_sync_minutes: int = Field(
        default=30,
        ge=1,
        description="Minutes after which an IN_PROGRESS sync is considered abandoned",
    )
    per_track_fallback: bool = Field(
        default=False,
        description="Write a failed chunk one track at a time for precise accounting",
    )

    api_tokens: dict[str, str] = Field(
        default_factory=dict,
        description="Bearer token to owner id mapping (JSON object)",
    )

    @property
    def db_path(self) -> Path:
        """Path to the SQLite database file."""
        return self.data_dir / "state.db"

    @property
    def reports_dir(self) -> Path:
        """Path to the reports directory."""
        return self.data_dir / "reports"

    @property
    def log_path(self) -> Path:
        """Path to the log file."""
        return self.data_dir / "playlist_sync.log"

    def ensure_directories(self) -> None:
        """Create necessary directories if they don't exist."""
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.reports_dir.mkdir(parents=True, exist_ok=True)


def get_settings() -> Settings:
    """Get the application settings singleton."""
    return Settings()
