"""Logging configuration for playlist-sync."""

import logging
import sys
from pathlib import Path
from typing import Literal

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR"]

BASE_LOGGER = "playlist_sync"


def setup_logging(
    level: LogLevel = "INFO",
    log_file: Path | None = None,
) -> logging.Logger:
    """Configure and return the application logger.

    Args:
        level: Logging level.
        log_file: Optional path to log file.

    Returns:
        Configured logger instance.
    """
    logger = logging.getLogger(BASE_LOGGER)
    logger.setLevel(getattr(logging, level))

    if logger.handlers:
        return logger

    formatter = logging.Formatter(
        fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(logging.WARNING)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(getattr(logging, level))
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


def get_logger(name: str | None = None) -> logging.Logger:
    """Get a logger instance.

    Args:
        name: Optional child logger name, e.g. "sync.engine".

    Returns:
        Logger instance.
    """
    if name:
        return logging.getLogger(f"{BASE_LOGGER}.{name}")
    return logging.getLogger(BASE_LOGGER)


class RunLogger(logging.LoggerAdapter):
    """Logger adapter that prefixes messages with a sync run's identity."""

    def process(self, msg, kwargs):
        extra = self.extra or {}
        return f"[{extra.get('platform')}:{extra.get('playlist_id')}] {msg}", kwargs


def get_run_logger(name: str, playlist_id: str, platform: str) -> RunLogger:
    """Get a logger bound to one (playlist, platform) run.

    Args:
        name: Child logger name.
        playlist_id: Local playlist ID being synced.
        platform: Target platform.

    Returns:
        Adapter that tags every record with the run's playlist and platform.
    """
    return RunLogger(get_logger(name), {"playlist_id": playlist_id, "platform": platform})
