"""Shared SQLite connection handling for the state stores."""

import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse a SQLite CURRENT_TIMESTAMP value."""
    if not value:
        return None
    return datetime.fromisoformat(value)


class SQLiteStore:
    """Base class for stores backed by a single SQLite file.

    Subclasses provide their DDL in ``SCHEMA``; several stores may share one
    database file.

    Args:
        db_path: Path to the SQLite database file.
    """

    SCHEMA = ""

    def __init__(self, db_path: Path) -> None:
        self._db_path = db_path
        db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    @property
    def db_path(self) -> Path:
        return self._db_path

    @contextmanager
    def _get_connection(self) -> Iterator[sqlite3.Connection]:
        """Get a database connection with row factory.

        Commits when the block exits normally; an exception rolls back.
        """
        conn = sqlite3.connect(self._db_path, timeout=30.0)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        try:
            yield conn
            conn.commit()
        finally:
            conn.close()

    def _init_db(self) -> None:
        """Initialize the database schema."""
        with self._get_connection() as conn:
            conn.executescript(self.SCHEMA)
