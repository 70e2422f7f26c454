"""
Database Abstraction Layer.

Owns the two backing stores of the journal client:

- **Supabase (remote)**: auth (GoTrue), the ``journal_entries`` /
  ``user_streaks`` / ``profiles`` tables (row-level security) and the
  account RPCs.  Accessed through the async supabase-py client.

- **SQLite (local)**: a small key/value table standing in for the
  browser's per-origin ``localStorage``.  Only the persisted session lives
  here; see :class:`journal.storage.LocalStorage`.

This module only manages the raw *connections*; it contains no query logic.

Usage (dependency injection at startup)::

    db = await DatabaseManager.create(
        supabase_url=config.SUPABASE_URL,
        supabase_key=config.SUPABASE_ANON_KEY.get_secret_value(),
        sqlite_path=Path(config.LOCAL_STORAGE_PATH),
        logger=StructuredLogger(name="journal.database"),
    )
"""

from __future__ import annotations

import sqlite3
import threading
from pathlib import Path
from typing import Optional

from supabase import AsyncClient, acreate_client

from journal.logger import StructuredLogger


class DatabaseManager:
    """Holds the remote Supabase client and the local SQLite connection.

    When the Supabase client is ``None`` the application runs without
    remote access; the ``supabase`` property then raises ``RuntimeError``,
    which the service layer reports as a connection problem.

    Parameters
    ----------
    supabase:
        An initialised async Supabase client, or ``None``.
    sqlite_path:
        Filesystem path for the local SQLite database file.
    logger:
        A ``StructuredLogger`` instance for structured JSON log output.
    """

    def __init__(
        self,
        supabase: Optional[AsyncClient],
        sqlite_path: Path,
        logger: StructuredLogger,
    ) -> None:
        self._logger: StructuredLogger = logger
        self._write_lock: threading.RLock = threading.RLock()
        self._supabase: Optional[AsyncClient] = supabase
        self._sqlite_conn: sqlite3.Connection = self._connect_sqlite(sqlite_path)

    @classmethod
    async def create(
        cls,
        supabase_url: str,
        supabase_key: str,
        sqlite_path: Path,
        logger: StructuredLogger,
    ) -> "DatabaseManager":
        """Build a manager, creating the async Supabase client when configured."""
        supabase: Optional[AsyncClient] = None
        if supabase_url and supabase_key:
            try:
                supabase = await acreate_client(supabase_url, supabase_key)
                logger.info("Supabase client initialized.")
            except (ValueError, TypeError) as exc:
                logger.warning(
                    "Supabase credential format error: %s. Remote access disabled.",
                    exc,
                )
            except Exception as exc:
                logger.error(
                    "Unexpected Supabase initialization failure: %s. "
                    "Remote access disabled.",
                    exc,
                    exc_info=True,
                )
        else:
            logger.warning(
                "Supabase credentials not configured; remote access disabled."
            )
        return cls(supabase=supabase, sqlite_path=sqlite_path, logger=logger)

    # ------------------------------------------------------------------
    # Public properties
    # ------------------------------------------------------------------

    @property
    def supabase(self) -> AsyncClient:
        """Return the async Supabase client.

        Raises
        ------
        RuntimeError
            If no client was configured.
        """
        if self._supabase is None:
            raise RuntimeError(
                "Supabase client is not initialised. "
                "Remote authentication is unavailable."
            )
        return self._supabase

    @property
    def is_online(self) -> bool:
        """``True`` when the Supabase client is available."""
        return self._supabase is not None

    @property
    def sqlite(self) -> sqlite3.Connection:
        return self._sqlite_conn

    @property
    def write_lock(self) -> threading.RLock:
        """Lock guarding every SQLite write + commit pair.

        Local storage I/O runs in worker threads (``asyncio.to_thread``),
        so writes must be serialised here rather than by the event loop.
        """
        return self._write_lock

    # ------------------------------------------------------------------
    # Lifecycle helpers
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Close the local SQLite connection.  Safe to call multiple times."""
        with self._write_lock:
            try:
                self._sqlite_conn.close()
                self._logger.info("SQLite connection closed.")
            except sqlite3.ProgrammingError:
                pass

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _connect_sqlite(self, path: Path) -> sqlite3.Connection:
        """Open (or create) the local SQLite database.

        Raises
        ------
        PermissionError
            If the OS denies access to the database file or its directory.
        """
        try:
            conn = sqlite3.connect(str(path), check_same_thread=False)
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA journal_mode=WAL;")
            self._logger.info("SQLite database opened at %s", path)
            return conn
        except PermissionError as exc:
            msg = (
                f"Cannot open the local database at '{path}'. "
                "The file or its directory may be read-only or locked by "
                "another process.  Please check file permissions and try again."
            )
            self._logger.error(msg)
            raise PermissionError(msg) from exc
