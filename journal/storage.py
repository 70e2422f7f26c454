"""
Local Durable Key/Value Storage.

Async façade over the ``local_storage`` SQLite table, mirroring the
browser ``localStorage`` API (``getItem`` / ``setItem`` / ``removeItem``).
Every call runs the blocking SQLite work in a worker thread via
``asyncio.to_thread`` so the event loop is never blocked.  There is no
synchronous read path; callers needing one keep their own in-memory cache
(see :class:`journal.services.session_store.SessionStore`).

Unlike the settings helpers elsewhere in the client, errors here are
**raised**, not swallowed: the caller decides whether a storage failure
is fatal.
"""

from __future__ import annotations

import asyncio
from typing import Optional

from journal.database import DatabaseManager


class LocalStorage:
    """Async key/value store backed by the local SQLite database.

    Parameters
    ----------
    db:
        Initialised ``DatabaseManager`` whose schema contains the
        ``local_storage`` table.
    """

    def __init__(self, db: DatabaseManager) -> None:
        self._db: DatabaseManager = db

    async def get_item(self, key: str) -> Optional[str]:
        """Return the stored value for *key*, or ``None`` when absent."""
        return await asyncio.to_thread(self._get, key)

    async def set_item(self, key: str, value: str) -> None:
        """Create or replace the value stored under *key*."""
        await asyncio.to_thread(self._set, key, value)

    async def remove_item(self, key: str) -> None:
        """Delete *key*.  Removing an absent key is a no-op."""
        await asyncio.to_thread(self._remove, key)

    # ------------------------------------------------------------------
    # Blocking implementations (worker thread)
    # ------------------------------------------------------------------

    def _get(self, key: str) -> Optional[str]:
        with self._db.write_lock:
            row = self._db.sqlite.execute(
                "SELECT value FROM local_storage WHERE key = ?",
                (key,),
            ).fetchone()
        return row["value"] if row is not None else None

    def _set(self, key: str, value: str) -> None:
        with self._db.write_lock:
            self._db.sqlite.execute(
                """
                INSERT INTO local_storage (key, value)
                VALUES (?, ?)
                ON CONFLICT(key) DO UPDATE SET
                    value      = excluded.value,
                    updated_at = CURRENT_TIMESTAMP
                """,
                (key, value),
            )
            self._db.sqlite.commit()

    def _remove(self, key: str) -> None:
        with self._db.write_lock:
            self._db.sqlite.execute(
                "DELETE FROM local_storage WHERE key = ?",
                (key,),
            )
            self._db.sqlite.commit()
