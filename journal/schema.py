"""
Local SQLite Schema Initialization.

The client keeps two kinds of local state: a small key/value table
playing the role of the browser's per-origin ``localStorage`` and an
append-only ``audit_log`` of account-level actions.  A
``schema_version`` row tracks applied migrations so future changes can be
rolled forward without losing a persisted session.

Usage::

    import sqlite3
    from journal.logger import StructuredLogger
    from journal.schema import initialize_schema

    conn = sqlite3.connect("journal_local.db")
    initialize_schema(conn, StructuredLogger(name="journal.schema"))
"""

from __future__ import annotations

import sqlite3
from collections.abc import Callable

from journal.logger import StructuredLogger

__all__ = ["CURRENT_SCHEMA_VERSION", "initialize_schema"]

CURRENT_SCHEMA_VERSION: int = 1

_TABLE_DEFINITIONS: list[str] = [
    """
    CREATE TABLE IF NOT EXISTS local_storage (
        key        TEXT PRIMARY KEY,
        value      TEXT NOT NULL,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS audit_log (
        id          INTEGER PRIMARY KEY AUTOINCREMENT,
        timestamp   TEXT NOT NULL,
        action      TEXT NOT NULL,
        entity_type TEXT NOT NULL,
        entity_id   TEXT NOT NULL,
        user_id     TEXT NOT NULL,
        details     TEXT
    )
    """,
]

# version -> migration function; empty until the first schema change.
_MIGRATIONS: dict[int, Callable[[sqlite3.Connection, StructuredLogger], None]] = {}


# ---------------------------------------------------------------------------
# Private helpers
# ---------------------------------------------------------------------------

def _ensure_version_table(conn: sqlite3.Connection) -> None:
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS schema_version (
            id INTEGER PRIMARY KEY CHECK (id = 1),
            version INTEGER NOT NULL,
            applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
        """
    )
    conn.commit()


def _get_schema_version(conn: sqlite3.Connection) -> int:
    """Return the current schema version, or ``0`` for a fresh database."""
    row = conn.execute("SELECT version FROM schema_version WHERE id = 1").fetchone()
    return row[0] if row is not None else 0


def _set_schema_version(conn: sqlite3.Connection, version: int) -> None:
    """Upsert the version tracker.  Does **not** commit."""
    conn.execute(
        """
        INSERT INTO schema_version (id, version) VALUES (1, ?)
        ON CONFLICT(id) DO UPDATE SET version = excluded.version,
                                      applied_at = CURRENT_TIMESTAMP
        """,
        (version,),
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def initialize_schema(conn: sqlite3.Connection, logger: StructuredLogger) -> None:
    """Ensure the local database matches :data:`CURRENT_SCHEMA_VERSION`.

    Fresh databases get every table from :data:`_TABLE_DEFINITIONS`;
    existing ones run the registered migrations in ascending order.  The
    upgrade and the version bump share one transaction, so a failure
    leaves the stored version untouched and the next startup retries.

    Safe to call on every startup.
    """
    _ensure_version_table(conn)
    current: int = _get_schema_version(conn)

    if current >= CURRENT_SCHEMA_VERSION:
        logger.debug("Schema is up to date (version %d).", current)
        return

    try:
        if current == 0:
            for ddl in _TABLE_DEFINITIONS:
                conn.execute(ddl)
        else:
            for version in sorted(v for v in _MIGRATIONS if current < v <= CURRENT_SCHEMA_VERSION):
                logger.info("Running migration to version %d.", version)
                _MIGRATIONS[version](conn, logger)

        _set_schema_version(conn, CURRENT_SCHEMA_VERSION)
        conn.commit()
    except Exception:
        conn.rollback()
        logger.error("Schema migration failed; rolled back to version %d.", current)
        raise

    logger.info("Schema initialised at version %d.", CURRENT_SCHEMA_VERSION)
