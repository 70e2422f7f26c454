"""
Base Repository.

Provides shared infrastructure for all repositories:
- DatabaseManager reference (remote Supabase client)
- SessionStore reference for the session guard and the current user id
- Logger reference
- Uniform translation of remote failures into ``DataAccessError``
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, TypeVar
from uuid import UUID

from supabase import AsyncClient, PostgrestAPIError

from journal.database import DatabaseManager
from journal.errors import DataAccessError, NotAuthenticatedError
from journal.logger import StructuredLogger

if TYPE_CHECKING:
    from journal.services.session_store import SessionStore

T = TypeVar("T")


class BaseRepository:
    """Base class for all repositories. Receives dependencies via __init__."""

    TABLE: str = ""

    def __init__(
        self,
        db: DatabaseManager,
        session_store: SessionStore,
        logger: StructuredLogger,
    ) -> None:
        self._db = db
        self._session_store = session_store
        self._logger = logger

    @property
    def supabase(self) -> AsyncClient:
        """Returns the async Supabase client for remote operations."""
        return self._db.supabase

    def _current_user_id(self) -> UUID:
        session = self._session_store.load_sync()
        if session is None:
            raise NotAuthenticatedError("No current session.")
        return session.user_id

    async def _execute(
        self,
        operation: Callable[[], Awaitable[T]],
        *,
        operation_name: str,
    ) -> T:
        """Run a remote call, translating failures into ``DataAccessError``.

        Parameters
        ----------
        operation:
            Zero-argument callable returning the awaitable query.
        operation_name:
            Human-readable label for log messages, e.g.
            ``"list (journal_entries)"``.
        """
        try:
            return await operation()
        except PostgrestAPIError as exc:
            self._logger.error(
                "Remote query failed for %s: %s (code=%s)",
                operation_name,
                exc.message,
                exc.code,
            )
            raise DataAccessError(
                exc.message or f"{operation_name} failed", original_error=exc,
            ) from exc
        except RuntimeError as exc:
            self._logger.warning("Remote database unavailable for %s: %s", operation_name, exc)
            raise DataAccessError(
                f"{operation_name} failed: remote database unavailable", original_error=exc,
            ) from exc
