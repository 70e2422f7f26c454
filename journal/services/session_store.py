"""
Session Store.

Persists the current authentication ``Session`` across restarts.

Local durable storage is only reachable asynchronously, but the auth
layer needs a synchronous "who is signed in right now" read on every
request.  The store bridges the two with an in-memory cache:

- ``save`` / ``destroy`` update the cache immediately and schedule the
  durable write as a detached task (fire-and-forget).  Write failures are
  logged from the task's done-callback and never reach the caller; the
  cache stays authoritative for the lifetime of the process.
- ``load_sync`` returns the cache and never touches storage.  Until the
  first ``load_async`` completes after startup it may return ``None``
  even though a session is persisted.  This window is accepted.
- ``load_async`` reads storage, refreshes the cache and returns it.

Background writes are chained so they reach storage in call order: a
``save`` followed by ``destroy`` can never leave the saved session on disk.

Lifecycle: create once at startup → ``load_async`` → ``save`` /
``destroy`` while running → ``flush`` at shutdown.  Pass the single
instance to every component that needs it.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Optional

from pydantic import ValidationError

from journal.logger import StructuredLogger
from journal.models.session import Session
from journal.services.base_service import BaseService
from journal.storage import LocalStorage

DEFAULT_SESSION_KEY: str = "supabase.auth.token"


class SessionStore(BaseService):
    """Single-instance owner of the current ``Session``.

    Parameters
    ----------
    storage:
        Async key/value store used for durable persistence.
    logger:
        Structured JSON logger.
    storage_key:
        Key under which the serialised session JSON is stored.
    """

    def __init__(
        self,
        storage: LocalStorage,
        logger: StructuredLogger,
        storage_key: str = DEFAULT_SESSION_KEY,
    ) -> None:
        super().__init__(logger)
        self._storage: LocalStorage = storage
        self._storage_key: str = storage_key
        self._cached_session: Optional[Session] = None
        self._pending: set[asyncio.Task[None]] = set()
        self._last_write: Optional[asyncio.Task[None]] = None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def save(self, session: Session) -> None:
        """Make *session* current and persist it in the background."""
        self._cached_session = session
        try:
            payload: str = session.model_dump_json()
        except Exception as exc:
            self._logger.error("Failed to serialise session: %s", exc)
            return

        self._schedule_write(
            lambda: self._storage.set_item(self._storage_key, payload),
            operation="save",
        )

    def load_sync(self) -> Optional[Session]:
        """Return the cached session without touching durable storage."""
        return self._cached_session

    async def load_async(self) -> Optional[Session]:
        """Read the persisted session and refresh the in-memory cache.

        Returns
        -------
        Session or None
            ``None`` when nothing is stored, the stored payload cannot be
            parsed, or storage cannot be read.  A corrupt payload is
            treated as absence, not as a fatal error.
        """
        try:
            raw: Optional[str] = await self._storage.get_item(self._storage_key)
        except Exception as exc:
            self._logger.warning("Failed to read session from local storage: %s", exc)
            return None

        if not raw:
            self._logger.debug("No persisted session found.")
            return None

        try:
            session = Session.model_validate_json(raw)
        except (ValidationError, ValueError) as exc:
            self._logger.warning("Persisted session payload is malformed: %s", exc)
            return None

        self._cached_session = session
        self._logger.info(
            "Restored persisted session for user %s.", session.user_id,
        )
        return session

    def destroy(self) -> None:
        """Forget the current session and remove it from durable storage."""
        self._cached_session = None
        self._schedule_write(
            lambda: self._storage.remove_item(self._storage_key),
            operation="destroy",
        )

    async def flush(self) -> None:
        """Wait for every scheduled background write to finish.

        Failures were already logged by the done-callback and are not
        re-raised here.
        """
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    @property
    def has_pending_writes(self) -> bool:
        return bool(self._pending)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _schedule_write(
        self,
        write: Callable[[], Awaitable[None]],
        operation: str,
    ) -> None:
        """Start *write* as a detached task, or run it inline without a loop."""
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # Called from plain synchronous code (e.g. CLI teardown).
            try:
                asyncio.run(self._run_write(None, write))
            except Exception as exc:
                self._log_write_failure(operation, exc)
            return

        previous = self._last_write
        if previous is not None and (previous.done() or previous.get_loop() is not loop):
            previous = None

        task: asyncio.Task[None] = loop.create_task(
            self._run_write(previous, write),
            name=f"session-store-{operation}",
        )
        self._pending.add(task)
        self._last_write = task
        task.add_done_callback(lambda t: self._on_write_done(t, operation))

    @staticmethod
    async def _run_write(
        previous: Optional[asyncio.Task[None]],
        write: Callable[[], Awaitable[None]],
    ) -> None:
        if previous is not None:
            await asyncio.wait({previous})
        await write()

    def _on_write_done(self, task: asyncio.Task[None], operation: str) -> None:
        self._pending.discard(task)
        if self._last_write is task:
            self._last_write = None
        if task.cancelled():
            self._logger.debug("Session %s write was cancelled.", operation)
            return
        exc = task.exception()
        if exc is not None:
            self._log_write_failure(operation, exc)

    def _log_write_failure(self, operation: str, exc: BaseException) -> None:
        self._logger.warning(
            "Failed to %s session in local storage: %s",
            operation,
            exc,
            extra={"event": "SESSION_PERSIST_FAILED"},
        )
