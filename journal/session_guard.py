"""
Session Guard Decorator.

Gates async data-access methods behind a current session.  The decorated
method's owner must expose its ``SessionStore`` as ``_session_store``.

Usage::

    from journal.session_guard import require_session

    class JournalEntryRepository(BaseRepository):
        @require_session
        async def list_entries(self) -> list[JournalEntry]:
            ...
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from functools import wraps
from typing import Any, Concatenate, ParamSpec, TypeVar

from journal.errors import NotAuthenticatedError

P = ParamSpec("P")
R = TypeVar("R")


def require_session(
    func: Callable[Concatenate[Any, P], Awaitable[R]],
) -> Callable[Concatenate[Any, P], Awaitable[R]]:
    """Raise :class:`NotAuthenticatedError` unless a session is current.

    Only the in-memory session is consulted; call
    ``SessionStore.load_async`` at startup before using guarded methods.
    """

    @wraps(func)
    async def wrapper(self: Any, *args: P.args, **kwargs: P.kwargs) -> R:
        if self._session_store.load_sync() is None:
            raise NotAuthenticatedError(
                "Authentication required. Please log in before "
                "performing this action."
            )
        return await func(self, *args, **kwargs)

    return wrapper
