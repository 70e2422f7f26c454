"""
Remote Auth Client.

Thin async wrapper around the Supabase GoTrue client.  Every call either
returns normalised models or raises :class:`journal.errors.AuthError`
carrying the raw remote message, so the UI can translate it with
:mod:`journal.services.error_mapper`.

Session ownership: successful sign-in, refresh and ``set_session`` calls
persist the resulting session through the injected ``SessionStore``;
sign-out and detected token invalidation destroy it.  Sign-up never
persists anything by itself; the registration flow decides whether the
returned tokens become the current session.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from collections.abc import Awaitable, Callable
from typing import Any, Optional
from uuid import UUID

import httpx
from supabase import AsyncClient, AuthError as SupabaseAuthError

from journal.database import DatabaseManager
from journal.errors import AuthError, NotAuthenticatedError
from journal.logger import StructuredLogger
from journal.models.auth_models import AuthResponse
from journal.models.session import Session
from journal.services.base_service import BaseService
from journal.services.session_store import SessionStore

# Remote error codes / message fragments meaning the refresh token or
# session no longer exists server-side.
_INVALIDATION_CODES: frozenset[str] = frozenset({
    "refresh_token_not_found",
    "refresh_token_already_used",
    "session_not_found",
    "session_expired",
    "user_not_found",
})
_INVALIDATION_FRAGMENTS: tuple[str, ...] = (
    "revoked",
    "not found",
    "invalid refresh token",
    "already used",
)


def is_session_invalidated(error: AuthError) -> bool:
    """``True`` when *error* says the session's token is revoked or gone."""
    if error.code and error.code in _INVALIDATION_CODES:
        return True
    message = (error.message or "").lower()
    return any(fragment in message for fragment in _INVALIDATION_FRAGMENTS)


class RemoteAuthClient(BaseService):
    """Sign-up, sign-in, sign-out, refresh and password update.

    Parameters
    ----------
    db:
        Database manager providing the async Supabase client.
    session_store:
        Single-instance store that owns the current session.
    logger:
        Structured JSON logger.
    """

    def __init__(
        self,
        db: DatabaseManager,
        session_store: SessionStore,
        logger: StructuredLogger,
    ) -> None:
        super().__init__(logger)
        self._db: DatabaseManager = db
        self._session_store: SessionStore = session_store

    # ==================================================================
    # Sign-in / sign-up
    # ==================================================================

    async def sign_in(self, email: str, password: str) -> AuthResponse:
        """Authenticate with email and password and persist the session.

        Returns
        -------
        AuthResponse
            ``user_id`` is ``None`` when the server returned no user; no
            session is persisted in that case.

        Raises
        ------
        AuthError
            Invalid credentials, unconfirmed email, rate limit, etc.
        """
        response = await self._call(
            lambda client: client.auth.sign_in_with_password({
                "email": email,
                "password": password,
            })
        )

        result = self._to_auth_response(response)
        if result.session is not None:
            self._session_store.save(result.session)
            self._logger.info(
                "User %s signed in.", result.user_id,
                extra={"event": "SIGN_IN", "user_id": str(result.user_id)},
            )
        return result

    async def sign_up(self, email: str, password: str) -> AuthResponse:
        """Create an account.

        The returned ``session`` is ``None`` when the server requires
        email confirmation before the first sign-in.
        """
        response = await self._call(
            lambda client: client.auth.sign_up({
                "email": email,
                "password": password,
            })
        )

        result = self._to_auth_response(response)
        self._logger.info(
            "Account created for user %s (session issued: %s).",
            result.user_id,
            result.session is not None,
            extra={"event": "SIGN_UP", "user_id": str(result.user_id)},
        )
        return result

    # ==================================================================
    # Session management
    # ==================================================================

    async def set_session(self, access_token: str, refresh_token: str) -> Session:
        """Install the given tokens as the current session and persist it."""
        response = await self._call(
            lambda client: client.auth.set_session(access_token, refresh_token)
        )

        result = self._to_auth_response(response)
        if result.session is None:
            raise AuthError("Session could not be established from the supplied tokens.")
        self._session_store.save(result.session)
        return result.session

    async def refresh_session(self) -> Session:
        """Exchange the current refresh token for a new session.

        The new session replaces the old one wholesale.  When the server
        reports the refresh token as revoked or unknown, the local session
        is destroyed before the error propagates.

        Raises
        ------
        NotAuthenticatedError
            No current session.
        AuthError
            The refresh was rejected.
        """
        current = self._session_store.load_sync()
        if current is None:
            raise NotAuthenticatedError("No session to refresh.")

        try:
            response = await self._call(
                lambda client: client.auth.refresh_session(current.refresh_token)
            )
        except AuthError as error:
            if is_session_invalidated(error):
                self._logger.warning(
                    "Refresh token rejected for user %s: %s. Discarding session.",
                    current.user_id,
                    error.message,
                    extra={"event": "SESSION_INVALIDATED"},
                )
                self._session_store.destroy()
            raise

        result = self._to_auth_response(response)
        if result.session is None:
            raise AuthError("Session refresh returned no session.")
        self._session_store.save(result.session)
        self._logger.info("Session token refreshed.")
        return result.session

    async def restore_session(self) -> Optional[Session]:
        """Load the persisted session at startup and hand it to the client.

        Returns the active session, or ``None`` when nothing usable is
        persisted.  A transient failure keeps the cached session (the
        next authenticated call will retry); an invalidated token
        discards it.
        """
        session = await self._session_store.load_async()
        if session is None or not session.has_tokens:
            return None
        if not self._db.is_online:
            return session

        try:
            return await self.set_session(session.access_token, session.refresh_token)
        except AuthError as exc:
            if is_session_invalidated(exc):
                self._logger.info(
                    "Persisted session for user %s is no longer valid.", session.user_id,
                )
                self._session_store.destroy()
                return None
            self._logger.warning("Could not re-establish persisted session: %s", exc)
            return session
        except ConnectionError as exc:
            self._logger.warning(
                "Remote auth unreachable, keeping persisted session for user %s: %s",
                session.user_id,
                exc,
                extra={"event": "SESSION_RESTORE_OFFLINE"},
            )
            return session

    def current_session(self) -> Optional[Session]:
        return self._session_store.load_sync()

    async def sign_out(self) -> None:
        """Revoke the session server-side and always clear it locally.

        Raises
        ------
        AuthError
            When the server-side sign-out failed (the local session is
            already gone at that point).
        """
        try:
            await self._call(lambda client: client.auth.sign_out())
        finally:
            self._session_store.destroy()

    async def update_password(self, new_password: str) -> None:
        """Set a new password for the signed-in user."""
        if self._session_store.load_sync() is None:
            raise NotAuthenticatedError("Sign in before changing the password.")

        await self._call(lambda client: client.auth.update_user({"password": new_password}))

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _call(self, operation: Callable[[AsyncClient], Awaitable[Any]]) -> Any:
        """Run one GoTrue request, translating its failures.

        Remote rejections become :class:`AuthError`; transport failures
        (DNS, refused connection, timeouts) become ``ConnectionError``.
        """
        client = self._client()
        try:
            return await operation(client)
        except SupabaseAuthError as exc:
            raise self._translate(exc) from exc
        except httpx.TransportError as exc:
            raise ConnectionError(f"Network connection unavailable: {exc}") from exc

    def _client(self) -> AsyncClient:
        try:
            return self._db.supabase
        except RuntimeError as exc:
            raise ConnectionError(
                "Network connection unavailable: remote authentication is not configured."
            ) from exc

    @staticmethod
    def _translate(exc: SupabaseAuthError) -> AuthError:
        message: str = getattr(exc, "message", None) or str(exc)
        status = getattr(exc, "status", None)
        code = getattr(exc, "code", None)
        return AuthError(
            message,
            status=int(status) if isinstance(status, int) else None,
            code=str(code) if code else None,
            original_error=exc,
        )

    @staticmethod
    def _to_auth_response(response: Any) -> AuthResponse:
        """Normalise a supabase-py ``AuthResponse`` into our model."""
        remote_session = getattr(response, "session", None)
        user = getattr(response, "user", None)
        if user is None and remote_session is not None:
            user = getattr(remote_session, "user", None)

        raw_id: Optional[str] = getattr(user, "id", None) if user is not None else None
        user_id: Optional[UUID] = None
        if raw_id:
            try:
                user_id = UUID(str(raw_id))
            except ValueError:
                user_id = None
        email: Optional[str] = getattr(user, "email", None) if user is not None else None

        session: Optional[Session] = None
        access_token = getattr(remote_session, "access_token", None)
        refresh_token = getattr(remote_session, "refresh_token", None)
        if user_id is not None and access_token and refresh_token:
            session = Session(
                access_token=access_token,
                refresh_token=refresh_token,
                user_id=user_id,
                expires_at=_resolve_expiry(remote_session),
                email=email,
            )

        return AuthResponse(user_id=user_id, email=email, session=session)


def _resolve_expiry(remote_session: Any) -> datetime:
    """Absolute expiry from ``expires_at`` (unix seconds) or ``expires_in``."""
    expires_at = getattr(remote_session, "expires_at", None)
    if isinstance(expires_at, (int, float)):
        return datetime.fromtimestamp(expires_at, tz=timezone.utc)
    expires_in = getattr(remote_session, "expires_in", None)
    seconds = expires_in if isinstance(expires_in, (int, float)) else 3600
    return datetime.now(timezone.utc) + timedelta(seconds=seconds)
