"""
Logout Service.

Signs the user out.  Server-side revocation is best effort: whatever the
server answers, the local session is gone afterwards and the caller never
sees a cleanup failure.
"""

from __future__ import annotations

from journal.logger import StructuredLogger
from journal.services.base_service import BaseService
from journal.services.remote_auth import RemoteAuthClient
from journal.services.session_store import SessionStore
from journal.utils.audit import log_audit_event


class LogoutService(BaseService):

    def __init__(
        self,
        remote_auth: RemoteAuthClient,
        session_store: SessionStore,
        logger: StructuredLogger,
    ) -> None:
        super().__init__(logger)
        self._remote_auth: RemoteAuthClient = remote_auth
        self._session_store: SessionStore = session_store

    async def logout(self) -> None:
        session = self._session_store.load_sync()
        user_id = str(session.user_id) if session is not None else "anonymous"
        self._logger.info("User logout initiated.")

        try:
            await self._remote_auth.sign_out()
        except Exception as exc:
            # The local session is already destroyed by sign_out.
            self._logger.warning("Server-side sign-out failed: %s", exc)

        await self._session_store.flush()
        log_audit_event(
            logger=self._logger,
            action="LOGOUT",
            entity_type="Session",
            entity_id=user_id,
            user_id=user_id,
        )
