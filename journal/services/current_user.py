"""
Current User Accessor.

Resolves "who is signed in" for data-access code.  The session is the
source of truth; a development override from configuration is used only
when no session exists, and every use of it is logged.
"""

from __future__ import annotations

from typing import Optional
from uuid import UUID

from journal.config import AppConfig
from journal.logger import StructuredLogger
from journal.services.base_service import BaseService
from journal.services.session_store import SessionStore


class CurrentUserAccessor(BaseService):

    def __init__(
        self,
        session_store: SessionStore,
        config: AppConfig,
        logger: StructuredLogger,
    ) -> None:
        super().__init__(logger)
        self._session_store: SessionStore = session_store
        self._config: AppConfig = config

    def get_current_user_id(self) -> Optional[UUID]:
        """Session user id, else the development override, else ``None``."""
        session = self._session_store.load_sync()
        if session is not None:
            return session.user_id

        dev_user_id = self._config.dev_user_id()
        if dev_user_id is not None:
            self._logger.warning(
                "Using development override for user %s",
                self._config.DEV_USER_EMAIL or "unknown",
            )
            return dev_user_id

        return None

    @property
    def is_authenticated(self) -> bool:
        return self._session_store.load_sync() is not None
