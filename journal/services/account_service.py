"""
Account Service.

Data export and permanent account deletion.  Deletion is gated by an
explicit confirmation phrase and ends with a local sign-out, because the
server-side user (and with it every token) no longer exists.
"""

from __future__ import annotations

import asyncio
from typing import Optional

from journal.database import DatabaseManager
from journal.errors import BusinessError
from journal.logger import StructuredLogger
from journal.models.auth_models import ValidationResult
from journal.models.journal_models import (
    DELETE_CONFIRMATION_PHRASE,
    DeleteAccountRequest,
    ExportDataResponse,
)
from journal.repositories.account_repository import AccountRepository
from journal.services.base_service import BaseService
from journal.services.session_store import SessionStore
from journal.utils.audit import DetailValue, log_audit_event

CONFIRMATION_MISMATCH: str = f'Wpisz "{DELETE_CONFIRMATION_PHRASE}", aby potwierdzić usunięcie konta.'


class AccountService(BaseService):
    """Export the user's journal and delete their account.

    Parameters
    ----------
    repo:
        Account RPC repository.
    session_store:
        Current session owner; cleared after a successful deletion.
    db:
        Used for local audit persistence only.
    logger:
        Structured JSON logger.
    """

    def __init__(
        self,
        repo: AccountRepository,
        session_store: SessionStore,
        db: DatabaseManager,
        logger: StructuredLogger,
    ) -> None:
        super().__init__(logger)
        self._repo: AccountRepository = repo
        self._session_store: SessionStore = session_store
        self._db: DatabaseManager = db

    async def export_data(self) -> ExportDataResponse:
        """Fetch every entry of the signed-in user for download."""
        export = await self._repo.export_journal_entries()
        user_id = self._user_id_for_audit()
        await self._audit("EXPORT", user_id, {"total_entries": export.total_entries})
        return export

    async def delete_account(self, request: DeleteAccountRequest) -> ValidationResult:
        """Delete the account once the confirmation phrase matches.

        Raises
        ------
        BusinessError
            The server refused the deletion (``success: false``).
        DataAccessError
            The RPC call itself failed.
        """
        if not request.is_confirmed:
            return ValidationResult(is_valid=False, error_message=CONFIRMATION_MISMATCH)

        user_id = self._user_id_for_audit()
        response = await self._repo.delete_my_account()
        if not response.success:
            raise BusinessError(response.message or "Unknown error")

        self._session_store.destroy()
        await self._session_store.flush()

        await self._audit(
            "DELETE_ACCOUNT", user_id, {"exported_before_delete": request.has_exported_data},
        )
        return ValidationResult(is_valid=True)

    async def _audit(
        self, action: str, user_id: str, details: Optional[dict[str, DetailValue]],
    ) -> None:
        """Log and persist an audit event from a worker thread.

        The SQLite write waits on ``write_lock``, which storage writes
        also hold from worker threads; it must not block the event loop.
        """
        await asyncio.to_thread(self._write_audit, action, user_id, details)

    def _write_audit(
        self, action: str, user_id: str, details: Optional[dict[str, DetailValue]],
    ) -> None:
        with self._db.write_lock:
            log_audit_event(
                logger=self._logger,
                action=action,
                entity_type="User",
                entity_id=user_id,
                user_id=user_id,
                details=details,
                conn=self._db.sqlite,
            )

    def _user_id_for_audit(self) -> str:
        session = self._session_store.load_sync()
        return str(session.user_id) if session is not None else "unknown"
