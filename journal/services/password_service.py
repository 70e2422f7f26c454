"""
Change Password Service.

Validates the password-change form, proves knowledge of the current
password by re-authenticating, then updates the password remotely.
Returns a ``ValidationResult`` so the settings screen can display the
outcome without inspecting exceptions.
"""

from __future__ import annotations

from journal.errors import AuthError, NotAuthenticatedError
from journal.logger import StructuredLogger
from journal.models.auth_models import ChangePasswordRequest, ValidationResult
from journal.services.base_service import BaseService
from journal.services.error_mapper import CONNECTION_PROBLEM, REGISTRATION_WEAK_PASSWORD
from journal.services.remote_auth import RemoteAuthClient
from journal.services.session_store import SessionStore
from journal.utils.audit import log_audit_event

CURRENT_PASSWORD_INVALID: str = "Obecne hasło jest nieprawidłowe."
NOT_SIGNED_IN: str = "Musisz być zalogowany, aby zmienić hasło."
PASSWORD_CHANGE_FAILED: str = "Nie udało się zmienić hasła. Spróbuj ponownie później."


class ChangePasswordService(BaseService):
    """Password change for the signed-in user."""

    def __init__(
        self,
        remote_auth: RemoteAuthClient,
        session_store: SessionStore,
        logger: StructuredLogger,
    ) -> None:
        super().__init__(logger)
        self._remote_auth: RemoteAuthClient = remote_auth
        self._session_store: SessionStore = session_store

    async def change_password(self, request: ChangePasswordRequest) -> ValidationResult:
        validation = request.validate_request()
        if not validation.is_valid:
            return validation

        session = self._session_store.load_sync()
        if session is None or not session.email:
            return ValidationResult(is_valid=False, error_message=NOT_SIGNED_IN)

        try:
            await self._remote_auth.sign_in(session.email, request.current_password)
        except AuthError as exc:
            self._logger.info(
                "Current password rejected for user %s: %s", session.user_id, exc.message,
            )
            return ValidationResult(is_valid=False, error_message=CURRENT_PASSWORD_INVALID)
        except ConnectionError as exc:
            return self._connection_failure(session.user_id, exc)

        try:
            await self._remote_auth.update_password(request.new_password)
        except AuthError as exc:
            self._logger.warning("Password update failed for user %s: %s", session.user_id, exc.message)
            lowered = exc.message.lower()
            if "password" in lowered and "weak" in lowered:
                return ValidationResult(is_valid=False, error_message=REGISTRATION_WEAK_PASSWORD)
            return ValidationResult(is_valid=False, error_message=PASSWORD_CHANGE_FAILED)
        except NotAuthenticatedError:
            return ValidationResult(is_valid=False, error_message=NOT_SIGNED_IN)
        except ConnectionError as exc:
            return self._connection_failure(session.user_id, exc)

        log_audit_event(
            logger=self._logger,
            action="PASSWORD_CHANGE",
            entity_type="User",
            entity_id=str(session.user_id),
            user_id=str(session.user_id),
        )
        return ValidationResult(is_valid=True)

    def _connection_failure(self, user_id: object, exc: ConnectionError) -> ValidationResult:
        self._logger.warning("Password change for user %s aborted, remote unreachable: %s", user_id, exc)
        return ValidationResult(is_valid=False, error_message=CONNECTION_PROBLEM)
