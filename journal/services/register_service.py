"""
Register Orchestrator.

Creates an account, initialises its server-side records and, when the
server issued tokens straight away, signs the user in.  Whether tokens
are issued is the server's email-confirmation policy; the client only
follows it.
"""

from __future__ import annotations

from journal.errors import ProtocolError
from journal.logger import StructuredLogger
from journal.models.auth_models import AuthResponse, LoginState, RegistrationResult
from journal.services.base_service import BaseService
from journal.services.login_service import initialize_user
from journal.services.remote_auth import RemoteAuthClient
from journal.services.retry_policy import RetryPolicy
from journal.services.user_initializer import UserInitializer
from journal.utils.audit import log_audit_event


class RegisterOrchestrator(BaseService):
    """Sign up, initialise, and auto-login when the server allows it."""

    def __init__(
        self,
        remote_auth: RemoteAuthClient,
        initializer: UserInitializer,
        retry_policy: RetryPolicy,
        logger: StructuredLogger,
    ) -> None:
        super().__init__(logger)
        self._remote_auth: RemoteAuthClient = remote_auth
        self._initializer: UserInitializer = initializer
        self._retry_policy: RetryPolicy = retry_policy
        self.state: LoginState = LoginState.IDLE

    async def register(self, email: str, password: str) -> RegistrationResult:
        """Create an account for *email*.

        Raises the same error types as
        :meth:`journal.services.login_service.LoginOrchestrator.login`.
        """
        self.state = LoginState.SIGNING_IN
        try:
            response: AuthResponse = await self._retry_policy.execute_with_retry(
                lambda: self._remote_auth.sign_up(email, password),
                operation_name="sign-up",
            )
            if response.user_id is None:
                raise ProtocolError("sign-up response contained no user id")
            user_id = response.user_id

            self.state = LoginState.INITIALIZING
            await initialize_user(self._initializer, user_id)

            access_token = response.access_token
            refresh_token = response.refresh_token
            requires_confirmation = not (access_token and refresh_token)
            if not requires_confirmation:
                await self._remote_auth.set_session(access_token, refresh_token)
        except Exception:
            self.state = LoginState.FAILED
            raise

        self.state = LoginState.COMPLETE
        self._logger.info(
            "Registration complete for %s (email confirmation required: %s).",
            user_id,
            requires_confirmation,
        )
        log_audit_event(
            logger=self._logger,
            action="REGISTER",
            entity_type="User",
            entity_id=str(user_id),
            user_id=str(user_id),
            details={"requires_email_confirmation": requires_confirmation},
        )
        return RegistrationResult(
            user_id=user_id,
            requires_email_confirmation=requires_confirmation,
        )
