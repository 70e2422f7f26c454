"""
Login Orchestrator.

Runs one sign-in attempt as a linear state machine::

    IDLE -> SIGNING_IN -> INITIALIZING -> COMPLETE
                 \\              \\
                  +-> FAILED     +-> FAILED

Sign-in errors (``AuthError``) propagate untouched; the UI translates
them with :func:`journal.services.error_mapper.describe_login_failure`.
Initialisation failures are distinguishable from sign-in failures:
protocol and business errors surface as ``InitializationError`` while a
timeout keeps its own type.
"""

from __future__ import annotations

from typing import Optional
from uuid import UUID

from journal.errors import (
    BusinessError,
    InitializationError,
    ProtocolError,
)
from journal.logger import StructuredLogger
from journal.models.auth_models import AuthResponse, LoginState
from journal.services.base_service import BaseService
from journal.services.remote_auth import RemoteAuthClient
from journal.services.retry_policy import RetryPolicy
from journal.services.user_initializer import UserInitializer
from journal.utils.audit import log_audit_event


async def initialize_user(initializer: UserInitializer, user_id: UUID) -> None:
    """Run user initialisation, wrapping protocol and business failures.

    Shared by the login and registration flows.  ``InitializationTimeoutError``
    and ``InitializationError`` pass through unchanged.
    """
    try:
        await initializer.ensure_initialized(user_id)
    except (ProtocolError, BusinessError) as exc:
        raise InitializationError.wrap(exc) from exc


class LoginOrchestrator(BaseService):
    """Sign in, then make sure the user's server-side records exist.

    Parameters
    ----------
    remote_auth:
        Remote auth client; persists the session on successful sign-in.
    initializer:
        Idempotent profile / streak initializer.
    retry_policy:
        Rate-limit backoff applied to the sign-in call.
    logger:
        Structured JSON logger.
    """

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

    async def login(self, email: str, password: str) -> UUID:
        """Authenticate *email* and initialise the account.

        Returns
        -------
        UUID
            The signed-in user's id.  The session is available from the
            ``SessionStore`` once this returns.

        Raises
        ------
        AuthError
            Sign-in was rejected by the server.
        ProtocolError
            The server returned no user id.
        InitializationTimeoutError
            Initialisation did not finish in time.
        InitializationError
            Initialisation failed for any other reason.
        """
        self.state = LoginState.SIGNING_IN
        try:
            response: AuthResponse = await self._retry_policy.execute_with_retry(
                lambda: self._remote_auth.sign_in(email, password),
                operation_name="sign-in",
            )
            user_id: Optional[UUID] = response.user_id
            if user_id is None:
                raise ProtocolError("sign-in response contained no user id")

            self.state = LoginState.INITIALIZING
            await initialize_user(self._initializer, user_id)
        except Exception:
            self.state = LoginState.FAILED
            raise

        self.state = LoginState.COMPLETE
        log_audit_event(
            logger=self._logger,
            action="LOGIN",
            entity_type="Session",
            entity_id=str(user_id),
            user_id=str(user_id),
        )
        return user_id
