"""
User Initializer.

Guarantees that a just-authenticated user has a server-side profile and
streak row by calling the idempotent ``initialize_new_user`` RPC.  The
call is bounded by a timeout so a slow network surfaces as a distinct,
user-presentable ``InitializationTimeoutError`` instead of hanging the
login flow.  On timeout the pending RPC is cancelled and its result is
never read.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any, Optional
from uuid import UUID

from pydantic import ValidationError

from journal.database import DatabaseManager
from journal.errors import (
    BusinessError,
    InitializationError,
    InitializationTimeoutError,
    ProtocolError,
)
from journal.logger import StructuredLogger
from journal.models.auth_models import InitializationResult
from journal.services.base_service import BaseService

INITIALIZE_USER_RPC: str = "initialize_new_user"
DEFAULT_TIMEOUT_S: float = 30.0


class UserInitializer(BaseService):
    """Ensures the profile and streak rows exist for a user.

    Parameters
    ----------
    db:
        Database manager providing the async Supabase client.
    logger:
        Structured JSON logger.
    timeout:
        Default time budget for one initialisation, in seconds.
    """

    def __init__(
        self,
        db: DatabaseManager,
        logger: StructuredLogger,
        timeout: float = DEFAULT_TIMEOUT_S,
    ) -> None:
        super().__init__(logger)
        self._db: DatabaseManager = db
        self._timeout: float = timeout

    async def ensure_initialized(
        self,
        user_id: UUID,
        timeout: Optional[float] = None,
    ) -> InitializationResult:
        """Create the user's profile and streak if they do not exist yet.

        Safe to call repeatedly for the same user.

        Raises
        ------
        InitializationTimeoutError
            The RPC did not answer within *timeout* seconds.
        ProtocolError
            Empty or unparseable response body.
        BusinessError
            The procedure answered ``success: false``.
        InitializationError
            Any other failure while calling the procedure.
        """
        window = self._timeout if timeout is None else timeout

        self._logger.info("Initializing user %s.", user_id)
        try:
            body = await asyncio.wait_for(self._call_rpc(user_id), timeout=window)
        except TimeoutError:
            self._logger.warning(
                "User initialization for %s timed out after %.1fs.",
                user_id,
                window,
                extra={"event": "USER_INIT_TIMEOUT", "user_id": str(user_id)},
            )
            raise InitializationTimeoutError() from None
        except Exception as exc:
            self._logger.error(
                "Unexpected error while initializing user %s: %s", user_id, exc,
            )
            raise InitializationError(
                f"initialization failed: {exc}", original_error=exc,
            ) from exc

        result = self._parse(body)
        if not result.success:
            error = result.error or "Unknown error"
            self._logger.error(
                "Server refused to initialize user %s: %s", user_id, error,
            )
            raise BusinessError(error)

        self._logger.info(
            "User %s initialized: %s", user_id, result.message or "ok",
            extra={"event": "USER_INITIALIZED", "user_id": str(user_id)},
        )
        return result

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _call_rpc(self, user_id: UUID) -> Any:
        response = await self._db.supabase.rpc(
            INITIALIZE_USER_RPC, {"p_user_id": str(user_id)},
        ).execute()
        return response.data

    def _parse(self, body: Any) -> InitializationResult:
        """Turn the raw RPC body into an ``InitializationResult``.

        The body arrives as a dict, a one-row list or a JSON string
        depending on how the function's return type is declared.
        """
        if body is None or (isinstance(body, (str, bytes, list, dict)) and not body):
            raise ProtocolError("empty response from database")
        if isinstance(body, (str, bytes)) and not body.strip():
            raise ProtocolError("empty response from database")

        try:
            if isinstance(body, (str, bytes)):
                body = json.loads(body)
            if isinstance(body, list):
                if not body:
                    raise ProtocolError("empty response from database")
                body = body[0]
            return InitializationResult.model_validate(body)
        except ProtocolError:
            raise
        except (ValidationError, ValueError, TypeError) as exc:
            self._logger.error("Unparseable initialization response: %r (%s)", body, exc)
            raise ProtocolError("invalid response format", original_error=exc) from exc
