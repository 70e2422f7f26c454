"""
Client Error Taxonomy.

Every failure the session / orchestration layer raises is a subclass of
``JournalClientError`` tagged with an ``ErrorKind``, so callers can branch
on ``exc.kind`` instead of sniffing exception types or message text.

Propagation policy:

- ``AuthError`` and ``InitializationTimeoutError`` reach the UI unchanged.
- ``ProtocolError`` and ``BusinessError`` raised during user initialisation
  are wrapped into a single ``InitializationError`` by the orchestrators.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Optional


class ErrorKind(StrEnum):
    """Closed set of error categories surfaced by the client core."""

    AUTH = "auth"
    PROTOCOL = "protocol"
    BUSINESS = "business"
    TIMEOUT = "timeout"
    INITIALIZATION = "initialization"
    NOT_AUTHENTICATED = "not_authenticated"
    DATA = "data"


class JournalClientError(Exception):
    """Base class for all client-core errors."""

    kind: ErrorKind = ErrorKind.DATA

    def __init__(self, message: str, original_error: Optional[BaseException] = None) -> None:
        self.message: str = message
        self.original_error: Optional[BaseException] = original_error
        super().__init__(self.message)


class AuthError(JournalClientError):
    """Remote-classified authentication / authorisation failure.

    Always carries the raw remote message so it can be translated by
    :mod:`journal.services.error_mapper`.
    """

    kind = ErrorKind.AUTH

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        code: Optional[str] = None,
        original_error: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message, original_error=original_error)
        self.status: Optional[int] = status
        self.code: Optional[str] = code


class ProtocolError(JournalClientError):
    """The remote API returned a structurally invalid response."""

    kind = ErrorKind.PROTOCOL


class BusinessError(JournalClientError):
    """A remote procedure explicitly reported ``success: false``."""

    kind = ErrorKind.BUSINESS


class InitializationTimeoutError(JournalClientError):
    """User initialisation did not finish within the allotted window."""

    kind = ErrorKind.TIMEOUT

    DEFAULT_MESSAGE: str = (
        "Account setup is taking longer than expected. "
        "Check your internet connection and try again."
    )

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(message or self.DEFAULT_MESSAGE)


class InitializationError(JournalClientError):
    """Uniform wrapper for every non-timeout initialisation failure."""

    kind = ErrorKind.INITIALIZATION

    @classmethod
    def wrap(cls, exc: JournalClientError) -> "InitializationError":
        return cls(f"initialization failed: {exc.message}", original_error=exc)


class NotAuthenticatedError(JournalClientError):
    """A data call was attempted without a current session."""

    kind = ErrorKind.NOT_AUTHENTICATED


class DataAccessError(JournalClientError):
    """A remote data call (table query or RPC) failed."""

    kind = ErrorKind.DATA
