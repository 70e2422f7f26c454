"""
Rate-Limit Retry Policy.

Wraps a failable async remote call with bounded exponential backoff that
triggers **only** on rate-limit responses.  Any other error fails fast on
its first occurrence and consumes no retry budget.  Errors are never
wrapped: callers always see the original exception type.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Optional, TypeVar

from journal.logger import StructuredLogger

T = TypeVar("T")

RATE_LIMIT_STATUS: int = 429
RATE_LIMIT_CODE: str = "over_request_rate_limit"

SleepFn = Callable[[float], Awaitable[None]]


def is_rate_limit_error(error: BaseException) -> bool:
    """Return ``True`` when *error* is a rate-limit response.

    Checks the structured ``status`` / ``code`` attributes exposed by the
    auth client errors first, then falls back to the message text (the
    GoTrue error body embeds the HTTP status and error code).
    """
    status = getattr(error, "status", None)
    if status is not None:
        try:
            if int(status) == RATE_LIMIT_STATUS:
                return True
        except (TypeError, ValueError):
            pass

    if getattr(error, "code", None) == RATE_LIMIT_CODE:
        return True

    message = getattr(error, "message", None) or str(error)
    return str(RATE_LIMIT_STATUS) in message or RATE_LIMIT_CODE in message


class RetryPolicy:
    """Bounded exponential backoff for rate-limited remote calls.

    The wait after failed attempt *n* (1-based) is ``2**n`` seconds plus
    ``base_delay``.  With the defaults that is 2.5 s, then 4.5 s.

    Parameters
    ----------
    logger:
        Structured JSON logger; each retry is logged as a warning.
    max_attempts:
        Total number of attempts, including the first one.
    base_delay:
        Constant added to every backoff interval, in seconds.
    sleep:
        Awaitable used to wait between attempts.  Defaults to
        ``asyncio.sleep``; the wait is a cooperative yield.
    """

    def __init__(
        self,
        logger: StructuredLogger,
        max_attempts: int = 3,
        base_delay: float = 0.5,
        sleep: Optional[SleepFn] = None,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self._logger: StructuredLogger = logger
        self._max_attempts: int = max_attempts
        self._base_delay: float = base_delay
        self._sleep: SleepFn = sleep or asyncio.sleep

    @property
    def max_attempts(self) -> int:
        return self._max_attempts

    def backoff_delay(self, attempt: int) -> float:
        """Seconds to wait after failed attempt number *attempt* (1-based)."""
        return float(2 ** attempt) + self._base_delay

    async def execute_with_retry(
        self,
        action: Callable[[], Awaitable[T]],
        operation_name: str = "remote call",
    ) -> T:
        """Run *action*, retrying only while it fails with a rate limit.

        Parameters
        ----------
        action:
            Zero-argument callable returning a fresh awaitable per attempt.
        operation_name:
            Label used in log messages.

        Returns
        -------
        T
            The value produced by the first successful attempt.

        Raises
        ------
        Exception
            The original error of the first non-rate-limit failure, or of
            the final attempt once the budget is exhausted.
        """
        attempt = 0
        while True:
            attempt += 1
            try:
                return await action()
            except Exception as exc:
                if not is_rate_limit_error(exc) or attempt >= self._max_attempts:
                    if attempt > 1:
                        self._logger.warning(
                            "%s failed after %d attempt(s): %s",
                            operation_name,
                            attempt,
                            exc,
                        )
                    raise

                delay = self.backoff_delay(attempt)
                self._logger.warning(
                    "Rate limit hit during %s (attempt %d/%d). "
                    "Waiting %.1fs before retry. Error: %s",
                    operation_name,
                    attempt,
                    self._max_attempts,
                    delay,
                    exc,
                    extra={"event": "RATE_LIMIT_RETRY"},
                )
                await self._sleep(delay)
