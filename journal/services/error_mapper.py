"""
Auth Error Mapper.

Translates raw remote error messages into a small fixed set of
user-facing (Polish) strings.  Matching is a case-insensitive substring
search over a priority-ordered pattern table; the first match wins and
anything unmatched falls back to a generic message.  The raw remote text
is never shown to the user; unmapped messages are logged instead.
"""

from __future__ import annotations

import logging
from typing import Optional

from journal.errors import AuthError, InitializationTimeoutError

# Child of the "journal" logger, so records reach its JSON handlers.
logger = logging.getLogger("journal.error_mapper")

# ---------------------------------------------------------------------------
# User-facing messages
# ---------------------------------------------------------------------------

LOGIN_INVALID_CREDENTIALS: str = "Nieprawidłowy e-mail lub hasło."
LOGIN_EMAIL_NOT_CONFIRMED: str = "Potwierdź adres e-mail, zanim spróbujesz się zalogować."
LOGIN_RATE_LIMITED: str = "Zbyt wiele prób logowania. Spróbuj ponownie za kilka minut."
LOGIN_CONNECTION_PROBLEM: str = "Problem z połączeniem. Sprawdź internet i spróbuj ponownie."
LOGIN_GENERIC_FAILURE: str = "Nie udało się zalogować. Spróbuj ponownie później."

# Connectivity is not specific to one flow; registration and settings reuse it.
CONNECTION_PROBLEM: str = LOGIN_CONNECTION_PROBLEM

REGISTRATION_USER_EXISTS: str = "Użytkownik o tym adresie e-mail już istnieje."
REGISTRATION_WEAK_PASSWORD: str = "Podane hasło jest zbyt słabe."
REGISTRATION_RATE_LIMITED: str = "Osiągnięto limit rejestracji. Spróbuj ponownie za kilka minut."
REGISTRATION_GENERIC_FAILURE: str = "Nie udało się utworzyć konta. Sprawdź dane i spróbuj ponownie."

LOGIN_MESSAGES: frozenset[str] = frozenset({
    LOGIN_INVALID_CREDENTIALS,
    LOGIN_EMAIL_NOT_CONFIRMED,
    LOGIN_RATE_LIMITED,
    LOGIN_CONNECTION_PROBLEM,
    LOGIN_GENERIC_FAILURE,
})
REGISTRATION_MESSAGES: frozenset[str] = frozenset({
    REGISTRATION_USER_EXISTS,
    REGISTRATION_WEAK_PASSWORD,
    REGISTRATION_RATE_LIMITED,
    REGISTRATION_GENERIC_FAILURE,
})

# Priority-ordered: (substrings, user-facing message).
_LOGIN_PATTERNS: tuple[tuple[tuple[str, ...], str], ...] = (
    (
        (
            "invalid login credentials",
            "invalid login",
            "invalid credentials",
            "incorrect password",
            "wrong password",
        ),
        LOGIN_INVALID_CREDENTIALS,
    ),
    (
        (
            "email not confirmed",
            "email confirmation",
            "confirm your email",
            "verify your email",
            "unverified",
        ),
        LOGIN_EMAIL_NOT_CONFIRMED,
    ),
    (("rate limit", "too many"), LOGIN_RATE_LIMITED),
    (("timeout", "network", "connection"), LOGIN_CONNECTION_PROBLEM),
)


# ---------------------------------------------------------------------------
# Pure mappers
# ---------------------------------------------------------------------------

def map_login_error(message: Optional[str]) -> str:
    """Return the user-facing text for a failed sign-in."""
    lowered = (message or "").lower()
    for patterns, friendly in _LOGIN_PATTERNS:
        if any(pattern in lowered for pattern in patterns):
            return friendly

    logger.warning("Unmapped login error: %s", message)
    return LOGIN_GENERIC_FAILURE


def map_registration_error(message: Optional[str]) -> str:
    """Return the user-facing text for a failed registration."""
    lowered = (message or "").lower()
    if "already registered" in lowered or "already exists" in lowered:
        return REGISTRATION_USER_EXISTS
    if "password" in lowered and "weak" in lowered:
        return REGISTRATION_WEAK_PASSWORD
    if "email rate limit" in lowered:
        return REGISTRATION_RATE_LIMITED

    logger.warning("Unmapped registration error: %s", message)
    return REGISTRATION_GENERIC_FAILURE


# ---------------------------------------------------------------------------
# Exception helpers for the UI layer
# ---------------------------------------------------------------------------

def describe_login_failure(exc: BaseException) -> str:
    """Map any exception raised by the login flow to a display string."""
    if isinstance(exc, InitializationTimeoutError):
        return exc.message
    if isinstance(exc, AuthError):
        return map_login_error(exc.message)
    if isinstance(exc, (ConnectionError, TimeoutError)):
        return LOGIN_CONNECTION_PROBLEM
    logger.error("Login failed: %s", exc)
    return LOGIN_GENERIC_FAILURE


def describe_registration_failure(exc: BaseException) -> str:
    """Map any exception raised by the registration flow to a display string."""
    if isinstance(exc, InitializationTimeoutError):
        return exc.message
    if isinstance(exc, AuthError):
        return map_registration_error(exc.message)
    if isinstance(exc, (ConnectionError, TimeoutError)):
        return CONNECTION_PROBLEM
    logger.error("Registration failed: %s", exc)
    return REGISTRATION_GENERIC_FAILURE
