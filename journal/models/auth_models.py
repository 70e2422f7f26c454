"""
Authentication Pipeline Models.

Pydantic models and enumerations for the contracts between the remote
auth client, the login / registration orchestrators and the UI layer.
"""

from __future__ import annotations

import re
from enum import StrEnum
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, model_validator

from journal.models.session import Session


# ---------------------------------------------------------------------------
# Orchestrator progress
# ---------------------------------------------------------------------------

class LoginState(StrEnum):
    """Linear progress of a single login / registration attempt."""

    IDLE = "idle"
    SIGNING_IN = "signing_in"
    INITIALIZING = "initializing"
    COMPLETE = "complete"
    FAILED = "failed"


# ---------------------------------------------------------------------------
# Remote auth responses
# ---------------------------------------------------------------------------

class AuthResponse(BaseModel):
    """Normalised result of a remote sign-in or sign-up call.

    ``user_id`` is ``None`` when the remote API violated its contract and
    returned no user; the orchestrators treat that as a protocol error.
    ``session`` is ``None`` when the server withheld tokens (sign-up with
    mandatory email confirmation).
    """

    user_id: Optional[UUID] = None
    email: Optional[str] = None
    session: Optional[Session] = None

    @property
    def access_token(self) -> Optional[str]:
        return self.session.access_token if self.session else None

    @property
    def refresh_token(self) -> Optional[str]:
        return self.session.refresh_token if self.session else None


class InitializationResult(BaseModel):
    """Body of the ``initialize_new_user`` RPC.

    Field names are matched case-insensitively (``Success`` and
    ``success`` are equivalent), mirroring how the server payload has
    been observed across migrations.
    """

    success: bool
    user_id: Optional[UUID] = None
    message: Optional[str] = None
    error: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def _lowercase_keys(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {
                (key.lower() if isinstance(key, str) else key): value
                for key, value in data.items()
            }
        return data


class RegistrationResult(BaseModel):
    """Outcome of a successful registration.

    Attributes
    ----------
    user_id:
        UUID of the newly created account.
    requires_email_confirmation:
        ``True`` when the server did not issue a session; the UI must show
        the "confirm your email" state instead of entering the app.
    """

    user_id: UUID
    requires_email_confirmation: bool


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

class ValidationResult(BaseModel):
    """Result of a single client-side field validation check."""

    is_valid: bool
    error_message: Optional[str] = None


_UPPER_RE: re.Pattern[str] = re.compile(r"[A-Z]")
_LOWER_RE: re.Pattern[str] = re.compile(r"[a-z]")
_DIGIT_RE: re.Pattern[str] = re.compile(r"\d")


class ChangePasswordRequest(BaseModel):
    """Password-change form payload.

    Policy: at least 8 characters, one uppercase letter, one lowercase
    letter and one digit; the confirmation must match.
    """

    current_password: str
    new_password: str
    confirm_password: str

    def validate_request(self) -> ValidationResult:
        if not self.current_password:
            return ValidationResult(
                is_valid=False, error_message="Aktualne hasło jest wymagane",
            )
        if not self.new_password:
            return ValidationResult(
                is_valid=False, error_message="Nowe hasło jest wymagane",
            )
        if len(self.new_password) < 8:
            return ValidationResult(
                is_valid=False,
                error_message="Hasło musi mieć co najmniej 8 znaków",
            )
        if not (
            _UPPER_RE.search(self.new_password)
            and _LOWER_RE.search(self.new_password)
            and _DIGIT_RE.search(self.new_password)
        ):
            return ValidationResult(
                is_valid=False,
                error_message=(
                    "Hasło musi zawierać co najmniej jedną wielką literę, "
                    "jedną małą literę i jedną cyfrę"
                ),
            )
        if self.new_password != self.confirm_password:
            return ValidationResult(
                is_valid=False, error_message="Hasła muszą być identyczne",
            )
        return ValidationResult(is_valid=True)
