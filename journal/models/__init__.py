"""
Data Models Package.

Re-exports all Pydantic models for convenient imports:
    from journal.models import Session, InitializationResult, JournalEntry
"""

from journal.models.session import Session
from journal.models.auth_models import (
    AuthResponse,
    ChangePasswordRequest,
    InitializationResult,
    LoginState,
    RegistrationResult,
    ValidationResult,
)
from journal.models.journal_models import (
    CreateJournalEntryRequest,
    DeleteAccountRequest,
    DeleteAccountResponse,
    ExportDataResponse,
    ExportedEntry,
    JournalEntry,
    UpdateJournalEntryRequest,
    UserProfile,
    UserStreak,
)

__all__ = [
    "AuthResponse",
    "ChangePasswordRequest",
    "CreateJournalEntryRequest",
    "DeleteAccountRequest",
    "DeleteAccountResponse",
    "ExportDataResponse",
    "ExportedEntry",
    "InitializationResult",
    "JournalEntry",
    "LoginState",
    "RegistrationResult",
    "Session",
    "UpdateJournalEntryRequest",
    "UserProfile",
    "UserStreak",
    "ValidationResult",
]
