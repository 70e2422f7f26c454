"""
Journal Domain Models.

Pydantic models for the ``journal_entries``, ``user_streaks`` and
``profiles`` tables and for the account-level RPC payloads.  Streak values
are computed server-side; the client only reads them.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator


class JournalEntry(BaseModel):
    """A single dated journal entry (``journal_entries`` row)."""

    id: UUID
    user_id: UUID
    content: str = ""
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class CreateJournalEntryRequest(BaseModel):
    """Insert payload; ``id`` and timestamps are filled in by the database."""

    content: str = Field(min_length=1)
    user_id: UUID

    @field_validator("content")
    @classmethod
    def _content_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Content is required.")
        return value


class UpdateJournalEntryRequest(BaseModel):
    """Partial update payload; only ``content`` is user-editable."""

    content: str


class UserStreak(BaseModel):
    """Server-computed writing streak (``user_streaks`` row)."""

    user_id: UUID
    current_streak: int = 0
    longest_streak: int = 0
    last_entry_date: Optional[date] = None

    model_config = {"from_attributes": True}


class UserProfile(BaseModel):
    """A ``profiles`` row; ``id`` equals the auth user id."""

    id: UUID
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# ---------------------------------------------------------------------------
# Account RPC payloads
# ---------------------------------------------------------------------------

class ExportedEntry(BaseModel):
    id: UUID
    created_at: datetime
    content: str = ""


class ExportDataResponse(BaseModel):
    """Body of the ``export_journal_entries`` RPC."""

    total_entries: int = 0
    exported_at: datetime
    entries: list[ExportedEntry] = Field(default_factory=list)


class DeleteAccountResponse(BaseModel):
    """Body of the ``delete_my_account`` RPC."""

    success: bool
    message: str = ""


DELETE_CONFIRMATION_PHRASE: str = "delete my data"


class DeleteAccountRequest(BaseModel):
    """Client-side confirmation collected before account deletion.

    The RPC itself takes no body (the user id comes from the JWT); this
    model only gates the call.
    """

    confirmation_phrase: str
    has_exported_data: bool = False

    @property
    def is_confirmed(self) -> bool:
        return self.confirmation_phrase.strip() == DELETE_CONFIRMATION_PHRASE
