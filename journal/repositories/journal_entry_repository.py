"""
Journal Entry Repository.

Reads and writes the signed-in user's ``journal_entries`` rows and reads
the server-computed ``user_streaks`` row.  Row-level security restricts
every query to the caller's own rows; the explicit ``user_id`` filters
keep the intent visible and the queries cheap.
"""

from __future__ import annotations

from typing import Optional
from uuid import UUID

from journal.models.journal_models import (
    CreateJournalEntryRequest,
    JournalEntry,
    UpdateJournalEntryRequest,
    UserStreak,
)
from journal.errors import DataAccessError
from journal.repositories.base_repository import BaseRepository
from journal.session_guard import require_session


class JournalEntryRepository(BaseRepository):
    """Data access layer for journal entries and streaks."""

    TABLE = "journal_entries"
    STREAK_TABLE = "user_streaks"

    @require_session
    async def list_entries(self) -> list[JournalEntry]:
        """All of the user's entries, newest first."""
        user_id = self._current_user_id()

        async def _query() -> list[JournalEntry]:
            response = await (
                self.supabase.table(self.TABLE)
                .select("*")
                .eq("user_id", str(user_id))
                .order("created_at", desc=True)
                .execute()
            )
            return [JournalEntry.model_validate(row) for row in response.data or []]

        return await self._execute(_query, operation_name=f"list ({self.TABLE})")

    @require_session
    async def has_entries(self) -> bool:
        user_id = self._current_user_id()

        async def _query() -> bool:
            response = await (
                self.supabase.table(self.TABLE)
                .select("id")
                .eq("user_id", str(user_id))
                .limit(1)
                .execute()
            )
            return bool(response.data)

        return await self._execute(_query, operation_name=f"has_entries ({self.TABLE})")

    @require_session
    async def create(self, request: CreateJournalEntryRequest) -> JournalEntry:
        """Insert a new entry and return the stored row."""

        async def _query() -> JournalEntry:
            response = await (
                self.supabase.table(self.TABLE)
                .insert(request.model_dump(mode="json"))
                .execute()
            )
            if not response.data:
                raise DataAccessError("Insert returned no row.")
            return JournalEntry.model_validate(response.data[0])

        entry = await self._execute(_query, operation_name=f"create ({self.TABLE})")
        self._logger.info("Created journal entry %s.", entry.id)
        return entry

    @require_session
    async def update(self, entry_id: UUID, request: UpdateJournalEntryRequest) -> JournalEntry:
        """Replace an entry's content.

        Raises
        ------
        DataAccessError
            The entry does not exist or belongs to another user.
        """

        async def _query() -> JournalEntry:
            response = await (
                self.supabase.table(self.TABLE)
                .update(request.model_dump(mode="json"))
                .eq("id", str(entry_id))
                .execute()
            )
            if not response.data:
                raise DataAccessError(f"Journal entry {entry_id} not found.")
            return JournalEntry.model_validate(response.data[0])

        return await self._execute(_query, operation_name=f"update ({self.TABLE})")

    @require_session
    async def delete(self, entry_id: UUID) -> None:
        async def _query() -> None:
            await (
                self.supabase.table(self.TABLE)
                .delete()
                .eq("id", str(entry_id))
                .execute()
            )

        await self._execute(_query, operation_name=f"delete ({self.TABLE})")
        self._logger.info("Deleted journal entry %s.", entry_id)

    @require_session
    async def get_streak(self) -> Optional[UserStreak]:
        """The user's streak row, or ``None`` before the first entry."""
        user_id = self._current_user_id()

        async def _query() -> Optional[UserStreak]:
            response = await (
                self.supabase.table(self.STREAK_TABLE)
                .select("*")
                .eq("user_id", str(user_id))
                .limit(1)
                .execute()
            )
            rows = response.data or []
            return UserStreak.model_validate(rows[0]) if rows else None

        return await self._execute(_query, operation_name=f"get_streak ({self.STREAK_TABLE})")
