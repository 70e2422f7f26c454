"""
Welcome Entry Service.

Seeds a brand-new journal with a short welcome entry.
"""

from __future__ import annotations

from journal.logger import StructuredLogger
from journal.models.journal_models import CreateJournalEntryRequest
from journal.repositories.journal_entry_repository import JournalEntryRepository
from journal.services.base_service import BaseService
from journal.services.session_store import SessionStore

WELCOME_CONTENT: str = (
    "Witaj w 10xJournal!\n"
    "\n"
    "To jest Twoja prywatna przestrzeń do myślenia i pisania, wolna od "
    "rozpraszaczy. Celem tej aplikacji jest pomóc Ci w budowaniu nawyku "
    "regularnego prowadzenia dziennika.\n"
    "\n"
    "Możesz edytować lub usunąć ten wpis. Kliknij przycisk 'Nowy wpis', "
    "aby rozpocząć swoją historię."
)


class WelcomeEntryService(BaseService):

    def __init__(
        self,
        repo: JournalEntryRepository,
        session_store: SessionStore,
        logger: StructuredLogger,
    ) -> None:
        super().__init__(logger)
        self._repo: JournalEntryRepository = repo
        self._session_store: SessionStore = session_store

    async def create_welcome_entry_if_needed(self) -> bool:
        """Create the welcome entry when the user has no entries yet.

        Returns ``True`` only when an entry was created.  Failures are
        logged and reported as ``False``; a missing welcome entry must
        never block sign-in.
        """
        session = self._session_store.load_sync()
        if session is None:
            self._logger.warning("Cannot create welcome entry: user not authenticated")
            return False

        try:
            if await self._repo.has_entries():
                self._logger.debug("User already has entries, skipping welcome entry creation")
                return False

            await self._repo.create(
                CreateJournalEntryRequest(content=WELCOME_CONTENT, user_id=session.user_id)
            )
        except Exception as exc:
            self._logger.error("Error creating welcome entry: %s", exc)
            return False

        self._logger.info("Welcome entry created for user %s", session.user_id)
        return True
