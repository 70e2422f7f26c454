"""Repository layer: remote data access for the journal client."""

from journal.repositories.account_repository import AccountRepository
from journal.repositories.base_repository import BaseRepository
from journal.repositories.journal_entry_repository import JournalEntryRepository

__all__ = [
    "AccountRepository",
    "BaseRepository",
    "JournalEntryRepository",
]
