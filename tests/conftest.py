"""
Pytest configuration and shared fixtures for the journal client tests.

Local storage runs against a real SQLite file in ``tmp_path``; the remote
Supabase client is a ``MagicMock`` whose awaited calls are ``AsyncMock``s.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock
from uuid import UUID

import pytest
import pytest_asyncio

from journal.database import DatabaseManager
from journal.logger import StructuredLogger
from journal.models.session import Session
from journal.schema import initialize_schema
from journal.services.session_store import SessionStore
from journal.storage import LocalStorage

USER_ID = UUID("6f1c2c3e-8a4b-4d2e-9f10-2b3c4d5e6f70")
USER_EMAIL = "writer@example.com"


@pytest.fixture
def logger():
    """A logger double; assertions inspect its ``info`` / ``warning`` calls."""
    return MagicMock(spec=StructuredLogger)


@pytest.fixture
def supabase_client():
    """Mocked async Supabase client with awaitable auth methods."""
    client = MagicMock()
    client.auth.sign_in_with_password = AsyncMock()
    client.auth.sign_up = AsyncMock()
    client.auth.sign_out = AsyncMock()
    client.auth.refresh_session = AsyncMock()
    client.auth.set_session = AsyncMock()
    client.auth.update_user = AsyncMock()
    return client


@pytest.fixture
def db(tmp_path, logger, supabase_client):
    """Database manager with a mocked remote client and a real SQLite file."""
    manager = DatabaseManager(
        supabase=supabase_client,
        sqlite_path=tmp_path / "journal_test.db",
        logger=logger,
    )
    initialize_schema(manager.sqlite, logger)
    yield manager
    manager.close()


@pytest.fixture
def offline_db(tmp_path, logger):
    """Database manager without a remote client."""
    manager = DatabaseManager(
        supabase=None,
        sqlite_path=tmp_path / "journal_offline.db",
        logger=logger,
    )
    initialize_schema(manager.sqlite, logger)
    yield manager
    manager.close()


@pytest.fixture
def storage(db):
    return LocalStorage(db)


@pytest_asyncio.fixture
async def session_store(storage, logger):
    """Session store over the SQLite storage; pending writes drain on teardown."""
    store = SessionStore(storage=storage, logger=logger)
    yield store
    await store.flush()


@pytest.fixture
def session_factory() -> Callable[..., Session]:
    def _make(**overrides) -> Session:
        values = {
            "access_token": "access-1",
            "refresh_token": "refresh-1",
            "user_id": USER_ID,
            "expires_at": datetime.now(timezone.utc) + timedelta(hours=1),
            "email": USER_EMAIL,
        }
        values.update(overrides)
        return Session(**values)

    return _make


@pytest.fixture
def session(session_factory) -> Session:
    return session_factory()


@pytest.fixture
def remote_auth_response():
    """Factory for supabase-py shaped ``AuthResponse`` objects."""

    def _make(
        user_id: object = USER_ID,
        email: str = USER_EMAIL,
        access_token: str | None = "access-1",
        refresh_token: str | None = "refresh-1",
        expires_at: int = 1_900_000_000,
    ) -> SimpleNamespace:
        user = None if user_id is None else SimpleNamespace(id=str(user_id), email=email)
        remote_session = None
        if access_token is not None:
            remote_session = SimpleNamespace(
                access_token=access_token,
                refresh_token=refresh_token,
                expires_at=expires_at,
                expires_in=3600,
                user=user,
            )
        return SimpleNamespace(user=user, session=remote_session)

    return _make
