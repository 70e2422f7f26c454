"""
Tests for SessionStore: cache-first reads, background persistence,
corrupt-payload tolerance and write ordering.
"""

import asyncio
import json
import sqlite3
from unittest.mock import AsyncMock, MagicMock

import pytest

from journal.services.session_store import DEFAULT_SESSION_KEY, SessionStore


class TestSaveAndLoad:

    @pytest.mark.asyncio
    async def test_load_sync_sees_save_before_write_completes(self, logger, session):
        """The cached session is visible while the durable write is still blocked."""
        gate = asyncio.Event()

        async def _slow_set(key, value):
            await gate.wait()

        storage = MagicMock()
        storage.set_item = AsyncMock(side_effect=_slow_set)
        store = SessionStore(storage=storage, logger=logger)

        store.save(session)

        assert store.load_sync() is session
        assert store.load_sync().model_dump_json() == session.model_dump_json()
        assert store.has_pending_writes

        gate.set()
        await store.flush()
        assert not store.has_pending_writes
        storage.set_item.assert_awaited_once_with(DEFAULT_SESSION_KEY, session.model_dump_json())

    @pytest.mark.asyncio
    async def test_persisted_session_survives_restart(self, storage, logger, session):
        first = SessionStore(storage=storage, logger=logger)
        first.save(session)
        await first.flush()

        restarted = SessionStore(storage=storage, logger=logger)
        assert restarted.load_sync() is None

        loaded = await restarted.load_async()

        assert loaded == session
        assert restarted.load_sync() == session

    @pytest.mark.asyncio
    async def test_stored_payload_is_session_json(self, session_store, storage, session):
        session_store.save(session)
        await session_store.flush()

        raw = await storage.get_item(DEFAULT_SESSION_KEY)

        payload = json.loads(raw)
        assert payload["access_token"] == "access-1"
        assert payload["refresh_token"] == "refresh-1"
        assert payload["user_id"] == str(session.user_id)

    @pytest.mark.asyncio
    async def test_custom_storage_key(self, storage, logger, session):
        store = SessionStore(storage=storage, logger=logger, storage_key="custom.key")
        store.save(session)
        await store.flush()

        assert await storage.get_item("custom.key") is not None
        assert await storage.get_item(DEFAULT_SESSION_KEY) is None


class TestLoadAsyncFailures:

    @pytest.mark.asyncio
    async def test_absent_key_returns_none(self, session_store):
        assert await session_store.load_async() is None
        assert session_store.load_sync() is None

    @pytest.mark.asyncio
    async def test_corrupt_payload_is_treated_as_absence(self, session_store, storage):
        await storage.set_item(DEFAULT_SESSION_KEY, "{not valid json")

        assert await session_store.load_async() is None
        assert session_store.load_sync() is None

    @pytest.mark.asyncio
    async def test_payload_missing_fields_is_treated_as_absence(self, session_store, storage):
        await storage.set_item(DEFAULT_SESSION_KEY, json.dumps({"access_token": "only"}))

        assert await session_store.load_async() is None

    @pytest.mark.asyncio
    async def test_read_failure_returns_none_and_keeps_cache(self, logger, session):
        storage = MagicMock()
        storage.set_item = AsyncMock()
        storage.get_item = AsyncMock(side_effect=sqlite3.OperationalError("database is locked"))
        store = SessionStore(storage=storage, logger=logger)
        store.save(session)

        assert await store.load_async() is None
        assert store.load_sync() is session
        await store.flush()


class TestDestroy:

    @pytest.mark.asyncio
    async def test_destroy_clears_cache_immediately(self, session_store, session):
        session_store.save(session)
        session_store.destroy()

        assert session_store.load_sync() is None

    @pytest.mark.asyncio
    async def test_save_then_destroy_leaves_nothing_on_disk(self, session_store, storage, session):
        session_store.save(session)
        session_store.destroy()
        await session_store.flush()

        assert await storage.get_item(DEFAULT_SESSION_KEY) is None

    @pytest.mark.asyncio
    async def test_writes_reach_storage_in_call_order(self, logger, session_factory):
        calls = []

        async def _set(key, value):
            await asyncio.sleep(0.01)
            calls.append(("set", json.loads(value)["access_token"]))

        async def _remove(key):
            calls.append(("remove", None))

        storage = MagicMock()
        storage.set_item = AsyncMock(side_effect=_set)
        storage.remove_item = AsyncMock(side_effect=_remove)
        store = SessionStore(storage=storage, logger=logger)

        store.save(session_factory(access_token="first"))
        store.save(session_factory(access_token="second"))
        store.destroy()
        await store.flush()

        assert calls == [("set", "first"), ("set", "second"), ("remove", None)]


class TestWriteFailures:

    @pytest.mark.asyncio
    async def test_failed_write_is_logged_not_raised(self, logger, session):
        storage = MagicMock()
        storage.set_item = AsyncMock(side_effect=OSError("disk full"))
        store = SessionStore(storage=storage, logger=logger)

        store.save(session)
        await store.flush()

        assert store.load_sync() is session
        events = [
            call.kwargs.get("extra", {}).get("event")
            for call in logger.warning.call_args_list
        ]
        assert "SESSION_PERSIST_FAILED" in events

    @pytest.mark.asyncio
    async def test_failed_remove_is_logged_not_raised(self, logger, session):
        storage = MagicMock()
        storage.set_item = AsyncMock()
        storage.remove_item = AsyncMock(side_effect=OSError("read-only filesystem"))
        store = SessionStore(storage=storage, logger=logger)
        store.save(session)

        store.destroy()
        await store.flush()

        assert store.load_sync() is None
        assert logger.warning.called


class TestWithoutRunningLoop:

    def test_save_outside_event_loop_persists_inline(self, storage, logger, session):
        store = SessionStore(storage=storage, logger=logger)

        store.save(session)

        assert store.load_sync() is session
        assert not store.has_pending_writes
        raw = asyncio.run(storage.get_item(DEFAULT_SESSION_KEY))
        assert json.loads(raw)["user_id"] == str(session.user_id)
