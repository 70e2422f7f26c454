"""
Tests for RemoteAuthClient: response normalisation, error translation
and session ownership (persist on sign-in, destroy on sign-out and
token invalidation).
"""

from datetime import datetime, timezone
from uuid import UUID

import httpx
import pytest
from supabase import AuthApiError

from journal.errors import AuthError, NotAuthenticatedError
from journal.services.remote_auth import RemoteAuthClient
from journal.services.session_store import DEFAULT_SESSION_KEY, SessionStore

USER_ID = UUID("6f1c2c3e-8a4b-4d2e-9f10-2b3c4d5e6f70")


@pytest.fixture
def remote_auth(db, session_store, logger):
    return RemoteAuthClient(db=db, session_store=session_store, logger=logger)


class TestSignIn:

    @pytest.mark.asyncio
    async def test_sign_in_persists_session(
        self, remote_auth, supabase_client, session_store, storage, remote_auth_response
    ):
        supabase_client.auth.sign_in_with_password.return_value = remote_auth_response()

        result = await remote_auth.sign_in("writer@example.com", "Secret123")

        assert result.user_id == USER_ID
        assert result.access_token == "access-1"
        supabase_client.auth.sign_in_with_password.assert_awaited_once_with(
            {"email": "writer@example.com", "password": "Secret123"}
        )
        current = session_store.load_sync()
        assert current.user_id == USER_ID
        assert current.email == "writer@example.com"
        assert current.expires_at == datetime.fromtimestamp(1_900_000_000, tz=timezone.utc)

        await session_store.flush()
        assert await storage.get_item(DEFAULT_SESSION_KEY) is not None

    @pytest.mark.asyncio
    async def test_response_without_user_is_not_persisted(
        self, remote_auth, supabase_client, session_store, remote_auth_response
    ):
        supabase_client.auth.sign_in_with_password.return_value = remote_auth_response(
            user_id=None
        )

        result = await remote_auth.sign_in("writer@example.com", "Secret123")

        assert result.user_id is None
        assert result.session is None
        assert session_store.load_sync() is None

    @pytest.mark.asyncio
    async def test_remote_error_is_translated(self, remote_auth, supabase_client, session_store):
        remote_error = AuthApiError("Invalid login credentials", 400, "invalid_credentials")
        supabase_client.auth.sign_in_with_password.side_effect = remote_error

        with pytest.raises(AuthError) as exc_info:
            await remote_auth.sign_in("writer@example.com", "wrong")

        assert exc_info.value.message == "Invalid login credentials"
        assert exc_info.value.status == 400
        assert exc_info.value.code == "invalid_credentials"
        assert exc_info.value.original_error is remote_error
        assert session_store.load_sync() is None

    @pytest.mark.asyncio
    async def test_offline_raises_connection_error(self, offline_db, logger, storage):
        store = SessionStore(storage=storage, logger=logger)
        client = RemoteAuthClient(db=offline_db, session_store=store, logger=logger)

        with pytest.raises(ConnectionError):
            await client.sign_in("writer@example.com", "Secret123")


class TestSignUp:

    @pytest.mark.asyncio
    async def test_sign_up_never_persists(
        self, remote_auth, supabase_client, session_store, remote_auth_response
    ):
        supabase_client.auth.sign_up.return_value = remote_auth_response()

        result = await remote_auth.sign_up("new@example.com", "Secret123")

        assert result.session is not None
        assert session_store.load_sync() is None

    @pytest.mark.asyncio
    async def test_sign_up_with_confirmation_has_no_tokens(
        self, remote_auth, supabase_client, remote_auth_response
    ):
        supabase_client.auth.sign_up.return_value = remote_auth_response(access_token=None)

        result = await remote_auth.sign_up("new@example.com", "Secret123")

        assert result.user_id == USER_ID
        assert result.access_token is None
        assert result.refresh_token is None


class TestSessionLifecycle:

    @pytest.mark.asyncio
    async def test_set_session_persists(
        self, remote_auth, supabase_client, session_store, remote_auth_response
    ):
        supabase_client.auth.set_session.return_value = remote_auth_response()

        session = await remote_auth.set_session("access-1", "refresh-1")

        supabase_client.auth.set_session.assert_awaited_once_with("access-1", "refresh-1")
        assert session_store.load_sync() == session

    @pytest.mark.asyncio
    async def test_refresh_replaces_session(
        self, remote_auth, supabase_client, session_store, session, remote_auth_response
    ):
        session_store.save(session)
        supabase_client.auth.refresh_session.return_value = remote_auth_response(
            access_token="access-2", refresh_token="refresh-2"
        )

        refreshed = await remote_auth.refresh_session()

        supabase_client.auth.refresh_session.assert_awaited_once_with("refresh-1")
        assert refreshed.access_token == "access-2"
        assert session_store.load_sync().refresh_token == "refresh-2"

    @pytest.mark.asyncio
    async def test_revoked_refresh_token_destroys_session(
        self, remote_auth, supabase_client, session_store, session
    ):
        session_store.save(session)
        supabase_client.auth.refresh_session.side_effect = AuthApiError(
            "Invalid Refresh Token: Refresh Token Not Found", 400, "refresh_token_not_found"
        )

        with pytest.raises(AuthError):
            await remote_auth.refresh_session()

        assert session_store.load_sync() is None

    @pytest.mark.asyncio
    async def test_transient_refresh_failure_keeps_session(
        self, remote_auth, supabase_client, session_store, session
    ):
        session_store.save(session)
        supabase_client.auth.refresh_session.side_effect = AuthApiError(
            "Service unavailable", 503, None
        )

        with pytest.raises(AuthError):
            await remote_auth.refresh_session()

        assert session_store.load_sync() is session

    @pytest.mark.asyncio
    async def test_restore_keeps_session_when_network_is_down(
        self, remote_auth, supabase_client, session_store, session, storage
    ):
        await storage.set_item(DEFAULT_SESSION_KEY, session.model_dump_json())
        supabase_client.auth.set_session.side_effect = httpx.ConnectError(
            "Name or service not known"
        )

        restored = await remote_auth.restore_session()

        assert restored == session
        assert session_store.load_sync() == session

        await session_store.flush()
        assert await storage.get_item(DEFAULT_SESSION_KEY) is not None

    @pytest.mark.asyncio
    async def test_transport_failure_becomes_connection_error(
        self, remote_auth, supabase_client, session_store, session
    ):
        session_store.save(session)
        supabase_client.auth.refresh_session.side_effect = httpx.ReadTimeout("timed out")

        with pytest.raises(ConnectionError):
            await remote_auth.refresh_session()

        assert session_store.load_sync() is session

    @pytest.mark.asyncio
    async def test_refresh_without_session(self, remote_auth):
        with pytest.raises(NotAuthenticatedError):
            await remote_auth.refresh_session()

    @pytest.mark.asyncio
    async def test_restore_session_reinstalls_persisted_tokens(
        self, remote_auth, supabase_client, session_store, session, storage, remote_auth_response
    ):
        await storage.set_item(DEFAULT_SESSION_KEY, session.model_dump_json())
        supabase_client.auth.set_session.return_value = remote_auth_response(
            access_token="access-2", refresh_token="refresh-2"
        )

        restored = await remote_auth.restore_session()

        supabase_client.auth.set_session.assert_awaited_once_with("access-1", "refresh-1")
        assert restored.access_token == "access-2"
        assert session_store.load_sync().access_token == "access-2"

    @pytest.mark.asyncio
    async def test_restore_with_invalidated_token_discards_session(
        self, remote_auth, supabase_client, session_store, session, storage
    ):
        await storage.set_item(DEFAULT_SESSION_KEY, session.model_dump_json())
        supabase_client.auth.set_session.side_effect = AuthApiError(
            "Session not found", 404, "session_not_found"
        )

        assert await remote_auth.restore_session() is None
        assert session_store.load_sync() is None

        await session_store.flush()
        assert await storage.get_item(DEFAULT_SESSION_KEY) is None

    @pytest.mark.asyncio
    async def test_restore_with_nothing_persisted(self, remote_auth, supabase_client):
        assert await remote_auth.restore_session() is None
        supabase_client.auth.set_session.assert_not_awaited()


class TestSignOutAndPassword:

    @pytest.mark.asyncio
    async def test_sign_out_destroys_local_session(
        self, remote_auth, supabase_client, session_store, session
    ):
        session_store.save(session)

        await remote_auth.sign_out()

        supabase_client.auth.sign_out.assert_awaited_once()
        assert session_store.load_sync() is None

    @pytest.mark.asyncio
    async def test_failed_sign_out_still_destroys_local_session(
        self, remote_auth, supabase_client, session_store, session
    ):
        session_store.save(session)
        supabase_client.auth.sign_out.side_effect = AuthApiError("Server error", 500, None)

        with pytest.raises(AuthError):
            await remote_auth.sign_out()

        assert session_store.load_sync() is None

    @pytest.mark.asyncio
    async def test_update_password_requires_session(self, remote_auth):
        with pytest.raises(NotAuthenticatedError):
            await remote_auth.update_password("NewSecret123")

    @pytest.mark.asyncio
    async def test_update_password(self, remote_auth, supabase_client, session_store, session):
        session_store.save(session)

        await remote_auth.update_password("NewSecret123")

        supabase_client.auth.update_user.assert_awaited_once_with({"password": "NewSecret123"})

    @pytest.mark.asyncio
    async def test_weak_password_error_keeps_remote_message(
        self, remote_auth, supabase_client, session_store, session
    ):
        session_store.save(session)
        supabase_client.auth.update_user.side_effect = AuthApiError(
            "Password is known to be weak", 422, "weak_password"
        )

        with pytest.raises(AuthError, match="weak"):
            await remote_auth.update_password("password")
