"""
Tests for RetryPolicy: rate-limit classification, retry bound and
fail-fast passthrough of every other error.
"""

from unittest.mock import AsyncMock, call

import pytest

from journal.errors import AuthError
from journal.services.retry_policy import RetryPolicy, is_rate_limit_error


@pytest.fixture
def sleep():
    return AsyncMock()


@pytest.fixture
def policy(logger, sleep):
    return RetryPolicy(logger=logger, max_attempts=3, base_delay=0.5, sleep=sleep)


class TestRateLimitClassification:

    @pytest.mark.parametrize(
        "error",
        [
            AuthError("Too many requests", status=429),
            AuthError("slow down", code="over_request_rate_limit"),
            Exception("HTTP 429: Too Many Requests"),
            Exception("over_request_rate_limit: Request rate limit reached"),
        ],
    )
    def test_rate_limit_errors_are_recognised(self, error):
        assert is_rate_limit_error(error)

    @pytest.mark.parametrize(
        "error",
        [
            AuthError("Invalid login credentials", status=400),
            AuthError("User already registered", status=422, code="user_already_exists"),
            ValueError("boom"),
            ConnectionError("Connection refused"),
        ],
    )
    def test_other_errors_are_not_rate_limits(self, error):
        assert not is_rate_limit_error(error)


class TestRetryBound:

    @pytest.mark.asyncio
    async def test_always_rate_limited_makes_exactly_max_attempts(self, policy, sleep):
        error = AuthError("Request rate limit reached", status=429)
        action = AsyncMock(side_effect=error)

        with pytest.raises(AuthError) as exc_info:
            await policy.execute_with_retry(action)

        assert exc_info.value is error
        assert action.await_count == 3
        assert sleep.await_args_list == [call(2.5), call(4.5)]

    @pytest.mark.asyncio
    async def test_success_on_second_attempt(self, policy, sleep):
        action = AsyncMock(side_effect=[AuthError("429 Too Many Requests"), "signed-in"])

        result = await policy.execute_with_retry(action, operation_name="sign-in")

        assert result == "signed-in"
        assert action.await_count == 2
        sleep.assert_awaited_once_with(2.5)

    @pytest.mark.asyncio
    async def test_first_attempt_success_does_not_sleep(self, policy, sleep):
        action = AsyncMock(return_value=42)

        assert await policy.execute_with_retry(action) == 42
        assert action.await_count == 1
        sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_single_attempt_policy_never_retries(self, logger, sleep):
        policy = RetryPolicy(logger=logger, max_attempts=1, sleep=sleep)
        action = AsyncMock(side_effect=AuthError("rate limit", status=429))

        with pytest.raises(AuthError):
            await policy.execute_with_retry(action)

        assert action.await_count == 1
        sleep.assert_not_awaited()

    def test_backoff_delay_grows_exponentially(self, policy):
        assert policy.backoff_delay(1) == 2.5
        assert policy.backoff_delay(2) == 4.5
        assert policy.backoff_delay(3) == 8.5

    def test_rejects_zero_attempts(self, logger):
        with pytest.raises(ValueError):
            RetryPolicy(logger=logger, max_attempts=0)


class TestNonRetryPassthrough:

    @pytest.mark.asyncio
    async def test_non_rate_limit_error_fails_fast_unchanged(self, policy, sleep):
        error = ValueError("boom")
        action = AsyncMock(side_effect=error)

        with pytest.raises(ValueError) as exc_info:
            await policy.execute_with_retry(action)

        assert exc_info.value is error
        assert action.await_count == 1
        sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_auth_error_is_not_wrapped(self, policy):
        error = AuthError("Invalid login credentials", status=400)
        action = AsyncMock(side_effect=error)

        with pytest.raises(AuthError) as exc_info:
            await policy.execute_with_retry(action)

        assert exc_info.value is error

    @pytest.mark.asyncio
    async def test_rate_limit_then_other_error_stops_immediately(self, policy, sleep):
        action = AsyncMock(
            side_effect=[AuthError("rate limit", status=429), KeyError("user")]
        )

        with pytest.raises(KeyError):
            await policy.execute_with_retry(action)

        assert action.await_count == 2
        sleep.assert_awaited_once()


class TestDefaultSleep:

    @pytest.mark.asyncio
    async def test_defaults_to_patched_asyncio_sleep(self, logger, monkeypatch):
        patched_sleep = AsyncMock()
        monkeypatch.setattr("journal.services.retry_policy.asyncio.sleep", patched_sleep)
        policy = RetryPolicy(logger=logger)
        action = AsyncMock(side_effect=[AuthError("x", status=429), "ok"])

        assert await policy.execute_with_retry(action) == "ok"
        patched_sleep.assert_awaited_once_with(2.5)
