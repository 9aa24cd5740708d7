"""
Tests for retry configuration and the async retry helper.
"""

from unittest.mock import AsyncMock, patch

import httpx
import pytest

from dataview.core.remote.retry import RetryConfig, is_retryable_error, retry_async


def _status_error(status_code: int) -> httpx.HTTPStatusError:
    request = httpx.Request("GET", "https://api.example.com/contacts")
    response = httpx.Response(status_code, request=request)
    return httpx.HTTPStatusError("error", request=request, response=response)


class TestRetryConfig:
    """Test RetryConfig validation and delay calculation."""

    def test_defaults(self):
        """Defaults match the documented values."""
        config = RetryConfig()
        assert config.max_retries == 3
        assert config.base_delay == 1.0
        assert config.multiplier == 2.0

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"max_retries": -1},
            {"base_delay": 0},
            {"multiplier": 0.5},
            {"jitter_ratio": 1.5},
        ],
    )
    def test_invalid_values(self, kwargs):
        """Invalid parameters raise ValueError."""
        with pytest.raises(ValueError, match="Invalid retry settings"):
            RetryConfig(**kwargs)

    def test_zero_retries_allowed(self):
        """max_retries=0 disables retrying."""
        assert RetryConfig(max_retries=0).max_retries == 0

    def test_exponential_delay_without_jitter(self):
        """Delays double per attempt."""
        config = RetryConfig(base_delay=0.5, jitter=False)
        assert [config.calculate_delay(n) for n in range(3)] == [0.5, 1.0, 2.0]

    def test_jitter_stays_in_range(self):
        """Jittered delays stay within the ratio."""
        config = RetryConfig(base_delay=1.0, jitter_ratio=0.2)
        for _ in range(50):
            assert 0.8 <= config.calculate_delay(0) <= 1.2


class TestIsRetryableError:
    """Test error classification."""

    def test_server_errors_retryable(self):
        assert is_retryable_error(_status_error(500)) is True
        assert is_retryable_error(_status_error(503)) is True

    def test_client_errors_not_retryable(self):
        assert is_retryable_error(_status_error(404)) is False
        assert is_retryable_error(_status_error(422)) is False

    def test_transport_errors_retryable(self):
        request = httpx.Request("GET", "https://api.example.com")
        assert is_retryable_error(httpx.ConnectError("x", request=request)) is True
        assert is_retryable_error(httpx.ReadTimeout("x", request=request)) is True

    def test_other_errors_not_retryable(self):
        assert is_retryable_error(ValueError("x")) is False

    def test_non_idempotent_unknown_outcome_not_retryable(self):
        """Timeouts and transport errors may hide an applied request."""
        request = httpx.Request("POST", "https://api.example.com")
        connect = httpx.ConnectError("x", request=request)
        timeout = httpx.ReadTimeout("x", request=request)
        assert is_retryable_error(connect, idempotent=False) is False
        assert is_retryable_error(timeout, idempotent=False) is False

    def test_non_idempotent_only_unavailable_retryable(self):
        """Only a 503 proves a non-idempotent request was not processed."""
        assert is_retryable_error(_status_error(503), idempotent=False) is True
        assert is_retryable_error(_status_error(500), idempotent=False) is False
        assert is_retryable_error(_status_error(502), idempotent=False) is False
        assert is_retryable_error(_status_error(409), idempotent=False) is False


class TestRetryAsync:
    """Test retry_async."""

    @pytest.mark.asyncio
    async def test_success_first_try(self):
        """A successful call is awaited once."""
        func = AsyncMock(return_value="ok")
        assert await retry_async(func, RetryConfig()) == "ok"
        assert func.await_count == 1

    @pytest.mark.asyncio
    async def test_retries_with_backoff(self):
        """Transient errors are retried after the computed delays."""
        func = AsyncMock(side_effect=[_status_error(502), _status_error(502), "ok"])
        config = RetryConfig(max_retries=3, base_delay=1.0, jitter=False)

        with patch("dataview.core.remote.retry.asyncio.sleep", new=AsyncMock()) as sleep:
            assert await retry_async(func, config) == "ok"

        assert [c.args[0] for c in sleep.await_args_list] == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_non_retryable_raised_immediately(self):
        """Client errors are not retried."""
        func = AsyncMock(side_effect=_status_error(400))

        with pytest.raises(httpx.HTTPStatusError):
            await retry_async(func, RetryConfig(base_delay=0.001))
        assert func.await_count == 1

    @pytest.mark.asyncio
    async def test_gives_up_after_max_retries(self, caplog):
        """The last error is raised once retries are exhausted."""
        func = AsyncMock(side_effect=_status_error(503))

        with patch("dataview.core.remote.retry.asyncio.sleep", new=AsyncMock()):
            with pytest.raises(httpx.HTTPStatusError):
                await retry_async(func, RetryConfig(max_retries=2), description="GET /x")

        assert func.await_count == 3
        assert "GET /x: Max retries (2) exceeded" in caplog.text

    @pytest.mark.asyncio
    async def test_non_idempotent_transport_error_raised_immediately(self):
        """A request that must not run twice is not resent after a lost connection."""
        request = httpx.Request("POST", "https://api.example.com/contacts")
        func = AsyncMock(side_effect=httpx.ConnectError("reset", request=request))

        with patch("dataview.core.remote.retry.asyncio.sleep", new=AsyncMock()) as sleep:
            with pytest.raises(httpx.ConnectError):
                await retry_async(func, RetryConfig(), idempotent=False)

        assert func.await_count == 1
        sleep.assert_not_awaited()
