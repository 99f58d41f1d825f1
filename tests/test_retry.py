"""Tests for retry mechanism with exponential backoff."""

from unittest.mock import AsyncMock, patch

import httpx
import pytest

from oracle.app.ledger.retry import RetryPolicy, with_retry


def _status_error(status_code: int) -> httpx.HTTPStatusError:
    request = httpx.Request("POST", "http://ledger.test")
    response = httpx.Response(status_code, request=request)
    return httpx.HTTPStatusError("error", request=request, response=response)


class TestRetryPolicy:

    def test_default_values(self):
        policy = RetryPolicy()

        assert policy.max_retries == 2
        assert policy.base_delay == 0.25
        assert policy.max_delay == 5.0
        assert policy.exponential_base == 2.0

    def test_calculate_delay(self):
        policy = RetryPolicy(base_delay=0.5, max_delay=10.0, exponential_base=2.0)

        assert policy.calculate_delay(0) == 0.5
        assert policy.calculate_delay(1) == 1.0
        assert policy.calculate_delay(2) == 2.0

    def test_calculate_delay_capped(self):
        policy = RetryPolicy(base_delay=1.0, max_delay=3.0)
        assert policy.calculate_delay(10) == 3.0

    def test_server_errors_retryable(self):
        policy = RetryPolicy()
        assert policy.is_retryable(_status_error(500)) is True
        assert policy.is_retryable(_status_error(503)) is True

    def test_client_errors_not_retryable(self):
        policy = RetryPolicy()
        assert policy.is_retryable(_status_error(400)) is False
        assert policy.is_retryable(_status_error(429)) is False

    def test_transport_errors_retryable(self):
        policy = RetryPolicy()
        assert policy.is_retryable(httpx.ConnectError("refused")) is True
        assert policy.is_retryable(httpx.ReadTimeout("slow")) is True

    def test_other_errors_not_retryable(self):
        assert RetryPolicy().is_retryable(ValueError("bad")) is False

    def test_from_settings(self):
        with patch("oracle.app.ledger.retry.settings") as mock_settings:
            mock_settings.rpc_max_retries = 5
            mock_settings.rpc_retry_base_delay = 0.1
            policy = RetryPolicy.from_settings()

        assert policy.max_retries == 5
        assert policy.base_delay == 0.1


class TestWithRetry:

    @pytest.mark.asyncio
    async def test_success_first_try(self):
        func = AsyncMock(return_value="ok")
        func.__name__ = "func"

        wrapped = with_retry(RetryPolicy(max_retries=3))(func)
        assert await wrapped() == "ok"
        assert func.call_count == 1

    @pytest.mark.asyncio
    async def test_retries_then_succeeds(self):
        func = AsyncMock(side_effect=[httpx.ConnectError("down"), httpx.ConnectError("down"), "ok"])
        func.__name__ = "func"

        with patch("oracle.app.ledger.retry.asyncio.sleep", new_callable=AsyncMock) as sleep:
            wrapped = with_retry(RetryPolicy(max_retries=3, base_delay=0.5))(func)
            assert await wrapped() == "ok"

        assert func.call_count == 3
        assert [c.args[0] for c in sleep.call_args_list] == [0.5, 1.0]

    @pytest.mark.asyncio
    async def test_gives_up_after_max_retries(self):
        func = AsyncMock(side_effect=httpx.ConnectError("down"))
        func.__name__ = "func"

        with patch("oracle.app.ledger.retry.asyncio.sleep", new_callable=AsyncMock):
            wrapped = with_retry(RetryPolicy(max_retries=2))(func)
            with pytest.raises(httpx.ConnectError):
                await wrapped()

        assert func.call_count == 3

    @pytest.mark.asyncio
    async def test_non_retryable_raises_immediately(self):
        func = AsyncMock(side_effect=ValueError("bad"))
        func.__name__ = "func"

        wrapped = with_retry(RetryPolicy(max_retries=3))(func)
        with pytest.raises(ValueError):
            await wrapped()

        assert func.call_count == 1
