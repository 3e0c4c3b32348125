"""Unit tests for retry with exponential backoff."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from src.utils.retry import calculate_backoff_delay, retry_with_backoff


class TestCalculateBackoffDelay:
    """Test backoff arithmetic."""

    def test_exponential_growth(self):
        delays = [calculate_backoff_delay(a, 1.0, 60.0, 2.0, jitter=False) for a in range(4)]
        assert delays == [1.0, 2.0, 4.0, 8.0]

    def test_capped_at_max_delay(self):
        assert calculate_backoff_delay(10, 1.0, 5.0, 2.0, jitter=False) == 5.0

    def test_jitter_within_bounds(self):
        for _ in range(20):
            delay = calculate_backoff_delay(1, 1.0, 60.0, 2.0, jitter=True)
            assert 1.0 <= delay <= 3.0


class TestRetryWithBackoff:
    """Test the retry_with_backoff decorator."""

    @pytest.mark.asyncio
    async def test_success_first_try(self):
        func = AsyncMock(return_value="ok")
        func.__name__ = "probe"

        assert await retry_with_backoff(base_delay=0)(func)() == "ok"
        assert func.await_count == 1

    @pytest.mark.asyncio
    async def test_retries_until_success(self):
        func = AsyncMock(side_effect=[ConnectionError("a"), ConnectionError("b"), "ok"])
        func.__name__ = "probe"
        on_retry = MagicMock()

        wrapped = retry_with_backoff(max_attempts=3, base_delay=0, on_retry=on_retry)(func)

        assert await wrapped() == "ok"
        assert func.await_count == 3
        assert on_retry.call_count == 2

    @pytest.mark.asyncio
    async def test_reraises_last_error(self):
        func = AsyncMock(side_effect=ConnectionError("down"))
        func.__name__ = "probe"

        with pytest.raises(ConnectionError, match="down"):
            await retry_with_backoff(max_attempts=2, base_delay=0)(func)()
        assert func.await_count == 2

    @pytest.mark.asyncio
    async def test_non_matching_exception_not_retried(self):
        func = AsyncMock(side_effect=KeyError("bug"))
        func.__name__ = "probe"

        with pytest.raises(KeyError):
            await retry_with_backoff(max_attempts=3, base_delay=0, exceptions=(ConnectionError,))(func)()
        assert func.await_count == 1

    def test_invalid_max_attempts(self):
        with pytest.raises(ValueError, match="max_attempts"):
            retry_with_backoff(max_attempts=0)
