"""Unit tests for retry utilities."""

import pytest
from unittest.mock import AsyncMock, patch

from news_sync.core.exceptions import ProviderRateLimitedError, ProviderUnavailableError
from news_sync.utils.retry import backoff_delay, requested_delay, retry_async


@pytest.mark.asyncio
async def test_retry_async_success_first_attempt():
    """Test retry decorator with successful first attempt."""
    mock_func = AsyncMock(return_value="success")

    decorated = retry_async(max_attempts=3)(mock_func)
    result = await decorated()

    assert result == "success"
    assert mock_func.call_count == 1


@pytest.mark.asyncio
async def test_retry_async_success_after_failures():
    """Test retry decorator succeeds after initial failures."""
    call_count = 0

    async def sometimes_failing():
        nonlocal call_count
        call_count += 1
        if call_count < 3:
            raise ValueError("Temporary failure")
        return "success"

    decorated = retry_async(max_attempts=3, min_wait=0, max_wait=0)(sometimes_failing)
    result = await decorated()

    assert result == "success"
    assert call_count == 3


@pytest.mark.asyncio
async def test_retry_async_all_attempts_fail():
    """Test retry decorator when all attempts fail."""
    mock_func = AsyncMock(side_effect=ValueError("Persistent failure"))

    decorated = retry_async(max_attempts=3, min_wait=0, max_wait=0)(mock_func)

    with pytest.raises(ValueError, match="Persistent failure"):
        await decorated()

    assert mock_func.call_count == 3


@pytest.mark.asyncio
async def test_retry_async_only_retries_rate_limits():
    """Unavailable providers are not retried when only rate limits are."""
    mock_func = AsyncMock(
        side_effect=[
            ProviderRateLimitedError("newsapi", "slow down"),
            ProviderUnavailableError("newsapi", "down"),
        ]
    )

    decorated = retry_async(
        max_attempts=3,
        min_wait=0,
        max_wait=0,
        exceptions=(ProviderRateLimitedError,),
    )(mock_func)

    with pytest.raises(ProviderUnavailableError):
        await decorated()

    # Retried once for the rate limit, then failed on the outage
    assert mock_func.call_count == 2


@pytest.mark.asyncio
async def test_retry_async_waits_with_backoff():
    """Sleeps grow exponentially between attempts."""
    mock_func = AsyncMock(side_effect=[ValueError("1"), ValueError("2"), "ok"])

    with patch("news_sync.utils.retry.asyncio.sleep", new=AsyncMock()) as sleep:
        decorated = retry_async(max_attempts=3, min_wait=1, max_wait=10, multiplier=2)(mock_func)
        result = await decorated()

    assert result == "ok"
    assert [call.args[0] for call in sleep.await_args_list] == [1, 2]


@pytest.mark.asyncio
async def test_retry_async_with_args_and_kwargs():
    """Test retry decorator preserves function arguments."""
    mock_func = AsyncMock(return_value="success")

    decorated = retry_async(max_attempts=3)(mock_func)
    result = await decorated("arg1", "arg2", kwarg1="value1")

    assert result == "success"
    mock_func.assert_called_once_with("arg1", "arg2", kwarg1="value1")


def test_backoff_delay_is_capped():
    assert backoff_delay(0, 1, 30, 2) == 1
    assert backoff_delay(3, 1, 30, 2) == 8
    assert backoff_delay(10, 1, 30, 2) == 30


@pytest.mark.asyncio
async def test_retry_async_honours_retry_after():
    """A longer Retry-After replaces the backoff; a shorter one does not."""
    mock_func = AsyncMock(
        side_effect=[
            ProviderRateLimitedError("newsapi", "slow down", retry_after=5),
            ProviderRateLimitedError("newsapi", "slow down", retry_after=0.5),
            "ok",
        ]
    )

    with patch("news_sync.utils.retry.asyncio.sleep", new=AsyncMock()) as sleep:
        decorated = retry_async(max_attempts=3, min_wait=1, max_wait=10, multiplier=2)(mock_func)
        result = await decorated()

    assert result == "ok"
    assert [call.args[0] for call in sleep.await_args_list] == [5, 2]


@pytest.mark.asyncio
async def test_retry_async_caps_retry_after():
    mock_func = AsyncMock(
        side_effect=[ProviderRateLimitedError("newsapi", "slow down", retry_after=600), "ok"]
    )

    with patch("news_sync.utils.retry.asyncio.sleep", new=AsyncMock()) as sleep:
        decorated = retry_async(max_attempts=2, min_wait=1, max_wait=1, max_retry_after=20)(mock_func)
        await decorated()

    sleep.assert_awaited_once_with(20)


def test_requested_delay():
    assert requested_delay(ValueError("no hint")) is None
    assert requested_delay(ProviderRateLimitedError("newsapi", "x")) is None
    assert requested_delay(ProviderRateLimitedError("newsapi", "x", retry_after=7)) == 7
    assert requested_delay(ProviderRateLimitedError("newsapi", "x", retry_after=-1)) is None
    assert requested_delay(ProviderRateLimitedError("newsapi", "x", retry_after=90), 60) == 60
