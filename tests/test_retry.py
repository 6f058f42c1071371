"""Tests for bounded retry with linear backoff."""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest

from crucible_analysis.core.exceptions import (
    AuthenticationError,
    ModelOverloadError,
    ProviderTimeoutError,
    ResponseParsingError,
    ServiceError,
)
from crucible_analysis.retry import backoff_delay, is_transient_error, retry_with_backoff


class TestIsTransientError:
    """Classification of retryable failures."""

    @pytest.mark.parametrize(
        "error",
        [
            ModelOverloadError("gemini"),
            ServiceError("gemini"),
            ProviderTimeoutError("gemini"),
            RuntimeError("503 Service Unavailable"),
            RuntimeError("Internal Server Error"),
        ],
    )
    def test_transient(self, error):
        assert is_transient_error(error)

    @pytest.mark.parametrize(
        "error",
        [
            ResponseParsingError("gemini", "500 is not valid JSON"),
            AuthenticationError("gemini"),
            ValueError("bad input"),
        ],
    )
    def test_not_transient(self, error):
        """Non-retryable kinds stay non-retryable even with a 5xx-looking message."""
        assert not is_transient_error(error)


class TestBackoffDelay:
    def test_linear(self):
        assert backoff_delay(0.3, 1) == pytest.approx(0.3)
        assert backoff_delay(0.3, 2) == pytest.approx(0.6)
        assert backoff_delay(0.3, 3) == pytest.approx(0.9)


class TestRetryWithBackoff:
    """Behavior of the retry decorator."""

    @pytest.mark.asyncio
    async def test_succeeds_on_first_attempt(self):
        """Function should return immediately on success."""
        # Given
        mock_func = AsyncMock(return_value="ok")

        @retry_with_backoff(max_attempts=2, base_delay=0)
        async def call():
            return await mock_func()

        # When
        result = await call()

        # Then
        assert result == "ok"
        assert mock_func.call_count == 1

    @pytest.mark.asyncio
    async def test_retries_transient_error_then_succeeds(self):
        # Given
        mock_func = AsyncMock(side_effect=[ServiceError("gemini", "boom"), "ok"])

        @retry_with_backoff(max_attempts=2, base_delay=0)
        async def call():
            return await mock_func()

        # When
        result = await call()

        # Then
        assert result == "ok"
        assert mock_func.call_count == 2

    @pytest.mark.asyncio
    async def test_respects_attempt_ceiling(self):
        """The last error propagates unchanged once attempts run out."""
        error = ModelOverloadError("gemini", "busy")
        mock_func = AsyncMock(side_effect=error)

        @retry_with_backoff(max_attempts=3, base_delay=0)
        async def call():
            return await mock_func()

        with pytest.raises(ModelOverloadError) as exc_info:
            await call()

        assert exc_info.value is error
        assert mock_func.call_count == 3

    @pytest.mark.asyncio
    async def test_non_retryable_fails_immediately(self):
        mock_func = AsyncMock(side_effect=ResponseParsingError("gemini", "bad"))

        @retry_with_backoff(max_attempts=3, base_delay=0)
        async def call():
            return await mock_func()

        with pytest.raises(ResponseParsingError):
            await call()

        assert mock_func.call_count == 1

    @pytest.mark.asyncio
    async def test_linear_backoff_delays(self):
        """Attempt n waits base_delay * n before the next attempt."""
        delays = []

        async def capture_sleep(delay):
            delays.append(delay)

        mock_func = AsyncMock(side_effect=ServiceError("gemini"))

        @retry_with_backoff(max_attempts=3, base_delay=0.3)
        async def call():
            return await mock_func()

        with patch("crucible_analysis.retry.asyncio.sleep", side_effect=capture_sleep):
            with pytest.raises(ServiceError):
                await call()

        assert delays == [pytest.approx(0.3), pytest.approx(0.6)]

    @pytest.mark.asyncio
    async def test_custom_classifier(self):
        mock_func = AsyncMock(side_effect=[KeyError("x"), "ok"])

        @retry_with_backoff(max_attempts=2, base_delay=0, is_retryable=lambda e: True)
        async def call():
            return await mock_func()

        assert await call() == "ok"

    @pytest.mark.asyncio
    async def test_single_attempt_never_retries(self):
        mock_func = AsyncMock(side_effect=ServiceError("gemini"))

        @retry_with_backoff(max_attempts=1, base_delay=0)
        async def call():
            return await mock_func()

        with pytest.raises(ServiceError):
            await call()

        assert mock_func.call_count == 1

    def test_rejects_zero_attempts(self):
        with pytest.raises(ValueError, match="at least 1"):
            retry_with_backoff(max_attempts=0)

    def test_preserves_function_name(self):
        @retry_with_backoff()
        async def my_function():
            return None

        assert my_function.__name__ == "my_function"
