"""Bounded retry with linear backoff for provider calls."""

from __future__ import annotations

import asyncio
from functools import wraps
from typing import TYPE_CHECKING, TypeVar

from crucible_analysis.core.exceptions import ProviderError, looks_like_server_error
from crucible_analysis.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

T = TypeVar("T")

logger = get_logger(__name__)

DEFAULT_MAX_ATTEMPTS = 2
DEFAULT_RETRY_DELAY_BASE = 0.3  # seconds


def is_transient_error(error: BaseException) -> bool:
    """
    Decide whether a failed call is worth repeating against the same backend.

    Retryable provider error kinds are transient. Other exceptions are
    transient only when they are 5xx-shaped (status code or message).
    ResponseParsing is never transient: the model formats its answer the same
    way no matter how long we wait.
    """
    if isinstance(error, ProviderError):
        return error.is_retryable
    return looks_like_server_error(error)


def backoff_delay(base_delay: float, attempt: int) -> float:
    """Linear backoff: base_delay x attempt number."""
    return base_delay * attempt


def retry_with_backoff(
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    base_delay: float = DEFAULT_RETRY_DELAY_BASE,
    is_retryable: Callable[[BaseException], bool] = is_transient_error,
    operation: str | None = None,
) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """
    Decorator for retrying async functions with linear backoff.

    The wrapped call runs at most ``max_attempts`` times. After a failure the
    loop continues only if attempts remain and ``is_retryable`` accepts the
    error; otherwise the last error propagates unchanged.

    Args:
        max_attempts: Attempt ceiling (including the first attempt).
        base_delay: Delay unit in seconds; attempt ``n`` waits ``base_delay * n``.
        is_retryable: Classifier deciding whether an error is transient.
        operation: Name used in log events (defaults to the function name).

    Returns:
        Decorated async function with retry logic.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        name = operation or func.__name__

        @wraps(func)
        async def wrapper(*args, **kwargs) -> T:
            for attempt in range(1, max_attempts + 1):
                try:
                    logger.debug(
                        "retry_attempt_started",
                        operation=name,
                        attempt=attempt,
                        max_attempts=max_attempts,
                    )
                    return await func(*args, **kwargs)
                except Exception as e:
                    if attempt < max_attempts and is_retryable(e):
                        delay = backoff_delay(base_delay, attempt)
                        logger.warning(
                            "retry_attempt_failed",
                            operation=name,
                            attempt=attempt,
                            max_attempts=max_attempts,
                            delay_seconds=round(delay, 3),
                            error=str(e),
                        )
                        await asyncio.sleep(delay)
                        continue

                    logger.error(
                        "retry_gave_up",
                        operation=name,
                        attempt=attempt,
                        max_attempts=max_attempts,
                        retryable=is_retryable(e),
                        error=str(e),
                    )
                    raise

            # Unreachable: the last attempt either returns or raises
            raise RuntimeError("Unexpected retry loop exit")

        return wrapper

    return decorator
