"""Error taxonomy for solution analysis providers.

Every failure surfaced by a provider is one of the seven ProviderError kinds
below. Each kind carries the originating provider's name and a retryability
flag that is fixed per kind.
"""

from __future__ import annotations

import json
import re
from typing import Any

import httpx

_SERVER_ERROR_PATTERN = re.compile(r"Internal Server Error|\b5\d\d\b")


class ProviderError(Exception):
    """Base class for all solution analysis provider errors."""

    error_code: str = "PROVIDER_ERROR"
    is_retryable: bool = False
    default_message: str = "Solution analysis provider error."

    def __init__(self, provider: str, message: str | None = None) -> None:
        self.provider = provider
        self.message = message or self.default_message
        super().__init__(self.message)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(provider={self.provider!r}, message={self.message!r})"


class ModelOverloadError(ProviderError):
    """The AI model is overloaded or the caller is rate-limited."""

    error_code = "MODEL_OVERLOADED"
    is_retryable = True
    default_message = "AI model is currently overloaded. Please try again later."

    def __init__(
        self,
        provider: str,
        message: str | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(provider, message)
        self.status_code = status_code


class ResponseParsingError(ProviderError):
    """The backend answered, but not with a valid analysis payload."""

    error_code = "RESPONSE_PARSING_ERROR"
    is_retryable = False
    default_message = "Failed to parse AI response."

    def __init__(
        self,
        provider: str,
        message: str | None = None,
        raw_response: str | None = None,
    ) -> None:
        super().__init__(provider, message)
        self.raw_response = raw_response


class ServiceError(ProviderError):
    """The AI service returned an error."""

    error_code = "AI_SERVICE_ERROR"
    is_retryable = True
    default_message = "AI service error occurred."

    def __init__(
        self,
        provider: str,
        message: str | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(provider, message)
        self.status_code = status_code


class AuthenticationError(ProviderError):
    """Credentials were rejected by the backend."""

    error_code = "AUTHENTICATION_ERROR"
    is_retryable = False
    default_message = "API authentication failed."

    def __init__(
        self,
        provider: str,
        message: str | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(provider, message)
        self.status_code = status_code


class ProviderTimeoutError(ProviderError):
    """The backend call exceeded its deadline and was cancelled."""

    error_code = "TIMEOUT_ERROR"
    is_retryable = True
    default_message = "Request timed out."

    def __init__(
        self,
        provider: str,
        message: str | None = None,
        timeout: float | None = None,
    ) -> None:
        super().__init__(provider, message)
        self.timeout = timeout


class ConfigurationError(ProviderError):
    """The provider configuration is invalid or incomplete."""

    error_code = "CONFIGURATION_ERROR"
    is_retryable = False
    default_message = "Provider configuration is invalid."


class HealthCheckError(ProviderError):
    """The provider failed its health check."""

    error_code = "HEALTH_CHECK_ERROR"
    is_retryable = True
    default_message = "Provider health check failed."


def is_provider_error(error: object) -> bool:
    """Return True if error belongs to the provider error taxonomy."""
    return isinstance(error, ProviderError)


def is_retryable_provider_error(error: object) -> bool:
    """Return True if error is a provider error of a retryable kind."""
    return isinstance(error, ProviderError) and error.is_retryable


def error_for_status(provider: str, status_code: int, detail: str | None = None) -> ProviderError:
    """
    Map a non-2xx backend status code to a provider error.

    Args:
        provider: Name of the provider that received the status.
        status_code: HTTP status code returned by the backend.
        detail: Optional error detail reported by the backend.

    Returns:
        ProviderError of the matching kind.
    """
    if status_code in (401, 403):
        return AuthenticationError(
            provider,
            f"Invalid API key or insufficient permissions: {detail or 'Authentication failed'}",
            status_code=status_code,
        )
    if status_code == 429:
        return ModelOverloadError(
            provider,
            f"Rate limit exceeded: {detail or 'Too many requests'}",
            status_code=status_code,
        )
    if status_code == 503:
        return ModelOverloadError(
            provider,
            f"Service temporarily unavailable ({status_code}): {detail or 'Service overloaded'}",
            status_code=status_code,
        )
    return ServiceError(
        provider,
        f"{provider} API error ({status_code}): {detail or 'Unknown error'}",
        status_code=status_code,
    )


def extract_status_code(error: BaseException) -> int | None:
    """Best-effort extraction of an HTTP status code from an arbitrary exception."""
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code

    for attr in ("status_code", "status", "code"):
        value: Any = getattr(error, attr, None)
        if isinstance(value, int) and not isinstance(value, bool):
            return value
    return None


def looks_like_server_error(error: BaseException) -> bool:
    """Return True for 5xx-shaped failures (status code or message pattern)."""
    status_code = extract_status_code(error)
    if status_code is not None and status_code >= 500:
        return True
    return bool(_SERVER_ERROR_PATTERN.search(str(error)))


def map_to_provider_error(error: BaseException, provider: str) -> ProviderError:
    """
    Map an arbitrary exception into the provider error taxonomy.

    Provider errors pass through unchanged. Everything else is classified by
    status code and message pattern; unrecognized failures become ServiceError.

    Args:
        error: The exception to classify.
        provider: Name of the provider the failure originated from.

    Returns:
        ProviderError describing the failure.
    """
    if isinstance(error, ProviderError):
        return error

    message = str(error) or type(error).__name__
    lowered = message.lower()
    status_code = extract_status_code(error)

    if (status_code is not None and status_code >= 500) or "Internal Server Error" in message:
        return ServiceError(provider, message, status_code=status_code)

    if status_code in (401, 403) or "auth" in lowered:
        return AuthenticationError(provider, message, status_code=status_code)

    if status_code == 429 or "rate limit" in lowered or "overload" in lowered:
        return ModelOverloadError(provider, message, status_code=status_code)

    if (
        isinstance(error, (TimeoutError, httpx.TimeoutException))
        or "timeout" in lowered
        or "timed out" in lowered
    ):
        return ProviderTimeoutError(provider, message)

    if isinstance(error, json.JSONDecodeError) or "parse" in lowered or "JSON" in message:
        return ResponseParsingError(provider, message)

    return ServiceError(provider, message, status_code=status_code)
