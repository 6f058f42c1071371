"""Provider contract and shared provider behavior."""

from __future__ import annotations

import asyncio
import json
import re
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from pydantic import ValidationError

from crucible_analysis.core.exceptions import (
    ConfigurationError,
    ProviderTimeoutError,
    ResponseParsingError,
    ServiceError,
    map_to_provider_error,
)
from crucible_analysis.core.models import AnalysisRequest, AnalysisResult
from crucible_analysis.logging import analysis_scope, get_logger
from crucible_analysis.prompts import build_analysis_prompt
from crucible_analysis.retry import (
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_RETRY_DELAY_BASE,
    is_transient_error,
    retry_with_backoff,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

    from crucible_analysis.core.models import ProblemContext

logger = get_logger(__name__)

DEFAULT_TIMEOUT = 30.0  # seconds

_FENCE_OPEN = re.compile(r"^```(?:json)?\s*", re.IGNORECASE)
_FENCE_CLOSE = re.compile(r"\s*```$")


@runtime_checkable
class AnalysisProvider(Protocol):
    """Contract every analysis backend satisfies."""

    @property
    def name(self) -> str:
        """Stable identifier used in logs, metrics keys and fallback names."""
        ...

    async def analyze_comprehensively(
        self,
        context: ProblemContext,
        solution: str,
        documents: Sequence[str] = (),
        parameters: Sequence[str] = (),
    ) -> AnalysisResult:
        """
        Analyze a submitted solution.

        Args:
            context: Problem being solved.
            solution: The user's submitted code or text.
            documents: Knowledge base documents used as context.
            parameters: Technical parameters to score against.

        Returns:
            Validated AnalysisResult.

        Raises:
            ProviderError: On any failure.
        """
        ...

    async def is_healthy(self) -> bool:
        """Best-effort liveness probe. Never raises."""
        ...

    def get_configuration(self) -> dict[str, Any]:
        """Non-secret configuration for diagnostics."""
        ...


def strip_code_fences(text: str) -> str:
    """Remove a surrounding markdown code fence (```json ... ```) if present."""
    cleaned = text.strip()
    if cleaned.startswith("```"):
        cleaned = _FENCE_OPEN.sub("", cleaned, count=1)
        cleaned = _FENCE_CLOSE.sub("", cleaned, count=1)
    return cleaned


def _describe_validation_error(error: ValidationError) -> str:
    problems = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"]) or "response"
        problems.append(f"{location}: {item['msg']}")
    return "; ".join(problems)


def validate_analysis_payload(payload: Any, provider: str) -> AnalysisResult:
    """
    Validate a decoded analysis payload.

    Checks presence and type of all top-level fields, the 0-100 range of the
    scores, a non-empty summary, and that evaluatedParameters and the three
    feedback lists are arrays.

    Raises:
        ResponseParsingError: If the payload violates any rule.
    """
    if not isinstance(payload, dict):
        raise ResponseParsingError(provider, "Analysis response is not a valid object")

    try:
        return AnalysisResult.model_validate(payload)
    except ValidationError as e:
        raise ResponseParsingError(
            provider,
            f"Invalid analysis response: {_describe_validation_error(e)}",
        ) from e


def parse_analysis_response(response_text: str, provider: str) -> AnalysisResult:
    """
    Decode and validate a raw backend answer.

    Raises:
        ResponseParsingError: If the text is not JSON or fails validation.
    """
    try:
        payload = json.loads(strip_code_fences(response_text))
    except json.JSONDecodeError as e:
        logger.error(
            "analysis_response_not_json",
            provider=provider,
            error=str(e),
            raw_preview=response_text[:200],
        )
        raise ResponseParsingError(
            provider,
            f"Failed to parse AI response: {e}",
            raw_response=response_text,
        ) from e

    try:
        return validate_analysis_payload(payload, provider)
    except ResponseParsingError as e:
        e.raw_response = response_text
        logger.error(
            "analysis_response_invalid",
            provider=provider,
            error=e.message,
            raw_preview=response_text[:200],
        )
        raise


class BaseAnalysisProvider(ABC):
    """
    Shared behavior for concrete analysis providers.

    Subclasses supply the outbound call (``_call_api``) and the health probe
    (``_check_health``). Prompt assembly, timeouts, retry, response
    validation and error classification all live here so that every backend
    is evaluated the same way.
    """

    MAX_ATTEMPTS = DEFAULT_MAX_ATTEMPTS
    RETRY_DELAY_BASE = DEFAULT_RETRY_DELAY_BASE

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        max_attempts: int | None = None,
        retry_delay_base: float | None = None,
    ) -> None:
        """
        Args:
            timeout: Per-call timeout in seconds. Must be positive.
            max_attempts: Attempts per analysis against this backend. At least 1.
            retry_delay_base: Linear backoff step in seconds. Not negative.

        Raises:
            ConfigurationError: If any call-budget value is out of range.
        """
        self._timeout = timeout
        self._max_attempts = max_attempts if max_attempts is not None else self.MAX_ATTEMPTS
        self._retry_delay_base = (
            retry_delay_base if retry_delay_base is not None else self.RETRY_DELAY_BASE
        )

        if self._timeout <= 0:
            raise ConfigurationError(self.name, f"Timeout must be positive, got {self._timeout}")
        if self._max_attempts < 1:
            raise ConfigurationError(
                self.name, f"max_attempts must be at least 1, got {self._max_attempts}"
            )
        if self._retry_delay_base < 0:
            raise ConfigurationError(
                self.name, f"retry_delay_base must not be negative, got {self._retry_delay_base}"
            )

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the provider name."""

    @property
    @abstractmethod
    def model(self) -> str:
        """Return the model name."""

    @property
    def timeout(self) -> float:
        """Return the per-call timeout in seconds."""
        return self._timeout

    @abstractmethod
    async def _call_api(self, prompt: str) -> str:
        """Send the prompt to the backend and return the raw response text."""

    @abstractmethod
    async def _check_health(self) -> bool:
        """Probe the backend. May raise; callers treat exceptions as unhealthy."""

    def _extra_configuration(self) -> dict[str, Any]:
        """Backend-specific, non-secret configuration entries."""
        return {}

    async def analyze_comprehensively(
        self,
        context: ProblemContext,
        solution: str,
        documents: Sequence[str] = (),
        parameters: Sequence[str] = (),
    ) -> AnalysisResult:
        """Analyze a solution; see :class:`AnalysisProvider`."""
        request = AnalysisRequest(
            context=context,
            solution=solution,
            documents=tuple(documents),
            parameters=tuple(parameters),
        )

        with analysis_scope():
            logger.info(
                "analysis_started",
                provider=self.name,
                problem=context.title,
                solution_chars=len(solution),
                documents=len(request.documents),
                parameters=len(request.parameters),
            )

            try:
                prompt = build_analysis_prompt(request)
                call = retry_with_backoff(
                    max_attempts=self._max_attempts,
                    base_delay=self._retry_delay_base,
                    is_retryable=is_transient_error,
                    operation=f"{self.name}_api_call",
                )(self._call_with_timeout)

                response_text = await call(prompt)
                if not response_text:
                    raise ServiceError(self.name, f"Empty response from {self.name} after retries.")

                result = parse_analysis_response(response_text, self.name)
            except Exception as e:
                mapped = map_to_provider_error(e, self.name)
                logger.error(
                    "analysis_failed",
                    provider=self.name,
                    error_code=mapped.error_code,
                    retryable=mapped.is_retryable,
                    error=mapped.message,
                )
                if mapped is e:
                    raise
                raise mapped from e

            logger.info(
                "analysis_completed",
                provider=self.name,
                overall_score=result.overall_score,
                ai_confidence=result.ai_confidence,
            )
            return result

    async def _call_with_timeout(self, prompt: str) -> str:
        """Run one backend call, cancelling it when the timeout expires."""
        try:
            return await asyncio.wait_for(self._call_api(prompt), timeout=self._timeout)
        except TimeoutError as e:
            raise ProviderTimeoutError(
                self.name,
                f"Request timed out after {self._timeout}s",
                timeout=self._timeout,
            ) from e

    async def is_healthy(self) -> bool:
        """Probe the backend, returning False on any failure."""
        try:
            return bool(await asyncio.wait_for(self._check_health(), timeout=self._timeout))
        except Exception as e:
            logger.warning("provider_health_check_failed", provider=self.name, error=str(e))
            return False

    def get_configuration(self) -> dict[str, Any]:
        """Return non-secret configuration for diagnostics."""
        return {
            "provider_name": self.name,
            "model": self.model,
            "timeout": self._timeout,
            "max_attempts": self._max_attempts,
            "retry_delay_base": self._retry_delay_base,
            **self._extra_configuration(),
        }

    def __repr__(self) -> str:
        return f"{type(self).__name__}(model={self.model!r})"
