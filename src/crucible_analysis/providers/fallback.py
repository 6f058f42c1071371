"""Fallback orchestrator: primary provider with automatic failover."""

from __future__ import annotations

import asyncio
import time
from typing import TYPE_CHECKING, Any

from crucible_analysis.core.exceptions import (
    AuthenticationError,
    ConfigurationError,
    ProviderError,
)
from crucible_analysis.logging import analysis_scope, get_logger
from crucible_analysis.providers.metrics import MetricsTracker, ProviderMetrics

if TYPE_CHECKING:
    from collections.abc import Sequence

    from crucible_analysis.core.models import AnalysisResult, ProblemContext
    from crucible_analysis.providers.base import AnalysisProvider

logger = get_logger(__name__)

# Message fragments that indicate a network-level failure worth failing over on
NETWORK_ERROR_KEYWORDS: tuple[str, ...] = (
    "network",
    "timeout",
    "timed out",
    "connection",
    "reset",
    "name or service not known",
    "nodename nor servname",
    "name resolution",
    "enotfound",
    "refused",
    "500",
    "502",
    "503",
    "504",
)

# Misconfiguration on the primary is never papered over by the fallback
NEVER_FALLBACK: tuple[type[ProviderError], ...] = (AuthenticationError, ConfigurationError)


def should_attempt_fallback(error: BaseException) -> bool:
    """
    Decide whether a primary failure should be retried on the fallback.

    Args:
        error: The exception raised by the primary provider.

    Returns:
        True for retryable provider errors and network-shaped failures.
    """
    if isinstance(error, NEVER_FALLBACK):
        return False

    if isinstance(error, ProviderError) and error.is_retryable:
        return True

    message = str(error).lower()
    return any(keyword in message for keyword in NETWORK_ERROR_KEYWORDS)


def _elapsed_ms(start: float) -> float:
    return (time.perf_counter() - start) * 1000


def _reported_healthy(outcome: object) -> bool:
    """A health probe that raised counts as unhealthy."""
    return not isinstance(outcome, BaseException) and bool(outcome)


class FallbackAnalysisProvider:
    """Wraps a primary and a fallback provider to keep analysis available."""

    def __init__(self, primary: AnalysisProvider, fallback: AnalysisProvider) -> None:
        """
        Initialize the orchestrator.

        Args:
            primary: Provider tried first on every call.
            fallback: Provider tried when the primary fails with a
                fallback-eligible error.
        """
        self._primary = primary
        self._fallback = fallback
        self._metrics = MetricsTracker()
        self._metrics.register(primary.name)
        self._metrics.register(fallback.name)

        logger.info(
            "fallback_provider_initialized",
            primary=primary.name,
            fallback=fallback.name,
        )

    @property
    def name(self) -> str:
        """Combined name, e.g. ``openrouter-with-gemini-fallback``."""
        return f"{self._primary.name}-with-{self._fallback.name}-fallback"

    @property
    def primary(self) -> AnalysisProvider:
        return self._primary

    @property
    def fallback(self) -> AnalysisProvider:
        return self._fallback

    async def analyze_comprehensively(
        self,
        context: ProblemContext,
        solution: str,
        documents: Sequence[str] = (),
        parameters: Sequence[str] = (),
    ) -> AnalysisResult:
        """
        Analyze with the primary provider, failing over when eligible.

        If both providers fail, the primary's error is raised; the fallback's
        error is logged and counted but not propagated.
        """
        with analysis_scope():
            start = time.perf_counter()
            try:
                logger.info("fallback_primary_attempt", provider=self._primary.name)
                result = await self._primary.analyze_comprehensively(
                    context, solution, documents, parameters
                )
            except Exception as primary_error:
                self._metrics.record_failure(self._primary.name)
                logger.warning(
                    "fallback_primary_failed",
                    provider=self._primary.name,
                    response_time_ms=round(_elapsed_ms(start), 2),
                    error=str(primary_error),
                )

                if not should_attempt_fallback(primary_error):
                    logger.info(
                        "fallback_skipped",
                        provider=self._primary.name,
                        reason="non_retryable_error",
                    )
                    raise

                return await self._run_fallback(
                    primary_error, context, solution, documents, parameters
                )

            response_time_ms = _elapsed_ms(start)
            self._metrics.record_success(self._primary.name, response_time_ms)
            logger.info(
                "fallback_primary_succeeded",
                provider=self._primary.name,
                response_time_ms=round(response_time_ms, 2),
            )
            return result

    async def _run_fallback(
        self,
        primary_error: Exception,
        context: ProblemContext,
        solution: str,
        documents: Sequence[str],
        parameters: Sequence[str],
    ) -> AnalysisResult:
        logger.info("fallback_attempt", provider=self._fallback.name)
        self._metrics.record_fallback(self._fallback.name)

        start = time.perf_counter()
        try:
            result = await self._fallback.analyze_comprehensively(
                context, solution, documents, parameters
            )
        except Exception as fallback_error:
            self._metrics.record_failure(self._fallback.name)
            logger.error(
                "fallback_also_failed",
                provider=self._fallback.name,
                response_time_ms=round(_elapsed_ms(start), 2),
                error=str(fallback_error),
                primary_error=str(primary_error),
            )
            raise primary_error

        response_time_ms = _elapsed_ms(start)
        self._metrics.record_success(self._fallback.name, response_time_ms)
        logger.info(
            "fallback_succeeded",
            provider=self._fallback.name,
            response_time_ms=round(response_time_ms, 2),
        )
        return result

    async def is_healthy(self) -> bool:
        """Healthy while at least one wrapped provider is healthy."""
        primary_healthy, fallback_healthy = await asyncio.gather(
            self._primary.is_healthy(),
            self._fallback.is_healthy(),
            return_exceptions=True,
        )
        primary_ok = _reported_healthy(primary_healthy)
        fallback_ok = _reported_healthy(fallback_healthy)

        logger.info(
            "fallback_health_check",
            primary=primary_ok,
            fallback=fallback_ok,
            healthy=primary_ok or fallback_ok,
        )
        return primary_ok or fallback_ok

    def get_metrics(self) -> dict[str, ProviderMetrics]:
        """Return copies of the per-provider metrics."""
        return self._metrics.snapshot()

    def get_configuration(self) -> dict[str, Any]:
        """Configuration of both providers plus current metrics."""
        return {
            "provider_name": self.name,
            "primary_provider": self._primary.get_configuration(),
            "fallback_provider": self._fallback.get_configuration(),
            "metrics": {name: m.to_dict() for name, m in self.get_metrics().items()},
        }

    def __repr__(self) -> str:
        return f"FallbackAnalysisProvider(primary={self._primary!r}, fallback={self._fallback!r})"
