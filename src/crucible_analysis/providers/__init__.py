"""Solution analysis providers: contract, backends, fallback and factory."""

from __future__ import annotations

from crucible_analysis.providers.base import (
    AnalysisProvider,
    BaseAnalysisProvider,
    parse_analysis_response,
    strip_code_fences,
    validate_analysis_payload,
)
from crucible_analysis.providers.factory import (
    DEFAULT_REGISTRY,
    AnalysisProviderFactory,
    get_provider_factory,
    reset_provider_factory,
)
from crucible_analysis.providers.fallback import FallbackAnalysisProvider, should_attempt_fallback
from crucible_analysis.providers.gemini import GeminiAnalysisProvider
from crucible_analysis.providers.metrics import MetricsTracker, ProviderMetrics
from crucible_analysis.providers.openrouter import OpenRouterAnalysisProvider

__all__ = [
    # Contract
    "AnalysisProvider",
    "BaseAnalysisProvider",
    "parse_analysis_response",
    "strip_code_fences",
    "validate_analysis_payload",
    # Backends
    "GeminiAnalysisProvider",
    "OpenRouterAnalysisProvider",
    # Fallback
    "FallbackAnalysisProvider",
    "MetricsTracker",
    "ProviderMetrics",
    "should_attempt_fallback",
    # Factory
    "AnalysisProviderFactory",
    "DEFAULT_REGISTRY",
    "get_provider_factory",
    "reset_provider_factory",
]
