"""Core data model and error taxonomy."""

from crucible_analysis.core.exceptions import (
    AuthenticationError,
    ConfigurationError,
    HealthCheckError,
    ModelOverloadError,
    ProviderError,
    ProviderTimeoutError,
    ResponseParsingError,
    ServiceError,
    error_for_status,
    is_provider_error,
    is_retryable_provider_error,
    map_to_provider_error,
)
from crucible_analysis.core.models import (
    AnalysisRequest,
    AnalysisResult,
    Difficulty,
    EvaluatedParameter,
    Feedback,
    ProblemContext,
)

__all__ = [
    # Models
    "Difficulty",
    "ProblemContext",
    "AnalysisRequest",
    "AnalysisResult",
    "EvaluatedParameter",
    "Feedback",
    # Errors
    "ProviderError",
    "ModelOverloadError",
    "ResponseParsingError",
    "ServiceError",
    "AuthenticationError",
    "ProviderTimeoutError",
    "ConfigurationError",
    "HealthCheckError",
    "error_for_status",
    "is_provider_error",
    "is_retryable_provider_error",
    "map_to_provider_error",
]
