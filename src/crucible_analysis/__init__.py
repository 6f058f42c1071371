"""crucible-analysis - AI solution analysis with retry and provider fallback."""

__version__ = "1.0.0"

from crucible_analysis.core.exceptions import ProviderError
from crucible_analysis.core.models import (
    AnalysisRequest,
    AnalysisResult,
    Difficulty,
    ProblemContext,
)
from crucible_analysis.providers import (
    AnalysisProvider,
    AnalysisProviderFactory,
    get_provider_factory,
)

__all__ = [
    "ProblemContext",
    "Difficulty",
    "AnalysisRequest",
    "AnalysisResult",
    "ProviderError",
    "AnalysisProvider",
    "AnalysisProviderFactory",
    "get_provider_factory",
]
