"""Live provider checks. Run with --run-integration and real API keys."""

from __future__ import annotations

import os

import pytest

from crucible_analysis.core.models import Difficulty
from crucible_analysis.providers.factory import AnalysisProviderFactory
from tests.factories import make_problem_context

pytestmark = pytest.mark.integration

PROVIDER_KEYS = {
    "gemini": ("GEMINI_API_KEY", "GEMINI_PRO_API_KEY"),
    "openrouter": ("OPENROUTER_API_KEY",),
}


@pytest.mark.parametrize("provider_name", sorted(PROVIDER_KEYS))
@pytest.mark.asyncio
async def test_live_analysis(provider_name):
    """A real backend returns a result that passes validation."""
    if not any(os.environ.get(var) for var in PROVIDER_KEYS[provider_name]):
        pytest.skip(f"no API key for {provider_name}")

    factory = AnalysisProviderFactory()
    provider = factory.get_provider(provider_name)
    try:
        result = await provider.analyze_comprehensively(
            make_problem_context(difficulty=Difficulty.EASY),
            "function f(){return 1}",
        )
    finally:
        await factory.aclose()

    assert 0 <= result.overall_score <= 100
    assert result.summary
