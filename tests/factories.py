"""Test data factories for crucible-analysis tests.

Usage:
    from tests.factories import make_problem_context, ScriptedProvider

    async def test_something():
        provider = ScriptedProvider([make_analysis_json()])
        result = await provider.analyze_comprehensively(make_problem_context(), "code")
"""

from __future__ import annotations

import json
from typing import Any

from crucible_analysis.core.models import AnalysisResult, Difficulty, ProblemContext
from crucible_analysis.providers.base import BaseAnalysisProvider


def make_problem_context(
    title: str = "Rate limiter",
    description: str = "Design a token bucket rate limiter for a public API.",
    expected_outcome: str = "Requests over the limit are rejected with 429.",
    difficulty: Difficulty = Difficulty.MEDIUM,
    tags: tuple[str, ...] = ("backend", "distributed-systems"),
    functional_requirements: tuple[str, ...] = ("Limit requests per API key",),
    non_functional_requirements: tuple[str, ...] = ("p99 latency under 5ms",),
    constraints: tuple[str, ...] = ("Single Redis instance",),
) -> ProblemContext:
    """Create ProblemContext for testing."""
    return ProblemContext(
        title=title,
        description=description,
        expected_outcome=expected_outcome,
        difficulty=difficulty,
        tags=tags,
        functional_requirements=functional_requirements,
        non_functional_requirements=non_functional_requirements,
        constraints=constraints,
    )


def make_analysis_payload(
    overall_score: Any = 82,
    ai_confidence: Any = 90,
    summary: Any = "Solid token bucket with a clear refill strategy.",
    evaluated_parameters: Any = None,
    strengths: Any = None,
    areas_for_improvement: Any = None,
    suggestions: Any = None,
) -> dict[str, Any]:
    """Create a decoded analysis payload in the wire (camelCase) shape.

    Values are typed ``Any`` so tests can inject invalid shapes.
    """
    if evaluated_parameters is None:
        evaluated_parameters = [
            {
                "name": "Correctness",
                "score": 85,
                "justification": "Refill math handles clock skew.",
            }
        ]
    return {
        "overallScore": overall_score,
        "aiConfidence": ai_confidence,
        "summary": summary,
        "evaluatedParameters": evaluated_parameters,
        "feedback": {
            "strengths": ["Clear structure"] if strengths is None else strengths,
            "areasForImprovement": (
                ["No burst handling"] if areas_for_improvement is None else areas_for_improvement
            ),
            "suggestions": ["Add a sliding window variant"] if suggestions is None else suggestions,
        },
    }


def make_analysis_json(**overrides: Any) -> str:
    """Create a raw backend answer (JSON text) for testing."""
    return json.dumps(make_analysis_payload(**overrides))


def make_analysis_result(**overrides: Any) -> AnalysisResult:
    """Create a validated AnalysisResult for testing."""
    return AnalysisResult.model_validate(make_analysis_payload(**overrides))


class ScriptedProvider(BaseAnalysisProvider):
    """BaseAnalysisProvider whose backend replays a script.

    Each ``_call_api`` call pops the next script entry: strings are returned
    as the raw response, exceptions are raised. Prompts are recorded.
    """

    def __init__(
        self,
        script: list[str | BaseException],
        name: str = "scripted",
        healthy: bool | BaseException = True,
        delay: float = 0.0,
        **kwargs: Any,
    ) -> None:
        kwargs.setdefault("retry_delay_base", 0.0)
        self._name = name
        super().__init__(**kwargs)
        self._script = list(script)
        self._healthy = healthy
        self._delay = delay
        self.prompts: list[str] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def model(self) -> str:
        return "scripted-model"

    @property
    def call_count(self) -> int:
        return len(self.prompts)

    async def _call_api(self, prompt: str) -> str:
        import asyncio

        self.prompts.append(prompt)
        if self._delay:
            await asyncio.sleep(self._delay)
        entry = self._script.pop(0)
        if isinstance(entry, BaseException):
            raise entry
        return entry

    async def _check_health(self) -> bool:
        if isinstance(self._healthy, BaseException):
            raise self._healthy
        return self._healthy
