"""Data model for solution analysis.

ProblemContext and AnalysisRequest describe what is being analyzed and are
created per call. AnalysisResult is the validated output handed back to the
caller.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Difficulty(Enum):
    """Difficulty tiers of a problem."""

    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"
    EXPERT = "expert"


def _statements(items: Iterable[Any] | None) -> tuple[str, ...]:
    """Normalize requirement entries given as strings or {"requirement": str}."""
    if not items:
        return ()
    statements = []
    for item in items:
        if isinstance(item, Mapping):
            statements.append(str(item.get("requirement", "")))
        else:
            statements.append(str(item))
    return tuple(statements)


@dataclass(frozen=True)
class ProblemContext:
    """Immutable description of the task being analyzed."""

    title: str
    description: str
    expected_outcome: str
    difficulty: Difficulty
    tags: tuple[str, ...] = ()
    functional_requirements: tuple[str, ...] = ()
    non_functional_requirements: tuple[str, ...] = ()
    constraints: tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ProblemContext:
        """
        Build a ProblemContext from a problem document.

        Accepts both camelCase document keys (``expectedOutcome``,
        ``requirements.nonFunctional``) and snake_case keys.

        Raises:
            ValueError: If the difficulty is not a known tier.
            KeyError: If title or description is missing.
        """
        requirements = data.get("requirements") or {}
        functional = requirements.get("functional", data.get("functional_requirements"))
        non_functional = requirements.get(
            "nonFunctional", data.get("non_functional_requirements")
        )
        expected = data.get("expectedOutcome", data.get("expected_outcome", ""))

        return cls(
            title=data["title"],
            description=data["description"],
            expected_outcome=expected,
            difficulty=Difficulty(str(data.get("difficulty", "medium")).lower()),
            tags=tuple(data.get("tags") or ()),
            functional_requirements=_statements(functional),
            non_functional_requirements=_statements(non_functional),
            constraints=_statements(data.get("constraints")),
        )


@dataclass(frozen=True)
class AnalysisRequest:
    """Everything a provider needs for one analysis call."""

    context: ProblemContext
    solution: str
    documents: tuple[str, ...] = field(default_factory=tuple)
    parameters: tuple[str, ...] = field(default_factory=tuple)


_RESULT_CONFIG = ConfigDict(populate_by_name=True, frozen=True)

# Strict: "85" and True are not scores.
Score = Annotated[float, Field(strict=True, ge=0, le=100)]


class EvaluatedParameter(BaseModel):
    """Score and justification for one technical parameter."""

    model_config = _RESULT_CONFIG

    name: str
    score: Score
    justification: str = ""


class Feedback(BaseModel):
    """Qualitative feedback lists. Each list must be present; any may be empty."""

    model_config = _RESULT_CONFIG

    strengths: list[str]
    areas_for_improvement: list[str] = Field(alias="areasForImprovement")
    suggestions: list[str]


class AnalysisResult(BaseModel):
    """Validated output of a successful analysis call."""

    model_config = _RESULT_CONFIG

    overall_score: Score = Field(alias="overallScore")
    ai_confidence: Score = Field(alias="aiConfidence")
    summary: str = Field(strict=True, min_length=1)
    evaluated_parameters: list[EvaluatedParameter] = Field(alias="evaluatedParameters")
    feedback: Feedback

    @field_validator("overall_score")
    @classmethod
    def overall_score_is_whole(cls, v: float) -> float:
        """Overall scores are whole numbers; 72.0 passes, 72.5 does not."""
        if not float(v).is_integer():
            raise ValueError("overall score must be a whole number")
        return v

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the camelCase shape used on the wire."""
        return self.model_dump(by_alias=True)
