"""Tests for analysis prompt construction."""

from __future__ import annotations

import pytest

from crucible_analysis.core.models import AnalysisRequest, Difficulty
from crucible_analysis.prompts import (
    DEFAULT_PARAMETERS,
    DOCUMENT_SEPARATOR,
    NO_DOCUMENTS_NOTICE,
    SCORING_RUBRIC,
    build_analysis_prompt,
    format_rubric,
    rubric_label,
)
from tests.factories import make_problem_context


def _request(**kwargs) -> AnalysisRequest:
    kwargs.setdefault("context", make_problem_context())
    kwargs.setdefault("solution", "def allow(key): ...")
    return AnalysisRequest(**kwargs)


class TestBuildAnalysisPrompt:
    """Prompt content and section layout."""

    def test_sections_in_order(self):
        prompt = build_analysis_prompt(_request())

        headings = [
            "## PROBLEM DETAILS ##",
            "## TECHNICAL & ARCHITECTURAL PARAMETERS TO EVALUATE ##",
            "## RELEVANT KNOWLEDGE BASE DOCUMENTS (FOR CONTEXT) ##",
            "## USER'S SUBMITTED SOLUTION ##",
            "## FAIRNESS AND OBJECTIVITY POLICY ##",
            "## SCORING RUBRIC (ANCHORS) ##",
            "## ANALYSIS INSTRUCTIONS ##",
            "## OUTPUT SCHEMA ##",
            "## OUTPUT REQUIREMENTS ##",
        ]
        positions = [prompt.index(heading) for heading in headings]

        assert positions == sorted(positions)

    def test_problem_details(self):
        context = make_problem_context(
            title="Chat server",
            difficulty=Difficulty.EXPERT,
            tags=("websockets", "scaling"),
        )

        prompt = build_analysis_prompt(_request(context=context))

        assert "Title: Chat server" in prompt
        assert "Difficulty: expert" in prompt
        assert "Tags: websockets, scaling" in prompt
        assert "Functional Requirements: Limit requests per API key" in prompt

    def test_solution_included(self):
        prompt = build_analysis_prompt(_request(solution="SELECT 1;"))

        assert "## USER'S SUBMITTED SOLUTION ##\nSELECT 1;" in prompt

    def test_default_parameters_when_none_given(self):
        prompt = build_analysis_prompt(_request())

        for line in DEFAULT_PARAMETERS:
            assert line in prompt

    def test_explicit_parameters_replace_defaults(self):
        prompt = build_analysis_prompt(_request(parameters=("- Idempotency: retries are safe",)))

        assert "- Idempotency: retries are safe" in prompt
        assert DEFAULT_PARAMETERS[0] not in prompt

    def test_no_documents_notice(self):
        prompt = build_analysis_prompt(_request())

        assert NO_DOCUMENTS_NOTICE in prompt

    def test_documents_joined_with_separator(self):
        prompt = build_analysis_prompt(_request(documents=("Doc A", "Doc B")))

        assert f"Doc A{DOCUMENT_SEPARATOR}Doc B" in prompt
        assert NO_DOCUMENTS_NOTICE not in prompt

    def test_same_request_same_prompt(self):
        """The prompt depends only on the request."""
        request = _request(documents=("Doc",), parameters=("- P",))

        assert build_analysis_prompt(request) == build_analysis_prompt(request)


class TestRubric:
    """Scoring rubric anchors."""

    def test_rubric_covers_zero_to_hundred(self):
        lows = sorted(low for low, *_ in SCORING_RUBRIC)
        highs = sorted(high for _, high, *_ in SCORING_RUBRIC)

        assert lows[0] == 0
        assert highs[-1] == 100

    def test_format_rubric_lists_every_band(self):
        text = format_rubric()

        for _low, _high, label, _description in SCORING_RUBRIC:
            assert label in text
        assert text.splitlines()[0].startswith("- 90-100: Exceptional")

    @pytest.mark.parametrize(
        "score,label",
        [
            (100, "Exceptional"),
            (90, "Exceptional"),
            (89.5, "Solid"),
            (75, "Solid"),
            (60, "Adequate"),
            (40, "Partial"),
            (39, "Poor"),
            (0, "Poor"),
        ],
    )
    def test_rubric_label(self, score, label):
        assert rubric_label(score) == label

    def test_rubric_label_rejects_negative(self):
        with pytest.raises(ValueError):
            rubric_label(-1)
