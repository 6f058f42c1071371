"""Prompt assembly for solution analysis.

Every provider renders the same prompt so that scores mean the same thing
regardless of which backend produced them.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from crucible_analysis.core.models import AnalysisRequest

SYSTEM_PROMPT = (
    "You are a world-class AI system architect and neutral evaluator. "
    "Always respond with valid JSON only."
)

DEFAULT_PARAMETERS: tuple[str, ...] = (
    "- Code Quality: Evaluate the overall code quality, readability, and maintainability",
    "- Performance: Assess the solution's performance characteristics and efficiency",
    "- Correctness: Determine if the solution correctly addresses all requirements",
    "- Design: Evaluate the architectural design and structure of the solution",
    "- Error Handling: Assess how well the solution handles edge cases and errors",
)

NO_DOCUMENTS_NOTICE = (
    "No additional context documents are available. "
    "Evaluate strictly based on the problem details and solution provided."
)

DOCUMENT_SEPARATOR = "\n\n---\n\n"

# (low, high, label, description)
SCORING_RUBRIC: tuple[tuple[int, int, str, str], ...] = (
    (90, 100, "Exceptional", "Thorough, correct, robust, and well-justified relative to "
     "requirements and constraints."),
    (75, 89, "Solid", "Correct with minor issues or reasonable trade-offs; generally "
     "production-ready with small improvements."),
    (60, 74, "Adequate", "Meets core requirements with notable gaps; needs meaningful fixes "
     "before production."),
    (40, 59, "Partial", "Addresses some requirements but with major issues or omissions."),
    (0, 39, "Poor", "Largely incorrect, unsafe, or fails to meet core requirements."),
)

FAIRNESS_POLICY: tuple[str, ...] = (
    "No stylistic or technology bias: do not favor any specific language, framework, or "
    "paradigm. Judge only against stated requirements, general engineering principles, and "
    "evidence present in the solution.",
    "Evidence-based reasoning: every deduction must point to a concrete observation in the "
    "solution or to an explicit requirement or constraint. Do not assume beyond the provided "
    "context.",
    'Handle unknowns neutrally: if information is missing or ambiguous, write "Insufficient '
    'evidence" in the justification and do not penalize. Reflect the uncertainty in '
    "aiConfidence instead.",
    "Give partial credit: award points for correctly handled portions even if the solution "
    "is incomplete.",
    "Respect trade-offs: a reasonable trade-off that fits the constraints (for example "
    "clarity over micro-optimization) is not a defect.",
    "Unconventional but valid: do not penalize novel approaches that satisfy the "
    "requirements and constraints.",
)

ANALYSIS_INSTRUCTIONS: tuple[str, ...] = (
    "Tie each parameter's justification to specific evidence: the requirement, the "
    "constraint, or a brief paraphrase (at most 200 characters) of the user's solution.",
    'If a parameter cannot be assessed, state "Insufficient evidence" and do not penalize '
    "that unknown.",
    "Consider problem difficulty and constraints when judging complexity, performance, and "
    "design choices.",
    "Suggestions must be specific and actionable within the problem context; do not prescribe "
    "a particular stack unless the constraints require it.",
    "Keep the tone professional and constructive.",
)

OUTPUT_SCHEMA = """\
interface AnalysisParameter {
  name: string;
  score: number; // 0-100, integers preferred
  justification: string; // tied to explicit evidence, or "Insufficient evidence"
}

interface SolutionAnalysisResult {
  overallScore: number; // 0-100, reflecting the rubric anchors
  aiConfidence: number; // 0-100, lower when evidence is sparse or ambiguous
  summary: string; // concise summary, 180-250 words at most
  evaluatedParameters: AnalysisParameter[]; // one entry per parameter, deduplicated by name
  feedback: {
    strengths: string[]; // 2-5 key strengths grounded in evidence
    areasForImprovement: string[]; // 2-5 improvement areas grounded in evidence
    suggestions: string[]; // 2-5 actionable, context-aware suggestions
  };
}"""

OUTPUT_REQUIREMENTS: tuple[str, ...] = (
    "Return a single valid JSON object only (no backticks, no extra text).",
    "Numeric fields must be numbers, not strings.",
    "Keep justifications concise and evidence-based.",
)


def _bullets(lines: tuple[str, ...] | list[str]) -> str:
    return "\n".join(f"- {line}" for line in lines)


def format_rubric() -> str:
    """Render the scoring rubric anchors, highest band first."""
    return "\n".join(
        f"- {low}-{high}: {label} - {description}"
        for low, high, label, description in SCORING_RUBRIC
    )


def rubric_label(score: float) -> str:
    """Return the rubric band label for a score in [0, 100]."""
    for low, _high, label, _description in SCORING_RUBRIC:
        if score >= low:
            return label
    raise ValueError(f"Score out of range: {score}")


def build_analysis_prompt(request: AnalysisRequest) -> str:
    """
    Build the analysis prompt shared by all providers.

    The output depends only on the request, so two providers given the same
    request send the same instructions.

    Args:
        request: Problem context, solution, documents, and parameters.

    Returns:
        Prompt text.
    """
    context = request.context
    parameters = "\n".join(request.parameters or DEFAULT_PARAMETERS)
    documents = (
        DOCUMENT_SEPARATOR.join(request.documents) if request.documents else NO_DOCUMENTS_NOTICE
    )

    sections = [
        "You are a world-class AI system architect and a neutral evaluator. Perform a blind, "
        "evidence-based review of the user's solution for the given programming problem. "
        "Optimize for fairness and objectivity.",
        "## PROBLEM DETAILS ##\n"
        f"Title: {context.title}\n"
        f"Description: {context.description}\n"
        f"Expected Outcome: {context.expected_outcome}\n"
        f"Difficulty: {context.difficulty.value}\n"
        f"Tags: {', '.join(context.tags)}\n"
        f"Functional Requirements: {chr(10).join(context.functional_requirements)}\n"
        f"Non-Functional Requirements: {chr(10).join(context.non_functional_requirements)}\n"
        f"Constraints: {chr(10).join(context.constraints)}",
        f"## TECHNICAL & ARCHITECTURAL PARAMETERS TO EVALUATE ##\n{parameters}",
        f"## RELEVANT KNOWLEDGE BASE DOCUMENTS (FOR CONTEXT) ##\n{documents}",
        f"## USER'S SUBMITTED SOLUTION ##\n{request.solution}",
        f"## FAIRNESS AND OBJECTIVITY POLICY ##\n{_bullets(FAIRNESS_POLICY)}",
        f"## SCORING RUBRIC (ANCHORS) ##\n{format_rubric()}",
        f"## ANALYSIS INSTRUCTIONS ##\n{_bullets(ANALYSIS_INSTRUCTIONS)}",
        f"## OUTPUT SCHEMA ##\n```typescript\n{OUTPUT_SCHEMA}\n```",
        f"## OUTPUT REQUIREMENTS ##\n{_bullets(OUTPUT_REQUIREMENTS)}",
    ]

    return "\n\n".join(sections) + "\n"
