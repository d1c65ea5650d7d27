"""Quality checks run over a compiled assessment."""

from __future__ import annotations

from dataclasses import dataclass, field

from ..schemas import Assessment

MIN_QUESTIONS = 5
MIN_SITUATION_CHARS = 50
MIN_PROMPT_CHARS = 20
MIN_SKILLS = 3

GENERIC_PHRASES: tuple[str, ...] = ("a company", "a customer", "a situation", "someone")


@dataclass(slots=True)
class ValidationReport:
    """Outcome of :func:`validate`; issues are advisory, never blocking."""

    issues: list[str] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.issues


def validate(assessment: Assessment) -> ValidationReport:
    report = ValidationReport()
    issues = report.issues

    if len(assessment.questions) < MIN_QUESTIONS:
        issues.append(
            f"Too few questions: {len(assessment.questions)} (minimum {MIN_QUESTIONS})"
        )

    for question in assessment.questions:
        situation = question.context.situation or ""
        if len(situation) < MIN_SITUATION_CHARS:
            issues.append(f"Question {question.id}: Context too thin (needs more detail)")
        if not question.context.constraints:
            issues.append(f"Question {question.id}: Missing constraints (unrealistic)")
        if len(question.prompt or "") < MIN_PROMPT_CHARS:
            issues.append(f"Question {question.id}: Prompt too short")

        lowered = situation.lower()
        for phrase in GENERIC_PHRASES:
            if phrase in lowered:
                issues.append(f'Question {question.id}: Contains generic phrase "{phrase}"')

        if not question.rubric.dimensions:
            issues.append(f"Question {question.id}: Missing scoring dimensions")

    if len(assessment.skills_covered) < MIN_SKILLS:
        issues.append("Assessment tests too few skills")

    return report
