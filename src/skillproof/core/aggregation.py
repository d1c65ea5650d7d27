"""Score aggregation, tiering and per-skill breakdown."""

from __future__ import annotations

import math
from typing import Iterable, Sequence

from ..schemas import (
    Assessment,
    AssessmentResult,
    DimensionScore,
    QuestionScore,
    SkillAnalysis,
    SkillScore,
)

TIER_THRESHOLDS: tuple[tuple[str, int], ...] = (
    ("exceptional", 90),
    ("strong", 75),
    ("qualified", 60),
    ("developing", 45),
)

FALLBACK_SUMMARIES: dict[str, str] = {
    "exceptional": "This candidate demonstrated exceptional capabilities across the assessment.",
    "strong": "This candidate showed strong skills with solid performance in most areas.",
    "qualified": "This candidate meets the basic qualifications with room for growth.",
    "developing": "This candidate shows potential but has significant areas needing development.",
    "not_ready": "This candidate does not currently meet the requirements for this role.",
}

NOT_COMPLETED_FLAG = "Question not completed"
NOT_ANSWERED_REASON = "Question not answered"
UNSCOREABLE_REASON = "Unable to score response"

NEUTRAL_SCORE = 3.0


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def determine_tier(score: float) -> str:
    """Map a 0-100 score onto its tier using fixed thresholds."""
    for tier, threshold in TIER_THRESHOLDS:
        if score >= threshold:
            return tier
    return "not_ready"


def overall_score(mean_per_question: float) -> int:
    """Map a mean per-question score in [1, 5] onto the 0-100 scale."""
    return round_half_up((mean_per_question - 1) * 25)


def aggregate(question_scores: Sequence[QuestionScore]) -> tuple[int, str]:
    """Return ``(overall_score, tier)`` for a list of question scores."""
    if not question_scores:
        return 0, determine_tier(0)
    mean = sum(score.overall_score for score in question_scores) / len(question_scores)
    score = overall_score(mean)
    return score, determine_tier(score)


def weighted_mean(dimension_scores: Iterable[DimensionScore]) -> float:
    """Weighted mean of dimension scores, neutral when the weights sum to zero."""
    scores = list(dimension_scores)
    total_weight = sum(item.weight for item in scores)
    if total_weight <= 0:
        return NEUTRAL_SCORE
    return sum(item.weighted_score for item in scores) / total_weight


def fallback_question_score(question_id: str, reason: str) -> QuestionScore:
    """Lowest-possible score used for unanswered or unscoreable questions."""
    return QuestionScore(
        question_id=question_id,
        dimension_scores=[],
        overall_score=1,
        strengths=[],
        improvements=[reason],
        specific_feedback=reason,
        red_flags_triggered=[NOT_COMPLETED_FLAG],
        bonuses_earned=[],
    )


def fallback_summary(tier: str) -> str:
    return FALLBACK_SUMMARIES.get(tier, FALLBACK_SUMMARIES["not_ready"])


def analyze_skills(result: AssessmentResult, assessment: Assessment) -> SkillAnalysis:
    """Average question scores per tested skill.

    Skills are ranked by average score (descending, stable on ties). The three
    highest are the strongest skills; the three lowest, in ascending order,
    are the weakest.
    """

    totals: dict[str, list[float]] = {}
    for question in assessment.questions:
        score = result.score_for(question.id)
        if score is None:
            continue
        for skill in question.skills_tested:
            bucket = totals.setdefault(skill, [0.0, 0])
            bucket[0] += score.overall_score
            bucket[1] += 1

    skill_scores = [
        SkillScore(skill=skill, score=total / count, questions=int(count))
        for skill, (total, count) in totals.items()
    ]
    skill_scores.sort(key=lambda item: item.score, reverse=True)

    return SkillAnalysis(
        skill_scores=skill_scores,
        strongest_skills=[item.skill for item in skill_scores[:3]],
        weakest_skills=[item.skill for item in reversed(skill_scores[-3:])],
    )


__all__ = [
    "FALLBACK_SUMMARIES",
    "NOT_ANSWERED_REASON",
    "NOT_COMPLETED_FLAG",
    "TIER_THRESHOLDS",
    "UNSCOREABLE_REASON",
    "aggregate",
    "analyze_skills",
    "determine_tier",
    "fallback_question_score",
    "fallback_summary",
    "overall_score",
    "round_half_up",
    "weighted_mean",
]
