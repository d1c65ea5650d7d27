"""Employer-facing reports built from scored results."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Sequence

from ..schemas import Assessment, AssessmentResult


@dataclass(frozen=True, slots=True)
class TierBadge:
    text: str
    color: str
    emoji: str


@dataclass(frozen=True, slots=True)
class CandidateRanking:
    result_id: str
    score: int
    tier: str
    rank: int


@dataclass(slots=True)
class CandidateComparison:
    """Ranking of several results for the same assessment."""

    rankings: list[CandidateRanking] = field(default_factory=list)
    top_performer: str = ""
    average_score: float = 0.0
    tier_distribution: dict[str, int] = field(default_factory=dict)


TIER_BADGES: dict[str, TierBadge] = {
    "exceptional": TierBadge("Exceptional", "#22c55e", "\N{GLOWING STAR}"),
    "strong": TierBadge("Strong", "#3b82f6", "\N{WHITE HEAVY CHECK MARK}"),
    "qualified": TierBadge("Qualified", "#eab308", "\N{THUMBS UP SIGN}"),
    "developing": TierBadge("Developing", "#f97316", "\N{CHART WITH UPWARDS TREND}"),
    "not_ready": TierBadge("Not Ready", "#ef4444", "\N{HOURGLASS WITH FLOWING SAND}"),
}


def score_color(score: float) -> str:
    """Traffic-light colour for a 0-100 score."""
    if score >= 75:
        return "green"
    if score >= 60:
        return "yellow"
    if score >= 45:
        return "orange"
    return "red"


def tier_badge(tier: str) -> TierBadge:
    try:
        return TIER_BADGES[tier]
    except KeyError as exc:
        raise ValueError(f"Unknown tier: {tier!r}") from exc


def build_feedback_report(result: AssessmentResult, assessment: Assessment) -> str:
    """Render a markdown feedback report for one scored attempt."""

    lines: list[str] = [
        f"# {assessment.title} - Results",
        "",
        f"**Overall Score:** {result.overall_score}/100 ({result.tier.upper()})",
        "",
        "## Summary",
        result.summary,
        "",
    ]

    if result.top_strengths:
        lines.append("## Top Strengths")
        lines.extend(f"- {item}" for item in result.top_strengths)
        lines.append("")

    if result.areas_for_growth:
        lines.append("## Areas for Growth")
        lines.extend(f"- {item}" for item in result.areas_for_growth)
        lines.append("")

    lines.append("## Question-by-Question Breakdown")
    lines.append("")

    for index, question in enumerate(assessment.questions, start=1):
        score = result.score_for(question.id)
        lines.append(f"### Question {index}: {question.type.replace('_', ' ')}")
        lines.append("")
        score_text = f"{score.overall_score:.1f}/5" if score else "Not answered"
        lines.append(f"**Score:** {score_text}")
        lines.append("")

        if score and score.specific_feedback:
            lines.append(f"**Feedback:** {score.specific_feedback}")
            lines.append("")
        if score and score.strengths:
            lines.append("**Strengths:**")
            lines.extend(f"- {item}" for item in score.strengths)
            lines.append("")
        if score and score.improvements:
            lines.append("**To Improve:**")
            lines.extend(f"- {item}" for item in score.improvements)
            lines.append("")

        lines.append(f"**Why This Matters:** {question.why_this_matters}")
        lines.append("")
        lines.append("---")
        lines.append("")

    lines.append("*Assessment powered by SkillProof*")
    return "\n".join(lines)


def compare_candidates(results: Sequence[AssessmentResult]) -> CandidateComparison:
    if not results:
        return CandidateComparison()

    ordered = sorted(results, key=lambda item: item.overall_score, reverse=True)
    rankings = [
        CandidateRanking(
            result_id=item.id,
            score=item.overall_score,
            tier=item.tier,
            rank=rank,
        )
        for rank, item in enumerate(ordered, start=1)
    ]

    return CandidateComparison(
        rankings=rankings,
        top_performer=rankings[0].result_id,
        average_score=sum(item.overall_score for item in results) / len(results),
        tier_distribution=dict(Counter(item.tier for item in results)),
    )
