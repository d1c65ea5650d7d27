"""Pure assessment logic: mix planning, validation, aggregation and reports."""

from __future__ import annotations

# NOTE: keep imports explicit for export clarity.
from .aggregation import (
    aggregate,
    analyze_skills,
    determine_tier,
    fallback_question_score,
    fallback_summary,
    overall_score,
    weighted_mean,
)
from .mix import ARCHETYPES, DEFAULT_QUESTION_MIX, ArchetypeConfig, estimate_minutes, plan_mix
from .reporting import (
    CandidateComparison,
    build_feedback_report,
    compare_candidates,
    score_color,
    tier_badge,
)
from .validation import ValidationReport, validate

__all__ = [
    "ARCHETYPES",
    "ArchetypeConfig",
    "CandidateComparison",
    "DEFAULT_QUESTION_MIX",
    "ValidationReport",
    "aggregate",
    "analyze_skills",
    "build_feedback_report",
    "compare_candidates",
    "determine_tier",
    "estimate_minutes",
    "fallback_question_score",
    "fallback_summary",
    "overall_score",
    "plan_mix",
    "score_color",
    "tier_badge",
    "validate",
    "weighted_mean",
]
