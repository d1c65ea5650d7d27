from __future__ import annotations

import pendulum
import pytest

from skillproof.core.aggregation import (
    NOT_COMPLETED_FLAG,
    aggregate,
    analyze_skills,
    determine_tier,
    fallback_question_score,
    fallback_summary,
    overall_score,
    weighted_mean,
)
from skillproof.schemas import AssessmentResult, DimensionScore, QuestionScore


def _score(question_id: str, overall: float) -> QuestionScore:
    return QuestionScore(question_id=question_id, overall_score=overall)


@pytest.mark.parametrize(
    ("mean", "expected"),
    [(1.0, 0), (5.0, 100), (3.0, 50), (4.0, 75), (1.5, 13), (4.5, 88)],
)
def test_overall_score_mapping(mean: float, expected: int) -> None:
    assert overall_score(mean) == expected


@pytest.mark.parametrize(
    ("score", "tier"),
    [
        (100, "exceptional"),
        (90, "exceptional"),
        (89, "strong"),
        (75, "strong"),
        (74, "qualified"),
        (60, "qualified"),
        (59, "developing"),
        (45, "developing"),
        (44, "not_ready"),
        (0, "not_ready"),
    ],
)
def test_tier_boundaries(score: int, tier: str) -> None:
    assert determine_tier(score) == tier


def test_aggregate_uses_unweighted_mean() -> None:
    scores = [_score("q1", 5), _score("q2", 3), _score("q3", 4)]

    assert aggregate(scores) == (75, "strong")


def test_aggregate_empty_is_not_ready() -> None:
    assert aggregate([]) == (0, "not_ready")


def test_weighted_mean_divides_by_weight_sum() -> None:
    dimensions = [
        DimensionScore(dimension="relevance", score=5, weight=0.3, weighted_score=1.5),
        DimensionScore(dimension="judgment", score=3, weight=0.1, weighted_score=0.3),
    ]

    assert weighted_mean(dimensions) == pytest.approx(4.5)


def test_weighted_mean_without_weight_is_neutral() -> None:
    dimensions = [DimensionScore(dimension="relevance", score=5, weight=0, weighted_score=0)]

    assert weighted_mean(dimensions) == 3.0
    assert weighted_mean([]) == 3.0


def test_fallback_question_score_is_lowest_with_red_flag() -> None:
    score = fallback_question_score("q7", "Question not answered")

    assert score.overall_score == 1
    assert score.red_flags_triggered == [NOT_COMPLETED_FLAG]
    assert score.specific_feedback == "Question not answered"
    assert score.dimension_scores == []


def test_fallback_summary_per_tier() -> None:
    assert "exceptional" in fallback_summary("exceptional")
    assert fallback_summary("unknown") == fallback_summary("not_ready")


def test_analyze_skills_averages_per_skill(builders) -> None:
    assessment = builders.assessment(2)
    # q1 tests negotiation + written_communication, q2 tests prioritization + negotiation
    now = pendulum.now("UTC")
    result = AssessmentResult(
        id="result_1",
        assessment_id=assessment.id,
        started_at=now,
        completed_at=now,
        question_scores=[_score("q1", 4), _score("q2", 2)],
        overall_score=50,
        tier="developing",
        summary="",
    )

    analysis = analyze_skills(result, assessment)
    by_skill = {item.skill: item for item in analysis.skill_scores}

    assert by_skill["negotiation"].score == 3
    assert by_skill["negotiation"].questions == 2
    assert by_skill["written_communication"].score == 4
    assert by_skill["prioritization"].score == 2
    assert analysis.strongest_skills[0] == "written_communication"
    assert analysis.weakest_skills[0] == "prioritization"


def test_analyze_skills_ranks_top_and_bottom_three(builders) -> None:
    assessment = builders.assessment(4)
    now = pendulum.now("UTC")
    result = AssessmentResult(
        id="result_2",
        assessment_id=assessment.id,
        started_at=now,
        completed_at=now,
        question_scores=[_score("q1", 5), _score("q2", 4), _score("q3", 2), _score("q4", 1)],
        overall_score=44,
        tier="not_ready",
        summary="",
    )

    analysis = analyze_skills(result, assessment)
    scores = [item.score for item in analysis.skill_scores]

    assert scores == sorted(scores, reverse=True)
    assert len(analysis.strongest_skills) == 3
    assert len(analysis.weakest_skills) == 3
    assert analysis.weakest_skills[0] == "stakeholder_management"
