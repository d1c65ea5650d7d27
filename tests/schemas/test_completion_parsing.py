from __future__ import annotations

import pytest
from pydantic import ValidationError

from skillproof.research import company_defaults, role_defaults
from skillproof.schemas import Assessment
from skillproof.schemas.config import AppConfig, load_config
from skillproof.schemas.parsing import (
    parse_company,
    parse_dimension_score,
    parse_question,
    parse_question_score,
    parse_response,
    parse_role,
    parse_summary,
)


def test_parse_company_accepts_snake_and_camel_case() -> None:
    raw = {
        "name": "Lumen Health",
        "industry": "Healthcare",
        "stage": "Series B",
        "targetCustomers": ["Clinics"],
        "recent_news": "Raised a Series B",
        "employeeCount": 120,
    }

    parsed = parse_company(raw, defaults=company_defaults("Lumen Health"))

    company = parsed.value
    assert company.stage == "series_b"
    assert company.target_customers == ["Clinics"]
    assert company.recent_news == ["Raised a Series B"]
    assert company.employee_count == "120"
    assert "targetCustomers" not in parsed.defaulted
    assert "businessModel" in parsed.defaulted


def test_parse_company_never_raises_on_garbage() -> None:
    parsed = parse_company(["not", "a", "mapping"], defaults=company_defaults("Acme"))

    assert parsed.value.name == "Acme"
    assert parsed.value.stage == "series_a"
    assert "name" in parsed.defaulted


def test_parse_role_rejects_unknown_enums() -> None:
    parsed = parse_role(
        {"title": "Astronaut", "category": "space", "level": "galactic"},
        defaults=role_defaults("Astronaut"),
    )

    assert parsed.value.category == "general"
    assert parsed.value.level == "mid"
    assert {"category", "level"} <= set(parsed.defaulted)


def test_parse_question_reports_nested_defaults() -> None:
    parsed = parse_question({"prompt": "Write the note.", "context": {"situation": "Details"}}, 4)

    question = parsed.value
    assert question.id == "q5"
    assert question.expected_format == "long_text"
    assert "id" in parsed.defaulted
    assert "context.role" in parsed.defaulted
    assert "rubric.dimensions" in parsed.defaulted


def test_parse_question_keeps_parts_and_word_guidance() -> None:
    raw = {
        "id": "q2",
        "type": "multi-part scenario",
        "prompt": "Work through the escalation in order.",
        "parts": [{"prompt": "First reply"}, {"id": "b", "prompt": "Follow up", "dependsOn": "a"}, {"id": "c"}],
        "wordGuidance": {"min": 50, "max": 150},
    }

    question = parse_question(raw, 1).value

    assert question.type == "multi_part_scenario"
    assert [part.id for part in question.parts] == ["a", "b"]
    assert question.parts[1].depends_on == "a"
    assert (question.word_guidance.min, question.word_guidance.max) == (50, 150)


def test_parse_dimension_score_clamps_and_recomputes() -> None:
    parsed = parse_dimension_score({"dimension": "judgment", "score": 9, "weight": 0.5, "weightedScore": 99})

    assert parsed.value.score == 5
    assert parsed.value.weighted_score == 2.5


def test_parse_question_score_clamps_overall() -> None:
    parsed = parse_question_score({"overallScore": "0.2", "strengths": ["Clear"]}, "q3")

    assert parsed.value.question_id == "q3"
    assert parsed.value.overall_score == 1
    assert parsed.value.strengths == ["Clear"]


def test_parse_summary_accepts_known_tiers_only() -> None:
    parsed = parse_summary({"tier": "legendary"}, default_summary="Fallback.")

    assert parsed.value.summary == "Fallback."
    assert parsed.value.suggested_tier is None
    assert parse_summary({"suggested_tier": "strong", "summary": "Ok"}, default_summary="").value.suggested_tier == "strong"


def test_parse_response_computes_elapsed_time() -> None:
    response = parse_response(
        {
            "questionId": "q1",
            "response": "My answer",
            "startedAt": "2024-05-01T09:00:00Z",
            "submittedAt": "2024-05-01T09:04:30Z",
        }
    )

    assert response.question_id == "q1"
    assert response.time_spent_seconds == 270


def test_parse_response_requires_question_id() -> None:
    with pytest.raises(ValueError, match="questionId"):
        parse_response({"response": "orphan"})


def test_assessment_round_trips_through_json(builders) -> None:
    assessment = builders.assessment(5)

    restored = Assessment.model_validate_json(assessment.model_dump_json())

    assert restored.questions == assessment.questions
    assert restored.company.name == assessment.company.name
    assert restored.question("q3") == assessment.questions[2]


def test_load_config_validation() -> None:
    config = load_config({"scoring": {"concurrency": 2}, "generation": {"difficulty": "senior"}})

    assert isinstance(config, AppConfig)
    settings = config.to_settings()
    assert settings["scoring"]["concurrency"] == 2
    assert settings["llm"]["retry_attempts"] == 3
    with pytest.raises(ValidationError):
        load_config({"scoring": {"concurrency": 0}})
    with pytest.raises(ValueError):
        load_config(["not", "a", "mapping"])
