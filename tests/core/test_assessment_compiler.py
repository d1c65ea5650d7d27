from __future__ import annotations

import pytest

from skillproof.compiler import AssessmentCompiler
from skillproof.errors import CompletionError


def _reply_with(payload):
    return lambda prompt, step, metadata: payload


@pytest.mark.asyncio
async def test_compile_builds_validated_assessment(client_factory, payloads, builders) -> None:
    client = client_factory(_reply_with(payloads.generation(8)))
    compiler = AssessmentCompiler(client, id_factory=lambda: "sp_fixed")

    result = await compiler.compile(builders.company(), builders.role())

    assert result.ok
    assessment = result.data
    assert assessment.id == "sp_fixed"
    assert assessment.title == "Sales Development Representative Assessment at Stripe"
    assert len(assessment.questions) == 8
    assert assessment.estimated_minutes == 41
    assert assessment.difficulty == "standard"
    assert "negotiation" in assessment.skills_covered
    assert result.warnings == ()

    call = client.calls[0]
    assert call["step"] == "generate_questions"
    assert call["metadata"] == {"assessment_id": "sp_fixed"}
    assert "communication_draft" in call["prompt"]
    assert assessment.generation_prompt == call["prompt"]


@pytest.mark.asyncio
async def test_compile_fills_defaults_and_renames_duplicates(client_factory, payloads, builders) -> None:
    questions = [payloads.question(index) for index in range(5)]
    questions[1]["id"] = "q1"
    questions[2] = {"prompt": "Draft the follow-up note to the champion after the call."}
    client = client_factory(_reply_with({"questions": questions}))

    result = await AssessmentCompiler(client).compile(builders.company(), builders.role())

    assert result.ok
    ids = [question.id for question in result.data.questions]
    assert len(set(ids)) == 5
    assert ids[1] == "q2"

    sparse = result.data.questions[2]
    assert sparse.type == "communication_draft"
    assert sparse.context.role == "You are a professional"
    assert sparse.time_guidance == 3
    assert [dimension.weight for dimension in sparse.rubric.dimensions] == [0.25, 0.25, 0.2, 0.2, 0.1]
    assert any(warning.startswith("Question q3: defaulted fields") for warning in result.warnings)
    assert any("Context too thin" in warning for warning in result.warnings)


@pytest.mark.asyncio
async def test_compile_normalizes_rubric_weights(client_factory, payloads, builders) -> None:
    question = payloads.question(
        0,
        rubric={"dimensions": [{"name": "relevance", "weight": 2}, {"name": "judgment", "weight": 2}]},
    )
    client = client_factory(_reply_with({"questions": [question] * 5}))

    result = await AssessmentCompiler(client).compile(builders.company(), builders.role())

    weights = [dimension.weight for dimension in result.data.questions[0].rubric.dimensions]
    assert weights == [0.5, 0.5]
    assert any("normalized from 4.00" in warning for warning in result.warnings)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("reply", "message"),
    [
        ("Sorry, I cannot help with that.", "Could not parse assessment"),
        ('{"questions": []}', "No questions generated"),
        (CompletionError("rate limited", code="RATE_LIMITED"), "rate limited"),
        (RuntimeError("boom"), "Unknown error generating assessment: boom"),
    ],
)
async def test_compile_failures(client_factory, builders, reply, message) -> None:
    client = client_factory(_reply_with(reply))

    result = await AssessmentCompiler(client).compile(builders.company(), builders.role())

    assert not result.ok
    assert result.error.code == "GENERATION_FAILED"
    assert result.error.message == message


@pytest.mark.asyncio
async def test_compile_respects_overrides(client_factory, payloads, builders) -> None:
    client = client_factory(_reply_with(payloads.generation(6)))
    compiler = AssessmentCompiler(client)

    result = await compiler.compile(
        builders.company(),
        builders.role(),
        question_count=6,
        difficulty="senior",
        focus_areas=["negotiation", "forecasting"],
        question_mix={"multi_part_scenario": 0},
    )

    prompt = client.calls[0]["prompt"]
    assert result.data.difficulty == "senior"
    assert "negotiation, forecasting" in prompt
    assert "multi_part_scenario" not in prompt.split("QUESTION MIX")[-1].split("\n\n")[0]


@pytest.mark.asyncio
async def test_compile_rejects_unknown_difficulty(client_factory, payloads, builders) -> None:
    compiler = AssessmentCompiler(client_factory(_reply_with(payloads.generation(5))))

    with pytest.raises(ValueError):
        await compiler.compile(builders.company(), builders.role(), difficulty="impossible")
