from __future__ import annotations

import json
from pathlib import Path

import pytest

from skillproof.container import create_container
from skillproof.pipeline import (
    EXAMPLE_POSTINGS,
    JsonDirectoryStore,
    ResponsesLoadError,
    ResponsesLoader,
)

POSTING = EXAMPLE_POSTINGS["sdr"][1]


def response_record(question_id: str, text: str = "Hi Priya, Billing closes the books faster.") -> dict:
    return {
        "questionId": question_id,
        "response": text,
        "startedAt": "2024-05-01T09:00:00Z",
        "submittedAt": "2024-05-01T09:03:00Z",
    }


@pytest.mark.asyncio
async def test_generate_then_score_end_to_end(stub_client, builders) -> None:
    container = create_container(client=stub_client)
    pipeline = container.pipeline()

    generated = await pipeline.generate(POSTING, company_name="Stripe")

    assert generated.ok, generated.error
    assessment = generated.data
    assert assessment.company.name == "Stripe"
    assert assessment.role.title == "Sales Development Representative"
    assert assessment.title == "Sales Development Representative Assessment at Stripe"
    assert len(assessment.questions) == 8
    assert assessment.estimated_minutes == 41
    assert container.store().get_assessment(assessment.id) == assessment
    # Stripe is a well-known company, so no research completion is needed.
    assert stub_client.steps == ["extract_role", "generate_questions"]

    responses = [builders.response(question.id) for question in assessment.questions]
    result = await pipeline.score(assessment, responses)

    assert result.overall_score == 75
    assert result.tier == "strong"
    assert result.share_token
    assert container.store().get_result_by_share_token(result.share_token) == result
    assert stub_client.steps.count("score_response") == 8
    assert stub_client.steps[-1] == "generate_summary"


@pytest.mark.asyncio
async def test_equal_weight_rubric_scores_end_to_end(client_factory, payloads, builders) -> None:
    def responder(prompt, step, metadata):
        if step == "score_response":
            return payloads.rubric_score(4.0, dimensions=5)
        return payloads.default_responder(prompt, step, metadata)

    client = client_factory(responder)
    pipeline = create_container(client=client).pipeline()

    generated = await pipeline.generate(POSTING, company_name="Stripe")
    assessment = generated.data
    result = await pipeline.score(assessment, [builders.response(question.id) for question in assessment.questions])

    assert len(assessment.questions) == 8
    assert all(len(score.dimension_scores) == 5 for score in result.question_scores)
    assert all(score.overall_score == pytest.approx(4.0) for score in result.question_scores)
    assert result.overall_score == 75
    assert result.tier == "strong"


@pytest.mark.asyncio
async def test_generate_applies_role_title_override(stub_client) -> None:
    pipeline = create_container(client=stub_client).pipeline()

    generated = await pipeline.generate(POSTING, company_name="Stripe", role_title="Founding SDR")

    assert generated.ok
    assert generated.data.role.title == "Founding SDR"
    assert generated.data.title.startswith("Founding SDR Assessment")


@pytest.mark.asyncio
async def test_generate_surfaces_research_failures(client_factory) -> None:
    client = client_factory(lambda prompt, step, metadata: "not json")
    pipeline = create_container(client=client).pipeline()

    generated = await pipeline.generate(POSTING, company_name="Stripe")

    assert not generated.ok
    assert generated.error.code == "INVALID_JOB_DESCRIPTION"
    assert client.steps == ["extract_role"]


@pytest.mark.asyncio
async def test_generate_example_unknown_role_type(stub_client) -> None:
    pipeline = create_container(client=stub_client).pipeline()

    generated = await pipeline.generate_example("astronaut")

    assert not generated.ok
    assert generated.error.code == "INVALID_JOB_DESCRIPTION"
    assert stub_client.calls == []


@pytest.mark.asyncio
async def test_generate_example_uses_bundled_posting(stub_client) -> None:
    pipeline = create_container(client=stub_client).pipeline()

    generated = await pipeline.generate_example("csm")

    assert generated.ok
    assert generated.data.company.name == "Figma"
    assert "Customer Success Manager at Figma" in stub_client.calls[0]["prompt"]


@pytest.mark.asyncio
async def test_run_generate_and_run_score_write_files(tmp_path: Path, stub_client) -> None:
    job_path = tmp_path / "posting.md"
    job_path.write_text(POSTING, encoding="utf-8")
    assessment_path = tmp_path / "out" / "assessment.json"
    responses_path = tmp_path / "responses.json"
    result_path = tmp_path / "out" / "result.json"
    report_path = tmp_path / "out" / "report.md"

    pipeline = create_container(client=stub_client).pipeline()

    generated = await pipeline.run_generate(job_path=job_path, output_path=assessment_path, company_name="Stripe")
    assert generated.ok

    written = json.loads(assessment_path.read_text(encoding="utf-8"))
    assert written["metadata"]["source"] == str(job_path)
    assert written["metadata"]["app_version"]
    assert written["assessment"]["id"] == generated.data.id

    records = [response_record(question.id) for question in generated.data.questions]
    responses_path.write_text(json.dumps({"responses": records}), encoding="utf-8")

    result = await pipeline.run_score(
        assessment_path=assessment_path,
        responses_path=responses_path,
        output_path=result_path,
        report_path=report_path,
    )

    assert result.overall_score == 75
    scored = json.loads(result_path.read_text(encoding="utf-8"))
    assert scored["metadata"]["errors"] == []
    assert scored["result"]["tier"] == "strong"
    assert scored["result"]["responses"][0]["time_spent_seconds"] == 180
    assert report_path.read_text(encoding="utf-8").strip()


@pytest.mark.asyncio
async def test_run_score_keeps_valid_records_when_some_fail(tmp_path: Path, stub_client, builders) -> None:
    assessment = builders.assessment(5)
    assessment_path = tmp_path / "assessment.json"
    assessment_path.write_text(json.dumps({"assessment": assessment.model_dump(mode="json")}), encoding="utf-8")
    responses_path = tmp_path / "responses.json"
    responses_path.write_text(
        json.dumps([response_record("q1"), {"response": "no question id"}, response_record("q2")]),
        encoding="utf-8",
    )
    result_path = tmp_path / "result.json"

    pipeline = create_container(client=stub_client).pipeline()
    result = await pipeline.run_score(
        assessment_path=assessment_path, responses_path=responses_path, output_path=result_path
    )

    assert [item.question_id for item in result.responses] == ["q1", "q2"]
    scored = json.loads(result_path.read_text(encoding="utf-8"))
    assert len(scored["metadata"]["errors"]) == 1
    assert scored["metadata"]["errors"][0].startswith("record 2:")


def test_responses_loader_reports_partial_results(tmp_path: Path) -> None:
    path = tmp_path / "responses.json"
    path.write_text(json.dumps([response_record("q1"), "garbage"]), encoding="utf-8")

    with pytest.raises(ResponsesLoadError) as excinfo:
        ResponsesLoader().load(path)

    assert [item.question_id for item in excinfo.value.partial] == ["q1"]
    assert excinfo.value.errors[0].startswith("record 2:")


def test_responses_loader_rejects_invalid_json(tmp_path: Path) -> None:
    path = tmp_path / "responses.json"
    path.write_text("{not json", encoding="utf-8")

    with pytest.raises(ValueError, match="Invalid responses JSON"):
        ResponsesLoader().load(path)


@pytest.mark.asyncio
async def test_json_directory_store_persists_records(tmp_path: Path, stub_client, builders) -> None:
    container = create_container(settings={"store_dir": str(tmp_path / "store")}, client=stub_client)
    store = container.store()
    assert isinstance(store, JsonDirectoryStore)

    assessment = builders.assessment(5)
    store.save_assessment(assessment)
    responses = [builders.response(question.id) for question in assessment.questions]
    result = await container.pipeline().score(assessment, responses)

    reopened = JsonDirectoryStore(tmp_path / "store")
    assert reopened.get_assessment("sp_test").questions == assessment.questions
    assert reopened.get_result(result.id).overall_score == result.overall_score
    assert reopened.get_result_by_share_token(result.share_token).id == result.id
    assert reopened.get_result_by_share_token("missing") is None
    assert reopened.get_assessment("unknown") is None
    with pytest.raises(ValueError):
        reopened.get_assessment("../escape")
