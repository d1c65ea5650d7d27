from __future__ import annotations

import json
from pathlib import Path

import pytest

from skillproof.prompts import (
    build_role_extraction_prompt,
    build_score_prompt,
    fill_template,
)
from skillproof.usage import (
    MODEL_PRICING,
    UsageTracker,
    calculate_cost,
    estimate_assessment_cost,
    format_cost,
    get_model_pricing,
)


def test_fill_template_slots_and_conditionals() -> None:
    template = "Hi {{name}}.{{#if extra}} Extra: {{extra}}.{{/if}}\n{{dataJson}}\n{{missingJson}}|{{missing}}|"

    rendered = fill_template(template, {"name": "Ada", "extra": None, "data": {"k": [1]}})

    assert rendered.startswith("Hi Ada.\n")
    assert json.loads(rendered.split("\n", 1)[1].rsplit("\nnull", 1)[0]) == {"k": [1]}
    assert rendered.endswith("null||")


def test_role_prompt_includes_company_only_when_known(builders) -> None:
    without = build_role_extraction_prompt("Posting text")
    with_company = build_role_extraction_prompt("Posting text", builders.company())

    assert "Posting text" in without
    assert '"name": "Stripe"' in with_company
    assert '"name": "Stripe"' not in without


def test_score_prompt_carries_rubric_and_response(builders) -> None:
    question = builders.assessment(1).questions[0]

    prompt = build_score_prompt(
        role_title="SDR",
        company_name="Stripe",
        question=question,
        response="Hi Priya, Billing handles rev rec natively.",
        time_spent_seconds=181.6,
    )

    assert "Hi Priya, Billing handles rev rec natively." in prompt
    assert "Ignores the NetSuite objection" in prompt
    assert "182" in prompt


@pytest.mark.parametrize(
    ("model", "key"),
    [
        ("gpt-4o-mini", "gpt-4o-mini"),
        ("gpt-4o-2024-08-06", "gpt-4o"),
        ("claude-3-5-sonnet-20241022", "claude-3-5-sonnet"),
        ("claude-sonnet-4-20250514", "claude-sonnet-4"),
    ],
)
def test_model_pricing_partial_matches(model: str, key: str) -> None:
    assert get_model_pricing(model) == MODEL_PRICING[key]


def test_unknown_model_uses_default_pricing() -> None:
    assert get_model_pricing("mystery-model") == {"input": 3.00, "output": 15.00}


def test_calculate_and_format_cost() -> None:
    cost = calculate_cost("gpt-4o", 1_000_000, 100_000)

    assert cost == pytest.approx(3.5)
    assert format_cost(cost) == "$3.5000"
    assert format_cost(0.0012) == "0.1200\N{CENT SIGN}"


def test_usage_tracker_records_and_summarizes(tmp_path: Path) -> None:
    log_path = tmp_path / "logs" / "usage.jsonl"
    tracker = UsageTracker(log_path)

    tracker.record(step="score_response", model="gpt-4o-mini", input_tokens=1000, output_tokens=500, assessment_id="sp_1")
    tracker.record(step="score_response", model="gpt-4o-mini", input_tokens=1000, output_tokens=500, assessment_id="sp_2")
    tracker.record(step="generate_summary", model="gpt-4o", input_tokens=2000, output_tokens=1000, assessment_id="sp_1")

    summary = tracker.summarize()
    assert summary.total_calls == 3
    assert summary.total_input_tokens == 4000
    assert summary.by_step["score_response"].calls == 2
    assert summary.by_model["gpt-4o"].calls == 1
    assert tracker.total_cost() == pytest.approx(summary.total_cost_usd)
    assert tracker.total_cost("sp_2") == pytest.approx(calculate_cost("gpt-4o-mini", 1000, 500))

    lines = log_path.read_text(encoding="utf-8").splitlines()
    assert len(lines) == 3
    assert json.loads(lines[0])["assessment_id"] == "sp_1"


def test_estimate_assessment_cost_scales_with_questions() -> None:
    eight = estimate_assessment_cost(8)
    sixteen = estimate_assessment_cost(16)

    assert sixteen.scoring == pytest.approx(eight.scoring * 2)
    assert sixteen.research == pytest.approx(eight.research)
    assert eight.total == pytest.approx(
        eight.research + eight.question_generation + eight.scoring + eight.summary
    )


def test_fill_template_does_not_rescan_inserted_values() -> None:
    template = "{{questionJson}}\nAnswer: {{response}}"
    question = {"prompt": "Reply to {{response}} with care"}

    rendered = fill_template(template, {"question": question, "response": "candidate text"})

    assert json.loads(rendered.split("\nAnswer:")[0]) == question
    assert rendered.count("candidate text") == 1
