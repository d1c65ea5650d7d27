from __future__ import annotations

import asyncio
import json
from typing import Any, Callable

import pendulum
import pytest

from skillproof.llm import Completion
from skillproof.schemas import Assessment, CompanyProfile, QuestionResponse, RoleProfile
from skillproof.schemas.parsing import parse_question

Responder = Callable[[str, str, dict[str, Any]], Any]


class StubCompletionClient:
    """Completion client driven by a ``responder(prompt, step, metadata)`` callable.

    The responder returns a string, a JSON-serializable object, or an exception
    instance to raise. ``latency`` returns the simulated delay for each call.
    """

    def __init__(self, responder: Responder, *, latency: Callable[[], float] | None = None) -> None:
        self._responder = responder
        self._latency = latency
        self.calls: list[dict[str, Any]] = []
        self.in_flight = 0
        self.max_in_flight = 0

    @property
    def steps(self) -> list[str]:
        return [call["step"] for call in self.calls]

    async def complete(
        self,
        prompt: str,
        *,
        step: str = "other",
        max_tokens: int = 2000,
        metadata: dict[str, Any] | None = None,
    ) -> Completion:
        meta = dict(metadata or {})
        self.calls.append({"prompt": prompt, "step": step, "max_tokens": max_tokens, "metadata": meta})
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self._latency is not None:
                await asyncio.sleep(self._latency())
            reply = self._responder(prompt, step, meta)
        finally:
            self.in_flight -= 1

        if isinstance(reply, BaseException):
            raise reply
        text = reply if isinstance(reply, str) else json.dumps(reply)
        return Completion(text=text, model="gpt-4o-mini", input_tokens=120, output_tokens=80)


def question_payload(index: int, **overrides: Any) -> dict[str, Any]:
    """A well-formed generated question in the camelCase shape completions use."""
    skills = [
        ["negotiation", "written_communication"],
        ["prioritization", "negotiation"],
        ["pipeline_management", "data_literacy"],
        ["stakeholder_management", "written_communication"],
    ][index % 4]
    payload: dict[str, Any] = {
        "id": f"q{index + 1}",
        "type": "communication_draft",
        "context": {
            "role": "You are an SDR at Stripe, three weeks into the role",
            "situation": (
                "Priya, VP Finance at Lumen Health, replied to your sequence asking why "
                "Stripe Billing beats the invoicing module in NetSuite they already pay for."
            ),
            "constraints": ["Reply must fit in one screen", "You cannot offer a discount"],
            "stakes": "A qualified meeting this week keeps you on pace for quota",
        },
        "prompt": "Write the reply email you would send to Priya today.",
        "expectedFormat": "email",
        "timeGuidance": 3,
        "rubric": {
            "dimensions": [
                {"name": "relevance", "weight": 0.25},
                {"name": "judgment", "weight": 0.25},
                {"name": "communication", "weight": 0.2},
                {"name": "execution", "weight": 0.2},
                {"name": "company_fit", "weight": 0.1},
            ],
            "redFlags": ["Ignores the NetSuite objection"],
            "bonusIndicators": ["Quantifies time saved on revenue recognition"],
        },
        "skillsTested": skills,
        "whyThisMatters": "SDRs field this objection weekly.",
        "whatGreatLooksLike": "A short, specific reply that earns a meeting.",
    }
    payload.update(overrides)
    return payload


def generation_payload(count: int) -> dict[str, Any]:
    return {"questions": [question_payload(index) for index in range(count)]}


def score_payload(overall: float = 4.0) -> dict[str, Any]:
    return {
        "dimensionScores": [
            {"dimension": "relevance", "score": overall, "weight": 0.5, "feedback": "On point"},
            {"dimension": "communication", "score": overall, "weight": 0.5, "feedback": "Clear"},
        ],
        "overallScore": overall,
        "strengths": ["Addressed the objection directly"],
        "improvements": ["Close with a concrete time"],
        "specificFeedback": "Solid, specific reply.",
    }


def rubric_score_payload(score: float = 4.0, dimensions: int = 5) -> dict[str, Any]:
    """Equal-weight dimension scores with no overall score, so the weighted mean decides."""
    return {
        "dimensionScores": [
            {"dimension": f"dimension_{index + 1}", "score": score, "weight": 1 / dimensions}
            for index in range(dimensions)
        ],
        "strengths": ["Specific to the account"],
        "improvements": [],
        "specificFeedback": "Consistent across the rubric.",
    }


SUMMARY_PAYLOAD: dict[str, Any] = {
    "tier": "strong",
    "summary": "A consistent candidate who writes specific, customer-aware replies.",
    "topStrengths": ["Objection handling"],
    "areasForGrowth": ["Closing"],
}

ROLE_PAYLOAD: dict[str, Any] = {
    "title": "Sales Development Representative",
    "category": "sales",
    "level": "entry",
    "responsibilities": ["Outbound prospecting", "Qualify inbound leads"],
    "hardSkills": ["Prospecting", "CRM hygiene"],
    "softSkills": ["Resilience"],
    "tools": ["Salesforce", "Outreach"],
}


def default_responder(prompt: str, step: str, metadata: dict[str, Any]) -> Any:
    if step == "research_company":
        return {"name": "Lumen Health", "industry": "Healthcare", "stage": "series_b"}
    if step == "extract_role":
        return ROLE_PAYLOAD
    if step == "generate_questions":
        return generation_payload(8)
    if step == "score_response":
        return score_payload(4.0)
    if step == "generate_summary":
        return SUMMARY_PAYLOAD
    raise AssertionError(f"unexpected step {step}")


def make_company(**overrides: Any) -> CompanyProfile:
    data: dict[str, Any] = {
        "name": "Stripe",
        "description": "Payment infrastructure for the internet",
        "industry": "Fintech",
        "stage": "public",
    }
    data.update(overrides)
    return CompanyProfile(**data)


def make_role(**overrides: Any) -> RoleProfile:
    data: dict[str, Any] = {
        "title": "Sales Development Representative",
        "category": "sales",
        "level": "entry",
        "tools": ["Salesforce"],
    }
    data.update(overrides)
    return RoleProfile(**data)


def make_assessment(count: int = 8, **overrides: Any) -> Assessment:
    questions = [parse_question(question_payload(index), index).value for index in range(count)]
    skills: list[str] = []
    for question in questions:
        skills.extend(skill for skill in question.skills_tested if skill not in skills)
    data: dict[str, Any] = {
        "id": "sp_test",
        "company": make_company(),
        "role": make_role(),
        "title": "Sales Development Representative Assessment at Stripe",
        "description": "Test assessment",
        "questions": questions,
        "estimated_minutes": 41,
        "skills_covered": skills,
    }
    data.update(overrides)
    return Assessment(**data)


def make_response(question_id: str, text: str = "Hi Priya, here is how Billing fits...") -> QuestionResponse:
    started = pendulum.datetime(2024, 5, 1, 9, 0, tz="UTC")
    return QuestionResponse(
        question_id=question_id,
        response=text,
        started_at=started,
        submitted_at=started.add(minutes=3),
        time_spent_seconds=180,
    )


@pytest.fixture
def stub_client() -> StubCompletionClient:
    return StubCompletionClient(default_responder)


@pytest.fixture
def client_factory() -> type[StubCompletionClient]:
    return StubCompletionClient


@pytest.fixture
def payloads() -> Any:
    """Builders for completion payloads, grouped so tests can reach them by name."""

    class _Payloads:
        question = staticmethod(question_payload)
        generation = staticmethod(generation_payload)
        score = staticmethod(score_payload)
        rubric_score = staticmethod(rubric_score_payload)
        summary = SUMMARY_PAYLOAD
        role = ROLE_PAYLOAD
        default_responder = staticmethod(default_responder)

    return _Payloads


@pytest.fixture
def builders() -> Any:
    """Builders for domain records."""

    class _Builders:
        company = staticmethod(make_company)
        role = staticmethod(make_role)
        assessment = staticmethod(make_assessment)
        response = staticmethod(make_response)

    return _Builders
