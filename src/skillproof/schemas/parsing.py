"""Normalize loosely-structured completion output into strict records.

Completion output is decoded JSON whose keys may be camelCase or snake_case
and whose fields may be missing, null or of the wrong type. Every ``parse_*``
function below never raises on such input: it substitutes a documented
default and reports the field name in :attr:`Parsed.defaulted`.

Defaults applied by :func:`parse_question`:

* ``id`` -> ``q{index + 1}``
* ``type`` -> ``communication_draft``
* ``context.role`` -> ``"You are a professional"``; other context text -> ``""``
* ``expectedFormat`` -> ``long_text``; ``timeGuidance`` -> ``3`` minutes
* ``rubric.dimensions`` -> relevance/judgment/communication/execution/company_fit
  at 0.25/0.25/0.2/0.2/0.1; dimension weights summing to a positive value
  other than 1.0 are rescaled to 1.0
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Generic, Mapping, TypeVar

import pendulum
from pydantic import ValidationError

from ..core.aggregation import NEUTRAL_SCORE, weighted_mean
from .assessment import (
    DIMENSION_NAMES,
    EXPECTED_FORMATS,
    QUESTION_TYPES,
    AssessmentQuestion,
    QuestionPart,
    RubricLevel,
    ScenarioContext,
    ScoringDimension,
    ScoringRubric,
    WordGuidance,
)
from .profiles import COMPANY_STAGES, ROLE_CATEGORIES, ROLE_LEVELS, CompanyProfile, RoleProfile
from .scoring import TIERS, DimensionScore, NarrativeSummary, QuestionResponse, QuestionScore

T = TypeVar("T")

WEIGHT_TOLERANCE = 0.01
DEFAULT_DIMENSION_WEIGHT = 0.2

DEFAULT_DIMENSIONS: tuple[ScoringDimension, ...] = (
    ScoringDimension(name="relevance", weight=0.25, description="Did they address the actual problem?"),
    ScoringDimension(name="judgment", weight=0.25, description="Did they make good decisions?"),
    ScoringDimension(name="communication", weight=0.2, description="Was it clear and appropriate?"),
    ScoringDimension(name="execution", weight=0.2, description="Did they complete the task?"),
    ScoringDimension(name="company_fit", weight=0.1, description="Does it fit the company context?"),
)

DEFAULT_SCENARIO_ROLE = "You are a professional"
DEFAULT_TIME_GUIDANCE = 3.0


@dataclass(slots=True)
class Parsed(Generic[T]):
    """A normalized record plus the names of the fields that were defaulted."""

    value: T
    defaulted: list[str] = field(default_factory=list)


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


class _Reader:
    """Typed field access over a raw mapping that records defaulted fields."""

    def __init__(self, raw: Any, prefix: str = "") -> None:
        self._raw: Mapping[str, Any] = raw if isinstance(raw, Mapping) else {}
        self._prefix = prefix
        self.defaulted: list[str] = []

    def get(self, name: str) -> Any:
        for key in (_camel(name), name):
            value = self._raw.get(key)
            if value is not None:
                return value
        return None

    def miss(self, name: str) -> None:
        self.defaulted.append(f"{self._prefix}{_camel(name)}")

    def text(self, name: str, default: str) -> str:
        value = self.get(name)
        if isinstance(value, (str, int, float)) and not isinstance(value, bool):
            text = str(value).strip()
            if text:
                return text
        self.miss(name)
        return default

    def optional_text(self, name: str) -> str | None:
        value = self.get(name)
        if isinstance(value, (str, int, float)) and not isinstance(value, bool):
            return str(value).strip() or None
        return None

    def text_list(self, name: str, default: list[str], *, allow_empty: bool = False) -> list[str]:
        value = self.get(name)
        if isinstance(value, str) and value.strip():
            return [value.strip()]
        if isinstance(value, list):
            items = [
                str(item).strip()
                for item in value
                if isinstance(item, (str, int, float)) and str(item).strip()
            ]
            if items or (allow_empty and not value):
                return items
        self.miss(name)
        return list(default)

    def number(self, name: str, default: float, *, minimum: float | None = None) -> float:
        value = _to_float(self.get(name))
        if value is not None and (minimum is None or value > minimum):
            return value
        self.miss(name)
        return default

    def choice(self, name: str, allowed: tuple[str, ...], default: str) -> str:
        value = self.get(name)
        if isinstance(value, str):
            normalized = value.strip().lower().replace(" ", "_").replace("-", "_")
            if normalized in allowed:
                return normalized
        self.miss(name)
        return default

    def mapping(self, name: str) -> Mapping[str, Any] | None:
        value = self.get(name)
        return value if isinstance(value, Mapping) else None

    def items(self, name: str) -> list[Any] | None:
        value = self.get(name)
        return value if isinstance(value, list) else None

    def absorb(self, defaulted: list[str], prefix: str) -> None:
        self.defaulted.extend(f"{self._prefix}{prefix}{name}" for name in defaulted)


def _to_float(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


# ---------------------------------------------------------------------------
# Profiles
# ---------------------------------------------------------------------------

_COMPANY_TEXT = ("name", "description", "industry", "business_model", "culture")
_COMPANY_LISTS = (
    "products",
    "target_customers",
    "values",
    "competitors",
    "recent_news",
    "challenges",
    "typical_stakeholders",
    "common_metrics",
)

_ROLE_LISTS = (
    "responsibilities",
    "deliverables",
    "stakeholders",
    "hard_skills",
    "soft_skills",
    "tools",
    "common_challenges",
    "success_metrics",
)


def parse_company(raw: Any, *, defaults: Mapping[str, Any]) -> Parsed[CompanyProfile]:
    """Build a :class:`CompanyProfile` with every descriptive field populated.

    ``defaults`` maps snake_case field names to fallback values and must cover
    every text and list field of the profile.
    """

    reader = _Reader(raw)
    fields: dict[str, Any] = {}
    for name in _COMPANY_TEXT:
        fields[name] = reader.text(name, defaults[name])
    for name in _COMPANY_LISTS:
        fields[name] = reader.text_list(name, defaults[name])
    fields["stage"] = reader.choice("stage", COMPANY_STAGES, defaults.get("stage", "series_a"))
    fields["employee_count"] = reader.optional_text("employee_count") or defaults.get("employee_count")
    fields["source_url"] = reader.optional_text("source_url") or defaults.get("source_url")
    return Parsed(CompanyProfile(**fields), reader.defaulted)


def parse_role(raw: Any, *, defaults: Mapping[str, Any]) -> Parsed[RoleProfile]:
    """Build a :class:`RoleProfile`; see :func:`parse_company` for ``defaults``."""

    reader = _Reader(raw)
    fields: dict[str, Any] = {
        "title": reader.text("title", defaults["title"]),
        "category": reader.choice("category", ROLE_CATEGORIES, defaults.get("category", "general")),
        "level": reader.choice("level", ROLE_LEVELS, defaults.get("level", "mid")),
        "raw_job_description": defaults.get("raw_job_description"),
    }
    for name in _ROLE_LISTS:
        fields[name] = reader.text_list(name, defaults[name])
    return Parsed(RoleProfile(**fields), reader.defaulted)


# ---------------------------------------------------------------------------
# Questions
# ---------------------------------------------------------------------------


def _parse_levels(raw: Mapping[str, Any] | None, reader: _Reader) -> dict[str, list[RubricLevel]]:
    if raw is None:
        return {}
    levels: dict[str, list[RubricLevel]] = {}
    dropped = False
    for dimension, entries in raw.items():
        if not isinstance(entries, list):
            dropped = True
            continue
        parsed_entries = []
        for entry in entries:
            try:
                parsed_entries.append(RubricLevel.model_validate(entry))
            except ValidationError:
                dropped = True
        if parsed_entries:
            levels[str(dimension)] = parsed_entries
    if dropped:
        reader.miss("levels")
    return levels


def parse_rubric(raw: Any) -> Parsed[ScoringRubric]:
    reader = _Reader(raw)
    entries: list[tuple[str, float, str]] = []

    for entry in reader.items("dimensions") or []:
        item = _Reader(entry)
        name = item.choice("name", DIMENSION_NAMES, "")
        if not name:
            continue
        weight = _to_float(item.get("weight"))
        if weight is None:
            weight = DEFAULT_DIMENSION_WEIGHT
            reader.miss("dimensions.weight")
        entries.append((name, max(weight, 0.0), item.optional_text("description") or ""))

    if not entries:
        reader.miss("dimensions")
        entries = [(item.name, item.weight, item.description) for item in DEFAULT_DIMENSIONS]

    # Weights are relative; rescale to 1.0 before the [0, 1] bound applies.
    total = sum(weight for _, weight, _ in entries)
    if total > 0 and abs(total - 1.0) > WEIGHT_TOLERANCE:
        entries = [(name, weight / total, description) for name, weight, description in entries]
        reader.defaulted.append(f"dimensions.weight (normalized from {total:.2f})")

    dimensions = [
        ScoringDimension(name=name, weight=_clamp(weight, 0.0, 1.0), description=description)
        for name, weight, description in entries
    ]

    rubric = ScoringRubric(
        dimensions=dimensions,
        levels=_parse_levels(reader.mapping("levels"), reader),
        red_flags=reader.text_list("red_flags", [], allow_empty=True),
        bonus_indicators=reader.text_list("bonus_indicators", [], allow_empty=True),
    )
    return Parsed(rubric, reader.defaulted)


def _parse_context(raw: Any) -> Parsed[ScenarioContext]:
    reader = _Reader(raw)
    additional = reader.mapping("additional_info")
    context = ScenarioContext(
        role=reader.text("role", DEFAULT_SCENARIO_ROLE),
        situation=reader.text("situation", ""),
        constraints=reader.text_list("constraints", [], allow_empty=True),
        stakes=reader.text("stakes", ""),
        additional_info=(
            {str(key): str(value) for key, value in additional.items()} if additional else None
        ),
    )
    return Parsed(context, reader.defaulted)


def _parse_parts(raw: list[Any] | None) -> list[QuestionPart] | None:
    if not raw:
        return None
    parts = []
    for index, entry in enumerate(raw):
        item = _Reader(entry)
        prompt = item.optional_text("prompt")
        if not prompt:
            continue
        parts.append(
            QuestionPart(
                id=item.optional_text("id") or chr(ord("a") + index % 26),
                prompt=prompt,
                depends_on=item.optional_text("depends_on"),
            )
        )
    return parts or None


def _parse_word_guidance(raw: Mapping[str, Any] | None) -> WordGuidance | None:
    if raw is None:
        return None
    low, high = _to_float(raw.get("min")), _to_float(raw.get("max"))
    if low is None or high is None or low < 0 or high < low:
        return None
    return WordGuidance(min=int(low), max=int(high))


def parse_question(raw: Any, index: int) -> Parsed[AssessmentQuestion]:
    """Normalize one generated question; ``index`` is its zero-based position."""

    reader = _Reader(raw)
    context = _parse_context(reader.get("context"))
    reader.absorb(context.defaulted, "context.")
    rubric = parse_rubric(reader.get("rubric"))
    reader.absorb(rubric.defaulted, "rubric.")

    question = AssessmentQuestion(
        id=reader.text("id", f"q{index + 1}"),
        type=reader.choice("type", QUESTION_TYPES, "communication_draft"),
        context=context.value,
        prompt=reader.text("prompt", ""),
        parts=_parse_parts(reader.items("parts")),
        expected_format=reader.choice("expected_format", EXPECTED_FORMATS, "long_text"),
        word_guidance=_parse_word_guidance(reader.mapping("word_guidance")),
        time_guidance=reader.number("time_guidance", DEFAULT_TIME_GUIDANCE, minimum=0),
        rubric=rubric.value,
        skills_tested=reader.text_list("skills_tested", []),
        why_this_matters=reader.text("why_this_matters", ""),
        what_great_looks_like=reader.text("what_great_looks_like", ""),
    )
    return Parsed(question, reader.defaulted)


# ---------------------------------------------------------------------------
# Scores
# ---------------------------------------------------------------------------


def parse_dimension_score(raw: Any) -> Parsed[DimensionScore]:
    """Normalize one dimension score: score in [1, 5], weight in [0, 1]."""

    reader = _Reader(raw)
    score = _clamp(reader.number("score", NEUTRAL_SCORE), 1.0, 5.0)
    weight = _clamp(reader.number("weight", DEFAULT_DIMENSION_WEIGHT), 0.0, 1.0)
    dimension = DimensionScore(
        dimension=reader.choice("dimension", DIMENSION_NAMES, "relevance"),
        score=score,
        weight=weight,
        weighted_score=score * weight,
        feedback=reader.text("feedback", ""),
        evidence=reader.text_list("evidence", [], allow_empty=True),
    )
    return Parsed(dimension, reader.defaulted)


def parse_question_score(raw: Any, question_id: str) -> Parsed[QuestionScore]:
    reader = _Reader(raw)
    dimensions: list[DimensionScore] = []
    for entry in reader.items("dimension_scores") or []:
        if not isinstance(entry, Mapping):
            continue
        parsed = parse_dimension_score(entry)
        dimensions.append(parsed.value)
        reader.absorb(parsed.defaulted, f"dimensionScores[{len(dimensions) - 1}].")

    overall = _to_float(reader.get("overall_score"))
    if overall is None:
        reader.miss("overall_score")
        overall = weighted_mean(dimensions)

    score = QuestionScore(
        question_id=question_id,
        dimension_scores=dimensions,
        overall_score=_clamp(overall, 1.0, 5.0),
        strengths=reader.text_list("strengths", [], allow_empty=True),
        improvements=reader.text_list("improvements", [], allow_empty=True),
        specific_feedback=reader.text("specific_feedback", ""),
        red_flags_triggered=reader.text_list("red_flags_triggered", [], allow_empty=True),
        bonuses_earned=reader.text_list("bonuses_earned", [], allow_empty=True),
    )
    return Parsed(score, reader.defaulted)


def parse_summary(raw: Any, *, default_summary: str) -> Parsed[NarrativeSummary]:
    reader = _Reader(raw)
    suggested = reader.get("tier") or reader.get("suggested_tier")
    summary = NarrativeSummary(
        summary=reader.text("summary", default_summary),
        top_strengths=reader.text_list("top_strengths", [], allow_empty=True),
        areas_for_growth=reader.text_list("areas_for_growth", [], allow_empty=True),
        suggested_tier=suggested if suggested in TIERS else None,
    )
    return Parsed(summary, reader.defaulted)


# ---------------------------------------------------------------------------
# Candidate responses
# ---------------------------------------------------------------------------


def _parse_timestamp(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str) and value.strip():
        parsed = pendulum.parse(value.strip())
        if isinstance(parsed, datetime):
            return parsed
    return None


def parse_response(raw: Any) -> QuestionResponse:
    """Build a :class:`QuestionResponse` from a camelCase or snake_case mapping.

    Unlike the completion parsers this one is strict about identity: a missing
    question id raises ``ValueError``.
    """

    reader = _Reader(raw)
    question_id = reader.optional_text("question_id")
    if not question_id:
        raise ValueError("Response is missing questionId")

    now = pendulum.now("UTC")
    started_at = _parse_timestamp(reader.get("started_at")) or now
    submitted_at = _parse_timestamp(reader.get("submitted_at")) or started_at
    elapsed = _to_float(reader.get("time_spent_seconds"))
    if elapsed is None or elapsed < 0:
        elapsed = max((submitted_at - started_at).total_seconds(), 0.0)

    parts = reader.mapping("part_responses")
    response = reader.get("response")
    return QuestionResponse(
        question_id=question_id,
        response=response if isinstance(response, str) else "",
        part_responses={str(key): str(value) for key, value in parts.items()} if parts else None,
        started_at=started_at,
        submitted_at=submitted_at,
        time_spent_seconds=elapsed,
    )


__all__ = [
    "DEFAULT_DIMENSIONS",
    "Parsed",
    "parse_company",
    "parse_dimension_score",
    "parse_question",
    "parse_question_score",
    "parse_response",
    "parse_role",
    "parse_rubric",
    "parse_summary",
]
