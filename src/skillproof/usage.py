"""Token usage tracking and cost estimation for completion calls."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Literal

import pendulum
import structlog

UsageStep = Literal[
    "research_company",
    "extract_role",
    "generate_questions",
    "score_response",
    "generate_summary",
    "other",
]

# Model pricing per 1M tokens (input/output)
MODEL_PRICING: dict[str, dict[str, float]] = {
    "gpt-4o-mini": {"input": 0.15, "output": 0.60},
    "gpt-4o": {"input": 2.50, "output": 10.00},
    "gpt-4.1-mini": {"input": 0.40, "output": 1.60},
    "gpt-4.1": {"input": 2.00, "output": 8.00},
    "gpt-4": {"input": 30.00, "output": 60.00},
    "claude-opus-4": {"input": 15.00, "output": 75.00},
    "claude-sonnet-4": {"input": 3.00, "output": 15.00},
    "claude-3-5-sonnet": {"input": 3.00, "output": 15.00},
    "claude-3-5-haiku": {"input": 0.80, "output": 4.00},
    "claude-3-opus": {"input": 15.00, "output": 75.00},
    "claude-3-haiku": {"input": 0.25, "output": 1.25},
}

DEFAULT_PRICING: dict[str, float] = {"input": 3.00, "output": 15.00}

# Checked in order; the first fragment found in the model name wins.
_PARTIAL_MATCHES: tuple[tuple[str, str], ...] = (
    ("gpt-4o-mini", "gpt-4o-mini"),
    ("gpt-4o", "gpt-4o"),
    ("gpt-4.1-mini", "gpt-4.1-mini"),
    ("gpt-4.1", "gpt-4.1"),
    ("gpt-4", "gpt-4"),
    ("opus-4", "claude-opus-4"),
    ("sonnet-4", "claude-sonnet-4"),
    ("haiku", "claude-3-5-haiku"),
    ("opus", "claude-3-opus"),
    ("sonnet", "claude-3-5-sonnet"),
)

# Typical (input, output) token counts per pipeline step.
_TYPICAL_TOKENS: dict[str, tuple[int, int]] = {
    "research": (1500, 1000),
    "generation": (3000, 6000),
    "scoring": (1500, 1000),
    "summary": (2000, 1000),
}

DEFAULT_ESTIMATE_MODEL = "gpt-4o-mini"

logger = structlog.get_logger(__name__)


def get_model_pricing(model: str) -> dict[str, float]:
    """Return per-1M-token pricing, falling back to partial matches then defaults."""
    if model in MODEL_PRICING:
        return MODEL_PRICING[model]
    normalized = model.lower().replace("_", "-")
    for fragment, key in _PARTIAL_MATCHES:
        if fragment in normalized:
            return MODEL_PRICING[key]
    logger.warning("usage.unknown_model_pricing", model=model)
    return DEFAULT_PRICING


def calculate_cost(model: str, input_tokens: int, output_tokens: int) -> float:
    """Cost in USD for one call."""
    pricing = get_model_pricing(model)
    return (input_tokens / 1_000_000) * pricing["input"] + (
        output_tokens / 1_000_000
    ) * pricing["output"]


def format_cost(cost_usd: float) -> str:
    if cost_usd < 0.01:
        return f"{cost_usd * 100:.4f}\N{CENT SIGN}"
    return f"${cost_usd:.4f}"


@dataclass(slots=True)
class UsageRecord:
    step: str
    model: str
    input_tokens: int
    output_tokens: int
    cost_usd: float
    assessment_id: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    recorded_at: str = field(default_factory=lambda: pendulum.now("UTC").to_iso8601_string())


@dataclass(slots=True)
class UsageBucket:
    calls: int = 0
    cost_usd: float = 0.0


@dataclass(slots=True)
class UsageSummary:
    total_calls: int = 0
    total_input_tokens: int = 0
    total_output_tokens: int = 0
    total_cost_usd: float = 0.0
    by_step: dict[str, UsageBucket] = field(default_factory=dict)
    by_model: dict[str, UsageBucket] = field(default_factory=dict)


class UsageTracker:
    """Collect usage records in memory, optionally appending them as JSON lines."""

    def __init__(self, path: Path | str | None = None) -> None:
        self._records: list[UsageRecord] = []
        self._path = Path(path) if path else None
        if self._path is not None:
            self._path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def records(self) -> list[UsageRecord]:
        return list(self._records)

    def record(
        self,
        *,
        step: str,
        model: str,
        input_tokens: int,
        output_tokens: int,
        assessment_id: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> UsageRecord:
        entry = UsageRecord(
            step=step,
            model=model,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            cost_usd=calculate_cost(model, input_tokens, output_tokens),
            assessment_id=assessment_id,
            metadata=dict(metadata or {}),
        )
        self._records.append(entry)
        if self._path is not None:
            with self._path.open("a", encoding="utf-8") as handle:
                handle.write(json.dumps(asdict(entry), ensure_ascii=False, default=str))
                handle.write("\n")

        logger.info(
            "usage.recorded",
            step=step,
            model=model,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            cost=format_cost(entry.cost_usd),
        )
        return entry

    def total_cost(self, assessment_id: str | None = None) -> float:
        return sum(
            entry.cost_usd
            for entry in self._records
            if assessment_id is None or entry.assessment_id == assessment_id
        )

    def summarize(self) -> UsageSummary:
        summary = UsageSummary()
        for entry in self._records:
            summary.total_calls += 1
            summary.total_input_tokens += entry.input_tokens
            summary.total_output_tokens += entry.output_tokens
            summary.total_cost_usd += entry.cost_usd
            for bucket in (
                summary.by_step.setdefault(entry.step, UsageBucket()),
                summary.by_model.setdefault(entry.model, UsageBucket()),
            ):
                bucket.calls += 1
                bucket.cost_usd += entry.cost_usd
        return summary


@dataclass(slots=True)
class CostEstimate:
    model: str
    research: float
    question_generation: float
    scoring: float
    summary: float

    @property
    def total(self) -> float:
        return self.research + self.question_generation + self.scoring + self.summary


def estimate_assessment_cost(
    question_count: int = 8, model: str = DEFAULT_ESTIMATE_MODEL
) -> CostEstimate:
    """Estimate the cost of generating and scoring one assessment.

    Research covers two calls (company and role); scoring is one call per
    question; generation and summary are one call each.
    """

    def typical(step: str) -> float:
        return calculate_cost(model, *_TYPICAL_TOKENS[step])

    return CostEstimate(
        model=model,
        research=typical("research") * 2,
        question_generation=typical("generation"),
        scoring=typical("scoring") * question_count,
        summary=typical("summary"),
    )
