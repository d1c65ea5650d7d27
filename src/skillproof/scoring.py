"""Per-question scoring with bounded concurrency and result assembly."""

from __future__ import annotations

import asyncio
from typing import Callable, Sequence

import pendulum
import structlog

from .core.aggregation import (
    NOT_ANSWERED_REASON,
    UNSCOREABLE_REASON,
    aggregate,
    analyze_skills,
    fallback_question_score,
    fallback_summary,
)
from .errors import CompletionError, Result, ScoringError
from .ids import generate_id
from .llm import CompletionClient, extract_json_object
from .prompts import build_score_prompt, build_summary_prompt
from .schemas import (
    Assessment,
    AssessmentQuestion,
    AssessmentResult,
    NarrativeSummary,
    QuestionResponse,
    QuestionScore,
)
from .schemas.parsing import parse_question_score, parse_summary


def _response_text(response: QuestionResponse) -> str:
    if not response.part_responses:
        return response.response
    parts = [f"Part {part_id}:\n{text}" for part_id, text in response.part_responses.items()]
    if response.response.strip():
        parts.insert(0, response.response)
    return "\n\n".join(parts)


class ScoringOrchestrator:
    """Scores every question of an assessment and assembles the final result.

    Scoring never fails as a whole: unanswered questions and questions whose
    scoring call fails are recorded as 1/5 with a red flag, and a failed
    summary call falls back to a fixed sentence for the tier.
    """

    def __init__(
        self,
        client: CompletionClient,
        *,
        concurrency: int = 4,
        max_tokens: int = 2000,
        summary_max_tokens: int = 1500,
        id_factory: Callable[[], str] | None = None,
        now_provider: Callable[[], pendulum.DateTime] | None = None,
    ) -> None:
        if concurrency < 1:
            raise ValueError(f"concurrency must be positive, got {concurrency}")
        self._client = client
        self._concurrency = concurrency
        self._max_tokens = max_tokens
        self._summary_max_tokens = summary_max_tokens
        self._id_factory = id_factory or (lambda: generate_id("result"))
        self._now_provider = now_provider or (lambda: pendulum.now("UTC"))
        self._logger = structlog.get_logger(__name__)

    async def score_response(
        self,
        question: AssessmentQuestion,
        response: QuestionResponse,
        role_title: str,
        company_name: str,
        *,
        assessment_id: str | None = None,
    ) -> Result[QuestionScore]:
        """Score one answer with a single completion call."""

        prompt = build_score_prompt(
            role_title=role_title,
            company_name=company_name,
            question=question,
            response=_response_text(response),
            time_spent_seconds=response.time_spent_seconds,
        )
        try:
            completion = await self._client.complete(
                prompt,
                step="score_response",
                max_tokens=self._max_tokens,
                metadata={"assessment_id": assessment_id, "question_id": question.id},
            )
            raw = extract_json_object(completion.text)
            if raw is None:
                return Result.failure(ScoringError("Could not parse score"))
            parsed = parse_question_score(raw, question.id)
        except CompletionError as exc:
            return Result.failure(ScoringError(exc.message))
        except Exception as exc:  # noqa: BLE001
            self._logger.warning(
                "scoring.unexpected_error", question_id=question.id, error=str(exc), exc_info=True
            )
            return Result.failure(ScoringError(f"Unknown error scoring response: {exc}"))

        warnings = (
            [f"Question {question.id}: defaulted fields {', '.join(parsed.defaulted)}"]
            if parsed.defaulted
            else []
        )
        return Result.success(parsed.value, warnings=warnings)

    async def score_questions(
        self, assessment: Assessment, responses: Sequence[QuestionResponse]
    ) -> list[QuestionScore]:
        """Return one score per question, in question order."""

        by_question: dict[str, QuestionResponse] = {}
        for response in responses:
            by_question.setdefault(response.question_id, response)

        semaphore = asyncio.Semaphore(self._concurrency)

        async def _score(question: AssessmentQuestion) -> QuestionScore:
            response = by_question.get(question.id)
            if response is None:
                self._logger.info(
                    "scoring.fallback", question_id=question.id, reason=NOT_ANSWERED_REASON
                )
                return fallback_question_score(question.id, NOT_ANSWERED_REASON)

            async with semaphore:
                result = await self.score_response(
                    question,
                    response,
                    assessment.role.title,
                    assessment.company.name,
                    assessment_id=assessment.id,
                )

            if not result.ok:
                self._logger.warning(
                    "scoring.fallback",
                    question_id=question.id,
                    reason=UNSCOREABLE_REASON,
                    error=result.error.message if result.error else None,
                )
                return fallback_question_score(question.id, UNSCOREABLE_REASON)
            return result.data

        return list(await asyncio.gather(*(_score(question) for question in assessment.questions)))

    async def generate_summary(
        self,
        assessment: Assessment,
        overall_score: int,
        tier: str,
        question_scores: Sequence[QuestionScore],
    ) -> Result[NarrativeSummary]:
        prompt = build_summary_prompt(
            role_title=assessment.role.title,
            company_name=assessment.company.name,
            overall_score=overall_score,
            question_scores=question_scores,
        )
        try:
            completion = await self._client.complete(
                prompt,
                step="generate_summary",
                max_tokens=self._summary_max_tokens,
                metadata={"assessment_id": assessment.id},
            )
        except CompletionError as exc:
            return Result.failure(ScoringError(exc.message))
        except Exception as exc:  # noqa: BLE001
            self._logger.warning(
                "scoring.summary_unexpected_error", assessment_id=assessment.id, error=str(exc), exc_info=True
            )
            return Result.failure(ScoringError(f"Unknown error generating summary: {exc}"))

        raw = extract_json_object(completion.text)
        if raw is None:
            return Result.failure(ScoringError("Could not parse summary"))
        return Result.success(parse_summary(raw, default_summary=fallback_summary(tier)).value)

    async def score_all(
        self, assessment: Assessment, responses: Sequence[QuestionResponse]
    ) -> AssessmentResult:
        question_scores = await self.score_questions(assessment, responses)
        overall, tier = aggregate(question_scores)

        summary_result = await self.generate_summary(assessment, overall, tier, question_scores)
        if summary_result.ok:
            summary = summary_result.data
            if summary.suggested_tier and summary.suggested_tier != tier:
                self._logger.info(
                    "scoring.tier_suggestion_ignored", suggested=summary.suggested_tier, tier=tier
                )
        else:
            self._logger.warning(
                "scoring.summary_fallback",
                assessment_id=assessment.id,
                error=summary_result.error.message if summary_result.error else None,
            )
            summary = NarrativeSummary(summary=fallback_summary(tier))

        now = self._now_provider()
        started_at = min((item.started_at for item in responses), default=now)
        completed_at = max((item.submitted_at for item in responses), default=now)

        result = AssessmentResult(
            id=self._id_factory(),
            assessment_id=assessment.id,
            started_at=started_at,
            completed_at=completed_at,
            total_time_seconds=sum(item.time_spent_seconds for item in responses),
            responses=list(responses),
            question_scores=question_scores,
            overall_score=overall,
            tier=tier,
            summary=summary.summary,
            top_strengths=summary.top_strengths,
            areas_for_growth=summary.areas_for_growth,
        )
        result = result.model_copy(update={"skill_analysis": analyze_skills(result, assessment)})

        self._logger.info(
            "scoring.completed",
            assessment_id=assessment.id,
            result_id=result.id,
            overall_score=overall,
            tier=tier,
        )
        return result
