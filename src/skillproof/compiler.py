"""Assessment compilation: one generation call turned into a validated assessment."""

from __future__ import annotations

from typing import Callable, Mapping, Sequence

import pendulum
import structlog

from .core.mix import estimate_minutes, plan_mix
from .core.validation import validate
from .errors import CompileError, CompletionError, Result
from .ids import generate_id
from .llm import CompletionClient, extract_json_object
from .prompts import build_generation_prompt
from .research import build_tools_context
from .schemas import (
    DIFFICULTIES,
    Assessment,
    AssessmentQuestion,
    CompanyProfile,
    RoleProfile,
    collect_skills,
)
from .schemas.parsing import parse_question


class AssessmentCompiler:
    """Builds an :class:`Assessment` from company and role profiles."""

    def __init__(
        self,
        client: CompletionClient,
        *,
        max_tokens: int = 8000,
        question_count: int = 8,
        difficulty: str = "standard",
        question_mix: Mapping[str, float] | None = None,
        id_factory: Callable[[], str] | None = None,
    ) -> None:
        self._client = client
        self._max_tokens = max_tokens
        self._question_count = question_count
        self._difficulty = difficulty
        self._question_mix = dict(question_mix) if question_mix else None
        self._id_factory = id_factory or (lambda: generate_id("sp"))
        self._logger = structlog.get_logger(__name__)

    async def compile(
        self,
        company: CompanyProfile,
        role: RoleProfile,
        question_count: int | None = None,
        difficulty: str | None = None,
        focus_areas: Sequence[str] | None = None,
        question_mix: Mapping[str, float] | None = None,
    ) -> Result[Assessment]:
        """Generate, normalize and validate an assessment.

        Validation issues and defaulted fields come back as warnings on a
        successful result. Only a failed generation call or a response with
        no usable questions produces a failed result.
        """

        count = question_count or self._question_count
        level = difficulty or self._difficulty
        if level not in DIFFICULTIES:
            raise ValueError(f"Unknown difficulty: {level!r}")

        mix = plan_mix(role.category, count, question_mix or self._question_mix)
        minutes = estimate_minutes(mix)
        assessment_id = self._id_factory()
        prompt = build_generation_prompt(
            company=company,
            role=role,
            question_count=count,
            question_mix=mix,
            difficulty=level,
            estimated_minutes=minutes,
            focus_areas=focus_areas,
            tools_context=build_tools_context(role),
        )

        self._logger.info(
            "compile.started",
            assessment_id=assessment_id,
            company=company.name,
            role=role.title,
            question_mix=mix,
            estimated_minutes=minutes,
        )

        try:
            completion = await self._client.complete(
                prompt,
                step="generate_questions",
                max_tokens=self._max_tokens,
                metadata={"assessment_id": assessment_id},
            )
        except CompletionError as exc:
            self._logger.warning("compile.generation_failed", assessment_id=assessment_id, error=exc.message)
            return Result.failure(CompileError(exc.message))
        except Exception as exc:  # noqa: BLE001
            self._logger.warning(
                "compile.unexpected_error", assessment_id=assessment_id, error=str(exc), exc_info=True
            )
            return Result.failure(CompileError(f"Unknown error generating assessment: {exc}"))

        raw = extract_json_object(completion.text)
        if raw is None:
            self._logger.warning("compile.unparseable", assessment_id=assessment_id)
            return Result.failure(CompileError("Could not parse assessment"))

        raw_questions = raw.get("questions")
        if not isinstance(raw_questions, list) or not raw_questions:
            self._logger.warning("compile.no_questions", assessment_id=assessment_id)
            return Result.failure(CompileError("No questions generated"))

        questions, notes = self._normalize_questions(raw_questions)

        assessment = Assessment(
            id=assessment_id,
            created_at=pendulum.now("UTC"),
            company=company,
            role=role,
            title=f"{role.title} Assessment at {company.name}",
            description=(
                f"A skills assessment for the {role.title} role at {company.name}, built from "
                "real-world scenarios you would face in the first months on the job."
            ),
            questions=questions,
            estimated_minutes=minutes,
            difficulty=level,
            skills_covered=collect_skills(questions),
            generation_prompt=prompt,
        )

        report = validate(assessment)
        if not report.valid:
            self._logger.warning(
                "compile.validation_issues", assessment_id=assessment_id, issues=report.issues
            )

        self._logger.info(
            "compile.completed",
            assessment_id=assessment_id,
            questions=len(questions),
            skills=len(assessment.skills_covered),
        )
        return Result.success(assessment, warnings=[*report.issues, *notes])

    @staticmethod
    def _normalize_questions(raw_questions: list) -> tuple[list[AssessmentQuestion], list[str]]:
        questions: list[AssessmentQuestion] = []
        notes: list[str] = []
        seen: set[str] = set()

        for index, raw_question in enumerate(raw_questions):
            parsed = parse_question(raw_question, index)
            question = parsed.value
            defaulted = list(parsed.defaulted)
            if question.id in seen:
                unique_id = f"q{index + 1}"
                suffix = 1
                while unique_id in seen:
                    suffix += 1
                    unique_id = f"q{index + 1}_{suffix}"
                question = question.model_copy(update={"id": unique_id})
                defaulted.append("id (duplicate)")
            seen.add(question.id)
            questions.append(question)
            if defaulted:
                notes.append(f"Question {question.id}: defaulted fields {', '.join(defaulted)}")

        return questions, notes
