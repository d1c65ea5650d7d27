"""Assessment pipeline assembly, file loaders, writers and persistence."""

from __future__ import annotations

import json
import textwrap
from dataclasses import asdict, is_dataclass
from pathlib import Path
from typing import Any, Mapping, Protocol, Sequence

import pendulum
import structlog
from pydantic import BaseModel, ValidationError

from . import __version__
from .compiler import AssessmentCompiler
from .core.reporting import build_feedback_report
from .errors import ResearchError, Result
from .ids import generate_id, share_token
from .pdf_utils import extract_markdown
from .research import ResearchAggregator
from .schemas import Assessment, AssessmentResult, QuestionResponse
from .schemas.parsing import parse_response
from .scoring import ScoringOrchestrator

# ---------------------------------------------------------------------------
# Loaders and writers
# ---------------------------------------------------------------------------


class JobPostingLoader:
    """Load a job posting from plain text, markdown or PDF."""

    TEXT_SUFFIXES = frozenset({".txt", ".md", ".markdown", ""})

    def load(self, path: Path) -> str:
        suffix = path.suffix.lower()
        if suffix == ".pdf":
            text = extract_markdown(path)
        elif suffix in self.TEXT_SUFFIXES:
            text = path.read_text(encoding="utf-8")
        else:
            raise ValueError(f"Unsupported job posting format: {path.suffix}")
        if not text.strip():
            raise ValueError(f"Job posting is empty: {path}")
        return text


def _read_json(path: Path, label: str) -> Any:
    with path.open("r", encoding="utf-8") as handle:
        try:
            return json.load(handle)
        except json.JSONDecodeError as exc:
            raise ValueError(f"Invalid {label} JSON: {exc}") from exc


class AssessmentLoader:
    """Load an assessment, bare or wrapped in the writer's ``{"assessment": ...}`` envelope."""

    def load(self, path: Path) -> Assessment:
        data = _read_json(path, "assessment")
        if isinstance(data, dict) and "assessment" in data:
            data = data["assessment"]
        try:
            return Assessment.model_validate(data)
        except ValidationError as exc:
            raise ValueError(f"Invalid assessment: {exc}") from exc


class ResultLoader:
    """Load a scored result, bare or wrapped in ``{"result": ...}``."""

    def load(self, path: Path) -> AssessmentResult:
        data = _read_json(path, "result")
        if isinstance(data, dict) and "result" in data:
            data = data["result"]
        try:
            return AssessmentResult.model_validate(data)
        except ValidationError as exc:
            raise ValueError(f"Invalid result: {exc}") from exc


class ResponsesLoadError(ValueError):
    """Raised when some response records are invalid."""

    def __init__(self, errors: list[str], partial: list[QuestionResponse]):
        super().__init__("Response loading failed")
        self.errors = errors
        self.partial = partial

    def __str__(self) -> str:  # pragma: no cover - trivial
        return f"Response loading failed: {self.errors}"


class ResponsesLoader:
    """Load candidate responses from a JSON list or ``{"responses": [...]}``."""

    def load(self, path: Path) -> list[QuestionResponse]:
        data = _read_json(path, "responses")
        if isinstance(data, dict):
            data = data.get("responses")
        if not isinstance(data, list):
            raise ValueError("Responses JSON must be a list or an object with a 'responses' list")

        responses: list[QuestionResponse] = []
        errors: list[str] = []
        for idx, record in enumerate(data, start=1):
            try:
                responses.append(parse_response(record))
            except (ValueError, ValidationError) as exc:
                errors.append(f"record {idx}: {exc}")
        if errors:
            raise ResponsesLoadError(errors, responses)
        return responses


def _json_default(value: Any) -> Any:
    if isinstance(value, pendulum.DateTime):
        return value.to_iso8601_string()
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if is_dataclass(value) and not isinstance(value, type):
        return asdict(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


class OutputWriter:
    """Persist pipeline outputs."""

    def write(self, path: Path, payload: Any) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(
            json.dumps(payload, ensure_ascii=False, indent=2, default=_json_default),
            encoding="utf-8",
        )

    def write_text(self, path: Path, text: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------


class AssessmentStore(Protocol):
    """Storage for assessments, response sets and results."""

    def save_assessment(self, assessment: Assessment) -> None: ...

    def get_assessment(self, assessment_id: str) -> Assessment | None: ...

    def save_responses(self, assessment_id: str, responses: Sequence[QuestionResponse]) -> str: ...

    def get_responses(self, response_id: str) -> list[QuestionResponse] | None: ...

    def save_result(self, result: AssessmentResult) -> AssessmentResult: ...

    def get_result(self, result_id: str) -> AssessmentResult | None: ...

    def get_result_by_share_token(self, token: str) -> AssessmentResult | None: ...


class InMemoryAssessmentStore:
    """Dictionary-backed store, used by tests and one-shot runs."""

    def __init__(self) -> None:
        self._assessments: dict[str, Assessment] = {}
        self._responses: dict[str, list[QuestionResponse]] = {}
        self._results: dict[str, AssessmentResult] = {}

    def save_assessment(self, assessment: Assessment) -> None:
        self._assessments[assessment.id] = assessment

    def get_assessment(self, assessment_id: str) -> Assessment | None:
        return self._assessments.get(assessment_id)

    def save_responses(self, assessment_id: str, responses: Sequence[QuestionResponse]) -> str:
        response_id = generate_id("resp")
        self._responses[response_id] = list(responses)
        return response_id

    def get_responses(self, response_id: str) -> list[QuestionResponse] | None:
        responses = self._responses.get(response_id)
        return list(responses) if responses is not None else None

    def save_result(self, result: AssessmentResult) -> AssessmentResult:
        stored = result if result.share_token else result.model_copy(update={"share_token": share_token()})
        self._results[stored.id] = stored
        return stored

    def get_result(self, result_id: str) -> AssessmentResult | None:
        return self._results.get(result_id)

    def get_result_by_share_token(self, token: str) -> AssessmentResult | None:
        return next((item for item in self._results.values() if item.share_token == token), None)


class JsonDirectoryStore:
    """File-backed store writing one JSON document per record under ``root``."""

    def __init__(self, root: Path | str, *, writer: OutputWriter | None = None) -> None:
        self._root = Path(root)
        self._writer = writer or OutputWriter()

    def _path(self, kind: str, record_id: str) -> Path:
        if not record_id or "/" in record_id or "\\" in record_id or record_id.startswith("."):
            raise ValueError(f"Invalid record id: {record_id!r}")
        return self._root / kind / f"{record_id}.json"

    def _read(self, kind: str, record_id: str) -> Any:
        path = self._path(kind, record_id)
        if not path.exists():
            return None
        return _read_json(path, kind)

    def save_assessment(self, assessment: Assessment) -> None:
        self._writer.write(self._path("assessments", assessment.id), assessment.model_dump(mode="json"))

    def get_assessment(self, assessment_id: str) -> Assessment | None:
        data = self._read("assessments", assessment_id)
        return Assessment.model_validate(data) if data is not None else None

    def save_responses(self, assessment_id: str, responses: Sequence[QuestionResponse]) -> str:
        response_id = generate_id("resp")
        self._writer.write(
            self._path("responses", response_id),
            {
                "assessment_id": assessment_id,
                "responses": [item.model_dump(mode="json") for item in responses],
            },
        )
        return response_id

    def get_responses(self, response_id: str) -> list[QuestionResponse] | None:
        data = self._read("responses", response_id)
        if data is None:
            return None
        return [QuestionResponse.model_validate(item) for item in data["responses"]]

    def save_result(self, result: AssessmentResult) -> AssessmentResult:
        stored = result if result.share_token else result.model_copy(update={"share_token": share_token()})
        self._writer.write(self._path("results", stored.id), stored.model_dump(mode="json"))
        return stored

    def get_result(self, result_id: str) -> AssessmentResult | None:
        data = self._read("results", result_id)
        return AssessmentResult.model_validate(data) if data is not None else None

    def get_result_by_share_token(self, token: str) -> AssessmentResult | None:
        results_dir = self._root / "results"
        if not results_dir.exists():
            return None
        for path in sorted(results_dir.glob("*.json")):
            data = _read_json(path, "results")
            if data.get("share_token") == token:
                return AssessmentResult.model_validate(data)
        return None


def build_store(root: Path | str | None = None) -> AssessmentStore:
    """File-backed store under ``root`` when given, in-memory otherwise."""
    return JsonDirectoryStore(root) if root else InMemoryAssessmentStore()


# ---------------------------------------------------------------------------
# Example postings
# ---------------------------------------------------------------------------

EXAMPLE_POSTINGS: dict[str, tuple[str, str]] = {
    "sdr": (
        "Stripe",
        textwrap.dedent(
            """\
            Sales Development Representative at Stripe

            About the role:
            As an SDR at Stripe, you'll be the first point of contact for potential customers.
            You'll identify, contact, and qualify prospects, creating opportunities for our Account Executives.

            Responsibilities:
            - Research and identify potential customers in target segments
            - Execute outbound prospecting via email, phone, and social
            - Qualify inbound leads and route to appropriate AEs
            - Maintain accurate records in Salesforce
            - Hit monthly quota of qualified opportunities

            Requirements:
            - 1-2 years of SDR or sales experience
            - Excellent written and verbal communication
            - Understanding of B2B sales processes
            - Experience with CRM systems (Salesforce preferred)
            """
        ),
    ),
    "csm": (
        "Figma",
        textwrap.dedent(
            """\
            Customer Success Manager at Figma

            About the role:
            You'll own a portfolio of enterprise accounts and ensure they achieve their goals with Figma.
            You'll drive adoption, expansion, and retention while building strong relationships.

            Responsibilities:
            - Own 30-50 enterprise accounts ($100K+ ARR each)
            - Drive product adoption and usage growth
            - Identify expansion opportunities and coordinate with sales
            - Conduct QBRs and strategic planning sessions
            - Manage renewal process and reduce churn

            Requirements:
            - 3+ years in Customer Success at a SaaS company
            - Track record of hitting retention and expansion targets
            - Analytical mindset with data-driven approach
            """
        ),
    ),
    "pm": (
        "Notion",
        textwrap.dedent(
            """\
            Product Manager - Mobile at Notion

            About the role:
            Lead the mobile experience for Notion, ensuring our iOS and Android apps
            deliver the same experience as our web platform.

            Responsibilities:
            - Define mobile product strategy and roadmap
            - Work with engineering, design, and research to ship features
            - Analyze metrics and user feedback to prioritize work
            - Coordinate launches with marketing and growth teams

            Requirements:
            - 4+ years of product management experience
            - Shipped consumer mobile products
            - Excellent written communication
            """
        ),
    ),
    "marketing": (
        "HubSpot",
        textwrap.dedent(
            """\
            Growth Marketing Manager at HubSpot

            About the role:
            Drive acquisition and activation for HubSpot's freemium products.
            You'll own campaigns, experiments, and channels that bring in new users.

            Responsibilities:
            - Plan and execute demand gen campaigns
            - Manage paid acquisition across channels
            - Run A/B tests and analyze results
            - Report on KPIs and ROI to leadership

            Requirements:
            - 4+ years in growth or demand gen marketing
            - Experience with paid media (Google, LinkedIn, Facebook)
            - HubSpot certification preferred
            """
        ),
    ),
    "engineer": (
        "Datadog",
        textwrap.dedent(
            """\
            Senior Software Engineer - Backend at Datadog

            About the role:
            Build and scale the systems that process trillions of data points per day.

            Responsibilities:
            - Design and implement backend services in Go
            - Optimize for scale, reliability, and performance
            - Mentor junior engineers and review code
            - On-call rotation for critical systems

            Requirements:
            - 5+ years of backend development experience
            - Distributed systems experience (Kafka, Redis)
            - Database expertise (Postgres, Cassandra)
            """
        ),
    ),
}


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------


class AssessmentPipeline:
    """End-to-end generation and scoring orchestrator."""

    def __init__(
        self,
        *,
        research: ResearchAggregator,
        compiler: AssessmentCompiler,
        orchestrator: ScoringOrchestrator,
        store: AssessmentStore | None = None,
        job_loader: JobPostingLoader | None = None,
        assessment_loader: AssessmentLoader | None = None,
        responses_loader: ResponsesLoader | None = None,
        writer: OutputWriter | None = None,
    ) -> None:
        self._research = research
        self._compiler = compiler
        self._orchestrator = orchestrator
        self._store = store
        self._jobs = job_loader or JobPostingLoader()
        self._assessments = assessment_loader or AssessmentLoader()
        self._responses = responses_loader or ResponsesLoader()
        self._writer = writer or OutputWriter()
        self._logger = structlog.get_logger(__name__)

    async def generate(
        self,
        job_text: str,
        *,
        company_name: str | None = None,
        role_title: str | None = None,
        question_count: int | None = None,
        difficulty: str | None = None,
        focus_areas: Sequence[str] | None = None,
        question_mix: Mapping[str, float] | None = None,
    ) -> Result[Assessment]:
        """Research the posting, then compile an assessment for it."""

        context_result = await self._research.gather_context(job_text, company_name)
        if not context_result.ok:
            self._logger.warning("pipeline.research_failed", error=context_result.error.to_dict())
            return Result.failure(context_result.error)

        context = context_result.data
        role = context.role
        if role_title:
            role = role.model_copy(update={"title": role_title})

        compiled = await self._compiler.compile(
            context.company,
            role,
            question_count=question_count,
            difficulty=difficulty,
            focus_areas=focus_areas,
            question_mix=question_mix,
        )
        if not compiled.ok:
            self._logger.warning("pipeline.compile_failed", error=compiled.error.to_dict())
            return compiled

        if self._store is not None:
            self._store.save_assessment(compiled.data)
        return Result.success(compiled.data, warnings=[*context_result.warnings, *compiled.warnings])

    async def generate_example(self, role_type: str) -> Result[Assessment]:
        """Generate an assessment from one of the bundled example postings."""
        try:
            company, posting = EXAMPLE_POSTINGS[role_type]
        except KeyError:
            return Result.failure(
                ResearchError(f"Unknown role type: {role_type}", code="INVALID_JOB_DESCRIPTION")
            )
        return await self.generate(posting, company_name=company, question_count=8, difficulty="standard")

    async def score(
        self, assessment: Assessment, responses: Sequence[QuestionResponse]
    ) -> AssessmentResult:
        """Score responses; the stored copy of the result carries a share token."""
        result = await self._orchestrator.score_all(assessment, responses)
        if self._store is not None:
            self._store.save_responses(assessment.id, responses)
            result = self._store.save_result(result)
        return result

    async def run_generate(
        self,
        *,
        job_path: Path,
        output_path: Path,
        company_name: str | None = None,
        role_title: str | None = None,
        question_count: int | None = None,
        difficulty: str | None = None,
        focus_areas: Sequence[str] | None = None,
    ) -> Result[Assessment]:
        job_text = self._jobs.load(job_path)
        result = await self.generate(
            job_text,
            company_name=company_name,
            role_title=role_title,
            question_count=question_count,
            difficulty=difficulty,
            focus_areas=focus_areas,
        )
        if not result.ok:
            return result

        assessment = result.data
        self._writer.write(
            output_path,
            {
                "metadata": self._metadata(source=str(job_path), warnings=list(result.warnings)),
                "assessment": assessment.model_dump(mode="json"),
            },
        )
        self._logger.info(
            "pipeline.assessment_written",
            assessment_id=assessment.id,
            questions=len(assessment.questions),
            warnings=len(result.warnings),
            output=str(output_path),
        )
        return result

    async def run_score(
        self,
        *,
        assessment_path: Path,
        responses_path: Path,
        output_path: Path,
        report_path: Path | None = None,
    ) -> AssessmentResult:
        assessment = self._assessments.load(assessment_path)
        load_errors: list[str] = []
        try:
            responses = self._responses.load(responses_path)
        except ResponsesLoadError as exc:
            responses = exc.partial
            load_errors.extend(exc.errors)
            self._logger.warning("responses.partial_load", errors=exc.errors)

        result = await self.score(assessment, responses)
        self._writer.write(
            output_path,
            {
                "metadata": self._metadata(source=str(responses_path), errors=load_errors),
                "result": result.model_dump(mode="json"),
            },
        )
        if report_path is not None:
            self._writer.write_text(report_path, build_feedback_report(result, assessment))

        self._logger.info(
            "pipeline.result_written",
            assessment_id=assessment.id,
            result_id=result.id,
            overall_score=result.overall_score,
            tier=result.tier,
            output=str(output_path),
        )
        return result

    @staticmethod
    def _metadata(**extra: Any) -> dict[str, Any]:
        return {
            "timestamp": pendulum.now().to_iso8601_string(),
            "app_version": __version__,
            **extra,
        }


__all__ = [
    "AssessmentLoader",
    "AssessmentPipeline",
    "AssessmentStore",
    "EXAMPLE_POSTINGS",
    "InMemoryAssessmentStore",
    "JobPostingLoader",
    "JsonDirectoryStore",
    "OutputWriter",
    "ResponsesLoadError",
    "ResponsesLoader",
    "ResultLoader",
    "build_store",
]
