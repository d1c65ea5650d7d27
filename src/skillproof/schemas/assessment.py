from __future__ import annotations

from datetime import datetime
from typing import Literal, get_args

import pendulum
from pydantic import BaseModel, ConfigDict, Field

from .profiles import CompanyProfile, RoleProfile

QuestionType = Literal[
    "crisis_simulation",
    "communication_draft",
    "strategic_prioritization",
    "data_interpretation",
    "stakeholder_navigation",
    "reverse_engineering",
    "artifact_creation",
    "multi_part_scenario",
    "tools_proficiency",
    "operational_workflow",
]

DimensionName = Literal[
    "relevance",
    "judgment",
    "communication",
    "execution",
    "company_fit",
    "technical_proficiency",
]

ExpectedFormat = Literal["short_text", "long_text", "email", "slack", "bullet_list", "structured"]

Difficulty = Literal["standard", "challenging", "senior"]

QUESTION_TYPES: tuple[str, ...] = get_args(QuestionType)
DIMENSION_NAMES: tuple[str, ...] = get_args(DimensionName)
EXPECTED_FORMATS: tuple[str, ...] = get_args(ExpectedFormat)
DIFFICULTIES: tuple[str, ...] = get_args(Difficulty)


class ScoringDimension(BaseModel):
    """One weighted axis of a question rubric."""

    name: DimensionName
    weight: float = Field(ge=0.0, le=1.0)
    description: str = ""

    model_config = ConfigDict(extra="forbid", frozen=True)


class RubricLevel(BaseModel):
    score: int = Field(ge=1, le=5)
    label: Literal["poor", "weak", "adequate", "good", "excellent"]
    description: str = ""
    indicators: list[str] = Field(default_factory=list)

    model_config = ConfigDict(extra="forbid", frozen=True)


class ScoringRubric(BaseModel):
    """Dimensions plus red-flag and bonus phrases for one question."""

    dimensions: list[ScoringDimension] = Field(default_factory=list)
    levels: dict[str, list[RubricLevel]] = Field(default_factory=dict)
    red_flags: list[str] = Field(default_factory=list)
    bonus_indicators: list[str] = Field(default_factory=list)

    model_config = ConfigDict(extra="forbid", frozen=True)

    @property
    def total_weight(self) -> float:
        return sum(dimension.weight for dimension in self.dimensions)


class ScenarioContext(BaseModel):
    role: str
    situation: str
    constraints: list[str] = Field(default_factory=list)
    stakes: str = ""
    additional_info: dict[str, str] | None = None

    model_config = ConfigDict(extra="forbid", frozen=True)


class QuestionPart(BaseModel):
    id: str
    prompt: str
    depends_on: str | None = None

    model_config = ConfigDict(extra="forbid", frozen=True)


class WordGuidance(BaseModel):
    min: int = Field(ge=0)
    max: int = Field(ge=0)

    model_config = ConfigDict(extra="forbid", frozen=True)


class AssessmentQuestion(BaseModel):
    """A single compiled scenario question."""

    id: str
    type: QuestionType
    context: ScenarioContext
    prompt: str
    parts: list[QuestionPart] | None = None
    expected_format: ExpectedFormat = "long_text"
    word_guidance: WordGuidance | None = None
    time_guidance: float = 3
    rubric: ScoringRubric = Field(default_factory=ScoringRubric)
    skills_tested: list[str] = Field(default_factory=list)
    why_this_matters: str = ""
    what_great_looks_like: str = ""

    model_config = ConfigDict(extra="forbid", frozen=True)


class Assessment(BaseModel):
    """Ordered question set compiled for one company/role pair."""

    id: str
    version: str = "1.0.0"
    created_at: datetime = Field(default_factory=lambda: pendulum.now("UTC"))
    company: CompanyProfile
    role: RoleProfile
    title: str
    description: str
    questions: list[AssessmentQuestion]
    estimated_minutes: int
    difficulty: Difficulty = "standard"
    skills_covered: list[str] = Field(default_factory=list)
    generation_prompt: str | None = None

    model_config = ConfigDict(extra="forbid", frozen=True)

    def question(self, question_id: str) -> AssessmentQuestion | None:
        for question in self.questions:
            if question.id == question_id:
                return question
        return None


def collect_skills(questions: list[AssessmentQuestion]) -> list[str]:
    """Return the de-duplicated union of question skills in first-seen order."""
    return list(dict.fromkeys(skill for question in questions for skill in question.skills_tested))
