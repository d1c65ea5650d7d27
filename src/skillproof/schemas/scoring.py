from __future__ import annotations

from datetime import datetime
from typing import Literal, get_args

from pydantic import BaseModel, ConfigDict, Field

from .assessment import DimensionName

Tier = Literal["exceptional", "strong", "qualified", "developing", "not_ready"]

TIERS: tuple[str, ...] = get_args(Tier)


class QuestionResponse(BaseModel):
    """A candidate's answer to one question."""

    question_id: str
    response: str = ""
    part_responses: dict[str, str] | None = None
    started_at: datetime
    submitted_at: datetime
    time_spent_seconds: float = Field(default=0, ge=0)

    model_config = ConfigDict(extra="forbid", frozen=True)


class DimensionScore(BaseModel):
    dimension: DimensionName
    score: float = Field(ge=1, le=5)
    weight: float = Field(ge=0, le=1)
    weighted_score: float
    feedback: str = ""
    evidence: list[str] = Field(default_factory=list)

    model_config = ConfigDict(extra="forbid", frozen=True)


class QuestionScore(BaseModel):
    """Scored outcome for one question, including fallbacks for missing answers."""

    question_id: str
    dimension_scores: list[DimensionScore] = Field(default_factory=list)
    overall_score: float = Field(ge=1, le=5)
    strengths: list[str] = Field(default_factory=list)
    improvements: list[str] = Field(default_factory=list)
    specific_feedback: str = ""
    red_flags_triggered: list[str] = Field(default_factory=list)
    bonuses_earned: list[str] = Field(default_factory=list)

    model_config = ConfigDict(extra="forbid", frozen=True)


class NarrativeSummary(BaseModel):
    """Employer-facing prose produced once per scoring run."""

    summary: str
    top_strengths: list[str] = Field(default_factory=list)
    areas_for_growth: list[str] = Field(default_factory=list)
    suggested_tier: Tier | None = None

    model_config = ConfigDict(extra="forbid", frozen=True)


class SkillScore(BaseModel):
    skill: str
    score: float
    questions: int

    model_config = ConfigDict(extra="forbid", frozen=True)


class SkillAnalysis(BaseModel):
    skill_scores: list[SkillScore] = Field(default_factory=list)
    strongest_skills: list[str] = Field(default_factory=list)
    weakest_skills: list[str] = Field(default_factory=list)

    model_config = ConfigDict(extra="forbid", frozen=True)


class AssessmentResult(BaseModel):
    """Final scored outcome of one assessment attempt."""

    id: str
    assessment_id: str
    started_at: datetime
    completed_at: datetime
    total_time_seconds: float = 0
    responses: list[QuestionResponse] = Field(default_factory=list)
    question_scores: list[QuestionScore] = Field(default_factory=list)
    overall_score: int = Field(ge=0, le=100)
    tier: Tier
    summary: str
    top_strengths: list[str] = Field(default_factory=list)
    areas_for_growth: list[str] = Field(default_factory=list)
    skill_analysis: SkillAnalysis | None = None
    share_token: str | None = None

    model_config = ConfigDict(extra="forbid", frozen=True)

    def score_for(self, question_id: str) -> QuestionScore | None:
        for score in self.question_scores:
            if score.question_id == question_id:
                return score
        return None
