"""Pydantic schema definitions for assessments, profiles and scores."""

from __future__ import annotations

from .assessment import (
    DIFFICULTIES,
    DIMENSION_NAMES,
    EXPECTED_FORMATS,
    QUESTION_TYPES,
    Assessment,
    AssessmentQuestion,
    QuestionPart,
    RubricLevel,
    ScenarioContext,
    ScoringDimension,
    ScoringRubric,
    WordGuidance,
    collect_skills,
)
from .profiles import (
    COMPANY_STAGES,
    ROLE_CATEGORIES,
    ROLE_LEVELS,
    CompanyProfile,
    ResearchContext,
    RoleProfile,
    ToolsContext,
)
from .scoring import (
    TIERS,
    AssessmentResult,
    DimensionScore,
    NarrativeSummary,
    QuestionResponse,
    QuestionScore,
    SkillAnalysis,
    SkillScore,
)

__all__ = [
    "Assessment",
    "AssessmentQuestion",
    "AssessmentResult",
    "COMPANY_STAGES",
    "CompanyProfile",
    "DIFFICULTIES",
    "DIMENSION_NAMES",
    "DimensionScore",
    "EXPECTED_FORMATS",
    "NarrativeSummary",
    "QUESTION_TYPES",
    "QuestionPart",
    "QuestionResponse",
    "QuestionScore",
    "ROLE_CATEGORIES",
    "ROLE_LEVELS",
    "ResearchContext",
    "RoleProfile",
    "RubricLevel",
    "ScenarioContext",
    "ScoringDimension",
    "ScoringRubric",
    "SkillAnalysis",
    "SkillScore",
    "TIERS",
    "ToolsContext",
    "WordGuidance",
    "collect_skills",
]
