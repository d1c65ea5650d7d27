from __future__ import annotations

from datetime import datetime
from typing import Literal, get_args

import pendulum
from pydantic import BaseModel, ConfigDict, Field

CompanyStage = Literal[
    "pre_seed",
    "seed",
    "series_a",
    "series_b",
    "series_c_plus",
    "enterprise",
    "public",
]

RoleCategory = Literal[
    "sales",
    "customer_success",
    "product",
    "marketing",
    "engineering",
    "operations",
    "people",
    "finance",
    "general",
]

RoleLevel = Literal["entry", "mid", "senior", "lead", "executive"]

COMPANY_STAGES: tuple[str, ...] = get_args(CompanyStage)
ROLE_CATEGORIES: tuple[str, ...] = get_args(RoleCategory)
ROLE_LEVELS: tuple[str, ...] = get_args(RoleLevel)


def _utcnow() -> datetime:
    return pendulum.now("UTC")


class CompanyProfile(BaseModel):
    """Employer facts used to ground scenarios."""

    name: str
    description: str
    industry: str
    stage: CompanyStage = "series_a"
    employee_count: str | None = None
    products: list[str] = Field(default_factory=list)
    target_customers: list[str] = Field(default_factory=list)
    business_model: str = ""
    values: list[str] = Field(default_factory=list)
    culture: str = ""
    competitors: list[str] = Field(default_factory=list)
    recent_news: list[str] = Field(default_factory=list)
    challenges: list[str] = Field(default_factory=list)
    typical_stakeholders: list[str] = Field(default_factory=list)
    common_metrics: list[str] = Field(default_factory=list)
    source_url: str | None = None
    fetched_at: datetime = Field(default_factory=_utcnow)

    model_config = ConfigDict(extra="forbid", frozen=True)


class RoleProfile(BaseModel):
    """Role facts extracted from a job posting."""

    title: str
    category: RoleCategory = "general"
    level: RoleLevel = "mid"
    responsibilities: list[str] = Field(default_factory=list)
    deliverables: list[str] = Field(default_factory=list)
    stakeholders: list[str] = Field(default_factory=list)
    hard_skills: list[str] = Field(default_factory=list)
    soft_skills: list[str] = Field(default_factory=list)
    tools: list[str] = Field(default_factory=list)
    common_challenges: list[str] = Field(default_factory=list)
    success_metrics: list[str] = Field(default_factory=list)
    raw_job_description: str | None = None

    model_config = ConfigDict(extra="forbid", frozen=True)


class ToolsContext(BaseModel):
    """Tools a role uses and how confidently they were identified."""

    tools: list[str] = Field(default_factory=list)
    confidence: Literal["explicit", "company_inferred", "role_inferred"] = "role_inferred"
    source: Literal["job_description", "company_research", "role_inference"] = "role_inference"

    model_config = ConfigDict(extra="forbid", frozen=True)


class ResearchContext(BaseModel):
    """Company and role profiles gathered for one job posting."""

    company: CompanyProfile
    role: RoleProfile

    model_config = ConfigDict(extra="forbid", frozen=True)
