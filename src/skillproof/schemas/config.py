"""Pydantic configuration schema for CLI YAML input."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .assessment import Difficulty


class LLMSettings(BaseModel):
    model: str | None = None
    api_key: str | None = None
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    timeout: float = Field(default=60.0, gt=0)
    retry_attempts: int = Field(default=3, ge=1)
    initial_backoff: float = Field(default=1.0, ge=0)
    backoff_multiplier: float = Field(default=2.0, ge=1.0)

    model_config = ConfigDict(extra="forbid")


class ResearchSettings(BaseModel):
    max_tokens: int = Field(default=2000, gt=0)
    fuzzy_cutoff: float = Field(default=90.0, ge=0, le=100)

    model_config = ConfigDict(extra="forbid")


class GenerationSettings(BaseModel):
    max_tokens: int = Field(default=8000, gt=0)
    question_count: int = Field(default=8, ge=1, le=50)
    difficulty: Difficulty = "standard"
    question_mix: dict[str, float] | None = None

    model_config = ConfigDict(extra="forbid")


class ScoringSettings(BaseModel):
    concurrency: int = Field(default=4, ge=1)
    max_tokens: int = Field(default=2000, gt=0)
    summary_max_tokens: int = Field(default=1500, gt=0)

    model_config = ConfigDict(extra="forbid")


class AppConfig(BaseModel):
    llm: LLMSettings = Field(default_factory=LLMSettings)
    research: ResearchSettings = Field(default_factory=ResearchSettings)
    generation: GenerationSettings = Field(default_factory=GenerationSettings)
    scoring: ScoringSettings = Field(default_factory=ScoringSettings)
    usage_log: str | None = None
    store_dir: str | None = None

    model_config = ConfigDict(extra="forbid")

    def to_settings(self) -> dict[str, Any]:
        return self.model_dump(mode="python")


def load_config(raw: Any) -> AppConfig:
    if raw is None:
        return AppConfig()
    if not isinstance(raw, dict):
        raise ValueError("Config must be a mapping")
    return AppConfig.model_validate(raw)
