"""Dependency injection container for the assessment engine."""

from __future__ import annotations

from typing import Any, Mapping

from dependency_injector import containers, providers

from .compiler import AssessmentCompiler
from .llm import CompletionClient, OpenAICompletionClient, RetryPolicy
from .pipeline import AssessmentPipeline, build_store
from .research import ResearchAggregator
from .schemas.config import AppConfig
from .scoring import ScoringOrchestrator
from .usage import UsageTracker


class SkillProofContainer(containers.DeclarativeContainer):
    """Dependency-injector container definition."""

    config = providers.Configuration()

    usage_tracker = providers.Singleton(UsageTracker, path=config.usage_log)

    retry_policy = providers.Singleton(
        RetryPolicy,
        attempts=config.llm.retry_attempts,
        initial_backoff=config.llm.initial_backoff,
        multiplier=config.llm.backoff_multiplier,
        timeout=config.llm.timeout,
    )

    client = providers.Singleton(
        OpenAICompletionClient,
        api_key=config.llm.api_key,
        model=config.llm.model,
        temperature=config.llm.temperature,
        retry_policy=retry_policy,
        usage=usage_tracker,
    )

    research = providers.Singleton(
        ResearchAggregator,
        client=client,
        max_tokens=config.research.max_tokens,
        fuzzy_cutoff=config.research.fuzzy_cutoff,
    )

    compiler = providers.Singleton(
        AssessmentCompiler,
        client=client,
        max_tokens=config.generation.max_tokens,
        question_count=config.generation.question_count,
        difficulty=config.generation.difficulty,
        question_mix=config.generation.question_mix,
    )

    orchestrator = providers.Singleton(
        ScoringOrchestrator,
        client=client,
        concurrency=config.scoring.concurrency,
        max_tokens=config.scoring.max_tokens,
        summary_max_tokens=config.scoring.summary_max_tokens,
    )

    store = providers.Singleton(build_store, root=config.store_dir)

    pipeline = providers.Factory(
        AssessmentPipeline,
        research=research,
        compiler=compiler,
        orchestrator=orchestrator,
        store=store,
    )


def _merge(base: dict[str, Any], overrides: Mapping[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in overrides.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def create_container(
    *,
    settings: Mapping[str, Any] | None = None,
    client: CompletionClient | None = None,
) -> SkillProofContainer:
    """Instantiate the container from YAML-shaped settings.

    ``settings`` is validated against :class:`AppConfig` and layered over its
    defaults. Passing ``client`` replaces the OpenAI-backed completion client,
    which is how tests and offline runs avoid network access.
    """

    config = AppConfig.model_validate(_merge(AppConfig().to_settings(), settings or {}))

    container = SkillProofContainer()
    container.config.from_dict(config.to_settings())

    if client is not None:
        container.client.override(providers.Object(client))

    return container


__all__ = ["SkillProofContainer", "create_container"]
