"""Question archetype registry and question-mix planning."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Mapping

from .aggregation import round_half_up

# Reading and transition overhead applied on top of per-archetype timings.
TIME_BUFFER_FACTOR = 1.15


@dataclass(frozen=True, slots=True)
class ArchetypeConfig:
    """Static description of a question archetype."""

    type: str
    description: str
    best_for: tuple[str, ...]
    typical_minutes: int
    skills: tuple[str, ...]


ARCHETYPES: dict[str, ArchetypeConfig] = {
    config.type: config
    for config in (
        ArchetypeConfig(
            "crisis_simulation",
            "Two simultaneous urgent issues that test prioritization and composure",
            ("customer_success", "operations", "product"),
            5,
            ("prioritization", "decision_making", "stress_management", "communication"),
        ),
        ArchetypeConfig(
            "communication_draft",
            "Write the actual email, Slack message or memo",
            ("sales", "customer_success", "marketing", "people"),
            3,
            ("written_communication", "tone", "persuasion", "empathy"),
        ),
        ArchetypeConfig(
            "strategic_prioritization",
            "Allocate a fixed budget, time or headcount across competing options",
            ("product", "marketing", "operations", "engineering"),
            4,
            ("strategic_thinking", "tradeoff_analysis", "business_acumen"),
        ),
        ArchetypeConfig(
            "data_interpretation",
            "Pull insights and a recommendation out of metrics",
            ("product", "marketing", "finance", "operations"),
            4,
            ("analytical_thinking", "data_literacy", "insight_generation"),
        ),
        ArchetypeConfig(
            "stakeholder_navigation",
            "Mediate between two stakeholders with valid but conflicting positions",
            ("product", "operations", "people", "general"),
            4,
            ("political_savvy", "conflict_resolution", "influence", "diplomacy"),
        ),
        ArchetypeConfig(
            "reverse_engineering",
            "Explain how a successful outcome was achieved and reapply it",
            ("marketing", "sales", "product"),
            5,
            ("analytical_thinking", "pattern_recognition", "strategic_thinking"),
        ),
        ArchetypeConfig(
            "artifact_creation",
            "Produce a real deliverable such as a brief, plan or agenda",
            ("marketing", "product", "operations"),
            6,
            ("execution", "organization", "thoroughness", "clarity"),
        ),
        ArchetypeConfig(
            "multi_part_scenario",
            "An escalating scenario answered in several parts",
            ("customer_success", "sales", "product"),
            8,
            ("consistency", "adaptation", "depth_of_thinking", "follow_through"),
        ),
        ArchetypeConfig(
            "tools_proficiency",
            "Practical, step-level knowledge of the tools the job runs on",
            ("sales", "customer_success", "marketing", "finance", "operations", "engineering"),
            4,
            ("technical_proficiency", "tool_fluency", "practical_knowledge", "workflow_efficiency"),
        ),
        ArchetypeConfig(
            "operational_workflow",
            "Routine day-to-day work that reveals habits and organization",
            ("general", "sales", "customer_success", "product", "marketing", "operations", "engineering"),
            4,
            ("organization", "planning", "process_discipline", "attention_to_detail", "routine_execution"),
        ),
    )
}

# Base weights per role category. Weights, not counts: plan_mix scales them.
DEFAULT_QUESTION_MIX: dict[str, dict[str, float]] = {
    "sales": {
        "communication_draft": 2,
        "crisis_simulation": 1,
        "strategic_prioritization": 1,
        "stakeholder_navigation": 1,
        "multi_part_scenario": 1,
        "tools_proficiency": 1,
        "operational_workflow": 1,
    },
    "customer_success": {
        "communication_draft": 2,
        "crisis_simulation": 1,
        "stakeholder_navigation": 1,
        "data_interpretation": 1,
        "multi_part_scenario": 1,
        "tools_proficiency": 1,
        "operational_workflow": 1,
    },
    "product": {
        "strategic_prioritization": 2,
        "data_interpretation": 1,
        "stakeholder_navigation": 1,
        "artifact_creation": 1,
        "communication_draft": 1,
        "tools_proficiency": 1,
        "operational_workflow": 1,
    },
    "marketing": {
        "strategic_prioritization": 1,
        "artifact_creation": 1,
        "reverse_engineering": 1,
        "data_interpretation": 1,
        "communication_draft": 2,
        "tools_proficiency": 1,
        "operational_workflow": 1,
    },
    "engineering": {
        "strategic_prioritization": 1,
        "stakeholder_navigation": 1,
        "artifact_creation": 2,
        "data_interpretation": 1,
        "communication_draft": 1,
        "tools_proficiency": 1,
        "operational_workflow": 1,
    },
    "operations": {
        "crisis_simulation": 1,
        "strategic_prioritization": 1,
        "data_interpretation": 2,
        "artifact_creation": 1,
        "stakeholder_navigation": 1,
        "tools_proficiency": 1,
        "operational_workflow": 1,
    },
    "people": {
        "communication_draft": 2,
        "stakeholder_navigation": 2,
        "crisis_simulation": 1,
        "artifact_creation": 1,
        "tools_proficiency": 1,
        "operational_workflow": 1,
    },
    "finance": {
        "data_interpretation": 2,
        "strategic_prioritization": 1,
        "artifact_creation": 2,
        "communication_draft": 1,
        "tools_proficiency": 1,
        "operational_workflow": 1,
    },
    "general": {
        "communication_draft": 2,
        "strategic_prioritization": 1,
        "stakeholder_navigation": 1,
        "crisis_simulation": 1,
        "data_interpretation": 1,
        "tools_proficiency": 1,
        "operational_workflow": 1,
    },
}


def plan_mix(
    role_category: str,
    question_count: int,
    overrides: Mapping[str, float] | None = None,
) -> dict[str, int]:
    """Allocate ``question_count`` questions across archetypes.

    The returned counts are positive integers that always sum to exactly
    ``question_count``.

    Parameters
    ----------
    role_category:
        Role category selecting the base distribution. Unknown categories use
        the ``general`` distribution.
    question_count:
        Total number of questions to plan.
    overrides:
        Archetype weights replacing the base weight for those archetypes. A
        weight of zero removes the archetype.
    """

    if question_count < 1:
        raise ValueError(f"question_count must be positive, got {question_count}")

    weights: dict[str, float] = dict(
        DEFAULT_QUESTION_MIX.get(role_category, DEFAULT_QUESTION_MIX["general"])
    )
    for archetype, weight in (overrides or {}).items():
        if archetype not in ARCHETYPES:
            raise ValueError(f"Unknown question archetype: {archetype!r}")
        weights[archetype] = float(weight)

    weights = {archetype: weight for archetype, weight in weights.items() if weight > 0}
    if not weights:
        weights = dict(DEFAULT_QUESTION_MIX["general"])

    scale = question_count / sum(weights.values())
    mix: dict[str, int] = {}
    for archetype, weight in weights.items():
        scaled = round_half_up(weight * scale)
        if scaled > 0:
            mix[archetype] = scaled

    assigned = sum(mix.values())
    if assigned < question_count:
        primary = max(weights, key=weights.__getitem__)
        mix[primary] = mix.get(primary, 0) + (question_count - assigned)
    else:
        excess = assigned - question_count
        while excess > 0:
            smallest = min(mix, key=mix.__getitem__)
            taken = min(mix[smallest], excess)
            mix[smallest] -= taken
            excess -= taken
            if mix[smallest] == 0:
                del mix[smallest]

    return mix


def estimate_minutes(question_mix: Mapping[str, int]) -> int:
    """Estimated total duration including the reading/transition buffer."""
    total = sum(
        ARCHETYPES[archetype].typical_minutes * count
        for archetype, count in question_mix.items()
        if archetype in ARCHETYPES
    )
    return math.ceil(total * TIME_BUFFER_FACTOR)
