"""Prompt templates and the minimal template filler used to render them.

Templates understand three constructs. Conditionals are resolved first,
then both slot forms are filled in a single pass:

* ``{{#if key}}...{{/if}}`` keeps the block only when ``data[key]`` is truthy;
* ``{{keyJson}}`` inserts ``data[key]`` as pretty-printed JSON (``null`` when falsy);
* ``{{key}}`` inserts ``str(data[key])`` (empty for missing or ``None``).
"""

from __future__ import annotations

import json
import re
from datetime import datetime
from typing import Any, Mapping, Sequence

from pydantic import BaseModel

from .schemas import AssessmentQuestion, CompanyProfile, QuestionScore, RoleProfile, ToolsContext

_CONDITIONAL = re.compile(r"\{\{#if (\w+)\}\}(.*?)\{\{/if\}\}", re.DOTALL)
_SLOT = re.compile(r"\{\{(\w+?)(Json)?\}\}")


def _json_default(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, (set, frozenset, tuple)):
        return list(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def to_json(value: Any) -> str:
    return json.dumps(value, indent=2, ensure_ascii=False, default=_json_default)


def fill_template(template: str, data: Mapping[str, Any]) -> str:
    result = _CONDITIONAL.sub(lambda match: match.group(2) if data.get(match.group(1)) else "", template)

    # One pass, so inserted values are never rescanned for slots.
    def _slot(match: re.Match[str]) -> str:
        value = data.get(match.group(1))
        if match.group(2):
            return to_json(value) if value else "null"
        return "" if value is None else str(value)

    return _SLOT.sub(_slot, result)


COMPANY_RESEARCH_PROMPT = """You are a company research analyst. Gather the facts about an employer that are needed to write realistic, company-specific job assessment scenarios.

COMPANY NAME: {{companyName}}
{{#if additionalContext}}
ADDITIONAL CONTEXT (job posting):
{{additionalContext}}
{{/if}}

Cover:
1. What the company does, its industry, business model, stage and approximate size.
2. Its main products or services and who buys them.
3. Stated or implied values and the working culture.
4. Its top competitors, recent news and current challenges.
5. The stakeholders employees typically work with and the metrics success is measured by.

Respond with JSON only, using this structure:
{
  "name": "Company Name",
  "description": "One or two sentences",
  "industry": "Industry",
  "stage": "pre_seed|seed|series_a|series_b|series_c_plus|enterprise|public",
  "employeeCount": "approximate range",
  "products": ["product"],
  "targetCustomers": ["customer segment"],
  "businessModel": "How the company makes money",
  "values": ["value"],
  "culture": "Culture description",
  "competitors": ["competitor"],
  "recentNews": ["news item"],
  "challenges": ["challenge"],
  "typicalStakeholders": ["stakeholder"],
  "commonMetrics": ["metric"]
}

Where you lack facts, infer sensibly from the industry and company type. Do not leave fields empty."""


ROLE_EXTRACTION_PROMPT = """You are a job description analyst. Extract the structured facts about this role that are needed to write realistic assessment scenarios.

JOB DESCRIPTION:
{{jobDescription}}
{{#if company}}
COMPANY CONTEXT:
{{companyJson}}
{{/if}}

Extract:
1. The exact job title, its category and its level.
2. The top responsibilities, the deliverables produced and the stakeholders involved.
3. Hard skills, soft skills and any tools named in the posting.
4. The hardest recurring challenges and how success is measured.

Respond with JSON only, using this structure:
{
  "title": "Exact Job Title",
  "category": "sales|customer_success|product|marketing|engineering|operations|people|finance|general",
  "level": "entry|mid|senior|lead|executive",
  "responsibilities": ["responsibility"],
  "deliverables": ["deliverable"],
  "stakeholders": ["stakeholder"],
  "hardSkills": ["skill"],
  "softSkills": ["skill"],
  "tools": ["tool"],
  "commonChallenges": ["challenge"],
  "successMetrics": ["metric"]
}

Include facts that are implied as well as stated."""


ASSESSMENT_GENERATION_PROMPT = """You write job assessments that feel like the candidate's first day at this company. Generic, polished answers must be visibly weaker than answers grounded in the scenario.

Every scenario needs:
- CONTEXT: the company, the role, named stakeholders, history and numbers.
- CONSTRAINTS: real limits on time, resources, authority or information.
- STAKES: what happens if the candidate succeeds or fails.
- A request for the actual deliverable, not a description of it.
- Named companies, people and details. Never write "a company", "a customer", "a situation" or "someone".

COMPANY:
{{companyJson}}

ROLE:
{{roleJson}}

REQUIREMENTS:
- Generate exactly {{questionCount}} questions.
- Difficulty: {{difficulty}}
- Total time target: {{estimatedMinutes}} minutes
{{#if focusAreas}}
- Must test: {{focusAreas}}
{{/if}}

QUESTION MIX (archetype: count):
{{questionMixJson}}
{{#if toolsContext}}
TOOLS CONTEXT (for tools_proficiency questions):
{{toolsContextJson}}
- Confidence "explicit": ask specific, in-depth questions about these tools.
- Confidence "company_inferred": medium depth, focused on common workflows.
- Confidence "role_inferred": keep it light and focused on transferable concepts.
{{/if}}

INTENSITY CALIBRATION:
Real work is mostly routine with occasional moderate challenges and rare high-stakes moments. Across the {{questionCount}} questions aim for:
- 1-2 high-intensity questions (executive escalation, significant revenue at risk);
- 3-4 medium-intensity questions (competing priorities, difficult conversations, complex analysis);
- 2-3 low-intensity questions (routine workflows, normal collaboration).
Rules:
1. No scenario combines more than two simultaneous competing pressures.
2. Scale stakes to the role level: entry/mid roles carry individual or team impact ($10K-$100K), senior roles department impact ($100K-$500K), lead/executive roles company impact ($500K+).
3. Include at least one routine "normal day" question.

ARCHETYPE NOTES:
- crisis_simulation: exactly two competing urgent issues, both genuinely important.
- communication_draft: a specific recipient and relationship; vary the stakes.
- strategic_prioritization: options with trade-offs and a fixed budget, time or headcount.
- data_interpretation: realistic numbers with a non-obvious insight; ask for analysis and a recommendation.
- stakeholder_navigation: two stakeholders with valid but conflicting positions.
- reverse_engineering: explain how a success happened, then apply it elsewhere.
- artifact_creation: a concrete deliverable for a clear audience.
- multi_part_scenario: parts that escalate and end with reflection.
- tools_proficiency: practical steps in the tools the role uses, never theory.
- operational_workflow: day-to-day work that reveals habits and organization.

Respond with JSON only, using this structure:
{
  "questions": [
    {
      "id": "q1",
      "type": "archetype",
      "context": {
        "role": "You're a ... at ...",
        "situation": "Detailed scenario with names and numbers",
        "constraints": ["constraint"],
        "stakes": "What is at risk"
      },
      "prompt": "Direct instruction, e.g. 'Write the email'",
      "expectedFormat": "short_text|long_text|email|slack|bullet_list|structured",
      "timeGuidance": 4,
      "rubric": {
        "dimensions": [
          {"name": "relevance|judgment|communication|execution|company_fit|technical_proficiency", "weight": 0.25, "description": "What this dimension checks"}
        ],
        "redFlags": ["phrase or behaviour that signals a weak answer"],
        "bonusIndicators": ["phrase or behaviour that signals an exceptional answer"]
      },
      "skillsTested": ["skill"],
      "whyThisMatters": "One sentence",
      "whatGreatLooksLike": "One sentence"
    }
  ]
}

Rubric dimension weights for each question must sum to 1.0."""


SCORE_RESPONSE_PROMPT = """You evaluate a candidate's answer to one job assessment question. Be specific, fair and rigorous.

The candidate is applying for: {{roleTitle}} at {{companyName}}

QUESTION:
{{questionJson}}

CANDIDATE RESPONSE:
{{response}}

TIME SPENT: {{timeSpentSeconds}} seconds

RUBRIC:
{{rubricJson}}

For each rubric dimension give a 1-5 score, feedback explaining the score, and evidence quoted from the response. Note any red flags triggered and bonus indicators earned. The overall score is the weighted average of the dimension scores.

Respond with JSON only, using this structure:
{
  "dimensionScores": [
    {
      "dimension": "relevance|judgment|communication|execution|company_fit|technical_proficiency",
      "score": 4,
      "weight": 0.25,
      "weightedScore": 1.0,
      "feedback": "Why this score",
      "evidence": ["quote from the response"]
    }
  ],
  "overallScore": 4.0,
  "strengths": ["specific strength"],
  "improvements": ["specific, actionable improvement"],
  "specificFeedback": "Personal coaching paragraph",
  "redFlagsTriggered": [],
  "bonusesEarned": []
}

A 5 is genuinely excellent; a 3 is adequate. Evidence must come from the response itself. Generic answers that ignore the company context score lower. Rushed answers may explain brevity."""


GENERATE_SUMMARY_PROMPT = """You write the employer-facing summary of a completed job assessment.

ROLE: {{roleTitle}} at {{companyName}}
OVERALL SCORE: {{overallScore}}/100

QUESTION SCORES:
{{questionScoresJson}}

Tiers by overall score:
- 90-100 "exceptional": top-tier candidate
- 75-89 "strong": solid candidate worth interviewing
- 60-74 "qualified": meets the bar, investigate further
- 45-59 "developing": not there yet
- 0-44 "not_ready": significant gaps

Write a two to three paragraph summary of how the candidate would perform in this role, three to five top strengths and two to four areas for growth. Reference their actual answers.

Respond with JSON only, using this structure:
{
  "tier": "exceptional|strong|qualified|developing|not_ready",
  "summary": "Summary paragraphs",
  "topStrengths": ["strength"],
  "areasForGrowth": ["growth area"]
}"""


def build_company_research_prompt(company_name: str, additional_context: str | None = None) -> str:
    return fill_template(
        COMPANY_RESEARCH_PROMPT,
        {"companyName": company_name, "additionalContext": additional_context},
    )


def build_role_extraction_prompt(job_description: str, company: CompanyProfile | None = None) -> str:
    return fill_template(ROLE_EXTRACTION_PROMPT, {"jobDescription": job_description, "company": company})


def build_generation_prompt(
    *,
    company: CompanyProfile,
    role: RoleProfile,
    question_count: int,
    question_mix: Mapping[str, int],
    difficulty: str,
    estimated_minutes: int,
    focus_areas: Sequence[str] | None = None,
    tools_context: ToolsContext | None = None,
) -> str:
    return fill_template(
        ASSESSMENT_GENERATION_PROMPT,
        {
            "company": company,
            "role": role.model_dump(mode="json", exclude={"raw_job_description"}),
            "questionCount": question_count,
            "questionMix": dict(question_mix),
            "difficulty": difficulty,
            "estimatedMinutes": estimated_minutes,
            "focusAreas": ", ".join(focus_areas) if focus_areas else None,
            "toolsContext": tools_context if tools_context and tools_context.tools else None,
        },
    )


def build_score_prompt(
    *,
    role_title: str,
    company_name: str,
    question: AssessmentQuestion,
    response: str,
    time_spent_seconds: float,
) -> str:
    return fill_template(
        SCORE_RESPONSE_PROMPT,
        {
            "roleTitle": role_title,
            "companyName": company_name,
            "question": question.model_dump(mode="json", exclude={"rubric"}),
            "response": response,
            "timeSpentSeconds": round(time_spent_seconds),
            "rubric": question.rubric,
        },
    )


def build_summary_prompt(
    *,
    role_title: str,
    company_name: str,
    overall_score: int,
    question_scores: Sequence[QuestionScore],
) -> str:
    return fill_template(
        GENERATE_SUMMARY_PROMPT,
        {
            "roleTitle": role_title,
            "companyName": company_name,
            "overallScore": overall_score,
            "questionScores": [score.model_dump(mode="json") for score in question_scores],
        },
    )
