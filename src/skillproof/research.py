"""Company and role research for assessment generation."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

import pendulum
import structlog
from rapidfuzz import fuzz, process

from .errors import CompletionError, ResearchError, Result
from .llm import CompletionClient, extract_json_object
from .prompts import build_company_research_prompt, build_role_extraction_prompt
from .schemas import CompanyProfile, ResearchContext, RoleProfile, ToolsContext
from .schemas.parsing import parse_company, parse_role

UNKNOWN_COMPANY = "Unknown Company"
UNKNOWN_ROLE = "Unknown Role"
DEFAULT_INDUSTRY = "Technology"


@dataclass(frozen=True, slots=True)
class RoleTools:
    primary: tuple[str, ...]
    secondary: tuple[str, ...]
    basic_skills: tuple[str, ...]


ROLE_TOOLS: dict[str, RoleTools] = {
    "sales": RoleTools(
        ("Salesforce", "HubSpot", "Outreach", "SalesLoft", "Gong", "LinkedIn Sales Navigator"),
        ("ZoomInfo", "Apollo", "Clari", "Chorus", "Calendly"),
        ("CRM management", "Pipeline tracking", "Email sequences", "Calendar management"),
    ),
    "customer_success": RoleTools(
        ("Gainsight", "ChurnZero", "Totango", "Salesforce", "Zendesk"),
        ("Intercom", "Freshdesk", "Pendo", "Mixpanel", "Looker"),
        ("Customer health scoring", "Ticket management", "Usage analytics", "QBR preparation"),
    ),
    "product": RoleTools(
        ("Jira", "Figma", "Notion", "ProductBoard", "Linear"),
        ("Amplitude", "Mixpanel", "FullStory", "Miro", "Confluence"),
        ("Roadmap planning", "User research documentation", "Sprint planning", "Feature prioritization"),
    ),
    "marketing": RoleTools(
        ("Google Analytics", "HubSpot", "Marketo", "Semrush", "Hootsuite"),
        ("Mailchimp", "Buffer", "Canva", "Ahrefs", "Google Ads"),
        ("Campaign tracking", "A/B testing", "Content scheduling", "Lead scoring"),
    ),
    "engineering": RoleTools(
        ("Git", "GitHub/GitLab", "VS Code", "Docker", "AWS/GCP/Azure"),
        ("Datadog", "Sentry", "Jenkins", "Terraform", "Kubernetes"),
        ("Version control", "CI/CD pipelines", "Code review", "Debugging tools"),
    ),
    "operations": RoleTools(
        ("Google Workspace", "Slack", "Asana", "Monday.com", "Notion"),
        ("Zapier", "Airtable", "Confluence", "Trello", "Smartsheet"),
        ("Project tracking", "Process documentation", "Workflow automation", "Resource planning"),
    ),
    "people": RoleTools(
        ("Greenhouse", "Lever", "Workday", "BambooHR", "LinkedIn Recruiter"),
        ("Culture Amp", "Lattice", "15Five", "Namely", "Rippling"),
        ("ATS management", "Candidate sourcing", "Interview scheduling", "Performance tracking"),
    ),
    "finance": RoleTools(
        ("Excel", "Google Sheets", "NetSuite", "QuickBooks", "SAP"),
        ("Tableau", "Power BI", "Stripe", "Expensify", "Bill.com"),
        ("Financial modeling", "Pivot tables", "VLOOKUP/INDEX-MATCH", "Data visualization"),
    ),
    "general": RoleTools(
        ("Google Workspace", "Microsoft Office", "Slack", "Zoom"),
        ("Notion", "Asana", "Trello", "Calendly"),
        ("Email communication", "Calendar management", "Document creation", "Video conferencing"),
    ),
}

# Keyed by lowercase alphanumeric name.
WELL_KNOWN_COMPANIES: dict[str, dict[str, Any]] = {
    "stripe": {
        "name": "Stripe",
        "description": "Financial infrastructure platform for the internet",
        "industry": "Fintech / Payments",
        "stage": "series_c_plus",
        "employee_count": "8,000+",
        "products": ["Payments API", "Billing", "Connect", "Atlas", "Radar", "Terminal", "Treasury"],
        "target_customers": ["Startups", "Enterprise", "Marketplaces", "Platforms"],
        "business_model": "Transaction fees (2.9% + $0.30) plus platform fees",
        "values": ["Users first", "Move fast", "Think rigorously", "Global optimization", "Honesty"],
        "culture": "Intense, intellectual, writing-heavy, high-bar, async-friendly",
        "competitors": ["Adyen", "Square", "Braintree/PayPal", "Checkout.com"],
        "challenges": ["Enterprise expansion", "International complexity", "Regulatory compliance"],
        "typical_stakeholders": ["Engineering teams", "Product managers", "Finance teams", "Compliance"],
        "common_metrics": ["Payment volume", "Take rate", "Time to integration", "Support resolution time"],
    },
    "notion": {
        "name": "Notion",
        "description": "All-in-one workspace for notes, docs, wikis, and project management",
        "industry": "Productivity / SaaS",
        "stage": "series_c_plus",
        "employee_count": "500+",
        "products": ["Notion Workspace", "Notion AI", "Notion Templates", "Notion API"],
        "target_customers": ["Teams", "Startups", "Enterprise", "Individual creators"],
        "business_model": "Freemium + subscription ($8-15/user/month)",
        "values": ["Craft", "User obsession", "Ambition", "Kindness"],
        "culture": "Design-obsessed, thoughtful, remote-friendly, high craft standards",
        "competitors": ["Confluence", "Coda", "Monday.com", "Airtable"],
        "challenges": ["Enterprise adoption", "AI integration", "Template ecosystem"],
        "typical_stakeholders": ["Team leads", "Individual contributors", "IT admins"],
        "common_metrics": ["DAU/MAU", "Workspace creation", "Team size growth", "NPS"],
    },
    "hubspot": {
        "name": "HubSpot",
        "description": "CRM platform with marketing, sales, and service hubs",
        "industry": "CRM / Marketing Technology",
        "stage": "public",
        "employee_count": "7,000+",
        "products": ["Marketing Hub", "Sales Hub", "Service Hub", "CMS Hub", "Operations Hub"],
        "target_customers": ["SMBs", "Mid-market companies", "Marketing teams", "Sales teams"],
        "business_model": "Freemium + tiered subscriptions + marketplace",
        "values": ["HEART: Humble, Empathetic, Adaptable, Remarkable, Transparent"],
        "culture": "Customer-centric, educational, inbound methodology believers",
        "competitors": ["Salesforce", "Pipedrive", "Zoho", "Monday.com"],
        "challenges": ["Moving upmarket", "Competing with Salesforce", "AI integration"],
        "typical_stakeholders": ["Marketing managers", "Sales reps", "RevOps", "Executives"],
        "common_metrics": ["MQL/SQL conversion", "Deal velocity", "Customer LTV", "NRR"],
    },
    "figma": {
        "name": "Figma",
        "description": "Collaborative design platform for teams",
        "industry": "Design Tools / SaaS",
        "stage": "series_c_plus",
        "employee_count": "1,200+",
        "products": ["Figma Design", "FigJam", "Figma Slides", "Dev Mode", "Figma AI"],
        "target_customers": ["Design teams", "Product teams", "Startups", "Enterprise"],
        "business_model": "Freemium + per-editor subscription",
        "values": ["Make design accessible", "Build in the open", "Grow together"],
        "culture": "Design-obsessed, collaborative, playful, technically excellent",
        "competitors": ["Adobe XD", "Sketch", "InVision", "Canva"],
        "challenges": ["Enterprise security requirements", "Adobe competition", "AI integration"],
        "typical_stakeholders": ["Designers", "Product managers", "Engineers", "Design systems teams"],
        "common_metrics": ["MAU", "Files created", "Collaboration time", "Enterprise seats"],
    },
    "shopify": {
        "name": "Shopify",
        "description": "E-commerce platform helping merchants sell anywhere",
        "industry": "E-commerce / SaaS",
        "stage": "public",
        "employee_count": "10,000+",
        "products": ["Shopify stores", "Shopify POS", "Shopify Payments", "Shop app", "Shopify Capital"],
        "target_customers": ["Small merchants", "DTC brands", "Enterprise retailers"],
        "business_model": "Subscriptions + transaction fees + Shopify Capital",
        "values": ["Build for the long term", "Thrive on change", "Be a merchant"],
        "culture": "Merchant-obsessed, entrepreneurial, high autonomy, remote-first",
        "competitors": ["WooCommerce", "BigCommerce", "Squarespace", "Amazon"],
        "challenges": ["Merchant retention", "Enterprise market", "Checkout competition"],
        "typical_stakeholders": ["Merchants", "Partners", "App developers", "Support teams"],
        "common_metrics": ["GMV", "Merchant count", "Revenue per merchant", "Attach rate"],
    },
    "salesforce": {
        "name": "Salesforce",
        "description": "Enterprise CRM and cloud computing giant",
        "industry": "CRM / Enterprise Software",
        "stage": "public",
        "employee_count": "70,000+",
        "products": ["Sales Cloud", "Service Cloud", "Marketing Cloud", "Slack", "Tableau", "MuleSoft"],
        "target_customers": ["Enterprise", "Mid-market", "SMB", "Nonprofits"],
        "business_model": "Subscription + professional services + AppExchange",
        "values": ["Trust", "Customer Success", "Innovation", "Equality", "Sustainability"],
        "culture": "Corporate but innovative, Ohana culture, growth-oriented",
        "competitors": ["Microsoft Dynamics", "HubSpot", "Oracle", "SAP"],
        "challenges": ["Multi-cloud complexity", "Slack integration", "AI competition"],
        "typical_stakeholders": ["Sales reps", "Sales managers", "Admins", "Executives"],
        "common_metrics": ["ARR", "Customer retention", "Platform adoption", "Partner ecosystem"],
    },
    "gong": {
        "name": "Gong",
        "description": "Revenue intelligence platform using conversation analytics",
        "industry": "Sales Tech / AI",
        "stage": "series_c_plus",
        "employee_count": "1,500+",
        "products": ["Gong Engage", "Gong Forecast", "Gong Analytics", "Gong Assist"],
        "target_customers": ["Sales teams", "Revenue leaders", "Customer success teams"],
        "business_model": "Seat-based subscription (typically $100-150/user/month)",
        "values": ["Reality > Perception", "We, not I", "Courage over comfort"],
        "culture": "Data-driven, bold, customer-obsessed, high-energy",
        "competitors": ["Chorus (ZoomInfo)", "Clari", "Outreach", "SalesLoft"],
        "challenges": ["Enterprise penetration", "Privacy concerns", "Competitive pressure"],
        "typical_stakeholders": ["Sales reps", "Sales managers", "RevOps", "Sales enablement"],
        "common_metrics": ["Win rate", "Deal cycle time", "Talk ratio", "Adoption rate"],
    },
    "datadog": {
        "name": "Datadog",
        "description": "Cloud monitoring and security platform for developers",
        "industry": "DevOps / Monitoring",
        "stage": "public",
        "employee_count": "5,000+",
        "products": ["Infrastructure monitoring", "APM", "Logs", "Security", "Synthetics", "RUM"],
        "target_customers": ["Engineering teams", "DevOps", "SRE teams", "Security teams"],
        "business_model": "Usage-based pricing + subscription tiers",
        "values": ["Dream Big", "Care and Be Direct", "Make an Impact"],
        "culture": "Technical excellence, fast-paced, customer-focused, ambitious",
        "competitors": ["Splunk", "New Relic", "Dynatrace", "Grafana"],
        "challenges": ["Usage predictability", "Cost management for customers", "Security expansion"],
        "typical_stakeholders": ["Engineers", "SREs", "Security teams", "IT leaders"],
        "common_metrics": ["Hosts monitored", "ARR", "Net expansion", "Product adoption"],
    },
}

# Checked in table order; the first category with a matching keyword wins.
CATEGORY_KEYWORDS: dict[str, tuple[str, ...]] = {
    "sales": ("sales", "sdr", "bdr", "account executive", "ae", "business development", "revenue"),
    "customer_success": (
        "customer success",
        "csm",
        "account manager",
        "client success",
        "customer experience",
    ),
    "product": ("product manager", "product owner", "pm", "product designer", "ux", "ui"),
    "marketing": ("marketing", "growth", "content", "brand", "demand gen", "seo", "social media"),
    "engineering": (
        "engineer",
        "developer",
        "swe",
        "software",
        "devops",
        "sre",
        "data engineer",
        "frontend",
        "backend",
    ),
    "operations": ("operations", "ops", "strategy", "bizops", "business operations", "chief of staff"),
    "people": ("hr", "human resources", "recruiting", "recruiter", "people", "talent", "compensation"),
    "finance": ("finance", "fp&a", "accounting", "controller", "cfo", "financial"),
}

_LEVEL_PATTERNS: tuple[tuple[str, re.Pattern[str]], ...] = (
    ("executive", re.compile(r"\b(vp|vice president|svp|evp|chief|cxo|ceo|cto|cfo|coo|cmo)\b", re.I)),
    ("lead", re.compile(r"\b(director|head of)\b", re.I)),
    ("senior", re.compile(r"\b(senior|sr\.?|staff|principal)\b", re.I)),
    ("entry", re.compile(r"\b(junior|jr\.?|associate|entry|intern)\b", re.I)),
)

_NAME = r"[A-Z][A-Za-z0-9&]+(?:[ \t]+[A-Z][A-Za-z0-9&]+)*"
_COMPANY_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(rf"\b(?i:about|at|join)[ \t]+({_NAME})"),
    re.compile(rf"\b({_NAME})[ \t]+is[ \t]+(?:hiring|looking|seeking)\b"),
    re.compile(r"\b(?i:company|employer)[ \t]*:[ \t]*([A-Za-z0-9&.\-]+(?:[ \t]+[A-Za-z0-9&.\-]+)*)"),
)
# Capitalized words that follow "about"/"at"/"join" without naming an employer.
_NAME_STOPWORDS = frozenset(
    {"The", "This", "Our", "Us", "We", "You", "Your", "Role", "Position", "Team", "Company", "A", "An"}
)

_TITLE_LINE = re.compile(r"^[ \t]*(?:job[ \t]+)?(?:title|position|role)[ \t]*:[ \t]*(.+)$", re.I | re.M)
_MAX_TITLE_CHARS = 80

logger = structlog.get_logger(__name__)


def normalize_company_key(name: str) -> str:
    return re.sub(r"[^a-z0-9]", "", name.lower())


def extract_company_name(job_text: str) -> str | None:
    """Pull an employer name out of a job posting, or ``None`` when none is found."""
    for pattern in _COMPANY_PATTERNS:
        for match in pattern.finditer(job_text):
            candidate = match.group(1).strip(" \t.-")
            if candidate and candidate.split()[0] not in _NAME_STOPWORDS:
                return candidate
    return None


def _keyword_in(keyword: str, text: str) -> bool:
    if len(keyword) <= 3:
        return re.search(rf"\b{re.escape(keyword)}\b", text) is not None
    return keyword in text


def infer_role_category(title: str) -> str:
    lowered = title.lower()
    for category, keywords in CATEGORY_KEYWORDS.items():
        if any(_keyword_in(keyword, lowered) for keyword in keywords):
            return category
    return "general"


def infer_role_level(title: str) -> str:
    for level, pattern in _LEVEL_PATTERNS:
        if pattern.search(title):
            return level
    return "mid"


def guess_role_title(job_text: str) -> str:
    """Best-effort job title from an explicit ``Title:`` line or the first line."""
    match = _TITLE_LINE.search(job_text)
    if match:
        return match.group(1).strip()
    for line in job_text.splitlines():
        candidate = line.strip().lstrip("#*-• \t").rstrip("*").strip()
        if not candidate:
            continue
        candidate = re.split(r"[ \t]+(?:at|@|-|\|)[ \t]+", candidate, maxsplit=1)[0]
        if len(candidate) <= _MAX_TITLE_CHARS:
            return candidate
        break
    return UNKNOWN_ROLE


def company_defaults(name: str, industry: str = DEFAULT_INDUSTRY) -> dict[str, Any]:
    """Fallback values for every descriptive company field."""
    return {
        "name": name,
        "description": f"{name} is a {industry.lower()} company.",
        "industry": industry,
        "stage": "series_a",
        "business_model": "Subscription software",
        "culture": "Collaborative, fast-paced and outcome-driven",
        "products": [f"{name} core platform"],
        "target_customers": ["Business customers"],
        "values": ["Customer focus", "Ownership"],
        "competitors": ["Established industry incumbents"],
        "recent_news": ["No recent news available"],
        "challenges": ["Scaling the business"],
        "typical_stakeholders": ["Team lead", "Cross-functional partners", "Customers"],
        "common_metrics": ["Revenue growth", "Customer satisfaction"],
    }


def role_defaults(title: str, job_text: str | None = None) -> dict[str, Any]:
    """Fallback values for every descriptive role field, inferred from the title."""
    category = infer_role_category(title)
    tools = ROLE_TOOLS[category]
    return {
        "title": title,
        "category": category,
        "level": infer_role_level(title),
        "responsibilities": [f"Deliver the core outcomes expected of the {title} role"],
        "deliverables": ["Status updates", "Work plans"],
        "stakeholders": ["Manager", "Cross-functional partners"],
        "hard_skills": list(tools.basic_skills),
        "soft_skills": ["Communication", "Prioritization", "Collaboration"],
        "tools": list(tools.primary),
        "common_challenges": ["Competing priorities"],
        "success_metrics": ["Goal attainment"],
        "raw_job_description": job_text,
    }


def build_tools_context(role: RoleProfile) -> ToolsContext:
    """Classify how confidently the role's tools were identified."""
    inferred = ROLE_TOOLS.get(role.category, ROLE_TOOLS["general"])
    if not role.tools:
        return ToolsContext(tools=list(inferred.primary), confidence="role_inferred", source="role_inference")

    posting = (role.raw_job_description or "").lower()
    if posting and any(tool.lower() in posting for tool in role.tools):
        return ToolsContext(tools=list(role.tools), confidence="explicit", source="job_description")
    if list(role.tools) == list(inferred.primary):
        return ToolsContext(tools=list(role.tools), confidence="role_inferred", source="role_inference")
    return ToolsContext(tools=list(role.tools), confidence="company_inferred", source="company_research")


def _defaulted_warning(subject: str, defaulted: list[str]) -> list[str]:
    return [f"{subject}: defaulted fields {', '.join(defaulted)}"] if defaulted else []


class ResearchAggregator:
    """Gather :class:`CompanyProfile` and :class:`RoleProfile` for a job posting."""

    def __init__(
        self,
        client: CompletionClient,
        *,
        max_tokens: int = 2000,
        fuzzy_cutoff: float = 90.0,
    ) -> None:
        self._client = client
        self._max_tokens = max_tokens
        self._fuzzy_cutoff = fuzzy_cutoff
        self._logger = structlog.get_logger(__name__)

    def lookup_company(self, name: str) -> CompanyProfile | None:
        """Return a profile from the static employer table, if the name matches one."""
        key = normalize_company_key(name)
        if not key:
            return None
        entry = WELL_KNOWN_COMPANIES.get(key)
        if entry is None:
            match = process.extractOne(
                key,
                WELL_KNOWN_COMPANIES.keys(),
                scorer=fuzz.ratio,
                score_cutoff=self._fuzzy_cutoff,
            )
            if match is None:
                return None
            entry = WELL_KNOWN_COMPANIES[match[0]]
        self._logger.info("research.company_cached", company=entry["name"], query=name)
        return CompanyProfile(
            **company_defaults(entry["name"], entry["industry"]) | entry,
            fetched_at=pendulum.now("UTC"),
        )

    async def research_company(
        self, name: str, additional_context: str | None = None
    ) -> Result[CompanyProfile]:
        cached = self.lookup_company(name)
        if cached is not None:
            return Result.success(cached)

        prompt = build_company_research_prompt(name, additional_context)
        try:
            completion = await self._client.complete(
                prompt, step="research_company", max_tokens=self._max_tokens
            )
        except CompletionError as exc:
            self._logger.warning("research.company_failed", company=name, error=exc.message)
            return Result.failure(ResearchError(exc.message, code="COMPANY_NOT_FOUND"))
        except Exception as exc:  # noqa: BLE001
            self._logger.warning("research.company_unexpected_error", company=name, error=str(exc), exc_info=True)
            return Result.failure(
                ResearchError(f"Unknown error researching company: {exc}", code="COMPANY_NOT_FOUND")
            )

        raw = extract_json_object(completion.text)
        if raw is None:
            self._logger.warning("research.company_unparseable", company=name)
            return Result.failure(
                ResearchError("Could not parse company research", code="COMPANY_NOT_FOUND")
            )

        parsed = parse_company(raw, defaults=company_defaults(name))
        company = parsed.value
        if "description" in parsed.defaulted:
            company = company.model_copy(
                update={"description": company_defaults(company.name, company.industry)["description"]}
            )
        self._logger.info("research.company_researched", company=company.name, defaulted=parsed.defaulted)
        return Result.success(company, warnings=_defaulted_warning("company", parsed.defaulted))

    async def extract_role(
        self, job_text: str, company: CompanyProfile | None = None
    ) -> Result[RoleProfile]:
        prompt = build_role_extraction_prompt(job_text, company)
        try:
            completion = await self._client.complete(
                prompt, step="extract_role", max_tokens=self._max_tokens
            )
        except CompletionError as exc:
            self._logger.warning("research.role_failed", error=exc.message)
            return Result.failure(ResearchError(exc.message, code="INVALID_JOB_DESCRIPTION"))
        except Exception as exc:  # noqa: BLE001
            self._logger.warning("research.role_unexpected_error", error=str(exc), exc_info=True)
            return Result.failure(
                ResearchError(f"Unknown error extracting role: {exc}", code="INVALID_JOB_DESCRIPTION")
            )

        raw = extract_json_object(completion.text)
        if raw is None:
            self._logger.warning("research.role_unparseable")
            return Result.failure(
                ResearchError("Could not parse role details", code="INVALID_JOB_DESCRIPTION")
            )

        parsed = parse_role(raw, defaults=role_defaults(guess_role_title(job_text), job_text))
        role = parsed.value

        # Category, level and tools fall back to what the extracted title implies.
        refined = role_defaults(role.title, job_text)
        updates: dict[str, Any] = {}
        if "category" in parsed.defaulted:
            updates["category"] = refined["category"]
        if "level" in parsed.defaulted:
            updates["level"] = refined["level"]
        category = updates.get("category", role.category)
        if "tools" in parsed.defaulted:
            updates["tools"] = list(ROLE_TOOLS[category].primary)
        if "hardSkills" in parsed.defaulted:
            updates["hard_skills"] = list(ROLE_TOOLS[category].basic_skills)
        if updates:
            role = role.model_copy(update=updates)

        self._logger.info(
            "research.role_extracted",
            title=role.title,
            category=role.category,
            level=role.level,
            defaulted=parsed.defaulted,
        )
        return Result.success(role, warnings=_defaulted_warning("role", parsed.defaulted))

    async def gather_context(
        self, job_text: str, company_name_hint: str | None = None
    ) -> Result[ResearchContext]:
        """Research the employer, then extract the role, from one job posting."""
        if not job_text or not job_text.strip():
            return Result.failure(
                ResearchError("Job description is empty", code="INVALID_JOB_DESCRIPTION")
            )

        name = (company_name_hint or "").strip() or extract_company_name(job_text) or UNKNOWN_COMPANY
        company_result = await self.research_company(name, job_text)
        if not company_result.ok:
            return Result.failure(company_result.error)

        role_result = await self.extract_role(job_text, company_result.data)
        if not role_result.ok:
            return Result.failure(role_result.error)

        return Result.success(
            ResearchContext(company=company_result.data, role=role_result.data),
            warnings=[*company_result.warnings, *role_result.warnings],
        )
