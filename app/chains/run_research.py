"""Best-effort external research: competitive landscape and practitioner evidence.

Research failures never fail a pipeline. Every call returns a ResearchOutcome
(or an EvidenceBundle carrying one) so the caller branches on `ok` rather than
on an empty-string sentinel.
"""

from dataclasses import dataclass, field
from urllib.parse import urlparse
from uuid import UUID

from app.core.insight_formatters import format_insights_for_discovery
from app.core.logging import get_logger
from app.core.prompt_builder import build_research_prompt_from_insights
from app.core.schemas_generation import EvidenceLevel
from app.core.schemas_insights import ExtractedInsights
from app.services.deep_research import run_deep_research
from app.services.llm_gateway import grounded_search

logger = get_logger(__name__)


@dataclass
class ResearchOutcome:
    """Result of one research stream. `text` is only meaningful when `ok`."""

    ok: bool
    text: str = ""
    sources: list[dict[str, str]] = field(default_factory=list)
    error: str | None = None

    @classmethod
    def success(cls, text: str, sources: list[dict[str, str]] | None = None) -> "ResearchOutcome":
        return cls(ok=bool(text.strip()), text=text, sources=sources or [])

    @classmethod
    def failure(cls, error: str) -> "ResearchOutcome":
        return cls(ok=False, error=error)


@dataclass
class EvidenceBundle:
    """Practitioner/community evidence plus the grounding level it supports."""

    outcome: ResearchOutcome
    evidence_level: EvidenceLevel = EvidenceLevel.PRODUCT_ONLY
    community_post_count: int = 0
    practitioner_quotes: list[dict[str, str]] = field(default_factory=list)
    source_counts: dict[str, int] = field(default_factory=dict)

    @property
    def context_text(self) -> str:
        if not self.outcome.ok:
            return ""
        lines = ["## Verified Community Evidence (USE ONLY THESE)", "", self.outcome.text, ""]
        if self.outcome.sources:
            lines.append("Sources:")
            lines.extend(f"- [{s['title']}]({s['url']})" for s in self.outcome.sources)
        return "\n".join(lines)

    def as_outcome(self) -> ResearchOutcome:
        """The evidence as prompt-ready research text."""
        if not self.outcome.ok:
            return self.outcome
        return ResearchOutcome.success(self.context_text, self.outcome.sources)


def classify_evidence_level(post_count: int, source_types: set[str], has_grounded_search: bool) -> EvidenceLevel:
    if post_count >= 3 and len(source_types) >= 2:
        return EvidenceLevel.STRONG
    if post_count >= 1 or has_grounded_search:
        return EvidenceLevel.PARTIAL
    return EvidenceLevel.PRODUCT_ONLY


def _host(url: str) -> str:
    host = urlparse(url).hostname or "web"
    return host.removeprefix("www.")


COMMUNITY_RESEARCH_PROMPT = """Search Reddit, Hacker News, Stack Overflow, GitHub Issues, developer blogs, and
other practitioner communities for real discussions, complaints, and pain points in this product area.

## Product Area
{product_area}

{focus}## What to Find
1. Real practitioner quotes expressing frustration with current tools in this space
2. Common complaints and pain points from community discussions
3. What practitioners wish existed or worked better
4. Specific scenarios where current solutions fail them
5. The language practitioners actually use to describe these problems

## Output Format
- **Practitioner Quotes**: Verbatim quotes from real community posts, with source URL and community
- **Common Pain Points**: Recurring themes across communities
- **Wished-For Solutions**: What practitioners say they want
- **Language Patterns**: The words and phrases practitioners use (not vendor language)

Include actual quotes with source URLs."""


def build_community_prompt(insights: ExtractedInsights, focus: str | None = None) -> str:
    """Scoped to domain/category only so product branding cannot bias the search."""
    product_area = format_insights_for_discovery(insights) or "software tooling"
    focus_section = f"## Focus Area\n{focus}\n\n" if focus else ""
    return COMMUNITY_RESEARCH_PROMPT.format(product_area=product_area, focus=focus_section)


async def run_community_research(
    insights: ExtractedInsights,
    focus: str | None = None,
    job_id: UUID | str | None = None,
    session_id: UUID | str | None = None,
) -> EvidenceBundle:
    """Practitioner-pain deep research. Failure yields a product-only bundle."""
    try:
        result = await run_deep_research(
            build_community_prompt(insights, focus),
            chain="community_research",
            job_id=job_id,
            session_id=session_id,
        )
    except Exception as e:
        logger.warning(f"Community research failed, continuing product-only: {e}")
        return EvidenceBundle(outcome=ResearchOutcome.failure(str(e)))

    hosts = {_host(s["url"]) for s in result.sources}
    source_counts: dict[str, int] = {"deep_research": 1}
    for source in result.sources:
        host = _host(source["url"])
        source_counts[host] = source_counts.get(host, 0) + 1

    level = classify_evidence_level(len(result.sources), hosts, len(result.text) > 100)
    logger.info(
        f"Community research complete: {len(result.sources)} sources, evidence={level.value}",
        extra={"job_id": str(job_id) if job_id else None},
    )
    return EvidenceBundle(
        outcome=ResearchOutcome.success(result.text, result.sources),
        evidence_level=level,
        community_post_count=len(result.sources),
        practitioner_quotes=[
            {"text": s["title"], "source": _host(s["url"]), "source_url": s["url"]}
            for s in result.sources
        ],
        source_counts=source_counts,
    )


async def run_competitive_research(
    insights: ExtractedInsights,
    focus: str | None = None,
    job_id: UUID | str | None = None,
    session_id: UUID | str | None = None,
) -> ResearchOutcome:
    """Competitive landscape via deep research. Never raises."""
    try:
        result = await run_deep_research(
            build_research_prompt_from_insights(insights, focus),
            chain="competitive_research",
            job_id=job_id,
            session_id=session_id,
        )
        return ResearchOutcome.success(result.text, result.sources)
    except Exception as e:
        logger.warning(f"Competitive research failed, continuing without it: {e}")
        return ResearchOutcome.failure(str(e))


async def run_grounded_research(
    prompt: str,
    chain: str,
    job_id: UUID | str | None = None,
    session_id: UUID | str | None = None,
) -> ResearchOutcome:
    """Single-shot grounded search. Never raises."""
    try:
        result = await grounded_search(prompt, chain=chain, job_id=job_id, session_id=session_id)
        return ResearchOutcome.success(
            result.text, [{"title": url, "url": url} for url in result.sources]
        )
    except Exception as e:
        logger.warning(f"Grounded search failed: {e}")
        return ResearchOutcome.failure(str(e))


def combine_research(*sections: tuple[str, ResearchOutcome]) -> ResearchOutcome:
    """Join the successful outcomes under their headers. Headers may be empty."""
    parts = []
    sources: list[dict[str, str]] = []
    for header, outcome in sections:
        if not outcome.ok:
            continue
        parts.append(f"## {header}\n\n{outcome.text}" if header else outcome.text)
        sources.extend(outcome.sources)
    if not parts:
        errors = "; ".join(o.error for _, o in sections if o.error)
        return ResearchOutcome.failure(errors or "no research available")
    return ResearchOutcome.success("\n\n".join(parts), sources)
