"""Fallback insights and the tiered formatter views over ExtractedInsights.

Each formatter hands a stage only the slice it needs:

- discovery: domain / category / product type (~150 chars), no product framing
- research: summary, capabilities, differentiators, personas (~1-2K)
- prompt: every field (~2-3K)
- scoring: capabilities, claims, differentiators (~1-2K)
"""

import re

from app.core.schemas_insights import ExtractedInsights

UNKNOWN = "unknown"

_SENTENCE_SPLIT = re.compile(r"[.!?]\s+")


def build_fallback_insights(raw_docs: str) -> ExtractedInsights:
    """Deterministic non-AI insights: first sentences as summary, everything else empty."""
    excerpt = (raw_docs or "")[:2000]
    sentences = [s.strip() for s in _SENTENCE_SPLIT.split(excerpt) if s.strip()][:3]
    summary = ". ".join(sentences).rstrip(".!?")
    if summary:
        summary += "."

    return ExtractedInsights(summary=summary)


def _bullets(title: str, items: list[str]) -> str:
    if not items:
        return ""
    lines = "\n".join(f"- {item}" for item in items)
    return f"{title}:\n{lines}"


def format_insights_for_discovery(insights: ExtractedInsights) -> str:
    parts = [
        value
        for value in (insights.domain, insights.category, insights.product_type)
        if value and value != UNKNOWN
    ]
    return " / ".join(parts)


def format_insights_for_research(insights: ExtractedInsights) -> str:
    sections = []
    if insights.summary:
        sections.append(f"Product: {insights.summary}")
    sections.append(_bullets("Capabilities", insights.product_capabilities))
    sections.append(_bullets("Key Differentiators", insights.key_differentiators))
    sections.append(_bullets("Target Personas", insights.target_personas))
    return "\n\n".join(s for s in sections if s)


def format_insights_for_prompt(insights: ExtractedInsights) -> str:
    sections = []
    if insights.summary:
        sections.append(f"### Product Summary\n{insights.summary}")

    labelled = [
        ("Pain Points Addressed", insights.pain_points_addressed),
        ("Capabilities", insights.product_capabilities),
        ("Key Differentiators", insights.key_differentiators),
        ("Claims & Metrics", insights.claims_and_metrics),
        ("Target Personas", insights.target_personas),
        ("Technical Details", insights.technical_details),
    ]
    for title, items in labelled:
        if items:
            lines = "\n".join(f"- {item}" for item in items)
            sections.append(f"### {title}\n{lines}")

    return "\n\n".join(sections)


def format_insights_for_scoring(insights: ExtractedInsights) -> str:
    sections = [
        _bullets("Capabilities", insights.product_capabilities),
        _bullets("Claims & Metrics", insights.claims_and_metrics),
        _bullets("Differentiators", insights.key_differentiators),
    ]
    return "\n\n".join(s for s in sections if s)
