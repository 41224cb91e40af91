"""Vendor-speak detection: marketing jargon, empty claims, feature dumping, press-release tone.

Score is 0-10, lower is better: the mean of a weighted lexical count and an
LLM judgement.
"""

import re
from uuid import UUID

from app.core.config import get_settings
from app.core.llm import clamp_score, parse_llm_json_dict
from app.core.logging import get_logger
from app.core.schemas_scoring import SlopMatch, VendorSpeakAnalysis
from app.services.llm_gateway import generate

logger = get_logger(__name__)

VENDOR_SPEAK_PATTERNS: dict[str, list[str]] = {
    "buzzwords": [
        "industry-leading", "best-in-class", "next-generation", "enterprise-grade",
        "mission-critical", "turnkey", "end-to-end", "single pane of glass",
        "cutting-edge", "game-changer", "paradigm shift", "synergy", "holistic",
        "scalable solution", "digital transformation", "best of breed", "world-class",
        "state-of-the-art",
    ],
    "empty_claims": [
        "unparalleled", "unmatched", "unrivaled", "unprecedented", "the only solution",
        "the most powerful", "the most comprehensive", "the fastest", "the easiest",
        "the most intuitive",
    ],
    "feature_dumping": [
        "powered by ai", "machine learning-driven", "cloud-native", "ai-powered",
        "ml-based", "blockchain-enabled",
    ],
    "press_release": [
        "we are excited to announce", "we are pleased to", "we are proud to",
        "we are thrilled to", "delighted to share", "leading provider of",
        "trusted by thousands", "empowering teams", "enabling organizations",
    ],
}

PATTERN_WEIGHTS = {
    "buzzwords": 1.0,
    "empty_claims": 1.5,
    "feature_dumping": 0.8,
    "press_release": 1.2,
}

VENDOR_SPEAK_PROMPT = """Analyze this messaging content for vendor-speak and marketing jargon.

CONTENT:
{content}

Look for:
1. Buzzwords and jargon that practitioners would roll their eyes at
2. Empty superlatives with no evidence ("the best", "unmatched")
3. Feature-dumping without connecting to practitioner pain
4. Press release tone vs practitioner conversation tone
5. Claims that sound like a vendor, not like someone who does the job
6. Vague value props ("saves time", "increases efficiency") without specifics

Respond with JSON only:
{{
  "score": <0-10, where 0 is pure practitioner voice and 10 is pure vendor marketing>,
  "assessment": "<1-2 sentence summary>",
  "suggestions": ["<specific improvements>"]
}}"""


def detect_vendor_patterns(content: str) -> list[SlopMatch]:
    lowered = content.lower()
    matches = []
    for category, phrases in VENDOR_SPEAK_PATTERNS.items():
        for phrase in phrases:
            for hit in re.finditer(re.escape(phrase), lowered):
                start = hit.start()
                matches.append(
                    SlopMatch(
                        category=category,
                        pattern=phrase,
                        context=content[max(0, start - 40) : hit.end() + 40].strip(),
                    )
                )
    return matches


def calculate_vendor_base_score(matches: list[SlopMatch]) -> float:
    weighted = sum(PATTERN_WEIGHTS.get(m.category, 1.0) for m in matches)
    return min(10.0, weighted / 1.5)


async def analyze_vendor_speak(
    content: str,
    job_id: UUID | str | None = None,
    session_id: UUID | str | None = None,
) -> VendorSpeakAnalysis:
    """
    Score vendor-speak.

    Raises:
        Exception: Provider or parse errors propagate; score_content degrades them
    """
    settings = get_settings()
    matches = detect_vendor_patterns(content)
    base_score = calculate_vendor_base_score(matches)

    response = await generate(
        VENDOR_SPEAK_PROMPT.format(content=content[:2500]),
        model=settings.SCORING_MODEL,
        temperature=0.2,
        max_tokens=800,
        workflow="scoring",
        chain="vendor_speak",
        job_id=job_id,
        session_id=session_id,
    )
    ai = parse_llm_json_dict(response.text)
    ai_score = clamp_score(ai.get("score"))

    return VendorSpeakAnalysis(
        score=round(min(10.0, (base_score + ai_score) / 2), 1),
        base_score=round(base_score, 1),
        ai_score=ai_score,
        matches=matches,
        assessment=str(ai.get("assessment") or ""),
        suggestions=[str(s) for s in ai.get("suggestions") or []],
    )
