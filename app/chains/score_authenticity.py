"""Authenticity scoring: does the content read like a practitioner wrote it?

Authenticity is computed alongside vendor-speak but from its own signal: an
LLM judgement of human voice blended with a lexical rhythm measure (sentence
length variation, contractions). The heuristic is swappable through
set_authenticity_heuristic(). Whatever heuristic is installed, a failure
scores a neutral 5.
"""

import re
import statistics
from collections.abc import Awaitable, Callable
from uuid import UUID

from app.core.config import get_settings
from app.core.llm import clamp_score, parse_llm_json_dict
from app.core.logging import get_logger
from app.core.schemas_scoring import AuthenticityAnalysis, VendorSpeakAnalysis
from app.services.llm_gateway import generate

logger = get_logger(__name__)

AuthenticityHeuristic = Callable[
    [str, VendorSpeakAnalysis | None, dict],
    Awaitable[AuthenticityAnalysis],
]

LLM_WEIGHT = 0.7

AUTHENTICITY_PROMPT = """Analyze this messaging content for authenticity: does it sound like a real
human practitioner wrote it, or does it feel AI-generated or templated?

CONTENT:
{content}

Evaluate:
1. Natural language flow: does it read like someone talking, or like a filled-in template?
2. Conversational rhythm: varied sentence lengths, natural pauses, genuine emphasis?
3. Robotic patterns: repetitive structure, predictable transitions, formulaic phrasing?
4. Practitioner voice: someone who does this work daily, or an outsider describing it?
5. Genuine perspective: real opinions and specific experiences, or generic statements?

Respond with JSON only:
{{
  "score": <0-10, where 10 is genuinely human-sounding and 0 is obviously AI-generated>,
  "natural_language_markers": ["<natural, human-sounding phrases found>"],
  "robotic_patterns": ["<robotic, templated, or AI-like patterns found>"],
  "assessment": "<1-2 sentence summary>"
}}"""

_SENTENCE_END = re.compile(r"(?<=[.!?])\s+")
_CONTRACTION = re.compile(r"\b\w+'(?:s|re|ve|ll|d|t|m)\b", re.IGNORECASE)


def rhythm_score(content: str) -> float:
    """Lexical naturalness: varied sentence lengths and contractions score higher."""
    sentences = [s for s in _SENTENCE_END.split(content.strip()) if s.strip()]
    if len(sentences) < 2:
        return 5.0

    lengths = [len(s.split()) for s in sentences]
    mean = statistics.fmean(lengths)
    variation = statistics.pstdev(lengths) / mean if mean else 0.0

    score = 4.0 + min(variation, 1.0) * 4.0
    score += min(2.0, len(_CONTRACTION.findall(content)) * 0.5)
    return round(min(10.0, score), 1)


async def llm_rhythm_heuristic(
    content: str,
    vendor: VendorSpeakAnalysis | None,
    chain_context: dict,
) -> AuthenticityAnalysis:
    """Default heuristic. `vendor` is accepted for context but never scored against."""
    settings = get_settings()
    response = await generate(
        AUTHENTICITY_PROMPT.format(content=content[:2500]),
        model=settings.SCORING_MODEL,
        temperature=0.2,
        max_tokens=800,
        workflow="scoring",
        chain="authenticity",
        **chain_context,
    )
    parsed = parse_llm_json_dict(response.text)
    llm_score = clamp_score(parsed.get("score"))
    blended = LLM_WEIGHT * llm_score + (1 - LLM_WEIGHT) * rhythm_score(content)

    return AuthenticityAnalysis(
        score=round(blended, 1),
        natural_language_markers=[str(m) for m in parsed.get("natural_language_markers") or []],
        robotic_patterns=[str(p) for p in parsed.get("robotic_patterns") or []],
        assessment=str(parsed.get("assessment") or ""),
    )


_heuristic: AuthenticityHeuristic = llm_rhythm_heuristic


def set_authenticity_heuristic(heuristic: AuthenticityHeuristic | None) -> None:
    """Install a different authenticity heuristic; None restores the default."""
    global _heuristic
    _heuristic = heuristic or llm_rhythm_heuristic


async def analyze_authenticity(
    content: str,
    vendor: VendorSpeakAnalysis | None = None,
    job_id: UUID | str | None = None,
    session_id: UUID | str | None = None,
) -> AuthenticityAnalysis:
    """Run the installed heuristic. Never raises: failures score 5."""
    try:
        return await _heuristic(content, vendor, {"job_id": job_id, "session_id": session_id})
    except Exception as e:
        logger.warning(f"Authenticity analysis failed, using neutral score: {e}")
        return AuthenticityAnalysis(score=5.0, assessment="Analysis unavailable")
