"""Slop detection and targeted deslop rewriting.

Slop is filler: hedging, throat-clearing transitions, padding, overused buzz
phrases, fake enthusiasm and cliches. The score (0-10, lower is better) blends
a weighted lexical count (40%) with an LLM judgement (60%).
"""

from uuid import UUID

from app.core.config import get_settings
from app.core.llm import clamp_score, parse_llm_json_dict
from app.core.logging import get_logger
from app.core.schemas_scoring import SlopAnalysis, SlopMatch
from app.services.llm_gateway import generate

logger = get_logger(__name__)

SLOP_PATTERNS: dict[str, list[str]] = {
    "hedging": [
        "it's worth noting", "it's important to note", "it should be noted",
        "it bears mentioning", "interestingly enough", "it's no secret that",
        "needless to say", "as you might expect", "one might argue",
        "it goes without saying", "it's safe to say", "arguably",
        "perhaps unsurprisingly", "as it turns out", "to be fair", "in many ways",
        "in some ways", "in a sense", "so to speak", "if you will",
    ],
    "transitions": [
        "let's dive in", "let's dive into", "let's explore", "let's take a look",
        "let's take a closer look", "let's unpack", "let's break down", "let's examine",
        "without further ado", "with that said", "with that in mind", "that being said",
        "having said that", "all things considered", "at the end of the day",
        "when all is said and done", "the bottom line is", "moving forward",
        "going forward", "looking ahead",
    ],
    "fillers": [
        "in today's world", "in today's landscape", "in today's fast-paced",
        "in the ever-evolving", "in an increasingly", "in the realm of",
        "in the world of", "when it comes to", "at its core", "at the heart of",
        "plays a crucial role", "plays a vital role", "plays a key role",
        "plays an important role", "it's crucial to", "it's vital to",
        "it's essential to", "it's important to understand", "the reality is",
        "the truth is", "the fact of the matter is", "the thing is",
        "here's the thing", "here's the deal", "whether you're a",
        "regardless of whether", "no matter your",
    ],
    "overused": [
        "game-changer", "game changer", "paradigm shift", "landscape", "ecosystem",
        "synergy", "leverage", "deep dive", "holistic", "robust", "streamline",
        "empower", "unlock", "harness", "elevate", "supercharge", "revolutionize",
        "transformative", "groundbreaking", "cutting-edge", "bleeding-edge",
        "state-of-the-art", "next-level", "next-generation", "double-edged sword",
        "silver bullet", "low-hanging fruit", "move the needle", "boils down to",
        "tip of the iceberg",
    ],
    "enthusiasm": [
        "exciting", "incredibly", "amazing", "remarkable", "fantastic", "wonderful",
        "extraordinary", "breathtaking", "thrilling", "mind-blowing", "jaw-dropping",
        "absolutely", "truly", "simply put", "quite simply", "make no mistake",
        "rest assured", "the good news is", "the great news is",
        "the exciting part is", "the best part is", "what's even better",
        "even more impressive", "on top of that",
    ],
    "cliches": [
        "imagine a world", "picture this", "think about it", "consider this",
        "here's the kicker", "here's where it gets interesting",
        "but wait, there's more", "buckle up", "brace yourself", "spoiler alert",
        "fun fact", "pro tip", "hot take", "the million dollar question",
        "the elephant in the room", "not all heroes wear capes", "the secret sauce",
        "a breath of fresh air", "a testament to", "a far cry from",
        "only time will tell", "the jury is still out", "food for thought",
        "stay tuned",
    ],
}

CATEGORY_WEIGHTS = {
    "hedging": 0.8,
    "transitions": 0.6,
    "fillers": 1.0,
    "overused": 1.2,
    "enthusiasm": 0.9,
    "cliches": 1.1,
}

AI_WEIGHT = 0.6
CLEAN_THRESHOLD = 2.0
MIN_REWRITE_RATIO = 0.3

SLOP_ANALYSIS_PROMPT = """Analyze this content for "slop": filler phrases, hedging language, cliched
transitions, fake enthusiasm, and generic padding that adds no information.

CONTENT:
{content}

Score the slop level 0-10 where:
- 0 = Clean, every word earns its place
- 3 = Minor filler but mostly substantive
- 5 = Noticeable padding and generic phrases
- 7 = Heavy filler, reads like AI-generated content
- 10 = Almost entirely slop

Respond with JSON only:
{{
  "score": <0-10>,
  "assessment": "<1-2 sentence summary of slop issues>",
  "suggestions": ["<specific phrase to cut or rewrite>"]
}}"""

DESLOP_PROMPT = """Rewrite this content to remove slop: filler phrases, hedging, cliched transitions,
and generic padding. Keep the meaning and structure intact. Make every word earn its place.

ORIGINAL CONTENT:
{content}

SPECIFIC SLOP FOUND:
{examples}

Rules:
1. Remove or rewrite every flagged phrase
2. Don't add new slop while removing old slop
3. Keep the same structure and meaning
4. Keep technical accuracy
5. If a sentence is pure filler, cut it entirely
6. Preserve any specific facts, numbers, or quotes
7. Output ONLY the rewritten content, nothing else"""


def detect_patterns(content: str) -> list[SlopMatch]:
    """Every occurrence of every pattern, in order of position, with ~50 chars of context."""
    found: list[tuple[int, SlopMatch]] = []
    lowered = content.lower()

    for category, patterns in SLOP_PATTERNS.items():
        for pattern in patterns:
            start = 0
            while (idx := lowered.find(pattern, start)) != -1:
                context = content[max(0, idx - 50) : idx + len(pattern) + 50].strip()
                found.append((idx, SlopMatch(category=category, pattern=pattern, context=context)))
                start = idx + len(pattern)

    found.sort(key=lambda item: item[0])
    return [match for _, match in found]


def calculate_base_score(matches: list[SlopMatch], content_length: int) -> float:
    """Weighted matches per 1000 chars, doubled, capped at 10."""
    if not matches:
        return 0.0
    weighted = sum(CATEGORY_WEIGHTS.get(m.category, 1.0) for m in matches)
    per_thousand = weighted / max(content_length, 100) * 1000
    return round(min(10.0, per_thousand * 2), 1)


async def _ai_slop_judgement(content: str, chain_context: dict) -> dict:
    settings = get_settings()
    try:
        response = await generate(
            SLOP_ANALYSIS_PROMPT.format(content=content[:2500]),
            model=settings.SCORING_MODEL,
            temperature=0.2,
            max_tokens=800,
            workflow="scoring",
            chain="slop_analysis",
            **chain_context,
        )
        return parse_llm_json_dict(response.text)
    except Exception as e:
        logger.warning(f"AI slop analysis failed, using neutral score: {e}")
        return {"score": 5, "assessment": "Analysis unavailable", "suggestions": []}


async def analyze_slop(
    content: str,
    job_id: UUID | str | None = None,
    session_id: UUID | str | None = None,
) -> SlopAnalysis:
    matches = detect_patterns(content)
    base_score = calculate_base_score(matches, len(content))

    ai = await _ai_slop_judgement(content, {"job_id": job_id, "session_id": session_id})
    ai_score = clamp_score(ai.get("score"))

    combined = min(10.0, base_score * (1 - AI_WEIGHT) + ai_score * AI_WEIGHT)
    return SlopAnalysis(
        score=round(combined, 1),
        base_score=base_score,
        ai_score=ai_score,
        matches=matches,
        assessment=str(ai.get("assessment") or ""),
        suggestions=[str(s) for s in ai.get("suggestions") or []],
    )


async def deslop(
    content: str,
    analysis: SlopAnalysis | None = None,
    job_id: UUID | str | None = None,
    session_id: UUID | str | None = None,
) -> str:
    """
    Rewrite content to strip the flagged slop.

    Returns the original content when it is already clean, when the rewrite
    fails, or when the rewrite is suspiciously short.
    """
    analysis = analysis or await analyze_slop(content, job_id=job_id, session_id=session_id)
    if analysis.score <= CLEAN_THRESHOLD:
        logger.debug(f"Content is clean (slop {analysis.score}), no deslop needed")
        return content

    examples = "\n".join(f'- "{m.pattern}" ({m.category})' for m in analysis.matches[:15])
    if not examples:
        examples = "\n".join(f"- {s}" for s in analysis.suggestions[:15]) or "- (general filler)"

    try:
        response = await generate(
            DESLOP_PROMPT.format(content=content, examples=examples),
            temperature=0.3,
            workflow="quality",
            chain="deslop",
            job_id=job_id,
            session_id=session_id,
        )
    except Exception as e:
        logger.error(f"Deslop rewrite failed, keeping original: {e}")
        return content

    cleaned = response.text.strip()
    if len(cleaned) < len(content) * MIN_REWRITE_RATIO:
        logger.warning(
            "Deslopped content is suspiciously short, returning original",
            extra={"original_length": len(content), "cleaned_length": len(cleaned)},
        )
        return content

    logger.info(
        f"Content deslopped ({len(content)} -> {len(cleaned)} chars)",
        extra={"job_id": str(job_id) if job_id else None},
    )
    return cleaned
