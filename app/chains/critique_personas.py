"""Persona critic panel: target-audience personas score messaging 0-10 with blunt feedback."""

import asyncio
from uuid import UUID

from app.core.config import get_settings
from app.core.llm import clamp_score, parse_llm_json_dict
from app.core.logging import get_logger
from app.core.schemas_scoring import PersonaCritique
from app.db.persona_critics import list_active_persona_critics
from app.services.llm_gateway import generate

logger = get_logger(__name__)

DEFAULT_PERSONAS = [
    {
        "name": "Skeptical Senior SRE",
        "prompt": (
            "You are a senior SRE with 12 years of experience. You've been on-call more nights "
            "than you can count. You're deeply skeptical of vendor claims because you've been "
            "burned before. You value specificity, honesty about limitations, real operational "
            "pain, and respect for your time. You hate buzzwords, hand-wavy claims, and anything "
            "written by someone who's never been paged at 3am. Score this messaging 0-10 and be "
            "brutally honest."
        ),
    },
    {
        "name": "Cost-Conscious Platform Engineer",
        "prompt": (
            "You are a platform engineering lead at a mid-size company. Your budget is tight and "
            "getting tighter. You ask of everything: does this actually save money or time? Is "
            "this a real need or a nice-to-have? You're tired of tools that promise the world and "
            "deliver marginal improvements. Score this messaging 0-10 on whether it would make "
            "you want to learn more, and say specifically what works and what doesn't."
        ),
    },
    {
        "name": "App Developer Who Hates O11y Tooling",
        "prompt": (
            "You are a full-stack developer who views observability as a necessary evil. You want "
            "to ship features, not configure dashboards. You're suspicious of any tool that needs "
            "'just a few minutes of setup'. You value simplicity, developer experience, and not "
            "learning yet another query language. Score this messaging 0-10 on whether it speaks "
            "to your reality, not an idealized DevOps world you don't live in."
        ),
    },
]

CRITIC_PROMPT = """{persona_prompt}

## Messaging to Evaluate:
{content}

Respond with JSON only:
{{
  "score": <0-10>,
  "feedback": "<your honest, blunt reaction to this messaging in 2-3 sentences>",
  "strengths": ["<what works>"],
  "weaknesses": ["<what doesn't work>"]
}}"""


def _load_personas() -> list[dict[str, str]]:
    rows = list_active_persona_critics()
    if rows:
        return [{"name": r["name"], "prompt": r["prompt_template"]} for r in rows]
    return DEFAULT_PERSONAS


async def _run_single_critic(content: str, persona: dict[str, str], chain_context: dict) -> PersonaCritique:
    settings = get_settings()
    try:
        response = await generate(
            CRITIC_PROMPT.format(persona_prompt=persona["prompt"], content=content[:3000]),
            model=settings.SCORING_MODEL,
            temperature=0.4,
            max_tokens=800,
            workflow="scoring",
            chain="persona_critic",
            **chain_context,
        )
        parsed = parse_llm_json_dict(response.text)
        return PersonaCritique(
            persona=persona["name"],
            score=clamp_score(parsed.get("score")),
            feedback=str(parsed.get("feedback") or ""),
            strengths=[str(s) for s in parsed.get("strengths") or []],
            weaknesses=[str(w) for w in parsed.get("weaknesses") or []],
        )
    except Exception as e:
        logger.warning(f"Persona critic '{persona['name']}' failed: {e}")
        return PersonaCritique(persona=persona["name"], score=5.0, feedback="Critic analysis failed")


async def run_persona_critics(
    content: str,
    job_id: UUID | str | None = None,
    session_id: UUID | str | None = None,
) -> list[PersonaCritique]:
    """Run every active critic concurrently. A failed critic scores 5."""
    personas = _load_personas()
    chain_context = {"job_id": job_id, "session_id": session_id}
    return list(
        await asyncio.gather(*(_run_single_critic(content, p, chain_context) for p in personas))
    )


def persona_average(critiques: list[PersonaCritique]) -> float:
    if not critiques:
        return 5.0
    return round(sum(c.score for c in critiques) / len(critiques), 1)
