"""Per-voice banned-word lists, generated from the voice and the product domain."""

import asyncio
import json

from app.core.config import get_settings
from app.core.llm import strip_llm_fences
from app.core.logging import get_logger
from app.core.prompt_builder import DEFAULT_BANNED_WORDS
from app.core.schemas_generation import VoiceProfile
from app.core.schemas_insights import ExtractedInsights
from app.services.llm_gateway import generate

logger = get_logger(__name__)

MAX_RETRIES = 3

BANNED_WORDS_PROMPT = """Given this voice profile and product domain, list 15-20 specific words and phrases
that would sound inauthentic, vendor-heavy, or like AI-generated marketing copy to the target
audience.

Voice: {voice_name} ({voice_description})
{voice_guide}
Domain: {domain} / {category}
Target personas: {personas}

Return ONLY a JSON array like: ["phrase1", "phrase2", ...]"""

# voice_id:domain -> words, per process
_banned_words_cache: dict[str, list[str]] = {}


async def generate_banned_words(
    voice: VoiceProfile,
    insights: ExtractedInsights,
    retry_delay_s: float = 2.0,
) -> list[str]:
    """Ask for a banned-word list, retrying; defaults after MAX_RETRIES failures."""
    settings = get_settings()
    prompt = BANNED_WORDS_PROMPT.format(
        voice_name=voice.name,
        voice_description=voice.description,
        voice_guide=f"Voice Guide: {voice.voice_guide[:500]}" if voice.voice_guide else "",
        domain=insights.domain,
        category=insights.category,
        personas=", ".join(insights.target_personas),
    )

    for attempt in range(1, MAX_RETRIES + 1):
        try:
            response = await generate(
                prompt,
                model=settings.FAST_MODEL,
                temperature=0.2,
                max_tokens=1000,
                workflow="generation",
                chain="banned_words",
            )
            parsed = json.loads(strip_llm_fences(response.text))
            if isinstance(parsed, list) and parsed:
                logger.info(f"Generated {len(parsed)} banned words for voice {voice.name}")
                return [str(w) for w in parsed]
            logger.warning(f"Banned words response was not a non-empty array (attempt {attempt})")
        except Exception as e:
            logger.warning(f"Failed to generate banned words (attempt {attempt}/{MAX_RETRIES}): {e}")

        if attempt < MAX_RETRIES:
            await asyncio.sleep(retry_delay_s * attempt)

    logger.error(f"All banned words retries exhausted for voice {voice.name}, using defaults")
    return list(DEFAULT_BANNED_WORDS)


async def get_banned_words_for_voice(voice: VoiceProfile, insights: ExtractedInsights) -> list[str]:
    cache_key = f"{voice.id}:{insights.domain or 'unknown'}"
    if cache_key not in _banned_words_cache:
        _banned_words_cache[cache_key] = await generate_banned_words(voice, insights)
    return _banned_words_cache[cache_key]
