"""Provider routing for text generation and grounded web search.

Callers see three capabilities:

- generate(prompt, ...) -> GenerationResult  (Claude or GPT, picked by model name)
- stream_chat(messages, ...) -> text deltas  (Claude, multi-turn workspace chat)
- grounded_search(prompt, ...) -> GroundedSearchResult  (Perplexity, with citations)

Every call is recorded in llm_usage_log.
"""

import time
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from functools import lru_cache
from uuid import UUID

from anthropic import AsyncAnthropic
from openai import AsyncOpenAI

from app.core.config import get_settings
from app.core.llm_usage import UsageRecord, log_llm_usage
from app.core.logging import get_logger

logger = get_logger(__name__)


@dataclass
class GenerationResult:
    text: str
    model: str
    provider: str
    tokens_input: int = 0
    tokens_output: int = 0


@dataclass
class GroundedSearchResult:
    text: str
    sources: list[str] = field(default_factory=list)


@lru_cache(maxsize=1)
def get_anthropic_client() -> AsyncAnthropic:
    settings = get_settings()
    return AsyncAnthropic(api_key=settings.ANTHROPIC_API_KEY)


@lru_cache(maxsize=1)
def get_openai_client() -> AsyncOpenAI:
    settings = get_settings()
    return AsyncOpenAI(api_key=settings.OPENAI_API_KEY)


@lru_cache(maxsize=1)
def get_perplexity_client() -> AsyncOpenAI:
    settings = get_settings()
    return AsyncOpenAI(api_key=settings.PERPLEXITY_API_KEY, base_url=settings.PERPLEXITY_BASE_URL)


def provider_for_model(model: str) -> str:
    """claude-* goes to Anthropic; everything else to OpenAI."""
    return "anthropic" if model.startswith("claude") else "openai"


async def generate(
    prompt: str,
    *,
    system: str | None = None,
    model: str | None = None,
    temperature: float = 0.7,
    max_tokens: int = 4000,
    workflow: str = "generation",
    chain: str | None = None,
    job_id: UUID | str | None = None,
    session_id: UUID | str | None = None,
) -> GenerationResult:
    """
    Generate text from a single user prompt.

    Args:
        prompt: User message
        system: Optional system prompt
        model: Model name; defaults to GENERATION_MODEL
        temperature: Sampling temperature
        max_tokens: Output token cap
        workflow: Usage-log workflow tag
        chain: Usage-log chain tag
        job_id: Job to attribute usage to
        session_id: Session to attribute usage to

    Returns:
        GenerationResult with the text and token usage

    Raises:
        Exception: Provider errors propagate to the caller
    """
    settings = get_settings()
    model_name = model or settings.GENERATION_MODEL
    provider = provider_for_model(model_name)

    start = time.time()
    if provider == "anthropic":
        kwargs = {}
        if system:
            kwargs["system"] = [
                {"type": "text", "text": system, "cache_control": {"type": "ephemeral"}}
            ]
        response = await get_anthropic_client().messages.create(
            model=model_name,
            max_tokens=max_tokens,
            temperature=temperature,
            messages=[{"role": "user", "content": prompt}],
            **kwargs,
        )
        text = "".join(
            block.text for block in response.content if getattr(block, "type", "") == "text"
        )
        usage = response.usage
        tokens_in, tokens_out = usage.input_tokens, usage.output_tokens
        cache_read = getattr(usage, "cache_read_input_tokens", 0) or 0
    else:
        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})
        response = await get_openai_client().chat.completions.create(
            model=model_name,
            messages=messages,
            temperature=temperature,
            max_tokens=max_tokens,
        )
        text = response.choices[0].message.content or ""
        usage = response.usage
        tokens_in = usage.prompt_tokens if usage else 0
        tokens_out = usage.completion_tokens if usage else 0
        cache_read = 0
    duration_ms = int((time.time() - start) * 1000)

    log_llm_usage(
        UsageRecord(
            workflow=workflow,
            model=model_name,
            provider=provider,
            tokens_input=tokens_in,
            tokens_output=tokens_out,
            tokens_cache_read=cache_read,
            duration_ms=duration_ms,
            chain=chain,
            job_id=job_id,
            session_id=session_id,
        )
    )

    return GenerationResult(
        text=text,
        model=model_name,
        provider=provider,
        tokens_input=tokens_in,
        tokens_output=tokens_out,
    )


async def stream_chat(
    messages: list[dict[str, str]],
    *,
    system: str,
    model: str | None = None,
    max_tokens: int = 4096,
    workflow: str = "workspace",
    chain: str | None = "chat",
    session_id: UUID | str | None = None,
) -> AsyncIterator[str]:
    """
    Stream a multi-turn Claude reply as text deltas.

    Usage is recorded once the stream completes.

    Raises:
        Exception: Provider errors propagate to the caller
    """
    model_name = model or get_settings().CHAT_MODEL
    start = time.time()
    async with get_anthropic_client().messages.stream(
        model=model_name,
        max_tokens=max_tokens,
        system=system,
        messages=messages,
    ) as stream:
        async for text in stream.text_stream:
            yield text
        final_message = await stream.get_final_message()

    usage = final_message.usage
    log_llm_usage(
        UsageRecord(
            workflow=workflow,
            model=model_name,
            provider="anthropic",
            tokens_input=usage.input_tokens,
            tokens_output=usage.output_tokens,
            duration_ms=int((time.time() - start) * 1000),
            chain=chain,
            session_id=session_id,
        )
    )


async def grounded_search(
    prompt: str,
    *,
    system: str | None = None,
    workflow: str = "research",
    chain: str | None = None,
    job_id: UUID | str | None = None,
    session_id: UUID | str | None = None,
) -> GroundedSearchResult:
    """
    Single-shot web-grounded answer via Perplexity.

    Raises:
        Exception: Provider errors propagate to the caller
    """
    settings = get_settings()
    messages = [
        {
            "role": "system",
            "content": system
            or (
                "You are a market research analyst. Provide detailed, factual information "
                "with specific company names, features, and data points. Always cite sources."
            ),
        },
        {"role": "user", "content": prompt},
    ]

    start = time.time()
    response = await get_perplexity_client().chat.completions.create(
        model=settings.GROUNDED_SEARCH_MODEL,
        messages=messages,
        temperature=0.2,
        max_tokens=4000,
    )
    duration_ms = int((time.time() - start) * 1000)

    usage = response.usage
    log_llm_usage(
        UsageRecord(
            workflow=workflow,
            model=settings.GROUNDED_SEARCH_MODEL,
            provider="perplexity",
            tokens_input=usage.prompt_tokens if usage else 0,
            tokens_output=usage.completion_tokens if usage else 0,
            duration_ms=duration_ms,
            chain=chain,
            job_id=job_id,
            session_id=session_id,
        )
    )

    text = response.choices[0].message.content or ""
    # Perplexity returns citations as an extra top-level field
    citations = getattr(response, "citations", None) or []
    sources = [str(c) for c in citations]

    logger.debug(f"Grounded search returned {len(text)} chars, {len(sources)} sources")
    return GroundedSearchResult(text=text, sources=sources)
