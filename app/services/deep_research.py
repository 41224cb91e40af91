"""Asynchronous multi-step research: start a background interaction, poll until done."""

import asyncio
import re
import time
from dataclasses import dataclass, field
from uuid import UUID

from app.core.config import get_settings
from app.core.llm_usage import UsageRecord, log_llm_usage
from app.core.logging import get_logger
from app.services.llm_gateway import get_openai_client

logger = get_logger(__name__)

_MARKDOWN_LINK = re.compile(r"\[([^\]]+)\]\((https?://[^)\s]+)\)")

_TERMINAL = {"completed", "failed", "cancelled", "incomplete"}


class DeepResearchError(Exception):
    """The interaction failed, was cancelled, or did not finish in time."""


@dataclass
class DeepResearchResult:
    text: str
    sources: list[dict[str, str]] = field(default_factory=list)
    interaction_id: str = ""
    elapsed_s: float = 0.0


def extract_sources(text: str) -> list[dict[str, str]]:
    """Markdown links in the report, deduplicated by URL in order of appearance."""
    seen: set[str] = set()
    sources = []
    for title, url in _MARKDOWN_LINK.findall(text):
        if url in seen:
            continue
        seen.add(url)
        sources.append({"title": title, "url": url})
    return sources


async def run_deep_research(
    query: str,
    *,
    chain: str = "deep_research",
    job_id: UUID | str | None = None,
    session_id: UUID | str | None = None,
    poll_interval_s: float | None = None,
    timeout_s: float | None = None,
) -> DeepResearchResult:
    """
    Run a background deep-research interaction to completion.

    Raises:
        DeepResearchError: On failed/cancelled interactions or timeout
    """
    settings = get_settings()
    interval = poll_interval_s if poll_interval_s is not None else settings.DEEP_RESEARCH_POLL_INTERVAL_S
    timeout = timeout_s if timeout_s is not None else settings.DEEP_RESEARCH_TIMEOUT_S
    client = get_openai_client()

    start = time.time()
    response = await client.responses.create(
        model=settings.DEEP_RESEARCH_MODEL,
        input=query,
        background=True,
        tools=[{"type": "web_search_preview"}],
    )
    interaction_id = response.id
    logger.info(
        f"Deep research started: {interaction_id}",
        extra={"interaction_id": interaction_id, "chain": chain},
    )

    while response.status not in _TERMINAL:
        if time.time() - start > timeout:
            raise DeepResearchError(
                f"Deep research {interaction_id} timed out after {int(timeout)}s"
            )
        await asyncio.sleep(interval)
        response = await client.responses.retrieve(interaction_id)

    elapsed = time.time() - start
    if response.status != "completed":
        raise DeepResearchError(f"Deep research {interaction_id} ended with status {response.status}")

    text = response.output_text or ""
    usage = getattr(response, "usage", None)
    log_llm_usage(
        UsageRecord(
            workflow="research",
            model=settings.DEEP_RESEARCH_MODEL,
            provider="openai",
            tokens_input=getattr(usage, "input_tokens", 0) or 0,
            tokens_output=getattr(usage, "output_tokens", 0) or 0,
            duration_ms=int(elapsed * 1000),
            chain=chain,
            job_id=job_id,
            session_id=session_id,
        )
    )

    logger.info(
        f"Deep research {interaction_id} completed in {elapsed:.0f}s ({len(text)} chars)",
        extra={"interaction_id": interaction_id},
    )
    return DeepResearchResult(
        text=text,
        sources=extract_sources(text),
        interaction_id=interaction_id,
        elapsed_s=elapsed,
    )
