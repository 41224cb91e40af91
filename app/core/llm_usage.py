"""Token and cost accounting for every provider call.

Each call made through the LLM gateway or deep research is written to
`llm_usage_log`, tagged with the workflow/chain that made it and the job or
session it served. Writing a record never fails the caller.
"""

from dataclasses import asdict, dataclass
from typing import Any
from uuid import UUID

from app.core.logging import get_logger
from app.db.supabase_client import get_supabase

logger = get_logger(__name__)

# USD per 1M tokens: (input, output). Matched by longest model-name prefix.
MODEL_PRICING: dict[str, tuple[float, float]] = {
    "claude-opus-4": (15.0, 75.0),
    "claude-sonnet-4": (3.0, 15.0),
    "claude-haiku-4": (0.80, 4.0),
    "gpt-4.1-mini": (0.40, 1.60),
    "gpt-4.1": (2.0, 8.0),
    "gpt-4o-mini": (0.15, 0.60),
    "gpt-4o": (2.50, 10.0),
    "o3-deep-research": (10.0, 40.0),
    "o4-mini-deep-research": (2.0, 8.0),
    "sonar-pro": (3.0, 15.0),
    "sonar": (1.0, 1.0),
}

CACHE_READ_DISCOUNT = 0.1


def _pricing_for(model: str) -> tuple[float, float] | None:
    matches = [key for key in MODEL_PRICING if model.startswith(key)]
    if not matches:
        return None
    return MODEL_PRICING[max(matches, key=len)]


def estimate_cost(model: str, tokens_input: int, tokens_output: int, tokens_cache_read: int = 0) -> float:
    """Estimated USD cost; 0 for models without a price entry."""
    pricing = _pricing_for(model)
    if pricing is None:
        logger.warning(f"No pricing for model '{model}', recording $0", extra={"model": model})
        return 0.0

    input_rate, output_rate = pricing
    billed_input = (tokens_input - tokens_cache_read) + tokens_cache_read * CACHE_READ_DISCOUNT
    return round((billed_input * input_rate + tokens_output * output_rate) / 1_000_000, 6)


@dataclass
class UsageRecord:
    workflow: str
    model: str
    provider: str
    tokens_input: int = 0
    tokens_output: int = 0
    tokens_cache_read: int = 0
    duration_ms: int = 0
    chain: str | None = None
    job_id: UUID | str | None = None
    session_id: UUID | str | None = None

    def as_row(self) -> dict[str, Any]:
        row = asdict(self)
        row["estimated_cost_usd"] = estimate_cost(
            self.model, self.tokens_input, self.tokens_output, self.tokens_cache_read
        )
        for key in ("job_id", "session_id"):
            row[key] = str(row[key]) if row[key] else None
        return {k: v for k, v in row.items() if v is not None}


def log_llm_usage(record: UsageRecord) -> None:
    """Persist one usage record. Fire-and-forget."""
    try:
        row = record.as_row()
        get_supabase().table("llm_usage_log").insert(row).execute()
        logger.debug(
            f"LLM usage {record.workflow}/{record.chain or '-'} model={record.model} "
            f"tokens={record.tokens_input}+{record.tokens_output} cost=${row['estimated_cost_usd']:.4f}",
            extra={"job_id": row.get("job_id"), "session_id": row.get("session_id")},
        )
    except Exception as e:
        logger.error(f"Failed to log LLM usage: {e}", extra={"workflow": record.workflow})
