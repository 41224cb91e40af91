"""Helpers for cleaning and parsing raw LLM output."""

import json
import re
from typing import Any


def strip_llm_fences(raw_output: str) -> str:
    """Strip markdown code fences from LLM output.

    Handles: ```json ... ```, ``` ... ```, leading/trailing whitespace.
    """
    cleaned = raw_output.strip()

    fence_match = re.search(r"```(?:json|markdown)?\s*\n?(.*?)```", cleaned, re.DOTALL)
    if fence_match:
        return fence_match.group(1).strip()

    # Unterminated fence
    if cleaned.startswith("```json"):
        cleaned = cleaned[7:]
    elif cleaned.startswith("```"):
        cleaned = cleaned[3:]
    if cleaned.endswith("```"):
        cleaned = cleaned[:-3]
    return cleaned.strip()


def parse_llm_json_dict(raw_output: str) -> dict[str, Any]:
    """
    Parse LLM output as JSON, returning a raw dict.

    Falls back to the outermost {...} span when the model wraps the object
    in prose.

    Raises:
        json.JSONDecodeError: If JSON parsing fails after cleanup
        ValueError: If the payload is not a JSON object
    """
    cleaned = strip_llm_fences(raw_output)
    try:
        parsed = json.loads(cleaned)
    except json.JSONDecodeError:
        start, end = cleaned.find("{"), cleaned.rfind("}")
        if start == -1 or end <= start:
            raise
        parsed = json.loads(cleaned[start : end + 1])

    if isinstance(parsed, str):
        # Double-encoded payload
        parsed = json.loads(parsed)
    if not isinstance(parsed, dict):
        raise ValueError(f"Expected JSON object, got {type(parsed).__name__}")
    return parsed


def clamp_score(value: Any, default: float = 5.0) -> float:
    """Coerce an LLM-reported score into the 0-10 range, rounded to 1 decimal."""
    try:
        score = float(value)
    except (TypeError, ValueError):
        return default
    return round(min(10.0, max(0.0, score)), 1)
