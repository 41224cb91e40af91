"""Conversational refinement of a session's assets.

The assistant sees the session's voice, pain point, product context and current
versions. Content it proposes is wrapped in ---PROPOSED--- markers so an
accepted reply can become a new version without the surrounding explanation.
"""

import math
import re
from dataclasses import dataclass, field
from typing import Any

from app.core.errors import ActionError, NotFoundError
from app.core.logging import get_logger
from app.core.prompt_builder import DEFAULT_BANNED_WORDS, asset_label
from app.db.pain_points import format_pain_point_context, get_pain_point
from app.db.session_messages import get_message, list_messages, mark_version_created
from app.db.session_versions import list_session_versions
from app.db.sessions import get_session
from app.db.voice_profiles import get_voice_profile
from app.services.workspace_actions import create_chat_version

logger = get_logger(__name__)

MAX_CONTEXT_TOKENS = 150_000
CHARS_PER_TOKEN = 4
PRODUCT_CONTEXT_CHARS = 3000
OTHER_ASSET_SUMMARY_CHARS = 200
ALL_ASSETS_PREVIEW_CHARS = 500

PROPOSED_PATTERN = re.compile(r"---PROPOSED---(.*?)---PROPOSED---", re.DOTALL)

ROLE_PROMPT = """You are a messaging refinement assistant. You help improve product marketing assets so
they read as authentic, specific and practitioner-focused. You never use vendor-speak cliches."""

INSTRUCTIONS = """## Your Role
When the user asks you to refine content, provide the improved version. If they ask about the content,
explain your thinking.
When proposing new content, wrap it in ---PROPOSED--- delimiters like this:
---PROPOSED---
[your proposed content here]
---PROPOSED---
This lets the user accept the proposed content as a new version."""


@dataclass
class ChatContext:
    system_prompt: str
    messages: list[dict[str, str]] = field(default_factory=list)


def estimate_tokens(text: str) -> int:
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def _version_sections(versions: list[dict[str, Any]], asset_type: str | None) -> list[str]:
    """Versions arrive newest first; the active one of each type wins."""
    by_type: dict[str, dict[str, Any]] = {}
    for version in versions:
        current = by_type.get(version["asset_type"])
        if current is None or (version.get("is_active") and not current.get("is_active")):
            by_type[version["asset_type"]] = version

    if not asset_type:
        previews = [
            f"### {asset_label(t)} (v{v['version_number']})\n{v['content'][:ALL_ASSETS_PREVIEW_CHARS]}..."
            for t, v in by_type.items()
        ]
        return ["## Current Versions\n" + "\n\n".join(previews)] if previews else []

    sections = []
    target = by_type.pop(asset_type, None)
    if target:
        sections.append(
            f"## Current Content ({asset_label(asset_type)}, v{target['version_number']})\n{target['content']}"
        )
    summaries = [
        f"- {asset_label(t)}: {v['content'][:OTHER_ASSET_SUMMARY_CHARS]}..." for t, v in by_type.items()
    ]
    if summaries:
        sections.append("## Other Asset Summaries\n" + "\n".join(summaries))
    return sections


def trim_history(messages: list[dict[str, Any]], budget: int) -> list[dict[str, str]]:
    """Keep the newest messages that fit in the token budget, in order."""
    kept: list[dict[str, str]] = []
    used = 0
    for message in reversed(messages):
        cost = estimate_tokens(message["content"])
        if used + cost > budget:
            break
        used += cost
        kept.append({"role": message["role"], "content": message["content"]})
    kept.reverse()
    return kept


def assemble_chat_context(session_id: str, asset_type: str | None = None) -> ChatContext:
    """
    Build the system prompt and the trimmed message history for a chat turn.

    Raises:
        NotFoundError: If the session does not exist
    """
    session = get_session(session_id)
    if not session:
        raise NotFoundError(f"Session {session_id} not found")

    parts = [ROLE_PROMPT]

    voice = get_voice_profile(session["voice_profile_id"]) if session.get("voice_profile_id") else None
    if voice:
        parts.append(f"## Voice Profile: {voice.name}\n{voice.voice_guide}")

    banned = ", ".join(f'"{w}"' for w in DEFAULT_BANNED_WORDS)
    parts.append(
        "## Anti-Slop Rules\n"
        f"- Never use: {banned}\n"
        "- Every claim must be specific and traceable\n"
        "- Sound like a practitioner peer, not a marketer"
    )
    parts.append(INSTRUCTIONS)

    pain_point = get_pain_point(session["pain_point_id"]) if session.get("pain_point_id") else None
    if pain_point:
        parts.append(format_pain_point_context(pain_point))

    if session.get("product_context"):
        parts.append(f"## Product Context (abbreviated)\n{session['product_context'][:PRODUCT_CONTEXT_CHARS]}")

    parts.extend(_version_sections(list_session_versions(session_id), asset_type))

    system_prompt = "\n\n".join(parts)
    history = trim_history(list_messages(session_id), MAX_CONTEXT_TOKENS - estimate_tokens(system_prompt))
    return ChatContext(system_prompt=system_prompt, messages=history)


def extract_proposed_content(reply: str) -> str:
    """The ---PROPOSED--- block of a reply, or the whole reply when there is none."""
    match = PROPOSED_PATTERN.search(reply)
    return (match.group(1) if match else reply).strip()


async def accept_chat_message(session_id: str, message_id: str) -> dict[str, Any]:
    """
    Turn an assistant reply into a new active version of its asset type.

    Raises:
        NotFoundError: If the message is missing, from another session, or not an assistant reply
        ActionError: If the message carries no asset type
    """
    message = get_message(message_id)
    if not message or str(message["session_id"]) != str(session_id) or message["role"] != "assistant":
        raise NotFoundError("Message not found or not an assistant message")
    if not message.get("asset_type"):
        raise ActionError("No asset type associated with this message")

    version = await create_chat_version(
        session_id, message["asset_type"], extract_proposed_content(message["content"]), message_id
    )
    mark_version_created(message_id, version["id"])
    logger.info(
        f"Accepted chat message {message_id} as v{version['version_number']}",
        extra={"session_id": session_id, "asset_type": message["asset_type"]},
    )
    return version
