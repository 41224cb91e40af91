"""Hostile-practitioner attack and the rewrite that has to survive it."""

from uuid import UUID

from app.core.logging import get_logger
from app.core.prompt_builder import REFINEMENT_TEMPERATURE
from app.services.llm_gateway import generate

logger = get_logger(__name__)

ATTACK_TEMPERATURE = 0.6

ATTACK_PROMPT = """You are a hostile, skeptical senior practitioner reviewing vendor messaging. You've
been burned by every vendor promise in the last decade. You hate buzzwords, vague claims, and anything
that sounds like it was written by someone who has never done the actual work.

Tear apart this {asset_label} messaging. Be ruthless but specific:

## Messaging to Attack
{content}

## Your Critique Should Cover
1. **Unsubstantiated Claims**: What claims have zero evidence? What would you need to see to believe them?
2. **Vendor-Speak Detection**: Every phrase that sounds like marketing rather than a peer talking. Quote them.
3. **Vague Promises**: Where does it hand-wave instead of being specific?
4. **Reality Check**: What would actually happen if a practitioner tried what this implies?
5. **Missing Objections**: What obvious objections would a buyer raise that this doesn't address?
6. **Credibility Gaps**: Where does this lose trust? What would make you stop reading?

Format as a numbered list of specific attacks."""

DEFEND_PROMPT = """Your {asset_label} messaging was attacked by a skeptical practitioner. Rewrite it to
survive every objection.

## Current Messaging
{content}

## Practitioner Attacks
{attacks}

## Product Intelligence (for evidence)
{product_context}

## Rules for the Rewrite
1. For every unsubstantiated claim: add specific evidence from the product intelligence, or remove the claim
2. For every vendor-speak phrase: replace with practitioner language
3. For every vague promise: make it concrete, or cut it
4. Address the strongest objections directly. Don't dodge them
5. Keep the same structure and format as the original

## Template / Format Guide
{template}

Output ONLY the rewritten content. No meta-commentary."""


async def attack_content(
    content: str,
    asset_type: str,
    job_id: UUID | str | None = None,
    session_id: UUID | str | None = None,
) -> str:
    response = await generate(
        ATTACK_PROMPT.format(asset_label=asset_type.replace("_", " "), content=content),
        temperature=ATTACK_TEMPERATURE,
        chain="adversarial_attack",
        job_id=job_id,
        session_id=session_id,
    )
    return response.text


async def defend_content(
    content: str,
    attacks: str,
    product_context: str,
    template: str,
    system: str,
    asset_type: str,
    model: str | None = None,
    job_id: UUID | str | None = None,
    session_id: UUID | str | None = None,
) -> str:
    response = await generate(
        DEFEND_PROMPT.format(
            asset_label=asset_type.replace("_", " "),
            content=content,
            attacks=attacks,
            product_context=product_context,
            template=template,
        ),
        system=system,
        model=model,
        temperature=REFINEMENT_TEMPERATURE,
        chain="adversarial_defend",
        job_id=job_id,
        session_id=session_id,
    )
    return response.text
