"""Three-angle drafting plus synthesis, shared by the pipeline and the workspace action."""

import asyncio
from uuid import UUID

from app.chains.score_content import score_content
from app.core.logging import get_logger
from app.core.prompt_builder import REFINEMENT_TEMPERATURE, asset_temperature
from app.core.schemas_scoring import ScoredContent
from app.services.llm_gateway import generate

logger = get_logger(__name__)

PERSPECTIVES: list[tuple[str, str]] = [
    (
        "Practitioner Empathy",
        "Lead ENTIRELY with pain. The reader should feel seen before they see any product mention. "
        "Use their language, their frustrations, their hard-won lessons. Product comes last, almost "
        "as an afterthought. Make them nod before you pitch.",
    ),
    (
        "Competitive Positioning",
        "Lead with what current alternatives FAIL at. The reader should recognize the specific "
        "frustrations they have with their current tool. Then show what's different, not \"better\" "
        "(that's vendor-speak), but specifically what changes and why it matters for their workflow.",
    ),
    (
        "Thought Leadership",
        "Lead with the industry's broken promise: the thing everyone was told would work but doesn't. "
        "Frame the problem as systemic, not just a tooling gap. Then present a different way of "
        "thinking about it, like an opinionated post by someone who has seen the pattern across "
        "hundreds of teams.",
    ),
]

SYNTHESIS_PROMPT = """You have 3 versions of the same {asset_label}, each written from a different angle.
Take the strongest elements from each and synthesize them into one superior version.

{versions}

## Synthesis Instructions
1. Take the most authentic pain language from Version A
2. Take the sharpest competitive positioning from Version B
3. Take the strongest narrative arc from Version C
4. Weave them into a single cohesive piece
5. Don't just concatenate. Synthesize. The result should read as one voice, not three stitched together.
6. Keep the format of the template below.

## Template / Format Guide
{template}

Output ONLY the synthesized content. No meta-commentary."""


def build_angle_prompt(base_prompt: str, perspective: str, instruction: str) -> str:
    return f"{base_prompt}\n\n## PERSPECTIVE: {perspective}\n{instruction}"


def build_synthesis_prompt(asset_type: str, drafts: list[str], template: str) -> str:
    versions = "\n\n".join(
        f"## Version {chr(ord('A') + i)}: {name}\n{draft}"
        for i, ((name, _), draft) in enumerate(zip(PERSPECTIVES, drafts))
    )
    return SYNTHESIS_PROMPT.format(
        asset_label=asset_type.replace("_", " "), versions=versions, template=template
    )


async def generate_perspectives(
    base_prompt: str,
    system: str,
    asset_type: str,
    template: str,
    grounding: list[str],
    model: str | None = None,
    job_id: UUID | str | None = None,
    session_id: UUID | str | None = None,
) -> list[ScoredContent]:
    """
    Draft three angles concurrently, synthesize a fourth, score all four concurrently.

    Returns:
        Four scored candidates: the three angles in PERSPECTIVES order, then the synthesis
    """
    ids = {"job_id": job_id, "session_id": session_id}
    temperature = asset_temperature(asset_type)

    drafts = await asyncio.gather(
        *(
            generate(
                build_angle_prompt(base_prompt, name, instruction),
                system=system,
                model=model,
                temperature=temperature,
                chain="perspective_draft",
                **ids,
            )
            for name, instruction in PERSPECTIVES
        )
    )
    texts = [d.text for d in drafts]

    synthesis = await generate(
        build_synthesis_prompt(asset_type, texts, template),
        system=system,
        model=model,
        temperature=REFINEMENT_TEMPERATURE,
        chain="perspective_synthesis",
        **ids,
    )
    texts.append(synthesis.text)

    scores = await asyncio.gather(*(score_content(t, grounding, **ids) for t in texts))
    labels = [name for name, _ in PERSPECTIVES] + ["Synthesis"]
    candidates = [
        ScoredContent(content=text, scores=score, label=label)
        for text, score, label in zip(texts, scores, labels)
    ]
    logger.info(
        "Perspective scores: "
        + ", ".join(f"{c.label}={c.scores.persona_avg_score}" for c in candidates),
        extra={"job_id": str(job_id) if job_id else None, "asset_type": asset_type},
    )
    return candidates
