"""Prompt construction for messaging generation and refinement.

Builders are pure: they take insights, voice, template text and evidence level
and return strings. Only load_template touches the filesystem.
"""

from pathlib import Path

from app.core.insight_formatters import format_insights_for_prompt, format_insights_for_research
from app.core.quality_gates import failing_axes
from app.core.schemas_generation import EvidenceLevel, PipelineName, VoiceProfile
from app.core.schemas_insights import ExtractedInsights
from app.core.schemas_scoring import ScoreResults, ScoringThresholds

TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates"

ASSET_TYPE_TEMPERATURE: dict[str, float] = {
    "social_hook": 0.85,
    "narrative": 0.8,
    "email_copy": 0.75,
    "launch_messaging": 0.7,
    "talk_track": 0.65,
    "one_pager": 0.6,
    "battlecard": 0.55,
    "messaging_template": 0.5,
}

ASSET_TYPE_LABELS: dict[str, str] = {
    "battlecard": "Battlecard",
    "talk_track": "Talk Track",
    "launch_messaging": "Launch Messaging",
    "social_hook": "Social Hook",
    "one_pager": "One-Pager",
    "email_copy": "Email Copy",
    "messaging_template": "Messaging Template",
    "narrative": "Narrative",
}

# Internal-facing assets may name competitors outright
INTERNAL_ASSET_TYPES = {"battlecard", "talk_track"}

REFINEMENT_TEMPERATURE = 0.5

PERSONA_ANGLES: dict[str, str] = {
    "practitioner-community": (
        "You are writing for practitioners, the people who actually do the work.\n"
        "Lead with the daily frustration. The reader should think \"that's exactly my Tuesday.\"\n"
        "Every claim must pass the test: would a practitioner share this with peers?\n"
        "Use the language of someone who does this work daily and is skeptical of vendor promises.\n"
        "No exec-speak, no vision statements. Just what's broken and how this fixes it."
    ),
    "sales-enablement": (
        "You are arming a sales team to have credible technical conversations.\n"
        "Lead with what the prospect is experiencing, the pain they'll nod along to.\n"
        "Write like you're coaching someone for a whiteboard session, not handing them a script.\n"
        "Include trap questions the prospect might ask and how to answer honestly.\n"
        "Every talking point should survive a skeptical technical buyer pushing back."
    ),
    "product-launch": (
        "You are writing launch messaging that cuts through noise.\n"
        "Lead with a bold headline built on the broken promise: what the industry promised but "
        "never delivered.\n"
        "Create vivid before/after contrast between the painful status quo and the new reality.\n"
        "This should feel like a manifesto, not a feature list."
    ),
    "field-marketing": (
        "You are writing for field marketers who need to capture attention in 30 seconds.\n"
        "Lead with a relatable scenario the reader has personally lived through.\n"
        "Build progressive understanding: hook, recognition, then \"tell me more.\"\n"
        "Make it scannable for someone scrolling on their phone."
    ),
}

DEFAULT_BANNED_WORDS = [
    "industry-leading", "best-in-class", "next-generation", "enterprise-grade",
    "mission-critical", "turnkey", "end-to-end", "single pane of glass",
    "seamless", "robust", "leverage", "cutting-edge", "game-changer",
]

_TYPE_INSTRUCTIONS = {
    "messaging_template": """

## Messaging Template Instructions
You are generating a comprehensive messaging positioning document (3000-5000 words).
This is a single, complete document, not a summary. Fill every section fully.
Include: Background/Market Trends, Key Message (8-12 word headline), Sub-Head alternatives,
Customer Promises (3-4 blocks with name/tagline/description), Proof Points grounded in product docs,
Priority Use Cases, Problem Statement, Short/Medium/Long descriptions, and Customer Proof Points.
All claims MUST be traceable to the provided source material.""",
    "narrative": """

## Narrative Instructions
You are generating a storytelling narrative document with 3 length variants in a single output.
VARIANT 1 (~250 words): Executive summary with thesis, problem and vision.
VARIANT 2 (~1000 words): Conference talk with hook, problem, why current approaches fail, the vision.
VARIANT 3 (~2500 words): Full narrative from thesis through root cause to future state.
Each variant must stand alone. Use a thought-leadership tone.
Weave practitioner quotes naturally throughout. Mark each variant clearly with headers.""",
}

_POV_DIRECTIVE = """## Primary Directive
Lead with your point of view. The reader should encounter a clear, opinionated stance in the first two sentences.
This isn't neutral reporting; it's a well-supported argument. Back every claim with evidence from the product docs.
Open with the thesis or contrarian take, then build the argument with evidence and narrative arc."""

_PAIN_DIRECTIVE = """## Primary Directive
Lead with the pain. The reader should recognize their frustration in the first two sentences.
Do not open with what the product does. Open with what's broken and what the reader struggles with today.
Only then show how things change."""

_PRODUCT_ONLY_GROUNDING = (
    "CRITICAL: You have NO community evidence for this generation. Do NOT fabricate practitioner "
    'quotes or use phrases like "practitioners say...", "as one engineer noted...", "teams report...". '
    "Write from product documentation only. Where practitioner validation would strengthen a point, "
    'write "[Needs community validation]".'
)

_EVIDENCE_GROUNDING = (
    "You have real community evidence in the prompt. ONLY reference practitioners and quotes from the "
    '"Verified Community Evidence" section. Do NOT fabricate additional quotes or community references '
    "beyond what is provided."
)


def asset_label(asset_type: str) -> str:
    return ASSET_TYPE_LABELS.get(asset_type, asset_type.replace("_", " "))


def asset_temperature(asset_type: str) -> float:
    return ASSET_TYPE_TEMPERATURE.get(asset_type, 0.7)


def load_template(asset_type: str) -> str:
    """Template for an asset type, e.g. templates/talk-track.md."""
    path = TEMPLATE_DIR / f"{asset_type.replace('_', '-')}.md"
    try:
        return path.read_text(encoding="utf-8")
    except OSError:
        return f"Generate {asset_label(asset_type)} content."


def build_system_prompt(
    voice: VoiceProfile,
    asset_type: str,
    evidence_level: EvidenceLevel | None = None,
    pipeline: str = PipelineName.STANDARD.value,
    banned_words: list[str] | None = None,
) -> str:
    directive = _POV_DIRECTIVE if pipeline == PipelineName.STANDARD.value else _PAIN_DIRECTIVE
    angle = PERSONA_ANGLES.get(voice.slug, "")
    angle_section = f"## Persona Angle\n{angle}\n" if angle else ""
    banned = ", ".join(f'"{w}"' for w in (banned_words or DEFAULT_BANNED_WORDS))
    grounding = (
        _PRODUCT_ONLY_GROUNDING if evidence_level == EvidenceLevel.PRODUCT_ONLY else _EVIDENCE_GROUNDING
    )

    return f"""You are a messaging strategist generating {asset_type.replace("_", " ")} content.

{directive}

{angle_section}
## Voice Profile: {voice.name}
{voice.voice_guide}
{_TYPE_INSTRUCTIONS.get(asset_type, "")}

## Critical Rules
1. Ground ALL claims in the product documentation and competitive research. No invented claims
2. Use practitioner language, not vendor language
3. Reference specific capabilities, not generic value props
4. If practitioner quotes are available, weave them in naturally
5. Every claim must be traceable to the product docs or research
6. Sound like someone who understands the practitioner's world, not someone selling to them
7. Be specific: names, numbers, scenarios. Vague messaging is bad messaging.
8. DO NOT use: {banned}

## Evidence Grounding Rules
{grounding}"""


def build_user_prompt(
    insights: ExtractedInsights,
    template: str,
    research_context: str = "",
    existing_messaging: str | None = None,
    focus: str | None = None,
) -> str:
    parts = []
    if insights.pain_points_addressed:
        pains = "\n".join(f"- {p}" for p in insights.pain_points_addressed)
        parts.append(
            "## The Pain (lead with this)\n"
            "These are the real practitioner pain points this product addresses. "
            f"Your opening should make the reader feel one of these:\n{pains}"
        )

    parts.append(f"## Product Intelligence (distilled)\n{format_insights_for_prompt(insights)}")
    if existing_messaging:
        parts.append(f"## Existing Messaging (for reference/improvement)\n{existing_messaging[:4000]}")
    if research_context:
        parts.append(f"## Competitive Research\n{research_context[:6000]}")
    if focus:
        parts.append(f"## Focus / Instructions\n{focus}")
    parts.append(
        f"## Template / Format Guide\n{template}\n\n"
        "Generate the messaging now. Start with the pain. "
        "Output ONLY the messaging content, no meta-commentary."
    )
    return "\n\n".join(parts)


def build_pain_first_prompt(
    practitioner_context: str,
    template: str,
    asset_type: str,
    insights: ExtractedInsights,
    product_excerpt: str = "",
) -> str:
    """Draft grounded in practitioner pain; product specifics deliberately kept thin."""
    parts = []
    if practitioner_context:
        parts.append(f"## Real Practitioner Pain (this is your primary source material)\n{practitioner_context}")

    pains = "\n".join(f"- {p}" for p in insights.pain_points_addressed) or "- (none extracted)"
    parts.append(f"## What the product does (brief, DO NOT lead with this)\n{insights.summary}")
    if product_excerpt:
        parts.append(f"## Product excerpt\n{product_excerpt}")
    parts.append(f"## Pain points it addresses\n{pains}")
    parts.append(
        f"## Template / Format Guide\n{template}\n\n"
        f"## Instructions\nWrite this {asset_type.replace('_', ' ')} grounded ENTIRELY in practitioner "
        "pain. Use the real quotes and language from the practitioner research above. The reader "
        "should feel like someone who understands their world wrote this, not a vendor.\n\n"
        "Minimal product mentions. Maximum practitioner empathy. Output ONLY the content."
    )
    return "\n\n".join(parts)


_AXIS_ADVICE = {
    "slop": "Remove filler phrases, hedging language, and cliched transitions. Every word must earn its place.",
    "vendor_speak": (
        "Replace self-congratulatory vendor language with practitioner-focused language. "
        "Sound like a peer, not a marketer."
    ),
    "authenticity": (
        "Make it sound like a real human wrote this. Add specific scenarios, real-world context, "
        "and genuine insight."
    ),
    "specificity": (
        "Replace vague claims with concrete details: names, numbers, specific capabilities, real scenarios."
    ),
    "persona": "Better match the {voice} voice. The content should resonate with the target audience.",
}

_AXIS_LABELS = {
    "slop": "Slop",
    "vendor_speak": "Vendor-Speak",
    "authenticity": "Authenticity",
    "specificity": "Specificity",
    "persona": "Persona Fit",
}


def build_issue_list(scores: ScoreResults, thresholds: ScoringThresholds, voice: VoiceProfile) -> list[str]:
    """One line per failing axis with its value, target and gap."""
    issues = []
    for failure in failing_axes(scores, thresholds):
        axis = failure["axis"]
        advice = _AXIS_ADVICE[axis].format(voice=voice.name)
        issues.append(
            f"- **{_AXIS_LABELS[axis]}**: {failure['actual']:.1f}/10 "
            f"({failure['kind']} {failure['target']}, off by {failure['gap']}). {advice}"
        )
    return issues


def build_refinement_prompt(
    content: str,
    scores: ScoreResults,
    thresholds: ScoringThresholds,
    voice: VoiceProfile,
    asset_type: str,
) -> str:
    issues = "\n".join(build_issue_list(scores, thresholds, voice))
    return f"""Rewrite this {asset_type.replace("_", " ")} to fix the following quality issues:

{issues}

## Content to Rewrite
{content}

## Rules
1. Fix ONLY the flagged issues; don't change what's already working
2. Keep the same structure and format
3. Keep all factual claims and specific details
4. Don't introduce new slop while fixing other issues
5. Output ONLY the rewritten content, nothing else"""


def build_research_prompt_from_insights(insights: ExtractedInsights, focus: str | None = None) -> str:
    focus_section = f"## Focus Area\n{focus}\n\n" if focus else ""
    return f"""Conduct competitive research based on the following product context.

## Product Context
{format_insights_for_research(insights)}

{focus_section}## Research Questions

1. **Competitor Landscape**: Identify the main competitors. How do they approach the same problems?
2. **Market Positioning**: Where does this product have the strongest competitive advantage?
3. **Practitioner Pain Points**: What do real practitioners say about this problem space? Check
   Reddit, Stack Overflow, Hacker News for authentic opinions. Include verbatim quotes.
4. **Competitive Gaps**: Where do competitors fall short? What pain remains unaddressed?
5. **Market Trends**: What trends make this product more relevant?

## Output Requirements
- Be specific and factual, cite sources
- Include actual practitioner quotes from forums/communities
- Write like an analyst, not a marketer
- Focus on what actually works vs what vendors claim"""
