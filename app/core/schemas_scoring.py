"""Pydantic schemas for content quality scoring."""

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

# =============================================================================
# Analyzer outputs
# =============================================================================


class SlopMatch(BaseModel):
    """One occurrence of a slop pattern in the scored content."""

    category: str
    pattern: str
    context: str = ""


class SlopAnalysis(BaseModel):
    """Full slop detector output, kept so deslop can target the exact matches."""

    score: float = 5.0
    base_score: float = 0.0
    ai_score: float | None = None
    matches: list[SlopMatch] = Field(default_factory=list)
    assessment: str = ""
    suggestions: list[str] = Field(default_factory=list)


class VendorSpeakAnalysis(BaseModel):
    score: float = 5.0
    base_score: float = 0.0
    ai_score: float | None = None
    matches: list[SlopMatch] = Field(default_factory=list)
    assessment: str = ""
    suggestions: list[str] = Field(default_factory=list)


class AuthenticityAnalysis(BaseModel):
    score: float = 5.0
    natural_language_markers: list[str] = Field(default_factory=list)
    robotic_patterns: list[str] = Field(default_factory=list)
    assessment: str = ""


class SpecificityAnalysis(BaseModel):
    score: float = 5.0
    concrete_claims: list[str] = Field(default_factory=list)
    vague_claims: list[str] = Field(default_factory=list)
    assessment: str = ""


class PersonaCritique(BaseModel):
    persona: str
    score: float = 5.0
    feedback: str = ""
    strengths: list[str] = Field(default_factory=list)
    weaknesses: list[str] = Field(default_factory=list)


# =============================================================================
# Aggregate scores
# =============================================================================


class ScorerHealth(BaseModel):
    """Which of the four scoring branches actually produced a signal."""

    succeeded: int = 0
    failed: list[str] = Field(default_factory=list)
    total: int = 4


class ScoreResults(BaseModel):
    """Five-axis quality score. Slop and vendor-speak are lower-is-better."""

    slop_score: float = 5.0
    vendor_speak_score: float = 5.0
    authenticity_score: float = 5.0
    specificity_score: float = 5.0
    persona_avg_score: float = 5.0
    slop_analysis: SlopAnalysis | None = None
    scorer_health: ScorerHealth = Field(default_factory=ScorerHealth)

    def as_columns(self) -> dict[str, float]:
        """Score fields as stored on variant and version rows."""
        return {
            "slop_score": self.slop_score,
            "vendor_speak_score": self.vendor_speak_score,
            "authenticity_score": self.authenticity_score,
            "specificity_score": self.specificity_score,
            "persona_avg_score": self.persona_avg_score,
        }

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "ScoreResults | None":
        """Rebuild scores from a stored row; None if the row was never scored."""
        if row.get("slop_score") is None:
            return None
        return cls(
            slop_score=row["slop_score"],
            vendor_speak_score=row.get("vendor_speak_score") or 0,
            authenticity_score=row.get("authenticity_score") or 0,
            specificity_score=row.get("specificity_score") or 0,
            persona_avg_score=row.get("persona_avg_score") or 0,
        )


class ScoringThresholds(BaseModel):
    """Per-voice quality gate. Stored camelCase on voice profiles."""

    model_config = ConfigDict(populate_by_name=True)

    slop_max: float = Field(5.0, validation_alias=AliasChoices("slop_max", "slopMax"))
    vendor_speak_max: float = Field(
        5.0, validation_alias=AliasChoices("vendor_speak_max", "vendorSpeakMax")
    )
    authenticity_min: float = Field(
        6.0, validation_alias=AliasChoices("authenticity_min", "authenticityMin")
    )
    specificity_min: float = Field(
        6.0, validation_alias=AliasChoices("specificity_min", "specificityMin")
    )
    persona_min: float = Field(6.0, validation_alias=AliasChoices("persona_min", "personaMin"))


class ScoredContent(BaseModel):
    """A candidate piece of content together with its scores."""

    content: str
    scores: ScoreResults
    label: str = ""
