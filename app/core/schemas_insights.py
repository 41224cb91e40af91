"""Pydantic schemas for structured product insights."""

from pydantic import BaseModel, Field


class ExtractedInsights(BaseModel):
    """Structured view of raw product documentation.

    Produced once per job/session; every downstream stage reads one of the
    formatter projections instead of the raw docs.
    """

    product_capabilities: list[str] = Field(default_factory=list)
    key_differentiators: list[str] = Field(default_factory=list)
    target_personas: list[str] = Field(default_factory=list)
    pain_points_addressed: list[str] = Field(default_factory=list)
    claims_and_metrics: list[str] = Field(default_factory=list)
    technical_details: list[str] = Field(default_factory=list)
    summary: str = ""
    domain: str = "unknown"
    category: str = "unknown"
    product_type: str = "unknown"
