"""Tests for fallback insights, formatter projections and extraction failure."""

from unittest.mock import AsyncMock, patch

import pytest

from app.chains.extract_insights import extract_insights
from app.core.insight_formatters import (
    build_fallback_insights,
    format_insights_for_discovery,
    format_insights_for_prompt,
    format_insights_for_research,
    format_insights_for_scoring,
)
from app.core.schemas_insights import ExtractedInsights
from app.services.llm_gateway import GenerationResult


def _insights() -> ExtractedInsights:
    return ExtractedInsights(
        product_capabilities=["Streams CDC events from Postgres"],
        key_differentiators=["No Kafka cluster to run"],
        target_personas=["Data engineers"],
        pain_points_addressed=["Nightly batch jobs miss late updates"],
        claims_and_metrics=["Sub-second replication lag"],
        technical_details=["Logical replication slots"],
        summary="Managed change data capture for Postgres.",
        domain="data engineering",
        category="change data capture",
        product_type="unknown",
    )


def test_fallback_on_empty_docs():
    insights = build_fallback_insights("")

    assert insights.summary == ""
    assert insights.product_capabilities == []
    assert insights.domain == "unknown"
    assert format_insights_for_discovery(insights) == ""


def test_fallback_summary_uses_first_sentences():
    docs = "Acme syncs data. It is fast! It is cheap. It is also a fourth sentence."
    insights = build_fallback_insights(docs)

    assert insights.summary == "Acme syncs data. It is fast. It is cheap."


def test_discovery_view_skips_unknowns_and_product_framing():
    view = format_insights_for_discovery(_insights())

    assert view == "data engineering / change data capture"
    assert "Postgres" not in view


def test_research_view_has_summary_and_personas():
    view = format_insights_for_research(_insights())

    assert view.startswith("Product: Managed change data capture")
    assert "Target Personas:\n- Data engineers" in view
    assert "Sub-second" not in view


def test_prompt_view_includes_every_section():
    view = format_insights_for_prompt(_insights())

    for heading in ("Product Summary", "Pain Points Addressed", "Claims & Metrics", "Technical Details"):
        assert f"### {heading}" in view


def test_scoring_view_is_claims_focused():
    view = format_insights_for_scoring(_insights())

    assert "Claims & Metrics:\n- Sub-second replication lag" in view
    assert "Data engineers" not in view


@pytest.mark.asyncio
async def test_extract_insights_returns_none_on_bad_json():
    response = GenerationResult(text="not json at all", model="m", provider="anthropic")
    with patch("app.chains.extract_insights.generate", AsyncMock(return_value=response)):
        assert await extract_insights("Some docs") is None


@pytest.mark.asyncio
async def test_extract_insights_drops_null_fields():
    response = GenerationResult(
        text='{"summary": "A CDC tool.", "domain": null, "product_capabilities": ["a", "b"]}',
        model="m",
        provider="anthropic",
    )
    with patch("app.chains.extract_insights.generate", AsyncMock(return_value=response)):
        insights = await extract_insights("Some docs")

    assert insights.summary == "A CDC tool."
    assert insights.domain == "unknown"
    assert insights.product_capabilities == ["a", "b"]
