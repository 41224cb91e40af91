"""Tests for LLM usage accounting."""

from unittest.mock import MagicMock, patch

from app.core.llm_usage import UsageRecord, estimate_cost, log_llm_usage


def test_longest_prefix_wins():
    # gpt-4.1-mini must not be billed at the gpt-4.1 rate
    assert estimate_cost("gpt-4.1-mini", 1_000_000, 0) == 0.40
    assert estimate_cost("gpt-4.1-2025-04-14", 1_000_000, 0) == 2.0


def test_dated_claude_model_matches_family():
    assert estimate_cost("claude-sonnet-4-5-20250929", 1_000_000, 1_000_000) == 18.0


def test_cache_reads_are_discounted():
    full = estimate_cost("claude-sonnet-4-5", 1_000_000, 0)
    cached = estimate_cost("claude-sonnet-4-5", 1_000_000, 0, tokens_cache_read=1_000_000)
    assert cached == round(full * 0.1, 6)


def test_unknown_model_costs_nothing():
    assert estimate_cost("mystery-model", 5000, 5000) == 0.0


def test_record_is_written_with_ids_and_cost(fake_supabase):
    log_llm_usage(
        UsageRecord(
            workflow="generation",
            chain="refine",
            model="sonar",
            provider="perplexity",
            tokens_input=1000,
            tokens_output=1000,
            job_id="job-1",
        )
    )

    [row] = fake_supabase.rows("llm_usage_log")
    assert row["chain"] == "refine"
    assert row["job_id"] == "job-1"
    assert "session_id" not in row
    assert row["estimated_cost_usd"] == 0.002


def test_write_failure_never_raises():
    client = MagicMock()
    client.table.side_effect = RuntimeError("connection refused")

    with patch("app.core.llm_usage.get_supabase", return_value=client):
        log_llm_usage(UsageRecord(workflow="research", model="sonar", provider="perplexity"))
