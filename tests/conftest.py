"""Pytest configuration and fixtures."""

import os
from contextlib import ExitStack
from unittest.mock import patch

import pytest

from tests.fakes.fake_supabase import FakeSupabase

# Modules that bind get_supabase at import time
SUPABASE_MODULES = [
    "app.db.jobs",
    "app.db.sessions",
    "app.db.session_versions",
    "app.db.session_messages",
    "app.db.messaging_assets",
    "app.db.action_jobs",
    "app.db.pain_points",
    "app.db.voice_profiles",
    "app.db.persona_critics",
    "app.core.llm_usage",
]


@pytest.fixture(scope="session", autouse=True)
def setup_test_env():
    """Set up test environment variables."""
    os.environ["SUPABASE_URL"] = "https://test.supabase.co"
    os.environ["SUPABASE_SERVICE_ROLE_KEY"] = "test-key"
    os.environ["ANTHROPIC_API_KEY"] = "test-anthropic-key"
    os.environ["OPENAI_API_KEY"] = "test-openai-key"
    os.environ["PERPLEXITY_API_KEY"] = "test-perplexity-key"
    os.environ["MESSAGING_ENGINE_ENV"] = "test"


@pytest.fixture
def fake_supabase():
    """In-memory Supabase wired into every store."""
    db = FakeSupabase()
    with ExitStack() as stack:
        for module in SUPABASE_MODULES:
            stack.enter_context(patch(f"{module}.get_supabase", return_value=db))
        yield db
