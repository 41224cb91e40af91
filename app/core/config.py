"""Configuration management for the Messaging Engine."""

from functools import lru_cache

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load environment variables from .env file (only if accessible)
try:
    load_dotenv()
except (PermissionError, OSError):
    # In sandboxed environments, .env might not be accessible
    pass


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    # Supabase configuration (required)
    SUPABASE_URL: str = Field(..., description="Supabase project URL")
    SUPABASE_SERVICE_ROLE_KEY: str = Field(..., description="Supabase service role key")

    # Provider keys
    ANTHROPIC_API_KEY: str = Field(default="", description="Anthropic API key (Claude models)")
    OPENAI_API_KEY: str = Field(default="", description="OpenAI API key (GPT + deep research)")
    PERPLEXITY_API_KEY: str = Field(default="", description="Perplexity API key (grounded search)")
    PERPLEXITY_BASE_URL: str = Field(
        default="https://api.perplexity.ai", description="Perplexity OpenAI-compatible endpoint"
    )

    # Environment
    MESSAGING_ENGINE_ENV: str = Field(
        default="dev", description="Environment: dev, staging, prod, test"
    )

    # Model routing
    GENERATION_MODEL: str = Field(
        default="claude-sonnet-4-5-20250929", description="Default model for content generation"
    )
    FAST_MODEL: str = Field(
        default="claude-haiku-4-5-20251001",
        description="Model for cheap structured calls (naming, banned words, keyword extraction)",
    )
    SCORING_MODEL: str = Field(
        default="claude-haiku-4-5-20251001", description="Model for the LLM-judged scorers"
    )
    CHAT_MODEL: str = Field(
        default="claude-sonnet-4-5-20250929", description="Model for the streaming workspace chat"
    )
    INSIGHTS_MODEL: str = Field(
        default="claude-sonnet-4-5-20250929", description="Model for product insight extraction"
    )
    GROUNDED_SEARCH_MODEL: str = Field(default="sonar-pro", description="Perplexity search model")
    DEEP_RESEARCH_MODEL: str = Field(
        default="o3-deep-research", description="OpenAI background deep-research model"
    )

    # Limits
    MAX_INSIGHT_DOC_CHARS: int = Field(
        default=200_000, description="Max raw product doc characters sent to insight extraction"
    )
    DEEP_RESEARCH_POLL_INTERVAL_S: float = Field(
        default=30.0, description="Seconds between deep research status polls"
    )
    DEEP_RESEARCH_TIMEOUT_S: float = Field(
        default=3600.0, description="Max seconds to wait for a deep research interaction"
    )

    # Refinement
    REFINEMENT_MAX_ITERATIONS: int = Field(
        default=3, description="Max refine/re-score iterations when a draft fails the quality gates"
    )
    ADVERSARIAL_MAX_ITERATIONS: int = Field(
        default=3, description="Max attack/defend iterations for the adversarial action"
    )
    VERSION_WRITE_RETRIES: int = Field(
        default=3, description="Attempts when a concurrent writer takes the same version number"
    )


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings instance

    Raises:
        ValidationError: If required environment variables are missing
    """
    return Settings()
