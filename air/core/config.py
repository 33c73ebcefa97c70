"""
Configuration module - centralized settings for the air agent.
Uses pydantic-settings to load values from environment variables and .env file.
"""

from pathlib import Path
from typing import Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Agent settings loaded from environment variables.

    Pydantic-settings automatically:
    1. Reads from environment variables (highest priority)
    2. Falls back to .env file values
    3. Uses default values if neither exists

    To enable cloud providers, set their keys:
        export OPENAI_API_KEY=sk-...
        export GEMINI_KEY=...
        export OPEN_ROUTER=sk-or-...
    """

    # ---------------------------------------------------------------------------
    # PYDANTIC SETTINGS CONFIGURATION
    # ---------------------------------------------------------------------------
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # ---------------------------------------------------------------------------
    # APPLICATION SETTINGS
    # ---------------------------------------------------------------------------
    APP_NAME: str = "air"
    VERSION: str = "0.1.0"

    # DEBUG: Verbose logging for the CLI and providers
    DEBUG: bool = False

    # ---------------------------------------------------------------------------
    # STORAGE SETTINGS
    # ---------------------------------------------------------------------------
    # DATA_DIR: Where the SQLite memory database and local models live
    DATA_DIR: Path = Path.home() / ".air"

    # DATABASE_URL: Overrides the default sqlite:///<DATA_DIR>/air.db
    DATABASE_URL: Optional[str] = None

    # ---------------------------------------------------------------------------
    # CLOUD PROVIDER CREDENTIALS
    # ---------------------------------------------------------------------------
    # An empty key means the provider is unavailable and never ranked
    OPENAI_API_KEY: str = ""
    ANTHROPIC_API_KEY: str = ""
    GEMINI_KEY: str = Field(
        default="", validation_alias=AliasChoices("GEMINI_KEY", "GEMINI_API_KEY")
    )
    OPEN_ROUTER: str = Field(
        default="", validation_alias=AliasChoices("OPEN_ROUTER", "OPENROUTER_API_KEY")
    )

    # ---------------------------------------------------------------------------
    # CLOUD MODEL CONFIGURATION
    # ---------------------------------------------------------------------------
    OPENAI_MODEL: str = "gpt-4o-mini"
    ANTHROPIC_MODEL: str = "claude-3-5-haiku-latest"
    GEMINI_MODEL: str = "gemini-2.5-flash"
    OPENROUTER_MODEL: str = "openai/gpt-4o-mini"
    OPENROUTER_BASE_URL: str = "https://openrouter.ai/api/v1"

    CLOUD_MAX_TOKENS: int = 1000
    CLOUD_TEMPERATURE: float = 0.7
    CLOUD_TIMEOUT_SECONDS: float = 30.0

    # ---------------------------------------------------------------------------
    # LOCAL MODEL CONFIGURATION
    # ---------------------------------------------------------------------------
    # LOCAL_MODEL_NAME: Model served by the local Ollama-compatible endpoint
    # LOCAL_MODEL_PATH: Optional GGUF file; when set it must exist on disk
    LOCAL_MODEL_NAME: str = ""
    LOCAL_MODEL_PATH: Optional[Path] = None
    LOCAL_BASE_URL: str = "http://localhost:11434"
    LOCAL_MAX_TOKENS: int = 512
    LOCAL_TEMPERATURE: float = 0.7
    LOCAL_CONTEXT_LENGTH: int = 2048

    # LOCAL_TIMEOUT_SECONDS: Past this the local answer is abandoned (Auto mode)
    LOCAL_TIMEOUT_SECONDS: float = 3.0

    # LOCAL_STRICT_TIMEOUT_SECONDS: Budget when the user forces local-only modes
    LOCAL_STRICT_TIMEOUT_SECONDS: float = 60.0

    # STUB_PROVIDER_ENABLED: Canned offline replies, ranked below everything
    STUB_PROVIDER_ENABLED: bool = False

    # ---------------------------------------------------------------------------
    # RETRY POLICY
    # ---------------------------------------------------------------------------
    RETRY_MAX_ATTEMPTS: int = 3
    RETRY_INITIAL_BACKOFF_MS: int = 1000
    RETRY_BACKOFF_MULTIPLIER: float = 2.0

    # ---------------------------------------------------------------------------
    # QUALITY / FALLBACK THRESHOLDS
    # ---------------------------------------------------------------------------
    QUALITY_CONFIDENCE_THRESHOLD: float = 0.7
    QUALITY_MIN_LENGTH: int = 50
    QUALITY_IMPROVEMENT_MARGIN: float = 0.1

    CACHE_SIMILARITY_THRESHOLD: float = 0.6
    FALLBACK_CACHE_SCAN: int = 10
    KNOWLEDGE_RELEVANCE_THRESHOLD: float = 0.5

    # ---------------------------------------------------------------------------
    # PROMPT ENRICHMENT CACHE
    # ---------------------------------------------------------------------------
    PROMPT_CACHE_TTL_SECONDS: float = 300.0
    PROMPT_CACHE_MAX_ENTRIES: int = 100
    PROMPT_CACHE_PRUNE_AGE_SECONDS: float = 600.0

    # ---------------------------------------------------------------------------
    # TOOLS
    # ---------------------------------------------------------------------------
    TOOLS_ROOT: Path = Path.cwd()
    COMMAND_TIMEOUT_SECONDS: float = 30.0
    WEB_TIMEOUT_SECONDS: float = 15.0

    @property
    def database_url(self) -> str:
        """Resolved SQLAlchemy URL for the memory database."""
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return f"sqlite:///{self.DATA_DIR / 'air.db'}"


# ---------------------------------------------------------------------------
# GLOBAL SETTINGS INSTANCE
# ---------------------------------------------------------------------------
# Usage: from air.core.config import settings
settings = Settings()
