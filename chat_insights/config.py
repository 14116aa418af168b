"""Application configuration using Pydantic Settings."""
from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Anthropic (primary provider)
    anthropic_api_key: str = ""
    anthropic_model: str = "claude-3-7-sonnet-20250219"

    # OpenAI-compatible (secondary provider)
    openai_api_key: str = ""
    openai_model: str = "gpt-4o-mini"
    openai_base_url: str = "https://api.openai.com/v1"

    # Provider selection: "anthropic" or "openai"
    llm_provider: str = "anthropic"
    llm_fallback_provider: Optional[str] = None

    # LLM Limits
    llm_max_chars: int = 60000
    llm_max_tokens: int = 2000
    llm_message_max_tokens: int = 800
    llm_names_max_tokens: int = 100

    # Low temperature keeps the JSON output stable
    llm_temperature: float = Field(default=0.1, alias="LLM_TEMPERATURE")

    # Pipeline tuning
    quote_match_threshold: float = 0.7
    name_detection_chars: int = 1000

    # Advisory size reported by /chat_meta
    recommended_bytes: int = 2548576

    # Paths
    log_dir: Path = Path("logs")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.log_dir.mkdir(exist_ok=True)


# Global settings instance
settings = Settings()
