"""
Configuration settings for Persuader.

All settings are loaded from environment variables (prefix ``PERSUADER_``)
with sensible defaults. Use a .env file for local development.
Per-call ``Options`` override the defaults below.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="PERSUADER_",
        case_sensitive=False,
        extra="ignore",
    )

    # === Application ===
    APP_NAME: str = "persuader"
    LOG_LEVEL: str = "INFO"
    ENVIRONMENT: str = "development"

    # === Generation defaults ===
    DEFAULT_MODEL: str = "claude-3-5-haiku-20241022"
    DEFAULT_TEMPERATURE: float = 0.4
    DEFAULT_MAX_TOKENS: int = 4096

    # === Retry ===
    DEFAULT_RETRIES: int = 3
    MAX_RETRIES: int = 10  # Hard upper bound accepted from callers
    RETRY_BASE_DELAY_MS: int = 1000
    RETRY_DELAY_MULTIPLIER: float = 1.5
    RETRY_MAX_DELAY_MS: int = 10000

    # === Enhancement ===
    MAX_ENHANCEMENT_ROUNDS: int = 5
    DEFAULT_ENHANCEMENT_STRATEGY: str = "expand-array"
    DEFAULT_MIN_IMPROVEMENT: float = 0.2

    # === Ollama ===
    OLLAMA_BASE_URL: str = "http://localhost:11434"
    OLLAMA_MODEL: str = "llama3.2"
    OLLAMA_TIMEOUT: int = 60  # seconds


# Global settings instance
settings = Settings()
