"""Application configuration using pydantic-settings."""

from functools import lru_cache
from typing import Literal

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load .env file and override existing env vars
load_dotenv(override=True)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_env: Literal["development", "staging", "production"] = "development"
    app_debug: bool = True

    # API Server
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    # Text completion (Claude Agent SDK)
    anthropic_api_key: str = Field(default="")
    completion_model: str = "claude-sonnet-4-5-20250929"
    langsmith_tracing: bool = False

    # Repository content (GitHub REST API)
    github_token: str | None = None
    github_api_url: str = "https://api.github.com"
    http_timeout: float = 20.0

    # Screenshot capture for the mood board
    browser_render_token: str | None = None
    screenshot_api_url: str = "https://browser.mcp.cloudflare.com/screenshot"

    # Sessions and streaming
    session_ttl_hours: int = 24
    event_queue_size: int = 1000
    debug_snapshots: bool = False
    debug_directory: str = ".debug"

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["console", "json"] = "console"
    log_directory: str = "logs"
    log_file_name: str = "researcher.log"

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.app_env == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.app_env == "production"

    @property
    def completion_enabled(self) -> bool:
        return bool(self.anthropic_api_key)

    @property
    def screenshots_enabled(self) -> bool:
        return bool(self.browser_render_token)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()
