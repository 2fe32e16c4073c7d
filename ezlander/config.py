"""Configuration settings for ezLander."""

from functools import lru_cache
from zoneinfo import ZoneInfo

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Application
    app_name: str = "ezLander"
    app_version: str = "0.1.0"
    debug: bool = False
    log_level: str = "INFO"
    timezone: str = "America/New_York"

    # Key-value store for API keys, tokens and user preferences
    config_store_path: str = "~/.ezlander/config.json"

    # User identity (used for outgoing mail headers and the system prompt)
    user_email: str = ""
    user_name: str = ""

    # Provider selection
    default_provider: str = "claude"
    llm_max_tokens: int = 4096
    llm_timeout_seconds: float = 60.0

    # Anthropic
    anthropic_api_key: str = ""
    claude_model: str = "claude-sonnet-4-20250514"
    claude_oauth_client_id: str = "9d1c250a-e61b-44d9-88ed-5944d1962f5e"
    claude_oauth_token_url: str = "https://console.anthropic.com/api/oauth/token"
    claude_oauth_beta: str = "oauth-2025-04-20"

    # OpenAI
    openai_api_key: str = ""
    openai_model: str = "gpt-4o"

    # Gemini
    gemini_api_key: str = ""
    gemini_model: str = "gemini-2.0-flash"
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta/models"

    # Kimi (NVIDIA hosted, OpenAI-compatible)
    kimi_api_key: str = ""
    kimi_model: str = "moonshotai/kimi-k2.5"
    kimi_base_url: str = "https://integrate.api.nvidia.com/v1"

    # Google OAuth
    google_client_id: str = ""
    google_client_secret: str = ""
    google_token_url: str = "https://oauth2.googleapis.com/token"

    # Apple calendar over iCloud CalDAV
    apple_caldav_url: str = "https://caldav.icloud.com"
    apple_id: str = ""
    apple_app_password: str = ""
    apple_calendar_name: str = ""

    # Token refresh happens this many seconds before expiry
    token_refresh_buffer_seconds: int = 300

    @property
    def tz(self) -> ZoneInfo:
        """Configured local timezone."""
        return ZoneInfo(self.timezone)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
