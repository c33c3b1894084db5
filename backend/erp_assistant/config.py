"""
Configuration module for the ERP Assistant backend.

Loads environment variables and provides application settings.
"""

from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    database_url: str = "sqlite:///./erp_assistant.db"
    cors_origins: str = "http://localhost:5173,http://localhost:3000"
    log_level: str = "INFO"

    # AI providers (seed values; the saved settings blob wins)
    openai_api_key: str = ""
    openai_model: str = "gpt-4"
    claude_api_key: str = ""
    claude_model: str = "claude-3-sonnet-20240229"
    gemini_api_key: str = ""
    gemini_model: str = "gemini-1.5-pro"
    azure_openai_api_key: str = ""
    azure_openai_endpoint: str = ""
    azure_model: str = "gpt-4"
    active_provider: str = "openai"

    # Vendor request knobs
    ai_temperature: float = 0.3
    ai_max_tokens: int = 2000
    ai_timeout_seconds: float = 120.0
    anthropic_version: str = "2023-06-01"
    azure_api_version: str = "2023-05-15"

    # Development-only relay placed in front of every vendor URL
    use_cors_proxy: bool = False
    cors_proxy_url: str = "https://cors-anywhere.herokuapp.com/"

    # NetSuite REST access; sample data is served when unset
    netsuite_account_id: str = ""
    netsuite_consumer_key: str = ""
    netsuite_consumer_secret: str = ""
    netsuite_token_id: str = ""
    netsuite_token_secret: str = ""
    netsuite_base_url: str = ""

    max_query_length: int = 1000

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins from comma-separated string."""
        return [
            origin.strip()
            for origin in self.cors_origins.split(",")
        ]

    @property
    def netsuite_configured(self) -> bool:
        """True when enough NetSuite credentials exist to call it."""
        return bool(
            self.netsuite_base_url and self.netsuite_account_id
        )

    class Config:
        """Pydantic settings configuration."""

        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
