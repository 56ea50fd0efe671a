"""
Configuration management for the application.
Loads settings from environment variables and the project .env file.
"""

from pathlib import Path
from typing import Dict, List

from pydantic import Field
from pydantic_settings import BaseSettings
from dotenv import load_dotenv
from loguru import logger

# Find project root (where .env and data/ live)
# This file is at collective_chat/config/settings.py, so project root is 3 levels up
_project_root = Path(__file__).resolve().parent.parent.parent

PROJECT_ROOT = _project_root

# Load environment variables from project root
_env_file = _project_root / ".env"
if _env_file.exists():
    load_dotenv(dotenv_path=_env_file, override=True)
    logger.debug(f"Loaded .env from: {_env_file}")
else:
    logger.debug(f".env file not found at: {_env_file}")
    load_dotenv(override=False)


class Settings(BaseSettings):
    """Application settings from environment variables."""

    # Upstream LLM provider (Anthropic Messages API)
    anthropic_api_key: str = Field(default="")
    anthropic_base_url: str = Field(default="https://api.anthropic.com")
    anthropic_model: str = Field(default="claude-sonnet-4-5-20250929")
    anthropic_version: str = Field(default="2023-06-01")
    max_output_tokens: int = Field(default=2048)  # Output-length ceiling per assistant turn
    upstream_connect_timeout: float = Field(default=10.0)
    upstream_read_timeout: float = Field(default=120.0)  # Max silence between streamed chunks

    # Identity provider
    auth_provider: str = Field(default="supabase")  # Options: "supabase" | "static"
    supabase_url: str = Field(default="")
    supabase_anon_key: str = Field(default="")
    auth_timeout: float = Field(default=5.0)
    static_auth_tokens: str = Field(default="")  # "token:user_id,token2:user_id2" (dev only)

    # Database
    database_url: str = Field(default="sqlite:///data/collective.db")
    database_echo: bool = Field(default=False)

    # API
    cors_allowed_origins: str = Field(
        default="http://localhost:5173,http://localhost:3000,http://127.0.0.1:5173"
    )

    # Logging
    log_level: str = Field(default="INFO")
    log_to_file: bool = Field(default=True)

    class Config:
        env_file = str(_project_root / ".env")
        env_file_encoding = "utf-8"
        extra = "allow"

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS allowed origins into a list."""
        return [o.strip() for o in self.cors_allowed_origins.split(",") if o.strip()]

    @property
    def static_tokens_map(self) -> Dict[str, str]:
        """Parse static dev tokens into a token -> user_id map."""
        tokens = {}
        for pair in self.static_auth_tokens.split(","):
            token, _, user_id = pair.strip().partition(":")
            if token and user_id:
                tokens[token] = user_id
        return tokens

    @property
    def database_url_resolved(self) -> str:
        """Database URL with relative SQLite paths anchored at the project root."""
        prefix = "sqlite:///"
        if self.database_url.startswith(prefix):
            path = self.database_url[len(prefix):]
            if path and path != ":memory:" and not Path(path).is_absolute():
                return f"{prefix}{_project_root / path}"
        return self.database_url


# Create global settings instance
settings = Settings()


if settings.anthropic_api_key:
    key = settings.anthropic_api_key
    masked_key = key[:8] + "..." + key[-4:] if len(key) > 12 else "***"
    logger.info(f"✅ LLM Provider: Anthropic | Model: {settings.anthropic_model} | API key loaded: {masked_key}")
else:
    logger.warning("⚠️  ANTHROPIC_API_KEY not set - chat completions will fail upstream!")

if settings.auth_provider == "supabase" and not settings.supabase_url:
    logger.warning("⚠️  AUTH_PROVIDER=supabase but SUPABASE_URL not set - every request will be rejected")
elif settings.auth_provider not in ("supabase", "static"):
    logger.warning(f"⚠️  Unknown auth provider: {settings.auth_provider}. Supported: 'supabase', 'static'")
