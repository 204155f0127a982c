"""
settings.py — promptforge backend configuration

Central place for environment-driven configuration.
"""

from __future__ import annotations

from functools import lru_cache
from typing import List

from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()


class Settings(BaseSettings):
    model_config = SettingsConfigDict(case_sensitive=True, extra="ignore")

    # App
    APP_NAME: str = "promptforge"
    ENV: str = "dev"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: List[str] = ["*"]

    # Security
    SECRET_KEY: str = "dev-secret-change-me"
    PASSWORD_SALT: str = "promptforge-salt"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7  # 7 days

    # Supabase
    SUPABASE_URL: str = ""
    SUPABASE_SERVICE_ROLE_KEY: str = ""

    # LLM (OpenAI-compatible chat completions)
    LLM_API_KEY: str = ""
    LLM_BASE_URL: str = "https://api.openai.com/v1"
    LLM_MODEL_EXECUTE: str = "gpt-4o"
    LLM_MODEL_CHAT: str = "gpt-4o-mini"
    LLM_MODEL_CODEGEN: str = "gpt-4o-mini"
    LLM_MODEL_AGENT: str = "gpt-4o"
    LLM_TIMEOUT: float = 60.0
    LLM_MAX_RETRIES: int = 3
    LLM_RETRY_BACKOFF: float = 0.75

    # Execution
    MAX_OPERATIONS: int = 50
    FILE_CONTEXT_CHARS: int = 4000

    # Build / deploy simulation
    BUILD_STEP_DELAY: float = 1.0
    DEPLOY_STEP_DELAY: float = 1.5
    ARTIFACT_BASE_URL: str = "https://cdn.example.com"
    DEPLOY_DOMAIN: str = "netlify.app"

    # Billing
    DEFAULT_MONTHLY_LIMIT: float = 10.0


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
