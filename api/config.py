from functools import lru_cache
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()

GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"


class Settings(BaseSettings):
    """Runtime configuration, read from the environment (and .env)."""

    model_config = SettingsConfigDict(extra="ignore")

    gemini_api_key: str = ""
    gemini_model: str = "gemini-1.5-flash"
    gemini_base_url: str = GEMINI_BASE_URL
    gemini_timeout: float = 60.0

    # Unset means the in-memory store (development/tests only).
    kv_url: Optional[str] = Field(default=None, validation_alias=AliasChoices("kv_url", "redis_url"))

    guest_user_id: str = "guest"

    log_level: str = "INFO"
    log_dir: str = "logs"
    cors_origins: List[str] = ["*"]


@lru_cache
def get_settings() -> Settings:
    return Settings()
