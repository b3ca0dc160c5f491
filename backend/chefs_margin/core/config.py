from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings."""

    # App
    APP_NAME: str = "Chef's Margin"
    DEBUG: bool = True

    # Persistence (key/value blob table)
    DATABASE_URL: str = "sqlite:///./chefs_margin.db"
    SEED_DEFAULTS: bool = True

    # Entity store behaviour
    STRICT_UPDATES: bool = True
    HISTORY_MAX_ENTRIES: Optional[int] = None

    # Dashboard
    TOP_N_ITEMS: int = 5

    # Gemini (margin analysis + invoice scanning)
    GEMINI_API_KEY: Optional[str] = None
    AI_MODEL: str = "gemini-3-flash-preview"
    AI_BASE_URL: str = "https://generativelanguage.googleapis.com/v1beta"
    AI_TIMEOUT_SECONDS: float = 60.0
    AI_MAX_OUTPUT_TOKENS: int = 8192

    class Config:
        env_file = ".env"
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    return Settings()
