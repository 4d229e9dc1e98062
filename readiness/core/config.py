"""
Configuration module - loads all env vars using pydantic-settings.
This is the SINGLE SOURCE OF TRUTH for all config values.
"""

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Storage backend: "mongo" for MongoDB, "memory" for an in-process store
    storage_backend: Literal["mongo", "memory"] = "mongo"

    # MongoDB
    mongodb_uri: str = "mongodb://localhost:27017"
    mongodb_db: str = "placement_readiness"

    # Readiness scoring
    consistency_window_days: int = 30
    max_update_retries: int = 3

    # Job matching
    min_skill_match_percentage: float = 10.0
    max_matches_per_job: int = 50
    enforce_job_thresholds: bool = False

    # App
    log_level: str = "INFO"
    debug: bool = False

    # Pydantic v2 config
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8"
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()
