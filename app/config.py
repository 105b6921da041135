# app/config.py
from typing import Literal
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    # App
    APP_ENV: Literal["dev", "prod", "staging", "test"] = "dev"

    # Store
    STORE_BACKEND: Literal["memory", "redis"] = "memory"
    REDIS_URL: str = "redis://localhost:6379/0"
    SEED_SAMPLE_FLIGHTS: bool = False

    # Booking references, e.g. ACB7Q2K9Z
    REF_PREFIX: str = "ACB"
    REF_MAX_ATTEMPTS: int = 20

    # Route search
    MIN_LAYOVER_MINUTES: int = 120
    TRANSIT_WINDOW_DAYS: int = 2
    SECOND_HOP_LIMIT: int = 3
    ROUTE_SEARCH_WORKERS: int = 4

    # read .env and ignore any extra keys so this doesn't break again
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

settings = Settings()
