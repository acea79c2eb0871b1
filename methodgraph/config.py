from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Catalog
    CATALOG_PATH: str = "data/methods.json"

    # Server-side layout surface
    VIEWPORT_WIDTH: int = 1200
    VIEWPORT_HEIGHT: int = 800
    LAYOUT_MAX_TICKS: int = 300
    LAYOUT_SEED: int = 42

    # View defaults
    NODE_SPACING: float = Field(default=1.5, ge=0.5, le=3.0)
    SIMILARITY_THRESHOLD: float = 0.3
    MAX_SIMILAR_LINKS: int = 4

    # Frame loop / rebuilds
    FRAME_RATE: int = 60
    REBUILD_DEBOUNCE_MS: int = 150
    INIT_RETRY_ATTEMPTS: int = 5
    INIT_RETRY_DELAY_MS: int = 50

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = Field(default="json", description="'json' for production, 'console' for dev")


def get_settings() -> Settings:
    return Settings()
