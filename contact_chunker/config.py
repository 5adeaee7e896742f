"""
Service configuration using Pydantic Settings.

Values come from environment variables or a local .env file.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

from .rules import CHUNK_SIZE


class Settings(BaseSettings):
    """Service settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    API_TITLE: str = "contact-chunker"
    API_VERSION: str = "0.1.0"
    API_DESCRIPTION: str = "Split uploaded contact lists into fixed-size groups"

    CHUNK_SIZE: int = CHUNK_SIZE
    MAX_UPLOAD_MB: int = 10

    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    @property
    def max_upload_bytes(self) -> int:
        return self.MAX_UPLOAD_MB * 1024 * 1024


@lru_cache()
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
