"""Application configuration via pydantic settings."""

import logging
import os
from functools import lru_cache
from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class Settings(BaseSettings):
    """Typed application configuration, read from ``MEDTRACK_*`` variables."""

    data_dir: str = Field("~/.medtrack", validate_default=True)
    log_level: str = "INFO"
    tick_seconds: int = Field(60, ge=1)
    chart_days: int = Field(14, ge=1)

    model_config = SettingsConfigDict(
        env_prefix="MEDTRACK_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @field_validator("data_dir")
    @classmethod
    def _expand_user(cls, value: str) -> str:
        return os.path.expanduser(value)

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper(cls, value: Any) -> Any:
        return value.upper() if isinstance(value, str) else value


@lru_cache
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=getattr(logging, level, logging.INFO), format=LOG_FORMAT)
