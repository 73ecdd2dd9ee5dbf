"""Process-wide settings.

Settings are read from the environment with the ``ROW_RECORD_`` prefix;
nested fields use ``__`` (e.g. ``ROW_RECORD_DATABASE__DRIVER=sqlite``).
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from row_record.core.connection import ConnectionConfig


class Settings(BaseSettings):
    """Settings used when no explicit configuration is given."""

    model_config = SettingsConfigDict(
        env_prefix="ROW_RECORD_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    database: ConnectionConfig | None = Field(
        default=None, description="Connection used by establish_connection() without arguments"
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Log level"
    )
    log_format: Literal["json", "console"] = Field(default="console", description="Log format")
    log_statements: bool = Field(
        default=True, description="Log every executed statement at debug level"
    )


@lru_cache
def get_settings() -> Settings:
    """Get the cached settings instance."""
    return Settings()


def reset_settings() -> None:
    """Drop the cached settings so the environment is read again."""
    get_settings.cache_clear()
