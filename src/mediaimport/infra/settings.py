"""
Application settings for mediaimport.

Values come from the environment or a ``.env`` file. The file is looked up
at ``MEDIAIMPORT_ENV_FILE`` when set, otherwise in the working directory.
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class Settings(BaseSettings):
    """Library database, logging and synchronisation settings."""

    # Library database
    database_url: str = Field(default="sqlite:///mediaimport.db", alias="DATABASE_URL")
    echo_sql: bool = Field(default=False, alias="ECHO_SQL")
    pool_size: int = Field(default=5, alias="DB_POOL_SIZE")
    max_overflow: int = Field(default=10, alias="DB_MAX_OVERFLOW")
    pool_timeout: int = Field(default=30, alias="DB_POOL_TIMEOUT")
    connect_timeout: int = Field(default=30, alias="DB_CONNECT_TIMEOUT")

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_json: bool = Field(default=True, alias="LOG_JSON")
    env: str = Field(default="dev", alias="ENV")  # dev|prod|test

    # Seconds a run waits for another run of the same import; -1 waits forever
    import_lock_timeout: float = Field(default=-1, alias="IMPORT_LOCK_TIMEOUT")

    model_config: SettingsConfigDict = SettingsConfigDict(
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"LOG_LEVEL must be one of {', '.join(LOG_LEVELS)}")
        return level

    @field_validator("import_lock_timeout")
    @classmethod
    def _wait_forever_when_negative(cls, value: float) -> float:
        return -1 if value < 0 else value


def find_env_file() -> Path | None:
    explicit = os.getenv("MEDIAIMPORT_ENV_FILE")
    if explicit:
        path = Path(explicit)
        return path if path.is_file() else None

    local = Path.cwd() / ".env"
    return local if local.is_file() else None


def load_settings() -> Settings:
    env_file = find_env_file()
    if env_file is None:
        return Settings()
    return Settings(_env_file=env_file)  # type: ignore[call-arg]


settings = load_settings()
