from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def sqlite_url_for_path(path: str) -> str:
    return f"sqlite+aiosqlite:///{Path(path).expanduser()}"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    PROJECT_NAME: str = "Gantt API"
    API_V1_STR: str = "/api/v1"

    # DATABASE_URL wins when set; otherwise the file store at DB_PATH is used.
    DB_PATH: str = "data/gantt.db"
    DATABASE_URL: str | None = None
    SQLITE_BUSY_TIMEOUT: float = 30.0
    MIGRATION_LOCK_KEY: int = 72_114_001

    # Only token signing needs the key; the repair command runs without it.
    SECRET_KEY: str | None = None
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7
    ALGORITHM: str = "HS256"

    SERVER_URL: str = "http://localhost:3001"
    CONNECTIVITY_POLL_SECONDS: float = Field(default=30.0, gt=0)
    CONNECTIVITY_RETRY_SECONDS: float = Field(default=5.0, gt=0)
    CONNECTIVITY_PING_TIMEOUT: float = Field(default=10.0, gt=0)

    LOG_LEVEL: str = "INFO"

    @field_validator("DATABASE_URL", "SECRET_KEY", mode="before")
    @classmethod
    def blank_is_unset(cls, value: str | None) -> str | None:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def normalize_log_level(cls, value: str | None) -> str:
        if not value:
            return "INFO"
        return str(value).strip().upper()

    @property
    def database_url(self) -> str:
        return self.DATABASE_URL or sqlite_url_for_path(self.DB_PATH)


# Settings are read once per process; tests build their own instances.
@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
