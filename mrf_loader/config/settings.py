# Configuration management

from functools import lru_cache
from typing import List, Optional

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

LOCAL_HOSTS = {"localhost", "127.0.0.1", "::1"}


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database (defaults are for local development only)
    db_host: str = "localhost"
    db_port: int = 5432
    db_user: str = "postgres"
    db_password: str = ""
    db_name: str = "healthcare_saver"
    db_ssl: bool = False
    db_driver: str = "postgresql+psycopg2"
    # Full SQLAlchemy URL; takes precedence over the db_* parts when set
    database_url: Optional[str] = None
    db_pool_size: int = 10
    db_max_overflow: int = 0
    db_pool_recycle_seconds: int = 300
    db_echo: bool = False

    # Ingestion
    batch_size: int = 100
    json_extensions: List[str] = [".json"]
    batch_max_attempts: int = 1  # 1 = never retry
    batch_retry_wait_seconds: float = 1.0

    # Logging
    log_level: str = "INFO"
    log_json: bool = True

    # Observability
    metrics_enabled: bool = True

    @field_validator("batch_size", "batch_max_attempts", "db_pool_size")
    @classmethod
    def _positive(cls, value: int) -> int:
        if value < 1:
            raise ValueError("must be at least 1")
        return value

    @field_validator("db_max_overflow", "batch_retry_wait_seconds")
    @classmethod
    def _non_negative(cls, value: float) -> float:
        if value < 0:
            raise ValueError("must not be negative")
        return value

    @field_validator("json_extensions")
    @classmethod
    def _normalize_extensions(cls, value: List[str]) -> List[str]:
        normalized = []
        for ext in value:
            ext = ext.strip().lower()
            if not ext:
                continue
            normalized.append(ext if ext.startswith(".") else f".{ext}")
        if not normalized:
            raise ValueError("at least one file extension is required")
        return normalized

    @model_validator(mode="after")
    def _refuse_default_credentials_remotely(self) -> "Settings":
        if self.database_url is None and self.db_host not in LOCAL_HOSTS and not self.db_password:
            raise ValueError(
                f"DB_PASSWORD is required when connecting to non-local host {self.db_host!r}"
            )
        return self


@lru_cache()
def get_settings() -> Settings:
    return Settings()
