"""
Configuration settings for querybench.

Uses Pydantic Settings to load environment variables for the database
connection, logging, and benchmark defaults. CLI options override the
benchmark defaults per invocation.
"""
from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Database
    db_host: str = Field("localhost", alias="DB_HOST")
    db_port: int = Field(5432, alias="DB_PORT")
    db_user: str = Field("bench", alias="DB_USER")
    db_password: str = Field("bench", alias="DB_PASSWORD")
    db_name: str = Field("benchmark", alias="DB_NAME")
    db_connect_timeout: int = Field(10, alias="DB_CONNECT_TIMEOUT")

    # Application
    app_env: str = Field("development", alias="APP_ENV")
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_json: bool = Field(False, alias="LOG_JSON")

    # Benchmark defaults
    benchmark_warmup_count: int = Field(3, ge=0, alias="BENCHMARK_WARMUP_COUNT")
    benchmark_measured_count: int = Field(10, ge=1, alias="BENCHMARK_MEASURED_COUNT")
    benchmark_person_count: int = Field(500, ge=1, alias="BENCHMARK_PERSON_COUNT")
    benchmark_record_count: int = Field(50_000, ge=0, alias="BENCHMARK_RECORD_COUNT")
    benchmark_timeout_seconds: float = Field(30.0, gt=0, alias="BENCHMARK_TIMEOUT_SECONDS")
    benchmark_seed: int = Field(42, alias="BENCHMARK_SEED")
    benchmark_execution_mode: str = Field("interleaved", alias="BENCHMARK_EXECUTION_MODE")
    results_dir: str = Field("results", alias="RESULTS_DIR")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Retrieve a cached instance of Settings to avoid repeated env parsing.
    """
    return Settings()


def build_dsn(settings: Settings | None = None) -> str:
    """Compose a PostgreSQL DSN string from settings."""
    settings = settings or get_settings()
    return (
        f"postgresql://{settings.db_user}:{settings.db_password}"
        f"@{settings.db_host}:{settings.db_port}/{settings.db_name}"
    )


__all__ = ["Settings", "build_dsn", "get_settings"]
