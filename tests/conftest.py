"""
Pytest configuration for querybench.

Provides fixtures for:
- A deterministic fake clock and scripted connection handle for unit tests
- Fake provisioner / dataset generator for orchestrator tests
- Settings and database availability checks for integration tests
"""

from __future__ import annotations

import os
from typing import List

import psycopg
import pytest

from querybench.config import Settings, build_dsn
from querybench.domain.models import QueryVariant
from querybench.registry import QueryRegistry

from tests.fakes import FakeClock, FakeHandle, make_variant


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def variants() -> List[QueryVariant]:
    return [make_variant(i) for i in (1, 2, 3)]


@pytest.fixture
def registry(variants: List[QueryVariant]) -> QueryRegistry:
    return QueryRegistry(variants)


@pytest.fixture
def handle(clock: FakeClock) -> FakeHandle:
    return FakeHandle(clock)


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """
    Settings fixture with test-specific overrides.

    Can be overridden via environment variables in CI or local testing.
    """
    return Settings(
        db_host=os.getenv("DB_HOST", "localhost"),
        db_port=int(os.getenv("DB_PORT", "5432")),
        db_user=os.getenv("DB_USER", "bench"),
        db_password=os.getenv("DB_PASSWORD", "bench"),
        db_name=os.getenv("DB_NAME", "benchmark"),
        db_connect_timeout=5,
        log_level="DEBUG",
    )


@pytest.fixture(scope="session")
def test_dsn(test_settings: Settings) -> str:
    return build_dsn(test_settings)


@pytest.fixture(scope="session")
def db_connection_available(test_dsn: str) -> bool:
    """
    Check if database is reachable.

    Used to conditionally skip integration tests when DB is not available.
    """
    try:
        with psycopg.connect(test_dsn, connect_timeout=5) as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT 1;")
                cur.fetchone()
        return True
    except psycopg.Error:
        return False


@pytest.fixture
def require_db(db_connection_available: bool) -> None:
    if not db_connection_available:
        pytest.skip("Database not available for integration tests")
