"""
Shared pytest fixtures for the tenantmigrate tests.

This module provides:
- Configuration fixtures (config, staging_config)
- Store fixtures (memory_store, pipeline_store, sqlite_store)
- Tracing fixtures (mock_tracer)
- Deterministic clock fixtures (fixed_now)

All fixtures are function scoped so every test starts from empty tables.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from datetime import UTC, datetime

import pytest
import pytest_asyncio

from tenantmigrate.config import PipelineConfig
from tenantmigrate.observability import MockTracer
from tenantmigrate.stores import InMemoryTableStore
from tests.fixtures import create_pipeline_tables

# ============================================================================
# SQLite Availability Check
# ============================================================================

AIOSQLITE_AVAILABLE = False
try:
    import aiosqlite  # noqa: F401

    AIOSQLITE_AVAILABLE = True
except ImportError:
    pass


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers for tests."""
    config.addinivalue_line("markers", "sqlite: marks tests that require SQLite (aiosqlite)")


# ============================================================================
# Skip Condition
# ============================================================================

skip_if_no_aiosqlite = pytest.mark.skipif(not AIOSQLITE_AVAILABLE, reason="aiosqlite not installed")


# =============================================================================
# Configuration Fixtures
# =============================================================================


@pytest.fixture
def config() -> PipelineConfig:
    """Production naming with a small page size, so pagination is exercised."""
    return PipelineConfig(page_size=2)


@pytest.fixture
def staging_config() -> PipelineConfig:
    """Configuration for the staging environment."""
    return PipelineConfig(environment="staging")


@pytest.fixture
def fixed_now() -> datetime:
    """A fixed timestamp for deterministic provenance stamps."""
    return datetime(2025, 12, 1, 11, 39, 26, 512000, tzinfo=UTC)


# =============================================================================
# Tracing Fixtures
# =============================================================================


@pytest.fixture
def mock_tracer() -> MockTracer:
    """A tracer that records span names and attributes."""
    return MockTracer()


# =============================================================================
# Store Fixtures
# =============================================================================


@pytest.fixture
def memory_store() -> InMemoryTableStore:
    """An empty in-memory store without tracing."""
    return InMemoryTableStore(enable_tracing=False)


@pytest_asyncio.fixture
async def pipeline_store(
    memory_store: InMemoryTableStore,
    config: PipelineConfig,
) -> InMemoryTableStore:
    """An in-memory store with every legacy, company and membership table created."""
    await create_pipeline_tables(memory_store, config)
    return memory_store


@pytest_asyncio.fixture
async def sqlite_store() -> AsyncGenerator:
    """An initialized SQLite store on an in-memory database."""
    if not AIOSQLITE_AVAILABLE:
        pytest.skip("aiosqlite not installed")

    from tenantmigrate.stores import SQLiteTableStore

    store = SQLiteTableStore(":memory:", enable_tracing=False)
    await store.initialize()
    yield store
    await store.close()
