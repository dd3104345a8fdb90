"""
Shared pytest fixtures for integration tests.

This module provides file-backed SQLite stores, one holding the legacy
environment and one holding the company-scoped environment, so a test can
migrate between two databases the way a live run migrates between stores.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from pathlib import Path

import pytest
import pytest_asyncio

from tenantmigrate.config import PipelineConfig
from tests.conftest import AIOSQLITE_AVAILABLE
from tests.fixtures import create_pipeline_tables

# ============================================================================
# Pytest Configuration
# ============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers for integration tests."""
    config.addinivalue_line("markers", "integration: marks tests as integration tests")


# ============================================================================
# Skip Conditions
# ============================================================================

skip_if_no_aiosqlite = pytest.mark.skipif(
    not AIOSQLITE_AVAILABLE, reason="aiosqlite not installed"
)


# ============================================================================
# Store Fixtures
# ============================================================================


@pytest.fixture
def integration_config() -> PipelineConfig:
    """Staging naming with a page size that splits every table into pages."""
    return PipelineConfig(environment="staging", page_size=3)


@pytest_asyncio.fixture
async def legacy_store(
    tmp_path: Path, integration_config: PipelineConfig
) -> AsyncGenerator:
    """A SQLite database holding the per-user tables."""
    if not AIOSQLITE_AVAILABLE:
        pytest.skip("aiosqlite not installed")

    from tenantmigrate.stores import SQLiteTableStore

    store = SQLiteTableStore(str(tmp_path / "legacy.db"), enable_tracing=False)
    await store.initialize()
    await create_pipeline_tables(store, integration_config, company=False, membership=False)
    yield store
    await store.close()


@pytest_asyncio.fixture
async def company_store(
    tmp_path: Path, integration_config: PipelineConfig
) -> AsyncGenerator:
    """A SQLite database holding the company-scoped and membership tables."""
    if not AIOSQLITE_AVAILABLE:
        pytest.skip("aiosqlite not installed")

    from tenantmigrate.stores import SQLiteTableStore

    store = SQLiteTableStore(str(tmp_path / "company.db"), enable_tracing=False)
    await store.initialize()
    await create_pipeline_tables(store, integration_config, legacy=False)
    yield store
    await store.close()
