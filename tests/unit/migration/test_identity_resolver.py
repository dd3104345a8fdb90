"""
Unit tests for ScopeMapping and IdentityResolver.
"""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from tenantmigrate.config import PipelineConfig
from tenantmigrate.exceptions import StoreError
from tenantmigrate.migration import IdentityResolver, ScopeMapping, UnmappedOwnerError
from tenantmigrate.observability import MockTracer
from tenantmigrate.stores import InMemoryTableStore
from tests.fixtures import add_membership


def _resolver(store, config: PipelineConfig, **kwargs) -> IdentityResolver:
    return IdentityResolver(
        store,
        config.membership_table,
        page_size=config.page_size,
        enable_tracing=False,
        **kwargs,
    )


class TestScopeMapping:
    """Tests for ScopeMapping.resolve and friends."""

    def test_mapped_owner(self) -> None:
        mapping = ScopeMapping({"u1": "companyA"})

        assert mapping.resolve("u1") == "companyA"
        assert mapping.is_mapped("u1") is True
        assert "u1" in mapping

    def test_unmapped_owner_falls_back_to_itself(self) -> None:
        mapping = ScopeMapping({"u1": "companyA"})

        assert mapping.resolve("u2") == "u2"
        assert mapping.is_mapped("u2") is False

    def test_strict_rejects_unmapped_owner(self) -> None:
        mapping = ScopeMapping({"u1": "companyA"}, strict=True)

        assert mapping.resolve("u1") == "companyA"
        with pytest.raises(UnmappedOwnerError) as exc_info:
            mapping.resolve("u2")
        assert exc_info.value.owner_id == "u2"

    def test_entries_are_read_only(self) -> None:
        source = {"u1": "companyA"}
        mapping = ScopeMapping(source)

        source["u2"] = "companyB"

        assert len(mapping) == 1
        with pytest.raises(TypeError):
            mapping.entries["u3"] = "companyC"  # type: ignore[index]

    def test_tenants(self) -> None:
        mapping = ScopeMapping({"u1": "companyA", "u2": "companyA", "u3": "companyB"})

        assert mapping.tenants() == {"companyA", "companyB"}

    def test_empty(self) -> None:
        mapping = ScopeMapping.empty()

        assert len(mapping) == 0
        assert mapping.resolve("u1") == "u1"


class TestIdentityResolver:
    """Tests for IdentityResolver.build_cache."""

    @pytest.mark.asyncio
    async def test_builds_mapping_across_pages(
        self, pipeline_store: InMemoryTableStore, config: PipelineConfig
    ) -> None:
        """Memberships spanning several scan pages are all loaded."""
        await add_membership(pipeline_store, config, "u1", "companyA")
        await add_membership(pipeline_store, config, "u2", "companyA", role="editor")
        await add_membership(pipeline_store, config, "u3", "companyB")

        mapping = await _resolver(pipeline_store, config).build_cache()

        assert dict(mapping.entries) == {"u1": "companyA", "u2": "companyA", "u3": "companyB"}
        assert mapping.strict is False

    @pytest.mark.asyncio
    async def test_incomplete_memberships_are_ignored(self, config: PipelineConfig) -> None:
        store = AsyncMock()
        store.scan_all.return_value = [
            {"companyId": "companyA", "userId": "u1"},
            {"companyId": "companyB"},
            {"userId": "u9", "companyId": ""},
        ]

        mapping = await _resolver(store, config).build_cache()

        assert dict(mapping.entries) == {"u1": "companyA"}

    @pytest.mark.asyncio
    async def test_last_membership_wins(
        self, config: PipelineConfig, caplog: pytest.LogCaptureFixture
    ) -> None:
        """A later membership replaces an earlier one for the same owner."""
        store = AsyncMock()
        store.scan_all.return_value = [
            {"companyId": "companyA", "userId": "u1"},
            {"companyId": "companyB", "userId": "u1"},
        ]

        mapping = await _resolver(store, config).build_cache()

        assert mapping.resolve("u1") == "companyB"
        assert "belongs to several tenants" in caplog.text

    @pytest.mark.asyncio
    async def test_scan_failure_yields_empty_mapping(self, config: PipelineConfig) -> None:
        """Every owner falls back when the membership table cannot be read."""
        store = AsyncMock()
        store.scan_all.side_effect = StoreError("throttled")

        mapping = await _resolver(store, config).build_cache()

        assert len(mapping) == 0
        assert mapping.resolve("u1") == "u1"

    @pytest.mark.asyncio
    async def test_missing_membership_table(
        self, memory_store: InMemoryTableStore, config: PipelineConfig
    ) -> None:
        mapping = await _resolver(memory_store, config).build_cache()

        assert len(mapping) == 0

    @pytest.mark.asyncio
    async def test_strict_is_passed_to_mapping(
        self, pipeline_store: InMemoryTableStore, config: PipelineConfig
    ) -> None:
        mapping = await _resolver(pipeline_store, config, strict=True).build_cache()

        assert mapping.strict is True
        with pytest.raises(UnmappedOwnerError):
            mapping.resolve("u1")

    @pytest.mark.asyncio
    async def test_custom_field_names(self, config: PipelineConfig) -> None:
        store = AsyncMock()
        store.scan_all.return_value = [{"orgId": "org1", "memberId": "m1"}]

        mapping = await _resolver(
            store, config, owner_field="memberId", tenant_field="orgId"
        ).build_cache()

        assert mapping.resolve("m1") == "org1"

    @pytest.mark.asyncio
    async def test_emits_span(
        self,
        pipeline_store: InMemoryTableStore,
        config: PipelineConfig,
        mock_tracer: MockTracer,
    ) -> None:
        resolver = IdentityResolver(pipeline_store, config.membership_table, tracer=mock_tracer)

        await resolver.build_cache()

        assert mock_tracer.span_names == ["tenantmigrate.identity.build_cache"]
