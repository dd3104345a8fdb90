"""
Unit tests for MigrationPlanner.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from tenantmigrate.config import PipelineConfig
from tenantmigrate.entities import EntityType
from tenantmigrate.migration import MigrationPlanner, OwnerPlan, SnapshotError, SnapshotStore
from tenantmigrate.stores import InMemoryTableStore
from tests.fixtures import (
    add_membership,
    make_contractor,
    make_expense,
    make_project,
    make_work,
    seed_records,
)


async def _snapshot(store: InMemoryTableStore, config: PipelineConfig, directory: Path) -> None:
    tables = await store.list_tables()
    summary = await SnapshotStore(store, directory, enable_tracing=False).snapshot_all(tables)
    assert summary.success


class TestMigrationPlanner:
    """Tests for MigrationPlanner.plan."""

    @pytest.mark.asyncio
    async def test_plan_from_snapshot(
        self, pipeline_store: InMemoryTableStore, config: PipelineConfig, tmp_path: Path
    ) -> None:
        await add_membership(pipeline_store, config, "u1", "companyA")
        await add_membership(pipeline_store, config, "u3", "companyA")
        await seed_records(
            pipeline_store,
            config,
            EntityType.EXPENSE,
            [make_expense("u1", "e1"), make_expense("u1", "e2"), make_expense("u2", "e3")],
        )
        await seed_records(pipeline_store, config, EntityType.PROJECT, [make_project("u3")])
        await seed_records(pipeline_store, config, EntityType.CONTRACTOR, [make_contractor("u2")])
        await seed_records(pipeline_store, config, EntityType.WORK, [make_work("u1")])
        await _snapshot(pipeline_store, config, tmp_path)

        plan = await MigrationPlanner(tmp_path, config, enable_tracing=False).plan()

        assert plan.total_legacy_records == 6
        assert plan.legacy_counts[config.mapping_for(EntityType.EXPENSE).source_table] == 3
        assert [owner.owner_id for owner in plan.owners] == ["u1", "u2", "u3"]

        u1, u2, u3 = plan.owners
        assert u1.tenant_id == "companyA"
        assert u1.mapping_source == "membership"
        assert u1.record_counts == {"expense": 2, "work": 1}
        assert u1.total_records == 3
        assert u2.tenant_id == "u2"
        assert u2.mapping_source == "fallback"
        assert u3.record_counts == {"project": 1}

        assert plan.projected_tenants == 2
        assert plan.fallback_owners == 1
        assert plan.missing_tables == ()
        assert all(count == 0 for count in plan.company_counts.values())

    @pytest.mark.asyncio
    async def test_existing_company_records_are_counted(
        self, pipeline_store: InMemoryTableStore, config: PipelineConfig, tmp_path: Path
    ) -> None:
        target = config.mapping_for(EntityType.CONTRACTOR).target_table
        await pipeline_store.put_item(
            target, {"companyId": "companyA", "contractorId": "c9", "name": "Existing"}
        )
        await _snapshot(pipeline_store, config, tmp_path)

        plan = await MigrationPlanner(tmp_path, config, enable_tracing=False).plan()

        assert plan.company_counts[target] == 1

    @pytest.mark.asyncio
    async def test_missing_snapshot_files(self, config: PipelineConfig, tmp_path: Path) -> None:
        """An empty directory plans nothing and lists every expected table."""
        plan = await MigrationPlanner(tmp_path, config, enable_tracing=False).plan()

        assert plan.total_legacy_records == 0
        assert plan.owners == ()
        assert config.membership_table in plan.missing_tables
        assert len(plan.missing_tables) == 9

    @pytest.mark.asyncio
    async def test_malformed_snapshot_raises(
        self, config: PipelineConfig, tmp_path: Path
    ) -> None:
        source = config.mapping_for(EntityType.EXPENSE).source_table
        (tmp_path / f"{source}.json").write_text("[]", encoding="utf-8")

        with pytest.raises(SnapshotError):
            await MigrationPlanner(tmp_path, config, enable_tracing=False).plan()

    @pytest.mark.asyncio
    async def test_plan_layout(
        self, pipeline_store: InMemoryTableStore, config: PipelineConfig, tmp_path: Path
    ) -> None:
        await seed_records(pipeline_store, config, EntityType.EXPENSE, [make_expense("u5")])
        await _snapshot(pipeline_store, config, tmp_path)

        data = (await MigrationPlanner(tmp_path, config, enable_tracing=False).plan()).to_dict()

        assert data["snapshotDirectory"] == str(tmp_path)
        assert data["owners"] == [
            {
                "userId": "u5",
                "companyId": "u5",
                "mappingSource": "fallback",
                "recordCounts": {"expense": 1},
                "totalRecords": 1,
            }
        ]
        assert data["summary"] == {
            "totalLegacyRecords": 1,
            "uniqueOwners": 1,
            "projectedTenants": 1,
            "fallbackOwners": 1,
        }


class TestOwnerPlan:
    def test_keys_follow_configured_fields(self) -> None:
        plan = OwnerPlan(
            owner_id="u1",
            tenant_id="orgA",
            mapping_source="membership",
            record_counts={"expense": 2},
            owner_field="memberId",
            tenant_field="orgId",
        )

        assert plan.to_dict() == {
            "memberId": "u1",
            "orgId": "orgA",
            "mappingSource": "membership",
            "recordCounts": {"expense": 2},
            "totalRecords": 2,
        }
