"""
Unit tests for RecordTransformer.
"""

from __future__ import annotations

from datetime import datetime

import pytest

from tenantmigrate.entities import EntityType
from tenantmigrate.migration import (
    MIGRATED_AT_FIELD,
    MIGRATED_FROM_FIELD,
    PROVENANCE_FIELDS,
    RecordTransformer,
)
from tests.fixtures import make_expense, make_work


@pytest.fixture
def transformer(fixed_now: datetime) -> RecordTransformer:
    return RecordTransformer.for_entity(EntityType.EXPENSE, clock=lambda: fixed_now)


class TestTransform:
    """Tests for RecordTransformer.transform."""

    def test_sets_tenant_and_provenance(self, transformer: RecordTransformer) -> None:
        migrated = transformer.transform(make_expense(), "companyA")

        assert migrated["companyId"] == "companyA"
        assert migrated[MIGRATED_FROM_FIELD] == "multi-table-architecture"
        assert migrated[MIGRATED_AT_FIELD] == "2025-12-01T11:39:26.512000+00:00"

    def test_keeps_every_source_field(self, transformer: RecordTransformer) -> None:
        """The owner identity and business fields are carried over unchanged."""
        record = make_expense(receiptImage="s3://receipts/e1.jpg", amount=1234.5)

        migrated = transformer.transform(record, "companyA")

        for name, value in record.items():
            assert migrated[name] == value
        assert set(migrated) == set(record) | {"companyId"} | PROVENANCE_FIELDS

    def test_source_record_is_not_modified(self, transformer: RecordTransformer) -> None:
        record = make_expense()
        before = dict(record)

        transformer.transform(record, "companyA")

        assert record == before

    def test_is_deterministic_with_fixed_clock(self, transformer: RecordTransformer) -> None:
        record = make_expense()

        assert transformer.transform(record, "companyA") == transformer.transform(
            record, "companyA"
        )

    def test_existing_tenant_field_is_replaced(self, transformer: RecordTransformer) -> None:
        migrated = transformer.transform(make_expense(companyId="stale"), "companyA")

        assert migrated["companyId"] == "companyA"

    def test_custom_tenant_field_and_tag(self, fixed_now: datetime) -> None:
        transformer = RecordTransformer(
            tenant_field="orgId", source_tag="legacy-v1", clock=lambda: fixed_now
        )

        migrated = transformer.transform(make_expense(), "org1")

        assert migrated["orgId"] == "org1"
        assert "companyId" not in migrated
        assert migrated[MIGRATED_FROM_FIELD] == "legacy-v1"
        assert transformer.tenant_field == "orgId"
        assert transformer.source_tag == "legacy-v1"

    def test_empty_source_tag_is_rejected(self) -> None:
        with pytest.raises(ValueError):
            RecordTransformer(source_tag="")


class TestLegacyAliases:
    """Tests for legacy field name aliases."""

    def test_work_legacy_names_are_copied(self, fixed_now: datetime) -> None:
        transformer = RecordTransformer.for_entity(EntityType.WORK, clock=lambda: fixed_now)
        record = make_work()
        del record["WorkName"]
        del record["TotalWorkCost"]
        record["workName"] = "Tiling"
        record["totalWorkCost"] = 8000

        migrated = transformer.transform(record, "companyA")

        assert migrated["WorkName"] == "Tiling"
        assert migrated["TotalWorkCost"] == 8000
        assert migrated["workName"] == "Tiling"

    def test_current_names_win_over_legacy_names(self, fixed_now: datetime) -> None:
        transformer = RecordTransformer.for_entity(EntityType.WORK, clock=lambda: fixed_now)

        migrated = transformer.transform(make_work(workName="Old name"), "companyA")

        assert migrated["WorkName"] == "Work w1"

    def test_other_entities_have_no_aliases(self, transformer: RecordTransformer) -> None:
        migrated = transformer.transform(make_expense(workName="x"), "companyA")

        assert "WorkName" not in migrated
