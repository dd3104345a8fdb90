"""
Unit tests for ReportWriter and file_timestamp.
"""

from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path

import pytest

from tenantmigrate.migration import (
    DecommissionReport,
    DeletionResult,
    MigrationMode,
    MigrationPlan,
    MigrationRunReport,
    ReportWriter,
    ResourceKind,
    TableMigrationResult,
    TableValidationResult,
    ValidationReport,
    file_timestamp,
)
from tenantmigrate.migration.reports import write_new_json


class TestFileTimestamp:
    def test_is_file_name_safe(self, fixed_now: datetime) -> None:
        assert file_timestamp(fixed_now) == "2025-12-01T11-39-26-512000+00-00"

    def test_defaults_to_now(self) -> None:
        stamp = file_timestamp()

        assert ":" not in stamp
        assert "." not in stamp


class TestWriteNewJson:
    def test_refuses_to_replace(self, tmp_path: Path) -> None:
        path = tmp_path / "report.json"
        write_new_json(path, {"a": 1})

        with pytest.raises(FileExistsError):
            write_new_json(path, {"a": 2})

        assert json.loads(path.read_text(encoding="utf-8")) == {"a": 1}


class TestReportWriter:
    """Tests for ReportWriter."""

    def test_migration_report_name_and_content(
        self, tmp_path: Path, fixed_now: datetime
    ) -> None:
        report = MigrationRunReport(
            mode=MigrationMode.DRY_RUN,
            timestamp=fixed_now,
            results=(TableMigrationResult(table="t1", total_records=3, migrated=2, skipped=1),),
        )

        path = ReportWriter(tmp_path).write_migration_report(report)

        assert path.name == "migration-results-dry-run-2025-12-01T11-39-26-512000+00-00.json"
        data = json.loads(path.read_text(encoding="utf-8"))
        assert data["mode"] == "dry-run"
        assert data["summary"] == {
            "totalRecords": 3,
            "totalMigrated": 2,
            "totalSkipped": 1,
            "totalErrors": 0,
        }

    def test_same_timestamp_gets_suffix(self, tmp_path: Path, fixed_now: datetime) -> None:
        report = ValidationReport(timestamp=fixed_now, results=(TableValidationResult("t1"),))
        writer = ReportWriter(tmp_path)

        first = writer.write_validation_report(report)
        second = writer.write_validation_report(report)
        third = writer.write_validation_report(report)

        assert first.name == "migration-validation-report-2025-12-01T11-39-26-512000+00-00.json"
        assert second.name == "migration-validation-report-2025-12-01T11-39-26-512000+00-00-1.json"
        assert third.name.endswith("-2.json")
        assert len(list(tmp_path.iterdir())) == 3

    def test_creates_directory(self, tmp_path: Path, fixed_now: datetime) -> None:
        writer = ReportWriter(tmp_path / "nested" / "reports")
        report = DecommissionReport(
            timestamp=fixed_now,
            results=(DeletionResult(kind=ResourceKind.TABLE, name="t1", success=True),),
        )

        path = writer.write_decommission_report(report)

        assert path.parent == tmp_path / "nested" / "reports"
        assert path.name.startswith("decommission-report-")
        assert json.loads(path.read_text(encoding="utf-8"))["summary"]["deletedTables"] == 1

    def test_plan(self, tmp_path: Path, fixed_now: datetime) -> None:
        plan = MigrationPlan(
            timestamp=fixed_now,
            snapshot_directory="backups",
            legacy_counts={"t1": 0},
            company_counts={},
            owners=(),
        )

        path = ReportWriter(tmp_path).write_plan(plan)

        assert path.name.startswith("migration-plan-")
        assert json.loads(path.read_text(encoding="utf-8"))["legacyCounts"] == {"t1": 0}

    def test_hebrew_text_is_readable(self, tmp_path: Path) -> None:
        path = ReportWriter(tmp_path).write("notes", {"paymentMethod": "צ'ק"})

        assert "צ'ק" in path.read_text(encoding="utf-8")
