"""
Write-once JSON report files.

Reports are an audit trail: every file name carries the run timestamp and
files are opened in exclusive-create mode, so an existing report is never
replaced. Two runs within the same timestamp get a numeric suffix.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from tenantmigrate.migration.models import (
    DecommissionReport,
    MigrationPlan,
    MigrationRunReport,
    ValidationReport,
)
from tenantmigrate.serialization import json_dumps

logger = logging.getLogger(__name__)


def file_timestamp(moment: datetime | None = None) -> str:
    """
    Format a timestamp for use in a file name.

    Example:
        >>> file_timestamp(datetime(2025, 12, 1, 11, 39, 26, 512000, tzinfo=UTC))
        '2025-12-01T11-39-26-512000+00-00'
    """
    moment = moment or datetime.now(UTC)
    return moment.isoformat().replace(":", "-").replace(".", "-")


def write_new_json(path: Path, payload: Any) -> None:
    """
    Write JSON to a file that must not exist yet.

    Raises:
        FileExistsError: If the file already exists
    """
    with path.open("x", encoding="utf-8") as f:
        f.write(json_dumps(payload, indent=2))


class ReportWriter:
    """
    Writes pipeline reports into one directory.

    Example:
        >>> writer = ReportWriter("reports")
        >>> path = writer.write_migration_report(report)
        >>> path.name
        'migration-results-dry-run-2025-12-01T11-39-26-512000+00-00.json'
    """

    def __init__(self, directory: str | Path = ".") -> None:
        self._directory = Path(directory)

    @property
    def directory(self) -> Path:
        return self._directory

    def write(self, stem: str, payload: dict[str, Any]) -> Path:
        """
        Write a report as ``<stem>.json``, adding ``-<n>`` if the name is taken.

        Returns:
            Path of the written file
        """
        self._directory.mkdir(parents=True, exist_ok=True)
        attempt = 0
        while True:
            name = f"{stem}.json" if attempt == 0 else f"{stem}-{attempt}.json"
            path = self._directory / name
            try:
                write_new_json(path, payload)
            except FileExistsError:
                attempt += 1
                continue
            logger.info("Wrote report %s", path)
            return path

    def write_migration_report(self, report: MigrationRunReport) -> Path:
        stem = f"migration-results-{report.mode.value}-{file_timestamp(report.timestamp)}"
        return self.write(stem, report.to_dict())

    def write_validation_report(self, report: ValidationReport) -> Path:
        stem = f"migration-validation-report-{file_timestamp(report.timestamp)}"
        return self.write(stem, report.to_dict())

    def write_decommission_report(self, report: DecommissionReport) -> Path:
        stem = f"decommission-report-{file_timestamp(report.timestamp)}"
        return self.write(stem, report.to_dict())

    def write_plan(self, plan: MigrationPlan) -> Path:
        stem = f"migration-plan-{file_timestamp(plan.timestamp)}"
        return self.write(stem, plan.to_dict())


__all__ = [
    "ReportWriter",
    "file_timestamp",
    "write_new_json",
]
