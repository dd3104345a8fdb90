"""
MigrationPipeline - single entry point chaining the migration stages.

Stages take and return explicit values:
    snapshot -> SnapshotSummary
    migrate  -> MigrationRunReport
    validate -> ValidationReport
    decommission (explicit call only) -> DecommissionReport

When a ReportWriter is given, every migration, validation and decommission
report is also written to a timestamped file.

Usage:
    >>> pipeline = MigrationPipeline(store, store, config, report_writer=ReportWriter("reports"))
    >>> result = await pipeline.run(MigrationMode.EXECUTE, snapshot_directory="backups/run-1")
    >>> result.success
    True
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from tenantmigrate.config import PipelineConfig
from tenantmigrate.migration.decommission import DecommissionSequencer, ResourceDeleter
from tenantmigrate.migration.driver import MigrationDriver
from tenantmigrate.migration.identity import ScopeMapping
from tenantmigrate.migration.models import (
    DecommissionReport,
    MigrationMode,
    MigrationPlan,
    MigrationRunReport,
    SnapshotSummary,
    ValidationReport,
)
from tenantmigrate.migration.planner import MigrationPlanner
from tenantmigrate.migration.reports import ReportWriter
from tenantmigrate.migration.snapshot import SnapshotStore
from tenantmigrate.migration.validator import MigrationValidator
from tenantmigrate.observability import Tracer, create_tracer
from tenantmigrate.stores.interface import TableStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PipelineResult:
    """
    Outcome of a pipeline run.

    Attributes:
        migration: Migration report
        snapshot: Snapshot summary, if a snapshot was taken
        validation: Validation report, if validation ran (execute mode only)
    """

    migration: MigrationRunReport
    snapshot: SnapshotSummary | None = None
    validation: ValidationReport | None = None

    @property
    def success(self) -> bool:
        if self.snapshot is not None and not self.snapshot.success:
            return False
        if not self.migration.success:
            return False
        return self.validation is None or self.validation.all_success


class MigrationPipeline:
    """
    Runs the migration stages against one pair of stores.

    Args:
        source_store: Store holding the legacy tables
        target_store: Store holding the company-scoped and membership tables
        config: Pipeline configuration (defaults to production naming)
        report_writer: Writes reports to files when given
        tracer: Optional custom Tracer instance
        enable_tracing: Whether to enable tracing (default True)
    """

    def __init__(
        self,
        source_store: TableStore,
        target_store: TableStore,
        config: PipelineConfig | None = None,
        *,
        report_writer: ReportWriter | None = None,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        self._source = source_store
        self._target = target_store
        self._config = config or PipelineConfig()
        self._report_writer = report_writer
        self._tracer = tracer or create_tracer(__name__, enable_tracing)

    @property
    def config(self) -> PipelineConfig:
        return self._config

    async def snapshot(
        self,
        directory: str | Path,
        tables: list[str] | tuple[str, ...] | None = None,
    ) -> SnapshotSummary:
        """Capture tables (default: the full inventory) of the source store."""
        snapshots = SnapshotStore(
            self._source,
            directory,
            page_size=self._config.page_size,
            tracer=self._tracer,
        )
        return await snapshots.snapshot_all(tables or self._config.snapshot_tables)

    async def plan(self, directory: str | Path) -> MigrationPlan:
        """Compute a migration plan from a snapshot directory."""
        plan = await MigrationPlanner(directory, self._config, tracer=self._tracer).plan()
        if self._report_writer is not None:
            self._report_writer.write_plan(plan)
        return plan

    async def migrate(
        self,
        mode: MigrationMode,
        *,
        source_store: TableStore | None = None,
        scope: ScopeMapping | None = None,
    ) -> MigrationRunReport:
        """
        Migrate every legacy table.

        Args:
            mode: DRY_RUN or EXECUTE
            source_store: Overrides the legacy store, e.g. a SnapshotTableStore
            scope: Mapping to use; built from the membership table when None
        """
        driver = MigrationDriver(
            source_store or self._source,
            self._target,
            self._config,
            tracer=self._tracer,
        )
        report = await driver.run(mode, scope)
        if self._report_writer is not None:
            self._report_writer.write_migration_report(report)
        return report

    async def validate(self) -> ValidationReport:
        """Validate every legacy table against its target with a fresh mapping."""
        validator = MigrationValidator(
            self._source,
            self._target,
            self._config,
            tracer=self._tracer,
        )
        report = await validator.run()
        if self._report_writer is not None:
            self._report_writer.write_validation_report(report)
        return report

    async def decommission(
        self,
        deleter: ResourceDeleter,
        *,
        functions: list[str] | tuple[str, ...] | None = None,
        tables: list[str] | tuple[str, ...] | None = None,
    ) -> DecommissionReport:
        """
        Delete legacy functions, then legacy tables.

        Only call this after a validation report with nothing missing or
        mismatched.
        """
        sequencer = DecommissionSequencer(deleter, tracer=self._tracer)
        report = await sequencer.run(
            self._config.legacy_functions if functions is None else functions,
            self._config.legacy_tables if tables is None else tables,
        )
        if self._report_writer is not None:
            self._report_writer.write_decommission_report(report)
        return report

    async def run(
        self,
        mode: MigrationMode,
        *,
        snapshot_directory: str | Path | None = None,
    ) -> PipelineResult:
        """
        Snapshot (optional), migrate, then validate in execute mode.

        A snapshot with failed tables stops the run before migrating.
        Decommission is never part of run().
        """
        summary = None
        if snapshot_directory is not None:
            summary = await self.snapshot(snapshot_directory)
            if not summary.success:
                logger.error(
                    "Snapshot failed for %d tables, not migrating", summary.failed_backups
                )
                return PipelineResult(
                    migration=MigrationRunReport(
                        mode=mode, timestamp=summary.backup_timestamp, results=()
                    ),
                    snapshot=summary,
                )

        migration = await self.migrate(mode)
        validation = None
        if mode is MigrationMode.EXECUTE:
            validation = await self.validate()
        return PipelineResult(migration=migration, snapshot=summary, validation=validation)


__all__ = ["MigrationPipeline", "PipelineResult"]
