"""CLI for tenantmigrate: snapshot, plan, migrate, validate and decommission."""

from __future__ import annotations

import asyncio
import logging
import sys
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path
from typing import TypeVar

import click

from tenantmigrate import __version__
from tenantmigrate.config import (
    DEFAULT_ENVIRONMENT,
    DEFAULT_REGION,
    DEFAULT_TABLE_PREFIX,
    PipelineConfig,
)
from tenantmigrate.exceptions import TenantMigrateError
from tenantmigrate.migration import (
    AwsResourceDeleter,
    MigrationConfigError,
    MigrationMode,
    MigrationPipeline,
    ReportWriter,
    SnapshotTableStore,
    StoreResourceDeleter,
)
from tenantmigrate.stores import DynamoDBTableStore, SQLiteTableStore, TableStore

logger = logging.getLogger(__name__)

T = TypeVar("T")

BACKEND_DYNAMODB = "dynamodb"
BACKEND_SQLITE = "sqlite"
DEFAULT_DATABASE = "tenantmigrate.db"


@dataclass(frozen=True)
class Settings:
    """Options of the command group, shared by every command."""

    backend: str
    database: str
    region: str | None
    config: PipelineConfig


def _create_store(settings: Settings) -> TableStore:
    if settings.backend == BACKEND_SQLITE:
        return SQLiteTableStore(settings.database)
    return DynamoDBTableStore(region=settings.region)


async def _with_store(settings: Settings, operation: Callable[[TableStore], Awaitable[T]]) -> T:
    store = _create_store(settings)
    try:
        if isinstance(store, SQLiteTableStore):
            await store.initialize()
        return await operation(store)
    finally:
        await store.close()


def select_mode(*, dry_run: bool, execute: bool) -> MigrationMode:
    """
    Pick the migration mode from the two mode flags.

    Raises:
        MigrationConfigError: Unless exactly one flag is set
    """
    if dry_run and execute:
        raise MigrationConfigError("--dry-run and --execute are mutually exclusive")
    if not dry_run and not execute:
        raise MigrationConfigError("Specify --dry-run or --execute")
    return MigrationMode.DRY_RUN if dry_run else MigrationMode.EXECUTE


def _run(settings: Settings, operation: Callable[[TableStore], Awaitable[T]]) -> T:
    try:
        return asyncio.run(_with_store(settings, operation))
    except TenantMigrateError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--backend",
    type=click.Choice([BACKEND_DYNAMODB, BACKEND_SQLITE]),
    default=BACKEND_DYNAMODB,
    envvar="TENANTMIGRATE_BACKEND",
    show_default=True,
    help="Where the tables live",
)
@click.option(
    "--database",
    default=DEFAULT_DATABASE,
    envvar="TENANTMIGRATE_DATABASE",
    show_default=True,
    help="SQLite database file (sqlite backend only)",
)
@click.option("--region", envvar="AWS_REGION", help="AWS region (dynamodb backend only)")
@click.option(
    "--environment",
    default=DEFAULT_ENVIRONMENT,
    envvar="TENANTMIGRATE_ENVIRONMENT",
    show_default=True,
    help="Deployment environment used in table names",
)
@click.option(
    "--table-prefix",
    default=DEFAULT_TABLE_PREFIX,
    envvar="TENANTMIGRATE_TABLE_PREFIX",
    show_default=True,
    help="Prefix of every table and function name",
)
@click.option("--strict", is_flag=True, help="Treat owners without a membership as errors")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(
    ctx: click.Context,
    backend: str,
    database: str,
    region: str | None,
    environment: str,
    table_prefix: str,
    strict: bool,
    verbose: bool,
) -> None:
    """Migrate per-user tables to per-company tables."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s: %(name)s: %(message)s",
    )
    try:
        config = PipelineConfig(
            table_prefix=table_prefix,
            environment=environment,
            region=region or DEFAULT_REGION,
            strict_identity=strict,
        )
    except ValueError as exc:
        raise click.BadParameter(str(exc)) from exc
    ctx.obj = Settings(backend=backend, database=database, region=region, config=config)


@cli.command("init-tables")
@click.option("--legacy", is_flag=True, help="Also create the per-user tables")
@click.pass_obj
def init_tables(settings: Settings, legacy: bool) -> None:
    """Create the company-scoped and membership tables that do not exist yet."""
    config = settings.config
    schemas = {config.membership_table: config.membership_key_schema}
    for mapping in config.table_mappings:
        schemas[mapping.target_table] = config.target_key_schema(mapping.entity_type)
        if legacy:
            schemas[mapping.source_table] = config.source_key_schema(mapping.entity_type)

    async def operation(store: TableStore) -> list[str]:
        created = []
        for table_name, key_schema in schemas.items():
            if await store.table_exists(table_name):
                continue
            await store.create_table(table_name, key_schema)
            created.append(table_name)
        return created

    created = _run(settings, operation)
    for table_name in created:
        click.echo(f"Created {table_name}")
    click.echo(f"{len(created)} table(s) created, {len(schemas) - len(created)} already present")


@cli.command()
@click.argument("directory", type=click.Path(file_okay=False, path_type=Path))
@click.option("--table", "tables", multiple=True, help="Snapshot only these tables")
@click.pass_obj
def snapshot(settings: Settings, directory: Path, tables: tuple[str, ...]) -> None:
    """Write a point-in-time JSON snapshot of every table to DIRECTORY."""

    async def operation(store: TableStore):
        return await MigrationPipeline(store, store, settings.config).snapshot(
            directory, tables or None
        )

    summary = _run(settings, operation)
    for result in summary.results:
        if result.success:
            click.echo(f"  {result.table_name}: {result.record_count} records")
        else:
            click.echo(f"  {result.table_name}: FAILED ({result.error})")
    click.echo(
        f"{summary.successful_backups} of {len(summary.results)} tables, "
        f"{summary.total_records} records saved to {directory}"
    )
    if not summary.success:
        sys.exit(1)


@cli.command()
@click.argument("directory", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option(
    "--report-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=Path("."),
    show_default=True,
    help="Where to write the plan file",
)
@click.pass_obj
def plan(settings: Settings, directory: Path, report_dir: Path) -> None:
    """Preview a migration from the snapshot in DIRECTORY."""
    pipeline = MigrationPipeline(
        SnapshotTableStore(directory),
        SnapshotTableStore(directory),
        settings.config,
        report_writer=ReportWriter(report_dir),
    )
    try:
        result = asyncio.run(pipeline.plan(directory))
    except TenantMigrateError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)

    for table_name, count in result.legacy_counts.items():
        click.echo(f"  {table_name}: {count} records")
    click.echo(f"{'User':<40} {'Company':<40} {'Source':<12} {'Records'}")
    click.echo("-" * 100)
    for owner in result.owners:
        click.echo(
            f"{owner.owner_id:<40} {owner.tenant_id:<40} "
            f"{owner.mapping_source:<12} {owner.total_records}"
        )
    click.echo(
        f"{result.total_legacy_records} records, {len(result.owners)} users, "
        f"{result.projected_tenants} companies ({result.fallback_owners} by fallback)"
    )
    for table_name in result.missing_tables:
        click.echo(f"Warning: no snapshot for {table_name}", err=True)


@cli.command()
@click.option("--dry-run", "dry_run", is_flag=True, help="Report what would be migrated")
@click.option("--execute", is_flag=True, help="Write the migrated records")
@click.option(
    "--from-snapshot",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    help="Read legacy records from a snapshot directory instead of the live tables",
)
@click.option(
    "--report-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=Path("."),
    show_default=True,
    help="Where to write the migration report",
)
@click.pass_obj
def migrate(
    settings: Settings,
    dry_run: bool,
    execute: bool,
    from_snapshot: Path | None,
    report_dir: Path,
) -> None:
    """Migrate legacy records into the company-scoped tables."""
    try:
        mode = select_mode(dry_run=dry_run, execute=execute)
    except MigrationConfigError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)

    async def operation(store: TableStore):
        pipeline = MigrationPipeline(
            store, store, settings.config, report_writer=ReportWriter(report_dir)
        )
        source = SnapshotTableStore(from_snapshot) if from_snapshot is not None else None
        return await pipeline.migrate(mode, source_store=source)

    report = _run(settings, operation)
    click.echo(f"Mode: {mode.value}")
    for result in report.results:
        line = (
            f"  {result.table}: {result.migrated} migrated, "
            f"{result.skipped} skipped, {result.errors} errors"
        )
        if result.error:
            line += f" ({result.error})"
        click.echo(line)
    click.echo(
        f"Total: {report.total_records} records, {report.total_migrated} migrated, "
        f"{report.total_skipped} skipped, {report.total_errors} errors"
    )
    if not report.success:
        sys.exit(1)


@cli.command()
@click.option(
    "--report-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=Path("."),
    show_default=True,
    help="Where to write the validation report",
)
@click.pass_obj
def validate(settings: Settings, report_dir: Path) -> None:
    """Check every legacy record against the company-scoped tables."""

    async def operation(store: TableStore):
        pipeline = MigrationPipeline(
            store, store, settings.config, report_writer=ReportWriter(report_dir)
        )
        return await pipeline.validate()

    report = _run(settings, operation)
    for result in report.results:
        status = "OK" if result.success else "FAILED"
        click.echo(
            f"  {result.table}: {result.found}/{result.total_source} found, "
            f"{result.missing} missing, {result.mismatch} mismatched [{status}]"
        )
    click.echo(
        f"Total: {report.total_source} source, {report.total_found} found, "
        f"{report.total_missing} missing, {report.total_mismatch} mismatched"
    )
    if not report.all_success:
        sys.exit(1)


@cli.command()
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.option(
    "--report-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=Path("."),
    show_default=True,
    help="Where to write the decommission report",
)
@click.pass_obj
def decommission(settings: Settings, yes: bool, report_dir: Path) -> None:
    """Delete the legacy functions, then the legacy tables."""
    config = settings.config
    functions = config.legacy_functions if settings.backend == BACKEND_DYNAMODB else ()
    click.echo("This permanently deletes:")
    for name in (*functions, *config.legacy_tables):
        click.echo(f"  {name}")
    if not yes:
        click.confirm("Only continue after a clean validation report. Continue?", abort=True)

    async def operation(store: TableStore):
        if settings.backend == BACKEND_DYNAMODB:
            deleter = AwsResourceDeleter(region=settings.region)
        else:
            deleter = StoreResourceDeleter(store)
        pipeline = MigrationPipeline(
            store, store, config, report_writer=ReportWriter(report_dir)
        )
        return await pipeline.decommission(deleter, functions=functions)

    report = _run(settings, operation)
    for result in report.results:
        status = "deleted" if result.success else f"FAILED ({result.error})"
        click.echo(f"  {result.kind.value} {result.name}: {status}")
    click.echo(
        f"Functions: {report.deleted_functions} deleted, {report.failed_functions} failed; "
        f"tables: {report.deleted_tables} deleted, {report.failed_tables} failed"
    )
    if not report.success:
        sys.exit(1)


def main() -> None:
    """Console script entry point."""
    cli()


if __name__ == "__main__":
    main()
