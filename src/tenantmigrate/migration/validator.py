"""
MigrationValidator - Proves record by record that a migration is complete.

The validator re-reads every legacy table and looks up each record in its
company-scoped table. It builds its own scope mapping from a fresh
membership scan rather than reusing the driver's, so it is an independent
check of where each record should have landed.

Responsibilities:
    - Count every source record as found, missing or mismatch
    - List the identifiers of missing and mismatched records
    - Compare every source field except provenance and the tenant field
    - Report success only when nothing is missing or mismatched

Discrepancies are data, not exceptions: they are recorded in the result
and never raised.

Usage:
    >>> validator = MigrationValidator(source_store, target_store, config)
    >>> report = await validator.run()
    >>> if not report.all_success:
    ...     for result in report.results:
    ...         print(result.table, result.missing_records)
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any

from tenantmigrate.config import PipelineConfig, TableMapping
from tenantmigrate.migration.identity import IdentityResolver, ScopeMapping
from tenantmigrate.migration.models import (
    MismatchedRecord,
    RecordRef,
    TableValidationResult,
    ValidationReport,
)
from tenantmigrate.migration.transformer import PROVENANCE_FIELDS
from tenantmigrate.observability import (
    ATTR_ENTITY_TYPE,
    ATTR_MISMATCH_COUNT,
    ATTR_MISSING_COUNT,
    ATTR_RECORD_COUNT,
    ATTR_SOURCE_TABLE,
    ATTR_TARGET_TABLE,
    Tracer,
    create_tracer,
)
from tenantmigrate.stores.interface import TableStore
from tenantmigrate.types import Record

logger = logging.getLogger(__name__)


def compare_fields(source: Record, target: Record, *, excluded: frozenset[str]) -> list[str]:
    """
    List source fields whose value differs on the target.

    A field absent from the target counts as different. Fields only present
    on the target are ignored.

    Example:
        >>> compare_fields({"a": 1, "b": 2}, {"a": 1, "b": 3, "c": 4}, excluded=frozenset())
        ['b']
    """
    return [
        name
        for name, value in source.items()
        if name not in excluded and (name not in target or target[name] != value)
    ]


class MigrationValidator:
    """
    Verifies that every legacy record exists, unchanged, in its target table.

    Example:
        >>> validator = MigrationValidator(source_store, target_store, config)
        >>> scope = await validator.build_scope()
        >>> result = await validator.validate_table(config.table_mappings[0], scope)
        >>> result.success
        True
    """

    def __init__(
        self,
        source_store: TableStore,
        target_store: TableStore,
        config: PipelineConfig | None = None,
        *,
        identity_store: TableStore | None = None,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        """
        Initialize the validator.

        Args:
            source_store: Store holding the legacy tables
            target_store: Store holding the company-scoped tables
            config: Pipeline configuration (defaults to production naming)
            identity_store: Store holding the membership table
                (defaults to target_store)
            tracer: Optional custom Tracer instance
            enable_tracing: Whether to enable tracing (default True)
        """
        self._source = source_store
        self._target = target_store
        self._config = config or PipelineConfig()
        self._identity_store = identity_store or target_store
        self._tracer = tracer or create_tracer(__name__, enable_tracing)
        self._excluded = PROVENANCE_FIELDS | {self._config.tenant_field}
        self._report_fields = {
            "owner_field": self._config.owner_field,
            "tenant_field": self._config.tenant_field,
        }

    async def build_scope(self) -> ScopeMapping:
        """Scan the membership table into a fresh ScopeMapping."""
        resolver = IdentityResolver(
            self._identity_store,
            self._config.membership_table,
            owner_field=self._config.owner_field,
            tenant_field=self._config.tenant_field,
            strict=self._config.strict_identity,
            page_size=self._config.page_size,
            tracer=self._tracer,
        )
        return await resolver.build_cache()

    async def validate_table(
        self,
        mapping: TableMapping,
        scope: ScopeMapping,
    ) -> TableValidationResult:
        """
        Check every record of one legacy table against its target table.

        Args:
            mapping: Source/target table pair and entity type
            scope: Owner -> tenant mapping to derive expected tenants with

        Returns:
            Counts and identifiers of found, missing and mismatched records
        """
        with self._tracer.span(
            "tenantmigrate.validator.validate_table",
            {
                ATTR_SOURCE_TABLE: mapping.source_table,
                ATTR_TARGET_TABLE: mapping.target_table,
                ATTR_ENTITY_TYPE: mapping.entity_type.value,
            },
        ) as span:
            try:
                records = await self._source.scan_all(
                    mapping.source_table, page_size=self._config.page_size
                )
            except Exception as e:
                logger.error("Failed to read %s for validation: %s", mapping.source_table, e)
                return TableValidationResult(table=mapping.source_table, error=str(e))

            found = 0
            missing: list[RecordRef] = []
            mismatched: list[MismatchedRecord] = []

            for record in records:
                owner_id = record.get(self._config.owner_field)
                record_id = record.get(mapping.id_field)
                tenant_id = self._expected_tenant(owner_id, scope)

                target = None
                if tenant_id is not None and record_id:
                    target = await self._lookup(mapping, tenant_id, record_id)

                if target is None:
                    logger.warning(
                        "Missing in %s: %s=%s %s=%s",
                        mapping.target_table,
                        self._config.owner_field,
                        owner_id,
                        mapping.id_field,
                        record_id,
                    )
                    missing.append(
                        RecordRef(owner_id, tenant_id, _as_id(record_id), **self._report_fields)
                    )
                    continue

                fields = compare_fields(record, target, excluded=self._excluded)
                if fields:
                    logger.warning(
                        "Mismatch in %s for %s=%s: %s",
                        mapping.target_table,
                        mapping.id_field,
                        record_id,
                        ", ".join(fields),
                    )
                    mismatched.append(
                        MismatchedRecord(
                            owner_id,
                            tenant_id,
                            _as_id(record_id),
                            mismatched_fields=tuple(fields),
                            **self._report_fields,
                        )
                    )
                else:
                    found += 1

            result = TableValidationResult(
                table=mapping.source_table,
                total_source=len(records),
                found=found,
                missing=len(missing),
                mismatch=len(mismatched),
                missing_records=tuple(missing),
                mismatch_records=tuple(mismatched),
            )
            if span:
                span.set_attribute(ATTR_RECORD_COUNT, result.total_source)
                span.set_attribute(ATTR_MISSING_COUNT, result.missing)
                span.set_attribute(ATTR_MISMATCH_COUNT, result.mismatch)

            logger.info(
                "%s: %d source, %d found, %d missing, %d mismatch",
                mapping.source_table,
                result.total_source,
                result.found,
                result.missing,
                result.mismatch,
            )
            return result

    def _expected_tenant(self, owner_id: Any, scope: ScopeMapping) -> str | None:
        if not owner_id:
            return None
        try:
            return scope.resolve(owner_id)
        except Exception as e:
            logger.warning("Cannot resolve a tenant for owner %s: %s", owner_id, e)
            return None

    async def _lookup(self, mapping: TableMapping, tenant_id: str, record_id: Any) -> Record | None:
        key = {self._config.tenant_field: tenant_id, mapping.id_field: record_id}
        try:
            return await self._target.get_item(mapping.target_table, key)
        except Exception as e:
            logger.error("Lookup of %s in %s failed: %s", key, mapping.target_table, e)
            return None

    async def run(self, scope: ScopeMapping | None = None) -> ValidationReport:
        """
        Validate every table of the configuration.

        Args:
            scope: Mapping to use; built from a fresh membership scan when None

        Returns:
            Report with one result per table
        """
        timestamp = datetime.now(UTC)
        if scope is None:
            scope = await self.build_scope()

        results = []
        for mapping in self._config.table_mappings:
            results.append(await self.validate_table(mapping, scope))

        report = ValidationReport(timestamp=timestamp, results=tuple(results))
        logger.info(
            "Validation complete: %d source, %d found, %d missing, %d mismatch",
            report.total_source,
            report.total_found,
            report.total_missing,
            report.total_mismatch,
        )
        return report


def _as_id(value: Any) -> str | None:
    return str(value) if value is not None else None


__all__ = ["MigrationValidator", "compare_fields"]
