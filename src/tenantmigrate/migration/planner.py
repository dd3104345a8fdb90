"""
Migration planner: what a migration would do, computed from a snapshot.

The planner reads only snapshot files, so it can run before anything in
the live environment is touched. It reports how many legacy records exist,
which owners they belong to, which tenant each owner will resolve to and
whether that comes from a membership entry or the fallback.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import UTC, datetime
from pathlib import Path

from tenantmigrate.config import PipelineConfig
from tenantmigrate.exceptions import TableNotFoundError
from tenantmigrate.migration.identity import IdentityResolver
from tenantmigrate.migration.models import MigrationPlan, OwnerPlan
from tenantmigrate.migration.snapshot import SnapshotTableStore
from tenantmigrate.observability import Tracer, create_tracer

logger = logging.getLogger(__name__)

MAPPING_SOURCE_MEMBERSHIP = "membership"
MAPPING_SOURCE_FALLBACK = "fallback"


class MigrationPlanner:
    """
    Computes a MigrationPlan from a snapshot directory.

    Example:
        >>> planner = MigrationPlanner("backups/pre-migration", config)
        >>> plan = await planner.plan()
        >>> plan.projected_tenants
        2
    """

    def __init__(
        self,
        directory: str | Path,
        config: PipelineConfig | None = None,
        *,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        self._directory = Path(directory)
        self._config = config or PipelineConfig()
        self._tracer = tracer or create_tracer(__name__, enable_tracing)
        self._store = SnapshotTableStore(self._directory, tracer=self._tracer)

    async def plan(self) -> MigrationPlan:
        """
        Build the plan.

        Tables without a snapshot file are listed in ``missing_tables`` and
        counted as empty.

        Raises:
            SnapshotError: If a snapshot file exists but is malformed
        """
        with self._tracer.span("tenantmigrate.planner.plan", {}):
            timestamp = datetime.now(UTC)
            owner_field = self._config.owner_field
            missing_tables: list[str] = []

            if not await self._store.table_exists(self._config.membership_table):
                missing_tables.append(self._config.membership_table)
            resolver = IdentityResolver(
                self._store,
                self._config.membership_table,
                owner_field=owner_field,
                tenant_field=self._config.tenant_field,
                tracer=self._tracer,
            )
            scope = await resolver.build_cache()

            legacy_counts: dict[str, int] = {}
            company_counts: dict[str, int] = {}
            owner_counts: dict[str, dict[str, int]] = defaultdict(dict)

            for mapping in self._config.table_mappings:
                try:
                    items = await self._store.scan_all(mapping.source_table)
                except TableNotFoundError:
                    missing_tables.append(mapping.source_table)
                    items = []
                legacy_counts[mapping.source_table] = len(items)

                for item in items:
                    owner_id = item.get(owner_field)
                    if not owner_id:
                        continue
                    counts = owner_counts[owner_id]
                    entity = mapping.entity_type.value
                    counts[entity] = counts.get(entity, 0) + 1

                try:
                    company_counts[mapping.target_table] = await self._store.count(
                        mapping.target_table
                    )
                except TableNotFoundError:
                    missing_tables.append(mapping.target_table)
                    company_counts[mapping.target_table] = 0

            owners = tuple(
                OwnerPlan(
                    owner_id=owner_id,
                    tenant_id=scope.resolve(owner_id),
                    mapping_source=(
                        MAPPING_SOURCE_MEMBERSHIP
                        if scope.is_mapped(owner_id)
                        else MAPPING_SOURCE_FALLBACK
                    ),
                    record_counts=counts,
                    owner_field=self._config.owner_field,
                    tenant_field=self._config.tenant_field,
                )
                for owner_id, counts in sorted(owner_counts.items())
            )

            plan = MigrationPlan(
                timestamp=timestamp,
                snapshot_directory=str(self._directory),
                legacy_counts=legacy_counts,
                company_counts=company_counts,
                owners=owners,
                missing_tables=tuple(missing_tables),
            )
            logger.info(
                "Plan: %d legacy records, %d owners, %d tenants (%d by fallback)",
                plan.total_legacy_records,
                len(plan.owners),
                plan.projected_tenants,
                plan.fallback_owners,
            )
            return plan


__all__ = [
    "MAPPING_SOURCE_FALLBACK",
    "MAPPING_SOURCE_MEMBERSHIP",
    "MigrationPlanner",
]
