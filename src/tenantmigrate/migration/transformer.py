"""
Record transformation: legacy per-owner shape -> tenant-scoped shape.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from datetime import UTC, datetime
from types import MappingProxyType

from tenantmigrate.entities import EntityType
from tenantmigrate.types import Record, TenantId

MIGRATED_FROM_FIELD = "migratedFrom"
MIGRATED_AT_FIELD = "migratedAt"
PROVENANCE_FIELDS = frozenset({MIGRATED_FROM_FIELD, MIGRATED_AT_FIELD})

# Legacy name -> current name, per entity type
LEGACY_FIELD_ALIASES: Mapping[EntityType, Mapping[str, str]] = MappingProxyType(
    {
        EntityType.WORK: MappingProxyType(
            {
                "workName": "WorkName",
                "totalWorkCost": "TotalWorkCost",
            }
        ),
    }
)


def utc_now() -> datetime:
    return datetime.now(UTC)


class RecordTransformer:
    """
    Re-keys a record under its tenant and stamps migration provenance.

    The transformation is a shallow copy: values are never coerced and no
    field is dropped. Legacy field names listed in ``field_aliases`` are
    copied to their current name only when the current name is absent, so
    a record that already uses the current names keeps them verbatim.

    Example:
        >>> transformer = RecordTransformer.for_entity(EntityType.EXPENSE)
        >>> record = {"userId": "u1", "expenseId": "e1", "amount": 100}
        >>> migrated = transformer.transform(record, "companyA")
        >>> migrated["companyId"], migrated["migratedFrom"]
        ('companyA', 'multi-table-architecture')
        >>> "companyId" in record
        False
    """

    def __init__(
        self,
        *,
        tenant_field: str = "companyId",
        source_tag: str = "multi-table-architecture",
        field_aliases: Mapping[str, str] | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        if not source_tag:
            raise ValueError("source_tag must not be empty")
        self._tenant_field = tenant_field
        self._source_tag = source_tag
        self._field_aliases = MappingProxyType(dict(field_aliases or {}))
        self._clock = clock

    @classmethod
    def for_entity(
        cls,
        entity_type: EntityType,
        *,
        tenant_field: str = "companyId",
        source_tag: str = "multi-table-architecture",
        clock: Callable[[], datetime] = utc_now,
    ) -> RecordTransformer:
        """Create a transformer with the legacy aliases of an entity type."""
        return cls(
            tenant_field=tenant_field,
            source_tag=source_tag,
            field_aliases=LEGACY_FIELD_ALIASES.get(entity_type),
            clock=clock,
        )

    @property
    def tenant_field(self) -> str:
        return self._tenant_field

    @property
    def source_tag(self) -> str:
        return self._source_tag

    def transform(self, record: Record, tenant_id: TenantId) -> Record:
        """
        Build the tenant-scoped copy of a record.

        Args:
            record: Source record (not modified)
            tenant_id: Tenant the record belongs to

        Returns:
            New record with the tenant field set and provenance stamped
        """
        migrated = dict(record)
        for legacy_name, current_name in self._field_aliases.items():
            if current_name not in migrated and legacy_name in migrated:
                migrated[current_name] = migrated[legacy_name]

        migrated[self._tenant_field] = tenant_id
        migrated[MIGRATED_FROM_FIELD] = self._source_tag
        migrated[MIGRATED_AT_FIELD] = self._clock().isoformat()
        return migrated


__all__ = [
    "LEGACY_FIELD_ALIASES",
    "MIGRATED_AT_FIELD",
    "MIGRATED_FROM_FIELD",
    "PROVENANCE_FIELDS",
    "RecordTransformer",
    "utc_now",
]
