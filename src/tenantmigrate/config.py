"""
Pipeline configuration.

Table and function names follow the deployment naming scheme: in
production a resource is ``<prefix>-<suffix>``, in any other environment
``<prefix>-<environment>-<suffix>``.

Example:
    >>> config = PipelineConfig(environment="staging")
    >>> config.table_name("company-expenses")
    'construction-expenses-staging-company-expenses'
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from tenantmigrate.entities import EntityType
from tenantmigrate.stores.interface import KeySchema

DEFAULT_TABLE_PREFIX = "construction-expenses"
DEFAULT_ENVIRONMENT = "production"
DEFAULT_REGION = "us-east-1"
DEFAULT_SOURCE_TAG = "multi-table-architecture"

LEGACY_TABLE_GROUP = "multi-table"
COMPANY_TABLE_GROUP = "company"
MEMBERSHIP_TABLE_SUFFIX = "company-users"

# Tables captured by a full pre-migration snapshot, besides the entity tables
_EXTRA_SNAPSHOT_SUFFIXES = (
    "multi-table-users",
    MEMBERSHIP_TABLE_SUFFIX,
    "companies",
    "invitations",
    "paddle-customers",
    "paddle-payments",
    "paddle-subscriptions",
    "paddle-webhooks",
    "production-table",
)

# Request handlers deployed for the per-user tables
_LEGACY_HANDLERS = (
    "add-contractor",
    "add-expense",
    "add-project",
    "add-work",
    "delete-contractor",
    "delete-expense",
    "delete-project",
    "delete-work",
    "get-contractors",
    "get-expenses",
    "get-projects",
    "get-works",
    "subscription-manager",
)


@dataclass(frozen=True)
class TableMapping:
    """
    A legacy table and the company-scoped table it migrates into.

    Attributes:
        source_table: Per-user table partitioned by the owner field
        target_table: Per-company table partitioned by the tenant field
        entity_type: Type of the records in both tables
    """

    source_table: str
    target_table: str
    entity_type: EntityType

    @property
    def id_field(self) -> str:
        """Stored name of the unique identity field of the records."""
        return self.entity_type.id_field

    def to_dict(self) -> dict[str, Any]:
        return {
            "source_table": self.source_table,
            "target_table": self.target_table,
            "entity_type": self.entity_type.value,
        }


@dataclass(frozen=True)
class PipelineConfig:
    """
    Configuration for a migration pipeline run.

    This class is immutable (frozen) so a run cannot change its table
    layout halfway through.

    Attributes:
        table_prefix: Prefix shared by every table and function name
        environment: Deployment environment ('production' drops it from names)
        region: AWS region of the tables and functions
        owner_field: Legacy per-user partition key (default 'userId')
        tenant_field: Per-company partition key (default 'companyId')
        source_tag: Value stamped into migratedFrom on migrated records
        page_size: Items requested per scan page (default 100)
        strict_identity: Reject owners without a membership entry instead
            of falling back to the owner identity (default False)

    Example:
        >>> config = PipelineConfig(page_size=25)
        >>> [m.source_table for m in config.table_mappings][0]
        'construction-expenses-multi-table-expenses'
    """

    table_prefix: str = DEFAULT_TABLE_PREFIX
    environment: str = DEFAULT_ENVIRONMENT
    region: str = DEFAULT_REGION
    owner_field: str = "userId"
    tenant_field: str = "companyId"
    source_tag: str = DEFAULT_SOURCE_TAG
    page_size: int = 100
    strict_identity: bool = False

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if not self.table_prefix:
            raise ValueError("table_prefix must not be empty")

        if not self.environment:
            raise ValueError("environment must not be empty")

        if not self.owner_field or not self.tenant_field:
            raise ValueError("owner_field and tenant_field must not be empty")

        if self.owner_field == self.tenant_field:
            raise ValueError(
                f"owner_field and tenant_field must differ, both are {self.owner_field!r}"
            )

        if not self.source_tag:
            raise ValueError("source_tag must not be empty")

        if self.page_size < 1:
            raise ValueError(f"page_size must be >= 1, got {self.page_size}")

    @property
    def is_production(self) -> bool:
        return self.environment == DEFAULT_ENVIRONMENT

    def table_name(self, suffix: str) -> str:
        """Full name of a table (or function) for this environment."""
        if self.is_production:
            return f"{self.table_prefix}-{suffix}"
        return f"{self.table_prefix}-{self.environment}-{suffix}"

    @property
    def table_mappings(self) -> tuple[TableMapping, ...]:
        """Legacy -> company table pairs, in migration order."""
        return tuple(
            TableMapping(
                source_table=self.table_name(f"{LEGACY_TABLE_GROUP}-{entity_type.table_suffix}"),
                target_table=self.table_name(f"{COMPANY_TABLE_GROUP}-{entity_type.table_suffix}"),
                entity_type=entity_type,
            )
            for entity_type in EntityType
        )

    def mapping_for(self, entity_type: EntityType) -> TableMapping:
        """Get the table mapping of one entity type."""
        for mapping in self.table_mappings:
            if mapping.entity_type is entity_type:
                return mapping
        raise KeyError(entity_type)

    @property
    def membership_table(self) -> str:
        """Table associating each owner with a tenant."""
        return self.table_name(MEMBERSHIP_TABLE_SUFFIX)

    @property
    def snapshot_tables(self) -> tuple[str, ...]:
        """Every table captured by a full pre-migration snapshot."""
        entity_tables = [
            name
            for mapping in self.table_mappings
            for name in (mapping.source_table, mapping.target_table)
        ]
        extra = [self.table_name(suffix) for suffix in _EXTRA_SNAPSHOT_SUFFIXES]
        return tuple(sorted(entity_tables + extra))

    @property
    def legacy_functions(self) -> tuple[str, ...]:
        """Request handlers serving the per-user tables."""
        return tuple(self.table_name(f"{LEGACY_TABLE_GROUP}-{h}") for h in _LEGACY_HANDLERS)

    @property
    def legacy_tables(self) -> tuple[str, ...]:
        """Per-user tables removed after a successful migration."""
        return tuple(m.source_table for m in self.table_mappings) + (
            self.table_name(f"{LEGACY_TABLE_GROUP}-users"),
        )

    def source_key_schema(self, entity_type: EntityType) -> KeySchema:
        """Primary key of a legacy table."""
        return KeySchema(self.owner_field, entity_type.id_field)

    def target_key_schema(self, entity_type: EntityType) -> KeySchema:
        """Primary key of a company-scoped table."""
        return KeySchema(self.tenant_field, entity_type.id_field)

    @property
    def membership_key_schema(self) -> KeySchema:
        """Primary key of the membership table."""
        return KeySchema(self.tenant_field, self.owner_field)

    def to_dict(self) -> dict[str, Any]:
        """
        Convert to dictionary for JSON storage.

        Returns:
            Dictionary representation suitable for JSON serialization.
        """
        return {
            "table_prefix": self.table_prefix,
            "environment": self.environment,
            "region": self.region,
            "owner_field": self.owner_field,
            "tenant_field": self.tenant_field,
            "source_tag": self.source_tag,
            "page_size": self.page_size,
            "strict_identity": self.strict_identity,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PipelineConfig:
        """
        Create from dictionary.

        Args:
            data: Dictionary containing configuration values.

        Returns:
            PipelineConfig instance.
        """
        return cls(
            table_prefix=data.get("table_prefix", DEFAULT_TABLE_PREFIX),
            environment=data.get("environment", DEFAULT_ENVIRONMENT),
            region=data.get("region", DEFAULT_REGION),
            owner_field=data.get("owner_field", "userId"),
            tenant_field=data.get("tenant_field", "companyId"),
            source_tag=data.get("source_tag", DEFAULT_SOURCE_TAG),
            page_size=data.get("page_size", 100),
            strict_identity=data.get("strict_identity", False),
        )


__all__ = [
    "DEFAULT_ENVIRONMENT",
    "DEFAULT_REGION",
    "DEFAULT_SOURCE_TAG",
    "DEFAULT_TABLE_PREFIX",
    "PipelineConfig",
    "TableMapping",
]
