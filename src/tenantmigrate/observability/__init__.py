"""
Observability utilities for tenantmigrate.

Provides the composition-based tracer used by every migration stage and
the standard span attribute names.

Note:
    All utilities in this module degrade to no-ops when OpenTelemetry
    is not importable.
"""

from tenantmigrate.observability.attributes import (
    ATTR_DB_OPERATION,
    ATTR_DB_SYSTEM,
    ATTR_ENTITY_TYPE,
    ATTR_ERROR_COUNT,
    ATTR_MAPPING_COUNT,
    ATTR_MIGRATED_COUNT,
    ATTR_MIGRATION_MODE,
    ATTR_MISMATCH_COUNT,
    ATTR_MISSING_COUNT,
    ATTR_PAGE_SIZE,
    ATTR_RECORD_COUNT,
    ATTR_RESOURCE_KIND,
    ATTR_RESOURCE_NAME,
    ATTR_SKIPPED_COUNT,
    ATTR_SOURCE_TABLE,
    ATTR_TABLE_NAME,
    ATTR_TARGET_TABLE,
    ATTR_TENANT_ID,
)
from tenantmigrate.observability.tracer import (
    OTEL_AVAILABLE,
    MockTracer,
    NullTracer,
    OpenTelemetryTracer,
    Tracer,
    create_tracer,
    should_trace,
)

__all__ = [
    # Tracing
    "OTEL_AVAILABLE",
    "should_trace",
    "Tracer",
    "NullTracer",
    "OpenTelemetryTracer",
    "MockTracer",
    "create_tracer",
    # Attributes
    "ATTR_DB_OPERATION",
    "ATTR_DB_SYSTEM",
    "ATTR_ENTITY_TYPE",
    "ATTR_ERROR_COUNT",
    "ATTR_MAPPING_COUNT",
    "ATTR_MIGRATED_COUNT",
    "ATTR_MIGRATION_MODE",
    "ATTR_MISMATCH_COUNT",
    "ATTR_MISSING_COUNT",
    "ATTR_PAGE_SIZE",
    "ATTR_RECORD_COUNT",
    "ATTR_RESOURCE_KIND",
    "ATTR_RESOURCE_NAME",
    "ATTR_SKIPPED_COUNT",
    "ATTR_SOURCE_TABLE",
    "ATTR_TABLE_NAME",
    "ATTR_TARGET_TABLE",
    "ATTR_TENANT_ID",
]
