"""
Entity models for tenant-scoped records.

Example:
    >>> from tenantmigrate.entities import EntityType, validate_record
    >>>
    >>> model = validate_record(EntityType.CONTRACTOR, {
    ...     "companyId": "companyA",
    ...     "contractorId": "c1",
    ...     "name": "Levi Plumbing",
    ... })
    >>> model.record_id
    'c1'
"""

from tenantmigrate.entities.base import ISO_DATE_PATTERN, ScopedRecord, is_iso_date
from tenantmigrate.entities.models import (
    Contractor,
    EntityType,
    Expense,
    Project,
    Work,
    WorkStatus,
    validate_record,
)

__all__ = [
    "ISO_DATE_PATTERN",
    "Contractor",
    "EntityType",
    "Expense",
    "Project",
    "ScopedRecord",
    "Work",
    "WorkStatus",
    "is_iso_date",
    "validate_record",
]
