"""
Base class for tenant-scoped entity records.

Entity models describe the stored shape of each record type. Records are
kept verbatim in the stores as plain dictionaries; the models exist to
validate a record at the system boundary (before a migration write and on
every create) without changing what gets written.
"""

from __future__ import annotations

import re
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field, model_validator

ISO_DATE_PATTERN = r"^\d{4}-\d{2}-\d{2}$"
"""Calendar date stored as YYYY-MM-DD."""

_ISO_DATE_RE = re.compile(ISO_DATE_PATTERN)


def is_iso_date(value: Any) -> bool:
    """
    Check whether a value is an ISO calendar date string.

    Examples:
        >>> is_iso_date("2024-03-01")
        True
        >>> is_iso_date("01/03/2024")
        False
    """
    return isinstance(value, str) and _ISO_DATE_RE.match(value) is not None


class ScopedRecord(BaseModel):
    """
    Base class for records that live under an owner or tenant scope.

    Legacy records are partitioned by ``userId`` and migrated ones by
    ``companyId``; a record must carry at least one of them. Unknown fields
    are allowed so that legacy attributes survive validation untouched.

    Attributes:
        company_id: Tenant identity (stored as ``companyId``)
        user_id: Owner identity (stored as ``userId``)
        migrated_from: Provenance source tag (stored as ``migratedFrom``)
        migrated_at: Provenance timestamp (stored as ``migratedAt``)
    """

    model_config = ConfigDict(
        populate_by_name=True,
        extra="allow",
    )

    id_field: ClassVar[str] = ""
    """Stored name of the field that uniquely identifies the record in its scope."""

    company_id: str | None = Field(default=None, alias="companyId", min_length=1)
    user_id: str | None = Field(default=None, alias="userId", min_length=1)
    migrated_from: str | None = Field(default=None, alias="migratedFrom")
    migrated_at: str | None = Field(default=None, alias="migratedAt")

    @model_validator(mode="after")
    def _require_scope(self) -> ScopedRecord:
        if self.company_id is None and self.user_id is None:
            raise ValueError("record must carry companyId or userId")
        return self

    @property
    def record_id(self) -> str:
        """Value of the unique identity field."""
        return str(getattr(self, _attribute_for_alias(type(self), self.id_field)))

    @property
    def is_migrated(self) -> bool:
        """True when the record carries migration provenance."""
        return bool(self.migrated_from) and bool(self.migrated_at)


def _attribute_for_alias(model: type[BaseModel], alias: str) -> str:
    for name, info in model.model_fields.items():
        if info.alias == alias or name == alias:
            return name
    raise AttributeError(f"{model.__name__} has no field stored as {alias!r}")


__all__ = [
    "ISO_DATE_PATTERN",
    "ScopedRecord",
    "is_iso_date",
]
