"""
Entity models for the construction-expense records.

Each stored record type has a pydantic model with aliases matching the
stored field names. ``validate_record`` checks a plain record against the
model for its entity type and raises ``RecordValidationError`` with
readable messages on failure.
"""

from __future__ import annotations

from decimal import Decimal
from enum import Enum
from typing import Any, ClassVar, Literal

from pydantic import Field, ValidationError

from tenantmigrate.entities.base import ISO_DATE_PATTERN, ScopedRecord
from tenantmigrate.exceptions import RecordValidationError
from tenantmigrate.types import Record

WorkStatus = Literal["planned", "in-progress", "completed", "cancelled"]


class Expense(ScopedRecord):
    """A monetary transaction, optionally linked to a project and a contractor."""

    id_field: ClassVar[str] = "expenseId"

    expense_id: str = Field(..., alias="expenseId", min_length=1)
    amount: Decimal = Field(..., gt=0)
    date: str = Field(..., pattern=ISO_DATE_PATTERN)
    invoice_num: str | int = Field(..., alias="invoiceNum")
    payment_method: str = Field(..., alias="paymentMethod", min_length=1)
    project_id: str | None = Field(default=None, alias="projectId")
    contractor_id: str | None = Field(default=None, alias="contractorId")
    description: str | None = None
    receipt_image: Any = Field(default=None, alias="receiptImage")


class Project(ScopedRecord):
    """A unit of work with a budget and a running spent total."""

    id_field: ClassVar[str] = "projectId"

    project_id: str = Field(..., alias="projectId", min_length=1)
    name: str = Field(..., min_length=1)
    start_date: str = Field(..., alias="startDate", pattern=ISO_DATE_PATTERN)
    end_date: str | None = Field(default=None, alias="endDate")
    budget: Decimal | None = Field(default=None, ge=0)
    description: str | None = None
    status: str = "active"
    spent_amount: Decimal = Field(default=Decimal(0), alias="SpentAmount", ge=0)


class Contractor(ScopedRecord):
    """
    A payable party.

    Older records may still carry ``specialty``, ``email`` or ``rate``; they
    pass validation as extra fields but are no longer part of the model.
    """

    id_field: ClassVar[str] = "contractorId"

    contractor_id: str = Field(..., alias="contractorId", min_length=1)
    name: str = Field(..., min_length=1)
    phone: str | None = None


class Work(ScopedRecord):
    """A billable unit of labor tied to one project and one contractor."""

    id_field: ClassVar[str] = "workId"

    work_id: str = Field(..., alias="workId", min_length=1)
    project_id: str = Field(..., alias="projectId", min_length=1)
    contractor_id: str = Field(..., alias="contractorId", min_length=1)
    work_name: str = Field(..., alias="WorkName", min_length=1)
    total_work_cost: Decimal = Field(..., alias="TotalWorkCost", ge=0)
    description: str | None = None
    status: WorkStatus = "planned"
    expense_id: str | None = Field(default=None, alias="expenseId")


class EntityType(Enum):
    """
    Record types migrated from the per-user tables.

    The declaration order is the order in which tables are migrated.
    """

    EXPENSE = "expense"
    """Expenses, keyed by expenseId."""

    PROJECT = "project"
    """Projects, keyed by projectId."""

    CONTRACTOR = "contractor"
    """Contractors, keyed by contractorId."""

    WORK = "work"
    """Works, keyed by workId."""

    @property
    def model(self) -> type[ScopedRecord]:
        """The pydantic model that validates records of this type."""
        return _MODELS[self]

    @property
    def id_field(self) -> str:
        """Stored name of the unique identity field."""
        return self.model.id_field

    @property
    def table_suffix(self) -> str:
        """Plural name used in table names (e.g., 'expenses')."""
        return f"{self.value}s"


_MODELS: dict[EntityType, type[ScopedRecord]] = {
    EntityType.EXPENSE: Expense,
    EntityType.PROJECT: Project,
    EntityType.CONTRACTOR: Contractor,
    EntityType.WORK: Work,
}


def validate_record(entity_type: EntityType, record: Record) -> ScopedRecord:
    """
    Validate a stored record against its entity model.

    The record itself is not modified; the returned model is a typed view
    of it.

    Args:
        entity_type: Type the record is expected to be
        record: Record as stored

    Returns:
        Model instance for the record

    Raises:
        RecordValidationError: If the record does not satisfy the model
    """
    try:
        return entity_type.model.model_validate(record)
    except ValidationError as e:
        messages = []
        for error in e.errors():
            location = ".".join(str(part) for part in error["loc"])
            messages.append(f"{location}: {error['msg']}" if location else error["msg"])
        raise RecordValidationError(entity_type.value, messages) from e


__all__ = [
    "Contractor",
    "EntityType",
    "Expense",
    "Project",
    "Work",
    "WorkStatus",
    "validate_record",
]
