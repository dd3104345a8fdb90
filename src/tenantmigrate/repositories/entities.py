"""
Tenant-scoped entity repository.

Creates, lists and deletes records in the company-scoped tables while
enforcing the rules the request handlers apply on create:

- expenses: whitelisted payment method, 0 < amount <= 1,000,000, invoice
  number unique within the tenant, referenced project and contractor must
  exist in the tenant; the project's SpentAmount follows the expense
- projects: name unique within the tenant, SpentAmount starts at 0
- contractors: name and optional phone only
- works: project and contractor must exist in the tenant, TotalWorkCost at
  most 10,000,000, WorkName unique within the project

Every rule is checked before the first write.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any
from uuid import uuid4

from tenantmigrate.config import PipelineConfig
from tenantmigrate.entities import EntityType, validate_record
from tenantmigrate.exceptions import (
    DuplicateRecordError,
    ForeignKeyError,
    RecordNotFoundError,
    RecordValidationError,
)
from tenantmigrate.observability import (
    ATTR_ENTITY_TYPE,
    ATTR_TABLE_NAME,
    ATTR_TENANT_ID,
    Tracer,
    create_tracer,
)
from tenantmigrate.serialization import decimal_to_number
from tenantmigrate.stores.interface import TableStore
from tenantmigrate.types import Record, TenantId

logger = logging.getLogger(__name__)

VALID_PAYMENT_METHODS = frozenset({"העברה בנקאית", "צ'ק", "מזומן", "כרטיס אשראי"})
"""Bank transfer, cheque, cash and credit card."""

MAX_EXPENSE_AMOUNT = Decimal(1_000_000)
MAX_WORK_COST = Decimal(10_000_000)

ID_PREFIXES = {
    EntityType.EXPENSE: "exp",
    EntityType.PROJECT: "proj",
    EntityType.CONTRACTOR: "contr",
    EntityType.WORK: "work",
}


def generate_id(entity_type: EntityType) -> str:
    """
    Generate a record identifier like ``exp_1733052000000_3f9a1c2b7``.
    """
    return f"{ID_PREFIXES[entity_type]}_{int(time.time() * 1000)}_{uuid4().hex[:9]}"


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()


def _clean(value: Any) -> Any:
    return value.strip() if isinstance(value, str) else value


def _add_amounts(current: Any, change: Any) -> int | Decimal:
    total = Decimal(str(current or 0)) + Decimal(str(change))
    return decimal_to_number(max(total, Decimal(0)))


class TenantEntityRepository:
    """
    Create/list/delete access to the company-scoped entity tables.

    Example:
        >>> repo = TenantEntityRepository(store, config)
        >>> project = await repo.create_project("companyA", {
        ...     "name": "Villa Herzliya",
        ...     "startDate": "2025-01-01",
        ... })
        >>> project["SpentAmount"]
        0
    """

    def __init__(
        self,
        store: TableStore,
        config: PipelineConfig | None = None,
        *,
        id_factory: Callable[[EntityType], str] = generate_id,
        clock: Callable[[], str] = _now_iso,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        self._store = store
        self._config = config or PipelineConfig()
        self._id_factory = id_factory
        self._clock = clock
        self._tracer = tracer or create_tracer(__name__, enable_tracing)

    def _table(self, entity_type: EntityType) -> str:
        return self._config.mapping_for(entity_type).target_table

    def _key(self, entity_type: EntityType, tenant_id: TenantId, record_id: str) -> Record:
        return {self._config.tenant_field: tenant_id, entity_type.id_field: record_id}

    def _span(self, operation: str, entity_type: EntityType, tenant_id: TenantId) -> Any:
        return self._tracer.span(
            f"tenantmigrate.repository.{operation}",
            {
                ATTR_ENTITY_TYPE: entity_type.value,
                ATTR_TABLE_NAME: self._table(entity_type),
                ATTR_TENANT_ID: tenant_id,
            },
        )

    def _new_record(self, entity_type: EntityType, tenant_id: TenantId) -> Record:
        timestamp = self._clock()
        return {
            self._config.tenant_field: tenant_id,
            entity_type.id_field: self._id_factory(entity_type),
            "createdAt": timestamp,
            "updatedAt": timestamp,
        }

    async def get_record(
        self,
        entity_type: EntityType,
        tenant_id: TenantId,
        record_id: str,
    ) -> Record | None:
        """Get one record of a tenant, or None."""
        return await self._store.get_item(
            self._table(entity_type), self._key(entity_type, tenant_id, record_id)
        )

    async def list_records(self, entity_type: EntityType, tenant_id: TenantId) -> list[Record]:
        """Get every record of one type belonging to a tenant."""
        with self._span("list", entity_type, tenant_id):
            return await self._store.query(self._table(entity_type), tenant_id)

    async def _require(
        self,
        entity_type: EntityType,
        tenant_id: TenantId,
        record_id: str,
    ) -> Record:
        record = await self.get_record(entity_type, tenant_id, record_id)
        if record is None:
            raise ForeignKeyError(entity_type.value, record_id, tenant_id)
        return record

    async def create_expense(self, tenant_id: TenantId, data: dict[str, Any]) -> Record:
        """
        Create an expense.

        Raises:
            RecordValidationError: Invalid fields, unknown payment method or
                amount above the maximum
            ForeignKeyError: Referenced project or contractor not in the tenant
            DuplicateRecordError: Invoice number already used in the tenant
        """
        with self._span("create", EntityType.EXPENSE, tenant_id):
            expense = self._new_record(EntityType.EXPENSE, tenant_id)
            for name in ("projectId", "contractorId", "invoiceNum", "amount",
                         "paymentMethod", "date", "description", "receiptImage"):
                if data.get(name) is not None:
                    expense[name] = _clean(data[name])

            model = validate_record(EntityType.EXPENSE, expense)
            problems = []
            if expense["paymentMethod"] not in VALID_PAYMENT_METHODS:
                problems.append(f"paymentMethod: must be one of {sorted(VALID_PAYMENT_METHODS)}")
            if model.amount > MAX_EXPENSE_AMOUNT:
                problems.append("amount: exceeds maximum limit (1,000,000)")
            if problems:
                raise RecordValidationError(EntityType.EXPENSE.value, problems)

            if expense.get("projectId"):
                await self._require(EntityType.PROJECT, tenant_id, expense["projectId"])
            if expense.get("contractorId"):
                await self._require(EntityType.CONTRACTOR, tenant_id, expense["contractorId"])

            duplicates = await self._store.query(
                self._table(EntityType.EXPENSE),
                tenant_id,
                filters={"invoiceNum": expense["invoiceNum"]},
            )
            if duplicates:
                raise DuplicateRecordError(
                    f"Invoice number {expense['invoiceNum']} already exists"
                )

            await self._store.put_item(
                self._table(EntityType.EXPENSE), expense, if_not_exists=True
            )
            logger.info("Created expense %s for tenant %s", expense["expenseId"], tenant_id)

            if expense.get("projectId"):
                await self._adjust_spent_amount(tenant_id, expense["projectId"], expense["amount"])
            return expense

    async def create_project(self, tenant_id: TenantId, data: dict[str, Any]) -> Record:
        """
        Create a project with SpentAmount 0.

        Raises:
            RecordValidationError: Invalid fields
            DuplicateRecordError: Project name already used in the tenant
        """
        with self._span("create", EntityType.PROJECT, tenant_id):
            project = self._new_record(EntityType.PROJECT, tenant_id)
            for name in ("name", "startDate", "endDate", "budget", "description"):
                if data.get(name) is not None:
                    project[name] = _clean(data[name])
            project["status"] = _clean(data.get("status")) or "active"
            project["SpentAmount"] = 0

            validate_record(EntityType.PROJECT, project)

            duplicates = await self._store.query(
                self._table(EntityType.PROJECT), tenant_id, filters={"name": project["name"]}
            )
            if duplicates:
                raise DuplicateRecordError(f'Project with name "{project["name"]}" already exists')

            await self._store.put_item(
                self._table(EntityType.PROJECT), project, if_not_exists=True
            )
            logger.info("Created project %s for tenant %s", project["projectId"], tenant_id)
            return project

    async def create_contractor(self, tenant_id: TenantId, data: dict[str, Any]) -> Record:
        """
        Create a contractor.

        Only name and phone are stored; specialty, email and rate are no
        longer part of a contractor and are ignored.
        """
        with self._span("create", EntityType.CONTRACTOR, tenant_id):
            contractor = self._new_record(EntityType.CONTRACTOR, tenant_id)
            for name in ("name", "phone"):
                if data.get(name) is not None:
                    contractor[name] = _clean(data[name])

            validate_record(EntityType.CONTRACTOR, contractor)
            await self._store.put_item(
                self._table(EntityType.CONTRACTOR), contractor, if_not_exists=True
            )
            logger.info(
                "Created contractor %s for tenant %s", contractor["contractorId"], tenant_id
            )
            return contractor

    async def create_work(self, tenant_id: TenantId, data: dict[str, Any]) -> Record:
        """
        Create a work.

        Raises:
            RecordValidationError: Invalid fields or cost above the maximum
            ForeignKeyError: Project or contractor not in the tenant
            DuplicateRecordError: WorkName already used in the project
        """
        with self._span("create", EntityType.WORK, tenant_id):
            work = self._new_record(EntityType.WORK, tenant_id)
            for name in ("projectId", "contractorId", "WorkName", "TotalWorkCost",
                         "description", "expenseId"):
                if data.get(name) is not None:
                    work[name] = _clean(data[name])
            work["status"] = _clean(data.get("status")) or "planned"

            model = validate_record(EntityType.WORK, work)
            if model.total_work_cost > MAX_WORK_COST:
                raise RecordValidationError(
                    EntityType.WORK.value,
                    ["TotalWorkCost: exceeds maximum limit (10,000,000)"],
                )

            await self._require(EntityType.PROJECT, tenant_id, work["projectId"])
            await self._require(EntityType.CONTRACTOR, tenant_id, work["contractorId"])

            duplicates = await self._store.query(
                self._table(EntityType.WORK),
                tenant_id,
                filters={"projectId": work["projectId"], "WorkName": work["WorkName"]},
            )
            if duplicates:
                raise DuplicateRecordError(
                    f'Work with name "{work["WorkName"]}" already exists in this project'
                )

            await self._store.put_item(self._table(EntityType.WORK), work, if_not_exists=True)
            logger.info("Created work %s for tenant %s", work["workId"], tenant_id)
            return work

    async def delete_expense(self, tenant_id: TenantId, expense_id: str) -> Record:
        """
        Delete an expense and take its amount off the project's SpentAmount.

        SpentAmount never drops below zero.

        Raises:
            RecordNotFoundError: If the tenant has no such expense
        """
        with self._span("delete", EntityType.EXPENSE, tenant_id):
            expense = await self.get_record(EntityType.EXPENSE, tenant_id, expense_id)
            if expense is None:
                raise RecordNotFoundError(EntityType.EXPENSE.value, expense_id)

            await self._store.delete_item(
                self._table(EntityType.EXPENSE),
                self._key(EntityType.EXPENSE, tenant_id, expense_id),
            )
            logger.info("Deleted expense %s for tenant %s", expense_id, tenant_id)

            if expense.get("projectId") and expense.get("amount") is not None:
                await self._adjust_spent_amount(
                    tenant_id, expense["projectId"], -Decimal(str(expense["amount"]))
                )
            return expense

    async def _adjust_spent_amount(
        self,
        tenant_id: TenantId,
        project_id: str,
        change: Any,
    ) -> None:
        project = await self.get_record(EntityType.PROJECT, tenant_id, project_id)
        if project is None:
            logger.warning(
                "Project %s of tenant %s is gone, SpentAmount not updated", project_id, tenant_id
            )
            return
        project["SpentAmount"] = _add_amounts(project.get("SpentAmount"), change)
        project["updatedAt"] = self._clock()
        await self._store.put_item(self._table(EntityType.PROJECT), project)


__all__ = [
    "MAX_EXPENSE_AMOUNT",
    "MAX_WORK_COST",
    "VALID_PAYMENT_METHODS",
    "TenantEntityRepository",
    "generate_id",
]
