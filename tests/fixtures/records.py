"""
Record factories and table seeding helpers for tests.

Factories build legacy (per-user) records with sensible defaults; any
field can be overridden. Seeding helpers create the pipeline's tables in a
store with the key schemas the configuration prescribes.
"""

from __future__ import annotations

from typing import Any

from tenantmigrate.config import PipelineConfig
from tenantmigrate.entities import EntityType
from tenantmigrate.stores.interface import TableStore
from tenantmigrate.types import Record


def make_expense(user_id: str = "u1", expense_id: str = "e1", **overrides: Any) -> Record:
    """Create a legacy expense record."""
    record: Record = {
        "userId": user_id,
        "expenseId": expense_id,
        "amount": 1500,
        "date": "2025-03-01",
        "invoiceNum": f"INV-{expense_id}",
        "paymentMethod": "מזומן",
        "projectId": "p1",
        "contractorId": "c1",
        "description": "Cement delivery",
    }
    record.update(overrides)
    return record


def make_project(user_id: str = "u1", project_id: str = "p1", **overrides: Any) -> Record:
    """Create a legacy project record."""
    record: Record = {
        "userId": user_id,
        "projectId": project_id,
        "name": f"Project {project_id}",
        "startDate": "2025-01-01",
        "budget": 250000,
        "status": "active",
        "SpentAmount": 0,
    }
    record.update(overrides)
    return record


def make_contractor(user_id: str = "u1", contractor_id: str = "c1", **overrides: Any) -> Record:
    """Create a legacy contractor record."""
    record: Record = {
        "userId": user_id,
        "contractorId": contractor_id,
        "name": f"Contractor {contractor_id}",
        "phone": "050-1234567",
    }
    record.update(overrides)
    return record


def make_work(user_id: str = "u1", work_id: str = "w1", **overrides: Any) -> Record:
    """Create a legacy work record."""
    record: Record = {
        "userId": user_id,
        "workId": work_id,
        "projectId": "p1",
        "contractorId": "c1",
        "WorkName": f"Work {work_id}",
        "TotalWorkCost": 12000,
        "status": "planned",
    }
    record.update(overrides)
    return record


async def create_pipeline_tables(
    store: TableStore,
    config: PipelineConfig,
    *,
    legacy: bool = True,
    company: bool = True,
    membership: bool = True,
) -> None:
    """Create the legacy, company-scoped and membership tables in a store."""
    for entity_type in EntityType:
        mapping = config.mapping_for(entity_type)
        if legacy:
            await store.create_table(mapping.source_table, config.source_key_schema(entity_type))
        if company:
            await store.create_table(mapping.target_table, config.target_key_schema(entity_type))
    if membership:
        await store.create_table(config.membership_table, config.membership_key_schema)


async def seed_records(
    store: TableStore,
    config: PipelineConfig,
    entity_type: EntityType,
    records: list[Record],
) -> None:
    """Write records into the legacy table of an entity type."""
    table_name = config.mapping_for(entity_type).source_table
    for record in records:
        await store.put_item(table_name, record)


async def add_membership(
    store: TableStore,
    config: PipelineConfig,
    user_id: str,
    company_id: str,
    role: str = "admin",
) -> None:
    """Associate a user with a company in the membership table."""
    await store.put_item(
        config.membership_table,
        {"companyId": company_id, "userId": user_id, "role": role},
    )


__all__ = [
    "add_membership",
    "create_pipeline_tables",
    "make_contractor",
    "make_expense",
    "make_project",
    "make_work",
    "seed_records",
]
