"""
Shared test fixtures for the tenantmigrate package.

This module provides reusable test helpers including:
- Legacy record factories (make_expense, make_project, ...)
- Table creation and seeding helpers for any TableStore

Usage:
    from tests.fixtures import (
        add_membership,
        create_pipeline_tables,
        make_expense,
        seed_records,
    )
"""

from tests.fixtures.records import (
    add_membership,
    create_pipeline_tables,
    make_contractor,
    make_expense,
    make_project,
    make_work,
    seed_records,
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
