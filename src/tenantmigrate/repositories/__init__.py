"""
Repositories over the company-scoped tables.
"""

from tenantmigrate.repositories.entities import (
    MAX_EXPENSE_AMOUNT,
    MAX_WORK_COST,
    VALID_PAYMENT_METHODS,
    TenantEntityRepository,
    generate_id,
)

__all__ = [
    "MAX_EXPENSE_AMOUNT",
    "MAX_WORK_COST",
    "VALID_PAYMENT_METHODS",
    "TenantEntityRepository",
    "generate_id",
]
