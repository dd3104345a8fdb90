"""
Decommission stage: removes the legacy handlers and tables.

Every compute handler is deleted before any table, so nothing can still
be writing to a table when it goes. Each deletion is tracked on its own
and a failure never stops the loop.

The sequencer does not know whether validation ran. Running it only after
a validation report with zero missing and zero mismatched records is an
operator precondition; the CLI asks for explicit confirmation.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import UTC, datetime
from typing import Protocol, runtime_checkable

import boto3
from botocore.exceptions import ClientError

from tenantmigrate.migration.exceptions import DecommissionError
from tenantmigrate.migration.models import DecommissionReport, DeletionResult, ResourceKind
from tenantmigrate.observability import (
    ATTR_RESOURCE_KIND,
    ATTR_RESOURCE_NAME,
    Tracer,
    create_tracer,
)
from tenantmigrate.stores.interface import TableStore

logger = logging.getLogger(__name__)


@runtime_checkable
class ResourceDeleter(Protocol):
    """
    Deletes infrastructure resources by name.

    Implementations:
    - AwsResourceDeleter: Lambda functions and DynamoDB tables via boto3
    - StoreResourceDeleter: tables of any TableStore
    """

    async def delete_function(self, name: str) -> None:
        """Delete a compute handler. Raises on failure."""
        ...

    async def delete_table(self, name: str) -> None:
        """Delete a storage table. Raises on failure."""
        ...


class AwsResourceDeleter:
    """
    Deletes Lambda functions and DynamoDB tables.

    boto3 calls run in a worker thread through asyncio.to_thread.
    """

    def __init__(
        self,
        *,
        region: str | None = None,
        session: boto3.session.Session | None = None,
    ) -> None:
        session = session or boto3.session.Session(region_name=region)
        self._lambda = session.client("lambda")
        self._dynamodb = session.client("dynamodb")

    async def delete_function(self, name: str) -> None:
        try:
            await asyncio.to_thread(self._lambda.delete_function, FunctionName=name)
        except ClientError as e:
            raise DecommissionError(ResourceKind.FUNCTION.value, name, str(e)) from e

    async def delete_table(self, name: str) -> None:
        try:
            await asyncio.to_thread(self._dynamodb.delete_table, TableName=name)
        except ClientError as e:
            raise DecommissionError(ResourceKind.TABLE.value, name, str(e)) from e


class StoreResourceDeleter:
    """
    Deletes tables of a TableStore.

    A table store has no compute handlers, so delete_function always fails.
    """

    def __init__(self, store: TableStore) -> None:
        self._store = store

    async def delete_function(self, name: str) -> None:
        raise DecommissionError(
            ResourceKind.FUNCTION.value,
            name,
            "table stores have no compute handlers",
        )

    async def delete_table(self, name: str) -> None:
        await self._store.delete_table(name)


class DecommissionSequencer:
    """
    Deletes legacy functions, then legacy tables.

    Example:
        >>> sequencer = DecommissionSequencer(AwsResourceDeleter(region="us-east-1"))
        >>> report = await sequencer.run(config.legacy_functions, config.legacy_tables)
        >>> report.success
        True
    """

    def __init__(
        self,
        deleter: ResourceDeleter,
        *,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        self._deleter = deleter
        self._tracer = tracer or create_tracer(__name__, enable_tracing)

    async def run(
        self,
        functions: list[str] | tuple[str, ...],
        tables: list[str] | tuple[str, ...],
    ) -> DecommissionReport:
        """
        Delete every function, then every table.

        Returns:
            Report with one result per resource, functions first
        """
        timestamp = datetime.now(UTC)
        results: list[DeletionResult] = []

        logger.info("Deleting %d functions", len(functions))
        for name in functions:
            results.append(await self._delete(ResourceKind.FUNCTION, name))

        logger.info("Deleting %d tables", len(tables))
        for name in tables:
            results.append(await self._delete(ResourceKind.TABLE, name))

        report = DecommissionReport(timestamp=timestamp, results=tuple(results))
        logger.info(
            "Decommission complete: functions %d deleted / %d failed, "
            "tables %d deleted / %d failed",
            report.deleted_functions,
            report.failed_functions,
            report.deleted_tables,
            report.failed_tables,
        )
        return report

    async def _delete(self, kind: ResourceKind, name: str) -> DeletionResult:
        with self._tracer.span(
            "tenantmigrate.decommission.delete",
            {ATTR_RESOURCE_KIND: kind.value, ATTR_RESOURCE_NAME: name},
        ):
            try:
                if kind is ResourceKind.FUNCTION:
                    await self._deleter.delete_function(name)
                else:
                    await self._deleter.delete_table(name)
            except Exception as e:
                logger.error("Failed to delete %s %s: %s", kind.value, name, e)
                return DeletionResult(kind=kind, name=name, success=False, error=str(e))

            logger.info("Deleted %s %s", kind.value, name)
            return DeletionResult(kind=kind, name=name, success=True)


__all__ = [
    "AwsResourceDeleter",
    "DecommissionSequencer",
    "ResourceDeleter",
    "StoreResourceDeleter",
]
