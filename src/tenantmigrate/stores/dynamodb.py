"""
DynamoDB table store implementation.

Wraps the synchronous boto3 DynamoDB API. Every boto3 call runs in a
worker thread through ``asyncio.to_thread`` so the store can be awaited
like the other backends.

DynamoDB-specific adaptations:
- Numbers are returned by boto3 as Decimal; integral ones are read back as
  int so they compare equal to items from other backends, fractional ones
  stay Decimal so no digits are lost, and floats become Decimal on write
- Insert-if-absent uses a ``attribute_not_exists`` condition expression
- Missing tables surface as ResourceNotFoundException and are mapped to
  TableNotFoundError
"""

from __future__ import annotations

import asyncio
import logging
from decimal import Decimal
from functools import reduce
from typing import Any, NoReturn

import boto3
from boto3.dynamodb.conditions import Attr, Key
from botocore.exceptions import ClientError

from tenantmigrate.exceptions import (
    ItemAlreadyExistsError,
    StoreError,
    TableAlreadyExistsError,
    TableNotFoundError,
)
from tenantmigrate.observability import (
    ATTR_DB_OPERATION,
    ATTR_DB_SYSTEM,
    ATTR_TABLE_NAME,
    Tracer,
    create_tracer,
)
from tenantmigrate.serialization import decimal_to_number
from tenantmigrate.stores.interface import (
    DEFAULT_PAGE_SIZE,
    KeySchema,
    ScanPage,
    TableMetadata,
    TableStore,
)
from tenantmigrate.types import ItemKey, Record

logger = logging.getLogger(__name__)


def to_dynamodb(value: Any) -> Any:
    """Convert floats (also nested) to Decimal for boto3."""
    if isinstance(value, bool):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    if isinstance(value, dict):
        return {k: to_dynamodb(v) for k, v in value.items()}
    if isinstance(value, list):
        return [to_dynamodb(v) for v in value]
    return value


def from_dynamodb(value: Any) -> Any:
    """Turn integral Decimals (also nested) returned by boto3 into ints; keep the rest exact."""
    if isinstance(value, Decimal):
        return decimal_to_number(value)
    if isinstance(value, dict):
        return {k: from_dynamodb(v) for k, v in value.items()}
    if isinstance(value, list):
        return [from_dynamodb(v) for v in value]
    if isinstance(value, set):
        return {from_dynamodb(v) for v in value}
    return value


def _error_code(error: ClientError) -> str:
    return str(error.response.get("Error", {}).get("Code", ""))


class DynamoDBTableStore(TableStore):
    """
    DynamoDB implementation of the table store.

    Example:
        >>> store = DynamoDBTableStore(region="us-east-1")
        >>> page = await store.scan_page("construction-expenses-multi-table-expenses")

    Note:
        A boto3 session can be injected for tests or for a named profile.
    """

    def __init__(
        self,
        *,
        region: str | None = None,
        session: boto3.session.Session | None = None,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        """
        Initialize the DynamoDB table store.

        Args:
            region: AWS region name (uses the boto3 default chain when None)
            session: Optional boto3 session to create clients from
            tracer: Optional custom Tracer instance. If not provided, one is
                   created based on enable_tracing setting.
            enable_tracing: If True and OpenTelemetry is available, emit traces (default: True).
                          Ignored if tracer is explicitly provided.
        """
        self._session = session or boto3.session.Session(region_name=region)
        self._client = self._session.client("dynamodb")
        self._resource = self._session.resource("dynamodb")
        self._tracer = tracer or create_tracer(__name__, enable_tracing)
        self._schemas: dict[str, KeySchema] = {}

    def _span_attributes(self, table_name: str, operation: str) -> dict[str, Any]:
        return {
            ATTR_TABLE_NAME: table_name,
            ATTR_DB_SYSTEM: "dynamodb",
            ATTR_DB_OPERATION: operation,
        }

    def _raise_for(self, table_name: str, error: ClientError) -> NoReturn:
        if _error_code(error) == "ResourceNotFoundException":
            raise TableNotFoundError(table_name) from error
        raise StoreError(f"DynamoDB error on {table_name}: {error}") from error

    async def _key_schema(self, table_name: str) -> KeySchema:
        schema = self._schemas.get(table_name)
        if schema is None:
            schema = (await self.describe_table(table_name)).key_schema
        return schema

    async def scan_page(
        self,
        table_name: str,
        *,
        start_key: ItemKey | None = None,
        limit: int | None = None,
    ) -> ScanPage:
        with self._tracer.span(
            "tenantmigrate.store.scan_page",
            self._span_attributes(table_name, "Scan"),
        ):
            kwargs: dict[str, Any] = {"Limit": limit or DEFAULT_PAGE_SIZE}
            if start_key is not None:
                kwargs["ExclusiveStartKey"] = to_dynamodb(start_key)

            table = self._resource.Table(table_name)
            try:
                response = await asyncio.to_thread(table.scan, **kwargs)
            except ClientError as e:
                self._raise_for(table_name, e)

            items = [from_dynamodb(item) for item in response.get("Items", [])]
            last_key = response.get("LastEvaluatedKey")
            return ScanPage(
                items=items,
                last_key=from_dynamodb(last_key) if last_key is not None else None,
            )

    async def get_item(self, table_name: str, key: ItemKey) -> Record | None:
        with self._tracer.span(
            "tenantmigrate.store.get_item",
            self._span_attributes(table_name, "GetItem"),
        ):
            table = self._resource.Table(table_name)
            try:
                response = await asyncio.to_thread(table.get_item, Key=to_dynamodb(key))
            except ClientError as e:
                self._raise_for(table_name, e)
            item = response.get("Item")
            return from_dynamodb(item) if item is not None else None

    async def query(
        self,
        table_name: str,
        partition_value: Any,
        *,
        filters: dict[str, Any] | None = None,
    ) -> list[Record]:
        with self._tracer.span(
            "tenantmigrate.store.query",
            self._span_attributes(table_name, "Query"),
        ):
            schema = await self._key_schema(table_name)
            kwargs: dict[str, Any] = {
                "KeyConditionExpression": Key(schema.partition_key).eq(
                    to_dynamodb(partition_value)
                ),
            }
            if filters:
                kwargs["FilterExpression"] = reduce(
                    lambda a, b: a & b,
                    [Attr(name).eq(to_dynamodb(value)) for name, value in filters.items()],
                )

            table = self._resource.Table(table_name)
            items: list[Record] = []
            while True:
                try:
                    response = await asyncio.to_thread(table.query, **kwargs)
                except ClientError as e:
                    self._raise_for(table_name, e)
                items.extend(from_dynamodb(item) for item in response.get("Items", []))
                if "LastEvaluatedKey" not in response:
                    break
                kwargs["ExclusiveStartKey"] = response["LastEvaluatedKey"]
            return items

    async def put_item(
        self,
        table_name: str,
        item: Record,
        *,
        if_not_exists: bool = False,
    ) -> None:
        with self._tracer.span(
            "tenantmigrate.store.put_item",
            self._span_attributes(table_name, "PutItem"),
        ):
            kwargs: dict[str, Any] = {"Item": to_dynamodb(item)}
            if if_not_exists:
                schema = await self._key_schema(table_name)
                kwargs["ConditionExpression"] = "attribute_not_exists(#pk)"
                kwargs["ExpressionAttributeNames"] = {"#pk": schema.partition_key}

            table = self._resource.Table(table_name)
            try:
                await asyncio.to_thread(table.put_item, **kwargs)
            except ClientError as e:
                if _error_code(e) == "ConditionalCheckFailedException":
                    schema = await self._key_schema(table_name)
                    raise ItemAlreadyExistsError(table_name, schema.key_for(item)) from e
                self._raise_for(table_name, e)

    async def delete_item(self, table_name: str, key: ItemKey) -> bool:
        with self._tracer.span(
            "tenantmigrate.store.delete_item",
            self._span_attributes(table_name, "DeleteItem"),
        ):
            table = self._resource.Table(table_name)
            try:
                response = await asyncio.to_thread(
                    table.delete_item,
                    Key=to_dynamodb(key),
                    ReturnValues="ALL_OLD",
                )
            except ClientError as e:
                self._raise_for(table_name, e)
            return "Attributes" in response

    async def describe_table(self, table_name: str) -> TableMetadata:
        with self._tracer.span(
            "tenantmigrate.store.describe_table",
            self._span_attributes(table_name, "DescribeTable"),
        ):
            try:
                response = await asyncio.to_thread(
                    self._client.describe_table, TableName=table_name
                )
            except ClientError as e:
                self._raise_for(table_name, e)

            description = response["Table"]
            schema = KeySchema.from_dict(description["KeySchema"])
            self._schemas[table_name] = schema
            return TableMetadata(
                table_name=table_name,
                key_schema=schema,
                attribute_definitions=description.get("AttributeDefinitions", []),
                secondary_indexes=description.get("GlobalSecondaryIndexes", []),
                billing_mode=description.get("BillingModeSummary", {}).get("BillingMode"),
                item_count=int(description.get("ItemCount", 0)),
                status=description.get("TableStatus", "ACTIVE"),
                creation_time=description.get("CreationDateTime"),
            )

    async def create_table(self, table_name: str, key_schema: KeySchema) -> None:
        try:
            await asyncio.to_thread(
                self._client.create_table,
                TableName=table_name,
                KeySchema=key_schema.to_dict(),
                AttributeDefinitions=[
                    {"AttributeName": name, "AttributeType": "S"}
                    for name in key_schema.attribute_names
                ],
                BillingMode="PAY_PER_REQUEST",
            )
        except ClientError as e:
            if _error_code(e) == "ResourceInUseException":
                raise TableAlreadyExistsError(table_name) from e
            self._raise_for(table_name, e)

        waiter = self._client.get_waiter("table_exists")
        await asyncio.to_thread(waiter.wait, TableName=table_name)
        self._schemas[table_name] = key_schema
        logger.info("Created DynamoDB table %s", table_name)

    async def delete_table(self, table_name: str) -> None:
        try:
            await asyncio.to_thread(self._client.delete_table, TableName=table_name)
        except ClientError as e:
            self._raise_for(table_name, e)
        self._schemas.pop(table_name, None)
        logger.info("Deleted DynamoDB table %s", table_name)

    async def list_tables(self) -> list[str]:
        names: list[str] = []
        kwargs: dict[str, Any] = {}
        while True:
            response = await asyncio.to_thread(self._client.list_tables, **kwargs)
            names.extend(response.get("TableNames", []))
            if "LastEvaluatedTableName" not in response:
                break
            kwargs["ExclusiveStartTableName"] = response["LastEvaluatedTableName"]
        return names

    async def table_exists(self, table_name: str) -> bool:
        try:
            await self.describe_table(table_name)
        except TableNotFoundError:
            return False
        return True


__all__ = ["DynamoDBTableStore", "from_dynamodb", "to_dynamodb"]
