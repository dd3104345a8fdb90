"""
Unit tests for DecommissionSequencer and the resource deleters.
"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest
from botocore.exceptions import ClientError

from tenantmigrate.config import PipelineConfig
from tenantmigrate.exceptions import TableNotFoundError
from tenantmigrate.migration import (
    AwsResourceDeleter,
    DecommissionError,
    DecommissionSequencer,
    ResourceDeleter,
    ResourceKind,
    StoreResourceDeleter,
)
from tenantmigrate.observability import MockTracer
from tenantmigrate.stores import InMemoryTableStore


class RecordingDeleter:
    """Deleter that records calls and fails for selected names."""

    def __init__(self, failing: set[str] | None = None) -> None:
        self.calls: list[tuple[str, str]] = []
        self._failing = failing or set()

    async def delete_function(self, name: str) -> None:
        self.calls.append(("function", name))
        if name in self._failing:
            raise DecommissionError("function", name, "AccessDeniedException")

    async def delete_table(self, name: str) -> None:
        self.calls.append(("table", name))
        if name in self._failing:
            raise RuntimeError("ResourceInUseException")


def _client_error(code: str, operation: str) -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


class TestDecommissionSequencer:
    """Tests for DecommissionSequencer.run."""

    @pytest.mark.asyncio
    async def test_functions_are_deleted_before_tables(self) -> None:
        deleter = RecordingDeleter()
        sequencer = DecommissionSequencer(deleter, enable_tracing=False)

        report = await sequencer.run(["fn-a", "fn-b"], ["table-a", "table-b"])

        assert deleter.calls == [
            ("function", "fn-a"),
            ("function", "fn-b"),
            ("table", "table-a"),
            ("table", "table-b"),
        ]
        assert [r.kind for r in report.results] == [
            ResourceKind.FUNCTION,
            ResourceKind.FUNCTION,
            ResourceKind.TABLE,
            ResourceKind.TABLE,
        ]
        assert report.success is True
        assert report.deleted_functions == 2
        assert report.deleted_tables == 2

    @pytest.mark.asyncio
    async def test_failure_does_not_stop_remaining_deletions(self) -> None:
        deleter = RecordingDeleter(failing={"fn-a", "table-a"})
        sequencer = DecommissionSequencer(deleter, enable_tracing=False)

        report = await sequencer.run(["fn-a", "fn-b"], ["table-a", "table-b"])

        assert len(deleter.calls) == 4
        assert report.success is False
        assert report.failed_functions == 1
        assert report.deleted_functions == 1
        assert report.failed_tables == 1
        assert report.deleted_tables == 1
        assert report.results[0].error is not None
        assert "fn-a" in report.results[0].error
        assert report.results[2].error == "ResourceInUseException"

    @pytest.mark.asyncio
    async def test_report_layout(self) -> None:
        sequencer = DecommissionSequencer(RecordingDeleter({"t1"}), enable_tracing=False)

        report = await sequencer.run([], ["t1"])

        data = report.to_dict()
        assert data["results"] == [
            {"kind": "table", "name": "t1", "success": False, "error": "ResourceInUseException"}
        ]
        assert data["summary"] == {
            "deletedFunctions": 0,
            "failedFunctions": 0,
            "deletedTables": 0,
            "failedTables": 1,
            "success": False,
        }

    @pytest.mark.asyncio
    async def test_default_inventory(self, config: PipelineConfig) -> None:
        deleter = RecordingDeleter()

        report = await DecommissionSequencer(deleter, enable_tracing=False).run(
            config.legacy_functions, config.legacy_tables
        )

        assert report.deleted_functions == 13
        assert report.deleted_tables == 5
        assert deleter.calls[-1] == ("table", "construction-expenses-multi-table-users")

    @pytest.mark.asyncio
    async def test_emits_span_per_resource(self, mock_tracer: MockTracer) -> None:
        sequencer = DecommissionSequencer(RecordingDeleter(), tracer=mock_tracer)

        await sequencer.run(["fn"], ["t"])

        assert mock_tracer.span_names == ["tenantmigrate.decommission.delete"] * 2


class TestStoreResourceDeleter:
    def test_implements_protocol(self, memory_store: InMemoryTableStore) -> None:
        assert isinstance(StoreResourceDeleter(memory_store), ResourceDeleter)

    @pytest.mark.asyncio
    async def test_deletes_tables(
        self, pipeline_store: InMemoryTableStore, config: PipelineConfig
    ) -> None:
        deleter = StoreResourceDeleter(pipeline_store)
        legacy = [m.source_table for m in config.table_mappings]

        report = await DecommissionSequencer(deleter, enable_tracing=False).run((), legacy)

        assert report.success is True
        remaining = await pipeline_store.list_tables()
        assert not set(legacy) & set(remaining)
        assert config.membership_table in remaining

    @pytest.mark.asyncio
    async def test_missing_table_fails(self, memory_store: InMemoryTableStore) -> None:
        with pytest.raises(TableNotFoundError):
            await StoreResourceDeleter(memory_store).delete_table("missing")

    @pytest.mark.asyncio
    async def test_has_no_functions(self, memory_store: InMemoryTableStore) -> None:
        with pytest.raises(DecommissionError):
            await StoreResourceDeleter(memory_store).delete_function("fn")


class TestAwsResourceDeleter:
    """Tests for AwsResourceDeleter with a mocked boto3 session."""

    @pytest.fixture
    def clients(self) -> dict[str, MagicMock]:
        return {"lambda": MagicMock(), "dynamodb": MagicMock()}

    @pytest.fixture
    def deleter(self, clients: dict[str, MagicMock]) -> AwsResourceDeleter:
        session = MagicMock()
        session.client.side_effect = lambda name: clients[name]
        return AwsResourceDeleter(session=session)

    def test_implements_protocol(self, deleter: AwsResourceDeleter) -> None:
        assert isinstance(deleter, ResourceDeleter)

    @pytest.mark.asyncio
    async def test_delete_function(
        self, deleter: AwsResourceDeleter, clients: dict[str, MagicMock]
    ) -> None:
        await deleter.delete_function("fn-a")

        clients["lambda"].delete_function.assert_called_once_with(FunctionName="fn-a")

    @pytest.mark.asyncio
    async def test_delete_table(
        self, deleter: AwsResourceDeleter, clients: dict[str, MagicMock]
    ) -> None:
        await deleter.delete_table("table-a")

        clients["dynamodb"].delete_table.assert_called_once_with(TableName="table-a")

    @pytest.mark.asyncio
    async def test_client_errors_become_decommission_errors(
        self, deleter: AwsResourceDeleter, clients: dict[str, MagicMock]
    ) -> None:
        clients["lambda"].delete_function.side_effect = _client_error(
            "ResourceNotFoundException", "DeleteFunction"
        )
        clients["dynamodb"].delete_table.side_effect = _client_error(
            "ResourceInUseException", "DeleteTable"
        )

        with pytest.raises(DecommissionError) as function_error:
            await deleter.delete_function("fn-a")
        with pytest.raises(DecommissionError) as table_error:
            await deleter.delete_table("table-a")

        assert function_error.value.resource_kind == "function"
        assert table_error.value.resource_name == "table-a"

    @pytest.mark.asyncio
    async def test_sequencer_with_partial_aws_failure(
        self, deleter: AwsResourceDeleter, clients: dict[str, MagicMock]
    ) -> None:
        clients["lambda"].delete_function.side_effect = [
            None,
            _client_error("TooManyRequestsException", "DeleteFunction"),
        ]

        report = await DecommissionSequencer(deleter, enable_tracing=False).run(
            ["fn-a", "fn-b"], ["table-a"]
        )

        assert report.deleted_functions == 1
        assert report.failed_functions == 1
        assert report.deleted_tables == 1


class TestSequencerWithAsyncMock:
    @pytest.mark.asyncio
    async def test_any_deleter_object(self) -> None:
        deleter = AsyncMock()

        report = await DecommissionSequencer(deleter, enable_tracing=False).run(["fn"], ["t"])

        deleter.delete_function.assert_awaited_once_with("fn")
        deleter.delete_table.assert_awaited_once_with("t")
        assert report.success is True
