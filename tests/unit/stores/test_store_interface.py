"""
Unit tests for the table store data structures.
"""

from datetime import UTC, datetime

import pytest

from tenantmigrate.stores import KeySchema, ScanPage, TableMetadata, matches_filters


class TestKeySchema:
    """Tests for KeySchema."""

    def test_attribute_names(self) -> None:
        assert KeySchema("userId", "expenseId").attribute_names == ("userId", "expenseId")
        assert KeySchema("id").attribute_names == ("id",)

    def test_key_for_extracts_key(self) -> None:
        """Only the key attributes are returned."""
        schema = KeySchema("companyId", "expenseId")

        key = schema.key_for({"companyId": "c1", "expenseId": "e1", "amount": 5})

        assert key == {"companyId": "c1", "expenseId": "e1"}

    @pytest.mark.parametrize("item", [{"companyId": "c1"}, {"companyId": "c1", "expenseId": ""}])
    def test_key_for_missing_attribute(self, item: dict) -> None:
        """Missing or empty key attributes raise ValueError."""
        with pytest.raises(ValueError, match="expenseId"):
            KeySchema("companyId", "expenseId").key_for(item)

    def test_dict_round_trip(self) -> None:
        """to_dict produces HASH/RANGE elements that from_dict reads back."""
        schema = KeySchema("companyId", "workId")

        elements = schema.to_dict()

        assert elements == [
            {"AttributeName": "companyId", "KeyType": "HASH"},
            {"AttributeName": "workId", "KeyType": "RANGE"},
        ]
        assert KeySchema.from_dict(elements) == schema

    def test_from_dict_without_hash(self) -> None:
        with pytest.raises(ValueError):
            KeySchema.from_dict([{"AttributeName": "workId", "KeyType": "RANGE"}])


class TestScanPage:
    """Tests for ScanPage."""

    def test_is_last(self) -> None:
        assert ScanPage(items=[]).is_last is True
        assert ScanPage(items=[], last_key={"id": "1"}).is_last is False


class TestTableMetadata:
    """Tests for TableMetadata."""

    def test_snapshot_block_round_trip(self) -> None:
        """The camelCase metadata block reads back into equal metadata."""
        metadata = TableMetadata(
            table_name="t",
            key_schema=KeySchema("userId", "expenseId"),
            attribute_definitions=[{"AttributeName": "userId", "AttributeType": "S"}],
            billing_mode="PAY_PER_REQUEST",
            item_count=4,
            creation_time=datetime(2024, 5, 1, tzinfo=UTC),
        )

        data = metadata.to_dict()

        assert data["keySchema"][0]["KeyType"] == "HASH"
        assert data["creationTime"] == "2024-05-01T00:00:00+00:00"
        assert TableMetadata.from_dict("t", data) == metadata


class TestMatchesFilters:
    """Tests for matches_filters."""

    def test_no_filters_match_everything(self) -> None:
        assert matches_filters({"a": 1}, None) is True
        assert matches_filters({"a": 1}, {}) is True

    def test_equality(self) -> None:
        item = {"invoiceNum": "INV-1", "projectId": "p1"}

        assert matches_filters(item, {"invoiceNum": "INV-1"}) is True
        assert matches_filters(item, {"invoiceNum": "INV-1", "projectId": "p2"}) is False
        assert matches_filters(item, {"missing": None}) is True
