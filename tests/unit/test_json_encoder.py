"""
Unit tests for record JSON serialization.
"""

import json
from datetime import UTC, date, datetime
from decimal import Decimal
from uuid import UUID

import pytest

from tenantmigrate.serialization import (
    RecordJSONEncoder,
    decimal_to_number,
    json_dumps,
    json_loads,
)


class TestDecimalToNumber:
    def test_integral_becomes_int(self) -> None:
        value = decimal_to_number(Decimal("25000"))

        assert value == 25000
        assert isinstance(value, int)

    def test_fraction_stays_decimal(self) -> None:
        value = decimal_to_number(Decimal("12.75"))

        assert value == Decimal("12.75")
        assert isinstance(value, Decimal)


class TestRecordJSONEncoder:
    def test_supported_types(self) -> None:
        payload = {
            "amount": Decimal("10.5"),
            "id": UUID("12345678-1234-5678-1234-567812345678"),
            "at": datetime(2025, 1, 2, 3, 4, 5, tzinfo=UTC),
            "day": date(2025, 1, 2),
            "tags": {"b", "a"},
        }

        data = json.loads(json.dumps(payload, cls=RecordJSONEncoder))

        assert data == {
            "amount": 10.5,
            "id": "12345678-1234-5678-1234-567812345678",
            "at": "2025-01-02T03:04:05+00:00",
            "day": "2025-01-02",
            "tags": ["a", "b"],
        }

    def test_unsupported_type_raises(self) -> None:
        with pytest.raises(TypeError):
            json.dumps({"x": object()}, cls=RecordJSONEncoder)


class TestJsonHelpers:
    def test_non_ascii_is_kept(self) -> None:
        """Hebrew text is written as-is."""
        text = json_dumps({"paymentMethod": "העברה בנקאית"})

        assert "העברה בנקאית" in text
        assert json_loads(text) == {"paymentMethod": "העברה בנקאית"}

    def test_indent(self) -> None:
        assert json_dumps({"a": 1}, indent=2) == '{\n  "a": 1\n}'

    def test_loads_bytes(self) -> None:
        assert json_loads(b'{"amount": 5}') == {"amount": 5}

    def test_high_precision_decimal_keeps_every_digit(self) -> None:
        amount = Decimal("1234.567890123456789012")

        text = json_dumps({"amount": amount, "rate": Decimal("-0.5"), "tiny": Decimal("1E-7")})

        assert text == '{"amount": 1234.567890123456789012, "rate": -0.5, "tiny": 1E-7}'
        loaded = json_loads(text)
        assert loaded["amount"] == amount
        assert isinstance(loaded["amount"], Decimal)

    def test_decimal_inside_lists_and_indented_output(self) -> None:
        amount = Decimal("0.1000000000000000055511151231257827")

        loaded = json_loads(json_dumps({"items": [{"amount": amount}]}, indent=2))

        assert loaded["items"][0]["amount"] == amount

    def test_text_that_looks_like_a_marker_is_kept(self) -> None:
        payload = {"description": "\\u0000decimal:5\\u0000", "raw": "\x00decimal:5\x00"}

        assert json_loads(json_dumps(payload)) == payload
