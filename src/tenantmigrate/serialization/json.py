"""
JSON helpers for stored records.

DynamoDB hands numbers back as Decimal, and reports carry datetimes.
Everything written to a snapshot, a report or the SQLite backend goes
through json_dumps so those values land as plain JSON numbers without
losing digits, and json_loads reads fractional numbers back as Decimal.

Example:
    >>> from decimal import Decimal
    >>> json_dumps({"amount": Decimal("25000"), "rate": Decimal("12.123456789012345678")})
    '{"amount": 25000, "rate": 12.123456789012345678}'
"""

import json
import re
from collections.abc import Iterator
from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID, uuid4


class RecordJSONEncoder(json.JSONEncoder):
    """
    Encoder for record values the json module does not know.

    Decimals become JSON numbers with every digit kept, datetimes and
    dates ISO 8601 strings, UUIDs strings and sets sorted lists. Anything
    else is a TypeError.
    """

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        # json only writes floats through repr(float), so fractional
        # Decimals go out as marked strings and are unquoted afterwards
        self._decimal_mark = uuid4().hex
        self._marked_decimal = re.compile(
            r'"\\u0000' + self._decimal_mark + r':([^"\\]+)\\u0000"'
        )

    def default(self, obj: Any) -> Any:
        if isinstance(obj, Decimal):
            number = decimal_to_number(obj)
            if isinstance(number, Decimal):
                if not number.is_finite():
                    return float(number)
                return f"\x00{self._decimal_mark}:{number}\x00"
            return number
        if isinstance(obj, datetime | date):
            return obj.isoformat()
        if isinstance(obj, UUID):
            return str(obj)
        if isinstance(obj, set | frozenset):
            return sorted(obj)
        return super().default(obj)

    def iterencode(self, o: Any, _one_shot: bool = False) -> Iterator[str]:
        text = "".join(super().iterencode(o, _one_shot))
        yield self._marked_decimal.sub(r"\1", text)


def decimal_to_number(value: Decimal) -> int | Decimal:
    """
    Integral Decimals become int so ``Decimal("2800")`` compares equal to
    ``2800`` and serializes without a fraction. Other values are returned
    unchanged; converting them to float would drop digits.
    """
    if value.is_finite() and value == value.to_integral_value():
        return int(value)
    return value


def json_dumps(obj: Any, *, indent: int | None = None) -> str:
    # Hebrew names and payment methods stay readable in files
    return json.dumps(obj, cls=RecordJSONEncoder, indent=indent, ensure_ascii=False)


def json_loads(s: str | bytes) -> Any:
    """Parse JSON text; fractional numbers come back as Decimal, integers as int."""
    return json.loads(s, parse_float=Decimal)


__all__ = [
    "RecordJSONEncoder",
    "decimal_to_number",
    "json_dumps",
    "json_loads",
]
