"""Type coercion of request strings into typed values, per column."""

import math
from datetime import datetime
from typing import Any

from ..errors import InvalidValue
from ..schema.models import DATE_TYPES, NUMERIC_TYPES, ColumnMeta, DeclaredType
from ..utils.time import parse_utc, to_utc_z


class NonUnicodeStr(str):
    """
    A string destined for a column declared ``unicode: false``.

    The store adapter binds these with a plain (non-unicode) SQL string type so
    dialects that prefix unicode literals (``N'...'`` on MS SQL) don't, which
    keeps index seeks on VARCHAR columns.
    """

    __slots__ = ()

    def __repr__(self) -> str:
        return f"NonUnicodeStr({str.__repr__(self)})"


def coerce(raw: str, column: ColumnMeta) -> Any:
    """
    Convert a request string into the strongly typed value for ``column``.

    Args:
        raw: Value taken from the request
        column: Column the value will be compared against

    Returns:
        bool, float, timezone-aware datetime, str or NonUnicodeStr

    Raises:
        InvalidValue: If the string cannot be parsed for the declared type
    """
    declared = column.declared_type
    raw = str(raw)

    if declared == DeclaredType.BOOLEAN:
        lowered = raw.lower()
        if lowered == "true":
            return True
        if lowered == "false":
            return False
        raise InvalidValue(
            f"Boolean arguments can only be 'true' or 'false' ({column.name}: {raw!r})",
            attribute=column.name,
        )

    if declared in NUMERIC_TYPES:
        try:
            number = float(raw)
        except ValueError:
            number = math.nan
        if not math.isfinite(number):
            raise InvalidValue(f"Invalid numeric format for {column.name}: {raw!r}", attribute=column.name)
        return number

    if declared in DATE_TYPES:
        try:
            return parse_utc(raw)
        except ValueError as exc:
            raise InvalidValue(f"Invalid date string for {column.name}: {raw!r} ({exc})", attribute=column.name) from exc

    if column.is_string and column.unicode is False:
        return NonUnicodeStr(raw)

    return raw


def format_value(value: Any) -> str:
    """Render a coerced value back to the canonical request string."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        return repr(value)
    if isinstance(value, datetime):
        return to_utc_z(value)
    return str(value)
