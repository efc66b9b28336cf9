"""Unit tests for request value coercion."""

from datetime import datetime, timezone

import pytest

from rowgate.errors import InvalidValue
from rowgate.query.coercion import NonUnicodeStr, coerce, format_value
from rowgate.schema.models import ColumnMeta, DeclaredType


def col(declared, **kwargs):
    return ColumnMeta(name=kwargs.pop("name", "c"), declared_type=declared, **kwargs)


def test_boolean_accepts_true_false_case_insensitive():
    column = col(DeclaredType.BOOLEAN)
    assert coerce("true", column) is True
    assert coerce("FALSE", column) is False


def test_boolean_rejects_other_strings():
    with pytest.raises(InvalidValue, match="active"):
        coerce("yes", col(DeclaredType.BOOLEAN, name="active"))


@pytest.mark.parametrize("declared", [DeclaredType.INTEGER, DeclaredType.FLOAT, DeclaredType.DECIMAL])
def test_numeric_types_parse_to_float(declared):
    assert coerce("42", col(declared)) == 42.0
    assert coerce("-1.5", col(declared)) == -1.5


@pytest.mark.parametrize("raw", ["abc", "", "nan", "inf", "1,5"])
def test_numeric_rejects_unparseable(raw):
    with pytest.raises(InvalidValue, match="price"):
        coerce(raw, col(DeclaredType.FLOAT, name="price"))


def test_date_only_reads_as_utc_midnight():
    value = coerce("2014-01-31", col(DeclaredType.DATE))
    assert value == datetime(2014, 1, 31, tzinfo=timezone.utc)


def test_timestamp_with_milliseconds():
    value = coerce("2014-01-31T12:30:58.123Z", col(DeclaredType.DATEONLY))
    assert value == datetime(2014, 1, 31, 12, 30, 58, 123000, tzinfo=timezone.utc)


@pytest.mark.parametrize("raw", ["2014-1-31", "2014-01-31T12:30:58Z", "yesterday", "2014-13-45"])
def test_date_rejects_wrong_length_or_garbage(raw):
    with pytest.raises(InvalidValue, match="created_at"):
        coerce(raw, col(DeclaredType.DATE, name="created_at"))


def test_non_unicode_string_column_returns_marker_type():
    value = coerce("ABC-1", col(DeclaredType.STRING, unicode=False))
    assert isinstance(value, NonUnicodeStr)
    assert value == "ABC-1"


def test_unicode_and_unspecified_strings_stay_plain():
    for flag in (True, None):
        value = coerce("héllo", col(DeclaredType.TEXT, unicode=flag))
        assert type(value) is str


def test_uuid_and_other_pass_through():
    assert coerce("0f8e", col(DeclaredType.UUID)) == "0f8e"
    assert coerce("blob", col(DeclaredType.OTHER)) == "blob"


def test_format_value_is_canonical():
    assert format_value(True) == "true"
    assert format_value(2.5) == "2.5"
    assert format_value(datetime(2014, 1, 31, tzinfo=timezone.utc)) == "2014-01-31T00:00:00.000Z"


@pytest.mark.parametrize(
    "declared,raw",
    [
        (DeclaredType.BOOLEAN, "true"),
        (DeclaredType.INTEGER, "17"),
        (DeclaredType.DATE, "2020-02-29T23:59:59.999Z"),
        (DeclaredType.STRING, "plain"),
    ],
)
def test_coerce_round_trips_through_format_value(declared, raw):
    column = col(declared)
    value = coerce(raw, column)
    assert coerce(format_value(value), column) == value
