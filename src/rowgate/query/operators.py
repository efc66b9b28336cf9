"""Operator grammar for attribute filters.

A request value like ``>=2024-01-01`` or ``~>abc`` is turned into a typed
``Predicate`` on one column. Prefixes are matched in a fixed order:

    ~  (like)  >  <  !isnull  !  [..]  isnull  (equals)
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, List, Optional, Sequence, Union

from ..errors import UnsupportedOperator
from ..schema.models import ColumnMeta
from .coercion import NonUnicodeStr, coerce


class PredicateKind(str, Enum):
    EQUALS = "eq"
    NOT_EQUALS = "ne"
    GREATER_THAN = "gt"
    GREATER_OR_EQUAL = "gte"
    LESS_THAN = "lt"
    LESS_OR_EQUAL = "lte"
    LIKE = "like"
    IS_NULL = "is_null"
    NOT_NULL = "not_null"
    IN = "in"


class LikeAnchor(str, Enum):
    CONTAINS = "contains"
    PREFIX = "prefix"
    SUFFIX = "suffix"


@dataclass(frozen=True)
class Predicate:
    """A typed condition on a single column value."""

    kind: PredicateKind
    value: Any = None
    anchor: Optional[LikeAnchor] = None

    def matches(self, actual: Any) -> bool:
        """Evaluate the predicate against an in-memory value (SQL null semantics)."""
        if self.kind == PredicateKind.IS_NULL:
            return actual is None
        if self.kind == PredicateKind.NOT_NULL:
            return actual is not None
        if actual is None:
            return False
        if self.kind == PredicateKind.EQUALS:
            return actual == self.value
        if self.kind == PredicateKind.NOT_EQUALS:
            return actual != self.value
        if self.kind == PredicateKind.GREATER_THAN:
            return actual > self.value
        if self.kind == PredicateKind.GREATER_OR_EQUAL:
            return actual >= self.value
        if self.kind == PredicateKind.LESS_THAN:
            return actual < self.value
        if self.kind == PredicateKind.LESS_OR_EQUAL:
            return actual <= self.value
        if self.kind == PredicateKind.IN:
            return actual in self.value
        if self.kind == PredicateKind.LIKE:
            return _like_to_regex(str(self.value)).fullmatch(str(actual)) is not None
        return False


def _like_to_regex(pattern: str) -> "re.Pattern[str]":
    parts = []
    for char in pattern:
        if char == "%":
            parts.append(".*")
        elif char == "_":
            parts.append(".")
        else:
            parts.append(re.escape(char))
    return re.compile("".join(parts), re.DOTALL)


def _wildcard(literal: Any, template: str) -> str:
    pattern = template.format(literal)
    if isinstance(literal, NonUnicodeStr):
        return NonUnicodeStr(pattern)
    return pattern


def _parse_like(column: ColumnMeta, raw: str) -> Predicate:
    if not column.is_string:
        raise UnsupportedOperator(
            f"Like operator is only allowed on string/text attributes ({column.name})",
            attribute=column.name,
        )
    if raw[1:2] == ">":
        return Predicate(PredicateKind.LIKE, _wildcard(coerce(raw[2:], column), "{}%"), LikeAnchor.PREFIX)
    if raw[1:2] == "<":
        return Predicate(PredicateKind.LIKE, _wildcard(coerce(raw[2:], column), "%{}"), LikeAnchor.SUFFIX)
    return Predicate(PredicateKind.LIKE, _wildcard(coerce(raw[1:], column), "%{}%"), LikeAnchor.CONTAINS)


def parse_predicate(column: ColumnMeta, raw: str) -> Predicate:
    """
    Parse one request value into a Predicate for ``column``.

    Args:
        column: Column the filter applies to
        raw: Raw request value, e.g. ``"~>abc"``, ``">=10"``, ``"[a,b]"``

    Returns:
        Predicate with a value coerced to the column's declared type

    Raises:
        UnsupportedOperator: Like operator on a non-string column
        InvalidValue: Operand cannot be coerced
    """
    raw = str(raw)
    lowered = raw.lower()

    if raw.startswith("~"):
        return _parse_like(column, raw)
    if raw.startswith(">"):
        if raw[1:2] == "=":
            return Predicate(PredicateKind.GREATER_OR_EQUAL, coerce(raw[2:], column))
        return Predicate(PredicateKind.GREATER_THAN, coerce(raw[1:], column))
    if raw.startswith("<"):
        if raw[1:2] == "=":
            return Predicate(PredicateKind.LESS_OR_EQUAL, coerce(raw[2:], column))
        return Predicate(PredicateKind.LESS_THAN, coerce(raw[1:], column))
    if lowered == "!isnull":
        return Predicate(PredicateKind.NOT_NULL)
    if raw.startswith("!"):
        return Predicate(PredicateKind.NOT_EQUALS, coerce(raw[1:], column))
    if len(raw) >= 2 and raw.startswith("[") and raw.endswith("]"):
        values = tuple(coerce(item, column) for item in raw[1:-1].split(","))
        return Predicate(PredicateKind.IN, values)
    if lowered == "isnull":
        return Predicate(PredicateKind.IS_NULL)
    return Predicate(PredicateKind.EQUALS, coerce(raw, column))


def parse_predicates(column: ColumnMeta, raw: Union[str, Sequence[str]]) -> List[Predicate]:
    """Parse one or many values for a column. Repeated keys are ANDed by the caller."""
    values = raw if isinstance(raw, (list, tuple)) else [raw]
    return [parse_predicate(column, value) for value in values]


def in_predicate(column: ColumnMeta, values: Union[Any, Sequence[Any]]) -> Predicate:
    """Build an IN predicate from a scalar or a list, coercing every element."""
    items = values if isinstance(values, (list, tuple)) else [values]
    return Predicate(PredicateKind.IN, tuple(coerce(str(item), column) for item in items))
