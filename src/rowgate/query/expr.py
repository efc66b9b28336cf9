"""Store-agnostic boolean expression tree.

Queries carry conditions as a small tree of ``And``/``Or`` nodes over column
predicates and bitmask tests. The store adapter lowers the tree into its own
predicate language; ``matches`` evaluates the same tree against a plain dict
so access rules can be checked without a database.
"""

from dataclasses import dataclass
from typing import Any, Mapping, Tuple, Union

from .operators import Predicate


@dataclass(frozen=True)
class ColumnPredicate:
    column: str
    predicate: Predicate

    def matches(self, record: Mapping[str, Any]) -> bool:
        return self.predicate.matches(record.get(self.column))


@dataclass(frozen=True)
class BitMaskMatch:
    """True when ``column & mask == mask``."""

    column: str
    mask: int

    def matches(self, record: Mapping[str, Any]) -> bool:
        value = record.get(self.column)
        if value is None:
            return False
        return (int(value) & self.mask) == self.mask


@dataclass(frozen=True)
class And:
    items: Tuple["Expr", ...]

    def matches(self, record: Mapping[str, Any]) -> bool:
        return all(item.matches(record) for item in self.items)


@dataclass(frozen=True)
class Or:
    items: Tuple["Expr", ...]

    def matches(self, record: Mapping[str, Any]) -> bool:
        return any(item.matches(record) for item in self.items)


Expr = Union[ColumnPredicate, BitMaskMatch, And, Or]


def and_all(*items: Expr) -> And:
    return And(tuple(items))


def or_any(*items: Expr) -> Or:
    return Or(tuple(items))
