"""Query pipeline: type coercion, operator grammar, expression tree and translator."""

from .operators import Predicate, PredicateKind, parse_predicate
from .translator import BuiltQuery, OperationKind, build_query, resolve_select

__all__ = [
    "BuiltQuery",
    "OperationKind",
    "Predicate",
    "PredicateKind",
    "build_query",
    "parse_predicate",
    "resolve_select",
]
