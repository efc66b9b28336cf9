"""Translate request parameters into a BuiltQuery for an entity.

Request parameters are split into operands (``_skip``, ``_limit``, ``_sort``,
``_select`` and a few reserved keys), attribute filters (entity column names)
and extras, which are ignored.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from ..errors import (
    InvalidSelectAttribute,
    InvalidSortAttribute,
    InvalidValue,
    NonQueryableAttribute,
    UnknownOperand,
)
from ..schema.models import EntityDescriptor
from ..utils.logging import get_logger
from .expr import ColumnPredicate, Expr, and_all
from .operators import Predicate, parse_predicates

logger = get_logger(__name__)

DEFAULT_LIMIT = 1000

# _connect, _populate and _keywords are reserved but have no effect here.
OPERANDS = frozenset(
    {
        "_skip",
        "_limit",
        "_sort",
        "_populate",
        "_select",
        "_connect",
        "_keywords",
        "_type",
    }
)


class OperationKind(str, Enum):
    FIND = "find"
    FIND_ONE = "find_one"
    COUNT = "count"
    DELETE = "delete"


class SortDirection(str, Enum):
    ASC = "ASC"
    DESC = "DESC"


@dataclass
class SeparatedParams:
    operands: Dict[str, Any] = field(default_factory=dict)
    attributes: Dict[str, Any] = field(default_factory=dict)
    extras: Dict[str, Any] = field(default_factory=dict)


@dataclass
class BuiltQuery:
    """Query under construction. Discarded once the operation completes."""

    attribute_filters: Dict[str, List[Predicate]] = field(default_factory=dict)
    where: List[Expr] = field(default_factory=list)
    offset: Optional[int] = None
    limit: Optional[int] = None
    order_by: List[Tuple[str, SortDirection]] = field(default_factory=list)
    projection: List[str] = field(default_factory=list)

    def add_filter(self, column: str, predicate: Predicate) -> None:
        self.attribute_filters.setdefault(column, []).append(predicate)

    def condition(self) -> Optional[Expr]:
        """AND of raw filters, attribute predicates and any ACL clause; None when unfiltered."""
        items: List[Expr] = list(self.where)
        for column, predicates in self.attribute_filters.items():
            items.extend(ColumnPredicate(column, predicate) for predicate in predicates)
        if not items:
            return None
        return and_all(*items)


def separate_api_operations(params: Mapping[str, Any], entity: EntityDescriptor) -> SeparatedParams:
    """Split request parameters into operands, attributes and extras."""
    result = SeparatedParams()
    for key, value in params.items():
        if entity.has_column(key):
            result.attributes[key] = value
        elif key in OPERANDS:
            result.operands[key] = value
        else:
            result.extras[key] = value
    if result.extras:
        logger.debug(f"Ignoring extra parameters on {entity.name}: {sorted(result.extras)}")
    return result


def _operand_text(operands: Mapping[str, Any], key: str) -> Optional[str]:
    value = operands.get(key)
    if value is None:
        return None
    if isinstance(value, (list, tuple)):
        return ",".join(str(v) for v in value)
    if isinstance(value, (str, int)):
        return str(value)
    raise UnknownOperand(f"Operand {key} cannot be interpreted: {value!r}", attribute=key)


def _operand_int(operands: Mapping[str, Any], key: str, default: int) -> int:
    text = _operand_text(operands, key)
    if not text:
        return default
    try:
        number = int(text)
    except ValueError as exc:
        raise InvalidValue(f"Operand {key} must be an integer: {text!r}", attribute=key) from exc
    if number < 0:
        raise InvalidValue(f"Operand {key} must not be negative: {text!r}", attribute=key)
    return number


def resolve_select(entity: EntityDescriptor, select: Optional[str]) -> List[str]:
    """
    Validate a comma-separated ``_select`` list against the entity's columns.

    Returns:
        Column names in request order; empty list means all columns

    Raises:
        InvalidSelectAttribute: For the first token that is not an exact column name
    """
    if not select:
        return []
    columns = []
    for attrib in select.split(","):
        if not entity.has_column(attrib):
            raise InvalidSelectAttribute(f"Invalid entry in the _select list: {attrib}", attribute=attrib)
        columns.append(attrib)
    return columns


def resolve_sort(entity: EntityDescriptor, sort: Optional[str]) -> List[Tuple[str, SortDirection]]:
    if not sort:
        return []
    order: List[Tuple[str, SortDirection]] = []
    for token in sort.split(","):
        if token.startswith("-"):
            column, direction = token[1:], SortDirection.DESC
        else:
            column, direction = token, SortDirection.ASC
        if not entity.has_column(column):
            raise InvalidSortAttribute(f"Invalid sort attribute: {token}", attribute=token)
        order.append((column, direction))
    return order


def build_query(
    params: Mapping[str, Any],
    entity: EntityDescriptor,
    kind: OperationKind = OperationKind.FIND,
    where: Optional[Sequence[Expr]] = None,
) -> BuiltQuery:
    """
    Build a typed query for ``entity`` from loosely typed request parameters.

    Args:
        params: Request parameters; values are strings or lists of strings
        entity: Entity being queried
        kind: FIND applies pagination, sort and select; FIND_ONE only select;
            COUNT and DELETE apply none of them
        where: Optional caller-supplied raw conditions, ANDed with the filters

    Returns:
        BuiltQuery ready for ACL injection and execution

    Raises:
        NonQueryableAttribute, InvalidSortAttribute, InvalidSelectAttribute,
        InvalidValue, UnsupportedOperator, UnknownOperand
    """
    separated = separate_api_operations(params or {}, entity)
    query = BuiltQuery(where=list(where or []))

    for key, value in separated.attributes.items():
        column = entity.columns[key]
        if column.queryable is False:
            raise NonQueryableAttribute(f"{entity.name}.{key} is not a queryable attribute.", attribute=key)
        for predicate in parse_predicates(column, value):
            query.add_filter(key, predicate)

    operands = separated.operands
    if kind in (OperationKind.COUNT, OperationKind.DELETE):
        return query

    if kind == OperationKind.FIND:
        query.offset = _operand_int(operands, "_skip", 0)
        query.limit = _operand_int(operands, "_limit", DEFAULT_LIMIT)
        query.order_by = resolve_sort(entity, _operand_text(operands, "_sort"))

    query.projection = resolve_select(entity, _operand_text(operands, "_select"))
    return query
