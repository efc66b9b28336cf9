"""SQLAlchemy store adapter.

Lowers BuiltQuery conditions (``rowgate.query.expr``) into SQLAlchemy Core
clauses and runs each operation step in its own transaction.
"""

from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy import MetaData, Sequence, String, Table, and_, false, func, literal, or_, select, true
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.sql.elements import ColumnElement

from ..errors import StoreError
from ..query.coercion import NonUnicodeStr
from ..query.expr import And, BitMaskMatch, ColumnPredicate, Expr, Or
from ..query.operators import Predicate, PredicateKind
from ..query.translator import BuiltQuery, SortDirection
from ..schema.models import EntityDescriptor
from ..utils.logging import get_logger
from .client import connection_context

logger = get_logger(__name__)


def _bind(value: Any) -> Any:
    if isinstance(value, NonUnicodeStr):
        return literal(str(value), String())
    return value


def lower_predicate(column: ColumnElement, predicate: Predicate) -> ColumnElement:
    """Translate one Predicate on ``column`` into a SQLAlchemy clause."""
    kind = predicate.kind
    if kind == PredicateKind.IS_NULL:
        return column.is_(None)
    if kind == PredicateKind.NOT_NULL:
        return column.is_not(None)
    if kind == PredicateKind.IN:
        return column.in_([_bind(v) for v in predicate.value])
    value = _bind(predicate.value)
    if kind == PredicateKind.EQUALS:
        return column == value
    if kind == PredicateKind.NOT_EQUALS:
        return column != value
    if kind == PredicateKind.GREATER_THAN:
        return column > value
    if kind == PredicateKind.GREATER_OR_EQUAL:
        return column >= value
    if kind == PredicateKind.LESS_THAN:
        return column < value
    if kind == PredicateKind.LESS_OR_EQUAL:
        return column <= value
    if kind == PredicateKind.LIKE:
        return column.like(value)
    raise ValueError(f"Unsupported predicate kind: {kind}")


def lower_expr(expr: Expr, table: Table) -> ColumnElement:
    """Translate an expression tree into a SQLAlchemy clause against ``table``."""
    if isinstance(expr, ColumnPredicate):
        return lower_predicate(table.c[expr.column], expr.predicate)
    if isinstance(expr, BitMaskMatch):
        return table.c[expr.column].op("&")(expr.mask) == expr.mask
    if isinstance(expr, And):
        return and_(true(), *(lower_expr(item, table) for item in expr.items))
    if isinstance(expr, Or):
        return or_(false(), *(lower_expr(item, table) for item in expr.items))
    raise ValueError(f"Unsupported expression node: {type(expr).__name__}")


class SqlAlchemyStore:
    """Executes entity queries against a SQLAlchemy engine."""

    def __init__(self, engine: Engine, metadata: MetaData):
        self.engine = engine
        self.metadata = metadata

    def table_for(self, entity: EntityDescriptor) -> Table:
        table = self.metadata.tables.get(entity.table)
        if table is None:
            raise StoreError(f"Table '{entity.table}' for {entity.name} is not in the store metadata")
        return table

    def _where(self, table: Table, query: BuiltQuery) -> Optional[ColumnElement]:
        condition = query.condition()
        return lower_expr(condition, table) if condition is not None else None

    def _run(self, description: str, fn):
        try:
            with connection_context(self.engine) as conn:
                return fn(conn)
        except SQLAlchemyError as exc:
            logger.error(f"Store failure during {description}: {exc}", exc_info=True)
            raise StoreError(f"Error executing {description}", cause=exc) from exc

    def find(self, entity: EntityDescriptor, query: BuiltQuery) -> List[Dict[str, Any]]:
        table = self.table_for(entity)
        if query.projection:
            stmt = select(*(table.c[name] for name in query.projection))
        else:
            stmt = select(table)
        where = self._where(table, query)
        if where is not None:
            stmt = stmt.where(where)
        for column, direction in query.order_by:
            stmt = stmt.order_by(table.c[column].desc() if direction == SortDirection.DESC else table.c[column].asc())
        if query.offset:
            stmt = stmt.offset(query.offset)
        if query.limit is not None:
            stmt = stmt.limit(query.limit)
        return self._run(
            f"{entity.name} find",
            lambda conn: [dict(row._mapping) for row in conn.execute(stmt)],
        )

    def find_one(self, entity: EntityDescriptor, query: BuiltQuery) -> Optional[Dict[str, Any]]:
        query.offset, query.limit = None, 1
        rows = self.find(entity, query)
        return rows[0] if rows else None

    def count(self, entity: EntityDescriptor, query: BuiltQuery) -> int:
        table = self.table_for(entity)
        stmt = select(func.count()).select_from(table)
        where = self._where(table, query)
        if where is not None:
            stmt = stmt.where(where)
        return self._run(f"{entity.name} count", lambda conn: int(conn.execute(stmt).scalar_one()))

    def create(self, entity: EntityDescriptor, values: Mapping[str, Any]) -> Dict[str, Any]:
        table = self.table_for(entity)
        stmt = table.insert().values(**values)

        def _insert(conn):
            result = conn.execute(stmt)
            key = result.inserted_primary_key
            pk_columns = list(table.primary_key.columns)
            if not pk_columns or key is None or any(k is None for k in key):
                return dict(values)
            lookup = select(table).where(and_(*(col == k for col, k in zip(pk_columns, key))))
            row = conn.execute(lookup).first()
            return dict(row._mapping) if row is not None else dict(values)

        return self._run(f"{entity.name} insert", _insert)

    def delete(self, entity: EntityDescriptor, query: BuiltQuery) -> int:
        table = self.table_for(entity)
        stmt = table.delete()
        where = self._where(table, query)
        if where is not None:
            stmt = stmt.where(where)
        return self._run(f"{entity.name} delete", lambda conn: int(conn.execute(stmt).rowcount or 0))

    def update_by_key(
        self,
        entity: EntityDescriptor,
        key_value: Any,
        values: Mapping[str, Any],
    ) -> Optional[Dict[str, Any]]:
        table = self.table_for(entity)
        pk = table.c[entity.single_primary_key().name]

        def _update(conn):
            if values:
                conn.execute(table.update().where(pk == _bind(key_value)).values(**values))
            new_key = values.get(pk.name, key_value)
            row = conn.execute(select(table).where(pk == _bind(new_key))).first()
            return dict(row._mapping) if row is not None else None

        return self._run(f"{entity.name} update", _update)

    def next_value(self, entity: EntityDescriptor) -> Dict[str, Any]:
        """Fetch the next value of the entity's sequence, keyed by its column."""
        spec = entity.sequence
        if spec is None:
            return {}
        stmt = select(Sequence(spec.name).next_value())
        value = self._run(f"{entity.name} sequence {spec.name}", lambda conn: conn.execute(stmt).scalar_one())
        return {spec.column: value}
