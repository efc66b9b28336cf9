"""CRUD dispatcher.

Orchestrates translator, ACL injector and store for the canonical entity
operations. Every query-build failure is raised before the store is called;
store failures surface as StoreError with the original exception attached.
"""

from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from ..acl.handler import (
    add_acl_delete,
    add_acl_find,
    add_acl_update,
    allow_insert,
    check_acl_columns,
    compute_insert_defaults,
)
from ..errors import InsertNotAllowed, MissingField, MissingId, NotFound, RowgateError, StoreError
from ..query.coercion import coerce
from ..query.expr import ColumnPredicate
from ..query.operators import Predicate, PredicateKind, in_predicate
from ..query.translator import BuiltQuery, OperationKind, build_query
from ..schema.models import DATE_TYPES, ColumnMeta, EntityDescriptor, Principal
from ..utils.logging import get_logger
from .results import CountResult, DeleteResult, FindResult, InsertResult

logger = get_logger(__name__)

Params = Mapping[str, Any]


def _require_id(entity: EntityDescriptor, id_value: Any) -> ColumnMeta:
    if id_value is None or id_value == "":
        logger.debug(f"Id was not provided for {entity.name}")
        raise MissingId("ID is required")
    return entity.single_primary_key()


def prune_body(entity: EntityDescriptor, body: Optional[Mapping[str, Any]]) -> Tuple[Dict[str, Any], List[str]]:
    """
    Split a request body into entity column values and skipped field names.

    String values for date columns are parsed to UTC datetimes; everything
    else is passed through untouched.
    """
    values: Dict[str, Any] = {}
    skipped: List[str] = []
    for key, value in (body or {}).items():
        column = entity.columns.get(key)
        if column is None:
            skipped.append(key)
            continue
        if column.declared_type in DATE_TYPES and isinstance(value, str):
            value = coerce(value, column)
        values[key] = value
    return values, skipped


class CrudDispatcher:
    """
    Canonical CRUD operations over a store.

    The store is a ``rowgate.database.store.SqlAlchemyStore`` or any object
    exposing find/find_one/count/create/delete/update_by_key/next_value.
    """

    def __init__(self, store):
        self.store = store

    def _call_store(self, entity: EntityDescriptor, operation: str, fn, *args):
        logger.debug(f"{entity.name} {operation}()")
        try:
            return fn(entity, *args)
        except RowgateError:
            raise
        except Exception as exc:
            logger.error(f"Error executing {entity.name} {operation}(): {exc}", exc_info=True)
            raise StoreError(f"Error executing {entity.name} {operation}()", cause=exc) from exc

    def _by_id(self, entity: EntityDescriptor, id_value: Any, query: BuiltQuery) -> BuiltQuery:
        pk = _require_id(entity, id_value)
        query.add_filter(pk.name, Predicate(PredicateKind.EQUALS, coerce(str(id_value), pk)))
        return query

    def find(self, entity: EntityDescriptor, params: Params, principal: Optional[Principal] = None) -> FindResult:
        query = build_query(params, entity, OperationKind.FIND)
        if entity.acl_enabled:
            add_acl_find(entity, query, principal)
        return FindResult(data=self._call_store(entity, "find", self.store.find, query))

    def find_by_id(
        self,
        entity: EntityDescriptor,
        id_value: Any,
        params: Optional[Params] = None,
        principal: Optional[Principal] = None,
    ) -> Dict[str, Any]:
        """
        Fetch a single record by primary key.

        Only ``_select`` is honoured from ``params``.

        Raises:
            MissingId, NoPrimaryKey, MultiplePrimaryKeys, InvalidValue,
            InvalidSelectAttribute, NotFound, StoreError
        """
        select = (params or {}).get("_select")
        query = build_query({"_select": select} if select is not None else {}, entity, OperationKind.FIND_ONE)
        self._by_id(entity, id_value, query)
        if entity.acl_enabled:
            add_acl_find(entity, query, principal)
        record = self._call_store(entity, "find_by_id", self.store.find_one, query)
        if record is None:
            logger.debug(f"{entity.name} find_by_id({id_value!r}) record not found")
            raise NotFound("Not Found")
        return record

    def count(self, entity: EntityDescriptor, params: Params, principal: Optional[Principal] = None) -> CountResult:
        query = build_query(params, entity, OperationKind.COUNT)
        if entity.acl_enabled:
            add_acl_find(entity, query, principal)
        return CountResult(count=self._call_store(entity, "count", self.store.count, query))

    def insert(
        self,
        entity: EntityDescriptor,
        body: Optional[Mapping[str, Any]],
        principal: Optional[Principal] = None,
    ) -> InsertResult:
        """
        Create a record from ``body``.

        Fields that are not entity columns are dropped and reported in
        ``skipped_fields``. ACL columns are filled from the entity defaults.

        Raises:
            MisconfiguredAcl: If ACL is enabled but the entity lacks an ACL column
            InsertNotAllowed: If the entity requires a create group the principal lacks
            StoreError: If the store rejects the row
        """
        if entity.acl_enabled:
            check_acl_columns(entity)
            if not allow_insert(entity, principal):
                raise InsertNotAllowed(f"Insert into {entity.name} requires group {entity.create_group}")

        merged: Dict[str, Any] = dict(body or {})
        if entity.sequence is not None:
            merged.update(self._call_store(entity, "next_value", self.store.next_value))

        values, skipped = prune_body(entity, merged)
        if skipped:
            logger.debug(f"Skipping unknown fields on {entity.name} insert: {skipped}")
        if entity.acl_enabled:
            values.update(compute_insert_defaults(entity, principal))

        record = self._call_store(entity, "insert", self.store.create, values)
        return InsertResult(record=record, skipped_fields=skipped)

    def delete(self, entity: EntityDescriptor, params: Params, principal: Optional[Principal] = None) -> DeleteResult:
        query = build_query(params, entity, OperationKind.DELETE)
        if entity.acl_enabled:
            add_acl_delete(entity, query, principal)
        return DeleteResult(deleted=self._call_store(entity, "delete", self.store.delete, query))

    def delete_by_id(
        self,
        entity: EntityDescriptor,
        id_value: Any,
        principal: Optional[Principal] = None,
    ) -> DeleteResult:
        query = self._by_id(entity, id_value, BuiltQuery())
        if entity.acl_enabled:
            add_acl_delete(entity, query, principal)
        return DeleteResult(deleted=self._call_store(entity, "delete_by_id", self.store.delete, query))

    def delete_batch(
        self,
        entity: EntityDescriptor,
        ids: Union[Any, Sequence[Any], Mapping[str, Any]],
        principal: Optional[Principal] = None,
    ) -> DeleteResult:
        """
        Delete every record whose primary key is in ``ids``.

        ``ids`` may be a scalar, a list, or a request body mapping carrying the
        primary-key field (scalar or list).

        Raises:
            MissingField: If a body mapping lacks the primary-key field or no ids are given
        """
        pk = entity.single_primary_key()
        if isinstance(ids, Mapping):
            if pk.name not in ids:
                raise MissingField(f"Delete batch on {entity.name} requires the {pk.name} field", attribute=pk.name)
            ids = ids[pk.name]
        if ids is None or (isinstance(ids, (list, tuple)) and not ids):
            raise MissingField(f"Delete batch on {entity.name} requires the {pk.name} field", attribute=pk.name)

        query = BuiltQuery(where=[ColumnPredicate(pk.name, in_predicate(pk, ids))])
        if entity.acl_enabled:
            add_acl_delete(entity, query, principal)
        return DeleteResult(deleted=self._call_store(entity, "delete_batch", self.store.delete, query))

    def update_by_id(
        self,
        entity: EntityDescriptor,
        id_value: Any,
        body: Optional[Mapping[str, Any]],
        principal: Optional[Principal] = None,
    ) -> Dict[str, Any]:
        """
        Apply ``body`` as a partial update to the record with ``id_value``.

        The record is fetched in full (never projected) with the WRITE ACL
        applied, so a row the principal cannot write is reported NotFound.
        The primary key itself is never rewritten; a body value for it is skipped.
        """
        query = self._by_id(entity, id_value, BuiltQuery())
        if entity.acl_enabled:
            add_acl_update(entity, query, principal)
        current = self._call_store(entity, "update_by_id", self.store.find_one, query)
        if current is None:
            logger.debug(f"{entity.name} update_by_id({id_value!r}) record not found")
            raise NotFound("Not Found")

        pk_name = entity.single_primary_key().name
        values, skipped = prune_body(entity, body)
        if pk_name in values:
            values.pop(pk_name)
            skipped.append(pk_name)
        if skipped:
            logger.debug(f"Skipping fields on {entity.name} update: {skipped}")
        key_value = current[pk_name]
        updated = self._call_store(entity, "update_by_id", self.store.update_by_key, key_value, values)
        if updated is None:
            raise NotFound("Not Found")
        return updated
