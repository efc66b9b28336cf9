"""CLI entrypoint for rowgate."""

import argparse
import json
import logging
import sys
from datetime import date, datetime, time
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from rowgate.config.loader import DEFAULT_CONFIG_PATH, load_config, normalize_config
from rowgate.crud.dispatcher import CrudDispatcher
from rowgate.crud.results import FindResult, scrub_acl_values
from rowgate.database.client import get_engine, reflect_metadata
from rowgate.database.store import SqlAlchemyStore
from rowgate.errors import RowgateError
from rowgate.query.coercion import format_value
from rowgate.schema.models import Principal
from rowgate.schema.registry import EntityRegistry, build_registry
from rowgate.utils.logging import configure_logging, get_logger

logger = get_logger(__name__)


def _json_default(value: Any) -> Any:
    if isinstance(value, datetime) and value.tzinfo is not None:
        return format_value(value)
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    return str(value)


def _emit(payload: Any) -> None:
    print(json.dumps(payload, indent=2, default=_json_default))


def parse_pairs(pairs: Optional[List[str]]) -> Dict[str, Any]:
    """
    Turn ``key=value`` arguments into request parameters.

    A key given more than once becomes a list of values.
    """
    params: Dict[str, Any] = {}
    for pair in pairs or []:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise ValueError(f"Expected key=value, got {pair!r}")
        if key in params:
            existing = params[key]
            params[key] = existing + [value] if isinstance(existing, list) else [existing, value]
        else:
            params[key] = value
    return params


def _parse_body(args: argparse.Namespace) -> Dict[str, Any]:
    body: Dict[str, Any] = {}
    if getattr(args, "body", None):
        loaded = json.loads(args.body)
        if not isinstance(loaded, dict):
            raise ValueError("--body must be a JSON object")
        body.update(loaded)
    body.update(parse_pairs(getattr(args, "params", None)))
    return body


def _principal(args: argparse.Namespace) -> Principal:
    return Principal(id=args.user, groups=frozenset(args.group or []))


def build_context(args: argparse.Namespace) -> Tuple[EntityRegistry, CrudDispatcher]:
    """Load config, reflect the database and wire the dispatcher."""
    if args.config is not None or DEFAULT_CONFIG_PATH.exists():
        config = load_config(args.config)
    else:
        config = normalize_config({})
    database = config["database"]
    engine = get_engine(args.db or database["url"], echo=bool(database.get("echo")))
    tables = [entry["table"] for entry in config["entities"].values()]
    metadata = reflect_metadata(engine, tables)
    registry = build_registry(metadata, config)
    logger.debug(f"Loaded {len(registry)} entities from {engine.url.render_as_string(hide_password=True)}")
    return registry, CrudDispatcher(SqlAlchemyStore(engine, metadata))


def cmd_entities(args: argparse.Namespace) -> None:
    """List registered entities."""
    registry, _ = build_context(args)
    _emit(registry.names())


def cmd_find(args: argparse.Namespace) -> None:
    registry, dispatcher = build_context(args)
    result = dispatcher.find(registry.get(args.entity), parse_pairs(args.params), _principal(args))
    _emit(FindResult(data=[scrub_acl_values(r) for r in result.data]).model_dump())


def cmd_get(args: argparse.Namespace) -> None:
    registry, dispatcher = build_context(args)
    record = dispatcher.find_by_id(registry.get(args.entity), args.id, parse_pairs(args.params), _principal(args))
    _emit(scrub_acl_values(record))


def cmd_count(args: argparse.Namespace) -> None:
    registry, dispatcher = build_context(args)
    _emit(dispatcher.count(registry.get(args.entity), parse_pairs(args.params), _principal(args)).model_dump())


def cmd_insert(args: argparse.Namespace) -> None:
    """Insert a record; unknown fields are reported under ignored_attributes."""
    registry, dispatcher = build_context(args)
    result = dispatcher.insert(registry.get(args.entity), _parse_body(args), _principal(args))
    payload: Dict[str, Any] = {"data": scrub_acl_values(result.record)}
    if result.skipped_fields:
        payload["ignored_attributes"] = result.skipped_fields
    _emit(payload)


def cmd_delete(args: argparse.Namespace) -> None:
    registry, dispatcher = build_context(args)
    _emit(dispatcher.delete(registry.get(args.entity), parse_pairs(args.params), _principal(args)).model_dump())


def cmd_delete_id(args: argparse.Namespace) -> None:
    registry, dispatcher = build_context(args)
    _emit(dispatcher.delete_by_id(registry.get(args.entity), args.id, _principal(args)).model_dump())


def cmd_delete_batch(args: argparse.Namespace) -> None:
    """Delete by a list of ids, or by the primary-key field of --body."""
    registry, dispatcher = build_context(args)
    ids: Any = json.loads(args.body) if args.body else args.ids
    _emit(dispatcher.delete_batch(registry.get(args.entity), ids, _principal(args)).model_dump())


def cmd_update(args: argparse.Namespace) -> None:
    registry, dispatcher = build_context(args)
    record = dispatcher.update_by_id(registry.get(args.entity), args.id, _parse_body(args), _principal(args))
    _emit(scrub_acl_values(record))


def _add_entity(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("entity", help="Entity name")


def _add_params(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "params",
        nargs="*",
        metavar="key=value",
        help="Query parameters or body fields (e.g. name=~>wid, _sort=-price)",
    )


def _add_body(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--body", type=str, help="Request body as a JSON object")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rowgate",
        description="Query and modify database tables through the rowgate CRUD core",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help=f"Path to config file (default: {DEFAULT_CONFIG_PATH})",
    )
    parser.add_argument("--db", type=str, help="SQLAlchemy database URL (overrides config)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("--user", type=str, default=None, help="Principal id for ACL checks")
    parser.add_argument(
        "--group",
        type=str,
        action="append",
        default=[],
        help="Principal group code (repeatable)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    entities_parser = subparsers.add_parser("entities", help="List registered entities")
    entities_parser.set_defaults(func=cmd_entities)

    find_parser = subparsers.add_parser("find", help="Find records matching query parameters")
    _add_entity(find_parser)
    _add_params(find_parser)
    find_parser.set_defaults(func=cmd_find)

    get_parser = subparsers.add_parser("get", help="Fetch one record by primary key")
    _add_entity(get_parser)
    get_parser.add_argument("id", help="Primary key value")
    _add_params(get_parser)
    get_parser.set_defaults(func=cmd_get)

    count_parser = subparsers.add_parser("count", help="Count records matching query parameters")
    _add_entity(count_parser)
    _add_params(count_parser)
    count_parser.set_defaults(func=cmd_count)

    insert_parser = subparsers.add_parser("insert", help="Insert a record")
    _add_entity(insert_parser)
    _add_params(insert_parser)
    _add_body(insert_parser)
    insert_parser.set_defaults(func=cmd_insert)

    delete_parser = subparsers.add_parser("delete", help="Delete records matching query parameters")
    _add_entity(delete_parser)
    _add_params(delete_parser)
    delete_parser.set_defaults(func=cmd_delete)

    delete_id_parser = subparsers.add_parser("delete-id", help="Delete one record by primary key")
    _add_entity(delete_id_parser)
    delete_id_parser.add_argument("id", help="Primary key value")
    delete_id_parser.set_defaults(func=cmd_delete_id)

    delete_batch_parser = subparsers.add_parser("delete-batch", help="Delete records by a list of primary keys")
    _add_entity(delete_batch_parser)
    delete_batch_parser.add_argument("ids", nargs="*", help="Primary key values")
    _add_body(delete_batch_parser)
    delete_batch_parser.set_defaults(func=cmd_delete_batch)

    update_parser = subparsers.add_parser("update", help="Partially update one record by primary key")
    _add_entity(update_parser)
    update_parser.add_argument("id", help="Primary key value")
    _add_params(update_parser)
    _add_body(update_parser)
    update_parser.set_defaults(func=cmd_update)

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Main CLI entrypoint."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return

    configure_logging(logging.DEBUG if args.verbose else logging.WARNING)

    try:
        args.func(args)
    except RowgateError as e:
        print(json.dumps({"error": e.to_dict()}), file=sys.stderr)
        sys.exit(1)
    except (FileNotFoundError, ValueError) as e:
        logger.debug(f"Error running command '{args.command}': {e}", exc_info=True)
        print(json.dumps({"error": {"kind": type(e).__name__, "message": str(e)}}), file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
