from copy import deepcopy
from pathlib import Path
from typing import Any, Dict, List

import yaml
from jsonschema import Draft202012Validator

DEFAULT_CONFIG_PATH = Path("rowgate.config.yaml")
DEFAULT_DATABASE_URL = "sqlite:///rowgate.db"

_PRIVS = {"type": "integer", "minimum": 0, "maximum": 7}

ENTITY_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "table": {"type": "string", "minLength": 1},
        "acl": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "enabled": {"type": "boolean"},
                "create": {"type": "string"},
                "default": {
                    "type": "object",
                    "additionalProperties": False,
                    "properties": {
                        "owner": {"type": ["string", "integer", "null"]},
                        "public": _PRIVS,
                        "group": {
                            "type": "object",
                            "maxProperties": 1,
                            "additionalProperties": _PRIVS,
                        },
                    },
                },
            },
        },
        "sequence": {
            "type": "object",
            "required": ["column", "name"],
            "additionalProperties": False,
            "properties": {
                "column": {"type": "string"},
                "name": {"type": "string"},
            },
        },
        "attributes": {
            "type": "object",
            "additionalProperties": {
                "type": "object",
                "additionalProperties": False,
                "properties": {
                    "queryable": {"type": "boolean"},
                    "unicode": {"type": ["boolean", "null"]},
                },
            },
        },
    },
}

CONFIG_SCHEMA: Dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "properties": {
        "database": {
            "type": "object",
            "properties": {
                "url": {"type": "string"},
                "echo": {"type": "boolean"},
            },
        },
        "entities": {
            "type": "object",
            "additionalProperties": {"anyOf": [ENTITY_SCHEMA, {"type": "null"}]},
        },
    },
}


def validate_config(config: Any) -> List[str]:
    """
    Validate a config mapping against CONFIG_SCHEMA.

    Returns:
        Error messages prefixed with their JSON path (empty list when valid)
    """
    validator = Draft202012Validator(CONFIG_SCHEMA)
    errors = []
    for error in sorted(validator.iter_errors(config), key=lambda e: list(e.absolute_path)):
        path = ".".join(["$", *map(str, error.absolute_path)])
        errors.append(f"{path}: {error.message}")
    return errors


def _normalize_entity_entry(name: str, entry: Dict[str, Any] | None) -> Dict[str, Any]:
    """
    Normalize a single entity block so the registry consumes the same shape.
    """
    normalized = deepcopy(entry or {})
    normalized.setdefault("table", name)
    acl = normalized.get("acl") or {}
    acl.setdefault("enabled", False)
    acl.setdefault("create", None)
    acl["default"] = acl.get("default") or {}
    normalized["acl"] = acl
    normalized["attributes"] = normalized.get("attributes") or {}
    normalized.setdefault("sequence", None)
    return normalized


def normalize_config(config: Dict[str, Any] | None) -> Dict[str, Any]:
    """
    Validate and fill defaults for a loaded config mapping.

    Raises:
        ValueError: If the config does not match CONFIG_SCHEMA
    """
    config = config or {}
    if not isinstance(config, dict):
        raise ValueError("Config must be a dictionary")
    errors = validate_config(config)
    if errors:
        raise ValueError("Invalid rowgate config:\n" + "\n".join(errors))

    database = dict(config.get("database") or {})
    database.setdefault("url", DEFAULT_DATABASE_URL)
    database.setdefault("echo", False)

    entities = {
        name: _normalize_entity_entry(name, entry)
        for name, entry in (config.get("entities") or {}).items()
    }
    return {"database": database, "entities": entities}


def load_config(path: Path | None = None) -> Dict[str, Any]:
    """
    Load and normalize the rowgate YAML config.

    Args:
        path: Optional path to the config file. Defaults to rowgate.config.yaml

    Raises:
        FileNotFoundError: If the config file doesn't exist
        ValueError: If the config structure is invalid
    """
    cfg_path = path or DEFAULT_CONFIG_PATH
    if not cfg_path.exists():
        raise FileNotFoundError(f"Config file not found: {cfg_path}")
    with cfg_path.open("r", encoding="utf-8") as f:
        return normalize_config(yaml.safe_load(f))
