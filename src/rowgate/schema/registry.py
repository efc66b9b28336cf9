"""Build EntityDescriptors from SQLAlchemy table metadata plus config overrides."""

from types import MappingProxyType
from typing import Any, Dict, Iterable, Iterator, Mapping, Optional, Tuple

from sqlalchemy import MetaData, Table
from sqlalchemy import types as sqltypes

from ..errors import UnknownEntity
from ..utils.logging import get_logger
from .models import AclDefaults, ColumnMeta, DeclaredType, EntityDescriptor, OwnerPolicy, SequenceSpec

logger = get_logger(__name__)

CURRENT_PRINCIPAL_ALIASES = ("CURRENT_USER", "CURRENT_PRINCIPAL")


def declared_type_for(sql_type: sqltypes.TypeEngine) -> Tuple[DeclaredType, Optional[bool]]:
    """
    Map a SQLAlchemy column type to a declared type and unicode flag.

    VARCHAR is marked non-unicode, NVARCHAR/Unicode as unicode; a generic
    String leaves the flag unspecified.
    """
    # Order matters: several of these types subclass one another.
    if isinstance(sql_type, sqltypes.Boolean):
        return DeclaredType.BOOLEAN, None
    if isinstance(sql_type, sqltypes.Integer):
        return DeclaredType.INTEGER, None
    if isinstance(sql_type, sqltypes.Float):
        return DeclaredType.FLOAT, None
    if isinstance(sql_type, sqltypes.Numeric):
        return DeclaredType.DECIMAL, None
    if isinstance(sql_type, sqltypes.DateTime):
        return DeclaredType.DATE, None
    if isinstance(sql_type, sqltypes.Date):
        return DeclaredType.DATEONLY, None
    if isinstance(sql_type, sqltypes.Time):
        return DeclaredType.TIME, None
    if isinstance(sql_type, sqltypes.Uuid):
        return DeclaredType.UUID, None
    if isinstance(sql_type, sqltypes.Text):
        return DeclaredType.TEXT, isinstance(sql_type, sqltypes.UnicodeText) or None
    if isinstance(sql_type, (sqltypes.CHAR, sqltypes.NCHAR)):
        return DeclaredType.CHAR, isinstance(sql_type, sqltypes.NCHAR) or None
    if isinstance(sql_type, sqltypes.Unicode):
        return DeclaredType.STRING, True
    if isinstance(sql_type, sqltypes.VARCHAR):
        return DeclaredType.STRING, False
    if isinstance(sql_type, sqltypes.String):
        return DeclaredType.STRING, None
    return DeclaredType.OTHER, None


def columns_from_table(table: Table, attributes: Mapping[str, Dict[str, Any]] | None = None) -> Dict[str, ColumnMeta]:
    """Describe every column of ``table``, laying per-attribute overrides on top."""
    attributes = attributes or {}
    columns: Dict[str, ColumnMeta] = {}
    for column in table.columns:
        declared, unicode_flag = declared_type_for(column.type)
        overrides = attributes.get(column.name) or {}
        columns[column.name] = ColumnMeta(
            name=column.name,
            declared_type=declared,
            nullable=bool(column.nullable),
            is_primary_key=bool(column.primary_key),
            queryable=overrides.get("queryable", True),
            unicode=overrides.get("unicode", unicode_flag),
        )
    unknown = set(attributes) - set(columns)
    if unknown:
        logger.warning(f"Ignoring attribute overrides for unknown columns on {table.name}: {sorted(unknown)}")
    return columns


def _acl_defaults(default: Mapping[str, Any]) -> AclDefaults:
    owner = default.get("owner")
    groups = default.get("group") or {}
    group_name, group_privs = next(iter(groups.items()), (None, 0))
    if owner in CURRENT_PRINCIPAL_ALIASES:
        return AclDefaults(
            owner_policy=OwnerPolicy.CURRENT_PRINCIPAL,
            public_privileges=int(default.get("public") or 0),
            group_name=group_name,
            group_privileges=int(group_privs or 0),
        )
    return AclDefaults(
        owner_policy=OwnerPolicy.FIXED,
        owner_value=owner if owner is not None else 0,
        public_privileges=int(default.get("public") or 0),
        group_name=group_name,
        group_privileges=int(group_privs or 0),
    )


def entity_from_table(name: str, table: Table, entry: Mapping[str, Any] | None = None) -> EntityDescriptor:
    """
    Build an EntityDescriptor for ``table`` from a normalized config entry.

    Args:
        name: Entity name exposed to callers
        table: SQLAlchemy table (declared or reflected)
        entry: Entity block from rowgate.config.loader.normalize_config
    """
    entry = entry or {}
    acl = entry.get("acl") or {}
    sequence = entry.get("sequence")
    columns = columns_from_table(table, entry.get("attributes"))
    return EntityDescriptor(
        name=name,
        table_name=table.name,
        columns=columns,
        primary_key_columns=[col.name for col in table.primary_key.columns],
        acl_enabled=bool(acl.get("enabled", False)),
        acl_defaults=_acl_defaults(acl.get("default") or {}),
        create_group=acl.get("create"),
        sequence=SequenceSpec(**sequence) if sequence else None,
    )


class EntityRegistry:
    """Read-only index of entities by name."""

    def __init__(self, entities: Iterable[EntityDescriptor] = ()):
        by_name: Dict[str, EntityDescriptor] = {}
        for entity in entities:
            if entity.name in by_name:
                raise ValueError(f"Duplicate entity name: {entity.name}")
            by_name[entity.name] = entity
        self._entities = MappingProxyType(by_name)

    def get(self, name: str) -> EntityDescriptor:
        try:
            return self._entities[name]
        except KeyError:
            raise UnknownEntity(f"Unknown entity: {name}", attribute=name) from None

    def names(self) -> list[str]:
        return sorted(self._entities)

    def __contains__(self, name: object) -> bool:
        return name in self._entities

    def __iter__(self) -> Iterator[EntityDescriptor]:
        return iter(self._entities.values())

    def __len__(self) -> int:
        return len(self._entities)


def build_registry(metadata: MetaData, config: Mapping[str, Any]) -> EntityRegistry:
    """
    Build the registry for every entity named in a normalized config.

    When the config names no entities, every table in ``metadata`` is
    registered under its own name with default settings (no ACL).

    Raises:
        ValueError: If an entity's table is not present in ``metadata``
    """
    configured = config.get("entities") or {}
    if not configured:
        return EntityRegistry(entity_from_table(table.name, table) for table in metadata.sorted_tables)

    entities = []
    for name, entry in configured.items():
        table_name = entry.get("table") or name
        table = metadata.tables.get(table_name)
        if table is None:
            raise ValueError(f"Table '{table_name}' for entity '{name}' not found in database metadata")
        entities.append(entity_from_table(name, table, entry))
        logger.debug(f"Registered entity {name} (table={table_name}, acl={entry.get('acl', {}).get('enabled')})")
    return EntityRegistry(entities)
