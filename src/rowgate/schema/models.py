"""Pydantic models describing entities, their columns and the calling principal.

These are loaded once at startup (see ``rowgate.schema.registry``) and treated
as read-only for the lifetime of the process.
"""

from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..errors import MultiplePrimaryKeys, NoPrimaryKey


class DeclaredType(str, Enum):
    BOOLEAN = "boolean"
    INTEGER = "integer"
    FLOAT = "float"
    DECIMAL = "decimal"
    DATE = "date"
    DATEONLY = "dateonly"
    TIME = "time"
    CHAR = "char"
    STRING = "string"
    TEXT = "text"
    UUID = "uuid"
    OTHER = "other"


NUMERIC_TYPES = frozenset({DeclaredType.INTEGER, DeclaredType.FLOAT, DeclaredType.DECIMAL})
DATE_TYPES = frozenset({DeclaredType.DATE, DeclaredType.DATEONLY, DeclaredType.TIME})
STRING_TYPES = frozenset({DeclaredType.CHAR, DeclaredType.STRING, DeclaredType.TEXT})


class OwnerPolicy(str, Enum):
    FIXED = "FIXED"
    CURRENT_PRINCIPAL = "CURRENT_PRINCIPAL"


class ColumnMeta(BaseModel):
    """Descriptor for a single column of an entity."""

    model_config = ConfigDict(frozen=True)

    name: str
    declared_type: DeclaredType = Field(default=DeclaredType.OTHER)
    nullable: bool = Field(default=True)
    is_primary_key: bool = Field(default=False)
    queryable: bool = Field(default=True, description="False hides the column from request filters")
    unicode: Optional[bool] = Field(
        default=None,
        description="Only meaningful for string columns: False binds values as non-unicode literals",
    )

    @property
    def is_string(self) -> bool:
        return self.declared_type in STRING_TYPES


class AclDefaults(BaseModel):
    """ACL values written on insert when the caller does not supply them."""

    model_config = ConfigDict(frozen=True)

    owner_policy: OwnerPolicy = Field(default=OwnerPolicy.FIXED)
    owner_value: Any = Field(default=0, description="Owner used when no principal applies")
    public_privileges: int = Field(default=0)
    group_name: Optional[str] = Field(default=None)
    group_privileges: int = Field(default=0)


class SequenceSpec(BaseModel):
    """Names the store sequence that supplies a column value on insert."""

    model_config = ConfigDict(frozen=True)

    column: str
    name: str


class EntityDescriptor(BaseModel):
    """A named table exposed as a CRUD resource."""

    model_config = ConfigDict(frozen=True)

    name: str
    table_name: Optional[str] = None
    columns: Dict[str, ColumnMeta]
    primary_key_columns: List[str] = Field(default_factory=list)
    acl_enabled: bool = False
    acl_defaults: AclDefaults = Field(default_factory=AclDefaults)
    create_group: Optional[str] = None
    sequence: Optional[SequenceSpec] = None

    @property
    def table(self) -> str:
        return self.table_name or self.name

    def has_column(self, name: str) -> bool:
        return name in self.columns

    def single_primary_key(self) -> ColumnMeta:
        """
        Return the sole primary-key column.

        Raises:
            NoPrimaryKey: If the entity has no primary key
            MultiplePrimaryKeys: If the primary key spans several columns
        """
        if not self.primary_key_columns:
            raise NoPrimaryKey(f"{self.name} does not have a primary key.")
        if len(self.primary_key_columns) > 1:
            keys = ", ".join(self.primary_key_columns)
            raise MultiplePrimaryKeys(f"{self.name} has a composite primary key ({keys}).")
        return self.columns[self.primary_key_columns[0]]


class Principal(BaseModel):
    """The authenticated caller. Passed explicitly into every operation."""

    model_config = ConfigDict(frozen=True)

    id: Optional[Any] = None
    groups: FrozenSet[str] = Field(default_factory=frozenset)

    @classmethod
    def anonymous(cls) -> "Principal":
        return cls()

    @property
    def is_anonymous(self) -> bool:
        return self.id is None
