"""Pytest configuration and fixtures."""

from datetime import datetime

import pytest
from sqlalchemy import (
    VARCHAR,
    Boolean,
    Column,
    DateTime,
    Float,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    Unicode,
    create_engine,
)

from rowgate.config.loader import normalize_config
from rowgate.crud.dispatcher import CrudDispatcher
from rowgate.database.store import SqlAlchemyStore
from rowgate.schema.models import Principal
from rowgate.schema.registry import build_registry

CONFIG = {
    "entities": {
        "widgets": {
            "acl": {
                "enabled": True,
                "default": {"owner": "CURRENT_USER", "public": 1, "group": {"staff": 3}},
            },
            "attributes": {"secret": {"queryable": False}},
        },
        "restricted_widgets": {
            "table": "widgets",
            "acl": {"enabled": True, "create": "admins"},
        },
        "notes": {},
        "memberships": {},
        "audit_log": {},
        "gadgets": {"acl": {"enabled": True}},
    }
}


def make_metadata() -> MetaData:
    """Sample schema: an ACL table, plain tables, a composite key and a keyless table."""
    metadata = MetaData()
    Table(
        "widgets",
        metadata,
        Column("id", Integer, primary_key=True, autoincrement=True),
        Column("name", Unicode(100), nullable=False),
        Column("sku", VARCHAR(32)),
        Column("price", Float),
        Column("active", Boolean),
        Column("created_at", DateTime),
        Column("secret", String(50)),
        Column("acl_owner", String(50)),
        Column("acl_group", String(50)),
        Column("acl_group_privs", Integer),
        Column("acl_public_privs", Integer),
    )
    Table(
        "notes",
        metadata,
        Column("id", Integer, primary_key=True, autoincrement=True),
        Column("title", String(100)),
        Column("body", Text),
    )
    Table(
        "memberships",
        metadata,
        Column("user_id", Integer, primary_key=True, autoincrement=False),
        Column("group_id", Integer, primary_key=True, autoincrement=False),
        Column("role", String(20)),
    )
    Table(
        "audit_log",
        metadata,
        Column("message", String(200)),
    )
    Table(
        "gadgets",
        metadata,
        Column("id", Integer, primary_key=True, autoincrement=True),
        Column("name", String(50)),
        Column("acl_owner", String(50)),
    )
    return metadata


@pytest.fixture
def metadata():
    return make_metadata()


@pytest.fixture
def engine(metadata):
    """Create a temporary in-memory database with the sample schema."""
    engine = create_engine("sqlite:///:memory:", echo=False)
    metadata.create_all(engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def registry(metadata):
    return build_registry(metadata, normalize_config(CONFIG))


@pytest.fixture
def store(engine, metadata):
    return SqlAlchemyStore(engine, metadata)


@pytest.fixture
def dispatcher(store):
    return CrudDispatcher(store)


@pytest.fixture
def widgets(registry):
    return registry.get("widgets")


@pytest.fixture
def notes(registry):
    return registry.get("notes")


@pytest.fixture
def alice():
    """Staff member; owns what she creates."""
    return Principal(id="alice", groups=frozenset({"staff"}))


@pytest.fixture
def bob():
    """Authenticated, no groups."""
    return Principal(id="bob")


@pytest.fixture
def carol():
    """Staff member who owns nothing."""
    return Principal(id="carol", groups=frozenset({"staff"}))


WIDGET_ROWS = [
    {
        "name": "Alpha widget",
        "sku": "AW-1",
        "price": 5.0,
        "active": True,
        "created_at": datetime(2024, 1, 10),
        "acl_owner": "alice",
        "acl_group": "staff",
        "acl_group_privs": 3,
        "acl_public_privs": 1,
    },
    {
        "name": "Beta widget",
        "sku": "BW-2",
        "price": 15.0,
        "active": False,
        "created_at": datetime(2024, 3, 1),
        "acl_owner": "bob",
        "acl_group": "none",
        "acl_group_privs": 0,
        "acl_public_privs": 0,
    },
    {
        "name": "Gamma gizmo",
        "sku": "GG-3",
        "price": 25.0,
        "active": True,
        "created_at": None,
        "acl_owner": "alice",
        "acl_group": "staff",
        "acl_group_privs": 1,
        "acl_public_privs": 0,
    },
]


@pytest.fixture
def seeded(store, widgets):
    """
    Three widgets, keyed by name:

    Alpha: alice's, staff READ|WRITE, public READ
    Beta: bob's, no group, no public access
    Gamma: alice's, staff READ only
    """
    ids = {}
    for values in WIDGET_ROWS:
        record = store.create(widgets, values)
        ids[values["name"].split()[0]] = record["id"]
    return ids
