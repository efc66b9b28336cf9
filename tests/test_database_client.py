"""Tests for engine creation, reflection and transactional connections."""

import pytest
from sqlalchemy import insert, select

from rowgate.database.client import connection_context, get_engine, reflect_metadata
from rowgate.errors import MisconfiguredAcl, NotFound, StoreError


@pytest.fixture
def file_engine(tmp_path, metadata):
    engine = get_engine(f"sqlite:///{tmp_path / 'reflect.db'}")
    metadata.create_all(engine)
    try:
        yield engine
    finally:
        engine.dispose()


def test_reflect_all_tables(file_engine):
    reflected = reflect_metadata(file_engine)
    assert set(reflected.tables) == {"widgets", "notes", "memberships", "audit_log", "gadgets"}
    assert [c.name for c in reflected.tables["notes"].primary_key] == ["id"]


def test_reflect_selected_tables(file_engine):
    reflected = reflect_metadata(file_engine, ["notes"])
    assert list(reflected.tables) == ["notes"]


def test_connection_context_commits(file_engine, metadata):
    notes = metadata.tables["notes"]
    with connection_context(file_engine) as conn:
        conn.execute(insert(notes).values(title="kept"))
    with connection_context(file_engine) as conn:
        assert conn.execute(select(notes.c.title)).scalars().all() == ["kept"]


def test_connection_context_rolls_back(file_engine, metadata):
    notes = metadata.tables["notes"]
    with pytest.raises(RuntimeError):
        with connection_context(file_engine) as conn:
            conn.execute(insert(notes).values(title="dropped"))
            raise RuntimeError("abort")
    with connection_context(file_engine) as conn:
        assert conn.execute(select(notes.c.title)).scalars().all() == []


def test_error_classification():
    assert NotFound("Not Found").to_dict() == {"kind": "NotFound", "message": "Not Found"}
    assert NotFound("x").status_code == 404
    assert MisconfiguredAcl("x").status_code == 500
    assert StoreError("x").kind == "StoreError"
