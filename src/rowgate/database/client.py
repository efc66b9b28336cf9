from contextlib import contextmanager
from typing import Generator, Iterable, Optional

from sqlalchemy import MetaData, create_engine
from sqlalchemy.engine import Connection, Engine


def get_engine(database_url: str, echo: bool = False) -> Engine:
    """Create an engine for ``database_url`` (any SQLAlchemy URL)."""
    return create_engine(database_url, echo=echo, future=True)


def reflect_metadata(engine: Engine, tables: Optional[Iterable[str]] = None) -> MetaData:
    """Reflect table definitions from the live database."""
    metadata = MetaData()
    metadata.reflect(bind=engine, only=list(tables) if tables else None)
    return metadata


@contextmanager
def connection_context(engine: Engine) -> Generator[Connection, None, None]:
    """
    Context manager for a transactional connection.

    Commits when the block exits normally and rolls back on any exception.

    Usage:
        with connection_context(engine) as conn:
            conn.execute(stmt)
    """
    with engine.begin() as conn:
        yield conn
