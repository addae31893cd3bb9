"""Database engine setup for SQLite with WAL mode.

SQLite is the document store: one table per collection, WAL mode for
concurrent readers, and ``engine.begin()`` transactions as the atomic
multi-document batch commit. The DB is stored at
``{data_root}/.poolctl/poolctl.db`` unless configured otherwise.

SQLAlchemy Core (not ORM) is used: the engine works on plain rows that
the store maps to frozen domain records.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from sqlalchemy import create_engine, event, insert, select
from sqlalchemy.engine import Engine

from poolctl.infrastructure.database.counters import SEQUENTIAL_PREFIXES
from poolctl.infrastructure.database.schema import id_counters, metadata


def create_db_engine(db_path: Path) -> Engine:
    """Create a SQLite engine with WAL mode and foreign keys enabled."""
    engine = create_engine(f"sqlite:///{db_path}", echo=False)

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_conn: Any, _: Any) -> None:
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    return engine


def default_db_path(data_root: Path) -> Path:
    """``{data_root}/.poolctl/poolctl.db``."""
    return data_root / ".poolctl" / "poolctl.db"


def init_database(db_path: Path) -> Engine:
    """Initialize the store at *db_path*.

    Creates the parent directory, all tables from :data:`schema.metadata`,
    and seeds the ``id_counters`` table for every sequential prefix.

    Idempotent — safe to call on an existing store.

    Returns the engine ready for use.
    """
    db_path.parent.mkdir(parents=True, exist_ok=True)
    engine = create_db_engine(db_path)

    metadata.create_all(engine)
    _seed_counters(engine)
    return engine


def _seed_counters(engine: Engine) -> None:
    """Insert initial counter rows for each ID prefix if they don't exist."""
    with engine.begin() as conn:
        for prefix in sorted(SEQUENTIAL_PREFIXES):
            row = conn.execute(
                select(id_counters.c.type_prefix).where(id_counters.c.type_prefix == prefix)
            ).first()
            if row is None:
                conn.execute(insert(id_counters).values(type_prefix=prefix, next_value=1))
