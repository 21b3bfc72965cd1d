"""Database engine setup.

SQLite is the default persistence layer (WAL mode for concurrent reads,
foreign keys enforced). Any SQLAlchemy URL may be configured instead via
``[archive] database_url``. The default DB lives at
``{root}/.silsilah/silsilah.db``.

SQLAlchemy Core (not ORM): the aggregate is loaded whole per mutation,
so identity maps and unit-of-work tracking buy nothing.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url

from silsilah.infrastructure.database.schema import metadata

DATA_DIRNAME = ".silsilah"
DB_FILENAME = "silsilah.db"


def create_db_engine(url: str) -> Engine:
    """Create an engine; SQLite connections get WAL mode and foreign keys."""
    engine = create_engine(url, echo=False)

    if make_url(url).get_backend_name() == "sqlite":

        @event.listens_for(engine, "connect")
        def _set_sqlite_pragma(dbapi_conn: Any, _: Any) -> None:
            cursor = dbapi_conn.cursor()
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return engine


def default_database_url(root: Path) -> str:
    """SQLite URL for ``{root}/.silsilah/silsilah.db``, creating the directory."""
    data_dir = root / DATA_DIRNAME
    data_dir.mkdir(parents=True, exist_ok=True)
    return f"sqlite:///{data_dir / DB_FILENAME}"


def init_database(root: Path, url: str | None = None) -> Engine:
    """Initialize the silsilah database and create all tables.

    Idempotent: safe to call on an existing database.
    Returns the engine ready for use.
    """
    engine = create_db_engine(url or default_database_url(root))
    metadata.create_all(engine)
    return engine
