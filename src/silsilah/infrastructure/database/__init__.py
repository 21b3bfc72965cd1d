"""Database engine and schema via SQLAlchemy Core."""

from silsilah.infrastructure.database.engine import create_db_engine, init_database
from silsilah.infrastructure.database.schema import (
    audit_log,
    audit_persons,
    family_trees,
    metadata,
    parent_child_edges,
    persons,
    spouse_edges,
)

__all__ = [
    "audit_log",
    "audit_persons",
    "create_db_engine",
    "family_trees",
    "init_database",
    "metadata",
    "parent_child_edges",
    "persons",
    "spouse_edges",
]
