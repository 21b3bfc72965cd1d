"""SQLAlchemy Core table definitions for the silsilah database.

One row per tree in ``family_trees`` carries the aggregate version used
for optimistic concurrency. Persons and edges are child rows keyed by
``tree_id`` so no edge can ever reference another tree's person.
The audit log is independent of tree rows and is never updated or deleted.
"""

from __future__ import annotations

from sqlalchemy import (
    CheckConstraint,
    Column,
    ForeignKeyConstraint,
    Index,
    Integer,
    MetaData,
    PrimaryKeyConstraint,
    Table,
    Text,
    UniqueConstraint,
)

metadata = MetaData()

family_trees = Table(
    "family_trees",
    metadata,
    Column("tree_id", Text, primary_key=True),
    Column("name", Text, nullable=False),
    Column("version", Integer, nullable=False, default=1, server_default="1"),
    Column("created_at", Text, nullable=False),
    Column("updated_at", Text, nullable=False),
)

persons = Table(
    "persons",
    metadata,
    Column("tree_id", Text, nullable=False),
    Column("person_id", Text, nullable=False),
    Column("name", Text, nullable=False),
    Column("gender", Text, nullable=False),
    Column("birth_date", Text),  # ISO date
    Column("birth_place", Text),
    Column("death_date", Text),  # ISO date, NULL = living
    PrimaryKeyConstraint("tree_id", "person_id"),
    ForeignKeyConstraint(["tree_id"], ["family_trees.tree_id"]),
)

parent_child_edges = Table(
    "parent_child_edges",
    metadata,
    Column("tree_id", Text, nullable=False),
    Column("parent_id", Text, nullable=False),
    Column("child_id", Text, nullable=False),
    Column("created_at", Text, nullable=False),
    UniqueConstraint("tree_id", "parent_id", "child_id"),
    CheckConstraint("parent_id <> child_id", name="ck_parent_child_not_self"),
    ForeignKeyConstraint(["tree_id", "parent_id"], ["persons.tree_id", "persons.person_id"]),
    ForeignKeyConstraint(["tree_id", "child_id"], ["persons.tree_id", "persons.person_id"]),
)

# spouse1_id <= spouse2_id (canonical order), so the unique constraint
# covers both orderings of a pair.
spouse_edges = Table(
    "spouse_edges",
    metadata,
    Column("tree_id", Text, nullable=False),
    Column("spouse1_id", Text, nullable=False),
    Column("spouse2_id", Text, nullable=False),
    Column("created_at", Text, nullable=False),
    UniqueConstraint("tree_id", "spouse1_id", "spouse2_id"),
    CheckConstraint("spouse1_id < spouse2_id", name="ck_spouse_canonical"),
    ForeignKeyConstraint(["tree_id", "spouse1_id"], ["persons.tree_id", "persons.person_id"]),
    ForeignKeyConstraint(["tree_id", "spouse2_id"], ["persons.tree_id", "persons.person_id"]),
)

audit_log = Table(
    "audit_log",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("tree_id", Text, nullable=False),
    Column("person_id", Text),
    Column("person_ids", Text, nullable=False, server_default="[]"),  # JSON array
    Column("action", Text, nullable=False),
    Column("timestamp", Text, nullable=False),  # fixed-width UTC ISO, sortable
    Column("actor", Text),
    Column("payload", Text, nullable=False, server_default="{}"),  # JSON object
    Column("previous_hash", Text),
    Column("entry_hash", Text),
)

# Many-to-many index so person history also finds entries where the
# person is touched but is not the subject (e.g. the other spouse).
audit_persons = Table(
    "audit_persons",
    metadata,
    Column("entry_id", Integer, nullable=False),
    Column("person_id", Text, nullable=False),
    UniqueConstraint("entry_id", "person_id"),
    ForeignKeyConstraint(["entry_id"], ["audit_log.id"]),
)

# ---------------------------------------------------------------------------
# Indexes for descending-timestamp retrieval and child lookups
# ---------------------------------------------------------------------------

Index("ix_parent_child_child", parent_child_edges.c.tree_id, parent_child_edges.c.child_id)
Index("ix_audit_tree_ts", audit_log.c.tree_id, audit_log.c.timestamp.desc())
Index("ix_audit_person_ts", audit_log.c.person_id, audit_log.c.timestamp.desc())
Index("ix_audit_action_ts", audit_log.c.action, audit_log.c.timestamp.desc())
Index("ix_audit_persons_person", audit_persons.c.person_id)
