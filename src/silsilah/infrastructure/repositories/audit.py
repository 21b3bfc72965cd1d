"""Append-only SQL access to the audit log."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from sqlalchemy import func, insert, or_, select, update

from silsilah.domain.audit import AuditEntry, compute_entry_hash
from silsilah.infrastructure.database.schema import audit_log, audit_persons, family_trees
from silsilah.services._helpers import from_storage_ts, to_storage_ts

if TYPE_CHECKING:
    from sqlalchemy import Connection, Select
    from sqlalchemy.engine import Engine


def _entry_from_row(row: Any) -> AuditEntry:
    return AuditEntry(
        id=row.id,
        tree_id=row.tree_id,
        person_id=row.person_id,
        person_ids=json.loads(row.person_ids or "[]"),
        action=row.action,
        timestamp=from_storage_ts(row.timestamp),
        actor=row.actor,
        payload=json.loads(row.payload or "{}"),
        previous_hash=row.previous_hash,
        entry_hash=row.entry_hash,
    )


class AuditLogRepository:
    """Insert and page through audit entries. Rows are never updated."""

    def __init__(self, engine: Engine, *, read_engine: Engine | None = None) -> None:
        self._engine = engine
        self._read_engine = read_engine or engine

    def append(self, entry: AuditEntry, *, hash_chain: bool = True) -> AuditEntry:
        """Insert *entry* and return it with ``id`` (and hashes) filled in.

        The transaction opens with a no-op write to the tree's row, so
        appends to one tree queue behind each other even across processes
        (SQLite's write lock, a row lock elsewhere). The previous hash is
        then read under that claim. Entries for a tree with no row are not
        serialized on backends with row-level locking.
        """
        with self._engine.begin() as conn:
            if hash_chain:
                self._claim_tree(conn, entry.tree_id)
                previous_hash = self._last_hash(conn, entry.tree_id)
                linked = entry.model_copy(update={"previous_hash": previous_hash})
                entry = linked.model_copy(update={"entry_hash": compute_entry_hash(linked)})

            result = conn.execute(
                insert(audit_log).values(
                    tree_id=entry.tree_id,
                    person_id=entry.person_id,
                    person_ids=json.dumps(entry.person_ids),
                    action=entry.action.value,
                    timestamp=to_storage_ts(entry.timestamp),
                    actor=entry.actor,
                    payload=json.dumps(entry.payload, sort_keys=True),
                    previous_hash=entry.previous_hash,
                    entry_hash=entry.entry_hash,
                )
            )
            entry_id = result.inserted_primary_key[0]

            subject = [entry.person_id] if entry.person_id else []
            touched = dict.fromkeys([*subject, *entry.person_ids])
            if touched:
                conn.execute(
                    insert(audit_persons),
                    [{"entry_id": entry_id, "person_id": pid} for pid in touched],
                )

        return entry.model_copy(update={"id": entry_id})

    @staticmethod
    def _claim_tree(conn: Connection, tree_id: str) -> None:
        conn.execute(
            update(family_trees)
            .where(family_trees.c.tree_id == tree_id)
            .values(version=family_trees.c.version)
        )

    @staticmethod
    def _last_hash(conn: Connection, tree_id: str) -> str | None:
        return conn.execute(
            select(audit_log.c.entry_hash)
            .where(audit_log.c.tree_id == tree_id)
            .order_by(audit_log.c.id.desc())
            .limit(1)
        ).scalar_one_or_none()

    # ------------------------------------------------------------------
    # Paginated reads (newest first)
    # ------------------------------------------------------------------

    def find_by_tree(
        self, tree_id: str, *, limit: int, offset: int
    ) -> tuple[list[AuditEntry], int]:
        return self._page(select(audit_log).where(audit_log.c.tree_id == tree_id), limit, offset)

    def find_by_person(
        self,
        person_id: str,
        *,
        limit: int,
        offset: int,
        tree_id: str | None = None,
    ) -> tuple[list[AuditEntry], int]:
        """Entries where *person_id* is the subject or one of the touched persons."""
        touched = select(audit_persons.c.entry_id).where(audit_persons.c.person_id == person_id)
        stmt = select(audit_log).where(
            or_(audit_log.c.person_id == person_id, audit_log.c.id.in_(touched))
        )
        if tree_id is not None:
            stmt = stmt.where(audit_log.c.tree_id == tree_id)
        return self._page(stmt, limit, offset)

    def find_by_action(
        self,
        action: str,
        *,
        limit: int,
        offset: int,
        tree_id: str | None = None,
    ) -> tuple[list[AuditEntry], int]:
        stmt = select(audit_log).where(audit_log.c.action == action)
        if tree_id is not None:
            stmt = stmt.where(audit_log.c.tree_id == tree_id)
        return self._page(stmt, limit, offset)

    def all_for_tree(self, tree_id: str) -> list[AuditEntry]:
        """Every entry of *tree_id* in append order (for chain verification)."""
        stmt = select(audit_log).where(audit_log.c.tree_id == tree_id).order_by(audit_log.c.id)
        with self._read_engine.connect() as conn:
            return [_entry_from_row(row) for row in conn.execute(stmt)]

    def _page(self, stmt: Select[Any], limit: int, offset: int) -> tuple[list[AuditEntry], int]:
        count_stmt = select(func.count()).select_from(stmt.subquery())
        page_stmt = (
            stmt.order_by(audit_log.c.timestamp.desc(), audit_log.c.id.desc())
            .limit(limit)
            .offset(offset)
        )
        with self._read_engine.connect() as conn:
            total = int(conn.execute(count_stmt).scalar_one() or 0)
            rows = conn.execute(page_stmt).fetchall()
        return [_entry_from_row(row) for row in rows], total
