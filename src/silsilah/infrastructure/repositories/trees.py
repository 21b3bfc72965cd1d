"""TreeRepository: load and persist FamilyTree aggregates.

A tree is loaded whole into a :class:`PersonStore` plus a
:class:`RelationshipGraph`. Mutations are staged on the aggregate and
flushed by :meth:`TreeRepository.commit` in a single transaction guarded
by an optimistic version check: the ``family_trees.version`` bump only
matches the row if nobody else committed since the load.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import TYPE_CHECKING, Any

from sqlalchemy import and_, delete, func, insert, select, update
from sqlalchemy.exc import IntegrityError

from silsilah.domain.edges import Edge, ParentChildEdge, SpouseEdge
from silsilah.domain.person import Person
from silsilah.infrastructure.database.schema import (
    family_trees,
    parent_child_edges,
    persons,
    spouse_edges,
)
from silsilah.infrastructure.graph.engine import RelationshipGraph
from silsilah.infrastructure.repositories.persons import PersonStore
from silsilah.services._helpers import now_iso

if TYPE_CHECKING:
    from sqlalchemy import Connection
    from sqlalchemy.engine import Engine

logger = logging.getLogger(__name__)


class StaleTreeVersion(Exception):
    """The tree was committed by someone else after it was loaded."""

    def __init__(self, tree_id: str, expected_version: int) -> None:
        super().__init__(f"tree {tree_id} is no longer at version {expected_version}")
        self.tree_id = tree_id
        self.expected_version = expected_version


# ---------------------------------------------------------------------------
# FamilyTree aggregate
# ---------------------------------------------------------------------------


@dataclass
class FamilyTree:
    """One tree's persons and relationships plus its concurrency version.

    ``persons`` and ``graph`` always hold the same person ids. Changes made
    through :meth:`add_person`, :meth:`add_edge` and :meth:`remove_edge`
    are staged until the repository commits them.
    """

    tree_id: str
    name: str
    version: int
    created_at: str
    updated_at: str
    persons: PersonStore
    graph: RelationshipGraph
    new_persons: list[Person] = field(default_factory=list, repr=False)
    new_edges: list[Edge] = field(default_factory=list, repr=False)
    removed_edges: list[Edge] = field(default_factory=list, repr=False)

    @property
    def has_changes(self) -> bool:
        return bool(self.new_persons or self.new_edges or self.removed_edges)

    def add_person(self, person: Person) -> None:
        self.persons.insert(person)
        self.graph.add_person(person.person_id, birth_date=person.birth_date)
        self.new_persons.append(person)

    def drop_new_person(self, person_id: str) -> None:
        """Undo an :meth:`add_person` from the current operation."""
        self.persons.remove(person_id)
        self.graph.remove_person(person_id)
        self.new_persons = [p for p in self.new_persons if p.person_id != person_id]

    def add_edge(self, edge: Edge) -> None:
        """Stage an edge the graph has already accepted."""
        self.new_edges.append(edge)

    def remove_edge(self, edge: Edge) -> None:
        """Stage an edge the graph has already removed."""
        self.removed_edges.append(edge)

    def clear_changes(self) -> None:
        self.new_persons.clear()
        self.new_edges.clear()
        self.removed_edges.clear()

    def to_document(self) -> dict[str, Any]:
        """The persisted aggregate shape: one document per tree."""
        return {
            "tree_id": self.tree_id,
            "name": self.name,
            "persons": [p.to_record() for p in self.persons.snapshot()],
            "spouse_edges": [
                {"spouse1_id": e.spouse1_id, "spouse2_id": e.spouse2_id}
                for e in self.graph.spouse_edges()
            ],
            "parent_child_edges": [
                {"parent_id": e.parent_id, "child_id": e.child_id}
                for e in self.graph.parent_child_edges()
            ],
            "version": self.version,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }


# ---------------------------------------------------------------------------
# Row mapping
# ---------------------------------------------------------------------------


def _iso(value: date | None) -> str | None:
    return value.isoformat() if value is not None else None


def _person_row(tree_id: str, person: Person) -> dict[str, Any]:
    return {
        "tree_id": tree_id,
        "person_id": person.person_id,
        "name": person.name,
        "gender": person.gender.value,
        "birth_date": _iso(person.birth_date),
        "birth_place": person.birth_place,
        "death_date": _iso(person.death_date),
    }


def _person_from_row(row: Any) -> Person:
    return Person(
        person_id=row.person_id,
        name=row.name,
        gender=row.gender,
        birth_date=row.birth_date,
        birth_place=row.birth_place,
        death_date=row.death_date,
    )


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class TreeRepository:
    """SQL persistence for FamilyTree aggregates.

    Args:
        engine: Primary engine; every write and every load-for-mutation uses it.
        read_engine: Optional replica for read-only loads. Defaults to *engine*.
        enforce_age_consistency: Passed to each loaded RelationshipGraph.
    """

    def __init__(
        self,
        engine: Engine,
        *,
        read_engine: Engine | None = None,
        enforce_age_consistency: bool = True,
    ) -> None:
        self._engine = engine
        self._read_engine = read_engine or engine
        self._enforce_age_consistency = enforce_age_consistency

    # ------------------------------------------------------------------
    # Create / exists
    # ------------------------------------------------------------------

    def create(self, tree_id: str, name: str) -> FamilyTree | None:
        """Insert an empty tree at version 1. Returns None if *tree_id* exists."""
        now = now_iso()
        try:
            with self._engine.begin() as conn:
                conn.execute(
                    insert(family_trees).values(
                        tree_id=tree_id, name=name, version=1, created_at=now, updated_at=now
                    )
                )
        except IntegrityError:
            logger.debug("Tree %s already exists", tree_id)
            return None
        return self._empty(tree_id, name, 1, now, now)

    def exists(self, tree_id: str) -> bool:
        with self._read_engine.connect() as conn:
            row = conn.execute(
                select(family_trees.c.tree_id).where(family_trees.c.tree_id == tree_id)
            ).first()
        return row is not None

    def list_trees(self, *, limit: int, offset: int) -> tuple[list[dict[str, Any]], int]:
        """One page of tree summaries, most recently updated first, plus the total."""
        counts = (
            select(persons.c.tree_id, func.count().label("person_count"))
            .group_by(persons.c.tree_id)
            .subquery()
        )
        stmt = (
            select(
                family_trees.c.tree_id,
                family_trees.c.name,
                func.coalesce(counts.c.person_count, 0).label("person_count"),
                family_trees.c.version,
                family_trees.c.created_at,
                family_trees.c.updated_at,
            )
            .select_from(
                family_trees.outerjoin(counts, counts.c.tree_id == family_trees.c.tree_id)
            )
            .order_by(family_trees.c.updated_at.desc(), family_trees.c.tree_id)
            .limit(limit)
            .offset(offset)
        )
        with self._read_engine.connect() as conn:
            total = conn.execute(select(func.count()).select_from(family_trees)).scalar_one()
            rows = [dict(row._mapping) for row in conn.execute(stmt)]
        return rows, total

    # ------------------------------------------------------------------
    # Load
    # ------------------------------------------------------------------

    def load(self, tree_id: str, *, for_update: bool = False) -> FamilyTree | None:
        """Load the whole aggregate, or None if the tree does not exist.

        *for_update* loads from the primary engine; otherwise the read
        engine is used.
        """
        engine = self._engine if for_update else self._read_engine
        with engine.connect() as conn:
            return self._load(conn, tree_id)

    def _load(self, conn: Connection, tree_id: str) -> FamilyTree | None:
        head = conn.execute(select(family_trees).where(family_trees.c.tree_id == tree_id)).first()
        if head is None:
            return None

        tree = self._empty(tree_id, head.name, head.version, head.created_at, head.updated_at)

        for row in conn.execute(select(persons).where(persons.c.tree_id == tree_id)):
            person = _person_from_row(row)
            tree.persons.insert(person)
            tree.graph.add_person(person.person_id, birth_date=person.birth_date)

        # Committed rows were validated on the way in.
        for row in conn.execute(
            select(parent_child_edges.c.parent_id, parent_child_edges.c.child_id).where(
                parent_child_edges.c.tree_id == tree_id
            )
        ):
            tree.graph.attach(ParentChildEdge(parent_id=row.parent_id, child_id=row.child_id))

        for row in conn.execute(
            select(spouse_edges.c.spouse1_id, spouse_edges.c.spouse2_id).where(
                spouse_edges.c.tree_id == tree_id
            )
        ):
            tree.graph.attach(SpouseEdge(spouse1_id=row.spouse1_id, spouse2_id=row.spouse2_id))

        return tree

    def _empty(
        self, tree_id: str, name: str, version: int, created_at: str, updated_at: str
    ) -> FamilyTree:
        return FamilyTree(
            tree_id=tree_id,
            name=name,
            version=version,
            created_at=created_at,
            updated_at=updated_at,
            persons=PersonStore(tree_id),
            graph=RelationshipGraph(
                tree_id, enforce_age_consistency=self._enforce_age_consistency
            ),
        )

    # ------------------------------------------------------------------
    # Commit
    # ------------------------------------------------------------------

    def commit(self, tree: FamilyTree) -> int:
        """Flush staged changes and bump the version in one transaction.

        Returns the new version.

        Raises:
            StaleTreeVersion: The stored version no longer matches ``tree.version``.
        """
        if not tree.has_changes:
            return tree.version

        now = now_iso()
        with self._engine.begin() as conn:
            result = conn.execute(
                update(family_trees)
                .where(
                    family_trees.c.tree_id == tree.tree_id,
                    family_trees.c.version == tree.version,
                )
                .values(version=tree.version + 1, updated_at=now)
            )
            if result.rowcount == 0:
                raise StaleTreeVersion(tree.tree_id, tree.version)

            for person in tree.new_persons:
                conn.execute(insert(persons).values(**_person_row(tree.tree_id, person)))
            for edge in tree.removed_edges:
                self._delete_edge(conn, tree.tree_id, edge)
            for edge in tree.new_edges:
                self._insert_edge(conn, tree.tree_id, edge, now)

        tree.version += 1
        tree.updated_at = now
        tree.clear_changes()
        return tree.version

    @staticmethod
    def _insert_edge(conn: Connection, tree_id: str, edge: Edge, now: str) -> None:
        if isinstance(edge, ParentChildEdge):
            conn.execute(
                insert(parent_child_edges).values(
                    tree_id=tree_id,
                    parent_id=edge.parent_id,
                    child_id=edge.child_id,
                    created_at=now,
                )
            )
        else:
            conn.execute(
                insert(spouse_edges).values(
                    tree_id=tree_id,
                    spouse1_id=edge.spouse1_id,
                    spouse2_id=edge.spouse2_id,
                    created_at=now,
                )
            )

    @staticmethod
    def _delete_edge(conn: Connection, tree_id: str, edge: Edge) -> None:
        if isinstance(edge, ParentChildEdge):
            conn.execute(
                delete(parent_child_edges).where(
                    and_(
                        parent_child_edges.c.tree_id == tree_id,
                        parent_child_edges.c.parent_id == edge.parent_id,
                        parent_child_edges.c.child_id == edge.child_id,
                    )
                )
            )
        else:
            conn.execute(
                delete(spouse_edges).where(
                    and_(
                        spouse_edges.c.tree_id == tree_id,
                        spouse_edges.c.spouse1_id == edge.spouse1_id,
                        spouse_edges.c.spouse2_id == edge.spouse2_id,
                    )
                )
            )
