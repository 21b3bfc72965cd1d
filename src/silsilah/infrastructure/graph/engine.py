"""RelationshipGraph: structural index over one tree's relationships.

Two NetworkX graphs share the tree's person ids as nodes:

- ``lineage``: a DiGraph of parent -> child edges.
- ``unions``: an undirected Graph of spouse edges, so (A, B) and (B, A)
  are the same edge by construction.

Every structural invariant is enforced here, before an edge is added:
at most two parents per child, no self edges, no duplicate edges and no
ancestry cycles. Reachability is an explicit breadth-first walk with a
visited set (iterative, so deep lineages cannot exhaust the stack).
"""

from __future__ import annotations

from collections import deque
from collections.abc import Callable, Iterable, Iterator
from datetime import date

import networkx as nx

from silsilah.domain.edges import Edge, ParentChildEdge, SpouseEdge
from silsilah.domain.rejections import Outcome, Rejection
from silsilah.domain.types import RejectKind

MAX_PARENTS = 2

type _Lineage = nx.DiGraph
type _Unions = nx.Graph


class RelationshipGraph:
    """Spouse and parent-child edges for a single tree."""

    def __init__(self, tree_id: str, *, enforce_age_consistency: bool = True) -> None:
        self.tree_id = tree_id
        self.enforce_age_consistency = enforce_age_consistency
        self._lineage: _Lineage = nx.DiGraph()
        self._unions: _Unions = nx.Graph()

    # ------------------------------------------------------------------
    # Nodes
    # ------------------------------------------------------------------

    def add_person(self, person_id: str, *, birth_date: date | None = None) -> None:
        """Register *person_id* as a node (idempotent; refreshes birth date)."""
        self._lineage.add_node(person_id, birth_date=birth_date)
        self._unions.add_node(person_id)

    def remove_person(self, person_id: str) -> None:
        """Drop *person_id* and any incident edges. Used for rollback."""
        if person_id in self._lineage:
            self._lineage.remove_node(person_id)
        if person_id in self._unions:
            self._unions.remove_node(person_id)

    def has_person(self, person_id: str) -> bool:
        return person_id in self._lineage

    def __len__(self) -> int:
        return self._lineage.number_of_nodes()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def has_spouse_edge(self, a: str, b: str) -> bool:
        """True if a spouse edge joins *a* and *b*, in either order."""
        return self._unions.has_edge(a, b)

    def has_parent_child_edge(self, parent_id: str, child_id: str) -> bool:
        return self._lineage.has_edge(parent_id, child_id)

    def parents_of(self, child_id: str) -> set[str]:
        if child_id not in self._lineage:
            return set()
        return set(self._lineage.predecessors(child_id))

    def children_of(self, parent_id: str) -> set[str]:
        if parent_id not in self._lineage:
            return set()
        return set(self._lineage.successors(parent_id))

    def spouses_of(self, person_id: str) -> set[str]:
        if person_id not in self._unions:
            return set()
        return set(self._unions.neighbors(person_id))

    def is_ancestor_of(self, candidate_ancestor: str, person_id: str) -> bool:
        """True if *person_id* is reachable from *candidate_ancestor* via parent -> child.

        A person is never their own ancestor.
        """
        if candidate_ancestor == person_id:
            return False
        if candidate_ancestor not in self._lineage or person_id not in self._lineage:
            return False
        for reached in self._walk(candidate_ancestor, self._lineage.successors):
            if reached == person_id:
                return True
        return False

    def ancestors_of(self, person_id: str) -> set[str]:
        """All persons from whom *person_id* descends."""
        if person_id not in self._lineage:
            return set()
        return set(self._walk(person_id, self._lineage.predecessors))

    def descendants_of(self, person_id: str) -> set[str]:
        """All persons descending from *person_id*."""
        if person_id not in self._lineage:
            return set()
        return set(self._walk(person_id, self._lineage.successors))

    def generations_from(self, person_id: str, *, ancestors: bool) -> dict[str, int]:
        """Map each ancestor (or descendant) of *person_id* to its generation distance.

        Distance is the shortest number of parent-child hops; parents and
        children are generation 1.
        """
        if person_id not in self._lineage:
            return {}
        step = self._lineage.predecessors if ancestors else self._lineage.successors
        depths: dict[str, int] = {person_id: 0}
        queue: deque[str] = deque([person_id])
        while queue:
            current = queue.popleft()
            for neighbor in step(current):
                if neighbor not in depths:
                    depths[neighbor] = depths[current] + 1
                    queue.append(neighbor)
        del depths[person_id]
        return depths

    def spouse_edges(self) -> list[SpouseEdge]:
        return sorted(
            (SpouseEdge.between(a, b) for a, b in self._unions.edges()),
            key=lambda e: (e.spouse1_id, e.spouse2_id),
        )

    def parent_child_edges(self) -> list[ParentChildEdge]:
        return sorted(
            (ParentChildEdge(parent_id=p, child_id=c) for p, c in self._lineage.edges()),
            key=lambda e: (e.parent_id, e.child_id),
        )

    # ------------------------------------------------------------------
    # Validation (no mutation)
    # ------------------------------------------------------------------

    def check_spouse_edge(self, a: str, b: str) -> Rejection | None:
        """Return the rejection adding spouse edge (a, b) would hit, else None."""
        missing = [pid for pid in (a, b) if not self.has_person(pid)]
        if missing:
            return Rejection.of(
                RejectKind.UNKNOWN_PERSON,
                f"Person not found in tree {self.tree_id}: {', '.join(missing)}",
                person_ids=missing,
            )
        if a == b:
            return Rejection.of(
                RejectKind.SELF_REFERENCE, f"{a} cannot be their own spouse", person_id=a
            )
        if self.has_spouse_edge(a, b):
            return Rejection.of(
                RejectKind.DUPLICATE_EDGE,
                f"{a} and {b} are already spouses",
                person_ids=[a, b],
            )
        return None

    def check_parent_child_edge(self, parent_id: str, child_id: str) -> Rejection | None:
        """Return the rejection adding parent -> child would hit, else None.

        Checks run in a fixed order: unknown person, self reference,
        duplicate, parent limit, cycle, then (optionally) age consistency.
        """
        missing = [pid for pid in (parent_id, child_id) if not self.has_person(pid)]
        if missing:
            return Rejection.of(
                RejectKind.UNKNOWN_PERSON,
                f"Person not found in tree {self.tree_id}: {', '.join(missing)}",
                person_ids=missing,
            )
        if parent_id == child_id:
            return Rejection.of(
                RejectKind.SELF_REFERENCE,
                f"{parent_id} cannot be their own parent",
                person_id=parent_id,
            )
        if self.has_parent_child_edge(parent_id, child_id):
            return Rejection.of(
                RejectKind.DUPLICATE_EDGE,
                f"{parent_id} is already a parent of {child_id}",
                parent_id=parent_id,
                child_id=child_id,
            )
        existing_parents = self.parents_of(child_id)
        if len(existing_parents) >= MAX_PARENTS:
            return Rejection.of(
                RejectKind.TOO_MANY_PARENTS,
                f"{child_id} already has two parents",
                child_id=child_id,
                parents=sorted(existing_parents),
            )
        if self.is_ancestor_of(child_id, parent_id):
            return Rejection.of(
                RejectKind.CYCLE_DETECTED,
                f"{child_id} is already an ancestor of {parent_id}",
                parent_id=parent_id,
                child_id=child_id,
            )
        if self.enforce_age_consistency:
            parent_born = self._lineage.nodes[parent_id].get("birth_date")
            child_born = self._lineage.nodes[child_id].get("birth_date")
            if parent_born is not None and child_born is not None and parent_born >= child_born:
                return Rejection.of(
                    RejectKind.AGE_INCONSISTENCY,
                    f"{parent_id} (born {parent_born.isoformat()}) is not older than "
                    f"{child_id} (born {child_born.isoformat()})",
                    parent_id=parent_id,
                    child_id=child_id,
                )
        return None

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def add_spouse_edge(self, a: str, b: str) -> Outcome[SpouseEdge]:
        rejection = self.check_spouse_edge(a, b)
        if rejection is not None:
            return rejection
        self._unions.add_edge(a, b)
        return SpouseEdge.between(a, b)

    def add_parent_child_edge(self, parent_id: str, child_id: str) -> Outcome[ParentChildEdge]:
        rejection = self.check_parent_child_edge(parent_id, child_id)
        if rejection is not None:
            return rejection
        self._lineage.add_edge(parent_id, child_id)
        return ParentChildEdge(parent_id=parent_id, child_id=child_id)

    def remove_relationship(self, a: str, b: str) -> Outcome[Edge]:
        """Remove the edge between *a* and *b*.

        Tries parent -> child in both directions first, then the spouse edge.
        """
        missing = [pid for pid in (a, b) if not self.has_person(pid)]
        if missing:
            return Rejection.of(
                RejectKind.UNKNOWN_PERSON,
                f"Person not found in tree {self.tree_id}: {', '.join(missing)}",
                person_ids=missing,
            )
        for parent_id, child_id in ((a, b), (b, a)):
            if self._lineage.has_edge(parent_id, child_id):
                self._lineage.remove_edge(parent_id, child_id)
                return ParentChildEdge(parent_id=parent_id, child_id=child_id)
        if self._unions.has_edge(a, b):
            self._unions.remove_edge(a, b)
            return SpouseEdge.between(a, b)
        return Rejection.of(
            RejectKind.EDGE_NOT_FOUND, f"No relationship between {a} and {b}", person_ids=[a, b]
        )

    def attach(self, edge: Edge) -> None:
        """Add an edge without validation (loading committed rows, rollback)."""
        if isinstance(edge, ParentChildEdge):
            self._lineage.add_edge(edge.parent_id, edge.child_id)
        else:
            self._unions.add_edge(edge.spouse1_id, edge.spouse2_id)

    def discard(self, edge: Edge) -> None:
        """Drop an edge added earlier in the current operation (rollback only)."""
        if isinstance(edge, ParentChildEdge):
            if self._lineage.has_edge(edge.parent_id, edge.child_id):
                self._lineage.remove_edge(edge.parent_id, edge.child_id)
        elif self._unions.has_edge(edge.spouse1_id, edge.spouse2_id):
            self._unions.remove_edge(edge.spouse1_id, edge.spouse2_id)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    @staticmethod
    def _walk(start: str, step: Callable[[str], Iterable[str]]) -> Iterator[str]:
        """Breadth-first walk from *start*, yielding each reached node once.

        *start* itself is not yielded unless a path leads back to it.
        """
        visited: set[str] = set()
        queue: deque[str] = deque([start])
        while queue:
            current = queue.popleft()
            for neighbor in step(current):
                if neighbor not in visited:
                    visited.add(neighbor)
                    yield neighbor
                    queue.append(neighbor)
