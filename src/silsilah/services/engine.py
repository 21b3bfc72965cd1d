"""RelationshipEngine: the only component allowed to mutate a tree.

Pipeline per mutation: LOCK → LOAD → VALIDATE → APPLY → COMMIT → RESPOND

Every operation loads the tree aggregate fresh under the tree's lock,
validates against the in-memory PersonStore and RelationshipGraph before
touching either, applies the change, and commits the delta plus a
version bump in one transaction. A stale version (another process
committed first) reloads and revalidates, up to
``engine.max_commit_retries`` extra attempts.

Refusals are returned as :class:`Rejection` values; storage exceptions
propagate to the CommandBus.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field, replace
from typing import Any

import structlog

from silsilah.domain.edges import Edge, ParentChildEdge, SpouseEdge
from silsilah.domain.ids import generate_person_id, validate_person_id
from silsilah.domain.person import Person, PersonDraft, parse_draft
from silsilah.domain.rejections import Outcome, Rejection
from silsilah.domain.types import AuditAction, RejectKind, Relation
from silsilah.infrastructure.repositories.trees import FamilyTree, StaleTreeVersion
from silsilah.services.base import BaseService

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class Applied:
    """A committed mutation: what changed and at which tree version."""

    tree_id: str
    action: AuditAction
    version: int = 0
    person: Person | None = None
    edge: Edge | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def subject_id(self) -> str | None:
        """The person the mutation is primarily about."""
        if self.person is not None:
            return self.person.person_id
        if isinstance(self.edge, ParentChildEdge):
            return self.edge.child_id
        if isinstance(self.edge, SpouseEdge):
            return self.extra.get("person_a_id", self.edge.spouse1_id)
        return None

    @property
    def person_ids(self) -> list[str]:
        """Every person touched, subject first, without repeats."""
        ids: list[str] = []
        if self.person is not None:
            ids.append(self.person.person_id)
        if self.edge is not None:
            ids.extend(self.edge.person_ids)
        subject = self.subject_id
        if subject is not None and subject in ids:
            ids.remove(subject)
            ids.insert(0, subject)
        return list(dict.fromkeys(ids))

    def to_payload(self) -> dict[str, Any]:
        """Snapshot recorded in the audit entry and sent to plugins."""
        payload: dict[str, Any] = dict(self.extra)
        if self.person is not None:
            payload["person"] = self.person.to_record()
        if self.edge is not None:
            payload["edge"] = self.edge.to_record()
        payload["version"] = self.version
        return payload


type _Step = Callable[[FamilyTree], Outcome[Applied]]


class RelationshipEngine(BaseService):
    """Validates and applies structural mutations to family trees."""

    # ------------------------------------------------------------------
    # Trees
    # ------------------------------------------------------------------

    def create_tree(self, tree_id: str, name: str | None = None) -> Outcome[Applied]:
        """Create an empty tree at version 1.

        *name* defaults to *tree_id*.
        """
        tree_id = (tree_id or "").strip()
        if not tree_id or not validate_person_id(tree_id):
            return Rejection.of(
                RejectKind.INVALID_FIELD,
                f"tree_id: invalid identifier {tree_id!r}",
                fields=["tree_id"],
            )
        display_name = (name or "").strip() or tree_id

        created = self._archive.trees.create(tree_id, display_name)
        if created is None:
            return Rejection.of(
                RejectKind.DUPLICATE_IDENTIFIER,
                f"Tree {tree_id} already exists",
                tree_id=tree_id,
            )
        logger.info("tree_created", tree_id=tree_id)
        return Applied(
            tree_id=tree_id,
            action=AuditAction.CREATE_TREE,
            version=created.version,
            extra={"tree_id": tree_id, "name": display_name},
        )

    def load_tree(self, tree_id: str) -> Outcome[FamilyTree]:
        """Read-only load (served from the read engine when configured)."""
        tree = self._archive.trees.load(tree_id)
        if tree is None:
            return _tree_not_found(tree_id)
        return tree

    # ------------------------------------------------------------------
    # Persons
    # ------------------------------------------------------------------

    def add_person(self, tree_id: str, draft: PersonDraft | Mapping[str, Any]) -> Outcome[Applied]:
        parsed = parse_draft(draft)
        if isinstance(parsed, Rejection):
            return parsed

        def step(tree: FamilyTree) -> Outcome[Applied]:
            person = self._new_person(tree, parsed)
            if isinstance(person, Rejection):
                return person
            tree.add_person(person)
            return Applied(tree_id=tree_id, action=AuditAction.ADD_PERSON, person=person)

        return self._mutate(tree_id, AuditAction.ADD_PERSON, step)

    # ------------------------------------------------------------------
    # Relationships
    # ------------------------------------------------------------------

    def link_parent_child(self, tree_id: str, parent_id: str, child_id: str) -> Outcome[Applied]:
        def step(tree: FamilyTree) -> Outcome[Applied]:
            edge = tree.graph.add_parent_child_edge(parent_id, child_id)
            if isinstance(edge, Rejection):
                return edge
            tree.add_edge(edge)
            return Applied(tree_id=tree_id, action=AuditAction.ADD_PARENT_CHILD, edge=edge)

        return self._mutate(tree_id, AuditAction.ADD_PARENT_CHILD, step)

    def link_spouse(self, tree_id: str, person_a_id: str, person_b_id: str) -> Outcome[Applied]:
        def step(tree: FamilyTree) -> Outcome[Applied]:
            edge = tree.graph.add_spouse_edge(person_a_id, person_b_id)
            if isinstance(edge, Rejection):
                return edge
            tree.add_edge(edge)
            return Applied(
                tree_id=tree_id,
                action=AuditAction.ADD_SPOUSE,
                edge=edge,
                extra={"person_a_id": person_a_id, "person_b_id": person_b_id},
            )

        return self._mutate(tree_id, AuditAction.ADD_SPOUSE, step)

    def create_person_and_link(
        self,
        tree_id: str,
        draft: PersonDraft | Mapping[str, Any],
        relation: Relation | str,
        anchor_id: str,
    ) -> Outcome[Applied]:
        """Create a person and link them to *anchor_id* in one commit.

        *relation* is the new person's role relative to the anchor. If the
        link is refused the new person is removed again and nothing is
        written.
        """
        parsed = parse_draft(draft)
        if isinstance(parsed, Rejection):
            return parsed
        try:
            role = Relation(str(relation).upper())
        except ValueError:
            return Rejection.of(
                RejectKind.INVALID_FIELD,
                f"relation: must be one of {', '.join(r.value for r in Relation)}",
                fields=["relation"],
            )

        def step(tree: FamilyTree) -> Outcome[Applied]:
            person = self._new_person(tree, parsed)
            if isinstance(person, Rejection):
                return person
            tree.add_person(person)
            new_id = person.person_id

            edge: Outcome[Edge]
            match role:
                case Relation.PARENT:
                    edge = tree.graph.add_parent_child_edge(new_id, anchor_id)
                case Relation.CHILD:
                    edge = tree.graph.add_parent_child_edge(anchor_id, new_id)
                case Relation.SPOUSE:
                    edge = tree.graph.add_spouse_edge(anchor_id, new_id)

            if isinstance(edge, Rejection):
                tree.drop_new_person(new_id)
                return edge
            tree.add_edge(edge)
            return Applied(
                tree_id=tree_id,
                action=AuditAction.CREATE_PERSON_AND_LINK,
                person=person,
                edge=edge,
                extra={"relation": role.value, "anchor_id": anchor_id},
            )

        return self._mutate(tree_id, AuditAction.CREATE_PERSON_AND_LINK, step)

    def remove_relationship(
        self, tree_id: str, person_a_id: str, person_b_id: str
    ) -> Outcome[Applied]:
        """Remove whichever edge joins the two persons."""

        def step(tree: FamilyTree) -> Outcome[Applied]:
            edge = tree.graph.remove_relationship(person_a_id, person_b_id)
            if isinstance(edge, Rejection):
                return edge
            tree.remove_edge(edge)
            return Applied(
                tree_id=tree_id,
                action=AuditAction.REMOVE_RELATIONSHIP,
                edge=edge,
                extra={"person_a_id": person_a_id, "person_b_id": person_b_id},
            )

        return self._mutate(tree_id, AuditAction.REMOVE_RELATIONSHIP, step)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    @staticmethod
    def _new_person(tree: FamilyTree, draft: PersonDraft) -> Outcome[Person]:
        if draft.person_id is not None:
            if draft.person_id in tree.persons:
                return Rejection.of(
                    RejectKind.DUPLICATE_IDENTIFIER,
                    f"Person {draft.person_id} already exists in tree {tree.tree_id}",
                    person_id=draft.person_id,
                )
            person_id = draft.person_id
        else:
            person_id = generate_person_id(draft.name, tree.persons)
        return Person.from_draft(draft, person_id)

    def _mutate(self, tree_id: str, action: AuditAction, step: _Step) -> Outcome[Applied]:
        """Run *step* against a freshly loaded tree and commit its changes."""
        retries = self._settings.engine.max_commit_retries
        log = logger.bind(tree_id=tree_id, action=action.value)

        with self._archive.tree_lock(tree_id):
            for attempt in range(retries + 1):
                tree = self._archive.trees.load(tree_id, for_update=True)
                if tree is None:
                    return _tree_not_found(tree_id)

                outcome = step(tree)
                if isinstance(outcome, Rejection):
                    log.debug("mutation_rejected", kind=outcome.kind.value)
                    return outcome

                try:
                    version = self._archive.trees.commit(tree)
                except StaleTreeVersion:
                    log.warning("stale_tree_version", attempt=attempt + 1, version=tree.version)
                    continue

                log.debug("mutation_committed", version=version)
                return replace(outcome, version=version)

        return Rejection.of(
            RejectKind.CONCURRENCY_CONFLICT,
            f"Tree {tree_id} kept changing; gave up after {retries + 1} attempts",
            tree_id=tree_id,
        )


def _tree_not_found(tree_id: str) -> Rejection:
    return Rejection.of(RejectKind.TREE_NOT_FOUND, f"Tree {tree_id} not found", tree_id=tree_id)
