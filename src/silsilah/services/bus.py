"""CommandBus: the single entry point for callers.

Translates engine outcomes into :class:`CommandResult` envelopes. After
every successful mutation it records exactly one audit entry and
dispatches ``post_mutation`` to plugins. Nothing raises past this
boundary: storage exceptions become ``StorageError`` results.
"""

from __future__ import annotations

import functools
import logging
from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any

from sqlalchemy.exc import SQLAlchemyError

from silsilah.domain.pagination import build_pagination_meta, validate_pagination
from silsilah.domain.person import PersonDraft
from silsilah.domain.rejections import REJECT_MESSAGES, Outcome, Rejection
from silsilah.domain.types import AuditAction, RejectKind, Relation
from silsilah.services.audit import AuditPage, AuditRecorder
from silsilah.services.base import BaseService
from silsilah.services.engine import Applied, RelationshipEngine
from silsilah.services.result import CommandError, CommandResult

if TYPE_CHECKING:
    from silsilah.infrastructure.archive import Archive
    from silsilah.infrastructure.repositories.trees import FamilyTree

logger = logging.getLogger(__name__)

type _Draft = PersonDraft | Mapping[str, Any]


def _failure(op: str, rejection: Rejection) -> CommandResult:
    detail = dict(rejection.detail)
    if rejection.message != REJECT_MESSAGES[rejection.kind]:
        detail["reason"] = rejection.message
    return CommandResult(
        success=False,
        op=op,
        error=CommandError(
            code=rejection.kind.value,
            message=REJECT_MESSAGES[rejection.kind],
            detail=detail,
        ),
    )


type _Handler = Callable[..., CommandResult]


def command_boundary(op: str) -> Callable[[_Handler], _Handler]:
    """Turn any exception escaping a bus method into a ``StorageError`` result."""

    def decorator(fn: _Handler) -> _Handler:
        @functools.wraps(fn)
        def wrapper(*args: Any, **kwargs: Any) -> CommandResult:
            try:
                return fn(*args, **kwargs)
            except SQLAlchemyError as exc:
                logger.error("Storage failure in %s: %s", op, exc, exc_info=True)
                return _failure(op, Rejection.of(RejectKind.STORAGE_ERROR, str(exc)))
            except Exception as exc:
                logger.exception("Unexpected failure in %s", op)
                return _failure(
                    op,
                    Rejection.of(RejectKind.STORAGE_ERROR, f"{type(exc).__name__}: {exc}"),
                )

        return wrapper

    return decorator


class CommandBus(BaseService):
    """Facade over RelationshipEngine and AuditRecorder.

    Args:
        archive: The shared Archive.
        actor: Recorded on every audit entry written through this bus.
            Defaults to ``settings.actor``.
    """

    def __init__(self, archive: Archive, *, actor: str | None = None) -> None:
        super().__init__(archive)
        self.engine = RelationshipEngine(archive)
        self.audit = AuditRecorder(archive)
        self.actor = actor if actor is not None else archive.settings.actor

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    @command_boundary("create_tree")
    def create_tree(self, tree_id: str, name: str | None = None) -> CommandResult:
        outcome = self.engine.create_tree(tree_id, name)
        return self._respond(
            "create_tree",
            outcome,
            lambda a: {"tree_id": a.tree_id, "name": a.extra["name"], "version": a.version},
        )

    @command_boundary("add_person")
    def add_person(self, tree_id: str, draft: _Draft) -> CommandResult:
        outcome = self.engine.add_person(tree_id, draft)
        return self._respond(
            "add_person",
            outcome,
            lambda a: {"person_id": a.subject_id, "person": a.person.to_record()},
        )

    @command_boundary("add_parent_child_relationship")
    def add_parent_child_relationship(
        self, tree_id: str, parent_id: str, child_id: str
    ) -> CommandResult:
        outcome = self.engine.link_parent_child(tree_id, parent_id, child_id)
        return self._respond(
            "add_parent_child_relationship",
            outcome,
            lambda a: {
                "message": f"{parent_id} is now a parent of {child_id}",
                "edge": a.edge.to_record(),
            },
        )

    @command_boundary("add_spouse_relationship")
    def add_spouse_relationship(
        self, tree_id: str, person_a_id: str, person_b_id: str
    ) -> CommandResult:
        outcome = self.engine.link_spouse(tree_id, person_a_id, person_b_id)
        return self._respond(
            "add_spouse_relationship",
            outcome,
            lambda a: {
                "message": f"{person_a_id} and {person_b_id} are now spouses",
                "edge": a.edge.to_record(),
            },
        )

    @command_boundary("create_person_and_link")
    def create_person_and_link(
        self,
        tree_id: str,
        draft: _Draft,
        relation: Relation | str,
        anchor_id: str,
    ) -> CommandResult:
        outcome = self.engine.create_person_and_link(tree_id, draft, relation, anchor_id)
        return self._respond(
            "create_person_and_link",
            outcome,
            lambda a: {"person": a.person.to_record(), "edge": a.edge.to_record()},
        )

    @command_boundary("remove_relationship")
    def remove_relationship(
        self, tree_id: str, person_a_id: str, person_b_id: str
    ) -> CommandResult:
        outcome = self.engine.remove_relationship(tree_id, person_a_id, person_b_id)
        return self._respond(
            "remove_relationship",
            outcome,
            lambda a: {
                "message": f"Relationship between {person_a_id} and {person_b_id} removed",
                "edge": a.edge.to_record(),
            },
        )

    # ------------------------------------------------------------------
    # Audit queries
    # ------------------------------------------------------------------

    @command_boundary("list_audit_for_tree")
    def list_audit_for_tree(
        self, tree_id: str, page: Any = None, limit: Any = None
    ) -> CommandResult:
        return self._page("list_audit_for_tree", self.audit.query_by_tree(tree_id, page, limit))

    @command_boundary("list_audit_for_person")
    def list_audit_for_person(
        self,
        person_id: str,
        page: Any = None,
        limit: Any = None,
        *,
        tree_id: str | None = None,
    ) -> CommandResult:
        return self._page(
            "list_audit_for_person",
            self.audit.query_by_person(person_id, page, limit, tree_id=tree_id),
        )

    @command_boundary("list_audit_for_action")
    def list_audit_for_action(
        self,
        action: AuditAction | str,
        page: Any = None,
        limit: Any = None,
        *,
        tree_id: str | None = None,
    ) -> CommandResult:
        return self._page(
            "list_audit_for_action",
            self.audit.query_by_action(action, page, limit, tree_id=tree_id),
        )

    @command_boundary("verify_audit_chain")
    def verify_audit_chain(self, tree_id: str) -> CommandResult:
        op = "verify_audit_chain"
        if not self._archive.trees.exists(tree_id):
            return _failure(op, _tree_not_found(tree_id))
        report = self.audit.verify_chain(tree_id)
        warnings = [] if report["hash_chain"] else ["Audit hash chain is disabled in config"]
        return CommandResult(success=True, op=op, data=report, warnings=warnings)

    # ------------------------------------------------------------------
    # Tree reads
    # ------------------------------------------------------------------

    @command_boundary("get_tree")
    def get_tree(self, tree_id: str) -> CommandResult:
        tree = self.engine.load_tree(tree_id)
        if isinstance(tree, Rejection):
            return _failure("get_tree", tree)
        return CommandResult(
            success=True,
            op="get_tree",
            data=tree.to_document(),
            meta={"tree_id": tree_id, "version": tree.version},
        )

    @command_boundary("get_person")
    def get_person(self, tree_id: str, person_id: str) -> CommandResult:
        """One person's record with the ids of their direct relatives."""
        op = "get_person"
        tree = self.engine.load_tree(tree_id)
        if isinstance(tree, Rejection):
            return _failure(op, tree)
        person = tree.persons.get(person_id)
        if person is None:
            return _failure(op, _unknown_person(tree_id, person_id))
        return CommandResult(
            success=True,
            op=op,
            data={
                "person_id": person_id,
                "person": person.to_record(),
                "parents": sorted(tree.graph.parents_of(person_id)),
                "children": sorted(tree.graph.children_of(person_id)),
                "spouses": sorted(tree.graph.spouses_of(person_id)),
            },
            meta={"tree_id": tree_id, "version": tree.version},
        )

    @command_boundary("list_trees")
    def list_trees(self, page: Any = None, limit: Any = None) -> CommandResult:
        """Page through tree summaries, most recently updated first."""
        op = "list_trees"
        cfg = self._settings.audit
        request = validate_pagination(
            page, limit, default_limit=cfg.default_limit, max_limit=cfg.max_limit
        )
        if isinstance(request, Rejection):
            return _failure(op, request)
        trees, total = self._archive.trees.list_trees(limit=request.limit, offset=request.offset)
        meta = build_pagination_meta(total, request.page, request.limit, len(trees))
        return CommandResult(success=True, op=op, data={"trees": trees, "total": total, **meta})

    @command_boundary("get_ancestors")
    def get_ancestors(self, tree_id: str, person_id: str) -> CommandResult:
        return self._lineage("get_ancestors", tree_id, person_id, ancestors=True)

    @command_boundary("get_descendants")
    def get_descendants(self, tree_id: str, person_id: str) -> CommandResult:
        return self._lineage("get_descendants", tree_id, person_id, ancestors=False)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _respond(
        self,
        op: str,
        outcome: Outcome[Applied],
        shape: Callable[[Applied], dict[str, Any]],
    ) -> CommandResult:
        """Audit a successful mutation and wrap it; wrap a rejection as-is."""
        if isinstance(outcome, Rejection):
            return _failure(op, outcome)

        warnings: list[str] = []
        entry = self.audit.record(self.audit.entry_for(outcome, actor=self.actor), warnings)
        self._dispatch_event(
            "post_mutation",
            {
                "tree_id": outcome.tree_id,
                "action": outcome.action.value,
                "person_id": outcome.subject_id,
                "payload": outcome.to_payload(),
            },
            warnings,
        )
        return CommandResult(
            success=True,
            op=op,
            data=shape(outcome),
            warnings=warnings,
            meta={
                "tree_id": outcome.tree_id,
                "version": outcome.version,
                "actor": self.actor,
                "audit_entry_id": entry.id if entry is not None else None,
            },
        )

    @staticmethod
    def _page(op: str, outcome: Outcome[AuditPage]) -> CommandResult:
        if isinstance(outcome, Rejection):
            return _failure(op, outcome)
        return CommandResult(success=True, op=op, data=outcome.to_data())

    def _lineage(self, op: str, tree_id: str, person_id: str, *, ancestors: bool) -> CommandResult:
        tree = self.engine.load_tree(tree_id)
        if isinstance(tree, Rejection):
            return _failure(op, tree)
        if person_id not in tree.persons:
            return _failure(op, _unknown_person(tree_id, person_id))
        return CommandResult(
            success=True, op=op, data=_lineage_data(tree, person_id, ancestors=ancestors)
        )


def _lineage_data(tree: FamilyTree, person_id: str, *, ancestors: bool) -> dict[str, Any]:
    generations = tree.graph.generations_from(person_id, ancestors=ancestors)
    items = []
    for pid, generation in sorted(generations.items(), key=lambda kv: (kv[1], kv[0])):
        person = tree.persons.get(pid)
        items.append(
            {
                "person_id": pid,
                "name": person.name if person is not None else pid,
                "generation": generation,
            }
        )
    return {"person_id": person_id, "count": len(items), "items": items}


def _tree_not_found(tree_id: str) -> Rejection:
    return Rejection.of(RejectKind.TREE_NOT_FOUND, f"Tree {tree_id} not found", tree_id=tree_id)


def _unknown_person(tree_id: str, person_id: str) -> Rejection:
    return Rejection.of(
        RejectKind.UNKNOWN_PERSON,
        f"Person not found in tree {tree_id}: {person_id}",
        person_ids=[person_id],
    )
