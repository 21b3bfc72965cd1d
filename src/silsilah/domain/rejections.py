"""Typed rejections returned in place of exceptions.

Every refusal in the graph and engine layers is a :class:`Rejection`
value. Callers branch with ``isinstance(outcome, Rejection)``; the
CommandBus maps the kind to a stable code/message pair.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from silsilah.domain.types import RejectKind

# Fixed human copy per kind. Per-call context goes in ``Rejection.message``.
REJECT_MESSAGES: dict[RejectKind, str] = {
    RejectKind.INVALID_FIELD: "One or more fields are missing or invalid",
    RejectKind.INVALID_PAGINATION: "Page and limit must be positive integers within bounds",
    RejectKind.DUPLICATE_IDENTIFIER: "Identifier is already in use",
    RejectKind.DUPLICATE_EDGE: "Relationship already exists",
    RejectKind.SELF_REFERENCE: "A person cannot be related to themselves",
    RejectKind.TOO_MANY_PARENTS: "Child already has two parents",
    RejectKind.CYCLE_DETECTED: "Relationship would make a person their own ancestor",
    RejectKind.AGE_INCONSISTENCY: "Parent must be born before the child",
    RejectKind.UNKNOWN_PERSON: "Person not found in this tree",
    RejectKind.EDGE_NOT_FOUND: "Relationship not found",
    RejectKind.TREE_NOT_FOUND: "Family tree not found",
    RejectKind.CONCURRENCY_CONFLICT: "Tree was modified concurrently; reload and retry",
    RejectKind.STORAGE_ERROR: "Storage is unavailable",
}


@dataclass(frozen=True)
class Rejection:
    """A refused operation: the reason plus caller-facing context."""

    kind: RejectKind
    message: str
    detail: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def of(cls, kind: RejectKind, message: str | None = None, **detail: Any) -> Rejection:
        """Build a rejection, defaulting *message* to the kind's fixed copy."""
        return cls(kind=kind, message=message or REJECT_MESSAGES[kind], detail=detail)


type Outcome[T] = T | Rejection
