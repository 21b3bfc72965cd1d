"""Relationship edge value types."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


def canonical_spouse_pair(a: str, b: str) -> tuple[str, str]:
    """Order a spouse pair so (A, B) and (B, A) share one storage key."""
    return (a, b) if a <= b else (b, a)


@dataclass(frozen=True)
class SpouseEdge:
    """Unordered union between two persons, stored canonically."""

    spouse1_id: str
    spouse2_id: str

    @classmethod
    def between(cls, a: str, b: str) -> SpouseEdge:
        first, second = canonical_spouse_pair(a, b)
        return cls(spouse1_id=first, spouse2_id=second)

    @property
    def person_ids(self) -> list[str]:
        return [self.spouse1_id, self.spouse2_id]

    def to_record(self) -> dict[str, Any]:
        return {"type": "SPOUSE", "spouse1_id": self.spouse1_id, "spouse2_id": self.spouse2_id}


@dataclass(frozen=True)
class ParentChildEdge:
    """Directed lineage edge from parent to child."""

    parent_id: str
    child_id: str

    @property
    def person_ids(self) -> list[str]:
        return [self.parent_id, self.child_id]

    def to_record(self) -> dict[str, Any]:
        return {"type": "PARENT_CHILD", "parent_id": self.parent_id, "child_id": self.child_id}


type Edge = SpouseEdge | ParentChildEdge
