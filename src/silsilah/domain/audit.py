"""Audit entry model and hash-chain primitives.

Entries are immutable once written. Each entry of a tree carries the
hash of the entry appended before it (``previous_hash``) and its own
``entry_hash``: SHA-256 over a canonical JSON form of every other field,
``previous_hash`` included. Re-hashing a tree's entries in append order
therefore detects edits, deletions and reordering.
"""

from __future__ import annotations

import hashlib
import json
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from silsilah.domain.types import AuditAction

_HASHED_FIELDS = (
    "tree_id",
    "person_id",
    "person_ids",
    "action",
    "timestamp",
    "actor",
    "payload",
    "previous_hash",
)


class AuditEntry(BaseModel):
    """One accepted mutation, as recorded."""

    model_config = ConfigDict(frozen=True)

    id: int | None = None
    tree_id: str
    person_id: str | None = None
    person_ids: list[str] = Field(default_factory=list)
    action: AuditAction
    timestamp: datetime
    actor: str | None = None
    payload: dict[str, Any] = Field(default_factory=dict)
    previous_hash: str | None = None
    entry_hash: str | None = None

    def to_record(self) -> dict[str, Any]:
        return self.model_dump(mode="json")


def canonical_json(entry: AuditEntry) -> str:
    """Deterministic JSON of the hashed fields: sorted keys, no whitespace."""
    data = entry.model_dump(mode="json", include=set(_HASHED_FIELDS))
    return json.dumps(data, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def compute_entry_hash(entry: AuditEntry) -> str:
    """Lowercase hex SHA-256 of :func:`canonical_json`."""
    return hashlib.sha256(canonical_json(entry).encode("utf-8")).hexdigest()


def verify_chain(entries: list[AuditEntry]) -> list[dict[str, Any]]:
    """Check hashes and links of *entries* given in append order.

    Returns one ``{index, entry_id, reason}`` dict per problem; empty means
    the chain is intact.
    """
    errors: list[dict[str, Any]] = []
    previous: AuditEntry | None = None
    for index, entry in enumerate(entries):
        if entry.entry_hash != compute_entry_hash(entry):
            errors.append({"index": index, "entry_id": entry.id, "reason": "entry hash mismatch"})
        expected_prev = previous.entry_hash if previous is not None else None
        if entry.previous_hash != expected_prev:
            errors.append({"index": index, "entry_id": entry.id, "reason": "chain link broken"})
        previous = entry
    return errors
