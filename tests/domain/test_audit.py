"""Tests for audit entry hashing and chain verification."""

from __future__ import annotations

import json
from datetime import UTC, datetime

from silsilah.domain.audit import AuditEntry, canonical_json, compute_entry_hash, verify_chain
from silsilah.domain.types import AuditAction


def _entry(n: int, previous_hash: str | None = None) -> AuditEntry:
    entry = AuditEntry(
        id=n,
        tree_id="t1",
        person_id=f"p{n}",
        person_ids=[f"p{n}"],
        action=AuditAction.ADD_PERSON,
        timestamp=datetime(2024, 1, 1, 12, 0, n, 123456, tzinfo=UTC),
        actor="tester",
        payload={"person": {"person_id": f"p{n}", "name": f"Person {n}"}},
        previous_hash=previous_hash,
    )
    return entry.model_copy(update={"entry_hash": compute_entry_hash(entry)})


def _chain(length: int) -> list[AuditEntry]:
    entries: list[AuditEntry] = []
    previous: str | None = None
    for n in range(length):
        entry = _entry(n, previous)
        entries.append(entry)
        previous = entry.entry_hash
    return entries


class TestCanonicalJson:
    def test_sorted_compact(self) -> None:
        text = canonical_json(_entry(1))
        assert " " not in text.replace("Person 1", "")
        keys = list(json.loads(text))
        assert keys == sorted(keys)

    def test_excludes_id_and_own_hash(self) -> None:
        data = json.loads(canonical_json(_entry(1)))
        assert "id" not in data
        assert "entry_hash" not in data
        assert "previous_hash" in data

    def test_hash_is_sha256_hex(self) -> None:
        digest = compute_entry_hash(_entry(1))
        assert len(digest) == 64
        int(digest, 16)

    def test_hash_depends_on_previous(self) -> None:
        assert compute_entry_hash(_entry(1, "a" * 64)) != compute_entry_hash(_entry(1, "b" * 64))


class TestVerifyChain:
    def test_intact(self) -> None:
        assert verify_chain(_chain(5)) == []

    def test_empty(self) -> None:
        assert verify_chain([]) == []

    def test_tampered_payload(self) -> None:
        entries = _chain(3)
        entries[1] = entries[1].model_copy(update={"payload": {"person": {"name": "Forged"}}})
        problems = verify_chain(entries)
        assert [p["index"] for p in problems] == [1]
        assert problems[0]["reason"] == "entry hash mismatch"

    def test_deleted_entry_breaks_link(self) -> None:
        entries = _chain(4)
        del entries[1]
        problems = verify_chain(entries)
        assert {"index": 1, "entry_id": 2, "reason": "chain link broken"} in problems

    def test_reordered(self) -> None:
        entries = _chain(3)
        entries[0], entries[1] = entries[1], entries[0]
        assert verify_chain(entries)
