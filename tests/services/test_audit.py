"""Tests for AuditRecorder: one entry per mutation, paging, hash chain."""

from __future__ import annotations

from typing import Any

import pluggy
import pytest
from sqlalchemy import update

from silsilah.config.models import AuditConfig
from silsilah.domain.audit import AuditEntry
from silsilah.domain.rejections import Rejection
from silsilah.domain.types import AuditAction, RejectKind
from silsilah.infrastructure.archive import Archive
from silsilah.infrastructure.database.schema import audit_log
from silsilah.services.audit import AuditPage, AuditRecorder
from silsilah.services.bus import CommandBus
from tests.conftest import SEED_AUDIT_COUNT, SEED_PARENTS, SEED_SPOUSES, SEED_TREE_ID

hookimpl = pluggy.HookimplMarker("silsilah")


class AuditFailureRecorder:
    def __init__(self) -> None:
        self.calls: list[dict[str, Any]] = []

    @hookimpl
    def audit_failed(self, tree_id: str, action: str, error: str) -> None:
        self.calls.append({"tree_id": tree_id, "action": action, "error": error})


@pytest.fixture
def recorder(seeded_bus: CommandBus) -> AuditRecorder:
    return seeded_bus.audit


# ---------------------------------------------------------------------------
# Recording
# ---------------------------------------------------------------------------


class TestRecording:
    def test_one_entry_per_mutation(self, recorder: AuditRecorder) -> None:
        page = recorder.query_by_tree(SEED_TREE_ID, 1, 1000)
        assert page.total == SEED_AUDIT_COUNT
        counts: dict[AuditAction, int] = {}
        for entry in page.entries:
            counts[entry.action] = counts.get(entry.action, 0) + 1
        assert counts[AuditAction.CREATE_TREE] == 1
        assert counts[AuditAction.ADD_SPOUSE] == len(SEED_SPOUSES)
        assert counts[AuditAction.ADD_PARENT_CHILD] == len(SEED_PARENTS)

    def test_rejection_not_recorded(self, seeded_bus: CommandBus) -> None:
        seeded_bus.add_parent_child_relationship(SEED_TREE_ID, "james-smith", "emma-smith")
        assert seeded_bus.audit.query_by_tree(SEED_TREE_ID).total == SEED_AUDIT_COUNT

    def test_entry_carries_actor_and_payload(self, recorder: AuditRecorder) -> None:
        (latest,) = recorder.query_by_tree(SEED_TREE_ID, 1, 1).entries
        assert latest.actor == "tester"
        assert latest.action is AuditAction.ADD_PARENT_CHILD
        assert latest.person_id == "sophie-smith"
        assert latest.payload["edge"] == {
            "type": "PARENT_CHILD",
            "parent_id": "jennifer-wilson",
            "child_id": "sophie-smith",
        }
        assert latest.payload["version"] == SEED_AUDIT_COUNT

    def test_failed_append_is_a_warning(
        self, archive: Archive, bus: CommandBus, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        archive.init_event_bus(sync=True)
        plugin = AuditFailureRecorder()
        archive.event_bus.plugin_manager.register_plugin(plugin)

        def broken_append(entry: AuditEntry, *, hash_chain: bool = True) -> AuditEntry:
            raise RuntimeError("disk full")

        monkeypatch.setattr(archive.audit_log, "append", broken_append)
        result = bus.create_tree("t1")

        assert result.success
        assert result.meta["audit_entry_id"] is None
        assert any("disk full" in w for w in result.warnings)
        assert plugin.calls == [{"tree_id": "t1", "action": "CREATE_TREE", "error": "disk full"}]
        assert archive.trees.exists("t1")


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


class TestQueries:
    def test_pagination_over_120_entries(self, bus: CommandBus) -> None:
        bus.create_tree("big")
        for n in range(119):
            assert bus.add_person("big", {"person_id": f"p{n:03d}", "name": f"P {n}"}).success
        audit = bus.audit

        first = audit.query_by_tree("big", 1, 50)
        assert isinstance(first, AuditPage)
        assert (first.total, len(first.entries), first.offset, first.has_more) == (120, 50, 0, True)
        assert first.entries[0].person_id == "p118"

        last = audit.query_by_tree("big", 3, 50)
        assert (len(last.entries), last.offset, last.has_more) == (20, 100, False)
        assert last.entries[-1].action is AuditAction.CREATE_TREE

        past_end = audit.query_by_tree("big", 4, 50)
        assert past_end.entries == []
        assert past_end.total == 120

    def test_default_limit_from_config(self, make_archive: Any) -> None:
        bus = CommandBus(make_archive(audit=AuditConfig(default_limit=2)))
        bus.create_tree("t1")
        for n in range(3):
            bus.add_person("t1", {"name": f"P {n}"})
        page = bus.audit.query_by_tree("t1")
        assert page.limit == 2
        assert len(page.entries) == 2

    def test_non_finite_limit_uses_config_default(self, make_archive: Any) -> None:
        bus = CommandBus(make_archive(audit=AuditConfig(default_limit=2)))
        bus.create_tree("t1")
        bus.add_person("t1", {"name": "Ann"})
        page = bus.audit.query_by_tree("t1", 1, float("nan"))
        assert page.limit == 2

    @pytest.mark.parametrize(("page", "limit"), [(0, 10), (1, 0), (1, 1001), (-1, None)])
    def test_invalid_pagination(self, recorder: AuditRecorder, page: Any, limit: Any) -> None:
        outcome = recorder.query_by_tree(SEED_TREE_ID, page, limit)
        assert isinstance(outcome, Rejection)
        assert outcome.kind is RejectKind.INVALID_PAGINATION

    def test_fractional_and_string_inputs(self, recorder: AuditRecorder) -> None:
        page = recorder.query_by_tree(SEED_TREE_ID, "2", 10.9)
        assert (page.limit, page.offset) == (10, 10)

    def test_by_person(self, recorder: AuditRecorder) -> None:
        page = recorder.query_by_person("john-smith")
        # add_person, one union, two parents, three children
        assert page.total == 7

    def test_by_person_unknown_is_empty(self, recorder: AuditRecorder) -> None:
        assert recorder.query_by_person("nobody").total == 0

    def test_by_action_case_insensitive(self, recorder: AuditRecorder) -> None:
        page = recorder.query_by_action("add_spouse")
        assert page.total == len(SEED_SPOUSES)

    def test_by_unknown_action(self, recorder: AuditRecorder) -> None:
        outcome = recorder.query_by_action("DELETE_EVERYTHING")
        assert isinstance(outcome, Rejection)
        assert outcome.kind is RejectKind.INVALID_FIELD


# ---------------------------------------------------------------------------
# Hash chain
# ---------------------------------------------------------------------------


class TestHashChain:
    def test_intact(self, recorder: AuditRecorder) -> None:
        report = recorder.verify_chain(SEED_TREE_ID)
        assert report == {
            "valid": True,
            "checked": SEED_AUDIT_COUNT,
            "errors": [],
            "hash_chain": True,
        }

    def test_tampered_payload_detected(self, recorder: AuditRecorder, archive: Archive) -> None:
        (target,) = recorder.query_by_action("CREATE_TREE").entries
        with archive.engine.begin() as conn:
            conn.execute(
                update(audit_log).where(audit_log.c.id == target.id).values(payload='{"forged":1}')
            )
        report = recorder.verify_chain(SEED_TREE_ID)
        assert report["valid"] is False
        assert report["errors"][0] == {
            "index": 0,
            "entry_id": target.id,
            "reason": "entry hash mismatch",
        }

    def test_disabled(self, make_archive: Any) -> None:
        bus = CommandBus(make_archive(audit=AuditConfig(hash_chain=False)))
        bus.create_tree("t1")
        report = bus.audit.verify_chain("t1")
        assert report["hash_chain"] is False
        assert report["checked"] == 0
        (entry,) = bus.audit.query_by_tree("t1").entries
        assert entry.entry_hash is None
