"""Tests for genealogy enums."""

from __future__ import annotations

from silsilah.domain.rejections import REJECT_MESSAGES, Rejection
from silsilah.domain.types import AuditAction, Gender, RejectKind, Relation


class TestEnums:
    def test_values_are_wire_strings(self) -> None:
        assert Gender.FEMALE == "FEMALE"
        assert Relation("SPOUSE") is Relation.SPOUSE
        assert AuditAction.ADD_PARENT_CHILD.value == "ADD_PARENT_CHILD"

    def test_reject_codes_are_camel_case(self) -> None:
        assert RejectKind.TOO_MANY_PARENTS.value == "TooManyParents"
        assert RejectKind.CYCLE_DETECTED.value == "CycleDetected"
        assert RejectKind.CONCURRENCY_CONFLICT.value == "ConcurrencyConflict"

    def test_six_actions(self) -> None:
        assert len(AuditAction) == 6


class TestRejection:
    def test_every_kind_has_a_message(self) -> None:
        assert set(REJECT_MESSAGES) == set(RejectKind)

    def test_default_message(self) -> None:
        rejection = Rejection.of(RejectKind.SELF_REFERENCE)
        assert rejection.message == REJECT_MESSAGES[RejectKind.SELF_REFERENCE]
        assert rejection.detail == {}

    def test_custom_message_and_detail(self) -> None:
        rejection = Rejection.of(RejectKind.UNKNOWN_PERSON, "ghost missing", person_ids=["ghost"])
        assert rejection.message == "ghost missing"
        assert rejection.detail == {"person_ids": ["ghost"]}
