"""Tests for BaseService and service inheritance."""

from __future__ import annotations

from typing import Any

import pluggy
import pytest

from silsilah.infrastructure.archive import Archive
from silsilah.services.audit import AuditRecorder
from silsilah.services.base import BaseService
from silsilah.services.bus import CommandBus
from silsilah.services.engine import RelationshipEngine

hookimpl = pluggy.HookimplMarker("silsilah")


class FailingPlugin:
    @hookimpl
    def post_mutation(
        self, tree_id: str, action: str, person_id: str | None, payload: dict[str, Any]
    ) -> None:
        raise RuntimeError("plugin exploded")


class TestBaseService:
    def test_archive_stored(self, archive: Archive) -> None:
        service = BaseService(archive)
        assert service._archive is archive
        assert service._settings is archive.settings

    @pytest.mark.parametrize(
        "service_cls",
        [RelationshipEngine, AuditRecorder, CommandBus],
        ids=lambda c: c.__name__,
    )
    def test_inherits_base_service(self, service_cls: type) -> None:
        assert issubclass(service_cls, BaseService)


class TestDispatchEvent:
    def test_noop_without_bus(self, archive: Archive) -> None:
        warnings: list[str] = []
        BaseService(archive)._dispatch_event("post_mutation", {}, warnings)
        assert warnings == []

    def test_failed_hook_becomes_warning(self, archive: Archive) -> None:
        archive.init_event_bus(sync=True)
        archive.event_bus.plugin_manager.register_plugin(FailingPlugin())
        warnings: list[str] = []
        BaseService(archive)._dispatch_event(
            "post_mutation",
            {"tree_id": "t1", "action": "ADD_PERSON", "person_id": None, "payload": {}},
            warnings,
        )
        assert warnings == ["Plugin hook post_mutation failed"]
        assert archive.event_bus.failures[0]["error"] == "plugin exploded"

    def test_dispatch_exception_becomes_warning(
        self, archive: Archive, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        archive.init_event_bus(sync=True)

        def boom(hook_name: str, payload: dict[str, Any]) -> bool:
            raise RuntimeError("bus down")

        monkeypatch.setattr(archive.event_bus, "dispatch", boom)
        warnings: list[str] = []
        BaseService(archive)._dispatch_event("post_mutation", {}, warnings)
        assert warnings == ["Event dispatch failed for post_mutation"]
