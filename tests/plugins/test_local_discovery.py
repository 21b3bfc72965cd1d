"""Tests for local directory plugin discovery in PluginManager."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any

from silsilah.plugins.manager import PluginManager

# -- Plugin source code used in tests ------------------------------------------

_VALID_PLUGIN_SRC = """\
import pluggy

hookimpl = pluggy.HookimplMarker("silsilah")

calls: list[dict] = []


class LocalTestPlugin:
    \"\"\"A minimal local plugin for testing.\"\"\"

    @hookimpl
    def post_mutation(self, tree_id, action, person_id, payload) -> None:
        calls.append({"tree_id": tree_id, "action": action})
"""

_SYNTAX_ERROR_SRC = """\
def broken(
    # missing closing paren and colon
"""

_NO_HOOKS_SRC = """\
class PlainClass:
    \"\"\"A class with no hookimpl-decorated methods.\"\"\"
    def hello(self) -> str:
        return "world"
"""


class TestLocalDiscovery:
    def test_discovers_local_plugin(self, tmp_path: Path) -> None:
        (tmp_path / "myplugin.py").write_text(_VALID_PLUGIN_SRC, encoding="utf-8")

        pm = PluginManager()
        names = pm.discover_and_load(local_dir=tmp_path)

        assert "myplugin" in names
        assert pm.is_loaded

    def test_local_plugin_receives_hooks(self, tmp_path: Path) -> None:
        (tmp_path / "capture.py").write_text(_VALID_PLUGIN_SRC, encoding="utf-8")

        pm = PluginManager()
        pm.discover_and_load(local_dir=tmp_path)
        pm.hook.post_mutation(tree_id="t1", action="ADD_PERSON", person_id="a", payload={})

        module = sys.modules["silsilah_local_plugin_capture"]
        assert module.calls == [{"tree_id": "t1", "action": "ADD_PERSON"}]

    def test_skips_bad_plugin_gracefully(self, tmp_path: Path) -> None:
        (tmp_path / "broken.py").write_text(_SYNTAX_ERROR_SRC, encoding="utf-8")

        pm = PluginManager()
        names = pm.discover_and_load(local_dir=tmp_path)

        assert not any("broken" in n for n in names)

    def test_skips_classes_without_hooks(self, tmp_path: Path) -> None:
        (tmp_path / "plain.py").write_text(_NO_HOOKS_SRC, encoding="utf-8")

        pm = PluginManager()
        names = pm.discover_and_load(local_dir=tmp_path)

        assert "plain" not in names

    def test_skips_underscore_files(self, tmp_path: Path) -> None:
        (tmp_path / "_private.py").write_text(_VALID_PLUGIN_SRC, encoding="utf-8")

        pm = PluginManager()
        names = pm.discover_and_load(local_dir=tmp_path)

        assert not any("_private" in n for n in names)

    def test_missing_directory(self, tmp_path: Path) -> None:
        pm = PluginManager()
        pm.discover_and_load(local_dir=tmp_path / "nope")
        assert pm.is_loaded

    def test_archive_plugins_directory(self, tmp_path: Path, make_archive: Any) -> None:
        plugins_dir = tmp_path / ".silsilah" / "plugins"
        plugins_dir.mkdir(parents=True)
        (plugins_dir / "mine.py").write_text(_VALID_PLUGIN_SRC, encoding="utf-8")

        archive = make_archive()
        archive.init_event_bus(sync=True)
        names = archive.event_bus.plugin_manager.list_plugin_names()
        assert "mine" in names
