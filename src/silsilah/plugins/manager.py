"""Plugin discovery and loading.

Sources, in load order:

1. ``silsilah.plugins`` entry points (pip-installed packages).
2. Single-file plugins in ``.silsilah/plugins/*.py``.
3. Built-ins registered by :meth:`Archive.init_event_bus`.

Names listed in ``[plugins] disabled`` are blocked before any source
loads, so a blocked plugin is never registered from any of them.
"""

from __future__ import annotations

import importlib.util
import inspect
import logging
import sys
from collections.abc import Iterable
from pathlib import Path
from types import ModuleType

import pluggy

from silsilah.plugins.hookspecs import SilsilahHookSpec

PROJECT_NAME = "silsilah"
ENTRY_POINT_GROUP = "silsilah.plugins"
LOCAL_MODULE_PREFIX = "silsilah_local_plugin_"

logger = logging.getLogger(__name__)


class PluginManager:
    """Thin wrapper over :class:`pluggy.PluginManager` for silsilah hooks.

    Args:
        blocked: Plugin names to refuse. Registering a blocked name is a
            silent no-op.
    """

    def __init__(self, *, blocked: Iterable[str] = ()) -> None:
        self._pm = pluggy.PluginManager(PROJECT_NAME)
        self._pm.add_hookspecs(SilsilahHookSpec)
        for name in blocked:
            self._pm.set_blocked(name)
        self._loaded: bool = False

    def discover_and_load(self, *, local_dir: Path | None = None) -> list[str]:
        """Load entry-point plugins, then local ones; return registered names."""
        count = self._pm.load_setuptools_entrypoints(ENTRY_POINT_GROUP)
        if count:
            logger.debug("Loaded %d entry-point plugin(s)", count)
        self._normalize_plugin_instances()
        if local_dir is not None and local_dir.is_dir():
            for py_file in sorted(local_dir.glob("*.py")):
                if not py_file.name.startswith("_"):
                    self._load_local_file(py_file)
        self._loaded = True
        return self.list_plugin_names()

    def register_plugin(self, plugin: object, name: str | None = None) -> None:
        """Register a plugin instance directly (e.g. built-in plugins)."""
        resolved_name = name or plugin.__class__.__name__
        if self._pm.is_blocked(resolved_name):
            logger.info("Plugin %s is disabled in config", resolved_name)
            return
        self._pm.register(plugin, name=resolved_name)
        logger.debug("Registered plugin: %s", resolved_name)

    def unregister(self, plugin: object) -> None:
        self._pm.unregister(plugin)

    def is_blocked(self, name: str) -> bool:
        return self._pm.is_blocked(name)

    @property
    def is_loaded(self) -> bool:
        """Whether discover_and_load() has been called."""
        return self._loaded

    @property
    def hook(self) -> pluggy.HookRelay:
        return self._pm.hook

    def get_plugins(self) -> list[object]:
        # Blocked names hold a None placeholder in pluggy.
        return [p for p in self._pm.get_plugins() if p is not None]

    def list_plugin_names(self) -> list[str]:
        return sorted(self._pm.get_name(p) or p.__class__.__name__ for p in self.get_plugins())

    # ------------------------------------------------------------------
    # Local directory discovery
    # ------------------------------------------------------------------

    def _load_local_file(self, py_file: Path) -> None:
        """Import *py_file* and register every hook class defined in it.

        Failures are logged and the file is skipped.
        """
        module = _import_file(f"{LOCAL_MODULE_PREFIX}{py_file.stem}", py_file)
        if module is None:
            return

        hook_classes = [
            obj
            for _, obj in inspect.getmembers(module, inspect.isclass)
            if obj.__module__ == module.__name__ and self._has_hook_impls(obj)
        ]
        if not hook_classes:
            logger.warning("Local plugin %s defines no hook implementations", py_file.name)
            return

        for cls in hook_classes:
            # One file may hold several classes; the first keeps the stem as its name.
            name = py_file.stem if cls is hook_classes[0] else f"{py_file.stem}.{cls.__name__}"
            try:
                instance = cls()
            except Exception:
                logger.warning(
                    "Could not instantiate %s from %s", cls.__name__, py_file, exc_info=True
                )
                continue
            self.register_plugin(instance, name=name)

    def _normalize_plugin_instances(self) -> None:
        """Swap plugin classes registered by entry points for instances.

        Hooks dispatched against a class object would have an unbound ``self``.
        """
        for plugin in list(self._pm.get_plugins()):
            if not (inspect.isclass(plugin) and self._has_hook_impls(plugin)):
                continue
            plugin_name = self._pm.get_name(plugin) or plugin.__name__
            self._pm.unregister(plugin)
            try:
                self._pm.register(plugin(), name=plugin_name)
            except Exception:
                logger.warning(
                    "Dropping entry-point plugin %s: constructor failed",
                    plugin_name,
                    exc_info=True,
                )

    @staticmethod
    def _has_hook_impls(cls: type) -> bool:
        """True if any public attribute of *cls* carries a ``silsilah_impl`` marker."""
        return any(
            callable(getattr(cls, name, None))
            and getattr(getattr(cls, name), f"{PROJECT_NAME}_impl", None)
            for name in dir(cls)
            if not name.startswith("_")
        )


def _import_file(module_name: str, py_file: Path) -> ModuleType | None:
    spec = importlib.util.spec_from_file_location(module_name, py_file)
    if spec is None or spec.loader is None:
        logger.warning("Not a loadable module: %s", py_file)
        return None
    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module
    try:
        spec.loader.exec_module(module)
    except Exception:
        logger.warning("Failed to load local plugin %s", py_file, exc_info=True)
        sys.modules.pop(module_name, None)
        return None
    return module
