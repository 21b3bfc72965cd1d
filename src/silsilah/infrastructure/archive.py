"""Archive: the single storage dependency injected into every service.

The Archive owns the database engines, the repositories built on them,
the per-tree mutation locks and the plugin event bus.

- **Writes** go through the primary engine only.
- **Reads** (tree documents, graph walks, audit listings) go through the
  read engine, which is the primary unless ``[archive] read_database_url``
  is set.
- **Mutations** of one tree are serialized in-process with
  :meth:`tree_lock`; cross-process safety comes from the version check in
  :meth:`TreeRepository.commit`.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING

from silsilah.infrastructure.database.engine import DATA_DIRNAME, create_db_engine, init_database
from silsilah.infrastructure.repositories.audit import AuditLogRepository
from silsilah.infrastructure.repositories.trees import TreeRepository

if TYPE_CHECKING:
    from collections.abc import Iterator

    from sqlalchemy.engine import Engine

    from silsilah.config.settings import SilsilahSettings
    from silsilah.plugins.event_bus import EventBus

logger = logging.getLogger(__name__)


class Archive:
    """Repository root encapsulating database access and coordination.

    Constructed once at CLI startup from :class:`SilsilahSettings` and
    stored on the click context. Services receive the Archive via their
    :class:`BaseService` constructor.
    """

    def __init__(self, settings: SilsilahSettings, *, engine: Engine | None = None) -> None:
        self._settings = settings
        self._engine: Engine = engine or init_database(
            self.root, settings.archive.database_url
        )
        read_url = settings.archive.read_database_url
        self._read_engine: Engine = create_db_engine(read_url) if read_url else self._engine
        self._trees = TreeRepository(
            self._engine,
            read_engine=self._read_engine,
            enforce_age_consistency=settings.engine.enforce_age_consistency,
        )
        self._audit_log = AuditLogRepository(self._engine, read_engine=self._read_engine)
        self._locks: dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()
        self._event_bus: EventBus | None = None

    @property
    def root(self) -> Path:
        """Directory holding ``.silsilah/``."""
        return self._settings.root

    @property
    def settings(self) -> SilsilahSettings:
        return self._settings

    @property
    def engine(self) -> Engine:
        """The primary (write) engine."""
        return self._engine

    @property
    def read_engine(self) -> Engine:
        return self._read_engine

    @property
    def trees(self) -> TreeRepository:
        return self._trees

    @property
    def audit_log(self) -> AuditLogRepository:
        return self._audit_log

    @property
    def event_bus(self) -> EventBus | None:
        """The plugin event bus (None if not initialized)."""
        return self._event_bus

    # ------------------------------------------------------------------
    # Coordination
    # ------------------------------------------------------------------

    @contextmanager
    def tree_lock(self, tree_id: str) -> Iterator[None]:
        """Hold the in-process mutation lock for *tree_id*.

        Locks are created on first use and live as long as the Archive.
        """
        with self._locks_guard:
            lock = self._locks.setdefault(tree_id, threading.Lock())
        with lock:
            yield

    def init_event_bus(self, *, sync: bool = False) -> None:
        """Initialize the plugin event bus.

        Creates a PluginManager, discovers entry-point and local plugins,
        registers the built-in activity log plugin, and wires up the
        EventBus. Does nothing when ``[plugins] enabled = false``.
        """
        if not self._settings.plugins.enabled:
            return

        from silsilah.plugins.builtins.activity_log import ActivityLogPlugin
        from silsilah.plugins.event_bus import EventBus
        from silsilah.plugins.manager import PluginManager

        pm = PluginManager(blocked=self._settings.plugins.disabled)
        pm.discover_and_load(local_dir=self.root / DATA_DIRNAME / "plugins")
        pm.register_plugin(ActivityLogPlugin(), name="activity-log")

        self._event_bus = EventBus(pm, sync=sync, max_workers=self._settings.plugins.max_workers)

    def close(self) -> None:
        """Stop the event bus and release pooled connections."""
        if self._event_bus is not None:
            self._event_bus.shutdown()
            self._event_bus = None
        if self._read_engine is not self._engine:
            self._read_engine.dispose()
        self._engine.dispose()
