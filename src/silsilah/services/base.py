"""BaseService: foundation for the engine and audit services.

Every service receives an :class:`Archive` at construction time. The
Archive provides repositories, per-tree locks and the event bus.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from silsilah.config.settings import SilsilahSettings
    from silsilah.infrastructure.archive import Archive

logger = logging.getLogger(__name__)


class BaseService:
    """Base for service-layer classes.

    Usage::

        class RelationshipEngine(BaseService):
            def link_spouse(self, tree_id: str, a: str, b: str) -> Outcome[Applied]:
                with self._archive.tree_lock(tree_id):
                    ...
    """

    def __init__(self, archive: Archive) -> None:
        self._archive = archive

    @property
    def _settings(self) -> SilsilahSettings:
        return self._archive.settings

    def _dispatch_event(
        self,
        hook_name: str,
        payload: dict[str, Any],
        warnings: list[str],
    ) -> None:
        """Dispatch a plugin event. No-op if event bus not initialized.

        INVARIANT: Plugin failures are warnings, never errors.
        """
        bus = self._archive.event_bus
        if bus is None:
            return
        try:
            delivered = bus.dispatch(hook_name, payload)
        except Exception:
            logger.debug("Event dispatch failed for %s", hook_name, exc_info=True)
            warnings.append(f"Event dispatch failed for {hook_name}")
            return
        if delivered is False:
            warnings.append(f"Plugin hook {hook_name} failed")
