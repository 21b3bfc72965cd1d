"""Built-in plugin that mirrors mutation events into the structured log.

Registered by the Archive when plugins are enabled. Useful as a template
for external plugins: implement any subset of the hookspecs and decorate
each method with ``hookimpl``.
"""

from __future__ import annotations

from typing import Any

import pluggy
import structlog

hookimpl = pluggy.HookimplMarker("silsilah")

logger = structlog.get_logger(__name__)


class ActivityLogPlugin:
    """Logs every committed mutation at INFO and audit failures at ERROR."""

    @hookimpl
    def post_mutation(
        self,
        tree_id: str,
        action: str,
        person_id: str | None,
        payload: dict[str, Any],
    ) -> None:
        logger.info(
            "mutation_committed",
            tree_id=tree_id,
            action=action,
            person_id=person_id,
            keys=sorted(payload),
        )

    @hookimpl
    def audit_failed(self, tree_id: str, action: str, error: str) -> None:
        logger.error("audit_write_failed", tree_id=tree_id, action=action, error=error)
