"""Pluggy hook specifications for silsilah mutation events.

Both hooks are notifications: they are dispatched after the fact through
the EventBus and their return values are ignored.
"""

from __future__ import annotations

from typing import Any

import pluggy

hookspec = pluggy.HookspecMarker("silsilah")


class SilsilahHookSpec:
    """Hook specifications for the silsilah plugin system."""

    @hookspec
    def post_mutation(
        self,
        tree_id: str,
        action: str,
        person_id: str | None,
        payload: dict[str, Any],
    ) -> None:
        """Called after a mutation is committed and audited."""

    @hookspec
    def audit_failed(
        self,
        tree_id: str,
        action: str,
        error: str,
    ) -> None:
        """Called when a committed mutation could not be written to the audit log."""
