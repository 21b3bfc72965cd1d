"""AuditRecorder: the append-only history of accepted mutations.

Recording never raises: the mutation it describes is already committed,
so a failed append is logged, dispatched to the ``audit_failed`` plugin
hook and reported back as a warning instead.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import structlog

from silsilah.domain.audit import AuditEntry, verify_chain
from silsilah.domain.pagination import PageRequest, build_pagination_meta, validate_pagination
from silsilah.domain.rejections import Outcome, Rejection
from silsilah.domain.types import AuditAction, RejectKind
from silsilah.services._helpers import now_utc
from silsilah.services.base import BaseService
from silsilah.services.engine import Applied

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class AuditPage:
    """One page of audit entries, newest first."""

    entries: list[AuditEntry]
    total: int
    limit: int
    offset: int
    has_more: bool

    def to_data(self) -> dict[str, Any]:
        return {
            "entries": [e.to_record() for e in self.entries],
            "total": self.total,
            "limit": self.limit,
            "offset": self.offset,
            "has_more": self.has_more,
        }


class AuditRecorder(BaseService):
    """Writes and queries the audit log."""

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    def entry_for(self, applied: Applied, *, actor: str | None = None) -> AuditEntry:
        """Build the (unhashed) entry describing *applied*."""
        return AuditEntry(
            tree_id=applied.tree_id,
            person_id=applied.subject_id,
            person_ids=applied.person_ids,
            action=applied.action,
            timestamp=now_utc(),
            actor=actor,
            payload=applied.to_payload(),
        )

    def record(self, entry: AuditEntry, warnings: list[str] | None = None) -> AuditEntry | None:
        """Append *entry*; return the stored entry, or None if the write failed.

        Appends for one tree are serialized on the tree lock so the hash
        chain stays linear.
        """
        try:
            with self._archive.tree_lock(entry.tree_id):
                return self._archive.audit_log.append(
                    entry, hash_chain=self._settings.audit.hash_chain
                )
        except Exception as exc:
            logger.error(
                "audit_append_failed",
                tree_id=entry.tree_id,
                action=entry.action.value,
                error=str(exc),
            )
            sink = warnings if warnings is not None else []
            sink.append(f"Audit entry for {entry.action.value} was not recorded: {exc}")
            self._dispatch_event(
                "audit_failed",
                {"tree_id": entry.tree_id, "action": entry.action.value, "error": str(exc)},
                sink,
            )
            return None

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def query_by_tree(
        self, tree_id: str, page: Any = None, limit: Any = None
    ) -> Outcome[AuditPage]:
        request = self._page_request(page, limit)
        if isinstance(request, Rejection):
            return request
        entries, total = self._archive.audit_log.find_by_tree(
            tree_id, limit=request.limit, offset=request.offset
        )
        return _page(entries, total, request)

    def query_by_person(
        self,
        person_id: str,
        page: Any = None,
        limit: Any = None,
        *,
        tree_id: str | None = None,
    ) -> Outcome[AuditPage]:
        """Entries where *person_id* is the subject or among the touched persons."""
        request = self._page_request(page, limit)
        if isinstance(request, Rejection):
            return request
        entries, total = self._archive.audit_log.find_by_person(
            person_id, limit=request.limit, offset=request.offset, tree_id=tree_id
        )
        return _page(entries, total, request)

    def query_by_action(
        self,
        action: AuditAction | str,
        page: Any = None,
        limit: Any = None,
        *,
        tree_id: str | None = None,
    ) -> Outcome[AuditPage]:
        try:
            resolved = AuditAction(str(action).upper())
        except ValueError:
            return Rejection.of(
                RejectKind.INVALID_FIELD,
                f"action: must be one of {', '.join(a.value for a in AuditAction)}",
                fields=["action"],
            )
        request = self._page_request(page, limit)
        if isinstance(request, Rejection):
            return request
        entries, total = self._archive.audit_log.find_by_action(
            resolved.value, limit=request.limit, offset=request.offset, tree_id=tree_id
        )
        return _page(entries, total, request)

    def verify_chain(self, tree_id: str) -> dict[str, Any]:
        """Re-hash every entry of *tree_id* in append order.

        Returns ``{valid, checked, errors}``. With hashing disabled in the
        config the chain is reported as not checked.
        """
        entries = self._archive.audit_log.all_for_tree(tree_id)
        if not self._settings.audit.hash_chain:
            return {"valid": True, "checked": 0, "errors": [], "hash_chain": False}
        errors = verify_chain(entries)
        if errors:
            logger.warning("audit_chain_broken", tree_id=tree_id, problems=len(errors))
        return {"valid": not errors, "checked": len(entries), "errors": errors, "hash_chain": True}

    def _page_request(self, page: Any, limit: Any) -> PageRequest | Rejection:
        cfg = self._settings.audit
        return validate_pagination(
            page, limit, default_limit=cfg.default_limit, max_limit=cfg.max_limit
        )


def _page(entries: list[AuditEntry], total: int, request: PageRequest) -> AuditPage:
    meta = build_pagination_meta(total, request.page, request.limit, len(entries))
    return AuditPage(entries=entries, total=total, **meta)
