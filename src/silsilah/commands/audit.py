"""Command group: audit history."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from silsilah.commands._base import SilsilahGroup
from silsilah.domain.types import AuditAction

if TYPE_CHECKING:
    from silsilah.commands._context import AppContext

_AUDIT_EXAMPLES = """\
  silsilah audit tree smith-family
  silsilah audit tree smith-family --page 2 --limit 20
  silsilah audit person emma-smith --tree smith-family
  silsilah audit action ADD_SPOUSE
  silsilah audit verify smith-family"""

_page_option = click.option("--page", default=1, type=int, help="1-based page number.")
_limit_option = click.option("--limit", default=None, type=int, help="Entries per page.")


@click.group(cls=SilsilahGroup, examples=_AUDIT_EXAMPLES)
def audit() -> None:
    """Browse and verify the audit log."""


@audit.command(name="tree")
@click.argument("tree_id")
@_page_option
@_limit_option
@click.pass_obj
def tree_history(app: AppContext, tree_id: str, page: int, limit: int | None) -> None:
    """List a tree's activity, newest first."""
    app.emit(app.bus.list_audit_for_tree(tree_id, page, limit))


@audit.command(
    name="person",
    examples="""\
  silsilah audit person emma-smith
  silsilah audit person emma-smith --tree smith-family --limit 10""",
)
@click.argument("person_id")
@click.option("--tree", "tree_id", default=None, help="Restrict to one tree.")
@_page_option
@_limit_option
@click.pass_obj
def person_history(
    app: AppContext, person_id: str, tree_id: str | None, page: int, limit: int | None
) -> None:
    """List changes touching PERSON_ID, newest first."""
    app.emit(app.bus.list_audit_for_person(person_id, page, limit, tree_id=tree_id))


@audit.command(name="action")
@click.argument(
    "action", type=click.Choice([a.value for a in AuditAction], case_sensitive=False)
)
@click.option("--tree", "tree_id", default=None, help="Restrict to one tree.")
@_page_option
@_limit_option
@click.pass_obj
def action_history(
    app: AppContext, action: str, tree_id: str | None, page: int, limit: int | None
) -> None:
    """List entries of one ACTION kind, newest first."""
    app.emit(app.bus.list_audit_for_action(action, page, limit, tree_id=tree_id))


@audit.command(
    examples="""\
  silsilah audit verify smith-family
  silsilah --json audit verify smith-family"""
)
@click.argument("tree_id")
@click.pass_obj
def verify(app: AppContext, tree_id: str) -> None:
    """Re-hash a tree's audit chain and report breaks."""
    result = app.bus.verify_audit_chain(tree_id)
    app.emit(result)
    if result.data.get("valid") is False:
        raise SystemExit(2)
