"""Command group: create and inspect family trees."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from silsilah.commands._base import SilsilahGroup

if TYPE_CHECKING:
    from silsilah.commands._context import AppContext

_TREE_EXAMPLES = """\
  silsilah tree create smith-family --name "Smith Family"
  silsilah tree list
  silsilah tree show smith-family
  silsilah --json tree show smith-family"""


@click.group(cls=SilsilahGroup, examples=_TREE_EXAMPLES)
def tree() -> None:
    """Create and inspect family trees."""


@tree.command(
    examples="""\
  silsilah tree create smith-family
  silsilah tree create smith-family --name "Smith Family"
  silsilah --actor alice tree create davis-family"""
)
@click.argument("tree_id")
@click.option("--name", default=None, help="Display name (defaults to TREE_ID).")
@click.pass_obj
def create(app: AppContext, tree_id: str, name: str | None) -> None:
    """Create an empty tree."""
    app.emit(app.bus.create_tree(tree_id, name))


@tree.command(
    examples="""\
  silsilah tree show smith-family
  silsilah -v tree show smith-family
  silsilah --json tree show smith-family"""
)
@click.argument("tree_id")
@click.pass_obj
def show(app: AppContext, tree_id: str) -> None:
    """Show a tree's persons and relationships."""
    app.emit(app.bus.get_tree(tree_id))


@tree.command(
    "list",
    examples="""\
  silsilah tree list
  silsilah tree list --page 2 --limit 20
  silsilah -q tree list""",
)
@click.option("--page", default=1, type=int, help="1-based page number.")
@click.option("--limit", default=None, type=int, help="Trees per page.")
@click.pass_obj
def list_trees(app: AppContext, page: int, limit: int | None) -> None:
    """List trees, most recently updated first."""
    app.emit(app.bus.list_trees(page, limit))
