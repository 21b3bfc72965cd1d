"""Command group: lineage traversal."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from silsilah.commands._base import SilsilahGroup

if TYPE_CHECKING:
    from silsilah.commands._context import AppContext

_GRAPH_EXAMPLES = """\
  silsilah graph ancestors smith-family emma-smith
  silsilah graph descendants smith-family william-smith
  silsilah -q graph descendants smith-family william-smith"""


@click.group(cls=SilsilahGroup, examples=_GRAPH_EXAMPLES)
def graph() -> None:
    """Walk a tree's lineage."""


@graph.command(
    examples="""\
  silsilah graph ancestors smith-family emma-smith
  silsilah --json graph ancestors smith-family emma-smith"""
)
@click.argument("tree_id")
@click.argument("person_id")
@click.pass_obj
def ancestors(app: AppContext, tree_id: str, person_id: str) -> None:
    """List everyone PERSON_ID descends from."""
    app.emit(app.bus.get_ancestors(tree_id, person_id))


@graph.command(
    examples="""\
  silsilah graph descendants smith-family william-smith"""
)
@click.argument("tree_id")
@click.argument("person_id")
@click.pass_obj
def descendants(app: AppContext, tree_id: str, person_id: str) -> None:
    """List everyone descending from PERSON_ID."""
    app.emit(app.bus.get_descendants(tree_id, person_id))
