"""Command group: relationships between persons."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import click

from silsilah.commands._base import SilsilahGroup
from silsilah.commands.person import build_draft, person_options
from silsilah.domain.types import Relation

if TYPE_CHECKING:
    from silsilah.commands._context import AppContext

_LINK_EXAMPLES = """\
  silsilah link parent smith-family william-smith john-smith
  silsilah link spouse smith-family john-smith sarah-davis
  silsilah link new smith-family john-smith --as child --name "Emma Smith"
  silsilah link remove smith-family john-smith sarah-davis"""


@click.group(cls=SilsilahGroup, examples=_LINK_EXAMPLES)
def link() -> None:
    """Add and remove relationships."""


@link.command(
    examples="""\
  silsilah link parent smith-family william-smith john-smith
  silsilah --json link parent smith-family mary-johnson john-smith"""
)
@click.argument("tree_id")
@click.argument("parent_id")
@click.argument("child_id")
@click.pass_obj
def parent(app: AppContext, tree_id: str, parent_id: str, child_id: str) -> None:
    """Record PARENT_ID as a parent of CHILD_ID."""
    app.emit(app.bus.add_parent_child_relationship(tree_id, parent_id, child_id))


@link.command(
    examples="""\
  silsilah link spouse smith-family william-smith mary-johnson"""
)
@click.argument("tree_id")
@click.argument("person_a_id")
@click.argument("person_b_id")
@click.pass_obj
def spouse(app: AppContext, tree_id: str, person_a_id: str, person_b_id: str) -> None:
    """Record two persons as spouses."""
    app.emit(app.bus.add_spouse_relationship(tree_id, person_a_id, person_b_id))


@link.command(
    examples="""\
  silsilah link new smith-family john-smith --as child --name "Emma Smith" --born 2001-06-14
  silsilah link new smith-family emma-smith --as parent --name "Sarah Davis"
  silsilah link new smith-family michael-smith --as spouse --name "Jennifer Wilson\""""
)
@click.argument("tree_id")
@click.argument("anchor_id")
@click.option(
    "--as",
    "relation",
    required=True,
    type=click.Choice([r.value for r in Relation], case_sensitive=False),
    help="Role of the new person relative to ANCHOR_ID.",
)
@person_options
@click.pass_obj
def new(app: AppContext, tree_id: str, anchor_id: str, relation: str, **fields: Any) -> None:
    """Create a person and link them to ANCHOR_ID in one step."""
    app.emit(
        app.bus.create_person_and_link(tree_id, build_draft(**fields), relation.upper(), anchor_id)
    )


@link.command(
    examples="""\
  silsilah link remove smith-family john-smith sarah-davis
  silsilah link remove smith-family william-smith john-smith"""
)
@click.argument("tree_id")
@click.argument("person_a_id")
@click.argument("person_b_id")
@click.pass_obj
def remove(app: AppContext, tree_id: str, person_a_id: str, person_b_id: str) -> None:
    """Remove the relationship between two persons."""
    app.emit(app.bus.remove_relationship(tree_id, person_a_id, person_b_id))
