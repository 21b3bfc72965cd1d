"""Command group: person records."""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any

import click

from silsilah.commands._base import SilsilahGroup
from silsilah.domain.types import Gender

if TYPE_CHECKING:
    from silsilah.commands._context import AppContext

_PERSON_EXAMPLES = """\
  silsilah person add smith-family --name "William Smith" --gender male --born 1945-03-15
  silsilah person add smith-family --name "Mary Johnson" --id mary-johnson --born 1947-07-22
  silsilah person show smith-family mary-johnson"""


def person_options[F: Callable[..., Any]](fn: F) -> F:
    """Attach the options that make up a person draft."""
    options = [
        click.option("--name", required=True, help="Display name."),
        click.option("--id", "person_id", default=None, help="Identifier (default: slug of name)."),
        click.option(
            "--gender",
            type=click.Choice([g.value for g in Gender], case_sensitive=False),
            default=None,
            help="Recorded gender.",
        ),
        click.option("--born", "birth_date", default=None, help="Birth date (YYYY-MM-DD)."),
        click.option("--birthplace", "birth_place", default=None, help="Place of birth."),
        click.option("--died", "death_date", default=None, help="Death date (YYYY-MM-DD)."),
    ]
    for option in reversed(options):
        fn = option(fn)
    return fn


def build_draft(**fields: Any) -> dict[str, Any]:
    """Drop unset options so the draft model applies its defaults."""
    draft = {k: v for k, v in fields.items() if v is not None}
    if "gender" in draft:
        draft["gender"] = str(draft["gender"]).upper()
    return draft


@click.group(cls=SilsilahGroup, examples=_PERSON_EXAMPLES)
def person() -> None:
    """Manage person records."""


@person.command(
    examples="""\
  silsilah person add smith-family --name "William Smith"
  silsilah person add smith-family --name "Emma Smith" --gender female --born 2001-06-14
  silsilah --json person add smith-family --name "John Smith" --id john-smith"""
)
@click.argument("tree_id")
@person_options
@click.pass_obj
def add(app: AppContext, tree_id: str, **fields: Any) -> None:
    """Add a person to a tree."""
    app.emit(app.bus.add_person(tree_id, build_draft(**fields)))


@person.command(
    examples="""\
  silsilah person show smith-family emma-smith
  silsilah --json person show smith-family emma-smith"""
)
@click.argument("tree_id")
@click.argument("person_id")
@click.pass_obj
def show(app: AppContext, tree_id: str, person_id: str) -> None:
    """Show a person with their parents, children and spouses."""
    app.emit(app.bus.get_person(tree_id, person_id))
