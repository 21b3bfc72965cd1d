"""Subcommand modules for silsilah.

Provides register_commands() which uses deferred imports to keep
``silsilah --help`` fast.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click


def register_commands(cli: click.Group) -> None:
    """Register all command groups on the root CLI group."""
    from silsilah.commands.audit import audit
    from silsilah.commands.graph import graph
    from silsilah.commands.link import link
    from silsilah.commands.person import person
    from silsilah.commands.tree import tree

    cli.add_command(tree)
    cli.add_command(person)
    cli.add_command(link)
    cli.add_command(graph)
    cli.add_command(audit)
