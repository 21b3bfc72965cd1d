"""Click base classes adding an ``--examples`` flag.

``--help`` stays short; ``silsilah link --examples`` prints worked
invocations instead. A group's examples end with a pointer to each
subcommand that has examples of its own.
"""

from __future__ import annotations

from typing import Any

import click


class _ExamplesMixin:
    """Adds an eager ``--examples`` option when *examples* text is given."""

    examples: str | None
    params: list[click.Parameter]

    def _init_examples(self, examples: str | None) -> None:
        self.examples = examples
        if examples:
            self.params.append(
                click.Option(
                    ["--examples"],
                    is_flag=True,
                    expose_value=False,
                    is_eager=True,
                    callback=self._show_examples,
                    help="Show usage examples.",
                )
            )

    def _show_examples(self, ctx: click.Context, _param: click.Parameter, value: bool) -> None:
        if not value or ctx.resilient_parsing:
            return
        click.echo(f"Examples for '{ctx.command_path}':\n")
        click.echo(self.examples)
        for line in self._more_examples(ctx):
            click.echo(line)
        ctx.exit(0)

    def _more_examples(self, ctx: click.Context) -> list[str]:
        return []


class SilsilahCommand(_ExamplesMixin, click.Command):
    """Command accepting ``examples=`` in its decorator."""

    def __init__(self, *args: Any, examples: str | None = None, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._init_examples(examples)


class SilsilahGroup(_ExamplesMixin, click.Group):
    """Group whose subcommands default to :class:`SilsilahCommand`."""

    command_class = SilsilahCommand

    def __init__(self, *args: Any, examples: str | None = None, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._init_examples(examples)

    def _more_examples(self, ctx: click.Context) -> list[str]:
        names = [
            name
            for name in self.list_commands(ctx)
            if getattr(self.commands[name], "examples", None)
        ]
        if not names:
            return []
        return ["", "More examples:"] + [f"  {ctx.command_path} {n} --examples" for n in names]
