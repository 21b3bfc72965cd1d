"""Rich Console factory and theme for silsilah output.

Creates Console instances that render to a StringIO buffer, preserving
the ``format_result() -> str`` contract. In non-TTY environments
(tests, pipes) Rich automatically disables color codes.
"""

from __future__ import annotations

from io import StringIO

from rich.console import Console
from rich.theme import Theme

SILSILAH_THEME = Theme(
    {
        "sil.ok": "bold green",
        "sil.error": "bold red",
        "sil.warning": "bold yellow",
        "sil.op": "bold cyan",
        "sil.key": "dim",
        "sil.id": "bold blue",
        "sil.name": "bold",
        "sil.date": "dim",
        "sil.action.create": "green",
        "sil.action.link": "cyan",
        "sil.action.remove": "red",
        "sil.generation": "magenta",
    }
)

_ACTION_STYLES: dict[str, str] = {
    "CREATE_TREE": "sil.action.create",
    "ADD_PERSON": "sil.action.create",
    "CREATE_PERSON_AND_LINK": "sil.action.create",
    "ADD_PARENT_CHILD": "sil.action.link",
    "ADD_SPOUSE": "sil.action.link",
    "REMOVE_RELATIONSHIP": "sil.action.remove",
}


def create_console(*, no_color: bool = False, width: int | None = None) -> Console:
    """Create a Console that renders to a StringIO buffer.

    Args:
        no_color: Disable ANSI escape codes (used in tests).
        width: Override terminal width (useful for consistent test output).
    """
    return Console(
        file=StringIO(),
        theme=SILSILAH_THEME,
        no_color=no_color,
        highlight=False,
        width=width or 120,
    )


def get_output(console: Console) -> str:
    """Extract rendered text from a StringIO-backed Console."""
    assert isinstance(console.file, StringIO)
    return console.file.getvalue()


def style_for_action(action: str) -> str:
    """Return the Rich style name for an audit action."""
    return _ACTION_STYLES.get(action, "")
