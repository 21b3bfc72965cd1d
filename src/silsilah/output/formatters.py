"""Rich/JSON output helpers.

The CLI renders CommandResult for humans (Rich tables and panels) or
machines (``--json``). The formatter layer picks the mode.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from silsilah.output.renderers import render_quiet, render_result

if TYPE_CHECKING:
    from silsilah.services.result import CommandResult


@dataclass(frozen=True)
class OutputSettings:
    """Output mode flags resolved from the global CLI options."""

    json_output: bool = False
    quiet: bool = False
    verbose: bool = False


def format_result(result: CommandResult, *, settings: OutputSettings | None = None) -> str:
    """Format a CommandResult for display.

    JSON mode dumps the whole envelope; quiet mode prints ids only;
    otherwise an op-specific Rich renderer is used.
    """
    settings = settings or OutputSettings()
    if settings.json_output:
        return result.model_dump_json(indent=2)
    if settings.quiet:
        return render_quiet(result)
    return render_result(result, verbose=settings.verbose)
