"""AppContext: shared Click context for all commands.

Created once by the root CLI group and flows to all subcommands via
``@click.pass_obj``. Provides lazy Archive/CommandBus initialization and
centralized result emission (stdout/stderr routing + exit codes).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from silsilah.output.formatters import OutputSettings, format_result

if TYPE_CHECKING:
    from silsilah.config.settings import SilsilahSettings
    from silsilah.infrastructure.archive import Archive
    from silsilah.services.bus import CommandBus
    from silsilah.services.result import CommandResult


class AppContext:
    """Shared context flowing through Click's command hierarchy.

    The archive is lazily initialized on first use so ``--help`` and
    ``--version`` never touch the database.
    """

    def __init__(self, settings: SilsilahSettings) -> None:
        self.settings = settings
        self._archive: Archive | None = None
        self._bus: CommandBus | None = None

        from silsilah.config.logging import configure_logging

        configure_logging(
            verbose=settings.verbose, log_json=settings.log_json, actor=settings.actor
        )

    @property
    def archive(self) -> Archive:
        """The archive instance (created lazily on first access)."""
        if self._archive is None:
            from silsilah.infrastructure.archive import Archive

            self._archive = Archive(self.settings)
            self._archive.init_event_bus(sync=self.settings.sync)
        return self._archive

    @property
    def bus(self) -> CommandBus:
        if self._bus is None:
            from silsilah.services.bus import CommandBus

            self._bus = CommandBus(self.archive)
        return self._bus

    def close(self) -> None:
        """Flush plugin dispatch and release the database."""
        if self._archive is not None:
            self._archive.close()
            self._archive = None
            self._bus = None

    def emit(self, result: CommandResult) -> None:
        """Format and output a CommandResult with correct exit semantics.

        * Success: writes to stdout, returns normally. Warnings go to
          stderr so they don't pollute piped output.
        * Failure: writes to stderr, exits with code 1.
        """
        settings = OutputSettings(
            json_output=self.settings.json_output,
            quiet=self.settings.quiet,
            verbose=self.settings.verbose,
        )
        output = format_result(result, settings=settings)
        if result.success:
            click.echo(output)
            # In JSON mode, warnings are already in the serialized payload.
            if not settings.json_output:
                for warning in result.warnings:
                    click.echo(f"WARNING: {warning}", err=True)
        else:
            click.echo(output, err=True)
            raise SystemExit(1)
