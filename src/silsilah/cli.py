"""Root CLI group for silsilah with global flags and command registration."""

from __future__ import annotations

import click

from silsilah import __version__
from silsilah.commands import register_commands
from silsilah.commands._context import AppContext
from silsilah.config.settings import SilsilahSettings


@click.group(name="silsilah", invoke_without_command=True)
@click.version_option(version=__version__, prog_name="silsilah")
@click.option("--json", "json_output", is_flag=True, help="Structured JSON output.")
@click.option("-q", "--quiet", is_flag=True, help="Minimal output.")
@click.option("-v", "--verbose", is_flag=True, help="Detailed output with debug info.")
@click.option("--log-json", is_flag=True, help="Structured JSON log output to stderr.")
@click.option("-c", "--config", "config_path", default=None, help="Override config file path.")
@click.option("--actor", default=None, help="Name recorded on audit entries.")
@click.option("--sync", is_flag=True, help="Force synchronous plugin dispatch.")
@click.pass_context
def cli(
    ctx: click.Context,
    json_output: bool,
    quiet: bool,
    verbose: bool,
    log_json: bool,
    config_path: str | None,
    actor: str | None,
    sync: bool,
) -> None:
    """silsilah: family tree relationship engine."""
    ctx.ensure_object(dict)
    # Unset flags are None so env vars and silsilah.toml can still supply them.
    settings = SilsilahSettings.from_cli(
        config_path=config_path,
        json_output=json_output or None,
        quiet=quiet or None,
        verbose=verbose or None,
        log_json=log_json or None,
        actor=actor,
        sync=sync or None,
    )
    app = AppContext(settings)
    ctx.obj = app
    ctx.call_on_close(app.close)
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


register_commands(cli)
