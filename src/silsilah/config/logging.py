"""structlog configuration for silsilah.

All log output goes to stderr so stdout stays reserved for command
results. The engine and audit recorder log through structlog; the
archive, bus and plugin layers log through stdlib ``logging`` and are
rendered by the same formatter.

Two renderers:
- console (default), colored when stderr is a terminal
- JSON lines (``--log-json``), with tracebacks as structured dicts
"""

from __future__ import annotations

import logging
import sys

import structlog

APP_LOGGER = "silsilah"

# Chatty libraries held at WARNING even with --verbose.
QUIET_LOGGERS = ("sqlalchemy", "pluggy")


def _shared_processors() -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]


def _renderer(log_json: bool) -> list[structlog.types.Processor]:
    if log_json:
        return [structlog.processors.dict_tracebacks, structlog.processors.JSONRenderer()]
    return [structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())]


def configure_logging(
    *,
    verbose: bool = False,
    log_json: bool = False,
    actor: str | None = None,
) -> None:
    """Route structlog and stdlib logging to one stderr handler.

    Args:
        verbose: Let ``silsilah.*`` loggers emit DEBUG. Otherwise WARNING+.
        log_json: Render JSON lines instead of console text.
        actor: Bound into the context so every event names who ran the command.

    Safe to call repeatedly: the root handler is replaced, not stacked.
    """
    shared = _shared_processors()
    structlog.configure(
        processors=[*shared, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                *_renderer(log_json),
            ],
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(logging.WARNING)

    logging.getLogger(APP_LOGGER).setLevel(logging.DEBUG if verbose else logging.WARNING)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    structlog.contextvars.clear_contextvars()
    if actor:
        structlog.contextvars.bind_contextvars(actor=actor)
