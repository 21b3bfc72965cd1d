"""Locating and reading ``silsilah.toml``.

Lookup order: the ``SILSILAH_CONFIG`` env var, then the nearest
``silsilah.toml`` from the working directory upward (the way git finds
``.git/``). An explicit ``--config`` path bypasses both.
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any

import click

from silsilah.config.models import SilsilahConfig

CONFIG_FILENAME = "silsilah.toml"
CONFIG_ENV_VAR = "SILSILAH_CONFIG"


def find_config(start: Path | None = None) -> Path | None:
    """Return the config file that applies to *start* (default: cwd), or None.

    A ``SILSILAH_CONFIG`` path that does not exist disables discovery
    rather than falling back to the walk-up.
    """
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        explicit = Path(env_path)
        return explicit if explicit.is_file() else None

    here = (start or Path.cwd()).resolve()
    for directory in (here, *here.parents):
        candidate = directory / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
    return None


def read_config_file(path: Path) -> dict[str, Any]:
    """Parse *path* as TOML.

    Raises:
        click.ClickException: the file is not valid TOML.
    """
    try:
        with path.open("rb") as fh:
            return tomllib.load(fh)
    except tomllib.TOMLDecodeError as exc:
        raise click.ClickException(f"Invalid TOML in {path}: {exc}") from exc


def load_config(path: Path | None = None, cwd: Path | None = None) -> SilsilahConfig:
    """Load the table sections of a config file into :class:`SilsilahConfig`.

    Top-level keys such as ``actor`` belong to the CLI settings and are
    skipped. Returns defaults when no file is found.
    """
    path = path or find_config(cwd)
    if path is None:
        return SilsilahConfig()
    data = read_config_file(path)
    return SilsilahConfig.model_validate(
        {k: v for k, v in data.items() if k in SilsilahConfig.model_fields}
    )
