"""Unified settings: CLI flags, env vars, and TOML config in one object.

Priority chain (highest to lowest):
  1. Init kwargs: CLI flags passed by Click
  2. Env vars: ``SILSILAH_*`` prefix, ``__`` for nested sections
  3. TOML file: ``silsilah.toml`` discovered via walk-up
  4. Code defaults: baked into the section models
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Any

from pydantic import Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

from silsilah.config.discovery import find_config, read_config_file
from silsilah.config.models import ArchiveConfig, AuditConfig, EngineConfig, PluginsConfig

logger = logging.getLogger(__name__)

_CLI_ONLY = frozenset({"root", "config_path"})


class TomlSettingsSource(PydanticBaseSettingsSource):
    """Settings read from a discovered or explicit ``silsilah.toml``.

    Keys that are not settings fields are dropped with a warning, as are
    ``root`` and ``config_path``, which only the CLI resolves.
    """

    def __init__(self, settings_cls: type[BaseSettings], toml_path: Path | None) -> None:
        super().__init__(settings_cls)
        data = read_config_file(toml_path) if toml_path is not None else {}
        allowed = set(settings_cls.model_fields) - _CLI_ONLY
        ignored = sorted(set(data) - allowed)
        if ignored:
            logger.warning("Ignoring keys in %s: %s", toml_path, ", ".join(ignored))
        self._data: dict[str, Any] = {k: v for k, v in data.items() if k in allowed}

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        """Return ``(value, field_name, value_is_complex)``."""
        val = self._data.get(field_name)
        return val, field_name, field_name in self._data

    def __call__(self) -> dict[str, Any]:
        return self._data


# Thread-local storage for TOML path during construction.
_tls = threading.local()


class SilsilahSettings(BaseSettings):
    """Unified settings for the silsilah CLI and library entry points.

    Attributes:
        root: Directory holding ``.silsilah/`` (parent of ``silsilah.toml``,
            or CWD if no config found).
        config_path: The TOML file that was loaded, if any.
        actor: Default actor recorded on audit entries.
    """

    model_config = {
        "frozen": True,
        "env_prefix": "SILSILAH_",
        "env_nested_delimiter": "__",
    }

    root: Path = Field(default_factory=Path.cwd)
    config_path: Path | None = None

    # --- CLI flags ---
    json_output: bool = False
    quiet: bool = False
    verbose: bool = False
    log_json: bool = False
    sync: bool = False
    actor: str | None = None

    # --- TOML sections ---
    archive: ArchiveConfig = Field(default_factory=ArchiveConfig)
    engine: EngineConfig = Field(default_factory=EngineConfig)
    audit: AuditConfig = Field(default_factory=AuditConfig)
    plugins: PluginsConfig = Field(default_factory=PluginsConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Insert TOML source between env vars and defaults."""
        toml_path = getattr(_tls, "toml_path", None)
        return (
            init_settings,
            env_settings,
            TomlSettingsSource(settings_cls, toml_path),
        )

    @classmethod
    def from_cli(
        cls,
        *,
        config_path: str | None = None,
        root: Path | None = None,
        **cli_flags: Any,
    ) -> SilsilahSettings:
        """Construct settings from a CLI invocation.

        An explicit *config_path* must exist. Otherwise ``silsilah.toml`` is
        discovered by walk-up and *root* defaults to its directory. Flags
        passed as None fall through to env vars, TOML and defaults.
        """
        toml_path: Path | None
        if config_path:
            toml_path = Path(config_path)
            if not toml_path.is_file():
                import click

                raise click.ClickException(f"Config file not found: {config_path}")
        else:
            toml_path = find_config(root)

        resolved_root = root
        if resolved_root is None:
            resolved_root = toml_path.parent if toml_path else Path.cwd()

        # None-valued flags fall through to env/TOML/defaults.
        overrides = {k: v for k, v in cli_flags.items() if v is not None}

        _tls.toml_path = toml_path
        try:
            return cls(root=resolved_root, config_path=toml_path, **overrides)
        finally:
            _tls.toml_path = None
