"""Pydantic configuration models with code-baked defaults.

Sparse TOML contract: defaults baked here, silsilah.toml only contains overrides.
An empty file (or no file at all) yields a working SQLite archive under
``{root}/.silsilah/``.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

# --- silsilah.toml sections ---


class ArchiveConfig(BaseModel):
    """[archive] section.

    ``database_url`` overrides the default SQLite file. ``read_database_url``
    points read-only queries (graph walks, audit listings) at a replica;
    mutations never use it.
    """

    model_config = {"frozen": True}

    database_url: str | None = None
    read_database_url: str | None = None


class EngineConfig(BaseModel):
    """[engine] section."""

    model_config = {"frozen": True}

    enforce_age_consistency: bool = True
    max_commit_retries: int = Field(default=3, ge=1)


class AuditConfig(BaseModel):
    """[audit] section."""

    model_config = {"frozen": True}

    default_limit: int = Field(default=50, ge=1)
    max_limit: int = Field(default=1000, ge=1)
    hash_chain: bool = True


class PluginsConfig(BaseModel):
    """[plugins] section."""

    model_config = {"frozen": True}

    enabled: bool = True
    max_workers: int = Field(default=2, ge=1)
    # Plugin names never registered (entry-point, local or built-in).
    disabled: list[str] = Field(default_factory=list)


class SilsilahConfig(BaseModel):
    """Root configuration composing all sections."""

    model_config = {"frozen": True}

    archive: ArchiveConfig = Field(default_factory=ArchiveConfig)
    engine: EngineConfig = Field(default_factory=EngineConfig)
    audit: AuditConfig = Field(default_factory=AuditConfig)
    plugins: PluginsConfig = Field(default_factory=PluginsConfig)
