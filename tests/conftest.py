"""Shared pytest fixtures and test helpers for silsilah tests."""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path
from typing import Any

import pytest
from click.testing import CliRunner
from sqlalchemy.engine import Engine

from silsilah.config.settings import SilsilahSettings
from silsilah.infrastructure.archive import Archive
from silsilah.infrastructure.database.engine import init_database
from silsilah.services.bus import CommandBus

# ---------------------------------------------------------------------------
# Seed family: three generations, thirteen persons
# ---------------------------------------------------------------------------

SEED_TREE_ID = "test-tree-001"

SEED_PERSONS: list[dict[str, Any]] = [
    # generation 1
    {"name": "William Smith", "gender": "MALE", "birth_date": "1945-03-15"},
    {"name": "Mary Johnson", "gender": "FEMALE", "birth_date": "1947-07-22"},
    {"name": "Robert Davis", "gender": "MALE", "birth_date": "1943-11-08"},
    {"name": "Patricia Brown", "gender": "FEMALE", "birth_date": "1946-05-30"},
    # generation 2
    {"name": "John Smith", "gender": "MALE", "birth_date": "1972-09-12"},
    {"name": "Sarah Davis", "gender": "FEMALE", "birth_date": "1974-04-18"},
    {"name": "Michael Smith", "gender": "MALE", "birth_date": "1975-12-03"},
    {"name": "Jennifer Wilson", "gender": "FEMALE", "birth_date": "1976-08-25"},
    # generation 3
    {"name": "Emma Smith", "gender": "FEMALE", "birth_date": "2001-06-14"},
    {"name": "James Smith", "gender": "MALE", "birth_date": "2003-03-22"},
    {"name": "Olivia Smith", "gender": "FEMALE", "birth_date": "2005-11-08"},
    {"name": "Daniel Smith", "gender": "MALE", "birth_date": "2002-02-17"},
    {
        "name": "Sophie Smith",
        "gender": "FEMALE",
        "birth_date": "2004-10-09",
        "birth_place": "Leeds",
    },
]

SEED_SPOUSES: list[tuple[str, str]] = [
    ("william-smith", "mary-johnson"),
    ("robert-davis", "patricia-brown"),
    ("john-smith", "sarah-davis"),
    ("michael-smith", "jennifer-wilson"),
]

SEED_PARENTS: list[tuple[str, str]] = [
    ("william-smith", "john-smith"),
    ("mary-johnson", "john-smith"),
    ("william-smith", "michael-smith"),
    ("mary-johnson", "michael-smith"),
    ("robert-davis", "sarah-davis"),
    ("patricia-brown", "sarah-davis"),
    ("john-smith", "emma-smith"),
    ("sarah-davis", "emma-smith"),
    ("john-smith", "james-smith"),
    ("sarah-davis", "james-smith"),
    ("john-smith", "olivia-smith"),
    ("sarah-davis", "olivia-smith"),
    ("michael-smith", "daniel-smith"),
    ("jennifer-wilson", "daniel-smith"),
    ("michael-smith", "sophie-smith"),
    ("jennifer-wilson", "sophie-smith"),
]

# One CREATE_TREE entry plus one entry per person, union and lineage link.
SEED_AUDIT_COUNT = 1 + len(SEED_PERSONS) + len(SEED_SPOUSES) + len(SEED_PARENTS)


def seed_family(bus: CommandBus, tree_id: str = SEED_TREE_ID) -> str:
    """Build the seed family through the bus, asserting every step succeeds."""
    result = bus.create_tree(tree_id, "Smith-Davis-Wilson Family")
    assert result.success, result.error
    for draft in SEED_PERSONS:
        result = bus.add_person(tree_id, draft)
        assert result.success, result.error
    for a, b in SEED_SPOUSES:
        result = bus.add_spouse_relationship(tree_id, a, b)
        assert result.success, result.error
    for parent, child in SEED_PARENTS:
        result = bus.add_parent_child_relationship(tree_id, parent, child)
        assert result.success, result.error
    return tree_id


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def db_engine(tmp_path: Path) -> Iterator[Engine]:
    """Initialized SQLite engine with all tables created."""
    engine = init_database(tmp_path)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def make_archive(tmp_path: Path) -> Iterator[Any]:
    """Factory for archives on the temp directory with settings overrides.

    Usage: ``make_archive(engine=EngineConfig(max_commit_retries=1))``.
    Every archive built is closed at teardown.
    """
    built: list[Archive] = []

    def factory(**overrides: Any) -> Archive:
        settings = SilsilahSettings.from_cli(root=tmp_path, **overrides)
        archive = Archive(settings)
        built.append(archive)
        return archive

    try:
        yield factory
    finally:
        for archive in built:
            archive.close()


@pytest.fixture
def archive(make_archive: Any) -> Archive:
    """Archive with default settings and no event bus."""
    return make_archive()


@pytest.fixture
def bus(archive: Archive) -> CommandBus:
    return CommandBus(archive, actor="tester")


@pytest.fixture
def seeded_bus(bus: CommandBus) -> CommandBus:
    """Bus whose archive already holds the thirteen-person seed tree."""
    seed_family(bus)
    return bus


@pytest.fixture
def _isolated_root(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Change CWD to a temp root so the CLI creates an isolated archive.

    Use via ``@pytest.mark.usefixtures("_isolated_root")`` on command test
    classes.
    """
    for var in ("SILSILAH_CONFIG", "SILSILAH_ACTOR", "SILSILAH_ARCHIVE__DATABASE_URL"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)
