"""Tests for the audit command group."""

from __future__ import annotations

import json

import pytest
from click.testing import CliRunner
from sqlalchemy import create_engine, update

from silsilah.cli import cli
from silsilah.infrastructure.database.schema import audit_log

_TREE = "smith-family"


@pytest.fixture
def history(cli_runner: CliRunner, _isolated_root: None) -> None:
    cli_runner.invoke(cli, ["--actor", "alice", "tree", "create", _TREE])
    cli_runner.invoke(cli, ["person", "add", _TREE, "--name", "Ann", "--id", "ann"])
    cli_runner.invoke(cli, ["person", "add", _TREE, "--name", "Bob", "--id", "bob"])
    cli_runner.invoke(cli, ["link", "spouse", _TREE, "ann", "bob"])


@pytest.mark.usefixtures("history")
class TestAuditCommands:
    def test_tree_history(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["--json", "audit", "tree", _TREE])
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)["data"]
        assert data["total"] == 4
        assert [e["action"] for e in data["entries"]] == [
            "ADD_SPOUSE",
            "ADD_PERSON",
            "ADD_PERSON",
            "CREATE_TREE",
        ]
        assert data["entries"][-1]["actor"] == "alice"

    def test_paging(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["audit", "tree", _TREE, "--page", "2", "--limit", "3"])
        assert result.exit_code == 0
        assert "4-4 of 4 entries" in result.output

    def test_bad_page(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["audit", "tree", _TREE, "--page", "0"])
        assert result.exit_code == 1
        assert "InvalidPagination" in result.output

    def test_person_history(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["--json", "audit", "person", "bob", "--tree", _TREE])
        assert json.loads(result.output)["data"]["total"] == 2

    def test_action_history_case_insensitive(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["-q", "audit", "action", "add_person"])
        assert len(result.output.split()) == 2

    def test_verify_intact(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["audit", "verify", _TREE])
        assert result.exit_code == 0
        assert "intact" in result.output

    def test_verify_broken_exits_2(self, cli_runner: CliRunner) -> None:
        engine = create_engine("sqlite:///.silsilah/silsilah.db")
        with engine.begin() as conn:
            conn.execute(
                update(audit_log).where(audit_log.c.action == "ADD_SPOUSE").values(actor="mallory")
            )
        engine.dispose()

        result = cli_runner.invoke(cli, ["audit", "verify", _TREE])
        assert result.exit_code == 2
        assert "BROKEN" in result.output
        assert "entry hash mismatch" in result.output
