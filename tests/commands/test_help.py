"""Parametrized help tests for all CLI commands."""

from __future__ import annotations

import pytest
from click.testing import CliRunner

from silsilah.cli import cli

# (CLI args, expected keywords in output)
HELP_COMMANDS: list[tuple[list[str], list[str]]] = [
    (["tree", "--help"], ["create", "list", "show"]),
    (["tree", "create", "--help"], ["TREE_ID", "--name"]),
    (["tree", "show", "--help"], ["TREE_ID"]),
    (["tree", "list", "--help"], ["--page", "--limit"]),
    (["person", "--help"], ["add", "show"]),
    (["person", "show", "--help"], ["TREE_ID", "PERSON_ID"]),
    (
        ["person", "add", "--help"],
        ["--name", "--id", "--gender", "--born", "--birthplace", "--died"],
    ),
    (["link", "--help"], ["parent", "spouse", "new", "remove"]),
    (["link", "parent", "--help"], ["PARENT_ID", "CHILD_ID"]),
    (["link", "spouse", "--help"], ["PERSON_A_ID", "PERSON_B_ID"]),
    (["link", "new", "--help"], ["ANCHOR_ID", "--as", "--name"]),
    (["link", "remove", "--help"], ["PERSON_A_ID", "PERSON_B_ID"]),
    (["graph", "--help"], ["ancestors", "descendants"]),
    (["graph", "ancestors", "--help"], ["PERSON_ID"]),
    (["graph", "descendants", "--help"], ["PERSON_ID"]),
    (["audit", "--help"], ["tree", "person", "action", "verify"]),
    (["audit", "tree", "--help"], ["--page", "--limit"]),
    (["audit", "person", "--help"], ["--tree", "--page"]),
    (["audit", "action", "--help"], ["ADD_SPOUSE", "--tree"]),
    (["audit", "verify", "--help"], ["TREE_ID"]),
]


def _help_id(item: tuple[list[str], list[str]]) -> str:
    args, _ = item
    return "_".join(a for a in args if a != "--help")


@pytest.mark.parametrize(
    ("args", "keywords"),
    HELP_COMMANDS,
    ids=[_help_id(item) for item in HELP_COMMANDS],
)
def test_help(cli_runner: CliRunner, args: list[str], keywords: list[str]) -> None:
    result = cli_runner.invoke(cli, args)
    assert result.exit_code == 0, result.output
    for keyword in keywords:
        assert keyword in result.output
