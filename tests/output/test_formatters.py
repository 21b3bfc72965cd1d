"""Tests for the format_result dispatcher and OutputSettings."""

import json

from silsilah.output.formatters import OutputSettings, format_result
from silsilah.services.result import CommandError, CommandResult


def _ok(op: str = "test", **data: object) -> CommandResult:
    return CommandResult(success=True, op=op, data=dict(data))


def _err(op: str = "test", msg: str = "fail") -> CommandResult:
    return CommandResult(
        success=False,
        op=op,
        error=CommandError(code="UnknownPerson", message=msg),
    )


class TestOutputSettings:
    def test_defaults(self) -> None:
        s = OutputSettings()
        assert s.json_output is False
        assert s.quiet is False
        assert s.verbose is False


class TestFormatResultJSON:
    def test_json_mode_returns_valid_json(self) -> None:
        output = format_result(
            _ok("add_person", person_id="ann"), settings=OutputSettings(json_output=True)
        )
        data = json.loads(output)
        assert data["success"] is True
        assert data["op"] == "add_person"
        assert data["data"]["person_id"] == "ann"

    def test_json_mode_error(self) -> None:
        data = json.loads(format_result(_err(msg="Bad"), settings=OutputSettings(json_output=True)))
        assert data["success"] is False
        assert data["error"]["code"] == "UnknownPerson"
        assert data["error"]["message"] == "Bad"

    def test_json_wins_over_quiet(self) -> None:
        output = format_result(_ok(), settings=OutputSettings(json_output=True, quiet=True))
        assert json.loads(output)["op"] == "test"


class TestFormatResultModes:
    def test_quiet(self) -> None:
        output = format_result(_ok(person_id="ann"), settings=OutputSettings(quiet=True))
        assert output == "ann"

    def test_default_is_rich(self) -> None:
        output = format_result(_ok("create_tree", tree_id="t1"))
        assert output.startswith("OK")
        assert "tree_id: t1" in output
