"""Operation-specific Rich renderers for CommandResult.

Each renderer writes to a Rich Console (backed by StringIO). The caller
extracts the rendered text via ``get_output(console)``.

Renderers are dispatched by ``result.op`` in :func:`render_result`.
Unknown ops fall through to a generic key-value renderer.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from silsilah.output.console import create_console, get_output, style_for_action

if TYPE_CHECKING:
    from collections.abc import Callable

    from rich.console import Console

    from silsilah.services.result import CommandResult


# ── Public API ────────────────────────────────────────────────────────


def render_result(result: CommandResult, *, verbose: bool = False) -> str:
    """Render a CommandResult to a styled string via Rich.

    Returns plain text (no ANSI) when Rich detects no terminal,
    which is the case inside Click's CliRunner and piped output.
    """
    console = create_console()

    if result.success:
        renderer = _OP_RENDERERS.get(result.op, _render_generic)
        renderer(result, console, verbose=verbose)
    else:
        _render_error(result, console, verbose=verbose)

    return get_output(console).rstrip("\n")


def render_quiet(result: CommandResult) -> str:
    """Render minimal output for ``--quiet`` mode."""
    if not result.success:
        code = result.error.code if result.error else "Unknown"
        return f"ERROR: {result.op} {code}"

    items = result.data.get("items")
    if isinstance(items, list):
        return "\n".join(str(item.get("person_id", "")) for item in items)
    entries = result.data.get("entries")
    if isinstance(entries, list):
        return "\n".join(str(entry.get("id", "")) for entry in entries)
    trees = result.data.get("trees")
    if isinstance(trees, list):
        return "\n".join(str(t.get("tree_id", "")) for t in trees)
    if "person_id" in result.data:
        return str(result.data["person_id"])
    person = result.data.get("person")
    if isinstance(person, dict):
        return str(person.get("person_id", ""))

    return f"OK: {result.op}"


# ── Helpers ───────────────────────────────────────────────────────────


def _status_line(console: Console, result: CommandResult) -> None:
    label = Text("OK", style="sil.ok")
    op = Text(f"  {result.op}", style="sil.op")
    console.print(label, op, end="")
    console.print()


def _field(console: Console, key: str, value: Any) -> None:
    """Print a single indented key-value field."""
    k = Text(f"  {key}: ", style="sil.key")
    if key == "id" or key.endswith("_id"):
        v = Text(str(value), style="sil.id")
    elif key == "name":
        v = Text(str(value), style="sil.name")
    elif isinstance(value, (dict, list)):
        v = Text(json.dumps(value, separators=(",", ":")))
    else:
        v = Text(str(value))
    console.print(k, v, end="")
    console.print()


def _describe_edge(edge: dict[str, Any]) -> str:
    if edge.get("type") == "PARENT_CHILD":
        return f"{edge['parent_id']} -> {edge['child_id']} (parent of)"
    return f"{edge.get('spouse1_id')} <-> {edge.get('spouse2_id')} (spouses)"


def _render_meta(console: Console, result: CommandResult) -> None:
    if not result.meta:
        return
    console.print()
    console.print(Text("  meta:", style="dim"))
    for k, v in result.meta.items():
        console.print(f"    {k}: {v}")


# ── Error renderer ────────────────────────────────────────────────────


def _render_error(result: CommandResult, console: Console, *, verbose: bool = False) -> None:
    err = result.error
    code = err.code if err else "Unknown"
    msg = err.message if err else "Unknown error"
    label = Text("ERROR", style="sil.error")
    op = Text(f"  {result.op}", style="sil.op")
    console.print(label, op, Text(f" [{code}] "), msg)
    if err and err.detail:
        reason = err.detail.get("reason")
        if reason:
            console.print(f"  {reason}")
        if verbose:
            console.print(Text("  detail:", style="dim"))
            for k, v in err.detail.items():
                if k != "reason":
                    console.print(f"    {k}: {v}")


# ── Mutation renderers ────────────────────────────────────────────────


def _render_mutation(result: CommandResult, console: Console, *, verbose: bool = False) -> None:
    """Render tree/person/relationship mutation results."""
    _status_line(console, result)
    d = result.data
    for key in ("tree_id", "name", "person_id", "message"):
        if key in d:
            _field(console, key, d[key])
    person = d.get("person")
    if isinstance(person, dict):
        if "person_id" not in d:
            _field(console, "person_id", person.get("person_id"))
        _field(console, "name", person.get("name"))
    edge = d.get("edge")
    if isinstance(edge, dict):
        _field(console, "edge", _describe_edge(edge))
    if result.meta and "version" in result.meta:
        _field(console, "version", result.meta["version"])
    if verbose:
        _render_meta(console, result)


# ── Tree renderers ────────────────────────────────────────────────────


def _render_tree(result: CommandResult, console: Console, *, verbose: bool = False) -> None:
    """Render get_tree as a header panel, a person table and edge lists."""
    d = result.data
    persons: list[dict[str, Any]] = d.get("persons", [])
    header = (
        f"persons: {len(persons)}\n"
        f"unions: {len(d.get('spouse_edges', []))}\n"
        f"lineage links: {len(d.get('parent_child_edges', []))}\n"
        f"version: {d.get('version')}"
    )
    title = f"{d.get('tree_id', '?')}: {d.get('name', '')}"
    console.print(Panel(header, title=title, border_style="dim", expand=False))

    if persons:
        table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
        table.add_column("ID", style="sil.id", no_wrap=True)
        table.add_column("Name", style="sil.name")
        table.add_column("Gender")
        table.add_column("Born", style="sil.date")
        if verbose:
            table.add_column("Birthplace")
            table.add_column("Died", style="sil.date")
        for p in persons:
            row = [
                str(p.get("person_id", "")),
                str(p.get("name", "")),
                str(p.get("gender", "")),
                str(p.get("birth_date") or ""),
            ]
            if verbose:
                row.append(str(p.get("birth_place") or ""))
                row.append(str(p.get("death_date") or ""))
            table.add_row(*row)
        console.print(table)

    for edge in d.get("spouse_edges", []):
        console.print(f"  {edge['spouse1_id']} <-> {edge['spouse2_id']}")
    for edge in d.get("parent_child_edges", []):
        console.print(f"  {edge['parent_id']} -> {edge['child_id']}")


def _render_tree_list(result: CommandResult, console: Console, *, verbose: bool = False) -> None:
    d = result.data
    trees: list[dict[str, Any]] = d.get("trees", [])
    table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
    table.add_column("ID", style="sil.id", no_wrap=True)
    table.add_column("Name", style="sil.name")
    table.add_column("Persons", justify="right")
    table.add_column("Updated", style="sil.date", no_wrap=True)
    if verbose:
        table.add_column("Version", justify="right")
        table.add_column("Created", style="sil.date", no_wrap=True)
    for t in trees:
        row = [
            str(t.get("tree_id", "")),
            str(t.get("name", "")),
            str(t.get("person_count", 0)),
            str(t.get("updated_at", "")),
        ]
        if verbose:
            row.append(str(t.get("version", "")))
            row.append(str(t.get("created_at", "")))
        table.add_row(*row)
    console.print(table)
    more = " (more available)" if d.get("has_more") else ""
    console.print(f"\n{len(trees)} of {d.get('total', len(trees))} trees{more}")


def _render_person(result: CommandResult, console: Console, *, verbose: bool = False) -> None:
    """Render get_person as its record fields followed by direct relatives."""
    _status_line(console, result)
    person: dict[str, Any] = result.data.get("person", {})
    for key in ("person_id", "name", "gender", "birth_date", "birth_place", "death_date"):
        if person.get(key) is not None:
            _field(console, key, person[key])
    for key in ("parents", "children", "spouses"):
        relatives = result.data.get(key) or []
        _field(console, key, ", ".join(relatives) if relatives else "-")
    if verbose:
        _render_meta(console, result)


def _render_lineage(result: CommandResult, console: Console, *, verbose: bool = False) -> None:
    """Render ancestors/descendants with their generation distance."""
    items = result.data.get("items", [])
    table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
    table.add_column("Gen", style="sil.generation", justify="right")
    table.add_column("ID", style="sil.id", no_wrap=True)
    table.add_column("Name", style="sil.name")
    for item in items:
        table.add_row(str(item["generation"]), str(item["person_id"]), str(item["name"]))
    console.print(table)
    label = "ancestors" if result.op == "get_ancestors" else "descendants"
    count = result.data.get("count", len(items))
    console.print(f"\n{count} {label} of {result.data.get('person_id')}")


# ── Audit renderers ───────────────────────────────────────────────────


def _render_audit_page(result: CommandResult, console: Console, *, verbose: bool = False) -> None:
    d = result.data
    entries: list[dict[str, Any]] = d.get("entries", [])
    table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
    table.add_column("#", justify="right", style="dim")
    table.add_column("When", style="sil.date", no_wrap=True)
    table.add_column("Action")
    table.add_column("Tree", style="sil.id")
    table.add_column("Person", style="sil.id")
    table.add_column("Actor")
    if verbose:
        table.add_column("Hash", style="dim", no_wrap=True)
    for e in entries:
        action = str(e.get("action", ""))
        row: list[Any] = [
            str(e.get("id", "")),
            str(e.get("timestamp", "")),
            Text(action, style=style_for_action(action)),
            str(e.get("tree_id", "")),
            str(e.get("person_id") or ""),
            str(e.get("actor") or ""),
        ]
        if verbose:
            row.append(str(e.get("entry_hash") or "")[:12])
        table.add_row(*row)
    console.print(table)

    shown_from = d.get("offset", 0) + 1 if entries else 0
    shown_to = d.get("offset", 0) + len(entries)
    more = " (more available)" if d.get("has_more") else ""
    console.print(f"\n{shown_from}-{shown_to} of {d.get('total', len(entries))} entries{more}")


def _render_verify(result: CommandResult, console: Console, *, verbose: bool = False) -> None:
    d = result.data
    _status_line(console, result)
    if not d.get("hash_chain", True):
        _field(console, "hash_chain", "disabled")
        return
    if d.get("valid"):
        verdict = Text("intact", style="sil.ok")
    else:
        verdict = Text("BROKEN", style="sil.error")
    console.print(Text("  chain: ", style="sil.key"), verdict, end="")
    console.print()
    _field(console, "checked", d.get("checked", 0))
    for problem in d.get("errors", []):
        console.print(
            f"  [sil.error]problem[/sil.error] entry={problem.get('entry_id')} "
            f"index={problem.get('index')}: {problem.get('reason')}"
        )


# ── Generic fallback ──────────────────────────────────────────────────


def _render_generic(result: CommandResult, console: Console, *, verbose: bool = False) -> None:
    _status_line(console, result)
    for key, value in result.data.items():
        _field(console, key, value)
    if verbose:
        _render_meta(console, result)


_OP_RENDERERS: dict[str, Callable[..., None]] = {
    # Mutations
    "create_tree": _render_mutation,
    "add_person": _render_mutation,
    "add_parent_child_relationship": _render_mutation,
    "add_spouse_relationship": _render_mutation,
    "create_person_and_link": _render_mutation,
    "remove_relationship": _render_mutation,
    # Trees
    "get_tree": _render_tree,
    "list_trees": _render_tree_list,
    "get_person": _render_person,
    "get_ancestors": _render_lineage,
    "get_descendants": _render_lineage,
    # Audit
    "list_audit_for_tree": _render_audit_page,
    "list_audit_for_person": _render_audit_page,
    "list_audit_for_action": _render_audit_page,
    "verify_audit_chain": _render_verify,
}
