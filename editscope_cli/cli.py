"""Typer-based CLI for EditScope edit targeting and context assembly."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from . import __version__, config, config_manager
from .context_builder import build_local_context, resolve_import_path
from .context_selector import select_files_for_edit
from .conversation_memory import build_conversation_history_prompt
from .manifest import Manifest, load_manifest
from .models import EditType, SearchPlan
from .search_executor import execute_search_plan, select_target_file
from .session_store import load_state

app = typer.Typer(
    help="🎯 EditScope CLI: find the code an edit request targets and assemble its context.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

console = Console()


def version_callback(value: bool):
    """Print version and exit."""
    if value:
        typer.echo(f"EditScope CLI v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging."),
):
    """EditScope CLI: surgical edit targeting over a project manifest."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        )


def _open_manifest(path: Path) -> Manifest:
    try:
        return load_manifest(path)
    except (OSError, json.JSONDecodeError, TypeError, ValueError) as exc:
        raise typer.BadParameter(f"Cannot read manifest '{path}': {exc}")


def _require_file(manifest: Manifest, path: str) -> None:
    if not manifest.has_file(path):
        raise typer.BadParameter(f"'{path}' is not in the manifest.")


def _file_table(title: str, primary: List[str], context: List[str], manifest: Manifest) -> Table:
    table = Table(title=title, show_header=True)
    table.add_column("Role", style="cyan", width=9)
    table.add_column("Path")
    table.add_column("Component", style="green")
    for role, paths in (("primary", primary), ("context", context)):
        for path in paths:
            record = manifest.get_file(path)
            name = record.component_info.name if record and record.component_info else "-"
            table.add_row(role, path, name)
    return table


@app.command("select")
def select(
    manifest_path: Path = typer.Argument(..., exists=True, dir_okay=False, help="Manifest JSON file."),
    prompt: str = typer.Argument(..., help="Edit request."),
    show_prompt: bool = typer.Option(False, "--show-prompt", help="Print the assembled system prompt."),
):
    """Pick files to edit with keyword intent analysis."""
    manifest = _open_manifest(manifest_path)
    selection = select_files_for_edit(prompt, manifest)
    intent = selection.edit_intent

    console.print(
        f"[bold]Intent:[/bold] {intent.type.value} "
        f"({intent.confidence * 100:.0f}%) - {escape(intent.description)}"
    )
    if not selection.primary_files:
        console.print("[yellow]No primary files identified.[/yellow]")
    console.print(_file_table("Selected files", selection.primary_files, selection.context_files, manifest))

    if show_prompt:
        console.print(selection.system_prompt, markup=False, highlight=False)


@app.command("context")
def context(
    manifest_path: Path = typer.Argument(..., exists=True, dir_okay=False, help="Manifest JSON file."),
    files: List[str] = typer.Argument(..., help="Primary file paths."),
):
    """Show the local context closure for explicit target files."""
    manifest = _open_manifest(manifest_path)
    for path in files:
        _require_file(manifest, path)

    context_files = build_local_context(files, manifest)
    console.print(_file_table("Local context", list(files), context_files, manifest))


@app.command("resolve")
def resolve(
    manifest_path: Path = typer.Argument(..., exists=True, dir_okay=False, help="Manifest JSON file."),
    from_file: str = typer.Argument(..., help="Importing file path."),
    specifier: str = typer.Argument(..., help="Import source as written, e.g. ./Header"),
):
    """Resolve a relative import against the manifest."""
    manifest = _open_manifest(manifest_path)
    resolved = resolve_import_path(from_file, specifier, manifest.list_paths())
    if resolved is None:
        typer.echo(f"Unresolved: {specifier}")
        raise typer.Exit(code=1)
    typer.echo(resolved)


@app.command("search")
def search(
    manifest_path: Path = typer.Argument(..., exists=True, dir_okay=False, help="Manifest JSON file."),
    plan_path: Path = typer.Argument(..., exists=True, dir_okay=False, help="Search plan JSON file."),
    edit_type: Optional[str] = typer.Option(None, "--edit-type", "-t", help="Override the plan's edit type."),
    limit: int = typer.Option(config.MAX_RESULTS_FOR_AI, "--limit", "-n", help="Rows to display."),
):
    """Run a search plan and show the ranked matches and surgical target."""
    manifest = _open_manifest(manifest_path)
    try:
        plan = SearchPlan.from_dict(json.loads(plan_path.read_text(encoding="utf-8")))
    except (OSError, json.JSONDecodeError, TypeError, ValueError) as exc:
        raise typer.BadParameter(f"Cannot read search plan '{plan_path}': {exc}")

    category = plan.edit_type
    if edit_type:
        parsed = EditType.parse(edit_type)
        if parsed is None:
            raise typer.BadParameter(f"Unknown edit type '{edit_type}'.")
        category = parsed

    execution = execute_search_plan(plan, manifest.file_contents())
    for pattern in execution.invalid_patterns:
        console.print(f"[yellow]⚠ Invalid pattern skipped:[/yellow] {escape(pattern)}")

    if not execution.results:
        console.print(f"No matches in {execution.files_searched} file(s).")
        raise typer.Exit(code=0)

    table = Table(title=f"Matches ({len(execution.results)})", show_header=True)
    table.add_column("Score", style="cyan", width=6)
    table.add_column("Location")
    table.add_column("Match", style="green")
    table.add_column("Line")
    for result in execution.results[:limit]:
        table.add_row(
            f"{result.score:.2f}",
            f"{result.file_path}:{result.line_number}",
            result.match_type,
            escape(result.line_content.strip()),
        )
    console.print(table)
    if execution.used_fallback:
        console.print("[dim]Results come from the fallback search.[/dim]")

    target = select_target_file(execution.results, category)
    if target is None:
        console.print(f"No single target for {category.value}; use 'select' for file selection.")
    else:
        console.print(f"[bold green]Target:[/bold green] {target.file_path}:{target.line_number} ({escape(target.reason)})")


@app.command("memory")
def memory(
    state_path: Path = typer.Argument(..., exists=True, dir_okay=False, help="Serialized conversation state."),
):
    """Render the conversation memory digest of a saved session."""
    try:
        state = load_state(state_path)
    except (OSError, json.JSONDecodeError, TypeError, ValueError) as exc:
        raise typer.BadParameter(f"Cannot read state '{state_path}': {exc}")

    digest = build_conversation_history_prompt(state)
    if not digest:
        typer.echo("Not enough conversation history to summarize.")
        raise typer.Exit(code=0)
    console.print(digest, markup=False, highlight=False)


@app.command("show-limits")
def show_limits():
    """Show effective limits and where overrides are read from."""
    table = Table(title=f"Limits ({config_manager.CONFIG_FILE})", show_header=True)
    table.add_column("Section", style="cyan")
    table.add_column("Key")
    table.add_column("Value", style="green")
    for section, values in config_manager.load_limits().items():
        for key, value in values.items():
            table.add_row(section, key, str(value))
    console.print(table)


@app.command("set-limit")
def set_limit(
    section: str = typer.Argument(..., help="memory, context or search."),
    key: str = typer.Argument(..., help="Setting name."),
    value: str = typer.Argument(..., help="New value; lists are comma-separated."),
):
    """Override one limit in the config file."""
    defaults = config_manager.DEFAULT_LIMITS.get(section)
    if defaults is None:
        raise typer.BadParameter(f"Unknown section '{section}'.")
    if key not in defaults:
        raise typer.BadParameter(f"Unknown key '{key}' in [{section}].")

    default = defaults[key]
    if isinstance(default, list):
        parsed = [item.strip() for item in value.split(",") if item.strip()]
    elif isinstance(default, int):
        try:
            parsed = int(value)
        except ValueError:
            raise typer.BadParameter(f"'{key}' expects an integer.")
    else:
        parsed = value

    current = config_manager.load_full_config().get(section, {})
    if not config_manager.save_section(section, {**current, key: parsed}):
        typer.echo("Could not write config.")
        raise typer.Exit(code=1)
    typer.echo(f"Set {section}.{key} = {parsed!r}")


@app.command("unset-limits")
def unset_limits(section: str = typer.Argument(..., help="Section to reset to defaults.")):
    """Remove a section's overrides from the config file."""
    if section not in config_manager.DEFAULT_LIMITS:
        raise typer.BadParameter(f"Unknown section '{section}'.")
    config_manager.clear_section(section)
    typer.echo(f"Reset [{section}] to defaults.")


if __name__ == "__main__":
    app()
