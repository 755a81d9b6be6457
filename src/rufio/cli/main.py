"""CLI entry point for rufio.

Invoked as::

    rufio [OPTIONS] COMMAND [ARGS]...

or during development::

    python -m rufio.cli.main

Commands
--------
- check            Evaluate changed files and a transcript against policy
- config validate  Load and validate a single rufio-hooks.yaml
- config which     Show the config governing a file
- presets list     List resolvable preset names
- presets show     Show the checks a preset expands to
- version          Show version information
"""
from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

import click
import yaml
from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from rufio.checks.runner import CheckRunner
from rufio.config.discovery import find_nearest_config
from rufio.config.errors import RufioConfigError
from rufio.config.loader import ConfigLoader
from rufio.config.presets import PresetResolver
from rufio.config.schema import Check, EnsureCommands
from rufio.plugin.git import list_changed_files
from rufio.transcript import ToolEvent, extract_tool_events, index_tool_parts

console = Console()
err_console = Console(stderr=True)

_EXIT_FAILED = 1
_EXIT_CONFIG_ERROR = 2


def _obligation_text(check: Check) -> str:
    if isinstance(check.then, EnsureCommands):
        return "run: " + ", ".join(check.then.commands)
    return "change one of: " + ", ".join(check.then.paths)


def _checks_table(title: str, checks: list[Check] | tuple[Check, ...]) -> Table:
    table = Table(title=title, box=box.SIMPLE)
    table.add_column("Check", style="cyan")
    table.add_column("Paths changed", style="magenta")
    table.add_column("Path exists", style="dim")
    table.add_column("Obligation")
    for check in checks:
        table.add_row(
            escape(check.name),
            escape(check.when.paths_changed),
            escape(check.when.path_exists or ""),
            escape(_obligation_text(check)),
        )
    return table


def _loader(preset_dir: str | None) -> ConfigLoader:
    resolver = PresetResolver(Path(preset_dir)) if preset_dir else PresetResolver()
    return ConfigLoader(resolver)


# ---------------------------------------------------------------------------
# Root command group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(package_name="rufio-hooks")
@click.option("--verbose", "-v", is_flag=True, help="Log engine decisions to stderr.")
def cli(verbose: bool) -> None:
    """Rufio — require follow-up commands and file changes before a session ends."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(levelname)s %(name)s: %(message)s",
            stream=sys.stderr,
        )


@cli.command(name="version")
def version_command() -> None:
    """Show detailed version information."""
    from rufio import __version__

    console.print(
        Panel(
            f"[bold]rufio-hooks[/bold]  v[cyan]{__version__}[/cyan]\n"
            "Workflow policy checks for agent sessions.",
            title="Version",
            border_style="blue",
        )
    )


# ---------------------------------------------------------------------------
# check
# ---------------------------------------------------------------------------


def _read_transcript(source: str) -> list[dict[str, object]]:
    if source == "-":
        return json.load(sys.stdin)
    with open(source, encoding="utf-8") as fh:
        return json.load(fh)


def _load_events(source: str | None) -> list[ToolEvent]:
    """Index the transcript at *source*; no transcript means no events."""
    if source is None:
        return []
    try:
        raw = _read_transcript(source)
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        err_console.print(f"[red]Cannot read transcript:[/red] {escape(str(exc))}")
        sys.exit(_EXIT_CONFIG_ERROR)
    if not isinstance(raw, list):
        err_console.print("[red]Transcript must be a JSON list.[/red]")
        sys.exit(_EXIT_CONFIG_ERROR)

    entries = [item for item in raw if isinstance(item, dict)]
    if any("parts" in item for item in entries):
        return extract_tool_events(entries)
    return index_tool_parts(entries)


@cli.command(name="check")
@click.option(
    "--root",
    "-r",
    "repo_root",
    default=".",
    show_default=True,
    type=click.Path(exists=True, file_okay=False),
    help="Repository root; configs above it are ignored.",
)
@click.option(
    "--transcript",
    "-t",
    default=None,
    help="Transcript JSON file ('-' for stdin): a list of messages or of tool parts.  Omit for none.",
)
@click.option(
    "--file",
    "-f",
    "files",
    multiple=True,
    help="Changed file relative to the root.  Defaults to 'git status'.",
)
@click.option(
    "--preset-dir",
    type=click.Path(file_okay=False),
    default=None,
    help="Preset override directory.",
)
def check_command(repo_root: str, transcript: str | None, files: tuple[str, ...], preset_dir: str | None) -> None:
    """Evaluate a session transcript against the governing policy."""
    events = _load_events(transcript)

    changed = list(files) if files else list_changed_files(repo_root)
    if not changed:
        console.print("[green]OK[/green]: no changed files.")
        return

    try:
        result = CheckRunner(_loader(preset_dir)).run(changed, events, repo_root)
    except RufioConfigError as exc:
        err_console.print(f"[red]Config error:[/red] {escape(str(exc))}")
        sys.exit(_EXIT_CONFIG_ERROR)

    if result.passed:
        console.print(f"[green]OK[/green]: {len(changed)} changed file(s), all checks passed.")
        return

    console.print(f"[red]FAILED[/red] check [bold]{escape(str(result.check_name))}[/bold]")
    click.echo(result.error)
    sys.exit(_EXIT_FAILED)


# ---------------------------------------------------------------------------
# config group
# ---------------------------------------------------------------------------


@cli.group(name="config")
def config_group() -> None:
    """Policy document commands."""


@config_group.command(name="validate")
@click.argument("config_path", type=click.Path(exists=True, dir_okay=False))
@click.option("--preset-dir", type=click.Path(file_okay=False), default=None, help="Preset override directory.")
def config_validate_command(config_path: str, preset_dir: str | None) -> None:
    """Load and validate CONFIG_PATH, then list its resolved checks."""
    try:
        config = _loader(preset_dir).load(Path(config_path))
    except RufioConfigError as exc:
        err_console.print(f"[red]INVALID[/red] {escape(str(exc))}")
        sys.exit(_EXIT_CONFIG_ERROR)

    console.print(f"[green]VALID[/green] {escape(config_path)}")
    console.print(_checks_table("Resolved checks", config.checks))


@config_group.command(name="which")
@click.argument("file_path")
@click.option(
    "--root",
    "-r",
    "repo_root",
    default=".",
    show_default=True,
    type=click.Path(exists=True, file_okay=False),
    help="Repository root.",
)
@click.option("--preset-dir", type=click.Path(file_okay=False), default=None, help="Preset override directory.")
def config_which_command(file_path: str, repo_root: str, preset_dir: str | None) -> None:
    """Show which config governs FILE_PATH (relative to the root)."""
    try:
        loaded = find_nearest_config(Path(repo_root) / file_path, repo_root, _loader(preset_dir))
    except RufioConfigError as exc:
        err_console.print(f"[red]Config error:[/red] {escape(str(exc))}")
        sys.exit(_EXIT_CONFIG_ERROR)

    if loaded is None:
        console.print(f"[yellow]No config governs[/yellow] {file_path}")
        return

    click.echo(str(loaded.config_path))
    console.print(_checks_table("Checks", loaded.config.checks))


# ---------------------------------------------------------------------------
# presets group
# ---------------------------------------------------------------------------


@cli.group(name="presets")
def presets_group() -> None:
    """Preset commands."""


@presets_group.command(name="list")
@click.option("--preset-dir", type=click.Path(file_okay=False), default=None, help="Preset override directory.")
def presets_list_command(preset_dir: str | None) -> None:
    """List resolvable preset names."""
    resolver = _loader(preset_dir).resolver
    table = Table(title="Presets", box=box.SIMPLE)
    table.add_column("Name", style="cyan")
    table.add_column("Source")
    for name in resolver.available():
        path = resolver.preset_path(name)
        table.add_row(name, str(path) if path.is_file() else "built-in")
    console.print(table)


@presets_group.command(name="show")
@click.argument("name")
@click.option("--preset-dir", type=click.Path(file_okay=False), default=None, help="Preset override directory.")
@click.option("--yaml", "as_yaml", is_flag=True, help="Print the checks as YAML.")
def presets_show_command(name: str, preset_dir: str | None, as_yaml: bool) -> None:
    """Show the checks preset NAME expands to."""
    try:
        checks = _loader(preset_dir).resolver.resolve_one(name)
    except RufioConfigError as exc:
        err_console.print(f"[red]{escape(str(exc))}[/red]")
        sys.exit(_EXIT_CONFIG_ERROR)

    if as_yaml:
        click.echo(
            yaml.safe_dump({"checks": [c.to_raw() for c in checks]}, sort_keys=False, allow_unicode=True),
            nl=False,
        )
        return
    console.print(_checks_table(f"Preset '{name}'", checks))


if __name__ == "__main__":
    cli()
