"""CLI entry point for ccde."""

import subprocess
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ccde import __version__
from ccde.compiler import CompiledCommand, commands_to_string, compile_layout, count_panes
from ccde.config import (
    Config,
    display_config_warnings,
    get_default_layout_file,
    load_config,
    load_default_layout,
    save_config,
)
from ccde.errors import CommandExecutionError, LayoutError
from ccde.executor import execute_commands
from ccde.models import LayoutSpec
from ccde.parser import load_layout_file
from ccde.tmux_manager import is_inside_tmux, open_layout_window
from ccde.xdg_paths import ensure_directories, get_config_file_path

app = typer.Typer(
    name="ccde",
    help="Build tmux window layouts from YAML or JSON layout files.",
    no_args_is_help=True,
)

console = Console()
err_console = Console(stderr=True)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"ccde {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option("--version", callback=version_callback, is_eager=True, help="Show version."),
    ] = None,
) -> None:
    """Build tmux window layouts from YAML or JSON layout files."""


def _load_settings(config_path: Path | None, strict: bool) -> Config:
    """Load the layered config, reporting warnings to stderr."""
    config, config_warnings = load_config(config_path, project_dir=Path.cwd(), strict=strict)
    if config_warnings:
        display_config_warnings(config_warnings, err_console)
        if strict:
            raise typer.Exit(1)
    return config


def _load_layout_or_exit(layout_file: Path) -> LayoutSpec:
    try:
        return load_layout_file(layout_file)
    except LayoutError as e:
        err_console.print(f"[red]Error:[/] {escape(str(e))}", highlight=False)
        raise typer.Exit(1) from None


def _print_command_table(commands: list[CompiledCommand]) -> None:
    table = Table(title="Compiled Commands")
    table.add_column("#", style="dim", justify="right")
    table.add_column("Description", style="cyan")
    table.add_column("Command")
    for number, command in enumerate(commands, start=1):
        table.add_row(str(number), command.description, command.text)
    console.print(table, markup=False)


@app.command()
def build(
    layout_file: Annotated[
        Path,
        typer.Argument(help="Layout file (.yaml, .yml or .json)."),
    ],
    execute: Annotated[
        bool,
        typer.Option("--execute", "-e", help="Execute the tmux commands directly."),
    ] = False,
    working_dir: Annotated[
        str | None,
        typer.Option("--dir", "-d", help="Working directory for the window (default: current pane's directory)."),
    ] = None,
    window_name: Annotated[
        str | None,
        typer.Option("--window", "-w", help="Name for the new window."),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="List every command with its description."),
    ] = False,
    debug: Annotated[
        bool,
        typer.Option("--debug", "-D", help="Enable debug output."),
    ] = False,
    config_path: Annotated[
        Path | None,
        typer.Option("--config", "-C", help="Config file path."),
    ] = None,
    strict: Annotated[
        bool,
        typer.Option("--strict", help="Exit with error on config validation warnings."),
    ] = False,
) -> None:
    """Compile a layout file into tmux commands, and optionally run them.

    Examples:
        ccde build layout.yaml              # Show the generated tmux command
        ccde build -e layout.yaml           # Execute it in a new window
        ccde build -e -w api -d ~/src/api layout.yaml
    """
    config = _load_settings(config_path, strict)

    if debug:
        console.print(f"[dim]Config file: {config_path or get_config_file_path()}[/]")
        console.print(f"[dim]Shell: {config.shell} (timeout {config.command_timeout}s)[/]")

    layout = _load_layout_or_exit(layout_file)
    try:
        commands = compile_layout(layout, working_directory=working_dir, window_name=window_name)
    except LayoutError as e:
        err_console.print(f"[red]Error:[/] {escape(str(e))}", highlight=False)
        raise typer.Exit(1) from None

    if debug:
        console.print(f"[dim]Layout: {escape(layout.name or 'Unnamed')} ({count_panes(layout.layout)} panes)[/]")

    if verbose:
        _print_command_table(commands)

    if not execute:
        console.print("Generated tmux command:")
        console.print(commands_to_string(commands), markup=False, highlight=False, soft_wrap=True)
        console.print("\nTo execute this layout, run:")
        console.print(f"ccde build -e {layout_file}", markup=False, highlight=False, soft_wrap=True)
        return

    console.print(f"Executing layout: {layout.name or 'Unnamed'}", markup=False)
    try:
        execute_commands(
            commands,
            shell=config.shell,
            timeout=config.command_timeout,
            disable_history=config.disable_shell_history,
        )
    except CommandExecutionError as e:
        err_console.print("[red]Failed to execute tmux commands[/]")
        err_console.print(str(e), markup=False, highlight=False)
        raise typer.Exit(1) from None


@app.command()
def validate(
    layout_file: Annotated[
        Path,
        typer.Argument(help="Layout file (.yaml, .yml or .json)."),
    ],
) -> None:
    """Check a layout file without compiling it."""
    layout = _load_layout_or_exit(layout_file)
    name = escape(layout.name or "Unnamed")
    console.print(f"[green]✓[/] Layout is valid: {name} ({count_panes(layout.layout)} panes)", highlight=False)


@app.command()
def window(
    name: Annotated[
        str,
        typer.Argument(help="Window name (e.g. a branch name)."),
    ],
    working_dir: Annotated[
        Path | None,
        typer.Option("--dir", "-d", help="Directory for the window (default: current directory)."),
    ] = None,
    layout_file: Annotated[
        Path | None,
        typer.Option("--layout", "-l", help="Layout file (default: the configured default layout)."),
    ] = None,
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", "-n", help="Preview commands without executing."),
    ] = False,
    config_path: Annotated[
        Path | None,
        typer.Option("--config", "-C", help="Config file path."),
    ] = None,
) -> None:
    """Switch to a named window, creating it from a layout if needed."""
    config = _load_settings(config_path, strict=False)

    if not dry_run and not is_inside_tmux():
        err_console.print("[red]Error:[/] Not in a tmux session.")
        raise typer.Exit(1)

    if layout_file is not None:
        layout: LayoutSpec | None = _load_layout_or_exit(layout_file)
    else:
        try:
            layout = load_default_layout(config)
        except LayoutError as e:
            err_console.print(f"[red]Error:[/] {get_default_layout_file(config)}: {escape(str(e))}", highlight=False)
            raise typer.Exit(1) from None

    try:
        commands = open_layout_window(
            name,
            working_dir or Path.cwd(),
            layout,
            dry_run=dry_run,
            shell=config.shell,
            timeout=config.command_timeout,
            disable_history=config.disable_shell_history,
        )
    except (LayoutError, CommandExecutionError, subprocess.CalledProcessError) as e:
        err_console.print(f"[red]Error:[/] Failed to open window '{escape(name)}'", highlight=False)
        err_console.print(str(e), markup=False, highlight=False)
        raise typer.Exit(1) from None

    if dry_run:
        console.print("[yellow]Commands that would be executed:[/]")
        for cmd in commands:
            console.print(f"  {cmd}", markup=False, highlight=False, soft_wrap=True)


@app.command()
def init_config() -> None:
    """Create default configuration file."""
    ensure_directories()
    config_file = get_config_file_path()

    if config_file.exists():
        err_console.print(f"[yellow]Config file already exists:[/] {config_file}")
        raise typer.Exit(1)

    save_config(Config())
    console.print(f"[green]✓[/] Created config file: {config_file}")


if __name__ == "__main__":
    app()
