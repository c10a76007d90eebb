"""Tmux window management for ccde."""

import os
import subprocess
from dataclasses import dataclass
from pathlib import Path

from ccde.compiler import compile_layout
from ccde.errors import CommandExecutionError
from ccde.executor import DEFAULT_TIMEOUT, HISTORY_SUPPRESSION_ENV, run_shell, to_batch_command
from ccde.models import LayoutSpec

_WINDOW_FORMAT = "#{window_id}|#{window_name}|#{window_active}|#{window_panes}"


@dataclass(frozen=True)
class TmuxWindow:
    """A window in the current tmux session."""

    id: str
    name: str
    active: bool
    pane_count: int


def _run_tmux(cmd: list[str], **kwargs: object) -> subprocess.CompletedProcess[str]:
    """Run a tmux subprocess command with standard timeout.

    Args:
        cmd: Command to execute.
        **kwargs: Additional arguments for subprocess.run.

    Returns:
        CompletedProcess result.
    """
    return subprocess.run(cmd, check=True, timeout=DEFAULT_TIMEOUT, **kwargs)  # type: ignore[arg-type]


def is_inside_tmux() -> bool:
    """Check if we're running inside a tmux session."""
    return os.environ.get("TMUX") is not None


def parse_window_line(line: str) -> TmuxWindow | None:
    """Parse one line of ``tmux list-windows`` output.

    Args:
        line: A line formatted as ``id|name|active|panes``.

    Returns:
        The window, or None if the line is malformed.
    """
    parts = line.split("|")
    if len(parts) < 4:
        return None
    window_id, name, active, pane_count = (part.strip() for part in parts[:4])
    try:
        panes = int(pane_count)
    except ValueError:
        panes = 1
    return TmuxWindow(id=window_id, name=name, active=active == "1", pane_count=panes or 1)


def list_windows() -> list[TmuxWindow]:
    """List the windows of the current tmux session.

    Returns:
        The windows, or an empty list outside tmux or if tmux is unavailable.
    """
    try:
        result = subprocess.run(
            ["tmux", "list-windows", "-F", _WINDOW_FORMAT],
            capture_output=True,
            text=True,
            check=False,
            timeout=DEFAULT_TIMEOUT,
        )
    except (FileNotFoundError, subprocess.TimeoutExpired):
        return []

    if result.returncode != 0:
        return []

    windows: list[TmuxWindow] = []
    for line in result.stdout.splitlines():
        if line.strip():
            window = parse_window_line(line)
            if window is not None:
                windows.append(window)
    return windows


def find_window(window_name: str) -> TmuxWindow | None:
    """Find a window of the current session by name."""
    return next((w for w in list_windows() if w.name == window_name), None)


def open_layout_window(
    window_name: str,
    working_directory: Path,
    layout: LayoutSpec | None = None,
    dry_run: bool = False,
    shell: str = "sh",
    timeout: float = DEFAULT_TIMEOUT,
    disable_history: bool = True,
) -> list[str]:
    """Switch to a named window, creating it from a layout if it doesn't exist.

    Args:
        window_name: Name of the window.
        working_directory: Directory the new window and its panes start in.
        layout: Layout for a new window; a plain window is created if None.
        dry_run: If True, return commands without executing.
        shell: Shell the layout batch runs through.
        timeout: Seconds before the layout batch is killed.
        disable_history: Whether to keep the batch out of shell history.

    Returns:
        List of commands that were (or would be) executed.

    Raises:
        CommandExecutionError: If the layout batch command fails.
        subprocess.CalledProcessError: If a plain tmux command fails.
    """
    commands: list[str] = []

    existing = find_window(window_name)
    if existing is not None:
        select_cmd = ["tmux", "select-window", "-t", existing.id]
        commands.append(" ".join(select_cmd))
        if not dry_run:
            _run_tmux(select_cmd)
        return commands

    dir_str = str(working_directory.resolve())

    if layout is None:
        new_cmd = ["tmux", "new-window", "-n", window_name, "-c", dir_str]
        commands.append(" ".join(new_cmd))
        if not dry_run:
            _run_tmux(new_cmd)
        return commands

    # Whole layout in one tmux invocation so it lands in the new window
    batch = to_batch_command(compile_layout(layout, dir_str, window_name))
    commands.append(batch)
    if not dry_run:
        env = HISTORY_SUPPRESSION_ENV if disable_history else None
        result = run_shell(batch, shell=shell, timeout=timeout, env=env)
        if result.returncode != 0:
            raise CommandExecutionError(batch, result.returncode, result.output)
    return commands
