"""Run compiled tmux commands."""

import os
import re
import subprocess
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass

from ccde.compiler import COMMAND_SEPARATOR, CompiledCommand
from ccde.errors import CommandExecutionError

# Timeout for each executed command (seconds)
DEFAULT_TIMEOUT = 10.0

# Keep layout commands out of the shell history
HISTORY_SUPPRESSION_ENV: dict[str, str] = {
    "HISTCONTROL": "ignorespace:ignoredups",
    "HISTFILE": "/dev/null",
}

_SELECT_PANE_INDEX = re.compile(r"select-pane -t (\d+)$")


@dataclass(frozen=True)
class ShellResult:
    """Exit status and combined output of a shell command."""

    returncode: int
    output: str = ""


ShellRunner = Callable[..., ShellResult]


def run_shell(
    command: str,
    shell: str = "sh",
    timeout: float = DEFAULT_TIMEOUT,
    env: Mapping[str, str] | None = None,
) -> ShellResult:
    """Run one command string through a shell.

    Args:
        command: The command line to run.
        shell: Shell used as ``<shell> -c <command>``.
        timeout: Seconds before the command is killed.
        env: Extra environment variables layered over the current environment.

    Returns:
        The exit status and combined stdout/stderr.
    """
    full_env = {**os.environ, **env} if env else None
    try:
        result = subprocess.run(
            [shell, "-c", command],
            capture_output=True,
            text=True,
            check=False,
            timeout=timeout,
            env=full_env,
        )
    except subprocess.TimeoutExpired:
        return ShellResult(returncode=124, output=f"Timed out after {timeout}s")
    except FileNotFoundError:
        return ShellResult(returncode=127, output=f"Shell not found: {shell}")
    return ShellResult(returncode=result.returncode, output=(result.stdout or "") + (result.stderr or ""))


def execute_commands(
    commands: Sequence[CompiledCommand],
    runner: ShellRunner = run_shell,
    shell: str = "sh",
    timeout: float = DEFAULT_TIMEOUT,
    disable_history: bool = True,
) -> list[str]:
    """Run compiled commands one at a time, in order.

    Execution stops at the first command that exits non-zero; later commands
    are not run and nothing is retried.

    Args:
        commands: Commands in emission order.
        runner: Function running one command string.
        shell: Shell passed to the runner.
        timeout: Per-command timeout passed to the runner.
        disable_history: Whether to keep the commands out of shell history.

    Returns:
        The command strings that were executed.

    Raises:
        CommandExecutionError: If a command exits with a non-zero status.
    """
    env = HISTORY_SUPPRESSION_ENV if disable_history else None
    executed: list[str] = []
    for command in commands:
        result = runner(command.text, shell=shell, timeout=timeout, env=env)
        if result.returncode != 0:
            raise CommandExecutionError(command.text, result.returncode, result.output)
        executed.append(command.text)
    return executed


def to_batch_command(commands: Sequence[CompiledCommand]) -> str:
    """Combine compiled commands into a single tmux invocation.

    ``send-keys`` gets an explicit ``-t`` taken from the most recent
    ``select-pane -t <index>``, so keys reach the right pane even when the
    batch runs from outside the new window.

    Args:
        commands: Commands in emission order.

    Returns:
        One ``tmux a \\; b \\; ...`` command line, or "" for no commands.
    """
    if not commands:
        return ""

    parts: list[str] = []
    current_pane = "1"
    for command in commands:
        text = command.text.removeprefix("tmux ")
        match = _SELECT_PANE_INDEX.match(text)
        if match:
            current_pane = match.group(1)
        if text.startswith("send-keys "):
            text = text.replace("send-keys", f"send-keys -t {current_pane}", 1)
        parts.append(text)
    return "tmux " + COMMAND_SEPARATOR.join(parts)
