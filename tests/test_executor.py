"""Tests for ccde.executor module."""

import subprocess
from typing import Any
from unittest.mock import MagicMock, patch

import pytest

from ccde.compiler import CompiledCommand, compile_layout
from ccde.errors import CommandExecutionError
from ccde.executor import (
    HISTORY_SUPPRESSION_ENV,
    ShellResult,
    execute_commands,
    run_shell,
    to_batch_command,
)
from ccde.validator import parse_layout_data


class FakeRunner:
    """Records calls and fails on a chosen command."""

    def __init__(self, fail_on: str | None = None, returncode: int = 1) -> None:
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.fail_on = fail_on
        self.returncode = returncode

    def __call__(self, command: str, **kwargs: Any) -> ShellResult:
        self.calls.append((command, kwargs))
        if command == self.fail_on:
            return ShellResult(returncode=self.returncode, output="no server running")
        return ShellResult(returncode=0)


def _commands(*texts: str) -> list[CompiledCommand]:
    return [CompiledCommand(text, "") for text in texts]


class TestExecuteCommands:
    """Tests for execute_commands function."""

    def test_runs_in_order(self) -> None:
        """Should run every command in emission order."""
        runner = FakeRunner()
        commands = _commands("tmux new-window", "tmux select-pane -t 1", "tmux send-keys \"ls\" Enter")
        executed = execute_commands(commands, runner=runner)
        assert executed == [c.text for c in commands]
        assert [call[0] for call in runner.calls] == executed

    def test_stops_at_first_failure(self) -> None:
        """Should not run commands after a failing one."""
        runner = FakeRunner(fail_on="tmux select-pane -t 1", returncode=2)
        commands = _commands("tmux new-window", "tmux select-pane -t 1", "tmux select-pane -t 2")
        with pytest.raises(CommandExecutionError) as exc_info:
            execute_commands(commands, runner=runner)
        assert len(runner.calls) == 2
        assert exc_info.value.command == "tmux select-pane -t 1"
        assert exc_info.value.returncode == 2
        assert "no server running" in str(exc_info.value)

    def test_history_suppressed_by_default(self) -> None:
        """Should pass the history suppression environment."""
        runner = FakeRunner()
        execute_commands(_commands("tmux new-window"), runner=runner)
        assert runner.calls[0][1]["env"] == HISTORY_SUPPRESSION_ENV

    def test_history_not_suppressed(self) -> None:
        """Should pass no extra environment when history is kept."""
        runner = FakeRunner()
        execute_commands(_commands("tmux new-window"), runner=runner, disable_history=False)
        assert runner.calls[0][1]["env"] is None

    def test_shell_and_timeout_forwarded(self) -> None:
        """Should forward the shell and timeout to the runner."""
        runner = FakeRunner()
        execute_commands(_commands("tmux new-window"), runner=runner, shell="bash", timeout=3.0)
        assert runner.calls[0][1]["shell"] == "bash"
        assert runner.calls[0][1]["timeout"] == 3.0

    def test_empty(self) -> None:
        """Should do nothing for no commands."""
        runner = FakeRunner()
        assert execute_commands([], runner=runner) == []
        assert runner.calls == []


class TestRunShell:
    """Tests for run_shell function."""

    def test_success(self) -> None:
        """Should run the command through the shell and combine output."""
        mock_result = MagicMock(returncode=0, stdout="out\n", stderr="err\n")
        with patch("ccde.executor.subprocess.run", return_value=mock_result) as mock_run:
            result = run_shell("tmux new-window", shell="bash", timeout=5.0)
        assert result == ShellResult(returncode=0, output="out\nerr\n")
        args, kwargs = mock_run.call_args
        assert args[0] == ["bash", "-c", "tmux new-window"]
        assert kwargs["timeout"] == 5.0
        assert kwargs["env"] is None

    def test_env_layered_over_environment(self) -> None:
        """Should add extra variables on top of the current environment."""
        mock_result = MagicMock(returncode=0, stdout="", stderr="")
        with (
            patch.dict("os.environ", {"KEEP_ME": "1"}),
            patch("ccde.executor.subprocess.run", return_value=mock_result) as mock_run,
        ):
            run_shell("true", env=HISTORY_SUPPRESSION_ENV)
        env = mock_run.call_args.kwargs["env"]
        assert env["KEEP_ME"] == "1"
        assert env["HISTFILE"] == "/dev/null"
        assert env["HISTCONTROL"] == "ignorespace:ignoredups"

    def test_failure_returncode(self) -> None:
        """Should report a non-zero exit without raising."""
        mock_result = MagicMock(returncode=1, stdout="", stderr="can't find pane\n")
        with patch("ccde.executor.subprocess.run", return_value=mock_result):
            result = run_shell("tmux select-pane -t 9")
        assert result.returncode == 1
        assert "can't find pane" in result.output

    def test_timeout(self) -> None:
        """Should map a timeout to exit status 124."""
        with patch("ccde.executor.subprocess.run", side_effect=subprocess.TimeoutExpired("sh", 1.0)):
            result = run_shell("sleep 10", timeout=1.0)
        assert result.returncode == 124

    def test_missing_shell(self) -> None:
        """Should map a missing shell to exit status 127."""
        with patch("ccde.executor.subprocess.run", side_effect=FileNotFoundError):
            result = run_shell("true", shell="no-such-shell")
        assert result.returncode == 127
        assert "no-such-shell" in result.output


class TestToBatchCommand:
    """Tests for to_batch_command function."""

    def test_empty(self) -> None:
        """Should return an empty string for no commands."""
        assert to_batch_command([]) == ""

    def test_single_tmux_prefix(self) -> None:
        """Should prefix the batch with tmux exactly once."""
        result = to_batch_command(_commands("tmux new-window", "tmux select-pane -t 1"))
        assert result == "tmux new-window \\; select-pane -t 1"

    def test_send_keys_targets_last_selected_pane(self) -> None:
        """Should target send-keys at the most recently selected pane."""
        result = to_batch_command(
            _commands(
                "tmux select-pane -t 1",
                'tmux send-keys "nvim" Enter',
                "tmux select-pane -t 2",
                'tmux select-pane -T "shell"',
                'tmux send-keys "ls" Enter',
            )
        )
        assert 'send-keys -t 1 "nvim" Enter' in result
        assert 'send-keys -t 2 "ls" Enter' in result

    def test_pane_title_does_not_retarget(self) -> None:
        """Should ignore select-pane text inside titles and commands."""
        result = to_batch_command(
            _commands(
                "tmux select-pane -t 2",
                'tmux select-pane -T "x select-pane -t 9"',
                'tmux send-keys "echo select-pane -t 7" Enter',
                'tmux send-keys "ls" Enter',
            )
        )
        assert 'send-keys -t 2 "echo select-pane -t 7" Enter' in result
        assert 'send-keys -t 2 "ls" Enter' in result
        assert "send-keys -t 9" not in result

    def test_focus_query_keeps_previous_target(self) -> None:
        """Should not treat the focus query as a numeric pane selection."""
        result = to_batch_command(
            _commands(
                "tmux select-pane -t 3",
                "tmux select-pane -t \"$(tmux list-panes -F '#{pane_index}' | head -1)\"",
                'tmux send-keys "ls" Enter',
            )
        )
        assert 'send-keys -t 3 "ls" Enter' in result

    def test_send_keys_defaults_to_first_pane(self) -> None:
        """Should target pane 1 when no pane was selected yet."""
        assert to_batch_command(_commands('tmux send-keys "x" Enter')) == 'tmux send-keys -t 1 "x" Enter'

    def test_compiled_layout(self) -> None:
        """Should batch a compiled layout into one tmux invocation."""
        spec = parse_layout_data(
            {
                "layout": {
                    "type": "horizontal",
                    "panes": [{"name": "a", "command": "vim"}, {"name": "b", "command": "htop"}],
                }
            }
        )
        result = to_batch_command(compile_layout(spec, "/srv/app", "app"))
        assert result.startswith('tmux new-window -n "app" -c "/srv/app" \\; split-window -h -p 50')
        assert result.count("tmux ") == 1
        assert 'send-keys -t 1 "vim" Enter' in result
        assert 'send-keys -t 2 "htop" Enter' in result
