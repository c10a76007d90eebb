"""Compile layout trees into ordered tmux command sequences.

The compiler is pure: it never runs tmux or queries the environment.
Anything that depends on the live session (the current pane's directory,
which pane carries a given title) is left in the command text as tmux
format placeholders or shell substitutions, resolved when executed.
"""

import math
from collections.abc import Sequence
from dataclasses import dataclass

from ccde.models import ContainerSpec, LayoutNode, LayoutSpec, PaneSpec
from ccde.validator import ROOT_PATH, check_ratio_length, child_path

# Resolved by tmux at execution time
CURRENT_PANE_DIRECTORY = "#{pane_current_path}"

# Separator between commands in a single tmux invocation
COMMAND_SEPARATOR = " \\; "

# Panes are addressed 1-based within the new window
FIRST_PANE_INDEX = 1

Percentage = int | float


@dataclass(frozen=True)
class CompiledCommand:
    """One tmux command and a human-readable description of it."""

    text: str
    description: str


def count_panes(node: LayoutNode) -> int:
    """Count the leaf panes in a subtree (a pane counts as one)."""
    if isinstance(node, PaneSpec):
        return 1
    return sum(count_panes(child) for child in node.panes)


def find_focused_pane_name(node: LayoutNode) -> str | None:
    """Find the name of the first focused, named pane in pre-order.

    Focused containers and focused panes without a name never match.

    Args:
        node: Root of the subtree to search.

    Returns:
        The pane name, or None if no named pane is focused.
    """
    if isinstance(node, PaneSpec):
        return node.name if node.focus and node.name else None
    for child in node.panes:
        name = find_focused_pane_name(child)
        if name is not None:
            return name
    return None


def _round_half_up(value: float) -> Percentage:
    """Round .5 upwards, passing NaN and infinities through."""
    if not math.isfinite(value):
        return value
    return math.floor(value + 0.5)


def _share(part: float, whole: float) -> float:
    """Percentage of ``whole`` taken by ``part``, following IEEE rules for a zero ``whole``."""
    if whole == 0:
        if part == 0 or math.isnan(part):
            return math.nan
        return math.copysign(math.inf, part)
    return (part / whole) * 100


def split_percentages(pane_count: int, ratio: Sequence[float] | None = None) -> list[Percentage]:
    """Compute the size of each new pane for a run of binary splits.

    tmux can only split the current space in two, giving the new pane a
    percentage of it. Split ``i`` (1-based) divides the space still holding
    children ``i-1..n-1`` between child ``i-1`` and everything after it, so
    the final sizes match the requested weights whatever scale they use.

    Without a ratio every child gets an equal weight. Zero, negative and NaN
    weights are not corrected; they produce NaN or out-of-range values.

    Args:
        pane_count: Number of children in the container.
        ratio: Relative weights, one per child, or None for equal sizes.

    Returns:
        ``pane_count - 1`` percentages, rounded half-up to integers when finite.
    """
    weights = list(ratio) if ratio is not None else [1.0] * pane_count
    total = sum(weights)

    percentages: list[Percentage] = []
    for i in range(1, pane_count):
        if i == 1:
            share = _share(total - weights[0], total)
        else:
            share = _share(sum(weights[i:]), sum(weights[i - 1 :]))
        percentages.append(_round_half_up(share))
    return percentages


def format_percentage(value: Percentage) -> str:
    """Render a split size for the command line (``NaN``/``Infinity`` when degenerate)."""
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    return str(value)


def _quote(text: str) -> str:
    """Wrap text in double quotes."""
    # No escaping: embedded double quotes end up in the output as-is
    return f'"{text}"'


def _new_window_command(working_directory: str, window_name: str | None) -> CompiledCommand:
    """Open the window every layout is built in."""
    parts = ["tmux", "new-window"]
    if window_name:
        parts += ["-n", _quote(window_name)]
    parts += ["-c", _quote(working_directory)]
    return CompiledCommand(" ".join(parts), "Create new window")


def _focus_command(pane_name: str) -> CompiledCommand:
    """Select the pane whose title matches, looked up when the command runs."""
    query = (
        f"tmux list-panes -F '#{{?#{{==:#{{pane_title}},{pane_name}}},#{{pane_index}},}}' | grep -v '^$' | head -1"
    )
    return CompiledCommand(f'tmux select-pane -t "$({query})"', f"Focus on pane with title: {pane_name}")


def _compile_pane(pane: PaneSpec, pane_index: int, commands: list[CompiledCommand]) -> None:
    """Select a pane, then set its title and start its command if given."""
    commands.append(CompiledCommand(f"tmux select-pane -t {pane_index}", f"Select pane {pane_index}"))
    if pane.name:
        commands.append(CompiledCommand(f"tmux select-pane -T {_quote(pane.name)}", f"Set title: {pane.name}"))
    if pane.command:
        commands.append(CompiledCommand(f"tmux send-keys {_quote(pane.command)} Enter", f"Run: {pane.command}"))


def _compile_container(
    container: ContainerSpec,
    path: str,
    start_index: int,
    working_directory: str,
    commands: list[CompiledCommand],
    nested: bool,
) -> int:
    """Append the commands for one container and its subtree.

    Args:
        container: The container to compile.
        path: Path of the container, for error messages.
        start_index: Index of the first pane occupied by this container.
        working_directory: Directory argument for every split.
        commands: Accumulator the commands are appended to.
        nested: Whether the container sits below the root.

    Returns:
        The pane index following the last pane of this container.

    Raises:
        LayoutValidationError: If a ratio does not match its panes.
    """
    check_ratio_length(container.ratio, len(container.panes), path)

    if nested:
        commands.append(
            CompiledCommand(f"tmux select-pane -t {start_index}", f"Navigate to container start pane {start_index}")
        )

    flag = container.type.split_flag
    for split_number, percentage in enumerate(split_percentages(len(container.panes), container.ratio), start=1):
        commands.append(
            CompiledCommand(
                f"tmux split-window {flag} -p {format_percentage(percentage)} -c {_quote(working_directory)}",
                f"Split {container.type.value} for pane {split_number + 1}",
            )
        )

    pane_index = start_index
    for index, child in enumerate(container.panes):
        if isinstance(child, PaneSpec):
            _compile_pane(child, pane_index, commands)
            pane_index += 1
        else:
            pane_index = _compile_container(
                child, child_path(path, index), pane_index, working_directory, commands, nested=True
            )
    return pane_index


def compile_layout(
    layout: LayoutSpec,
    working_directory: str | None = None,
    window_name: str | None = None,
) -> list[CompiledCommand]:
    """Compile a layout into the tmux commands that build it in a new window.

    Args:
        layout: The layout to compile.
        working_directory: Directory for the new window and its panes. Defaults
            to the directory of the pane tmux is invoked from.
        window_name: Name for the new window, if any.

    Returns:
        The commands in execution order.

    Raises:
        LayoutValidationError: If a container's ratio does not match its panes.
    """
    directory = working_directory or CURRENT_PANE_DIRECTORY
    commands: list[CompiledCommand] = [_new_window_command(directory, window_name)]

    _compile_container(layout.layout, ROOT_PATH, FIRST_PANE_INDEX, directory, commands, nested=False)

    focused = find_focused_pane_name(layout.layout)
    if focused is not None:
        commands.append(_focus_command(focused))

    return commands


def commands_to_string(commands: Sequence[CompiledCommand]) -> str:
    """Join compiled commands into one line using the tmux command separator."""
    return COMMAND_SEPARATOR.join(command.text for command in commands)
