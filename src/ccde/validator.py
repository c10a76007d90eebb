"""Structural validation of layout descriptions."""

from collections.abc import Mapping, Sequence
from typing import Any

from pydantic import ValidationError

from ccde.errors import LayoutValidationError
from ccde.models import ContainerType, LayoutSpec, NodeKind, is_focused

ROOT_PATH = "layout"
ROOT_FOCUS_PATH = "<root>"

_CONTAINER_TYPES = tuple(t.value for t in ContainerType)
_NODE_TAGS = frozenset(k.value for k in NodeKind)


def child_path(parent: str, index: int) -> str:
    """Build the path of the ``index``-th child of the container at ``parent``."""
    return f"{parent}.panes[{index}]"


def check_ratio_length(ratio: Sequence[float] | None, pane_count: int, path: str) -> None:
    """Ensure a container's ratio gives exactly one weight per child.

    Args:
        ratio: The container's ratio, or None if it has none.
        pane_count: Number of direct children of the container.
        path: Path of the container, used in the error message.

    Raises:
        LayoutValidationError: If the lengths differ.
    """
    if ratio is not None and len(ratio) != pane_count:
        raise LayoutValidationError(
            f"Ratio array length ({len(ratio)}) must match panes array length ({pane_count}) at {path}",
            path=path,
        )


def validate_layout(data: Mapping[str, Any] | LayoutSpec) -> None:
    """Check that a layout description is structurally well-formed.

    Containers are checked pre-order (root first, children in order) for a
    valid type, a panes array and a matching ratio length. The focus check
    runs over the whole tree afterwards. The first violation found is raised.

    Numeric weights are not inspected: zero, negative and NaN ratios pass.

    Args:
        data: Raw parsed layout data, or an already-built LayoutSpec.

    Raises:
        LayoutValidationError: On the first violation found.
    """
    if isinstance(data, LayoutSpec):
        data = data.model_dump(exclude_none=True)

    if not isinstance(data, Mapping) or not data.get("layout"):
        raise LayoutValidationError("Layout configuration must have a 'layout' property")

    root = data["layout"]
    if not isinstance(root, Mapping):
        raise LayoutValidationError(f"Container at {ROOT_PATH} must be a mapping", path=ROOT_PATH)

    _validate_container(root, ROOT_PATH)
    _validate_focus(root)


def _validate_container(container: Mapping[str, Any], path: str) -> None:
    container_type = container.get("type")
    if container_type not in _CONTAINER_TYPES:
        raise LayoutValidationError(
            f"Container at {path} must have type 'horizontal' or 'vertical' (got {container_type!r})",
            path=path,
        )

    panes = container.get("panes")
    if not isinstance(panes, list | tuple):
        raise LayoutValidationError(f"Container at {path} must have 'panes' array", path=path)

    ratio = container.get("ratio")
    if ratio is not None and not isinstance(ratio, list | tuple):
        raise LayoutValidationError(f"Ratio at {path} must be an array (got {ratio!r})", path=path)
    check_ratio_length(ratio, len(panes), path)

    for index, child in enumerate(panes):
        child_at = child_path(path, index)
        if not isinstance(child, Mapping):
            raise LayoutValidationError(f"Pane at {child_at} must be a mapping (got {child!r})", path=child_at)
        if "type" in child:
            _validate_container(child, child_at)


def _validate_focus(root: Mapping[str, Any]) -> None:
    """Reject trees where more than one node has ``focus: true``."""
    focused: list[str] = []

    def collect(node: Mapping[str, Any], trail: list[str]) -> None:
        if is_focused(node.get("focus")):
            focused.append(".".join(trail) or ROOT_FOCUS_PATH)
        if "type" in node:
            for index, child in enumerate(node.get("panes") or ()):
                collect(child, [*trail, str(index)])

    collect(root, [])

    if len(focused) > 1:
        raise LayoutValidationError(f"Multiple panes marked with focus: {', '.join(focused)}")


def _format_location(loc: tuple[int | str, ...]) -> str:
    """Render a pydantic error location as a layout path."""
    text = ""
    for part in loc:
        if isinstance(part, int):
            text += f"[{part}]"
        elif part in _NODE_TAGS:
            # Discriminated-union tag, not a field
            continue
        else:
            text += f".{part}" if text else part
    return text or "(root)"


def parse_layout_data(data: Any) -> LayoutSpec:
    """Validate raw layout data and build the typed layout tree.

    Args:
        data: Raw parsed layout data (e.g. from YAML or JSON).

    Returns:
        The validated LayoutSpec.

    Raises:
        LayoutValidationError: If the data is structurally invalid or a field
            has a value of the wrong type.
    """
    validate_layout(data)
    try:
        return LayoutSpec.model_validate(data)
    except ValidationError as e:
        error = e.errors()[0]
        field_path = _format_location(tuple(error["loc"]))
        raise LayoutValidationError(f"Invalid value at {field_path}: {error['msg']}", path=field_path) from e
