"""Layout tree types for ccde."""

from collections.abc import Mapping
from enum import StrEnum
from typing import Annotated, Any, Union

from pydantic import BaseModel, ConfigDict, Discriminator, Tag, field_validator


class ContainerType(StrEnum):
    """Split direction of a container."""

    HORIZONTAL = "horizontal"  # side-by-side (left/right)
    VERTICAL = "vertical"  # stacked (top/bottom)

    @property
    def split_flag(self) -> str:
        """The tmux split-window flag for this direction."""
        return "-h" if self is ContainerType.HORIZONTAL else "-v"


class NodeKind(StrEnum):
    """Variant tag of a layout tree node."""

    PANE = "pane"
    CONTAINER = "container"


def is_focused(value: Any) -> bool:
    """Only a literal ``true`` marks a node as focused; 1, "yes" and null do not."""
    return value is True


class PaneSpec(BaseModel):
    """A leaf of the layout tree: one terminal pane."""

    model_config = ConfigDict(frozen=True)

    name: str | None = None  # pane title, also used to resolve focus
    command: str | None = None  # sent to the pane once it exists
    focus: bool = False

    @field_validator("focus", mode="before")
    @classmethod
    def validate_focus(cls, v: Any) -> bool:
        """Coerce anything but ``True`` to unfocused."""
        return is_focused(v)

    @property
    def kind(self) -> NodeKind:
        """Variant tag for panes."""
        return NodeKind.PANE


class ContainerSpec(BaseModel):
    """An internal node splitting its space between child nodes."""

    model_config = ConfigDict(frozen=True)

    type: ContainerType
    panes: tuple["LayoutNode", ...]
    ratio: tuple[float, ...] | None = None  # relative weights, one per child
    focus: bool = False

    @field_validator("focus", mode="before")
    @classmethod
    def validate_focus(cls, v: Any) -> bool:
        """Coerce anything but ``True`` to unfocused."""
        return is_focused(v)

    @property
    def kind(self) -> NodeKind:
        """Variant tag for containers."""
        return NodeKind.CONTAINER


def node_kind(value: Any) -> str | None:
    """Decide which variant a raw or parsed node belongs to.

    A raw mapping is a container when it carries a ``type`` key, whatever the
    value of that key; every other mapping is a pane.

    Args:
        value: A raw mapping or an already-built node.

    Returns:
        The node kind tag, or None if the value is not a node at all.
    """
    if isinstance(value, Mapping):
        return NodeKind.CONTAINER.value if "type" in value else NodeKind.PANE.value
    if isinstance(value, PaneSpec | ContainerSpec):
        return value.kind.value
    return None


LayoutNode = Annotated[
    Union[
        Annotated[PaneSpec, Tag(NodeKind.PANE.value)],
        Annotated[ContainerSpec, Tag(NodeKind.CONTAINER.value)],
    ],
    Discriminator(node_kind),
]

ContainerSpec.model_rebuild()


class LayoutSpec(BaseModel):
    """A complete window layout."""

    model_config = ConfigDict(frozen=True)

    name: str | None = None
    layout: ContainerSpec
