"""Tests for ccde.models module."""

import pytest
from pydantic import ValidationError

from ccde.models import ContainerSpec, ContainerType, LayoutSpec, NodeKind, PaneSpec, node_kind


class TestContainerType:
    """Tests for ContainerType enum."""

    def test_values(self) -> None:
        """Should have expected enum values."""
        assert ContainerType.HORIZONTAL.value == "horizontal"
        assert ContainerType.VERTICAL.value == "vertical"

    def test_split_flags(self) -> None:
        """Should map horizontal to -h and vertical to -v."""
        assert ContainerType.HORIZONTAL.split_flag == "-h"
        assert ContainerType.VERTICAL.split_flag == "-v"


class TestNodeKind:
    """Tests for node_kind discriminator."""

    def test_mapping_without_type_is_pane(self) -> None:
        """Should treat a mapping with no type key as a pane."""
        assert node_kind({"name": "test"}) == "pane"

    def test_empty_mapping_is_pane(self) -> None:
        """Should treat an empty mapping as a pane."""
        assert node_kind({}) == "pane"

    def test_mapping_with_type_is_container(self) -> None:
        """Should treat a mapping with a type key as a container."""
        assert node_kind({"type": "vertical", "panes": []}) == "container"

    def test_type_presence_decides(self) -> None:
        """Should treat a null or bogus type as a container."""
        assert node_kind({"type": None}) == "container"
        assert node_kind({"type": "diagonal", "name": "x"}) == "container"

    def test_built_nodes(self) -> None:
        """Should use the kind of already-built nodes."""
        assert node_kind(PaneSpec(name="a")) == "pane"
        assert node_kind(ContainerSpec(type=ContainerType.HORIZONTAL, panes=())) == "container"

    def test_non_node_returns_none(self) -> None:
        """Should return None for values that are not nodes."""
        assert node_kind("pane") is None
        assert node_kind(42) is None


class TestLayoutSpec:
    """Tests for building layout trees."""

    def test_parses_nested_tree(self) -> None:
        """Should build panes and containers from raw data."""
        spec = LayoutSpec.model_validate(
            {
                "name": "dev",
                "layout": {
                    "type": "horizontal",
                    "ratio": [70, 30],
                    "panes": [
                        {"name": "editor", "command": "nvim", "focus": True},
                        {"type": "vertical", "panes": [{"name": "server"}, {}]},
                    ],
                },
            }
        )
        root = spec.layout
        assert spec.name == "dev"
        assert root.type == ContainerType.HORIZONTAL
        assert root.ratio == (70.0, 30.0)
        assert isinstance(root.panes[0], PaneSpec)
        assert root.panes[0].kind == NodeKind.PANE
        assert root.panes[0].focus is True
        nested = root.panes[1]
        assert isinstance(nested, ContainerSpec)
        assert nested.kind == NodeKind.CONTAINER
        assert nested.type == ContainerType.VERTICAL
        assert nested.ratio is None
        assert len(nested.panes) == 2

    def test_pane_defaults(self) -> None:
        """Should default all pane fields."""
        pane = PaneSpec()
        assert pane.name is None
        assert pane.command is None
        assert pane.focus is False

    def test_only_true_focuses(self) -> None:
        """Should treat truthy non-boolean and null focus values as unfocused."""
        for value in (1, "yes", "true", None):
            assert PaneSpec.model_validate({"focus": value}).focus is False
            assert ContainerSpec.model_validate({"type": "vertical", "panes": [], "focus": value}).focus is False
        assert PaneSpec.model_validate({"focus": True}).focus is True

    def test_accepts_built_children(self) -> None:
        """Should accept node instances as children."""
        container = ContainerSpec(type=ContainerType.VERTICAL, panes=[PaneSpec(name="a"), PaneSpec(name="b")])
        assert [p.name for p in container.panes if isinstance(p, PaneSpec)] == ["a", "b"]

    def test_accepts_degenerate_ratios(self) -> None:
        """Should accept zero, negative and NaN weights."""
        container = ContainerSpec(
            type=ContainerType.HORIZONTAL,
            panes=[PaneSpec(), PaneSpec(), PaneSpec()],
            ratio=[0, -5, float("nan")],
        )
        assert container.ratio is not None
        assert container.ratio[0] == 0

    def test_nodes_are_frozen(self) -> None:
        """Should not allow mutation after construction."""
        pane = PaneSpec(name="a")
        with pytest.raises(ValidationError):
            pane.name = "b"  # type: ignore[misc]

    def test_invalid_container_type_rejected(self) -> None:
        """Should reject unknown container types when building models."""
        with pytest.raises(ValidationError):
            ContainerSpec.model_validate({"type": "diagonal", "panes": []})
