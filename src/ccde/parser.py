"""Layout file loading for ccde."""

import json
from pathlib import Path
from typing import Any

import yaml

from ccde.errors import LayoutFileError, UnsupportedLayoutFormatError
from ccde.models import LayoutSpec
from ccde.validator import parse_layout_data

YAML_EXTENSIONS = frozenset({"yaml", "yml"})
JSON_EXTENSIONS = frozenset({"json"})


def _file_extension(path: Path) -> str:
    return path.suffix.removeprefix(".").lower()


def read_layout_data(path: Path) -> Any:
    """Read and decode a layout file without validating it.

    The decoder is chosen by file extension: ``.yaml``/``.yml`` or ``.json``.

    Args:
        path: Path to the layout file.

    Returns:
        The decoded data.

    Raises:
        UnsupportedLayoutFormatError: If the extension is not recognised.
        LayoutFileError: If the file cannot be read or decoded.
    """
    extension = _file_extension(path)
    if extension not in YAML_EXTENSIONS | JSON_EXTENSIONS:
        raise UnsupportedLayoutFormatError(extension)

    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        raise LayoutFileError(f"Cannot read layout file {path}: {e}") from e

    try:
        if extension in YAML_EXTENSIONS:
            return yaml.safe_load(content)
        return json.loads(content)
    except yaml.YAMLError as e:
        raise LayoutFileError(f"YAML parse error in {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise LayoutFileError(f"JSON parse error in {path}: {e}") from e


def load_layout_file(path: Path) -> LayoutSpec:
    """Load, validate and parse a layout file.

    Args:
        path: Path to a YAML or JSON layout file.

    Returns:
        The validated layout.

    Raises:
        UnsupportedLayoutFormatError: If the extension is not recognised.
        LayoutFileError: If the file cannot be read or decoded.
        LayoutValidationError: If the layout is structurally invalid.
    """
    return parse_layout_data(read_layout_data(path))
