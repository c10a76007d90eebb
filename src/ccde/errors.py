"""Exceptions raised by ccde."""


class LayoutError(Exception):
    """Base class for layout loading, validation and compilation errors."""


class LayoutValidationError(LayoutError, ValueError):
    """A layout description is structurally invalid.

    Args:
        message: Human-readable description of the violation.
        path: Location of the offending node (e.g. ``layout.panes[0]``), if known.
    """

    def __init__(self, message: str, path: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.path = path


class LayoutFileError(LayoutError):
    """A layout file could not be read or decoded."""


class UnsupportedLayoutFormatError(LayoutFileError):
    """A layout file has an extension with no known loader."""

    def __init__(self, extension: str) -> None:
        super().__init__(f"Unsupported file extension: {extension}")
        self.extension = extension


class CommandExecutionError(Exception):
    """A compiled command exited with a non-zero status."""

    def __init__(self, command: str, returncode: int, output: str = "") -> None:
        detail = f": {output.strip()}" if output.strip() else ""
        super().__init__(f"Command failed with exit code {returncode}: {command}{detail}")
        self.command = command
        self.returncode = returncode
        self.output = output
