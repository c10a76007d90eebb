"""Configuration management for ccde.

Settings come from up to three YAML files, each overriding the one before:

1. ``~/.config/ccde/config.yaml`` (user)
2. ``.ccde.yaml`` in the project directory (shared with the team)
3. ``.ccde.yaml.local`` in the project directory (personal)

A project file setting ``ignore_parent_configs: true`` drops the user file.
All settings are top-level scalars, so a later file simply replaces keys.
"""

from dataclasses import dataclass, field
from pathlib import Path

import yaml
from pydantic import BaseModel, ValidationError
from rich.console import Console
from rich.table import Table

from ccde.executor import DEFAULT_TIMEOUT
from ccde.models import LayoutSpec
from ccde.parser import load_layout_file
from ccde.xdg_paths import get_config_dir, get_config_file_path, get_default_layout_path

PROJECT_CONFIG_NAME = ".ccde.yaml"
PROJECT_LOCAL_CONFIG_NAME = ".ccde.yaml.local"


@dataclass
class ConfigWarning:
    """A problem found while loading config, tied to the file that caused it."""

    file: str
    field_name: str
    message: str
    value: object = field(default=None, repr=False)


@dataclass
class ConfigLayer:
    """The settings read from one config file."""

    source: str
    values: dict[str, object]


class Config(BaseModel):
    """Configuration settings for ccde."""

    # Layout used for named windows; relative paths resolve against the config dir
    default_layout_file: str | None = None
    shell: str = "sh"
    command_timeout: float = DEFAULT_TIMEOUT
    disable_shell_history: bool = True

    # Only honoured in project files: skip the user config entirely
    ignore_parent_configs: bool = False


def _read_layer(path: Path) -> tuple[ConfigLayer | None, ConfigWarning | None]:
    """Read one config file.

    Returns:
        The layer (None if the file is absent, empty or unusable) and a
        warning explaining why an existing file was not used.
    """
    if not path.is_file():
        return None, None
    source = str(path)
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        return None, ConfigWarning(file=source, field_name="(file)", message=f"YAML parse error: {e}")
    except OSError as e:
        return None, ConfigWarning(file=source, field_name="(file)", message=f"File read error: {e}")

    if raw is None:
        return None, None
    if not isinstance(raw, dict):
        return None, ConfigWarning(
            file=source, field_name="(file)", message="expected a mapping of settings", value=type(raw).__name__
        )
    return ConfigLayer(source=source, values={str(k): v for k, v in raw.items()}), None


def collect_layers(
    config_path: Path | None = None,
    project_dir: Path | None = None,
) -> tuple[list[ConfigLayer], list[ConfigWarning]]:
    """Read the config files that apply, lowest precedence first.

    Args:
        config_path: User config file. Uses the XDG default if None.
        project_dir: Directory holding the project config files, if any.

    Returns:
        Tuple of (layers, warnings for files that could not be used).
    """
    layers: list[ConfigLayer] = []
    warnings: list[ConfigWarning] = []

    def read(path: Path) -> ConfigLayer | None:
        layer, warning = _read_layer(path)
        if warning is not None:
            warnings.append(warning)
        return layer

    user_layer = read(config_path or get_config_file_path())
    if project_dir is not None:
        for name in (PROJECT_CONFIG_NAME, PROJECT_LOCAL_CONFIG_NAME):
            layer = read(project_dir / name)
            if layer is not None:
                layers.append(layer)

    if user_layer is not None and not any(layer.values.get("ignore_parent_configs") is True for layer in layers):
        layers.insert(0, user_layer)
    return layers, warnings


def load_config(
    config_path: Path | None = None,
    project_dir: Path | None = None,
    strict: bool = False,
) -> tuple[Config, list[ConfigWarning]]:
    """Load configuration from the user and project config files.

    Invalid settings are reported against the file that supplied them. Unless
    ``strict`` is set, they are dropped and the remaining settings still apply.

    Args:
        config_path: User config file. Uses the XDG default if None.
        project_dir: Directory holding ``.ccde.yaml`` and ``.ccde.yaml.local``.
        strict: If True, fall back to defaults entirely on any invalid setting.

    Returns:
        Tuple of (loaded Config, list of ConfigWarnings).
    """
    layers, warnings = collect_layers(config_path, project_dir)

    merged: dict[str, object] = {}
    origin: dict[str, str] = {}
    for layer in layers:
        merged.update(layer.values)
        origin.update(dict.fromkeys(layer.values, layer.source))

    try:
        return Config.model_validate(merged), warnings
    except ValidationError as e:
        rejected: set[str] = set()
        for error in e.errors():
            key = str(error["loc"][0]) if error["loc"] else "(config)"
            rejected.add(key)
            warnings.append(
                ConfigWarning(
                    file=origin.get(key, "config"),
                    field_name=key,
                    message=error["msg"],
                    value=error.get("input"),
                )
            )

    if strict:
        return Config(), warnings
    kept = {key: value for key, value in merged.items() if key not in rejected}
    return Config.model_validate(kept), warnings


def display_config_warnings(warnings: list[ConfigWarning], console: Console) -> None:
    """Print config warnings as a table, one row per problem."""
    if not warnings:
        return

    table = Table(title="[yellow]Config Warnings[/]", title_justify="left", border_style="yellow")
    table.add_column("File", style="dim")
    table.add_column("Setting", style="bold")
    table.add_column("Problem", style="yellow")
    for warning in warnings:
        problem = warning.message
        if warning.value is not None:
            problem += f" (got: {warning.value!r})"
        table.add_row(warning.file, warning.field_name, problem)
    console.print(table)


def save_config(config: Config, config_path: Path | None = None) -> Path:
    """Write every setting to a config file, creating its directory.

    Args:
        config: The configuration to save.
        config_path: Target file. Uses the XDG default if None.

    Returns:
        The path written.
    """
    path = config_path or get_config_file_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    body = yaml.safe_dump(config.model_dump(mode="json"), sort_keys=False)
    path.write_text(f"# ccde settings (see `ccde --help`)\n{body}", encoding="utf-8")
    return path


def get_default_layout_file(config: Config) -> Path:
    """Resolve the path of the default layout file.

    Args:
        config: The loaded configuration.

    Returns:
        The configured file (relative paths resolve against the config dir),
        or ~/.config/ccde/default.yml when none is configured.
    """
    if not config.default_layout_file:
        return get_default_layout_path()
    path = Path(config.default_layout_file).expanduser()
    return path if path.is_absolute() else get_config_dir() / path


def load_default_layout(config: Config) -> LayoutSpec | None:
    """Load the default layout used for new named windows.

    Args:
        config: The loaded configuration.

    Returns:
        The layout, or None if the default layout file does not exist.

    Raises:
        LayoutError: If the file exists but cannot be loaded or is invalid.
    """
    path = get_default_layout_file(config)
    if not path.exists():
        return None
    return load_layout_file(path)
