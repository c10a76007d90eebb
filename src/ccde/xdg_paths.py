"""XDG-compliant path management for ccde."""

from pathlib import Path

from xdg_base_dirs import xdg_config_home

APP_NAME = "ccde"


def get_config_dir() -> Path:
    """Get the configuration directory path."""
    return xdg_config_home() / APP_NAME


def get_config_file_path() -> Path:
    """Get the config.yaml file path."""
    return get_config_dir() / "config.yaml"


def get_default_layout_path() -> Path:
    """Get the default.yml layout file path."""
    return get_config_dir() / "default.yml"


def ensure_directories() -> None:
    """Create the config directory if it doesn't exist."""
    get_config_dir().mkdir(parents=True, exist_ok=True)
