"""Compile declarative tmux window layouts into tmux commands."""

__version__ = "0.1.0"
