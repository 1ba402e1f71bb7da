"""Configuration helpers."""

from .settings import LaunchParams, Settings, load_settings, parse_launch_link

__all__ = [
    "LaunchParams",
    "Settings",
    "load_settings",
    "parse_launch_link",
]
