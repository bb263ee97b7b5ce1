"""
Configuration for iacenv.

Environment variables plus the optional YAML remote configuration file.
"""

from .settings import (
    Config,
    ToolRemoteConfig,
    load_remote_conf,
    parse_bool,
    INSTALL_MODES,
    LIST_MODES,
)

__all__ = [
    "Config",
    "ToolRemoteConfig",
    "load_remote_conf",
    "parse_bool",
    "INSTALL_MODES",
    "LIST_MODES",
]
