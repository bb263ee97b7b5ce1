"""
Shared utilities for CLI commands.

Logging setup, error printing, and construction of the configuration,
displayer and version manager from parsed arguments.
"""

import logging
import os
import sys
from typing import Optional, Union

from iacenv.config.settings import (
    TENV_ARCH,
    TENV_GITHUB_TOKEN,
    TENV_ROOT,
    Config,
)
from iacenv.core.display import Displayer
from iacenv.manager.builder import build_manager
from iacenv.manager.manager import VersionManager

_LEVELS = {
    "trace": logging.DEBUG,
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "off": logging.CRITICAL,
}


# ============================================================================
# Output
# ============================================================================


def configure_logging(verbose: bool = False, quiet: bool = False, level_name: str = "") -> None:
    """
    Configure root logging for a command line invocation.

    The verbose and quiet flags win; the level name (TENV_LOG) applies
    only when neither is set.
    """
    if verbose:
        level = logging.DEBUG
        format_str = "%(levelname)s [%(name)s] %(message)s"
    elif quiet:
        level = logging.ERROR
        format_str = "%(levelname)s: %(message)s"
    else:
        level = logging.WARNING
        format_str = "%(levelname)s: %(message)s"

    if level_name and not (verbose or quiet):
        level = _LEVELS.get(level_name.lower(), level)

    logging.basicConfig(
        level=level,
        format=format_str,
        stream=sys.stderr,
        force=True,
    )


def print_error(message: Union[str, Exception], details: Optional[str] = None) -> None:
    """
    Print error message to stderr in consistent format.

    Args:
        message: Main error message
        details: Optional additional details
    """
    print(f"ERROR: {message}", file=sys.stderr)
    if details:
        print(f"  {details}", file=sys.stderr)


# ============================================================================
# Configuration from arguments
# ============================================================================


def load_config(args) -> Config:
    """
    Build the configuration from the environment and the global flags.

    Raises:
        ConfigError: Invalid environment value or remote configuration
    """
    environ = dict(os.environ)
    if getattr(args, "root_path", None):
        environ[TENV_ROOT] = str(args.root_path)
    if getattr(args, "arch", None):
        environ[TENV_ARCH] = args.arch
    if getattr(args, "github_token", None):
        environ[TENV_GITHUB_TOKEN] = args.github_token

    config = Config.from_env(environ)
    overrides = {}
    if getattr(args, "force_remote", False):
        overrides["force_remote"] = True
    if getattr(args, "no_install", False):
        overrides["auto_install"] = False
    if getattr(args, "skip_signature", False):
        overrides["skip_signature"] = True
    if getattr(args, "quiet", False):
        overrides["quiet"] = True
    return config.with_overrides(**overrides)


def make_displayer(config: Config) -> Displayer:
    return Displayer(quiet=config.quiet)


def manager_from_args(args) -> VersionManager:
    """VersionManager of the tool named on the command line."""
    config = load_config(args)
    return build_manager(args.tool, config, make_displayer(config))


__all__ = [
    "configure_logging",
    "print_error",
    "load_config",
    "make_displayer",
    "manager_from_args",
]
