"""
Console entry points standing in for the managed executables.

``tofu plan`` detects the OpenTofu version the current project asks for,
installs it when needed, records its last use, and runs it with the same
arguments.
"""

import logging
import sys
from pathlib import Path
from typing import List, Mapping, Optional, Sequence

from iacenv.cli.utils import configure_logging, print_error
from iacenv.config.settings import Config
from iacenv.core.display import Displayer
from iacenv.core.exceptions import IacEnvError, ProcessExitError
from iacenv.manager.builder import build_manager
from iacenv.proxy.process import SPAWN_FAILURE_CODE, ProcessProxy
from iacenv.versions.lastuse import write_last_use

logger = logging.getLogger(__name__)

CHDIR_FLAG = "-chdir="
VERBOSE_LEVELS = ("debug", "trace", "info")


def chdir_from_args(args: Sequence[str], work_path: Path) -> Path:
    """
    Working directory after applying a ``-chdir=<dir>`` argument.

    Example:
        >>> chdir_from_args(["-chdir=infra", "plan"], Path("/repo"))
        PosixPath('/repo/infra')
    """
    for arg in args:
        if arg.startswith(CHDIR_FLAG):
            return work_path / arg[len(CHDIR_FLAG):]
    return work_path


def run_tool(
    tool: str,
    args: Sequence[str],
    environ: Optional[Mapping[str, str]] = None,
) -> int:
    """
    Detect, install if needed, and run a managed tool.

    Args:
        tool: Tool key ('tofu', 'tf', 'tg', 'tm', 'atmos')
        args: Arguments for the tool
        environ: Environment (default: os.environ)

    Returns:
        Exit code: the child's own, or 1 when it could not be started
    """
    try:
        config = Config.from_env(environ)
    except IacEnvError as e:
        print_error(e)
        return SPAWN_FAILURE_CODE

    verbose = config.log_level.lower() in VERBOSE_LEVELS
    configure_logging(level_name=config.log_level or "error")
    displayer = Displayer(quiet=config.quiet or not verbose)

    config = config.with_overrides(work_path=chdir_from_args(args, config.work_path))
    try:
        manager = build_manager(tool, config, displayer)
        version = manager.detect()
        write_last_use(manager.version_dir(version))

        proxy = ProcessProxy(
            manager.executable_path(version),
            args,
            github_output=config.github_output if config.github_actions else "",
            detached=config.detached_proxy,
        )
        return proxy.run()
    except ProcessExitError as e:
        print_error(f"{manager.display_name} {e}")
        return e.exit_code
    except IacEnvError as e:
        print_error(e)
        return SPAWN_FAILURE_CODE
    except OSError as e:
        print_error(e)
        return SPAWN_FAILURE_CODE


def _main(tool: str, argv: Optional[List[str]] = None) -> None:
    sys.exit(run_tool(tool, sys.argv[1:] if argv is None else argv))


def tofu_main(argv: Optional[List[str]] = None) -> None:
    _main("tofu", argv)


def terraform_main(argv: Optional[List[str]] = None) -> None:
    _main("tf", argv)


def terragrunt_main(argv: Optional[List[str]] = None) -> None:
    _main("tg", argv)


def terramate_main(argv: Optional[List[str]] = None) -> None:
    _main("tm", argv)


def atmos_main(argv: Optional[List[str]] = None) -> None:
    _main("atmos", argv)


__all__ = [
    "run_tool",
    "chdir_from_args",
    "tofu_main",
    "terraform_main",
    "terragrunt_main",
    "terramate_main",
    "atmos_main",
]
