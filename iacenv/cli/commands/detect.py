"""
Detect command implementation.

Prints the version selected for the current directory, installing it when
auto install is enabled.
"""

import logging

from iacenv.cli.utils import manager_from_args, print_error
from iacenv.core.exceptions import IacEnvError

logger = logging.getLogger(__name__)


def run(args) -> int:
    """
    Run the detect command.

    Args:
        args: Parsed command-line arguments with:
            - tool: Tool key
            - default_strategy: Strategy used when no version file is found

    Returns:
        Exit code (0 for success, 1 on error)
    """
    try:
        manager = manager_from_args(args)
        version = manager.detect(args.default_strategy or "")
    except IacEnvError as e:
        print_error(e)
        return 1

    print(f"{manager.display_name} {version} will be run from this directory.")
    return 0
