"""
Install command implementation.
"""

import logging

from iacenv.cli.utils import manager_from_args, print_error
from iacenv.core.exceptions import IacEnvError

logger = logging.getLogger(__name__)


def run(args) -> int:
    """
    Run the install command.

    With no version argument the detected version is installed. Each
    argument is resolved on its own; a failure stops the remaining ones.

    Args:
        args: Parsed command-line arguments with:
            - tool: Tool key
            - versions: Version requests (may be empty)

    Returns:
        Exit code (0 for success, 1 on error)
    """
    try:
        manager = manager_from_args(args)
        requests = args.versions or [""]
        for requested in requests:
            version = manager.install(requested)
            logger.debug(f"Resolved '{requested}' to {version}")
    except IacEnvError as e:
        print_error(e)
        return 1
    return 0
