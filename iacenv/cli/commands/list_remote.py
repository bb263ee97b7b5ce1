"""
List-remote command implementation.
"""

import logging

from iacenv.cli.utils import manager_from_args, print_error
from iacenv.core.exceptions import IacEnvError

logger = logging.getLogger(__name__)


def run(args) -> int:
    """
    Run the list-remote command.

    Args:
        args: Parsed command-line arguments with:
            - tool: Tool key
            - descending: Newest first
            - filter: Optional request every listed version must match

    Returns:
        Exit code (0 for success, 1 on error)
    """
    try:
        manager = manager_from_args(args)
        versions = manager.list_remote(descending=args.descending)
        if args.filter:
            predicate = manager.predicate(args.filter).predicate
            manager.displayer.flush()
            versions = [v for v in versions if predicate(v)]
        installed = set(manager.list_local())
    except IacEnvError as e:
        print_error(e)
        return 1

    for version in versions:
        suffix = " (installed)" if version in installed else ""
        print(f"{version}{suffix}")

    logger.debug(f"Listed {len(versions)} {manager.display_name} versions")
    return 0
