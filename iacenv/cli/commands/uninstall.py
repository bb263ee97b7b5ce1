"""
Uninstall command implementation.
"""

from iacenv.cli.utils import manager_from_args, print_error
from iacenv.core.exceptions import IacEnvError
from iacenv.versions.finder import is_valid_version


def run(args) -> int:
    """
    Run the uninstall command.

    Several exact versions are removed together, after all of them have been
    validated. A single non-version argument is treated as a selector
    (``all``, ``but-last``, ``not-used-for:30d``, constraint...).

    Args:
        args: Parsed command-line arguments with:
            - tool: Tool key
            - versions: Versions or one selector

    Returns:
        Exit code (0 for success, 1 on error)
    """
    try:
        manager = manager_from_args(args)
        if len(args.versions) == 1:
            manager.uninstall(args.versions[0])
        else:
            invalid = [v for v in args.versions if not is_valid_version(v)]
            if invalid:
                print_error(
                    "Selectors cannot be combined with other versions",
                    details=f"Not a version: {', '.join(invalid)}",
                )
                return 1
            manager.uninstall_multiple(args.versions)
    except IacEnvError as e:
        print_error(e)
        return 1
    return 0
