"""
List command implementation.

Prints installed versions with their last use date; the version pinned in
the root version file is marked with ``*``.
"""

from iacenv.cli.utils import manager_from_args, print_error
from iacenv.core.exceptions import IacEnvError
from iacenv.versions.lastuse import NEVER_USED


def run(args) -> int:
    try:
        manager = manager_from_args(args)
        details = manager.local_details(descending=args.descending)
        root_version = manager.root_version()
    except IacEnvError as e:
        print_error(e)
        return 1

    for version, last_use in details:
        marker = "*" if version == root_version else " "
        used = "never" if last_use == NEVER_USED else last_use.isoformat()
        print(f"{marker} {version} (used {used})")

    if not details:
        print(f"No {manager.display_name} version installed")
    return 0
