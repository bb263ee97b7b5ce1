"""
Reset command implementation.

Removes the root version file of a tool.
"""

from iacenv.cli.utils import manager_from_args, print_error
from iacenv.core.exceptions import IacEnvError


def run(args) -> int:
    try:
        manager = manager_from_args(args)
        manager.reset()
    except IacEnvError as e:
        print_error(e)
        return 1
    return 0
