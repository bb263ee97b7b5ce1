"""
Use command implementation.

Installs a version when needed and pins it in a version file.
"""

from iacenv.cli.utils import manager_from_args, print_error
from iacenv.core.exceptions import IacEnvError


def run(args) -> int:
    try:
        manager = manager_from_args(args)
        manager.use(args.version, working_dir=args.working_dir)
    except IacEnvError as e:
        print_error(e)
        return 1
    return 0
