"""
Constraint command implementation.

Sets the default constraint of a tool, or removes it when called without an
expression.
"""

from iacenv.cli.utils import manager_from_args, print_error
from iacenv.core.exceptions import IacEnvError


def run(args) -> int:
    try:
        manager = manager_from_args(args)
        if args.expression:
            manager.set_constraint(args.expression)
        else:
            manager.reset_constraint()
    except IacEnvError as e:
        print_error(e)
        return 1
    return 0
