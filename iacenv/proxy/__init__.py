"""
Proxying of managed executables.

Example:
    from iacenv.proxy import run_tool

    exit_code = run_tool("tofu", ["plan"])
"""

from .process import ProcessProxy, SignalRelay, write_github_output
from .exec import run_tool, chdir_from_args

__all__ = [
    "ProcessProxy",
    "SignalRelay",
    "write_github_output",
    "run_tool",
    "chdir_from_args",
]
