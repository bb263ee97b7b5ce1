"""
iacenv CLI argument parser.

This module implements the management command line using argparse:
``iacenv [global options] <tool> <command> [arguments]``.
"""

import argparse
import importlib
import logging
import os
import sys
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path
from typing import List, Optional

from iacenv.cli.utils import configure_logging
from iacenv.config.settings import TENV_LOG
from iacenv.manager.builder import ALIASES, TOOLS

try:
    __version__ = version("iacenv")
except PackageNotFoundError:
    __version__ = "0.1.0"

logger = logging.getLogger(__name__)

COMMAND_MAP = {
    "detect": "iacenv.cli.commands.detect",
    "install": "iacenv.cli.commands.install",
    "use": "iacenv.cli.commands.use",
    "uninstall": "iacenv.cli.commands.uninstall",
    "list": "iacenv.cli.commands.list_local",
    "list-remote": "iacenv.cli.commands.list_remote",
    "reset": "iacenv.cli.commands.reset",
    "constraint": "iacenv.cli.commands.constraint",
}


class CLI:
    """iacenv command-line interface."""

    def __init__(self):
        self.parser = self._create_parser()

    def _create_parser(self) -> argparse.ArgumentParser:
        parser = argparse.ArgumentParser(
            prog="iacenv",
            description="iacenv - version manager for OpenTofu, Terraform, "
            "Terragrunt, Terramate and Atmos",
            epilog='Use "iacenv TOOL COMMAND --help" for command-specific help',
            formatter_class=argparse.RawDescriptionHelpFormatter,
        )

        parser.add_argument(
            "--version", action="version", version=f"iacenv {__version__}"
        )
        parser.add_argument(
            "--verbose", "-v", action="store_true", help="Enable verbose output"
        )
        parser.add_argument(
            "--quiet",
            "-q",
            action="store_true",
            help="Enable minimal output (errors only)",
        )
        parser.add_argument(
            "--root-path",
            "-r",
            type=Path,
            metavar="PATH",
            help="Install root directory (default: TENV_ROOT or ~/.tenv)",
        )
        parser.add_argument(
            "--arch",
            "-a",
            metavar="ARCH",
            help="Architecture of downloaded binaries (default: TENV_ARCH or current)",
        )
        parser.add_argument(
            "--force-remote",
            "-f",
            action="store_true",
            help="Search remote versions only, ignoring installed ones",
        )
        parser.add_argument(
            "--no-install",
            "-n",
            action="store_true",
            help="Fail instead of installing a missing version",
        )
        parser.add_argument(
            "--skip-signature",
            action="store_true",
            help="Skip signature verification (checksums are still verified)",
        )
        parser.add_argument(
            "--github-token",
            "-t",
            metavar="TOKEN",
            help="GitHub token for API calls (default: TENV_GITHUB_TOKEN or GITHUB_TOKEN)",
        )

        subparsers = parser.add_subparsers(
            dest="tool", help="Managed tools", metavar="TOOL"
        )
        for key, descriptor in TOOLS.items():
            self._add_tool_command(subparsers, key, descriptor.display_name)

        return parser

    def _add_tool_command(self, subparsers, key: str, display_name: str):
        """Add one tool with its version management sub-commands."""
        aliases = [alias for alias, target in ALIASES.items() if target == key]
        parser = subparsers.add_parser(
            key,
            aliases=aliases,
            help=f"Manage {display_name} versions",
            description=f"Install, select and remove {display_name} versions",
        )
        commands = parser.add_subparsers(
            dest="command", help=f"{display_name} commands", metavar="COMMAND"
        )

        detect = commands.add_parser(
            "detect", help="Display the version selected for the current directory"
        )
        detect.add_argument(
            "--default-strategy",
            metavar="STRATEGY",
            help="Strategy used when no version file is found",
        )

        install = commands.add_parser(
            "install",
            help="Install versions (detected version when none given)",
        )
        install.add_argument(
            "versions",
            nargs="*",
            metavar="VERSION",
            help="Exact version, strategy (latest, min-required, ...) or constraint",
        )

        use = commands.add_parser("use", help="Install and pin a version")
        use.add_argument("version", metavar="VERSION")
        use.add_argument(
            "--working-dir",
            "-w",
            action="store_true",
            help="Pin in the current directory instead of the root version file",
        )

        uninstall = commands.add_parser(
            "uninstall",
            help="Remove versions",
            description="Remove versions. Accepts exact versions, constraints, "
            "'all', 'but-last', 'not-used-for:<N>d|m' and "
            "'not-used-since:<YYYY-MM-DD>'",
        )
        uninstall.add_argument("versions", nargs="+", metavar="VERSION")

        list_local = commands.add_parser("list", help="List installed versions")
        list_local.add_argument(
            "--descending", "-d", action="store_true", help="Newest first"
        )

        list_remote = commands.add_parser(
            "list-remote", help="List versions available remotely"
        )
        list_remote.add_argument(
            "--descending", "-d", action="store_true", help="Newest first"
        )
        list_remote.add_argument(
            "--filter",
            metavar="REQUEST",
            help="Keep only versions matching a constraint or strategy",
        )

        commands.add_parser("reset", help="Remove the root version file")

        constraint = commands.add_parser(
            "constraint",
            help="Set the default constraint (remove it when no expression is given)",
        )
        constraint.add_argument("expression", nargs="?", metavar="EXPRESSION")

        parser.set_defaults(tool_parser=parser)

    def parse_args(self, args: Optional[List[str]] = None):
        """
        Parse command-line arguments.

        Args:
            args: Arguments to parse (uses sys.argv if None)

        Returns:
            Parsed arguments namespace
        """
        return self.parser.parse_args(args)

    def run(self, args: Optional[List[str]] = None) -> int:
        """
        Run CLI with given arguments.

        Args:
            args: Arguments to parse (uses sys.argv if None)

        Returns:
            Exit code (0 for success, non-zero for error)
        """
        parsed_args = self.parse_args(args)

        self._configure_logging(parsed_args)

        if not parsed_args.tool:
            self.parser.print_help()
            return 1

        if not getattr(parsed_args, "command", None):
            parsed_args.tool_parser.print_help()
            return 1

        return self._dispatch_command(parsed_args)

    def _configure_logging(self, args):
        configure_logging(
            verbose=args.verbose,
            quiet=args.quiet,
            level_name=os.environ.get(TENV_LOG, ""),
        )

    def _dispatch_command(self, args) -> int:
        """
        Dispatch to appropriate command handler.

        Args:
            args: Parsed arguments with tool and command fields

        Returns:
            Exit code from command handler
        """
        module_name = COMMAND_MAP.get(args.command)
        if not module_name:
            logger.error(f"Unknown command: {args.command}")
            return 1

        module = importlib.import_module(module_name)
        return module.run(args)


def main():
    """Main entry point for CLI."""
    cli = CLI()
    sys.exit(cli.run())


if __name__ == "__main__":
    main()
