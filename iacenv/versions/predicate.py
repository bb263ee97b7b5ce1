"""
Turn a version request into a search predicate.

A request is one of:

- an exact version (``1.6.2``, ``v1.6``): resolved directly, no search,
- ``min-required`` / ``latest-allowed``: constraints declared in project
  files, combined with the tool's default constraint, searched oldest-first
  or newest-first,
- ``latest`` / ``latest-stable``: newest version without prerelease tag,
- ``latest-pre``: newest version, prereleases included,
- ``min:<regex>`` / ``latest:<regex>``: regular expression on the raw
  version string,
- anything else: a constraint expression, combined with the default
  constraint, searched newest-first.
"""

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Mapping, Optional

from iacenv.core.display import Displayer, NullDisplayer
from iacenv.core.exceptions import ResolutionError
from iacenv.versions.finder import clean_version, is_valid_version
from iacenv.versions.iac import IacScanner
from iacenv.versions.semantic import Constraints, is_stable, parse_constraints

logger = logging.getLogger(__name__)

MIN_REQUIRED_KEY = "min-required"
LATEST_ALLOWED_KEY = "latest-allowed"
LATEST_KEY = "latest"
LATEST_STABLE_KEY = "latest-stable"
LATEST_PRE_KEY = "latest-pre"
MIN_REGEX_PREFIX = "min:"
LATEST_REGEX_PREFIX = "latest:"

STRATEGY_KEYS = (
    MIN_REQUIRED_KEY,
    LATEST_ALLOWED_KEY,
    LATEST_KEY,
    LATEST_STABLE_KEY,
    LATEST_PRE_KEY,
)


def always_true(version: str) -> bool:
    return True


@dataclass
class PredicateInfo:
    """
    Outcome of parsing a request.

    Attributes:
        predicate: Test applied to candidate version strings
        descending: Search newest-first when True
        diagnostics: Human readable notes gathered while parsing
        exact: Set when the request named one version; no search needed
    """

    predicate: Callable[[str], bool]
    descending: bool = True
    diagnostics: List[str] = field(default_factory=list)
    exact: Optional[str] = None

    def select(self, sorted_ascending: List[str]) -> Optional[str]:
        """First candidate matching the predicate in the search direction."""
        candidates = (
            reversed(sorted_ascending) if self.descending else iter(sorted_ascending)
        )
        for version in candidates:
            if self.predicate(version):
                return version
        return None


def read_default_constraint(
    env_name: str,
    constraint_file: Optional[Path],
    environ: Optional[Mapping[str, str]] = None,
) -> str:
    """
    Default constraint of a tool: the env variable, else the constraint file.

    Returns an empty string when neither is set.
    """
    environ = environ or {}
    if env_name:
        value = environ.get(env_name, "").strip()
        if value:
            return value
    if constraint_file is not None:
        try:
            return Path(constraint_file).read_text(encoding="utf-8").strip()
        except FileNotFoundError:
            return ""
        except OSError as e:
            logger.warning(f"Failed to read {constraint_file}: {e}")
    return ""


def _regex_predicate(pattern: str) -> Callable[[str], bool]:
    try:
        compiled = re.compile(pattern)
    except re.error as e:
        raise ResolutionError(f"Invalid version regex {pattern!r}: {e}") from e
    return lambda version: compiled.search(version) is not None


def parse_predicate(
    requested: str,
    display_name: str = "",
    default_constraint: str = "",
    scanner: Optional[IacScanner] = None,
    work_path: Optional[Path] = None,
    displayer: Optional[Displayer] = None,
) -> PredicateInfo:
    """
    Parse a request string into a PredicateInfo.

    Args:
        requested: Raw request (version, keyword, regex shortcut or constraint)
        display_name: Tool name used in diagnostics
        default_constraint: Tool default constraint, may be empty
        scanner: Project file scanner for min-required / latest-allowed
        work_path: Directory to scan
        displayer: Display sink

    Returns:
        PredicateInfo

    Raises:
        ResolutionError: Malformed constraint, invalid regex or unreadable
            project file

    Example:
        >>> info = parse_predicate("~> 1.6")
        >>> info.predicate("1.7.1"), info.predicate("2.0.0")
        (True, False)
    """
    displayer = displayer or NullDisplayer()
    requested = requested.strip()
    name = display_name or "tool"

    if is_valid_version(requested):
        exact = clean_version(requested)
        return PredicateInfo(
            predicate=lambda version: version == exact, exact=exact
        )

    if requested in (MIN_REQUIRED_KEY, LATEST_ALLOWED_KEY):
        descending = requested == LATEST_ALLOWED_KEY
        requireds = []
        if scanner is not None:
            requireds = scanner.gather(work_path or Path.cwd(), displayer)
        constraints = parse_constraints([*requireds, default_constraint])
        if not constraints:
            note = (
                f"No {name} version requirement found in project files, "
                f"fallback to {LATEST_PRE_KEY} strategy"
            )
            return PredicateInfo(
                predicate=always_true, descending=True, diagnostics=[note]
            )
        logger.debug(f"Constraints for {requested}: {constraints}")
        return PredicateInfo(predicate=constraints.check, descending=descending)

    if requested in (LATEST_KEY, LATEST_STABLE_KEY):
        return PredicateInfo(predicate=is_stable, descending=True)

    if requested == LATEST_PRE_KEY:
        return PredicateInfo(predicate=always_true, descending=True)

    if requested.startswith(MIN_REGEX_PREFIX):
        pattern = requested[len(MIN_REGEX_PREFIX):]
        return PredicateInfo(predicate=_regex_predicate(pattern), descending=False)

    if requested.startswith(LATEST_REGEX_PREFIX):
        pattern = requested[len(LATEST_REGEX_PREFIX):]
        return PredicateInfo(predicate=_regex_predicate(pattern), descending=True)

    constraints = Constraints.parse(requested)
    if default_constraint:
        constraints = constraints + Constraints.parse(default_constraint)
    return PredicateInfo(predicate=constraints.check, descending=True)


__all__ = [
    "PredicateInfo",
    "parse_predicate",
    "read_default_constraint",
    "always_true",
    "MIN_REQUIRED_KEY",
    "LATEST_ALLOWED_KEY",
    "LATEST_KEY",
    "LATEST_STABLE_KEY",
    "LATEST_PRE_KEY",
    "STRATEGY_KEYS",
]
