"""
Version parsing, ordering and constraint matching.

Versions are parsed with ``packaging.version`` after stripping an optional
leading ``v``. Strings that do not parse are kept (directory names are raw
strings) but order before every parsable version and compare equal to each
other, which keeps sorting total and deterministic.

Constraints follow the HashiCorp syntax used in ``required_version``
attributes: comma-separated clauses, each an operator among
``=``, ``!=``, ``>``, ``>=``, ``<``, ``<=``, ``~>`` (or none, meaning ``=``)
followed by a version. A version satisfies the expression when it satisfies
every clause.

Prerelease handling matches the HashiCorp rules:
- a prerelease version only satisfies an ordering clause whose own version is
  a prerelease with the same release segments,
- ``~>`` never mixes prerelease and stable.
"""

import functools
import re
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional, Tuple

from packaging.version import InvalidVersion, Version

from iacenv.core.exceptions import ResolutionError


def parse_version(version_str: str) -> Optional[Version]:
    """
    Parse a version string, returning None when it is not a version.

    Example:
        >>> parse_version("v1.6.0-rc1")
        <Version('1.6.0rc1')>
        >>> parse_version("nightly") is None
        True
    """
    text = version_str.strip()
    if text[:1] in ("v", "V"):
        text = text[1:]
    if not text or not text[0].isdigit():
        return None
    try:
        return Version(text)
    except InvalidVersion:
        return None


def normalize_version(version_str: str) -> Optional[str]:
    """
    Normalized form used for directory names: leading ``v`` removed.

    Returns None when the string is not a version. The original separators
    are kept so ``1.6.0-rc1`` stays ``1.6.0-rc1``.
    """
    if parse_version(version_str) is None:
        return None
    text = version_str.strip()
    return text[1:] if text[:1] in ("v", "V") else text


def is_prerelease(version: Version) -> bool:
    return version.is_prerelease


def is_stable(version_str: str) -> bool:
    """True for a parsable version without prerelease or dev tag."""
    version = parse_version(version_str)
    return version is not None and not version.is_prerelease


def compare_versions(a: str, b: str) -> int:
    """
    Three-way comparison of two version strings.

    Returns:
        -1, 0 or 1. An unparsable string is smaller than any parsable one;
        two unparsable strings are equal.
    """
    va, vb = parse_version(a), parse_version(b)
    if va is None:
        return 0 if vb is None else -1
    if vb is None:
        return 1
    if va < vb:
        return -1
    if va > vb:
        return 1
    return 0


def sort_versions(versions: Iterable[str], descending: bool = False) -> List[str]:
    """
    Return a new list sorted by compare_versions.

    The sort is stable, so equal or unparsable entries keep their input order.
    """
    return sorted(
        versions, key=functools.cmp_to_key(compare_versions), reverse=descending
    )


def _release(version: Version, size: int = 3) -> Tuple[int, ...]:
    release = tuple(version.release)
    if len(release) < size:
        release = release + (0,) * (size - len(release))
    return release


# ============================================================================
# Constraints
# ============================================================================

_CLAUSE_RE = re.compile(r"^\s*(~>|>=|<=|!=|=|>|<)?\s*(v?[0-9][0-9A-Za-z.\-+~]*)\s*$")


def _prerelease_check(v: Version, c: Version) -> bool:
    v_pre, c_pre = v.is_prerelease, c.is_prerelease
    if c_pre and v_pre:
        return _release(v) == _release(c)
    if v_pre and not c_pre:
        return False
    return True


def _pessimistic(v: Version, c: Version, segments: int) -> bool:
    if v.is_prerelease != c.is_prerelease:
        return False
    if v < c:
        return False
    prefix = max(segments - 1, 0)
    return _release(v, segments)[:prefix] == _release(c, segments)[:prefix]


_OPERATORS: dict = {
    "=": lambda v, c, n: v == c,
    "!=": lambda v, c, n: v != c,
    ">": lambda v, c, n: _prerelease_check(v, c) and v > c,
    "<": lambda v, c, n: _prerelease_check(v, c) and v < c,
    ">=": lambda v, c, n: _prerelease_check(v, c) and v >= c,
    "<=": lambda v, c, n: _prerelease_check(v, c) and v <= c,
    "~>": _pessimistic,
}


@dataclass(frozen=True)
class Clause:
    """One ``<op> <version>`` clause of a constraint expression."""

    operator: str
    version: Version
    segments: int
    text: str

    def check(self, version: Version) -> bool:
        return _OPERATORS[self.operator](version, self.version, self.segments)

    def __str__(self) -> str:
        return self.text


class Constraints:
    """
    Parsed constraint expression (conjunction of clauses).

    Example:
        >>> c = Constraints.parse(">= 1.5.0, < 1.7.0")
        >>> c.check("1.6.0"), c.check("1.7.0")
        (True, False)
    """

    def __init__(self, clauses: Iterable[Clause] = ()):
        self.clauses: Tuple[Clause, ...] = tuple(clauses)

    @classmethod
    def parse(cls, expression: str) -> "Constraints":
        """
        Parse a comma-separated constraint expression.

        Raises:
            ResolutionError: If any clause is malformed
        """
        clauses = []
        for raw in expression.split(","):
            match = _CLAUSE_RE.match(raw)
            if not match:
                raise ResolutionError(f"Malformed constraint: {raw.strip()!r}")
            operator = match.group(1) or "="
            version_text = match.group(2)
            version = parse_version(version_text)
            if version is None:
                raise ResolutionError(f"Malformed constraint: {raw.strip()!r}")
            segments = len(version_text.lstrip("vV").split("-")[0].split("+")[0].split("."))
            clauses.append(
                Clause(operator, version, segments, f"{operator}{version_text}")
            )
        return cls(clauses)

    def __add__(self, other: "Constraints") -> "Constraints":
        return Constraints(self.clauses + other.clauses)

    def __bool__(self) -> bool:
        return bool(self.clauses)

    def __len__(self) -> int:
        return len(self.clauses)

    def __str__(self) -> str:
        return ", ".join(str(clause) for clause in self.clauses)

    def check(self, version_str: str) -> bool:
        """True when version_str parses and satisfies every clause."""
        version = parse_version(version_str)
        return version is not None and all(c.check(version) for c in self.clauses)

    def predicate(self) -> Callable[[str], bool]:
        return self.check


def parse_constraints(expressions: Iterable[str]) -> Constraints:
    """
    Parse and concatenate several expressions into a single conjunction.

    Empty and blank expressions are ignored.
    """
    result = Constraints()
    for expression in expressions:
        if expression and expression.strip():
            result = result + Constraints.parse(expression)
    return result


__all__ = [
    "parse_version",
    "normalize_version",
    "is_stable",
    "is_prerelease",
    "compare_versions",
    "sort_versions",
    "Clause",
    "Constraints",
    "parse_constraints",
]
