"""
Version handling for iacenv.

Ordering and constraints, request parsing, project scanning, version file
discovery and uninstall selection.
"""

from .semantic import (
    parse_version,
    normalize_version,
    is_stable,
    compare_versions,
    sort_versions,
    Constraints,
    parse_constraints,
)
from .finder import find_version, is_valid_version, clean_version
from .predicate import (
    PredicateInfo,
    parse_predicate,
    read_default_constraint,
    MIN_REQUIRED_KEY,
    LATEST_ALLOWED_KEY,
    LATEST_KEY,
    LATEST_STABLE_KEY,
    LATEST_PRE_KEY,
)
from .iac import IacScanner, ExtDescription
from .version_files import VersionFile, retrieve_version
from .uninstall import select_versions_to_uninstall
from .lastuse import read_last_use, write_last_use

__all__ = [
    "parse_version",
    "normalize_version",
    "is_stable",
    "compare_versions",
    "sort_versions",
    "Constraints",
    "parse_constraints",
    "find_version",
    "is_valid_version",
    "clean_version",
    "PredicateInfo",
    "parse_predicate",
    "read_default_constraint",
    "MIN_REQUIRED_KEY",
    "LATEST_ALLOWED_KEY",
    "LATEST_KEY",
    "LATEST_STABLE_KEY",
    "LATEST_PRE_KEY",
    "IacScanner",
    "ExtDescription",
    "VersionFile",
    "retrieve_version",
    "select_versions_to_uninstall",
    "read_last_use",
    "write_last_use",
]
