"""
Heuristics for spotting version numbers inside arbitrary text.

Used on HTML listing tokens (``/terraform/1.6.0/``, ``terragrunt_v0.55.1``)
and to decide whether a request string is an exact version.
"""

import re

_VERSION_PATTERN = r"(v?[0-9]+(\.[0-9]+){0,2}(-[0-9A-Za-z\-.]+)?|alpha-?[0-9]+)"

_version_re = re.compile(_VERSION_PATTERN)
_exact_version_re = re.compile("^" + _VERSION_PATTERN + "$")


def find_version(text: str) -> str:
    """
    First version-looking substring of text, without a leading ``v``.

    Returns an empty string when nothing matches.

    Example:
        >>> find_version("/terraform/1.7.0-rc1/")
        '1.7.0-rc1'
    """
    match = _version_re.search(text)
    if not match:
        return ""
    found = match.group(0)
    return found[1:] if found.startswith("v") else found


def is_valid_version(text: str) -> bool:
    """True when the whole string is a version (``1``, ``v1.2``, ``1.2.3-rc1``, ``alpha20``)."""
    return _exact_version_re.match(text) is not None


def clean_version(text: str) -> str:
    """
    Complete a valid version to three numeric segments.

    ``is_valid_version(text)`` must be true.

    Example:
        >>> clean_version("v1.6-beta2")
        '1.6.0-beta2'
    """
    if text.startswith("alpha"):
        return text

    before, sep, after = text.partition("-")
    parts = before.split(".", 2)
    major = parts[0][1:] if parts[0].startswith("v") else parts[0]
    minor = parts[1] if len(parts) > 1 else "0"
    patch = parts[2] if len(parts) > 2 else "0"

    cleaned = f"{major}.{minor}.{patch}"
    if sep:
        cleaned += f"-{after}"
    return cleaned


__all__ = ["find_version", "is_valid_version", "clean_version"]
