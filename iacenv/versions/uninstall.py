"""
Selection of installed versions to remove.

Selectors:

- ``all``: every installed version,
- ``but-last``: every version except the newest,
- ``not-used-for:<N>d`` / ``not-used-for:<N>m``: not used in the last N
  days or months,
- ``not-used-since:<YYYY-MM-DD>``: not used since that date,
- anything else: a constraint expression.
"""

import datetime
import re
from pathlib import Path
from typing import Callable, List, Optional

from iacenv.core.exceptions import ResolutionError
from iacenv.versions.lastuse import read_last_use
from iacenv.versions.semantic import Constraints

ALL_KEY = "all"
BUT_LAST_KEY = "but-last"
NOT_USED_FOR_PREFIX = "not-used-for:"
NOT_USED_SINCE_PREFIX = "not-used-since:"

_DURATION_RE = re.compile(r"^([0-9]+)([dDmM])$")


def subtract_months(date: datetime.date, months: int) -> datetime.date:
    """
    Shift a date back by whole months, normalizing overflowing days forward.

    Example:
        >>> subtract_months(datetime.date(2024, 3, 31), 1)
        datetime.date(2024, 3, 2)
    """
    month_index = date.year * 12 + (date.month - 1) - months
    year, month = divmod(month_index, 12)
    first = datetime.date(year, month + 1, 1)
    return first + datetime.timedelta(days=date.day - 1)


def parse_duration(text: str, today: datetime.date) -> datetime.date:
    """
    Date before which a version counts as unused for ``<N>d`` or ``<N>m``.

    Raises:
        ResolutionError: On any other format
    """
    match = _DURATION_RE.match(text.strip())
    if not match:
        raise ResolutionError(f"Unrecognized duration format: {text!r}")
    amount = int(match.group(1))
    if match.group(2) in "dD":
        return today - datetime.timedelta(days=amount)
    return subtract_months(today, amount)


def _used_before(install_path: Path, before: datetime.date) -> Callable[[str], bool]:
    return lambda version: read_last_use(install_path / version) < before


def select_versions_to_uninstall(
    selector: str,
    install_path: Path,
    versions_descending: List[str],
    today: Optional[datetime.date] = None,
) -> List[str]:
    """
    Pick versions to uninstall among installed ones.

    Args:
        selector: Keyword, duration selector, date selector or constraint
        install_path: Tool directory holding one subdirectory per version
        versions_descending: Installed versions, newest first
        today: Reference date for ``not-used-for``

    Returns:
        Selected versions, in input order

    Raises:
        ResolutionError: Malformed duration, date or constraint
    """
    install_path = Path(install_path)
    selector = selector.strip()

    if selector == ALL_KEY:
        return list(versions_descending)

    if selector == BUT_LAST_KEY:
        return list(versions_descending[1:])

    if selector.startswith(NOT_USED_FOR_PREFIX):
        before = parse_duration(
            selector[len(NOT_USED_FOR_PREFIX):], today or datetime.date.today()
        )
        pred = _used_before(install_path, before)
    elif selector.startswith(NOT_USED_SINCE_PREFIX):
        date_text = selector[len(NOT_USED_SINCE_PREFIX):]
        try:
            before = datetime.date.fromisoformat(date_text)
        except ValueError as e:
            raise ResolutionError(f"Invalid date {date_text!r}: {e}") from e
        pred = _used_before(install_path, before)
    else:
        pred = Constraints.parse(selector).check

    return [version for version in versions_descending if pred(version)]


__all__ = [
    "ALL_KEY",
    "BUT_LAST_KEY",
    "NOT_USED_FOR_PREFIX",
    "NOT_USED_SINCE_PREFIX",
    "parse_duration",
    "subtract_months",
    "select_versions_to_uninstall",
]
