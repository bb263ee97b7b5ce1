"""Last-use stamps of installed versions (``<version dir>/last-use.txt``)."""

import datetime
import logging
from pathlib import Path
from typing import Optional

from iacenv.core.filesystem import atomic_write

logger = logging.getLogger(__name__)

LAST_USE_FILE = "last-use.txt"

NEVER_USED = datetime.date.min


def read_last_use(version_dir: Path) -> datetime.date:
    """
    Date stored in the version directory, or NEVER_USED.

    A missing or unparsable file means the version was never used.
    """
    path = Path(version_dir) / LAST_USE_FILE
    try:
        content = path.read_text(encoding="utf-8").strip()
    except FileNotFoundError:
        logger.debug(f"No last use date in {version_dir}")
        return NEVER_USED
    except OSError as e:
        logger.warning(f"Unable to read date in {path}: {e}")
        return NEVER_USED

    try:
        return datetime.date.fromisoformat(content)
    except ValueError as e:
        logger.warning(f"Unable to parse date in {path}: {e}")
        return NEVER_USED


def write_last_use(version_dir: Path, today: Optional[datetime.date] = None) -> None:
    """Record today's date; failures are logged and otherwise ignored."""
    today = today or datetime.date.today()
    try:
        atomic_write(Path(version_dir) / LAST_USE_FILE, today.isoformat())
    except OSError as e:
        logger.warning(f"Unable to write date in {version_dir}: {e}")


__all__ = ["LAST_USE_FILE", "NEVER_USED", "read_last_use", "write_last_use"]
