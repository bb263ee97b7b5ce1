"""
Cross-process install locking for iacenv.

Each tool directory under the install root (``<root>/<folder>/``) carries a
transient ``.lock`` marker while a version is being installed. The marker is
created exclusively; a process that finds it already present waits and
retries with a fixed delay until it can create it. There is no timeout:
the wait ends when the holder removes the marker.

Different tools lock different directories, so installs of two tools never
contend with each other.

Usage:
    from iacenv.core.locking import install_lock

    with install_lock(root / "OpenTofu", displayer):
        if not version_dir.exists():
            retriever.install(version, version_dir)
"""

import logging
import signal
import sys
import threading
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Iterator, Optional

from filelock import SoftFileLock, Timeout as LockTimeout

from iacenv.core.display import Displayer, NullDisplayer
from iacenv.core.exceptions import LockWaitError

logger = logging.getLogger(__name__)

LOCK_FILE_NAME = ".lock"
DEFAULT_RETRY_DELAY = 1.0

_CLEANUP_SIGNALS = tuple(
    sig for sig in (signal.SIGINT, getattr(signal, "SIGTERM", None)) if sig is not None
)


class InstallLock:
    """
    Exclusive marker-file lock scoped to one tool directory.

    The underlying primitive is filelock's SoftFileLock, which creates the
    marker with O_CREAT|O_EXCL and deletes it on release.

    Attributes:
        directory: Tool directory holding the marker
        lock_path: Full path of the marker file
        retry_delay: Seconds between attempts while the marker exists
    """

    def __init__(
        self,
        directory: Path,
        displayer: Optional[Displayer] = None,
        retry_delay: float = DEFAULT_RETRY_DELAY,
    ):
        self.directory = Path(directory)
        self.lock_path = self.directory / LOCK_FILE_NAME
        self.retry_delay = retry_delay
        self.displayer = displayer or NullDisplayer()
        self._lock = SoftFileLock(str(self.lock_path))
        self._held = False
        self._guard = threading.Lock()

    @property
    def held(self) -> bool:
        return self._held

    def acquire(self) -> Callable[[], None]:
        """
        Block until the marker is created by this process.

        Returns:
            The release callable, safe to call more than once

        Raises:
            LockWaitError: If the marker cannot be created for a reason other
                than another holder (missing permissions, read-only disk)
        """
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise LockWaitError(f"Can not create lock directory {self.directory}: {e}") from e

        attempt = 0
        while True:
            try:
                self._lock.acquire(timeout=0)
                break
            except LockTimeout:
                # first contention is worth a warning, the rest is noise
                level = logging.WARNING if attempt == 0 else logging.INFO
                logger.log(
                    level,
                    f"Can not write {self.lock_path}, will retry in {self.retry_delay}s",
                )
                if attempt == 0:
                    self.displayer.display(
                        "Another install is running for this tool, waiting for it to finish"
                    )
                attempt += 1
                time.sleep(self.retry_delay)
            except OSError as e:
                raise LockWaitError(f"Can not write {self.lock_path}: {e}") from e

        with self._guard:
            self._held = True
        logger.debug(f"Acquired install lock: {self.lock_path}")
        return self.release

    def release(self) -> None:
        """Remove the marker. Calling it again after success is a no-op."""
        with self._guard:
            if not self._held:
                return
            self._held = False

        try:
            self._lock.release(force=True)
        except OSError as e:
            logger.warning(f"Failed to remove lock file {self.lock_path}: {e}")
            return
        logger.debug(f"Released install lock: {self.lock_path}")

    def __enter__(self) -> "InstallLock":
        self.acquire()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.release()


@contextmanager
def clean_on_signals(cleanup: Callable[[], None]) -> Iterator[None]:
    """
    Run cleanup then exit with status 1 if SIGINT or SIGTERM arrives.

    Previous handlers are restored when the block ends. Outside the main
    thread signal handlers cannot be installed and the block runs unguarded.

    Args:
        cleanup: Callable invoked before exiting on a signal
    """
    if threading.current_thread() is not threading.main_thread():
        yield
        return

    def _handler(signum, frame):
        logger.debug(f"Received signal {signum}, cleaning up")
        cleanup()
        sys.exit(1)

    previous = {}
    for sig in _CLEANUP_SIGNALS:
        previous[sig] = signal.signal(sig, _handler)
    try:
        yield
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)


@contextmanager
def install_lock(
    directory: Path,
    displayer: Optional[Displayer] = None,
    retry_delay: float = DEFAULT_RETRY_DELAY,
) -> Iterator[InstallLock]:
    """
    Hold the install lock of a tool directory for the duration of the block.

    The marker is removed on every exit path: normal return, exceptions,
    and interrupt or termination signals.

    Args:
        directory: Tool directory (``<root>/<folder>``)
        displayer: Display sink for the contention message
        retry_delay: Seconds between attempts while another holder exists

    Yields:
        The held InstallLock

    Raises:
        LockWaitError: If the marker cannot be created at all

    Example:
        >>> with install_lock(Path("/home/me/.tenv/Terraform")):
        ...     install_version()
    """
    lock = InstallLock(directory, displayer=displayer, retry_delay=retry_delay)
    release = lock.acquire()
    try:
        with clean_on_signals(release):
            yield lock
    finally:
        release()


__all__ = [
    "InstallLock",
    "install_lock",
    "clean_on_signals",
    "LockTimeout",
    "LOCK_FILE_NAME",
]
