"""
User-facing display collaborator.

A Displayer is created once per invocation and passed explicitly to the
version manager, resolvers, retrievers and proxy. It separates messages
meant for the user (written to stderr so that proxied stdout stays clean)
from operational log records, and it can hold diagnostics back until the
caller decides to flush them.

Usage:
    from iacenv.core.display import Displayer, NullDisplayer

    displayer = Displayer(quiet=False)
    displayer.queue("No version files found, fallback to latest-stable")
    displayer.flush()
"""

import logging
import sys
from typing import List, Optional, TextIO


class Displayer:
    """
    Explicit display sink for user messages and deferred diagnostics.

    Attributes:
        quiet: Suppress user messages (diagnostics still reach the logger)
        logger: Logger receiving every message at DEBUG level
    """

    def __init__(
        self,
        quiet: bool = False,
        stream: Optional[TextIO] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.quiet = quiet
        self._stream = stream
        self.logger = logger or logging.getLogger("iacenv")
        self._pending: List[str] = []

    @property
    def stream(self) -> TextIO:
        # resolved lazily so pytest capture replacements are honored
        return self._stream if self._stream is not None else sys.stderr

    def display(self, message: str) -> None:
        """Show a message to the user unless quiet."""
        self.logger.debug(message)
        if not self.quiet:
            print(message, file=self.stream)

    def queue(self, message: str) -> None:
        """Hold a diagnostic until the next flush()."""
        self._pending.append(message)

    def flush(self) -> List[str]:
        """
        Emit and clear held diagnostics.

        Returns:
            The diagnostics that were emitted, in order
        """
        pending, self._pending = self._pending, []
        for message in pending:
            self.display(message)
        return pending

    @property
    def pending(self) -> List[str]:
        return list(self._pending)

    def warning(self, message: str) -> None:
        self.logger.warning(message)
        if not self.quiet:
            print(f"Warning: {message}", file=self.stream)

    def alert(self, message: str) -> None:
        """Warn about a weakened security check; shown even when quiet."""
        self.logger.debug(message)
        print(f"Warning: {message}", file=self.stream)


class NullDisplayer(Displayer):
    """Displayer that records nothing and prints nothing."""

    def __init__(self):
        super().__init__(quiet=True, logger=logging.getLogger("iacenv.null"))

    def display(self, message: str) -> None:
        pass

    def queue(self, message: str) -> None:
        pass

    def warning(self, message: str) -> None:
        pass

    def alert(self, message: str) -> None:
        pass


__all__ = ["Displayer", "NullDisplayer"]
