"""
Run a managed executable as a child process on behalf of the user.

The child inherits the standard streams. While it runs, a SignalRelay
forwards interrupts to it: the first one as an interrupt, any further one as
a kill. Its exit code becomes ours.

In GitHub Actions capture mode stdout and stderr are also copied into
buffers, and once the child exits they are appended with the exit code to
the file named by GITHUB_OUTPUT::

    stdout<<ghadelimeter_<random>
    ...
    ghadelimeter_<random>

The file is opened before the child starts. If it cannot be opened the
child runs without capture; if writing fails afterwards a successful child
still yields exit code 1.
"""

import io
import logging
import os
import queue
import signal
import subprocess
import sys
import threading
import uuid
from pathlib import Path
from typing import BinaryIO, List, Mapping, Optional, Sequence, TextIO, Tuple

from iacenv.core.exceptions import (
    OutputCollisionError,
    ProcessExitError,
    ProcessSpawnError,
)

logger = logging.getLogger(__name__)

IS_WINDOWS = sys.platform == "win32"

# terraform plan -detailed-exitcode uses 2 for "changes present"
PARTIAL_SUCCESS_CODE = 2
SPAWN_FAILURE_CODE = 1

DELIMITER_PREFIX = "ghadelimeter_"
OUTPUT_FILE_MODE = 0o600

_STOP = object()


class SignalRelay:
    """
    Background relay of interrupt signals to a child process.

    The handler installed in the main thread only enqueues the signal; a
    worker thread does the forwarding. The first signal is forwarded as
    SIGINT, the next ones kill the child. stop() ends the worker and
    restores the previous handlers.

    Attributes:
        process: Child to signal
        signals: Signals relayed (SIGINT and, where available, SIGTERM)
    """

    def __init__(self, process: subprocess.Popen, signals: Optional[Sequence[int]] = None):
        self.process = process
        if signals is None:
            signals = [signal.SIGINT]
            if hasattr(signal, "SIGTERM"):
                signals.append(signal.SIGTERM)
        self.signals = tuple(signals)
        self.received = 0
        self._queue: "queue.Queue[object]" = queue.Queue()
        self._thread: Optional[threading.Thread] = None
        self._previous = {}

    def _handler(self, signum, frame) -> None:
        self._queue.put(signum)

    def start(self) -> None:
        self._thread = threading.Thread(
            target=self._run, name="iacenv-signal-relay", daemon=True
        )
        self._thread.start()
        if threading.current_thread() is threading.main_thread():
            for sig in self.signals:
                self._previous[sig] = signal.signal(sig, self._handler)

    def notify(self, signum: int) -> None:
        """Relay a signal as if it had been received."""
        self._queue.put(signum)

    def _run(self) -> None:
        while True:
            item = self._queue.get()
            if item is _STOP:
                return
            self._relay(item)

    def _relay(self, signum: object) -> None:
        self.received += 1
        if self.process.poll() is not None:
            return
        try:
            if self.received == 1:
                logger.debug(f"Forwarding signal {signum} to process {self.process.pid}")
                self.process.send_signal(signal.SIGINT)
            else:
                logger.debug(f"Killing process {self.process.pid}")
                self.process.kill()
        except (OSError, ValueError) as e:
            logger.debug(f"Failed to signal process {self.process.pid}: {e}")

    def stop(self) -> None:
        for sig, handler in self._previous.items():
            signal.signal(sig, handler)
        self._previous = {}
        if self._thread is not None:
            self._queue.put(_STOP)
            self._thread.join()
            self._thread = None

    def __enter__(self) -> "SignalRelay":
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.stop()


def _tee(source: BinaryIO, sink: BinaryIO, buffer: io.BytesIO) -> None:
    for chunk in iter(lambda: source.read1(8192), b""):
        buffer.write(chunk)
        try:
            sink.write(chunk)
            sink.flush()
        except (OSError, ValueError) as e:
            logger.debug(f"Stopped copying output to terminal: {e}")
            sink = io.BytesIO()
    source.close()


def open_github_output(output_path: Path) -> TextIO:
    """Open a GitHub Actions output file for appending, creating it with mode 0600."""
    fd = os.open(output_path, os.O_WRONLY | os.O_APPEND | os.O_CREAT, OUTPUT_FILE_MODE)
    return open(fd, "a", encoding="utf-8")


def format_github_output(entries: Sequence[Tuple[str, str]], delimiter: str = "") -> str:
    """
    Heredoc-style text for multi-line GitHub Actions outputs.

    Args:
        entries: (key, value) pairs
        delimiter: Heredoc delimiter (random when empty)

    Raises:
        OutputCollisionError: If a key or value contains the delimiter
    """
    delimiter = delimiter or DELIMITER_PREFIX + uuid.uuid4().hex
    lines = []
    for key, value in entries:
        if delimiter in key or delimiter in value:
            raise OutputCollisionError(
                f"Output entry '{key}' contains the delimiter {delimiter}"
            )
        lines.append(f"{key}<<{delimiter}\n{value}\n{delimiter}\n")
    return "".join(lines)


def write_github_output(
    output_path: Path, entries: Sequence[Tuple[str, str]], delimiter: str = ""
) -> None:
    """
    Append multi-line entries to a GitHub Actions output file.

    Args:
        output_path: File named by GITHUB_OUTPUT (created with mode 0600)
        entries: (key, value) pairs
        delimiter: Heredoc delimiter (random when empty)

    Raises:
        OutputCollisionError: If a key or value contains the delimiter
        OSError: If the file cannot be written
    """
    text = format_github_output(entries, delimiter)
    with open_github_output(output_path) as f:
        f.write(text)


def exit_status(returncode: int) -> int:
    """Shell style status: a child killed by signal N gives 128 + N."""
    if returncode < 0:
        return 128 - returncode
    return returncode


class ProcessProxy:
    """
    Spawn an executable and pass its exit code through.

    Attributes:
        executable: Path of the program to run
        args: Arguments passed after the executable
        env: Child environment (inherited when None)
        cwd: Child working directory (inherited when None)
        github_output: GITHUB_OUTPUT path; enables capture when set
        detached: Start the child in its own session (ignored on Windows)

    Example:
        >>> proxy = ProcessProxy(Path("/home/me/.tenv/OpenTofu/1.6.2/tofu"), ["plan"])
        >>> proxy.run()
        0
    """

    def __init__(
        self,
        executable: Path,
        args: Sequence[str],
        env: Optional[Mapping[str, str]] = None,
        cwd: Optional[Path] = None,
        github_output: str = "",
        detached: bool = False,
    ):
        self.executable = Path(executable)
        self.args = list(args)
        self.env = dict(env) if env is not None else None
        self.cwd = cwd
        self.github_output = github_output
        self.detached = detached

    @property
    def capture(self) -> bool:
        return bool(self.github_output)

    @property
    def command(self) -> List[str]:
        return [str(self.executable), *self.args]

    def _spawn(self, capture: bool) -> subprocess.Popen:
        pipe = subprocess.PIPE if capture else None
        try:
            return subprocess.Popen(
                self.command,
                stdout=pipe,
                stderr=pipe,
                env=self.env,
                cwd=self.cwd,
                start_new_session=self.detached and not IS_WINDOWS,
            )
        except OSError as e:
            raise ProcessSpawnError(f"Failed to start {self.executable}: {e}") from e

    def _open_output(self) -> Optional[TextIO]:
        if not self.capture:
            return None
        try:
            return open_github_output(Path(self.github_output))
        except OSError as e:
            logger.warning(f"Ignore GITHUB_ACTIONS, fail to open GITHUB_OUTPUT: {e}")
            return None

    def run(self) -> int:
        """
        Run the child to completion.

        The output file is opened before the child starts; if it cannot be
        opened the child runs without capture.

        Returns:
            The child's exit code, or 1 when the child succeeded but its
            output could not be written

        Raises:
            ProcessSpawnError: If the executable cannot be started
            ProcessExitError: In capture mode, after writing the output file,
                when the exit code is neither 0 nor 2
        """
        logger.debug(f"Running {self.command}")
        output = self._open_output()
        try:
            process = self._spawn(capture=output is not None)
        except ProcessSpawnError:
            if output is not None:
                output.close()
            raise

        out_buffer, err_buffer = io.BytesIO(), io.BytesIO()
        readers = []
        with SignalRelay(process):
            if output is not None:
                readers = [
                    threading.Thread(
                        target=_tee,
                        args=(process.stdout, sys.stdout.buffer, out_buffer),
                        daemon=True,
                    ),
                    threading.Thread(
                        target=_tee,
                        args=(process.stderr, sys.stderr.buffer, err_buffer),
                        daemon=True,
                    ),
                ]
                for reader in readers:
                    reader.start()
            exit_code = exit_status(process.wait())
            for reader in readers:
                reader.join()

        logger.debug(f"{self.executable.name} exited with code {exit_code}")
        if output is None:
            return exit_code

        try:
            with output:
                output.write(
                    format_github_output(
                        [
                            ("stderr", err_buffer.getvalue().decode("utf-8", errors="replace")),
                            ("stdout", out_buffer.getvalue().decode("utf-8", errors="replace")),
                            ("exitcode", str(exit_code)),
                        ]
                    )
                )
        except (OSError, OutputCollisionError) as e:
            logger.error(f"Failed to write GITHUB_OUTPUT {self.github_output}: {e}")
            return exit_code or SPAWN_FAILURE_CODE

        if exit_code not in (0, PARTIAL_SUCCESS_CODE):
            raise ProcessExitError(exit_code)
        return exit_code


__all__ = [
    "ProcessProxy",
    "SignalRelay",
    "open_github_output",
    "format_github_output",
    "write_github_output",
    "PARTIAL_SUCCESS_CODE",
    "SPAWN_FAILURE_CODE",
]
