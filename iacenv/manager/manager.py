"""
Version manager: resolve, install, select and remove versions of one tool.

Resolution goes request -> predicate -> local search -> remote search ->
install. Installs run under the tool directory lock and re-check the version
directory once the lock is held, so concurrent processes never unpack the
same version twice. A version is unpacked into a staging directory and
renamed into place, so ``<root>/<folder>/<version>`` is either absent or
complete.
"""

import datetime
import logging
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING, Iterable, List, Optional, Tuple

from iacenv.config.settings import Config
from iacenv.core.display import Displayer, NullDisplayer
from iacenv.core.exceptions import IacEnvError, NoCompatibleVersionError, ResolutionError
from iacenv.core.filesystem import atomic_write, safe_rmtree
from iacenv.core.locking import DEFAULT_RETRY_DELAY, clean_on_signals, install_lock
from iacenv.retrievers.base import Retriever
from iacenv.versions.finder import clean_version, is_valid_version
from iacenv.versions.lastuse import read_last_use
from iacenv.versions.predicate import (
    PredicateInfo,
    parse_predicate,
    read_default_constraint,
)
from iacenv.versions.semantic import Constraints, sort_versions
from iacenv.versions.uninstall import select_versions_to_uninstall
from iacenv.versions.version_files import read_flat, retrieve_version

if TYPE_CHECKING:
    from iacenv.manager.builder import ToolDescriptor

logger = logging.getLogger(__name__)

VERSION_FILE_NAME = "version"
CONSTRAINT_FILE_NAME = "constraint"
STAGING_PREFIX = ".tmp-"


class VersionManager:
    """
    Orchestrates version operations for one tool.

    Attributes:
        config: Runtime configuration
        descriptor: Static description of the tool
        retriever: Remote access for the tool
        displayer: Display sink; queued diagnostics are flushed before any
            result or error reaches the caller
        lock_retry_delay: Seconds between install lock attempts

    Example:
        >>> manager = build_manager("tf", config, displayer)
        >>> manager.install("~> 1.6")
        '1.6.6'
    """

    def __init__(
        self,
        config: Config,
        descriptor: "ToolDescriptor",
        retriever: Retriever,
        displayer: Optional[Displayer] = None,
        lock_retry_delay: float = DEFAULT_RETRY_DELAY,
    ):
        self.config = config
        self.descriptor = descriptor
        self.retriever = retriever
        self.displayer = displayer or NullDisplayer()
        self.lock_retry_delay = lock_retry_delay

    # ------------------------------------------------------------------
    # paths
    # ------------------------------------------------------------------

    @property
    def install_path(self) -> Path:
        return self.config.root_path / self.descriptor.folder_name

    @property
    def root_version_file(self) -> Path:
        return self.install_path / VERSION_FILE_NAME

    @property
    def constraint_file(self) -> Path:
        return self.install_path / CONSTRAINT_FILE_NAME

    @property
    def display_name(self) -> str:
        return self.descriptor.display_name

    def version_dir(self, version: str) -> Path:
        return self.install_path / version

    def executable_path(self, version: str) -> Path:
        return self.version_dir(version) / self.retriever.executable_name

    def is_installed(self, version: str) -> bool:
        return self.version_dir(version).is_dir()

    # ------------------------------------------------------------------
    # resolution
    # ------------------------------------------------------------------

    def default_constraint(self) -> str:
        return read_default_constraint(
            self.descriptor.default_constraint_env,
            self.constraint_file,
            self.config.environ,
        )

    def resolve(self, default_strategy: str = "") -> str:
        """
        Requested version from env variable and version files.

        Falls back to the tool's default version env variable, then to
        default_strategy (or the tool's default strategy), and queues a
        diagnostic saying so.
        """
        requested = retrieve_version(
            self.descriptor.version_files(),
            self.config.work_path,
            self.config.user_path,
            self.root_version_file,
            env_name=self.descriptor.version_env,
            environ=self.config.environ,
            displayer=self.displayer,
        )
        if requested:
            return requested

        fallback = (
            self.config.environ.get(self.descriptor.default_version_env, "").strip()
            or default_strategy
            or self.descriptor.default_strategy
        )
        self.displayer.queue(
            f"No version files found for {self.display_name}, fallback to {fallback} strategy"
        )
        return fallback

    def predicate(self, requested: str) -> PredicateInfo:
        info = parse_predicate(
            requested,
            display_name=self.display_name,
            default_constraint=self.default_constraint(),
            scanner=self.descriptor.scanner(),
            work_path=self.config.work_path,
            displayer=self.displayer,
        )
        for note in info.diagnostics:
            self.displayer.queue(note)
        return info

    def evaluate(self, requested: str, install: bool = True) -> str:
        """
        Find the version matching a request, installing it when allowed.

        Args:
            requested: Exact version, strategy keyword, regex shortcut or
                constraint expression
            install: When False, a version that would need installing is
                reported and NoCompatibleVersionError raised instead

        Returns:
            The selected version

        Raises:
            ResolutionError: Malformed request or project file
            NoCompatibleVersionError: Nothing matches, or install refused
            RetrievalError, VerificationError, ArchiveError: Install failures
        """
        try:
            return self._evaluate(requested, install)
        finally:
            self.displayer.flush()

    def _evaluate(self, requested: str, install: bool) -> str:
        info = self.predicate(requested)

        if info.exact is not None:
            if self.is_installed(info.exact):
                self.displayer.display(
                    f"{self.display_name} {info.exact} already installed"
                )
                return info.exact
            return self._install_or_refuse(info.exact, install)

        if not self.config.force_remote:
            found = info.select(self.list_local())
            if found is not None:
                self.displayer.display(
                    f"Found compatible version installed locally : {found}"
                )
                return found
            self.displayer.display("No compatible version found locally, search a remote one...")

        found = info.select(self.list_remote())
        if found is None:
            raise NoCompatibleVersionError(
                f"No compatible {self.display_name} version found for '{requested}'"
            )
        self.displayer.display(f"Found compatible version remotely : {found}")
        if self.is_installed(found):
            return found
        return self._install_or_refuse(found, install)

    def _install_or_refuse(self, version: str, install: bool) -> str:
        if not install:
            raise NoCompatibleVersionError(
                f"{self.display_name} {version} is not installed and auto install is disabled"
            )
        self.install_specific(version)
        return version

    # ------------------------------------------------------------------
    # operations
    # ------------------------------------------------------------------

    def detect(self, default_strategy: str = "") -> str:
        """
        Version to run in the current context.

        Installs it when auto install is enabled.
        """
        try:
            requested = self.resolve(default_strategy)
        except IacEnvError:
            self.displayer.flush()
            raise
        return self.evaluate(requested, install=self.config.auto_install)

    def install(self, requested: str = "") -> str:
        """Resolve a request (or the detected one when empty) and install it."""
        if not requested:
            try:
                requested = self.resolve()
            except IacEnvError:
                self.displayer.flush()
                raise
        return self.evaluate(requested, install=True)

    def install_specific(self, version: str) -> None:
        """
        Install one concrete version unless present.

        The version directory is checked again once the lock is held. The
        retriever unpacks into a staging directory that is renamed into
        place only after a full success.
        """
        target = self.version_dir(version)
        if target.is_dir():
            self.displayer.display(f"{self.display_name} {version} already installed")
            return

        self.install_path.mkdir(parents=True, exist_ok=True)
        with install_lock(self.install_path, self.displayer, self.lock_retry_delay):
            if target.is_dir():
                self.displayer.display(f"{self.display_name} {version} already installed")
                return

            self.displayer.display(f"Installing {self.display_name} {version}")
            staging = Path(
                tempfile.mkdtemp(prefix=f"{STAGING_PREFIX}{version}-", dir=self.install_path)
            )

            def discard_staging() -> None:
                safe_rmtree(staging, require_prefix=self.install_path)

            try:
                with clean_on_signals(discard_staging):
                    self.retriever.install(version, staging)
                    staging.rename(target)
            except BaseException:
                discard_staging()
                raise

        self.displayer.display(f"Installation of {self.display_name} {version} successful")

    def use(self, requested: str, working_dir: bool = False) -> str:
        """
        Resolve and install a version, then pin it.

        Args:
            requested: Version request
            working_dir: Pin in the working directory's flat version file
                instead of the root version file

        Returns:
            The pinned version
        """
        version = self.evaluate(requested, install=True)
        if working_dir:
            target = self.config.work_path / self.descriptor.flat_version_file
        else:
            target = self.root_version_file
        atomic_write(target, version)
        self.displayer.display(f"Written {version} in {target}")
        return version

    def uninstall(self, requested: str) -> List[str]:
        """
        Remove a version, or every version matched by a selector.

        Args:
            requested: Exact version, ``all``, ``but-last``,
                ``not-used-for:<N>d|m``, ``not-used-since:<date>`` or a
                constraint expression

        Returns:
            Removed versions
        """
        requested = requested.strip()
        if is_valid_version(requested):
            return self.uninstall_multiple([requested])

        selected = select_versions_to_uninstall(
            requested, self.install_path, self.list_local(descending=True)
        )
        if not selected:
            self.displayer.display(f"No {self.display_name} version to uninstall for '{requested}'")
            return []
        return self._remove_installed(selected)

    def uninstall_multiple(self, versions: Iterable[str]) -> List[str]:
        """
        Remove explicitly listed versions.

        Every entry is validated before anything is removed.

        Raises:
            ResolutionError: If an entry is not a version
        """
        cleaned = []
        for version in versions:
            version = version.strip()
            if not is_valid_version(version):
                raise ResolutionError(f"Invalid version to uninstall: '{version}'")
            cleaned.append(clean_version(version))
        return self._remove_installed(cleaned)

    def _remove_installed(self, names: Iterable[str]) -> List[str]:
        """Remove version directories by name; missing ones are reported and skipped."""
        removed = []
        for version in names:
            target = self.version_dir(version)
            if not target.is_dir():
                self.displayer.display(f"{self.display_name} {version} is not installed")
                continue
            with install_lock(self.install_path, self.displayer, self.lock_retry_delay):
                safe_rmtree(target, require_prefix=self.install_path)
            self.displayer.display(f"Uninstallation of {self.display_name} {version} successful")
            removed.append(version)
        return removed

    def reset(self) -> bool:
        """
        Remove the root version file.

        Returns:
            True if a file was removed
        """
        try:
            self.root_version_file.unlink()
        except FileNotFoundError:
            self.displayer.display(f"No {self.root_version_file} to remove")
            return False
        self.displayer.display(f"Removed {self.root_version_file}")
        return True

    def root_version(self) -> str:
        return read_flat(self.root_version_file, NullDisplayer())

    def set_constraint(self, expression: str) -> None:
        """
        Persist the default constraint of the tool.

        Raises:
            ResolutionError: If the expression is not a valid constraint
        """
        expression = expression.strip()
        Constraints.parse(expression)
        atomic_write(self.constraint_file, expression)
        self.displayer.display(f"Written {expression} in {self.constraint_file}")

    def reset_constraint(self) -> bool:
        try:
            self.constraint_file.unlink()
        except FileNotFoundError:
            return False
        self.displayer.display(f"Removed {self.constraint_file}")
        return True

    # ------------------------------------------------------------------
    # listings
    # ------------------------------------------------------------------

    def list_local(self, descending: bool = False) -> List[str]:
        """Installed versions, sorted; staging and hidden entries ignored."""
        try:
            entries = list(self.install_path.iterdir())
        except FileNotFoundError:
            return []
        versions = [
            entry.name
            for entry in entries
            if entry.is_dir() and not entry.name.startswith(".")
        ]
        return sort_versions(versions, descending=descending)

    def local_details(self, descending: bool = False) -> List[Tuple[str, datetime.date]]:
        """(version, last use date) pairs of installed versions."""
        return [
            (version, read_last_use(self.version_dir(version)))
            for version in self.list_local(descending=descending)
        ]

    def list_remote(self, descending: bool = False) -> List[str]:
        """Remote versions, sorted; duplicates removed."""
        versions = self.retriever.list_versions()
        logger.debug(f"Retrieved {len(versions)} {self.display_name} versions")
        return sort_versions(dict.fromkeys(versions), descending=descending)


__all__ = ["VersionManager", "VERSION_FILE_NAME", "CONSTRAINT_FILE_NAME"]
