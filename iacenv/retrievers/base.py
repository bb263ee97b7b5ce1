"""
Retriever contract shared by every managed tool.

A retriever knows where the releases of one tool live and how they are
packaged. It lists available versions and installs one version into a
directory, verifying what it downloads before anything is written there.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from iacenv.config.settings import Config, ToolRemoteConfig
from iacenv.core.display import Displayer, NullDisplayer
from iacenv.core.download import HttpClient
from iacenv.core.exceptions import ConfigError, InstallModeError
from iacenv.core.filesystem import extract_executables, write_executable
from iacenv.core.platform import PlatformInfo, detect_platform
from iacenv.core.verification import VerificationChain

logger = logging.getLogger(__name__)

MODE_DIRECT = "direct"
MODE_API = "api"
MODE_MIRROR = "mirror"
MODE_HTML = "html"

GITHUB_BASE_URL = "https://github.com"


@dataclass(frozen=True)
class RemoteAsset:
    """
    Concrete locations of one release asset, resolved before any download.

    Attributes:
        file_name: Published asset name, as listed in the checksums file
        download_url: Asset URL
        checksum_file_url: Checksums file URL
        signature_urls: Signature and certificate URLs, in retriever order
    """

    file_name: str
    download_url: str
    checksum_file_url: str
    signature_urls: Tuple[str, ...] = field(default_factory=tuple)


class Retriever(ABC):
    """
    Base class of the per-tool retrievers.

    Subclasses set ``name`` (registry key and remote configuration section),
    ``display_name`` and ``executable``, then implement install() and
    list_versions().

    Attributes:
        config: Runtime configuration
        displayer: Display sink
        http: HTTP client used for every request
        verifier: Checksum and signature chain
        platform: Target platform (architecture taken from the configuration)
    """

    name: str = ""
    display_name: str = ""
    executable: str = ""
    default_base_url: str = GITHUB_BASE_URL

    def __init__(
        self,
        config: Config,
        displayer: Optional[Displayer] = None,
        http: Optional[HttpClient] = None,
        verifier: Optional[VerificationChain] = None,
        platform: Optional[PlatformInfo] = None,
    ):
        self.config = config
        self.displayer = displayer or NullDisplayer()
        self.http = http or HttpClient()
        self.verifier = verifier or VerificationChain(
            displayer=self.displayer, skip_signature=config.skip_signature
        )
        self.platform = (platform or detect_platform()).with_arch(config.arch)

    @property
    def remote(self) -> ToolRemoteConfig:
        return self.config.remote(self.name)

    @property
    def executable_name(self) -> str:
        return self.platform.executable_name(self.executable)

    @abstractmethod
    def install(self, version: str, target_dir: Path) -> None:
        """
        Download, verify and unpack one version into target_dir.

        Raises:
            RetrievalError: Network, response shape or install mode failure
            VerificationError: Checksum or signature failure
            ArchiveError: Unpacking failure
        """

    @abstractmethod
    def list_versions(self) -> List[str]:
        """Versions published remotely, in no particular order."""

    # ------------------------------------------------------------------
    # helpers shared by subclasses
    # ------------------------------------------------------------------

    def fetch(self, url: str) -> bytes:
        """Download with the tool's basic auth, if configured."""
        self.displayer.display(f"Downloading {url}")
        return self.http.get_bytes(url, auth=self.remote.basic_auth())

    def rewrite_all(self, urls: Sequence[str]) -> List[str]:
        remote = self.remote
        return [remote.rewrite(url, self.default_base_url) for url in urls]

    def unpack(self, data: bytes, asset_name: str, target_dir: Path) -> None:
        """Extract the executable from an archive, or write a raw binary."""
        lowered = asset_name.lower()
        if lowered.endswith((".zip", ".tar.gz", ".tgz")):
            extract_executables(data, asset_name, target_dir, {self.executable_name})
        else:
            write_executable(data, target_dir, self.executable_name)
        logger.info(f"Installed {self.display_name} into {target_dir}")

    def unsupported_install_mode(self, mode: str) -> InstallModeError:
        return InstallModeError(
            f"Install mode '{mode}' is not supported for {self.display_name}"
        )

    def unsupported_list_mode(self, mode: str) -> InstallModeError:
        return InstallModeError(
            f"List mode '{mode}' is not supported for {self.display_name}"
        )


def load_public_key(retriever: Retriever, key_path: str, key_url: str) -> bytes:
    """
    PGP public key from a local file when configured, else downloaded.

    Raises:
        ConfigError: If the configured key file cannot be read
    """
    if key_path:
        path = Path(key_path).expanduser()
        try:
            return path.read_bytes()
        except OSError as e:
            raise ConfigError(f"Failed to read PGP key {path}: {e}") from e
    return retriever.fetch(key_url)


__all__ = [
    "Retriever",
    "load_public_key",
    "RemoteAsset",
    "MODE_DIRECT",
    "MODE_API",
    "MODE_MIRROR",
    "MODE_HTML",
    "GITHUB_BASE_URL",
]
