"""
GitHub releases access and the retriever base for GitHub-hosted tools.

API payloads are decoded into small typed records; any missing or mistyped
field raises ResponseShapeError instead of yielding empty data.
"""

import logging
from abc import abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from iacenv.core.display import Displayer, NullDisplayer
from iacenv.core.download import HttpClient
from iacenv.core.exceptions import AssetNotFoundError, ResponseShapeError
from iacenv.retrievers import html
from iacenv.retrievers.base import (
    GITHUB_BASE_URL,
    MODE_API,
    MODE_DIRECT,
    MODE_HTML,
    MODE_MIRROR,
    RemoteAsset,
    Retriever,
)
from iacenv.versions.semantic import is_stable

logger = logging.getLogger(__name__)

GITHUB_API_URL = "https://api.github.com/repos"
GITHUB_API_VERSION = "2022-11-28"
PAGE_QUERY = "?page="


# ============================================================================
# Response schemas
# ============================================================================


def _field(obj: Any, key: str, context: str) -> str:
    if not isinstance(obj, dict):
        raise ResponseShapeError(f"Expected an object in {context}, got {type(obj).__name__}")
    value = obj.get(key)
    if not isinstance(value, str) or not value:
        raise ResponseShapeError(f"Missing or invalid '{key}' in {context}")
    return value


def _page(value: Any, context: str) -> List[Any]:
    if not isinstance(value, list):
        raise ResponseShapeError(f"Expected a list in {context}, got {type(value).__name__}")
    return value


@dataclass(frozen=True)
class ReleaseSummary:
    """One entry of ``GET /releases``."""

    tag_name: str

    @classmethod
    def from_json(cls, value: Any, context: str = "release list") -> "ReleaseSummary":
        return cls(tag_name=_field(value, "tag_name", context))

    @property
    def version(self) -> str:
        return self.tag_name[1:] if self.tag_name.startswith("v") else self.tag_name


@dataclass(frozen=True)
class ReleaseDetail:
    """``GET /releases/tags/<tag>``: only the assets URL is used."""

    tag_name: str
    assets_url: str

    @classmethod
    def from_json(cls, value: Any, context: str = "release") -> "ReleaseDetail":
        return cls(
            tag_name=_field(value, "tag_name", context),
            assets_url=_field(value, "assets_url", context),
        )


@dataclass(frozen=True)
class ReleaseAsset:
    """One entry of a release assets page."""

    name: str
    browser_download_url: str

    @classmethod
    def from_json(cls, value: Any, context: str = "assets") -> "ReleaseAsset":
        return cls(
            name=_field(value, "name", context),
            browser_download_url=_field(value, "browser_download_url", context),
        )


# ============================================================================
# API client
# ============================================================================


class GithubApi:
    """
    Minimal GitHub REST client for release listing and asset lookup.

    Attributes:
        http: HTTP client
        token: Optional token sent as a bearer Authorization header
    """

    def __init__(self, http: HttpClient, token: str = ""):
        self.http = http
        self.token = token

    @property
    def headers(self) -> Dict[str, str]:
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": GITHUB_API_VERSION,
        }
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _get(self, url: str) -> Any:
        return self.http.get_json(url, headers=self.headers)

    def list_releases(self, releases_url: str) -> List[str]:
        """
        Every release version, paging until an empty page.

        Args:
            releases_url: ``.../repos/<owner>/<repo>/releases``

        Returns:
            Versions with the leading ``v`` removed
        """
        versions = []
        page = 1
        while True:
            url = f"{releases_url}{PAGE_QUERY}{page}"
            entries = _page(self._get(url), url)
            if not entries:
                return versions
            versions.extend(ReleaseSummary.from_json(entry, url).version for entry in entries)
            page += 1

    def asset_urls(self, releases_url: str, tag: str, names: Sequence[str]) -> List[str]:
        """
        Download URLs of named assets of one release, in the order of names.

        Raises:
            AssetNotFoundError: If a name is missing once every page is read
            ResponseShapeError: On unexpected payloads
        """
        url = f"{releases_url}/tags/{tag}"
        release = ReleaseDetail.from_json(self._get(url), url)

        wanted = set(names)
        found: Dict[str, str] = {}
        page = 1
        while len(found) < len(wanted):
            assets_page_url = f"{release.assets_url}{PAGE_QUERY}{page}"
            entries = _page(self._get(assets_page_url), assets_page_url)
            if not entries:
                break
            for entry in entries:
                asset = ReleaseAsset.from_json(entry, assets_page_url)
                if asset.name in wanted:
                    found[asset.name] = asset.browser_download_url
            page += 1

        for name in names:
            if name not in found:
                raise AssetNotFoundError(name, tag)
        return [found[name] for name in names]


# ============================================================================
# Retriever base for GitHub-hosted tools
# ============================================================================


class GithubReleaseRetriever(Retriever):
    """
    Retriever for tools whose releases are published on GitHub.

    Subclasses set ``owner`` and ``repository`` and implement asset_names().
    The first asset name is the binary or archive, the second the checksums
    file; further names are signature material handled by verify().

    Install modes:
        - ``api`` (default unless a remote URL is configured): release lookup
          by tag through the REST API,
        - ``direct``: ``<url>/<owner>/<repo>/releases/download/<tag>/<name>``,
        - ``mirror``: only where a subclass implements mirror_urls().

    List modes: ``api`` (default), ``html``, and ``mirror`` where a subclass
    implements list_mirror().
    """

    owner: str = ""
    repository: str = ""

    def __init__(self, config, displayer: Optional[Displayer] = None, **kwargs):
        super().__init__(config, displayer or NullDisplayer(), **kwargs)
        self.api = GithubApi(self.http, config.github_token)

    @property
    def api_releases_url(self) -> str:
        return f"{GITHUB_API_URL}/{self.owner}/{self.repository}/releases"

    def tag(self, version: str) -> str:
        return "v" + version.lstrip("v")

    @abstractmethod
    def asset_names(self, version: str) -> List[str]:
        """Binary or archive name, checksums file name, then signature files."""

    def install_mode(self) -> str:
        # a custom remote without explicit mode is a plain mirror of the download host
        default = MODE_DIRECT if self.remote.url("") else MODE_API
        return self.remote.install_mode(default)

    def remote_url(self, mode: str) -> str:
        default = self.api_releases_url if mode == MODE_API else GITHUB_BASE_URL
        return self.remote.url(default)

    def mirror_urls(self, version: str, names: Sequence[str]) -> List[str]:
        raise self.unsupported_install_mode(MODE_MIRROR)

    def resolve_asset(self, version: str) -> RemoteAsset:
        """
        Build the URLs of every asset of a version according to the install mode.

        Raises:
            InstallModeError: Mode not supported by the tool
            AssetNotFoundError: API lookup did not find an asset
        """
        version = version.lstrip("v")
        tag = self.tag(version)
        names = self.asset_names(version)
        logger.debug(f"Searching assets {names}")

        mode = self.install_mode()
        if mode == MODE_DIRECT:
            base = f"{self.remote_url(mode)}/{self.owner}/{self.repository}/releases/download/{tag}"
            urls = [f"{base}/{name}" for name in names]
        elif mode == MODE_API:
            self.displayer.display(f"Fetching release information from {self.remote_url(mode)}")
            urls = self.api.asset_urls(self.remote_url(mode), tag, names)
        elif mode == MODE_MIRROR:
            urls = self.mirror_urls(version, names)
        else:
            raise self.unsupported_install_mode(mode)

        urls = self.rewrite_all(urls)
        return RemoteAsset(
            file_name=names[0],
            download_url=urls[0],
            checksum_file_url=urls[1],
            signature_urls=tuple(urls[2:]),
        )

    def verify(self, version: str, data: bytes, sums: bytes, asset: RemoteAsset) -> None:
        self.verifier.verify(data, asset.file_name, sums, stable=is_stable(version))

    def install(self, version: str, target_dir: Path) -> None:
        version = version.lstrip("v")
        asset = self.resolve_asset(version)
        data = self.fetch(asset.download_url)
        sums = self.fetch(asset.checksum_file_url)
        self.verify(version, data, sums, asset)
        self.unpack(data, asset.file_name, Path(target_dir))

    def list_url(self, mode: str) -> str:
        if mode == MODE_API:
            return self.remote.list_url(self.remote.url(self.api_releases_url))
        base = self.remote.list_url(self.remote.url(GITHUB_BASE_URL))
        return f"{base}/{self.owner}/{self.repository}/releases/download"

    def list_mirror(self) -> List[str]:
        raise self.unsupported_list_mode(MODE_MIRROR)

    def list_versions(self) -> List[str]:
        mode = self.remote.list_mode(MODE_API)
        if mode == MODE_MIRROR:
            return self.list_mirror()

        url = self.list_url(mode)
        self.displayer.display(f"Fetching all releases information from {url}")
        if mode == MODE_API:
            return self.api.list_releases(url)
        if mode == MODE_HTML:
            return html.list_releases(self.http, url, self.remote, self.remote.basic_auth())
        raise self.unsupported_list_mode(mode)


__all__ = [
    "GithubApi",
    "GithubReleaseRetriever",
    "ReleaseSummary",
    "ReleaseDetail",
    "ReleaseAsset",
    "GITHUB_API_URL",
]
