"""
Terraform retriever: HashiCorp releases host, PGP signed checksums.

The releases host publishes a JSON index per version::

    <remote>/terraform/<version>/index.json
    {"version": "1.6.0",
     "shasums": "terraform_1.6.0_SHA256SUMS",
     "shasums_signature": "terraform_1.6.0_SHA256SUMS.sig",
     "builds": [{"os": "linux", "arch": "amd64",
                 "filename": "terraform_1.6.0_linux_amd64.zip",
                 "url": "https://releases.hashicorp.com/..."}]}

and one for all versions at ``<remote>/terraform/index.json`` whose
``versions`` object is keyed by version.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Tuple

from iacenv.core.exceptions import AssetNotFoundError, ResponseShapeError
from iacenv.core.verification import PgpMaterial
from iacenv.retrievers import html
from iacenv.retrievers.base import (
    MODE_API,
    MODE_DIRECT,
    MODE_HTML,
    RemoteAsset,
    Retriever,
    load_public_key,
)

logger = logging.getLogger(__name__)

HASHICORP_URL = "https://releases.hashicorp.com"
PUBLIC_KEY_URL = "https://www.hashicorp.com/.well-known/pgp-key.txt"
INDEX_JSON = "index.json"
PRODUCT = "terraform"


def _text(obj: Any, key: str, context: str) -> str:
    value = obj.get(key) if isinstance(obj, dict) else None
    if not isinstance(value, str) or not value:
        raise ResponseShapeError(f"Missing or invalid '{key}' in {context}")
    return value


@dataclass(frozen=True)
class Build:
    os: str
    arch: str
    filename: str
    url: str


@dataclass(frozen=True)
class ReleaseIndex:
    """Decoded per-version index.json."""

    shasums: str
    shasums_signature: str
    builds: Tuple[Build, ...]

    @classmethod
    def from_json(cls, value: Any, context: str = "release index") -> "ReleaseIndex":
        builds = value.get("builds") if isinstance(value, dict) else None
        if not isinstance(builds, list):
            raise ResponseShapeError(f"Missing or invalid 'builds' in {context}")
        return cls(
            shasums=_text(value, "shasums", context),
            shasums_signature=_text(value, "shasums_signature", context),
            builds=tuple(
                Build(
                    os=_text(build, "os", context),
                    arch=_text(build, "arch", context),
                    filename=_text(build, "filename", context),
                    url=_text(build, "url", context),
                )
                for build in builds
            ),
        )

    def find_build(self, os_name: str, arch: str) -> Build:
        for build in self.builds:
            if build.os == os_name and build.arch == arch:
                return build
        raise AssetNotFoundError(f"{PRODUCT} build for {os_name}_{arch}")


def extract_index_versions(value: Any) -> List[str]:
    """Version keys of the product index.json."""
    versions = value.get("versions") if isinstance(value, dict) else None
    if not isinstance(versions, dict):
        raise ResponseShapeError("Missing or invalid 'versions' in product index")
    return list(versions)


class TerraformRetriever(Retriever):
    """
    Install modes: ``api`` (default, per-version index.json) and ``direct``
    (file names built locally). List modes: ``api`` (default, product
    index.json) and ``html`` (directory listing).
    """

    name = "tf"
    display_name = "Terraform"
    executable = "terraform"
    default_base_url = HASHICORP_URL

    def remote_url(self) -> str:
        return self.remote.url(HASHICORP_URL)

    def version_url(self, version: str) -> str:
        return f"{self.remote_url()}/{PRODUCT}/{version}"

    def resolve_asset(self, version: str) -> RemoteAsset:
        version = version.lstrip("v")
        base = self.version_url(version)
        mode = self.remote.install_mode(MODE_API)

        if mode == MODE_API:
            index_url = f"{base}/{INDEX_JSON}"
            self.displayer.display(f"Fetching release information from {index_url}")
            index = ReleaseIndex.from_json(
                self.http.get_json(index_url, auth=self.remote.basic_auth()), index_url
            )
            build = index.find_build(self.platform.os, self.platform.arch)
            file_name, download_url = build.filename, build.url
            sums_name, sig_name = index.shasums, index.shasums_signature
        elif mode == MODE_DIRECT:
            file_name = f"{PRODUCT}_{version}_{self.platform.os}_{self.platform.arch}.zip"
            download_url = f"{base}/{file_name}"
            sums_name = f"{PRODUCT}_{version}_SHA256SUMS"
            sig_name = sums_name + ".sig"
        else:
            raise self.unsupported_install_mode(mode)

        download_url, sums_url, sig_url = self.rewrite_all(
            [download_url, f"{base}/{sums_name}", f"{base}/{sig_name}"]
        )
        return RemoteAsset(
            file_name=file_name,
            download_url=download_url,
            checksum_file_url=sums_url,
            signature_urls=(sig_url,),
        )

    def install(self, version: str, target_dir: Path) -> None:
        asset = self.resolve_asset(version)
        data = self.fetch(asset.download_url)
        sums = self.fetch(asset.checksum_file_url)
        sig_url = asset.signature_urls[0]
        pgp = PgpMaterial(
            fetch_signature=lambda: self.fetch(sig_url),
            fetch_key=lambda: load_public_key(
                self, self.config.tf_pgp_key_path, PUBLIC_KEY_URL
            ),
        )
        self.verifier.verify(data, asset.file_name, sums, pgp=pgp)
        self.unpack(data, asset.file_name, Path(target_dir))

    def list_versions(self) -> List[str]:
        mode = self.remote.list_mode(MODE_API)
        base = self.remote.list_url(self.remote_url())
        if mode == MODE_API:
            url = f"{base}/{PRODUCT}/{INDEX_JSON}"
            self.displayer.display(f"Fetching all releases information from {url}")
            return extract_index_versions(
                self.http.get_json(url, auth=self.remote.basic_auth())
            )
        if mode == MODE_HTML:
            url = f"{base}/{PRODUCT}"
            self.displayer.display(f"Fetching all releases information from {url}")
            return html.list_releases(self.http, url, self.remote, self.remote.basic_auth())
        raise self.unsupported_list_mode(mode)


__all__ = ["TerraformRetriever", "ReleaseIndex", "extract_index_versions"]
