"""OpenTofu retriever: GitHub releases, cosign signed checksums, PGP fallback."""

import logging
from typing import Any, List, Sequence

from iacenv.core.exceptions import ConfigError, ResponseShapeError
from iacenv.core.verification import CosignMaterial, PgpMaterial
from iacenv.retrievers.base import RemoteAsset, load_public_key
from iacenv.retrievers.github import GithubReleaseRetriever
from iacenv.versions.semantic import is_stable, parse_version

logger = logging.getLogger(__name__)

GET_TOFU_URL = "https://get.opentofu.org"
DEFAULT_MIRROR_LIST_URL = f"{GET_TOFU_URL}/tofu/api.json"
PUBLIC_KEY_URL = f"{GET_TOFU_URL}/opentofu.asc"
DEFAULT_URL_TEMPLATE = (
    "https://github.com/opentofu/opentofu/releases/download/v{Version}/{Artifact}"
)

IDENTITY_PREFIX = (
    "https://github.com/opentofu/opentofu/.github/workflows/release.yml@refs/heads/"
)
UNSTABLE_IDENTITY = IDENTITY_PREFIX + "main"
ISSUER = "https://token.actions.githubusercontent.com"


def build_identity(version: str) -> str:
    """
    Certificate identity expected on the checksums signature.

    Example:
        >>> build_identity("1.6.2")
        'https://github.com/opentofu/opentofu/.github/workflows/release.yml@refs/heads/v1.6'
    """
    if not is_stable(version):
        return UNSTABLE_IDENTITY
    parsed = parse_version(version)
    if parsed is None:
        return UNSTABLE_IDENTITY
    return f"{IDENTITY_PREFIX}v{parsed.major}.{parsed.minor}"


def extract_mirror_versions(value: Any) -> List[str]:
    """
    Versions from the get.opentofu.org index: ``{"versions": [{"id": ...}]}``.

    Raises:
        ResponseShapeError: If the document does not have that shape
    """
    if not isinstance(value, dict) or not isinstance(value.get("versions"), list):
        raise ResponseShapeError("Mirror index has no 'versions' list")
    versions = []
    for entry in value["versions"]:
        if not isinstance(entry, dict) or not isinstance(entry.get("id"), str):
            raise ResponseShapeError("Mirror index entry has no 'id' string")
        versions.append(entry["id"])
    return versions


class TofuRetriever(GithubReleaseRetriever):
    name = "tofu"
    display_name = "OpenTofu"
    executable = "tofu"
    owner = "opentofu"
    repository = "opentofu"

    def asset_names(self, version: str) -> List[str]:
        sums = f"tofu_{version}_SHA256SUMS"
        names = [
            f"tofu_{version}_{self.platform.os}_{self.platform.arch}.zip",
            sums,
            sums + ".pem",
            sums + ".sig",
        ]
        if is_stable(version):
            names.append(sums + ".gpgsig")
        return names

    def mirror_urls(self, version: str, names: Sequence[str]) -> List[str]:
        template = self.remote.url_template(DEFAULT_URL_TEMPLATE)
        if "{Artifact}" not in template:
            raise ConfigError(f"URL template {template!r} has no {{Artifact}} placeholder")
        return [
            template.replace("{Version}", version).replace("{Artifact}", name)
            for name in names
        ]

    def list_mirror(self) -> List[str]:
        url = self.remote.list_url(DEFAULT_MIRROR_LIST_URL)
        self.displayer.display(f"Fetching all releases information from {url}")
        return extract_mirror_versions(
            self.http.get_json(url, auth=self.remote.basic_auth())
        )

    def public_key(self) -> bytes:
        return load_public_key(self, self.config.tofu_pgp_key_path, PUBLIC_KEY_URL)

    def verify(self, version: str, data: bytes, sums: bytes, asset: RemoteAsset) -> None:
        pem_url, sig_url = asset.signature_urls[0], asset.signature_urls[1]
        cosign = CosignMaterial(
            identity=build_identity(version),
            issuer=ISSUER,
            fetch_signature=lambda: self.fetch(sig_url),
            fetch_certificate=lambda: self.fetch(pem_url),
        )

        pgp = None
        if len(asset.signature_urls) > 2:
            gpgsig_url = asset.signature_urls[2]
            pgp = PgpMaterial(
                fetch_signature=lambda: self.fetch(gpgsig_url),
                fetch_key=self.public_key,
            )

        self.verifier.verify(
            data,
            asset.file_name,
            sums,
            stable=is_stable(version),
            cosign=cosign,
            pgp=pgp,
        )


__all__ = ["TofuRetriever", "build_identity", "extract_mirror_versions"]
