"""Atmos retriever: raw binaries on GitHub with a per-version checksums file."""

from typing import List

from iacenv.retrievers.github import GithubReleaseRetriever


class AtmosRetriever(GithubReleaseRetriever):
    name = "atmos"
    display_name = "Atmos"
    executable = "atmos"
    owner = "cloudposse"
    repository = "atmos"

    def asset_names(self, version: str) -> List[str]:
        platform = self.platform
        return [
            f"atmos_{version}_{platform.os}_{platform.arch}{platform.exe_suffix}",
            f"atmos_{version}_SHA256SUMS",
        ]


__all__ = ["AtmosRetriever"]
