"""Terramate retriever: GitHub archives named after GoReleaser conventions."""

from typing import List

from iacenv.retrievers.github import GithubReleaseRetriever

# GoReleaser archive architecture names
ARCH_NAMES = {
    "amd64": "x86_64",
    "386": "i386",
}


class TerramateRetriever(GithubReleaseRetriever):
    name = "tm"
    display_name = "Terramate"
    executable = "terramate"
    owner = "terramate-io"
    repository = "terramate"

    def asset_names(self, version: str) -> List[str]:
        arch = ARCH_NAMES.get(self.platform.arch, self.platform.arch)
        ext = ".zip" if self.platform.is_windows else ".tar.gz"
        return [f"terramate_{version}_{self.platform.os}_{arch}{ext}", "checksums.txt"]


__all__ = ["TerramateRetriever", "ARCH_NAMES"]
