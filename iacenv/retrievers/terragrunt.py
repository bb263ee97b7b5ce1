"""Terragrunt retriever: raw binaries on GitHub, checked against SHA256SUMS."""

from typing import List

from iacenv.retrievers.github import GithubReleaseRetriever


class TerragruntRetriever(GithubReleaseRetriever):
    name = "tg"
    display_name = "Terragrunt"
    executable = "terragrunt"
    owner = "gruntwork-io"
    repository = "terragrunt"

    def asset_names(self, version: str) -> List[str]:
        binary = f"terragrunt_{self.platform.os}_{self.platform.arch}{self.platform.exe_suffix}"
        return [binary, "SHA256SUMS"]


__all__ = ["TerragruntRetriever"]
