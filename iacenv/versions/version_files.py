"""
Discovery of the version a project asks for.

A tool's version can be pinned by several kinds of files:

- flat files holding only the version (``.terraform-version``),
- asdf ``.tool-versions`` files (``terraform 1.6.2`` lines),
- ``.tgswitch.toml`` with a ``version`` key,
- ``terragrunt.hcl`` constraint attributes.

``retrieve_version`` walks from the working directory up to the filesystem
root, then the user home, then the install root, and returns the first
non-empty value. Absent files are silently skipped; malformed structured
files are skipped with a warning.
"""

import json
import logging
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Mapping, Optional, Sequence

from iacenv.core.display import Displayer, NullDisplayer
from iacenv.core.exceptions import ResolutionError
from iacenv.versions.iac import (
    TERRAFORM_VERSION_CONSTRAINT,
    TERRAGRUNT_VERSION_CONSTRAINT,
    extract_attribute,
    parse_hcl_file,
)

logger = logging.getLogger(__name__)

TOOL_VERSIONS_FILE = ".tool-versions"
TGSWITCH_TOML_FILE = ".tgswitch.toml"
TERRAGRUNT_HCL_FILE = "terragrunt.hcl"
TERRAGRUNT_JSON_FILE = "terragrunt.hcl.json"

Parser = Callable[[Path, Displayer], str]


def _read_text(path: Path) -> Optional[str]:
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    except OSError as e:
        logger.warning(f"Failed to read {path}: {e}")
        return None


def _detected(displayer: Displayer, version: str, path: Path) -> str:
    displayer.display(f"Resolved version from {path} : {version}")
    return version


def read_flat(path: Path, displayer: Displayer) -> str:
    """Trimmed content of a plain version file, empty if absent."""
    content = _read_text(path)
    if content is None:
        return ""
    version = content.strip()
    return _detected(displayer, version, path) if version else ""


def asdf_parser(tool_name: str) -> Parser:
    """
    Build a parser for asdf ``.tool-versions`` files.

    The last line naming the tool wins; comments start with ``#``.
    """

    def parse(path: Path, displayer: Displayer) -> str:
        content = _read_text(path)
        if content is None:
            return ""

        resolved = ""
        for line in content.splitlines():
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            parts = line.split()
            if len(parts) >= 2 and parts[0] == tool_name:
                resolved = parts[1].split("#", 1)[0]

        return _detected(displayer, resolved, path) if resolved else ""

    return parse


def read_tgswitch_toml(path: Path, displayer: Displayer) -> str:
    """Value of the top-level ``version`` key of a tgswitch TOML file."""
    content = _read_text(path)
    if content is None:
        return ""
    try:
        data = tomllib.loads(content)
    except tomllib.TOMLDecodeError as e:
        logger.warning(f"Failed to parse {path}: {e}")
        return ""

    version = data.get("version")
    if not isinstance(version, str) or not version.strip():
        return ""
    return _detected(displayer, version.strip(), path)


def terragrunt_parser(attribute: str) -> Parser:
    """
    Build a parser reading a constraint attribute from terragrunt.hcl files.

    Works for the HCL and the JSON flavour, chosen by file name.
    """

    def parse(path: Path, displayer: Displayer) -> str:
        if not path.is_file():
            return ""
        try:
            if path.name.endswith(".json"):
                data = json.loads(path.read_text(encoding="utf-8"))
            else:
                data = parse_hcl_file(path)
        except (ResolutionError, OSError, ValueError) as e:
            logger.warning(f"Failed to parse {path}: {e}")
            return ""
        if not isinstance(data, dict):
            return ""

        values = extract_attribute(data, attribute)
        if not values:
            return ""
        return _detected(displayer, values[0], path)

    return parse


@dataclass(frozen=True)
class VersionFile:
    """A file name to look for and how to read a version out of it."""

    name: str
    parser: Parser


def tofu_version_files() -> Sequence[VersionFile]:
    return (
        VersionFile(".opentofu-version", read_flat),
        VersionFile(TOOL_VERSIONS_FILE, asdf_parser("opentofu")),
        VersionFile(TERRAGRUNT_HCL_FILE, terragrunt_parser(TERRAFORM_VERSION_CONSTRAINT)),
        VersionFile(TERRAGRUNT_JSON_FILE, terragrunt_parser(TERRAFORM_VERSION_CONSTRAINT)),
    )


def tf_version_files() -> Sequence[VersionFile]:
    return (
        VersionFile(".terraform-version", read_flat),
        VersionFile(".tfswitchrc", read_flat),
        VersionFile(TOOL_VERSIONS_FILE, asdf_parser("terraform")),
        VersionFile(TERRAGRUNT_HCL_FILE, terragrunt_parser(TERRAFORM_VERSION_CONSTRAINT)),
        VersionFile(TERRAGRUNT_JSON_FILE, terragrunt_parser(TERRAFORM_VERSION_CONSTRAINT)),
    )


def tg_version_files() -> Sequence[VersionFile]:
    return (
        VersionFile(".terragrunt-version", read_flat),
        VersionFile(".tgswitchrc", read_flat),
        VersionFile(TGSWITCH_TOML_FILE, read_tgswitch_toml),
        VersionFile(TOOL_VERSIONS_FILE, asdf_parser("terragrunt")),
        VersionFile(TERRAGRUNT_HCL_FILE, terragrunt_parser(TERRAGRUNT_VERSION_CONSTRAINT)),
        VersionFile(TERRAGRUNT_JSON_FILE, terragrunt_parser(TERRAGRUNT_VERSION_CONSTRAINT)),
    )


def tm_version_files() -> Sequence[VersionFile]:
    return (
        VersionFile(".terramate-version", read_flat),
        VersionFile(TOOL_VERSIONS_FILE, asdf_parser("terramate")),
    )


def atmos_version_files() -> Sequence[VersionFile]:
    return (
        VersionFile(".atmos-version", read_flat),
        VersionFile(TOOL_VERSIONS_FILE, asdf_parser("atmos")),
    )


def _from_dir(
    version_files: Sequence[VersionFile], directory: Path, displayer: Displayer
) -> str:
    for version_file in version_files:
        version = version_file.parser(directory / version_file.name, displayer)
        if version:
            return version
    return ""


def retrieve_version(
    version_files: Sequence[VersionFile],
    work_path: Path,
    user_path: Path,
    root_version_file: Path,
    env_name: str = "",
    environ: Optional[Mapping[str, str]] = None,
    displayer: Optional[Displayer] = None,
) -> str:
    """
    Find the requested version for a tool.

    Order: the env variable ``env_name``, then every directory from
    work_path up to the filesystem root, then user_path when the walk did not
    cross it, then root_version_file.

    Args:
        version_files: Files to look for in each directory, in priority order
        work_path: Starting directory
        user_path: User home directory
        root_version_file: ``<root>/<folder>/version``
        env_name: Environment variable overriding every file
        environ: Environment mapping (defaults to an empty mapping)
        displayer: Display sink for "Resolved version from" messages

    Returns:
        The first non-empty value, or an empty string
    """
    displayer = displayer or NullDisplayer()
    environ = environ or {}

    if env_name:
        from_env = environ.get(env_name, "").strip()
        if from_env:
            displayer.display(f"Resolved version from {env_name} : {from_env}")
            return from_env

    work_path = Path(work_path).absolute()
    user_path = Path(user_path).absolute()

    user_path_done = False
    for directory in (work_path, *work_path.parents):
        version = _from_dir(version_files, directory, displayer)
        if version:
            return version
        if directory == user_path:
            user_path_done = True

    if not user_path_done:
        version = _from_dir(version_files, user_path, displayer)
        if version:
            return version

    return read_flat(Path(root_version_file), displayer)


__all__ = [
    "VersionFile",
    "read_flat",
    "asdf_parser",
    "read_tgswitch_toml",
    "terragrunt_parser",
    "tofu_version_files",
    "tf_version_files",
    "tg_version_files",
    "tm_version_files",
    "atmos_version_files",
    "retrieve_version",
]
