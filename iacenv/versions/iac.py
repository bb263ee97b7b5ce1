"""
Scan a project directory for declared version constraints.

Terraform and OpenTofu projects declare the CLI version they accept in a
``terraform { required_version = "..." }`` block; Terragrunt projects carry a
top-level ``terragrunt_version_constraint`` attribute. This module reads
those declarations from the files of a single directory (no recursion).

Files are grouped by stem across an ordered list of extensions, and only the
most preferred extension present for a stem is parsed: with ``main.tofu``
and ``main.tf`` side by side, only ``main.tofu`` is read.
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence

import hcl2

from iacenv.core.display import Displayer, NullDisplayer
from iacenv.core.exceptions import ResolutionError

logger = logging.getLogger(__name__)

TERRAFORM_BLOCK = "terraform"
REQUIRED_VERSION = "required_version"
TERRAFORM_VERSION_CONSTRAINT = "terraform_version_constraint"
TERRAGRUNT_VERSION_CONSTRAINT = "terragrunt_version_constraint"


def parse_hcl_file(path: Path) -> Dict[str, Any]:
    """
    Parse an HCL file into python-hcl2's dict form.

    Raises:
        ResolutionError: If the file cannot be read or is not valid HCL
    """
    try:
        text = path.read_text(encoding="utf-8")
        return hcl2.loads(text)
    except OSError as e:
        raise ResolutionError(f"Failed to read {path}: {e}") from e
    except Exception as e:
        # python-hcl2 surfaces lark parse errors of several types
        raise ResolutionError(f"Failed to parse {path}: {e}") from e


def parse_json_file(path: Path) -> Dict[str, Any]:
    """
    Parse a JSON-syntax configuration file (``.tf.json`` and friends).

    Raises:
        ResolutionError: If the file cannot be read or is not a JSON object
    """
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ResolutionError(f"Failed to read {path}: {e}") from e
    except ValueError as e:
        raise ResolutionError(f"Failed to parse {path}: {e}") from e
    if not isinstance(data, dict):
        raise ResolutionError(f"Failed to parse {path}: top level is not an object")
    return data


@dataclass(frozen=True)
class ExtDescription:
    """A file suffix and the parser for files carrying it."""

    value: str
    parser: Callable[[Path], Dict[str, Any]]


HCL = parse_hcl_file
JSON = parse_json_file

TOFU_EXTS = (
    ExtDescription(".tofu", HCL),
    ExtDescription(".tofu.json", JSON),
    ExtDescription(".tf", HCL),
    ExtDescription(".tf.json", JSON),
)
TF_EXTS = (
    ExtDescription(".tf", HCL),
    ExtDescription(".tf.json", JSON),
)
TERRAGRUNT_EXTS = (
    ExtDescription("terragrunt.hcl", HCL),
    ExtDescription("terragrunt.hcl.json", JSON),
)


def _as_blocks(value: Any) -> List[Dict[str, Any]]:
    if isinstance(value, dict):
        return [value]
    if isinstance(value, list):
        return [item for item in value if isinstance(item, dict)]
    return []


def attribute_string(value: Any) -> Optional[str]:
    """
    Convert a parsed attribute value to a plain string.

    Returns None for null values and for expressions that cannot be
    evaluated statically (interpolations, references).
    """
    if value is None:
        return None
    if isinstance(value, list) and len(value) == 1:
        value = value[0]
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return str(value)
    if not isinstance(value, str):
        return None

    text = value.strip()
    if len(text) >= 2 and text[0] == '"' and text[-1] == '"':
        text = text[1:-1]
    if "${" in text:
        return None
    return text


def extract_attribute(
    data: Dict[str, Any], attribute: str, block: Optional[str] = None
) -> List[str]:
    """
    Collect the string values of attribute, at top level or inside every block.

    Example:
        >>> extract_attribute({"terraform": [{"required_version": ">= 1.5"}]},
        ...                   "required_version", block="terraform")
        ['>= 1.5']
    """
    bodies = [data] if block is None else _as_blocks(data.get(block))

    values = []
    for body in bodies:
        if attribute not in body:
            continue
        text = attribute_string(body[attribute])
        if text is None:
            logger.warning(f"Ignoring non static value for {attribute}")
            continue
        if text:
            values.append(text)
    return values


class IacScanner:
    """
    Gathers constraint declarations from the files of one directory.

    Attributes:
        exts: Ordered extension descriptions, most preferred first
        attribute: Attribute holding the constraint
        block: Enclosing block type, or None for a top-level attribute
    """

    def __init__(
        self,
        exts: Sequence[ExtDescription],
        attribute: str = REQUIRED_VERSION,
        block: Optional[str] = TERRAFORM_BLOCK,
    ):
        self.exts = tuple(exts)
        self.attribute = attribute
        self.block = block

    def select_files(self, work_path: Path) -> List[Path]:
        """
        Pick one file per stem: the one with the most preferred extension.

        Returns:
            Selected files sorted by name
        """
        work_path = Path(work_path)
        try:
            entries = sorted(work_path.iterdir())
        except OSError as e:
            raise ResolutionError(f"Failed to list {work_path}: {e}") from e

        found: Dict[str, int] = {}
        for entry in entries:
            if entry.is_dir():
                continue
            name = entry.name
            # an extension like ".tf" must not claim "main.tf.json"
            for index, ext in sorted(
                enumerate(self.exts), key=lambda item: -len(item[1].value)
            ):
                if name.endswith(ext.value):
                    stem = name[: -len(ext.value)]
                    previous = found.get(stem)
                    if previous is None or index < previous:
                        found[stem] = index
                    break

        return [
            work_path / (stem + self.exts[index].value)
            for stem, index in sorted(found.items())
        ]

    def gather(
        self, work_path: Path, displayer: Optional[Displayer] = None
    ) -> List[str]:
        """
        Read every selected file and return the declared constraints.

        Args:
            work_path: Directory to scan
            displayer: Display sink

        Returns:
            Constraint strings in file-name order (possibly empty)

        Raises:
            ResolutionError: If a selected file cannot be parsed
        """
        displayer = displayer or NullDisplayer()
        if not self.exts:
            return []

        displayer.display("Scan project to find IAC files")
        files = self.select_files(work_path)
        if not files:
            logger.debug("No IAC files found")
            return []
        logger.debug(f"Read IAC files: {[f.name for f in files]}")

        requireds = []
        for path in files:
            parser = self._parser_for(path.name)
            data = parser(path)
            requireds.extend(extract_attribute(data, self.attribute, self.block))
        return requireds

    def _parser_for(self, name: str) -> Callable[[Path], Dict[str, Any]]:
        for ext in sorted(self.exts, key=lambda e: -len(e.value)):
            if name.endswith(ext.value):
                return ext.parser
        raise ResolutionError(f"No parser for {name}")


__all__ = [
    "ExtDescription",
    "IacScanner",
    "TOFU_EXTS",
    "TF_EXTS",
    "TERRAGRUNT_EXTS",
    "TERRAFORM_VERSION_CONSTRAINT",
    "TERRAGRUNT_VERSION_CONSTRAINT",
    "parse_hcl_file",
    "parse_json_file",
    "extract_attribute",
    "attribute_string",
]
