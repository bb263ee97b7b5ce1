"""
Per-tool descriptors and VersionManager construction.

Each managed tool is described once here: where it lives under the install
root, which environment variables and files pin its version, which project
files declare constraints, and which retriever fetches it.
"""

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence

from iacenv.config.settings import Config
from iacenv.core.display import Displayer, NullDisplayer
from iacenv.manager.manager import VersionManager
from iacenv.retrievers import get_retriever
from iacenv.versions.iac import (
    REQUIRED_VERSION,
    TERRAFORM_BLOCK,
    TERRAGRUNT_EXTS,
    TERRAGRUNT_VERSION_CONSTRAINT,
    TF_EXTS,
    TOFU_EXTS,
    ExtDescription,
    IacScanner,
)
from iacenv.versions.predicate import LATEST_ALLOWED_KEY, LATEST_KEY
from iacenv.versions.version_files import (
    VersionFile,
    atmos_version_files,
    tf_version_files,
    tg_version_files,
    tm_version_files,
    tofu_version_files,
)


@dataclass(frozen=True)
class ToolDescriptor:
    """
    Static description of one managed tool.

    Attributes:
        key: Registry and remote configuration key ('tofu', 'tf', ...)
        folder_name: Directory under the install root
        display_name: Human readable name
        executable: Executable base name (without .exe)
        version_env: Env variable overriding every version file
        default_constraint_env: Env variable holding the default constraint
        default_version_env: Env variable holding the fallback strategy
        version_files: Version files looked up in each directory, by priority
        iac_exts: Project file extensions scanned for constraints
        iac_attribute: Attribute holding the constraint in project files
        iac_block: Block enclosing the attribute, None for top level
        default_strategy: Fallback when no version file is found
    """

    key: str
    folder_name: str
    display_name: str
    executable: str
    version_env: str
    default_constraint_env: str
    default_version_env: str
    version_files: Callable[[], Sequence[VersionFile]]
    iac_exts: Sequence[ExtDescription] = field(default_factory=tuple)
    iac_attribute: str = REQUIRED_VERSION
    iac_block: Optional[str] = TERRAFORM_BLOCK
    default_strategy: str = LATEST_ALLOWED_KEY

    @property
    def flat_version_file(self) -> str:
        """File written by ``use --working-dir``."""
        return self.version_files()[0].name

    def scanner(self) -> Optional[IacScanner]:
        if not self.iac_exts:
            return None
        return IacScanner(self.iac_exts, self.iac_attribute, self.iac_block)


TOOLS: Dict[str, ToolDescriptor] = {
    descriptor.key: descriptor
    for descriptor in (
        ToolDescriptor(
            key="tofu",
            folder_name="OpenTofu",
            display_name="OpenTofu",
            executable="tofu",
            version_env="TOFUENV_TOFU_VERSION",
            default_constraint_env="TOFUENV_TOFU_DEFAULT_CONSTRAINT",
            default_version_env="TOFUENV_TOFU_DEFAULT_VERSION",
            version_files=tofu_version_files,
            iac_exts=TOFU_EXTS,
        ),
        ToolDescriptor(
            key="tf",
            folder_name="Terraform",
            display_name="Terraform",
            executable="terraform",
            version_env="TFENV_TERRAFORM_VERSION",
            default_constraint_env="TFENV_TERRAFORM_DEFAULT_CONSTRAINT",
            default_version_env="TFENV_TERRAFORM_DEFAULT_VERSION",
            version_files=tf_version_files,
            iac_exts=TF_EXTS,
        ),
        ToolDescriptor(
            key="tg",
            folder_name="Terragrunt",
            display_name="Terragrunt",
            executable="terragrunt",
            version_env="TG_VERSION",
            default_constraint_env="TG_DEFAULT_CONSTRAINT",
            default_version_env="TG_DEFAULT_VERSION",
            version_files=tg_version_files,
            iac_exts=TERRAGRUNT_EXTS,
            iac_attribute=TERRAGRUNT_VERSION_CONSTRAINT,
            iac_block=None,
        ),
        ToolDescriptor(
            key="tm",
            folder_name="Terramate",
            display_name="Terramate",
            executable="terramate",
            version_env="TM_VERSION",
            default_constraint_env="TM_DEFAULT_CONSTRAINT",
            default_version_env="TM_DEFAULT_VERSION",
            version_files=tm_version_files,
            default_strategy=LATEST_KEY,
        ),
        ToolDescriptor(
            key="atmos",
            folder_name="Atmos",
            display_name="Atmos",
            executable="atmos",
            version_env="ATMOS_VERSION",
            default_constraint_env="ATMOS_DEFAULT_CONSTRAINT",
            default_version_env="ATMOS_DEFAULT_VERSION",
            version_files=atmos_version_files,
            default_strategy=LATEST_KEY,
        ),
    )
}

# executable and folder spellings accepted on the command line
ALIASES: Dict[str, str] = {
    "opentofu": "tofu",
    "terraform": "tf",
    "terragrunt": "tg",
    "terramate": "tm",
}


def tool_keys() -> List[str]:
    return list(TOOLS)


def get_descriptor(name: str) -> ToolDescriptor:
    """
    Descriptor for a tool key, alias, or folder name (case-insensitive).

    Raises:
        KeyError: For an unknown tool
    """
    lowered = name.lower()
    key = ALIASES.get(lowered, lowered)
    if key not in TOOLS:
        raise KeyError(f"Unknown tool '{name}'. Available: {', '.join(TOOLS)}")
    return TOOLS[key]


def build_manager(
    tool: str,
    config: Config,
    displayer: Optional[Displayer] = None,
    **retriever_kwargs,
) -> VersionManager:
    """
    Create the VersionManager of a tool with its registered retriever.

    Example:
        >>> manager = build_manager("tofu", Config.from_env(), Displayer())
        >>> manager.detect()
        '1.6.2'
    """
    displayer = displayer or NullDisplayer()
    descriptor = get_descriptor(tool)
    retriever = get_retriever(descriptor.key, config, displayer, **retriever_kwargs)
    return VersionManager(config, descriptor, retriever, displayer)


__all__ = [
    "ToolDescriptor",
    "TOOLS",
    "ALIASES",
    "get_descriptor",
    "tool_keys",
    "build_manager",
]
