"""
Version management per tool.

Example:
    from iacenv.manager import build_manager

    manager = build_manager("tofu", config, displayer)
    version = manager.detect()
"""

from .manager import VersionManager
from .builder import ToolDescriptor, TOOLS, build_manager, get_descriptor, tool_keys

__all__ = [
    "VersionManager",
    "ToolDescriptor",
    "TOOLS",
    "build_manager",
    "get_descriptor",
    "tool_keys",
]
