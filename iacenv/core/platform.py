"""
Platform detection for iacenv.

Release assets of the managed tools are named after Go's GOOS/GOARCH
values (``linux``, ``darwin``, ``windows`` / ``amd64``, ``arm64``, ``386``,
``arm``). This module maps the running interpreter's platform onto those
names and exposes the naming conventions that depend on the OS.

Usage:
    from iacenv.core.platform import detect_platform

    info = detect_platform()
    print(f"{info.os}_{info.arch}")  # linux_amd64
"""

import functools
import platform
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class PlatformInfo:
    """
    Platform information in release-asset naming.

    Attributes:
        os: 'linux', 'darwin', 'windows', 'freebsd', ...
        arch: 'amd64', 'arm64', '386', 'arm', ...
    """

    os: str
    arch: str

    @property
    def is_windows(self) -> bool:
        return self.os == "windows"

    @property
    def exe_suffix(self) -> str:
        """'.exe' on Windows, empty elsewhere."""
        return ".exe" if self.is_windows else ""

    def executable_name(self, name: str) -> str:
        """
        Name of an executable on this platform.

        Example:
            >>> PlatformInfo("windows", "amd64").executable_name("tofu")
            'tofu.exe'
        """
        return name + self.exe_suffix

    def with_arch(self, arch: Optional[str]) -> "PlatformInfo":
        """Copy with an overridden architecture (empty keeps the current one)."""
        if not arch:
            return self
        return PlatformInfo(os=self.os, arch=arch)

    def __str__(self) -> str:
        return f"{self.os}_{self.arch}"


@functools.lru_cache(maxsize=1)
def detect_platform() -> PlatformInfo:
    """
    Detect current platform information.

    This function is cached - it only runs detection once per process.

    Returns:
        PlatformInfo with Go-style os and arch names
    """
    return PlatformInfo(os=_detect_os(), arch=_detect_architecture())


def _detect_os() -> str:
    system = platform.system().lower()
    if system.startswith(("cygwin", "msys", "mingw")):
        return "windows"
    return system


def _detect_architecture() -> str:
    """
    Detect CPU architecture.

    Returns:
        Normalized architecture: 'amd64', 'arm64', '386', 'arm'
    """
    machine = platform.machine().lower()

    if machine in ("x86_64", "amd64", "x64"):
        return "amd64"
    elif machine in ("aarch64", "arm64", "armv8l", "armv8b"):
        return "arm64"
    elif machine in ("i386", "i486", "i586", "i686", "x86"):
        return "386"
    elif machine.startswith("arm"):
        return "arm"
    else:
        # unknown names are passed through untouched
        return machine


def clear_platform_cache():
    """Clear the detect_platform cache (useful in tests)."""
    detect_platform.cache_clear()


__all__ = ["PlatformInfo", "detect_platform", "clear_platform_cache"]
