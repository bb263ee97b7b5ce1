"""
Core functionality for iacenv.

This package contains the foundational modules that other components depend on.
"""

from .display import Displayer, NullDisplayer

from .locking import (
    InstallLock,
    install_lock,
    clean_on_signals,
    LockTimeout,
)

from .platform import (
    PlatformInfo,
    detect_platform,
    clear_platform_cache,
)

from .exceptions import (
    IacEnvError,
    ConfigError,
    ResolutionError,
    NoCompatibleVersionError,
    RetrievalError,
    NetworkError,
    ResponseShapeError,
    AssetNotFoundError,
    InstallModeError,
    VerificationError,
    ChecksumNotFoundError,
    ChecksumMismatchError,
    SignatureError,
    ArchiveError,
    LockWaitError,
    ProcessSpawnError,
    ProcessExitError,
    OutputCollisionError,
)

__all__ = [
    "Displayer",
    "NullDisplayer",
    "InstallLock",
    "install_lock",
    "clean_on_signals",
    "LockTimeout",
    "PlatformInfo",
    "detect_platform",
    "clear_platform_cache",
    "IacEnvError",
    "ConfigError",
    "ResolutionError",
    "NoCompatibleVersionError",
    "RetrievalError",
    "NetworkError",
    "ResponseShapeError",
    "AssetNotFoundError",
    "InstallModeError",
    "VerificationError",
    "ChecksumNotFoundError",
    "ChecksumMismatchError",
    "SignatureError",
    "ArchiveError",
    "LockWaitError",
    "ProcessSpawnError",
    "ProcessExitError",
    "OutputCollisionError",
]
