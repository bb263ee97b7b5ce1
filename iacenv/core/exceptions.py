"""
Centralized exception hierarchy for iacenv.

Every error raised by the library derives from IacEnvError so that callers
embedding iacenv can catch a single type. The CLI and proxy entry points
are the only places that turn these into messages and exit codes.
"""


# ============================================================================
# Base Exceptions
# ============================================================================


class IacEnvError(Exception):
    """Base exception for all iacenv errors."""

    pass


class ConfigError(IacEnvError):
    """Invalid configuration value or remote configuration file."""

    pass


# ============================================================================
# Resolution Exceptions
# ============================================================================


class ResolutionError(IacEnvError):
    """A version request could not be turned into a predicate."""

    pass


class NoCompatibleVersionError(ResolutionError):
    """No local or remote version satisfies the request."""

    def __init__(self, message: str = "no compatible version found"):
        super().__init__(message)


# ============================================================================
# Retrieval Exceptions
# ============================================================================


class RetrievalError(IacEnvError):
    """Base exception for remote listing and download failures."""

    pass


class NetworkError(RetrievalError):
    """Transport failure or unexpected HTTP status."""

    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(f"Request to {url} failed: {reason}")


class ResponseShapeError(RetrievalError):
    """A remote payload does not match the expected schema."""

    pass


class AssetNotFoundError(ResponseShapeError):
    """Raised when a release has no asset with the expected name."""

    def __init__(self, asset_name: str, release: str = ""):
        self.asset_name = asset_name
        self.release = release
        msg = f"Asset not found: {asset_name}"
        if release:
            msg += f" in release {release}"
        super().__init__(msg)


class InstallModeError(RetrievalError):
    """Unsupported install or list mode for a tool."""

    pass


# ============================================================================
# Verification Exceptions
# ============================================================================


class VerificationError(IacEnvError):
    """Base exception for checksum and signature failures."""

    pass


class ChecksumNotFoundError(VerificationError):
    """Raised when a sums file has no entry for the downloaded file."""

    def __init__(self, file_name: str):
        self.file_name = file_name
        super().__init__(f"File sha256 checksum not found: {file_name}")


class ChecksumMismatchError(VerificationError):
    """Raised when the computed digest differs from the published one."""

    def __init__(self, file_name: str, expected: str, actual: str):
        self.file_name = file_name
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Checksum mismatch for {file_name}: expected {expected}, got {actual}"
        )


class SignatureError(VerificationError):
    """Signature verification failed or could not run."""

    pass


# ============================================================================
# Filesystem and Process Exceptions
# ============================================================================


class ArchiveError(IacEnvError):
    """Archive is unreadable, insecure, oversized or lacks the executable."""

    pass


class LockWaitError(IacEnvError):
    """The lock primitive failed for a reason other than contention."""

    pass


class ProcessSpawnError(IacEnvError):
    """The proxied executable could not be started."""

    pass


class ProcessExitError(IacEnvError):
    """Child process exited with a failing code in CI capture mode."""

    def __init__(self, exit_code: int):
        self.exit_code = exit_code
        super().__init__(f"exited with code {exit_code}")


class OutputCollisionError(IacEnvError):
    """A CI output key or value contains the generated delimiter."""

    pass
