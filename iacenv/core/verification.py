"""
Checksum and signature verification for downloaded release assets.

This module provides:
- SHA256SUMS parsing and constant-time digest comparison
- Keyless signature checks through the ``cosign`` executable
- Detached PGP signature checks through the ``gpg`` executable, with an
  isolated temporary keyring
- VerificationChain, which applies these checks in order and implements the
  fallback policy between signature schemes

Everything operates on in-memory bytes. Verification always runs before the
caller writes anything under the target version directory.
"""

import hashlib
import logging
import secrets
import shutil
import subprocess
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Optional

from iacenv.core.display import Displayer, NullDisplayer
from iacenv.core.exceptions import (
    ChecksumMismatchError,
    ChecksumNotFoundError,
    SignatureError,
)

logger = logging.getLogger(__name__)

COSIGN_EXECUTABLE = "cosign"
GPG_EXECUTABLE = "gpg"
SUBPROCESS_TIMEOUT = 120


def compute_sha256(data: bytes) -> str:
    """Hex SHA256 digest of data."""
    return hashlib.sha256(data).hexdigest()


def parse_sums(content: str) -> Dict[str, str]:
    """
    Parse a checksums file (SHA256SUMS format).

    Supports formats:
    - hash  filename
    - hash *filename
    - hash filename (with multiple spaces/tabs)

    Args:
        content: Text of the checksums file

    Returns:
        Dict of filename -> lowercase hash

    Example:
        >>> parse_sums("abc123  tofu_1.6.2_linux_amd64.zip\\n")
        {'tofu_1.6.2_linux_amd64.zip': 'abc123'}
    """
    hashes = {}

    for line_num, line in enumerate(content.splitlines(), 1):
        line = line.strip()

        if not line or line.startswith("#"):
            continue

        parts = line.split(maxsplit=1)
        if len(parts) != 2:
            logger.debug(f"Skipping invalid checksums line {line_num}: {line}")
            continue

        hash_value = parts[0].strip().lower()
        filename = parts[1].strip()

        # binary mode indicator
        if filename.startswith("*"):
            filename = filename[1:].strip()
        if filename.startswith("./"):
            filename = filename[2:]

        is_suspicious = (
            ".." in filename
            or filename.startswith("/")
            or filename.startswith("\\")
            or (len(filename) > 1 and filename[1] == ":")
        )
        if is_suspicious:
            logger.warning(
                f"Skipping suspicious filename at line {line_num}: {filename}"
            )
            continue

        hashes[filename] = hash_value

    return hashes


def check_sha256(data: bytes, file_name: str, sums_content: str) -> str:
    """
    Verify data against its entry in a checksums file.

    Args:
        data: Downloaded bytes
        file_name: Name the data was published under
        sums_content: Text of the checksums file

    Returns:
        The verified hex digest

    Raises:
        ChecksumNotFoundError: If the checksums file has no entry for file_name
        ChecksumMismatchError: If the digest differs
    """
    expected = parse_sums(sums_content).get(file_name)
    if expected is None:
        raise ChecksumNotFoundError(file_name)

    actual = compute_sha256(data)
    if not _constant_time_compare(actual, expected):
        raise ChecksumMismatchError(file_name, expected, actual)

    logger.debug(f"SHA256 verified for {file_name}")
    return actual


def _constant_time_compare(a: str, b: str) -> bool:
    return secrets.compare_digest(a.encode("utf-8"), b.encode("utf-8"))


# ============================================================================
# Signature schemes
# ============================================================================


def cosign_available() -> bool:
    return shutil.which(COSIGN_EXECUTABLE) is not None


def verify_cosign(
    data: bytes,
    signature: bytes,
    certificate: bytes,
    identity: str,
    issuer: str,
) -> None:
    """
    Verify a keyless cosign signature of data.

    Runs ``cosign verify-blob`` bound to the expected certificate identity
    and OIDC issuer. Success requires exit status 0 and "Verified OK" on
    stderr.

    Raises:
        SignatureError: If cosign rejects the signature or cannot run
    """
    with tempfile.TemporaryDirectory(prefix="iacenv-cosign-") as tmp:
        tmp_dir = Path(tmp)
        data_path = tmp_dir / "data"
        sig_path = tmp_dir / "data.sig"
        cert_path = tmp_dir / "data.pem"
        data_path.write_bytes(data)
        sig_path.write_bytes(signature)
        cert_path.write_bytes(certificate)

        cmd = [
            COSIGN_EXECUTABLE,
            "verify-blob",
            "--certificate-identity",
            identity,
            "--signature",
            str(sig_path),
            "--certificate",
            str(cert_path),
            "--certificate-oidc-issuer",
            issuer,
            str(data_path),
        ]
        try:
            result = subprocess.run(
                cmd, capture_output=True, text=True, timeout=SUBPROCESS_TIMEOUT
            )
        except FileNotFoundError as e:
            raise SignatureError("cosign is not installed") from e
        except subprocess.TimeoutExpired as e:
            raise SignatureError("cosign verification timeout") from e

    if result.returncode != 0 or "Verified OK" not in result.stderr:
        raise SignatureError(f"cosign verification failed: {result.stderr.strip()}")
    logger.debug(f"cosign signature verified for identity {identity}")


def verify_pgp(data: bytes, signature: bytes, public_key: bytes) -> None:
    """
    Verify a detached PGP signature of data against one public key.

    The key is imported into a throwaway GNUPGHOME so the user's keyring is
    neither consulted nor modified.

    Raises:
        SignatureError: If gpg is missing, the key cannot be imported or the
            signature does not verify
    """
    with tempfile.TemporaryDirectory(prefix="iacenv-gpg-") as tmp:
        tmp_dir = Path(tmp)
        home = tmp_dir / "gnupg"
        home.mkdir(mode=0o700)
        key_path = tmp_dir / "key.asc"
        data_path = tmp_dir / "data"
        sig_path = tmp_dir / "data.sig"
        key_path.write_bytes(public_key)
        data_path.write_bytes(data)
        sig_path.write_bytes(signature)

        base = [GPG_EXECUTABLE, "--batch", "--no-tty", "--homedir", str(home)]
        try:
            imported = subprocess.run(
                base + ["--import", str(key_path)],
                capture_output=True,
                text=True,
                timeout=SUBPROCESS_TIMEOUT,
            )
            if imported.returncode != 0:
                raise SignatureError(
                    f"Failed to import PGP key: {imported.stderr.strip()}"
                )

            result = subprocess.run(
                base + ["--verify", str(sig_path), str(data_path)],
                capture_output=True,
                text=True,
                timeout=SUBPROCESS_TIMEOUT,
            )
        except FileNotFoundError as e:
            raise SignatureError(
                "gpg is not installed. Install gpg to verify signatures."
            ) from e
        except subprocess.TimeoutExpired as e:
            raise SignatureError("gpg verification timeout") from e

    if result.returncode != 0:
        raise SignatureError(f"PGP verification failed: {result.stderr.strip()}")
    logger.debug("PGP signature verified")


# ============================================================================
# Verification chain
# ============================================================================


@dataclass
class CosignMaterial:
    """Lazily fetched inputs of a keyless signature check."""

    identity: str
    issuer: str
    fetch_signature: Callable[[], bytes]
    fetch_certificate: Callable[[], bytes]


@dataclass
class PgpMaterial:
    """Lazily fetched inputs of a detached PGP signature check."""

    fetch_signature: Callable[[], bytes]
    fetch_key: Callable[[], bytes]


class VerificationChain:
    """
    Checksum then signature verification with a fixed fallback policy.

    1. The asset digest must match its entry in the checksums file.
    2. Unless signatures are skipped, the checksums file itself is checked:
       - with cosign when keyless material is published and cosign is on PATH,
       - else with PGP when a detached signature and key are available,
       - else, for a prerelease, the check is skipped with a warning,
       - else SignatureError.

    Tools that publish no signature at all stop after step 1.
    """

    def __init__(
        self,
        displayer: Optional[Displayer] = None,
        skip_signature: bool = False,
        cosign_check: Callable[..., None] = verify_cosign,
        pgp_check: Callable[..., None] = verify_pgp,
        cosign_present: Callable[[], bool] = cosign_available,
    ):
        self.displayer = displayer or NullDisplayer()
        self.skip_signature = skip_signature
        self._cosign_check = cosign_check
        self._pgp_check = pgp_check
        self._cosign_present = cosign_present

    def verify(
        self,
        data: bytes,
        file_name: str,
        sums: bytes,
        stable: bool = True,
        cosign: Optional[CosignMaterial] = None,
        pgp: Optional[PgpMaterial] = None,
    ) -> None:
        """
        Run the full chain on a downloaded asset.

        Args:
            data: Asset bytes
            file_name: Published asset name (looked up in sums)
            sums: Checksums file bytes
            stable: False for prerelease versions
            cosign: Keyless signature inputs, if the tool publishes them
            pgp: Detached signature inputs, if the tool publishes them

        Raises:
            ChecksumNotFoundError: Asset missing from the checksums file
            ChecksumMismatchError: Digest differs
            SignatureError: Signature check failed
        """
        check_sha256(data, file_name, sums.decode("utf-8", errors="replace"))

        if cosign is None and pgp is None:
            logger.debug(f"No signature published for {file_name}, checksum only")
            return

        if self.skip_signature:
            self.displayer.warning(
                f"Signature verification skipped by configuration for {file_name}"
            )
            return

        if cosign is not None:
            if self._cosign_present():
                self._cosign_check(
                    sums,
                    cosign.fetch_signature(),
                    cosign.fetch_certificate(),
                    cosign.identity,
                    cosign.issuer,
                )
                return
            self.displayer.display(
                "cosign executable not found, falling back to PGP verification"
            )

        if pgp is not None:
            self._pgp_check(sums, pgp.fetch_signature(), pgp.fetch_key())
            return

        if not stable:
            self.displayer.alert(
                f"No PGP signature available for prerelease {file_name}, "
                "signature verification skipped"
            )
            return

        raise SignatureError(
            f"No usable signature scheme for {file_name}: install cosign"
        )


__all__ = [
    "compute_sha256",
    "parse_sums",
    "check_sha256",
    "cosign_available",
    "verify_cosign",
    "verify_pgp",
    "CosignMaterial",
    "PgpMaterial",
    "VerificationChain",
]
