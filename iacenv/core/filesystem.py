"""
File system utilities for iacenv.

This module provides:
- Extraction of the expected executable from zip and tar.gz release archives
  held in memory, with path validation and a per-entry size cap
- Writing raw executables with the executable bit set
- Atomic small-file writes (version files, last-use stamps)
- Guarded directory removal for uninstall
"""

import io
import logging
import os
import shutil
import stat
import tarfile
import tempfile
import zipfile
from pathlib import Path
from typing import BinaryIO, Iterable, List, Optional, Union

from iacenv.core.exceptions import ArchiveError

logger = logging.getLogger(__name__)

IS_WINDOWS = os.name == "nt"

# a single archive entry larger than this is treated as hostile
MAX_ENTRY_SIZE = 200 * 1024 * 1024
EXECUTABLE_MODE = 0o755
COPY_CHUNK = 64 * 1024


# ============================================================================
# Path Utilities
# ============================================================================


def is_relative_to(path: Path, parent: Path) -> bool:
    try:
        path.relative_to(parent)
        return True
    except ValueError:
        return False


def entry_base_name(entry_name: str) -> str:
    """
    Last component of an archive entry name, for either separator.

    Example:
        >>> entry_base_name("dist\\\\bin/tofu.exe")
        'tofu.exe'
    """
    return entry_name.replace("\\", "/").rstrip("/").rsplit("/", 1)[-1]


def _safe_target(destination: Path, name: str) -> Path:
    """
    Resolve the output path of an entry, refusing anything outside destination.

    Raises:
        ArchiveError: If name is empty, a parent reference, or escapes destination
    """
    if name in ("", ".", ".."):
        raise ArchiveError(f"Archive member '{name}' has an invalid name")

    target = (destination / name).resolve()
    if not is_relative_to(target, destination.resolve()):
        raise ArchiveError(
            f"Archive member '{name}' attempts directory traversal. "
            "This is a security risk and extraction has been blocked."
        )
    return target


# ============================================================================
# Executable extraction
# ============================================================================


def _copy_limited(source: BinaryIO, target: Path, entry_name: str) -> None:
    """Copy an entry stream to a new file, failing past MAX_ENTRY_SIZE."""
    flags = os.O_WRONLY | os.O_CREAT | os.O_EXCL | getattr(os, "O_BINARY", 0)
    fd = os.open(target, flags, EXECUTABLE_MODE)
    written = 0
    with os.fdopen(fd, "wb") as out:
        while chunk := source.read(COPY_CHUNK):
            written += len(chunk)
            if written > MAX_ENTRY_SIZE:
                raise ArchiveError(
                    f"Archive member '{entry_name}' exceeds {MAX_ENTRY_SIZE} bytes"
                )
            out.write(chunk)
    make_executable(target)


def make_executable(path: Path) -> None:
    mode = path.stat().st_mode
    path.chmod(mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)


def extract_executables(
    archive: bytes,
    archive_name: str,
    destination: Union[str, Path],
    wanted: Iterable[str],
) -> List[Path]:
    """
    Extract the entries whose base name is in ``wanted`` from an archive.

    The format is chosen from the archive name: ``.zip`` or
    ``.tar.gz``/``.tgz``. Matching entries are written flat into destination
    with executable permissions; every other entry is ignored.

    Args:
        archive: Archive bytes
        archive_name: Published file name (selects the format)
        destination: Directory to write into (created if missing)
        wanted: Accepted base names, e.g. {"tofu"} or {"tofu.exe"}

    Returns:
        Paths of the extracted files

    Raises:
        ArchiveError: Unsupported format, corrupt archive, insecure or
            oversized entry, or no wanted entry present

    Example:
        >>> extract_executables(data, "tofu_1.6.2_linux_amd64.zip", target, {"tofu"})
        [PosixPath('.../tofu')]
    """
    destination = Path(destination)
    wanted = set(wanted)
    lowered = archive_name.lower()

    destination.mkdir(parents=True, exist_ok=True)

    try:
        if lowered.endswith(".zip"):
            extracted = _extract_zip(archive, destination, wanted)
        elif lowered.endswith((".tar.gz", ".tgz")):
            extracted = _extract_tar_gz(archive, destination, wanted)
        else:
            raise ArchiveError(
                f"Unsupported archive format: {archive_name}. "
                "Supported: .zip, .tar.gz"
            )
    except (zipfile.BadZipFile, tarfile.TarError, EOFError) as e:
        raise ArchiveError(f"Failed to extract {archive_name}: {e}") from e
    except FileExistsError as e:
        raise ArchiveError(f"Refusing to overwrite {e.filename}") from e

    if not extracted:
        raise ArchiveError(
            f"None of {sorted(wanted)} found in archive {archive_name}"
        )
    logger.debug(f"Extracted {[p.name for p in extracted]} from {archive_name}")
    return extracted


def _extract_zip(archive: bytes, destination: Path, wanted: set) -> List[Path]:
    extracted = []
    with zipfile.ZipFile(io.BytesIO(archive), "r") as zf:
        for info in zf.infolist():
            if info.is_dir():
                continue
            name = entry_base_name(info.filename)
            if name not in wanted:
                continue
            if info.file_size > MAX_ENTRY_SIZE:
                raise ArchiveError(
                    f"Archive member '{info.filename}' exceeds {MAX_ENTRY_SIZE} bytes"
                )
            target = _safe_target(destination, name)
            with zf.open(info, "r") as source:
                _copy_limited(source, target, info.filename)
            extracted.append(target)
    return extracted


def _extract_tar_gz(archive: bytes, destination: Path, wanted: set) -> List[Path]:
    extracted = []
    with tarfile.open(fileobj=io.BytesIO(archive), mode="r:gz") as tar:
        for member in tar:
            if not member.isfile():
                continue
            name = entry_base_name(member.name)
            if name not in wanted:
                continue
            if member.size > MAX_ENTRY_SIZE:
                raise ArchiveError(
                    f"Archive member '{member.name}' exceeds {MAX_ENTRY_SIZE} bytes"
                )
            target = _safe_target(destination, name)
            source = tar.extractfile(member)
            if source is None:
                continue
            with source:
                _copy_limited(source, target, member.name)
            extracted.append(target)
    return extracted


def write_executable(data: bytes, destination: Union[str, Path], name: str) -> Path:
    """
    Write a raw (non-archived) executable into destination with mode 0755.

    Raises:
        ArchiveError: If name is unsafe or the file already exists
    """
    destination = Path(destination)
    destination.mkdir(parents=True, exist_ok=True)
    target = _safe_target(destination, name)
    try:
        _copy_limited(io.BytesIO(data), target, name)
    except FileExistsError as e:
        raise ArchiveError(f"Refusing to overwrite {target}") from e
    return target


# ============================================================================
# Safe File Operations
# ============================================================================


def atomic_write(
    file_path: Union[str, Path], content: Union[str, bytes], encoding: str = "utf-8"
) -> None:
    """
    Write file atomically using temp file + rename.

    If the write fails, the original file (if any) remains unchanged.

    Example:
        >>> atomic_write(root / "OpenTofu" / "version", "1.6.2")
    """
    file_path = Path(file_path)
    file_path.parent.mkdir(parents=True, exist_ok=True)

    # same directory keeps the rename on one filesystem
    temp_fd, temp_path_str = tempfile.mkstemp(
        dir=file_path.parent, prefix=f".{file_path.name}.", suffix=".tmp"
    )
    temp_path = Path(temp_path_str)

    try:
        if isinstance(content, str):
            with open(temp_fd, "w", encoding=encoding) as f:
                f.write(content)
        else:
            with open(temp_fd, "wb") as f:
                f.write(content)

        temp_path.replace(file_path)

    except Exception:
        temp_path.unlink(missing_ok=True)
        raise


def safe_rmtree(
    path: Union[str, Path], require_prefix: Optional[Union[str, Path]] = None
) -> None:
    """
    Remove a directory tree, optionally only when it lies under a prefix.

    Args:
        path: Directory to remove
        require_prefix: If specified, path must be under this directory

    Raises:
        ValueError: If path is not under require_prefix
        OSError: If deletion fails

    Example:
        >>> safe_rmtree(root / "Terraform" / "1.5.7", require_prefix=root)
    """
    path = Path(path).resolve()

    if require_prefix is not None:
        require_prefix = Path(require_prefix).resolve()
        if path == require_prefix or not is_relative_to(path, require_prefix):
            raise ValueError(
                f"Refusing to delete '{path}': not under required prefix '{require_prefix}'"
            )

    if not path.exists():
        return

    if IS_WINDOWS:

        def handle_remove_readonly(func, failed_path, exc):
            """Error handler for Windows read-only files."""
            if not os.access(failed_path, os.W_OK):
                os.chmod(failed_path, 0o777)
                func(failed_path)
            else:
                raise exc

        shutil.rmtree(path, onexc=handle_remove_readonly)
    else:
        shutil.rmtree(path)


__all__ = [
    "MAX_ENTRY_SIZE",
    "entry_base_name",
    "extract_executables",
    "write_executable",
    "make_executable",
    "atomic_write",
    "safe_rmtree",
    "is_relative_to",
]
