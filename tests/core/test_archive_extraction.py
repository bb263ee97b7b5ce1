"""
Unit tests for executable extraction and file helpers.

Tests cover:
- zip and tar.gz extraction filtered by base name
- Traversal and size checks
- Raw executable writes
- Atomic writes and guarded removal
"""

import io
import os
import tarfile
import zipfile
from unittest.mock import patch

import pytest

from iacenv.core.exceptions import ArchiveError
from iacenv.core.filesystem import (
    atomic_write,
    entry_base_name,
    extract_executables,
    safe_rmtree,
    write_executable,
)


def make_zip(entries):
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as zf:
        for name, data in entries.items():
            zf.writestr(name, data)
    return buffer.getvalue()


def make_tar_gz(entries):
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w:gz") as tar:
        for name, data in entries.items():
            info = tarfile.TarInfo(name)
            info.size = len(data)
            tar.addfile(info, io.BytesIO(data))
    return buffer.getvalue()


class TestEntryBaseName:
    """Tests for entry_base_name."""

    @pytest.mark.parametrize(
        "entry,expected",
        [
            ("tofu", "tofu"),
            ("dist/tofu", "tofu"),
            ("dist\\bin\\tofu.exe", "tofu.exe"),
            ("a/b\\c", "c"),
        ],
    )
    def test_separators(self, entry, expected):
        assert entry_base_name(entry) == expected


class TestExtractExecutables:
    """Tests for extract_executables."""

    def test_zip_only_wanted_entries(self, tmp_path):
        archive = make_zip({"tofu": b"bin", "LICENSE": b"text", "README.md": b"doc"})

        extracted = extract_executables(archive, "tofu.zip", tmp_path, {"tofu"})

        assert extracted == [(tmp_path / "tofu").resolve()]
        assert sorted(p.name for p in tmp_path.iterdir()) == ["tofu"]
        assert (tmp_path / "tofu").read_bytes() == b"bin"

    @pytest.mark.skipif(os.name == "nt", reason="POSIX permissions")
    def test_executable_bit(self, tmp_path):
        archive = make_zip({"tofu": b"bin"})
        extract_executables(archive, "tofu.zip", tmp_path, {"tofu"})

        assert os.access(tmp_path / "tofu", os.X_OK)

    def test_nested_entry_written_flat(self, tmp_path):
        archive = make_tar_gz({"terramate_0.9.0/terramate": b"tm", "other/ls": b"x"})

        extract_executables(archive, "tm.tar.gz", tmp_path, {"terramate"})

        assert (tmp_path / "terramate").read_bytes() == b"tm"
        assert not (tmp_path / "terramate_0.9.0").exists()

    def test_backslash_entry(self, tmp_path):
        archive = make_zip({"bin\\tofu.exe": b"win"})

        extract_executables(archive, "tofu.zip", tmp_path, {"tofu.exe"})

        assert (tmp_path / "tofu.exe").read_bytes() == b"win"

    def test_missing_executable(self, tmp_path):
        archive = make_zip({"LICENSE": b"text"})

        with pytest.raises(ArchiveError) as exc_info:
            extract_executables(archive, "tofu.zip", tmp_path, {"tofu"})

        assert "tofu" in str(exc_info.value)

    def test_unsupported_format(self, tmp_path):
        with pytest.raises(ArchiveError):
            extract_executables(b"data", "tofu.7z", tmp_path, {"tofu"})

    def test_corrupt_archive(self, tmp_path):
        with pytest.raises(ArchiveError):
            extract_executables(b"not a zip", "tofu.zip", tmp_path, {"tofu"})

    def test_entry_size_cap(self, tmp_path):
        archive = make_zip({"tofu": b"0123456789"})

        with patch("iacenv.core.filesystem.MAX_ENTRY_SIZE", 4):
            with pytest.raises(ArchiveError) as exc_info:
                extract_executables(archive, "tofu.zip", tmp_path, {"tofu"})

        assert "exceeds" in str(exc_info.value)

    def test_refuses_overwrite(self, tmp_path):
        (tmp_path / "tofu").write_bytes(b"old")
        archive = make_zip({"tofu": b"new"})

        with pytest.raises(ArchiveError):
            extract_executables(archive, "tofu.zip", tmp_path, {"tofu"})

        assert (tmp_path / "tofu").read_bytes() == b"old"

    def test_parent_reference_rejected(self, tmp_path):
        archive = make_zip({"dist/..": b"x"})

        with pytest.raises(ArchiveError):
            extract_executables(archive, "tofu.zip", tmp_path, {".."})


class TestWriteExecutable:
    """Tests for write_executable."""

    def test_writes_raw_binary(self, tmp_path):
        target = write_executable(b"\x7fELF", tmp_path / "1.0.0", "terragrunt")

        assert target.read_bytes() == b"\x7fELF"
        if os.name != "nt":
            assert os.access(target, os.X_OK)

    def test_unsafe_name(self, tmp_path):
        with pytest.raises(ArchiveError):
            write_executable(b"x", tmp_path, "../escape")


class TestAtomicWrite:
    """Tests for atomic_write."""

    def test_creates_parent(self, tmp_path):
        target = tmp_path / "OpenTofu" / "version"
        atomic_write(target, "1.6.2")

        assert target.read_text() == "1.6.2"

    def test_replaces_content(self, tmp_path):
        target = tmp_path / "version"
        target.write_text("1.5.0")
        atomic_write(target, "1.6.2")

        assert target.read_text() == "1.6.2"
        assert [p.name for p in tmp_path.iterdir()] == ["version"]


class TestSafeRmtree:
    """Tests for safe_rmtree."""

    def test_removes_under_prefix(self, tmp_path):
        victim = tmp_path / "Terraform" / "1.5.7"
        victim.mkdir(parents=True)
        (victim / "terraform").write_text("x")

        safe_rmtree(victim, require_prefix=tmp_path / "Terraform")

        assert not victim.exists()

    def test_refuses_outside_prefix(self, tmp_path):
        other = tmp_path / "other"
        other.mkdir()

        with pytest.raises(ValueError):
            safe_rmtree(other, require_prefix=tmp_path / "Terraform")
        assert other.exists()

    def test_refuses_prefix_itself(self, tmp_path):
        with pytest.raises(ValueError):
            safe_rmtree(tmp_path, require_prefix=tmp_path)

    def test_missing_is_noop(self, tmp_path):
        safe_rmtree(tmp_path / "absent", require_prefix=tmp_path)
