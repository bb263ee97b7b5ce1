"""
Unit tests for checksum and signature verification.

Tests cover:
- SHA256SUMS parsing
- Digest match, mismatch and missing entries
- cosign then PGP fallback order
- Prerelease and skip-signature behavior
- gpg and cosign subprocess handling
"""

import hashlib
import io
import subprocess
from unittest.mock import MagicMock, patch

import pytest

from iacenv.core.display import Displayer
from iacenv.core.exceptions import (
    ChecksumMismatchError,
    ChecksumNotFoundError,
    SignatureError,
)
from iacenv.core.verification import (
    CosignMaterial,
    PgpMaterial,
    VerificationChain,
    check_sha256,
    parse_sums,
    verify_cosign,
    verify_pgp,
)

ASSET = b"tofu binary archive"
ASSET_NAME = "tofu_1.6.2_linux_amd64.zip"


def sums_for(data: bytes, name: str) -> bytes:
    return f"{hashlib.sha256(data).hexdigest()}  {name}\n".encode()


def cosign_material():
    return CosignMaterial(
        identity="https://github.com/opentofu/opentofu/.github/workflows/release.yml@refs/heads/v1.6",
        issuer="https://token.actions.githubusercontent.com",
        fetch_signature=MagicMock(return_value=b"sig"),
        fetch_certificate=MagicMock(return_value=b"pem"),
    )


def pgp_material():
    return PgpMaterial(
        fetch_signature=MagicMock(return_value=b"gpgsig"),
        fetch_key=MagicMock(return_value=b"key"),
    )


class TestParseSums:
    """Tests for parse_sums."""

    def test_two_space_format(self):
        assert parse_sums("ABC  file.zip\n") == {"file.zip": "abc"}

    def test_binary_marker_and_dot_slash(self):
        content = "abc *file.zip\ndef  ./other.zip\n"

        assert parse_sums(content) == {"file.zip": "abc", "other.zip": "def"}

    def test_skips_comments_and_suspicious_names(self):
        content = "# comment\n\nabc  ../etc/passwd\ndef  /abs\nghi  ok\n"

        assert parse_sums(content) == {"ok": "ghi"}


class TestCheckSha256:
    """Tests for check_sha256."""

    def test_match(self):
        digest = check_sha256(ASSET, ASSET_NAME, sums_for(ASSET, ASSET_NAME).decode())

        assert digest == hashlib.sha256(ASSET).hexdigest()

    def test_mismatch(self):
        sums = sums_for(b"other", ASSET_NAME).decode()

        with pytest.raises(ChecksumMismatchError) as exc_info:
            check_sha256(ASSET, ASSET_NAME, sums)

        assert exc_info.value.file_name == ASSET_NAME

    def test_missing_entry(self):
        with pytest.raises(ChecksumNotFoundError):
            check_sha256(ASSET, ASSET_NAME, sums_for(ASSET, "another.zip").decode())


class TestVerificationChain:
    """Tests for VerificationChain fallback policy."""

    def make_chain(self, cosign_present=True, skip_signature=False):
        self.cosign_check = MagicMock()
        self.pgp_check = MagicMock()
        self.displayer = MagicMock()
        return VerificationChain(
            displayer=self.displayer,
            skip_signature=skip_signature,
            cosign_check=self.cosign_check,
            pgp_check=self.pgp_check,
            cosign_present=lambda: cosign_present,
        )

    def test_checksum_only_when_nothing_published(self):
        chain = self.make_chain()
        chain.verify(ASSET, ASSET_NAME, sums_for(ASSET, ASSET_NAME))

        self.cosign_check.assert_not_called()
        self.pgp_check.assert_not_called()

    def test_checksum_failure_stops_chain(self):
        chain = self.make_chain()

        with pytest.raises(ChecksumMismatchError):
            chain.verify(
                ASSET,
                ASSET_NAME,
                sums_for(b"tampered", ASSET_NAME),
                cosign=cosign_material(),
            )
        self.cosign_check.assert_not_called()

    def test_cosign_preferred(self):
        """Test cosign verifies the sums file when available."""
        sums = sums_for(ASSET, ASSET_NAME)
        material = cosign_material()
        pgp = pgp_material()
        chain = self.make_chain()

        chain.verify(ASSET, ASSET_NAME, sums, cosign=material, pgp=pgp)

        self.cosign_check.assert_called_once_with(
            sums, b"sig", b"pem", material.identity, material.issuer
        )
        self.pgp_check.assert_not_called()
        pgp.fetch_signature.assert_not_called()

    def test_falls_back_to_pgp_without_cosign(self):
        sums = sums_for(ASSET, ASSET_NAME)
        chain = self.make_chain(cosign_present=False)

        chain.verify(ASSET, ASSET_NAME, sums, cosign=cosign_material(), pgp=pgp_material())

        self.cosign_check.assert_not_called()
        self.pgp_check.assert_called_once_with(sums, b"gpgsig", b"key")

    def test_prerelease_without_pgp_skips_with_alert(self):
        chain = self.make_chain(cosign_present=False)

        chain.verify(
            ASSET,
            ASSET_NAME,
            sums_for(ASSET, ASSET_NAME),
            stable=False,
            cosign=cosign_material(),
        )

        self.displayer.alert.assert_called_once()

    def test_prerelease_skip_visible_when_quiet(self):
        stream = io.StringIO()
        chain = VerificationChain(
            displayer=Displayer(quiet=True, stream=stream),
            cosign_present=lambda: False,
        )

        chain.verify(
            ASSET,
            ASSET_NAME,
            sums_for(ASSET, ASSET_NAME),
            stable=False,
            cosign=cosign_material(),
        )

        assert "signature verification skipped" in stream.getvalue()

    def test_stable_without_usable_scheme_fails(self):
        chain = self.make_chain(cosign_present=False)

        with pytest.raises(SignatureError):
            chain.verify(
                ASSET, ASSET_NAME, sums_for(ASSET, ASSET_NAME), cosign=cosign_material()
            )

    def test_skip_signature(self):
        chain = self.make_chain(skip_signature=True)

        chain.verify(
            ASSET,
            ASSET_NAME,
            sums_for(ASSET, ASSET_NAME),
            cosign=cosign_material(),
            pgp=pgp_material(),
        )

        self.cosign_check.assert_not_called()
        self.pgp_check.assert_not_called()
        self.displayer.warning.assert_called_once()

    def test_skip_signature_still_checks_digest(self):
        chain = self.make_chain(skip_signature=True)

        with pytest.raises(ChecksumMismatchError):
            chain.verify(ASSET, ASSET_NAME, sums_for(b"x", ASSET_NAME), pgp=pgp_material())

    def test_signature_error_propagates(self):
        chain = self.make_chain()
        self.cosign_check.side_effect = SignatureError("bad signature")

        with pytest.raises(SignatureError):
            chain.verify(
                ASSET, ASSET_NAME, sums_for(ASSET, ASSET_NAME), cosign=cosign_material()
            )


class TestSignatureExecutables:
    """Tests for the cosign and gpg subprocess wrappers."""

    def test_cosign_success(self):
        result = subprocess.CompletedProcess([], 0, stdout="", stderr="Verified OK\n")
        with patch("iacenv.core.verification.subprocess.run", return_value=result) as run:
            verify_cosign(b"data", b"sig", b"pem", "identity", "issuer")

        cmd = run.call_args[0][0]
        assert cmd[:2] == ["cosign", "verify-blob"]
        assert "--certificate-identity" in cmd
        assert cmd[cmd.index("--certificate-identity") + 1] == "identity"

    def test_cosign_requires_verified_ok(self):
        result = subprocess.CompletedProcess([], 0, stdout="", stderr="")
        with patch("iacenv.core.verification.subprocess.run", return_value=result):
            with pytest.raises(SignatureError):
                verify_cosign(b"data", b"sig", b"pem", "identity", "issuer")

    def test_gpg_missing_fails_closed(self):
        with patch(
            "iacenv.core.verification.subprocess.run",
            side_effect=FileNotFoundError("gpg"),
        ):
            with pytest.raises(SignatureError) as exc_info:
                verify_pgp(b"data", b"sig", b"key")

        assert "gpg is not installed" in str(exc_info.value)

    def test_gpg_uses_isolated_home(self):
        ok = subprocess.CompletedProcess([], 0, stdout="", stderr="")
        with patch("iacenv.core.verification.subprocess.run", return_value=ok) as run:
            verify_pgp(b"data", b"sig", b"key")

        import_cmd, verify_cmd = (c[0][0] for c in run.call_args_list)
        assert "--homedir" in import_cmd
        assert "--import" in import_cmd
        assert "--verify" in verify_cmd

    def test_gpg_bad_signature(self):
        ok = subprocess.CompletedProcess([], 0, stdout="", stderr="")
        bad = subprocess.CompletedProcess([], 1, stdout="", stderr="BAD signature")
        with patch("iacenv.core.verification.subprocess.run", side_effect=[ok, bad]):
            with pytest.raises(SignatureError) as exc_info:
                verify_pgp(b"data", b"sig", b"key")

        assert "BAD signature" in str(exc_info.value)
