"""Unit tests for the tdescrypt command line front end."""

import logging
from unittest.mock import patch

import pytest

from tdescrypt.frontend.cli.app import EXIT_FAILURE, EXIT_OK, main
from tdescrypt.frontend.cli.context import PASSWORD_ENV


# --- Fixtures ---

@pytest.fixture
def plain_file(tmp_path):
    path = tmp_path / "plain.txt"
    path.write_bytes(b"hello world")
    return path


@pytest.fixture(autouse=True)
def _no_password_env(monkeypatch):
    monkeypatch.delenv(PASSWORD_ENV, raising=False)


# --- Round trips ---

def test_encrypt_then_decrypt(tmp_path, plain_file):
    enc = tmp_path / "plain.enc"
    out = tmp_path / "plain.out"

    assert main(["-e", "-i", str(plain_file), "-o", str(enc), "-p", "hunter2"]) == EXIT_OK
    assert enc.stat().st_size == 16

    assert main(["-d", "-i", str(enc), "-o", str(out), "-p", "hunter2"]) == EXIT_OK
    assert out.read_bytes() == b"hello world"


def test_password_from_environment(tmp_path, plain_file, monkeypatch):
    enc = tmp_path / "plain.enc"
    out = tmp_path / "plain.out"
    monkeypatch.setenv(PASSWORD_ENV, "hunter2")

    assert main(["-e", "-i", str(plain_file), "-o", str(enc)]) == EXIT_OK
    assert main(["-d", "-i", str(enc), "-o", str(out), "-p", "hunter2"]) == EXIT_OK
    assert out.read_bytes() == b"hello world"


def test_strong_atomic_roundtrip(tmp_path, plain_file):
    enc = tmp_path / "plain.enc"
    out = tmp_path / "plain.out"
    args = ["--strong", "--atomic", "--chunk-size", "4", "-p", "pw"]

    assert main(["-e", "-i", str(plain_file), "-o", str(enc), *args]) == EXIT_OK
    assert main(["-d", "-i", str(enc), "-o", str(out), *args]) == EXIT_OK
    assert out.read_bytes() == b"hello world"


# --- Failures ---

def test_missing_input_file(tmp_path, caplog):
    caplog.set_level(logging.ERROR)
    rc = main(["-e", "-i", str(tmp_path / "missing"), "-o", str(tmp_path / "out"), "-p", "pw"])
    assert rc == EXIT_FAILURE
    assert "Unable to open input or output file" in caplog.text


def test_corrupt_ciphertext_reports_padding_error(tmp_path, caplog):
    caplog.set_level(logging.ERROR)
    enc = tmp_path / "bad.enc"
    enc.write_bytes(b"\x00" * 11)

    rc = main(["-d", "-i", str(enc), "-o", str(tmp_path / "out"), "-p", "pw"])

    assert rc == EXIT_FAILURE
    assert "PaddingError" in caplog.text


@pytest.mark.parametrize(
    "argv",
    [
        ["-i", "a", "-o", "b", "-p", "pw"],
        ["-e", "-d", "-i", "a", "-o", "b", "-p", "pw"],
        ["-e", "-o", "b", "-p", "pw"],
        ["-e", "-i", "a", "-o", "b", "-p", "pw", "--chunk-size", "0"],
    ],
)
def test_usage_errors_exit(argv):
    """Bad arguments make argparse exit with status 2."""
    with pytest.raises(SystemExit) as excinfo:
        main(argv)
    assert excinfo.value.code == 2


def test_rename_failure_is_not_reported_as_open_failure(tmp_path, plain_file, caplog):
    """Only open() errors on -i/-o get the 'Unable to open' message."""
    caplog.set_level(logging.ERROR)
    enc = tmp_path / "plain.enc"
    err = OSError(18, "Invalid cross-device link", "tmpfile", None, str(enc))

    with patch("tdescrypt.security.crypto.os.replace", side_effect=err):
        rc = main(["-e", "-i", str(plain_file), "-o", str(enc), "-p", "pw", "--atomic"])

    assert rc == EXIT_FAILURE
    assert "Unable to open" not in caplog.text
    assert "encrypt failed" in caplog.text
    assert "cross-device" in caplog.text


def test_unwritable_output_is_reported_as_open_failure(tmp_path, plain_file, caplog):
    caplog.set_level(logging.ERROR)
    out = tmp_path / "missing-dir" / "plain.enc"
    rc = main(["-e", "-i", str(plain_file), "-o", str(out), "-p", "pw"])
    assert rc == EXIT_FAILURE
    assert "Unable to open input or output file" in caplog.text
